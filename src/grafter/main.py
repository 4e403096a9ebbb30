import typer

from grafter.logging_config import setup_logging
from grafter.cli import commands
from grafter.cli.config import CLIConfig

app = typer.Typer(help="Add backend integrations to SvelteKit projects by merging into existing files.")


# Global CLI callback for flags that apply to all commands
@app.callback()
def global_options(
    machine: bool = typer.Option(
        False,
        "--machine",
        "-M",
        help="Plain output and JSON errors (also via GRAFTER_MACHINE_MODE env var)"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log every merge decision to stderr"
    ),
):
    """
    Grafter: declarative, idempotent project mutations.
    """
    if machine:
        CLIConfig.set_machine_mode(True)
    if verbose:
        setup_logging(level="DEBUG", suppress_console=CLIConfig.is_machine_mode(), force=True)
    elif CLIConfig.is_machine_mode():
        setup_logging(suppress_console=True, force=True)


app.command(name="add")(commands.add_cmd)
app.command(name="options")(commands.options_cmd)
app.command(name="list")(commands.list_cmd)


def main():
    app()


if __name__ == "__main__":
    main()
