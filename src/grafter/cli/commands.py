"""
CLI feature commands

add, options, list
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from grafter.cli.config import CLIConfig
from grafter.cli.detect import detect_environment
from grafter.cli.output import echo, print_error, print_json, render_plan, render_schema
from grafter.exceptions import ConfigError, GrafterError, ValidationError
from grafter.features import available_features, get_feature
from grafter.logging_config import logger
from grafter.merge import DiskFileTree
from grafter.options import OptionSchema, coerce_cli_value
from grafter.plan import apply_feature
from grafter.plan.feature import Feature
from grafter.runner import CommandRunner
from grafter.user_config import UserConfig

app = typer.Typer()


def parse_option_flags(values: List[str], schema: OptionSchema) -> Dict[str, Any]:
    """
    Turn repeated ``--option key=value`` flags into raw selections.

    Keys the schema does not know are passed through as strings so that
    option resolution reports them together with any other problem.

    Raises:
        ConfigError: for a flag without ``=``
    """
    selections: Dict[str, Any] = {}
    for item in values:
        key, sep, text = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigError(f"Expected key=value, got '{item}'")
        spec = schema.get(key)
        selections[key] = coerce_cli_value(spec, text) if spec is not None else text
    return selections


def _load_feature(feature_id: str, json_output: bool) -> Feature:
    try:
        return get_feature(feature_id)
    except GrafterError as e:
        print_error("UNKNOWN_FEATURE", str(e), json_output, input_value=feature_id,
                    suggestions=available_features())
        raise typer.Exit(code=1)


@app.command("add")
def add_cmd(
    feature_id: str = typer.Argument(..., metavar="FEATURE", help="Feature to add, e.g. 'supabase'"),
    cwd: Path = typer.Option(Path("."), "--cwd", "-C", help="Project root", exists=True, file_okay=False),
    option: List[str] = typer.Option([], "--option", "-o", help="Option answer as key=value (repeatable)"),
    package_manager: Optional[str] = typer.Option(None, "--package-manager", help="Override lockfile detection"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Compute the plan without writing or running anything"),
    no_commands: bool = typer.Option(False, "--no-commands", help="Record external commands without running them"),
    json_output: bool = typer.Option(False, "--json", help="Output the plan as JSON"),
):
    """
    Add a feature to the project in --cwd.

    Existing files are merged into rather than overwritten; running the
    command twice with the same options changes nothing the second time.
    """
    feature = _load_feature(feature_id, json_output)
    root = cwd.resolve()

    try:
        config = UserConfig(project_root=root)
        selections = config.feature_presets(feature.id)
        selections.update(parse_option_flags(option, feature.schema))
        environment = detect_environment(root, config, package_manager)
    except ConfigError as e:
        print_error("CONFIG_ERROR", str(e), json_output)
        raise typer.Exit(code=1)

    runner = None if no_commands else CommandRunner(root, timeout=CLIConfig.DEFAULT_COMMAND_TIMEOUT)

    try:
        result = apply_feature(
            feature,
            selections,
            environment,
            DiskFileTree(root),
            runner=runner,
            dry_run=dry_run,
        )
    except ValidationError as e:
        print_error("INVALID_OPTIONS", str(e), json_output, suggestions=e.problems)
        raise typer.Exit(code=1)
    except GrafterError as e:
        logger.error(f"Adding '{feature.id}' failed: {e}")
        print_error("FEATURE_ERROR", str(e), json_output)
        raise typer.Exit(code=1)

    if json_output:
        echo(result.to_json())
    else:
        render_plan(result)

    if not result.success:
        raise typer.Exit(code=1)


@app.command("options")
def options_cmd(
    feature_id: str = typer.Argument(..., metavar="FEATURE", help="Feature to describe"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show the options a feature accepts."""
    feature = _load_feature(feature_id, json_output)
    if json_output:
        print_json({
            "feature": feature.id,
            "options": [
                {
                    "key": spec.key,
                    "kind": spec.kind,
                    "question": spec.question,
                    "allowed": list(spec.allowed),
                    "default": list(spec.default) if isinstance(spec.default, tuple) else spec.default,
                }
                for spec in feature.schema
            ],
            "constraints": [constraint.describe() for constraint in feature.schema.constraints],
        })
        return
    render_schema(feature.id, feature.schema)


@app.command("list")
def list_cmd(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List the features that can be added."""
    features = [get_feature(feature_id) for feature_id in available_features()]
    if json_output:
        print_json([
            {"id": f.id, "name": f.name, "description": f.description, "documentation": f.documentation}
            for f in features
        ])
        return
    for f in features:
        echo(f"{f.id}\t{f.description}")
