"""
CLI Output Utilities

Machine-aware output functions that adapt based on machine mode.
"""

import json
from typing import Any, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from grafter.cli.config import CLIConfig
from grafter.options import OptionSchema
from grafter.schemas import MutationPlan

_console = Console()

OPERATION_STYLES = {
    "created": "green",
    "merged": "yellow",
    "skipped": "dim",
}


def get_console() -> Console:
    return _console


def echo(message: str = "", **kwargs) -> None:
    """Plain text output, used for machine mode and JSON payloads."""
    typer.echo(message, **kwargs)


def print_json(data: Any, minified: Optional[bool] = None) -> None:
    """
    Print JSON data respecting machine mode.
    In machine mode, always minifies. In human mode, pretty prints.
    """
    if minified is None:
        minified = CLIConfig.is_machine_mode()

    if minified:
        echo(json.dumps(data, separators=(',', ':')))
    else:
        echo(json.dumps(data, indent=2))


def structured_error(code: str, message: str, input_value: Optional[str] = None,
                     suggestions: Optional[list] = None) -> dict:
    """
    Create a structured error object for machine mode.

    Args:
        code: Error code (e.g., "INVALID_OPTIONS", "UNKNOWN_FEATURE")
        message: Human-readable error message
        input_value: The input that caused the error
        suggestions: List of alternative suggestions

    Returns:
        Structured error dictionary
    """
    error_obj = {
        "status": "error",
        "code": code,
        "message": message
    }
    if input_value:
        error_obj["input"] = input_value
    if suggestions:
        error_obj["suggestions"] = suggestions
    return error_obj


def print_error(code: str, message: str, json_output: bool = False,
                input_value: Optional[str] = None, suggestions: Optional[list] = None) -> None:
    """Report an error as JSON (machine mode, --json) or Rich text."""
    if CLIConfig.is_machine_mode() or json_output:
        print_json(structured_error(code, message, input_value, suggestions))
        return
    _console.print(f"[red]Error: {escape(message)}[/red]")
    for suggestion in suggestions or []:
        _console.print(f"  [dim]-[/dim] {escape(suggestion)}")


def render_plan(plan: MutationPlan) -> None:
    """Human-readable summary of a finished plan."""
    if CLIConfig.is_machine_mode():
        for operation in plan.files:
            note = f" ({operation.note})" if operation.note else ""
            echo(f"{operation.operation} {operation.path}{note}")
        for error in plan.errors:
            echo(f"error {error.kind} {error.path or '-'} {error.message}")
        return

    title = f"{plan.feature} (dry run)" if plan.dry_run else plan.feature
    table = Table(title=title)
    table.add_column("File", style="cyan")
    table.add_column("Result")
    for operation in plan.files:
        style = OPERATION_STYLES[operation.operation]
        result = f"[{style}]{operation.operation}[/{style}]"
        if operation.note:
            result += f" [dim]({escape(operation.note)})[/dim]"
        table.add_row(escape(operation.path), result)
    for error in plan.errors:
        if error.path:
            table.add_row(escape(error.path), f"[red]{error.kind}[/red]")
    _console.print(table)

    if plan.dependencies:
        _console.print("\n[bold]Dependencies[/bold]")
        for dependency in plan.dependencies:
            marker = "+" if dependency.added else "="
            dev = " [dim](dev)[/dim]" if dependency.dev else ""
            _console.print(f"  {marker} {escape(dependency.name)}@{escape(dependency.version)}{dev}")

    if plan.commands:
        _console.print("\n[bold]Commands[/bold]")
        for command in plan.commands:
            if command.exit_code is None:
                status = "[dim]not run[/dim]"
            elif command.succeeded:
                status = "[green]ok[/green]"
            else:
                status = f"[red]exit {command.exit_code}[/red]"
            _console.print(f"  {escape(' '.join(command.argv))} {status}")

    if plan.errors:
        _console.print("\n[bold red]Errors[/bold red]")
        for error in plan.errors:
            location = f"{escape(error.path)}: " if error.path else ""
            _console.print(f"  [red]{error.kind}[/red] {location}{escape(error.message)}")

    if plan.next_steps:
        _console.print("\n[bold]Next steps[/bold]")
        for number, step in enumerate(plan.next_steps, 1):
            _console.print(f"  {number}. {escape(step)}")


def render_schema(feature_id: str, schema: OptionSchema) -> None:
    """Table of the options a feature accepts."""
    if CLIConfig.is_machine_mode():
        for spec in schema:
            echo(f"{spec.key} {spec.kind} default={spec.default!r} allowed={list(spec.allowed)!r}")
        return

    table = Table(title=f"{feature_id} options")
    table.add_column("Key", style="cyan")
    table.add_column("Kind")
    table.add_column("Allowed")
    table.add_column("Default")
    table.add_column("Question", style="dim")
    for spec in schema:
        allowed = ", ".join(str(v).lower() if isinstance(v, bool) else str(v) for v in spec.allowed)
        table.add_row(spec.key, spec.kind, escape(allowed), escape(repr(spec.default)), escape(spec.question))
    _console.print(table)
    for constraint in schema.constraints:
        _console.print(f"[dim]- {escape(constraint.describe())}[/dim]")
