"""
PlanBuilder: fold per-phase results into one MutationPlan.
"""

from typing import Any, Iterable, List, Optional

from grafter.exceptions import CommandExecutionError, FileOperationError, GrafterError
from grafter.schemas import (
    CommandRecord,
    DependencyRecord,
    FileOperation,
    MutationPlan,
    PlanError,
)


class PlanBuilder:
    """Accumulates records in application order; ``build()`` returns the plan."""

    def __init__(self, feature: str, options: Any, dry_run: bool = False):
        self._plan = MutationPlan(
            feature=feature,
            options=options.to_dict() if hasattr(options, "to_dict") else dict(options),
            dry_run=dry_run,
        )

    def add_dependency(self, record: DependencyRecord) -> None:
        self._plan.dependencies.append(record)

    def add_command(self, record: CommandRecord) -> None:
        self._plan.commands.append(record)

    def add_file(self, operation: FileOperation) -> None:
        self._plan.files.append(operation)

    def add_error(self, error: GrafterError, path: Optional[str] = None) -> None:
        if isinstance(error, FileOperationError):
            self._plan.errors.append(PlanError(kind=error.kind, message=str(error), path=error.file_path))
        elif isinstance(error, CommandExecutionError):
            self._plan.errors.append(PlanError(kind=error.kind, message=str(error)))
        else:
            self._plan.errors.append(PlanError(kind="file_error", message=str(error), path=path))

    def set_next_steps(self, steps: Iterable[str]) -> None:
        self._plan.next_steps = [str(step) for step in steps]

    def build(self) -> MutationPlan:
        return self._plan


def summarize(plan: MutationPlan) -> List[str]:
    """One line per file operation, e.g. 'created  src/hooks.server.ts'."""
    return [f"{operation.operation:<8} {operation.path}" for operation in plan.files]
