from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional


class Environment(BaseModel):
    """
    Read-only facts about the target project.

    Supplied by the caller; the engine never infers these itself.
    """
    model_config = ConfigDict(frozen=True)

    cwd: str = "."
    typescript: bool = False
    kit: bool = True
    routes_directory: str = "src/routes"
    lib_directory: str = "src/lib"
    package_manager: Literal["npm", "pnpm", "yarn", "bun", "deno"] = "npm"

    @property
    def script_extension(self) -> str:
        return "ts" if self.typescript else "js"


class FileOperation(BaseModel):
    """
    A single file the engine created, merged or left untouched.
    """
    path: str
    operation: Literal["created", "merged", "skipped"]
    content: str
    diff: Optional[str] = None  # Unified diff for merged files
    note: Optional[str] = None  # Why a skipped entry was not applied


class DependencyRecord(BaseModel):
    """
    A package the feature adds to the project manifest.
    """
    name: str
    version: str
    dev: bool = False
    added: bool = True  # False when package.json already declared it


class CommandRecord(BaseModel):
    """
    Outcome of one external command invocation.
    """
    description: str
    argv: List[str]
    exit_code: Optional[int] = None  # None when commands were not executed
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class PlanError(BaseModel):
    """
    A failure recorded against one manifest entry; other entries still ran.
    """
    kind: Literal[
        "parse_failure",
        "anchor_not_found",
        "write_failure",
        "command_failure",
        "file_error",
    ]
    message: str
    path: Optional[str] = None


class MutationPlan(BaseModel):
    """
    The complete, ordered record of what one run did or attempted to do.
    """
    feature: str
    options: dict = Field(default_factory=dict)
    dry_run: bool = False
    files: List[FileOperation] = Field(default_factory=list)
    dependencies: List[DependencyRecord] = Field(default_factory=list)
    commands: List[CommandRecord] = Field(default_factory=list)
    next_steps: List[str] = Field(default_factory=list)
    errors: List[PlanError] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def changed_files(self) -> List[FileOperation]:
        return [f for f in self.files if f.operation != "skipped"]

    def file(self, path: str) -> Optional[FileOperation]:
        """Look up the operation recorded for a project-relative path."""
        for operation in self.files:
            if operation.path == path:
                return operation
        return None

    def to_json(self) -> str:
        """Stable serialization; identical inputs produce identical text."""
        return self.model_dump_json(indent=2)
