# Custom exceptions for Grafter

from typing import List, Optional, Sequence


class GrafterError(Exception):
    """Base exception for all application-specific errors."""
    pass


class ValidationError(GrafterError):
    """Raised when option selections violate the option schema."""

    def __init__(self, problems: Sequence[str]):
        self.problems: List[str] = list(problems)
        message = "Invalid option selection: " + "; ".join(self.problems)
        super().__init__(message)


class ManifestError(GrafterError):
    """Raised when a manifest entry is malformed or its predicate fails."""
    pass


class FileOperationError(GrafterError):
    """Base class for errors scoped to a single file operation."""

    kind = "file_error"

    def __init__(self, file_path: str, message: str):
        self.file_path = file_path
        self.message = message
        super().__init__(f"{file_path}: {message}")


class ParseFailure(FileOperationError):
    """Raised when an existing file cannot be parsed as the expected structure."""

    kind = "parse_failure"

    def __init__(self, file_path: str, message: str):
        super().__init__(file_path, f"Failed to parse: {message}")


class StructuralAnchorNotFound(FileOperationError):
    """Raised when a required host construct is missing from a file."""

    kind = "anchor_not_found"

    def __init__(self, file_path: str, anchor: str, message: Optional[str] = None):
        self.anchor = anchor
        super().__init__(
            file_path,
            message or f"Failed detecting `{anchor}` in {file_path}",
        )


class FileWriteError(FileOperationError):
    """Raised when the file tree refuses a write."""

    kind = "write_failure"


class EntrySkipped(GrafterError):
    """
    Raised by a content producer that cannot act on this run but is not
    failing, e.g. a file a command would create during a dry run.
    """

    def __init__(self, file_path: str, reason: str):
        self.file_path = file_path
        self.reason = reason
        super().__init__(f"{file_path}: {reason}")


class CommandExecutionError(GrafterError):
    """Raised when an external command exits with a nonzero status."""

    kind = "command_failure"

    def __init__(self, argv: Sequence[str], exit_code: int, stderr: str = ""):
        self.argv = list(argv)
        self.exit_code = exit_code
        self.stderr = stderr
        message = f"Command '{' '.join(self.argv)}' exited with code {exit_code}"
        if stderr.strip():
            message += f": {stderr.strip()}"
        super().__init__(message)


class ConfigError(GrafterError):
    """Raised for configuration-related problems."""
    pass
