"""
Command execution for external CLIs (package installers, local services).
"""

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from grafter.logging_config import logger


@dataclass(frozen=True)
class CommandResult:
    exit_code: int
    stdout: str = ""
    stderr: str = ""


def exec_command(package_manager: str) -> List[str]:
    """Prefix used to run a package's binary with the given package manager."""
    if package_manager == "npm":
        return ["npx"]
    if package_manager == "pnpm":
        return ["pnpm", "exec"]
    if package_manager == "deno":
        return ["deno", "run", "-A"]
    return [package_manager]


class CommandRunner:
    """
    Run commands synchronously inside the project directory.

    Output is captured unless ``capture`` is False, in which case it streams
    to the terminal. A missing executable is reported as exit code 127
    rather than raised, matching what a shell would return.
    """

    def __init__(self, cwd: Optional[Path] = None, timeout: Optional[float] = None):
        self.cwd = Path(cwd) if cwd else None
        self.timeout = timeout

    def run(self, argv: Sequence[str], capture: bool = True) -> CommandResult:
        logger.info(f"Running: {' '.join(argv)}")
        try:
            completed = subprocess.run(
                list(argv),
                cwd=str(self.cwd) if self.cwd else None,
                capture_output=capture,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            logger.warning(f"Command not found: {argv[0]}")
            return CommandResult(exit_code=127, stderr=str(e))
        except subprocess.TimeoutExpired as e:
            logger.warning(f"Command timed out after {self.timeout}s: {' '.join(argv)}")
            return CommandResult(exit_code=124, stderr=f"timed out after {e.timeout}s")

        return CommandResult(
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
