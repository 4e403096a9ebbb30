"""
Where grafter keeps its own files.

.grafter/                inside the target project
├── config.json          project configuration
└── logs/grafter.log     opt-in file log (GRAFTER_FILE_LOGGING=1)

~/.grafter/config.json   configuration shared by all projects
"""

from pathlib import Path
from typing import Optional


class GrafterPaths:
    """
    Paths derived from a project root (the current directory when omitted).

    Nothing is created until ``ensure_dirs`` is called.
    """

    GRAFTER_DIR = ".grafter"
    GLOBAL_DIR = Path.home() / ".grafter"

    CONFIG_NAME = "config.json"
    LOGS_DIR = "logs"

    def __init__(self, project_root: Optional[Path] = None):
        self._project_root = Path(project_root) if project_root is not None else None

    @property
    def project_root(self) -> Path:
        return self._project_root if self._project_root is not None else Path.cwd()

    @property
    def grafter_dir(self) -> Path:
        return self.project_root / self.GRAFTER_DIR

    @property
    def local_config(self) -> Path:
        return self.grafter_dir / self.CONFIG_NAME

    @property
    def global_config(self) -> Path:
        return self.GLOBAL_DIR / self.CONFIG_NAME

    @property
    def logs_dir(self) -> Path:
        return self.grafter_dir / self.LOGS_DIR

    def ensure_dirs(self) -> None:
        """Create .grafter/logs under the project root."""
        self.logs_dir.mkdir(parents=True, exist_ok=True)


def get_paths(project_root: Optional[Path] = None) -> GrafterPaths:
    """
    Paths for ``project_root``.

    A fresh instance is returned on every call so that runs against
    different projects never share state.
    """
    return GrafterPaths(project_root)
