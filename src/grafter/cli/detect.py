"""
Environment detection for the project a feature is added to.

The engine itself never inspects the project; the CLI gathers these facts
once and passes them in as an Environment.
"""

import re
from pathlib import Path
from typing import Optional

from grafter.exceptions import ConfigError
from grafter.logging_config import logger
from grafter.schemas import Environment
from grafter.user_config import UserConfig

# Checked in order; the first lockfile found decides
LOCKFILES = (
    ("bun.lockb", "bun"),
    ("bun.lock", "bun"),
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("deno.lock", "deno"),
    ("package-lock.json", "npm"),
)
PACKAGE_MANAGERS = ("npm", "pnpm", "yarn", "bun", "deno")
SVELTE_CONFIGS = ("svelte.config.js", "svelte.config.mjs", "svelte.config.ts")

# kit.files.routes / kit.files.lib overrides in svelte.config.*
ROUTES_OVERRIDE = re.compile(r"""\broutes\s*:\s*['"]([^'"]+)['"]""")
LIB_OVERRIDE = re.compile(r"""\blib\s*:\s*['"]([^'"]+)['"]""")


def detect_package_manager(root: Path, fallback: str = "npm") -> str:
    for lockfile, manager in LOCKFILES:
        if (root / lockfile).exists():
            return manager
    return fallback


def _svelte_config(root: Path) -> Optional[str]:
    for name in SVELTE_CONFIGS:
        path = root / name
        if path.exists():
            return path.read_text(encoding="utf-8")
    return None


def detect_environment(root: Path, config: Optional[UserConfig] = None,
                       package_manager: Optional[str] = None) -> Environment:
    """
    Inspect a project directory.

    Args:
        root: Project root
        config: User configuration supplying fallbacks
        package_manager: Explicit override (beats lockfile detection)

    Returns:
        Environment describing the project

    Raises:
        ConfigError: if the configured package manager is not supported
    """
    config = config or UserConfig(project_root=root)
    fallback = config.get("defaults.package_manager", "npm")
    manager = package_manager or detect_package_manager(root, fallback)
    if manager not in PACKAGE_MANAGERS:
        raise ConfigError(
            f"Unsupported package manager '{manager}' (expected one of {', '.join(PACKAGE_MANAGERS)})"
        )

    routes = config.get("defaults.routes_directory", "src/routes")
    lib = config.get("defaults.lib_directory", "src/lib")
    svelte_config = _svelte_config(root)
    if svelte_config is not None:
        routes_match = ROUTES_OVERRIDE.search(svelte_config)
        lib_match = LIB_OVERRIDE.search(svelte_config)
        if routes_match:
            routes = routes_match.group(1)
        if lib_match:
            lib = lib_match.group(1)

    environment = Environment(
        cwd=str(root),
        typescript=(root / "tsconfig.json").exists(),
        kit=svelte_config is not None and "@sveltejs/kit" in _read_package_json(root),
        routes_directory=routes.strip("/").removeprefix("./"),
        lib_directory=lib.strip("/").removeprefix("./"),
        package_manager=manager,
    )
    logger.debug(f"Detected environment: {environment.model_dump()}")
    return environment


def _read_package_json(root: Path) -> str:
    path = root / "package.json"
    if not path.exists():
        return ""
    return path.read_text(encoding="utf-8")
