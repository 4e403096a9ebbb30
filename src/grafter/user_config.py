"""
User configuration for grafter.

Two optional JSON files are layered over built-in defaults:
- ~/.grafter/config.json   applies to every project
- .grafter/config.json     inside the project, wins over the global file

Example:
{
  "defaults": {
    "package_manager": "pnpm",
    "routes_directory": "src/routes"
  },
  "options": {
    "supabase": {"cli": true, "auth": ["basic"]}
  }
}

"defaults" supplies environment fallbacks when detection finds nothing;
"options" supplies preset answers per feature, overridden by --option flags.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from grafter.logging_config import logger
from grafter.paths import get_paths


DEFAULT_CONFIG = {
    "defaults": {
        "package_manager": "npm",
        "routes_directory": "src/routes",
        "lib_directory": "src/lib",
    },
    "options": {},
}


class UserConfig:
    """
    Built-in defaults, then the global file, then the project file.

    Unreadable or malformed files are logged and skipped; configuration
    never stops a run.
    """

    def __init__(self, project_root: Optional[Path] = None, global_config_path: Optional[Path] = None):
        """
        Args:
            project_root: Project whose .grafter/config.json is read (default: CWD)
            global_config_path: Replaces ~/.grafter/config.json (tests use this)
        """
        paths = get_paths(project_root)
        self.project_root = paths.project_root
        self.global_config_path = global_config_path or paths.global_config
        self.local_config_path = paths.local_config

        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        config = self._deep_merge({}, DEFAULT_CONFIG)

        for path in (self.global_config_path, self.local_config_path):
            if not path.exists():
                continue
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    layer = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Ignoring config file {path}: {e}")
                continue
            if not isinstance(layer, dict):
                logger.warning(f"Ignoring config file {path}: top level is not an object")
                continue
            config = self._deep_merge(config, layer)
            logger.debug(f"Applied config layer {path}")

        return config

    def _deep_merge(self, base: Dict, override: Dict) -> Dict:
        """Nested dicts merge key by key; any other value in ``override`` replaces."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            elif isinstance(value, dict):
                result[key] = self._deep_merge({}, value)
            else:
                result[key] = value

        return result

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a dotted key, e.g. ``config.get("defaults.package_manager")``.
        """
        node: Any = self._config
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def feature_presets(self, feature: str) -> Dict[str, Any]:
        """Preset option answers for a feature (empty when none are configured)."""
        presets = self.get(f"options.{feature}", {})
        if not isinstance(presets, dict):
            logger.warning(f"Ignoring non-object presets for feature '{feature}'")
            return {}
        return dict(presets)

    def to_dict(self) -> Dict[str, Any]:
        """Copy of the merged configuration."""
        return self._deep_merge({}, self._config)
