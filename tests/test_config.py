"""
Tests for user configuration and project environment detection.
"""

import json

import pytest

from grafter.cli.detect import detect_environment, detect_package_manager
from grafter.exceptions import ConfigError
from grafter.user_config import UserConfig

pytestmark = pytest.mark.fast


def _config(root, global_config=None, local_config=None):
    global_path = root / "global-config.json"
    if global_config is not None:
        global_path.write_text(json.dumps(global_config))
    if local_config is not None:
        (root / ".grafter").mkdir(exist_ok=True)
        (root / ".grafter" / "config.json").write_text(json.dumps(local_config))
    return UserConfig(project_root=root, global_config_path=global_path)


class TestUserConfig:

    def test_defaults(self, temp_dir):
        config = _config(temp_dir)
        assert config.get("defaults.package_manager") == "npm"
        assert config.get("defaults.routes_directory") == "src/routes"
        assert config.get("missing.key", "fallback") == "fallback"
        assert config.feature_presets("supabase") == {}

    def test_local_overrides_global(self, temp_dir):
        config = _config(
            temp_dir,
            global_config={"defaults": {"package_manager": "pnpm"}, "options": {"supabase": {"cli": False}}},
            local_config={"options": {"supabase": {"admin": True}}},
        )
        assert config.get("defaults.package_manager") == "pnpm"
        assert config.get("defaults.lib_directory") == "src/lib"
        assert config.feature_presets("supabase") == {"cli": False, "admin": True}

    def test_invalid_json_is_ignored(self, temp_dir):
        (temp_dir / ".grafter").mkdir()
        (temp_dir / ".grafter" / "config.json").write_text("{ not json")
        config = UserConfig(project_root=temp_dir, global_config_path=temp_dir / "absent.json")
        assert config.get("defaults.package_manager") == "npm"

    def test_non_object_presets_are_ignored(self, temp_dir):
        config = _config(temp_dir, local_config={"options": {"supabase": ["cli"]}})
        assert config.feature_presets("supabase") == {}

    def test_to_dict_is_a_copy(self, temp_dir):
        config = _config(temp_dir)
        config.to_dict()["defaults"]["package_manager"] = "yarn"
        assert config.get("defaults.package_manager") == "npm"


class TestDetectEnvironment:

    def test_lockfile_decides_package_manager(self, temp_dir):
        assert detect_package_manager(temp_dir) == "npm"
        (temp_dir / "yarn.lock").write_text("")
        assert detect_package_manager(temp_dir) == "yarn"
        (temp_dir / "pnpm-lock.yaml").write_text("")
        assert detect_package_manager(temp_dir) == "pnpm"

    def test_explicit_package_manager_wins(self, temp_dir):
        (temp_dir / "bun.lockb").write_text("")
        environment = detect_environment(temp_dir, _config(temp_dir), package_manager="deno")
        assert environment.package_manager == "deno"

    def test_configured_fallback(self, temp_dir):
        config = _config(temp_dir, global_config={"defaults": {"package_manager": "bun"}})
        assert detect_environment(temp_dir, config).package_manager == "bun"

    def test_unsupported_package_manager(self, temp_dir):
        with pytest.raises(ConfigError):
            detect_environment(temp_dir, _config(temp_dir), package_manager="pip")

    def test_sveltekit_typescript_project(self, temp_project):
        environment = detect_environment(temp_project, _config(temp_project))
        assert environment.typescript
        assert environment.kit
        assert environment.routes_directory == "src/routes"
        assert environment.lib_directory == "src/lib"
        assert environment.cwd == str(temp_project)

    def test_plain_javascript_directory(self, temp_dir):
        environment = detect_environment(temp_dir, _config(temp_dir))
        assert not environment.typescript
        assert not environment.kit
        assert environment.script_extension == "js"

    def test_directory_overrides_from_svelte_config(self, temp_project):
        (temp_project / "svelte.config.js").write_text(
            "export default {\n"
            "\tkit: {\n"
            "\t\tfiles: { routes: './app/routes', lib: 'app/lib/' },\n"
            "\t},\n"
            "};\n"
        )
        environment = detect_environment(temp_project, _config(temp_project))
        assert environment.routes_directory == "app/routes"
        assert environment.lib_directory == "app/lib"
