"""
Tests for manifest entries and the manifest evaluator.
"""

import pytest

from grafter.exceptions import ManifestError
from grafter.features.supabase import MANIFEST, SCHEMA
from grafter.manifest import CommandEntry, DependencyEntry, FileEntry, Manifest, evaluate
from grafter.options import resolve
from grafter.schemas import Environment

pytestmark = pytest.mark.fast


def _paths(active, env):
    return [entry.name(env) for entry in active.files]


class TestFileEntry:

    def test_unknown_kind(self):
        with pytest.raises(ManifestError):
            FileEntry(name=lambda env: "a", content=lambda ctx: "", kind="yaml")

    def test_unknown_existing_policy(self):
        with pytest.raises(ManifestError):
            FileEntry(name=lambda env: "a", content=lambda ctx: "", existing="overwrite")


class TestEvaluate:

    def test_entries_without_condition_always_active(self):
        manifest = Manifest(
            dependencies=(DependencyEntry("a", "1"),),
            commands=(CommandEntry("run", ("x",)),),
            files=(FileEntry(name=lambda env: "f", content=lambda ctx: ""),),
        )
        active = evaluate(manifest, {}, Environment())
        assert len(active) == 3

    def test_declaration_order_preserved(self):
        manifest = Manifest(dependencies=tuple(
            DependencyEntry(name, "1", condition=lambda o, e, keep=keep: keep)
            for name, keep in [("c", True), ("a", False), ("b", True), ("d", True)]
        ))
        active = evaluate(manifest, {}, Environment())
        assert [d.name for d in active.dependencies] == ["c", "b", "d"]

    def test_each_condition_called_once(self):
        calls = []

        def condition(options, environment):
            calls.append(1)
            return True

        manifest = Manifest(files=(FileEntry(name=lambda env: "f", content=lambda ctx: "", condition=condition),))
        evaluate(manifest, {}, Environment())
        assert len(calls) == 1

    def test_failing_condition_becomes_manifest_error(self):
        manifest = Manifest(commands=(CommandEntry("x", ("x",), condition=lambda o, e: o["missing"]),))
        with pytest.raises(ManifestError):
            evaluate(manifest, {}, Environment())


class TestSupabaseManifest:

    def test_no_auth_only_base_files(self, ts_env):
        options = resolve({"cli": False}, SCHEMA)
        active = evaluate(MANIFEST, options, ts_env)
        assert _paths(active, ts_env) == [".env", ".env.example"]
        assert [d.name for d in active.dependencies] == ["@supabase/supabase-js"]
        assert active.commands == []

    def test_cli_adds_dev_dependency_and_init_command(self, ts_env):
        active = evaluate(MANIFEST, resolve({}, SCHEMA), ts_env)
        supabase = [d for d in active.dependencies if d.name == "supabase"]
        assert supabase and supabase[0].dev
        assert active.commands[0].args[:2] == ("supabase", "init")
        assert "supabase/config.toml" in _paths(active, ts_env)

    def test_magic_link_excludes_password_routes(self, ts_env):
        options = resolve({"auth": ["magic-link"]}, SCHEMA)
        paths = _paths(evaluate(MANIFEST, options, ts_env), ts_env)
        assert "src/routes/auth/+page.server.ts" in paths
        assert "supabase/templates/magic_link.html" in paths
        assert not any("forgot-password" in p or "reset-password" in p for p in paths)
        assert "supabase/templates/recovery.html" not in paths

    def test_basic_excludes_magic_link_template(self, ts_env):
        options = resolve({"auth": ["basic"]}, SCHEMA)
        paths = _paths(evaluate(MANIFEST, options, ts_env), ts_env)
        assert "src/routes/auth/forgot-password/+page.svelte" in paths
        assert "supabase/templates/magic_link.html" not in paths

    def test_app_types_only_for_typescript(self, js_env, ts_env):
        options = resolve({"auth": ["basic"]}, SCHEMA)
        assert "src/app.d.ts" in _paths(evaluate(MANIFEST, options, ts_env), ts_env)
        js_paths = _paths(evaluate(MANIFEST, options, js_env), js_env)
        assert "src/app.d.ts" not in js_paths
        assert "src/hooks.server.js" in js_paths

    def test_paths_follow_environment_directories(self):
        env = Environment(typescript=True, routes_directory="app/routes", lib_directory="app/lib")
        options = resolve({"auth": ["basic"], "admin": True}, SCHEMA)
        paths = _paths(evaluate(MANIFEST, options, env), env)
        assert "app/routes/+layout.ts" in paths
        assert "app/lib/server/supabase-admin.ts" in paths
