"""
End-to-end tests: the Supabase feature applied to in-memory SvelteKit projects.

Covers idempotence, determinism, conditional content, per-file error
isolation, dry runs and command handling.
"""

import json

import pytest

from grafter.exceptions import ValidationError
from grafter.features.supabase import feature as supabase
from grafter.merge import MemoryFileTree
from grafter.plan import apply_feature, summarize
from grafter.runner import CommandResult
from grafter.schemas import Environment

from conftest import PACKAGE_JSON, sample_project_files

pytestmark = pytest.mark.fast

CONFIG_TOML = """[auth]
enabled = true
site_url = "http://127.0.0.1:3000"
additional_redirect_urls = ["https://127.0.0.1:3000"]

[auth.email]
enable_signup = true
enable_confirmations = false

[auth.sms]
enable_signup = false
enable_confirmations = false
"""

EVERYTHING = {
    "auth": ["basic", "magic-link"],
    "admin": True,
    "cli": True,
    "helpers": True,
    "demo": True,
}


class FakeRunner:
    """Records argv lists and answers with a fixed exit code."""

    def __init__(self, exit_code=0, stderr=""):
        self.calls = []
        self.exit_code = exit_code
        self.stderr = stderr

    def run(self, argv, capture=True):
        self.calls.append(list(argv))
        return CommandResult(exit_code=self.exit_code, stderr=self.stderr)


def _project(typescript=True, **extra):
    files = sample_project_files(typescript)
    files.update(extra)
    return MemoryFileTree(files)


def _with_cli_config(typescript=True, **extra):
    return _project(typescript, **{"supabase/config.toml": CONFIG_TOML}, **extra)


class TestIdempotence:

    def test_second_run_changes_nothing(self, ts_env):
        tree = _with_cli_config()
        first = apply_feature(supabase, EVERYTHING, ts_env, tree)
        assert first.success, first.errors
        snapshot = dict(tree.files)

        second = apply_feature(supabase, EVERYTHING, ts_env, tree)
        assert second.success, second.errors
        assert tree.files == snapshot
        assert [f.operation for f in second.files] == ["skipped"] * len(second.files)
        assert all(not dependency.added for dependency in second.dependencies)

    def test_javascript_project_second_run_changes_nothing(self, js_env):
        tree = _with_cli_config(typescript=False)
        selections = {"auth": ["basic"], "demo": True}
        assert apply_feature(supabase, selections, js_env, tree).success
        snapshot = dict(tree.files)
        second = apply_feature(supabase, selections, js_env, tree)
        assert second.changed_files == []
        assert tree.files == snapshot


class TestDeterminism:

    def test_identical_inputs_identical_plans(self, ts_env):
        first = apply_feature(supabase, EVERYTHING, ts_env, _with_cli_config())
        second = apply_feature(supabase, EVERYTHING, ts_env, _with_cli_config())
        assert first.to_json() == second.to_json()

    def test_selection_order_does_not_matter(self, ts_env):
        reordered = dict(reversed(list(EVERYTHING.items())))
        reordered["auth"] = ["magic-link", "basic"]
        first = apply_feature(supabase, EVERYTHING, ts_env, _with_cli_config())
        second = apply_feature(supabase, reordered, ts_env, _with_cli_config())
        assert first.to_json() == second.to_json()


class TestConditionalContent:

    def test_basic_only(self, ts_env):
        tree = _with_cli_config()
        result = apply_feature(supabase, {"auth": ["basic"]}, ts_env, tree)
        assert result.success, result.errors

        actions = tree.files["src/routes/auth/+page.server.ts"]
        assert "signInWithPassword" in actions
        assert "signInWithOtp" not in actions
        assert "import { redirect } from '@sveltejs/kit'" in actions
        assert "formaction=\"?/magic\"" not in tree.files["src/routes/auth/+page.svelte"]
        assert "src/routes/auth/forgot-password/+page.svelte" in tree.files
        assert "supabase/templates/recovery.html" in tree.files
        assert "supabase/templates/magic_link.html" not in tree.files

    def test_magic_link_only(self, ts_env):
        tree = _with_cli_config()
        result = apply_feature(supabase, {"auth": ["magic-link"]}, ts_env, tree)
        assert result.success, result.errors

        actions = tree.files["src/routes/auth/+page.server.ts"]
        assert "signInWithOtp" in actions
        assert "signUp" not in actions
        assert "import { redirect }" not in actions
        assert "Forgot password?" not in tree.files["src/routes/auth/+page.svelte"]
        assert not any("forgot-password" in path for path in tree.files)
        assert "supabase/templates/magic_link.html" in tree.files
        assert "supabase/templates/confirmation.html" not in tree.files

    def test_javascript_files_have_no_types(self, js_env):
        tree = _project(typescript=False)
        result = apply_feature(supabase, {"auth": ["basic"], "cli": False}, js_env, tree)
        assert result.success, result.errors
        assert "src/hooks.server.js" in tree.files
        assert "src/app.d.ts" not in tree.files
        assert "import type" not in tree.files["src/routes/+layout.js"]
        assert "lang=\"ts\"" not in tree.files["src/routes/auth/+page.svelte"]
        assert " as string" not in tree.files["src/routes/auth/+page.server.js"]

    def test_demo_adds_guard_and_private_routes(self, ts_env):
        tree = _with_cli_config()
        apply_feature(supabase, {"auth": ["basic"], "demo": True}, ts_env, tree)
        hooks = tree.files["src/hooks.server.ts"]
        assert "import { redirect } from '@sveltejs/kit'" in hooks
        assert "redirect(303, '/auth')" in hooks
        assert "src/routes/private/+layout.svelte" in tree.files
        assert "user?.email" in tree.files["src/routes/private/+page.svelte"]
        assert "m/${email}" in tree.files["src/routes/auth/+page.server.ts"]

    def test_without_demo_no_guard_redirects(self, ts_env):
        tree = _with_cli_config()
        apply_feature(supabase, {"auth": ["basic"]}, ts_env, tree)
        assert "redirect(" not in tree.files["src/hooks.server.ts"]
        assert not any(path.startswith("src/routes/private") for path in tree.files)

    def test_admin_client_uses_database_types_with_helpers(self, ts_env):
        tree = _with_cli_config()
        apply_feature(supabase, {"admin": True, "helpers": True}, ts_env, tree)
        admin = tree.files["src/lib/server/supabase-admin.ts"]
        assert "createClient<Database>(" in admin
        assert "SUPABASE_SERVICE_ROLE_KEY=" in tree.files[".env"]

    def test_custom_directories(self):
        environment = Environment(typescript=True, routes_directory="app/routes", lib_directory="app/lib")
        tree = _with_cli_config()
        apply_feature(supabase, {"auth": ["basic"], "admin": True}, environment, tree)
        assert "app/routes/auth/+page.svelte" in tree.files
        assert "app/lib/server/supabase-admin.ts" in tree.files
        assert "src/routes/auth/+page.svelte" not in tree.files


class TestExistingFiles:

    def test_hooks_imports_are_not_duplicated(self, ts_env):
        hooks = "import { createServerClient } from '@supabase/ssr'\n"
        tree = _project(**{"src/hooks.server.ts": hooks})
        selections = {"auth": ["basic"], "cli": False}

        result = apply_feature(supabase, selections, ts_env, tree)
        assert result.file("src/hooks.server.ts").operation == "merged"
        merged = tree.files["src/hooks.server.ts"]
        assert merged.count("from '@supabase/ssr'") == 1
        assert merged.count("createServerClient }") == 1
        assert "export const handle: Handle = sequence(supabase, authGuard)" in merged

        rerun = apply_feature(supabase, selections, ts_env, tree)
        assert rerun.file("src/hooks.server.ts").operation == "skipped"
        assert tree.files["src/hooks.server.ts"] == merged

    def test_package_json_keeps_custom_keys_and_formatting(self, ts_env):
        package = dict(PACKAGE_JSON, custom={"keep": [1, 2]})
        tree = _with_cli_config(**{"package.json": json.dumps(package, indent="\t") + "\n"})
        result = apply_feature(supabase, {"helpers": True}, ts_env, tree)
        assert result.success, result.errors

        text = tree.files["package.json"]
        assert text.startswith('{\n\t"name": "my-app",')
        data = json.loads(text)
        assert data["custom"] == {"keep": [1, 2]}
        assert data["scripts"]["dev"] == "vite dev"
        assert data["scripts"]["db:reset"] == "supabase db reset"
        assert "db:types" in data["scripts"]
        assert data["dependencies"] == {"@supabase/supabase-js": "^2.45.3"}
        assert data["devDependencies"]["supabase"] == "^1.191.3"
        assert list(data)[:5] == ["name", "version", "private", "scripts", "devDependencies"]

    def test_package_json_inline_values_survive(self, ts_env):
        text = json.dumps(PACKAGE_JSON, indent="\t") + "\n"
        text = text.replace('\t"private": true,\n', '\t"private": true,\n\t"keywords": ["svelte", "kit"],\n')
        tree = _with_cli_config(**{"package.json": text})
        result = apply_feature(supabase, {"helpers": True}, ts_env, tree)
        assert result.file("package.json").operation == "merged"

        merged = tree.files["package.json"]
        assert '\n\t"keywords": ["svelte", "kit"],\n' in merged
        assert '\t\t"dev": "vite dev",\n' in merged
        assert json.loads(merged)["scripts"]["db:reset"] == "supabase db reset"

    def test_declared_dependency_is_left_alone(self, ts_env):
        package = dict(PACKAGE_JSON, dependencies={"@supabase/supabase-js": "^2.0.0"})
        tree = _project(**{"package.json": json.dumps(package, indent="\t") + "\n"})
        result = apply_feature(supabase, {"cli": False}, ts_env, tree)
        [dependency] = result.dependencies
        assert not dependency.added
        assert json.loads(tree.files["package.json"])["dependencies"] == {"@supabase/supabase-js": "^2.0.0"}

    def test_env_keeps_user_values(self, ts_env):
        tree = _project(**{".env": "PUBLIC_SUPABASE_URL=https://abc.supabase.co\n"})
        result = apply_feature(supabase, {"cli": False}, ts_env, tree)
        assert result.file(".env").operation == "merged"
        env = tree.files[".env"]
        assert env.startswith("PUBLIC_SUPABASE_URL=https://abc.supabase.co\n")
        assert env.count("PUBLIC_SUPABASE_URL") == 1
        assert "PUBLIC_SUPABASE_ANON_KEY=" in env

    def test_layout_component_is_merged(self, ts_env):
        tree = _project()
        apply_feature(supabase, {"auth": ["basic"], "cli": False}, ts_env, tree)
        layout = tree.files["src/routes/+layout.svelte"]
        assert "let { children, data } = $props();" in layout
        assert layout.count("$props()") == 1
        assert layout.count("{@render children()}") == 1
        assert "import { onMount } from 'svelte';" in layout

    def test_supabase_config_is_rewritten(self, ts_env):
        tree = _with_cli_config()
        apply_feature(supabase, {"auth": ["basic", "magic-link"]}, ts_env, tree)
        config = tree.files["supabase/config.toml"]
        assert 'site_url = "http://localhost:5173"' in config
        assert '"https://localhost:5173/*"' in config
        assert "enable_confirmations = true" in config
        assert "[auth.email.template.confirmation]" in config
        assert "[auth.email.template.magic_link]" in config
        assert "127.0.0.1:3000" not in config

    def test_email_confirmations_flip_once(self, ts_env):
        tree = _with_cli_config()
        selections = {"auth": ["basic"]}
        first = apply_feature(supabase, selections, ts_env, tree)
        assert first.file("supabase/config.toml").operation == "merged"
        config = tree.files["supabase/config.toml"]

        second = apply_feature(supabase, selections, ts_env, tree)
        assert second.file("supabase/config.toml").operation == "skipped"
        assert tree.files["supabase/config.toml"] == config

        email, sms = config.split("[auth.sms]")
        assert "enable_confirmations = true" in email.split("[auth.email]")[1]
        assert "enable_confirmations = false" in sms


class TestNoAuth:

    def test_only_env_files_created(self, ts_env):
        files = sample_project_files()
        del files["package.json"]
        tree = MemoryFileTree(files)

        result = apply_feature(supabase, {"cli": False}, ts_env, tree)
        assert result.success
        assert [(f.path, f.operation) for f in result.files] == [
            (".env", "created"),
            (".env.example", "created"),
        ]
        assert tree.files[".env"] == (
            'PUBLIC_BASE_URL="http://localhost:5173"\n'
            'PUBLIC_SUPABASE_URL="<your_supabase_project_url>"\n'
            'PUBLIC_SUPABASE_ANON_KEY="<your_supabase_anon_key>"\n'
        )
        assert [d.name for d in result.dependencies] == ["@supabase/supabase-js"]
        assert result.commands == []

    def test_summary_lines(self, ts_env):
        result = apply_feature(supabase, {"cli": False}, ts_env, _project())
        assert summarize(result) == [
            "merged   package.json",
            "created  .env",
            "created  .env.example",
        ]


class TestErrorIsolation:

    def test_missing_cli_config_is_recorded(self, ts_env):
        tree = _project()
        result = apply_feature(supabase, {"auth": ["basic"]}, ts_env, tree)

        assert not result.success
        [error] = result.errors
        assert error.kind == "anchor_not_found"
        assert error.path == "supabase/config.toml"
        assert "supabase/config.toml" not in tree.files
        # entries after the failing one still ran
        assert "supabase/templates/confirmation.html" in tree.files
        assert result.file("src/hooks.server.ts").operation == "created"

    def test_app_types_without_namespace(self, ts_env):
        tree = _project(**{"src/app.d.ts": "export {};\n"})
        result = apply_feature(supabase, {"auth": ["basic"], "cli": False}, ts_env, tree)
        [error] = result.errors
        assert error.kind == "anchor_not_found"
        assert error.path == "src/app.d.ts"
        assert tree.files["src/app.d.ts"] == "export {};\n"
        assert result.file("src/routes/+layout.ts").operation == "created"

    def test_unparseable_hooks_file(self, ts_env):
        tree = _project(**{"src/hooks.server.ts": "export const = ;\n"})
        result = apply_feature(supabase, {"auth": ["basic"], "cli": False}, ts_env, tree)
        assert [e.kind for e in result.errors] == ["parse_failure"]
        assert tree.files["src/hooks.server.ts"] == "export const = ;\n"

    def test_invalid_selection_writes_nothing(self, ts_env):
        tree = _project()
        snapshot = dict(tree.files)
        with pytest.raises(ValidationError):
            apply_feature(supabase, {"helpers": True, "cli": False}, ts_env, tree)
        assert tree.files == snapshot


class TestCommands:

    def test_commands_run_with_package_manager_prefix(self):
        runner = FakeRunner()
        environment = Environment(typescript=True, package_manager="pnpm")
        result = apply_feature(supabase, {}, environment, _with_cli_config(), runner=runner)
        assert runner.calls == [[
            "pnpm", "exec", "supabase", "init", "--force",
            "--with-intellij-settings=false", "--with-vscode-settings=false",
        ]]
        assert result.commands[0].succeeded

    def test_failed_command_is_recorded_and_files_still_apply(self, ts_env):
        tree = _with_cli_config()
        result = apply_feature(supabase, {"auth": ["basic"]}, ts_env, tree, runner=FakeRunner(1, "boom"))
        assert [e.kind for e in result.errors] == ["command_failure"]
        assert result.commands[0].exit_code == 1
        assert result.commands[0].stderr == "boom"
        assert "src/hooks.server.ts" in tree.files

    def test_without_runner_commands_are_only_recorded(self, ts_env):
        result = apply_feature(supabase, {}, ts_env, _with_cli_config())
        [command] = result.commands
        assert command.argv[:3] == ["npx", "supabase", "init"]
        assert command.exit_code is None


class TestDryRun:

    def test_base_tree_untouched(self, ts_env):
        tree = _with_cli_config()
        snapshot = dict(tree.files)
        runner = FakeRunner()

        result = apply_feature(supabase, EVERYTHING, ts_env, tree, runner=runner, dry_run=True)
        assert result.dry_run
        assert tree.files == snapshot
        assert runner.calls == []
        assert result.file("src/hooks.server.ts").operation == "created"
        assert result.file("src/app.d.ts").operation == "merged"

    def test_missing_cli_config_is_skipped_with_a_note(self, ts_env):
        tree = _project()
        result = apply_feature(supabase, {"auth": ["basic"]}, ts_env, tree, dry_run=True)
        assert result.success, result.errors
        config = result.file("supabase/config.toml")
        assert config.operation == "skipped"
        assert "supabase init" in config.note
        assert "supabase/config.toml" not in tree.files

    def test_dry_run_matches_real_run(self, ts_env):
        preview = apply_feature(supabase, EVERYTHING, ts_env, _with_cli_config(), dry_run=True)
        real = apply_feature(supabase, EVERYTHING, ts_env, _with_cli_config())
        assert [(f.path, f.operation, f.content) for f in preview.files] == [
            (f.path, f.operation, f.content) for f in real.files
        ]


class TestNextSteps:

    def test_auth_with_cli(self):
        environment = Environment(typescript=True, package_manager="pnpm")
        result = apply_feature(supabase, {"auth": ["basic"]}, environment, _with_cli_config())
        assert result.next_steps == [
            "Visit the Supabase docs: https://supabase.com/docs",
            "Start local Supabase services: pnpm supabase start",
            "Changes to local Supabase config require a restart of the local services: "
            "pnpm supabase stop and pnpm supabase start",
            "Update authGuard in ./src/hooks.server.ts with your protected routes",
            "Update your hosted project's email templates",
            "Local email templates are located in ./supabase/templates",
        ]

    def test_minimal(self, js_env):
        result = apply_feature(supabase, {"cli": False}, js_env, _project(typescript=False))
        assert result.next_steps == ["Visit the Supabase docs: https://supabase.com/docs"]

    def test_npm_uses_npx(self, ts_env):
        result = apply_feature(supabase, {}, ts_env, _with_cli_config())
        assert "Start local Supabase services: npx supabase start" in result.next_steps
