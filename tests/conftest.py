"""
Pytest configuration for the Grafter test suite.

This conftest.py provides:
- Machine-mode logging (suppresses console output)
- Common fixtures for temp directories and sample SvelteKit projects
- Resolved options and environments for the Supabase feature
"""

import json
import os
import shutil
import tempfile
from pathlib import Path

import pytest

from grafter.logging_config import setup_logging
from grafter.schemas import Environment


# ============================================================================
# GLOBAL CONFIGURATION
# ============================================================================

def pytest_configure(config):
    """Keep CLI and logging output plain during test runs."""
    os.environ.setdefault("GRAFTER_MACHINE_MODE", "1")


# ============================================================================
# LOGGING FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def setup_test_logging():
    """
    Machine mode by default - suppress console logs for clean test output.
    """
    setup_logging(level="DEBUG", suppress_console=True, force=True)


# ============================================================================
# TEMPORARY DIRECTORY FIXTURES
# ============================================================================

@pytest.fixture
def temp_dir():
    """Create a temporary directory that's cleaned up after the test."""
    tmp = Path(tempfile.mkdtemp(prefix="grafter_test_"))
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


APP_D_TS = """// See https://svelte.dev/docs/kit/types#app.d.ts
// for information about these interfaces
declare global {
	namespace App {
		// interface Error {}
		// interface Locals {}
		// interface PageData {}
		// interface PageState {}
		// interface Platform {}
	}
}

export {};
"""

LAYOUT_SVELTE = """<script lang="ts">
	let { children } = $props();
</script>

{@render children()}
"""

PACKAGE_JSON = {
    "name": "my-app",
    "version": "0.0.1",
    "private": True,
    "scripts": {
        "dev": "vite dev",
        "build": "vite build",
    },
    "devDependencies": {
        "@sveltejs/kit": "^2.0.0",
        "svelte": "^5.0.0",
    },
}


def sample_project_files(typescript: bool = True) -> dict:
    """Files of a freshly created SvelteKit project, keyed by relative path."""
    files = {
        "package.json": json.dumps(PACKAGE_JSON, indent="\t") + "\n",
        "svelte.config.js": "import adapter from '@sveltejs/adapter-auto';\n\nexport default { kit: { adapter: adapter() } };\n",
        "src/routes/+layout.svelte": LAYOUT_SVELTE if typescript else LAYOUT_SVELTE.replace(' lang="ts"', ""),
    }
    if typescript:
        files["tsconfig.json"] = "{}\n"
        files["src/app.d.ts"] = APP_D_TS
    return files


@pytest.fixture
def temp_project(temp_dir):
    """
    Create a temporary SvelteKit project on disk.

    Returns:
        Path to the project root
    """
    for relative, content in sample_project_files().items():
        path = temp_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return temp_dir


# ============================================================================
# ENVIRONMENT FIXTURES
# ============================================================================

@pytest.fixture
def ts_env():
    return Environment(typescript=True)


@pytest.fixture
def js_env():
    return Environment(typescript=False)
