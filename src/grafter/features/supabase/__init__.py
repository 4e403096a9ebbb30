"""
Supabase: database client, SSR auth, local CLI setup and demo routes for
SvelteKit projects.
"""

from grafter.manifest import CommandEntry, DependencyEntry, Manifest
from grafter.plan.feature import Feature

from .demos import DEMO_FILES
from .files import FILES
from .helpers import has_auth
from .options import SCHEMA
from .steps import next_steps

MANIFEST = Manifest(
    dependencies=(
        DependencyEntry(name="@supabase/supabase-js", version="^2.45.3"),
        DependencyEntry(
            name="@supabase/ssr",
            version="^0.5.1",
            condition=lambda options, env: has_auth(options),
        ),
        # Local development CLI
        DependencyEntry(
            name="supabase",
            version="^1.191.3",
            dev=True,
            condition=lambda options, env: options.cli,
        ),
    ),
    commands=(
        CommandEntry(
            description="Supabase CLI initialization",
            args=(
                "supabase",
                "init",
                "--force",
                "--with-intellij-settings=false",
                "--with-vscode-settings=false",
            ),
            condition=lambda options, env: options.cli,
        ),
    ),
    files=FILES + DEMO_FILES,
)

feature = Feature(
    id="supabase",
    name="Supabase",
    schema=SCHEMA,
    manifest=MANIFEST,
    description="Supabase is an open source Firebase alternative.",
    documentation="https://supabase.com/docs",
    keywords=("supabase", "database", "postgres", "auth"),
    next_steps=next_steps,
)

__all__ = ["MANIFEST", "SCHEMA", "feature"]
