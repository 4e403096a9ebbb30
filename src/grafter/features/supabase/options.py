"""
Options offered when adding Supabase.
"""

from grafter.options import OptionSchema, OptionSpec, Requires

AUTH_VARIANTS = ("basic", "magic-link")

SCHEMA = OptionSchema(
    options=(
        OptionSpec(
            key="auth",
            kind="multiselect",
            question="What authentication methods would you like?",
            allowed=AUTH_VARIANTS,
            default=(),
        ),
        OptionSpec(
            key="admin",
            kind="boolean",
            question="Do you want to add a Supabase admin client?",
            default=False,
        ),
        OptionSpec(
            key="cli",
            kind="boolean",
            question="Do you want to install the Supabase CLI for local development?",
            default=True,
        ),
        OptionSpec(
            key="helpers",
            kind="boolean",
            question="Do you want to add Supabase helper scripts to your package.json?",
            default=False,
        ),
        OptionSpec(
            key="demo",
            kind="boolean",
            question="Do you want to include demo routes to show protected routes?",
            default=False,
        ),
    ),
    constraints=(
        Requires("helpers", needs=("cli",), message="'helpers' needs the Supabase CLI ('cli')"),
        Requires(
            "demo",
            needs=(("auth", "basic"), ("auth", "magic-link")),
            message="'demo' needs at least one 'auth' method",
        ),
        Requires("demo", needs=("cli",), message="'demo' redirects to the local Supabase mail inbox and needs 'cli'"),
    ),
)
