from typing import List

from grafter.schemas import Environment

from .helpers import EMAIL_TEMPLATES_DIR, has_auth

DOCUMENTATION_URL = "https://supabase.com/docs"


def next_steps(options, environment: Environment) -> List[str]:
    """Follow-up instructions for the user, derived only from the inputs."""
    command = "npx" if environment.package_manager == "npm" else environment.package_manager
    steps = [f"Visit the Supabase docs: {DOCUMENTATION_URL}"]

    if options.cli:
        steps.append(f"Start local Supabase services: {command} supabase start")
        steps.append(
            "Changes to local Supabase config require a restart of the local services: "
            f"{command} supabase stop and {command} supabase start"
        )

    if options.helpers:
        steps.append("Check out package.json for the helper scripts. Remember to generate your database types")

    if has_auth(options):
        steps.append(
            f"Update authGuard in ./src/hooks.server.{environment.script_extension} with your protected routes"
        )
        steps.append("Update your hosted project's email templates")
        if options.cli:
            steps.append(f"Local email templates are located in {EMAIL_TEMPLATES_DIR}")

    return steps
