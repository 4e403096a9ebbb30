"""
Content builders shared by the Supabase manifest entries.
"""

from typing import List, Tuple

from grafter.printer import create_printer, dedent

LOCAL_API_URL = '"http://127.0.0.1:54321"'
LOCAL_INBOX_URL = "http://localhost:54324"
EMAIL_TEMPLATES_DIR = "./supabase/templates"


def is_basic(options) -> bool:
    return options.includes("auth", "basic")


def is_magic_link(options) -> bool:
    return options.includes("auth", "magic-link")


def has_auth(options) -> bool:
    return bool(options.auth)


def has_database_types(options, typescript: bool) -> bool:
    return typescript and options.cli and options.helpers


def generate_env_file_content(ctx) -> str:
    """
    KEY=value lines for .env and .env.example.

    Existing files only receive the keys they lack (see the entry's
    ``existing="lines"`` policy), so user-edited values survive re-runs.
    """
    options = ctx.options
    cli, admin = create_printer(options.cli, options.admin)
    anon_key = cli('"<anon key printed by supabase start>"', '"<your_supabase_anon_key>"')
    service_key = cli('"<service_role key printed by supabase start>"', '"<your_supabase_service_role_key>"')
    service_line = admin(f"SUPABASE_SERVICE_ROLE_KEY={service_key}")
    return dedent(f"""
PUBLIC_BASE_URL="http://localhost:5173"
PUBLIC_SUPABASE_URL={cli(LOCAL_API_URL, '"<your_supabase_project_url>"')}
PUBLIC_SUPABASE_ANON_KEY={anon_key}
{service_line}
""")


def get_supabase_handle_content() -> str:
    return """
async ({ event, resolve }) => {
	event.locals.supabase = createServerClient(PUBLIC_SUPABASE_URL, PUBLIC_SUPABASE_ANON_KEY, {
		cookies: {
			getAll: () => event.cookies.getAll(),
			setAll: (cookiesToSet) => {
				cookiesToSet.forEach(({ name, value, options }) => {
					event.cookies.set(name, value, { ...options, path: '/' })
				})
			},
		},
	})

	event.locals.safeGetSession = async () => {
		const {
			data: { session },
		} = await event.locals.supabase.auth.getSession()
		if (!session) {
			return { session: null, user: null }
		}

		const {
			data: { user },
			error,
		} = await event.locals.supabase.auth.getUser()
		if (error) {
			return { session: null, user: null }
		}

		return { session, user }
	}

	return resolve(event, {
		filterSerializedResponseHeaders(name) {
			return name === 'content-range' || name === 'x-supabase-api-version'
		},
	})
}
"""


ROUTE_GUARD = """
	if (!event.locals.session && event.url.pathname.startsWith('/private')) {
		redirect(303, '/auth')
	}

	if (event.locals.session && event.url.pathname === '/auth') {
		redirect(303, '/private')
	}
"""


def get_auth_guard_handle_content(demo: bool) -> str:
    [demo_guard] = create_printer(demo)
    guard = demo_guard(ROUTE_GUARD)
    return dedent(f"""
async ({{ event, resolve }}) => {{
	const {{ session, user }} = await event.locals.safeGetSession()
	event.locals.session = session
	event.locals.user = user
{guard}
	return resolve(event)
}}
""")


def app_locals_members(options, typescript: bool) -> List[Tuple[str, str]]:
    """(member name, declaration) pairs for App.Locals, in insertion order."""
    [db] = create_printer(has_database_types(options, typescript))
    return [
        ("supabase", f"supabase: SupabaseClient{db('<Database>')}"),
        ("safeGetSession", "safeGetSession: () => Promise<{ session: Session | null; user: User | null }>"),
        ("session", "session: Session | null"),
        ("user", "user: User | null"),
    ]


def confirmation_template_section() -> str:
    return dedent(f"""
# Custom email confirmation template
[auth.email.template.confirmation]
subject = "Confirm Your Signup"
content_path = "{EMAIL_TEMPLATES_DIR}/confirmation.html"

# Custom password reset request template
[auth.email.template.recovery]
subject = "Reset Your Password"
content_path = "{EMAIL_TEMPLATES_DIR}/recovery.html"
""")


def magic_link_template_section() -> str:
    return dedent(f"""
# Custom magic link template
[auth.email.template.magic_link]
subject = "Your Magic Link"
content_path = "{EMAIL_TEMPLATES_DIR}/magic_link.html"
""")


def email_template(heading: str, intro: str, link_text: str, token_type: str) -> str:
    [with_intro] = create_printer(bool(intro))
    intro_line = with_intro(f"\t\t<p>{intro}</p>")
    return dedent(f"""
<html>
	<body>
		<h2>{heading}</h2>
{intro_line}
		<p><a
			href="{{{{ .SiteURL }}}}/auth/confirm?token_hash={{{{ .TokenHash }}}}&type={token_type}&next={{{{ .RedirectTo }}}}"
			>{link_text}</a
		></p>
	</body>
</html>
""")
