"""
File entries for the Supabase feature.

Text entries are creation-only unless noted; script, markup and json
entries merge into whatever the project already has.
"""

from grafter.exceptions import EntrySkipped, StructuralAnchorNotFound
from grafter.manifest import FileContext, FileEntry
from grafter.merge import append_content, replace_in_table, replace_literals, set_defaults
from grafter.printer import create_printer, dedent

from .helpers import (
    LOCAL_INBOX_URL,
    app_locals_members,
    confirmation_template_section,
    email_template,
    generate_env_file_content,
    get_auth_guard_handle_content,
    get_supabase_handle_content,
    has_auth,
    has_database_types,
    is_basic,
    is_magic_link,
    magic_link_template_section,
)

# Defaults written by `supabase init` that point at the wrong dev server
LOCAL_ORIGIN_REPLACEMENTS = (
    ('"http://127.0.0.1:3000"', '"http://localhost:5173"'),
    ('"https://127.0.0.1:3000"', '"https://localhost:5173/*"'),
)
# Only email sign-ups are confirmed; [auth.sms] carries the same key
CONFIRMATIONS_TABLE = "auth.email"
CONFIRMATIONS_REPLACEMENT = ("enable_confirmations = false", "enable_confirmations = true")

HELPER_SCRIPTS = {
    "db:migration": "supabase migration new",
    "db:migration:up": "supabase migration up --local",
    "db:reset": "supabase db reset",
}
DB_TYPES_SCRIPT = "supabase gen types typescript --local > src/lib/supabase-types.ts"


def _routes(path: str):
    return lambda env: f"{env.routes_directory}/{path}"


def _route_script(path: str):
    return lambda env: f"{env.routes_directory}/{path}.{env.script_extension}"


def _when_auth(options, environment) -> bool:
    return has_auth(options)


def _when_basic(options, environment) -> bool:
    return is_basic(options)


# ----------------------------------------------------------------------
# Structured merges
# ----------------------------------------------------------------------

def hooks_server(ctx: FileContext) -> None:
    ast = ctx.ast
    ast.add_named_import("@supabase/ssr", ["createServerClient"])
    if ctx.options.demo:
        ast.add_named_import("@sveltejs/kit", ["redirect"])
    ast.add_named_import("$env/static/public", ["PUBLIC_SUPABASE_URL", "PUBLIC_SUPABASE_ANON_KEY"])

    ast.add_hooks_handle("supabase", get_supabase_handle_content(), ctx.typescript, first=True)
    ast.add_hooks_handle("authGuard", get_auth_guard_handle_content(ctx.options.demo), ctx.typescript)


def app_types(ctx: FileContext) -> None:
    ast = ctx.ast
    ast.add_named_import("@supabase/supabase-js", ["Session", "SupabaseClient", "User"], type_only=True)
    if has_database_types(ctx.options, ctx.typescript):
        ast.add_named_import("$lib/supabase-types", ["Database"], type_only=True)

    locals_interface = ast.add_global_app_interface("Locals")
    for member, declaration in app_locals_members(ctx.options, ctx.typescript):
        ast.add_interface_member(locals_interface, member, declaration)

    page_data = ast.add_global_app_interface("PageData")
    ast.add_interface_member(page_data, "session", "session: Session | null")


def layout_load(ctx: FileContext) -> None:
    ast = ctx.ast
    ast.add_named_import("@supabase/ssr", ["createBrowserClient", "createServerClient", "isBrowser"])
    ast.add_named_import("$env/static/public", ["PUBLIC_SUPABASE_ANON_KEY", "PUBLIC_SUPABASE_URL"])
    if ctx.typescript:
        ast.add_named_import("./$types", ["LayoutLoad"], type_only=True)

    [ts] = create_printer(ctx.typescript)
    ast.add_from_string(f"""
export const load{ts(': LayoutLoad')} = async ({{ data, depends, fetch }}) => {{
	depends('supabase:auth')

	const supabase = isBrowser()
		? createBrowserClient(PUBLIC_SUPABASE_URL, PUBLIC_SUPABASE_ANON_KEY, {{
				global: {{ fetch }},
			}})
		: createServerClient(PUBLIC_SUPABASE_URL, PUBLIC_SUPABASE_ANON_KEY, {{
				global: {{ fetch }},
				cookies: {{
					getAll() {{
						return data.cookies
					}},
				}},
			}})

	const {{
		data: {{ session }},
	}} = await supabase.auth.getSession()

	const {{
		data: {{ user }},
	}} = await supabase.auth.getUser()

	return {{ session, supabase, user }}
}}
""")


def layout_server_load(ctx: FileContext) -> None:
    ast = ctx.ast
    if ctx.typescript:
        ast.add_named_import("./$types", ["LayoutServerLoad"], type_only=True)

    [ts] = create_printer(ctx.typescript)
    ast.add_from_string(f"""
export const load{ts(': LayoutServerLoad')} = async ({{ locals: {{ session }}, cookies }}) => {{
	return {{
		session,
		cookies: cookies.getAll(),
	}}
}}
""")


def layout_component(ctx: FileContext) -> None:
    script = ctx.script
    script.add_named_import("$app/navigation", ["invalidate"])
    script.add_named_import("svelte", ["onMount"])

    # $props() may only be called once per component
    script.add_destructured("$props()", ["children", "data"])
    script.add_from_string("""
let { session, supabase } = $derived(data);

onMount(() => {
	const { data } = supabase.auth.onAuthStateChange((_, newSession) => {
		if (newSession?.expires_at !== session?.expires_at) {
			invalidate('supabase:auth');
		}
	});

	return () => data.subscription.unsubscribe();
});
""")

    ctx.html.add_from_raw_html("{@render children()}")


def helper_scripts(ctx: FileContext) -> None:
    scripts = dict(HELPER_SCRIPTS)
    if ctx.typescript:
        scripts["db:types"] = DB_TYPES_SCRIPT
    set_defaults(ctx.data, "scripts", scripts)


def supabase_config(ctx: FileContext) -> str:
    """
    Point the CLI's generated config at the SvelteKit dev server and
    register the custom email templates.

    Raises:
        EntrySkipped: on a dry run, where ``supabase init`` has not been run
        StructuralAnchorNotFound: if ``supabase init`` has not produced the file
    """
    if not ctx.exists:
        if ctx.dry_run:
            raise EntrySkipped(ctx.path, "created by `supabase init`, which a dry run does not execute")
        raise StructuralAnchorNotFound(
            ctx.path,
            "supabase init",
            "not found; run `supabase init` and add the feature again",
        )

    content = replace_literals(ctx.content, LOCAL_ORIGIN_REPLACEMENTS)
    if is_basic(ctx.options):
        content = replace_in_table(content, CONFIRMATIONS_TABLE, *CONFIRMATIONS_REPLACEMENT)
        content = append_content(content, "\n" + confirmation_template_section())
    if is_magic_link(ctx.options):
        content = append_content(content, "\n" + magic_link_template_section())
    return content


# ----------------------------------------------------------------------
# Generated files
# ----------------------------------------------------------------------

SIGN_UP_WITH_REDIRECT = """{
			email,
			password,
			options: {
				emailRedirectTo: `${PUBLIC_BASE_URL}/private`,
			},
		})"""

SIGN_UP_INBOX_REDIRECT = f"""// Redirect to local Inbucket for demo purposes
			redirect(303, `{LOCAL_INBOX_URL}/m/${{email}}`)"""

SIGN_UP_MESSAGE = "return { message: 'Sign up succeeded! Please check your email inbox.' }"


def auth_actions(ctx: FileContext) -> str:
    options = ctx.options
    ts, demo, basic, magic = create_printer(
        ctx.typescript, options.demo, is_basic(options), is_magic_link(options)
    )
    as_string = ts(" as string")
    sign_up_args = demo(SIGN_UP_WITH_REDIRECT, "{ email, password })")
    sign_up_done = demo(SIGN_UP_INBOX_REDIRECT, SIGN_UP_MESSAGE)
    after_login = demo("/private", "/")

    basic_actions = basic(f"""
	signup: async ({{ request, locals: {{ supabase }} }}) => {{
		const formData = await request.formData()
		const email = formData.get('email'){as_string}
		const password = formData.get('password'){as_string}

		const {{ error }} = await supabase.auth.signUp({sign_up_args}
		if (error) {{
			console.error(error)
			return {{ message: 'Something went wrong, please try again.' }}
		}} else {{
			{sign_up_done}
		}}
	}},
	login: async ({{ request, locals: {{ supabase }} }}) => {{
		const formData = await request.formData()
		const email = formData.get('email'){as_string}
		const password = formData.get('password'){as_string}

		const {{ error }} = await supabase.auth.signInWithPassword({{ email, password }})
		if (error) {{
			console.error(error)
			return {{ message: 'Something went wrong, please try again.' }}
		}}

		redirect(303, '{after_login}')
	}},""")

    magic_actions = magic(f"""
	magic: async ({{ request, locals: {{ supabase }} }}) => {{
		const formData = await request.formData()
		const email = formData.get('email'){as_string}

		const {{ error }} = await supabase.auth.signInWithOtp({{ email }})
		if (error) {{
			console.error(error)
			return {{ message: 'Something went wrong, please try again.' }}
		}}

		return {{ message: 'Check your email inbox.' }}
	}},""")

    redirect_import = basic("import { redirect } from '@sveltejs/kit'")
    base_url_import = demo("import { PUBLIC_BASE_URL } from '$env/static/public'")
    actions_import = ts("import type { Actions } from './$types'")
    return dedent(f"""
{redirect_import}
{base_url_import}
{actions_import}

export const actions{ts(': Actions')} = {{{basic_actions}{magic_actions}
}}
""")


def auth_page(ctx: FileContext) -> str:
    options = ctx.options
    ts, basic, magic = create_printer(ctx.typescript, is_basic(options), is_magic_link(options))

    password_fields = basic("""
	<label>
		Password
		<input name="password" type="password" />
	</label>
	<a href="/auth/forgot-password">Forgot password?</a>

	<button formaction="?/login">Login</button>
	<button formaction="?/signup">Sign up</button>""")
    magic_button = magic('\t<button formaction="?/magic">Send Magic Link</button>')
    action_data_import = ts("\timport type { ActionData } from './$types'")

    return dedent(f"""
<script{ts(' lang="ts"')}>
	import {{ enhance }} from '$app/forms'
{action_data_import}

	export let form{ts(': ActionData')}
</script>

<form method="POST" use:enhance>
	<label>
		Email
		<input name="email" type="email" />
	</label>
{password_fields}
{magic_button}
</form>

{{#if form?.message}}
	<p>{{form.message}}</p>
{{/if}}
""")


def _form_page(label: str, input_name: str, input_type: str, button: str):
    def content(ctx: FileContext) -> str:
        [ts] = create_printer(ctx.typescript)
        action_data_import = ts("\timport type { ActionData } from './$types'")
        return dedent(f"""
<script{ts(' lang="ts"')}>
	import {{ enhance }} from '$app/forms'
{action_data_import}

	export let form{ts(': ActionData')}
</script>

<form method="POST" use:enhance>
	<label>
		{label}
		<input name="{input_name}" type="{input_type}" />
	</label>
	<button>{button}</button>
</form>

{{#if form?.message}}
	<p>{{form.message}}</p>
{{/if}}
""")

    return content


def forgot_password_actions(ctx: FileContext) -> str:
    [ts] = create_printer(ctx.typescript)
    actions_import = ts("import type { Actions } from './$types'")
    return dedent(f"""
import {{ PUBLIC_BASE_URL }} from '$env/static/public'
{actions_import}

export const actions{ts(': Actions')} = {{
	default: async ({{ request, locals: {{ supabase }} }}) => {{
		const formData = await request.formData()
		const email = formData.get('email'){ts(' as string')}

		const {{ error }} = await supabase.auth.resetPasswordForEmail(
			email,
			{{ redirectTo: `${{PUBLIC_BASE_URL}}/auth/reset-password` }}
		)
		if (error) {{
			console.error(error)
			return {{ message: 'Something went wrong, please try again.' }}
		}} else {{
			return {{ message: 'Please check your email inbox.' }}
		}}
	}},
}}
""")


def reset_password_actions(ctx: FileContext) -> str:
    [ts] = create_printer(ctx.typescript)
    actions_import = ts("import type { Actions } from './$types'")
    return dedent(f"""
{actions_import}

export const actions{ts(': Actions')} = {{
	default: async ({{ request, locals: {{ supabase }} }}) => {{
		const formData = await request.formData()
		const password = formData.get('password'){ts(' as string')}

		const {{ error }} = await supabase.auth.updateUser({{ password }})
		if (error) {{
			console.error(error)
			return {{ message: 'Something went wrong, please try again.' }}
		}} else {{
			return {{ message: 'Password has been reset' }}
		}}
	}},
}}
""")


def confirm_endpoint(ctx: FileContext) -> str:
    [ts] = create_printer(ctx.typescript)
    otp_import = ts("import type { EmailOtpType } from '@supabase/supabase-js'")
    handler_import = ts("import type { RequestHandler } from './$types'")
    return dedent(f"""
import {{ error, redirect }} from '@sveltejs/kit'
import {{ PUBLIC_BASE_URL }} from '$env/static/public'
{otp_import}
{handler_import}

export const GET{ts(': RequestHandler')} = async ({{ url, locals: {{ supabase }} }}) => {{
	const token_hash = url.searchParams.get('token_hash')
	const type = url.searchParams.get('type'){ts(' as EmailOtpType | null')}
	const next = url.searchParams.get('next') ?? `${{PUBLIC_BASE_URL}}/`

	const redirectTo = new URL(next)

	if (!token_hash || !type) {{
		error(400, 'Bad Request')
	}}

	const {{ error: authError }} = await supabase.auth.verifyOtp({{ type, token_hash }})
	if (authError) {{
		error(401, 'Unauthorized')
	}}

	redirect(303, redirectTo)
}}
""")


def admin_client(ctx: FileContext) -> str:
    [db] = create_printer(has_database_types(ctx.options, ctx.typescript))
    database_import = db("import type { Database } from '$lib/supabase-types'")
    return dedent(f"""
import {{ PUBLIC_SUPABASE_URL }} from '$env/static/public'
import {{ SUPABASE_SERVICE_ROLE_KEY }} from '$env/static/private'
{database_import}
import {{ createClient }} from '@supabase/supabase-js'

export const supabaseAdmin = createClient{db('<Database>')}(
	PUBLIC_SUPABASE_URL,
	SUPABASE_SERVICE_ROLE_KEY,
	{{
		auth: {{
			autoRefreshToken: false,
			persistSession: false,
		}},
	}},
)
""")


def _email(heading: str, intro: str, link_text: str, token_type: str):
    return lambda ctx: email_template(heading, intro, link_text, token_type)


FILES = (
    FileEntry(name=lambda env: ".env", content=generate_env_file_content, existing="lines"),
    FileEntry(name=lambda env: ".env.example", content=generate_env_file_content, existing="lines"),
    # Common to all auth methods
    FileEntry(
        name=lambda env: f"src/hooks.server.{env.script_extension}",
        content=hooks_server,
        kind="script",
        condition=_when_auth,
    ),
    FileEntry(
        name=lambda env: "src/app.d.ts",
        content=app_types,
        kind="script",
        condition=lambda options, env: env.typescript and has_auth(options),
    ),
    FileEntry(name=_route_script("+layout"), content=layout_load, kind="script", condition=_when_auth),
    FileEntry(name=_route_script("+layout.server"), content=layout_server_load, kind="script", condition=_when_auth),
    FileEntry(name=_routes("+layout.svelte"), content=layout_component, kind="markup", condition=_when_auth),
    FileEntry(name=_route_script("auth/+page.server"), content=auth_actions, condition=_when_auth),
    FileEntry(name=_routes("auth/+page.svelte"), content=auth_page, condition=_when_auth),
    # Password auth only
    FileEntry(
        name=_routes("auth/forgot-password/+page.svelte"),
        content=_form_page("Email", "email", "email", "Request password reset"),
        condition=_when_basic,
    ),
    FileEntry(
        name=_route_script("auth/forgot-password/+page.server"),
        content=forgot_password_actions,
        condition=_when_basic,
    ),
    FileEntry(
        name=_route_script("auth/reset-password/+page.server"),
        content=reset_password_actions,
        condition=_when_basic,
    ),
    FileEntry(
        name=_routes("auth/reset-password/+page.svelte"),
        content=_form_page("New Password", "password", "password", "Reset password"),
        condition=_when_basic,
    ),
    FileEntry(name=_route_script("auth/confirm/+server"), content=confirm_endpoint, condition=_when_auth),
    FileEntry(
        name=lambda env: f"{env.lib_directory}/server/supabase-admin.{env.script_extension}",
        content=admin_client,
        condition=lambda options, env: options.admin,
    ),
    FileEntry(
        name=lambda env: "package.json",
        content=helper_scripts,
        kind="json",
        condition=lambda options, env: options.helpers,
    ),
    # Local development with the Supabase CLI
    FileEntry(
        name=lambda env: "supabase/config.toml",
        content=supabase_config,
        existing="transform",
        condition=lambda options, env: options.cli,
    ),
    FileEntry(
        name=lambda env: "supabase/templates/confirmation.html",
        content=_email("Confirm your signup", "Follow this link to confirm your user:", "Confirm your email", "email"),
        condition=lambda options, env: options.cli and is_basic(options),
    ),
    FileEntry(
        name=lambda env: "supabase/templates/magic_link.html",
        content=_email("Follow this link to login:", "", "Log in", "email"),
        condition=lambda options, env: options.cli and is_magic_link(options),
    ),
    FileEntry(
        name=lambda env: "supabase/templates/recovery.html",
        content=_email("Reset Password", "Follow this link to reset your password:", "Reset Password", "recovery"),
        condition=lambda options, env: options.cli and is_basic(options),
    ),
)
