"""
Demo routes showing a page only signed-in users can reach.

The server hook's authGuard redirects anonymous visitors of /private to
/auth, so these files only render for a session.
"""

from grafter.manifest import FileContext, FileEntry
from grafter.printer import create_printer, dedent


def private_layout(ctx: FileContext) -> str:
    [ts] = create_printer(ctx.typescript)
    return dedent(f"""
<script{ts(' lang="ts"')}>
	import {{ goto }} from '$app/navigation'

	let {{ data, children }} = $props()
	let {{ supabase }} = $derived(data)

	const logout = async () => {{
		const {{ error }} = await supabase.auth.signOut()
		if (error) {{
			console.error(error)
			return
		}}
		await goto('/auth')
	}}
</script>

<header>
	<nav>
		<a href="/">Home</a>
	</nav>
	<button onclick={{logout}}>Logout</button>
</header>
<main>
	{{@render children()}}
</main>
""")


def private_page(ctx: FileContext) -> str:
    [ts] = create_printer(ctx.typescript)
    return dedent(f"""
<script{ts(' lang="ts"')}>
	let {{ data }} = $props()
	let {{ user }} = $derived(data)
</script>

<h1>Private page for user: {{user?.email}}</h1>
""")


def _when_demo(options, environment) -> bool:
    return options.demo


DEMO_FILES = (
    FileEntry(
        name=lambda env: f"{env.routes_directory}/private/+layout.svelte",
        content=private_layout,
        condition=_when_demo,
    ),
    FileEntry(
        name=lambda env: f"{env.routes_directory}/private/+page.svelte",
        content=private_page,
        condition=_when_demo,
    ),
)
