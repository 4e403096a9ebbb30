"""
Plan facade: the caller-facing entry point.

Orchestrates one run:
1. Resolve options (ValidationError aborts before anything is written)
2. Evaluate the manifest
3. Dependencies phase (record; declare in package.json when present)
4. Commands phase (blocking, sequential; failures recorded)
5. Files phase (sequential; failures isolated per file)
6. Next steps (pure function of options + environment)
"""

from typing import Any, Callable, List, Mapping, Optional

from grafter.exceptions import CommandExecutionError, FileOperationError, ManifestError
from grafter.logging_config import logger
from grafter.manifest import ActiveManifest, DependencyEntry, FileContext, FileEntry, Manifest, evaluate
from grafter.merge import MergeEngine, OverlayFileTree, FileTree, set_default
from grafter.options import OptionSchema, ResolvedOptions, resolve
from grafter.runner import CommandRunner, exec_command
from grafter.schemas import CommandRecord, DependencyRecord, Environment, MutationPlan

from .builder import PlanBuilder
from .feature import Feature

PACKAGE_MANIFEST = "package.json"


def plan(
    manifest: Manifest,
    raw_selections: Mapping[str, Any],
    schema: OptionSchema,
    environment: Environment,
    tree: FileTree,
    runner: Optional[CommandRunner] = None,
    dry_run: bool = False,
    feature: str = "feature",
    next_steps: Optional[Callable[[ResolvedOptions, Environment], List[str]]] = None,
    declare_dependencies: bool = True,
) -> MutationPlan:
    """
    Resolve options, then apply the manifest's dependencies, commands and files.

    Args:
        manifest: Feature manifest
        raw_selections: User choices (missing keys take schema defaults)
        schema: Option schema to validate against
        environment: Facts about the target project
        tree: File tree handle to read from and write to
        runner: Command runner; when None commands are recorded but not run
        dry_run: Write into an in-memory overlay and run no commands
        feature: Feature id recorded in the plan
        next_steps: Producer of follow-up instructions
        declare_dependencies: Add packages to an existing package.json

    Returns:
        MutationPlan (with per-entry errors, if any)

    Raises:
        ValidationError: invalid selections; nothing has been written
        ManifestError: a manifest condition raised
    """
    options = resolve(raw_selections, schema)
    active = evaluate(manifest, options, environment)

    if dry_run:
        tree = OverlayFileTree(tree)
        runner = None

    logger.info(f"Applying '{feature}' with options {options.to_dict()}")
    builder = PlanBuilder(feature, options, dry_run=dry_run)
    engine = MergeEngine(tree, dry_run=dry_run)

    _apply_dependencies(active, options, environment, engine, builder, declare_dependencies)
    _run_commands(active, environment, runner, builder)
    _apply_files(active, options, environment, engine, builder)

    if next_steps is not None:
        builder.set_next_steps(next_steps(options, environment))

    result = builder.build()
    if result.errors:
        logger.warning(f"'{feature}' finished with {len(result.errors)} error(s)")
    else:
        logger.info(f"'{feature}' applied: {len(result.changed_files)} file(s) changed")
    return result


def apply_feature(
    feature: Feature,
    raw_selections: Mapping[str, Any],
    environment: Environment,
    tree: FileTree,
    runner: Optional[CommandRunner] = None,
    dry_run: bool = False,
) -> MutationPlan:
    """Run ``plan`` with everything a Feature bundles."""
    return plan(
        feature.manifest,
        raw_selections,
        feature.schema,
        environment,
        tree,
        runner=runner,
        dry_run=dry_run,
        feature=feature.id,
        next_steps=feature.next_steps,
        declare_dependencies=feature.declare_dependencies,
    )


def _apply_dependencies(
    active: ActiveManifest,
    options: ResolvedOptions,
    environment: Environment,
    engine: MergeEngine,
    builder: PlanBuilder,
    declare: bool,
) -> None:
    if not active.dependencies:
        return

    declared = {}
    if declare and engine.tree.exists(PACKAGE_MANIFEST):
        entry = _package_manifest_entry(active.dependencies, declared)
        try:
            builder.add_file(engine.apply(entry, options, environment))
        except (FileOperationError, ManifestError) as e:
            logger.warning(f"Could not declare dependencies: {e}")
            builder.add_error(e, PACKAGE_MANIFEST)

    for dependency in active.dependencies:
        builder.add_dependency(DependencyRecord(
            name=dependency.name,
            version=dependency.version,
            dev=dependency.dev,
            added=declared.get(dependency.name, True),
        ))


def _package_manifest_entry(dependencies: List[DependencyEntry], declared: dict) -> FileEntry:
    """A json entry inserting each dependency unless either section has it."""

    def content(ctx: FileContext) -> None:
        for dependency in dependencies:
            sections = ("dependencies", "devDependencies")
            if any(dependency.name in (ctx.data.get(s) or {}) for s in sections):
                declared[dependency.name] = False
                continue
            section = "devDependencies" if dependency.dev else "dependencies"
            declared[dependency.name] = set_default(ctx.data, section, dependency.name, dependency.version)

    return FileEntry(name=lambda env: PACKAGE_MANIFEST, content=content, kind="json")


def _run_commands(
    active: ActiveManifest,
    environment: Environment,
    runner: Optional[CommandRunner],
    builder: PlanBuilder,
) -> None:
    prefix = exec_command(environment.package_manager)
    for command in active.commands:
        argv = prefix + list(command.args)
        if runner is None:
            logger.debug(f"Not running '{command.description}': {' '.join(argv)}")
            builder.add_command(CommandRecord(description=command.description, argv=argv))
            continue

        result = runner.run(argv, capture=command.capture)
        builder.add_command(CommandRecord(
            description=command.description,
            argv=argv,
            exit_code=result.exit_code,
            stdout=result.stdout,
            stderr=result.stderr,
        ))
        if result.exit_code != 0:
            error = CommandExecutionError(argv, result.exit_code, result.stderr)
            logger.warning(f"{command.description} failed: {error}")
            builder.add_error(error)


def _apply_files(
    active: ActiveManifest,
    options: ResolvedOptions,
    environment: Environment,
    engine: MergeEngine,
    builder: PlanBuilder,
) -> None:
    for entry in active.files:
        try:
            builder.add_file(engine.apply(entry, options, environment))
        except (FileOperationError, ManifestError) as e:
            path = engine.resolve_path(entry, environment)
            logger.warning(f"Skipping {path}: {e}")
            builder.add_error(e, path)
