import os
import sys

from loguru import logger

_configured = False

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level>"
)


def env_flag(name: str) -> bool:
    """True when the environment variable holds 1 / true / yes."""
    return os.getenv(name, "").lower() in ("1", "true", "yes")


def setup_logging(level="INFO", suppress_console=None, enable_file_logging=None, force=False):
    """
    Configure the shared loguru logger.

    Merge decisions are logged at DEBUG, file operations at INFO and
    recorded per-file failures at WARNING. Console output goes to stderr so
    that stdout stays reserved for plans and JSON.

    Args:
        level: Console level (default: INFO)
        suppress_console: Drop the console sink. None reads GRAFTER_MACHINE_MODE.
        enable_file_logging: Also log to .grafter/logs/grafter.log. None reads GRAFTER_FILE_LOGGING.
        force: Replace an earlier configuration (the CLI does this for --verbose).
    """
    global _configured

    if _configured and not force:
        return
    _configured = True

    logger.remove()

    if suppress_console is None:
        suppress_console = env_flag("GRAFTER_MACHINE_MODE")
    if not suppress_console:
        logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    if enable_file_logging is None:
        enable_file_logging = env_flag("GRAFTER_FILE_LOGGING")
    if enable_file_logging:
        from grafter.paths import get_paths
        paths = get_paths()
        paths.ensure_dirs()

        # One file per project; plans are small, a week of history is plenty
        logger.add(
            paths.logs_dir / "grafter.log",
            level="DEBUG",
            rotation="5 MB",
            retention="7 days",
            catch=True,
        )


# Library users get warnings only until they configure logging themselves
setup_logging(level=os.getenv("GRAFTER_LOG_LEVEL", "WARNING"))
