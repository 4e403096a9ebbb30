"""
Settings shared by the grafter CLI commands.
"""

from typing import Optional

from grafter.logging_config import env_flag


class CLIConfig:
    """Process-wide CLI switches."""

    # Seconds an external command may run before it is reported as failed
    DEFAULT_COMMAND_TIMEOUT = 600

    # None until --machine is given; the environment decides until then
    _machine_mode: Optional[bool] = None

    @classmethod
    def set_machine_mode(cls, enabled: bool) -> None:
        """Plain lines for plans, JSON for errors."""
        cls._machine_mode = enabled

    @classmethod
    def is_machine_mode(cls) -> bool:
        """
        Human output is the default; GRAFTER_MACHINE_MODE=1 or --machine opts in.
        """
        if cls._machine_mode is None:
            return env_flag("GRAFTER_MACHINE_MODE")
        return cls._machine_mode

    @classmethod
    def reset(cls) -> None:
        cls._machine_mode = None
