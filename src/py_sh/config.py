"""Shell configuration.

The shell has only a handful of knobs, all with the defaults of the
classic teaching shell it is modelled on:

- ``max_args``: size of a command's argument table.  The table keeps
  one slot free for the terminator, so a command carries at most
  ``max_args - 1`` words.
- ``max_jobs``: capacity of the background job registry (the host's
  process-table size, ``NPROC``).
- ``prompt``: text written to stderr before each interactive line.
- ``trace``: if set, log entries at or above this level are mirrored
  to stderr.

Values can be overridden through ``PYSH_*`` environment variables,
read once at start-up by ``ShellConfig.from_env``.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from py_sh.logging import LogLevel

DEFAULT_MAX_ARGS = 10
DEFAULT_MAX_JOBS = 64
DEFAULT_PROMPT = "$ "

# The smallest argument table that can still hold one word plus the terminator.
_MIN_MAX_ARGS = 2


class ConfigError(ValueError):
    """Raise when a configuration value is malformed."""


@dataclass(frozen=True)
class ShellConfig:
    """Immutable settings for one shell session."""

    max_args: int = DEFAULT_MAX_ARGS
    max_jobs: int = DEFAULT_MAX_JOBS
    prompt: str = DEFAULT_PROMPT
    trace: LogLevel | None = None

    def __post_init__(self) -> None:
        """Validate limits.

        Raises:
            ConfigError: If a limit is out of range.

        """
        if self.max_args < _MIN_MAX_ARGS:
            msg = f"max_args must be at least {_MIN_MAX_ARGS}, got {self.max_args}"
            raise ConfigError(msg)
        if self.max_jobs < 0:
            msg = f"max_jobs must not be negative, got {self.max_jobs}"
            raise ConfigError(msg)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "ShellConfig":
        """Build a config from ``PYSH_*`` variables.

        Args:
            env: Variables to read (defaults to the process environment).

        Returns:
            A config with every unset variable left at its default.

        Raises:
            ConfigError: If a variable holds an unusable value.

        """
        source = os.environ if env is None else env
        trace_name = source.get("PYSH_TRACE")
        return cls(
            max_args=_int_setting(source, "PYSH_MAX_ARGS", DEFAULT_MAX_ARGS),
            max_jobs=_int_setting(source, "PYSH_MAX_JOBS", DEFAULT_MAX_JOBS),
            prompt=source.get("PYSH_PROMPT", DEFAULT_PROMPT),
            trace=_level_setting(trace_name) if trace_name else None,
        )


def _int_setting(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as e:
        msg = f"{key} must be an integer, got {raw!r}"
        raise ConfigError(msg) from e


def _level_setting(name: str) -> LogLevel:
    try:
        return LogLevel[name.upper()]
    except KeyError as e:
        choices = ", ".join(level.name.lower() for level in LogLevel)
        msg = f"PYSH_TRACE must be one of {choices}, got {name!r}"
        raise ConfigError(msg) from e
