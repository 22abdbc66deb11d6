"""The shell: one session's parser, engine, job registry, and reaper.

``Shell.execute(line)`` is the whole per-line contract:

1. **Parse** the line into a command tree (``ParseError`` if it is not
   valid grammar; nothing from that line runs).
2. **Run** the tree: spawn, wire, and wait for processes.
3. **Reap** (interactive sessions only): report any background job that
   has already finished, so its notice appears before the next prompt.

Design choices:
    - **One owner for shared state.**  The shell creates the job
      registry and hands the same instance to the engine and reaper;
      nothing is kept at module level.
    - **Streams are injected.**  Notices go to ``out`` and diagnostics
      to ``err`` (the process's stdout/stderr by default).
"""

import sys
from typing import TextIO

from py_sh.config import ShellConfig
from py_sh.engine import Engine
from py_sh.errors import ParseError
from py_sh.jobs import JobRegistry
from py_sh.logging import Logger, LogLevel
from py_sh.parsing.parser import parse
from py_sh.parsing.tree import Command
from py_sh.reaper import Reaper
from py_sh.syscalls import Host


class Shell:
    """Command interpreter for one session."""

    def __init__(
        self,
        *,
        config: ShellConfig | None = None,
        host: Host | None = None,
        out: TextIO | None = None,
        err: TextIO | None = None,
        interactive: bool = False,
    ) -> None:
        """Create a shell session.

        Args:
            config: Session settings (defaults apply if omitted).
            host: Gateway to the OS primitives.
            out: Stream for job notices and builtin output.
            err: Stream for diagnostics and the trace echo.
            interactive: Reap finished background jobs after each line.

        """
        self._config = config if config is not None else ShellConfig()
        self._host = host if host is not None else Host()
        self._out = out if out is not None else sys.stdout
        self._err = err if err is not None else sys.stderr
        self._interactive = interactive

        trace = self._config.trace
        self._log = Logger(
            echo=self._err if trace is not None else None,
            echo_level=trace if trace is not None else LogLevel.DEBUG,
        )
        self._jobs = JobRegistry(self._config.max_jobs, logger=self._log)
        self._reaper = Reaper(host=self._host, jobs=self._jobs, out=self._out, logger=self._log)
        self._engine = Engine(
            host=self._host,
            jobs=self._jobs,
            reaper=self._reaper,
            out=self._out,
            err=self._err,
            logger=self._log,
        )

    @property
    def config(self) -> ShellConfig:
        """Return the session settings."""
        return self._config

    @property
    def interactive(self) -> bool:
        """Return True if background jobs are reaped after each line."""
        return self._interactive

    @property
    def jobs(self) -> JobRegistry:
        """Return the background job registry."""
        return self._jobs

    @property
    def reaper(self) -> Reaper:
        """Return the session's reaper."""
        return self._reaper

    @property
    def log(self) -> Logger:
        """Return the session's event log."""
        return self._log

    def parse(self, line: str) -> Command:
        """Parse *line* into a resolved command tree.

        Raises:
            ParseError: If the line is not valid grammar.

        """
        try:
            cmd = parse(line, max_args=self._config.max_args)
        except ParseError as e:
            self._log.error(f"rejected {line!r}: {e}", source="parser")
            raise
        self._log.debug(f"parsed {line!r} as {cmd.kind}: {cmd}", source="parser")
        return cmd

    def execute(self, line: str) -> None:
        """Parse and run one line, then reap if interactive.

        Raises:
            ShellPanic: If the line cannot be parsed or a process or
                pipe cannot be created.

        """
        cmd = self.parse(line)
        self._engine.run(cmd)
        if self._interactive:
            reaped = self._reaper.reap_zombies()
            if reaped:
                self._log.debug(f"reaped {len(reaped)} after {line!r}", source="shell")
