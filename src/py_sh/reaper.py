"""Reaper: turn "some child exited" into the right bookkeeping.

The host only offers "wait for *any* child".  The shell needs two
different things built on top of it:

- **Foreground wait**: block until one particular pid has exited.
  Other children may finish first; each of those is a background job
  (reported and unregistered) or a pid the engine will ask about
  shortly (remembered until then, never reported).
- **Opportunistic reap**: between prompts, collect every child that
  has *already* exited, without ever blocking on one still running.
  Unregistered children collected here are dropped.

Background completion notices look like::

    [bg 1234] exited with status 0
"""

from typing import TextIO

from py_sh.jobs import JobRegistry
from py_sh.logging import Logger
from py_sh.syscalls import ChildExit, Host, SyscallNumber


class Reaper:
    """Collect terminated children for one shell session."""

    def __init__(
        self,
        *,
        host: Host,
        jobs: JobRegistry,
        out: TextIO,
        logger: Logger | None = None,
    ) -> None:
        """Create a reaper.

        Args:
            host: Gateway used for the wait primitives.
            jobs: The session's background job registry.
            out: Stream that receives completion notices.
            logger: Where reaping events are recorded.

        """
        self._host = host
        self._jobs = jobs
        self._out = out
        self._log = logger if logger is not None else Logger()
        # Children collected while waiting for someone else.
        self._collected: dict[int, int] = {}

    def wait_for_foreground(self, pid: int) -> int | None:
        """Block until *pid* has terminated.

        Args:
            pid: The foreground child to wait for.

        Returns:
            The child's exit status, or None if the shell ran out of
            children without ever seeing *pid*.

        """
        if pid in self._collected:
            return self._collected.pop(pid)
        while (child := self._host.syscall(SyscallNumber.SYS_WAIT)) is not None:
            if child.pid == pid:
                self._log.debug(f"foreground pid {pid} exited with {child.status}", source="reaper")
                return child.status
            if not self._report(child):
                self._collected[child.pid] = child.status
                self._log.debug(f"unregistered pid {child.pid} collected early", source="reaper")
        self._log.warning(f"no children left while waiting for pid {pid}", source="reaper")
        return None

    def reap_zombies(self) -> list[ChildExit]:
        """Collect every already-terminated child without blocking.

        Children that are not registered jobs are dropped.

        Returns:
            The background jobs that were reported.

        """
        reaped: list[ChildExit] = []
        while (child := self._host.syscall(SyscallNumber.SYS_WAIT_NOBLOCK)) is not None:
            if self._report(child):
                reaped.append(child)
            else:
                self._log.debug(f"dropped unregistered pid {child.pid}", source="reaper")
        return reaped

    def forget(self, pid: int) -> None:
        """Discard any remembered exit for *pid*.

        Called for every freshly forked pid: the host may reuse the pid
        of a child collected long ago.
        """
        if self._collected.pop(pid, None) is not None:
            self._log.debug(f"discarded stale exit of reused pid {pid}", source="reaper")

    def _report(self, child: ChildExit) -> bool:
        """Report *child* if it is a registered background job.

        Returns:
            True if it was registered (and is now reported and removed).

        """
        if not self._jobs.remove(child.pid):
            return False
        self._out.write(f"[bg {child.pid}] exited with status {child.status}\n")
        self._out.flush()
        self._log.info(f"background pid {child.pid} exited with {child.status}", source="reaper")
        return True
