"""Job registry: which background processes the shell still owes a notice.

When you run ``sleep 60 &`` the shell starts the process, prints its
pid, and returns to the prompt.  Some time later the process exits and
the shell has to say so.  The registry is the list of pids that are
still "owed" a completion notice.

Key ideas:
    - **Entries are bare pids**: no job numbers, names, or states.  A
      pid goes in when a background process is spawned and comes out
      when its termination is observed.
    - **Fixed capacity**: the table has one slot per process the host
      can report (``NPROC``).  Adding to a full table silently drops the
      pid: that job will never be reported as finished.
    - **Slot order**: ``jobs`` lists pids in the order of the slots
      they occupy, so a freed slot is reused by the next job.

Design choices:
    - ``JobRegistry`` is owned by one shell session and passed to the
      components that need it; there is no module-level table.
    - No locking: only the single-threaded engine and reaper touch it.
"""

from py_sh.config import DEFAULT_MAX_JOBS
from py_sh.logging import Logger

_FREE = 0


class JobRegistry:
    """Bounded table of outstanding background pids."""

    def __init__(self, capacity: int = DEFAULT_MAX_JOBS, *, logger: Logger | None = None) -> None:
        """Create an empty registry.

        Args:
            capacity: Number of slots in the table.
            logger: Where registry events are recorded.

        """
        self._slots: list[int] = [_FREE] * capacity
        self._log = logger if logger is not None else Logger()

    @property
    def capacity(self) -> int:
        """Return the number of slots."""
        return len(self._slots)

    def add(self, pid: int) -> bool:
        """Register a background pid in the first free slot.

        Returns:
            True if the pid was stored, False if the table was full.

        """
        for i, slot in enumerate(self._slots):
            if slot == _FREE:
                self._slots[i] = pid
                self._log.debug(f"registered pid {pid} in slot {i}", source="jobs")
                return True
        self._log.warning(f"registry full, pid {pid} not tracked", source="jobs")
        return False

    def remove(self, pid: int) -> bool:
        """Forget a pid.

        Returns:
            True if the pid was registered.

        """
        for i, slot in enumerate(self._slots):
            if slot == pid:
                self._slots[i] = _FREE
                self._log.debug(f"released pid {pid} from slot {i}", source="jobs")
                return True
        return False

    def __contains__(self, pid: object) -> bool:
        """Return True if *pid* is an outstanding background job."""
        return pid != _FREE and pid in self._slots

    def __len__(self) -> int:
        """Return the number of outstanding jobs."""
        return sum(1 for slot in self._slots if slot != _FREE)

    def list_jobs(self) -> list[int]:
        """Return all outstanding pids in slot order."""
        return [slot for slot in self._slots if slot != _FREE]

    def format(self) -> str:
        """Render the registry as the ``jobs`` builtin prints it."""
        return "".join(f"{pid}\n" for pid in self.list_jobs())
