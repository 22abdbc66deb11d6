"""System call gateway: the shell's only door to the host OS.

The shell never calls ``os.fork`` or ``os.dup2`` directly.  Every
process-level primitive goes through ``Host.syscall()``, which looks the
request up in a trap table and routes it to a small handler:

1. ``SyscallNumber``: an enum of every primitive the shell consumes
   (process creation, program replacement, pipes, descriptor plumbing,
   waiting, working-directory change).

2. ``SyscallError``: a user-facing exception for syscall failures.
   Handlers catch ``OSError`` and re-raise it as ``SyscallError`` so
   callers deal with one failure type.

3. ``dispatch_syscall()``: the trap handler.  It receives the syscall
   number and keyword arguments and calls the matching handler.

``Host`` is a class, so a scripted host that replays wait results in a
chosen order can stand in for the real one.
"""

import os
import signal
import sys
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

# Permission bits for files created by output redirection (before umask).
_CREATE_MODE = 0o666


class SyscallNumber(IntEnum):
    """Enumerate every host primitive the shell uses."""

    # Process operations
    SYS_FORK = 1
    SYS_EXEC = 2
    SYS_EXIT = 3
    SYS_WAIT = 4
    SYS_WAIT_NOBLOCK = 5

    # Descriptor operations
    SYS_PIPE = 10
    SYS_OPEN = 11
    SYS_CLOSE = 12
    SYS_DUP = 13
    SYS_DUP2 = 14
    SYS_READ = 15

    # Working directory
    SYS_CHDIR = 20


class SyscallError(Exception):
    """Raise when a system call fails."""


@dataclass(frozen=True)
class ChildExit:
    """A terminated child as reported by a wait.

    Attributes:
        pid: The child's process id.
        status: Exit code, or the negated signal number if the child
            was killed by a signal.

    """

    pid: int
    status: int


class Host:
    """The real operating system behind the shell."""

    def syscall(self, number: SyscallNumber, **kwargs: Any) -> Any:
        """Perform a system call.

        Args:
            number: The primitive to invoke.
            **kwargs: Arguments specific to the primitive.

        Returns:
            The primitive's result.

        Raises:
            SyscallError: If the primitive fails.

        """
        return dispatch_syscall(self, number, **kwargs)


def dispatch_syscall(host: Host, number: SyscallNumber, **kwargs: Any) -> Any:
    """Dispatch a system call to its handler.

    Args:
        host: The host the call is made against.
        number: The syscall number identifying the operation.
        **kwargs: Arguments specific to the syscall.

    Returns:
        The syscall result (type depends on the operation).

    Raises:
        SyscallError: If the syscall fails or the number is unknown.

    """
    handlers: dict[SyscallNumber, Any] = {
        SyscallNumber.SYS_FORK: _sys_fork,
        SyscallNumber.SYS_EXEC: _sys_exec,
        SyscallNumber.SYS_EXIT: _sys_exit,
        SyscallNumber.SYS_WAIT: _sys_wait,
        SyscallNumber.SYS_WAIT_NOBLOCK: _sys_wait_noblock,
        SyscallNumber.SYS_PIPE: _sys_pipe,
        SyscallNumber.SYS_OPEN: _sys_open,
        SyscallNumber.SYS_CLOSE: _sys_close,
        SyscallNumber.SYS_DUP: _sys_dup,
        SyscallNumber.SYS_DUP2: _sys_dup2,
        SyscallNumber.SYS_READ: _sys_read,
        SyscallNumber.SYS_CHDIR: _sys_chdir,
    }
    handler = handlers.get(number)
    if handler is None:
        msg = f"Unknown syscall number: {number}"
        raise SyscallError(msg)
    return handler(host, **kwargs)


# -- Process syscall handlers -------------------------------------------------


def _sys_fork(_host: Host, **_kwargs: Any) -> int:
    """Duplicate the calling process; return 0 in the child, the pid in the parent."""
    # Buffered text would otherwise be written once by each process.
    sys.stdout.flush()
    sys.stderr.flush()
    try:
        return os.fork()
    except OSError as e:
        raise SyscallError(str(e)) from e


def _sys_exec(_host: Host, **kwargs: Any) -> None:
    """Replace the process image, searching ``PATH`` for the program."""
    argv: list[str] = kwargs["argv"]
    # Python ignores SIGPIPE; programs expect the default action.
    signal.signal(signal.SIGPIPE, signal.SIG_DFL)
    try:
        os.execvp(argv[0], argv)
    except OSError as e:
        raise SyscallError(str(e)) from e


def _sys_exit(_host: Host, **kwargs: Any) -> None:
    """Terminate immediately, skipping the parent's cleanup handlers."""
    status: int = kwargs["status"]
    sys.stdout.flush()
    sys.stderr.flush()
    os._exit(status)


def _decode(pid: int, wait_status: int) -> ChildExit:
    return ChildExit(pid=pid, status=os.waitstatus_to_exitcode(wait_status))


def _sys_wait(_host: Host, **_kwargs: Any) -> ChildExit | None:
    """Block until any child terminates; None when no children remain."""
    try:
        pid, wait_status = os.waitpid(-1, 0)
    except ChildProcessError:
        return None
    return _decode(pid, wait_status)


def _sys_wait_noblock(_host: Host, **_kwargs: Any) -> ChildExit | None:
    """Collect an already-terminated child, if any, without blocking."""
    try:
        pid, wait_status = os.waitpid(-1, os.WNOHANG)
    except ChildProcessError:
        return None
    if pid == 0:
        return None
    return _decode(pid, wait_status)


# -- Descriptor syscall handlers ----------------------------------------------


def _sys_pipe(_host: Host, **_kwargs: Any) -> tuple[int, int]:
    """Create a pipe; return ``(read_fd, write_fd)``."""
    try:
        return os.pipe()
    except OSError as e:
        raise SyscallError(str(e)) from e


def _sys_open(_host: Host, **kwargs: Any) -> int:
    """Open a file with raw ``os.O_*`` flags."""
    path: str = kwargs["path"]
    flags: int = kwargs["flags"]
    try:
        return os.open(path, flags, _CREATE_MODE)
    except OSError as e:
        raise SyscallError(str(e)) from e


def _sys_close(_host: Host, **kwargs: Any) -> None:
    """Close a descriptor."""
    fd: int = kwargs["fd"]
    try:
        os.close(fd)
    except OSError as e:
        raise SyscallError(str(e)) from e


def _sys_dup(_host: Host, **kwargs: Any) -> int:
    """Duplicate a descriptor onto the lowest free slot."""
    fd: int = kwargs["fd"]
    try:
        return os.dup(fd)
    except OSError as e:
        raise SyscallError(str(e)) from e


def _sys_dup2(_host: Host, **kwargs: Any) -> int:
    """Duplicate *fd* onto *slot*, closing whatever *slot* held."""
    fd: int = kwargs["fd"]
    slot: int = kwargs["slot"]
    try:
        return os.dup2(fd, slot)
    except OSError as e:
        raise SyscallError(str(e)) from e



def _sys_read(_host: Host, **kwargs: Any) -> bytes:
    """Read at most *size* bytes from *fd*, straight from the descriptor."""
    fd: int = kwargs["fd"]
    size: int = kwargs["size"]
    try:
        return os.read(fd, size)
    except OSError as e:
        raise SyscallError(str(e)) from e

# -- Working-directory syscall handlers ---------------------------------------


def _sys_chdir(_host: Host, **kwargs: Any) -> None:
    """Change the working directory of the calling process."""
    path: str = kwargs["path"]
    try:
        os.chdir(path)
    except OSError as e:
        raise SyscallError(str(e)) from e
