"""Execution engine: walk a command tree and run it as OS processes.

Each node kind has one fixed policy:

- **ExecCommand**: ``cd`` and ``jobs`` run inside the shell.  Anything
  else is forked and exec'd.  A background command is registered and
  its pid printed as ``[pid]``; a foreground command is waited for.
- **RedirCommand**: point a descriptor slot at a file, run the wrapped
  command (its children inherit the slot), then put the slot back.  A
  run of redirections around one command is applied in the order they
  were written, so the last one written for a slot wins.
- **PipeCommand**: one pipe, one process per side.  The shell closes
  its copies of both ends as soon as both sides exist, otherwise the
  reader would never see end-of-file.
- **ListCommand**: left, then right, no short-circuit.
- **BackCommand**: mark the wrapped command as background, then run it.

Inside a pipe-side process the engine does not fork again for a simple
command: the side process itself becomes the program, so the pid the
shell registered or waits for is the program's own pid.

Failures that only affect one command (``cd`` to a missing directory,
an unopenable redirection target, a program that cannot be exec'd) print
a diagnostic and the walk carries on.  Failures to create a process or
a pipe raise ``EngineError``.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import NoReturn, TextIO, TypeAlias, cast

from py_sh.errors import EngineError, ShellPanic
from py_sh.jobs import JobRegistry
from py_sh.logging import Logger
from py_sh.parsing.tree import (
    BackCommand,
    Command,
    ExecCommand,
    ListCommand,
    PipeCommand,
    RedirCommand,
)
from py_sh.reaper import Reaper
from py_sh.syscalls import Host, SyscallError, SyscallNumber

# Type alias for a builtin: takes argv, runs inside the shell process.
_Builtin: TypeAlias = Callable[[list[str]], None]

_STDIN = 0
_STDOUT = 1

# Exit status of a child whose command could not be run.
_FAILURE = 1


def mark_background(cmd: Command) -> None:
    """Flag *cmd* to run in the background.

    Only one level deep: a simple command is flagged directly, and a
    pipe has whichever of its two sides are simple commands flagged.
    Anything else (a redirection, a group, a nested pipe) is left as is.
    """
    match cmd:
        case ExecCommand():
            cmd.back = True
        case PipeCommand():
            for side in (cmd.left, cmd.right):
                if isinstance(side, ExecCommand):
                    side.back = True


def pipe_in_background(cmd: PipeCommand) -> bool:
    """Decide whether a whole pipe runs in the background.

    The left side decides if it is a simple command; otherwise the
    right side does; otherwise the pipe runs in the foreground.
    """
    if isinstance(cmd.left, ExecCommand):
        return cmd.left.back
    if isinstance(cmd.right, ExecCommand):
        return cmd.right.back
    return False


def _unwrap(cmd: RedirCommand) -> tuple[Command, list[RedirCommand]]:
    """Split a run of nested redirections from the command they wrap.

    Returns:
        The innermost non-redirection command, and the redirections in
        the order they were written (innermost first), so that the last
        one written for a slot is applied last and wins.

    """
    chain: list[RedirCommand] = []
    node: Command = cmd
    while isinstance(node, RedirCommand):
        chain.append(node)
        node = node.cmd
    chain.reverse()
    return node, chain


@dataclass(frozen=True)
class _SavedSlot:
    """A duplicate of a descriptor slot's previous target (None if it was closed)."""

    fd: int | None


class Engine:
    """Run command trees for one shell session."""

    def __init__(
        self,
        *,
        host: Host,
        jobs: JobRegistry,
        reaper: Reaper,
        out: TextIO,
        err: TextIO,
        logger: Logger | None = None,
    ) -> None:
        """Create an engine.

        Args:
            host: Gateway to the OS primitives.
            jobs: Registry that receives background pids.
            reaper: Used for every foreground wait.
            out: Stream for ``[pid]`` notices and builtin output.
            err: Stream for diagnostics.
            logger: Where execution events are recorded.

        """
        self._host = host
        self._jobs = jobs
        self._reaper = reaper
        self._out = out
        self._err = err
        self._log = logger if logger is not None else Logger()

        self._builtins: dict[str, _Builtin] = {
            "cd": self._builtin_cd,
            "jobs": self._builtin_jobs,
        }

    def run(self, cmd: Command) -> None:
        """Execute *cmd* in the shell process.

        Returns once every foreground process in the tree has exited.

        Raises:
            EngineError: If a process or pipe cannot be created.

        """
        match cmd:
            case ExecCommand():
                self._run_exec(cmd)
            case RedirCommand():
                self._run_redir(cmd)
            case PipeCommand():
                self._run_pipe(cmd)
            case ListCommand():
                self.run(cmd.left)
                self.run(cmd.right)
            case BackCommand():
                mark_background(cmd.cmd)
                self.run(cmd.cmd)
            case _:
                msg = "runcmd"
                raise EngineError(msg)

    # -- Node policies --------------------------------------------------------

    def _run_exec(self, cmd: ExecCommand) -> None:
        if not cmd.argv:
            return
        builtin = self._builtins.get(cmd.argv[0])
        if builtin is not None:
            builtin(cmd.argv)
            return

        pid = self._spawn(lambda: self._exec(cmd))
        if cmd.back:
            self._log.info(f"spawned pid {pid} in background: {cmd}", source="engine")
            self._jobs.add(pid)
            self._notify(pid)
        else:
            self._log.info(f"spawned pid {pid}: {cmd}", source="engine")
            self._reaper.wait_for_foreground(pid)

    def _run_redir(self, cmd: RedirCommand) -> None:
        inner, chain = _unwrap(cmd)
        applied: list[tuple[int, _SavedSlot]] = []
        try:
            for redir in chain:
                saved = self._redirect(redir)
                if saved is None:
                    return
                applied.append((redir.fd, saved))
            self.run(inner)
        finally:
            for fd, saved in reversed(applied):
                self._restore(fd, saved)

    def _run_pipe(self, cmd: PipeCommand) -> None:
        try:
            read_fd, write_fd = self._host.syscall(SyscallNumber.SYS_PIPE)
        except SyscallError as e:
            msg = "pipe"
            raise EngineError(msg) from e

        left = self._spawn(lambda: self._pipe_side(cmd.left, (read_fd, write_fd), slot=_STDOUT))
        right = self._spawn(lambda: self._pipe_side(cmd.right, (read_fd, write_fd), slot=_STDIN))
        self._host.syscall(SyscallNumber.SYS_CLOSE, fd=read_fd)
        self._host.syscall(SyscallNumber.SYS_CLOSE, fd=write_fd)

        if pipe_in_background(cmd):
            self._log.info(f"spawned pipe {left} | {right} in background: {cmd}", source="engine")
            self._jobs.add(left)
            self._jobs.add(right)
            self._notify(left)
        else:
            self._log.info(f"spawned pipe {left} | {right}: {cmd}", source="engine")
            self._reaper.wait_for_foreground(left)
            self._reaper.wait_for_foreground(right)

    # -- Builtins -------------------------------------------------------------

    def _builtin_cd(self, argv: list[str]) -> None:
        """Change the shell's working directory."""
        min_args = 2
        if len(argv) < min_args:
            self._diagnose("cannot cd ")
            return
        path = argv[1]
        try:
            self._host.syscall(SyscallNumber.SYS_CHDIR, path=path)
        except SyscallError as e:
            self._log.warning(f"cd {path!r} failed: {e}", source="engine")
            self._diagnose(f"cannot cd {path}")

    def _builtin_jobs(self, _argv: list[str]) -> None:
        """Print every outstanding background pid, one per line."""
        self._out.write(self._jobs.format())
        self._out.flush()

    # -- Process plumbing -----------------------------------------------------

    def _spawn(self, body: Callable[[], int]) -> int:
        """Fork; the child runs *body* and exits with its status.

        Returns:
            The child's pid (in the parent; the child never returns).

        Raises:
            EngineError: If the host cannot create a process.

        """
        self._out.flush()
        self._err.flush()
        try:
            pid: int = self._host.syscall(SyscallNumber.SYS_FORK)
        except SyscallError as e:
            msg = "fork"
            raise EngineError(msg) from e
        if pid == 0:
            self._child(body)
        self._reaper.forget(pid)
        return pid

    def _child(self, body: Callable[[], int]) -> NoReturn:
        status = _FAILURE
        try:
            status = body()
        except ShellPanic as e:
            self._err.write(e.report())
        except SyscallError as e:
            self._diagnose(str(e))
        finally:
            self._out.flush()
            self._err.flush()
            exit_child = cast("Callable[..., NoReturn]", self._host.syscall)
            exit_child(SyscallNumber.SYS_EXIT, status=status)

    def _exec(self, cmd: ExecCommand) -> int:
        """Replace the current process with *cmd*'s program.

        Returns:
            A failure status, only if the program could not be started.

        """
        if not cmd.argv:
            return _FAILURE
        try:
            self._host.syscall(SyscallNumber.SYS_EXEC, argv=cmd.argv)
        except SyscallError:
            self._diagnose(f"exec {cmd.argv[0]} failed")
        return _FAILURE

    def _pipe_side(self, cmd: Command, pipe: tuple[int, int], *, slot: int) -> int:
        """Wire one end of *pipe* onto *slot*, then run *cmd* in this process."""
        read_fd, write_fd = pipe
        end = write_fd if slot == _STDOUT else read_fd
        self._host.syscall(SyscallNumber.SYS_DUP2, fd=end, slot=slot)
        self._host.syscall(SyscallNumber.SYS_CLOSE, fd=read_fd)
        self._host.syscall(SyscallNumber.SYS_CLOSE, fd=write_fd)
        return self._run_in_place(cmd)

    def _run_in_place(self, cmd: Command) -> int:
        """Run *cmd* as the current (already forked) process.

        A simple command replaces this process.  Redirections are applied
        here, on top of any pipe wiring, before the program replaces it.
        Anything else goes through the ordinary tree walk.
        """
        match cmd:
            case ExecCommand() if cmd.argv and cmd.argv[0] in self._builtins:
                self._builtins[cmd.argv[0]](cmd.argv)
                return 0
            case ExecCommand():
                return self._exec(cmd)
            case RedirCommand():
                inner, chain = _unwrap(cmd)
                if any(self._redirect(redir) is None for redir in chain):
                    return _FAILURE
                return self._run_in_place(inner)
            case _:
                self.run(cmd)
                return 0

    def _redirect(self, cmd: RedirCommand) -> _SavedSlot | None:
        """Point ``cmd.fd`` at ``cmd.path``.

        Returns:
            What the slot held before, or None if the file could not be
            opened (the slot is then left untouched).

        """
        try:
            fd: int = self._host.syscall(
                SyscallNumber.SYS_OPEN, path=cmd.path, flags=cmd.mode.flags
            )
        except SyscallError as e:
            self._log.warning(f"open {cmd.path!r} failed: {e}", source="engine")
            self._diagnose(f"open {cmd.path} failed")
            return None

        self._out.flush()
        self._err.flush()
        try:
            previous: int | None = self._host.syscall(SyscallNumber.SYS_DUP, fd=cmd.fd)
        except SyscallError:
            previous = None
        if fd != cmd.fd:
            self._host.syscall(SyscallNumber.SYS_DUP2, fd=fd, slot=cmd.fd)
            self._host.syscall(SyscallNumber.SYS_CLOSE, fd=fd)
        self._log.debug(f"fd {cmd.fd} -> {cmd.path} ({cmd.mode.name.lower()})", source="engine")
        return _SavedSlot(previous)

    def _restore(self, slot: int, saved: _SavedSlot) -> None:
        self._out.flush()
        self._err.flush()
        if saved.fd is None:
            self._host.syscall(SyscallNumber.SYS_CLOSE, fd=slot)
            return
        self._host.syscall(SyscallNumber.SYS_DUP2, fd=saved.fd, slot=slot)
        self._host.syscall(SyscallNumber.SYS_CLOSE, fd=saved.fd)

    # -- Output ---------------------------------------------------------------

    def _notify(self, pid: int) -> None:
        self._out.write(f"[{pid}]\n")
        self._out.flush()

    def _diagnose(self, message: str) -> None:
        self._err.write(f"{message}\n")
        self._err.flush()

