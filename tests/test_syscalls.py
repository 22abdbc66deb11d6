"""Tests for the system call gateway against the real host.

Every primitive the shell uses goes through ``Host.syscall()``.  These
tests exercise the non-destructive ones directly; ``SYS_EXEC`` is only
ever called inside a forked child.
"""

import os
from pathlib import Path

import pytest

from py_sh.syscalls import ChildExit, Host, SyscallError, SyscallNumber

_CHILD_STATUS = 3


class TestDispatch:
    """Verify the trap table itself."""

    def test_unknown_number(self) -> None:
        """A number with no handler raises SyscallError."""
        with pytest.raises(SyscallError, match="Unknown syscall number"):
            Host().syscall(99)  # type: ignore[arg-type]


class TestDescriptors:
    """Verify pipe and descriptor plumbing."""

    def test_pipe_round_trip(self) -> None:
        """Bytes written to the write end come out of the read end."""
        host = Host()
        read_fd, write_fd = host.syscall(SyscallNumber.SYS_PIPE)
        os.write(write_fd, b"ping")
        host.syscall(SyscallNumber.SYS_CLOSE, fd=write_fd)
        assert os.read(read_fd, 16) == b"ping"
        host.syscall(SyscallNumber.SYS_CLOSE, fd=read_fd)

    def test_pipe_is_not_inherited(self) -> None:
        """Descriptors the shell creates are closed across exec."""
        read_fd, write_fd = Host().syscall(SyscallNumber.SYS_PIPE)
        assert not os.get_inheritable(read_fd)
        os.close(read_fd)
        os.close(write_fd)

    def test_open_creates_file(self, tmp_path: Path) -> None:
        """SYS_OPEN honours raw O_* flags."""
        host = Host()
        path = tmp_path / "f"
        fd = host.syscall(
            SyscallNumber.SYS_OPEN,
            path=str(path),
            flags=os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
        )
        os.write(fd, b"x")
        host.syscall(SyscallNumber.SYS_CLOSE, fd=fd)
        assert path.read_bytes() == b"x"

    def test_open_missing_raises(self, tmp_path: Path) -> None:
        """OSError surfaces as SyscallError."""
        with pytest.raises(SyscallError):
            Host().syscall(SyscallNumber.SYS_OPEN, path=str(tmp_path / "nope"), flags=os.O_RDONLY)

    def test_close_bad_fd_raises(self) -> None:
        """Closing a descriptor that is not open fails."""
        read_fd, write_fd = os.pipe()
        os.close(read_fd)
        os.close(write_fd)
        with pytest.raises(SyscallError):
            Host().syscall(SyscallNumber.SYS_CLOSE, fd=read_fd)

    def test_dup_and_dup2(self) -> None:
        """SYS_DUP gives a new slot; SYS_DUP2 targets a given one."""
        host = Host()
        read_fd, write_fd = os.pipe()
        copy = host.syscall(SyscallNumber.SYS_DUP, fd=write_fd)
        assert copy not in (read_fd, write_fd)
        host.syscall(SyscallNumber.SYS_DUP2, fd=read_fd, slot=copy)
        os.write(write_fd, b"z")
        assert os.read(copy, 1) == b"z"
        for fd in (read_fd, write_fd, copy):
            os.close(fd)


class TestProcesses:
    """Verify fork, exit, and wait."""

    def test_fork_exit_wait(self) -> None:
        """A child's exit status is reported by SYS_WAIT."""
        host = Host()
        pid = host.syscall(SyscallNumber.SYS_FORK)
        if pid == 0:
            host.syscall(SyscallNumber.SYS_EXIT, status=_CHILD_STATUS)
        assert host.syscall(SyscallNumber.SYS_WAIT) == ChildExit(pid=pid, status=_CHILD_STATUS)

    def test_wait_without_children(self) -> None:
        """SYS_WAIT returns None when nothing is left to wait for."""
        assert Host().syscall(SyscallNumber.SYS_WAIT) is None

    def test_wait_noblock_without_children(self) -> None:
        """SYS_WAIT_NOBLOCK returns None instead of blocking."""
        assert Host().syscall(SyscallNumber.SYS_WAIT_NOBLOCK) is None

    def test_wait_noblock_running_child(self) -> None:
        """A still-running child is not reported."""
        host = Host()
        read_fd, write_fd = os.pipe()
        pid = host.syscall(SyscallNumber.SYS_FORK)
        if pid == 0:
            os.close(write_fd)
            os.read(read_fd, 1)
            host.syscall(SyscallNumber.SYS_EXIT, status=0)
        os.close(read_fd)
        assert host.syscall(SyscallNumber.SYS_WAIT_NOBLOCK) is None
        os.close(write_fd)
        assert host.syscall(SyscallNumber.SYS_WAIT) == ChildExit(pid=pid, status=0)


class TestChdir:
    """Verify SYS_CHDIR."""

    def test_chdir(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """The working directory changes."""
        monkeypatch.chdir(tmp_path)
        (tmp_path / "sub").mkdir()
        Host().syscall(SyscallNumber.SYS_CHDIR, path="sub")
        assert Path.cwd().resolve() == (tmp_path / "sub").resolve()

    def test_chdir_missing(self, tmp_path: Path) -> None:
        """A missing directory raises SyscallError."""
        with pytest.raises(SyscallError):
            Host().syscall(SyscallNumber.SYS_CHDIR, path=str(tmp_path / "nope"))


class TestRead:
    """Verify SYS_READ."""

    def test_reads_at_most_size(self) -> None:
        """Only the requested number of bytes is consumed."""
        host = Host()
        read_fd, write_fd = os.pipe()
        os.write(write_fd, b"ab")
        os.close(write_fd)
        assert host.syscall(SyscallNumber.SYS_READ, fd=read_fd, size=1) == b"a"
        assert host.syscall(SyscallNumber.SYS_READ, fd=read_fd, size=1) == b"b"
        assert host.syscall(SyscallNumber.SYS_READ, fd=read_fd, size=1) == b""
        os.close(read_fd)

    def test_bad_fd_raises(self) -> None:
        """Reading a closed descriptor raises SyscallError."""
        read_fd, write_fd = os.pipe()
        os.close(read_fd)
        os.close(write_fd)
        with pytest.raises(SyscallError):
            Host().syscall(SyscallNumber.SYS_READ, fd=read_fd, size=1)
