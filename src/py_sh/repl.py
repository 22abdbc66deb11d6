"""Interactive front end: read lines and hand them to the shell.

The front end owns everything the shell itself does not care about:

    1. **Choose the input**: a script file if one is named on the
       command line, otherwise standard input (interactive).
    2. **Prompt**: interactive sessions write ``$ `` to stderr before
       each line.
    3. **Read**: one line at a time; end of input *or an empty line*
       ends the session.  Standard input is read one byte at a time
       straight from descriptor 0, since foreground programs share that
       descriptor and must see every line after the one being run.
    4. **Execute**: ``shell.execute(line)``; a ``ShellPanic`` prints its
       diagnostic and ends the process with status 1.

``read_line`` and ``read_fd_line`` are testable on their own; ``run()``
is the I/O loop and ``main()`` the console-script entrypoint.
"""

import argparse
import sys
from collections.abc import Callable, Mapping
from functools import partial
from typing import TextIO, TypeAlias

from py_sh.config import ConfigError, ShellConfig
from py_sh.errors import ShellPanic
from py_sh.shell import Shell
from py_sh.syscalls import Host, SyscallError, SyscallNumber

_STDIN_FD = 0

_LineReader: TypeAlias = Callable[[], str | None]


def read_line(stream: TextIO) -> str | None:
    """Read one command line from a buffered stream.

    Returns:
        The line without its newline, or None at end of input or on an
        empty line.

    """
    line = stream.readline()
    if line.endswith("\n"):
        line = line[:-1]
    return line or None


def read_fd_line(host: Host, fd: int = _STDIN_FD) -> str | None:
    """Read one command line from *fd* without reading past its newline.

    Returns:
        The decoded line without its newline, or None at end of input,
        on a read error, or on an empty line.

    """
    data = bytearray()
    while True:
        try:
            byte = host.syscall(SyscallNumber.SYS_READ, fd=fd, size=1)
        except SyscallError:
            break
        if byte in (b"", b"\n"):
            break
        data += byte
    return data.decode(errors="replace") or None


def run(
    script: str | None = None,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
    env: Mapping[str, str] | None = None,
) -> int:
    """Run a shell session until input ends.

    Args:
        script: Path of a script to execute; None for interactive mode.
        stdin: Interactive input stream; if omitted, descriptor 0 is
            read directly.
        stdout: Stream for job notices and builtin output.
        stderr: Stream for the prompt and diagnostics.
        env: Variables ``ShellConfig`` is read from.

    Returns:
        The process exit status.

    """
    err = stderr if stderr is not None else sys.stderr
    try:
        config = ShellConfig.from_env(env)
    except ConfigError as e:
        err.write(f"sh: {e}\n")
        return 1

    host = Host()
    interactive = script is None
    script_file: TextIO | None = None
    reader: _LineReader
    if script is not None:
        try:
            script_file = open(script, encoding="utf-8")  # noqa: SIM115
        except OSError:
            err.write(f"sh: cannot open {script}\n")
            return 1
        reader = partial(read_line, script_file)
    elif stdin is not None:
        reader = partial(read_line, stdin)
    else:
        reader = partial(read_fd_line, host)

    shell = Shell(config=config, host=host, out=stdout, err=err, interactive=interactive)
    try:
        while True:
            if interactive:
                err.write(config.prompt)
                err.flush()
            line = reader()
            if line is None:
                break
            try:
                shell.execute(line)
            except ShellPanic as e:
                err.write(e.report())
                return 1
    except KeyboardInterrupt:
        err.write("\n")
    finally:
        if script_file is not None:
            script_file.close()
    return 0


def main(argv: list[str] | None = None) -> None:
    """Console-script entrypoint: ``py-sh [script]``."""
    parser = argparse.ArgumentParser(prog="py-sh", description="A small Unix command shell.")
    parser.add_argument("script", nargs="?", help="file of commands to run non-interactively")
    args = parser.parse_args(argv)
    sys.exit(run(args.script))
