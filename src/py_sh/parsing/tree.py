"""Command tree: the parsed shape of one input line.

Five node kinds cover the whole grammar:

- **ExecCommand**: one program invocation: its words and a
  "run in background" flag.  Every leaf of a tree is an ExecCommand.
- **RedirCommand**: wraps a command; retargets one descriptor slot
  (0 for ``<``, 1 for ``>`` / ``>>``) to a file before it runs.
- **PipeCommand**: left's standard output feeds right's standard input.
- **ListCommand**: run left, then right (``;``).
- **BackCommand**: run the wrapped command in the background (``&``).

Words are recorded as spans into the input line while parsing.
``terminate()`` walks the finished tree once and resolves every span
into an owned string (``ExecCommand.argv``, ``RedirCommand.path``), so
execution never has to look at the original line again.
"""

import os
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TypeAlias

from py_sh.parsing.tokens import Span


class NodeKind(StrEnum):
    """Tag identifying a command tree node."""

    EXEC = "exec"
    REDIR = "redir"
    PIPE = "pipe"
    LIST = "list"
    BACK = "back"


class RedirMode(StrEnum):
    """How a redirection opens its target file."""

    READ = "<"
    TRUNCATE = ">"
    APPEND = ">>"

    @property
    def flags(self) -> int:
        """Return the ``os.O_*`` flags used to open the target."""
        match self:
            case RedirMode.READ:
                return os.O_RDONLY
            case RedirMode.TRUNCATE:
                return os.O_WRONLY | os.O_CREAT | os.O_TRUNC
            case RedirMode.APPEND:
                return os.O_WRONLY | os.O_CREAT | os.O_APPEND

    @property
    def fd(self) -> int:
        """Return the descriptor slot this mode retargets."""
        return 0 if self is RedirMode.READ else 1


@dataclass
class ExecCommand:
    """A single program invocation (tree leaf).

    Attributes:
        words: Spans of the argument words in the source line.
        back: True if the command runs in the background.
        argv: The resolved argument strings (filled by ``terminate``).

    """

    words: list[Span] = field(default_factory=list)
    back: bool = False
    argv: list[str] = field(default_factory=list)

    kind = NodeKind.EXEC

    def __str__(self) -> str:
        """Render the resolved words."""
        return " ".join(self.argv)


@dataclass
class RedirCommand:
    """Run *cmd* with descriptor *fd* pointing at a file.

    Attributes:
        cmd: The wrapped command.
        target: Span of the file name in the source line.
        mode: How the file is opened.
        fd: The descriptor slot to retarget.
        path: The resolved file name (filled by ``terminate``).

    """

    cmd: "Command"
    target: Span
    mode: RedirMode
    fd: int
    path: str = ""

    kind = NodeKind.REDIR

    def __str__(self) -> str:
        """Render as ``cmd > path``."""
        return f"{_grouped(self.cmd)} {self.mode} {self.path}"


@dataclass(frozen=True)
class PipeCommand:
    """Connect left's output to right's input."""

    left: "Command"
    right: "Command"

    kind = NodeKind.PIPE

    def __str__(self) -> str:
        """Render as ``left | right``."""
        return f"{_grouped(self.left)} | {_grouped(self.right, PipeCommand)}"


@dataclass(frozen=True)
class ListCommand:
    """Run left, then right, unconditionally."""

    left: "Command"
    right: "Command"

    kind = NodeKind.LIST

    def __str__(self) -> str:
        """Render as ``left ; right``."""
        return f"{_grouped(self.left, PipeCommand, BackCommand)} ; {self.right}"


@dataclass(frozen=True)
class BackCommand:
    """Run the wrapped command without waiting for it."""

    cmd: "Command"

    kind = NodeKind.BACK

    def __str__(self) -> str:
        """Render as ``cmd &``."""
        return f"{_grouped(self.cmd, PipeCommand, BackCommand)} &"


Command: TypeAlias = ExecCommand | RedirCommand | PipeCommand | ListCommand | BackCommand


def _grouped(cmd: Command, *bare: type) -> str:
    """Render *cmd*, parenthesised unless it is simple or one of *bare*."""
    if isinstance(cmd, (ExecCommand, RedirCommand, *bare)):
        return str(cmd)
    return f"({cmd})"


def terminate(cmd: Command, source: str) -> Command:
    """Resolve every span in *cmd* into a string, in place.

    Visits each node exactly once, following the tree's own shape.

    Args:
        cmd: Root of a freshly parsed tree.
        source: The line the spans refer to.

    Returns:
        The same tree, now carrying resolved words and file names.

    """
    match cmd:
        case ExecCommand():
            cmd.argv = [span.text(source) for span in cmd.words]
        case RedirCommand():
            terminate(cmd.cmd, source)
            cmd.path = cmd.target.text(source)
        case PipeCommand() | ListCommand():
            terminate(cmd.left, source)
            terminate(cmd.right, source)
        case BackCommand():
            terminate(cmd.cmd, source)
    return cmd
