"""Recursive-descent parser: build a command tree from one line.

Grammar, lowest precedence first::

    line     := pipeline ('&')* (';' line)?
    pipeline := exec ('|' pipeline)?
    exec     := '(' line ')' redirs
              | redirs (WORD redirs)*
    redirs   := (('<' | '>' | '>>') WORD)*

Each rule is one method.  Pipelines and lists are right-associative:
``a | b | c`` is ``a | (b | c)`` and ``a ; b ; c`` is ``a ; (b ; c)``.
Every trailing ``&`` wraps what was built so far, so ``a & &`` is
accepted and wraps twice.  Every redirection wraps the command built so
far, so with ``echo hi > f1 > f2`` the ``f2`` redirection is outermost.

Any grammar failure raises ``ParseError``: the line is rejected whole
and nothing from it runs.
"""

from py_sh.config import DEFAULT_MAX_ARGS
from py_sh.errors import LeftoversError, ParseError
from py_sh.parsing.tokens import Scanner, TokenType
from py_sh.parsing.tree import (
    BackCommand,
    Command,
    ExecCommand,
    ListCommand,
    PipeCommand,
    RedirCommand,
    RedirMode,
    terminate,
)

_REDIRECT_MODES: dict[TokenType, RedirMode] = {
    TokenType.REDIRECT_IN: RedirMode.READ,
    TokenType.REDIRECT_OUT: RedirMode.TRUNCATE,
    TokenType.REDIRECT_APPEND: RedirMode.APPEND,
}


class Parser:
    """Parse a single command line into a command tree."""

    def __init__(self, source: str, *, max_args: int = DEFAULT_MAX_ARGS) -> None:
        """Prepare to parse *source*.

        Args:
            source: The raw input line.
            max_args: Size of a command's argument table; a command
                may carry at most ``max_args - 1`` words.

        """
        self._scanner = Scanner(source)
        self._max_args = max_args

    def parse(self) -> Command:
        """Parse the whole line and resolve its words.

        Returns:
            The root of the command tree.

        Raises:
            ParseError: If the line is not valid grammar.

        """
        cmd = self._parse_line()
        self._scanner.peek("")
        if not self._scanner.at_end:
            raise LeftoversError(self._scanner.rest())
        return terminate(cmd, self._scanner.source)

    def _parse_line(self) -> Command:
        cmd = self._parse_pipe()
        while self._scanner.peek("&"):
            self._scanner.next_token()
            cmd = BackCommand(cmd)
        if self._scanner.peek(";"):
            self._scanner.next_token()
            cmd = ListCommand(cmd, self._parse_line())
        return cmd

    def _parse_pipe(self) -> Command:
        cmd = self._parse_exec()
        if self._scanner.peek("|"):
            self._scanner.next_token()
            cmd = PipeCommand(cmd, self._parse_pipe())
        return cmd

    def _parse_redirs(self, cmd: Command) -> Command:
        """Wrap *cmd* in one RedirCommand per redirection that follows."""
        while self._scanner.peek("<>"):
            operator = self._scanner.next_token()
            target = self._scanner.next_token()
            if target.type is not TokenType.WORD:
                msg = "missing file for redirection"
                raise ParseError(msg)
            mode = _REDIRECT_MODES[operator.type]
            cmd = RedirCommand(cmd=cmd, target=target.span, mode=mode, fd=mode.fd)
        return cmd

    def _parse_block(self) -> Command:
        """Parse ``( line )`` followed by any redirections."""
        if not self._scanner.peek("("):
            msg = "parseblock"
            raise ParseError(msg)
        self._scanner.next_token()
        cmd = self._parse_line()
        if not self._scanner.peek(")"):
            msg = "syntax - missing )"
            raise ParseError(msg)
        self._scanner.next_token()
        return self._parse_redirs(cmd)

    def _parse_exec(self) -> Command:
        if self._scanner.peek("("):
            return self._parse_block()

        exec_cmd = ExecCommand()
        cmd = self._parse_redirs(exec_cmd)
        while not self._scanner.peek("|)&;"):
            token = self._scanner.next_token()
            if token.type is TokenType.END:
                break
            if token.type is not TokenType.WORD:
                msg = "syntax"
                raise ParseError(msg)
            exec_cmd.words.append(token.span)
            if len(exec_cmd.words) >= self._max_args:
                msg = "too many args"
                raise ParseError(msg)
            cmd = self._parse_redirs(cmd)
        return cmd


def parse(source: str, *, max_args: int = DEFAULT_MAX_ARGS) -> Command:
    """Parse *source* into a resolved command tree.

    Raises:
        ParseError: If the line is not valid grammar.

    """
    return Parser(source, max_args=max_args).parse()
