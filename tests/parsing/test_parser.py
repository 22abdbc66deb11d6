"""Tests for the recursive-descent parser.

Precedence from lowest to highest: ``;``, ``&``, ``|``, then
redirection and grouping.  Any grammar failure rejects the whole line.
"""

import pytest

from py_sh.errors import LeftoversError, ParseError
from py_sh.parsing.parser import Parser, parse
from py_sh.parsing.tree import (
    BackCommand,
    ExecCommand,
    ListCommand,
    PipeCommand,
    RedirCommand,
    RedirMode,
)


def _argv(cmd: object) -> list[str]:
    """Return the argv of an ExecCommand (fails the test otherwise)."""
    assert isinstance(cmd, ExecCommand)
    return cmd.argv


class TestSimpleCommands:
    """Verify plain commands."""

    def test_words_become_argv(self) -> None:
        """Each word is one argument."""
        cmd = parse("echo hello world")
        assert _argv(cmd) == ["echo", "hello", "world"]

    def test_not_background_by_default(self) -> None:
        """A plain command runs in the foreground."""
        cmd = parse("ls")
        assert isinstance(cmd, ExecCommand)
        assert cmd.back is False

    def test_surrounding_whitespace_ignored(self) -> None:
        """Leading and trailing whitespace do not matter."""
        assert _argv(parse("  ls\t-l \n")) == ["ls", "-l"]

    def test_empty_line_is_empty_command(self) -> None:
        """An empty line parses to a command with no words."""
        assert _argv(parse("")) == []


class TestPipesAndLists:
    """Verify ``|`` and ``;``."""

    def test_pipe(self) -> None:
        """``a | b`` is a pipe of two commands."""
        cmd = parse("ls | wc")
        assert isinstance(cmd, PipeCommand)
        assert _argv(cmd.left) == ["ls"]
        assert _argv(cmd.right) == ["wc"]

    def test_pipe_is_right_associative(self) -> None:
        """``a | b | c`` is ``a | (b | c)``."""
        cmd = parse("a | b | c")
        assert isinstance(cmd, PipeCommand)
        assert _argv(cmd.left) == ["a"]
        assert isinstance(cmd.right, PipeCommand)
        assert _argv(cmd.right.left) == ["b"]
        assert _argv(cmd.right.right) == ["c"]

    def test_list_is_right_associative(self) -> None:
        """``a ; b ; c`` is ``a ; (b ; c)``."""
        cmd = parse("a ; b ; c")
        assert isinstance(cmd, ListCommand)
        assert _argv(cmd.left) == ["a"]
        assert isinstance(cmd.right, ListCommand)

    def test_pipe_binds_tighter_than_list(self) -> None:
        """``a | b ; c`` is ``(a | b) ; c``."""
        cmd = parse("a | b ; c")
        assert isinstance(cmd, ListCommand)
        assert isinstance(cmd.left, PipeCommand)
        assert _argv(cmd.right) == ["c"]

    def test_trailing_semicolon(self) -> None:
        """``a ;`` has an empty right side."""
        cmd = parse("a ;")
        assert isinstance(cmd, ListCommand)
        assert _argv(cmd.right) == []


class TestBackground:
    """Verify ``&``."""

    def test_background_wraps_command(self) -> None:
        """``a &`` wraps the command in a BackCommand."""
        cmd = parse("sleep 1 &")
        assert isinstance(cmd, BackCommand)
        assert _argv(cmd.cmd) == ["sleep", "1"]

    def test_background_wraps_whole_pipe(self) -> None:
        """``a | b &`` backgrounds the pipe."""
        cmd = parse("a | b &")
        assert isinstance(cmd, BackCommand)
        assert isinstance(cmd.cmd, PipeCommand)

    def test_double_ampersand_wraps_twice(self) -> None:
        """``a & &`` is accepted and wraps twice."""
        cmd = parse("a & &")
        assert isinstance(cmd, BackCommand)
        assert isinstance(cmd.cmd, BackCommand)

    def test_background_then_sequence(self) -> None:
        """``a & ; b`` backgrounds a, then runs b."""
        cmd = parse("a & ; b")
        assert isinstance(cmd, ListCommand)
        assert isinstance(cmd.left, BackCommand)
        assert _argv(cmd.right) == ["b"]

    def test_command_after_ampersand_is_leftover(self) -> None:
        """``a & b`` needs a ``;`` between the two commands."""
        with pytest.raises(LeftoversError) as info:
            parse("a & b")
        assert info.value.leftovers == "b"


class TestRedirection:
    """Verify ``<``, ``>`` and ``>>``."""

    def test_output_redirect(self) -> None:
        """``>`` truncates onto fd 1."""
        cmd = parse("echo hi > out")
        assert isinstance(cmd, RedirCommand)
        assert cmd.path == "out"
        assert cmd.mode is RedirMode.TRUNCATE
        assert cmd.fd == 1
        assert _argv(cmd.cmd) == ["echo", "hi"]

    def test_append_redirect(self) -> None:
        """``>>`` appends onto fd 1."""
        cmd = parse("echo hi >> log")
        assert isinstance(cmd, RedirCommand)
        assert cmd.mode is RedirMode.APPEND
        assert cmd.fd == 1

    def test_input_redirect(self) -> None:
        """``<`` reads onto fd 0."""
        cmd = parse("wc < in")
        assert isinstance(cmd, RedirCommand)
        assert cmd.mode is RedirMode.READ
        assert cmd.fd == 0

    def test_later_redirect_is_outer(self) -> None:
        """Each redirection wraps what was built so far."""
        cmd = parse("cat < in > out")
        assert isinstance(cmd, RedirCommand)
        assert cmd.path == "out"
        assert isinstance(cmd.cmd, RedirCommand)
        assert cmd.cmd.path == "in"

    def test_redirect_before_words(self) -> None:
        """Redirections may come before the program name."""
        cmd = parse("< in cat -n")
        assert isinstance(cmd, RedirCommand)
        assert _argv(cmd.cmd) == ["cat", "-n"]

    def test_redirect_between_words(self) -> None:
        """Redirections may sit between arguments."""
        cmd = parse("echo a > out b")
        assert isinstance(cmd, RedirCommand)
        assert _argv(cmd.cmd) == ["echo", "a", "b"]

    def test_redirect_without_space(self) -> None:
        """``a>b`` needs no whitespace."""
        cmd = parse("echo>f")
        assert isinstance(cmd, RedirCommand)
        assert cmd.path == "f"

    def test_missing_target(self) -> None:
        """A redirection at end of line has no file."""
        with pytest.raises(ParseError, match="missing file for redirection"):
            parse("echo hi >")

    def test_operator_as_target(self) -> None:
        """An operator is not a file name."""
        with pytest.raises(ParseError, match="missing file for redirection"):
            parse("echo hi > | wc")


class TestGrouping:
    """Verify parenthesised groups."""

    def test_group_feeds_pipe(self) -> None:
        """``(a ; b) | c`` pipes the whole group."""
        cmd = parse("(a ; b) | c")
        assert isinstance(cmd, PipeCommand)
        assert isinstance(cmd.left, ListCommand)
        assert _argv(cmd.right) == ["c"]

    def test_group_with_redirect(self) -> None:
        """Redirections may follow the closing parenthesis."""
        cmd = parse("(a ; b) > out")
        assert isinstance(cmd, RedirCommand)
        assert isinstance(cmd.cmd, ListCommand)

    def test_nested_groups(self) -> None:
        """Groups nest."""
        cmd = parse("((a))")
        assert _argv(cmd) == ["a"]

    def test_missing_close(self) -> None:
        """An unterminated group is rejected."""
        with pytest.raises(ParseError, match="missing \\)"):
            parse("(a ; b")

    def test_stray_close_is_leftover(self) -> None:
        """A ``)`` with no ``(`` is left over."""
        with pytest.raises(LeftoversError) as info:
            parse("a )")
        assert info.value.leftovers == ")"

    def test_group_after_word(self) -> None:
        """A group cannot be an argument."""
        with pytest.raises(ParseError, match="syntax"):
            parse("a (b)")

    def test_word_after_group_is_leftover(self) -> None:
        """Words cannot follow a group."""
        with pytest.raises(LeftoversError):
            parse("(a) b")


class TestArgumentLimit:
    """Verify the argument table bound."""

    def test_nine_words_fit_default_table(self) -> None:
        """The default table holds nine words plus the terminator."""
        words = [f"w{i}" for i in range(9)]
        assert _argv(parse(" ".join(words))) == words

    def test_ten_words_overflow_default_table(self) -> None:
        """A tenth word is a parse error, not a truncation."""
        with pytest.raises(ParseError, match="too many args"):
            parse(" ".join(f"w{i}" for i in range(10)))

    def test_custom_limit(self) -> None:
        """The limit comes from the parser's max_args."""
        assert _argv(Parser("a b", max_args=3).parse()) == ["a", "b"]
        with pytest.raises(ParseError, match="too many args"):
            Parser("a b c", max_args=3).parse()

    def test_redirect_targets_do_not_count(self) -> None:
        """File names are not arguments."""
        cmd = Parser("a b > c", max_args=3).parse()
        assert isinstance(cmd, RedirCommand)


class TestLeftovers:
    """Verify the trailing-garbage report."""

    def test_report_names_leftovers(self) -> None:
        """The diagnostic shows the unparsed text, then ``syntax``."""
        with pytest.raises(LeftoversError) as info:
            parse("a ) b")
        assert info.value.report() == "leftovers: ) b\nsyntax\n"
