"""Fatal shell errors.

Most failures in a shell are local: a program that cannot be exec'd
exits with a failure status, a redirection that cannot be opened skips
one command, a bad ``cd`` prints a diagnostic.  A few failures leave the
shell with nothing sensible to do for the rest of the line, so the
shell stops instead:

- **ParseError**: the line is not valid grammar (missing redirection
  target, unbalanced ``(``, too many arguments, trailing garbage).
- **EngineError**: the host refused to create a process or a pipe.

Both derive from ``ShellPanic``, which the front end catches, prints,
and turns into exit status 1.
"""


class ShellPanic(Exception):
    """Raise when the shell must stop processing input.

    The exception message is the diagnostic line printed to stderr.
    """

    def report(self) -> str:
        """Return the full diagnostic text, newline-terminated."""
        return f"{self}\n"


class ParseError(ShellPanic):
    """Raise when an input line does not match the grammar."""


class LeftoversError(ParseError):
    """Raise when text remains after the top-level command was parsed."""

    def __init__(self, leftovers: str) -> None:
        """Record the unconsumed tail of the line."""
        super().__init__("syntax")
        self.leftovers = leftovers

    def report(self) -> str:
        """Report the unconsumed text, then the generic syntax failure."""
        return f"leftovers: {self.leftovers}\n{self}\n"


class EngineError(ShellPanic):
    """Raise when process or pipe setup fails in the shell itself."""
