"""Parsing subsystem: tokenizer, command tree, and parser.

Re-exports public symbols so callers can write::

    from py_sh.parsing import parse, PipeCommand
"""

from py_sh.parsing.parser import Parser, parse
from py_sh.parsing.tokens import SYMBOLS, WHITESPACE, Scanner, Span, Token, TokenType, tokenize
from py_sh.parsing.tree import (
    BackCommand,
    Command,
    ExecCommand,
    ListCommand,
    NodeKind,
    PipeCommand,
    RedirCommand,
    RedirMode,
    terminate,
)

__all__ = [
    "SYMBOLS",
    "WHITESPACE",
    "BackCommand",
    "Command",
    "ExecCommand",
    "ListCommand",
    "NodeKind",
    "Parser",
    "PipeCommand",
    "RedirCommand",
    "RedirMode",
    "Scanner",
    "Span",
    "Token",
    "TokenType",
    "parse",
    "terminate",
    "tokenize",
]
