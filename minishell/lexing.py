"""Lexical checks and quote-aware masking for raw command lines."""

from __future__ import annotations

from typing import Iterator, Optional

_OPERATORS = frozenset("<>|")
_QUOTES = "'\""
_PIPE_MASK = "a"
_SPACE_MASK = "\t"


class ShellSyntaxError(Exception):
    """A command line the shell refuses to run."""


def split_words(text: str, sep: str) -> list[str]:
    """Split ``text`` on ``sep``, dropping empty pieces."""
    return [word for word in text.split(sep) if word]


def _quoted_indices(line: str) -> Iterator[int]:
    """Yield the index of every character that lies strictly inside quotes."""
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch in _QUOTES:
            close = line.find(ch, i + 1)
            end = n if close == -1 else close
            yield from range(i + 1, end)
            i = end + 1
        else:
            i += 1


def quotes_balanced(line: Optional[str]) -> bool:
    """Whether every quote in ``line`` has a matching closing quote."""
    if line is None:
        return False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch in _QUOTES:
            close = line.find(ch, i + 1)
            if close == -1:
                return False
            i = close
        i += 1
    return True


def has_pipe(line: Optional[str]) -> bool:
    """Whether ``line`` contains a ``|`` character anywhere."""
    return bool(line) and "|" in line


def is_operator_char(char: str) -> bool:
    """Whether ``char`` is one of the redirection or pipe characters."""
    return len(char) == 1 and char in _OPERATORS


def is_blank(line: str) -> bool:
    """Whether ``line`` is empty or made only of spaces."""
    return all(ch == " " for ch in line)


def check_forbidden_chars(line: str) -> None:
    """Reject lines holding ``;`` or a backslash."""
    if ";" in line:
        raise ShellSyntaxError("';' is not a valid char")
    if "\\" in line:
        raise ShellSyntaxError("'\\' is not a valid char")


def _unexpected(token: str) -> ShellSyntaxError:
    return ShellSyntaxError(f"syntax error near unexpected token `{token}'")


def _check_after_operator(line: str, i: int) -> int:
    """Validate what follows the operator at ``i``; return the new position."""
    n = len(line)

    def at(k: int) -> str:
        return line[k] if k < n else ""

    start = i
    for op in "><":
        if at(i) == op and at(i + 1) == op and not is_operator_char(at(i + 2)):
            return i
    i += 1
    while at(i) == " ":
        i += 1
    if at(start) == "|" and at(i) in ("<", ">"):
        if at(i + 1) == at(i):
            i += 1
        i += 1
        while at(i) == " ":
            i += 1
    if i >= n:
        raise _unexpected("newline")
    if line[i] in _QUOTES:
        return i
    if is_operator_char(line[i]):
        raise _unexpected(line[i])
    return i


def check_tokens(line: str) -> None:
    """Reject misplaced pipes and redirections outside quotes."""
    i = 0
    n = len(line)
    while i < n:
        for quote in _QUOTES:
            if i < n and line[i] == quote:
                i += 1
                while i < n and line[i] != quote:
                    i += 1
        if i < n and is_operator_char(line[i]):
            i = _check_after_operator(line, i)
        i += 1


def count_quoted(line: str, char: str) -> int:
    """Count occurrences of ``char`` inside quoted parts of ``line``."""
    return sum(1 for i in _quoted_indices(line) if line[i] == char)


def _mask(line: str, target: str, mask: str) -> tuple[str, list[int]]:
    chars = list(line)
    positions = [i for i in _quoted_indices(line) if line[i] == target]
    for pos in positions:
        chars[pos] = mask
    return "".join(chars), positions


def mask_quoted_pipes(line: str) -> tuple[str, list[int]]:
    """Hide pipes inside quotes so the line can be split on real pipes.

    Returns the masked line and the positions of the hidden pipes.
    """
    return _mask(line, "|", _PIPE_MASK)


def restore_pipes(segments: list[str], positions: list[int]) -> list[str]:
    """Put back pipes hidden by :func:`mask_quoted_pipes` in split segments.

    Each segment is assumed to have been followed by one ``|`` in the line.
    """
    restored: list[str] = []
    offset = 0
    index = 0
    for k, segment in enumerate(segments):
        if k > 0:
            offset += len(segments[k - 1]) + 1
        chars = list(segment)
        for i in range(len(chars)):
            if index < len(positions) and i + offset == positions[index]:
                chars[i] = "|"
                index += 1
        restored.append("".join(chars))
    return restored


def mask_quoted_spaces(text: str) -> str:
    """Replace spaces inside quotes with tabs so words split on real spaces."""
    return _mask(text, " ", _SPACE_MASK)[0]


def unmask_spaces(words: list[str]) -> list[str]:
    """Turn the tabs left by :func:`mask_quoted_spaces` back into spaces."""
    return [word.replace(_SPACE_MASK, " ") for word in words]