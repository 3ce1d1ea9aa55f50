"""Turning a command line into the commands of a pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Optional

from minishell.environment import ShellState
from minishell.expander import expand
from minishell.lexing import (
    ShellSyntaxError,
    check_tokens,
    count_quoted,
    has_pipe,
    mask_quoted_pipes,
    mask_quoted_spaces,
    restore_pipes,
    split_words,
    unmask_spaces,
)

Reader = Callable[[str], Optional[str]]

_QUOTES = "'\""
_REDIRECTS = "<>"
_HEREDOC_PROMPT = "> "


@dataclass
class Command:
    """One stage of a pipeline, with its arguments and redirections.

    ``input_kind`` is ``"file"`` or ``"heredoc"`` after an input redirection,
    whichever came last; ``output_kind`` is ``"truncate"`` or ``"append"``
    likewise. A redirection whose file could not be opened leaves the matching
    handle as ``None``.
    """

    text: str
    envp: list[str] = field(default_factory=list)
    argv: list[str] = field(default_factory=list)
    path: Optional[str] = None
    input_path: Optional[str] = None
    output_path: Optional[str] = None
    append_path: Optional[str] = None
    infile: Optional[BinaryIO] = None
    outfile: Optional[BinaryIO] = None
    appendfile: Optional[BinaryIO] = None
    heredoc_delimiter: str = ""
    heredoc: Optional[str] = None
    input_kind: Optional[str] = None
    output_kind: Optional[str] = None

    def close(self) -> None:
        """Close every file this command opened for its redirections."""
        for handle in (self.infile, self.outfile, self.appendfile):
            if handle is not None:
                handle.close()
        self.infile = self.outfile = self.appendfile = None


def _default_reader(prompt: str) -> Optional[str]:
    try:
        return input(prompt)
    except EOFError:
        return None


def _path_dirs(envp: list[str]) -> Optional[list[str]]:
    """Directories of the first ``PATH`` entry, or ``None`` without one."""
    entry = next((item for item in envp if item.startswith("PATH")), None)
    if entry is None:
        return None
    slash = entry.find("/")
    if slash == -1:
        return []
    return split_words(entry[slash:], ":")


def find_executable(name: Optional[str], envp: list[str]) -> Optional[str]:
    """Locate ``name`` through the ``PATH`` entry of ``envp``.

    Without a ``PATH`` entry nothing is found. A name holding ``/`` is
    returned as is when it is executable.
    """
    dirs = _path_dirs(envp)
    if dirs is None or not name:
        return None
    if "/" in name and os.access(name, os.X_OK):
        return name
    for directory in dirs:
        candidate = f"{directory}/{name}"
        if os.access(candidate, os.X_OK):
            return candidate
    return None


def collect_heredoc(delimiter: str, reader: Optional[Reader] = None) -> str:
    """Read lines until ``delimiter`` or end of input; return them joined."""
    read = reader or _default_reader
    lines: list[str] = []
    while True:
        try:
            line = read(_HEREDOC_PROMPT)
        except EOFError:
            line = None
        if line is None or line == delimiter:
            break
        lines.append(line + "\n")
    return "".join(lines)


def _open_output(name: str, flags: int) -> Optional[BinaryIO]:
    try:
        fd = os.open(name, os.O_WRONLY | os.O_CREAT | flags, 0o777)
    except OSError:
        return None
    return os.fdopen(fd, "ab" if flags & os.O_APPEND else "wb")


def _apply_redirect(command: Command, op: str, name: str, reader: Reader) -> None:
    if op == "<":
        command.input_path = name
        if command.infile is not None:
            command.infile.close()
        try:
            command.infile = open(name, "rb")
        except OSError:
            command.infile = None
        command.input_kind = "file"
    elif op == ">":
        command.output_path = name
        if command.outfile is not None:
            command.outfile.close()
        command.outfile = _open_output(name, os.O_TRUNC)
        command.output_kind = "truncate"
    elif op == ">>":
        command.append_path = name
        if command.appendfile is not None:
            command.appendfile.close()
        command.appendfile = _open_output(name, os.O_APPEND)
        command.output_kind = "append"
    else:
        command.heredoc_delimiter = name
        command.heredoc = collect_heredoc(name, reader)
        command.input_kind = "heredoc"


def _read_target(s: str, i: int) -> tuple[str, int]:
    """Read a redirection target starting just after the operator at ``i``."""
    n = len(s)
    i += 1
    while i < n and s[i] == " ":
        i += 1
    if i < n and s[i] in _QUOTES:
        i += 1
    start = i
    length = 0
    while i < n and s[i] != " ":
        if s[i] in _QUOTES:
            i += 1
            break
        if s[i] in _REDIRECTS or s[i] == "|":
            i -= 1
            break
        length += 1
        i += 1
    return s[start:start + length], i


def _parse_segment(s: str, command: Command, reader: Reader) -> Optional[str]:
    """Fill in the redirections of ``command``; return its word string."""
    words: Optional[str] = None

    def add(piece: str, glue: bool) -> None:
        nonlocal words
        if words is None:
            words = piece
        else:
            words = words + ("" if glue else " ") + piece

    n = len(s)
    i = 0
    while i < n:
        ch = s[i]
        if ch in _QUOTES:
            opening = i
            i += 1
            if i < n and s[i] != ch:
                close = s.find(ch, i)
                if close == -1:
                    close = n
                add(s[i:close], opening > 0 and s[opening - 1] != " ")
                i = close
        elif ch in _REDIRECTS:
            op = ch
            if i + 1 < n and s[i + 1] == ch:
                i += 1
                op = "<<" if ch == "<" else ">>"
            name, i = _read_target(s, i)
            _apply_redirect(command, op, name.replace("\t", " "), reader)
        elif ch not in " |":
            glue = i > 0 and s[i - 1] in _QUOTES
            start = i
            while i < n and s[i] not in _QUOTES:
                i += 1
                if i < n and (s[i] in _REDIRECTS or s[i] in " |"):
                    break
            add(s[start:i], glue)
            continue
        i += 1
    return words


def parse_line(line: str, state: ShellState, envp: list[str],
               reader: Optional[Reader] = None) -> list[Command]:
    """Parse ``line`` into the commands of a pipeline.

    Variables are expanded, redirection files are opened and here-documents
    read through ``reader``. An empty line gives no commands. A syntax error
    sets the exit status to 258 and raises :class:`ShellSyntaxError`.
    """
    if line == "":
        return []
    try:
        check_tokens(line)
    except ShellSyntaxError:
        state.exit_code = 258
        raise
    read = reader or _default_reader
    positions: list[int] = []
    if count_quoted(line, "|") > 0:
        line, positions = mask_quoted_pipes(line)
    segments = split_words(line, "|") if has_pipe(line) else [line]
    if positions:
        segments = restore_pipes(segments, positions)
    commands: list[Command] = []
    for segment in segments:
        text = expand(segment, state)
        command = Command(text=text, envp=envp)
        words = _parse_segment(mask_quoted_spaces(text), command, read)
        if words is not None:
            command.argv = unmask_spaces(split_words(words, " "))
            command.path = find_executable(
                command.argv[0] if command.argv else None, envp)
        commands.append(command)
    state.exit_code = 0
    return commands