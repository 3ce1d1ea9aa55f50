"""Expansion of ``$NAME`` and ``$?`` in a command line."""

from __future__ import annotations

from typing import Optional

from minishell.environment import Environment, ShellState

_BOUNDARIES = frozenset(" \"'$")


def is_name_boundary(char: str) -> bool:
    """Whether ``char`` ends a variable name."""
    return char in _BOUNDARIES


def variable_name(text: str, index: int) -> str:
    """Return the variable name following the ``$`` at ``index``."""
    end = index + 1
    while end < len(text) and not is_name_boundary(text[end]):
        end += 1
    return text[index + 1:end]


def lookup(env: Environment, name: str) -> Optional[str]:
    """Return the value of variable ``name``, or ``None`` if it has none."""
    var = env.find(name)
    return None if var is None else var.value


def _expand_dollar(text: str, index: int, state: ShellState, out: list[str]) -> int:
    if text[index + 1:index + 2] == "?":
        out.append(str(state.exit_code))
        return index + 2
    name = variable_name(text, index)
    value = lookup(state.env, name)
    if value:
        out.append(value)
    return index + 1 + len(name)


def expand(text: str, state: ShellState) -> str:
    """Expand variables in ``text``, leaving single-quoted parts untouched.

    Quote characters are kept. Unknown variables and a ``$`` with no name
    after it expand to nothing.
    """
    out: list[str] = []
    i = 0
    n = len(text)
    in_single = False
    while i < n:
        ch = text[i]
        if ch == "'":
            in_single = not in_single
        if in_single:
            out.append(ch)
            i += 1
        elif ch == '"':
            out.append(ch)
            i += 1
            while i < n and text[i] != '"':
                if text[i] == "$":
                    i = _expand_dollar(text, i, state, out)
                else:
                    out.append(text[i])
                    i += 1
            if i < n:
                out.append(text[i])
                i += 1
        elif ch == "$":
            i = _expand_dollar(text, i, state, out)
        else:
            out.append(ch)
            i += 1
    return "".join(out)