"""Shell environment: variable list, envp conversion and shared shell state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

_WHITESPACE = " \t\n\v\f\r"
_DIGITS = "0123456789"


def parse_int(text: str) -> int:
    """Parse a leading integer the way C ``atoi`` does, wrapping to 32 bits.

    Leading whitespace and one sign are accepted; parsing stops at the first
    non-digit. Text without digits yields 0.
    """
    i = 0
    n = len(text)
    while i < n and text[i] in _WHITESPACE:
        i += 1
    sign = 1
    if i < n and text[i] in "+-":
        if text[i] == "-":
            sign = -1
        i += 1
    start = i
    while i < n and text[i] in _DIGITS:
        i += 1
    value = int(text[start:i] or "0") * sign
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value >= (1 << 31) else value


@dataclass
class EnvVar:
    """One environment variable.

    ``equal`` records whether the variable was given with an ``=`` sign;
    ``value`` is ``None`` when no value (or an empty one) was given.
    """

    name: str
    value: Optional[str] = None
    equal: bool = False


class Environment:
    """An ordered list of environment variables."""

    def __init__(self, variables: Optional[Iterable[EnvVar]] = None) -> None:
        self._vars: list[EnvVar] = list(variables or [])

    @classmethod
    def from_envp(cls, envp: Iterable[str]) -> "Environment":
        """Build the shell environment from ``NAME=value`` strings.

        Entries mentioning ``./minishell`` and any ``OLDPWD`` entry are
        dropped, ``SHLVL`` is incremented, and a bare ``OLDPWD`` is appended.
        """
        env = cls()
        for entry in envp:
            if "./minishell" in entry:
                pass
            elif not entry.startswith("OLDPW"):
                env.append(entry)
            if entry.startswith("SHLVL"):
                env._bump_shlvl()
        env.append("OLDPWD")
        return env

    def _bump_shlvl(self) -> None:
        if not self._vars:
            return
        last = self._vars[-1]
        last.value = str(parse_int(last.value or "") + 1)

    def append(self, entry: str) -> EnvVar:
        """Append a variable parsed from ``NAME`` or ``NAME=value``."""
        name, sep, value = entry.partition("=")
        equal = bool(sep)
        var = EnvVar(name=name, value=(value or None) if equal else None, equal=equal)
        self._vars.append(var)
        return var

    def find(self, name: str) -> Optional[EnvVar]:
        """Return the first variable called ``name``, or ``None``."""
        return next((var for var in self._vars if var.name == name), None)

    def remove(self, name: str) -> bool:
        """Remove the first variable called ``name``; report whether one was."""
        var = self.find(name)
        if var is None:
            return False
        self._vars.remove(var)
        return True

    def to_envp(self) -> list[str]:
        """Return ``NAME=value`` strings for every variable holding a value."""
        return [f"{var.name}={var.value}" for var in self._vars if var.value is not None]

    def __len__(self) -> int:
        return len(self._vars)

    def __iter__(self) -> Iterator[EnvVar]:
        return iter(self._vars)


@dataclass
class ShellState:
    """State shared by the whole shell: its environment and last exit status."""

    env: Environment = field(default_factory=Environment)
    exit_code: int = 0