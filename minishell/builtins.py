"""Commands the shell runs itself: cd, pwd, echo, env, export, unset, exit."""

from __future__ import annotations

import os
import sys
from typing import Optional

from minishell.environment import EnvVar, Environment, ShellState

_BUILTINS = frozenset({"cd", "export", "exit", "unset", "pwd", "env"})
_WHITESPACE = " \t\n\v\f\r"
_LONG_MIN = -(1 << 63)
_LONG_MAX = (1 << 63) - 1
_GETCWD_ERROR = (
    "error retrieving current directory: getcwd: cannot"
    " access parent directories: No such file or directory"
)


def _err(message: str) -> None:
    print(message, file=sys.stderr)


def _getcwd() -> Optional[str]:
    try:
        return os.getcwd()
    except OSError:
        return None


def _chdir(path: Optional[str]) -> None:
    """Change directory, ignoring failures as the shell does."""
    if not path:
        return
    try:
        os.chdir(path)
    except OSError:
        pass


def is_builtin(name: Optional[str]) -> bool:
    """Whether ``name`` is a command the shell runs in its own process."""
    return name in _BUILTINS


def run_builtin(argv: list[str], state: ShellState) -> int:
    """Run the builtin named by ``argv[0]``; return 0 if one ran, else 1."""
    if not argv:
        return 1
    state.exit_code = 0
    name = argv[0]
    if name == "cd":
        cd(argv, state)
    elif name == "pwd":
        pwd(state)
    elif name == "unset":
        unset(argv, state)
    elif name == "export":
        export(argv, state)
    elif name == "env":
        return env_builtin(state)
    elif name == "exit":
        exit_builtin(argv, state)
    else:
        return 1
    return 0


def is_valid_identifier(text: str) -> bool:
    """Whether the part of ``text`` before any ``=`` is a valid variable name."""
    if not text:
        return False
    first = text[0]
    if first != "_" and not (first.isascii() and first.isalpha()):
        return False
    name = text.partition("=")[0]
    return all(ch == "_" or (ch.isascii() and ch.isalnum()) for ch in name)


def parse_long(text: str) -> int:
    """Parse ``text`` as a signed 64-bit integer.

    Leading whitespace and one sign are accepted. Raises ValueError when
    anything follows the digits or the value does not fit.
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
    while i < n and text[i].isascii() and text[i].isdigit():
        i += 1
    if i < n:
        raise ValueError(f"numeric argument required: {text!r}")
    value = sign * int(text[start:i] or "0")
    if not _LONG_MIN <= value <= _LONG_MAX:
        raise ValueError(f"numeric argument out of range: {text!r}")
    return value


def _is_n_flag(token: str) -> bool:
    return token.startswith("-") and all(ch == "n" for ch in token[1:])


def echo(argv: list[str]) -> None:
    """Print the arguments separated by spaces; ``-n`` suppresses the newline."""
    args = argv[1:]
    newline = True
    while args and _is_n_flag(args[0]):
        newline = False
        args = args[1:]
    sys.stdout.write(" ".join(args) + ("\n" if newline else ""))
    sys.stdout.flush()


def _cd_dir(path: str, prev_var: Optional[EnvVar], cur_var: Optional[EnvVar]) -> None:
    if prev_var is not None:
        prev_var.value = cur_var.value if cur_var is not None else _getcwd()
    _chdir(path)
    if cur_var is None:
        return
    previous = cur_var.value
    cur_var.value = _getcwd()
    if cur_var.value is not None:
        return
    _err(f"cd: {_GETCWD_ERROR}")
    cur_var.value = f"{previous or ''}/.."


def _cd_previous(state: ShellState, prev_var: Optional[EnvVar],
                 cur_var: Optional[EnvVar]) -> None:
    if prev_var is None or not prev_var.value:
        print("bash: cd: OLDPWD not set")
        state.exit_code = 1
        return
    before = _getcwd()
    try:
        os.chdir(prev_var.value)
    except OSError as exc:
        state.exit_code = 1
        _err(f"bash: cd: {prev_var.value}: {exc.strerror}")
        return
    print(prev_var.value)
    if cur_var is not None:
        prev_var.value = cur_var.value
        cur_var.value = _getcwd()
    else:
        prev_var.value = before


def _cd_home(path: Optional[str], state: ShellState, prev_var: Optional[EnvVar],
             cur_var: Optional[EnvVar], home: Optional[EnvVar]) -> None:
    if home is None:
        if path == "~":
            path = os.environ.get("HOME")
        else:
            _err("bash: cd: HOME not set")
            state.exit_code = 1
            return
    if prev_var is not None:
        prev_var.value = cur_var.value if cur_var is not None else _getcwd()
    target = home.value if home is not None else path
    if cur_var is not None:
        cur_var.value = target
    _chdir(target)


def cd(argv: list[str], state: ShellState) -> None:
    """Change directory, keeping ``PWD`` and ``OLDPWD`` up to date."""
    path = argv[1] if len(argv) > 1 else None
    if path == "--":
        path = argv[2] if len(argv) > 2 else None
    elif path is not None and len(argv) > 2:
        _err("bash: cd: too many arguments")
        state.exit_code = 1
        return
    env = state.env
    prev_var = env.find("OLD" + "PWD")
    cur_var = env.find("P" + "WD")
    home = env.find("HOME")
    if path is not None and path not in ("~", "#", "-"):
        try:
            with os.scandir(path):
                pass
        except OSError as exc:
            _err(f"bash: cd: {path}: {exc.strerror}")
            state.exit_code = 1
            return
    if path is None or path in ("~", "#"):
        _cd_home(path, state, prev_var, cur_var, home)
    elif path == "-":
        _cd_previous(state, prev_var, cur_var)
    else:
        _cd_dir(path, prev_var, cur_var)


def pwd(state: ShellState) -> None:
    """Print the working directory, falling back to ``PWD`` if it is gone."""
    cwd = _getcwd()
    if cwd is not None:
        print(cwd)
        return
    var = state.env.find("P" + "WD")
    if var is None:
        _err(f"pwd: {_GETCWD_ERROR}")
        return
    print(var.value or "")


def env_builtin(state: ShellState) -> int:
    """Print every variable given with ``=``; return 1 if there are none."""
    if len(state.env) == 0:
        return 1
    for var in state.env:
        if var.value is not None:
            print(f"{var.name}={var.value}")
        elif var.equal:
            print(f"{var.name}=")
    print("_=/usr/bin/env")
    return 0


def export_listing(env: Environment) -> list[str]:
    """Return the ``declare -x`` lines for ``env``, sorted by name."""
    lines = []
    for var in sorted(env, key=lambda v: v.name):
        if var.value is None and not var.equal:
            lines.append(f"declare -x {var.name}")
        elif var.value is None:
            lines.append(f'declare -x {var.name}=""')
        elif var.name != "_":
            lines.append(f'declare -x {var.name}="{var.value}"')
    return lines


def _set_var(entry: str, env: Environment) -> None:
    name, sep, value = entry.partition("=")
    var = env.find(name)
    if var is None:
        env.append(entry)
    elif sep:
        var.value = value or None
        var.equal = True


def export(argv: list[str], state: ShellState) -> None:
    """Set variables, or list them all when given no arguments."""
    if len(argv) < 2:
        for line in export_listing(state.env):
            print(line)
        return
    for token in argv[1:]:
        if not is_valid_identifier(token):
            _err(f"bash: export: {token}: not a valid identifier")
            state.exit_code = 1
        else:
            _set_var(token, state.env)


def unset(argv: list[str], state: ShellState) -> None:
    """Remove the named variables."""
    for token in argv[1:]:
        if not is_valid_identifier(token):
            _err(f"bash: export: {token}: not a valid identifier")
            state.exit_code = 1
        else:
            state.env.remove(token)


def exit_builtin(argv: list[str], state: ShellState) -> None:
    """Leave the shell by raising SystemExit, unless given too many arguments."""
    if len(argv) < 2:
        print("exit")
        raise SystemExit(state.exit_code)
    try:
        number = parse_long(argv[1])
    except ValueError:
        print("exit")
        _err(f"minishell: exit: {argv[1]}: numeric argument required")
        state.exit_code = 255
        raise SystemExit(255) from None
    if len(argv) > 2:
        _err("minishell: exit: too many arguments")
        state.exit_code = 1
        return
    print("exit")
    state.exit_code = number % 256
    raise SystemExit(state.exit_code)