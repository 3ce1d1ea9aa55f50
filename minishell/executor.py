"""Running a parsed pipeline, and the shell's signal handling."""

from __future__ import annotations

import signal
import subprocess
import sys
from typing import BinaryIO, Optional, Union

from minishell.builtins import echo, is_builtin
from minishell.environment import ShellState
from minishell.parser import Command

Stdin = Union[bytes, BinaryIO, None]
_Handlers = dict


class CommandNotFound(Exception):
    """A command that could not be found on ``PATH``."""

    def __init__(self, name: Optional[str]) -> None:
        self.name = name
        super().__init__(f"{name}: command not found" if name else "")


class _MissingInput(Exception):
    def __init__(self, path: Optional[str]) -> None:
        self.path = path
        super().__init__(f"{path}: No such file or directory")


def _report(exc: Exception) -> None:
    message = str(exc)
    if message:
        print(message, file=sys.stderr)


def _flush() -> None:
    sys.stdout.flush()
    sys.stderr.flush()


def _env_dict(envp: list[str]) -> dict[str, str]:
    env: dict[str, str] = {}
    for entry in envp:
        name, _, value = entry.partition("=")
        env[name] = value
    return env


def _output_handle(command: Command) -> Optional[BinaryIO]:
    if command.output_kind == "truncate":
        return command.outfile
    if command.output_kind == "append":
        return command.appendfile
    return None


def _stage_input(command: Command, previous: Stdin) -> Stdin:
    """Pick what the command reads: here-document, input file or the pipe."""
    if command.input_kind == "heredoc" and command.heredoc_delimiter:
        return (command.heredoc or "").encode()
    if command.input_kind == "file":
        if command.infile is None:
            raise _MissingInput(command.input_path)
        return command.infile
    return previous


def _execute(command: Command, stdin: Stdin, stdout) -> tuple[int, bytes]:
    _flush()
    kwargs = {
        "executable": command.path,
        "env": _env_dict(command.envp),
        "stdout": stdout,
    }
    if isinstance(stdin, bytes):
        kwargs["input"] = stdin
    else:
        kwargs["stdin"] = stdin
    try:
        result = subprocess.run(command.argv, **kwargs)
    except OSError:
        return 1, b""
    return max(result.returncode, 0), result.stdout or b""


def _run_middle(command: Command, previous: Stdin) -> bytes:
    """Run a stage followed by another; return what the next stage reads."""
    argv = command.argv
    if argv and is_builtin(argv[0]):
        return b""
    redirected = command.output_kind is not None
    try:
        if command.path is None:
            raise CommandNotFound(argv[0] if argv else None)
        stdin = _stage_input(command, previous)
    except (CommandNotFound, _MissingInput) as exc:
        _report(exc)
        return b""
    target = _output_handle(command) if redirected else subprocess.PIPE
    _, out = _execute(command, stdin, target)
    return b"" if redirected else out


def _run_last(command: Command, previous: Stdin) -> int:
    argv = command.argv
    if argv and argv[0] == "echo" and command.output_kind is None:
        echo(argv)
        return 0
    if not argv:
        return 1
    if is_builtin(argv[0]):
        return 0
    try:
        if command.path is None:
            raise CommandNotFound(argv[0])
        stdin = _stage_input(command, previous)
    except CommandNotFound as exc:
        _report(exc)
        return 127
    except _MissingInput as exc:
        _report(exc)
        return 1
    status, _ = _execute(command, stdin, _output_handle(command))
    return status


def run_pipeline(commands: list[Command], state: ShellState) -> int:
    """Run the stages one after another, each reading the previous one's output.

    Returns the status of the last stage, which also becomes the shell's exit
    status unless a signal already set one.
    """
    if not commands:
        return state.exit_code
    data: Stdin = None
    for command in commands[:-1]:
        data = _run_middle(command, data)
    status = _run_last(commands[-1], data)
    if state.exit_code == 0:
        state.exit_code = status
    return status


def _save_handlers() -> _Handlers:
    return {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGQUIT)}


def _disable_echoctl() -> None:
    try:
        import termios
    except ImportError:
        return
    try:
        attrs = termios.tcgetattr(1)
        attrs[3] &= ~termios.ECHOCTL
        termios.tcsetattr(1, termios.TCSANOW, attrs)
    except (termios.error, AttributeError, OSError):
        pass


def install_prompt_signals(state: ShellState) -> _Handlers:
    """Handle signals while waiting at the prompt; return the old handlers.

    Ctrl-C sets the exit status to 1 and raises KeyboardInterrupt; Ctrl-\\ is
    ignored.
    """
    previous = _save_handlers()

    def on_interrupt(signum, frame) -> None:
        state.exit_code = 1
        _disable_echoctl()
        raise KeyboardInterrupt

    signal.signal(signal.SIGINT, on_interrupt)
    signal.signal(signal.SIGQUIT, signal.SIG_IGN)
    return previous


def install_exec_signals(state: ShellState) -> _Handlers:
    """Handle signals while a pipeline runs; return the old handlers."""
    previous = _save_handlers()

    def on_signal(signum, frame) -> None:
        if signum == signal.SIGINT:
            state.exit_code = 130
        elif signum == signal.SIGQUIT:
            print("^\\Quit : 3", file=sys.stderr)
            state.exit_code = 131

    signal.signal(signal.SIGINT, on_signal)
    signal.signal(signal.SIGQUIT, on_signal)
    return previous