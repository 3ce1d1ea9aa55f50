"""The interactive loop: read a line, run builtins, parse and run pipelines."""

from __future__ import annotations

import os
import signal
import sys
from typing import Callable, Iterable, Optional

from minishell.builtins import is_builtin, run_builtin
from minishell.environment import Environment, ShellState
from minishell.executor import install_exec_signals, install_prompt_signals, run_pipeline
from minishell.lexing import (
    ShellSyntaxError,
    check_forbidden_chars,
    has_pipe,
    is_blank,
    quotes_balanced,
    split_words,
)
from minishell.parser import parse_line

Reader = Callable[[str], Optional[str]]

PROMPT = "Prompt > "


def _read_prompt(prompt: str) -> Optional[str]:
    try:
        return input(prompt)
    except EOFError:
        return None


def _enable_history() -> None:
    try:
        import readline  # noqa: F401  (input() then keeps a history)
    except ImportError:
        pass


def _restore_signals(handlers: dict) -> None:
    for sig, handler in handlers.items():
        signal.signal(sig, handler)


class Shell:
    """A shell session with its own environment and exit status."""

    def __init__(self, envp: Optional[Iterable[str]] = None) -> None:
        if envp is None:
            envp = [f"{k}={v}" for k, v in os.environ.items()]
        self.state = ShellState(env=Environment.from_envp(envp))
        self._reader: Optional[Reader] = None

    def _run_direct_builtin(self, line: str) -> None:
        tokens = split_words(line, " ")
        if tokens and is_builtin(tokens[0]) and not has_pipe(line):
            run_builtin(tokens, self.state)

    def _run_commands(self, line: str, envp: list[str]) -> None:
        state = self.state
        try:
            commands = parse_line(line, state, envp, self._reader)
        except ShellSyntaxError as exc:
            print(exc, file=sys.stderr)
            return
        previous = install_exec_signals(state)
        try:
            run_pipeline(commands, state)
        finally:
            _restore_signals(previous)
            for command in commands:
                command.close()

    def handle_line(self, line: Optional[str]) -> int:
        """Run one input line; ``None`` means end of input and leaves the shell.

        Returns the exit status afterwards. ``exit`` and end of input raise
        SystemExit.
        """
        state = self.state
        if line is None:
            print("exit")
            raise SystemExit(1)
        envp = state.env.to_envp()
        self._run_direct_builtin(line)
        if not quotes_balanced(line):
            print("Error quote")
            return state.exit_code
        try:
            check_forbidden_chars(line)
        except ShellSyntaxError as exc:
            print(exc)
            return state.exit_code
        if is_blank(line):
            return state.exit_code
        self._run_commands(line, envp)
        return state.exit_code

    def run(self, reader: Optional[Reader] = None) -> int:
        """Prompt for lines until the shell exits; return its exit status."""
        if reader is None:
            _enable_history()
        read = reader or _read_prompt
        self._reader = reader
        print("Starting the prompt !")
        saved = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGQUIT)}
        try:
            while True:
                install_prompt_signals(self.state)
                try:
                    self.handle_line(read(PROMPT))
                except KeyboardInterrupt:
                    print()
        except SystemExit as exc:
            return exc.code if isinstance(exc.code, int) else 0
        finally:
            _restore_signals(saved)


def main(argv: Optional[list[str]] = None) -> int:
    """Start an interactive shell on the current environment."""
    return Shell().run()


if __name__ == "__main__":
    sys.exit(main())