import os
import signal

import pytest

from minishell.shell import Shell, main

PATH = os.environ.get("PATH", "/usr/bin:/bin")


@pytest.fixture
def shell():
    previous = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGQUIT)}
    yield Shell([f"PATH={PATH}", "HOME=/tmp", "SHLVL=1", "USER=tester"])
    for sig, handler in previous.items():
        signal.signal(sig, handler)


def test_environment_setup(shell):
    env = shell.state.env
    assert env.find("SHLVL").value == "2"
    assert env.find("USER").value == "tester"
    previous_dir = env.find("OLD" + "PWD")
    assert previous_dir.value is None and previous_dir.equal is False


def test_export_then_expand(shell, capfd):
    assert shell.handle_line("export GREETING=hello") == 0
    assert shell.state.env.find("GREETING").value == "hello"
    shell.handle_line("echo $GREETING")
    assert capfd.readouterr().out == "hello\n"


def test_quoted_spaces_kept(shell, capfd):
    shell.handle_line("echo 'a  b'")
    assert capfd.readouterr().out == "a  b\n"


def test_unset(shell):
    shell.handle_line("unset USER")
    assert shell.state.env.find("USER") is None


def test_unbalanced_quote(shell, capfd):
    shell.handle_line('echo "open')
    assert capfd.readouterr().out == "Error quote\n"


def test_forbidden_char(shell, capfd):
    shell.handle_line("ls; pwd")
    assert capfd.readouterr().out == "';' is not a valid char\n"


def test_syntax_error(shell, capfd):
    assert shell.handle_line("echo hi |") == 258
    assert capfd.readouterr().err == "syntax error near unexpected token `newline'\n"


def test_end_of_input(shell, capfd):
    with pytest.raises(SystemExit) as info:
        shell.handle_line(None)
    assert info.value.code == 1
    assert capfd.readouterr().out == "exit\n"


def test_exit_builtin(shell):
    with pytest.raises(SystemExit) as info:
        shell.handle_line("exit 5")
    assert info.value.code == 5


def test_unknown_command(shell, capfd):
    assert shell.handle_line("no-such-command-for-tests") == 127
    assert capfd.readouterr().err == "no-such-command-for-tests: command not found\n"


def test_external_pipeline(shell, capfd):
    assert shell.handle_line("echo piped | cat") == 0
    assert capfd.readouterr().out == "piped\n"


def test_blank_line_keeps_status(shell):
    shell.state.exit_code = 4
    assert shell.handle_line("   ") == 4


def test_run_loop(shell, capfd):
    lines = iter(["export A=1", "echo $A"])
    status = shell.run(lambda prompt: next(lines, None))
    assert status == 1
    assert capfd.readouterr().out == "Starting the prompt !\n1\nexit\n"


def test_main_ends_on_eof(monkeypatch, capfd):
    previous = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGQUIT)}

    def no_input(prompt=""):
        raise EOFError

    monkeypatch.setattr("builtins.input", no_input)
    try:
        assert main([]) == 1
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
    out = capfd.readouterr().out
    assert "Starting the prompt !" in out
    assert out.endswith("exit\n")