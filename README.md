# minishell

A small interactive shell that behaves like bash for simple command lines.
It reads a line and checks it. It expands variables, splits the line into a
pipeline and runs each command with its redirections.

## Features

- Pipelines with `|`.
- Redirections:
  - `<` reads from a file.
  - `>` writes to a file, truncating it.
  - `>>` appends to a file.
  - `<<` reads a here-document from the prompt, ending at the delimiter
    line.
- Single and double quotes. Inside double quotes, `$NAME` and `$?` are
  expanded. Inside single quotes, nothing is expanded.
- Builtins:
  - `echo`, with `-n`, `-nn` and so on.
  - `cd`. `cd -` goes to the previous directory. `cd ~`, `cd #` and a bare
    `cd` go home. `cd --` is accepted.
  - `pwd`, `export`, `unset`, `env` and `exit`.
- Checks on each line. Unbalanced quotes, misplaced `|`, `<` and `>`
  operators, `;` and `\` are reported, and the line is not run. After a
  syntax error, `$?` is 258.
- The exit status of the last command is kept and is visible through `$?`.
  A command that is not found gives 127.

## Installation

```
pip install .
```

## Usage

Start the interactive prompt:

```
minishell
```

Example session:

```
Prompt > export GREETING=hello
Prompt > echo "$GREETING world" | cat > out.txt
Prompt > cat < out.txt
hello world
Prompt > exit 0
exit
```

End of input (Ctrl-D) prints `exit` and leaves the shell with status 1. At
the prompt, Ctrl-C starts a new line and sets `$?` to 1. Ctrl-\ is ignored.

## Using it from Python

```python
from minishell.shell import Shell

shell = Shell(["PATH=/usr/bin:/bin", "HOME=/tmp"])
status = shell.handle_line("echo hi | cat")
```

`Shell(envp)` takes `NAME=value` strings. Without them it uses the current
process environment. `SHLVL` is incremented, and an empty `OLDPWD` is added.

`Shell.handle_line(line)` runs one line and returns the exit status. `exit`,
and a line of `None`, raise `SystemExit`.

`Shell.run(reader)` drives the read–evaluate loop and returns the final exit
status. `reader` is a callable that takes a prompt and returns the next
line, or `None` at end of input. The same reader also supplies here-document
lines.

The other modules can be used on their own:

- `minishell.environment` holds `Environment`, an ordered list of `EnvVar`,
  and `ShellState`, which is an environment plus the last exit status.
- `minishell.expander.expand(text, state)` expands `$NAME` and `$?`.
- `minishell.lexing` has the line checks and raises `ShellSyntaxError`.
- `minishell.parser.parse_line(line, state, envp, reader)` returns a list of
  `Command` objects. Their redirection files are already opened. Call
  `Command.close()` to close them.
- `minishell.executor.run_pipeline(commands, state)` runs the commands.
- `minishell.builtins` holds the builtin commands.

## What it does not do

- There is no globbing and no backslash escaping. `;`, `&&`, `||`,
  subshells and background jobs are not supported.
- Here-document text is taken as typed. Variables in it are not expanded.
- The stages of a pipeline run one after another. Each stage finishes
  before the next one starts, and its output is passed on in memory.
- `cd`, `export`, `unset`, `env`, `pwd` and `exit` take effect only when the
  line has no `|`. They are run on the raw line split at spaces, before
  quotes are removed and variables are expanded. Inside a pipeline they do
  nothing.

## Running the tests

```
pip install .[test]
pytest
```