import pytest

from minishell.lexing import (
    ShellSyntaxError,
    check_forbidden_chars,
    check_tokens,
    count_quoted,
    has_pipe,
    is_blank,
    is_operator_char,
    mask_quoted_pipes,
    mask_quoted_spaces,
    quotes_balanced,
    restore_pipes,
    split_words,
    unmask_spaces,
)


def test_split_words_simple():
    assert split_words("ls -l", " ") == ["ls", "-l"]


@pytest.mark.parametrize("text", ["  a  b ", "|x||y|", "", "   ", "one"])
@pytest.mark.parametrize("sep", [" ", "|"])
def test_split_words_invariants(text, sep):
    words = split_words(text, sep)
    assert all(word and sep not in word for word in words)
    assert "".join(words) == text.replace(sep, "")


@pytest.mark.parametrize(
    "line,expected",
    [
        ('echo "hi"', True),
        ("echo 'it\"s'", True),
        ('echo "open', False),
        ("echo 'open", False),
        ("plain text", True),
        ("'a' \"b\" 'c", False),
    ],
)
def test_quotes_balanced(line, expected):
    assert quotes_balanced(line) is expected


def test_quotes_balanced_none():
    assert quotes_balanced(None) is False


def test_has_pipe():
    assert has_pipe("ls | wc")
    assert not has_pipe("ls -l")
    assert not has_pipe(None)


@pytest.mark.parametrize(
    "char,expected",
    [("<", True), (">", True), ("|", True), ("a", False), ("", False), (" ", False)],
)
def test_is_operator_char(char, expected):
    assert is_operator_char(char) is expected


@pytest.mark.parametrize(
    "line,expected", [("", True), ("    ", True), (" a ", False), ("\t", False)]
)
def test_is_blank(line, expected):
    assert is_blank(line) is expected


def test_check_forbidden_chars():
    assert check_forbidden_chars("echo hi") is None
    with pytest.raises(ShellSyntaxError, match="';' is not a valid char"):
        check_forbidden_chars("ls; pwd")
    with pytest.raises(ShellSyntaxError) as info:
        check_forbidden_chars("echo a\\b")
    assert str(info.value) == "'\\' is not a valid char"


@pytest.mark.parametrize(
    "line,token",
    [
        ("echo hi |", "newline"),
        ("ls >", "newline"),
        ("ls | >", "newline"),
        ("ls >>", "newline"),
        ("ls | | wc", "|"),
        ("cat <<< x", "<"),
        ("ls > > f", ">"),
        ("ls >>> f", ">"),
        ("echo a >| b", "|"),
    ],
)
def test_check_tokens_rejects(line, token):
    with pytest.raises(ShellSyntaxError) as info:
        check_tokens(line)
    assert str(info.value) == f"syntax error near unexpected token `{token}'"


@pytest.mark.parametrize(
    "line",
    [
        "ls -l",
        "ls | wc",
        "cat << EOF",
        "ls >> out",
        "ls | > out",
        "echo '|' | wc",
        'echo ">" "<"',
        "cat < in > out",
    ],
)
def test_check_tokens_accepts(line):
    assert check_tokens(line) is None


def test_count_quoted_ignores_unquoted():
    assert count_quoted("a | b", "|") == 0


@pytest.mark.parametrize(
    "line", ['echo "a|b" | grep \'x|y\'', "ls | wc", "'||' \"|\"", 'echo "a b c"']
)
def test_count_quoted_matches_mask(line):
    masked, positions = mask_quoted_pipes(line)
    assert count_quoted(line, "|") == len(positions)
    assert len(masked) == len(line)
    assert all(masked[p] == "a" and line[p] == "|" for p in positions)
    assert masked.count("|") == line.count("|") - len(positions)


def test_mask_quoted_pipes_keeps_real_pipes():
    line = 'echo "x|y" | cat'
    masked, positions = mask_quoted_pipes(line)
    assert len(split_words(masked, "|")) == 2
    assert positions == [line.index("x|y") + 1]


@pytest.mark.parametrize(
    "line",
    ['echo "a|b" | grep \'x|y\'', "ls | wc", 'echo "|" | cat "|" | wc', "plain"],
)
def test_restore_pipes_round_trip(line):
    masked, positions = mask_quoted_pipes(line)
    segments = split_words(masked, "|")
    assert "|".join(restore_pipes(segments, positions)) == line


def test_restore_pipes_without_positions():
    segments = ["ls ", " wc"]
    assert restore_pipes(segments, []) == segments


def test_mask_quoted_spaces_round_trip():
    line = 'echo "hello world" plain'
    masked = mask_quoted_spaces(line)
    assert len(masked) == len(line)
    words = unmask_spaces(split_words(masked, " "))
    assert words == ["echo", '"hello world"', "plain"]
    assert " ".join(words) == line


def test_mask_quoted_spaces_leaves_unquoted():
    line = "a b  c"
    assert mask_quoted_spaces(line) == line
    assert count_quoted(line, " ") == 0


def test_unmask_spaces_returns_new_list():
    words = ["a\tb", "c"]
    result = unmask_spaces(words)
    assert result == ["a b", "c"]
    assert words == ["a\tb", "c"]