"""Tests for the .env parser."""

from __future__ import annotations

import pytest

from keypa.dotenv import DotEnv, find_dotenv


@pytest.fixture
def write(tmp_path):
    def _write(text: str):
        path = tmp_path / ".env"
        path.write_text(text)
        return path

    return _write


def test_basic_pairs_comments_and_blanks(write):
    path = write("# comment\n\nA=1\nB = two\nexport C=3\n")
    assert DotEnv(path, environ={}).read() == {"A": "1", "B": "two", "C": "3"}


def test_quotes(write):
    path = write('D="line\\nbreak"\nS=\'$NOT_EXPANDED\'\n')
    values = DotEnv(path, environ={}).read()
    assert values["D"] == "line\nbreak"
    assert values["S"] == "$NOT_EXPANDED"


def test_inline_comment_on_unquoted_value(write):
    path = write("A=1 # the answer\nB=a#b\n")
    values = DotEnv(path, environ={}).read()
    assert values["A"] == "1"
    assert values["B"] == "a#b"


def test_inline_comment_after_quoted_value(write):
    path = write(
        'A="hello world" # note\n'
        "B='x' # c\n"
        'C="tab\\there $USER" # expanded\n'
        "D='$USER # kept'\n"
    )
    values = DotEnv(path, environ={"USER": "keypa"}).read()
    assert values["A"] == "hello world"
    assert values["B"] == "x"
    assert values["C"] == "tab\there keypa"
    assert values["D"] == "$USER # kept"


def test_unterminated_quote_is_ignored(write):
    path = write('A="open\nB=ok\n')
    assert DotEnv(path, environ={}).read() == {"B": "ok"}


def test_expansion_prefers_environ_then_file(write):
    path = write("HOST=localhost\nURL=http://${HOST}:$PORT/\n")
    values = DotEnv(path, environ={"PORT": "8080"}).read()
    assert values["URL"] == "http://localhost:8080/"


def test_unparsable_lines_are_ignored(write):
    path = write("not a pair\n1BAD=x\nGOOD=y\n")
    assert DotEnv(path, environ={}).read() == {"GOOD": "y"}


def test_later_assignment_wins(write):
    path = write("A=1\nA=2\n")
    assert DotEnv(path, environ={}).read() == {"A": "2"}


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        DotEnv(tmp_path / "missing").read()


def test_find_dotenv(tmp_path):
    (tmp_path / ".env").write_text("A=1\n")
    nested = tmp_path / "x" / "y"
    nested.mkdir(parents=True)
    assert find_dotenv(start=nested) == (tmp_path / ".env").resolve()
    assert find_dotenv(".env.never-present-anywhere", start=nested) is None
