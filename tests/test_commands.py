"""Tests for external command execution."""

from pathlib import Path

import pytest

from coursesetup.core.commands import CommandError, run_command


def test_captures_output() -> None:
    """Test capturing stdout of a successful command."""
    result = run_command(["sh", "-c", "echo hello"])
    assert result.ok
    assert result.stdout == "hello\n"


def test_failure_raises_with_stderr() -> None:
    """Test that a non-zero exit raises CommandError carrying the details."""
    with pytest.raises(CommandError) as excinfo:
        run_command(["sh", "-c", "echo nope >&2; exit 3"])
    assert excinfo.value.returncode == 3
    assert excinfo.value.stderr == "nope\n"
    assert "nope" in str(excinfo.value)


def test_unchecked_failure_returns_result() -> None:
    """Test check=False."""
    result = run_command(["sh", "-c", "exit 1"], check=False)
    assert not result.ok
    assert result.returncode == 1


def test_missing_executable() -> None:
    """Test that a missing program is reported as exit status 127."""
    with pytest.raises(CommandError) as excinfo:
        run_command(["course-setup-no-such-program"])
    assert excinfo.value.returncode == 127


def test_env_input_and_cwd(tmp_path: Path) -> None:
    """Test passing extra environment, stdin and a working directory."""
    result = run_command(
        ["sh", "-c", 'read line; echo "$line $GREETING $(pwd)"'],
        input="hi\n",
        env={"GREETING": "there"},
        cwd=str(tmp_path),
    )
    assert result.stdout.split() == ["hi", "there", str(tmp_path.resolve())]
