"""Test configuration."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Dict, Generator, List, Optional, Sequence, Tuple

import pytest
from rich.console import Console

from coursesetup.core.commands import CommandError, CommandResult
from coursesetup.core.config import Config
from coursesetup.core.host import HostInfo, HostType

# Modules that import run_command directly
COMMAND_MODULES = [
    "coursesetup.core.desktop",
    "coursesetup.core.host",
    "coursesetup.core.packages",
    "coursesetup.core.repository",
    "coursesetup.core.ssh",
]


class FakeCommands:
    """Stand-in for run_command that records calls and replays canned output."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.responses: List[Tuple[Tuple[str, ...], Tuple[int, str, str]]] = []

    def respond(self, *prefix: str, stdout: str = "", returncode: int = 0, stderr: str = "") -> None:
        """Answer commands starting with prefix; later calls take precedence."""
        self.responses.append((prefix, (returncode, stdout, stderr)))

    def __call__(self, argv: Sequence[str], **kwargs: object) -> CommandResult:
        argv = [str(a) for a in argv]
        self.calls.append(argv)
        returncode, stdout, stderr = 0, "", ""
        for prefix, response in reversed(self.responses):
            if tuple(argv[: len(prefix)]) == prefix:
                returncode, stdout, stderr = response
                break
        if kwargs.get("check", True) and returncode != 0:
            raise CommandError(argv, returncode, stdout, stderr)
        return CommandResult(argv, returncode, stdout, stderr)

    def ran(self, *prefix: str) -> bool:
        return any(tuple(call[: len(prefix)]) == prefix for call in self.calls)

    def find(self, *prefix: str) -> List[List[str]]:
        return [call for call in self.calls if tuple(call[: len(prefix)]) == prefix]


@pytest.fixture
def fake_commands(monkeypatch: pytest.MonkeyPatch) -> FakeCommands:
    """Replace run_command everywhere with a recorder."""
    fake = FakeCommands()
    for module in COMMAND_MODULES:
        monkeypatch.setattr(f"{module}.run_command", fake)
    return fake


@pytest.fixture
def console() -> Console:
    """A console that writes to a buffer instead of the terminal."""
    return Console(record=True, width=120, force_terminal=False)


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """A fake home directory."""
    home_dir = tmp_path / "home" / "student"
    home_dir.mkdir(parents=True)
    return home_dir


@pytest.fixture
def test_config() -> Config:
    """Create a configuration that never pauses and points at a test server."""
    config = Config()
    config._merge_config(
        {
            "base_url": "https://setup.test/course",
            "pause_on_failure": False,
            "packages": {"base": ["git", "make"], "extra": ["tree"]},
            "git": {"host": "git.test", "remote_url": "git@git.test:{course}/{user}.git"},
        }
    )
    return config


def make_host(host_type: HostType, home: Path, windows_home: Optional[Path] = None) -> HostInfo:
    return HostInfo(
        host_type=host_type,
        hostname="testhost",
        user="m260000",
        home=home,
        windows_home=windows_home,
    )


@pytest.fixture
def vm_host(home: Path) -> HostInfo:
    """A host classified as the course VM."""
    return make_host(HostType.VM, home)


@pytest.fixture
def lab_host(home: Path) -> HostInfo:
    """A host classified as a shared lab machine."""
    return make_host(HostType.LAB, home)


@pytest.fixture
def wsl_host(home: Path, tmp_path: Path) -> HostInfo:
    """A host classified as WSL, with a fake Windows profile directory."""
    windows_home = tmp_path / "mnt" / "c" / "Users" / "student"
    windows_home.mkdir(parents=True)
    return make_host(HostType.WSL, home, windows_home)


def git(*args: str, cwd: Path) -> None:
    subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True)


@pytest.fixture
def remote_repo(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a Git repository to clone from."""
    repo_path = tmp_path / "remote"
    repo_path.mkdir()
    git("init", cwd=repo_path)
    git("config", "user.name", "Test User", cwd=repo_path)
    git("config", "user.email", "test@example.com", cwd=repo_path)
    (repo_path / "README.md").write_text("# Course Repository\n")
    git("add", "README.md", cwd=repo_path)
    git("commit", "-m", "Initial commit", cwd=repo_path)
    yield repo_path


@pytest.fixture
def skeleton_files() -> Dict[str, str]:
    """Relative path -> content of a small skeleton archive."""
    return {
        ".bash_course": "export COURSE=si204\n",
        ".vimrc": "set number\n",
        "bin/submit": "#!/bin/sh\necho submit\n",
    }
