"""Course git repository provisioning."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Callable, Optional

import click
from rich.console import Console

from .commands import run_command

logger = logging.getLogger(__name__)


class GitRepository:
    """Represents the student's course working tree.

    Attributes:
        path (Path): Path to the working tree. It is not resolved, because on
            WSL the path is a symlink into the Windows profile and the
            symlink itself is what the student sees.
    """

    def __init__(self, path: Path):
        """Initialize repository."""
        self.path = Path(path)
        self.name = self.path.name

    def __str__(self) -> str:
        """Return string representation."""
        return f"GitRepository({self.path})"

    def __repr__(self) -> str:
        """Return string representation."""
        return self.__str__()

    def exists(self) -> bool:
        """Check if the path exists and is the top of a Git working tree."""
        if not self.path.is_dir():
            return False
        try:
            top = self._run_git("rev-parse", "--show-toplevel")
        except RuntimeError:
            return False
        return Path(top).resolve() == self.path.resolve()

    def _run_git(self, *args: str, cwd: Optional[Path] = None) -> str:
        """Run a Git command and return its output."""
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=cwd or self.path,
                capture_output=True,
                text=True,
                check=True,
            )
            return result.stdout.strip()
        except FileNotFoundError as e:
            raise RuntimeError(f"Git is not installed: {e}")
        except subprocess.CalledProcessError as e:
            if e.stderr:
                raise RuntimeError(f"Git command failed: {e.stderr.strip()}")
            if e.stdout:
                raise RuntimeError(f"Git command failed: {e.stdout.strip()}")
            raise RuntimeError("Git command failed with no output")

    def clone(self, url: str) -> None:
        """Clone url into this repository's path.

        The path must not exist yet, or must be an empty directory (or a
        symlink to one).

        Raises:
            RuntimeError: If the clone fails.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._run_git("clone", url, str(self.path), cwd=self.path.parent)


def git_global_config(key: str) -> Optional[str]:
    """Read a global git setting, or None if unset."""
    result = run_command(["git", "config", "--global", "--get", key], check=False)
    value = result.stdout.strip()
    return value if result.ok and value else None


def set_git_global_config(key: str, value: str) -> None:
    """Set a global git setting.

    Raises:
        CommandError: If git cannot write the global config file.
    """
    run_command(["git", "config", "--global", key, value])


def aside_path(path: Path) -> Path:
    """Pick the first free ``<path>.old`` / ``<path>.old.N`` name."""
    candidate = path.with_name(path.name + ".old")
    n = 1
    while candidate.exists() or candidate.is_symlink():
        candidate = path.with_name(f"{path.name}.old.{n}")
        n += 1
    return candidate


class RepositoryProvisioner:
    """Ensures the course working tree exists and is the student's clone."""

    def __init__(
        self,
        repo_path: Path,
        remote_url: str,
        link_target: Optional[Path] = None,
        confirm: Callable[[str], bool] = click.confirm,
        console: Optional[Console] = None,
    ):
        """Initialize the provisioner.

        Args:
            repo_path: Where the working tree should live (e.g. ~/si204).
            remote_url: URL to clone from.
            link_target: If set, repo_path is made a symlink to this
                directory and the clone lands there (used on WSL so the
                files are visible from Windows).
            confirm: Prompt used before moving an unrelated path aside.
            console: Rich console for output.
        """
        self.repo_path = Path(repo_path)
        self.remote_url = remote_url
        self.link_target = Path(link_target) if link_target else None
        self.confirm = confirm
        self.console = console or Console()

    def _occupied_by_other(self) -> bool:
        path = self.repo_path
        if not (path.exists() or path.is_symlink()):
            return False
        if self.link_target is not None:
            if not path.is_symlink():
                return True
            return Path(os.readlink(path)) != self.link_target
        return not GitRepository(path).exists()

    def _move_aside(self) -> bool:
        target = aside_path(self.repo_path)
        if not self.confirm(
            f"{self.repo_path} exists but is not your course repository. "
            f"Rename it to {target.name} and continue?"
        ):
            self.console.print(f"[yellow]Left {self.repo_path} in place")
            return False
        self.repo_path.rename(target)
        self.console.print(f"[yellow]Moved {self.repo_path} to {target}")
        return True

    def provision(self) -> bool:
        """Make sure repo_path is a clone of remote_url.

        Returns:
            True if the repository is in place (already or newly cloned),
            False if the student declined to move an existing path aside.

        Raises:
            RuntimeError: If cloning fails.
        """
        repo = GitRepository(self.repo_path)

        if repo.exists() and not self._occupied_by_other():
            self.console.print(f"[green]Repository already present: {self.repo_path}")
            return True

        if self._occupied_by_other() and not self._move_aside():
            return False

        if self.link_target is not None:
            target_repo = GitRepository(self.link_target)
            if (self.link_target.exists() or self.link_target.is_symlink()) and (
                not target_repo.exists()
            ):
                if self.link_target.is_dir() and not any(self.link_target.iterdir()):
                    self.link_target.rmdir()
                else:
                    target = aside_path(self.link_target)
                    if not self.confirm(
                        f"{self.link_target} exists but is not your course repository. "
                        f"Rename it to {target.name} and continue?"
                    ):
                        return False
                    self.link_target.rename(target)
            if not target_repo.exists():
                self.console.print(f"[bold]Cloning {self.remote_url} into {self.link_target}")
                target_repo.clone(self.remote_url)
            if not self.repo_path.is_symlink():
                self.repo_path.symlink_to(self.link_target, target_is_directory=True)
            self.console.print(f"[green]Linked {self.repo_path} -> {self.link_target}")
            return True

        self.console.print(f"[bold]Cloning {self.remote_url} into {self.repo_path}")
        repo.clone(self.remote_url)
        self.console.print(f"[green]Cloned repository to {self.repo_path}")
        return True
