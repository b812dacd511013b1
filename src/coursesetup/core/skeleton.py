"""Skeleton file synchronization.

The course publishes a tarball of "skeleton" files (shell snippets, editor
settings, starter Makefiles) that every student environment must carry.
Skeleton files always win over what is on disk, but the previous version of
a changed file is kept once as ``<name>.bak``.
"""

from __future__ import annotations

import filecmp
import logging
import shutil
import tarfile
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.progress import Progress

from .download import download

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".bak"


class ArchiveError(RuntimeError):
    """Raised when a downloaded skeleton archive cannot be unpacked safely."""


def backup_path(path: Path) -> Path:
    """Return the single backup location for path."""
    return path.with_name(path.name + BACKUP_SUFFIX)


class SkeletonSync:
    """Mirrors skeleton files from an archive into a destination tree.

    Attributes:
        destination (Path): Root the archive's relative paths are mapped onto,
            normally the student's home directory.
        console (Console): Rich console for output formatting
    """

    def __init__(self, destination: Path, console: Optional[Console] = None):
        self.destination = Path(destination).expanduser()
        self.console = console or Console()

    def fetch(self, url: str, scratch_dir: Path, timeout: float = 30.0) -> Path:
        """Download the archive into scratch_dir.

        Raises:
            DownloadError: If the archive cannot be downloaded.
        """
        archive = scratch_dir / Path(url.split("?")[0]).name
        with Progress(console=self.console, transient=True) as progress:
            download(url, archive, timeout=timeout, progress=progress)
        return archive

    def extract(self, archive: Path, scratch_dir: Path) -> Path:
        """Unpack archive into a fresh directory under scratch_dir.

        Members with absolute paths, ``..`` components or links escaping the
        tree are rejected by tarfile's data filter.

        Raises:
            ArchiveError: If the archive is corrupt or has unsafe members.
        """
        root = scratch_dir / "skeleton"
        if root.exists():
            shutil.rmtree(root)
        root.mkdir(parents=True)
        try:
            with tarfile.open(archive) as tar:
                tar.extractall(root, filter="data")
        except tarfile.TarError as e:
            raise ArchiveError(f"Unusable skeleton archive {archive.name}: {e}") from e
        return root

    def sync_tree(self, source_root: Path) -> List[Path]:
        """Copy every regular file under source_root onto the destination.

        Returns:
            Destination paths whose content changed.
        """
        changed: List[Path] = []
        for src in sorted(source_root.rglob("*")):
            if src.is_symlink() or not src.is_file():
                continue
            rel_path = src.relative_to(source_root)
            if self.sync_file(src, self.destination / rel_path):
                changed.append(self.destination / rel_path)
        return changed

    def sync_file(self, src: Path, dst: Path) -> bool:
        """Install one skeleton file, backing up a differing existing copy.

        Returns:
            True if dst was written.
        """
        if dst.is_file() and filecmp.cmp(src, dst, shallow=False):
            logger.debug("Up to date: %s", dst)
            return False

        dst.parent.mkdir(parents=True, exist_ok=True)
        if dst.is_file():
            shutil.copy2(dst, backup_path(dst))
            self.console.print(f"[yellow]Backed up {dst} to {backup_path(dst).name}")
        elif dst.exists():
            raise IsADirectoryError(f"{dst} is a directory; cannot install skeleton file")

        shutil.copy2(src, dst)
        self.console.print(f"[green]Installed: {dst}")
        return True

    def sync(self, url: str, scratch_dir: Path, timeout: float = 30.0) -> List[Path]:
        """Download, extract and install the skeleton archive.

        Raises:
            DownloadError: If the archive cannot be downloaded.
            ArchiveError: If the archive cannot be unpacked.
        """
        archive = self.fetch(url, scratch_dir, timeout=timeout)
        root = self.extract(archive, scratch_dir)
        changed = self.sync_tree(root)
        if changed:
            self.console.print(f"[bold]Updated {len(changed)} skeleton file(s)")
        else:
            self.console.print("[green]Skeleton files already up to date")
        return changed
