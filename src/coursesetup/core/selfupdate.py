"""Self-update for the standalone setup script.

Students run the published ``course_setup.pyz`` straight from a download, so the script
checks for a newer published copy, swaps itself out and re-runs the new copy
once. The re-run gets a leading ``r`` token so it does not check again.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

from rich.console import Console

from .download import DownloadError, fetch_bytes

logger = logging.getLogger(__name__)

REEXEC_TOKEN = "r"


class SelfUpdater:
    """Replaces a local script with its published version and re-invokes it."""

    def __init__(
        self,
        url: str,
        script_path: Path,
        script_name: str,
        timeout: float = 30.0,
        console: Optional[Console] = None,
    ):
        self.url = url
        self.script_path = Path(script_path)
        self.script_name = script_name
        self.timeout = timeout
        self.console = console or Console()

    def applicable(self) -> bool:
        """Only a standalone copy of the script can update itself."""
        return self.script_path.name == self.script_name and self.script_path.is_file()

    def fetch_update(self) -> Optional[bytes]:
        """Return the published script if it differs from the local one.

        Fetch failures are logged and treated as "no update".
        """
        try:
            remote = fetch_bytes(self.url, timeout=self.timeout)
        except DownloadError as e:
            logger.warning("Could not check for updates: %s", e)
            return None
        if not remote:
            logger.warning("Published script at %s is empty; ignoring", self.url)
            return None
        if remote == self.script_path.read_bytes():
            logger.debug("Setup script is up to date")
            return None
        return remote

    def replace(self, content: bytes) -> None:
        """Atomically replace the local script, keeping its permissions."""
        mode = self.script_path.stat().st_mode
        fd, tmp_name = tempfile.mkstemp(
            dir=self.script_path.parent, prefix=f".{self.script_path.name}."
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, self.script_path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def reinvoke(self, args: Sequence[str]) -> int:
        """Run the updated script once with the original arguments."""
        argv: List[str] = [sys.executable, str(self.script_path), REEXEC_TOKEN, *args]
        logger.debug("Re-invoking: %s", " ".join(argv))
        return subprocess.run(argv).returncode

    def run(self, args: Sequence[str]) -> Optional[int]:
        """Update and re-invoke if a newer script is published.

        Returns:
            The exit status of the re-invoked script, or None if this
            process should carry on itself.
        """
        if not self.applicable():
            logger.debug("Not running from %s; skipping self-update", self.script_name)
            return None

        content = self.fetch_update()
        if content is None:
            return None

        try:
            self.replace(content)
        except OSError as e:
            logger.warning("Could not replace %s: %s", self.script_path, e)
            return None

        self.console.print("[bold]A newer setup script was downloaded; restarting it")
        return self.reinvoke(args)
