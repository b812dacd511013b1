"""Shell and desktop preference configuration."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from rich.console import Console

from .commands import run_command

logger = logging.getLogger(__name__)


class ShellConfigurator:
    """Appends course lines to the student's ~/.bashrc."""

    def __init__(self, bashrc: Path, console: Optional[Console] = None):
        self.bashrc = Path(bashrc).expanduser()
        self.console = console or Console()

    def ensure_lines(self, lines: Iterable[str]) -> List[str]:
        """Append each line that is not already present.

        Returns:
            The lines that were appended.
        """
        existing = self.bashrc.read_text() if self.bashrc.exists() else ""
        present = {line.strip() for line in existing.splitlines()}
        added = [line for line in lines if line.strip() not in present]
        if not added:
            return []

        text = existing
        if text and not text.endswith("\n"):
            text += "\n"
        text += "".join(line + "\n" for line in added)
        self.bashrc.write_text(text)
        for line in added:
            self.console.print(f"[green]Added to {self.bashrc.name}: {line}")
        return added


class DesktopConfigurator:
    """Applies GNOME preferences through dconf, writing only changed keys."""

    def __init__(self, settings: Dict[str, str], console: Optional[Console] = None):
        self.settings = settings
        self.console = console or Console()

    @staticmethod
    def available() -> bool:
        return shutil.which("dconf") is not None

    def read(self, key: str) -> Optional[str]:
        result = run_command(["dconf", "read", key], check=False)
        value = result.stdout.strip()
        return value if result.ok and value else None

    def apply(self) -> List[str]:
        """Write every setting whose current value differs.

        Returns:
            Keys that were written.

        Raises:
            CommandError: If a dconf write fails.
        """
        written = []
        for key, value in self.settings.items():
            if self.read(key) == value:
                logger.debug("dconf %s already %s", key, value)
                continue
            run_command(["dconf", "write", key, value])
            written.append(key)
            logger.info("Set %s = %s", key, value)
        if written:
            self.console.print(f"[green]Updated {len(written)} desktop setting(s)")
        return written
