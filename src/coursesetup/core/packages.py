"""OS package installation through apt."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Set

from rich.console import Console

from .commands import run_command

logger = logging.getLogger(__name__)

DPKG_FORMAT = "${Package} ${Status}\\n"


class PackageManager:
    """Installs the missing subset of a package list with apt-get."""

    def __init__(self, console: Optional[Console] = None, use_sudo: bool = True):
        self.console = console or Console()
        self.use_sudo = use_sudo

    def _privileged(self, argv: List[str]) -> List[str]:
        return ["sudo", *argv] if self.use_sudo else argv

    def installed(self, names: Iterable[str]) -> Set[str]:
        """Return the subset of names that dpkg reports as installed."""
        names = list(names)
        if not names:
            return set()
        # dpkg-query exits 1 when any name is unknown but still prints the rest
        result = run_command(["dpkg-query", "-W", "-f", DPKG_FORMAT, *names], check=False)
        found = set()
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) >= 2 and parts[-1] == "installed":
                found.add(parts[0].split(":")[0])
        return found

    def missing(self, names: Iterable[str]) -> List[str]:
        """Return target names not yet installed, de-duplicated, in order."""
        wanted: List[str] = []
        for name in names:
            if name not in wanted:
                wanted.append(name)
        present = self.installed(wanted)
        return [name for name in wanted if name not in present]

    def install(self, names: Iterable[str]) -> List[str]:
        """Install whatever is missing from names.

        Returns:
            The packages that were installed; empty if everything was
            already present.

        Raises:
            CommandError: If apt-get fails.
        """
        todo = self.missing(names)
        if not todo:
            self.console.print("[green]All packages already installed")
            return []

        self.console.print(f"[bold]Installing: {' '.join(todo)}")
        run_command(self._privileged(["apt-get", "update"]), capture=False)
        run_command(
            self._privileged(
                ["env", "DEBIAN_FRONTEND=noninteractive", "apt-get", "install", "-y", *todo]
            ),
            capture=False,
        )
        logger.info("Installed %d package(s)", len(todo))
        return todo
