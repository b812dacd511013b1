"""SSH key and client configuration."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from rich.console import Console

from .commands import run_command

logger = logging.getLogger(__name__)


class SSHManager:
    """Manages the student's SSH keypair and client configuration.

    Attributes:
        ssh_dir (Path): The ~/.ssh directory.
        key_path (Path): Private key location; the public key sits beside it
            with a ``.pub`` suffix.
        key_type (str): Key algorithm passed to ssh-keygen.
    """

    def __init__(
        self,
        key_path: Path,
        key_type: str = "ed25519",
        console: Optional[Console] = None,
    ):
        self.key_path = Path(key_path).expanduser()
        self.ssh_dir = self.key_path.parent
        self.key_type = key_type
        self.console = console or Console()

    @property
    def public_key_path(self) -> Path:
        return self.key_path.with_name(self.key_path.name + ".pub")

    @property
    def config_path(self) -> Path:
        return self.ssh_dir / "config"

    @property
    def known_hosts_path(self) -> Path:
        return self.ssh_dir / "known_hosts"

    def ensure_ssh_dir(self) -> None:
        """Create ~/.ssh with owner-only permissions."""
        self.ssh_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(self.ssh_dir, 0o700)

    def ensure_key(self, comment: str) -> bool:
        """Generate a keypair if the private key is absent.

        Returns:
            True if a new key was generated, False if one already existed.

        Raises:
            CommandError: If ssh-keygen fails.
        """
        if self.key_path.exists():
            logger.debug("SSH key %s already exists", self.key_path)
            return False

        self.ensure_ssh_dir()
        run_command(
            [
                "ssh-keygen",
                "-q",
                "-t",
                self.key_type,
                "-N",
                "",
                "-C",
                comment,
                "-f",
                str(self.key_path),
            ]
        )
        self.console.print(f"[green]Generated SSH key: {self.key_path}")
        return True

    def register_with(self, host: str) -> None:
        """Install the public key on a remote host with ssh-copy-id.

        The student is prompted for their password on the remote host, so
        output is not captured.
        """
        self.console.print(f"[bold]Copying public key to {host} (enter your password there)")
        run_command(["ssh-copy-id", "-i", str(self.public_key_path), host], capture=False)

    def has_host_block(self, host: str) -> bool:
        """Check whether ~/.ssh/config already has a Host entry for host."""
        if not self.config_path.exists():
            return False
        for line in self.config_path.read_text().splitlines():
            parts = line.strip().split()
            if len(parts) >= 2 and parts[0].lower() == "host" and host in parts[1:]:
                return True
        return False

    def ensure_host_config(self, host: str, user: str = "git") -> bool:
        """Append a Host block for host to ~/.ssh/config if none exists.

        Returns:
            True if the config file was changed.
        """
        if self.has_host_block(host):
            return False

        self.ensure_ssh_dir()
        existing = self.config_path.read_text() if self.config_path.exists() else ""
        block = (
            f"Host {host}\n"
            f"    User {user}\n"
            f"    IdentityFile {self.key_path}\n"
            f"    IdentitiesOnly yes\n"
        )
        if existing and not existing.endswith("\n"):
            existing += "\n"
        if existing:
            existing += "\n"
        self.config_path.write_text(existing + block)
        os.chmod(self.config_path, 0o600)
        logger.info("Added %s to %s", host, self.config_path)
        return True

    def ensure_known_host(self, host: str) -> bool:
        """Add host's keys to known_hosts unless ssh-keygen already finds it.

        Returns:
            True if known_hosts was changed.

        Raises:
            CommandError: If ssh-keyscan fails.
        """
        self.ensure_ssh_dir()
        lookup = run_command(
            ["ssh-keygen", "-F", host, "-f", str(self.known_hosts_path)], check=False
        )
        if lookup.ok and lookup.stdout.strip():
            return False

        scan = run_command(["ssh-keyscan", "-H", host])
        if not scan.stdout.strip():
            logger.warning("ssh-keyscan returned no keys for %s", host)
            return False
        with open(self.known_hosts_path, "a") as f:
            f.write(scan.stdout if scan.stdout.endswith("\n") else scan.stdout + "\n")
        return True
