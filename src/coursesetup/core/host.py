"""Host detection for course-setup.

Course machines come in three flavours that need different treatment:
the VirtualBox/VMware image students run at home, WSL on a Windows laptop,
and the shared lab workstations where students have no root access.
"""

from __future__ import annotations

import getpass
import logging
import os
import platform
import socket
from enum import Enum
from fnmatch import fnmatch
from pathlib import Path
from typing import Iterable, Optional

from .commands import CommandError, run_command
from .config import Config

logger = logging.getLogger(__name__)


class HostType(Enum):
    VM = "vm"
    WSL = "wsl"
    LAB = "lab"


def classify_host(hostname: str, kernel_release: str, lab_patterns: Iterable[str]) -> HostType:
    """Classify a machine from its hostname and kernel release string."""
    if "microsoft" in kernel_release.lower():
        return HostType.WSL
    short_name = hostname.split(".")[0].lower()
    if any(fnmatch(short_name, pattern.lower()) for pattern in lab_patterns):
        return HostType.LAB
    return HostType.VM


class HostInfo:
    """Facts about the machine being provisioned."""

    def __init__(
        self,
        host_type: HostType,
        hostname: str,
        user: str,
        home: Path,
        windows_home: Optional[Path] = None,
    ):
        self.host_type = host_type
        self.hostname = hostname
        self.user = user
        self.home = home
        self.windows_home = windows_home

    @property
    def is_wsl(self) -> bool:
        return self.host_type is HostType.WSL

    @property
    def is_lab(self) -> bool:
        return self.host_type is HostType.LAB

    @property
    def is_vm(self) -> bool:
        return self.host_type is HostType.VM

    def __repr__(self) -> str:
        return f"HostInfo({self.host_type.value}, {self.user}@{self.hostname})"


def windows_home() -> Path:
    """Return the Linux path of the Windows user's profile directory.

    Raises:
        CommandError: If cmd.exe or wslpath are unavailable or fail.
    """
    # cmd.exe complains about UNC working directories, so run it from /mnt/c
    result = run_command(["cmd.exe", "/C", "echo %USERPROFILE%"], cwd="/mnt/c")
    profile = result.stdout.strip()
    if not profile or "%" in profile:
        raise CommandError(["cmd.exe", "/C", "echo %USERPROFILE%"], 1, stderr="USERPROFILE unset")
    converted = run_command(["wslpath", "-u", profile])
    return Path(converted.stdout.strip())


def detect_host(config: Config) -> HostInfo:
    """Detect the current host, honouring a configured host_type override."""
    hostname = socket.gethostname()
    override = config.get("host_type")
    if override:
        host_type = HostType(override)
        logger.debug("Host type forced to %s by configuration", host_type.value)
    else:
        host_type = classify_host(hostname, platform.release(), config.lab_hostname_patterns)
        logger.debug("Detected host type %s (hostname=%s)", host_type.value, hostname)

    win_home: Optional[Path] = None
    if host_type is HostType.WSL:
        configured = config.section("wsl").get("windows_home")
        if configured:
            win_home = Path(configured).expanduser()
        else:
            try:
                win_home = windows_home()
            except CommandError as e:
                logger.warning("Could not locate the Windows home directory: %s", e)

    return HostInfo(
        host_type=host_type,
        hostname=hostname,
        user=getpass.getuser(),
        home=Path(os.path.expanduser("~")),
        windows_home=win_home,
    )
