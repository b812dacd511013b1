"""Configuration management for course-setup."""

from __future__ import annotations

import copy
import string
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml
from rich.console import Console

console = Console()

DEFAULT_CONFIG: Dict[str, Any] = {
    "course": "si204",
    "base_url": "https://courses.example.edu/si204/setup",
    "host_type": None,
    "lab_hostname_patterns": ["lnx*", "mich*", "lab-*"],
    "pause_on_failure": True,
    "failure_exit_code": 1,
    "self_update": {
        "enabled": True,
        "script_name": "course_setup.pyz",
    },
    "packages": {
        "base": ["git", "curl", "openssh-client", "build-essential", "gdb", "make"],
        "extra": ["valgrind", "clang-format", "tree", "meld"],
    },
    "ssh": {
        "key_type": "ed25519",
        "key_path": "~/.ssh/id_ed25519",
        "register_host": None,
    },
    "git": {
        "host": "git.example.edu",
        "remote_url": "git@git.example.edu:{course}/{user}.git",
        "user_name": None,
        "user_email": None,
    },
    "skeleton": {
        "archive": "skeleton.tar.gz",
        "destination": "~",
    },
    "bashrc_lines": [
        "[ -f ~/.bash_course ] && . ~/.bash_course",
        "[ -f ~/.bash_aliases_course ] && . ~/.bash_aliases_course",
    ],
    "desktop": {
        "dconf": {
            "/org/gnome/terminal/legacy/profiles:/:b1dcc9dd-5262-4d8d-a863-c897e6d979b9/use-theme-colors": "false",
            "/org/gnome/terminal/legacy/profiles:/:b1dcc9dd-5262-4d8d-a863-c897e6d979b9/foreground-color": "'rgb(0,0,0)'",
            "/org/gnome/terminal/legacy/profiles:/:b1dcc9dd-5262-4d8d-a863-c897e6d979b9/background-color": "'rgb(255,255,221)'",
            "/org/gnome/desktop/session/idle-delay": "uint32 0",
            "/org/gnome/desktop/screensaver/lock-enabled": "false",
            "/org/gnome/settings-daemon/plugins/power/sleep-inactive-ac-type": "'nothing'",
            "/org/gnome/shell/favorite-apps": "['org.gnome.Terminal.desktop', 'firefox.desktop', 'code.desktop', 'org.gnome.Nautilus.desktop']",
        },
    },
    "wsl": {
        "windows_home": None,
        "distro": None,
        "terminal_settings": (
            "AppData/Local/Packages/Microsoft.WindowsTerminal_8wekyb3d8bbwe/LocalState/settings.json"
        ),
        "profile_defaults": {
            "startingDirectory": "~",
            "colorScheme": "Campbell",
            "cursorShape": "bar",
            "bellStyle": "none",
        },
    },
    "http": {
        "timeout": 30.0,
    },
}

# Top-level keys whose values are mappings merged one level deep
SECTIONS = ("self_update", "packages", "ssh", "git", "skeleton", "desktop", "wsl", "http")

# Placeholders git.remote_url may use
REMOTE_URL_FIELDS = ("user", "course")


def _check_placeholders(name: str, template: str, allowed: Sequence[str]) -> List[str]:
    try:
        fields = [
            field for _, field, _, _ in string.Formatter().parse(template) if field is not None
        ]
    except ValueError as e:
        return [f"{name} is not a valid template: {e}"]
    return [
        f"{name} uses unknown placeholder {{{field}}}; allowed: {', '.join(allowed)}"
        for field in fields
        if field not in allowed
    ]


class Config:
    """Configuration class for course-setup."""

    def __init__(self, config_file: Optional[Path] = None) -> None:
        """Initialize configuration, optionally overlaying a YAML file."""
        self.config: Dict[str, Any] = {}
        self.course: str = ""
        self.base_url: str = ""
        self.lab_hostname_patterns: List[str] = []
        self.base_packages: List[str] = []
        self.extra_packages: List[str] = []
        self.bashrc_lines: List[str] = []
        self.dconf_settings: Dict[str, str] = {}
        self.load_config(config_file)

    def load_config(self, config_file: Optional[Path] = None) -> None:
        """Load configuration from file."""
        # Start with default configuration
        self._merge_config(copy.deepcopy(DEFAULT_CONFIG))

        if config_file is not None:
            try:
                with open(config_file, "r") as f:
                    user_config = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                console.print(f"[red]Error loading config file: {e}[/red]")
                raise ValueError(f"Could not load config file {config_file}: {e}") from e
            if user_config:
                self._merge_config(user_config)

    def _merge_config(self, config: Dict[str, Any]) -> None:
        """Merge configuration with current configuration."""
        if not isinstance(config, dict):
            raise ValueError("Configuration must be a dictionary")

        for key, value in config.items():
            if key in SECTIONS:
                if not isinstance(value, dict):
                    raise ValueError(f"{key} must be a dictionary")
                section = self.config.setdefault(key, {})
                for sub_key, sub_value in value.items():
                    if isinstance(sub_value, dict) and isinstance(section.get(sub_key), dict):
                        section[sub_key] = {**section[sub_key], **sub_value}
                    else:
                        section[sub_key] = sub_value
            else:
                self.config[key] = value

        if "course" in config:
            if not isinstance(config["course"], str) or not config["course"]:
                raise ValueError("course must be a non-empty string")
            self.course = config["course"]

        if "base_url" in config:
            if not isinstance(config["base_url"], str):
                raise ValueError("base_url must be a string")
            self.base_url = config["base_url"].rstrip("/")

        if "host_type" in config:
            host_type = config["host_type"]
            if host_type is not None and host_type not in ("vm", "wsl", "lab"):
                raise ValueError("host_type must be one of vm, wsl, lab")

        if "lab_hostname_patterns" in config:
            if not isinstance(config["lab_hostname_patterns"], list):
                raise ValueError("lab_hostname_patterns must be a list")
            self.lab_hostname_patterns = config["lab_hostname_patterns"]

        if "failure_exit_code" in config:
            if not isinstance(config["failure_exit_code"], int):
                raise ValueError("failure_exit_code must be an integer")

        if "packages" in config:
            packages = self.config["packages"]
            for name in ("base", "extra"):
                if not isinstance(packages.get(name, []), list):
                    raise ValueError(f"packages.{name} must be a list")
            self.base_packages = packages.get("base", [])
            self.extra_packages = packages.get("extra", [])

        if "bashrc_lines" in config:
            if not isinstance(config["bashrc_lines"], list):
                raise ValueError("bashrc_lines must be a list")
            self.bashrc_lines = config["bashrc_lines"]

        if "desktop" in config:
            dconf = self.config["desktop"].get("dconf", {})
            if not isinstance(dconf, dict):
                raise ValueError("desktop.dconf must be a dictionary")
            self.dconf_settings = dconf

    def validate(self) -> List[str]:
        """Validate configuration."""
        errors = []

        if not self.base_url.startswith(("http://", "https://")):
            errors.append("base_url must be an http(s) URL")

        for pattern in self.lab_hostname_patterns:
            if not isinstance(pattern, str):
                errors.append(f"lab hostname pattern {pattern} must be a string")

        for package in self.base_packages + self.extra_packages:
            if not isinstance(package, str) or not package:
                errors.append(f"package {package!r} must be a non-empty string")

        for line in self.bashrc_lines:
            if not isinstance(line, str) or "\n" in line:
                errors.append(f"bashrc line {line!r} must be a single-line string")

        for key, value in self.dconf_settings.items():
            if not key.startswith("/"):
                errors.append(f"dconf key {key} must be an absolute path")
            if not isinstance(value, str):
                errors.append(f"dconf value for {key} must be a GVariant string")

        remote_url = self.section("git").get("remote_url")
        if not isinstance(remote_url, str) or not remote_url:
            errors.append("git.remote_url must be a non-empty string")
        else:
            errors.extend(_check_placeholders("git.remote_url", remote_url, REMOTE_URL_FIELDS))

        if not isinstance(self.section("wsl").get("profile_defaults", {}), dict):
            errors.append("wsl.profile_defaults must be a dictionary")

        return errors

    def section(self, name: str) -> Dict[str, Any]:
        """Get a configuration section as a dictionary."""
        return self.config.get(name) or {}

    def url_for(self, name: str) -> str:
        """Build a download URL for a file published next to the setup script."""
        return f"{self.base_url}/{name.lstrip('/')}"

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        Args:
            key: The configuration key to get.
            default: The default value to return if the key is not found.

        Returns:
            The configuration value, or the default if not found.
        """
        return self.config.get(key, default)
