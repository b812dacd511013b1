"""Tests for configuration management."""

from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Dict

import pytest
import yaml

from coursesetup.core.config import Config


def test_default_config() -> None:
    """Test default configuration loading."""
    config = Config()
    assert config.course == "si204"
    assert config.base_url.startswith("https://")
    assert "git" in config.base_packages
    assert "openssh-client" in config.base_packages
    assert "valgrind" in config.extra_packages
    assert "lnx*" in config.lab_hostname_patterns
    assert config.get("pause_on_failure") is True
    assert config.section("ssh")["key_type"] == "ed25519"


def test_config_validation() -> None:
    """Test configuration validation."""
    config = Config()
    errors = config.validate()
    assert not errors, f"Default config should be valid, got errors: {errors}"


def create_temp_config(config_data: Dict) -> Path:
    """Create a temporary config file."""
    temp_file = NamedTemporaryFile(mode="w", suffix=".yaml", delete=False)
    with temp_file:
        yaml.safe_dump(config_data, temp_file, encoding="utf-8")
    return Path(temp_file.name)


def test_load_config_file() -> None:
    """Test loading configuration from file."""
    test_config = {
        "course": "ic210",
        "base_url": "https://example.test/ic210/",
        "packages": {"extra": ["emacs"]},
    }

    config_path = create_temp_config(test_config)
    try:
        config = Config(config_path)
        assert config.course == "ic210"
        assert config.base_url == "https://example.test/ic210"
        assert config.extra_packages == ["emacs"]
        # Keys not mentioned in the file keep their defaults
        assert "git" in config.base_packages
    finally:
        config_path.unlink()


def test_empty_config_file(tmp_path: Path) -> None:
    """Test that an empty YAML file leaves the defaults alone."""
    config_path = tmp_path / "empty.yaml"
    config_path.write_text("")
    assert Config(config_path).course == "si204"


def test_unreadable_config_file(tmp_path: Path) -> None:
    """Test that broken YAML is reported as ValueError."""
    config_path = tmp_path / "broken.yaml"
    config_path.write_text("course: [unclosed\n")
    with pytest.raises(ValueError, match="Could not load config file"):
        Config(config_path)


def test_merge_config() -> None:
    """Test configuration merging."""
    config = Config()
    config._merge_config(
        {
            "ssh": {"register_host": "m260000@lab.test"},
            "wsl": {"profile_defaults": {"colorScheme": "Solarized Dark"}},
        }
    )

    assert config.section("ssh")["register_host"] == "m260000@lab.test"
    assert config.section("ssh")["key_path"] == "~/.ssh/id_ed25519"
    defaults = config.section("wsl")["profile_defaults"]
    assert defaults["colorScheme"] == "Solarized Dark"
    assert defaults["startingDirectory"] == "~"


def test_merge_replaces_lists() -> None:
    """Test that list values replace rather than extend the defaults."""
    config = Config()
    config._merge_config({"bashrc_lines": ["source ~/.course_env"]})
    assert config.bashrc_lines == ["source ~/.course_env"]


def test_url_for() -> None:
    """Test building download URLs next to the setup script."""
    config = Config()
    config._merge_config({"base_url": "https://setup.test/course/"})
    assert config.url_for("skeleton.tar.gz") == "https://setup.test/course/skeleton.tar.gz"
    assert config.url_for("/course_setup.py") == "https://setup.test/course/course_setup.py"


@pytest.mark.parametrize(
    "bad",
    [
        {"course": ""},
        {"host_type": "laptop"},
        {"packages": ["git"]},
        {"packages": {"base": "git"}},
        {"lab_hostname_patterns": "lnx*"},
        {"failure_exit_code": "1"},
        {"desktop": {"dconf": ["idle-delay"]}},
    ],
)
def test_invalid_config(bad: Dict) -> None:
    """Test that malformed values are rejected while merging."""
    config = Config()
    with pytest.raises(ValueError):
        config._merge_config(bad)


def test_validate_reports_problems() -> None:
    """Test that validate() lists every problem it finds."""
    config = Config()
    config._merge_config(
        {
            "base_url": "ftp://setup.test",
            "bashrc_lines": ["one\ntwo"],
            "desktop": {"dconf": {"org/gnome/x": "true"}},
        }
    )
    errors = config.validate()
    assert len(errors) == 3
    assert any("base_url" in error for error in errors)
    assert any("bashrc line" in error for error in errors)
    assert any("dconf key" in error for error in errors)


@pytest.mark.parametrize(
    "remote_url, problem",
    [
        ("git@git.test:{course}/{alpha}.git", "unknown placeholder {alpha}"),
        ("git@git.test:{course}/{}.git", "unknown placeholder {}"),
        ("git@git.test:{course/{user}.git", "not a valid template"),
    ],
)
def test_validate_remote_url_placeholders(remote_url: str, problem: str) -> None:
    """Test that remote URL templates may only use {user} and {course}."""
    config = Config()
    config._merge_config({"git": {"remote_url": remote_url}})
    errors = config.validate()
    assert len(errors) == 1
    assert problem in errors[0]


def test_validate_accepts_known_placeholders() -> None:
    """Test the default template and a literal URL."""
    config = Config()
    config._merge_config({"git": {"remote_url": "https://git.test/{course}/{user}.git"}})
    assert config.validate() == []
    config._merge_config({"git": {"remote_url": "/srv/git/shared.git"}})
    assert config.validate() == []
