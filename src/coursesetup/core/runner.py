"""Sequential execution of setup steps."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Dict, List, Optional

import click
from rich.console import Console
from rich.table import Table

from .commands import CommandError
from .config import Config
from .desktop import DesktopConfigurator, ShellConfigurator
from .download import DownloadError
from .host import HostInfo
from .packages import PackageManager
from .repository import (
    RepositoryProvisioner,
    git_global_config,
    set_git_global_config,
)
from .skeleton import ArchiveError, SkeletonSync
from .ssh import SSHManager
from .steps import Step, StepSelection
from .terminal import sync_settings

logger = logging.getLogger(__name__)

PASSED = "passed"
FAILED = "failed"
SKIPPED = "skipped"


class StepError(RuntimeError):
    """A step failed; the run continues with the next step."""


class FatalStepError(StepError):
    """A step failed in a way that makes the rest of the run pointless."""


class StepSkipped(Exception):
    """A selected step does not apply to this host."""


class StepResult:
    """Outcome of one step."""

    def __init__(self, step: Step, outcome: str, message: str = ""):
        self.step = step
        self.outcome = outcome
        self.message = message

    def __repr__(self) -> str:
        return f"StepResult({self.step.name}, {self.outcome!r}, {self.message!r})"


class SetupReport:
    """Ordered record of every step's outcome."""

    def __init__(self) -> None:
        self.results: List[StepResult] = []
        self.aborted = False

    def add(self, step: Step, outcome: str, message: str = "") -> StepResult:
        result = StepResult(step, outcome, message)
        self.results.append(result)
        return result

    def outcome(self, step: Step) -> Optional[str]:
        for result in self.results:
            if result.step is step:
                return result.outcome
        return None

    @property
    def failed(self) -> List[StepResult]:
        return [r for r in self.results if r.outcome == FAILED]

    @property
    def success(self) -> bool:
        return not self.aborted and not self.failed

    def render(self, console: Console) -> None:
        table = Table(title="Setup Summary")
        table.add_column("Step", style="cyan")
        table.add_column("Status")
        table.add_column("Details", style="dim")
        colors = {PASSED: "green", FAILED: "red", SKIPPED: "yellow"}
        for result in self.results:
            color = colors[result.outcome]
            table.add_row(
                result.step.title,
                f"[{color}]{result.outcome.upper()}[/{color}]",
                result.message,
            )
        console.print(table)
        if self.success:
            console.print("[bold green]Setup completed successfully!")
        elif self.aborted:
            console.print("[bold red]Setup aborted. Fix the error above and run it again.")
        else:
            console.print("[bold yellow]Setup completed with errors. Re-run after fixing them.")


class SetupRunner:
    """Runs the selected setup steps in their fixed order.

    Attributes:
        config (Config): Course configuration
        host (HostInfo): The machine being provisioned
        console (Console): Rich console for output formatting
        scratch_dir (Optional[Path]): Temporary directory for the current
            run; it only exists while run() is executing.
    """

    def __init__(
        self,
        config: Config,
        host: HostInfo,
        console: Optional[Console] = None,
        packages: Optional[PackageManager] = None,
        confirm: Callable[[str], bool] = click.confirm,
    ):
        self.config = config
        self.host = host
        self.console = console or Console()
        self.packages = packages or PackageManager(console=self.console)
        self.confirm = confirm
        self.scratch_dir: Optional[Path] = None

        ssh_config = config.section("ssh")
        self.ssh = SSHManager(
            self.home_path(ssh_config.get("key_path", "~/.ssh/id_ed25519")),
            key_type=ssh_config.get("key_type", "ed25519"),
            console=self.console,
        )

        self.handlers: Dict[Step, Callable[[], str]] = {
            Step.PACKAGES: self.install_base_packages,
            Step.HOST: self.setup_host,
            Step.REPO: self.provision_repository,
            Step.SKELETON: self.sync_skeleton,
            Step.CONFIGURE: self.configure,
            Step.EXTRAS: self.install_extra_packages,
        }

    def home_path(self, value: str) -> Path:
        """Resolve a configured path against the student's home directory."""
        if value == "~" or value.startswith("~/"):
            return self.host.home / value[2:]
        path = Path(value)
        return path if path.is_absolute() else self.host.home / path

    @property
    def timeout(self) -> float:
        return float(self.config.section("http").get("timeout", 30.0))

    def run(self, selection: StepSelection) -> SetupReport:
        """Run every selected step and report the outcomes.

        The scratch directory is removed however the run ends.
        """
        report = SetupReport()
        with tempfile.TemporaryDirectory(prefix="course-setup-") as scratch:
            self.scratch_dir = Path(scratch)
            try:
                for step in Step:
                    if report.aborted:
                        report.add(step, SKIPPED, "not run")
                    elif step not in selection:
                        report.add(step, SKIPPED, "not selected")
                    else:
                        self._run_step(step, report)
            finally:
                self.scratch_dir = None
        return report

    def _run_step(self, step: Step, report: SetupReport) -> None:
        self.console.rule(f"[bold]{step.title}")
        try:
            message = self.handlers[step]()
        except StepSkipped as e:
            report.add(step, SKIPPED, str(e))
            self.console.print(f"[yellow]Skipped: {e}")
        except FatalStepError as e:
            logger.error("%s failed: %s", step.title, e)
            report.add(step, FAILED, str(e))
            report.aborted = True
        except (RuntimeError, OSError, ValueError) as e:
            logger.error("%s failed: %s", step.title, e)
            report.add(step, FAILED, str(e))
            if self.config.get("pause_on_failure", True):
                click.pause(info="Press any key to continue with the remaining steps...")
        else:
            report.add(step, PASSED, message)

    def _install(self, names: List[str], fatal: bool) -> str:
        if self.host.is_lab:
            raise StepSkipped("packages are managed by the lab administrators")
        try:
            installed = self.packages.install(names)
        except CommandError as e:
            if fatal:
                raise FatalStepError(f"package installation failed: {e}") from e
            raise StepError(f"package installation failed: {e}") from e
        return f"installed {len(installed)}" if installed else "already installed"

    def install_base_packages(self) -> str:
        return self._install(self.config.base_packages, fatal=True)

    def install_extra_packages(self) -> str:
        return self._install(self.config.extra_packages, fatal=False)

    def setup_host(self) -> str:
        """Create course directories and the student's SSH key."""
        (self.host.home / "bin").mkdir(parents=True, exist_ok=True)
        self.ssh.ensure_ssh_dir()

        if self.host.is_wsl:
            if self.host.windows_home is None:
                raise StepError("Windows home directory could not be located")
            (self.host.windows_home / self.config.course).mkdir(parents=True, exist_ok=True)

        comment = f"{self.host.user}@{self.host.hostname}"
        try:
            generated = self.ssh.ensure_key(comment)
        except CommandError as e:
            raise StepError(f"ssh-keygen failed: {e}") from e

        register_host = self.config.section("ssh").get("register_host")
        if register_host and not self.host.is_lab:
            try:
                self.ssh.register_with(register_host)
            except CommandError as e:
                raise StepError(f"could not register key with {register_host}: {e}") from e

        return "new SSH key generated" if generated else "SSH key present"

    def remote_url(self) -> str:
        template = self.config.section("git").get("remote_url", "")
        return template.format(user=self.host.user, course=self.config.course)

    def provision_repository(self) -> str:
        """Register git host SSH access, then clone the course repository."""
        git_config = self.config.section("git")
        git_host = git_config.get("host")
        if git_host:
            self.ssh.ensure_host_config(git_host)
            try:
                self.ssh.ensure_known_host(git_host)
            except CommandError as e:
                logger.warning("Could not add %s to known_hosts: %s", git_host, e)

        for key, option in (("user_name", "user.name"), ("user_email", "user.email")):
            value = git_config.get(key)
            if value and git_global_config(option) is None:
                set_git_global_config(option, value)

        link_target = None
        if self.host.is_wsl:
            if self.host.windows_home is None:
                raise StepError("Windows home directory could not be located")
            link_target = self.host.windows_home / self.config.course

        provisioner = RepositoryProvisioner(
            self.host.home / self.config.course,
            self.remote_url(),
            link_target=link_target,
            confirm=self.confirm,
            console=self.console,
        )
        if not provisioner.provision():
            raise StepError(f"{provisioner.repo_path} is in the way of the course repository")
        return str(provisioner.repo_path)

    def sync_skeleton(self) -> str:
        """Mirror the published skeleton files into the student's home."""
        if self.scratch_dir is None:
            raise RuntimeError("skeleton sync needs the scratch directory of a running setup")
        skeleton_config = self.config.section("skeleton")
        destination = self.home_path(skeleton_config.get("destination", "~"))

        syncer = SkeletonSync(destination, console=self.console)
        url = self.config.url_for(skeleton_config.get("archive", "skeleton.tar.gz"))
        try:
            changed = syncer.sync(url, self.scratch_dir, timeout=self.timeout)
        except (DownloadError, ArchiveError) as e:
            raise FatalStepError(str(e)) from e
        return f"{len(changed)} file(s) updated"

    def configure(self) -> str:
        """Apply shell, desktop and terminal preferences for this host."""
        done = []
        problems = []

        added = ShellConfigurator(self.host.home / ".bashrc", console=self.console).ensure_lines(
            self.config.bashrc_lines
        )
        done.append(f"{len(added)} bashrc line(s)")

        if self.host.is_vm:
            desktop = DesktopConfigurator(self.config.dconf_settings, console=self.console)
            if desktop.available():
                try:
                    written = desktop.apply()
                    done.append(f"{len(written)} desktop setting(s)")
                except CommandError as e:
                    problems.append(f"dconf: {e}")
            else:
                logger.info("dconf not found; skipping desktop preferences")

        if self.host.is_wsl:
            try:
                changed = self.configure_windows_terminal()
                done.append("terminal settings updated" if changed else "terminal settings ok")
            except (OSError, ValueError) as e:
                problems.append(f"Windows Terminal: {e}")

        if problems:
            raise StepError("; ".join(problems))
        return ", ".join(done)

    def configure_windows_terminal(self) -> bool:
        wsl_config = self.config.section("wsl")
        if self.host.windows_home is None:
            raise FileNotFoundError("Windows home directory could not be located")
        distro = wsl_config.get("distro") or os.environ.get("WSL_DISTRO_NAME")
        if not distro:
            raise ValueError("WSL distribution name is unknown")
        settings_path = self.host.windows_home / wsl_config.get("terminal_settings", "")
        return sync_settings(settings_path, distro, wsl_config.get("profile_defaults", {}))
