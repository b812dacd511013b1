"""Core functionality for course-setup."""

from .config import Config
from .host import HostInfo, HostType, classify_host
from .runner import SetupReport, SetupRunner
from .steps import Step, StepSelection

__all__ = [
    "Config",
    "HostInfo",
    "HostType",
    "SetupReport",
    "SetupRunner",
    "Step",
    "StepSelection",
    "classify_host",
]
