"""Single-file distribution of course-setup.

Course staff publish ``course_setup.pyz`` next to the skeleton archive.
It is a zipapp holding the whole ``coursesetup`` package, so replacing
the file during a self-update replaces the code the re-run executes.
Third-party libraries (click, rich, PyYAML, httpx) still come from the
interpreter's site-packages.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import zipapp
from pathlib import Path

logger = logging.getLogger(__name__)

BUNDLE_NAME = "course_setup.pyz"
ENTRY_POINT = "coursesetup.cli:main"


def build_bundle(target: Path, interpreter: str = "/usr/bin/env python3") -> Path:
    """Write the package as an executable zipapp at target.

    Returns:
        The path written.
    """
    target = Path(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    package_dir = Path(__file__).resolve().parent

    with tempfile.TemporaryDirectory(prefix="course-setup-bundle-") as staging:
        shutil.copytree(
            package_dir,
            Path(staging) / package_dir.name,
            ignore=shutil.ignore_patterns("__pycache__", "*.pyc"),
        )
        zipapp.create_archive(
            staging, target, interpreter=interpreter, main=ENTRY_POINT, compressed=True
        )

    logger.info("Wrote %s", target)
    return target
