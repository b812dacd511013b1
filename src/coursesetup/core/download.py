"""HTTP downloads for course-setup."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import httpx
from rich.progress import Progress

logger = logging.getLogger(__name__)


class DownloadError(RuntimeError):
    """Raised when a file cannot be fetched."""


def fetch_bytes(url: str, timeout: float = 30.0) -> bytes:
    """Fetch a small resource fully into memory.

    Raises:
        DownloadError: On connection failures and non-2xx responses.
    """
    logger.debug("GET %s", url)
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise DownloadError(f"Failed to fetch {url}: {e}") from e
    return response.content


def download(
    url: str,
    destination: Path,
    timeout: float = 30.0,
    progress: Optional[Progress] = None,
) -> Path:
    """Stream url into destination, reporting progress if given.

    A partially written file is removed on failure.

    Raises:
        DownloadError: On connection failures and non-2xx responses.
    """
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    logger.debug("Downloading %s -> %s", url, destination)

    try:
        with httpx.stream("GET", url, timeout=timeout, follow_redirects=True) as response:
            response.raise_for_status()
            total = int(response.headers.get("Content-Length", 0)) or None
            task_id = None
            if progress:
                task_id = progress.add_task(f"Downloading {destination.name}", total=total)
            with open(destination, "wb") as f:
                for chunk in response.iter_bytes():
                    f.write(chunk)
                    if progress and task_id is not None:
                        progress.advance(task_id, len(chunk))
    except (httpx.HTTPError, OSError) as e:
        if destination.exists():
            destination.unlink()
        raise DownloadError(f"Failed to download {url}: {e}") from e

    return destination
