"""Windows Terminal settings for WSL hosts.

Windows Terminal keeps one profile per WSL distribution in
``profiles.list`` of its ``settings.json``. The course wants that profile
first in the list and carrying a few sensible defaults, without clobbering
anything the student has already customised.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)


def _profile_list(data: Dict[str, Any]) -> Optional[List[Any]]:
    profiles = data.get("profiles")
    if isinstance(profiles, dict):
        found = profiles.get("list")
    else:
        # Older settings files keep profiles as a bare list
        found = profiles
    return found if isinstance(found, list) else None


def patch_settings(
    data: Dict[str, Any], profile_name: str, defaults: Mapping[str, Any]
) -> Dict[str, Any]:
    """Return a patched copy of a Windows Terminal settings document.

    The profile whose ``name`` equals profile_name gets every key of
    defaults that it does not already have, and is moved to the front of
    the profile list. Without a matching profile the copy is unchanged.
    """
    patched = copy.deepcopy(data)
    profiles = _profile_list(patched)
    if profiles is None:
        return patched

    index = next(
        (
            i
            for i, profile in enumerate(profiles)
            if isinstance(profile, dict) and profile.get("name") == profile_name
        ),
        None,
    )
    if index is None:
        return patched

    profile = profiles.pop(index)
    for key, value in defaults.items():
        profile.setdefault(key, copy.deepcopy(value))
    profiles.insert(0, profile)
    return patched


def sync_settings(path: Path, profile_name: str, defaults: Mapping[str, Any]) -> bool:
    """Patch settings.json in place if anything would change.

    Returns:
        True if the file was rewritten.

    Raises:
        FileNotFoundError: If the settings file does not exist.
        ValueError: If the file is not valid JSON or not a JSON object.
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")

    patched = patch_settings(data, profile_name, defaults)
    if patched == data:
        logger.debug("Windows Terminal settings already up to date")
        return False

    path.write_text(json.dumps(patched, indent=4) + "\n", encoding="utf-8")
    logger.info("Updated Windows Terminal profile %s in %s", profile_name, path)
    return True
