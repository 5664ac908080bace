"""Validation of previously parsed artifacts against the expected version."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .artifact import read_header
from .core.models import ArtifactPaths, VersionStamp
from .logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CacheCheck:
    """Outcome of validating one artifact."""

    stamp: Optional[VersionStamp]
    valid: bool
    reason: str


def read_version_stamp(path: str | os.PathLike) -> Optional[VersionStamp]:
    """Return the version stamp of ``path`` or ``None`` if it cannot be read.

    A missing file, a short or foreign header and any I/O error all count as
    "no stamp".
    """
    try:
        with Path(path).open("rb") as fh:
            return read_header(fh)
    except (OSError, ValueError, EOFError) as exc:
        logger.debug("No version stamp in %s: %s", path, exc)
        return None


def is_cache_valid(
    stamp: Optional[VersionStamp], text_path: str | os.PathLike, expected_version: int
) -> bool:
    """Return ``True`` if an artifact stamped ``stamp`` can be reused."""
    if stamp is None or stamp.structure_version != expected_version:
        return False
    if stamp.dump_format.requires_text_sibling and not Path(text_path).exists():
        return False
    return True


def check_artifact(paths: ArtifactPaths, expected_version: int) -> CacheCheck:
    """Read and validate ``paths.binary``, describing why it is (in)valid."""
    stamp = read_version_stamp(paths.binary)
    if not paths.binary.exists():
        reason = "artifact does not exist"
    elif stamp is None:
        reason = "missing or unreadable version header"
    elif stamp.structure_version != expected_version:
        reason = (
            f"structure version {stamp.structure_version} does not match "
            f"expected {expected_version}"
        )
    elif stamp.dump_format.requires_text_sibling and not paths.text.exists():
        reason = f"text sibling {paths.text} is missing"
    else:
        reason = "up to date"
    valid = is_cache_valid(stamp, paths.text, expected_version)
    logger.info("Cache check for %s: valid=%s (%s)", paths.binary, valid, reason)
    return CacheCheck(stamp=stamp, valid=valid, reason=reason)


__all__ = ["CacheCheck", "read_version_stamp", "is_cache_valid", "check_artifact"]
