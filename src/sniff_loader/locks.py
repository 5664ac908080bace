"""Detection of artifacts held open by another process."""

from __future__ import annotations

import os
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Set

from .exceptions import ConcurrentOperationInProgress
from .logging import get_logger

if sys.platform == "win32":  # pragma: no cover - platform specific
    import msvcrt
else:
    import fcntl

logger = get_logger(__name__)


def _lock_exclusive(fd: int) -> None:
    if sys.platform == "win32":  # pragma: no cover - platform specific
        msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
    else:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)


def _unlock(fd: int) -> None:
    if sys.platform == "win32":  # pragma: no cover - platform specific
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
    else:
        fcntl.flock(fd, fcntl.LOCK_UN)


def is_file_in_use(path: str | os.PathLike) -> bool:
    """Return ``True`` if ``path`` is exclusively held by someone else.

    Opens the file for reading and briefly takes a non-blocking exclusive
    lock. Any failure, including unrelated I/O errors, reports "in use".
    """
    target = Path(path)
    if not target.exists():
        return False
    try:
        with target.open("rb") as fh:
            _lock_exclusive(fh.fileno())
            _unlock(fh.fileno())
    except OSError as exc:
        logger.info("%s is in use: %s", target, exc)
        return True
    return False


class OutputRegistry:
    """Output paths currently being parsed by this process."""

    def __init__(self) -> None:
        self._active: Set[Path] = set()

    def ensure_idle(self, paths: Iterable[Path]) -> List[Path]:
        """Raise if any of ``paths`` is being parsed; return them resolved."""
        resolved = [p.resolve() for p in paths]
        busy = [p for p in resolved if p in self._active]
        if busy:
            raise ConcurrentOperationInProgress(
                "Sniff output is already being parsed by this process",
                context=str(busy[0]),
                suggestion="Wait for the running parse to finish and open the sniff again.",
            )
        return resolved

    @contextmanager
    def claim(self, paths: Iterable[Path]) -> Iterator[None]:
        """Mark ``paths`` as in flight, failing if any of them already is."""
        resolved = self.ensure_idle(paths)
        self._active.update(resolved)
        try:
            yield
        finally:
            self._active.difference_update(resolved)


def ensure_not_in_use(paths: Iterable[Path]) -> None:
    """Raise :class:`ConcurrentOperationInProgress` if any of ``paths`` is in use."""
    for path in paths:
        if is_file_in_use(path):
            raise ConcurrentOperationInProgress(
                "Sniff output file already in use, probably in the middle of parsing, "
                "thus can't parse sniff",
                context=str(path),
                suggestion="Is the sniff being parsed in another window? Try again once it finishes.",
            )


__all__ = ["is_file_in_use", "OutputRegistry", "ensure_not_in_use"]
