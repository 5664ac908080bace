"""Classification of sniff sources by file extension."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Dict, Protocol, runtime_checkable

from .core.constants import (
    LEGACY_RAW_EXTENSION,
    PARSED_ARTIFACT_EXTENSION,
    RAW_CAPTURE_EXTENSION,
)
from .core.models import SniffSource, SourceKind
from .exceptions import UnsupportedSourceError
from .logging import get_logger

logger = get_logger(__name__)

EXTENSION_KINDS: Dict[str, SourceKind] = {
    RAW_CAPTURE_EXTENSION: SourceKind.RAW_CAPTURE,
    LEGACY_RAW_EXTENSION: SourceKind.LEGACY_RAW,
    PARSED_ARTIFACT_EXTENSION: SourceKind.PARSED_ARTIFACT,
}

# Answers a decision provider may give for an unrecognised file
OPEN_AS_PARSED = PARSED_ARTIFACT_EXTENSION
OPEN_AS_RAW = RAW_CAPTURE_EXTENSION


@runtime_checkable
class DecisionProvider(Protocol):
    """Asks how to open a file whose extension is not recognised."""

    async def choose_extension(self, path: Path) -> str:
        """Return :data:`OPEN_AS_PARSED` or :data:`OPEN_AS_RAW`."""
        ...


class FixedDecisionProvider:
    """Always gives the same answer."""

    def __init__(self, answer: str) -> None:
        self.answer = answer

    async def choose_extension(self, path: Path) -> str:
        return self.answer


class ConsoleDecisionProvider:
    """Prompts on the terminal without blocking the event loop."""

    PROMPT = (
        "{path} doesn't have .pkt, .bin nor .dat extension, so it is unclear "
        "whether it is a parsed or unparsed sniff.\n"
        "  [p] open as parsed sniff\n"
        "  [r] open as raw sniff\n"
        "> "
    )

    def __init__(self, input_func=input) -> None:
        self._input = input_func

    def _ask(self, path: Path) -> str:
        while True:
            try:
                answer = self._input(self.PROMPT.format(path=path)).strip().lower()
            except EOFError as exc:
                raise UnsupportedSourceError(
                    "No answer given for a file with an unrecognised extension",
                    context=str(path),
                    suggestion="Rename the file to .pkt or .dat, or pass --unknown-as.",
                ) from exc
            if answer in ("p", "parsed"):
                return OPEN_AS_PARSED
            if answer in ("r", "raw"):
                return OPEN_AS_RAW

    async def choose_extension(self, path: Path) -> str:
        return await asyncio.to_thread(self._ask, path)


def classify_extension(path: str | os.PathLike) -> SourceKind:
    """Return the kind implied by the extension of ``path`` alone."""
    return EXTENSION_KINDS.get(Path(path).suffix.lower(), SourceKind.UNKNOWN)


async def resolve_source(path: str | os.PathLike, provider: DecisionProvider) -> SniffSource:
    """Resolve ``path`` to a :class:`SniffSource`, asking ``provider`` if needed."""
    source_path = Path(path)
    kind = classify_extension(source_path)
    if kind is SourceKind.UNKNOWN:
        answer = await provider.choose_extension(source_path)
        kind = EXTENSION_KINDS.get(str(answer).lower(), SourceKind.UNKNOWN)
        if kind not in (SourceKind.PARSED_ARTIFACT, SourceKind.RAW_CAPTURE):
            raise UnsupportedSourceError(
                f"Cannot open file as '{answer}'",
                context=str(source_path),
                suggestion="Choose to open it as a parsed (.dat) or raw (.pkt) sniff.",
            )
        logger.info("Unrecognised extension for %s, opening as %s", source_path, kind.value)
    return SniffSource(path=source_path, kind=kind)


__all__ = [
    "EXTENSION_KINDS",
    "OPEN_AS_PARSED",
    "OPEN_AS_RAW",
    "DecisionProvider",
    "FixedDecisionProvider",
    "ConsoleDecisionProvider",
    "classify_extension",
    "resolve_source",
]
