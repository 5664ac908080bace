"""Core data structures for sniff sources, artifacts and decoded packets."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterator, List, Optional, overload

if TYPE_CHECKING:
    from .cancellation import CancellationToken

ProgressSink = Callable[[float], None]


class SourceKind(Enum):
    RAW_CAPTURE = "raw_capture"
    LEGACY_RAW = "legacy_raw"
    PARSED_ARTIFACT = "parsed_artifact"
    UNKNOWN = "unknown"

    @property
    def is_raw(self) -> bool:
        return self in (SourceKind.RAW_CAPTURE, SourceKind.LEGACY_RAW)


class DumpFormat(IntEnum):
    """Packaging convention of a parser dump, stored as an integer in headers."""

    UNKNOWN = 0
    TEXT = 1
    UNIVERSAL_PROTO = 2
    UNIVERSAL_PROTO_WITH_TEXT = 3
    UNIVERSAL_PROTO_WITH_SEPARATE_TEXT = 4

    @classmethod
    def from_value(cls, value: int) -> "DumpFormat":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @property
    def requires_text_sibling(self) -> bool:
        return self is DumpFormat.UNIVERSAL_PROTO_WITH_SEPARATE_TEXT


class Direction(IntEnum):
    CLIENT_TO_SERVER = 0
    SERVER_TO_CLIENT = 1
    BIDIRECTIONAL = 2


@dataclass(frozen=True)
class SniffSource:
    """A source path together with the kind it was resolved to."""

    path: Path
    kind: SourceKind


@dataclass(frozen=True)
class VersionStamp:
    structure_version: int
    dump_format: DumpFormat


@dataclass(frozen=True)
class ArtifactPaths:
    """Binary artifact path and its companion text sibling."""

    binary: Path
    text: Path

    def __iter__(self) -> Iterator[Path]:
        yield self.binary
        yield self.text


@dataclass
class PacketRecord:
    number: int = 0
    timestamp: float = 0.0
    direction: Direction = Direction.CLIENT_TO_SERVER
    opcode: int = 0
    opcode_name: str = ""
    payload: bytes = b""


@dataclass
class PacketCollection:
    """Ordered packets decoded from one artifact."""

    packets: List[PacketRecord] = field(default_factory=list)
    stamp: Optional[VersionStamp] = None
    source: Optional[Path] = None

    def __len__(self) -> int:
        return len(self.packets)

    def __iter__(self) -> Iterator[PacketRecord]:
        return iter(self.packets)

    @overload
    def __getitem__(self, index: int) -> PacketRecord: ...

    @overload
    def __getitem__(self, index: slice) -> List[PacketRecord]: ...

    def __getitem__(self, index):
        return self.packets[index]


@dataclass(frozen=True)
class LoadRequest:
    """Arguments of a single ``SniffLoader.load_sniff`` call."""

    source_path: Path
    protocol_version: Optional[int] = None
    token: Optional["CancellationToken"] = None
    progress: Optional[ProgressSink] = None

    def report(self, value: float) -> None:
        if self.progress is not None:
            self.progress(value)

    @property
    def cancelled(self) -> bool:
        return self.token is not None and self.token.cancelled


__all__ = [
    "ProgressSink",
    "SourceKind",
    "DumpFormat",
    "Direction",
    "SniffSource",
    "VersionStamp",
    "ArtifactPaths",
    "PacketRecord",
    "PacketCollection",
    "LoadRequest",
]
