"""Parsed artifact file format and path conventions.

An artifact is a little-endian binary file::

    magic    b"SNFV"
    header   u64 structure_version, u32 dump_type
    body     u32 count, then ``count`` records of
             u32 number, f64 timestamp, u8 direction, u32 opcode,
             u16 name_len, name (utf-8), u32 payload_len, payload

Artifacts written with ``UNIVERSAL_PROTO_WITH_SEPARATE_TEXT`` have a plain
text sibling next to them which is produced by the parser engine and only
ever checked for existence here.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import BinaryIO, Iterable, List, Optional

from .core.constants import (
    ARTIFACT_MAGIC,
    COUNT_STRUCT,
    HEADER_STRUCT,
    NAME_LEN_STRUCT,
    PARSED_ARTIFACT_EXTENSION,
    PARSED_SUFFIX,
    PAYLOAD_LEN_STRUCT,
    RECORD_STRUCT,
    TEXT_SIBLING_EXTENSION,
)
from .core.models import ArtifactPaths, Direction, DumpFormat, PacketRecord, VersionStamp


def output_paths_for_raw(source: str | os.PathLike) -> ArtifactPaths:
    """Return where the parser writes its output for raw capture ``source``.

    ``captures/foo.pkt`` maps to ``captures/foo_parsed.dat`` and
    ``captures/foo_parsed.txt``.
    """
    base = Path(source).with_suffix("")
    stem = base.name + PARSED_SUFFIX
    return ArtifactPaths(
        binary=base.with_name(stem + PARSED_ARTIFACT_EXTENSION),
        text=base.with_name(stem + TEXT_SIBLING_EXTENSION),
    )


def paths_for_artifact(artifact: str | os.PathLike) -> ArtifactPaths:
    """Return ``artifact`` with its text sibling (``foo.dat`` -> ``foo.txt``)."""
    path = Path(artifact)
    return ArtifactPaths(binary=path, text=path.with_suffix(TEXT_SIBLING_EXTENSION))


# --- reading ---------------------------------------------------------------

def _read_exact(fh: BinaryIO, size: int) -> bytes:
    data = fh.read(size)
    if len(data) != size:
        raise EOFError(f"expected {size} bytes, got {len(data)}")
    return data


def read_header(fh: BinaryIO) -> VersionStamp:
    """Read the magic and version header from ``fh``.

    Raises ``ValueError`` on a magic mismatch and ``EOFError`` on a short read.
    """
    magic = _read_exact(fh, len(ARTIFACT_MAGIC))
    if magic != ARTIFACT_MAGIC:
        raise ValueError(f"invalid artifact magic {magic.hex()}")
    version, dump_type = HEADER_STRUCT.unpack(_read_exact(fh, HEADER_STRUCT.size))
    return VersionStamp(version, DumpFormat.from_value(dump_type))


def read_body(fh: BinaryIO) -> List[PacketRecord]:
    """Decode all packet records following the header."""
    (count,) = COUNT_STRUCT.unpack(_read_exact(fh, COUNT_STRUCT.size))
    packets: List[PacketRecord] = []
    for _ in range(count):
        number, timestamp, direction, opcode = RECORD_STRUCT.unpack(
            _read_exact(fh, RECORD_STRUCT.size)
        )
        (name_len,) = NAME_LEN_STRUCT.unpack(_read_exact(fh, NAME_LEN_STRUCT.size))
        name = _read_exact(fh, name_len).decode("utf-8")
        (payload_len,) = PAYLOAD_LEN_STRUCT.unpack(_read_exact(fh, PAYLOAD_LEN_STRUCT.size))
        payload = _read_exact(fh, payload_len)
        packets.append(
            PacketRecord(
                number=number,
                timestamp=timestamp,
                direction=Direction(direction),
                opcode=opcode,
                opcode_name=name,
                payload=payload,
            )
        )
    trailing = fh.read(1)
    if trailing:
        raise ValueError("unexpected data after the last packet record")
    return packets


# --- writing ---------------------------------------------------------------

def encode_packet(packet: PacketRecord) -> bytes:
    name = packet.opcode_name.encode("utf-8")
    return b"".join(
        (
            RECORD_STRUCT.pack(
                packet.number, packet.timestamp, int(packet.direction), packet.opcode
            ),
            NAME_LEN_STRUCT.pack(len(name)),
            name,
            PAYLOAD_LEN_STRUCT.pack(len(packet.payload)),
            packet.payload,
        )
    )


def write_artifact(
    path: str | os.PathLike,
    packets: Iterable[PacketRecord],
    stamp: VersionStamp,
    *,
    text: Optional[str] = None,
) -> ArtifactPaths:
    """Write ``packets`` to ``path`` under ``stamp``.

    When ``stamp`` requires a text sibling and ``text`` is given, the sibling
    is written alongside.
    """
    paths = paths_for_artifact(path)
    records = [encode_packet(p) for p in packets]
    with paths.binary.open("wb") as fh:
        fh.write(ARTIFACT_MAGIC)
        fh.write(HEADER_STRUCT.pack(stamp.structure_version, int(stamp.dump_format)))
        fh.write(COUNT_STRUCT.pack(len(records)))
        for record in records:
            fh.write(record)
    if text is not None and stamp.dump_format.requires_text_sibling:
        paths.text.write_text(text, encoding="utf-8")
    return paths


__all__ = [
    "output_paths_for_raw",
    "paths_for_artifact",
    "read_header",
    "read_body",
    "encode_packet",
    "write_artifact",
]
