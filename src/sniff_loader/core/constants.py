"""Centralized constant definitions for sniff_loader."""

from __future__ import annotations

import struct

# ---------------------------------------------------------------------------
# Source classification
# ---------------------------------------------------------------------------
RAW_CAPTURE_EXTENSION: str = ".pkt"
LEGACY_RAW_EXTENSION: str = ".bin"
PARSED_ARTIFACT_EXTENSION: str = ".dat"
TEXT_SIBLING_EXTENSION: str = ".txt"

# Suffix appended to the stem of a raw capture to name its parse output
PARSED_SUFFIX: str = "_parsed"

# ---------------------------------------------------------------------------
# Artifact binary layout (little-endian)
# ---------------------------------------------------------------------------
ARTIFACT_MAGIC: bytes = b"SNFV"
HEADER_STRUCT = struct.Struct("<QI")  # structure version, dump type
COUNT_STRUCT = struct.Struct("<I")
RECORD_STRUCT = struct.Struct("<IdBI")  # number, timestamp, direction, opcode
NAME_LEN_STRUCT = struct.Struct("<H")
PAYLOAD_LEN_STRUCT = struct.Struct("<I")

# ---------------------------------------------------------------------------
# Progress reporting
# ---------------------------------------------------------------------------
PROGRESS_INDETERMINATE: float = -1.0
PROGRESS_COMPLETE: float = 1.0

__all__ = [
    "RAW_CAPTURE_EXTENSION",
    "LEGACY_RAW_EXTENSION",
    "PARSED_ARTIFACT_EXTENSION",
    "TEXT_SIBLING_EXTENSION",
    "PARSED_SUFFIX",
    "ARTIFACT_MAGIC",
    "HEADER_STRUCT",
    "COUNT_STRUCT",
    "RECORD_STRUCT",
    "NAME_LEN_STRUCT",
    "PAYLOAD_LEN_STRUCT",
    "PROGRESS_INDETERMINATE",
    "PROGRESS_COMPLETE",
]
