"""Decoding of parsed artifacts into packet collections."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from .artifact import read_body, read_header
from .core.decorators import handle_decode_errors, log_performance
from .core.models import PacketCollection
from .logging import get_logger

logger = get_logger(__name__)


@handle_decode_errors
@log_performance
def decode_packets(path: str | os.PathLike) -> PacketCollection:
    """Decode the artifact at ``path``.

    Raises :class:`~sniff_loader.exceptions.CorruptArtifactBody` when the
    contents cannot be decoded.
    """
    artifact = Path(path)
    with artifact.open("rb") as fh:
        stamp = read_header(fh)
        packets = read_body(fh)
    logger.info("Decoded %d packets from %s", len(packets), artifact)
    return PacketCollection(packets=packets, stamp=stamp, source=artifact)


async def load_packets(path: str | os.PathLike) -> PacketCollection:
    """Decode ``path`` on a worker thread.

    Cancelling the caller does not interrupt a decode that already started;
    the file is fully on disk by then.
    """
    task = asyncio.ensure_future(asyncio.to_thread(decode_packets, path))
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        await task
        raise


__all__ = ["decode_packets", "load_packets"]
