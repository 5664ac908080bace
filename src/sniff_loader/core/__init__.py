from .config import settings, get_settings, Settings, ParserConfig
from .constants import *  # noqa: F401,F403
from .cancellation import CancellationToken
from .models import (
    ProgressSink,
    SourceKind,
    DumpFormat,
    Direction,
    SniffSource,
    VersionStamp,
    ArtifactPaths,
    PacketRecord,
    PacketCollection,
    LoadRequest,
)

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "ParserConfig",
    "CancellationToken",
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
] + [name for name in globals().keys() if name.isupper()]
