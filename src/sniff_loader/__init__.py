# src/sniff_loader/__init__.py
from .loader import SniffLoader
from .core.cancellation import CancellationToken
from .core.models import (
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
from .artifact import output_paths_for_raw, paths_for_artifact, write_artifact
from .cache import read_version_stamp, is_cache_valid, check_artifact
from .locks import is_file_in_use
from .deserializer import decode_packets, load_packets
from .engine import ParserEngine, SubprocessParserEngine, EngineFactory, invoke_parser
from .resolver import (
    DecisionProvider,
    FixedDecisionProvider,
    ConsoleDecisionProvider,
    resolve_source,
)
from .exceptions import (
    SniffLoaderError,
    ConcurrentOperationInProgress,
    IncompatibleLegacyArtifact,
    ParserProducedNoOutput,
    CorruptArtifactBody,
    ParserInvocationError,
    ParserNotAvailable,
    UnsupportedSourceError,
    ParserConfigError,
)


__all__ = [
    "SniffLoader",
    "CancellationToken",
    "SourceKind",
    "DumpFormat",
    "Direction",
    "SniffSource",
    "VersionStamp",
    "ArtifactPaths",
    "PacketRecord",
    "PacketCollection",
    "LoadRequest",
    "output_paths_for_raw",
    "paths_for_artifact",
    "write_artifact",
    "read_version_stamp",
    "is_cache_valid",
    "check_artifact",
    "is_file_in_use",
    "decode_packets",
    "load_packets",
    "ParserEngine",
    "SubprocessParserEngine",
    "EngineFactory",
    "invoke_parser",
    "DecisionProvider",
    "FixedDecisionProvider",
    "ConsoleDecisionProvider",
    "resolve_source",
    "SniffLoaderError",
    "ConcurrentOperationInProgress",
    "IncompatibleLegacyArtifact",
    "ParserProducedNoOutput",
    "CorruptArtifactBody",
    "ParserInvocationError",
    "ParserNotAvailable",
    "UnsupportedSourceError",
    "ParserConfigError",
]
