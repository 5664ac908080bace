"""Loading of sniffs into packet collections, re-parsing when needed."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from .artifact import output_paths_for_raw, paths_for_artifact
from .cache import check_artifact
from .core.cancellation import CancellationToken
from .core.config import ParserConfig, Settings, get_settings, load_parser_config
from .core.constants import PROGRESS_COMPLETE, PROGRESS_INDETERMINATE
from .core.decorators import log_performance
from .core.models import LoadRequest, PacketCollection, ProgressSink, SniffSource
from .deserializer import load_packets
from .engine import EngineFactory, ParserEngine, invoke_parser
from .exceptions import IncompatibleLegacyArtifact, ParserProducedNoOutput
from .locks import OutputRegistry, ensure_not_in_use
from .logging import get_logger
from .resolver import ConsoleDecisionProvider, DecisionProvider, resolve_source

logger = get_logger(__name__)

# Outputs being parsed by any loader in this process
_active_outputs = OutputRegistry()


class SniffLoader:
    """Turns a raw capture or parsed artifact path into a :class:`PacketCollection`.

    Raw captures (``.pkt``/``.bin``) are parsed into ``<stem>_parsed.dat``
    unless a valid artifact is already there. Parsed artifacts (``.dat``) are
    only read; a stale one is rejected rather than re-parsed because the
    capture it came from is unknown.
    """

    def __init__(
        self,
        engine: Optional[ParserEngine] = None,
        decision_provider: Optional[DecisionProvider] = None,
        *,
        settings: Optional[Settings] = None,
        parser_config: Optional[ParserConfig] = None,
        registry: Optional[OutputRegistry] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.decision_provider = decision_provider or ConsoleDecisionProvider()
        self.registry = registry if registry is not None else _active_outputs
        self._engine = engine
        self._parser_config = parser_config

    @property
    def engine(self) -> ParserEngine:
        if self._engine is None:
            self._engine = EngineFactory.create_engine(self.settings.preferred_engine)
        return self._engine

    @property
    def parser_config(self) -> ParserConfig:
        if self._parser_config is None:
            self._parser_config = load_parser_config(self.settings)
        return self._parser_config

    @log_performance
    async def load_sniff(
        self,
        path: str | os.PathLike,
        protocol_version: Optional[int] = None,
        token: Optional[CancellationToken] = None,
        progress: Optional[ProgressSink] = None,
    ) -> Optional[PacketCollection]:
        """Load the sniff at ``path``.

        Returns ``None`` if ``token`` was cancelled before packets were read.
        """
        request = LoadRequest(
            source_path=Path(path),
            protocol_version=protocol_version,
            token=token,
            progress=progress,
        )
        return await self.load(request)

    async def load(self, request: LoadRequest) -> Optional[PacketCollection]:
        if request.cancelled:
            logger.info("Load of %s cancelled before start", request.source_path)
            return None

        source = await resolve_source(request.source_path, self.decision_provider)
        logger.info("Loading %s as %s", source.path, source.kind.value)
        if source.kind.is_raw:
            artifact = await self._prepare_raw(source, request)
        else:
            artifact = self._validate_parsed(source)

        if request.cancelled:
            logger.info("Load of %s cancelled", source.path)
            return None

        if not artifact.exists():
            raise ParserProducedNoOutput(
                "For some reason parser didn't generate the output file. Aborting.",
                context=str(artifact),
                suggestion="If it repeats, report a bug together with the capture.",
            )

        request.report(PROGRESS_INDETERMINATE)
        packets = await load_packets(artifact)
        request.report(PROGRESS_COMPLETE)
        return packets

    async def _prepare_raw(self, source: SniffSource, request: LoadRequest) -> Path:
        request.report(PROGRESS_INDETERMINATE)
        outputs = output_paths_for_raw(source.path)
        ensure_not_in_use([outputs.text, outputs.binary])
        self.registry.ensure_idle(outputs)

        check = check_artifact(outputs, self.settings.structure_version)
        if check.valid:
            logger.info("Reusing parsed sniff %s", outputs.binary)
            return outputs.binary
        if request.cancelled:
            return outputs.binary

        logger.info("Parsing %s (%s)", source.path, check.reason)
        with self.registry.claim(outputs):
            await invoke_parser(
                self.engine,
                source.path,
                outputs,
                self.parser_config,
                protocol_version=request.protocol_version,
                token=request.token,
                progress=request.progress,
            )
        return outputs.binary

    def _validate_parsed(self, source: SniffSource) -> Path:
        paths = paths_for_artifact(source.path)
        check = check_artifact(paths, self.settings.structure_version)
        if not check.valid:
            raise IncompatibleLegacyArtifact(
                "You have opened a parsed sniff generated by an older version. "
                f"It is not compatible: {check.reason}.",
                context=str(source.path),
                suggestion="Reparse the sniff by reopening the original .pkt file.",
            )
        return paths.binary


__all__ = ["SniffLoader"]
