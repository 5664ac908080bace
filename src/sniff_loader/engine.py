"""External parser engine integration."""

from __future__ import annotations

import asyncio
import re
import shutil
from abc import ABC, abstractmethod
from collections import deque
from pathlib import Path
from typing import Callable, Deque, List, Optional, Type

from .core.cancellation import CancellationToken
from .core.config import ParserConfig, get_settings
from .core.decorators import log_performance
from .core.models import ArtifactPaths, DumpFormat, ProgressSink
from .exceptions import ParserInvocationError, ParserNotAvailable, SniffLoaderError
from .logging import get_logger

logger = get_logger(__name__)

DUMP_FORMAT_OPTION = "DumpFormat"
CLIENT_BUILD_OPTION = "ClientBuild"
STDERR_TAIL_LINES = 20
STDOUT_LINE_LIMIT = 1024 * 1024


class ParserEngine(ABC):
    """Abstract base class for parser engine backends."""

    @classmethod
    @abstractmethod
    def validate(cls) -> bool:
        """Return ``True`` if the engine backend is available."""

    @abstractmethod
    async def run(
        self,
        source: Path,
        config: ParserConfig,
        dump_format: DumpFormat,
        protocol_version: Optional[int],
        token: Optional[CancellationToken],
        progress: Optional[ProgressSink],
    ) -> None:
        """Parse ``source`` and write its artifact next to it.

        Must return promptly once ``token`` is cancelled. Progress values are
        reported through ``progress`` as floats.
        """


class SubprocessParserEngine(ParserEngine):
    """Runs the configured parser executable as a child process."""

    def __init__(
        self,
        executable: Optional[str] = None,
        *,
        grace_period: Optional[float] = None,
        progress_pattern: Optional[str] = None,
        line_limit: int = STDOUT_LINE_LIMIT,
    ) -> None:
        current = get_settings()
        self.line_limit = line_limit
        self.executable = executable or current.parser_executable
        self.grace_period = (
            grace_period if grace_period is not None else current.cancel_grace_period
        )
        self.progress_re = re.compile(progress_pattern or current.progress_pattern)

    @classmethod
    def validate(cls) -> bool:
        executable = get_settings().parser_executable
        return bool(executable) and shutil.which(executable) is not None

    def build_command(
        self,
        source: Path,
        config: ParserConfig,
        dump_format: DumpFormat,
        protocol_version: Optional[int],
    ) -> List[str]:
        if not self.executable:
            raise ParserNotAvailable(
                "No parser executable configured",
                suggestion="Set SNIFF_LOADER_PARSER_EXECUTABLE to the parser binary.",
            )
        cmd = [self.executable, *config.to_args(), f"--{DUMP_FORMAT_OPTION}={int(dump_format)}"]
        if protocol_version is not None:
            cmd.append(f"--{CLIENT_BUILD_OPTION}={protocol_version}")
        cmd.append(str(source))
        return cmd

    async def _pump_stdout(self, stream: asyncio.StreamReader, progress: Optional[ProgressSink]) -> None:
        async for raw in stream:
            line = raw.decode("utf-8", errors="replace").rstrip()
            match = self.progress_re.match(line)
            if match:
                if progress is not None:
                    progress(float(match.group("value")))
            elif line:
                logger.debug("parser: %s", line)

    @staticmethod
    async def _pump_stderr(stream: asyncio.StreamReader, tail: Deque[str]) -> None:
        async for raw in stream:
            tail.append(raw.decode("utf-8", errors="replace").rstrip())

    async def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        try:
            proc.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(proc.wait(), self.grace_period)
        except asyncio.TimeoutError:
            logger.warning("Parser %s ignored terminate, killing it", proc.pid)
            proc.kill()
            await proc.wait()

    async def _terminate_on(self, proc: asyncio.subprocess.Process, requested: asyncio.Event) -> None:
        await requested.wait()
        logger.info("Cancellation requested, stopping parser %s", proc.pid)
        await self._terminate(proc)

    async def run(
        self,
        source: Path,
        config: ParserConfig,
        dump_format: DumpFormat,
        protocol_version: Optional[int],
        token: Optional[CancellationToken],
        progress: Optional[ProgressSink],
    ) -> None:
        cmd = self.build_command(source, config, dump_format, protocol_version)
        logger.info("Running parser: %s", " ".join(cmd))
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=self.line_limit,
            )
        except OSError as exc:
            raise ParserInvocationError(
                f"Failed to start parser: {exc}", context=self.executable
            ) from exc

        loop = asyncio.get_running_loop()
        requested = asyncio.Event()
        unregister: Callable[[], None] = lambda: None
        if token is not None:
            unregister = token.register(lambda: loop.call_soon_threadsafe(requested.set))
        watcher = asyncio.create_task(self._terminate_on(proc, requested))
        stderr_tail: Deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        pumps = [
            asyncio.ensure_future(self._pump_stdout(proc.stdout, progress)),
            asyncio.ensure_future(self._pump_stderr(proc.stderr, stderr_tail)),
        ]
        try:
            await asyncio.gather(*pumps)
            returncode = await proc.wait()
        except BaseException as exc:
            for pump in pumps:
                pump.cancel()
            await self._terminate(proc)
            if isinstance(exc, SniffLoaderError) or not isinstance(exc, Exception):
                raise
            logger.error("Parser run for %s failed: %s", source, exc, exc_info=True)
            raise ParserInvocationError(
                f"Parser output could not be processed: {exc}",
                context=str(source),
                suggestion="\n".join(stderr_tail) or None,
            ) from exc
        finally:
            unregister()
            watcher.cancel()

        if token is not None and token.cancelled:
            logger.info("Parser for %s stopped by cancellation (exit %s)", source, returncode)
            return
        if returncode != 0:
            raise ParserInvocationError(
                f"Parser exited with code {returncode}",
                context=str(source),
                suggestion="\n".join(stderr_tail) or None,
            )


class EngineFactory:
    """Factory for creating parser engines with preference handling."""

    _registry: List[Type[ParserEngine]] = []

    @classmethod
    def register_engine(cls, engine_cls: Type[ParserEngine], *, prefer: bool = False) -> None:
        """Register an engine class for selection."""
        if engine_cls in cls._registry:
            return
        if prefer:
            cls._registry.insert(0, engine_cls)
        else:
            cls._registry.append(engine_cls)
        logger.debug("Registered engine %s (prefer=%s)", engine_cls.__name__, prefer)

    @classmethod
    def available_engines(cls) -> List[Type[ParserEngine]]:
        """Return engine classes that validate successfully."""
        available = [engine_cls for engine_cls in cls._registry if engine_cls.validate()]
        logger.debug("Available engines: %s", [e.__name__ for e in available])
        return available

    @classmethod
    def create_engine(cls, preferred: Optional[str] = None) -> ParserEngine:
        """Instantiate and return an available engine."""
        available = cls.available_engines()
        if not available:
            logger.error("No parser engines are available")
            raise ParserNotAvailable(
                "No parser engine available",
                suggestion="Set SNIFF_LOADER_PARSER_EXECUTABLE to an installed parser.",
            )

        preferred = preferred or get_settings().preferred_engine
        if preferred:
            for engine_cls in available:
                if engine_cls.__name__.lower().startswith(preferred.lower()):
                    logger.info("Using user preferred engine: %s", engine_cls.__name__)
                    return engine_cls()
            logger.warning(
                "Preferred engine '%s' not available, falling back to %s",
                preferred,
                available[0].__name__,
            )

        logger.info("Selected engine: %s", available[0].__name__)
        return available[0]()


def _remove_outputs(paths: ArtifactPaths) -> None:
    for path in paths:
        try:
            path.unlink()
            logger.info("Removed partial parser output %s", path)
        except FileNotFoundError:
            pass


@log_performance
async def invoke_parser(
    engine: ParserEngine,
    source: Path,
    outputs: ArtifactPaths,
    config: ParserConfig,
    protocol_version: Optional[int] = None,
    token: Optional[CancellationToken] = None,
    progress: Optional[ProgressSink] = None,
) -> bool:
    """Run ``engine`` over ``source`` and report whether it ran to completion.

    Returns ``False`` when the run was cancelled, in which case ``outputs``
    have been deleted.
    """
    try:
        await engine.run(
            source,
            config,
            DumpFormat.UNIVERSAL_PROTO_WITH_SEPARATE_TEXT,
            protocol_version,
            token,
            progress,
        )
    except asyncio.CancelledError:
        _remove_outputs(outputs)
        raise
    except Exception:
        if token is not None and token.cancelled:
            _remove_outputs(outputs)
        raise
    if token is not None and token.cancelled:
        _remove_outputs(outputs)
        return False
    return True


EngineFactory.register_engine(SubprocessParserEngine, prefer=True)

__all__ = [
    "ParserEngine",
    "SubprocessParserEngine",
    "EngineFactory",
    "invoke_parser",
]
