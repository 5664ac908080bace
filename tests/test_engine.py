import asyncio
import sys
import textwrap
from pathlib import Path

import pytest

from sniff_loader.artifact import output_paths_for_raw
from sniff_loader.core.cancellation import CancellationToken
from sniff_loader.core.config import ParserConfig, Settings
from sniff_loader.core.models import DumpFormat
from sniff_loader.engine import EngineFactory, SubprocessParserEngine, invoke_parser
from sniff_loader.exceptions import ParserInvocationError, ParserNotAvailable

from tests.fixtures.artifact_factory import FakeEngine

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="runs a shebang script")


def _script(tmp_path: Path, body: str) -> str:
    """Write an executable python script acting as the external parser."""
    script = tmp_path / "fake_parser.py"
    script.write_text(
        f"#!{sys.executable}\n"
        "import sys, time, pathlib\n"
        "source = pathlib.Path(sys.argv[-1])\n"
        "out = source.with_name(source.stem + '_parsed.dat')\n"
        + textwrap.dedent(body),
        encoding="utf-8",
    )
    script.chmod(0o755)
    return str(script)


def test_build_command():
    engine = SubprocessParserEngine("parser", grace_period=1)
    config = ParserConfig(options={"b": "2", "a": "1"}, extra_args=["--quiet"])
    cmd = engine.build_command(
        Path("x.pkt"), config, DumpFormat.UNIVERSAL_PROTO_WITH_SEPARATE_TEXT, 12340
    )
    assert cmd == ["parser", "--a=1", "--b=2", "--quiet", "--DumpFormat=4", "--ClientBuild=12340", "x.pkt"]


def test_build_command_without_executable():
    engine = SubprocessParserEngine(None, grace_period=1)
    engine.executable = None
    with pytest.raises(ParserNotAvailable):
        engine.build_command(Path("x.pkt"), ParserConfig(), DumpFormat.TEXT, None)


@posix_only
def test_subprocess_forwards_progress_and_writes(tmp_path):
    exe = _script(
        tmp_path,
        """
        print("PROGRESS 0.5", flush=True)
        print("some log line", flush=True)
        out.write_bytes(b"done")
        print("PROGRESS 1", flush=True)
        """,
    )
    source = tmp_path / "cap.pkt"
    source.write_bytes(b"raw")
    seen = []
    engine = SubprocessParserEngine(exe, grace_period=1)
    asyncio.run(
        engine.run(source, ParserConfig(), DumpFormat.UNIVERSAL_PROTO_WITH_SEPARATE_TEXT, None, None, seen.append)
    )
    assert seen == [0.5, 1.0]
    assert (tmp_path / "cap_parsed.dat").read_bytes() == b"done"


@posix_only
def test_subprocess_failure_raises(tmp_path):
    exe = _script(
        tmp_path,
        """
        print("bad capture header", file=sys.stderr)
        sys.exit(3)
        """,
    )
    engine = SubprocessParserEngine(exe, grace_period=1)
    with pytest.raises(ParserInvocationError) as info:
        asyncio.run(engine.run(tmp_path / "cap.pkt", ParserConfig(), DumpFormat.TEXT, None, None, None))
    assert "3" in str(info.value)
    assert "bad capture header" in info.value.suggestion


@posix_only
def test_subprocess_cancellation_cleans_up(tmp_path):
    exe = _script(
        tmp_path,
        """
        out.write_bytes(b"partial")
        print("PROGRESS 0.1", flush=True)
        time.sleep(30)
        """,
    )
    source = tmp_path / "cap.pkt"
    token = CancellationToken()

    def on_progress(value):
        token.cancel()

    engine = SubprocessParserEngine(exe, grace_period=2)
    completed = asyncio.run(
        invoke_parser(engine, source, output_paths_for_raw(source), ParserConfig(), token=token, progress=on_progress)
    )
    assert completed is False
    assert not (tmp_path / "cap_parsed.dat").exists()


def test_invoke_parser_requests_separate_text(tmp_path, engine):
    source = tmp_path / "cap.pkt"
    outputs = output_paths_for_raw(source)
    assert asyncio.run(invoke_parser(engine, source, outputs, ParserConfig(), protocol_version=5))
    assert engine.calls[0]["dump_format"] is DumpFormat.UNIVERSAL_PROTO_WITH_SEPARATE_TEXT
    assert engine.calls[0]["protocol_version"] == 5
    assert outputs.binary.exists() and outputs.text.exists()


def test_invoke_parser_cancel_midway_removes_partial_output(tmp_path, current_stamp):
    engine = FakeEngine(stamp=current_stamp, mode="cancel_midway")
    source = tmp_path / "cap.pkt"
    outputs = output_paths_for_raw(source)
    token = CancellationToken()
    assert asyncio.run(invoke_parser(engine, source, outputs, ParserConfig(), token=token)) is False
    assert not outputs.binary.exists()
    assert not outputs.text.exists()


def test_invoke_parser_error_after_cancel_still_cleans_up(tmp_path, current_stamp):
    source = tmp_path / "cap.pkt"
    outputs = output_paths_for_raw(source)
    token = CancellationToken()

    class Exploding(FakeEngine):
        async def run(self, *args):
            outputs.binary.write_bytes(b"partial")
            token.cancel()
            raise ParserInvocationError("killed")

    with pytest.raises(ParserInvocationError):
        asyncio.run(invoke_parser(Exploding(current_stamp), source, outputs, ParserConfig(), token=token))
    assert not outputs.binary.exists()


def test_factory_without_engines(monkeypatch):
    monkeypatch.setattr(EngineFactory, "_registry", [])
    with pytest.raises(ParserNotAvailable):
        EngineFactory.create_engine()


def test_factory_prefers_named_engine(monkeypatch):
    class OtherEngine(FakeEngine):
        def __init__(self):
            super().__init__(stamp=None)

    class ThirdEngine(OtherEngine):
        pass

    monkeypatch.setattr(EngineFactory, "_registry", [])
    EngineFactory.register_engine(OtherEngine)
    EngineFactory.register_engine(ThirdEngine)
    EngineFactory.register_engine(OtherEngine)
    assert type(EngineFactory.create_engine()) is OtherEngine
    assert type(EngineFactory.create_engine("third")) is ThirdEngine


def test_subprocess_engine_validation(monkeypatch):
    monkeypatch.setattr(
        "sniff_loader.engine.get_settings", lambda: Settings(parser_executable=sys.executable)
    )
    assert SubprocessParserEngine.validate() is True
    monkeypatch.setattr("sniff_loader.engine.get_settings", lambda: Settings(parser_executable=None))
    assert SubprocessParserEngine.validate() is False


def _pid_alive(pid: int) -> bool:
    import os

    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True


@posix_only
def test_oversized_output_line_stops_parser(tmp_path):
    exe = _script(
        tmp_path,
        """
        import os
        (source.parent / "pid").write_text(str(os.getpid()))
        print("x" * 200000, flush=True)
        time.sleep(30)
        """,
    )
    engine = SubprocessParserEngine(exe, grace_period=2, line_limit=1024)
    with pytest.raises(ParserInvocationError) as info:
        asyncio.run(engine.run(tmp_path / "cap.pkt", ParserConfig(), DumpFormat.TEXT, None, None, None))
    assert info.value.context == str(tmp_path / "cap.pkt")
    assert not _pid_alive(int((tmp_path / "pid").read_text()))


@posix_only
def test_default_line_limit_accepts_long_lines(tmp_path):
    exe = _script(
        tmp_path,
        """
        print("x" * 200000, flush=True)
        print("PROGRESS 1", flush=True)
        """,
    )
    seen = []
    engine = SubprocessParserEngine(exe, grace_period=2)
    asyncio.run(engine.run(tmp_path / "cap.pkt", ParserConfig(), DumpFormat.TEXT, None, None, seen.append))
    assert seen == [1.0]


@posix_only
def test_failing_progress_sink_stops_parser(tmp_path):
    exe = _script(
        tmp_path,
        """
        import os
        (source.parent / "pid").write_text(str(os.getpid()))
        print("PROGRESS 0.1", flush=True)
        time.sleep(30)
        """,
    )

    def broken_sink(value):
        raise RuntimeError("sink closed")

    engine = SubprocessParserEngine(exe, grace_period=2)
    with pytest.raises(ParserInvocationError) as info:
        asyncio.run(engine.run(tmp_path / "cap.pkt", ParserConfig(), DumpFormat.TEXT, None, None, broken_sink))
    assert isinstance(info.value.__cause__, RuntimeError)
    assert not _pid_alive(int((tmp_path / "pid").read_text()))
