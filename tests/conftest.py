import sys
from pathlib import Path

# Ensure the src directory and project root are on sys.path for test imports
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
for _path in (SRC_PATH, PROJECT_ROOT):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))


import pytest

from sniff_loader.core.config import Settings
from sniff_loader.core.models import DumpFormat, VersionStamp
from sniff_loader.locks import OutputRegistry

from tests.fixtures.artifact_factory import CURRENT_VERSION, FakeEngine, sample_packets


@pytest.fixture
def settings() -> Settings:
    """Settings with a known expected structure version."""
    return Settings(structure_version=CURRENT_VERSION, parser_executable=None)


@pytest.fixture
def current_stamp() -> VersionStamp:
    return VersionStamp(CURRENT_VERSION, DumpFormat.UNIVERSAL_PROTO_WITH_SEPARATE_TEXT)


@pytest.fixture
def packets():
    return sample_packets()


@pytest.fixture
def engine(current_stamp) -> FakeEngine:
    return FakeEngine(stamp=current_stamp)


@pytest.fixture
def registry() -> OutputRegistry:
    return OutputRegistry()
