from sniff_loader.artifact import paths_for_artifact, write_artifact
from sniff_loader.cache import check_artifact, is_cache_valid, read_version_stamp
from sniff_loader.core.models import DumpFormat, VersionStamp

from tests.fixtures.artifact_factory import CURRENT_VERSION


def test_missing_file_has_no_stamp(tmp_path):
    assert read_version_stamp(tmp_path / "nope.dat") is None


def test_foreign_file_has_no_stamp(tmp_path):
    path = tmp_path / "foreign.dat"
    path.write_bytes(b"\x0a\x0d\x0d\x0a" + b"\x00" * 32)
    assert read_version_stamp(path) is None


def test_truncated_header_has_no_stamp(tmp_path):
    path = tmp_path / "short.dat"
    path.write_bytes(b"SNFV\x07\x00")
    assert read_version_stamp(path) is None


def test_stamp_is_read(tmp_path, packets, current_stamp):
    path = tmp_path / "a.dat"
    write_artifact(path, packets, current_stamp)
    assert read_version_stamp(path) == current_stamp


def test_valid_without_text_requirement(tmp_path):
    stamp = VersionStamp(CURRENT_VERSION, DumpFormat.UNIVERSAL_PROTO)
    assert is_cache_valid(stamp, tmp_path / "absent.txt", CURRENT_VERSION)


def test_stale_version_is_invalid(tmp_path):
    stamp = VersionStamp(CURRENT_VERSION - 1, DumpFormat.UNIVERSAL_PROTO)
    assert not is_cache_valid(stamp, tmp_path / "absent.txt", CURRENT_VERSION)
    assert not is_cache_valid(None, tmp_path / "absent.txt", CURRENT_VERSION)


def test_text_sibling_required(tmp_path, current_stamp):
    text = tmp_path / "a.txt"
    assert not is_cache_valid(current_stamp, text, CURRENT_VERSION)
    text.write_text("x", encoding="utf-8")
    assert is_cache_valid(current_stamp, text, CURRENT_VERSION)


def test_check_artifact_reasons(tmp_path, packets, current_stamp):
    paths = paths_for_artifact(tmp_path / "a.dat")
    assert check_artifact(paths, CURRENT_VERSION).reason == "artifact does not exist"

    write_artifact(paths.binary, packets, current_stamp)
    check = check_artifact(paths, CURRENT_VERSION)
    assert not check.valid
    assert "text sibling" in check.reason

    paths.text.write_text("x", encoding="utf-8")
    check = check_artifact(paths, CURRENT_VERSION)
    assert check.valid and check.stamp == current_stamp

    check = check_artifact(paths, CURRENT_VERSION + 1)
    assert not check.valid
    assert "does not match" in check.reason
