from sniff_loader.__main__ import main
from sniff_loader.artifact import write_artifact
from sniff_loader.core.config import get_settings
from sniff_loader.core.models import DumpFormat, VersionStamp


def test_cli_loads_parsed_sniff(tmp_path, packets, capsys):
    path = tmp_path / "sniff.dat"
    write_artifact(
        path,
        packets,
        VersionStamp(get_settings().structure_version, DumpFormat.UNIVERSAL_PROTO),
    )
    assert main([str(path), "--list", "2"]) == 0
    out = capsys.readouterr().out
    assert f"Loaded {len(packets)} packets" in out
    assert "SMSG_TEST_1" in out
    assert "SMSG_TEST_2" not in out


def test_cli_reports_domain_errors(tmp_path, packets, capsys):
    path = tmp_path / "sniff.out"
    write_artifact(path, packets, VersionStamp(0, DumpFormat.UNIVERSAL_PROTO))
    if get_settings().structure_version == 0:
        path.write_bytes(b"garbage")
    assert main([str(path), "--unknown-as", "parsed"]) == 1
    err = capsys.readouterr().err
    assert "error:" in err
    assert ".pkt" in err
