from typer.testing import CliRunner

from flight_telemetry.cli import app
from flight_telemetry.connectors.graphite import decode_frame
from flight_telemetry.models import TimestampedMetric

runner = CliRunner()


def test_encode_prints_frame_hex():
    result = runner.invoke(app, ["encode", "London.ASCENDING", "1000", "1.0"])
    assert result.exit_code == 0
    frame = bytes.fromhex(result.stdout.strip())
    assert decode_frame(frame) == TimestampedMetric("London.ASCENDING", 1000, 1.0)


def test_replay_missing_file_exits_with_error(tmp_path):
    result = runner.invoke(app, ["replay", str(tmp_path / "missing.jsonl"), "--dry-run"])
    assert result.exit_code == 1
    assert "does not exist" in result.stdout
