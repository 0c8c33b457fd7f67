"""Tests for the command line entry point."""

import json
import logging

import httpx
import pytest

from perfpipe import cli
from perfpipe.pipeline import build_writer
from tests.conftest import T0_NS

pytestmark = pytest.mark.tier(2)

SNAPSHOT = {
    "hosts": [{"id": "host-1", "name": "esx01"}],
    "vms": [{"id": "vm-42", "name": "myvm002", "volumes": ["ds-1"]}],
    "volumes": [{"id": "ds-1", "name": "lun01", "type": "VMFS"}],
    "samples": [
        {
            "entity": "vm-42",
            "metric": "cpu.usage.average",
            "value": 4.25,
            "unit": "%",
            "interval": 20,
            "timestamp": "2026-01-01T00:00:00Z",
        }
    ],
}

EXPECTED_LINE = (
    "cpu.usage.average,host=myvm002,interval=20,type=VM,unit=%,vc=vc01 "
    f"value=4.25 {T0_NS}\n"
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch: pytest.MonkeyPatch):
    """Point all file locations into tmp_path and clear ambient settings."""
    monkeypatch.chdir(tmp_path)
    for name in ("PERFPIPE_VC_SERVER", "INFLUX_USERNAME", "INFLUX_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PERFPIPE_SUPPRESSION_MARKER_PATH", str(tmp_path / "suppress"))
    monkeypatch.setenv("PERFPIPE_OUTPUT_DIR", str(tmp_path / "out"))
    monkeypatch.setenv(
        "PERFPIPE_DEFAULT_CREDENTIAL_FILE", str(tmp_path / "credentials.json")
    )
    package_logger = logging.getLogger("perfpipe")
    handlers = list(package_logger.handlers)
    yield
    package_logger.handlers = handlers


@pytest.fixture
def snapshot(tmp_path):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(SNAPSHOT))
    return str(path)


@pytest.fixture
def sink_requests(monkeypatch: pytest.MonkeyPatch) -> list[httpx.Request]:
    """Route the CLI's sink writer to a mock transport."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(204)

    def writer(settings, user=None, password=None):
        return build_writer(
            settings, user, password, transport=httpx.MockTransport(handler)
        )

    monkeypatch.setattr(cli, "build_writer", writer)
    return requests


class TestCollectCommand:
    """Tests for ``perfpipe collect``."""

    @pytest.mark.adapter
    def test_stream_prints_lines(self, snapshot, capsys) -> None:
        code = cli.main(["--vc", "vc01", "collect", "--snapshot", snapshot])

        assert code == 0
        assert capsys.readouterr().out == EXPECTED_LINE

    @pytest.mark.adapter
    def test_advanced_cardinality(self, snapshot, capsys) -> None:
        cli.main(
            [
                "--vc",
                "vc01",
                "--cardinality",
                "advanced",
                "collect",
                "--snapshot",
                snapshot,
            ]
        )

        assert capsys.readouterr().out.startswith("cpu.usage.average.myvm002,")

    @pytest.mark.adapter
    def test_file_mode_prints_path(self, snapshot, capsys, tmp_path) -> None:
        code = cli.main(
            ["--vc", "vc01", "collect", "--snapshot", snapshot, "--output", "file"]
        )

        path = capsys.readouterr().out.strip()
        assert code == 0
        assert path.startswith(str(tmp_path / "out" / "vc01-compute-"))

    @pytest.mark.adapter
    def test_passthrough_prints_samples(self, snapshot, capsys) -> None:
        cli.main(
            [
                "--vc",
                "vc01",
                "collect",
                "--snapshot",
                snapshot,
                "--output",
                "passthrough",
            ]
        )

        fields = capsys.readouterr().out.strip().split("\t")
        assert fields[:4] == ["vm-42", "cpu.usage.average", "-", "4.25"]

    @pytest.mark.adapter
    def test_missing_vc_fails(self, snapshot, capsys) -> None:
        code = cli.main(["collect", "--snapshot", snapshot])

        assert code == 1
        assert "source server id" in capsys.readouterr().err

    @pytest.mark.adapter
    def test_invalid_cardinality_exit_code(self, snapshot, capsys) -> None:
        code = cli.main(
            [
                "--vc",
                "vc01",
                "--cardinality",
                "extreme",
                "collect",
                "--snapshot",
                snapshot,
            ]
        )

        assert code == 2
        assert "invalid configuration" in capsys.readouterr().err

    @pytest.mark.adapter
    def test_unknown_log_level_exit_code(self, capsys) -> None:
        code = cli.main(["--vc", "vc01", "--log-level", "LOUD", "status"])

        assert code == 2
        assert "log_level" in capsys.readouterr().err

    @pytest.mark.adapter
    def test_suppressed_collect_prints_nothing(self, snapshot, capsys) -> None:
        cli.main(["suppress"])

        code = cli.main(["--vc", "vc01", "collect", "--snapshot", snapshot])

        assert code == 0
        assert capsys.readouterr().out == ""


class TestSuppressionCommands:
    """Tests for ``perfpipe suppress``, ``resume`` and ``status``."""

    @pytest.mark.adapter
    def test_suppress_status_resume(self, capsys, tmp_path) -> None:
        assert cli.main(["suppress"]) == 0
        assert (tmp_path / "suppress").exists()
        cli.main(["status"])
        assert capsys.readouterr().out == "suppressed\n"

        assert cli.main(["resume"]) == 0
        cli.main(["status"])
        assert capsys.readouterr().out == "active\n"

    @pytest.mark.adapter
    def test_resume_without_marker_fails(self, capsys) -> None:
        assert cli.main(["resume"]) == 1
        assert "No suppression marker" in capsys.readouterr().err


class TestShipAndWriteCommands:
    """Tests for ``perfpipe ship`` and ``write``."""

    @pytest.mark.adapter
    def test_ship_posts_records(self, snapshot, sink_requests) -> None:
        code = cli.main(
            [
                "--vc",
                "vc01",
                "ship",
                "--snapshot",
                snapshot,
                "--user",
                "w",
                "--password",
                "p",
            ]
        )

        assert code == 0
        (request,) = sink_requests
        assert request.content.decode() == EXPECTED_LINE

    @pytest.mark.adapter
    def test_ship_without_credentials_fails(
        self, snapshot, sink_requests, capsys
    ) -> None:
        code = cli.main(["--vc", "vc01", "ship", "--snapshot", snapshot])

        assert code == 1
        assert "No sink credentials" in capsys.readouterr().err
        assert sink_requests == []

    @pytest.mark.adapter
    def test_write_artifact(self, snapshot, sink_requests, capsys, monkeypatch) -> None:
        cli.main(
            ["--vc", "vc01", "collect", "--snapshot", snapshot, "--output", "file"]
        )
        path = capsys.readouterr().out.strip()
        monkeypatch.setenv("INFLUX_USERNAME", "ambient")

        code = cli.main(["write", path])

        assert code == 0
        assert [r.content.decode() for r in sink_requests] == [EXPECTED_LINE]
