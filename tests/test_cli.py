from __future__ import annotations

import json

import pytest

from sitewarmer.errors import SitemapNotFoundError
from sitewarmer.runner import Orchestrator
from sitewarmer.ui.cli import build_arg_parser, run_cli


def test_parser_defaults_and_flags() -> None:
    args = build_arg_parser().parse_args(
        ["https://example.test", "-c", "5", "-t", "2m", "-r", "3", "-d", "0.5", "-i", "--no-assets", "--crawl"]
    )
    assert args.url == "https://example.test"
    assert args.concurrent == 5
    assert args.time == 120
    assert args.repetitions == 3
    assert args.delay == 0.5
    assert args.internet and args.no_assets and args.crawl
    assert not args.follow_links


@pytest.mark.parametrize("bad", ["5X", "abcS"])
def test_bad_duration_is_a_usage_error(bad: str, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        run_cli(["http://example.test", "-t", bad])
    assert excinfo.value.code == 2
    assert "Invalid duration" in capsys.readouterr().err


def test_invalid_config_is_a_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        run_cli(["http://example.test", "-c", "0"])
    assert excinfo.value.code == 2


def test_completed_run_prints_report(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    async def fake_run(self, fetcher=None):
        self.targets = [self.config.url]
        self.stats.record(120.0, 2048, 200)
        self.stats.record(80.0, 0, 0)
        return self.targets

    monkeypatch.setattr(Orchestrator, "run", fake_run)

    code = run_cli(["http://example.test/", "-r", "1"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Transactions:" in out
    assert "2 hits" in out
    assert "50.00 %" in out
    assert "Successful transactions:" in out
    assert "Longest transaction:" in out


def test_interrupt_still_reports(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    async def interrupted_run(self, fetcher=None):
        self.stats.record(10.0, 10, 200)
        raise KeyboardInterrupt

    monkeypatch.setattr(Orchestrator, "run", interrupted_run)

    code = run_cli(["http://example.test/"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Lifting the server siege" in out
    assert "1 hits" in out


def test_startup_failure_prints_hint_without_report(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    async def no_sitemap(self, fetcher=None):
        raise SitemapNotFoundError(self.config.url)

    monkeypatch.setattr(Orchestrator, "run", no_sitemap)

    code = run_cli(["http://example.test/", "--sitemap", "-r", "1"])

    captured = capsys.readouterr()
    assert code == 1
    assert "No sitemap found" in captured.err
    assert "--follow-links" in captured.err
    assert "Transactions:" not in captured.out


def test_report_export(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    async def fake_run(self, fetcher=None):
        self.targets = ["http://example.test/a", "http://example.test/b"]
        self.stats.record(50.0, 512, 200)
        return self.targets

    monkeypatch.setattr(Orchestrator, "run", fake_run)
    out_json = tmp_path / "report.json"
    out_csv = tmp_path / "nested" / "report.csv"

    assert run_cli(["http://example.test/", "-r", "1", "--output", str(out_json)]) == 0
    assert run_cli([
        "http://example.test/", "-r", "1", "--output", str(out_csv),
        "--exporter", "sitewarmer.export.csv_exporter:CSVExporter",
    ]) == 0

    data = json.loads(out_json.read_text(encoding="utf-8"))
    assert data["targets"] == ["http://example.test/a", "http://example.test/b"]
    assert data["metrics"]["transactions"] == 1
    assert data["mode"] == "single-url/load"
    rows = out_csv.read_text(encoding="utf-8").splitlines()
    assert rows[0] == "field,value"
    assert "target,http://example.test/b" in rows
    assert "transactions,1" in rows


def test_unknown_config_key_is_a_usage_error(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "warmer.json"
    path.write_text(json.dumps({"url": "http://example.test/", "threads": 4}), encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        run_cli(["--config", str(path)])

    assert excinfo.value.code == 2
    assert "Unknown config keys" in capsys.readouterr().err
