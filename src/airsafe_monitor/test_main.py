import json
import sys

import pytest

from airsafe_monitor.__main__ import main


def run_cli(monkeypatch, *argv):
    monkeypatch.setenv("AIRSAFE_ENV", "testing")
    monkeypatch.setattr(sys, "argv", ["airsafe-monitor", *argv])
    main()


def test_status_prints_report(monkeypatch, capsys):
    run_cli(monkeypatch, "--environment", "testing", "status")

    report = json.loads(capsys.readouterr().out)
    assert report["stored_keys"] == []
    assert report["sensor_data"]["pm25"] is None
    assert report["alert_stats"] == {"active": 0, "acknowledged": 0, "total_today": 0}
    assert report["alert_settings"]["pm25_threshold"] == 25.0
    assert report["recent_events"] == []


def test_publish_requires_topic_and_message(monkeypatch):
    with pytest.raises(SystemExit) as exc:
        run_cli(monkeypatch, "--environment", "testing", "publish")
    assert exc.value.code == 2


def test_unknown_command_is_rejected(monkeypatch):
    with pytest.raises(SystemExit):
        run_cli(monkeypatch, "--environment", "testing", "explode")
