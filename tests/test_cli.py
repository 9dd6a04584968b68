import json

import pytest

import cli
from svcctl import commands
from svcctl import reconciler as reconciler_mod
from svcctl.models import RawStatus
from services.supervisor.app import service_record


class _Completed:
    returncode = 0
    stdout = ""
    stderr = ""


@pytest.fixture
def ran(monkeypatch):
    calls = []

    def fake_run(argv, **kwargs):
        calls.append(argv)
        return _Completed()

    monkeypatch.setattr(commands.subprocess, "run", fake_run)
    return calls


def _supervisor_has(monkeypatch, record):
    raw = RawStatus.model_validate(record) if record is not None else None
    monkeypatch.setattr(reconciler_mod, "probe_status", lambda addr, ident: raw)


def test_load_fresh_service(monkeypatch, capsys, ran):
    _supervisor_has(monkeypatch, None)
    rc = cli.main(["load", "core/redis", "--bind", "db:postgres.default", "--topology", "leader"])
    assert rc == 0
    assert len(ran) == 1
    assert ran[0][:6] == ["hab", "svc", "load", "core/redis", "--bind", "db:postgres.default"]

    out = json.loads(capsys.readouterr().out)
    assert out["changed"] is True
    assert out["action"] == "load"


def test_dry_run_does_not_execute(monkeypatch, capsys, ran):
    _supervisor_has(monkeypatch, None)
    assert cli.main(["load", "core/redis", "--dry-run"]) == 0
    assert ran == []
    assert json.loads(capsys.readouterr().out)["commands"][0].startswith("hab svc load core/redis")


def test_empty_string_omits_flag(monkeypatch, ran):
    _supervisor_has(monkeypatch, None)
    assert cli.main(["load", "core/redis", "--channel", "", "--url", ""]) == 0
    assert "--channel" not in ran[0]
    assert "--url" not in ran[0]


def test_start_unloaded_service_exits_1(monkeypatch, capsys, ran):
    _supervisor_has(monkeypatch, None)
    assert cli.main(["start", "core/redis"]) == 1
    assert "core/redis" in capsys.readouterr().err
    assert ran == []


def test_invalid_config_exits_2(capsys):
    assert cli.main(["load", "core/redis", "--topology", "mesh"]) == 2
    assert "Invalid configuration" in capsys.readouterr().err


def test_status_prints_snapshot(monkeypatch, capsys):
    _supervisor_has(monkeypatch, service_record("core/redis", state="down"))
    assert cli.main(["status", "core/redis"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["exists"] is True
    assert out["running"] is False
    assert out["service_group"] == "default"


def test_diff_prints_changes(monkeypatch, capsys):
    _supervisor_has(monkeypatch, service_record("core/redis"))
    assert cli.main(["diff", "core/redis", "--topology", "leader"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["requires_reload"] is True
    assert out["changed"] == {"topology": {"current": "standalone", "desired": "leader"}}


def test_events_lists_recent(monkeypatch, capsys, ran):
    _supervisor_has(monkeypatch, None)
    cli.main(["load", "core/redis"])
    capsys.readouterr()

    assert cli.main(["events", "--service", "core/redis", "--limit", "5"]) == 0
    events = json.loads(capsys.readouterr().out)
    assert events
    assert all(e["service_name"] == "core/redis" for e in events)
