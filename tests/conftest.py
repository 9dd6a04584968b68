import dataclasses
import sys

import pytest

# Ensure project root is importable (so `import services...` and `import cli` work reliably across environments)
import os as _os
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from svcctl import db, settings as settings_mod  # noqa: E402


@pytest.fixture(autouse=True)
def event_db(tmp_path, monkeypatch):
    """Point the event log at an isolated sqlite file, with DEBUG events kept."""
    s = dataclasses.replace(settings_mod.settings, db_path=str(tmp_path / "events.db"), debug=True, poll_delay_s=0)
    monkeypatch.setattr(db, "settings", s)
    monkeypatch.setattr("svcctl.reconciler.settings", s)
    return s


@pytest.fixture
def supervisor():
    """Fake supervisor gateway plus a TestClient (an httpx.Client) bound to it."""
    from fastapi.testclient import TestClient
    from services.supervisor import app as sup

    sup.reset()
    with TestClient(sup.app) as client:
        yield sup, client
    sup.reset()
