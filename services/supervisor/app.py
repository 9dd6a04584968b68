"""Stand-in for the supervisor HTTP gateway.

Serves `/services` from in-memory state so the status client can be
exercised without a real supervisor:

    uvicorn services.supervisor.app:app --port 9631
"""
from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException

app = FastAPI(title="Fake Supervisor Gateway")

APP_STATE: dict[str, Any] = {"services": [], "fail": False, "body": None}


def service_record(ident: str, state: str = "up", **overrides: Any) -> dict[str, Any]:
    """A fully populated `/services` record for origin/name."""
    origin, name = ident.split("/")[:2]
    rec: dict[str, Any] = {
        "pkg": {"origin": origin, "name": name, "version": "1.0.0", "release": "20240101000000", "shutdown_timeout": 8},
        "process": {"state": state, "pid": 4242 if state == "up" else None},
        "update_strategy": "none",
        "topology": "standalone",
        "bldr_url": "https://bldr.habitat.sh",
        "channel": "stable",
        "binds": [],
        "binding_mode": "strict",
        "service_group": f"{name}.default",
        "health_check_interval": {"secs": 30},
    }
    rec.update(overrides)
    return rec


def reset() -> None:
    APP_STATE["services"] = []
    APP_STATE["fail"] = False
    APP_STATE["body"] = None


@app.get("/services")
def list_services() -> Any:
    if APP_STATE["fail"]:
        raise HTTPException(status_code=503, detail="supervisor busy")
    if APP_STATE["body"] is not None:
        return APP_STATE["body"]
    return APP_STATE["services"]


@app.post("/simulate/reset")
def simulate_reset() -> dict[str, str]:
    reset()
    return {"status": "ok"}
