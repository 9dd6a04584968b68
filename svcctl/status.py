from __future__ import annotations

import socket
from typing import Any

import httpx

from .db import log_event
from .models import RawStatus
from .settings import settings


def service_key(service_identifier: str) -> str:
    """`origin/name/1.2.3/2024...` -> `origin/name`."""
    return "/".join(service_identifier.split("/")[:2])


def _split_addr(http_addr: str) -> tuple[str, int]:
    host, _, port = http_addr.rpartition(":")
    if not host:
        raise ValueError(f"Expected host:port, got {http_addr!r}")
    return host.strip("[]"), int(port)


def supervisor_reachable(http_addr: str, timeout_s: float | None = None) -> bool:
    """Cheap TCP connect against the supervisor's HTTP gateway.

    Used before the HTTP call so an absent supervisor costs one connect
    timeout instead of a full HTTP timeout.
    """
    host, port = _split_addr(http_addr)
    timeout = settings.connect_timeout_s if timeout_s is None else timeout_s
    try:
        socket.create_connection((host, port), timeout=timeout).close()
    except OSError:
        return False
    return True


def fetch_services(http_addr: str, client: httpx.Client | None = None) -> list[dict[str, Any]] | None:
    """GET /services and return the raw listing. Returns None on any failure."""
    url = f"http://{http_addr}/services"
    try:
        if client is None:
            with httpx.Client(timeout=settings.http_timeout_s, follow_redirects=False) as c:
                resp = c.get(url)
        else:
            resp = client.get(url)
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError):
        return None
    if not isinstance(data, list):
        return None
    return [item for item in data if isinstance(item, dict)]


def record_key(record: dict[str, Any]) -> str | None:
    """`origin/name` of a raw listing entry, or None when pkg is unusable."""
    pkg = record.get("pkg")
    if not isinstance(pkg, dict):
        return None
    origin, name = pkg.get("origin"), pkg.get("name")
    if not isinstance(origin, str) or not isinstance(name, str) or not origin or not name:
        return None
    return f"{origin}/{name}"


def probe(http_addr: str, service_identifier: str, client: httpx.Client | None = None) -> RawStatus | None:
    """Return the supervisor's record for a service, or None when unknown.

    None covers every way of not knowing: supervisor unreachable, HTTP or
    JSON failure, or the service simply not in the listing. Version and
    release segments of the identifier are ignored when matching. Once
    matched, a mistyped field only loses that field.
    """
    if not supervisor_reachable(http_addr):
        log_event(
            "DEBUG",
            f"Could not connect to http://{http_addr} to retrieve status",
            service_name=service_identifier,
            action="probe",
        )
        return None

    records = fetch_services(http_addr, client=client)
    if records is None:
        log_event(
            "DEBUG",
            f"Could not retrieve http://{http_addr}/services",
            service_name=service_identifier,
            action="probe",
        )
        return None

    wanted = service_key(service_identifier)
    for rec in records:
        if record_key(rec) == wanted:
            return RawStatus.model_validate(rec)

    log_event("DEBUG", "Service not found on the supervisor", service_name=service_identifier, action="probe")
    return None
