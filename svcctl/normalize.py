from __future__ import annotations

from typing import Any, Callable

from .db import log_event
from .models import (
    DEFAULT_BUILDER_URL,
    DEFAULT_CHANNEL,
    DEFAULT_HEALTH_CHECK_INTERVAL_S,
    DEFAULT_SERVICE_GROUP,
    DEFAULT_SHUTDOWN_TIMEOUT_S,
    MUTABLE_FIELDS,
    RawStatus,
    ServiceSnapshot,
    canonical,
)


def _running(raw: RawStatus) -> bool:
    return raw.process is not None and raw.process.state == "up"


def _service_group(raw: RawStatus) -> str | None:
    # "redis.default" -> "default"
    if not raw.service_group:
        return None
    return raw.service_group.split(".")[-1]


def _shutdown_timeout(raw: RawStatus) -> int | None:
    return raw.pkg.shutdown_timeout if raw.pkg is not None else None


def _health_check_interval(raw: RawStatus) -> int | None:
    hci = raw.health_check_interval
    return hci.secs if hci is not None else None


def _binds(raw: RawStatus) -> tuple[str, ...] | None:
    return tuple(raw.binds) if raw.binds is not None else None


# field -> (extractor, default)
_EXTRACTORS: dict[str, tuple[Callable[[RawStatus], Any], Any]] = {
    "strategy": (lambda r: canonical(r.update_strategy), "none"),
    "topology": (lambda r: canonical(r.topology), "standalone"),
    "builder_url": (lambda r: r.bldr_url, DEFAULT_BUILDER_URL),
    "channel": (lambda r: r.channel, DEFAULT_CHANNEL),
    "binds": (_binds, ()),
    "binding_mode": (lambda r: canonical(r.binding_mode), "strict"),
    "service_group": (_service_group, DEFAULT_SERVICE_GROUP),
    "shutdown_timeout_secs": (_shutdown_timeout, DEFAULT_SHUTDOWN_TIMEOUT_S),
    "health_check_interval_secs": (_health_check_interval, DEFAULT_HEALTH_CHECK_INTERVAL_S),
}


def extract_or_default(raw: RawStatus, name: str, service_name: str | None = None) -> Any:
    """Read one field from a supervisor record, falling back to its default when absent."""
    extractor, default = _EXTRACTORS[name]
    value = extractor(raw)
    if value is None or value == "":
        log_event(
            "DEBUG",
            f"{name} not found on supervisor API, using default {default!r}",
            service_name=service_name,
            action="probe",
        )
        return default
    return value


def normalize(raw: RawStatus | None, service_name: str | None = None) -> ServiceSnapshot:
    """Turn a supervisor record (or None for unknown) into a ServiceSnapshot."""
    if raw is None:
        snap = ServiceSnapshot()
    else:
        fields = {name: extract_or_default(raw, name, service_name) for name in MUTABLE_FIELDS}
        snap = ServiceSnapshot(exists=True, running=_running(raw), **fields)

    log_event(
        "DEBUG",
        "current state: "
        + ", ".join(
            [f"loaded={snap.exists}", f"running={snap.running}"]
            + [f"{name}={getattr(snap, name)!r}" for name in MUTABLE_FIELDS]
        ),
        service_name=service_name,
        action="probe",
    )
    return snap
