from __future__ import annotations

from .db import log_event
from .models import MUTABLE_FIELDS, ChangeSet, DesiredConfig, ServiceSnapshot

# Declared as None/"" means "not sent to `hab svc load`", so there is nothing to compare.
OPTIONAL_FIELDS = frozenset({"builder_url", "channel", "service_group"})


def diff(desired: DesiredConfig, current: ServiceSnapshot) -> ChangeSet:
    """Compare desired configuration against the supervisor's view.

    A service the supervisor does not know about is reported as every field
    changed but without a reload: it needs a plain load, not a forced one.
    Optional fields left undeclared never count as drift.
    """
    if not current.exists:
        return ChangeSet(
            changed=frozenset(MUTABLE_FIELDS),
            details={name: (None, getattr(desired, name)) for name in MUTABLE_FIELDS},
            requires_reload=False,
        )

    details: dict[str, tuple] = {}
    for name in MUTABLE_FIELDS:
        want = getattr(desired, name)
        have = getattr(current, name)
        if name in OPTIONAL_FIELDS and (want is None or want == ""):
            continue
        if name == "binds":
            want, have = tuple(want), tuple(have)
        if want != have:
            details[name] = (have, want)
            log_event(
                "DEBUG",
                f"set {name} to {want!r} (was {have!r})",
                service_name=desired.service_identifier,
                action="load",
            )

    return ChangeSet(changed=frozenset(details), details=details, requires_reload=bool(details))
