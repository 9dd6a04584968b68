from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidatorFunctionWrapHandler, field_validator


DEFAULT_BUILDER_URL = "https://bldr.habitat.sh"
DEFAULT_CHANNEL = "stable"
DEFAULT_SERVICE_GROUP = "default"
DEFAULT_SHUTDOWN_TIMEOUT_S = 8
DEFAULT_HEALTH_CHECK_INTERVAL_S = 30
DEFAULT_REMOTE_SUP = "127.0.0.1:9632"
DEFAULT_REMOTE_SUP_HTTP = "127.0.0.1:9631"

SERVICE_IDENTIFIER_RE = re.compile(r"^[^/\s]+/[^/\s]+(/[^/\s]+){0,2}$")

STRATEGIES = ("none", "at-once", "rolling")
TOPOLOGIES = ("standalone", "leader")
BINDING_MODES = ("strict", "relaxed")

# Fields compared between desired and current state, in flag order of `hab svc load`.
MUTABLE_FIELDS = (
    "strategy",
    "topology",
    "builder_url",
    "channel",
    "binds",
    "binding_mode",
    "service_group",
    "shutdown_timeout_secs",
    "health_check_interval_secs",
)


def canonical(value: Any) -> Any:
    """Collapse symbol-ish spellings (Enum members, ':leader', 'Leader') to a plain string."""
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, str):
        return value.strip().lstrip(":").lower()
    return value


def _one_of(value: Any, allowed: tuple[str, ...], name: str) -> str:
    v = canonical(value)
    if v not in allowed:
        raise ValueError(f"{name} must be one of {', '.join(allowed)} (got {value!r})")
    return v


class DesiredConfig(BaseModel):
    """Declared configuration for one supervised service."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_identifier: str = Field(..., description="origin/name[/version[/release]]")
    strategy: str = Field("none", description="none|at-once|rolling")
    topology: str = Field("standalone", description="standalone|leader")
    builder_url: Optional[str] = DEFAULT_BUILDER_URL
    channel: Optional[str] = DEFAULT_CHANNEL
    binds: tuple[str, ...] = ()
    binding_mode: str = Field("strict", description="strict|relaxed")
    service_group: Optional[str] = DEFAULT_SERVICE_GROUP
    shutdown_timeout_secs: int = Field(DEFAULT_SHUTDOWN_TIMEOUT_S, ge=0)
    health_check_interval_secs: int = Field(DEFAULT_HEALTH_CHECK_INTERVAL_S, ge=0)
    remote_supervisor_addr: str = Field(DEFAULT_REMOTE_SUP, description="host:port for `hab svc` control calls")
    remote_supervisor_http_addr: str = Field(DEFAULT_REMOTE_SUP_HTTP, description="host:port of the HTTP gateway")

    @field_validator("service_identifier")
    @classmethod
    def _check_identifier(cls, v: str) -> str:
        v = v.strip()
        if not SERVICE_IDENTIFIER_RE.match(v):
            raise ValueError("service_identifier must look like origin/name[/version[/release]]")
        return v

    @field_validator("remote_supervisor_addr", "remote_supervisor_http_addr")
    @classmethod
    def _check_addr(cls, v: str) -> str:
        host, _, port = v.strip().rpartition(":")
        if not host or not port.isdigit():
            raise ValueError("address must look like host:port")
        return v.strip()

    @field_validator("strategy", mode="before")
    @classmethod
    def _check_strategy(cls, v: Any) -> str:
        return _one_of(v, STRATEGIES, "strategy")

    @field_validator("topology", mode="before")
    @classmethod
    def _check_topology(cls, v: Any) -> str:
        return _one_of(v, TOPOLOGIES, "topology")

    @field_validator("binding_mode", mode="before")
    @classmethod
    def _check_binding_mode(cls, v: Any) -> str:
        return _one_of(v, BINDING_MODES, "binding_mode")

    @field_validator("channel", mode="before")
    @classmethod
    def _check_channel(cls, v: Any) -> Any:
        if isinstance(v, Enum) or (isinstance(v, str) and v.startswith(":")):
            return canonical(v)
        return v

    @field_validator("binds", mode="before")
    @classmethod
    def _coerce_binds(cls, v: Any) -> Any:
        if v is None:
            return ()
        if isinstance(v, str):
            return (v,)
        return tuple(v)


class _Record(BaseModel):
    """Supervisor payload: unknown keys ignored, a mistyped value becomes None."""

    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="wrap")
    @classmethod
    def _none_if_invalid(cls, v: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        try:
            return handler(v)
        except ValidationError:
            return None


class PkgInfo(_Record):
    origin: Optional[str] = None
    name: Optional[str] = None
    version: Optional[str] = None
    release: Optional[str] = None
    shutdown_timeout: Optional[int] = None


class ProcessInfo(_Record):
    state: Optional[str] = None
    pid: Optional[int] = None


class HealthCheckInterval(_Record):
    secs: Optional[int] = None


class RawStatus(_Record):
    """One record of the supervisor's `/services` listing.

    Every field is optional: a partially populated record is normal and the
    normalizer fills the gaps.
    """

    pkg: Optional[PkgInfo] = None
    process: Optional[ProcessInfo] = None
    update_strategy: Optional[str] = None
    topology: Optional[str] = None
    bldr_url: Optional[str] = None
    channel: Optional[str] = None
    binds: Optional[list[str]] = None
    binding_mode: Optional[str] = None
    service_group: Optional[str] = None
    health_check_interval: Optional[HealthCheckInterval] = None

    @property
    def key(self) -> str | None:
        if self.pkg is None or not self.pkg.origin or not self.pkg.name:
            return None
        return f"{self.pkg.origin}/{self.pkg.name}"


@dataclass(frozen=True)
class ServiceSnapshot:
    exists: bool = False
    running: bool = False
    strategy: str = "none"
    topology: str = "standalone"
    builder_url: str = DEFAULT_BUILDER_URL
    channel: str = DEFAULT_CHANNEL
    binds: tuple[str, ...] = ()
    binding_mode: str = "strict"
    service_group: str = DEFAULT_SERVICE_GROUP
    shutdown_timeout_secs: int = DEFAULT_SHUTDOWN_TIMEOUT_S
    health_check_interval_secs: int = DEFAULT_HEALTH_CHECK_INTERVAL_S

    @property
    def loaded(self) -> bool:
        return self.exists


@dataclass(frozen=True)
class ChangeSet:
    changed: frozenset[str] = frozenset()
    details: dict[str, tuple[Any, Any]] = field(default_factory=dict)  # field -> (current, desired)
    requires_reload: bool = False

    def __bool__(self) -> bool:
        return bool(self.changed)
