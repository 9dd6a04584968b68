from svcctl import db
from svcctl.models import MUTABLE_FIELDS, RawStatus, ServiceSnapshot
from svcctl.normalize import extract_or_default, normalize
from services.supervisor.app import service_record


def test_unknown_is_not_loaded_and_all_defaults():
    snap = normalize(None)
    assert snap == ServiceSnapshot()
    assert snap.exists is False
    assert snap.running is False
    assert snap.strategy == "none"
    assert snap.topology == "standalone"
    assert snap.builder_url == "https://bldr.habitat.sh"
    assert snap.channel == "stable"
    assert snap.binds == ()
    assert snap.binding_mode == "strict"
    assert snap.service_group == "default"
    assert snap.shutdown_timeout_secs == 8
    assert snap.health_check_interval_secs == 30


def test_full_record():
    raw = RawStatus.model_validate(
        service_record(
            "core/redis",
            update_strategy="at-once",
            topology="leader",
            bldr_url="https://bldr.example.com",
            channel="unstable",
            binds=["db:postgres.prod"],
            binding_mode="relaxed",
            service_group="redis.prod",
            health_check_interval={"secs": 10},
        )
    )
    snap = normalize(raw)
    assert snap.exists is True
    assert snap.running is True
    assert snap.strategy == "at-once"
    assert snap.topology == "leader"
    assert snap.builder_url == "https://bldr.example.com"
    assert snap.channel == "unstable"
    assert snap.binds == ("db:postgres.prod",)
    assert snap.binding_mode == "relaxed"
    assert snap.service_group == "prod"
    assert snap.shutdown_timeout_secs == 8
    assert snap.health_check_interval_secs == 10


def test_running_requires_state_up():
    assert normalize(RawStatus.model_validate(service_record("core/redis", state="down"))).running is False
    assert normalize(RawStatus.model_validate({"pkg": {"origin": "core", "name": "redis"}})).running is False
    assert normalize(RawStatus.model_validate({"process": {}})).running is False


def test_partial_record_defaults_field_by_field():
    raw = RawStatus.model_validate({"pkg": {"origin": "core", "name": "redis"}, "topology": "leader"})
    snap = normalize(raw, service_name="core/redis")

    assert snap.exists is True
    assert snap.topology == "leader"
    defaults = ServiceSnapshot()
    for name in MUTABLE_FIELDS:
        if name != "topology":
            assert getattr(snap, name) == getattr(defaults, name), name

    messages = [e.message for e in db.list_events(service_name="core/redis")]
    assert any(m.startswith("service_group not found") for m in messages)
    assert not any(m.startswith("topology not found") for m in messages)


def test_service_group_keeps_last_segment():
    raw = RawStatus.model_validate({"service_group": "redis.a.b.blue"})
    assert extract_or_default(raw, "service_group") == "blue"

    raw = RawStatus.model_validate({"service_group": "plain"})
    assert extract_or_default(raw, "service_group") == "plain"


def test_enum_values_from_supervisor_are_canonicalized():
    raw = RawStatus.model_validate({"update_strategy": "Rolling", "binding_mode": "Relaxed"})
    snap = normalize(raw)
    assert snap.strategy == "rolling"
    assert snap.binding_mode == "relaxed"


def test_mistyped_fields_fall_back_to_their_own_defaults():
    raw = RawStatus.model_validate(
        service_record(
            "core/redis",
            topology="leader",
            health_check_interval=30,
            pkg={"origin": "core", "name": "redis", "shutdown_timeout": "soon"},
            process="up",
        )
    )
    snap = normalize(raw)
    assert snap.exists is True
    assert snap.running is False
    assert snap.topology == "leader"
    assert snap.health_check_interval_secs == 30
    assert snap.shutdown_timeout_secs == 8
