from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict

from pydantic import ValidationError

from svcctl import db
from svcctl.commands import ACTIONS, CommandFailed
from svcctl.differ import diff
from svcctl.models import DesiredConfig
from svcctl.reconciler import Reconciler, ReconcileError


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False, default=list))


def _add_service_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("service_identifier", help="origin/name[/version[/release]]")
    p.add_argument("--strategy", default="none", help="none|at-once|rolling")
    p.add_argument("--topology", default="standalone", help="standalone|leader")
    p.add_argument("--url", dest="builder_url", default="https://bldr.habitat.sh", help="Builder URL ('' to omit)")
    p.add_argument("--channel", default="stable", help="Package channel ('' to omit)")
    p.add_argument("--bind", dest="binds", action="append", default=[], help="Bind (repeatable)")
    p.add_argument("--binding-mode", default="strict", help="strict|relaxed")
    p.add_argument("--group", dest="service_group", default="default", help="Service group ('' to omit)")
    p.add_argument("--shutdown-timeout", dest="shutdown_timeout_secs", type=int, default=8)
    p.add_argument("--health-check-interval", dest="health_check_interval_secs", type=int, default=30)
    p.add_argument("--remote-sup", dest="remote_supervisor_addr", default="127.0.0.1:9632")
    p.add_argument("--remote-sup-http", dest="remote_supervisor_http_addr", default="127.0.0.1:9631")


def _desired(args: argparse.Namespace) -> DesiredConfig:
    return DesiredConfig(
        service_identifier=args.service_identifier,
        strategy=args.strategy,
        topology=args.topology,
        builder_url=args.builder_url or None,
        channel=args.channel or None,
        binds=args.binds,
        binding_mode=args.binding_mode,
        service_group=args.service_group or None,
        shutdown_timeout_secs=args.shutdown_timeout_secs,
        health_check_interval_secs=args.health_check_interval_secs,
        remote_supervisor_addr=args.remote_supervisor_addr,
        remote_supervisor_http_addr=args.remote_supervisor_http_addr,
    )


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Converge one supervised service to its declared configuration")
    sub = p.add_subparsers(dest="cmd", required=True)

    for action in ACTIONS:
        s = sub.add_parser(action, help=f"Converge with `hab svc {action}` semantics")
        _add_service_args(s)
        s.add_argument("--dry-run", action="store_true", help="Print commands instead of running them")

    s_status = sub.add_parser("status", help="Show the supervisor's view of a service")
    _add_service_args(s_status)

    s_diff = sub.add_parser("diff", help="Show which settings differ from the supervisor")
    _add_service_args(s_diff)

    s_ev = sub.add_parser("events", help="Show recent events")
    s_ev.add_argument("--limit", type=int, default=20)
    s_ev.add_argument("--service", default=None)

    args = p.parse_args(argv)

    if args.cmd == "events":
        _print([asdict(e) for e in db.list_events(args.limit, service_name=args.service)])
        return 0

    try:
        desired = _desired(args)
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    if args.cmd == "status":
        _print(asdict(Reconciler(desired).current()))
        return 0

    if args.cmd == "diff":
        changes = diff(desired, Reconciler(desired).current())
        _print(
            {
                "requires_reload": changes.requires_reload,
                "changed": {k: {"current": v[0], "desired": v[1]} for k, v in sorted(changes.details.items())},
            }
        )
        return 0

    try:
        result = Reconciler(desired, dry_run=args.dry_run).run(args.cmd)
    except (ReconcileError, CommandFailed) as e:
        print(str(e), file=sys.stderr)
        return 1
    _print(result.to_dict())
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
