from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from . import db
from .commands import ACTIONS, CommandFailed, Executor, build_argv, run_command
from .differ import diff
from .models import DesiredConfig, ServiceSnapshot
from .normalize import normalize
from .poller import attempts_for, wait_until
from .settings import settings
from .status import probe as probe_status


class ReconcileError(RuntimeError):
    pass


class PreconditionFailed(ReconcileError):
    pass


class ConvergenceTimeout(ReconcileError):
    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


@dataclass
class ActionResult:
    action: str
    service_identifier: str
    commands: list[list[str]] = field(default_factory=list)
    converged: bool | None = None  # only set for restart/reload

    @property
    def changed(self) -> bool:
        return bool(self.commands)

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "service": self.service_identifier,
            "changed": self.changed,
            "commands": [" ".join(c) for c in self.commands],
            "converged": self.converged,
        }


class Reconciler:
    """Converges one supervised service towards its declared configuration.

    Every action starts from a fresh probe of the supervisor and is
    idempotent: when the current state already satisfies the request no
    command is issued.
    """

    def __init__(
        self,
        desired: DesiredConfig,
        executor: Executor | None = None,
        probe: Callable[[], ServiceSnapshot] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        dry_run: bool = False,
    ):
        self.desired = desired
        self.executor = executor or run_command
        self._probe = probe
        self.sleep = sleep
        self.dry_run = dry_run

    @property
    def name(self) -> str:
        return self.desired.service_identifier

    def current(self) -> ServiceSnapshot:
        if self._probe is not None:
            return self._probe()
        raw = probe_status(self.desired.remote_supervisor_http_addr, self.name)
        return normalize(raw, service_name=self.name)

    def run(self, action: str) -> ActionResult:
        if action not in ACTIONS:
            raise ValueError(f"Unknown action {action!r}; expected one of {', '.join(ACTIONS)}")
        return getattr(self, action)()

    # --- simple actions ---

    def load(self) -> ActionResult:
        result = ActionResult("load", self.name)
        current = self.current()

        force = False
        if current.exists:
            force = diff(self.desired, current).requires_reload

        if current.exists and not force:
            return result

        if force:
            db.log_event(
                "INFO",
                "Reloading using --force due to parameter change",
                service_name=self.name,
                action="load",
            )
        self._dispatch(result, "load", force=force)
        return result

    def unload(self) -> ActionResult:
        result = ActionResult("unload", self.name)
        if self.current().exists:
            self._dispatch(result, "unload")
        return result

    def start(self) -> ActionResult:
        result = ActionResult("start", self.name)
        current = self._require_loaded("start")
        if not current.running:
            self._dispatch(result, "start")
        return result

    def stop(self) -> ActionResult:
        result = ActionResult("stop", self.name)
        current = self._require_loaded("stop")
        if current.running:
            self._dispatch(result, "stop")
        return result

    # --- compound actions ---

    def restart(self) -> ActionResult:
        """unload -> wait until not running -> load.

        A service that stays registered but is no longer up is good enough
        to re-load; the load is then sent with --force.
        """
        return self._cycle("restart", lambda s: not s.running, "still started")

    def reload(self) -> ActionResult:
        """unload -> wait until gone from the supervisor -> load."""
        return self._cycle("reload", lambda s: not s.exists, "still loaded")

    def _cycle(self, action: str, settled: Callable[[ServiceSnapshot], bool], pending: str) -> ActionResult:
        result = ActionResult(action, self.name)
        result.commands.extend(self.unload().commands)

        if self.dry_run:
            # nothing was unloaded, so a fresh probe would not show the post-unload state
            self._dispatch(result, "load")
            result.converged = True
            return result

        poll = wait_until(
            settled,
            self.current,
            max_attempts=attempts_for(self.desired),
            delay_s=settings.poll_delay_s,
            sleep=self.sleep,
        )
        if not poll.converged:
            msg = f"{self.name} {pending} after {poll.attempts} checks"
            db.log_event("ERROR", msg, service_name=self.name, action=action)
            raise ConvergenceTimeout(msg, poll.attempts)

        db.log_event("DEBUG", f"settled after {poll.attempts} checks", service_name=self.name, action=action)
        # A restarted service may still be registered; a plain load would be refused.
        self._dispatch(result, "load", force=poll.last is not None and poll.last.exists)
        result.converged = True
        return result

    # --- helpers ---

    def _require_loaded(self, action: str) -> ServiceSnapshot:
        current = self.current()
        if not current.exists:
            msg = f"No service named {self.name} is loaded on the supervisor"
            db.log_event("FATAL", msg, service_name=self.name, action=action)
            raise PreconditionFailed(msg)
        return current

    def _dispatch(self, result: ActionResult, action: str, force: bool = False) -> None:
        argv = build_argv(action, self.desired, force=force)
        if self.dry_run:
            db.log_event("INFO", f"Would run: {' '.join(argv)}", service_name=self.name, action=action)
        else:
            db.log_event("INFO", f"Running: {' '.join(argv)}", service_name=self.name, action=action)
            try:
                self.executor(argv)
            except CommandFailed as e:
                db.log_event("ERROR", f"{self.name}: {e}", service_name=self.name, action=action)
                raise
        result.commands.append(argv)
