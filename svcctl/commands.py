from __future__ import annotations

import subprocess
from typing import Callable

from .db import log_event
from .models import DesiredConfig
from .settings import settings


ACTIONS = ("load", "unload", "start", "stop", "restart", "reload")

Executor = Callable[[list[str]], None]


class CommandFailed(RuntimeError):
    def __init__(self, argv: list[str], returncode: int | None, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or "no output"
        super().__init__(f"Command failed ({returncode}): {' '.join(argv)}: {detail}")


def _present(value: object) -> bool:
    return value is not None and value != ""


def build_args(action: str, desired: DesiredConfig, force: bool = False) -> list[str]:
    """Arguments for `hab svc <action> <ident>`.

    Each option only applies to certain subcommands. String options are
    skipped when empty; `--binding-mode` is always sent on load. `--force`
    is only meaningful on load and always goes last.
    """
    opts: list[str] = []

    if action == "load":
        opts.extend(f"--bind {b}" for b in desired.binds)
        opts.append(f"--binding-mode {desired.binding_mode}")
        if _present(desired.builder_url):
            opts.append(f"--url {desired.builder_url}")
        if _present(desired.channel):
            opts.append(f"--channel {desired.channel}")
        if _present(desired.service_group):
            opts.append(f"--group {desired.service_group}")
        if _present(desired.strategy):
            opts.append(f"--strategy {desired.strategy}")
        if _present(desired.topology):
            opts.append(f"--topology {desired.topology}")
        if desired.health_check_interval_secs is not None:
            opts.append(f"--health-check-interval {desired.health_check_interval_secs}")
        if desired.shutdown_timeout_secs is not None:
            opts.append(f"--shutdown-timeout {desired.shutdown_timeout_secs}")
    elif action in {"unload", "stop"}:
        if desired.shutdown_timeout_secs is not None:
            opts.append(f"--shutdown-timeout {desired.shutdown_timeout_secs}")

    opts.append(f"--remote-sup {desired.remote_supervisor_addr}")

    if force and action == "load":
        opts.append("--force")

    # argv-style: "--bind x" becomes two tokens
    return [tok for opt in opts for tok in opt.split()]


def build_argv(action: str, desired: DesiredConfig, force: bool = False, binary: str | None = None) -> list[str]:
    return [binary or settings.hab_bin, "svc", action, desired.service_identifier, *build_args(action, desired, force)]


def run_command(argv: list[str]) -> None:
    """Default executor: run the control binary, raise CommandFailed on a non-zero exit."""
    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            check=False,
            timeout=settings.command_timeout_s,
        )
    except FileNotFoundError as e:
        raise CommandFailed(argv, None, f"{argv[0]} not found") from e
    except subprocess.TimeoutExpired as e:
        raise CommandFailed(argv, None, f"timed out after {settings.command_timeout_s}s") from e

    if result.returncode != 0:
        raise CommandFailed(argv, result.returncode, result.stderr or result.stdout)
    if result.stdout.strip():
        # argv is `<bin> svc <action> <ident> ...`
        log_event("DEBUG", result.stdout.strip()[:2000], service_name=argv[3], action=argv[2])
