"""Run ID resolution for CLI invocations: explicit `run.run_id` or
`<command>_<YYYYMMDDHHMMSS>` in UTC."""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional

from .config.models import TriageConfig


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")


def resolve_run_id(cfg: TriageConfig, command: str, explicit: Optional[str] = None) -> str:
    if explicit is not None and explicit.strip():
        return explicit.strip()
    configured = cfg.run.run_id
    if configured is not None and configured.strip():
        return configured.strip()
    return f"{command}_{_timestamp()}"
