"""Runtime settings read from the environment.

Only version overrides live here. They let a deployment pin the signature and
algorithm versions while a migration is in flight; everything that changes how
a pair is scored belongs in thresholds.yaml.
"""

from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from ..constants import ALGORITHM_VERSION, SIGNATURE_VERSION
from ..errors import ConfigError

ENV_SIGNATURE_VERSION = "PR_TRIAGE_SIGNATURE_VERSION"
ENV_ALGORITHM_VERSION = "PR_TRIAGE_ALGORITHM_VERSION"


def _parse_positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ConfigError(f"{name} must be >= 1, got {value}")
    return value


@dataclass(frozen=True)
class RuntimeSettings:
    signature_version: int = SIGNATURE_VERSION
    algorithm_version: int = ALGORITHM_VERSION

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "RuntimeSettings":
        env = os.environ if env is None else env
        return cls(
            signature_version=_parse_positive_int(env, ENV_SIGNATURE_VERSION, SIGNATURE_VERSION),
            algorithm_version=_parse_positive_int(env, ENV_ALGORITHM_VERSION, ALGORITHM_VERSION),
        )
