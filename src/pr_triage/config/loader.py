"""Configuration loader.

Rules and thresholds are YAML files with a `version` field. Keeping them in YAML
allows:
- review of threshold changes like code
- versioned interpretation of historical results (every edge records the
  thresholds version it was scored under)

When no explicit path is given, the loader walks up from the working directory
looking for `configs/<name>.yaml`, so the CLI works from any subdirectory of a
checkout.
"""

from __future__ import annotations
import os
from typing import Any, Dict, Optional, Type, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from ..errors import ConfigError
from .models import ClassificationRules, Thresholds, TriageConfig

CONFIG_DIR = "configs"
RULES_FILE = "classification_rules.yaml"
THRESHOLDS_FILE = "thresholds.yaml"
TRIAGE_FILE = "triage.yaml"

M = TypeVar("M", bound=BaseModel)


def load_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"{path}: cannot read config file ({exc})") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path}: invalid YAML ({exc})") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top-level YAML value must be a mapping")
    return data


def resolve_config_path(filename: str, start_dir: Optional[str] = None) -> str:
    """Find `configs/<filename>` in start_dir or the nearest parent that has it."""
    current = os.path.abspath(start_dir or os.getcwd())
    while True:
        candidate = os.path.join(current, CONFIG_DIR, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(current)
        if parent == current:
            raise ConfigError(f"Could not locate {CONFIG_DIR}/{filename} from {start_dir or os.getcwd()}")
        current = parent


def _format_validation_error(path: str, exc: ValidationError) -> str:
    first = exc.errors()[0]
    loc = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
    return f"{path}: {loc}: {first.get('msg', 'invalid value')}"


def parse_model(model: Type[M], data: Dict[str, Any], source: str = "<config>") -> M:
    """Validate a mapping, reporting the first invalid field."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(_format_validation_error(source, exc)) from exc


def load_classification_rules(path: Optional[str] = None) -> ClassificationRules:
    path = path or resolve_config_path(RULES_FILE)
    return parse_model(ClassificationRules, load_yaml(path), path)


def load_thresholds(path: Optional[str] = None) -> Thresholds:
    path = path or resolve_config_path(THRESHOLDS_FILE)
    return parse_model(Thresholds, load_yaml(path), path)


def load_triage_config(path: Optional[str] = None) -> TriageConfig:
    path = path or resolve_config_path(TRIAGE_FILE)
    return parse_model(TriageConfig, load_yaml(path), path)
