"""Configuration: versioned YAML validated into typed models."""

from .loader import (
    load_classification_rules,
    load_thresholds,
    load_triage_config,
    load_yaml,
    resolve_config_path,
)
from .models import ClassificationRules, Thresholds, TriageConfig
from .settings import RuntimeSettings

__all__ = [
    "ClassificationRules",
    "Thresholds",
    "TriageConfig",
    "RuntimeSettings",
    "load_classification_rules",
    "load_thresholds",
    "load_triage_config",
    "load_yaml",
    "resolve_config_path",
]
