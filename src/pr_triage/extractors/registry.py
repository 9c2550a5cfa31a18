"""Production extractor registry.

Extractors are configured by name in triage.yaml (`extraction.production`).
"""

from __future__ import annotations
from typing import Dict, List

from ..errors import ConfigError
from .base import ProductionSignalExtractor
from .production import PolyglotProductionExtractor, RegexProductionExtractor

_EXTRACTORS: Dict[str, ProductionSignalExtractor] = {
    "regex": RegexProductionExtractor(),
    "regex_polyglot": PolyglotProductionExtractor(),
}


def register_production_extractor(name: str, extractor: ProductionSignalExtractor) -> None:
    """Register a new production extractor at runtime."""
    if name in _EXTRACTORS:
        raise ValueError(f"Production extractor '{name}' already registered")
    _EXTRACTORS[name] = extractor


def list_production_extractors() -> List[str]:
    return list(_EXTRACTORS.keys())


def get_production_extractor(name: str) -> ProductionSignalExtractor:
    if name not in _EXTRACTORS:
        raise ConfigError(
            f"Unknown production extractor: {name}. "
            f"Available: {list(_EXTRACTORS)}. "
            f"Register with register_production_extractor()"
        )
    return _EXTRACTORS[name]
