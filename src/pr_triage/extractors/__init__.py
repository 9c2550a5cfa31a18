"""Signal extractors for the PRODUCTION, TESTS and DOCS channels."""

from .base import ProductionSignalExtractor
from .docs import extract_doc_structure
from .intent import extract_test_intent
from .production import PolyglotProductionExtractor, RegexProductionExtractor
from .registry import get_production_extractor, list_production_extractors, register_production_extractor

__all__ = [
    "ProductionSignalExtractor",
    "RegexProductionExtractor",
    "PolyglotProductionExtractor",
    "extract_doc_structure",
    "extract_test_intent",
    "get_production_extractor",
    "list_production_extractors",
    "register_production_extractor",
]
