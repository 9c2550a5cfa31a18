"""Typed configuration models.

Classification rules and thresholds are YAML files reviewed like code. They are
validated once at load time: unknown keys are rejected (an unknown channel name
is a config error, not a silently ignored block) and every weight, threshold
and cap must fall in [0, 1]. Models are frozen so a loaded config can be shared
by concurrent analyses.
"""

from __future__ import annotations
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..constants import DEFAULT_REVIEW_SCORE_THRESHOLD

Unit = Annotated[float, Field(ge=0.0, le=1.0)]


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


# ---------------------------------------------------------------- rules

class ChannelRule(_Strict):
    path_globs: List[str] = Field(default_factory=list)
    extensions: List[str] = Field(default_factory=list)


class ChannelRules(_Strict):
    meta: ChannelRule
    tests: ChannelRule
    docs: ChannelRule
    production: ChannelRule


class AstRefinements(_Strict):
    """Content hints that move ambiguous source files into TESTS."""
    test_framework_imports: List[str] = Field(default_factory=list)
    test_function_names: List[str] = Field(default_factory=list)


class ClassificationRules(_Strict):
    version: int = Field(ge=1)
    channels: ChannelRules
    ast_refinements: Optional[AstRefinements] = None


# ----------------------------------------------------------- thresholds

class ActionFlags(_Strict):
    """Passed through to the notification layer; the engine never acts on them."""
    publish_check_run: bool = True
    apply_labels: bool = False
    post_comment_on_same_change: bool = False


class CandidateLimits(_Strict):
    max_candidates_from_lsh: int = Field(ge=1)
    max_candidates_scored: Optional[int] = Field(default=None, ge=1)
    max_candidates_final: int = Field(ge=1)
    recent_pr_window_days: int = Field(ge=1)

    @property
    def union_limit(self) -> int:
        return self.max_candidates_scored or self.max_candidates_from_lsh

    @property
    def lsh_ttl_seconds(self) -> int:
        return self.recent_pr_window_days * 86400


class SameChangeThresholds(_Strict):
    prod_minhash_threshold: Unit
    prod_files_overlap_threshold: Unit


class SameFeatureThresholds(_Strict):
    prod_score_threshold: Unit
    supporting_signal_min: Unit


class CompetingImplThresholds(_Strict):
    tests_intent_threshold: Unit
    prod_score_max: Unit


class SimilarityThresholds(_Strict):
    same_change: SameChangeThresholds
    same_feature: SameFeatureThresholds
    competing_impl: CompetingImplThresholds
    review_score_threshold: float = Field(default=DEFAULT_REVIEW_SCORE_THRESHOLD, ge=0.0, le=1.0)


class ScoreCaps(_Strict):
    test_score_cap: Unit
    doc_score_cap: Unit


class ProductionWeights(_Strict):
    minhash: Unit
    exports: Unit
    symbols: Unit
    files: Unit
    imports: Unit


class TestsWeights(_Strict):
    intent: Unit


class DocsWeights(_Strict):
    structure: Unit


class Weights(_Strict):
    production: ProductionWeights
    tests: TestsWeights
    docs: DocsWeights


class Thresholds(_Strict):
    version: int = Field(ge=1)
    actions: ActionFlags = Field(default_factory=ActionFlags)
    candidates: CandidateLimits
    similarity: SimilarityThresholds
    caps: ScoreCaps
    weights: Weights
    # Accepted so existing files load; reranking is not performed.
    llm: Optional[Dict[str, Any]] = None

    @property
    def config_version(self) -> int:
        return self.version


# ------------------------------------------------------------- cli run

class RunSection(_Strict):
    repo_id: int = 0
    run_id: Optional[str] = None
    state_dir: str = "storage/triage"
    log_dir: str = "logs"
    log_level: str = "INFO"


class ConfigPaths(_Strict):
    classification_rules: Optional[str] = None
    thresholds: Optional[str] = None


class ExtractionSection(_Strict):
    production: str = "regex"


class OutputSection(_Strict):
    edges_format: str = "jsonl"
    out_dir: str = "storage/results"
    summary_max_chars: int = Field(default=4000, ge=200)


class TriageConfig(_Strict):
    run: RunSection = Field(default_factory=RunSection)
    config: ConfigPaths = Field(default_factory=ConfigPaths)
    extraction: ExtractionSection = Field(default_factory=ExtractionSection)
    output: OutputSection = Field(default_factory=OutputSection)
