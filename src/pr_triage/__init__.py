"""pr_triage

Duplicate and overlap detection for open pull requests: production-first
fingerprints, indexed candidate retrieval, explainable scoring.

Public API surface:
- pr_triage.cli.main : CLI entrypoint
- pr_triage.pipeline.analyze.TriageEngine : analyze one PR revision
- pr_triage.extractors : add/extend production signal extractors
- pr_triage.writers : add/extend edge writers
- pr_triage.reports : check summaries and duplicate sets
"""
__all__ = ["__version__"]
__version__ = "0.1.0"
