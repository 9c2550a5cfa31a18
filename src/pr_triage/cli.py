"""CLI entrypoint.

Commands:
- `pr-triage analyze --config configs/triage.yaml --pr revision.json`
- `pr-triage scan --config configs/triage.yaml --prs revisions/`
- `pr-triage sets --config configs/triage.yaml`
- `pr-triage config-diff --a <file.yaml> --b <file.yaml>`

State (index snapshot, signatures, runs) lives under `run.state_dir`; ranked
edges are exported under `output.out_dir` in `output.edges_format`.
"""

from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from typing import List, Optional, Tuple

from rich import box
from rich.console import Console
from rich.table import Table
from tqdm import tqdm

from .config.loader import load_classification_rules, load_thresholds, load_triage_config
from .config.models import TriageConfig
from .config.settings import RuntimeSettings
from .errors import ConfigError, StoreError
from .extractors.registry import get_production_extractor
from .fingerprints.minhash import MinHashSeeds
from .logging_ import setup_logging
from .metrics import TriageMetrics
from .pipeline.analyze import TriageEngine
from .pipeline.context import AnalysisResult, PullRequestRevision
from .reports.duplicate_sets import DuplicateSet, build_duplicate_sets, latest_edges
from .reports.summary import build_check_summary
from .run_id import resolve_run_id
from .storage.base import get_storage_backend
from .stores.index_store import LocalIndexStore
from .stores.signature_store import LocalSignatureStore
from .tools.config_diff import main as config_diff_main
from .writers.base import EdgeWriter
from .writers.registry import get_edge_writer

log = logging.getLogger("pr_triage.cli")


def _load_revision(path: str) -> PullRequestRevision:
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
        return PullRequestRevision.from_dict(obj)
    except OSError as exc:
        raise ConfigError(f"{path}: cannot read revision ({exc})") from exc
    except (ValueError, KeyError, TypeError) as exc:
        raise ConfigError(f"{path}: malformed revision ({exc})") from exc


def _edge_writer(name: str) -> EdgeWriter:
    try:
        return get_edge_writer(name)
    except KeyError as exc:
        raise ConfigError(str(exc)) from exc


def _open_stores(cfg: TriageConfig) -> Tuple[LocalIndexStore, LocalSignatureStore]:
    storage = get_storage_backend()
    state_dir = cfg.run.state_dir
    index = LocalIndexStore(storage, storage.join(state_dir, "index"))
    signatures = LocalSignatureStore(storage, storage.join(state_dir, "signatures"))
    return index, signatures


def _build_engine(cfg: TriageConfig, index: LocalIndexStore, signatures: LocalSignatureStore) -> TriageEngine:
    rules = load_classification_rules(cfg.config.classification_rules)
    thresholds = load_thresholds(cfg.config.thresholds)
    return TriageEngine(
        rules,
        thresholds,
        index,
        signatures,
        extractor=get_production_extractor(cfg.extraction.production),
        seeds=MinHashSeeds.derive(),
        settings=RuntimeSettings.from_env(),
    )


def _edges_table(result: AnalysisResult, index: LocalIndexStore) -> Table:
    table = Table(title=f"[bold]PR {result.run.pr_id} @ {result.run.head_sha[:12]}[/bold]", box=box.ROUNDED)
    table.add_column("Rank", justify="right", style="magenta")
    table.add_column("PR", style="cyan", no_wrap=True)
    table.add_column("Category", style="yellow")
    table.add_column("Score", justify="right", style="green")
    table.add_column("Prod", justify="right")
    table.add_column("Provenance")
    table.add_column("Paths", no_wrap=False, max_width=48)
    for e in result.edges:
        head = index.get_head(e.repo_id, e.pr_id_b)
        number = head.number if head is not None else e.pr_id_b
        table.add_row(
            str(e.rank),
            f"#{number}",
            e.category.value,
            f"{e.final_score:.3f}",
            f"{e.prod_score:.3f}",
            ", ".join(p.value for p in e.provenance),
            ", ".join(e.evidence.overlapping_production_paths[:3]) or "-",
        )
    return table


def _sets_table(sets: List[DuplicateSet]) -> Table:
    table = Table(title="[bold]Duplicate Sets[/bold]", box=box.ROUNDED)
    table.add_column("Set", style="cyan", no_wrap=True)
    table.add_column("Members", style="yellow")
    table.add_column("Max score", justify="right", style="green")
    table.add_column("Categories")
    for s in sets:
        table.add_row(
            s.set_id,
            ", ".join(f"#{m.number}" for m in s.members),
            f"{s.max_score:.3f}",
            ", ".join(c.value for c in s.categories),
        )
    return table


def _analyze_one(
    engine: TriageEngine, cfg: TriageConfig, writer: EdgeWriter, path: str, metrics: TriageMetrics
) -> AnalysisResult:
    revision = _load_revision(path)
    result = engine.analyze(revision, metrics)
    if result.edges:
        out = writer.write_run(result.run, result.edges, out_dir=cfg.output.out_dir)
        log.info("wrote %d edges to %s", len(result.edges), out)
    return result


def _cmd_analyze(cfg: TriageConfig, pr_path: str, console: Console) -> None:
    index, signatures = _open_stores(cfg)
    engine = _build_engine(cfg, index, signatures)
    writer = _edge_writer(cfg.output.edges_format)
    metrics = TriageMetrics()
    try:
        result = _analyze_one(engine, cfg, writer, pr_path, metrics)
    finally:
        index.flush()

    numbers = {}
    for e in result.edges:
        head = index.get_head(e.repo_id, e.pr_id_b)
        if head is not None:
            numbers[e.pr_id_b] = head.number
    summary = build_check_summary(result.run, result.edges, numbers, cfg.output.summary_max_chars)
    console.print(f"[bold]{summary.title}[/bold]")
    if result.edges:
        console.print(_edges_table(result, index))
    console.print(summary.summary)
    console.print(summary.text)


def _cmd_scan(cfg: TriageConfig, prs_dir: str, console: Console) -> None:
    if not os.path.isdir(prs_dir):
        raise ConfigError(f"{prs_dir}: not a directory")
    paths = sorted(os.path.join(prs_dir, n) for n in os.listdir(prs_dir) if n.endswith(".json"))
    index, signatures = _open_stores(cfg)
    engine = _build_engine(cfg, index, signatures)
    writer = _edge_writer(cfg.output.edges_format)
    metrics = TriageMetrics()
    try:
        for path in tqdm(paths, desc="analyze", unit="pr"):
            try:
                _analyze_one(engine, cfg, writer, path, metrics)
            except StoreError:
                log.error("aborting scan at %s", path)
                raise
            except ConfigError as exc:
                log.warning("skipping %s: %s", path, exc)
    finally:
        index.flush()
    console.print(metrics.summary())


def _cmd_sets(cfg: TriageConfig, console: Console) -> None:
    index, signatures = _open_stores(cfg)
    repo_id = cfg.run.repo_id
    sets = build_duplicate_sets(index.open_heads(repo_id), latest_edges(signatures.latest_results(repo_id)))
    if not sets:
        console.print("No duplicate sets.")
        return
    console.print(_sets_table(sets))


def main(argv: Optional[List[str]] = None) -> None:
    p = argparse.ArgumentParser(prog="pr-triage")
    sub = p.add_subparsers(dest="cmd", required=True)

    pa = sub.add_parser("analyze", help="Analyze one PR revision")
    pa.add_argument("--config", default=None, help="triage.yaml (default: nearest configs/triage.yaml)")
    pa.add_argument("--pr", required=True, help="Revision JSON file")
    pa.add_argument("--run-id", default=None)

    ps = sub.add_parser("scan", help="Analyze every *.json revision in a directory")
    ps.add_argument("--config", default=None)
    ps.add_argument("--prs", required=True, help="Directory of revision JSON files")
    ps.add_argument("--run-id", default=None)

    pst = sub.add_parser("sets", help="Print duplicate sets for the configured repo")
    pst.add_argument("--config", default=None)

    pd = sub.add_parser("config-diff", help="Diff two rules/thresholds YAML files")
    pd.add_argument("--a", required=True)
    pd.add_argument("--b", required=True)

    args = p.parse_args(argv)
    console = Console()

    try:
        if args.cmd == "config-diff":
            print(config_diff_main(args.a, args.b))
            return

        cfg = load_triage_config(args.config)
        if args.cmd == "sets":
            _cmd_sets(cfg, console)
            return

        run_id = resolve_run_id(cfg, args.cmd, args.run_id)
        setup_logging(cfg.run.log_dir, run_id, cfg.run.log_level)
        if args.cmd == "analyze":
            _cmd_analyze(cfg, args.pr, console)
        else:
            _cmd_scan(cfg, args.prs, console)
    except ConfigError as exc:
        print(f"pr-triage: error: {exc}", file=sys.stderr)
        sys.exit(2)
    except StoreError as exc:
        print(f"pr-triage: store error: {exc}", file=sys.stderr)
        sys.exit(1)
