"""Local signature/result store.

One JSON document per channel signature and one per analysis run (the run
plus its ranked edges), written through a StorageBackend. Documents are loaded
into an in-memory cache on init; unreadable documents are logged and skipped
so one corrupted file does not take the whole store down.
"""

from __future__ import annotations
import json
import logging
import threading
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..errors import StoreError
from ..fingerprints.schema import ChannelSignature
from ..pipeline.context import AnalysisResult, AnalysisRun, Channel, RunStatus, ScoredEdge
from ..storage.base import StorageBackend
from .base import SignatureStore

log = logging.getLogger("pr_triage.stores.signatures")

_SigKey = Tuple[int, int, str, str, int]


class LocalSignatureStore(SignatureStore):
    def __init__(self, storage: Optional[StorageBackend] = None, root_path: str = ""):
        self.storage = storage
        self.root_path = root_path
        self._lock = threading.RLock()
        self._signatures: Dict[_SigKey, ChannelSignature] = {}
        self._results: Dict[str, AnalysisResult] = {}
        if storage is not None:
            self._signatures_path = storage.join(root_path, "signatures")
            self._runs_path = storage.join(root_path, "runs")
        else:
            self._signatures_path = self._runs_path = ""
        self._load()

    # ------------------------------------------------------- signatures

    def _signature_file(self, sig: ChannelSignature) -> str:
        name = f"{sig.repo_id}_{sig.pr_id}_{sig.head_sha}_{sig.channel.value.lower()}_v{sig.signature_version}.json"
        return self.storage.join(self._signatures_path, name)

    def put_signatures(self, signatures: Iterable[ChannelSignature]) -> None:
        signatures = list(signatures)
        with self._lock:
            for sig in signatures:
                self._signatures[sig.key] = sig
        if self.storage is None:
            return
        for sig in signatures:
            self._write(self._signature_file(sig), sig.to_dict())

    def get_signatures(
        self, repo_id: int, pr_id: int, head_sha: str, signature_version: int
    ) -> Dict[Channel, ChannelSignature]:
        with self._lock:
            out = {}
            for channel in Channel:
                sig = self._signatures.get((repo_id, pr_id, head_sha, channel.value, signature_version))
                if sig is not None:
                    out[channel] = sig
            return out

    # ---------------------------------------------------------- results

    def put_result(self, run: AnalysisRun, edges: Sequence[ScoredEdge]) -> None:
        result = AnalysisResult(run=run, edges=list(edges))
        with self._lock:
            self._results[run.analysis_run_id] = result
        if self.storage is None:
            return
        payload = {"run": run.to_dict(), "edges": [e.to_dict() for e in edges]}
        self._write(self.storage.join(self._runs_path, f"{run.analysis_run_id}.json"), payload)

    def get_result(self, analysis_run_id: str) -> Optional[AnalysisResult]:
        with self._lock:
            return self._results.get(analysis_run_id)

    def latest_results(self, repo_id: int) -> List[AnalysisResult]:
        latest: Dict[Tuple[int, str], AnalysisResult] = {}
        with self._lock:
            for result in self._results.values():
                run = result.run
                if run.repo_id != repo_id or run.status not in (RunStatus.DONE, RunStatus.DEGRADED):
                    continue
                key = (run.pr_id, run.head_sha)
                current = latest.get(key)
                if current is None or (run.finished_at or 0.0) > (current.run.finished_at or 0.0):
                    latest[key] = result
        return [latest[k] for k in sorted(latest)]

    def flush(self) -> None:
        # Documents are written through on put.
        pass

    # ------------------------------------------------------ persistence

    def _write(self, path: str, payload: Dict) -> None:
        try:
            self.storage.write_file(path, json.dumps(payload, sort_keys=True).encode("utf-8"))
        except OSError as exc:
            raise StoreError(f"failed to write {path}: {exc}") from exc

    def _read_json(self, path: str) -> Optional[Dict]:
        try:
            return json.loads(self.storage.read_file(path).decode("utf-8"))
        except (OSError, ValueError) as exc:
            log.warning("skipping unreadable store document %s: %s", path, exc)
            return None

    def _load(self) -> None:
        if self.storage is None:
            return
        try:
            self.storage.makedirs(self._signatures_path, exist_ok=True)
            self.storage.makedirs(self._runs_path, exist_ok=True)
            sig_files = self.storage.list_files(self._signatures_path, "*.json")
            run_files = self.storage.list_files(self._runs_path, "*.json")
        except OSError as exc:
            raise StoreError(f"failed to open signature store at {self.root_path}: {exc}") from exc

        for f in sig_files:
            obj = self._read_json(f)
            if obj is None:
                continue
            try:
                sig = ChannelSignature.from_dict(obj)
            except (KeyError, TypeError, ValueError) as exc:
                log.warning("skipping malformed signature %s: %s", f, exc)
                continue
            self._signatures[sig.key] = sig

        for f in run_files:
            obj = self._read_json(f)
            if obj is None:
                continue
            try:
                run = AnalysisRun.from_dict(obj["run"])
                edges = [ScoredEdge.from_dict(e) for e in obj.get("edges", [])]
            except (KeyError, TypeError, ValueError) as exc:
                log.warning("skipping malformed run %s: %s", f, exc)
                continue
            self._results[run.analysis_run_id] = AnalysisResult(run=run, edges=edges)
