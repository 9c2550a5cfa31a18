"""Shared fixtures: shipped configs and PR revision builders."""
import os

import pytest

from pr_triage.config.loader import load_classification_rules, load_thresholds
from pr_triage.fingerprints.minhash import MinHashSeeds
from pr_triage.pipeline.context import ChangedFile, FileStatus, PrState, PullRequestRevision

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
CONFIG_DIR = os.path.join(ROOT, "configs")


def patch_of(*lines, old_start=1, new_start=1):
    """Unified-diff patch with one hunk; lines carry their own +/- marker."""
    adds = sum(1 for l in lines if l.startswith("+"))
    dels = sum(1 for l in lines if l.startswith("-"))
    header = f"@@ -{old_start},{dels} +{new_start},{adds} @@"
    return "\n".join([header, *lines])


@pytest.fixture
def config_dir():
    return CONFIG_DIR


@pytest.fixture(scope="session")
def rules():
    return load_classification_rules(os.path.join(CONFIG_DIR, "classification_rules.yaml"))


@pytest.fixture(scope="session")
def thresholds():
    return load_thresholds(os.path.join(CONFIG_DIR, "thresholds.yaml"))


@pytest.fixture(scope="session")
def seeds():
    return MinHashSeeds.derive()


@pytest.fixture
def make_file():
    def _make(path, *lines, status=FileStatus.MODIFIED, patch=None, truncated=False, no_patch=False):
        body = None if no_patch else (patch if patch is not None else patch_of(*lines))
        return ChangedFile(
            path=path,
            status=status,
            additions=sum(1 for l in lines if l.startswith("+")),
            deletions=sum(1 for l in lines if l.startswith("-")),
            patch=body,
            patch_truncated=truncated,
        )
    return _make


@pytest.fixture
def make_revision():
    def _make(pr_id, head_sha, files, repo_id=1, number=None, state=PrState.OPEN):
        return PullRequestRevision(
            repo_id=repo_id,
            pr_id=pr_id,
            number=number if number is not None else pr_id,
            head_sha=head_sha,
            files=tuple(files),
            state=state,
            title=f"PR {pr_id}",
            url=f"https://example.test/pulls/{pr_id}",
        )
    return _make
