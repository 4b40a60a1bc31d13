"""
Content fingerprints of pipeline artifacts.

A fingerprint is a SHA-256 over everything that makes up one stage of one
feature. Comparing the current fingerprint with the one recorded in
state.yaml tells whether the artifact changed since it was last recorded.
"""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Optional

from ptsd.models import PIPELINE_STAGES, FeatureState, Stage, utc_now
from ptsd.pipeline.classifier import is_test_path
from ptsd.pipeline.features import file_stem, match_feature_id
from ptsd.pipeline.prd import extract_section
from ptsd.store import ProjectStore

IMPL_EXTENSIONS = {".go", ".ts", ".js", ".py", ".rs", ".java", ".c", ".cpp"}
SKIP_DIRS = {".ptsd", ".git", ".claude", "node_modules", "__pycache__"}


def is_impl_file(rel: str) -> bool:
    """Source file outside the tool directories."""
    top = rel.split("/", 1)[0]
    if top in SKIP_DIRS:
        return False
    return os.path.splitext(rel)[1] in IMPL_EXTENSIONS


def mapped_test_files(state: Optional[FeatureState]) -> list[str]:
    """Test file halves of a feature's "<bdd>::<test>" mappings, sorted, unique."""
    if state is None:
        return []
    paths = set()
    for mapping in state.tests:
        _, sep, test = mapping.partition("::")
        paths.add(test if sep else mapping)
    return sorted(p for p in paths if p)


class StageHashTracker:
    """
    Computes, compares and records stage fingerprints.

    The tracker reads artifacts through the store's paths and records
    fingerprints into state.yaml.
    """

    def __init__(self, store: ProjectStore) -> None:
        self.store = store
        self._source_files: Optional[list[str]] = None
        self._feature_ids: Optional[list[str]] = None

    def _log(self, event_type: str, data: Optional[dict] = None, level: str = "info") -> None:
        if self.store.logger:
            self.store.logger.log(event_type, data, level=level)

    def _feature_ids_cached(self) -> list[str]:
        if self._feature_ids is None:
            self._feature_ids = [f.id for f in self.store.load_features()]
        return self._feature_ids

    def _walk_sources(self) -> list[str]:
        """Relative paths of implementation files in the project, sorted."""
        if self._source_files is None:
            root = self.store.root
            patterns = self.store.config.testing.patterns
            found = []
            for dirpath, dirnames, filenames in os.walk(root):
                dirnames[:] = sorted(
                    d for d in dirnames if d not in SKIP_DIRS and not d.startswith(".")
                )
                for name in filenames:
                    rel = Path(dirpath, name).relative_to(root).as_posix()
                    if is_impl_file(rel) and not is_test_path(rel, patterns):
                        found.append(rel)
            self._source_files = sorted(found)
        return self._source_files

    def impl_files(self, feature_id: str) -> list[str]:
        """Implementation files whose base name maps to the feature."""
        ids = self._feature_ids_cached()
        return [
            rel for rel in self._walk_sources()
            if match_feature_id(file_stem(rel), ids) == feature_id
        ]

    @staticmethod
    def _hash_files(root: Path, rel_paths: list[str]) -> Optional[str]:
        """Hash (path, content) pairs of the files that exist; None if none do."""
        digest = hashlib.sha256()
        seen = False
        for rel in rel_paths:
            path = root / rel
            if not path.is_file():
                continue
            seen = True
            digest.update(rel.encode("utf-8") + b"\0")
            digest.update(path.read_bytes() + b"\0")
        return digest.hexdigest() if seen else None

    def compute_fingerprint(
        self,
        feature_id: str,
        stage: Stage,
        state: Optional[FeatureState] = None,
    ) -> Optional[str]:
        """
        Current fingerprint of a feature's stage artifact.

        Args:
            feature_id: Feature to fingerprint.
            stage: Pipeline stage (not NONE).
            state: Feature state for the test mappings; loaded if omitted.

        Returns:
            SHA-256 hex digest, or None when the artifact does not exist.
        """
        if stage == Stage.PRD:
            if not self.store.prd_exists():
                return None
            section = extract_section(self.store.read_prd(), feature_id)
            if section is None:
                return None
            return hashlib.sha256(section.content.encode("utf-8")).hexdigest()

        if stage == Stage.SEED:
            seed_dir = self.store.seed_dir(feature_id)
            if not seed_dir.is_dir():
                return None
            files = sorted(
                p.relative_to(seed_dir).as_posix() for p in seed_dir.rglob("*") if p.is_file()
            )
            return self._hash_files(seed_dir, files) or hashlib.sha256(b"").hexdigest()

        if stage == Stage.BDD:
            bdd_file = self.store.bdd_file(feature_id)
            if not bdd_file.is_file():
                return None
            return hashlib.sha256(bdd_file.read_bytes()).hexdigest()

        if stage == Stage.TEST:
            if state is None:
                state = self.store.load_state().get(feature_id)
            return self._hash_files(self.store.root, mapped_test_files(state))

        if stage == Stage.IMPL:
            return self._hash_files(self.store.root, self.impl_files(feature_id))

        return None

    def has_changed(
        self,
        feature_id: str,
        stage: Stage,
        state: Optional[FeatureState] = None,
    ) -> bool:
        """
        True if the current fingerprint differs from the recorded one.

        An artifact that disappeared counts as changed; nothing recorded and
        nothing present is unchanged.
        """
        if state is None:
            state = self.store.load_state().get(feature_id)
        recorded = state.hashes.get(stage.value) if state else None
        current = self.compute_fingerprint(feature_id, stage, state)
        return current != recorded

    def _record_into(self, state: dict[str, FeatureState], feature_id: str, stage: Stage) -> bool:
        """Record one stage into a loaded state mapping; True if it changed."""
        fs = state.get(feature_id) or FeatureState()
        current = self.compute_fingerprint(feature_id, stage, fs)
        if current == fs.hashes.get(stage.value):
            return False

        if current is None:
            fs.hashes.pop(stage.value, None)
        else:
            fs.hashes[stage.value] = current
        fs.updated[stage.value] = utc_now()
        state[feature_id] = fs
        self._log("stage_recorded", {
            "feature": feature_id,
            "stage": stage.value,
            "hash": current or "",
        })
        return True

    def record(self, feature_id: str, stage: Stage) -> bool:
        """
        Store the current fingerprint and timestamp for a stage.

        Returns:
            True if something changed and state.yaml was written.
        """
        state = self.store.load_state()
        changed = self._record_into(state, feature_id, stage)
        if changed:
            self.store.save_state(state)
        return changed

    def sync(self) -> dict[str, list[Stage]]:
        """
        Record every stage of every declared feature.

        Returns:
            Mapping of feature ID to the stages whose fingerprint changed.
        """
        state = self.store.load_state()
        changes: dict[str, list[Stage]] = {}
        for feature_id in self._feature_ids_cached():
            for stage in PIPELINE_STAGES:
                if self._record_into(state, feature_id, stage):
                    changes.setdefault(feature_id, []).append(stage)
        if changes:
            self.store.save_state(state)
        return changes
