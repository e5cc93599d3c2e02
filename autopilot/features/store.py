"""
Feature Store - durable feature list for one project

Reads and rewrites <project>/.automaker/feature_list.json. The store is the
single source of truth for feature status: the agent flips status through the
tool bridge mid-session and the controller re-reads it to learn the outcome.

Thread Safety:
- Every rewrite happens under a per-store lock, so share one FeatureStore
  per project between executions
- Files are replaced atomically; readers never see a half-written list
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import time
import uuid
from pathlib import Path

from autopilot.config import DEFAULT_DATA_DIR, FEATURE_LIST_FILE
from autopilot.features.models import Feature, FeatureStatus
from autopilot.logging import StatusChangeLogEntry, get_run_id, now_iso, store_logger

logger = logging.getLogger(__name__)


class FeatureStore:
    """
    Feature list persistence for a single project.

    Usage:
        store = FeatureStore("/path/to/project")
        features = store.load()
        store.update_status(features[0].id, FeatureStatus.VERIFIED, "Added login form")
    """

    def __init__(self, project_path: str | Path, data_dir: str = DEFAULT_DATA_DIR):
        self.project_path = Path(project_path)
        self.path = self.project_path / data_dir / FEATURE_LIST_FILE
        self._lock = threading.RLock()
        # Records without an id get feature-<index>-<epoch>; one epoch per store
        # keeps those ids stable across reloads within a run.
        self._epoch_ms = int(time.time() * 1000)

    def _read_records(self) -> list[dict] | None:
        """Raw records from disk, or None if the file is missing or malformed."""
        try:
            with open(self.path, encoding="utf-8") as f:
                records = json.load(f)
        except FileNotFoundError:
            logger.warning(f"Feature list not found: {self.path}")
            return None
        except (OSError, ValueError, RecursionError) as e:
            logger.error(f"Failed to load features from {self.path}: {e}")
            return None

        if not isinstance(records, list):
            logger.error(f"Feature list root must be an array: {self.path}")
            return None

        for index, record in enumerate(records):
            if not isinstance(record, dict):
                logger.error(f"Feature entry {index} is not an object: {self.path}")
                return None
        return records

    def load(self) -> list[Feature]:
        """
        Load all features in stored order.

        Never raises: a missing, unreadable or malformed file yields an empty
        list, which leaves the engine with nothing to do.
        """
        records = self._read_records()
        if records is None:
            return []
        return [
            Feature.from_dict(record, f"feature-{index}-{self._epoch_ms}")
            for index, record in enumerate(records)
        ]

    def ensure_ids(self) -> int:
        """
        Persist synthesized ids for records stored without one.

        Ids assigned at load time embed this store's epoch, so they only
        survive across processes once written back. The rewrite goes through
        the same allow-listed projection as update_status.

        Returns:
            Number of records that were given an id
        """
        with self._lock:
            records = self._read_records()
            if not records:
                return 0
            missing = sum(1 for record in records if not record.get("id"))
            if missing:
                self.save(self.load())
                logger.info(f"Assigned ids to {missing} feature(s) in {self.path}")
            return missing

    def get(self, feature_id: str) -> Feature | None:
        """Find a feature by id in a fresh load."""
        for feature in self.load():
            if feature.id == feature_id:
                return feature
        return None

    def update_status(
        self,
        feature_id: str,
        status: FeatureStatus | str,
        summary: str | None = None,
    ) -> Feature | None:
        """
        Set a feature's status (and summary, when given) and rewrite the list.

        All other fields of every record are carried over unchanged; fields
        outside the allow-list are dropped.

        Returns:
            The updated feature, or None if no feature has this id (no write)
        """
        new_status = status.value if isinstance(status, FeatureStatus) else str(status)

        with self._lock:
            features = self.load()
            feature = next((f for f in features if f.id == feature_id), None)
            if feature is None:
                logger.error(f"Feature {feature_id} not found in {self.path}")
                return None

            old_status = feature.status
            feature.set_field("status", new_status)
            if summary:
                feature.set_field("summary", summary)

            self.save(features)

        logger.info(
            f"Updated feature {feature_id}: status={new_status}"
            + (f', summary="{summary}"' if summary else "")
        )
        store_logger.info(
            StatusChangeLogEntry(
                timestamp=now_iso(),
                run_id=get_run_id(),
                feature_id=feature_id,
                old_status=str(old_status),
                new_status=new_status,
                summary=summary,
                store_path=str(self.path),
            ).to_json()
        )
        return feature

    def save(self, features: list[Feature]) -> None:
        """Rewrite the whole list atomically through the allow-listed projection."""
        payload = json.dumps([f.to_dict() for f in features], indent=2)

        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=".feature_list.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                    tmp.write(payload)
                    tmp.flush()
                    os.fsync(tmp.fileno())
                os.replace(tmp_name, self.path)
            except BaseException:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
                raise

    def add_feature(
        self,
        description: str,
        category: str = "",
        steps: list[str] | None = None,
        skip_tests: bool = False,
    ) -> Feature:
        """Append a new backlog feature and persist the list."""
        feature = Feature.new(
            f"feature-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}",
            description=description,
            category=category,
            steps=steps,
            skip_tests=skip_tests,
        )
        with self._lock:
            features = self.load()
            features.append(feature)
            self.save(features)
        return feature
