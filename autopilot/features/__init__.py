"""Feature list: models, durable store and next-feature selection."""

from autopilot.features.models import PERSISTED_FIELDS, Feature, FeatureStatus
from autopilot.features.selector import select_next
from autopilot.features.store import FeatureStore

__all__ = [
    "Feature",
    "FeatureStatus",
    "FeatureStore",
    "PERSISTED_FIELDS",
    "select_next",
]
