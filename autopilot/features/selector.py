"""
Feature Selector - which feature runs next

Stored order is the only priority. A feature left in_progress by an
interrupted run is simply picked up again.
"""

from collections.abc import Iterable

from autopilot.features.models import Feature


def select_next(features: Iterable[Feature]) -> Feature | None:
    """Return the first feature that is neither verified nor waiting for approval."""
    for feature in features:
        if feature.is_selectable:
            return feature
    return None
