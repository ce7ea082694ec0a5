"""Previous-value cache for tick-over-tick trend classification.

Each pipeline owns its own TrendTracker; nothing is shared between
pipelines. Values persist for the life of the process.
"""

from decimal import Decimal

from byagent.models import TrendDirection


class TrendTracker:
    """Classifies each metric's new value against the value from its last update.

    Metrics are independent: updating one never touches another, so a
    metric whose fetch failed simply keeps its older value until it is
    available again.
    """

    def __init__(self) -> None:
        self._previous: dict[str, Decimal] = {}

    def classify(self, metric: str, value: Decimal) -> TrendDirection:
        """Compare ``value`` with the stored one, then store ``value``.

        Returns FLAT when the metric has no stored value yet.
        """
        previous = self._previous.get(metric)
        self._previous[metric] = value

        if previous is None:
            return TrendDirection.FLAT
        if value > previous:
            return TrendDirection.UP
        if value < previous:
            return TrendDirection.DOWN
        return TrendDirection.FLAT

    def previous(self, metric: str) -> Decimal | None:
        """Return the stored value for a metric, or None."""
        return self._previous.get(metric)

    def snapshot(self) -> dict[str, Decimal]:
        """Return a copy of all stored values."""
        return dict(self._previous)
