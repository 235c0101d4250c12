"""
app/services/monthly_aggregator.py

Month-bucket grouping shared by every aggregation pipeline.

A bucket is created the first time a row falls into its ``YYYY-MM`` month,
folded in place while rows stream through, then read back in ascending
month order for finalisation.  One aggregator belongs to exactly one
pipeline run.
"""

from __future__ import annotations

from datetime import date
from typing import Callable, Generic, Iterator, TypeVar

from app.validators.date_normalizer import month_key

BucketT = TypeVar("BucketT")


class MonthlyAggregator(Generic[BucketT]):
    """
    Lazily-created per-month accumulators keyed by ``YYYY-MM``.
    """

    def __init__(self, bucket_factory: Callable[[], BucketT]) -> None:
        self._bucket_factory = bucket_factory
        self._buckets: dict[str, BucketT] = {}

    def bucket_for(self, value: date) -> BucketT:
        """Return the bucket for *value*'s month, creating it if needed."""
        return self.bucket_for_key(month_key(value))

    def bucket_for_key(self, key: str) -> BucketT:
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = self._bucket_factory()
            self._buckets[key] = bucket
        return bucket

    def sorted_items(self) -> Iterator[tuple[str, BucketT]]:
        """Yield ``(month_key, bucket)`` pairs in ascending month order."""
        for key in sorted(self._buckets):
            yield key, self._buckets[key]

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, key: object) -> bool:
        return key in self._buckets
