"""
app/domain/results.py

Explicit result variants for classification and series provenance.

A sales row is either ``Classified`` into a named channel category or
``Unclassified``; a pipeline's output is either a ``RealSeries`` or a
``SyntheticSeries`` that carries the reason it had to be fabricated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar, Union

PointT = TypeVar("PointT")


class SalesCategory(str, Enum):
    NEW_DIRECT = "new-direct"
    NEW_PARTNER = "new-partner"
    EXISTING_CLIENT_UPSELL = "existing-client-upsell"
    EXISTING_PARTNER = "existing-partner"
    SELF_SERVICE = "self-service"


@dataclass(frozen=True)
class Classified:
    category: SalesCategory


@dataclass(frozen=True)
class Unclassified:
    raw_value: str


ChannelClassification = Union[Classified, Unclassified]


@dataclass(frozen=True)
class RealSeries(Generic[PointT]):
    points: list[PointT] = field(default_factory=list)

    @property
    def is_synthetic(self) -> bool:
        return False


@dataclass(frozen=True)
class SyntheticSeries(Generic[PointT]):
    points: list[PointT]
    reason: str

    @property
    def is_synthetic(self) -> bool:
        return True


SeriesResult = Union[RealSeries[PointT], SyntheticSeries[PointT]]
