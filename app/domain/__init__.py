"""
app/domain package marker.
"""

from app.domain.cells import CellValue, RawRow
from app.domain.results import (
    Classified,
    RealSeries,
    SalesCategory,
    SeriesResult,
    SyntheticSeries,
    Unclassified,
)

__all__ = [
    "CellValue",
    "Classified",
    "RawRow",
    "RealSeries",
    "SalesCategory",
    "SeriesResult",
    "SyntheticSeries",
    "Unclassified",
]
