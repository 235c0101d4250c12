"""
kpi/base.py

Shared contract for monthly KPI formulas fed by the aggregation pipelines.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Mapping


class MissingKPIInputError(KeyError):
    """
    Raised when a formula is called without one of its declared inputs.
    """

    def __init__(self, formula: str, missing: tuple[str, ...]) -> None:
        super().__init__(f"{formula} is missing inputs: {', '.join(missing)}")
        self.formula = formula
        self.missing = missing


class BaseKPIFormula(ABC):
    """
    A pure month-level calculation.

    Pipelines fold rows into month buckets, then hand each month's totals
    to a formula as a plain mapping.  Formulas never read files or log;
    carry-over state between months (previous ARR, growth history) is
    passed in explicitly by the caller.
    """

    required_inputs: ClassVar[tuple[str, ...]] = ()

    def check_inputs(self, inputs: Mapping[str, Any]) -> None:
        missing = tuple(name for name in self.required_inputs if name not in inputs)
        if missing:
            raise MissingKPIInputError(type(self).__name__, missing)

    @abstractmethod
    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """
        Compute one month's metrics from aggregated *inputs*.
        """
