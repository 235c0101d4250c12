"""
kpi/sales.py

Monthly sales KPI formula implementation.

Expected inputs
---------------
total_value : float
    Sum of deal amounts closed in the month, unknown-channel deals included.
total_count : int
    Number of deals closed in the month, unknown-channel deals included.
previous_arr : float
    ARR of the immediately preceding month in the series (0 for the first).
previous_growth_buffer : list[float] | None
    Last-3 raw growth buffer of the preceding month (None for the first).

Formulas
--------
AOV              = total_value / total_count
ARPA             = total_value / total_count
ARR              = total_value * 12
ARR Growth %     = (ARR - previous_arr) / previous_arr * 100
Smoothed Growth  = mean(last three raw ARR growth values)

Division-by-zero cases return 0.0 so the series stays chartable.
"""

from __future__ import annotations

from typing import Any, Sequence

from kpi.base import BaseKPIFormula

MONTHS_PER_YEAR = 12
SMOOTHING_WINDOW = 3


class SalesKPIFormula(BaseKPIFormula):
    """
    Deterministic monthly sales calculations.

    All arithmetic is self-contained.  No I/O, no logging, no side effects.
    """

    required_inputs = ("total_value", "total_count")

    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """
        Compute AOV, ARPA, ARR, ARR growth and smoothed growth.

        Returns
        -------
        dict
            Keys: ``average_order_value``, ``avg_revenue_per_account``,
            ``arr``, ``arr_growth``, ``arr_values``, ``arr_growth_smoothed``.
        """
        self.check_inputs(inputs)
        total_value: float = inputs["total_value"]
        total_count: int = inputs["total_count"]
        previous_arr: float = inputs.get("previous_arr", 0.0)
        previous_buffer: Sequence[float] | None = inputs.get("previous_growth_buffer")

        arr = annualised_run_rate(total_value)
        growth = arr_growth(arr, previous_arr)
        buffer = trailing_buffer(previous_buffer, growth)

        return {
            "average_order_value": average_order_value(total_value, total_count),
            "avg_revenue_per_account": arpa(total_value, total_count),
            "arr": arr,
            "arr_growth": growth,
            "arr_values": buffer,
            "arr_growth_smoothed": smoothed_growth(buffer),
        }


# ---------------------------------------------------------------------------
# Pure formula functions
# ---------------------------------------------------------------------------


def average_order_value(total_value: float, total_count: int) -> float:
    """AOV = total value / deal count; 0.0 when there are no deals."""
    if total_count == 0:
        return 0.0
    return total_value / total_count


def arpa(total_value: float, account_count: int) -> float:
    """ARPA = total value / account count; 0.0 when there are no accounts."""
    if account_count == 0:
        return 0.0
    return total_value / account_count


def annualised_run_rate(monthly_value: float) -> float:
    """ARR approximated as one month's value times twelve."""
    return monthly_value * MONTHS_PER_YEAR


def arr_growth(current_arr: float, previous_arr: float) -> float:
    """
    Month-over-month ARR growth in percent.

    Returns 0.0 when there is no positive baseline (first month, or a month
    that followed a zero-revenue month).
    """
    if previous_arr <= 0.0:
        return 0.0
    return (current_arr - previous_arr) / previous_arr * 100


def trailing_buffer(previous_buffer: Sequence[float] | None, growth: float) -> list[float]:
    """
    Roll the last-3 raw growth buffer forward by one month.

    The first month of a series is zero-padded: ``[0, 0, growth]``.
    """
    if not previous_buffer:
        return [0.0] * (SMOOTHING_WINDOW - 1) + [growth]
    history = list(previous_buffer)[-(SMOOTHING_WINDOW - 1):]
    padding = [0.0] * (SMOOTHING_WINDOW - 1 - len(history))
    return padding + history + [growth]


def smoothed_growth(buffer: Sequence[float]) -> float:
    """Arithmetic mean of the trailing growth buffer."""
    if not buffer:
        return 0.0
    return sum(buffer) / len(buffer)
