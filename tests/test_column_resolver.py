"""
tests/test_column_resolver.py

Pytest unit tests for the column alias resolver.

Coverage
--------
- Exact pass wins over case-insensitive pass, regardless of candidate order
- Case-insensitive fallback returns the source header as written
- Unresolvable fields are reported, never raised, unless required
- find_columns keeps priority order and resolves each candidate independently
"""

from __future__ import annotations

import pytest

from app.errors import MissingRequiredColumnError
from app.mappers.column_resolver import ColumnResolver, find_column, find_columns


class TestFindColumn:
    def test_case_insensitive_pass_resolves_lowercase_header(self) -> None:
        assert find_column({"close_date": "2024-03-01"}, ["CloseDate", "Close_Date"]) == "close_date"

    def test_exact_match_beats_earlier_case_insensitive_candidate(self) -> None:
        row = {"closedate": "x", "Close_Date": "y"}
        assert find_column(row, ["CloseDate", "Close_Date"]) == "Close_Date"

    def test_candidate_priority_applies_within_exact_pass(self) -> None:
        assert find_column(["Date", "CloseDate"], ["CloseDate", "Date"]) == "CloseDate"

    def test_returns_none_when_nothing_matches(self) -> None:
        assert find_column({"Amount": 1}, ["CloseDate"]) is None

    def test_empty_and_missing_probe(self) -> None:
        assert find_column({}, ["CloseDate"]) is None
        assert find_column(None, ["CloseDate"]) is None

    def test_non_string_keys_are_ignored(self) -> None:
        assert find_column([1, 2, "Amount"], ["amount"]) == "Amount"


class TestFindColumns:
    def test_resolves_each_candidate_in_priority_order(self) -> None:
        headers = ["User_Licenses_Total__c", "user_licenses1__c"]
        resolved = find_columns(headers, ["User_licenses1__c", "User_Licenses_Total__c"])
        assert resolved == ("user_licenses1__c", "User_Licenses_Total__c")

    def test_skips_unresolved_candidates(self) -> None:
        assert find_columns(["Leavers_Licenses__c"], ["A", "Leavers_Licenses__c"]) == (
            "Leavers_Licenses__c",
        )


class TestColumnResolver:
    @pytest.fixture()
    def resolver(self) -> ColumnResolver:
        return ColumnResolver(
            {"date": ["CloseDate", "Date"], "amount": ["Amount"], "channel": ["Channel__c"]},
            required=("date", "amount"),
        )

    def test_resolve_reports_missing_fields(self, resolver: ColumnResolver) -> None:
        resolution = resolver.resolve({"date": "2024-01-01", "AMOUNT": 5})
        assert resolution.get("date") == "date"
        assert resolution.get("amount") == "AMOUNT"
        assert resolution.missing == ("channel",)
        assert not resolution.has("channel")

    def test_value_returns_none_for_unresolved_field(self, resolver: ColumnResolver) -> None:
        row = {"CloseDate": "2024-01-01", "Amount": 5}
        resolution = resolver.resolve(row)
        assert resolution.value(row, "amount") == 5
        assert resolution.value(row, "channel") is None

    def test_resolve_required_raises_with_available_columns(self, resolver: ColumnResolver) -> None:
        with pytest.raises(MissingRequiredColumnError) as exc_info:
            resolver.resolve_required({"Channel__c": "Direct Sale", "Name": "Acme"})

        error = exc_info.value
        assert error.missing_fields == ("date", "amount")
        assert error.to_dict()["available_columns"] == ["Channel__c", "Name"]

    def test_required_field_without_aliases_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            ColumnResolver({"date": ["Date"]}, required=("amount",))
