"""
app/services/modules.py

Licensable product modules and per-row module presence counting.

A module counts as present on a row when the summed licence counts of its
resolved columns are greater than zero.  Presence is 0 or 1 per module;
quantities never add up across modules.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from app.domain.cells import RawRow, parse_count
from app.mappers.column_resolver import find_columns


@dataclass(frozen=True)
class ModuleDefinition:
    """
    One licensable product and the licence columns that evidence it.
    """

    name: str
    columns: tuple[str, ...]


DEAL_MODULES: tuple[ModuleDefinition, ...] = (
    ModuleDefinition("Absence", ("User_licenses1__c", "User_Licenses_Total__c", "Leavers_Licenses__c")),
    ModuleDefinition("People Insights", ("People_Insights_Licenses__c",)),
    ModuleDefinition("Directory", ("Directory_Licenses__c",)),
    ModuleDefinition("Time Submission", ("Time_Submission_Licenses__c",)),
    ModuleDefinition("Time Tracking", ("Time_Tracking_Licenses__c",)),
    ModuleDefinition("EAP", ("EAP_Licenses__c",)),
    ModuleDefinition("Workflow Builder", ("Workflow_Builder_Pro_Licenses__c",)),
    ModuleDefinition("Grosvenor", ("Grosvenor_Licenses__c",)),
    ModuleDefinition("ELMO Core HR", ("ELMO_Core_HR_Licenses__c",)),
    ModuleDefinition("ELMO Onboarding", ("ELMO_Onboarding_Licenses__c",)),
    ModuleDefinition("ELMO Performance", ("ELMO_Performance_License__c",)),
    ModuleDefinition("ELMO Learning", ("ELMO_Learning_License__c",)),
)

SNAPSHOT_MODULES: tuple[ModuleDefinition, ...] = (
    ModuleDefinition("Absence", ("User Licenses", "Leavers Licenses")),
    ModuleDefinition("People Insights", ("People Insights Licenses",)),
    ModuleDefinition("Directory", ("Directory Licenses",)),
    ModuleDefinition("Time Submission", ("Time Submission Licenses",)),
    ModuleDefinition("Time Tracking", ("Time Tracking Licenses",)),
    ModuleDefinition("EAP", ("EAP Licenses",)),
    ModuleDefinition("Workflow Builder", ("Workflow Builder Pro Licenses",)),
    ModuleDefinition("Grosvenor", ("Grosvenor Licenses",)),
    ModuleDefinition("ELMO Core HR", ("ELMO Core HR License",)),
    ModuleDefinition("ELMO Onboarding", ("ELMO Onboarding License",)),
)


class ModuleCounter:
    """
    Counts distinct modules present on a row.

    Columns are resolved once against the file's schema probe; modules with
    no resolved column never count.
    """

    def __init__(
        self,
        modules: Sequence[ModuleDefinition],
        schema_probe: Iterable[str] | RawRow | None,
    ) -> None:
        headers = tuple(key for key in (schema_probe or ()) if isinstance(key, str))
        self._resolved: tuple[tuple[str, tuple[str, ...]], ...] = tuple(
            (module.name, find_columns(headers, module.columns)) for module in modules
        )

    @property
    def resolved_modules(self) -> tuple[str, ...]:
        return tuple(name for name, columns in self._resolved if columns)

    def modules_present(self, row: RawRow) -> tuple[str, ...]:
        present: list[str] = []
        for name, columns in self._resolved:
            if not columns:
                continue
            if sum(parse_count(row.get(column)) for column in columns) > 0:
                present.append(name)
        return tuple(present)

    def count(self, row: RawRow) -> int:
        return len(self.modules_present(row))
