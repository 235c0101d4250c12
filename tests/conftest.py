"""
tests/conftest.py

Shared fixtures: a throwaway export directory tree and small writers for
CSV/XLSX fixtures.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Sequence

import pandas as pd
import pytest

from app.config import CSATSettings, DataDirectorySettings

RowsWriter = Callable[[Path, Sequence[dict[str, Any]]], Path]


@pytest.fixture()
def data_dirs(tmp_path: Path) -> DataDirectorySettings:
    settings = DataDirectorySettings(base_dir=tmp_path / "data")
    for directory in (settings.customer_dir, settings.sales_dir, settings.support_dir):
        directory.mkdir(parents=True)
    return settings


@pytest.fixture()
def csat_settings() -> CSATSettings:
    return CSATSettings(random_seed=1234)


@pytest.fixture()
def test_logger() -> logging.Logger:
    return logging.getLogger("tests.pipelines")


@pytest.fixture()
def write_csv() -> RowsWriter:
    def _write(path: Path, rows: Sequence[dict[str, Any]]) -> Path:
        pd.DataFrame(list(rows)).to_csv(path, index=False)
        return path

    return _write


@pytest.fixture()
def write_xlsx() -> RowsWriter:
    def _write(path: Path, rows: Sequence[dict[str, Any]]) -> Path:
        pd.DataFrame(list(rows)).to_excel(path, index=False)
        return path

    return _write
