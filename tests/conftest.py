# Shared pytest fixtures
from __future__ import annotations

import io
import tempfile
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from academic_import.logging.init import reset_logging
from academic_import.models.raw_table import RawTable


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("ACADEMIC_IMPORT_API_URL", raising=False)
        monkeypatch.delenv("ACADEMIC_IMPORT_API_TOKEN", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """api:
  base_url: http://backend.test/api
  timeout_seconds: 5
limits:
  max_rows: 500
  error_display_cap: 10
logs_directory: ./logs
import_kinds:
  results:
    required_context: [courseOfferingId]
    extra_aliases:
      studentNo: [indexno]
  students:
    defaults:
      year: 1st Year
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def _workbook_bytes(rows: Sequence[Sequence[Any]], sheet_name: str = "Sheet1") -> bytes:
    """Build .xlsx bytes; the first row is written as the header row."""
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        pd.DataFrame(list(rows)).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return buf.getvalue()


@pytest.fixture()
def make_workbook() -> Callable[..., bytes]:
    return _workbook_bytes


@pytest.fixture()
def write_workbook(temp_workdir: Path) -> Callable[..., Path]:
    def _write(name: str, rows: Sequence[Sequence[Any]]) -> Path:
        path = temp_workdir / "data" / name
        path.write_bytes(_workbook_bytes(rows))
        return path
    return _write


@pytest.fixture()
def raw_table() -> Callable[..., RawTable]:
    def _build(headers: Sequence[Any], *rows: Sequence[Any]) -> RawTable:
        return RawTable.from_sequences(headers, rows)
    return _build


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    yield
    reset_logging()
