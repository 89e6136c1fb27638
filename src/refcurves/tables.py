"""
Reference tables for growth and threshold curves.

A reference table is an ordered list of rows indexed by one continuous
independent variable (age in months, postnatal hours, gestational weeks),
stored under the field name ``age`` regardless of its unit. LMS tables carry
the Box-Cox parameters ``L``, ``M`` and ``S``; threshold tables carry a single
``threshold`` column (e.g. AAP bilirubin phototherapy levels).

Tables are loaded once from static JSON data and are read-only afterwards.
"""

from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple, Union
import functools
import json
import logging
from pathlib import Path

import numpy as np
import pandas as pd
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

LMS_FIELDS = ("L", "M", "S")
THRESHOLD_FIELDS = ("threshold",)


class LMSParameters(NamedTuple):
    """Box-Cox power (L), median (M) and coefficient of variation (S)."""

    L: float
    M: float
    S: float


class LMSRow(BaseModel):
    """One row of an LMS reference table."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    age: float
    L: float
    M: float
    S: float


class ThresholdRow(BaseModel):
    """One row of a two-column threshold table."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    age: float
    threshold: float = Field(validation_alias=AliasChoices("threshold", "dependent"))


Row = Union[LMSRow, ThresholdRow, Dict[str, Any]]


def _row_model(row: Row) -> type:
    """Pick the row model matching a raw row's keys."""
    if isinstance(row, (LMSRow, ThresholdRow)):
        return type(row)
    if not isinstance(row, dict):
        raise ValueError(f"Reference row must be a dict, got {type(row).__name__}")
    if all(key in row for key in LMS_FIELDS):
        return LMSRow
    if "threshold" in row or "dependent" in row:
        return ThresholdRow
    raise ValueError(
        f"Reference row has neither L/M/S nor threshold columns: {sorted(row)}"
    )


class ReferenceTable:
    """
    Immutable reference table backed by a numpy structured array.

    The first field is always ``age`` (the independent variable); the remaining
    fields are the dependent columns that get interpolated.

    Attributes:
        name: Optional label used in log messages (e.g. "who/weightForAge/male").
    """

    def __init__(self, data: np.ndarray, name: Optional[str] = None) -> None:
        names = data.dtype.names
        if names is None or names[0] != "age" or len(names) < 2:
            raise ValueError(
                "Reference data must be a structured array with 'age' first "
                "and at least one dependent field"
            )
        data = np.array(data, copy=True)
        data.flags.writeable = False
        self._data = data
        self.name = name

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[Row],
        independent: str = "age",
        name: Optional[str] = None,
        kind: Optional[str] = None,
    ) -> "ReferenceTable":
        """
        Build a table from row dicts as they appear in the reference JSON files.

        Args:
            rows: Row dicts ({age, L, M, S} or {age, threshold}) or row models
            independent: Key holding the independent variable in raw dicts
            name: Optional table label
            kind: "lms" or "threshold"; inferred from the first row when omitted

        Returns:
            ReferenceTable

        Raises:
            ValueError: If rows are of mixed or unknown shape, or fail validation.
        """
        rows = list(rows)
        if kind is None:
            model = _row_model(rows[0]) if rows else LMSRow
        elif kind in ("lms", "threshold"):
            model = LMSRow if kind == "lms" else ThresholdRow
        else:
            raise ValueError(f"Unsupported table kind '{kind}'")

        parsed: List[Union[LMSRow, ThresholdRow]] = []
        for i, row in enumerate(rows):
            if _row_model(row) is not model:
                raise ValueError(f"Row {i} does not match the {model.__name__} layout")
            if isinstance(row, dict):
                raw = dict(row)
                if independent != "age" and independent in raw:
                    raw["age"] = raw.pop(independent)
                try:
                    row = model.model_validate(raw)
                except ValidationError as e:
                    raise ValueError(f"Invalid reference row {i}: {e}") from e
            parsed.append(row)

        fields = LMS_FIELDS if model is LMSRow else THRESHOLD_FIELDS
        dtype = np.dtype([("age", "f8")] + [(f, "f8") for f in fields])
        data = np.zeros(len(parsed), dtype=dtype)
        for i, row in enumerate(parsed):
            data[i] = (row.age,) + tuple(getattr(row, f) for f in fields)
        return cls(data, name=name)

    @classmethod
    def from_frame(
        cls, df: pd.DataFrame, independent: str = "age", name: Optional[str] = None
    ) -> "ReferenceTable":
        """Build a table from a DataFrame with an independent column plus L/M/S or threshold."""
        if independent not in df.columns:
            raise ValueError(f"Column '{independent}' does not exist in DataFrame")
        if all(col in df.columns for col in LMS_FIELDS):
            fields = LMS_FIELDS
        elif "threshold" in df.columns:
            fields = THRESHOLD_FIELDS
        else:
            raise ValueError("DataFrame needs L/M/S or threshold columns")
        data = np.zeros(len(df), dtype=[("age", "f8")] + [(f, "f8") for f in fields])
        data["age"] = df[independent].to_numpy(dtype=np.float64)
        for field in fields:
            data[field] = df[field].to_numpy(dtype=np.float64)
        return cls(data, name=name)

    @classmethod
    def empty(cls, kind: str = "lms", name: Optional[str] = None) -> "ReferenceTable":
        """Zero-row table; interpolation against it yields no result."""
        return cls.from_rows([], name=name, kind=kind)

    @property
    def data(self) -> np.ndarray:
        return self._data

    @property
    def fields(self) -> Tuple[str, ...]:
        """Dependent field names."""
        return self._data.dtype.names[1:]

    @property
    def kind(self) -> str:
        if self.fields == LMS_FIELDS:
            return "lms"
        if self.fields == THRESHOLD_FIELDS:
            return "threshold"
        return "custom"

    @property
    def ages(self) -> np.ndarray:
        return self._data["age"]

    def column(self, field: str) -> np.ndarray:
        return self._data[field]

    def values_at(self, index: int) -> Tuple[float, ...]:
        """Dependent values of one row, in field order."""
        row = self._data[index]
        return tuple(float(row[f]) for f in self.fields)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        label = f" {self.name!r}" if self.name else ""
        return f"<ReferenceTable{label} kind={self.kind} rows={len(self)}>"


def validate_table(table: ReferenceTable) -> bool:
    """
    Check a table for data-quality problems.

    The engine interpolates malformed tables as-is; this only reports issues.
    Logs warnings for any issues found but doesn't raise exceptions.

    Args:
        table: Reference table to inspect

    Returns:
        True if the table passes all checks, False otherwise
    """
    label = table.name or "reference table"
    if len(table) == 0:
        logger.warning(f"{label}: table is empty")
        return False

    ok = True
    ages = table.ages
    if not np.all(np.isfinite(ages)):
        logger.warning(f"{label}: non-finite age values")
        ok = False
    elif len(ages) > 1 and not np.all(np.diff(ages) > 0):
        logger.warning(f"{label}: age values are not strictly increasing")
        ok = False

    for field in table.fields:
        values = table.column(field)
        if not np.all(np.isfinite(values)):
            logger.warning(f"{label}: non-finite {field} values")
            ok = False
        elif field in ("M", "S") and np.any(values <= 0):
            logger.warning(f"{label}: non-positive {field} values")
            ok = False
    return ok


def load_reference_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a JSON reference data file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid JSON or not a JSON object.
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            content = json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(
            f"Reference data file not found: {path}. "
            "Run 'scripts/download_data.py' to generate reference data."
        ) from None
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse reference data {path}: {e}") from e
    if not isinstance(content, dict):
        raise ValueError(f"Reference data {path} must contain a JSON object")
    return content


def table_set_from_dict(
    content: Dict[str, Any], source: str = ""
) -> Dict[str, Dict[str, ReferenceTable]]:
    """
    Parse the nested ``{measure: {sex: [rows]}}`` layout of LMS data files.

    Top-level keys whose values are not measure mappings (e.g. ``metadata``)
    are skipped.
    """
    tables: Dict[str, Dict[str, ReferenceTable]] = {}
    for measure, by_sex in content.items():
        if measure == "metadata" or not isinstance(by_sex, dict):
            continue
        tables[measure] = {}
        for sex, rows in by_sex.items():
            name = "/".join(p for p in (source, measure, sex) if p)
            table = ReferenceTable.from_rows(rows, name=name)
            validate_table(table)
            tables[measure][sex] = table
    return tables


@functools.lru_cache(maxsize=None)
def load_table_set(path: Union[str, Path]) -> Dict[str, Dict[str, ReferenceTable]]:
    """Load and cache an LMS table set (WHO, CDC or Fenton JSON file)."""
    path = Path(path)
    return table_set_from_dict(load_reference_file(path), source=path.stem)
