#!/usr/bin/env python3
"""
Download CDC/WHO growth LMS data and write reference JSON tables.

This script downloads growth reference data from CDC and WHO sources,
parses the CSVs, and saves them in the nested ``{measure: {sex: [rows]}}``
layout read by ``refcurves.tables.load_table_set``.

WHO data covers ages from birth to 24 months inclusive; CDC data covers
2 to 20 years. Ages are in months in both files.
"""

import argparse
import hashlib
import io
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Tuple

import numpy as np
import pandas as pd
import requests
from requests.adapters import HTTPAdapter
from tqdm import tqdm
from urllib3.util.retry import Retry

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

LMS_COLS = ["L", "M", "S"]
WHO_MAX_AGE_MONTHS = 24.0

# (output measure key, url) per source; WHO entries also carry the sex
DATA_SOURCES: Dict[str, List[Tuple[str, str]]] = {
    "cdc": [
        ("weightForAge", "https://www.cdc.gov/growthcharts/data/zscore/wtage.csv"),
        ("statureForAge", "https://www.cdc.gov/growthcharts/data/zscore/statage.csv"),
    ],
    "who": [
        (
            "weightForAge/male",
            "https://ftp.cdc.gov/pub/Health_Statistics/NCHS/growthcharts/WHO-Boys-Weight-for-age-Percentiles.csv",
        ),
        (
            "lengthForAge/male",
            "https://ftp.cdc.gov/pub/Health_Statistics/NCHS/growthcharts/WHO-Boys-Length-for-age-Percentiles.csv",
        ),
        (
            "headCircForAge/male",
            "https://ftp.cdc.gov/pub/Health_Statistics/NCHS/growthcharts/WHO-Boys-Head-Circumference-for-age-Percentiles.csv",
        ),
        (
            "weightForAge/female",
            "https://ftp.cdc.gov/pub/Health_Statistics/NCHS/growthcharts/WHO-Girls-Weight-for-age%20Percentiles.csv",
        ),
        (
            "lengthForAge/female",
            "https://ftp.cdc.gov/pub/Health_Statistics/NCHS/growthcharts/WHO-Girls-Length-for-age-Percentiles.csv",
        ),
        (
            "headCircForAge/female",
            "https://ftp.cdc.gov/pub/Health_Statistics/NCHS/growthcharts/WHO-Girls-Head-Circumference-for-age-Percentiles.csv",
        ),
    ],
}

OUTPUT_FILES = {"cdc": "cdc-lms.json", "who": "who-lms.json"}


def download_csv(url: str, timeout: int = 30) -> str:
    """Download CSV content from URL with retries."""
    try:
        retry_strategy = Retry(
            total=3,
            status_forcelist=[429, 500, 502, 503, 504],
            backoff_factor=2,  # Exponential backoff
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)

        with requests.Session() as session:
            session.mount("https://", adapter)
            session.mount("http://", adapter)
            response = session.get(url, timeout=timeout, verify=True)
            response.raise_for_status()
            return response.text
    except Exception as e:
        logger.error(f"Failed to download {url}: {e}")
        raise


def compute_sha256(content: str) -> str:
    """Compute SHA-256 hash of content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def _read_csv(content: str) -> pd.DataFrame:
    """Read CSV text, normalizing header names (BOM, whitespace, case of Sex/Agemos)."""
    df = pd.read_csv(io.StringIO(content.strip()))
    df.columns = [
        str(col).replace("\ufeff", "").strip().strip('"') for col in df.columns
    ]
    renames = {col: col.capitalize() for col in df.columns if col.lower() in ("sex", "agemos")}
    return df.rename(columns=renames)


def validate_rows(df: pd.DataFrame, name: str) -> None:
    """
    Validate parsed LMS rows.

    Raises:
        ValueError: For non-increasing ages or non-positive M/S.
    """
    if df.empty:
        logger.warning(f"{name}: no rows")
        return

    ages = df["age"].to_numpy(dtype=float)
    if len(ages) > 1 and not np.all(np.diff(ages) > 0):
        raise ValueError(f"{name}: age not strictly increasing")
    if ages.max() > 241:
        logger.warning(
            f"{name}: Age values up to {ages.max():.1f} months detected. "
            "Values >241 months suggest input may be in years rather than months."
        )
    for col in ("M", "S"):
        if np.any(df[col].to_numpy(dtype=float) <= 0):
            raise ValueError(f"{name}: non-positive {col} values")


def _to_rows(df: pd.DataFrame) -> List[Dict[str, float]]:
    return [
        {"age": float(r.age), "L": float(r.L), "M": float(r.M), "S": float(r.S)}
        for r in df.itertuples(index=False)
    ]


def parse_cdc_csv(content: str, measure: str) -> Dict[str, List[Dict[str, float]]]:
    """
    Parse a CDC LMS CSV (Sex, Agemos, L, M, S, ...) into rows per sex.

    CDC files code sex as 1 (male) / 2 (female) and may repeat the header
    line between the sexes; non-numeric rows are dropped.
    """
    df = _read_csv(content)
    missing = [c for c in ["Sex", "Agemos", *LMS_COLS] if c not in df.columns]
    if missing:
        raise ValueError(f"{measure}: missing columns {missing}")

    df = df[["Sex", "Agemos", *LMS_COLS]].apply(pd.to_numeric, errors="coerce")
    df = df.dropna().rename(columns={"Agemos": "age"})

    result = {}
    for code, sex in ((1, "male"), (2, "female")):
        rows = df[df["Sex"] == code].sort_values("age")
        validate_rows(rows, f"{measure}/{sex}")
        result[sex] = _to_rows(rows)
    return result


def parse_who_csv(content: str, name: str) -> List[Dict[str, float]]:
    """Parse a WHO LMS CSV (Month, L, M, S, percentiles...) into rows up to 24 months."""
    df = _read_csv(content)
    missing = [c for c in ["Month", *LMS_COLS] if c not in df.columns]
    if missing:
        raise ValueError(f"{name}: missing columns {missing}")

    df = df[["Month", *LMS_COLS]].apply(pd.to_numeric, errors="coerce").dropna()
    df = df.rename(columns={"Month": "age"})
    df = df[df["age"] <= WHO_MAX_AGE_MONTHS].sort_values("age")
    validate_rows(df, name)
    return _to_rows(df)


def save_json(data: Dict[str, Any], output_path: Path) -> None:
    """Write a reference table set as JSON."""
    with output_path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=1)
    logger.info(f"Saved {len(data) - 1} measures to {output_path}")


def main(strict_mode=False, source_filter=None, data_dir=None):
    """Download, parse and save all sources."""
    script_dir = Path(__file__).parent
    data_dir = Path(data_dir) if data_dir else script_dir.parent / "data"
    data_dir.mkdir(parents=True, exist_ok=True)

    failed_sources = []
    outputs: Dict[str, Dict[str, Any]] = {}

    total_sources = sum(len(sources) for sources in DATA_SOURCES.values())
    with tqdm(total=total_sources, desc="Fetching sources") as pbar:
        for source_type, sources in DATA_SOURCES.items():
            if source_filter and source_type != source_filter:
                pbar.update(len(sources))
                continue

            output = outputs.setdefault(source_type, {"metadata": {}})
            for name, url in sources:
                pbar.set_postfix({"source": f"{source_type.upper()}: {name}"})
                pbar.update(1)

                try:
                    csv_content = download_csv(url)
                    if source_type == "cdc":
                        output[name] = parse_cdc_csv(csv_content, name)
                    else:
                        measure, sex = name.split("/")
                        output.setdefault(measure, {})[sex] = parse_who_csv(
                            csv_content, name
                        )
                    output["metadata"][name] = {
                        "url": url,
                        "hash": compute_sha256(csv_content),
                        "timestamp": datetime.now(timezone.utc).isoformat(),
                    }
                except Exception as e:
                    failed_sources.append(f"{source_type}::{name}")
                    logger.error(f"Failed to process {source_type}::{name}: {e}")
                    continue

    if strict_mode and failed_sources:
        raise RuntimeError(
            f"Strict mode failed: Unable to process sources: {', '.join(failed_sources)}"
        )

    for source_type, output in outputs.items():
        if len(output) > 1:
            save_json(output, data_dir / OUTPUT_FILES[source_type])
    return outputs


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Download growth reference data from CDC and WHO sources."
    )
    parser.add_argument(
        "--source",
        choices=["cdc", "who"],
        help="Download only from specified source type (cdc or who)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Strict mode: exit on any error instead of continuing with warnings",
    )
    parser.add_argument(
        "--data-dir",
        help="Output directory (default: ./data next to the scripts directory)",
    )
    args = parser.parse_args()

    main(strict_mode=args.strict, source_filter=args.source, data_dir=args.data_dir)
