import logging
from datetime import date

import numpy as np
import pandas as pd
import pytest

from refcurves.calculators.growth import (
    GrowthReferences,
    age_in_months,
    assess_growth,
    corrected_age,
    percentile_band,
    score_measurements,
    select_standard,
)


@pytest.fixture
def refs(growth_files) -> GrowthReferences:
    return GrowthReferences.from_files(
        growth_files["who"], growth_files["cdc"], growth_files["fenton"]
    )


@pytest.fixture
def refs_no_fenton(growth_files) -> GrowthReferences:
    return GrowthReferences.from_files(growth_files["who"], growth_files["cdc"])


def test_tc001_age_in_months() -> None:
    assert age_in_months(date(2024, 1, 15), date(2024, 7, 15)) == 6.0
    assert age_in_months(date(2024, 1, 31), date(2024, 3, 1)) == pytest.approx(
        2 - 30 / 30.44
    )


def test_tc002_corrected_age() -> None:
    """Correction is the weeks short of term, in months"""
    assert corrected_age(6.0, 32) == pytest.approx(6.0 - 8 * 7 / 30.44)
    assert corrected_age(6.0, None) == 6.0
    assert corrected_age(6.0, 40) == 6.0
    assert corrected_age(1.0, 28) == 0.0


def test_tc003_select_standard() -> None:
    assert select_standard(0) == "WHO"
    assert select_standard(24) == "WHO"
    assert select_standard(24.01) == "CDC"


@pytest.mark.parametrize(
    "pct,band",
    [(2.9, "danger"), (97.5, "danger"), (3.0, "warning"), (95, "warning"), (10, "normal"), (50, "normal")],
)
def test_tc004_percentile_band(pct, band) -> None:
    assert percentile_band(pct) == band


def test_tc005_who_assessment(refs) -> None:
    """Median measurements at 6 months score z 0 on WHO"""
    result = assess_growth(
        refs, "male", date(2024, 1, 15), date(2024, 7, 15),
        weight=6.3, length=62.0, head_circ=38.5,
    )
    assert result.standard == "WHO"
    assert result.age_months == 6.0
    assert result.chart_age == 6.0
    assert [r.label for r in result.results] == [
        "Weight-for-Age",
        "Length-for-Age",
        "Head Circumference",
    ]
    for r in result.results:
        assert r.z == pytest.approx(0.0, abs=0.01)
        assert r.percentile == pytest.approx(50.0, abs=0.5)
    assert result.results[0].unit == "kg"


def test_tc006_cdc_assessment_skips_head_circ(refs) -> None:
    result = assess_growth(
        refs, "male", date(2020, 1, 15), date(2025, 1, 15),
        weight=22.7, length=111.9, head_circ=50.0,
    )
    assert result.standard == "CDC"
    assert [r.metric for r in result.results] == ["weight", "length"]
    assert result.results[1].label == "Height-for-Age"
    assert result.results[0].z == pytest.approx(0.0, abs=0.01)


def test_tc007_fenton_for_preterm(refs) -> None:
    """Preterm infants plot on Fenton by postmenstrual age"""
    result = assess_growth(
        refs, "male", date(2024, 1, 1), date(2024, 1, 29), weight=1.9, ga_weeks=30
    )
    assert result.standard == "Fenton"
    assert result.pma_weeks == pytest.approx(34.0)
    assert result.chart_age == pytest.approx(34.0)
    assert result.results[0].label == "Weight-for-GA (Fenton)"
    assert result.results[0].z == pytest.approx(0.0, abs=0.01)


def test_tc008_fenton_ends_after_50_weeks_pma(refs) -> None:
    result = assess_growth(
        refs, "female", date(2024, 1, 1), date(2024, 7, 1), weight=6.0, ga_weeks=30
    )
    assert result.standard == "WHO"
    assert result.pma_weeks is None
    assert result.age_months == pytest.approx(6.0 - 10 * 7 / 30.44)


def test_tc009_no_fenton_falls_back_to_who(refs_no_fenton) -> None:
    result = assess_growth(
        refs_no_fenton, "male", date(2024, 1, 1), date(2024, 1, 29),
        weight=1.9, ga_weeks=30,
    )
    assert result.standard == "WHO"
    assert result.age_months == 0.0
    assert result.results[0].z < 0


def test_tc010_missing_fenton_file_logs_warning(growth_files, tmp_path, caplog) -> None:
    caplog.set_level(logging.WARNING)
    refs = GrowthReferences.from_files(
        growth_files["who"], growth_files["cdc"], tmp_path / "nope.json"
    )
    assert not refs.has_fenton
    assert any("Fenton reference data not found" in r.message for r in caplog.records)


def test_tc011_invalid_inputs(refs) -> None:
    with pytest.raises(ValueError, match="Sex"):
        assess_growth(refs, "M", date(2024, 1, 1), date(2024, 2, 1), weight=4.0)
    with pytest.raises(ValueError, match="after date of birth"):
        assess_growth(refs, "male", date(2024, 2, 1), date(2024, 1, 1), weight=4.0)


def test_tc012_invalid_measurements_skipped(refs) -> None:
    result = assess_growth(
        refs, "female", date(2024, 1, 1), date(2024, 7, 1), weight=0.0, length=None
    )
    assert result.results == []


def test_tc013_table_for(refs) -> None:
    assert refs.table_for("CDC", "male", "hc") is None
    assert refs.table_for("WHO", "female", "hc").name == "who-lms/headCircForAge/female"
    assert refs.table_for("Unknown", "male", "weight") is None


def test_tc014_score_measurements(refs) -> None:
    df = pd.DataFrame(
        {
            "age_months": [0.0, 6.0, 60.0, 12.0],
            "weight_kg": [3.3, 6.3, 22.7, np.nan],
            "length_cm": [50.0, 62.0, 111.9, 74.0],
        }
    )
    out = score_measurements(df, refs, "male")
    assert "hc_z" not in out.columns
    np.testing.assert_allclose(out["weight_z"].to_numpy()[:3], 0.0, atol=1e-9)
    np.testing.assert_allclose(out["length_z"].to_numpy(), 0.0, atol=1e-9)
    np.testing.assert_allclose(out["weight_pct"].to_numpy()[:3], 50.0, atol=1e-6)
    assert np.isnan(out.loc[3, "weight_z"])
    assert np.isnan(out.loc[3, "weight_pct"])
    assert "weight_z" not in df.columns


def test_tc015_score_measurements_validation(refs) -> None:
    df = pd.DataFrame({"weight_kg": [3.3]})
    with pytest.raises(ValueError, match="does not exist"):
        score_measurements(df, refs, "male")
    with pytest.raises(ValueError, match="Sex"):
        score_measurements(df, refs, "x")


def test_tc016_from_data_dir(growth_files) -> None:
    refs = GrowthReferences.from_data_dir(growth_files["who"].parent)
    assert refs.has_fenton
    assert refs.table_for("CDC", "female", "length").name == "cdc-lms/statureForAge/female"


def test_tc017_from_data_dir_missing(tmp_path) -> None:
    with pytest.raises(FileNotFoundError, match="download_data.py"):
        GrowthReferences.from_data_dir(tmp_path)


def test_tc018_from_data_dir_dated_fenton_name(growth_files) -> None:
    fenton = growth_files["fenton"]
    fenton.rename(fenton.with_name("fenton-2025-lms.json"))
    refs = GrowthReferences.from_data_dir(fenton.parent)
    assert refs.has_fenton
    assert (
        refs.table_for("Fenton", "male", "weight").name
        == "fenton-2025-lms/weightForGA/male"
    )


def test_tc019_from_data_dir_without_fenton(growth_files, caplog) -> None:
    caplog.set_level(logging.WARNING)
    growth_files["fenton"].unlink()
    refs = GrowthReferences.from_data_dir(growth_files["who"].parent)
    assert not refs.has_fenton
    assert any("fenton-lms.json" in r.message for r in caplog.records)
