import json

import pytest

from refcurves.calculators.dosing import (
    DosingReference,
    Medication,
    calculate_dose,
    parse_min_age_months,
    to_kg,
)


@pytest.fixture
def reference(tmp_path) -> DosingReference:
    path = tmp_path / "dosing.json"
    path.write_text(
        json.dumps(
            {
                "medications": [
                    {
                        "id": "acetaminophen",
                        "name": "Acetaminophen",
                        "dosePerKg": 15,
                        "maxSingleDose": 1000,
                        "unit": "mg",
                        "frequency": "q4-6h",
                        "maxDailyDose": 75,
                        "maxDailyUnit": "mg/kg/day",
                        "concentrations": [
                            {"label": "160 mg/5 mL", "mgPerMl": 32},
                            {"label": "325 mg tab", "mgPerTab": 325},
                        ],
                    },
                    {
                        "id": "ibuprofen",
                        "name": "Ibuprofen",
                        "dosePerKg": 10,
                        "maxSingleDose": 400,
                        "minAge": "6 months",
                        "concentrations": [
                            {"label": "100 mg/5 mL", "mgPerMl": 20},
                            {"label": "Suppository"},
                        ],
                    },
                ]
            }
        )
    )
    return DosingReference.from_file(path)


def test_tc001_weight_based_dose(reference) -> None:
    med = reference.get("acetaminophen")
    result = calculate_dose(med, 16.0)
    assert result.dose == 240.0
    assert not result.is_capped
    assert [(v.volume, v.unit) for v in result.volumes] == [(7.5, "mL"), (0.7, "tab(s)")]


def test_tc002_dose_capped(reference) -> None:
    result = calculate_dose(reference.get("acetaminophen"), 80.0)
    assert result.dose == 1000
    assert result.is_capped


def test_tc003_minimum_age(reference) -> None:
    """Too young for the medication: no dose"""
    med = reference.get("ibuprofen")
    assert med.min_age_months == 6
    restricted = calculate_dose(med, 7.0, age_months=3)
    assert restricted.age_restricted
    assert restricted.dose is None
    assert restricted.volumes == []
    allowed = calculate_dose(med, 10.0, age_months=12)
    assert allowed.dose == 100.0
    assert allowed.volumes[0].volume == 5.0
    assert allowed.volumes[1].volume is None
    assert calculate_dose(med, 10.0).dose == 100.0


def test_tc004_invalid_dose_inputs(reference) -> None:
    med = reference.get("acetaminophen")
    with pytest.raises(ValueError, match="valid weight"):
        calculate_dose(med, 0.0)
    with pytest.raises(ValueError, match="valid age"):
        calculate_dose(med, 10.0, age_months=-1)


def test_tc005_to_kg() -> None:
    assert to_kg(10.0) == 10.0
    assert to_kg(22.0, "lb") == pytest.approx(9.979, abs=1e-3)
    with pytest.raises(ValueError, match="valid weight"):
        to_kg(-1.0)
    with pytest.raises(ValueError, match="Unsupported weight unit"):
        to_kg(1.0, "st")


@pytest.mark.parametrize(
    "text,months",
    [
        ("6 months", 6.0),
        ("2 years", 24.0),
        ("Not for use under 3 mo", 3.0),
        ("1.5 yr", 18.0),
        (None, 0.0),
        ("none", 0.0),
    ],
)
def test_tc006_parse_min_age(text, months) -> None:
    assert parse_min_age_months(text) == months


def test_tc007_medication_validation() -> None:
    with pytest.raises(ValueError):
        Medication.model_validate(
            {"id": "x", "name": "X", "dosePerKg": 0, "maxSingleDose": 10}
        )
    med = Medication(id="x", name="X", dose_per_kg=5, max_single_dose=10)
    assert med.max_daily_dose is None


def test_tc008_reference_lookup(reference, tmp_path) -> None:
    assert reference.get("amoxicillin") is None
    assert reference.get("acetaminophen").max_daily_unit == "mg/kg/day"
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"medications": [{"id": "x"}]}))
    with pytest.raises(ValueError, match="Invalid dosing reference data"):
        DosingReference.from_file(path)
