import math

import pytest

from refcurves.calculators.ckid_bp import (
    assess_gfr,
    bp_norms,
    ckid_u25_gfr,
    gfr_stage,
)


def test_tc001_gfr_equation() -> None:
    expected = math.exp(
        5.10 + 1.27 * math.log(120) - 0.87 * math.log(0.5) + 0.21 * 1.4
    )
    gfr = ckid_u25_gfr(10, 140, 0.5)
    assert isinstance(gfr, int)
    assert gfr == pytest.approx(expected, abs=0.5)


def test_tc002_black_coefficient() -> None:
    white = ckid_u25_gfr(10, 140, 0.5)
    black = ckid_u25_gfr(10, 140, 0.5, black=True)
    assert black == pytest.approx(white * math.exp(-0.22), rel=1e-4)


def test_tc003_creatinine_lowers_gfr() -> None:
    low = ckid_u25_gfr(8, 125, 0.6)
    high = ckid_u25_gfr(8, 125, 1.2)
    assert high == pytest.approx(low * 2 ** -0.87, rel=1e-4)


@pytest.mark.parametrize(
    "gfr,stage",
    [
        (10, "CKD stage 5"),
        (15, "CKD stage 4"),
        (29, "CKD stage 4"),
        (44, "CKD stage 3b"),
        (59, "CKD stage 3a"),
        (60, "CKD stage 2"),
        (89, "CKD stage 2"),
        (90, "Normal GFR"),
    ],
)
def test_tc004_gfr_stage(gfr, stage) -> None:
    assert gfr_stage(gfr) == stage


def test_tc005_assess_ckd() -> None:
    """Creatinine 200 mg/dL at 1 year, 75 cm falls below 60"""
    result = assess_gfr(1, 75, 200)
    assert 45 <= result.gfr < 60
    assert result.stage == "CKD stage 3a"
    assert result.is_ckd
    assert result.assessment == "Chronic kidney disease"
    assert result.next_step == "Follow-up with pediatric nephrology"


def test_tc006_assess_decreased() -> None:
    result = assess_gfr(1, 75, 105)
    assert 60 <= result.gfr < 90
    assert result.stage == "CKD stage 2"
    assert not result.is_ckd
    assert result.assessment == "Decreased function"
    assert result.next_step == "Normal monitoring"


def test_tc007_assess_normal() -> None:
    result = assess_gfr(10, 140, 0.5)
    assert result.stage == "Normal GFR"
    assert result.assessment == "Normal kidney function"


@pytest.mark.parametrize(
    "args,message",
    [
        ((0.5, 75, 0.3), "between 1-18"),
        ((19, 170, 0.8), "between 1-18"),
        ((float("nan"), 170, 0.8), "between 1-18"),
        ((10, 0, 0.8), "valid height"),
        ((10, 140, -1), "valid creatinine"),
        ((10, 140, float("inf")), "valid creatinine"),
    ],
)
def test_tc008_gfr_invalid_inputs(args, message) -> None:
    with pytest.raises(ValueError, match=message):
        ckid_u25_gfr(*args)


def test_tc009_bp_norms_reference_height() -> None:
    norms = bp_norms(8, 130)
    assert [n.percentile for n in norms] == [
        "50th", "75th", "90th", "95th", "95th+", "99th", "High",
    ]
    assert [n.systolic for n in norms] == [95, 100, 105, 110, 115, 120, 125]
    assert [n.diastolic for n in norms] == [55, 60, 65, 70, 70, 70, 75]


@pytest.mark.parametrize(
    "height,shift",
    [(135, 2), (125, 0), (115, -2), (150, 4), (200, 4), (60, -4)],
)
def test_tc010_bp_height_adjustment(height, shift) -> None:
    """2 mmHg per 10 cm from 130 cm, halves rounded up, at most two steps"""
    norms = bp_norms(8, height)
    assert norms[0].systolic == 95 + shift
    assert norms[-1].systolic == 125 + shift
    assert norms[0].diastolic == 55
    assert all(n.systolic >= 80 for n in norms)


def test_tc011_bp_invalid_inputs() -> None:
    with pytest.raises(ValueError, match="between 1-18"):
        bp_norms(0, 80)
    with pytest.raises(ValueError, match="valid height"):
        bp_norms(5, -10)
