"""
Test Suite for the Cardiorenal Risk Engine
"""

import math

import pytest
import numpy as np
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from cardiorenal_risk.patient import PatientRecord, PatientValidationError, Sex
from cardiorenal_risk.risk_engine import (
    CardiovascularTimeline,
    RenalTimeline,
    RiskLevel,
    cardiovascular_risk_curve,
    classify_risk_level,
    combine,
    compute_cardiovascular_risk,
    compute_optimal_risk,
    compute_renal_risk,
    compute_risk,
    optimal_record,
    pce_linear_predictor,
)


@pytest.fixture
def reference_male():
    """50-year-old treated hypertensive male used as the golden scenario."""
    return PatientRecord(
        age=50,
        sex=Sex.MALE,
        height_cm=180,
        weight_kg=103,
        systolic_bp=145,
        diastolic_bp=92,
        total_cholesterol=250,
        hdl_cholesterol=38,
        egfr=56.4,
        acr=175,
        has_diabetes=False,
        is_smoker=False,
        on_hypertension_meds=True,
        on_statins=False,
    )


@pytest.fixture
def reference_female():
    return PatientRecord(
        age=60,
        sex=Sex.FEMALE,
        height_cm=165,
        weight_kg=70,
        systolic_bp=130,
        diastolic_bp=82,
        total_cholesterol=200,
        hdl_cholesterol=50,
        egfr=80,
        acr=20,
        is_smoker=True,
    )


class TestCardiovascularRisk:
    """Tests for the Pooled Cohort Equations sub-model."""

    def test_golden_value_male(self, reference_male):
        """10-year risk matches the published male equation."""
        cv = compute_cardiovascular_risk(reference_male)

        assert pce_linear_predictor(reference_male) == pytest.approx(61.245583942666, rel=1e-9)
        assert cv.ten_year == pytest.approx(9.099079297096, rel=1e-6)
        assert cv.five_year == pytest.approx(4.658025663979, rel=1e-6)
        assert cv.fifteen_year == pytest.approx(13.333267512231, rel=1e-6)

    def test_golden_value_female(self, reference_female):
        """Female branch includes the ln(age) squared term."""
        cv = compute_cardiovascular_risk(reference_female)

        assert pce_linear_predictor(reference_female) == pytest.approx(-28.343580493499, rel=1e-9)
        assert cv.ten_year == pytest.approx(7.577820327297, rel=1e-6)

    def test_independent_formula(self, reference_male):
        """Timeline equals 1 - (S10 ** (t/10)) ** exp(sum - mean)."""
        a = math.log(50)
        tc = math.log(250)
        hdl = math.log(38)
        sbp = math.log(145)
        individual_sum = (12.344 * a + 11.853 * tc - 2.664 * a * tc - 7.990 * hdl
                          + 1.769 * a * hdl + 1.797 * sbp)
        multiplier = math.exp(individual_sum - 61.1816)

        cv = compute_cardiovascular_risk(reference_male)
        for years, value in ((5, cv.five_year), (10, cv.ten_year), (15, cv.fifteen_year)):
            expected = (1 - (0.9144 ** (years / 10)) ** multiplier) * 100
            assert value == pytest.approx(expected, rel=1e-9)

    def test_risk_increases_with_horizon(self, reference_male, reference_female):
        """Longer horizons give strictly higher risk for a fixed record."""
        for record in (reference_male, reference_female):
            cv = compute_cardiovascular_risk(record)
            assert cv.five_year < cv.ten_year < cv.fifteen_year

    def test_curve_matches_timeline(self, reference_male):
        """Risk curve agrees with the timeline and is increasing."""
        cv = compute_cardiovascular_risk(reference_male)
        curve = cardiovascular_risk_curve(reference_male, [5, 10, 15])

        assert list(curve) == [cv.five_year, cv.ten_year, cv.fifteen_year]

        dense = cardiovascular_risk_curve(reference_male, np.arange(1, 16))
        assert (np.diff(dense) > 0).all()

    def test_output_bounds(self, reference_male):
        """Every horizon lies in [0.1, 100]."""
        very_low = PatientRecord(
            age=30, sex=Sex.FEMALE, height_cm=165, weight_kg=60,
            systolic_bp=100, diastolic_bp=65, total_cholesterol=130,
            hdl_cholesterol=90, egfr=110, acr=5
        )
        very_high = PatientRecord(
            age=79, sex=Sex.MALE, height_cm=170, weight_kg=95,
            systolic_bp=220, diastolic_bp=120, total_cholesterol=400,
            hdl_cholesterol=20, egfr=30, acr=800,
            has_diabetes=True, is_smoker=True, on_hypertension_meds=True
        )

        low = compute_cardiovascular_risk(very_low)
        assert low.five_year == 0.1
        assert low.fifteen_year == 0.1

        for record in (very_low, very_high, reference_male):
            cv = compute_cardiovascular_risk(record)
            for value in (cv.five_year, cv.ten_year, cv.fifteen_year):
                assert 0.1 <= value <= 100

    def test_age_clamped_to_cohort_range(self, reference_male):
        """Ages outside 30-79 are evaluated at the nearest bound."""
        young = compute_cardiovascular_risk(reference_male.with_changes(age=22))
        at_min = compute_cardiovascular_risk(reference_male.with_changes(age=30))
        old = compute_cardiovascular_risk(reference_male.with_changes(age=88))
        at_max = compute_cardiovascular_risk(reference_male.with_changes(age=79))

        assert young == at_min
        assert old == at_max

    def test_statin_reduces_risk_by_quarter(self, reference_male):
        """Statin therapy multiplies every horizon by 0.75."""
        without = compute_cardiovascular_risk(reference_male)
        with_statin = compute_cardiovascular_risk(reference_male.with_changes(on_statins=True))

        assert with_statin.five_year == pytest.approx(without.five_year * 0.75, rel=1e-12)
        assert with_statin.ten_year == pytest.approx(without.ten_year * 0.75, rel=1e-12)
        assert with_statin.fifteen_year == pytest.approx(without.fifteen_year * 0.75, rel=1e-12)

    def test_treated_sbp_coefficient(self, reference_male):
        """Antihypertensive treatment selects the larger SBP coefficient."""
        untreated = compute_cardiovascular_risk(reference_male.with_changes(on_hypertension_meds=False))
        treated = compute_cardiovascular_risk(reference_male)

        assert treated.ten_year > untreated.ten_year

    def test_non_positive_inputs_rejected(self, reference_male):
        """Logarithm arguments must be strictly positive."""
        for field in ('age', 'total_cholesterol', 'hdl_cholesterol', 'systolic_bp'):
            with pytest.raises(PatientValidationError) as excinfo:
                compute_cardiovascular_risk(reference_male.with_changes(**{field: 0}))
            assert field in str(excinfo.value)


class TestRenalRisk:
    """Tests for the Kidney Failure Risk Equation sub-model."""

    def test_formula_equivalence(self, reference_male):
        """Each horizon equals 1 - S_t ** exp(lp) with its own baseline."""
        lp = (-0.2201 * (50 / 10 - 7.036)
              + 0.2467 * (1 - 0.5642)
              - 0.5567 * (56.4 / 5 - 7.222)
              + 0.4510 * (math.log(175) - 5.137))
        multiplier = math.exp(lp)

        renal = compute_renal_risk(reference_male)

        assert renal.two_year == pytest.approx((1 - 0.9832 ** multiplier) * 100, rel=1e-12)
        assert renal.five_year == pytest.approx((1 - 0.9365 ** multiplier) * 100, rel=1e-12)
        assert renal.ten_year == pytest.approx((1 - 0.8200 ** multiplier) * 100, rel=1e-12)
        assert renal.five_year == pytest.approx(1.202154776062, rel=1e-6)

    def test_female_indicator(self, reference_male):
        """Female sex lowers the linear predictor."""
        male = compute_renal_risk(reference_male)
        female = compute_renal_risk(reference_male.with_changes(sex=Sex.FEMALE))

        assert female.five_year < male.five_year

    def test_no_age_clamp(self, reference_male):
        """Unlike the CV model, renal risk uses the raw age."""
        at_25 = compute_renal_risk(reference_male.with_changes(age=25))
        at_30 = compute_renal_risk(reference_male.with_changes(age=30))

        assert at_25 != at_30

    def test_no_clamping_of_small_values(self):
        """Renal output is not raised to a floor."""
        healthy = PatientRecord(
            age=40, sex=Sex.MALE, height_cm=175, weight_kg=75,
            systolic_bp=118, diastolic_bp=76, total_cholesterol=180,
            hdl_cholesterol=55, egfr=100, acr=5
        )
        renal = compute_renal_risk(healthy)

        assert 0 < renal.five_year < 0.01

    def test_non_positive_acr_rejected(self, reference_male):
        with pytest.raises(PatientValidationError):
            compute_renal_risk(reference_male.with_changes(acr=0))


class TestStratification:
    """Tests for the combined risk level."""

    def test_strict_boundaries(self):
        """Tiers use strict greater-than comparisons."""
        assert classify_risk_level(20.0, 0.0) == RiskLevel.HIGH
        assert classify_risk_level(20.0001, 0.0) == RiskLevel.VERY_HIGH
        assert classify_risk_level(0.0, 15.0) == RiskLevel.HIGH
        assert classify_risk_level(0.0, 15.0001) == RiskLevel.VERY_HIGH
        assert classify_risk_level(10.0, 10.0) == RiskLevel.MODERATE
        assert classify_risk_level(5.0, 5.0) == RiskLevel.LOW
        assert classify_risk_level(5.01, 0.0) == RiskLevel.MODERATE

    def test_most_severe_tier_wins(self):
        assert classify_risk_level(25.0, 6.0) == RiskLevel.VERY_HIGH
        assert classify_risk_level(3.0, 12.0) == RiskLevel.HIGH

    def test_combine(self):
        """Combined result carries timelines, level and long-horizon projection."""
        cv = CardiovascularTimeline(five_year=6.0, ten_year=12.0, fifteen_year=18.0)
        renal = RenalTimeline(two_year=1.0, five_year=3.0, ten_year=8.0)

        result = combine(cv, renal)

        assert result.cv_timeline is cv
        assert result.renal_timeline is renal
        assert result.combined_level == RiskLevel.HIGH
        assert result.cv_long_horizon == pytest.approx(30.0)

    def test_long_horizon_capped(self):
        cv = CardiovascularTimeline(five_year=30.0, ten_year=55.0, fifteen_year=70.0)
        renal = RenalTimeline(two_year=0.1, five_year=0.2, ten_year=0.5)

        assert combine(cv, renal).cv_long_horizon == 100

    def test_reference_patient_level(self, reference_male):
        """Golden patient: 9.1% CV and 1.2% renal is moderate."""
        result = compute_risk(reference_male)

        assert result.combined_level == RiskLevel.MODERATE
        assert result.combined_level.value == 'moderate'

    def test_idempotence(self, reference_male):
        """Identical inputs give identical results."""
        assert compute_risk(reference_male) == compute_risk(reference_male)
        assert compute_risk(reference_male).to_dict() == compute_risk(reference_male).to_dict()


class TestOptimalCounterfactual:
    """Tests for the optimal-risk comparison."""

    def test_optimal_record_fields(self, reference_male):
        """Modifiable fields are replaced, everything else is kept."""
        record = reference_male.with_changes(has_diabetes=True, is_smoker=True, on_statins=True)
        optimal = optimal_record(record)

        assert optimal.systolic_bp == 115
        assert optimal.diastolic_bp == 75
        assert optimal.total_cholesterol == 160
        assert optimal.hdl_cholesterol == 55
        assert not optimal.is_smoker
        assert not optimal.on_hypertension_meds
        assert not optimal.on_statins
        assert optimal.has_diabetes
        assert optimal.age == record.age
        assert optimal.egfr == record.egfr
        assert optimal.acr == record.acr

    def test_optimal_not_above_current(self, reference_male):
        current = compute_cardiovascular_risk(reference_male)
        optimal = compute_optimal_risk(reference_male)

        assert optimal.ten_year == pytest.approx(1.893684757802, rel=1e-6)
        assert optimal.ten_year <= current.ten_year

    def test_already_optimal_is_unchanged(self, reference_male):
        """A record at the targets has equal current and optimal risk."""
        record = optimal_record(reference_male)

        assert compute_optimal_risk(record) == compute_cardiovascular_risk(record)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
