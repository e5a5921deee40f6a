"""
Cardiorenal Risk Engine - Published Risk Equations

This module implements two published clinical risk equations:
- Cardiovascular Risk: ACC/AHA 2013 Pooled Cohort Equations (Goff DC Jr, et al.)
- Kidney Failure Risk: 4-variable Kidney Failure Risk Equation (Tangri N, et al. JAMA 2011)

plus a combined stratification rule and an "optimal" counterfactual that
shows the cardiovascular risk achievable with ideal blood pressure, lipids
and no smoking.

All functions are pure: the result depends only on the PatientRecord passed in.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict

import numpy as np

from .patient import PatientRecord, Sex, require_valid

logger = logging.getLogger(__name__)


# ===== POOLED COHORT EQUATIONS =====
# Valid age range of the PCE derivation cohorts
PCE_MIN_AGE = 30
PCE_MAX_AGE = 79

# Reference horizon at which the baseline survival constants were fitted
PCE_REFERENCE_YEARS = 10

PCE_COEFFICIENTS = {
    Sex.MALE: {
        'ln_age': 12.344,
        'ln_age_squared': 0.0,
        'ln_total_chol': 11.853,
        'ln_age_x_ln_total_chol': -2.664,
        'ln_hdl': -7.990,
        'ln_age_x_ln_hdl': 1.769,
        'ln_sbp_treated': 1.797,
        'ln_sbp_untreated': 1.764,
        'smoker': 7.837,
        'ln_age_x_smoker': -1.795,
        'diabetes': 0.658,
        'mean_sum': 61.1816,
        'baseline_survival': 0.9144,
    },
    Sex.FEMALE: {
        'ln_age': -29.799,
        'ln_age_squared': 4.884,
        'ln_total_chol': 13.540,
        'ln_age_x_ln_total_chol': -3.114,
        'ln_hdl': -13.578,
        'ln_age_x_ln_hdl': 3.149,
        'ln_sbp_treated': 2.019,
        'ln_sbp_untreated': 1.957,
        'smoker': 7.574,
        'ln_age_x_smoker': -1.665,
        'diabetes': 0.661,
        'mean_sum': -29.182,
        'baseline_survival': 0.9665,
    },
}

# Relative risk reduction of statin therapy (~25% in meta-analyses)
STATIN_RISK_FACTOR = 0.75

CV_HORIZONS = {'five_year': 5, 'ten_year': 10, 'fifteen_year': 15}

# ===== KIDNEY FAILURE RISK EQUATION =====
# (coefficient, centering constant) per covariate
KFRE_COEFFICIENTS = {
    'age_per_decade': (-0.2201, 7.036),
    'male': (0.2467, 0.5642),
    'egfr_per_5': (-0.5567, 7.222),
    'ln_acr': (0.4510, 5.137),
}

# Baseline kidney-failure-free survival per horizon. The 10-year value is a
# linear estimate from the CKD progression curve, not a fitted constant.
KFRE_BASELINE_SURVIVAL = {
    'two_year': 0.9832,
    'five_year': 0.9365,
    'ten_year': 0.8200,
}

# ===== COMBINED STRATIFICATION =====
# (level, ten-year CV threshold, five-year renal threshold), most severe first
RISK_LEVEL_THRESHOLDS = [
    ('very_high', 20, 15),
    ('high', 10, 10),
    ('moderate', 5, 5),
]

# Crude multiplier from 10-year to long-horizon CV risk (not a fitted model)
LONG_HORIZON_MULTIPLIER = 2.5

# Targets used for the optimal counterfactual
OPTIMAL_TARGETS = {
    'systolic_bp': 115,
    'diastolic_bp': 75,
    'total_cholesterol': 160,
    'hdl_cholesterol': 55,
    'is_smoker': False,
    'on_hypertension_meds': False,
    'on_statins': False,
}


class RiskLevel(str, Enum):
    LOW = 'low'
    MODERATE = 'moderate'
    HIGH = 'high'
    VERY_HIGH = 'very_high'

    @property
    def display_name(self) -> str:
        return self.value.replace('_', ' ').title()


@dataclass(frozen=True)
class CardiovascularTimeline:
    """Cardiovascular event risk in percent, each value in [0.1, 100]."""

    five_year: float
    ten_year: float
    fifteen_year: float


@dataclass(frozen=True)
class RenalTimeline:
    """Kidney failure risk in percent (unclamped)."""

    two_year: float
    five_year: float
    ten_year: float


@dataclass(frozen=True)
class RiskResult:
    cv_timeline: CardiovascularTimeline
    renal_timeline: RenalTimeline
    combined_level: RiskLevel
    cv_long_horizon: float

    def to_dict(self) -> Dict:
        return {
            'cv_timeline': {
                'five_year': self.cv_timeline.five_year,
                'ten_year': self.cv_timeline.ten_year,
                'fifteen_year': self.cv_timeline.fifteen_year,
            },
            'renal_timeline': {
                'two_year': self.renal_timeline.two_year,
                'five_year': self.renal_timeline.five_year,
                'ten_year': self.renal_timeline.ten_year,
            },
            'combined_level': self.combined_level.value,
            'cv_long_horizon': self.cv_long_horizon,
        }


def pce_linear_predictor(record: PatientRecord) -> float:
    """
    Individual sum of the Pooled Cohort Equations for the record's sex.

    Age is clamped to the cohort range [30, 79] before the logarithm; the
    record itself is left untouched.

    Precondition: age, total cholesterol, HDL and systolic BP are > 0.
    """
    coef = PCE_COEFFICIENTS[record.sex]

    eval_age = min(max(record.age, PCE_MIN_AGE), PCE_MAX_AGE)
    ln_age = math.log(eval_age)
    ln_total_chol = math.log(record.total_cholesterol)
    ln_hdl = math.log(record.hdl_cholesterol)
    ln_sbp = math.log(record.systolic_bp)
    smoker = 1 if record.is_smoker else 0
    diabetes = 1 if record.has_diabetes else 0

    sbp_coef = coef['ln_sbp_treated'] if record.on_hypertension_meds else coef['ln_sbp_untreated']

    return (
        coef['ln_age'] * ln_age
        + coef['ln_age_squared'] * ln_age * ln_age
        + coef['ln_total_chol'] * ln_total_chol
        + coef['ln_age_x_ln_total_chol'] * ln_age * ln_total_chol
        + coef['ln_hdl'] * ln_hdl
        + coef['ln_age_x_ln_hdl'] * ln_age * ln_hdl
        + sbp_coef * ln_sbp
        + coef['smoker'] * smoker
        + coef['ln_age_x_smoker'] * ln_age * smoker
        + coef['diabetes'] * diabetes
    )


def _cv_risk_at(years: float, baseline_survival: float, risk_multiplier: float, on_statins: bool) -> float:
    # Constant hazard: S(t) = S10 ** (t / 10)
    survival_t = baseline_survival ** (years / PCE_REFERENCE_YEARS)
    risk = 1 - survival_t ** risk_multiplier

    if on_statins:
        risk = risk * STATIN_RISK_FACTOR

    return min(max(risk * 100, 0.1), 100)


def cardiovascular_risk_curve(record: PatientRecord, years) -> np.ndarray:
    """
    Cardiovascular risk (percent) at arbitrary horizons, for charting.

    Uses the same time scaling as compute_cardiovascular_risk, so the values
    at 5, 10 and 15 years match the timeline exactly.
    """
    require_valid(record)
    coef = PCE_COEFFICIENTS[record.sex]
    risk_multiplier = math.exp(pce_linear_predictor(record) - coef['mean_sum'])

    return np.array([
        _cv_risk_at(float(t), coef['baseline_survival'], risk_multiplier, record.on_statins)
        for t in np.atleast_1d(years)
    ])


def compute_cardiovascular_risk(record: PatientRecord) -> CardiovascularTimeline:
    """
    Estimate 5, 10 and 15-year ASCVD risk with the Pooled Cohort Equations.

    The equations are only defined at 10 years; other horizons rescale the
    baseline survival assuming a constant hazard. Statin therapy reduces
    the risk by 25% before clamping to [0.1, 100].

    Returns:
        CardiovascularTimeline with percentages
    """
    require_valid(record)
    coef = PCE_COEFFICIENTS[record.sex]

    individual_sum = pce_linear_predictor(record)
    risk_multiplier = math.exp(individual_sum - coef['mean_sum'])
    logger.debug("PCE sum=%.6f multiplier=%.6f sex=%s", individual_sum, risk_multiplier, record.sex.value)

    risks = {
        name: _cv_risk_at(years, coef['baseline_survival'], risk_multiplier, record.on_statins)
        for name, years in CV_HORIZONS.items()
    }
    return CardiovascularTimeline(**risks)


def kfre_linear_predictor(record: PatientRecord) -> float:
    """
    Linear predictor of the 4-variable KFRE.

    Age is not clamped here, unlike the cardiovascular model.
    Precondition: ACR > 0.
    """
    is_male = 1 if record.sex is Sex.MALE else 0
    covariates = {
        'age_per_decade': record.age / 10,
        'male': is_male,
        'egfr_per_5': record.egfr / 5,
        'ln_acr': math.log(record.acr),
    }
    return sum(
        coefficient * (covariates[name] - center)
        for name, (coefficient, center) in KFRE_COEFFICIENTS.items()
    )


def compute_renal_risk(record: PatientRecord) -> RenalTimeline:
    """
    Estimate 2, 5 and 10-year kidney failure risk with the 4-variable KFRE.

    Each horizon has its own baseline survival. Results are not clamped.

    Returns:
        RenalTimeline with percentages
    """
    require_valid(record)

    lp = kfre_linear_predictor(record)
    hazard_multiplier = math.exp(lp)
    logger.debug("KFRE lp=%.6f multiplier=%.6f", lp, hazard_multiplier)

    risks = {
        name: (1 - survival ** hazard_multiplier) * 100
        for name, survival in KFRE_BASELINE_SURVIVAL.items()
    }
    return RenalTimeline(**risks)


def classify_risk_level(ten_year_cv: float, five_year_renal: float) -> RiskLevel:
    """
    Combined stratification: first tier whose CV or renal threshold is
    strictly exceeded, checked from most to least severe.

    - Very high: CV > 20% or renal > 15%
    - High: CV > 10% or renal > 10%
    - Moderate: CV > 5% or renal > 5%
    - Low: otherwise
    """
    for level, cv_threshold, renal_threshold in RISK_LEVEL_THRESHOLDS:
        if ten_year_cv > cv_threshold or five_year_renal > renal_threshold:
            return RiskLevel(level)
    return RiskLevel.LOW


def combine(cv: CardiovascularTimeline, renal: RenalTimeline) -> RiskResult:
    """
    Merge the sub-model timelines into a RiskResult.

    The long-horizon CV figure is the 10-year risk times 2.5, capped at 100:
    a multiplicative projection for display, not a validated estimate.
    """
    return RiskResult(
        cv_timeline=cv,
        renal_timeline=renal,
        combined_level=classify_risk_level(cv.ten_year, renal.five_year),
        cv_long_horizon=min(cv.ten_year * LONG_HORIZON_MULTIPLIER, 100),
    )


def compute_risk(record: PatientRecord) -> RiskResult:
    """Calculate both risk models and the combined level for one patient."""
    return combine(compute_cardiovascular_risk(record), compute_renal_risk(record))


def optimal_record(record: PatientRecord) -> PatientRecord:
    """
    Counterfactual record with ideal blood pressure, lipids, no smoking and
    no treatment. Diabetes, demographics and renal fields are kept, so the
    comparison isolates what is modifiable.
    """
    return record.with_changes(**OPTIMAL_TARGETS)


def compute_optimal_risk(record: PatientRecord) -> CardiovascularTimeline:
    """Cardiovascular timeline of the optimal counterfactual record."""
    return compute_cardiovascular_risk(optimal_record(record))
