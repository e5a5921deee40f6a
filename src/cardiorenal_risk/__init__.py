"""
Cardiorenal Risk Calculator

Cardiovascular (Pooled Cohort Equations) and kidney failure (KFRE) risk
estimation with combined stratification and an optimal-risk counterfactual.
"""

from .patient import PatientRecord, PatientValidationError, Sex, validate_record
from .risk_engine import (
    CardiovascularTimeline,
    RenalTimeline,
    RiskLevel,
    RiskResult,
    classify_risk_level,
    combine,
    compute_cardiovascular_risk,
    compute_optimal_risk,
    compute_renal_risk,
    compute_risk,
)

__version__ = "1.0.0"

__all__ = [
    'PatientRecord',
    'PatientValidationError',
    'Sex',
    'validate_record',
    'CardiovascularTimeline',
    'RenalTimeline',
    'RiskLevel',
    'RiskResult',
    'classify_risk_level',
    'combine',
    'compute_cardiovascular_risk',
    'compute_optimal_risk',
    'compute_renal_risk',
    'compute_risk',
]
