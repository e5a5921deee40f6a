"""
Patient Record Module for the Cardiorenal Risk Calculator

This module handles:
- The immutable patient record consumed by the risk engine
- Schema definition with clinically plausible ranges
- Validation of the logarithm preconditions (age, lipids, SBP, ACR)
- Construction from loosely typed dictionaries (form data, JSON, YAML, CSV rows)
"""

import logging
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .staging import calculate_bmi

logger = logging.getLogger(__name__)


class PatientValidationError(ValueError):
    """Raised when a patient record violates a computation precondition."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Invalid patient record: " + "; ".join(self.errors))


class Sex(Enum):
    """Biological sex used to select the sex-stratified coefficients."""

    MALE = "MALE"
    FEMALE = "FEMALE"

    @classmethod
    def parse(cls, value: Any) -> "Sex":
        if isinstance(value, cls):
            return value
        key = str(value).strip().upper()
        if key in ('MALE', 'M', 'MASCULINO'):
            return cls.MALE
        if key in ('FEMALE', 'F', 'FEMININO'):
            return cls.FEMALE
        raise PatientValidationError([f"Unknown sex value: {value!r}"])


# Fields passed through a natural logarithm by the risk engine
POSITIVE_FIELDS = ('age', 'total_cholesterol', 'hdl_cholesterol', 'systolic_bp', 'acr')

# Clinically plausible ranges; values outside are reported, never rejected
SCHEMA = {
    'age': {'type': 'numeric', 'min': 18, 'max': 100, 'required': True},
    'sex': {'type': 'categorical', 'values': ['MALE', 'FEMALE'], 'required': True},
    'height_cm': {'type': 'numeric', 'min': 120, 'max': 230, 'required': True},
    'weight_kg': {'type': 'numeric', 'min': 30, 'max': 250, 'required': True},
    'systolic_bp': {'type': 'numeric', 'min': 80, 'max': 220, 'required': True},
    'diastolic_bp': {'type': 'numeric', 'min': 40, 'max': 140, 'required': True},
    'total_cholesterol': {'type': 'numeric', 'min': 100, 'max': 400, 'required': True},
    'hdl_cholesterol': {'type': 'numeric', 'min': 15, 'max': 120, 'required': True},
    'egfr': {'type': 'numeric', 'min': 5, 'max': 150, 'required': True},
    'acr': {'type': 'numeric', 'min': 1, 'max': 5000, 'required': True},
    'bmi': {'type': 'numeric', 'min': 12, 'max': 70, 'required': False},
    'has_diabetes': {'type': 'binary', 'required': False},
    'is_smoker': {'type': 'binary', 'required': False},
    'on_hypertension_meds': {'type': 'binary', 'required': False},
    'on_statins': {'type': 'binary', 'required': False},
}

# Accepted spellings from the dashboard form and exported spreadsheets
FIELD_ALIASES = {
    'gender': 'sex',
    'height': 'height_cm',
    'weight': 'weight_kg',
    'systolicBP': 'systolic_bp',
    'diastolicBP': 'diastolic_bp',
    'totalCholesterol': 'total_cholesterol',
    'hdlCholesterol': 'hdl_cholesterol',
    'eGFR': 'egfr',
    'hasDiabetes': 'has_diabetes',
    'isSmoker': 'is_smoker',
    'onHypertensionMeds': 'on_hypertension_meds',
    'onStatins': 'on_statins',
}


@dataclass(frozen=True)
class PatientRecord:
    """
    Biometric and laboratory inputs for one risk computation.

    Units: age in years, height in cm, weight in kg, blood pressure in mmHg,
    cholesterol in mg/dL, eGFR in mL/min/1.73m², ACR in mg/g.
    """

    age: float
    sex: Sex
    height_cm: float
    weight_kg: float
    systolic_bp: float
    diastolic_bp: float
    total_cholesterol: float
    hdl_cholesterol: float
    egfr: float
    acr: float
    has_diabetes: bool = False
    is_smoker: bool = False
    on_hypertension_meds: bool = False
    on_statins: bool = False
    bmi: Optional[float] = None

    @property
    def effective_bmi(self) -> float:
        """Supplied BMI if present, otherwise derived from height and weight."""
        if self.bmi is not None:
            return self.bmi
        return calculate_bmi(self.height_cm, self.weight_kg)

    def with_changes(self, **changes) -> 'PatientRecord':
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['sex'] = self.sex.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PatientRecord':
        """
        Build a record from a loosely typed mapping.

        Accepts the dashboard's camelCase keys, 0/1 flags and sex strings
        such as 'Male' or 'F'. Missing required fields raise
        PatientValidationError; no defaults are substituted for them.
        """
        normalized = {FIELD_ALIASES.get(key, key): value for key, value in data.items()}

        missing = [
            field for field, specs in SCHEMA.items()
            if specs.get('required') and _is_missing(normalized.get(field))
        ]
        if missing:
            raise PatientValidationError([f"Required field '{field}' is missing" for field in missing])

        kwargs = {'sex': Sex.parse(normalized['sex'])}
        errors = []
        for field, specs in SCHEMA.items():
            if field == 'sex':
                continue
            value = normalized.get(field)
            if _is_missing(value):
                continue
            try:
                if specs['type'] == 'binary':
                    kwargs[field] = _parse_flag(value)
                else:
                    kwargs[field] = float(value)
            except (TypeError, ValueError):
                errors.append(f"Field '{field}' has invalid value {value!r}")

        if errors:
            raise PatientValidationError(errors)

        return cls(**kwargs)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    # NaN from pandas rows
    return isinstance(value, float) and value != value


def _parse_flag(value: Any) -> bool:
    if isinstance(value, str):
        key = value.strip().lower()
        if key in ('1', 'true', 'yes', 'y', 'sim'):
            return True
        if key in ('0', 'false', 'no', 'n', 'nao', 'não', ''):
            return False
        raise ValueError(value)
    if value in (0, 1, True, False):
        return bool(value)
    raise ValueError(value)


def precondition_errors(record: PatientRecord) -> List[str]:
    """List violations of the strictly-positive logarithm arguments."""
    return [
        f"Field '{field}' must be strictly positive, got {getattr(record, field)}"
        for field in POSITIVE_FIELDS
        if not getattr(record, field) > 0
    ]


def validate_record(record: PatientRecord) -> Tuple[bool, List[str]]:
    """
    Validate a record against the engine's preconditions and the schema.

    Non-positive logarithm arguments make the record invalid. Values outside
    the plausible ranges are logged as warnings only, since upstream form
    collection owns range sanitisation.

    Returns:
        Tuple of (is_valid, list of precondition errors)
    """
    errors = precondition_errors(record)

    warnings = []
    for field, specs in SCHEMA.items():
        if specs['type'] != 'numeric':
            continue
        value = getattr(record, field)
        if value is None:
            continue
        if value < specs['min']:
            warnings.append(f"Field '{field}' value {value} below plausible minimum {specs['min']}")
        elif value > specs['max']:
            warnings.append(f"Field '{field}' value {value} above plausible maximum {specs['max']}")

    for warning in warnings:
        logger.warning(warning)

    return len(errors) == 0, errors


def require_valid(record: PatientRecord) -> None:
    """Raise PatientValidationError if the record violates a precondition."""
    errors = precondition_errors(record)
    if errors:
        raise PatientValidationError(errors)
