"""
Cohort Evaluation Module for the Cardiorenal Risk Calculator

This module handles:
- Loading patient tables from CSV or JSON
- Converting rows to PatientRecord
- Evaluating the risk engine over every row

The engine is stateless, so a cohort is simply a map over its records.
"""

import json
import logging
from pathlib import Path
from typing import List, Union

import pandas as pd

from .patient import PatientRecord, PatientValidationError
from .risk_engine import compute_optimal_risk, compute_risk
from .staging import add_staging_columns

logger = logging.getLogger(__name__)


def load_patients(file_path: Union[str, Path]) -> pd.DataFrame:
    """
    Load patient data from a CSV or JSON file.

    Args:
        file_path: Path to a .csv file or a .json file holding a list of records

    Returns:
        Pandas DataFrame with one row per patient
    """
    path = Path(file_path)

    if path.suffix.lower() == '.json':
        with open(path, 'r') as f:
            data = json.load(f)
        df = pd.DataFrame(data)
    else:
        df = pd.read_csv(path)

    logger.info("Loaded %d patient records from %s", len(df), path)
    return df


def records_from_frame(df: pd.DataFrame) -> List[PatientRecord]:
    """Convert DataFrame rows to records, naming the row of any invalid one."""
    records = []
    for index, row in df.iterrows():
        try:
            records.append(PatientRecord.from_dict(row.to_dict()))
        except PatientValidationError as e:
            raise PatientValidationError([f"Row {index}: {error}" for error in e.errors]) from e
    return records


def evaluate_cohort(df: pd.DataFrame) -> pd.DataFrame:
    """
    Compute risk results for every patient in a DataFrame.

    Returns:
        DataFrame with the input identifier column (if any), every timeline
        value, the combined level, long-horizon and optimal 10-year risk,
        BMI and KDIGO staging columns
    """
    rows = []
    for index, record in zip(df.index, records_from_frame(df)):
        try:
            result = compute_risk(record)
            optimal = compute_optimal_risk(record)
        except PatientValidationError as e:
            raise PatientValidationError([f"Row {index}: {error}" for error in e.errors]) from e

        rows.append({
            **record.to_dict(),
            'cv_5y': result.cv_timeline.five_year,
            'cv_10y': result.cv_timeline.ten_year,
            'cv_15y': result.cv_timeline.fifteen_year,
            'cv_long_horizon': result.cv_long_horizon,
            'renal_2y': result.renal_timeline.two_year,
            'renal_5y': result.renal_timeline.five_year,
            'renal_10y': result.renal_timeline.ten_year,
            'combined_level': result.combined_level.value,
            'optimal_cv_10y': optimal.ten_year,
        })

    results = pd.DataFrame(rows, index=df.index)
    if 'patient_id' in df.columns:
        results.insert(0, 'patient_id', df['patient_id'])

    results = add_staging_columns(results)

    logger.info(
        "Evaluated %d patients: %s",
        len(results),
        results['combined_level'].value_counts().to_dict() if len(results) else {}
    )
    return results
