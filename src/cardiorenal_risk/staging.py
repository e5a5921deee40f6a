"""
Derived clinical indicators shown next to the risk scores:
- BMI from height and weight, with WHO categories
- KDIGO CKD staging (G category from eGFR, A category from ACR)
"""

from dataclasses import dataclass

import pandas as pd


# KDIGO G categories, checked from most to least severe (eGFR below bound)
GFR_STAGES = [
    (15, 'G5', 'Kidney failure'),
    (30, 'G4', 'Severely decreased'),
    (45, 'G3b', 'Moderately to severely decreased'),
    (60, 'G3a', 'Mildly to moderately decreased'),
    (90, 'G2', 'Mildly decreased'),
]


@dataclass(frozen=True)
class KdigoStage:
    gfr_stage: str
    description: str
    acr_stage: str

    @property
    def label(self) -> str:
        return f"{self.gfr_stage}{self.acr_stage}"


def calculate_bmi(height_cm: float, weight_kg: float) -> float:
    """Body-mass index in kg/m², rounded to one decimal."""
    height_m = height_cm / 100
    return round(weight_kg / (height_m * height_m), 1)


def bmi_category(bmi: float) -> str:
    if bmi < 18.5:
        return 'Underweight'
    elif bmi < 25:
        return 'Normal'
    elif bmi < 30:
        return 'Overweight'
    else:
        return 'Obese'


def gfr_stage(egfr: float):
    """Return (stage, description) for an eGFR value."""
    for upper, stage, description in GFR_STAGES:
        if egfr < upper:
            return stage, description
    return 'G1', 'Normal or high'


def acr_stage(acr: float) -> str:
    if acr > 300:
        return 'A3'
    elif acr > 30:
        return 'A2'
    return 'A1'


def kdigo_stage(egfr: float, acr: float) -> KdigoStage:
    """
    Classify kidney function per the KDIGO CKD heat map.

    G categories: G1 >= 90, G2 60-89, G3a 45-59, G3b 30-44, G4 15-29, G5 < 15.
    A categories: A1 <= 30, A2 31-300, A3 > 300 mg/g.
    """
    stage, description = gfr_stage(egfr)
    return KdigoStage(gfr_stage=stage, description=description, acr_stage=acr_stage(acr))


def add_staging_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Append BMI, BMI category and KDIGO columns to a patient DataFrame.

    Expects the record column names ('height_cm', 'weight_kg', 'egfr', 'acr').
    """
    df = df.copy()

    if 'height_cm' in df.columns and 'weight_kg' in df.columns:
        derived = (df['weight_kg'] / (df['height_cm'] / 100) ** 2).round(1)
        if 'bmi' in df.columns:
            df['bmi'] = pd.to_numeric(df['bmi'], errors='coerce').fillna(derived)
        else:
            df['bmi'] = derived

    if 'bmi' in df.columns:
        df['bmi_category'] = pd.cut(
            df['bmi'],
            bins=[0, 18.5, 25, 30, float('inf')],
            labels=['Underweight', 'Normal', 'Overweight', 'Obese'],
            right=False
        ).astype(str)

    if 'egfr' in df.columns:
        df['gfr_stage'] = pd.cut(
            df['egfr'],
            bins=[float('-inf'), 15, 30, 45, 60, 90, float('inf')],
            labels=['G5', 'G4', 'G3b', 'G3a', 'G2', 'G1'],
            right=False
        ).astype(str)

    if 'acr' in df.columns:
        df['acr_stage'] = pd.cut(
            df['acr'],
            bins=[float('-inf'), 30, 300, float('inf')],
            labels=['A1', 'A2', 'A3']
        ).astype(str)

    return df
