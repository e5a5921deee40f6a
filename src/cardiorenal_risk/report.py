"""
Report Module for the Cardiorenal Risk Calculator

Turns a RiskResult into presentation artifacts:
- Current vs. optimal comparison data for charts
- Rule-based clinical recommendations
- Printable plain-text report
- Prompt for the external narrative-generation service
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .patient import PatientRecord, Sex
from .risk_engine import CardiovascularTimeline, RiskLevel, RiskResult
from .staging import bmi_category, kdigo_stage


RISK_INDICATORS = {
    RiskLevel.LOW: '🟢',
    RiskLevel.MODERATE: '🟡',
    RiskLevel.HIGH: '🟠',
    RiskLevel.VERY_HIGH: '🔴',
}

RECOMMENDATIONS = {
    'high_bp': [
        "Monitor blood pressure at home",
        "Reduce sodium intake",
        "Target systolic BP below 130 mmHg (AHA/ACC)",
    ],
    'uncontrolled_treated_bp': [
        "Review antihypertensive regimen; BP remains above target on treatment",
    ],
    'high_cholesterol': [
        "Adopt heart-healthy diet (reduce saturated fats)",
        "Consider statin therapy based on overall CV risk",
        "Recheck lipid panel in 3-6 months",
    ],
    'low_hdl': [
        "Increase physical activity to 150+ minutes/week to raise HDL",
    ],
    'smoking': [
        "Strongly consider smoking cessation",
        "Refer to smoking cessation program",
    ],
    'albuminuria': [
        "Consider RAAS blockade and SGLT2 inhibitor for albuminuria (KDIGO 2024)",
        "Repeat ACR within 3 months to confirm persistence",
    ],
    'low_egfr': [
        "Monitor kidney function regularly",
        "Avoid nephrotoxic medications",
    ],
    'nephrology_referral': [
        "Refer to nephrology (eGFR < 30 or 5-year KFRE > 5%)",
    ],
    'diabetes': [
        "Optimise glycaemic control and review HbA1c every 3-6 months",
    ],
    'high_bmi': [
        "Aim for gradual weight loss (5-10% of body weight)",
    ],
    'general': [
        "Schedule follow-up appointment for risk reassessment",
        "Maintain healthy lifestyle with regular exercise",
    ],
}

NARRATIVE_SYSTEM_PROMPT = (
    "You are a medical assistant specialised in cardiovascular and chronic kidney "
    "risk analysis. Your answers must be precise, evidence-based and formatted as "
    "professional clinical reports."
)


def optimal_comparison(result: RiskResult, optimal: CardiovascularTimeline) -> Dict:
    """
    Bar-chart data comparing the patient's 10-year CV risk with the optimal
    counterfactual, plus the absolute reduction available.
    """
    current = result.cv_timeline.ten_year
    target = optimal.ten_year
    return {
        'bars': [
            {'name': 'Current', 'risk': round(current, 1)},
            {'name': 'Target', 'risk': round(target, 1)},
        ],
        'headroom': max(current - target, 0.0),
    }


def generate_recommendations(record: PatientRecord, result: RiskResult) -> List[str]:
    """Rule-based recommendations from the record and its risk profile."""
    recommendations = []

    if record.systolic_bp >= 130 or record.diastolic_bp >= 80:
        recommendations.extend(RECOMMENDATIONS['high_bp'])
        if record.on_hypertension_meds:
            recommendations.extend(RECOMMENDATIONS['uncontrolled_treated_bp'])

    if record.total_cholesterol >= 200 and not record.on_statins:
        recommendations.extend(RECOMMENDATIONS['high_cholesterol'])

    if record.hdl_cholesterol < 40:
        recommendations.extend(RECOMMENDATIONS['low_hdl'])

    if record.is_smoker:
        recommendations.extend(RECOMMENDATIONS['smoking'])

    if record.acr > 30:
        recommendations.extend(RECOMMENDATIONS['albuminuria'])

    if record.egfr < 60:
        recommendations.extend(RECOMMENDATIONS['low_egfr'])

    if record.egfr < 30 or result.renal_timeline.five_year > 5:
        recommendations.extend(RECOMMENDATIONS['nephrology_referral'])

    if record.has_diabetes:
        recommendations.extend(RECOMMENDATIONS['diabetes'])

    if record.effective_bmi >= 30:
        recommendations.extend(RECOMMENDATIONS['high_bmi'])

    recommendations.extend(RECOMMENDATIONS['general'])

    return recommendations


def generate_report(
    record: PatientRecord,
    result: RiskResult,
    optimal: CardiovascularTimeline,
    patient_id: Optional[str] = None
) -> str:
    """
    Generate a human-readable risk assessment report.

    Args:
        record: Patient inputs
        result: Output of compute_risk for the record
        optimal: Output of compute_optimal_risk for the record
        patient_id: Optional patient identifier

    Returns:
        Formatted report string
    """
    stage = kdigo_stage(record.egfr, record.acr)
    bmi = record.effective_bmi
    comparison = optimal_comparison(result, optimal)

    report = []
    report.append("=" * 60)
    report.append("CARDIORENAL RISK ASSESSMENT REPORT")
    report.append("=" * 60)

    if patient_id:
        report.append(f"Patient ID: {patient_id}")
    report.append(f"Assessment Date: {datetime.now().strftime('%Y-%m-%d %H:%M')}")

    report.append("\n" + "-" * 40)
    report.append("PATIENT PROFILE")
    report.append("-" * 40)
    report.append(f"Age: {record.age:g} years, Sex: {record.sex.value.title()}")
    report.append(f"BMI: {bmi:.1f} kg/m² ({bmi_category(bmi)})")
    report.append(f"Blood Pressure: {record.systolic_bp:g}/{record.diastolic_bp:g} mmHg "
                  f"({'treated' if record.on_hypertension_meds else 'untreated'})")
    report.append(f"Cholesterol: Total {record.total_cholesterol:g}, HDL {record.hdl_cholesterol:g} mg/dL "
                  f"({'on statin' if record.on_statins else 'no statin'})")
    report.append(f"Kidney: eGFR {record.egfr:g} mL/min/1.73m², ACR {record.acr:g} mg/g "
                  f"(KDIGO {stage.label} - {stage.description})")
    report.append(f"Diabetes: {'yes' if record.has_diabetes else 'no'}, "
                  f"Smoker: {'yes' if record.is_smoker else 'no'}")

    report.append("\n" + "-" * 40)
    report.append("RISK ASSESSMENT")
    report.append("-" * 40)

    level = result.combined_level
    report.append(f"\n{RISK_INDICATORS[level]} Combined Risk Level: {level.display_name}")

    cv = result.cv_timeline
    report.append("\nCardiovascular (Pooled Cohort Equations):")
    report.append(f"   5 years:  {cv.five_year:.1f}%")
    report.append(f"   10 years: {cv.ten_year:.1f}%")
    report.append(f"   15 years: {cv.fifteen_year:.1f}%")
    report.append(f"   Long-horizon projection (10y x 2.5): {result.cv_long_horizon:.1f}%")

    renal = result.renal_timeline
    report.append("\nKidney Failure (KFRE, 4 variables):")
    report.append(f"   2 years:  {renal.two_year:.1f}%")
    report.append(f"   5 years:  {renal.five_year:.1f}%")
    report.append(f"   10 years: {renal.ten_year:.1f}%")

    report.append("\n" + "-" * 40)
    report.append("TREATMENT HEADROOM")
    report.append("-" * 40)
    report.append(f"Current 10-year CV risk: {comparison['bars'][0]['risk']:.1f}%")
    report.append(f"Target 10-year CV risk:  {comparison['bars'][1]['risk']:.1f}%")
    report.append(f"Achievable reduction:    {comparison['headroom']:.1f} percentage points")

    report.append("\n" + "-" * 40)
    report.append("CLINICAL RECOMMENDATIONS")
    report.append("-" * 40)
    for i, rec in enumerate(generate_recommendations(record, result), 1):
        report.append(f"{i}. {rec}")

    report.append("\n" + "=" * 60)
    report.append("DISCLAIMER")
    report.append("=" * 60)
    report.append("This risk assessment is intended to support clinical")
    report.append("decision-making and should not replace medical judgment.")
    report.append("Time horizons other than 10 years are extrapolations.")

    return "\n".join(report)


def build_narrative_prompt(record: PatientRecord, result: RiskResult) -> Tuple[str, str]:
    """
    Prompt pair (system, user) for the narrative-generation service.

    The request itself is made by the caller.
    """
    stage = kdigo_stage(record.egfr, record.acr)
    sex = 'Male' if record.sex is Sex.MALE else 'Female'
    bp_treatment = 'on treatment' if record.on_hypertension_meds else 'no medication'
    statin = 'on statin' if record.on_statins else 'no statin'

    user_prompt = f"""You are a senior cardiologist and nephrologist. Analyse the following integrated cardiorenal risk profile and provide a detailed technical opinion.

PATIENT DATA:
- Age: {record.age:g} years, Sex: {sex}
- BMI: {record.effective_bmi:.1f} kg/m²
- BP: {record.systolic_bp:g}/{record.diastolic_bp:g} mmHg ({bp_treatment})
- Lipids: Total cholesterol {record.total_cholesterol:g}, HDL {record.hdl_cholesterol:g} ({statin})
- Kidney function: eGFR {record.egfr:g} mL/min, ACR {record.acr:g} mg/g (KDIGO {stage.label})
- Risks: 10-year ASCVD {result.cv_timeline.ten_year:.1f}%, 5-year KFRE {result.renal_timeline.five_year:.1f}%

REQUEST:
Provide an academic report divided into:
1. PATHOPHYSIOLOGICAL INTERACTION (how albuminuria and blood pressure interact in this case).
2. INTEGRATED STRATIFICATION (combine PCE and KFRE).
3. TARGETS AND SUGGESTED MANAGEMENT (based on AHA/ACC and KDIGO 2024).

RULES: Use technical language. Do not use asterisks for bold. Keep a professional tone."""

    return NARRATIVE_SYSTEM_PROMPT, user_prompt


def clean_narrative_text(text: str) -> str:
    """Strip markdown bold markers and turn remaining asterisks into bullets."""
    return text.replace('**', '').replace('*', '•')
