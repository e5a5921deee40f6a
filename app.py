"""
Streamlit Web Application for the Cardiorenal Risk Calculator

Interactive dashboard over the risk engine: cardiovascular and kidney failure
timelines, combined risk level and the optimal-risk comparison.
"""

import streamlit as st
import pandas as pd
import numpy as np
import plotly.express as px
import plotly.graph_objects as go
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from cardiorenal_risk.config import load_config, setup_logging
from cardiorenal_risk.patient import PatientRecord, PatientValidationError, Sex
from cardiorenal_risk.report import (
    build_narrative_prompt,
    generate_recommendations,
    generate_report,
    optimal_comparison,
)
from cardiorenal_risk.risk_engine import (
    RiskLevel,
    cardiovascular_risk_curve,
    compute_optimal_risk,
    compute_risk,
    optimal_record,
)
from cardiorenal_risk.staging import bmi_category, calculate_bmi, kdigo_stage

# Page configuration
st.set_page_config(
    page_title="Cardiorenal Risk Calculator",
    page_icon="🫀",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Custom CSS for better styling
st.markdown("""
<style>
    .main-header {
        font-size: 2.5rem;
        font-weight: 700;
        background: linear-gradient(90deg, #667eea 0%, #764ba2 100%);
        -webkit-background-clip: text;
        -webkit-text-fill-color: transparent;
        text-align: center;
        margin-bottom: 1rem;
    }
    .risk-card {
        padding: 1.5rem;
        border-radius: 15px;
        text-align: center;
        box-shadow: 0 4px 15px rgba(0,0,0,0.1);
    }
    .risk-low { background: linear-gradient(135deg, #11998e 0%, #38ef7d 100%); color: white; }
    .risk-moderate { background: linear-gradient(135deg, #f7971e 0%, #ffd200 100%); color: white; }
    .risk-high { background: linear-gradient(135deg, #f85032 0%, #e73827 100%); color: white; }
    .risk-very-high { background: linear-gradient(135deg, #8e2de2 0%, #4a00e0 100%); color: white; }
    .metric-card {
        background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
        padding: 1rem;
        border-radius: 10px;
        text-align: center;
        color: white;
    }
</style>
""", unsafe_allow_html=True)

LEVEL_STYLES = {
    RiskLevel.LOW: ("🟢", "risk-low"),
    RiskLevel.MODERATE: ("🟡", "risk-moderate"),
    RiskLevel.HIGH: ("🟠", "risk-high"),
    RiskLevel.VERY_HIGH: ("🔴", "risk-very-high"),
}


@st.cache_resource
def get_config():
    config = load_config()
    setup_logging(config)
    return config


@st.cache_data
def assess_patient(patient: dict):
    """Run the engine for the current form snapshot (cached per snapshot)."""
    record = PatientRecord.from_dict(patient)
    result = compute_risk(record)
    optimal = compute_optimal_risk(record)
    years = np.arange(0, 16)
    curve = pd.DataFrame({
        'Year': years,
        'Current': cardiovascular_risk_curve(record, years),
        'Target': cardiovascular_risk_curve(optimal_record(record), years),
    })
    return record, result, optimal, curve


def create_timeline_chart(curve: pd.DataFrame):
    """Area chart of cardiovascular risk over time, current vs target."""
    df = curve.melt(id_vars='Year', var_name='Profile', value_name='Risk (%)')
    fig = px.area(
        df,
        x='Year',
        y='Risk (%)',
        color='Profile',
        color_discrete_map={'Current': '#6366f1', 'Target': '#10b981'},
        title='Cardiovascular Risk Projection'
    )
    fig.update_traces(stackgroup=None, fill='tozeroy')
    fig.update_layout(
        height=380,
        paper_bgcolor='rgba(0,0,0,0)',
        plot_bgcolor='rgba(0,0,0,0)'
    )
    return fig


def create_renal_chart(result):
    """Bar chart of the kidney failure timeline."""
    renal = result.renal_timeline
    fig = go.Figure(go.Bar(
        x=['2 years', '5 years', '10 years'],
        y=[renal.two_year, renal.five_year, renal.ten_year],
        marker_color=['#f59e0b', '#f97316', '#ef4444'],
        text=[f"{v:.1f}%" for v in (renal.two_year, renal.five_year, renal.ten_year)],
        textposition='outside'
    ))
    fig.update_layout(
        title='Kidney Failure Risk (KFRE)',
        height=380,
        yaxis_title='Risk (%)',
        paper_bgcolor='rgba(0,0,0,0)',
        plot_bgcolor='rgba(0,0,0,0)'
    )
    return fig


def create_comparison_chart(comparison):
    """Current vs target 10-year cardiovascular risk."""
    df = pd.DataFrame(comparison['bars'])
    fig = px.bar(
        df,
        x='name',
        y='risk',
        color='name',
        color_discrete_map={'Current': '#6366f1', 'Target': '#10b981'},
        text='risk',
        title='10-Year Risk: Current vs Target'
    )
    fig.update_layout(
        height=350,
        showlegend=False,
        xaxis_title='',
        yaxis_title='Risk (%)',
        paper_bgcolor='rgba(0,0,0,0)',
        plot_bgcolor='rgba(0,0,0,0)'
    )
    return fig


def patient_form(defaults: dict) -> dict:
    """Sidebar form; returns a plain dict snapshot of the inputs."""
    with st.sidebar:
        st.markdown("## 📋 Patient Information")
        st.markdown("---")

        st.markdown("### Demographics")
        age = st.slider("Age", 20, 90, int(defaults['age']))
        sex = st.selectbox(
            "Sex", [Sex.MALE.value, Sex.FEMALE.value],
            index=0 if Sex.parse(defaults['sex']) is Sex.MALE else 1,
            format_func=str.title
        )
        col1, col2 = st.columns(2)
        with col1:
            height_cm = st.number_input("Height (cm)", 120, 230, int(defaults['height_cm']))
        with col2:
            weight_kg = st.number_input("Weight (kg)", 30, 250, int(defaults['weight_kg']))

        st.markdown("### Blood Pressure")
        col1, col2 = st.columns(2)
        with col1:
            systolic_bp = st.number_input("Systolic (mmHg)", 80, 220, int(defaults['systolic_bp']))
        with col2:
            diastolic_bp = st.number_input("Diastolic (mmHg)", 40, 140, int(defaults['diastolic_bp']))
        on_hypertension_meds = st.checkbox("On antihypertensive medication", bool(defaults['on_hypertension_meds']))

        st.markdown("### Lipids")
        col1, col2 = st.columns(2)
        with col1:
            total_cholesterol = st.number_input("Total Cholesterol (mg/dL)", 100, 400,
                                                int(defaults['total_cholesterol']))
        with col2:
            hdl_cholesterol = st.number_input("HDL (mg/dL)", 15, 120, int(defaults['hdl_cholesterol']))
        on_statins = st.checkbox("On statin therapy", bool(defaults['on_statins']))

        st.markdown("### Kidney Function")
        col1, col2 = st.columns(2)
        with col1:
            egfr = st.number_input("eGFR (mL/min/1.73m²)", 5.0, 150.0, float(defaults['egfr']), step=0.1)
        with col2:
            acr = st.number_input("ACR (mg/g)", 1.0, 5000.0, float(defaults['acr']), step=1.0)

        st.markdown("### Medical History")
        has_diabetes = st.checkbox("Diabetes", bool(defaults['has_diabetes']))
        is_smoker = st.checkbox("Current smoker", bool(defaults['is_smoker']))

    return {
        'age': age,
        'sex': sex,
        'height_cm': height_cm,
        'weight_kg': weight_kg,
        'systolic_bp': systolic_bp,
        'diastolic_bp': diastolic_bp,
        'total_cholesterol': total_cholesterol,
        'hdl_cholesterol': hdl_cholesterol,
        'egfr': egfr,
        'acr': acr,
        'has_diabetes': has_diabetes,
        'is_smoker': is_smoker,
        'on_hypertension_meds': on_hypertension_meds,
        'on_statins': on_statins,
    }


def main():
    config = get_config()

    st.markdown('<h1 class="main-header">🫀 Cardiorenal Risk Calculator</h1>', unsafe_allow_html=True)
    st.markdown('<p style="text-align: center; color: #888; margin-bottom: 2rem;">'
                'Pooled Cohort Equations and Kidney Failure Risk Equation</p>', unsafe_allow_html=True)

    patient = patient_form(config['dashboard']['default_patient'])

    try:
        record, result, optimal, curve = assess_patient(patient)
    except PatientValidationError as e:
        st.error(str(e))
        return

    comparison = optimal_comparison(result, optimal)
    stage = kdigo_stage(record.egfr, record.acr)
    bmi = calculate_bmi(record.height_cm, record.weight_kg)
    emoji, css_class = LEVEL_STYLES[result.combined_level]

    # Top row - combined level and headline figures
    st.markdown("## 📊 Risk Assessment Results")
    col1, col2, col3, col4 = st.columns(4)

    with col1:
        st.markdown(f"""
        <div class="risk-card {css_class}">
            <h1 style="font-size: 3rem; margin: 0;">{emoji}</h1>
            <h2 style="margin: 0.5rem 0;">{result.combined_level.display_name} Risk</h2>
        </div>
        """, unsafe_allow_html=True)

    with col2:
        st.metric("10-year ASCVD (PCE)", f"{result.cv_timeline.ten_year:.1f}%")
        st.metric("Long-horizon projection", f"{result.cv_long_horizon:.1f}%")

    with col3:
        st.metric("5-year Kidney Failure (KFRE)", f"{result.renal_timeline.five_year:.1f}%")
        st.metric("KDIGO", stage.label, help=stage.description)

    with col4:
        st.markdown(f"""
        <div class="metric-card">
            <h4 style="margin: 0; opacity: 0.8;">BMI</h4>
            <p style="font-size: 1.5rem; font-weight: 700; margin: 0.5rem 0;">{bmi:.1f} kg/m²</p>
            <p style="margin: 0; font-size: 0.9rem; opacity: 0.8;">{bmi_category(bmi)}</p>
        </div>
        """, unsafe_allow_html=True)

    st.markdown("---")

    col1, col2 = st.columns(2)
    with col1:
        st.plotly_chart(create_timeline_chart(curve), use_container_width=True)
    with col2:
        st.plotly_chart(create_renal_chart(result), use_container_width=True)

    col1, col2 = st.columns([2, 3])
    with col1:
        st.plotly_chart(create_comparison_chart(comparison), use_container_width=True)
    with col2:
        st.markdown("### 🎯 Treatment Headroom")
        st.markdown(
            f"With BP 115/75 mmHg, total cholesterol 160 mg/dL, HDL 55 mg/dL and no smoking, "
            f"the 10-year risk would be **{optimal.ten_year:.1f}%**, "
            f"a reduction of **{comparison['headroom']:.1f}** percentage points."
        )
        st.caption("Diabetes status is held fixed in the target profile.")

    st.markdown("---")

    # Recommendations
    st.markdown("### 💡 Recommendations")
    recommendations = generate_recommendations(record, result)
    rec_cols = st.columns(3)
    for i, rec in enumerate(recommendations[:9]):
        with rec_cols[i % 3]:
            st.info(f"📌 {rec}")

    st.markdown("---")

    col1, col2 = st.columns(2)
    with col1:
        patient_id = st.text_input("Patient ID (optional)")
        st.download_button(
            "📄 Download Report",
            data=generate_report(record, result, optimal, patient_id=patient_id or None),
            file_name=f"cardiorenal_report_{patient_id or 'patient'}.txt",
            mime="text/plain",
            use_container_width=True
        )
    with col2:
        with st.expander("🧠 Narrative prompt"):
            system_prompt, user_prompt = build_narrative_prompt(record, result)
            st.caption(system_prompt)
            st.code(user_prompt, language=None)

    # Disclaimer
    st.markdown("---")
    st.warning("""
    ⚠️ **Disclaimer**: This risk assessment is intended to support clinical decision-making
    and should not replace medical judgment. Horizons other than 10 years and the
    long-horizon projection are extrapolations, not validated estimates.
    """)


if __name__ == "__main__":
    main()
