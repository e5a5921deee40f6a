"""
Tests for cohort evaluation and the command-line interface
"""

import json

import pytest
import pandas as pd
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from cardiorenal_risk.cli import main
from cardiorenal_risk.cohort import evaluate_cohort, load_patients, records_from_frame
from cardiorenal_risk.patient import PatientValidationError
from cardiorenal_risk.risk_engine import compute_risk


@pytest.fixture
def cohort_df():
    return pd.DataFrame({
        'patient_id': ['P000001', 'P000002', 'P000003'],
        'age': [50, 60, 55],
        'sex': ['Male', 'Female', 'Male'],
        'height_cm': [180, 165, 175],
        'weight_kg': [103, 70, 80],
        'systolic_bp': [145, 130, 135],
        'diastolic_bp': [92, 82, 85],
        'total_cholesterol': [250, 200, 220],
        'hdl_cholesterol': [38, 50, 45],
        'egfr': [56.4, 80, 90],
        'acr': [175, 20, 10],
        'has_diabetes': [0, 0, 0],
        'is_smoker': [0, 1, 1],
        'on_hypertension_meds': [1, 0, 0],
        'on_statins': [0, 0, 0],
    })


class TestCohort:
    """Tests for batch evaluation."""

    def test_records_from_frame(self, cohort_df):
        records = records_from_frame(cohort_df)

        assert len(records) == 3
        assert records[1].is_smoker
        assert records[0].on_hypertension_meds

    def test_evaluate_cohort(self, cohort_df):
        """Each row matches the single-record engine."""
        results = evaluate_cohort(cohort_df)

        assert len(results) == 3
        assert list(results['patient_id']) == ['P000001', 'P000002', 'P000003']
        assert list(results['combined_level']) == ['moderate', 'moderate', 'high']

        expected = compute_risk(records_from_frame(cohort_df)[0])
        assert results.loc[0, 'cv_10y'] == expected.cv_timeline.ten_year
        assert results.loc[0, 'renal_5y'] == expected.renal_timeline.five_year
        assert results.loc[0, 'optimal_cv_10y'] < results.loc[0, 'cv_10y']
        assert results.loc[0, 'gfr_stage'] == 'G3a'
        assert results.loc[0, 'bmi_category'] == 'Obese'

    def test_invalid_row_named(self, cohort_df):
        cohort_df.loc[2, 'hdl_cholesterol'] = 0

        with pytest.raises(PatientValidationError) as excinfo:
            evaluate_cohort(cohort_df)

        assert excinfo.value.errors[0].startswith('Row 2:')

    def test_load_csv_and_json(self, cohort_df, tmp_path):
        csv_path = tmp_path / 'patients.csv'
        cohort_df.to_csv(csv_path, index=False)
        json_path = tmp_path / 'patients.json'
        json_path.write_text(cohort_df.to_json(orient='records'))

        from_csv = load_patients(csv_path)
        from_json = load_patients(json_path)

        assert len(from_csv) == 3
        assert len(from_json) == 3
        assert list(evaluate_cohort(from_csv)['combined_level']) == \
            list(evaluate_cohort(from_json)['combined_level'])


class TestCli:
    """Tests for the command-line interface."""

    def test_demo_report(self, capsys):
        assert main(['--demo']) == 0

        out = capsys.readouterr().out
        assert 'CARDIORENAL RISK ASSESSMENT REPORT' in out

    def test_patient_json_output(self, tmp_path, capsys):
        path = tmp_path / 'patient.json'
        path.write_text(json.dumps({
            'age': 50, 'sex': 'MALE', 'height_cm': 180, 'weight_kg': 103,
            'systolic_bp': 145, 'diastolic_bp': 92, 'total_cholesterol': 250,
            'hdl_cholesterol': 38, 'egfr': 56.4, 'acr': 175,
            'on_hypertension_meds': True,
        }))

        assert main(['--patient', str(path), '--json']) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload['combined_level'] == 'moderate'
        assert payload['cv_timeline']['ten_year'] == pytest.approx(9.099079297096, rel=1e-6)
        assert payload['optimal_cv_timeline']['ten_year'] < payload['cv_timeline']['ten_year']

    def test_invalid_patient(self, tmp_path):
        path = tmp_path / 'patient.yaml'
        path.write_text("age: 50\nsex: MALE\n")

        assert main(['--patient', str(path)]) == 2

    def test_cohort_output(self, cohort_df, tmp_path):
        source = tmp_path / 'patients.csv'
        output = tmp_path / 'results.csv'
        cohort_df.to_csv(source, index=False)

        assert main(['--cohort', str(source), '--output', str(output)]) == 0

        results = pd.read_csv(output)
        assert len(results) == 3
        assert 'cv_long_horizon' in results.columns


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
