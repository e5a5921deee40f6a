"""
Command-line interface for the Cardiorenal Risk Calculator.

Examples:
    cardiorenal-risk --demo
    cardiorenal-risk --patient patient.yaml --json
    cardiorenal-risk --cohort patients.csv --output results.csv
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from .cohort import evaluate_cohort, load_patients
from .config import load_config, setup_logging
from .patient import PatientRecord, PatientValidationError
from .report import generate_report, optimal_comparison
from .risk_engine import compute_optimal_risk, compute_risk

logger = logging.getLogger(__name__)


def _load_patient_file(path: str) -> Dict:
    with open(path, 'r') as f:
        if Path(path).suffix.lower() in ('.yaml', '.yml'):
            return yaml.safe_load(f)
        return json.load(f)


def assess(record: PatientRecord, patient_id: Optional[str] = None, as_json: bool = False) -> str:
    """Run the engine for one patient and render the output."""
    result = compute_risk(record)
    optimal = compute_optimal_risk(record)

    if as_json:
        payload = {
            'patient_id': patient_id,
            'patient': record.to_dict(),
            **result.to_dict(),
            'optimal_cv_timeline': {
                'five_year': optimal.five_year,
                'ten_year': optimal.ten_year,
                'fifteen_year': optimal.fifteen_year,
            },
            'comparison': optimal_comparison(result, optimal),
        }
        return json.dumps(payload, indent=2)

    return generate_report(record, result, optimal, patient_id=patient_id)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Cardiorenal Risk Calculator (PCE + KFRE)')
    source = parser.add_mutually_exclusive_group()
    source.add_argument('--demo', action='store_true', help='Assess the default patient from the config')
    source.add_argument('--patient', type=str, help='JSON or YAML file with one patient record')
    source.add_argument('--cohort', type=str, help='CSV or JSON file with many patient records')
    parser.add_argument('--patient-id', type=str, default=None, help='Identifier printed in the report')
    parser.add_argument('--json', action='store_true', help='Print JSON instead of the text report')
    parser.add_argument('--output', type=str, default=None, help='CSV output path for --cohort')
    parser.add_argument('--config', type=str, default=None, help='Path to configuration YAML')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config)

    try:
        if args.cohort:
            results = evaluate_cohort(load_patients(args.cohort))
            if args.output:
                results.to_csv(args.output, index=False)
                logger.info("Wrote %d results to %s", len(results), args.output)
            else:
                print(results.to_csv(index=False), end='')
            return 0

        if args.patient:
            record = PatientRecord.from_dict(_load_patient_file(args.patient))
        elif args.demo:
            record = PatientRecord.from_dict(config['dashboard']['default_patient'])
        else:
            parser.print_help()
            return 1

        print(assess(record, patient_id=args.patient_id, as_json=args.json))
        return 0

    except PatientValidationError as e:
        logger.error("%s", e)
        for error in e.errors:
            print(f"  - {error}", file=sys.stderr)
        return 2


if __name__ == '__main__':
    sys.exit(main())
