"""
Configuration and logging setup.

Settings live in a YAML file merged over built-in defaults. They cover
presentation concerns only (dashboard defaults, narrative service, logging);
the risk equations are never configurable.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Dict, Optional

import yaml

CONFIG_ENV_VAR = 'CARDIORENAL_CONFIG'
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / 'config' / 'config.yaml'

DEFAULTS = {
    'logging': {
        'level': 'INFO',
        'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
    },
    'dashboard': {
        'default_patient': {
            'age': 50,
            'sex': 'MALE',
            'height_cm': 180,
            'weight_kg': 103,
            'systolic_bp': 145,
            'diastolic_bp': 92,
            'total_cholesterol': 250,
            'hdl_cholesterol': 38,
            'egfr': 56.4,
            'acr': 175,
            'has_diabetes': False,
            'is_smoker': False,
            'on_hypertension_meds': True,
            'on_statins': False,
        },
    },
    'narrative': {
        'provider': 'openai',
        'temperature': 0.7,
        'providers': {
            'openai': {'base_url': 'https://api.openai.com/v1', 'model': 'gpt-4o'},
            'groq': {'base_url': 'https://api.groq.com/openai/v1', 'model': 'llama-3.3-70b-versatile'},
            'gemini': {'base_url': 'https://generativelanguage.googleapis.com/v1beta/openai/',
                       'model': 'gemini-2.0-flash'},
        },
    },
}


def _deep_merge(base: Dict, override: Dict) -> Dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> Dict:
    """
    Load configuration from a YAML file.

    Resolution order: explicit path, the CARDIORENAL_CONFIG environment
    variable, then config/config.yaml. An explicitly requested file must
    exist; a missing default file yields the built-in defaults.
    """
    explicit = config_path or os.environ.get(CONFIG_ENV_VAR)
    path = Path(explicit) if explicit else DEFAULT_CONFIG_PATH

    if not path.exists():
        if explicit:
            raise FileNotFoundError(f"Config file not found: {path}")
        return copy.deepcopy(DEFAULTS)

    with open(path, 'r') as f:
        loaded = yaml.safe_load(f) or {}

    return _deep_merge(DEFAULTS, loaded)


def narrative_settings(config: Dict, provider: Optional[str] = None) -> Dict:
    """Base URL, model and temperature for the narrative provider."""
    narrative = config['narrative']
    provider = provider or narrative['provider']
    if provider not in narrative['providers']:
        raise ValueError(f"Unknown narrative provider: {provider}")
    return {
        'provider': provider,
        'temperature': narrative['temperature'],
        **narrative['providers'][provider],
    }


def setup_logging(config: Dict) -> None:
    settings = config.get('logging', {})
    logging.basicConfig(
        level=getattr(logging, str(settings.get('level', 'INFO')).upper(), logging.INFO),
        format=settings.get('format', DEFAULTS['logging']['format']),
    )
