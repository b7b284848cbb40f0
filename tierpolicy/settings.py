"""
Process settings read from environment variables.

Settings:
    TIERPOLICY_LOG_LEVEL     - Log level name (default INFO)
    TIERPOLICY_LOG_FILE      - Optional log file path (rotating)
    TIERPOLICY_TEMPLATES_DIR - Directory overriding the bundled templates
    TIERPOLICY_OUTPUT_DIR    - Default directory for rendered files
"""

import os
from pathlib import Path
from typing import Optional


BUNDLED_TEMPLATES_DIR = Path(__file__).parent / 'render' / 'templates'


def get_log_level() -> str:
    return os.environ.get('TIERPOLICY_LOG_LEVEL', 'INFO').upper()


def get_log_file() -> Optional[Path]:
    log_file = os.environ.get('TIERPOLICY_LOG_FILE')
    return Path(log_file) if log_file else None


def get_templates_dir() -> Path:
    templates_dir = os.environ.get('TIERPOLICY_TEMPLATES_DIR')
    return Path(templates_dir) if templates_dir else BUNDLED_TEMPLATES_DIR


def get_output_dir() -> Path:
    return Path(os.environ.get('TIERPOLICY_OUTPUT_DIR', 'output'))
