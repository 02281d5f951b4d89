"""
Configuration
=============

Central place for file paths, environment overrides and logging setup.

Environment variables:
    WMM_COF_PATH      Path to the coefficient file (default: WMM2025COF/WMM2025.COF)
    WMM_COF_URL       If set, coefficients are fetched from this URL instead
    WMM_LOAD_TIMEOUT  Seconds to wait for the coefficient download (default: 10)
    HOST, PORT        HTTP server bind address
    LOG_LEVEL         Logging level name (default: INFO)
    LOG_FILE          Log file written by configure_logging (default: declination_server.log)
"""

import logging
import os
import sys
from pathlib import Path

from model_cache import CoefficientSource, FileCoefficientSource, UrlCoefficientSource

PROJECT_ROOT = Path(__file__).resolve().parent

DEFAULT_COF_PATH = str(PROJECT_ROOT / "WMM2025COF" / "WMM2025.COF")
DEFAULT_TEST_VALUES_PATH = str(PROJECT_ROOT / "WMM2025COF" / "WMM2025_TestValues.txt")

WMM_COF_PATH = os.environ.get('WMM_COF_PATH', DEFAULT_COF_PATH)
WMM_COF_URL = os.environ.get('WMM_COF_URL')
WMM_LOAD_TIMEOUT = float(os.environ.get('WMM_LOAD_TIMEOUT', 10.0))

HOST = os.environ.get('HOST', '0.0.0.0')
PORT = int(os.environ.get('PORT', 5000))

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
LOG_FILE = os.environ.get('LOG_FILE', 'declination_server.log')


def build_coefficient_source() -> CoefficientSource:
    """Coefficient source from the environment; a URL wins over a file path."""
    if WMM_COF_URL:
        return UrlCoefficientSource(WMM_COF_URL, timeout=WMM_LOAD_TIMEOUT)
    return FileCoefficientSource(WMM_COF_PATH)


def configure_logging(log_file: str = LOG_FILE, level: str = LOG_LEVEL):
    """Log to a UTF-8 file and to stdout."""
    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))

    logging.basicConfig(level=getattr(logging, level, logging.INFO),
                        handlers=[file_handler, console_handler])
