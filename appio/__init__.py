# ================================
# file: appio/__init__.py
# ================================
from appio.logger import log_to_file, open_log_file
from appio.scan_log import ScanLogReader, ScanLogWriter, parse_observation_line

__all__ = ["log_to_file", "open_log_file", "ScanLogReader", "ScanLogWriter",
           "parse_observation_line"]
