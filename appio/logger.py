# ================================
# file: appio/logger.py
# ================================
from __future__ import annotations
from datetime import datetime
from typing import Optional
import os


def log_to_file(log_file, message, module="MAIN"):
    """Write message to log file with timestamp and module"""
    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    log_entry = f"[{timestamp}] [{module}] {message}\n"
    log_file.write(log_entry)
    log_file.flush()  # Ensure immediate write
    print(log_entry.strip())  # Also print to console


def open_log_file(log_dir: Optional[str] = None, prefix: str = "mapping_log"):
    """Open a timestamped UTF-8 log file; caller closes it."""
    log_dir = log_dir or os.getcwd()
    os.makedirs(log_dir, exist_ok=True)
    log_filename = f"{prefix}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.txt"
    return open(os.path.join(log_dir, log_filename), 'w', encoding='utf-8')
