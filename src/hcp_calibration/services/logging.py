"""JSONL event logging for calibration sessions."""

import json
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Optional, Union

from .. import __version__

_log_file = None
_log_lock = Lock()


def init_logging(log_dir: Union[str, Path]) -> Path:
    """Start a new log file in ``log_dir`` and return its path."""
    global _log_file
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime('%Y-%m-%d_%H%M%S')
    _log_file = log_dir / f'{timestamp}.jsonl'

    log_event('application_start', {'version': __version__})
    return _log_file


def close_logging():
    """Stop logging; later events are dropped."""
    global _log_file
    _log_file = None


def log_event(event_type: str, details: dict = None):
    """Log an event to the JSONL file."""
    global _log_file, _log_lock

    if _log_file is None:
        return

    entry = {
        'timestamp': datetime.now().isoformat(),
        'event_type': event_type,
        'details': details or {}
    }

    with _log_lock:
        with open(_log_file, 'a', encoding='utf-8') as f:
            f.write(json.dumps(entry) + '\n')


def get_log_entries() -> list:
    """Get all log entries for the current session."""
    global _log_file

    if _log_file is None or not _log_file.exists():
        return []

    entries = []
    with open(_log_file, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line:
                entries.append(json.loads(line))

    return entries


def get_log_file_path() -> Optional[Path]:
    """Get the current log file path."""
    return _log_file
