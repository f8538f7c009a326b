"""
Tracker server log reader.
"""

import os
from typing import List, Optional

from tracker_backend.app.core.config import settings
from tracker_backend.app.core.exceptions import ResourceUnavailable


def candidate_log_paths(base_dir: Optional[str] = None, filename: Optional[str] = None) -> List[str]:
    """Locations searched for the log, in order of preference."""
    base = os.path.abspath(base_dir or settings.tracker_log_base_dir or os.getcwd())
    filename = filename or settings.tracker_log_filename
    return [
        os.path.join(base, "logs", filename),
        os.path.join(os.path.dirname(base), "logs", filename),
        os.path.join(base, filename),
    ]


def read_log_tail(size_kb: int, base_dir: Optional[str] = None) -> str:
    """
    Return the last `size_kb` kilobytes of the tracker server log.

    Raises:
        ResourceUnavailable: if no candidate log file exists
    """
    paths = candidate_log_paths(base_dir)
    path = next((candidate for candidate in paths if os.path.isfile(candidate)), None)
    if path is None:
        raise ResourceUnavailable(
            "Tracker server log is not available. Looked at " + ", ".join(paths),
            details={"paths": paths}
        )

    size = max(0, size_kb) * 1024
    with open(path, "rb") as log_file:
        log_file.seek(0, os.SEEK_END)
        length = log_file.tell()
        log_file.seek(max(0, length - size))
        data = log_file.read(min(length, size))
    return data.decode("utf-8", errors="replace")
