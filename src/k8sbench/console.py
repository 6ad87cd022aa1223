"""
Console output for the orchestration stages.

Messages are printed to the terminal and mirrored, with a timestamp, into a
session log file so a run can be reviewed after the terminal is gone.
"""

import datetime
import sys
from pathlib import Path
from typing import Optional, TextIO

SESSION_LOG_NAME = "k8sbench-session.log"


class Console:
    """Prints stage messages and appends them to the session log."""

    def __init__(self, session_file: Optional[Path] = None, stream: Optional[TextIO] = None):
        self.session_file = Path(session_file) if session_file else None
        self.stream = stream

    def _write_session(self, entry: str) -> None:
        if not self.session_file:
            return
        self.session_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.session_file, "a") as f:
            f.write(f"{datetime.datetime.now()}: {entry}\n")

    def log(self, message: str, step_name: str = "") -> None:
        """
        Print a message and log it to the session file.

        Args:
            message: Text to show
            step_name: Optional tag ("ERROR", "WARNING", a stage name)
        """
        if step_name == "ERROR":
            formatted_msg = f"ERROR: {message}"
        elif step_name == "WARNING":
            formatted_msg = f"WARNING: {message}"
        elif step_name:
            formatted_msg = f"[{step_name}] {message}"
        else:
            formatted_msg = message

        # Resolved per call so a redirected sys.stdout is honoured
        stream = self.stream or sys.stdout
        print(formatted_msg, file=stream, flush=True)

        log_entry = f"{step_name}: {message}" if step_name else message
        self._write_session(log_entry)

    def error(self, message: str) -> None:
        self.log(message, "ERROR")

    def warning(self, message: str) -> None:
        self.log(message, "WARNING")


def get_console(results_dir: Optional[Path] = None) -> Console:
    """Create a console whose session log lives in the results directory."""
    if results_dir is None:
        return Console()
    return Console(session_file=Path(results_dir) / SESSION_LOG_NAME)
