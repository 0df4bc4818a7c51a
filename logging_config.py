"""
Global OSINT Dashboard — Console logging setup.
"""

import logging
import os
import sys
from datetime import datetime


class PrettyFormatter(logging.Formatter):
    """Coloured one-line console format."""
    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.now().strftime("%H:%M:%S")
        line = f"{color}{timestamp} {record.levelname:7}{self.RESET} {record.name}: {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once. Level from argument, then LOG_LEVEL, then INFO."""
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))

    # Streamlit reruns the script; don't stack handlers
    for handler in root.handlers[:]:
        if isinstance(handler.formatter, PrettyFormatter):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(PrettyFormatter())
    root.addHandler(handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
