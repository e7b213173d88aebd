"""
Process-wide logging setup.

Modules log through logging.getLogger(__name__) and never configure handlers
themselves; entry points call configure_logging() once at startup.

The web server logs to the console and a rotating file. The terminal client
passes console=False so log lines don't interleave with Rich output.
"""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"


def configure_logging(log_dir: Path, *, console: bool = True, level: int = logging.DEBUG) -> Path:
    """Install the handlers and return the path of the rotating log file."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "chesspartner.log"

    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_file, maxBytes=2 * 1024 * 1024, backupCount=3,  # 2 MB × 3 files
            encoding="utf-8",
        ),
    ]
    if console:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    # SDK transport chatter drowns out the game log at DEBUG
    for noisy in ("httpx", "httpcore", "openai", "anthropic", "google_genai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return log_file
