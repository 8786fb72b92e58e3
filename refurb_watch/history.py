"""
Run history — optional best-effort JSON-lines log.

One line per run, appended. Never read back by the checker; a failed write
is logged and ignored so it can't change the outcome of the run.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .main import RunResult

log = logging.getLogger("refurb-watch")


def append_history(path: Path, result: RunResult) -> bool:
    """Append ``result`` to the history file. Returns True if written."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(result.to_dict(), ensure_ascii=False) + "\n")
        log.debug("History line appended to %s", path)
        return True
    except OSError as e:
        log.warning("Failed to write history to %s: %s", path, e)
        return False
