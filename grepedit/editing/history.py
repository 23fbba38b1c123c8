"""
Append-only JSONL log of batch commits, with rolling statistics.
"""

from __future__ import annotations

import json
import logging
import os
from collections import Counter
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

_HISTORY_DIR = ".grepedit"
_HISTORY_FILE = "commit_history.jsonl"


def _history_path(project_root: str | None = None) -> str:
    """Return the absolute path to the history file."""
    base = project_root or os.getcwd()
    return os.path.join(base, _HISTORY_DIR, _HISTORY_FILE)


def log_commit(data: dict, project_root: str | None = None) -> None:
    """Append a single commit entry to the JSONL log.

    Parameters
    ----------
    data:
        Entry fields (applied, unapplied, files, rejection reasons, ...).
    project_root:
        Optional project root directory. Defaults to CWD.
    """
    path = _history_path(project_root)
    os.makedirs(os.path.dirname(path), exist_ok=True)

    entry = {"timestamp": datetime.now(timezone.utc).isoformat()}
    entry.update(data)

    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry) + "\n")
    except OSError as exc:
        logger.warning("[GrepEdit] Failed to write commit history: %s", exc)


def read_commit_stats(
    last_n: int = 50,
    project_root: str | None = None,
) -> dict:
    """Compute rolling statistics from the history log.

    Parameters
    ----------
    last_n:
        Number of most-recent commits to include.
    project_root:
        Optional project root directory.

    Returns
    -------
    dict
        total_commits, total_applied, total_unapplied, success_rate,
        avg_files_touched and rejection_reasons (percent of rejections).
    """
    path = _history_path(project_root)

    entries: list[dict] = []
    if os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if line:
                        try:
                            entries.append(json.loads(line))
                        except json.JSONDecodeError:
                            continue
        except OSError:
            pass

    entries = entries[-last_n:]

    if not entries:
        return {
            "total_commits": 0,
            "total_applied": 0,
            "total_unapplied": 0,
            "success_rate": 0.0,
            "avg_files_touched": 0.0,
            "rejection_reasons": {},
        }

    applied = sum(e.get("applied", 0) for e in entries)
    unapplied = sum(e.get("unapplied", 0) for e in entries)
    files = [len(e.get("files", [])) for e in entries]

    reasons: Counter = Counter()
    for e in entries:
        reasons.update(e.get("rejections", {}))
    total_rejections = sum(reasons.values())

    attempted = applied + unapplied
    return {
        "total_commits": len(entries),
        "total_applied": applied,
        "total_unapplied": unapplied,
        "success_rate": applied / attempted * 100 if attempted else 0.0,
        "avg_files_touched": sum(files) / len(files),
        "rejection_reasons": {
            reason: count / total_rejections * 100
            for reason, count in reasons.most_common()
        },
    }
