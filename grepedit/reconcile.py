"""
Reconcile an edited copy of search output with a session.

The edited text is aligned with the session's virtual document using
``difflib``; every changed result line is replayed as an edit of the
virtual document, so the regular edit tracker records it.
"""

from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass, field

from .editing.grammar import split_lines
from .editing.session import Session

logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    """What the reconciliation did with the edited text."""
    edited: int = 0
    deleted: int = 0
    warnings: list[str] = field(default_factory=list)


def reconcile(session: Session, edited_text: str) -> ReconcileReport:
    """Replay the differences between *edited_text* and the session's text.

    Returns
    -------
    ReconcileReport
        Counts of body edits and deletions, plus warnings for changes that
        cannot be represented (inserted lines, rewritten headers, edits of
        non-result lines).
    """
    report = ReconcileReport()
    document = session.document
    original = [line.text for line in document]
    edited, _ = split_lines(edited_text)

    matcher = difflib.SequenceMatcher(None, original, edited, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        one_to_one = (i2 - i1) == (j2 - j1)
        j = j1
        for i in range(i1, i2):
            k = _find_counterpart(session, i, edited, j, j2)
            if k is None and one_to_one and j < j2 and edited[j].strip():
                # Same slot, different header: a rewritten header, not a deletion
                line = session.document[i]
                if line.trackable:
                    report.warnings.append(
                        f"Header of {line.header} was changed; change ignored"
                    )
                j += 1
                continue
            if k is None:
                if one_to_one and j < j2:
                    j += 1
                _delete(session, i, report)
                continue
            for inserted in edited[j:k]:
                _warn_inserted(inserted, report)
            _apply(session, i, edited[k], report)
            j = k + 1
        for inserted in edited[j:j2]:
            _warn_inserted(inserted, report)

    logger.info(
        "[GrepEdit] Reconciled edited text: %d edit(s), %d deletion(s), %d warning(s)",
        report.edited, report.deleted, len(report.warnings),
    )
    return report


def _find_counterpart(
    session: Session, index: int, edited: list[str], start: int, end: int,
) -> int | None:
    """Index of the edited line that corresponds to document line *index*."""
    line = session.document[index]
    for k in range(start, end):
        if line.trackable:
            if edited[k].startswith(line.header):
                return k
        elif edited[k] == line.text:
            return k
    return None


def _apply(session: Session, index: int, new_text: str, report: ReconcileReport) -> None:
    line = session.document[index]
    if not line.trackable or new_text == line.text:
        return
    if session.document.is_locked(line):
        report.warnings.append(f"{line.header} can no longer be edited; change ignored")
        return
    session.document.set_body(index, new_text[len(line.header):])
    report.edited += 1


def _delete(session: Session, index: int, report: ReconcileReport) -> None:
    line = session.document[index]
    if not line.trackable:
        return
    if line.deleted:
        return
    if session.mark_deleted(index) is not None:
        report.deleted += 1


def _warn_inserted(text: str, report: ReconcileReport) -> None:
    if not text.strip():
        return
    report.warnings.append(f"Inserted line cannot be applied: {text!r}")
