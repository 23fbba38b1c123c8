"""
Header renumbering for result lines after an immediate
single-line deletion in a source document.
"""

from __future__ import annotations

import logging
import re

from .tracker import EditTracker
from .virtual_document import ResultLine, VirtualDocument

logger = logging.getLogger(__name__)


def renumber_header(line: ResultLine, number: int) -> str:
    """Return *line*'s header with its line number replaced by *number*."""
    header = line.header
    path = line.path or ""
    if not header.startswith(path):
        return header
    rest = re.sub(
        rf"^(\D*){line.line_number}(?!\d)",
        lambda m: f"{m.group(1)}{number}",
        header[len(path):],
        count=1,
    )
    return path + rest


def renumber_after_delete(
    document: VirtualDocument,
    tracker: EditTracker,
    target_file: str,
    line_number: int,
) -> list[ResultLine]:
    """Shift result lines of *target_file* after *line_number* was deleted.

    Lines that pointed at the deleted line are removed from the document
    (and their records dropped); lines below it move up by one. Records
    of lines removed from the document earlier are retargeted the same
    way. Returns the removed lines.
    """
    removed: list[ResultLine] = []
    shifted = 0
    for line in document.lines:
        if not line.trackable or line.deleted or line.target_file != target_file:
            continue
        if line.line_number == line_number:
            tracker.forget(line)
            document.drop_line(line)
            removed.append(line)
        elif line.line_number > line_number:
            new_number = line.line_number - 1
            document.rewrite_header(line, renumber_header(line, new_number), new_number)
            tracker.retarget(line)
            shifted += 1

    # Records of lines already removed from the document (pending deletions)
    for record in tracker.detached_records():
        if record.target_file != target_file:
            continue
        if record.target_line == line_number:
            tracker.forget(record.line)
        elif record.target_line > line_number:
            record.target_line -= 1
            shifted += 1

    logger.debug(
        "[GrepEdit] Renumbered %s after deleting line %d: %d removed, %d shifted",
        target_file, line_number, len(removed), shifted,
    )
    return removed
