"""Group pending edit records per source document and pin their targets."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .errors import GrepEditError
from .source_document import LineMarker, SourceDocument, SourceLocator
from .tracker import EditRecord, EditStatus

logger = logging.getLogger(__name__)


@dataclass
class PositionedEdit:
    """An edit record bound to a stable position in its document."""
    record: EditRecord
    marker: LineMarker


@dataclass
class Transaction:
    """All edits of one commit that target the same document, in order."""
    document: SourceDocument
    edits: list[PositionedEdit] = field(default_factory=list)


@dataclass
class BuildResult:
    transactions: dict[SourceDocument, Transaction] = field(default_factory=dict)
    failures: list[tuple[EditRecord, GrepEditError]] = field(default_factory=list)


class TransactionBuilder:
    """Build one transaction per distinct target document."""

    def __init__(self, locator: SourceLocator) -> None:
        self._locator = locator

    def build(self, records: list[EditRecord]) -> BuildResult:
        """Resolve documents and positions for *records*.

        Records must be given in virtual-document order; that order is kept
        inside each transaction. Every marker is created before any edit is
        applied, so earlier deletions cannot shift later targets.
        Records whose document cannot be resolved are rejected and reported
        in ``failures``; no transaction is built for them.
        """
        result = BuildResult()

        by_file: dict[str, list[EditRecord]] = {}
        for record in records:
            if record.status is EditStatus.DONE:
                continue
            by_file.setdefault(record.target_file, []).append(record)

        for target_file, file_records in by_file.items():
            try:
                document = self._locator.resolve(target_file)
            except GrepEditError as exc:
                logger.warning(
                    "[GrepEdit] Cannot commit %d change(s) to %s: %s",
                    len(file_records), target_file, exc.message,
                )
                for record in file_records:
                    record.reject(exc.message, exc.kind)
                    result.failures.append((record, exc))
                continue

            transaction = result.transactions.get(document)
            if transaction is None:
                transaction = Transaction(document)
                result.transactions[document] = transaction
            for record in file_records:
                marker = document.create_marker(record.target_line)
                transaction.edits.append(PositionedEdit(record, marker))

        return result
