"""Edit tracking and transactional commit of search-result edits."""

from .errors import (
    GrepEditError, TargetNotFound, TargetNotWritable, StaleContent,
    RestoreUnavailable, SessionClosedError, ReadOnlyRegionError, GrammarError,
    ErrorKind, CommitOutcome,
)
from .grammar import ResultGrammar, LineKind, HeaderMatch, parse_results
from .virtual_document import VirtualDocument, ResultLine, DocumentChange, ChangeKind
from .snapshot import ShadowSnapshot
from .tracker import EditTracker, EditRecord, EditStatus, DELETE
from .source_document import (
    SourceDocument, TextSourceDocument, FileSourceDocument, SourceLocator, LineMarker,
)
from .transaction import TransactionBuilder, Transaction, PositionedEdit
from .committer import Committer
from .renumber import renumber_after_delete
from .session import Session, SessionState, CommitSummary, StatusChange
from .history import log_commit, read_commit_stats

__all__ = [
    "GrepEditError", "TargetNotFound", "TargetNotWritable", "StaleContent",
    "RestoreUnavailable", "SessionClosedError", "ReadOnlyRegionError", "GrammarError",
    "ErrorKind", "CommitOutcome",
    "ResultGrammar", "LineKind", "HeaderMatch", "parse_results",
    "VirtualDocument", "ResultLine", "DocumentChange", "ChangeKind",
    "ShadowSnapshot",
    "EditTracker", "EditRecord", "EditStatus", "DELETE",
    "SourceDocument", "TextSourceDocument", "FileSourceDocument", "SourceLocator",
    "LineMarker",
    "TransactionBuilder", "Transaction", "PositionedEdit",
    "Committer",
    "renumber_after_delete",
    "Session", "SessionState", "CommitSummary", "StatusChange",
    "log_commit", "read_commit_stats",
]
