"""
grepedit — edit search results in place and commit the changes back.

Public API for library usage::

    from grepedit import open_session

    session = open_session(open("results.grep").read(), base_dir="src")
    session.document.set_body(0, "new text")
    summary = session.commit_all()
"""

from .api import open_session
from .editing.session import CommitSummary, Session

__all__ = ["open_session", "Session", "CommitSummary"]
