"""Tests for replaying an edited copy of search output onto a session."""

import pytest

from grepedit.api import open_session
from grepedit.config import Config
from grepedit.editing.tracker import DELETE
from grepedit.reconcile import reconcile

RESULTS = "a.txt:1:foo\na.txt-2-ctx\na.txt:3:bar\n--\nb.txt:4:baz\n"


@pytest.fixture
def session(tmp_path):
    return open_session(
        RESULTS, base_dir=str(tmp_path), config=Config({"history": False})
    )


def test_unchanged_text(session):
    report = reconcile(session, RESULTS)
    assert report.edited == 0
    assert report.deleted == 0
    assert report.warnings == []
    assert session.is_clean


def test_body_edit(session):
    edited = RESULTS.replace("a.txt:3:bar", "a.txt:3:BAR")
    report = reconcile(session, edited)

    assert report.edited == 1
    [record] = session.pending()
    assert record.old_text == "bar"
    assert record.new_text == "BAR"
    assert record.target_line == 3


def test_context_line_edit(session):
    report = reconcile(session, RESULTS.replace("a.txt-2-ctx", "a.txt-2-CTX"))
    assert report.edited == 1
    assert session.pending()[0].target_line == 2


def test_removed_line_is_deletion(session):
    report = reconcile(session, RESULTS.replace("a.txt:1:foo\n", ""))
    assert report.deleted == 1
    [record] = session.pending()
    assert record.new_text is DELETE
    assert record.target_line == 1


def test_blanked_line_is_deletion(session):
    report = reconcile(session, RESULTS.replace("b.txt:4:baz", ""))
    assert report.deleted == 1
    assert session.pending()[0].is_delete


def test_rewritten_header_is_ignored(session):
    report = reconcile(session, RESULTS.replace("b.txt:4:baz", "c.txt:4:baz"))
    assert report.edited == 0
    assert report.deleted == 0
    assert report.warnings == ["Header of b.txt:4: was changed; change ignored"]
    assert session.is_clean


def test_inserted_line_warns(session):
    edited = RESULTS.replace("a.txt:3:bar\n", "a.txt:3:bar\nnew stuff\n")
    report = reconcile(session, edited)
    assert len(report.warnings) == 1
    assert "new stuff" in report.warnings[0]
    assert session.is_clean


def test_edit_and_delete_together(session):
    edited = "a.txt:1:FOO\na.txt-2-ctx\n--\nb.txt:4:baz\n"
    report = reconcile(session, edited)
    assert report.edited == 1
    assert report.deleted == 1
    assert [r.target_line for r in session.pending()] == [1, 3]


def test_separator_edits_are_ignored(session):
    report = reconcile(session, RESULTS.replace("--", "=="))
    assert report.edited == 0
    assert session.is_clean


def test_crlf_edited_text(session):
    edited = RESULTS.replace("foo", "FOO").replace("\n", "\r\n")
    report = reconcile(session, edited)
    assert report.edited == 1
