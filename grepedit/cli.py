"""
`grepedit` command line interface.

Edit saved search output and write the changes back into the files it
came from.

Commands
--------
grepedit edit results.grep                    -- edit in $EDITOR, then commit
grep -rn foo . | grepedit edit -              -- same, reading stdin
grepedit apply results.grep edited.grep       -- commit an edited copy
grepedit apply results.grep edited.grep --dry-run
grepedit stats                                -- commit history statistics
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from tqdm import tqdm

from .api import open_session
from .cli_display import edit_in_editor, format_record, format_summary, setup_logger
from .config import Config
from .editing.errors import GrepEditError
from .editing.history import read_commit_stats
from .editing.session import CommitSummary, Session
from .reconcile import reconcile
from .review import prompt_commit_approval, summarize

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNAPPLIED = 1
EXIT_USAGE = 2

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _read_text(path: str) -> str:
    """Read a results file, or stdin for ``-``."""
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8", errors="surrogateescape", newline="") as f:
        return f.read()


def _save_documents(session: Session, summary: CommitSummary) -> None:
    """Save every file the commit touched."""
    for path in tqdm(summary.files, unit="file", desc="Saving",
                     disable=len(summary.files) < 10 or not sys.stderr.isatty()):
        try:
            session.locator.resolve(path).save()
        except (OSError, GrepEditError) as exc:
            print(f"Could not save {path}: {exc}", file=sys.stderr)


def _commit(args: argparse.Namespace, original: str, edited: str) -> int:
    cfg = Config.load(args.config)
    session = open_session(
        original,
        base_dir=args.base_dir,
        grammar=args.grammar,
        allow_readonly=True if args.allow_readonly else None,
        auto_save=False,
        config=cfg,
        record_history=True,
    )

    report = reconcile(session, edited)
    for warning in report.warnings:
        print(f"warning: {warning}", file=sys.stderr)

    records = session.pending()
    if not records:
        print("No changes.")
        session.close()
        return EXIT_OK

    logger.info("[GrepEdit] %d pending change(s)", len(records))
    color = sys.stdout.isatty()
    if args.dry_run:
        for record in records:
            print(format_record(record, color=color))
        print(f"\n{summarize(records)} (dry run, nothing written)")
        session.close()
        return EXIT_OK

    if not prompt_commit_approval(records, auto=args.yes, use_tui=color):
        print("Cancelled; no files were changed.")
        session.abort()
        return EXIT_UNAPPLIED

    summary = session.exit(save=True)
    if not args.no_save:
        _save_documents(session, summary)
    print(format_summary(summary, color=color))
    return EXIT_OK if summary.clean else EXIT_UNAPPLIED


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def _cmd_apply(args: argparse.Namespace) -> int:
    try:
        original = _read_text(args.results)
        edited = _read_text(args.edited)
    except OSError as exc:
        print(f"Cannot read input: {exc}", file=sys.stderr)
        return EXIT_USAGE
    return _commit(args, original, edited)


def _cmd_edit(args: argparse.Namespace) -> int:
    try:
        original = _read_text(args.results)
    except OSError as exc:
        print(f"Cannot read input: {exc}", file=sys.stderr)
        return EXIT_USAGE
    if not original.strip():
        print("No search results to edit.", file=sys.stderr)
        return EXIT_USAGE
    edited = edit_in_editor(original)
    return _commit(args, original, edited)


def _cmd_stats(args: argparse.Namespace) -> int:
    stats = read_commit_stats(last_n=args.last_n, project_root=args.root)
    if stats["total_commits"] == 0:
        print("No commits recorded yet.")
        return EXIT_OK
    print(
        f"\nCommit history (last {stats['total_commits']} commit(s))\n"
        f"{'-' * 60}\n"
        f"  Changes applied   : {stats['total_applied']}\n"
        f"  Changes unapplied : {stats['total_unapplied']}\n"
        f"  Success rate      : {stats['success_rate']:.1f}%\n"
        f"  Files per commit  : {stats['avg_files_touched']:.1f}"
    )
    if stats["rejection_reasons"]:
        print("  Rejection reasons :")
        for reason, pct in stats["rejection_reasons"].items():
            print(f"    {pct:5.1f}%  {reason}")
    return EXIT_OK


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def _add_session_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--base-dir", default=None,
                   help="Directory the search was run in (default: from config)")
    p.add_argument("--grammar", default=None,
                   help="Search output format: grep, ripgrep, ag, ack, git-grep")
    p.add_argument("--config", default=None,
                   help="Path to .grepedit.yaml config file")
    p.add_argument("--dry-run", action="store_true",
                   help="Show the changes that would be made, write nothing")
    p.add_argument("--yes", "-y", action="store_true",
                   help="Commit without the review screen")
    p.add_argument("--no-save", action="store_true",
                   help="Apply changes in memory only (check for stale lines)")
    p.add_argument("--allow-readonly", action="store_true",
                   help="Also change files that are not writable")


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="grepedit",
        description="Edit search results and write the changes back to their files",
    )
    subparsers = parser.add_subparsers(dest="cmd", metavar="COMMAND")
    subparsers.required = True

    # --- apply ---
    apply_p = subparsers.add_parser(
        "apply", help="Commit an edited copy of saved search output"
    )
    apply_p.add_argument("results", help="Search output as produced (or - for stdin)")
    apply_p.add_argument("edited", help="The same output after editing")
    _add_session_args(apply_p)
    apply_p.set_defaults(func=_cmd_apply)

    # --- edit ---
    edit_p = subparsers.add_parser(
        "edit", help="Edit search output in $EDITOR, then commit"
    )
    edit_p.add_argument("results", help="Search output file (or - for stdin)")
    _add_session_args(edit_p)
    edit_p.set_defaults(func=_cmd_edit)

    # --- stats ---
    stats_p = subparsers.add_parser("stats", help="Show commit history statistics")
    stats_p.add_argument(
        "--last-n", dest="last_n", type=int, default=50,
        help="Number of recent commits to include (default: 50)",
    )
    stats_p.add_argument(
        "--root", default=None,
        help="Directory holding the .grepedit history (default: CWD)",
    )
    stats_p.set_defaults(func=_cmd_stats)

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the `grepedit` command.

    Parameters
    ----------
    argv:
        Argument list (without the program name). Defaults to sys.argv if None.

    Returns
    -------
    int
        0 when every change was applied, 1 when some were not, 2 on bad input.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Verbose output goes to the log file only
    if args.cmd != "stats":
        setup_logger(Config.load(getattr(args, "config", None)).LOG_DIR)

    try:
        return args.func(args)
    except GrepEditError as exc:
        print(f"grepedit: {exc.message}", file=sys.stderr)
        return EXIT_USAGE


def run() -> None:
    """Console-script wrapper around :func:`main`."""
    sys.exit(main())
