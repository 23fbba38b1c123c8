import logging
import os
import shlex
import subprocess
import tempfile
from datetime import datetime

from .editing.session import CommitSummary
from .editing.tracker import EditRecord, EditStatus


def setup_logger(log_dir: str = ".grepedit/logs") -> logging.Logger:
    """Creates a file logger. All verbose output goes here."""
    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(log_dir, f"grepedit_{timestamp}.log")

    logger = logging.getLogger("grepedit")
    logger.setLevel(logging.DEBUG)

    # File handler captures everything
    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S"
    ))
    logger.addHandler(fh)

    return logger


C_CYAN   = "\033[38;5;81m"
C_GREEN  = "\033[38;5;114m"
C_RED    = "\033[38;5;203m"
C_YELLOW = "\033[38;5;221m"
C_DIM    = "\033[38;5;243m"
C_BOLD   = "\033[1m"
C_RESET  = "\033[0m"

ICONS = {
    EditStatus.PENDING:  "○",
    EditStatus.DONE:     "✔",
    EditStatus.REJECTED: "✘",
}


def describe_record(record: EditRecord) -> str:
    """One-line plain description of a pending change."""
    location = f"{record.line.path}:{record.target_line}"
    if record.is_delete:
        return f"{location}  delete  {record.old_text!r}"
    return f"{location}  {record.old_text!r} -> {record.new_text!r}"


def format_record(record: EditRecord, color: bool = True) -> str:
    """Describe *record* with its status icon and rejection reason."""
    icon = ICONS[record.status]
    text = f"  {icon} {describe_record(record)}"
    if record.status is EditStatus.REJECTED and record.reason:
        text += f"  [{record.reason}]"
    if not color:
        return text
    if record.status is EditStatus.REJECTED:
        return f"{C_RED}{text}{C_RESET}"
    if record.is_delete:
        return f"{C_YELLOW}{text}{C_RESET}"
    return f"{C_CYAN}{text}{C_RESET}"


def format_summary(summary: CommitSummary, color: bool = True) -> str:
    """Render the applied/unapplied counts and any rejections."""
    lines: list[str] = []
    head = f"{summary.applied} change(s) applied, {summary.unapplied} not applied"
    if color:
        tint = C_GREEN if summary.clean else C_YELLOW
        head = f"{C_BOLD}{tint}{head}{C_RESET}"
    lines.append(head)
    for path in summary.files:
        lines.append(f"  {C_DIM}{path}{C_RESET}" if color else f"  {path}")
    for record in summary.rejected:
        lines.append(format_record(record, color=color))
    return "\n".join(lines)


def edit_in_editor(text: str, suffix: str = ".grep") -> str:
    """Write *text* to a temp file, open a system editor, and return the
    edited text after the user saves and closes the editor.

    Uses ``$VISUAL``, then ``$EDITOR``; falls back to ``notepad`` on Windows
    and ``vi`` elsewhere.
    """
    tmp = tempfile.NamedTemporaryFile(
        mode="w", suffix=suffix, prefix="grepedit_", delete=False,
        encoding="utf-8", newline="",
    )
    try:
        tmp.write(text)
        tmp.close()

        editor = os.environ.get("VISUAL") or os.environ.get("EDITOR")
        if not editor:
            editor = "notepad" if os.name == "nt" else "vi"

        subprocess.call(shlex.split(editor) + [tmp.name])

        with open(tmp.name, "r", encoding="utf-8", newline="") as f:
            return f.read()
    finally:
        try:
            os.unlink(tmp.name)
        except OSError:
            pass
