"""
Review — show pending changes before they are committed.

Includes a Textual-based interactive viewer that lists every pending
change so the user can approve or cancel the commit, with a plain
console prompt as fallback.
"""

from __future__ import annotations

import logging

from .cli_display import describe_record, format_record
from .editing.tracker import EditRecord, EditStatus

logger = logging.getLogger(__name__)


def _format_rich_record(record: EditRecord) -> str:
    """Convert a pending change to Rich markup for Textual display."""
    # Escape Rich markup characters in the line content
    escaped = describe_record(record).replace("[", "\\[")
    if record.status is EditStatus.REJECTED:
        reason = record.reason.replace("[", "\\[")
        return f"[red]✘ {escaped}[/red]  [dim]{reason}[/dim]"
    if record.is_delete:
        return f"[yellow]- {escaped}[/yellow]"
    return f"[cyan]~ {escaped}[/cyan]"


def summarize(records: list[EditRecord]) -> str:
    edits = sum(1 for r in records if not r.is_delete)
    deletions = len(records) - edits
    files = len({r.target_file for r in records})
    return f"{edits} edit(s), {deletions} deletion(s) in {files} file(s)"


def prompt_commit_approval(
    records: list[EditRecord],
    auto: bool = False,
    use_tui: bool = True,
) -> bool:
    """Show pending changes and wait for approval.

    Returns ``True`` if the user approves (or if running in auto mode).
    Returns ``False`` if the user cancels.
    """
    if not records:
        return True

    if auto:
        for record in records:
            logger.info("[auto] %s", describe_record(record))
        return True

    if use_tui:
        try:
            return _textual_commit_approval(records)
        except Exception as e:
            logger.warning("Textual review failed: %s", e)

    # Fallback: console-based approval
    return _console_commit_approval(records)


def _textual_commit_approval(records: list[EditRecord]) -> bool:
    """Launch a Textual app to list pending changes and get approval."""
    from textual.app import App, ComposeResult
    from textual.binding import Binding
    from textual.containers import Horizontal, VerticalScroll
    from textual.widgets import Button, Footer, Static

    class CommitReviewApp(App):
        """Interactive change list with apply/cancel."""

        CSS = """
        Screen {
            background: $surface;
        }
        #title-bar {
            dock: top;
            height: 3;
            background: #1a1a2e;
            color: #e94560;
            text-align: center;
            padding: 1;
            text-style: bold;
        }
        #change-scroll {
            height: 1fr;
            margin: 1 2;
            border: round #444;
            padding: 1;
        }
        .file-header {
            color: #e9c46a;
            text-style: bold;
            margin: 1 0 0 0;
        }
        #action-buttons {
            dock: bottom;
            height: 3;
            align: center middle;
            padding: 0 2;
        }
        #action-buttons Button {
            margin: 0 2;
            min-width: 20;
        }
        #summary {
            dock: bottom;
            height: 1;
            text-align: center;
            color: #888;
        }
        """

        BINDINGS = [
            Binding("a", "approve", "Apply"),
            Binding("ctrl+s", "approve", "Apply"),
            Binding("escape", "reject", "Cancel"),
            Binding("c", "reject", "Cancel"),
        ]

        def __init__(self, records: list[EditRecord]) -> None:
            super().__init__()
            self._records = records
            self._approved: bool = False

        def compose(self) -> ComposeResult:
            yield Static(
                f" ━━  Review — {len(self._records)} pending change(s)  ━━ ",
                id="title-bar",
            )
            with VerticalScroll(id="change-scroll"):
                by_file: dict[str, list[EditRecord]] = {}
                for record in self._records:
                    by_file.setdefault(record.target_file, []).append(record)
                for target_file, file_records in by_file.items():
                    yield Static(
                        f"[bold yellow]{'─' * 58}[/bold yellow]\n"
                        f"[bold yellow]  {target_file}[/bold yellow]",
                        classes="file-header",
                    )
                    for record in file_records:
                        yield Static(_format_rich_record(record))
            yield Static(
                f"  {summarize(self._records)}  —  "
                f"Press [bold]A[/bold] to apply, [bold]C[/bold] or Esc to cancel",
                id="summary",
            )
            with Horizontal(id="action-buttons"):
                yield Button("✔ Apply", id="approve-btn", variant="success")
                yield Button("✕ Cancel", id="reject-btn", variant="error")
            yield Footer()

        def on_button_pressed(self, event: Button.Pressed) -> None:
            if event.button.id == "approve-btn":
                self._approved = True
                self.exit()
            elif event.button.id == "reject-btn":
                self._approved = False
                self.exit()

        def action_approve(self) -> None:
            self._approved = True
            self.exit()

        def action_reject(self) -> None:
            self._approved = False
            self.exit()

    app = CommitReviewApp(records)
    app.run()
    return app._approved


def _console_commit_approval(records: list[EditRecord]) -> bool:
    """Fallback console-based approval when the Textual viewer cannot run."""
    print("\n" + "=" * 60)
    print("  PENDING CHANGES")
    print("=" * 60)

    for record in records:
        print(format_record(record))

    print(f"\n  {summarize(records)}")
    print("\n" + "=" * 60)
    print("  [A]pply  |  [C]ancel")
    print()

    while True:
        try:
            choice = input("  Your choice: ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            return False
        if choice in ("a", "apply"):
            return True
        elif choice in ("c", "cancel"):
            return False
        else:
            print("  Invalid choice. Use A or C.")
