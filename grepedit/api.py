"""
Programmatic API for grepedit, for use as a library from Python code.

Example usage::

    from grepedit import open_session

    session = open_session(open("results.grep").read(), base_dir="src")
    session.document.set_body(0, "new text")
    summary = session.commit_all()
    print(summary.applied, summary.unapplied)
"""

from __future__ import annotations

import logging

from .config import Config
from .editing.grammar import PRESETS, ResultGrammar
from .editing.session import Session
from .editing.source_document import SourceLocator
from .editing.virtual_document import VirtualDocument

_logger = logging.getLogger(__name__)


def build_grammar(cfg: Config, name: str | None = None) -> ResultGrammar:
    """Build the result grammar selected by *cfg* (or by *name*)."""
    name = name or cfg.GRAMMAR
    preset = ResultGrammar.preset(name)
    if not cfg.HEADER_REGEX and not cfg.CONTEXT_SEPARATORS:
        return preset
    return ResultGrammar(
        cfg.HEADER_REGEX or PRESETS[name]["match"],
        cfg.CONTEXT_SEPARATORS or preset.context_separators,
    )


def open_session(
    text: str,
    *,
    base_dir: str | None = None,
    grammar: str | None = None,
    allow_readonly: bool | None = None,
    auto_save: bool | None = None,
    locator: SourceLocator | None = None,
    config: Config | None = None,
    config_path: str | None = None,
    record_history: bool = False,
) -> Session:
    """Start an editing session over search output *text*.

    Args:
        text: Search output (``path:N:text`` lines, optional context lines).
        base_dir: Directory the search ran in (default: from config).
        grammar: Grammar preset name, e.g. ``"grep"`` or ``"git-grep"``.
        allow_readonly: Allow edits to files that are not writable.
        auto_save: Save touched files after each commit.
        locator: Share a locator between sessions that touch the same files.
        config: Preloaded configuration.
        config_path: Explicit path to ``.grepedit.yaml``.
        record_history: Append each commit to the history log configured
            by ``history`` / ``history_dir``. The command line turns it on.

    Returns:
        A :class:`Session` in the editing state.
    """
    cfg = config or Config.load(config_path)
    base_dir = base_dir or cfg.BASE_DIR
    if allow_readonly is None:
        allow_readonly = cfg.ALLOW_READONLY_FILES
    if auto_save is None:
        auto_save = cfg.AUTO_SAVE

    document = VirtualDocument.from_text(
        text,
        grammar=build_grammar(cfg, grammar),
        base_dir=base_dir,
        protect_headers=cfg.PROTECT_HEADERS,
    )
    if locator is None:
        locator = SourceLocator(allow_readonly=allow_readonly, encoding=cfg.ENCODING)
    else:
        locator.allow_readonly = locator.allow_readonly or allow_readonly

    _logger.debug("[GrepEdit] Opening session in %s", base_dir)
    return Session(
        document,
        locator=locator,
        auto_save=auto_save,
        too_many_files=cfg.TOO_MANY_FILES,
        history_root=cfg.history_root() if record_history else None,
    )
