"""Document filters and language detection for FSO table files."""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence
from urllib.parse import unquote, urlparse

logger = logging.getLogger("fso_tables.lsp.documents")

FSO_TABLE_LANGUAGE = "fso-table"


@dataclass(frozen=True)
class DocumentFilter:
    """One entry of a document selector.

    Every field that is set must match; unset fields match anything.
    """

    language: str | None = None
    """LSP language identifier, e.g. ``fso-table``."""

    scheme: str | None = None
    """URI scheme, e.g. ``file`` or ``untitled``."""

    pattern: str | None = None
    """Glob applied to the document path."""

    def matches(self, uri: str, language_id: str | None) -> bool:
        parsed = urlparse(uri)
        if self.scheme is not None and parsed.scheme != self.scheme:
            return False
        if self.language is not None and language_id != self.language:
            return False
        if self.pattern is not None:
            path = unquote(parsed.path)
            if not fnmatch.fnmatch(path, self.pattern):
                return False
        return True

    def to_dict(self) -> dict[str, str]:
        return {
            key: value
            for key, value in (
                ("language", self.language),
                ("scheme", self.scheme),
                ("pattern", self.pattern),
            )
            if value is not None
        }


DocumentSelector = Sequence[DocumentFilter]

FSO_TABLE_SELECTOR: tuple[DocumentFilter, ...] = (
    DocumentFilter(scheme="file", language=FSO_TABLE_LANGUAGE),
)

# ---------------------------------------------------------------------------
# Extension -> language ID mapping
# ---------------------------------------------------------------------------

EXTENSION_TO_LANGUAGE: dict[str, str] = {
    ".tbl": FSO_TABLE_LANGUAGE,
    ".tbm": FSO_TABLE_LANGUAGE,
}


def selector_matches(
    selector: DocumentSelector, uri: str, language_id: str | None
) -> bool:
    """Whether any filter of ``selector`` accepts the document."""
    return any(f.matches(uri, language_id) for f in selector)


def language_for_path(file_path: str) -> str | None:
    """Resolve a file path to its LSP language identifier."""
    ext = Path(file_path).suffix.lower()
    language = EXTENSION_TO_LANGUAGE.get(ext)
    if language is None:
        logger.debug("No language registered for extension %s", ext)
    return language


def file_to_uri(path: str) -> str:
    """Convert a filesystem path to a file:// URI."""
    return Path(path).resolve().as_uri()
