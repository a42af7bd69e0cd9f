"""
Markdown document operations: vault document store, front-matter snapshots,
and the header rewrite.
"""

import re
import datetime
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import frontmatter
import yaml

from metawatch.config import log_event, MARKDOWN_SUFFIX


def format_value(value: Any) -> str:
    """Render a front-matter value the way it should appear after a header."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return ", ".join(format_value(v) for v in value)
    return str(value)


def _header_pattern(header: str):
    # [^\r\n]* keeps a CRLF line ending intact
    return re.compile(rf"^({re.escape(header)})[^\r\n]*", re.MULTILINE)


def has_header(content: str, header: str) -> bool:
    """True if some line of `content` starts with `header`."""
    return bool(header) and _header_pattern(header).search(content) is not None


def replace_header_with_value(content: str, header: str, value: Any) -> str:
    """
    Rewrite the first line that starts with `header` to `<header> <value>`.

    Whatever followed the header on that line is discarded. The header is
    matched literally. Returns `content` unchanged when no line matches or
    when `header` is empty.
    """
    if not header:
        return content
    replacement = f"{header} {format_value(value)}"
    return _header_pattern(header).sub(lambda _m: replacement, content, count=1)


def parse_front_matter(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse the YAML front-matter block of `text`.

    Returns None when the text has no front-matter block.
    Raises ValueError if the block exists but is not valid YAML.
    """
    if not text:
        return None
    try:
        post = frontmatter.loads(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"Front-matter contains invalid YAML: {exc}") from exc
    metadata = dict(post.metadata or {})
    return metadata or None


class DocumentStore:
    """Read/write access to the markdown documents under one vault directory.

    Documents are identified by their vault-relative POSIX path, e.g.
    ``projects/alpha.md``.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def ensure_root(self) -> Path:
        if not self.root.exists():
            self.root.mkdir(parents=True)
            log_event(logging.INFO, "vault_created", path=str(self.root))
        return self.root

    def resolve(self, doc_path: str) -> Path:
        """Map a document identity to its file, refusing anything outside the vault."""
        cleaned = (doc_path or "").strip().replace("\\", "/")
        if not cleaned:
            raise ValueError("Document path cannot be empty.")
        if not cleaned.lower().endswith(MARKDOWN_SUFFIX):
            raise ValueError(f"Not a markdown document: {doc_path}")
        parts = [p for p in cleaned.split("/") if p]
        if cleaned.startswith("/") or any(p in (".", "..") for p in parts):
            raise ValueError(f"Document path must stay inside the vault: {doc_path}")
        return self.root.joinpath(*parts)

    def relative(self, file_path) -> Optional[str]:
        """Document identity of an absolute file path, or None if it is not a vault document."""
        path = Path(file_path)
        try:
            rel = path.resolve().relative_to(self.root.resolve())
        except ValueError:
            return None
        if path.suffix.lower() != MARKDOWN_SUFFIX:
            return None
        if any(part.startswith(".") for part in rel.parts):
            return None
        return rel.as_posix()

    def list_documents(self) -> List[str]:
        if not self.root.is_dir():
            return []
        docs = []
        for path in sorted(self.root.rglob(f"*{MARKDOWN_SUFFIX}")):
            rel = self.relative(path)
            if rel is not None and path.is_file():
                docs.append(rel)
        return docs

    def read(self, doc_path: str) -> str:
        content = self.resolve(doc_path).read_text(encoding="utf-8")
        log_event(logging.DEBUG, "document_read", path=doc_path, bytes=len(content))
        return content

    def write(self, doc_path: str, content: str) -> bool:
        """Replace the whole document. Returns True on success."""
        try:
            self.resolve(doc_path).write_text(content, encoding="utf-8")
            log_event(logging.INFO, "document_written", path=doc_path, bytes=len(content))
            return True
        except (OSError, ValueError) as e:
            log_event(logging.ERROR, "document_write_failed", path=doc_path, error=str(e))
            return False

    def metadata(self, doc_path: str) -> Optional[Dict[str, Any]]:
        """Current front-matter snapshot of a document, or None if there is none."""
        try:
            text = self.read(doc_path)
        except FileNotFoundError:
            log_event(logging.DEBUG, "document_missing", path=doc_path)
            return None
        try:
            return parse_front_matter(text)
        except ValueError as e:
            log_event(logging.WARNING, "front_matter_invalid", path=doc_path, error=str(e))
            return None
