"""
Mime-type and extension lookup tables.

Every table here is an ordered list of ``(predicate, tag)`` pairs evaluated
top-down; the first matching predicate wins and a default covers the rest.
Categories overlap, so the order of the rows is part of the behavior.
"""

from enum import Enum
from typing import Callable, Optional, Sequence, Tuple, TypeVar

from common.constants import (
    PDF_PREVIEW_MAX_BYTES,
    PREVIEW_TIMEOUT_SECONDS,
    TEXT_PREVIEW_MAX_BYTES,
    VIDEO_PREVIEW_MAX_BYTES,
    VIDEO_PREVIEW_TIMEOUT_SECONDS,
)
from vaultclient.exceptions import UnsupportedTypeError


class PreviewKind(str, Enum):
    IMAGE = "image"
    PDF = "pdf"
    VIDEO = "video"
    AUDIO = "audio"
    TEXT = "text"


class FileCategory(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    PDF = "pdf"
    SPREADSHEET = "spreadsheet"
    PRESENTATION = "presentation"
    DOCUMENT = "document"
    ARCHIVE = "archive"
    JSON = "json"
    CODE = "code"
    DATABASE = "database"
    TEXT = "text"
    FILE = "file"


T = TypeVar("T")
Predicate = Callable[[str, str], bool]

TEXT_MIME_TYPES = frozenset({
    "application/json",
    "application/javascript",
    "application/xml",
    "application/x-yaml",
    "text/csv",
})

CODE_EXTENSIONS = frozenset({
    "js", "jsx", "ts", "tsx", "py", "java", "cpp", "c", "h", "css", "html", "xml", "json", "sql", "sh",
})


def extension_of(filename: str) -> str:
    """Lower-cased extension without the dot, or '' when there is none."""
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def _mime_prefix(prefix: str) -> Predicate:
    return lambda mime, ext: mime.startswith(prefix)


def _mime_exact(*values: str) -> Predicate:
    return lambda mime, ext: mime in values


def _mime_contains(*fragments: str) -> Predicate:
    return lambda mime, ext: any(fragment in mime for fragment in fragments)


def _ext_in(*extensions: str) -> Predicate:
    return lambda mime, ext: ext in extensions


def _any_of(*predicates: Predicate) -> Predicate:
    return lambda mime, ext: any(predicate(mime, ext) for predicate in predicates)


def first_match(table: Sequence[Tuple[Predicate, T]], mime_type: str, filename: str, default: T) -> T:
    """Evaluate a lookup table top-down and return the first matching tag."""
    mime = (mime_type or "").split(";", 1)[0].strip().lower()
    ext = extension_of(filename or "")
    for predicate, tag in table:
        if predicate(mime, ext):
            return tag
    return default


PREVIEW_TABLE: Sequence[Tuple[Predicate, Optional[PreviewKind]]] = (
    (_mime_prefix("image/"), PreviewKind.IMAGE),
    (_mime_exact("application/pdf"), PreviewKind.PDF),
    (_mime_prefix("video/"), PreviewKind.VIDEO),
    (_mime_prefix("audio/"), PreviewKind.AUDIO),
    (_any_of(_mime_prefix("text/"), _mime_exact(*TEXT_MIME_TYPES)), PreviewKind.TEXT),
)

CATEGORY_TABLE: Sequence[Tuple[Predicate, FileCategory]] = (
    (_mime_prefix("image/"), FileCategory.IMAGE),
    (_mime_prefix("video/"), FileCategory.VIDEO),
    (_mime_prefix("audio/"), FileCategory.AUDIO),
    (_mime_exact("application/pdf"), FileCategory.PDF),
    (_any_of(_mime_contains("spreadsheet", "excel"), _ext_in("xls", "xlsx", "csv")), FileCategory.SPREADSHEET),
    (_any_of(_mime_contains("presentation", "powerpoint"), _ext_in("ppt", "pptx")), FileCategory.PRESENTATION),
    (_any_of(_mime_contains("word"), _ext_in("doc", "docx")), FileCategory.DOCUMENT),
    (_any_of(_mime_contains("zip", "rar"), _ext_in("zip", "rar", "tar", "gz", "7z")), FileCategory.ARCHIVE),
    (_any_of(_mime_contains("json"), _ext_in("json")), FileCategory.JSON),
    (_mime_contains("javascript", "typescript", "xml", "html", "css"), FileCategory.CODE),
    (_ext_in("js", "ts", "jsx", "tsx", "py", "java", "cpp", "c", "h", "go", "html", "css", "xml"), FileCategory.CODE),
    (_any_of(_mime_contains("sql"), _ext_in("sql", "db")), FileCategory.DATABASE),
    (_any_of(_mime_prefix("text/"), _ext_in("txt", "md", "rtf")), FileCategory.TEXT),
)

SIZE_CEILINGS = {
    PreviewKind.TEXT: TEXT_PREVIEW_MAX_BYTES,
    PreviewKind.VIDEO: VIDEO_PREVIEW_MAX_BYTES,
    PreviewKind.PDF: PDF_PREVIEW_MAX_BYTES,
}

PREVIEW_TIMEOUTS = {
    PreviewKind.VIDEO: VIDEO_PREVIEW_TIMEOUT_SECONDS,
}

RENDERERS = {
    PreviewKind.IMAGE: "image",
    PreviewKind.TEXT: "text",
    PreviewKind.PDF: "document",
    PreviewKind.VIDEO: "media",
    PreviewKind.AUDIO: "media",
}


def preview_kind(mime_type: str) -> Optional[PreviewKind]:
    """Previewable kind for a mime type, or None."""
    return first_match(PREVIEW_TABLE, mime_type, "", None)


def require_preview_kind(mime_type: str) -> PreviewKind:
    """
    Previewable kind for a mime type.

    Raises:
        UnsupportedTypeError: If nothing can preview this type
    """
    kind = preview_kind(mime_type)
    if kind is None:
        raise UnsupportedTypeError(mime_type)
    return kind


def size_ceiling(kind: PreviewKind) -> Optional[int]:
    return SIZE_CEILINGS.get(kind)


def preview_timeout(kind: PreviewKind) -> float:
    return PREVIEW_TIMEOUTS.get(kind, PREVIEW_TIMEOUT_SECONDS)


def renderer_for(kind: PreviewKind) -> str:
    return RENDERERS[kind]


def describe_file(mime_type: str, filename: str) -> FileCategory:
    """Icon/label category for a file."""
    return first_match(CATEGORY_TABLE, mime_type, filename, FileCategory.FILE)


def is_code_file(filename: str, mime_type: str) -> bool:
    """Whether the inline text viewer should render the content as code."""
    mime = (mime_type or "").lower()
    return extension_of(filename or "") in CODE_EXTENSIONS or "javascript" in mime or "json" in mime
