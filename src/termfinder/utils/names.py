"""Document name helpers.

Older indexes stored every document in its own table, named after the
document path with ``/`` and ``.`` replaced by marker tokens. The transform
is lossy (two paths can collide), so it is only used to read those indexes
back and to print names.
"""

from __future__ import annotations

from pathlib import PurePosixPath

from termfinder.utils.files import normalize_document_path

PATH_SEPARATOR_MARKER = "_IN_"
DOT_MARKER = "_DOT_"


def legacy_table_name(path: str) -> str:
    """Return the table name the per-document layout used for ``path``."""
    return path.replace("/", PATH_SEPARATOR_MARKER).replace(".", DOT_MARKER)


def restore_legacy_name(table_name: str) -> str:
    """Best-effort inverse of :func:`legacy_table_name`."""
    return table_name.replace(DOT_MARKER, ".").replace(PATH_SEPARATOR_MARKER, "/")


def is_legacy_name(name: str) -> bool:
    return PATH_SEPARATOR_MARKER in name or DOT_MARKER in name


def display_name(name: str, root: str | None = None) -> str:
    """Shorten a document identifier for display.

    Legacy names are restored, the ``root`` prefix is removed when the
    document lives below it, and the file suffix is dropped.
    """
    if is_legacy_name(name):
        name = restore_legacy_name(name)
    path = PurePosixPath(name)
    if root:
        try:
            path = path.relative_to(normalize_document_path(root))
        except ValueError:
            pass
    if path.suffix:
        path = path.with_suffix("")
    return path.as_posix()
