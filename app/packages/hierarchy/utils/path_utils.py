"""Materialized path helpers for the department forest.

All path math lives here; no other module builds or slices paths by hand.
Rules:
- A path is the separator followed by the codes from root to self, e.g. ``/COMP/IT/DEV``;
- A root's path is ``/<CODE>`` and its level is ``ROOT_LEVEL`` (0);
- ``level == len(parse_path(path)) - 1``;
- Descendants of ``P`` are exactly the rows whose path starts with ``P + "/"``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Optional

PATH_SEPARATOR = "/"
ROOT_LEVEL = 0


def validate_code(code: str | None) -> str:
    """Return the code unchanged if it can be used as a path segment, else raise ``ValueError``."""
    if code is None or not code.strip():
        raise ValueError("department code must not be empty")
    if code != code.strip() or any(ch.isspace() for ch in code):
        raise ValueError(f"department code {code!r} must not contain whitespace")
    if PATH_SEPARATOR in code:
        raise ValueError(f"department code {code!r} must not contain {PATH_SEPARATOR!r}")
    return code


def build_path(ancestor_codes: Iterable[str], own_code: str) -> str:
    """Join ancestor codes (root first) and the node's own code into a path."""
    segments = [validate_code(c) for c in ancestor_codes]
    segments.append(validate_code(own_code))
    return PATH_SEPARATOR + PATH_SEPARATOR.join(segments)


def parse_path(path: str | None) -> list[str]:
    """Split a path into its codes, root first. ``"/"`` and ``""`` yield ``[]``."""
    s = (path or "").strip()
    return [segment for segment in s.split(PATH_SEPARATOR) if segment]


def level_of(path: str) -> int:
    segments = parse_path(path)
    if not segments:
        raise ValueError(f"invalid department path {path!r}")
    return len(segments) - 1 + ROOT_LEVEL


def child_path(parent_path: Optional[str], code: str) -> str:
    """Path of a node with ``code`` placed under ``parent_path`` (``None`` for a root)."""
    return build_path(parse_path(parent_path), code)


def descendant_prefix(path: str) -> str:
    """Prefix shared by every strict descendant of ``path``."""
    return path.rstrip(PATH_SEPARATOR) + PATH_SEPARATOR


def is_same_or_descendant(candidate_path: str, ancestor_path: str) -> bool:
    """True when ``candidate_path`` equals ``ancestor_path`` or lies inside its subtree."""
    if candidate_path == ancestor_path:
        return True
    return candidate_path.startswith(descendant_prefix(ancestor_path))


def rebase_path(path: str, old_prefix: str, new_prefix: str) -> str:
    """Swap the leading ``old_prefix`` of ``path`` for ``new_prefix``.

    ``path`` must be ``old_prefix`` itself or one of its descendants.
    """
    if not is_same_or_descendant(path, old_prefix):
        raise ValueError(f"path {path!r} is not inside {old_prefix!r}")
    return new_prefix + path[len(old_prefix):]
