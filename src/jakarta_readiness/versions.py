"""Lenient Maven version helpers.

Maven versions are not PEP 440 versions (``5.6.15.Final``, ``2.0.0-M1``,
``Unknown``), so comparisons here only look at the leading numeric segments.
"""

from __future__ import annotations

import re

_SEGMENT_RE = re.compile(r"^(\d+)")


def numeric_parts(version: str | None) -> tuple[int, ...]:
    """Return the leading numeric segments of a version string.

    Examples:
        ``"6.0.0"`` -> ``(6, 0, 0)``, ``"5.6.15.Final"`` -> ``(5, 6, 15)``,
        ``"2.0.0-M1"`` -> ``(2, 0, 0)``, ``"Unknown"`` -> ``()``.
    """
    parts: list[int] = []
    for segment in re.split(r"[.\-]", (version or "").strip()):
        m = _SEGMENT_RE.match(segment)
        if not m:
            break
        parts.append(int(m.group(1)))
    return tuple(parts)


def major_version(version: str | None) -> int | None:
    parts = numeric_parts(version)
    return parts[0] if parts else None


def is_at_least(version: str | None, minimum: str) -> bool | None:
    """Return whether ``version`` >= ``minimum``, or None when unparseable."""
    left = numeric_parts(version)
    if not left:
        return None
    right = numeric_parts(minimum)
    width = max(len(left), len(right))
    left = left + (0,) * (width - len(left))
    right = right + (0,) * (width - len(right))
    return left >= right


def majors_differ(a: str | None, b: str | None) -> bool:
    """Whether two requested versions are treated as incompatible.

    Versions with different major numbers are incompatible. When either side
    cannot be parsed, any textual difference counts.
    """
    ma, mb = major_version(a), major_version(b)
    if ma is None or mb is None:
        return (a or "") != (b or "")
    return ma != mb
