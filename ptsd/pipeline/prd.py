"""PRD anchor parsing.

Each feature's section of .ptsd/docs/PRD.md starts with a line
``<!-- feature:<id> -->`` and runs until the next anchor or end of file.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

ANCHOR_PREFIX = "<!-- feature:"
ANCHOR_RE = re.compile(r"^<!--\s*feature:(?P<id>[^\s>]+)\s*-->$")


@dataclass
class PrdSection:
    """A feature's section of the PRD (1-based, inclusive line numbers)."""
    feature_id: str
    start_line: int
    end_line: int
    content: str


def anchor_id(line: str) -> Optional[str]:
    """Feature ID if the line is an anchor, else None."""
    match = ANCHOR_RE.match(line.strip())
    return match.group("id") if match else None


def extract_anchors(text: str) -> list[str]:
    """Anchor IDs in document order (duplicates kept)."""
    anchors = []
    for line in text.splitlines():
        fid = anchor_id(line)
        if fid is not None:
            anchors.append(fid)
    return anchors


def extract_section(text: str, feature_id: str) -> Optional[PrdSection]:
    """
    Get the section following a feature's anchor.

    Returns None if the feature has no anchor.
    """
    lines = text.splitlines()
    start = None
    for idx, line in enumerate(lines):
        if start is None:
            if anchor_id(line) == feature_id:
                start = idx
            continue
        if ANCHOR_PREFIX in line:
            return PrdSection(feature_id, start + 1, idx, "\n".join(lines[start + 1:idx]))

    if start is None:
        return None
    return PrdSection(feature_id, start + 1, len(lines), "\n".join(lines[start + 1:]))
