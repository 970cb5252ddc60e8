"""Changed-line estimation for previews"""

import difflib
from typing import List

from ..utils.logging import get_logger

logger = get_logger(__name__)


def normalize_lines(text: str) -> List[str]:
    """Split ``text`` into lines after folding CRLF and CR to LF.

    Empty text has no lines; a trailing newline yields a final empty line.
    """
    if not text:
        return []
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")


def count_lines(text: str) -> int:
    return len(normalize_lines(text))


def estimate_changed_lines(before: str, after: str) -> int:
    """Number of lines touched when turning ``before`` into ``after``.

    Inserted and deleted blocks count their lines; a replaced block counts
    the larger of its two sides. Returns 0 if the estimate cannot be made.
    """
    if before == after:
        return 0
    try:
        matcher = difflib.SequenceMatcher(None, normalize_lines(before), normalize_lines(after), autojunk=False)
        changed = 0
        for tag, i1, i2, j1, j2 in matcher.get_opcodes():
            if tag == "insert":
                changed += j2 - j1
            elif tag == "delete":
                changed += i2 - i1
            elif tag == "replace":
                changed += max(i2 - i1, j2 - j1)
        return changed
    except Exception as e:
        logger.error("changed_lines_estimate_failed", error=str(e), exc_info=True)
        return 0
