"""Input Sanitizer — strips unsafe characters and bounds untrusted text size.

Invariants:
    - Output alphabet is {TAB, LF, CR, 0x20–0x7E}; everything else becomes a space
    - len(clean(text, n)) <= n + len(TRUNCATION_MARKER)
    - Truncation keeps exactly the first n characters, then appends the marker
"""

import re

TRUNCATION_MARKER = "\n[TRUNCATED]"

_UNSAFE_CHARS = re.compile(r"[^\t\n\r\x20-\x7e]")


def clean(text: str, max_chars: int) -> str:
    """Replace disallowed characters with spaces, trim, truncate to max_chars."""
    if max_chars < 0:
        raise ValueError("max_chars must be >= 0")
    cleaned = _UNSAFE_CHARS.sub(" ", text).strip()
    if len(cleaned) <= max_chars:
        return cleaned
    return cleaned[:max_chars] + TRUNCATION_MARKER
