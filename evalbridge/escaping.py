"""String escaping for generated target code.

Everything the controlling side sends into the target context is Python
source, so every untrusted string (paths, file content, staged chunks) is
embedded as a string literal built by :func:`quote`.
"""

from __future__ import annotations

_NAMED = {
    "\\": "\\\\",
    "'": "\\'",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\0": "\\x00",
}


def _build_table() -> dict[int, str]:
    table: dict[int, str] = {}
    # C0 controls, DEL and C1 controls
    for code in (*range(0x20), *range(0x7F, 0xA0)):
        table[code] = f"\\x{code:02x}"
    # @@@line-separators - U+2028/U+2029 are ordinary string content but break
    # generated sources in hosts that treat them as line terminators.
    table[0x2028] = "\\u2028"
    table[0x2029] = "\\u2029"
    # Lone surrogates cannot be encoded into the source text at all.
    for code in range(0xD800, 0xE000):
        table[code] = f"\\u{code:04x}"
    for char, replacement in _NAMED.items():
        table[ord(char)] = replacement
    return table


_TABLE = _build_table()


def escape(value: str) -> str:
    """Escape ``value`` for embedding inside a single- or double-quoted literal.

    ``eval("'" + escape(s) + "'") == s`` holds for every string. Runs in one
    ``str.translate`` pass, so multi-megabyte payloads stay linear.
    """
    return value.translate(_TABLE)


def quote(value: str) -> str:
    """Return ``value`` as a complete single-quoted literal."""
    return f"'{escape(value)}'"
