"""
Note header (front matter) serializer and parser.

A note is a header block followed by a free-text body:

    document := "---" NL header "---" NL body
    header   := (comment | blank | entry)*
    comment  := "#" text NL
    entry    := key ":" SP scalar NL
              | key ":" NL                       (null)
              | key ":" SP "[]" NL               (empty list)
              | key ":" NL ("  - " scalar NL)+   (list)
              | key ":" NL ("  " key ":" SP scalar NL)+   (one-level mapping)
    scalar   := plain | quoted | block
    quoted   := '"' chars with \\ \" and non-printable characters escaped '"'
    block    := "|" [indent] [chomp] NL ("  " line NL)*

The header is a strict subset of YAML, so parsing delegates to PyYAML's
safe loader and accepts anything a user may have typed by hand. Serializing
is done here so that key order, quoting and comments stay stable:

- a string is emitted plain only if it cannot be misread; it is quoted when
  it contains structural characters, has leading/trailing whitespace, starts
  with a digit, is empty, or spells a reserved scalar (true, null, yes, ...)
- a string holding a tab, a control character or a YAML line separator
  (NEL, U+2028, U+2029) outside a block is always double-quoted, with
  those characters escaped
- multi-line strings use a block literal; its chomping indicator keeps the
  trailing newlines exact, and an explicit indentation indicator is written
  when the first non-empty line starts with whitespace. Strings made only
  of newlines, or holding characters a block cannot carry, are quoted
- None is an empty value, booleans are true/false, numbers are bare

For canonical headers `parse_header(render_header(h)) == h`, and
`split_document(compose_document(h, body))` returns `body` unchanged.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

import yaml

from comic_notes.errors import HeaderParseError

DELIMITER = "---"
INDENT = "  "

_NEEDS_QUOTING_RE = re.compile(r"[<=:\[\]{}|>@`\"'\\#&*!?\-%,\t]|^\s|\s$|^[0-9.+]")
# YAML's printable set minus the characters it reads as line breaks or a byte order mark
_PRINTABLE = r"\x20-\x7e\xa0-\u2027\u202a-\ud7ff\ue000-\ufefe\uff00-\ufffd\U00010000-\U0010ffff"
_UNPRINTABLE_RE = re.compile(rf"[^\t\n{_PRINTABLE}]")
_QUOTED_ESCAPE_RE = re.compile(rf'[\\"]|[^{_PRINTABLE}]')
_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\0": "\\0",
    "\x07": "\\a",
    "\b": "\\b",
    "\t": "\\t",
    "\n": "\\n",
    "\x0b": "\\v",
    "\x0c": "\\f",
    "\r": "\\r",
    "\x1b": "\\e",
    "\x85": "\\N",
    "\u2028": "\\L",
    "\u2029": "\\P",
}
_RESERVED = {"true", "false", "null", "yes", "no", "on", "off", "y", "n", "~"}
_PLAIN_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def quote_scalar(value: Any) -> str:
    """Render one scalar value as header text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return ".nan"
        if math.isinf(value):
            return ".inf" if value > 0 else "-.inf"
        return repr(value)
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()

    text = str(value)
    if _UNPRINTABLE_RE.search(text):
        return _double_quoted(text)
    if "\n" in text and text.strip("\n"):
        return _block_literal(text)
    if text and not _NEEDS_QUOTING_RE.search(text) and text.lower() not in _RESERVED:
        return text
    return _double_quoted(text)


def _escape_char(match: re.Match[str]) -> str:
    char = match.group()
    if char in _ESCAPES:
        return _ESCAPES[char]
    code = ord(char)
    if code <= 0xFF:
        return f"\\x{code:02X}"
    if code <= 0xFFFF:
        return f"\\u{code:04X}"
    return f"\\U{code:08X}"


def _double_quoted(text: str) -> str:
    return '"' + _QUOTED_ESCAPE_RE.sub(_escape_char, text) + '"'


def _block_literal(text: str, indent: str = INDENT) -> str:
    stripped = text.rstrip("\n")
    trailing = len(text) - len(stripped)
    if trailing == 0:
        chomp = "-"
    elif trailing == 1:
        chomp = ""
    else:
        chomp = "+"
    lines = text.split("\n")
    if trailing:
        lines = lines[:-1]
    # YAML guesses the indentation from the first non-empty line unless told
    first = next((line for line in lines if line), "")
    indicator = str(len(INDENT)) if first[:1] in (" ", "\t") else ""
    body = "\n".join(f"{indent}{line}" if line else "" for line in lines)
    return f"|{indicator}{chomp}\n{body}"


def _render_key(key: str) -> str:
    return key if _PLAIN_KEY_RE.match(key) else _double_quoted(key)


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool, date))


def _render_entry(key: str, value: Any) -> str:
    k = _render_key(key)
    if value is None:
        return f"{k}:\n"
    if _is_scalar(value):
        return f"{k}: {quote_scalar(value)}\n"
    if isinstance(value, (list, tuple)) and all(_is_scalar(v) for v in value):
        if not value:
            return f"{k}: []\n"
        items = "".join(f"{INDENT}- {_nested_scalar(v)}\n" for v in value)
        return f"{k}:\n{items}"
    if isinstance(value, Mapping) and all(isinstance(sk, str) and _is_scalar(sv) for sk, sv in value.items()):
        if not value:
            return f"{k}: {{}}\n"
        items = "".join(f"{INDENT}{_render_key(sk)}: {_nested_scalar(sv)}\n" for sk, sv in value.items())
        return f"{k}:\n{items}"
    # deeper structures only come from hand-edited headers; let PyYAML write them
    return yaml.safe_dump({key: value}, sort_keys=False, allow_unicode=True, default_flow_style=False)


def _nested_scalar(value: Any) -> str:
    if value is None:
        return "null"
    text = quote_scalar(value)
    if text.startswith("|"):
        # block literal nested one level deeper
        return _block_literal(str(value), indent=INDENT * 2)
    return text


def render_header(fields: Mapping[str, Any], *, comments: Mapping[str, str] | None = None) -> str:
    """
    Serialize header fields in the given order.

    `comments` maps a key to a section comment written (after a blank line)
    right before that key.
    """
    out: list[str] = []
    for key, value in fields.items():
        if comments and key in comments:
            if out:
                out.append("\n")
            out.append(f"# {comments[key]}\n")
        out.append(_render_entry(key, value))
    return "".join(out)


def parse_header(text: str, *, path: str | None = None) -> dict[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise HeaderParseError(f"invalid header: {exc}", path=path) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise HeaderParseError("header is not a mapping", path=path)
    return {str(k): v for k, v in data.items()}


def split_document(text: str) -> tuple[str | None, str]:
    """
    Split a note into (header text, body).

    Returns `(None, text)` when the note has no header block.
    """
    if not text.startswith(DELIMITER):
        return None, text
    first_nl = text.find("\n")
    if first_nl == -1 or text[:first_nl].rstrip() != DELIMITER:
        return None, text
    pos = first_nl + 1
    while pos <= len(text):
        nl = text.find("\n", pos)
        line = text[pos:] if nl == -1 else text[pos:nl]
        if line.rstrip() == DELIMITER:
            body = "" if nl == -1 else text[nl + 1 :]
            return text[first_nl + 1 : pos], body
        if nl == -1:
            break
        pos = nl + 1
    return None, text


def compose_document(header: Mapping[str, Any], body: str, *, comments: Mapping[str, str] | None = None) -> str:
    return f"{DELIMITER}\n{render_header(header, comments=comments)}{DELIMITER}\n{body}"


def read_document(text: str, *, path: str | None = None) -> tuple[dict[str, Any], str]:
    header_text, body = split_document(text)
    if header_text is None:
        return {}, body
    return parse_header(header_text, path=path), body
