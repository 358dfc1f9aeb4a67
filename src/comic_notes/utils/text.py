from __future__ import annotations

import re

from bs4 import BeautifulSoup

_TAG_RE = re.compile(r"<[^>]*>")
_CROSS_REF_UNSAFE_RE = re.compile(r"[\[\]\^#]")
_FILENAME_UNSAFE_RE = re.compile(r'[<>:"/\\|?*#^\[\]]')
_WS_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def sanitize_cross_ref(text: str | None) -> str:
    """
    Make a display name safe to embed in a `[[...]]` cross-reference.

    Markup and surrounding quotes are dropped, a pipe becomes " - " and
    brackets, carets and hashes are removed.
    """
    if not text:
        return ""
    cleaned = _TAG_RE.sub("", text)
    cleaned = cleaned.replace("|", " - ")
    cleaned = _CROSS_REF_UNSAFE_RE.sub("", cleaned)
    cleaned = normalize_whitespace(cleaned)
    cleaned = re.sub(r"^[\"']+|[\"']+$", "", cleaned)
    return cleaned.strip()


def wikilink(text: str | None) -> str | None:
    cleaned = sanitize_cross_ref(text)
    if not cleaned:
        return None
    return f"[[{cleaned}]]"


def sanitize_tag(text: str | None) -> str:
    tag = (text or "").lower()
    tag = _WS_RE.sub("-", tag)
    tag = re.sub(r"[^a-z0-9-]", "", tag)
    tag = re.sub(r"-+", "-", tag)
    tag = tag.strip("-")
    return tag or "unknown"


def sanitize_filename(text: str | None) -> str:
    if not text:
        return ""
    return normalize_whitespace(_FILENAME_UNSAFE_RE.sub("", text))


def clean_description(html: str | None) -> str:
    """
    Convert ComicVine description markup into plain paragraphs.

    Every tag boundary becomes a line break, entities are decoded and runs of
    blank lines collapse to a single paragraph break.
    """
    if not html:
        return ""
    soup = BeautifulSoup(html, "lxml")
    for tag in soup.find_all(True):
        if tag.name in {"html", "body"}:
            continue
        tag.insert_before("\n")
        tag.insert_after("\n")
    text = soup.get_text()
    text = text.replace("\xa0", " ")
    text = re.sub(r"\n\s*\n", "\n\n", text)
    return text.strip()
