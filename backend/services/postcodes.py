"""
UK postcode normalization and page scanning.
Finds every postcode-shaped token in the visible text of a listing page
together with the text around it.
"""
import re
from dataclasses import dataclass
from typing import List

from bs4 import BeautifulSoup

POSTCODE_RE = re.compile(r"[A-Z]{1,2}\d{1,2}[A-Z]?\s*\d[A-Z]{2}", re.IGNORECASE)

CONTEXT_BEFORE = 200
CONTEXT_AFTER = 100

NON_VISIBLE_TAGS = ("script", "style", "noscript", "template")


@dataclass
class PostcodeMatch:
    postcode: str
    context: str
    start: int


def normalize_postcode(postcode: str) -> str:
    """
    Canonical form used as the dedupe key: whitespace removed, uppercased, then
    one space before the inward code. Anything under 5 chars is too short to
    split and is returned stripped and uppercased only.
    """
    if not postcode:
        return ""
    clean = re.sub(r"\s+", "", postcode).upper()
    if len(clean) >= 5:
        return clean[:-3] + " " + clean[-3:]
    return clean


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def page_text(html: str) -> str:
    """
    Flatten an HTML document to its visible text.
    Tags become single spaces and whitespace runs collapse to one space.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup.find_all(NON_VISIBLE_TAGS):
        tag.decompose()
    return collapse_whitespace(soup.get_text(" "))


def find_postcode(text: str) -> str:
    """Return the first postcode in text, normalized, or "" if there is none."""
    if not text:
        return ""
    m = POSTCODE_RE.search(text)
    return normalize_postcode(m.group(0)) if m else ""


def scan_postcodes(text: str) -> List[PostcodeMatch]:
    """
    Find every postcode-shaped token in flattened page text.
    Each match keeps up to 200 chars before and 100 chars after it as context.
    """
    matches: List[PostcodeMatch] = []
    if not text:
        return matches
    for m in POSTCODE_RE.finditer(text):
        postcode = normalize_postcode(m.group(0))
        before = text[max(0, m.start() - CONTEXT_BEFORE):m.start()].strip()
        after = text[m.end():m.end() + CONTEXT_AFTER].strip()
        context = f"{before} {postcode} {after}".strip()
        matches.append(PostcodeMatch(postcode=postcode, context=context, start=m.start()))
    return matches
