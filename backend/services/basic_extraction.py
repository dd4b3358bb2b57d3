"""
Non-AI fallback extraction, used when no LLM is configured or its reply has no JSON.
"""
from typing import Any, Dict
import re

from bs4 import BeautifulSoup

from services.structured_data import address_from_structured_data, extract_structured_data

POSTCODE_PATTERN = r"[A-Z]{1,2}\d{1,2}[A-Z]?\s*\d[A-Z]{2}"

ADDRESS_PATTERNS = [
    # Full addresses with postcodes
    re.compile(
        r"(\d+[^<,]*(?:Street|St|Road|Rd|Lane|Ln|Avenue|Ave|Way|Close|Court|Ct|Place|Pl|Gardens|Gdns|"
        r"Square|Sq|Terrace|Mews|Walk|Row|Crescent|Cres|Drive|Dr|Grove)[^<,]*,\s*[^<,]+,\s*"
        + POSTCODE_PATTERN + r")",
        re.IGNORECASE,
    ),
    # Area + postcode
    re.compile(r"([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*,?\s*(?:London|Greater London)?,?\s*" + POSTCODE_PATTERN + r")"),
    # Just postcode as fallback
    re.compile(r"\b(" + POSTCODE_PATTERN + r")\b", re.IGNORECASE),
]

BTR_KEYWORDS = [
    "build to rent", "build-to-rent", "btr", "purpose-built rental", "purpose built rental",
    "quintain", "greystar", "get living", "essential living", "fizzy living", "grainger",
    "tipi", "uncle", "apo", "canvas", "platform_", "lendlease", "related argent", "vertus",
    "moda living", "way of life", "connected living", "verto",
]


def page_title(html: str) -> str:
    soup = BeautifulSoup(html or "", "html.parser")
    title = soup.find("title")
    return title.get_text().strip() if title else ""


def is_build_to_rent(html: str) -> bool:
    html_lower = (html or "").lower()
    return any(keyword in html_lower for keyword in BTR_KEYWORDS)


def extract_basic_data(html: str, url: str = "") -> Dict[str, Any]:
    """
    Best-effort name/address/BTR extraction without an LLM.
    Address priority: JSON-LD > street + postcode > area + postcode > bare postcode.
    """
    title = page_title(html)
    address = address_from_structured_data(extract_structured_data(html))

    if not address:
        for pattern in ADDRESS_PATTERNS:
            m = pattern.search(html or "")
            if m:
                address = m.group(1).strip()
                break

    name = title.split("|")[0].split("-")[0].strip()
    return {
        "name": name or "Property",
        "address": address,
        "isBTR": is_build_to_rent(html),
        "url": url,
    }
