"""
JSON-LD structured data helpers.
"""
from typing import Any, Dict, List
import json
import logging

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

PROPERTY_TYPE_HINTS = ("residence", "apartment", "house", "product", "offer", "place")
AGENT_TYPE_HINTS = ("agent", "organization", "business", "realestate")


def extract_structured_data(html: str) -> List[Any]:
    """
    Parse every JSON-LD block on the page.
    Blocks with invalid JSON are skipped one at a time.
    """
    items: List[Any] = []
    soup = BeautifulSoup(html or "", "html.parser")
    json_ld_scripts = soup.find_all("script", type="application/ld+json")

    for script in json_ld_scripts:
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            items.append(json.loads(raw))
        except json.JSONDecodeError as e:
            logger.debug(f"Skipping invalid JSON-LD block: {e}")
            continue
    return items


def _type_of(item: Any) -> str:
    if not isinstance(item, dict):
        return ""
    t = item.get("@type") or ""
    if isinstance(t, list):
        t = " ".join(str(x) for x in t)
    return str(t).lower()


def categorize_structured_data(items: List[Any]) -> Dict[str, List[Any]]:
    """Split structured data into property, agent and other objects by @type."""
    grouped: Dict[str, List[Any]] = {"property": [], "agent": [], "other": []}
    for item in items:
        item_type = _type_of(item)
        if any(hint in item_type for hint in PROPERTY_TYPE_HINTS):
            grouped["property"].append(item)
        elif any(hint in item_type for hint in AGENT_TYPE_HINTS):
            grouped["agent"].append(item)
        else:
            grouped["other"].append(item)
    return grouped


def _address_text(addr: Any) -> str:
    if isinstance(addr, str):
        return addr.strip()
    if isinstance(addr, dict):
        parts = [addr.get("streetAddress"), addr.get("addressLocality"), addr.get("postalCode")]
        return ", ".join(str(p).strip() for p in parts if p)
    return ""


def address_from_structured_data(items: List[Any]) -> str:
    """First usable address in address / location.address / geo.address."""
    for item in items:
        if not isinstance(item, dict):
            continue
        location = item.get("location") if isinstance(item.get("location"), dict) else {}
        geo = item.get("geo") if isinstance(item.get("geo"), dict) else {}
        addr = item.get("address") or location.get("address") or geo.get("address")
        text = _address_text(addr)
        if text:
            return text
    return ""
