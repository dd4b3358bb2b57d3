"""
Address candidate extraction engine.
Segments the page, scans for postcodes, classifies each occurrence and collapses
repeats of the same postcode into one candidate.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional
import logging

from services.address_classifier import Category, classify_context
from services.postcodes import normalize_postcode, page_text, scan_postcodes
from services.regions import PageRegions, Region, segment_page

logger = logging.getLogger(__name__)


@dataclass
class AddressCandidate:
    postcode: str
    context: str
    category: Category
    confidence: int
    region_location: Region

    @property
    def is_property(self) -> bool:
        return self.category == Category.PROPERTY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "postcode": self.postcode,
            "context": self.context,
            "category": self.category.value,
            "confidence": self.confidence,
            "region_location": self.region_location.value,
        }


def classify_candidates(text: str, regions: PageRegions) -> List[AddressCandidate]:
    """Classify every postcode occurrence in flattened page text."""
    candidates = []
    for match in scan_postcodes(text):
        location = regions.locate(match.postcode)
        category, confidence = classify_context(match.context, location)
        candidates.append(AddressCandidate(
            postcode=match.postcode,
            context=match.context,
            category=category,
            confidence=confidence,
            region_location=location,
        ))
    return candidates


def _beats(candidate: AddressCandidate, existing: AddressCandidate) -> bool:
    """PROPERTY beats anything else; otherwise higher confidence wins, first seen on ties."""
    if candidate.is_property != existing.is_property:
        return candidate.is_property
    return candidate.confidence > existing.confidence


def dedupe_candidates(candidates: Iterable[AddressCandidate]) -> Dict[str, AddressCandidate]:
    """Keep one candidate per normalized postcode."""
    unique: Dict[str, AddressCandidate] = {}
    for candidate in candidates:
        key = normalize_postcode(candidate.postcode)
        existing = unique.get(key)
        if existing is None or _beats(candidate, existing):
            unique[key] = candidate
    return unique


def property_likelihood(candidate: AddressCandidate) -> int:
    return 100 + candidate.confidence if candidate.is_property else candidate.confidence


def rank_candidates(candidates: Iterable[AddressCandidate]) -> List[AddressCandidate]:
    """Most likely property address first."""
    return sorted(candidates, key=property_likelihood, reverse=True)


def best_property_candidate(candidates: Iterable[AddressCandidate]) -> Optional[AddressCandidate]:
    properties = [c for c in candidates if c.is_property]
    if not properties:
        return None
    return max(properties, key=lambda c: c.confidence)


def extract_address_candidates(html: str, url: str = "") -> List[AddressCandidate]:
    """
    Run the whole engine over one HTML document.
    Returns the deduplicated candidates ranked by property likelihood.
    `url` is only used for logging.
    """
    regions = segment_page(html)
    raw = classify_candidates(page_text(html), regions)
    unique = dedupe_candidates(raw)
    logger.info(f"Found {len(raw)} postcode occurrences, {len(unique)} unique ({url or 'no url'})")
    return rank_candidates(unique.values())
