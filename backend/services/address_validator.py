"""
Cross-checks the address proposed by the LLM against the heuristic candidates.

The validator only ever swaps in an address the scanner itself found on the
page, and only when the classification evidence clears a threshold.
"""
from typing import Any, Dict, Iterable, List, Optional
import logging

from services.address_candidates import AddressCandidate, best_property_candidate
from services.address_classifier import Category
from services.postcodes import find_postcode, normalize_postcode
from services.regions import Region

logger = logging.getLogger(__name__)

OVERRIDE_MIN_CONFIDENCE = 60
UPGRADE_MIN_CONFIDENCE = 80

FOOTER_WARNING = " (Warning: Address found in footer, may be agent address)"


def _find_candidate(postcode: str, candidates: List[AddressCandidate]) -> Optional[AddressCandidate]:
    for candidate in candidates:
        if normalize_postcode(candidate.postcode) == postcode:
            return candidate
    return None


def validate_address(proposal: Dict[str, Any], candidates: Iterable[AddressCandidate]) -> Dict[str, Any]:
    """
    Accept, correct or down-rate an LLM address proposal.

    Args:
        proposal: Parsed LLM JSON with `address` and optionally
            `addressConfidence` / `addressReasoning`.
        candidates: Deduplicated candidates for the same page.

    Returns:
        A new dict; the input proposal is not mutated. When the address is
        replaced because the LLM picked a non-property postcode,
        `originalAddress` records what was superseded.
    """
    result = dict(proposal)
    candidates = list(candidates)
    if not candidates:
        return result

    proposed_postcode = find_postcode(str(result.get("address") or ""))
    if not proposed_postcode:
        best = best_property_candidate(candidates)
        if best:
            result["address"] = best.context
            result["addressConfidence"] = "medium"
            result["addressReasoning"] = (
                "Address corrected: proposed address had no recognisable postcode, "
                "using pre-classified property address"
            )
            logger.info(f"Address correction: missing postcode, using {best.postcode}")
        return result

    match = _find_candidate(proposed_postcode, candidates)
    if match is None:
        # Not something the scanner saw; nothing to check against
        return result

    if match.is_property:
        if match.confidence >= UPGRADE_MIN_CONFIDENCE and result.get("addressConfidence") != "high":
            result["addressConfidence"] = "high"
            logger.info(f"Address confirmed: {proposed_postcode} is a property address ({match.confidence}%)")
        return result

    logger.info(f"Address warning: proposal picked {match.category.value} address ({proposed_postcode})")
    best = best_property_candidate(candidates)
    if best and best.confidence >= OVERRIDE_MIN_CONFIDENCE:
        result["address"] = best.context
        result["addressConfidence"] = "medium"
        result["addressReasoning"] = (
            f"Address corrected: original was {match.category.value.lower()} address, "
            f"replaced with property address ({best.postcode}, {best.region_location.value.lower()})"
        )
        result["originalAddress"] = f"{proposed_postcode} (was: {match.category.value})"
        logger.info(f"Address correction: replaced {match.category.value} address with PROPERTY address ({best.postcode})")
        return result

    result["addressConfidence"] = "low"
    if match.category == Category.FOOTER or match.region_location == Region.FOOTER:
        reasoning = result.get("addressReasoning")
        # LLM output is free-form; anything but a string is dropped
        if not isinstance(reasoning, str):
            reasoning = ""
        result["addressReasoning"] = reasoning + FOOTER_WARNING
    logger.info(f"Address downgraded: no property alternative for {proposed_postcode}")
    return result
