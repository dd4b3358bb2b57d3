"""
LLM-assisted property address extraction.

Builds a condensed prompt from the listing page (title, headings, structured
data, pre-classified address candidates, region excerpts), asks the model for a
JSON answer and cross-checks the proposed address against the candidates.
"""
from typing import Any, Dict, List, Optional
import json
import logging

from bs4 import BeautifulSoup

from services.address_candidates import AddressCandidate, extract_address_candidates
from services.address_validator import validate_address
from services.basic_extraction import extract_basic_data
from services.postcodes import collapse_whitespace
from services.regions import segment_page
from services.structured_data import categorize_structured_data, extract_structured_data

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"
MAX_HEADINGS = 10
MAX_CONTEXT_CHARS = 300
MAIN_EXCERPT_CHARS = 8000
SIDE_EXCERPT_CHARS = 1500

INSTRUCTIONS = """You are an expert at analyzing UK property rental listing pages. Your task is to extract the PROPERTY ADDRESS - the actual location where the rental unit is physically located.

## CRITICAL PROBLEM TO AVOID

Many property pages contain MULTIPLE addresses:
1. PROPERTY ADDRESS (what we want) - where the flat/house is located
2. AGENT OFFICE ADDRESS (wrong) - the estate agent's office address
3. DEVELOPER HQ ADDRESS (wrong) - the building company's headquarters
4. FOOTER/CONTACT ADDRESS (wrong) - company registration or contact address

You MUST distinguish between these and ONLY return the property address.

## HOW TO DECIDE

- The page title and H1 usually describe the property and hint at its location.
- PROPERTY addresses appear in the main content, near bedroom/bathroom counts, rent and availability.
- AGENT addresses appear near "contact us", "our office", "visit our branch", opening hours, or in the footer/sidebar.
- DEVELOPER addresses appear near "head office", "registered office", "Ltd", "Limited".
- Do NOT pick an address from the footer, a sales office, a marketing suite or a "Floor N, Company" office address.

## EXAMPLE

Page title: "2 Bed Apartment, Royal Docks, E16"
Main content: "This stunning flat at The Shoreline, Royal Docks, London E16 1BQ"
Footer: "ABC Lettings, 45 Commercial Road, London E1 1LH"
-> Use E16 1BQ (property), NOT E1 1LH (agent office)

## RESPONSE FORMAT

Think through your analysis, then return a single JSON object:

{
  "analysisSteps": {
    "propertyFromTitle": "What the title/H1 says about the property",
    "allAddressesFound": ["each postcode with its context"],
    "classification": "property/agent/developer for each address",
    "selectedAddress": "which address you chose and why"
  },
  "name": "property title - e.g. '2 Bed Apartment, The Shoreline'",
  "address": "PROPERTY address only - the full address where a tenant would live",
  "addressConfidence": "high/medium/low",
  "addressReasoning": "One sentence explaining why this is the property address",
  "isBTR": true/false
}

Build to Rent indicators: Quintain, Greystar, Get Living, Essential Living, Fizzy Living, Grainger, Tipi, Uncle, Vertus, Moda Living, "Build to Rent", professionally managed developments with concierge/gym/amenities."""


def _headings(soup: BeautifulSoup) -> List[str]:
    headings = []
    for tag in soup.find_all(["h1", "h2"]):
        text = collapse_whitespace(tag.get_text(" "))
        if not text:
            continue
        if tag.name == "h2" and len(text) >= 200:
            continue
        headings.append(f"[{tag.name.upper()}] {text}")
    return headings[:MAX_HEADINGS]


def format_candidates(candidates: List[AddressCandidate]) -> str:
    lines = []
    for c in candidates:
        icon = "✓" if c.is_property else "✗"
        lines.append(f"{icon} [{c.category.value}] ({c.region_location.value}, confidence: {c.confidence}%)")
        lines.append(f"  Postcode: {c.postcode}")
        lines.append(f"  Context: \"{c.context[:MAX_CONTEXT_CHARS]}\"")
        lines.append("")
    return "\n".join(lines)


def condense_page(html: str, candidates: Optional[List[AddressCandidate]] = None) -> str:
    """Page signals for the prompt, as labeled sections."""
    soup = BeautifulSoup(html or "", "html.parser")
    sections: List[str] = []

    title = soup.find("title")
    if title and title.get_text().strip():
        sections.append(f"## PAGE TITLE (often contains property location)\n{title.get_text().strip()}")

    meta = soup.find("meta", attrs={"name": "description"})
    if meta and meta.get("content"):
        sections.append(f"## META DESCRIPTION (property summary)\n{meta['content']}")

    headings = _headings(soup)
    if headings:
        sections.append("## PAGE HEADINGS (H1 usually contains property title/address)\n" + "\n".join(headings))

    grouped = categorize_structured_data(extract_structured_data(html))
    labels = {
        "property": "STRUCTURED DATA - PROPERTY (addresses here are likely the property location)",
        "agent": "STRUCTURED DATA - AGENT/COMPANY (addresses here are NOT the property)",
        "other": "STRUCTURED DATA - OTHER",
    }
    for key, label in labels.items():
        if grouped[key]:
            sections.append(f"## {label}\n{json.dumps(grouped[key], indent=2, ensure_ascii=False)}")

    if candidates is None:
        candidates = extract_address_candidates(html)
    if candidates:
        sections.append(
            "## PRE-ANALYZED ADDRESSES (sorted by likelihood of being property address)\n"
            "Note: System has pre-classified these addresses. PROPERTY addresses are likely correct, "
            "but verify with context.\n\n" + format_candidates(candidates)
        )

    regions = segment_page(html)
    if regions.main_content:
        sections.append(
            "## MAIN CONTENT AREA (property details - addresses here are the PROPERTY ADDRESS)\n"
            + regions.main_content[:MAIN_EXCERPT_CHARS]
        )
    if regions.sidebar:
        sections.append(
            "## SIDEBAR (often contains agent contact info - addresses here are usually NOT the property)\n"
            + regions.sidebar[:SIDE_EXCERPT_CHARS]
        )
    if regions.footer:
        sections.append(
            "## FOOTER CONTENT (addresses here are AGENT/COMPANY addresses - NOT the property!)\n"
            + regions.footer[:SIDE_EXCERPT_CHARS]
        )

    return "\n\n".join(sections)


def build_listing_prompt(html: str, url: str, candidates: Optional[List[AddressCandidate]] = None) -> str:
    return f"{INSTRUCTIONS}\n\n---\n\nURL: {url}\n\n{condense_page(html, candidates)}"


def parse_llm_json(text: str) -> Optional[Dict[str, Any]]:
    """
    Pull the JSON object out of a free-form model reply.
    Takes the span from the first "{" to the last "}"; None if it doesn't parse.
    """
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        return None
    try:
        parsed = json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def request_address_proposal(client: Any, prompt: str, model: str = DEFAULT_MODEL, max_tokens: int = 2000) -> str:
    """Send the prompt to the chat completions API and return the reply text."""
    response = client.chat.completions.create(
        model=model,
        messages=[{"role": "user", "content": prompt}],
        max_tokens=max_tokens,
    )
    return response.choices[0].message.content or ""


def resolve_listing(
    html: str,
    url: str,
    client: Any = None,
    model: str = DEFAULT_MODEL,
    max_tokens: int = 2000,
) -> Dict[str, Any]:
    """
    Work out the property's name and address for one listing page.
    Uses the LLM when a client is given, otherwise (or when the reply has no
    JSON object) falls back to basic extraction.
    """
    if client is None:
        return extract_basic_data(html, url)

    candidates = extract_address_candidates(html, url)
    prompt = build_listing_prompt(html, url, candidates)
    reply = request_address_proposal(client, prompt, model=model, max_tokens=max_tokens)

    proposal = parse_llm_json(reply)
    if proposal is None:
        logger.warning(f"LLM reply had no JSON object, using basic extraction ({url})")
        return extract_basic_data(html, url)

    result = validate_address(proposal, candidates)
    result.pop("analysisSteps", None)
    result.setdefault("url", url)
    return result
