from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import os
import logging
from typing import Optional, List, Dict, Any
from openai import OpenAI

from services.address_candidates import extract_address_candidates
from services.listing_ai import DEFAULT_MODEL, resolve_listing
from services.page_fetcher import PageFetchError, fetch_with_retry
from storage.pending_properties import PendingPropertyStore, create_store
from storage.tags import TagStore

# Load environment variables from .env file
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    # python-dotenv not installed, continue without it
    pass

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI()

# Configuration
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", DEFAULT_MODEL)
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "2000"))
FETCH_MAX_RETRIES = int(os.getenv("FETCH_MAX_RETRIES", "3"))
PENDING_DB_PATH = os.getenv("PENDING_DB_PATH", "")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

openai_client: Optional[OpenAI] = None
if OPENAI_API_KEY:
    openai_client = OpenAI(api_key=OPENAI_API_KEY)
    print(f"LLM address extraction enabled (OpenAI model {OPENAI_MODEL})")
else:
    print("OPENAI_API_KEY not set: using basic extraction unless a request supplies apiKey")

pending_store: PendingPropertyStore = create_store(PENDING_DB_PATH or None)
tag_store = TagStore()

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=CORS_ORIGINS != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request/Response models
class FetchPropertyRequest(BaseModel):
    url: str
    apiKey: Optional[str] = None  # Per-request OpenAI key, overrides OPENAI_API_KEY

class FetchPropertyResponse(BaseModel):
    name: Optional[str] = None
    address: str = ""
    addressConfidence: Optional[str] = None  # "high" | "medium" | "low"
    addressReasoning: Optional[str] = None
    originalAddress: Optional[str] = None  # Set when the address was corrected
    isBTR: bool = False
    url: str = ""

class AddressCandidatesRequest(BaseModel):
    html: str
    url: str = ""

class AddressCandidateOut(BaseModel):
    postcode: str
    context: str
    category: str
    confidence: int
    region_location: str

class AddPropertyRequest(BaseModel):
    url: str
    title: Optional[str] = None
    address: Optional[str] = None
    thumbnail: Optional[str] = None
    price: Optional[str] = None
    coordinates: Optional[Dict[str, float]] = None
    isBTR: bool = False
    tags: List[str] = []

class MarkProcessedRequest(BaseModel):
    id: str

class TagsRequest(BaseModel):
    tags: Any = None  # Replaces the stored list only when it is a list


def get_llm_client(api_key: Optional[str]) -> Optional[OpenAI]:
    if api_key:
        return OpenAI(api_key=api_key)
    return openai_client


def as_flag(value: Any) -> bool:
    """LLM booleans: real bools, or the strings "true"/"false"; anything else is False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


@app.get("/api/health")
async def health():
    """Health check endpoint"""
    return {"status": "ok"}

@app.post("/api/fetch-property", response_model=FetchPropertyResponse)
def fetch_property(request: FetchPropertyRequest):
    """
    Fetch a listing page and work out the property's name and address.
    The LLM proposal is cross-checked against the page's own address candidates.
    """
    if not request.url.strip():
        raise HTTPException(status_code=400, detail="URL is required")

    try:
        html = fetch_with_retry(request.url, max_retries=FETCH_MAX_RETRIES)
    except PageFetchError as e:
        logger.warning(f"Could not fetch {request.url}: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    try:
        result = resolve_listing(
            html,
            request.url,
            client=get_llm_client(request.apiKey),
            model=OPENAI_MODEL,
            max_tokens=LLM_MAX_TOKENS,
        )
    except Exception as e:
        logger.error(f"Error processing property {request.url}: {e}")
        raise HTTPException(status_code=500, detail=f"Processing error: {str(e)}")

    return FetchPropertyResponse(
        name=result.get("name"),
        address=str(result.get("address") or ""),
        addressConfidence=result.get("addressConfidence"),
        addressReasoning=result.get("addressReasoning"),
        originalAddress=result.get("originalAddress"),
        isBTR=as_flag(result.get("isBTR")),
        url=request.url,
    )

@app.post("/api/address-candidates", response_model=List[AddressCandidateOut])
def address_candidates(request: AddressCandidatesRequest):
    """Dev aid: classified address candidates for raw HTML, most likely property first."""
    return [c.to_dict() for c in extract_address_candidates(request.html, request.url)]

@app.post("/api/add-property")
def add_property(request: AddPropertyRequest):
    """Queue a property submitted from the browser extension."""
    if not request.url.strip():
        raise HTTPException(status_code=400, detail="URL is required")
    data = request.model_dump() if hasattr(request, "model_dump") else request.dict()
    prop = pending_store.insert(data)
    logger.info(f"Property added from extension: {prop['url']}")
    return {"success": True, "property": prop}

@app.get("/api/pending-properties")
def pending_properties():
    return pending_store.list_pending()

@app.delete("/api/pending-properties")
def clear_pending_properties():
    pending_store.clear()
    return {"success": True}

@app.post("/api/mark-processed")
def mark_processed(request: MarkProcessedRequest):
    found = pending_store.mark_processed(request.id)
    if not found:
        logger.info(f"mark-processed for unknown id {request.id}")
    return {"success": True, "found": found}

@app.get("/api/tags")
def get_tags():
    """Tags for the extension to offer when adding a property."""
    return tag_store.list_tags()

@app.post("/api/tags")
def sync_tags(request: TagsRequest):
    """Sync the tag list from the web app."""
    if isinstance(request.tags, list):
        return {"success": True, "tags": tag_store.replace(request.tags)}
    return {"success": True, "tags": tag_store.list_tags()}
