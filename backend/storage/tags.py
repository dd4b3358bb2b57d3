"""
Property tags shared between the web app and the browser extension.
The web app pushes its full tag list; the extension reads it back.
"""
import copy
import threading
from typing import Any, Dict, List
import logging

logger = logging.getLogger(__name__)


class TagStore:
    """In-memory tag list. Each tag is a dict with id, name and color."""

    def __init__(self) -> None:
        self._tags: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def list_tags(self) -> List[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._tags)

    def replace(self, tags: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Swap in a new tag list wholesale; returns the stored copy."""
        with self._lock:
            self._tags = copy.deepcopy(list(tags))
            logger.info(f"Tag list synced ({len(self._tags)} tags)")
            return copy.deepcopy(self._tags)
