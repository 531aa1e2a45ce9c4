"""
Bus inventory and search.

- inventory.py: bus documents, seat maps and the conditional seat updates
- search.py: route/date search and time-of-day ordering
- router.py: FastAPI endpoints for search, bus details and seat setup
"""

from .router import router
from .inventory import InventoryStore
from .search import BusSearchService, parse_time_to_minutes, reference_today

__all__ = [
    "router",
    "InventoryStore",
    "BusSearchService",
    "parse_time_to_minutes",
    "reference_today"
]
