# app/shared/services/invalidation.py
"""
Explicit cache invalidation for dashboard clients.

The server keeps no read cache. After a successful mutation the response
names the logical resources whose client-side copies are stale, and the
client refetches exactly those.
"""
from typing import Iterable, Tuple
import logging

from fastapi import Response

logger = logging.getLogger(__name__)

INVALIDATION_HEADER = "X-Invalidate-Resources"

ORGANIZATION_TREE = "organization-tree"
UNITS = "units"
USERS = "users"

RESOURCE_TAGS = (ORGANIZATION_TREE, UNITS, USERS)

# Resources touched by each mutation, keyed by (endpoint, action)
MUTATION_TAGS = {
    ("units", "create"): (ORGANIZATION_TREE, UNITS),
    ("units", "update"): (ORGANIZATION_TREE, UNITS),
    ("units", "delete"): (ORGANIZATION_TREE, UNITS, USERS),
    ("units", "assign_manager"): (ORGANIZATION_TREE, USERS),
    ("users", "create"): (USERS, ORGANIZATION_TREE),
    ("users", "update"): (USERS, ORGANIZATION_TREE),
    ("users", "delete"): (USERS, ORGANIZATION_TREE),
    ("users", "assign_manager_units"): (USERS, ORGANIZATION_TREE),
}

def tags_for(endpoint: str, action: str) -> Tuple[str, ...]:
    return MUTATION_TAGS.get((endpoint, action), ())

def mark_invalidated(response: Response, tags: Iterable[str]) -> None:
    """Attach the stale resource tags to a successful mutation response"""
    tags = [tag for tag in tags if tag in RESOURCE_TAGS]
    if not tags:
        return
    response.headers[INVALIDATION_HEADER] = ", ".join(tags)
    logger.debug(f"Invalidated resources: {tags}")
