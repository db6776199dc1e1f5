"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import orders, scanner, status_updates

router = APIRouter()

# Order intake, transitions and audit trail
router.include_router(orders.router)

# Staff / forwarder scanning
router.include_router(scanner.router)

# Forwarder dashboard feeds
router.include_router(status_updates.router)
