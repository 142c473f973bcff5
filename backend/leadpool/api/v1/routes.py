"""
API Router
Combines all endpoint routers
"""
from fastapi import APIRouter
from leadpool.api.v1.endpoints import (
    health,
    leads,
    logs,
    approvals,
    inventory,
    collection,
    sms,
)

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(leads.router)
api_router.include_router(logs.router)

# Back office
api_router.include_router(approvals.router)
api_router.include_router(inventory.router)
api_router.include_router(collection.router)

# Messaging
api_router.include_router(sms.router)
