"""
Inventory Endpoints
Device stock and sale to leads
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from leadpool.api.v1.dependencies import get_current_user, get_inventory_service, require_admin
from leadpool.domain.exceptions import (
    InventoryItemNotFoundError,
    InventoryUnavailableError,
    LeadConflictError,
    LeadNotFoundError,
    LeadValidationError,
)
from leadpool.domain.models.actor import Actor
from leadpool.domain.models.inventory import InventoryItem
from leadpool.domain.models.lead import Lead
from leadpool.services.inventory_service import InventoryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory", tags=["inventory"])


class AssignItemRequest(BaseModel):
    lead_id: str
    installment_months: Optional[int] = Field(None, ge=1, le=36)


@router.get("", response_model=List[InventoryItem])
async def list_inventory(
    status: Optional[str] = Query(None, description="in_stock or sold"),
    limit: int = Query(500, ge=1, le=2000),
    current_user: Actor = Depends(get_current_user),
    service: InventoryService = Depends(get_inventory_service)
):
    try:
        return await service.list_items(status, limit)
    except LeadValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        logger.error(f"Listing inventory failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to list inventory: {str(e)}")


@router.post("", response_model=InventoryItem, status_code=201)
async def add_inventory_item(
    data: Dict[str, Any] = Body(...),
    admin: Actor = Depends(require_admin),
    service: InventoryService = Depends(get_inventory_service)
):
    try:
        return await service.add_item(data, admin)
    except LeadValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        logger.error(f"Adding inventory item failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to add item: {str(e)}")


@router.patch("/{item_id}", response_model=InventoryItem)
async def update_inventory_item(
    item_id: str,
    changes: Dict[str, Any] = Body(...),
    admin: Actor = Depends(require_admin),
    service: InventoryService = Depends(get_inventory_service)
):
    try:
        return await service.update_item(item_id, changes)
    except LeadValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except InventoryItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except Exception as e:
        logger.error(f"Updating inventory item {item_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to update item: {str(e)}")


@router.post("/{item_id}/assign", response_model=Lead)
async def assign_inventory_item(
    item_id: str,
    request: AssignItemRequest,
    current_user: Actor = Depends(get_current_user),
    service: InventoryService = Depends(get_inventory_service)
):
    """
    Sell an in-stock device to a lead.

    Returns 409 when the device was sold or the lead changed owner in the
    meantime; the device stays in stock in the latter case.
    """
    try:
        return await service.assign_to_lead(
            item_id,
            request.lead_id,
            current_user,
            installment_months=request.installment_months,
        )
    except InventoryItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except LeadNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except InventoryUnavailableError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except LeadConflictError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except LeadValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        logger.error(f"Assigning item {item_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to assign item: {str(e)}")
