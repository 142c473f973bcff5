"""
Collection Endpoints
Call rotation, listing, counters and notes for customers in arrears
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from leadpool.api.v1.dependencies import get_collection_service, get_current_user
from leadpool.domain.exceptions import LeadNotFoundError, LeadValidationError
from leadpool.domain.models.actor import Actor
from leadpool.domain.models.collection import CollectionNote, CollectionPage, CollectionStats
from leadpool.domain.models.lead import Lead
from leadpool.domain.services.collection_service import CollectionService, MAX_PAGE_SIZE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/collection", tags=["collection"])

NO_DEBTOR_MESSAGE = "No overdue customer to call right now"


class NextDebtorResponse(BaseModel):
    lead: Optional[Lead] = None
    message: Optional[str] = None


class AddNoteRequest(BaseModel):
    lead_id: str
    note: str


@router.get("/next", response_model=NextDebtorResponse)
async def next_debtor(
    current_user: Actor = Depends(get_current_user),
    service: CollectionService = Depends(get_collection_service)
):
    """
    Debtor to call next. Nothing is locked; an empty rotation returns
    `lead: null` with a message.
    """
    try:
        lead = await service.next_debtor(current_user)
        if lead is None:
            return NextDebtorResponse(message=NO_DEBTOR_MESSAGE)
        return NextDebtorResponse(lead=lead)
    except Exception as e:
        logger.error(f"Next debtor failed for {current_user.email}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to get next debtor: {str(e)}")


@router.get("/list", response_model=CollectionPage)
async def list_debtors(
    status: Optional[str] = Query(None, description="Collection status; 'Awaiting Action' for none"),
    promise: Optional[str] = Query(None, description="today, tomorrow or overdue"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    current_user: Actor = Depends(get_current_user),
    service: CollectionService = Depends(get_collection_service)
):
    try:
        return await service.list_debtors(status=status, promise=promise, page=page, limit=limit)
    except LeadValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        logger.error(f"Listing debtors failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to list debtors: {str(e)}")


@router.get("/stats", response_model=CollectionStats)
async def collection_stats(
    current_user: Actor = Depends(get_current_user),
    service: CollectionService = Depends(get_collection_service)
):
    try:
        return await service.stats()
    except Exception as e:
        logger.error(f"Collection stats failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to compute collection stats: {str(e)}")


@router.get("/notes/{lead_id}", response_model=List[CollectionNote])
async def list_notes(
    lead_id: str,
    current_user: Actor = Depends(get_current_user),
    service: CollectionService = Depends(get_collection_service)
):
    try:
        return await service.list_notes(lead_id)
    except Exception as e:
        logger.error(f"Listing notes for {lead_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to list notes: {str(e)}")


@router.post("/notes", response_model=CollectionNote, status_code=201)
async def add_note(
    request: AddNoteRequest,
    current_user: Actor = Depends(get_current_user),
    service: CollectionService = Depends(get_collection_service)
):
    try:
        return await service.add_note(request.lead_id, request.note, current_user)
    except LeadValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except LeadNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except Exception as e:
        logger.error(f"Adding note to {request.lead_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to add note: {str(e)}")
