"""
Lead Endpoints
Pulling the next lead, dashboard stats, lead CRUD and CSV import
"""
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, UploadFile

from leadpool.api.v1.dependencies import (
    get_assignment_service,
    get_config,
    get_current_user,
    get_import_service,
    get_lead_store,
    get_stats_aggregator,
    get_update_service,
)
from leadpool.core.config import ConfigManager
from leadpool.domain.exceptions import (
    LeadAccessDeniedError,
    LeadConflictError,
    LeadNotFoundError,
    LeadValidationError,
)
from leadpool.domain.interfaces.lead_store import LeadStore
from leadpool.domain.models.actor import Actor
from leadpool.domain.models.assignment import ClaimResponse
from leadpool.domain.models.lead import Lead
from leadpool.domain.services.assignment_service import LeadAssignmentService, DEFAULT_CLAIM_ATTEMPTS
from leadpool.domain.services.stats_service import LeadStats, LeadStatsAggregator
from leadpool.domain.services.update_pipeline import LeadUpdateService
from leadpool.services.lead_import_service import LeadImportResult, LeadImportService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leads", tags=["leads"])

NO_LEAD_MESSAGE = "No lead available right now"


@router.post("/pull", response_model=ClaimResponse)
async def pull_next_lead(
    current_user: Actor = Depends(get_current_user),
    service: LeadAssignmentService = Depends(get_assignment_service),
    config: ConfigManager = Depends(get_config)
):
    """
    Claim the next lead from the shared pool for the calling agent.

    An empty pool is not an error: the response carries `lead: null`
    and a message.
    """
    try:
        attempts = int(config.get("assignment.claim_attempts", DEFAULT_CLAIM_ATTEMPTS))
        claimed = await service.claim_next_lead_with_retries(current_user.email, attempts=attempts)
        if claimed is None:
            return ClaimResponse(message=NO_LEAD_MESSAGE)
        return ClaimResponse(
            lead=claimed.lead,
            source_bucket=claimed.source_bucket,
            source_label=claimed.source_label,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Pull lead failed for {current_user.email}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to pull lead: {str(e)}")


@router.get("/stats", response_model=LeadStats)
async def get_lead_stats(
    current_user: Actor = Depends(get_current_user),
    aggregator: LeadStatsAggregator = Depends(get_stats_aggregator)
):
    """Dashboard counters; agents see their own leads, admins see all"""
    try:
        return await aggregator.compute(current_user)
    except Exception as e:
        logger.error(f"Stats failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to compute stats: {str(e)}")


@router.get("/search", response_model=List[Lead])
async def search_leads(
    q: str = Query(..., min_length=2, description="Name, phone or national id fragment"),
    limit: int = Query(50, ge=1, le=200),
    current_user: Actor = Depends(get_current_user),
    lead_store: LeadStore = Depends(get_lead_store)
):
    try:
        owner = None if current_user.is_admin else current_user.email
        return await lead_store.search_leads(q, owner_email=owner, limit=limit)
    except Exception as e:
        logger.error(f"Lead search failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Search failed: {str(e)}")


@router.get("/mine", response_model=List[Lead])
async def list_my_leads(
    limit: int = Query(100, ge=1, le=500),
    current_user: Actor = Depends(get_current_user),
    lead_store: LeadStore = Depends(get_lead_store)
):
    try:
        return await lead_store.list_leads(owner_email=current_user.email, limit=limit)
    except Exception as e:
        logger.error(f"Listing leads for {current_user.email} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to list leads: {str(e)}")


@router.get("/by-status/{status}", response_model=List[Lead])
async def list_leads_by_status(
    status: str,
    limit: int = Query(100, ge=1, le=500),
    current_user: Actor = Depends(get_current_user),
    lead_store: LeadStore = Depends(get_lead_store)
):
    try:
        owner = None if current_user.is_admin else current_user.email
        return await lead_store.list_leads(owner_email=owner, status=status, limit=limit)
    except Exception as e:
        logger.error(f"Listing leads by status {status} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to list leads: {str(e)}")


@router.post("/import", response_model=LeadImportResult)
async def import_leads(
    file: UploadFile = File(..., description="CSV file with leads"),
    skip_duplicates: bool = Query(True, description="Skip phone numbers that already exist"),
    current_user: Actor = Depends(get_current_user),
    service: LeadImportService = Depends(get_import_service)
):
    """
    Bulk import leads from CSV into the unowned pool.

    CSV Format Expected:
        full_name,phone,national_id,city
        Ayse Yilmaz,0532 123 45 67,10000000146,Istanbul
    """
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only CSV files are supported")

    try:
        content = await file.read()
        return await service.import_csv(content, current_user, skip_duplicates=skip_duplicates)
    except LeadValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"CSV import failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to import leads: {str(e)}")


@router.post("", response_model=Lead, status_code=201)
async def create_lead(
    data: Dict[str, Any] = Body(...),
    current_user: Actor = Depends(get_current_user),
    service: LeadUpdateService = Depends(get_update_service)
):
    try:
        return await service.create_lead(data, current_user)
    except LeadValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        logger.error(f"Create lead failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to create lead: {str(e)}")


@router.get("/{lead_id}", response_model=Lead)
async def get_lead(
    lead_id: str,
    current_user: Actor = Depends(get_current_user),
    service: LeadUpdateService = Depends(get_update_service)
):
    try:
        return await service.get_lead(lead_id, current_user)
    except LeadNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except LeadAccessDeniedError as e:
        raise HTTPException(status_code=403, detail=e.message)
    except Exception as e:
        logger.error(f"Get lead {lead_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to load lead: {str(e)}")


@router.put("/{lead_id}", response_model=Lead)
async def update_lead(
    lead_id: str,
    changes: Dict[str, Any] = Body(...),
    current_user: Actor = Depends(get_current_user),
    service: LeadUpdateService = Depends(get_update_service)
):
    """
    Save an edited lead.

    The body may be the full record or only the edited fields; validation
    failures return 400 and nothing is written. A lead that changed
    owner after it was loaded returns 409.
    """
    try:
        return await service.update_lead(lead_id, changes, current_user)
    except LeadValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except LeadNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except LeadAccessDeniedError as e:
        raise HTTPException(status_code=403, detail=e.message)
    except LeadConflictError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except Exception as e:
        logger.error(f"Update lead {lead_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to update lead: {str(e)}")
