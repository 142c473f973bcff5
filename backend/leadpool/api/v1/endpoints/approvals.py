"""
Approval Endpoints
Admin credit decisions on submitted applications
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from leadpool.api.v1.dependencies import get_approval_service, require_admin
from leadpool.domain.exceptions import LeadConflictError, LeadNotFoundError, LeadValidationError
from leadpool.domain.models.actor import Actor
from leadpool.domain.models.lead import Lead
from leadpool.domain.services.approval_service import ApprovalService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/approvals", tags=["approvals"])


class ApproveRequest(BaseModel):
    credit_limit: str
    note: Optional[str] = None


class DecisionRequest(BaseModel):
    reason: Optional[str] = None


@router.get("/pending", response_model=List[Lead])
async def list_pending_applications(
    limit: int = Query(200, ge=1, le=1000),
    admin: Actor = Depends(require_admin),
    service: ApprovalService = Depends(get_approval_service)
):
    try:
        return await service.list_pending(limit)
    except Exception as e:
        logger.error(f"Listing pending approvals failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to list approvals: {str(e)}")


@router.post("/{lead_id}/approve", response_model=Lead)
async def approve_application(
    lead_id: str,
    request: ApproveRequest,
    admin: Actor = Depends(require_admin),
    service: ApprovalService = Depends(get_approval_service)
):
    try:
        return await service.approve(lead_id, admin, request.credit_limit, request.note)
    except LeadValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except LeadNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except LeadConflictError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except Exception as e:
        logger.error(f"Approve {lead_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to approve: {str(e)}")


@router.post("/{lead_id}/reject", response_model=Lead)
async def reject_application(
    lead_id: str,
    request: DecisionRequest,
    admin: Actor = Depends(require_admin),
    service: ApprovalService = Depends(get_approval_service)
):
    try:
        return await service.reject(lead_id, admin, request.reason)
    except LeadNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except LeadConflictError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except Exception as e:
        logger.error(f"Reject {lead_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to reject: {str(e)}")


@router.post("/{lead_id}/request-guarantor", response_model=Lead)
async def request_guarantor(
    lead_id: str,
    request: DecisionRequest,
    admin: Actor = Depends(require_admin),
    service: ApprovalService = Depends(get_approval_service)
):
    try:
        return await service.request_guarantor(lead_id, admin, request.reason)
    except LeadNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except LeadConflictError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except Exception as e:
        logger.error(f"Guarantor request for {lead_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to request guarantor: {str(e)}")
