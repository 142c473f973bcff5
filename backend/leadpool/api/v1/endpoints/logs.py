"""
Activity Log Endpoints
Read the audit trail and record manual agent actions
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from leadpool.api.v1.dependencies import get_audit_log_service, get_current_user, get_update_service
from leadpool.domain.exceptions import LeadAccessDeniedError, LeadNotFoundError
from leadpool.domain.models.actor import Actor
from leadpool.domain.models.audit import AuditAction, AuditLogEntry
from leadpool.domain.services.audit_log import AuditLogService, DEFAULT_LOG_LIMIT, MAX_LOG_LIMIT
from leadpool.domain.services.update_pipeline import LeadUpdateService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/logs", tags=["logs"])

# Actions the client may record directly; everything else is written by the services
MANUAL_ACTIONS = {
    AuditAction.CALL_CLICK,
    AuditAction.SEND_WHATSAPP,
    AuditAction.CUSTOM_ACTION,
}


class ActionLogRequest(BaseModel):
    lead_id: str
    action: AuditAction
    new_value: Optional[str] = None
    note: Optional[str] = None


@router.get("", response_model=List[AuditLogEntry])
async def list_logs(
    lead_id: Optional[str] = Query(None, description="Only entries for this lead"),
    limit: int = Query(DEFAULT_LOG_LIMIT, ge=1, le=MAX_LOG_LIMIT),
    current_user: Actor = Depends(get_current_user),
    audit_log: AuditLogService = Depends(get_audit_log_service),
    lead_service: LeadUpdateService = Depends(get_update_service)
):
    """
    Newest-first activity entries.

    Without `lead_id` this is the global feed, which only admins may read.
    """
    try:
        if lead_id is None:
            if not current_user.is_admin:
                raise HTTPException(status_code=403, detail="Admin access required")
            return await audit_log.recent(limit)

        await lead_service.get_lead(lead_id, current_user)
        return await audit_log.for_lead(lead_id, limit)
    except LeadNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except LeadAccessDeniedError as e:
        raise HTTPException(status_code=403, detail=e.message)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Listing logs failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to load logs: {str(e)}")


@router.post("/action", response_model=AuditLogEntry, status_code=201)
async def record_action(
    request: ActionLogRequest,
    current_user: Actor = Depends(get_current_user),
    audit_log: AuditLogService = Depends(get_audit_log_service),
    lead_service: LeadUpdateService = Depends(get_update_service)
):
    """Record a call click, a WhatsApp hand-off or a free-form note"""
    if request.action not in MANUAL_ACTIONS:
        allowed = ", ".join(sorted(a.value for a in MANUAL_ACTIONS))
        raise HTTPException(status_code=400, detail=f"Action must be one of: {allowed}")

    try:
        lead = await lead_service.get_lead(request.lead_id, current_user)
        return await audit_log.record(
            actor_email=current_user.email,
            action=request.action,
            lead_id=lead.id,
            new_value=request.new_value,
            note=request.note,
        )
    except LeadNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except LeadAccessDeniedError as e:
        raise HTTPException(status_code=403, detail=e.message)
    except Exception as e:
        logger.error(f"Recording action failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to record action: {str(e)}")
