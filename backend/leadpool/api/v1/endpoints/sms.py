"""
SMS Endpoints
Templates, single sends and admin bulk sends
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from leadpool.api.v1.dependencies import (
    get_current_user,
    get_sms_service,
    get_update_service,
    require_admin,
)
from leadpool.domain.exceptions import LeadAccessDeniedError, LeadNotFoundError, LeadValidationError
from leadpool.domain.models.actor import Actor
from leadpool.domain.services.sms_template_manager import get_sms_template_manager
from leadpool.domain.services.update_pipeline import LeadUpdateService
from leadpool.services.sms_service import SMSNotConfiguredError, SMSService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sms", tags=["sms"])


class SendSMSRequest(BaseModel):
    lead_id: str
    message: Optional[str] = None
    template_name: Optional[str] = None


class BulkSMSRequest(BaseModel):
    lead_ids: List[str] = Field(..., min_length=1)
    message: str


@router.get("/templates")
async def list_sms_templates(current_user: Actor = Depends(get_current_user)) -> List[Dict[str, Any]]:
    manager = get_sms_template_manager()
    return [manager.get_template_info(name) for name in manager.list_templates()]


@router.post("/send")
async def send_sms(
    request: SendSMSRequest,
    current_user: Actor = Depends(get_current_user),
    lead_service: LeadUpdateService = Depends(get_update_service),
    sms_service: SMSService = Depends(get_sms_service)
) -> Dict[str, Any]:
    """
    Send one SMS to a lead.

    Without a message the named template, or the template for the lead's
    current status, is used.
    """
    try:
        lead = await lead_service.get_lead(request.lead_id, current_user)
        result = await sms_service.send_to_lead(
            lead,
            current_user,
            message=request.message,
            template_name=request.template_name,
        )
        if not result["success"]:
            raise HTTPException(status_code=502, detail=result.get("error") or "SMS delivery failed")
        return result
    except SMSNotConfiguredError as e:
        raise HTTPException(status_code=503, detail=e.message)
    except LeadValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except LeadNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except LeadAccessDeniedError as e:
        raise HTTPException(status_code=403, detail=e.message)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"SMS send failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to send SMS: {str(e)}")


@router.post("/bulk-send")
async def bulk_send_sms(
    request: BulkSMSRequest,
    admin: Actor = Depends(require_admin),
    sms_service: SMSService = Depends(get_sms_service)
) -> Dict[str, Any]:
    try:
        return await sms_service.bulk_send(request.lead_ids, request.message, admin)
    except SMSNotConfiguredError as e:
        raise HTTPException(status_code=503, detail=e.message)
    except LeadValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        logger.error(f"Bulk SMS failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to send SMS: {str(e)}")
