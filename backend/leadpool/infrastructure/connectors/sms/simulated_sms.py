"""
Simulated SMS Provider
Used when no provider credentials are configured; logs instead of sending.
"""
import uuid
import logging
from typing import Optional, Dict, Any

from leadpool.utils.time_utils import utc_now
from .base import SMSProvider, SMSResult

logger = logging.getLogger(__name__)


class SimulatedSMSProvider(SMSProvider):
    """Always succeeds; results are flagged as simulated"""

    def __init__(self, wrapped_name: str = "simulated"):
        self._wrapped_name = wrapped_name

    @property
    def provider_name(self) -> str:
        return self._wrapped_name

    def is_configured(self) -> bool:
        return True

    async def send_sms(
        self,
        to_number: str,
        message: str,
        from_number: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> SMSResult:
        to_number = self._normalize_number(to_number)
        logger.warning(
            f"Simulating SMS send to {to_number[:6]}... ({len(message)} chars, "
            f"{self._wrapped_name} credentials not configured)"
        )
        return SMSResult(
            success=True,
            message_id=f"sim-{uuid.uuid4().hex[:12]}",
            provider=self.provider_name,
            to_number=to_number,
            sent_at=utc_now(),
            simulated=True,
            metadata=metadata
        )
