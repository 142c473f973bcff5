"""
Vonage SMS Provider
SMS implementation using the Vonage SMS API (SDK v4).
"""
import os
import logging
from typing import Optional, Dict, Any

from vonage import Vonage, Auth
from vonage_sms import SmsMessage

from leadpool.utils.time_utils import utc_now
from .base import SMSProvider, SMSResult

logger = logging.getLogger(__name__)


class VonageSMSProvider(SMSProvider):
    """
    Vonage SMS provider.

    Uses credentials from the environment:
    - VONAGE_API_KEY
    - VONAGE_API_SECRET
    - VONAGE_FROM_NUMBER (SMS sender ID)
    """

    def __init__(self):
        self._client = None
        self._sms = None

        self._api_key = os.getenv("VONAGE_API_KEY")
        self._api_secret = os.getenv("VONAGE_API_SECRET")
        self._default_from = os.getenv("VONAGE_FROM_NUMBER", os.getenv("VONAGE_SMS_FROM"))

    @property
    def provider_name(self) -> str:
        return "vonage"

    def is_configured(self) -> bool:
        """Check if Vonage SMS credentials are configured."""
        return bool(self._api_key and self._api_secret)

    def _ensure_initialized(self) -> None:
        """Create the Vonage client on first use."""
        if self._sms is not None:
            return

        auth = Auth(api_key=self._api_key, api_secret=self._api_secret)
        self._client = Vonage(auth=auth)
        self._sms = self._client.sms
        logger.info("VonageSMSProvider initialized")

    async def send_sms(
        self,
        to_number: str,
        message: str,
        from_number: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> SMSResult:
        to_number = self._normalize_number(to_number)
        from_number = from_number or self._default_from

        if not from_number:
            return SMSResult(
                success=False,
                provider=self.provider_name,
                to_number=to_number,
                error="No from_number configured. Set VONAGE_FROM_NUMBER environment variable."
            )

        logger.info(f"Sending SMS via Vonage: {from_number} -> {to_number[:6]}...")

        try:
            self._ensure_initialized()
            response = self._sms.send(
                SmsMessage(to=to_number.lstrip("+"), from_=from_number, text=message)
            )
        except Exception as e:
            logger.error(f"Exception sending SMS via Vonage: {e}", exc_info=True)
            return SMSResult(
                success=False,
                provider=self.provider_name,
                to_number=to_number,
                error=str(e),
                metadata=metadata
            )

        messages = getattr(response, "messages", None)
        if not messages:
            return SMSResult(
                success=False,
                provider=self.provider_name,
                to_number=to_number,
                error="Unexpected response format from Vonage",
                metadata=metadata
            )

        msg = messages[0]
        if str(getattr(msg, "status", "")) == "0":
            message_id = getattr(msg, "message_id", None)
            logger.info(f"SMS sent successfully: {message_id}")
            return SMSResult(
                success=True,
                message_id=message_id,
                provider=self.provider_name,
                to_number=to_number,
                sent_at=utc_now(),
                metadata=metadata
            )

        error_text = getattr(msg, "error_text", None) or "Unknown error"
        logger.error(f"Vonage SMS failed: {error_text}")
        return SMSResult(
            success=False,
            provider=self.provider_name,
            to_number=to_number,
            error=error_text,
            metadata=metadata
        )
