"""
NetGSM SMS Provider
SMS implementation using the NetGSM HTTP GET API.
"""
import os
import logging
from typing import Optional, Dict, Any

import httpx

from leadpool.utils.time_utils import utc_now
from .base import SMSProvider, SMSResult

logger = logging.getLogger(__name__)

NETGSM_SEND_URL = "https://api.netgsm.com.tr/sms/send/get"
NETGSM_SUCCESS_PREFIX = "00"


class NetGSMSMSProvider(SMSProvider):
    """
    NetGSM SMS provider.

    Uses credentials from the environment:
    - NETGSM_USERCODE
    - NETGSM_PASSWORD
    - NETGSM_HEADER (approved sender header)

    The API answers with plain text; "00 <job id>" means accepted, any
    other code is an error code.
    """

    def __init__(
        self,
        usercode: Optional[str] = None,
        password: Optional[str] = None,
        header: Optional[str] = None,
        timeout: float = 10.0
    ):
        self._usercode = usercode or os.getenv("NETGSM_USERCODE")
        self._password = password or os.getenv("NETGSM_PASSWORD")
        self._default_header = header or os.getenv("NETGSM_HEADER")
        self._timeout = timeout

    @property
    def provider_name(self) -> str:
        return "netgsm"

    def is_configured(self) -> bool:
        return bool(self._usercode and self._password)

    async def send_sms(
        self,
        to_number: str,
        message: str,
        from_number: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> SMSResult:
        to_number = self._normalize_number(to_number)
        header = from_number or self._default_header

        if not header:
            return SMSResult(
                success=False,
                provider=self.provider_name,
                to_number=to_number,
                error="No sender header configured. Set NETGSM_HEADER environment variable."
            )

        params = {
            "usercode": self._usercode,
            "password": self._password,
            "gsmno": to_number.lstrip("+"),
            "message": message,
            "msgheader": header,
            "filter": "0",
        }

        logger.info(f"Sending SMS via NetGSM to {to_number[:6]}...")

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(NETGSM_SEND_URL, params=params)
        except httpx.HTTPError as e:
            logger.error(f"NetGSM request failed: {e}", exc_info=True)
            return SMSResult(
                success=False,
                provider=self.provider_name,
                to_number=to_number,
                error=str(e),
                metadata=metadata
            )

        body = response.text.strip()
        if response.status_code == 200 and body.startswith(NETGSM_SUCCESS_PREFIX):
            parts = body.split()
            job_id = parts[1] if len(parts) > 1 else None
            logger.info(f"NetGSM accepted SMS: {job_id}")
            return SMSResult(
                success=True,
                message_id=job_id,
                provider=self.provider_name,
                to_number=to_number,
                sent_at=utc_now(),
                metadata=metadata
            )

        logger.error(f"NetGSM rejected SMS: HTTP {response.status_code}, code {body}")
        return SMSResult(
            success=False,
            provider=self.provider_name,
            to_number=to_number,
            error=f"NETGSM_ERROR_CODE_{body or response.status_code}",
            metadata=metadata
        )
