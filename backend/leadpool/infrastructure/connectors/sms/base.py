"""
SMS Provider Base Classes
Abstract base class for SMS providers.
"""
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any
from dataclasses import dataclass
from datetime import datetime
import logging

from leadpool.domain.services.lead_validation import normalize_phone

logger = logging.getLogger(__name__)


@dataclass
class SMSResult:
    """Result of an SMS send operation."""
    success: bool
    message_id: Optional[str] = None
    provider: str = ""
    to_number: str = ""
    error: Optional[str] = None
    sent_at: Optional[datetime] = None
    simulated: bool = False
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "message_id": self.message_id,
            "provider": self.provider,
            "to_number": self.to_number,
            "error": self.error,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "simulated": self.simulated,
            "metadata": self.metadata
        }


class SMSProvider(ABC):
    """
    Abstract base class for SMS providers.

    All SMS providers must implement:
    - send_sms(): Send a single SMS message
    - is_configured(): Check if provider is properly configured
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (e.g., 'netgsm', 'vonage')."""
        pass

    @abstractmethod
    async def send_sms(
        self,
        to_number: str,
        message: str,
        from_number: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> SMSResult:
        """
        Send an SMS message.

        Args:
            to_number: Destination phone number
            message: Message content
            from_number: Optional sender ID / header (uses default if not provided)
            metadata: Optional metadata for tracking

        Returns:
            SMSResult with success status and message_id
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if the provider has valid configuration."""
        pass

    def _normalize_number(self, number: str) -> str:
        """
        Normalize phone number to E.164 format.

        Numbers that cannot be normalised are returned stripped so the
        provider can report its own error.
        """
        try:
            return normalize_phone(number)
        except ValueError:
            logger.debug(f"Could not normalise phone number {number[:6]}...")
            return number.strip()
