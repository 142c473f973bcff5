"""
SMS Connectors Package
Provides SMS sending capabilities via various providers.
"""
from .base import SMSProvider, SMSResult
from .netgsm_sms import NetGSMSMSProvider
from .vonage_sms import VonageSMSProvider
from .simulated_sms import SimulatedSMSProvider

SMS_PROVIDERS = {
    "netgsm": NetGSMSMSProvider,
    "vonage": VonageSMSProvider,
}


def get_sms_provider(name: str = "netgsm", simulate_when_unconfigured: bool = False) -> SMSProvider:
    """
    Build the configured SMS provider.

    Args:
        name: Provider key ("netgsm" or "vonage")
        simulate_when_unconfigured: Return a SimulatedSMSProvider when the
            provider has no credentials

    Raises:
        ValueError: Unknown provider name
    """
    provider_cls = SMS_PROVIDERS.get((name or "").lower())
    if provider_cls is None:
        raise ValueError(f"Unknown SMS provider: {name}. Available: {', '.join(SMS_PROVIDERS)}")

    provider = provider_cls()
    if not provider.is_configured() and simulate_when_unconfigured:
        return SimulatedSMSProvider(wrapped_name=provider.provider_name)
    return provider


__all__ = [
    "SMSProvider",
    "SMSResult",
    "NetGSMSMSProvider",
    "VonageSMSProvider",
    "SimulatedSMSProvider",
    "SMS_PROVIDERS",
    "get_sms_provider",
]
