"""
Configuration Validation Module
Validates required environment configuration on startup
"""
import os
import logging
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of a configuration validation check."""
    provider: str
    setting: str
    is_valid: bool
    message: str


class ProviderValidator:
    """
    Validates storage and messaging configuration at startup.

    Ensures the data store credentials are present before the
    application starts accepting requests.
    """

    # Required environment variables by storage backend
    STORAGE_ENV_VARS: Dict[str, List[Tuple[str, str]]] = {
        "supabase": [
            ("SUPABASE_URL", "Supabase lead store"),
            ("SUPABASE_SERVICE_KEY", "Supabase lead store"),
        ],
        "sql": [("DATABASE_URL", "SQL lead store")],
    }

    # SMS credentials are optional: unconfigured providers are simulated
    SMS_ENV_VARS: Dict[str, List[Tuple[str, str]]] = {
        "netgsm": [
            ("NETGSM_USERCODE", "NetGSM SMS"),
            ("NETGSM_PASSWORD", "NetGSM SMS"),
            ("NETGSM_HEADER", "NetGSM SMS sender header"),
        ],
        "vonage": [
            ("VONAGE_API_KEY", "Vonage SMS"),
            ("VONAGE_API_SECRET", "Vonage SMS"),
            ("VONAGE_FROM_NUMBER", "Vonage SMS sender"),
        ],
    }

    def __init__(self, strict: bool = False, storage_backend: str = "supabase", sms_provider: str = "netgsm"):
        """
        Initialize validator.

        Args:
            strict: If True, treat warnings as errors
            storage_backend: "supabase" or "sql"
            sms_provider: Active SMS provider key
        """
        self.strict = strict
        self.storage_backend = storage_backend
        self.sms_provider = sms_provider
        self.results: List[ValidationResult] = []

    def validate_all(self) -> Tuple[bool, List[ValidationResult]]:
        """
        Validate configuration.

        Returns:
            Tuple of (all_valid, list of results)
        """
        self.results = []

        storage_vars = self.STORAGE_ENV_VARS.get(self.storage_backend)
        if storage_vars is None:
            self._add_error("storage", "storage.backend", f"Unknown storage backend '{self.storage_backend}'")
        else:
            for env_var, description in storage_vars:
                if not os.getenv(env_var):
                    self._add_error("storage", env_var, f"{description} requires {env_var} to be set")
                else:
                    self._add_success("storage", env_var, f"{description} configured")

        for env_var, description in self.SMS_ENV_VARS.get(self.sms_provider, []):
            if not os.getenv(env_var):
                self._add_warning("sms", env_var, f"{description} not configured (sends will be simulated)")
            else:
                self._add_success("sms", env_var, f"{description} configured")

        errors = [r for r in self.results if not r.is_valid]
        return len(errors) == 0, self.results

    def _add_success(self, provider: str, setting: str, message: str):
        self.results.append(ValidationResult(
            provider=provider,
            setting=setting,
            is_valid=True,
            message=message
        ))

    def _add_error(self, provider: str, setting: str, message: str):
        self.results.append(ValidationResult(
            provider=provider,
            setting=setting,
            is_valid=False,
            message=message
        ))

    def _add_warning(self, provider: str, setting: str, message: str):
        self.results.append(ValidationResult(
            provider=provider,
            setting=setting,
            is_valid=not self.strict,  # Warnings become errors in strict mode
            message=f"WARNING: {message}"
        ))

    def log_results(self):
        """Log all validation results."""
        errors = [r for r in self.results if not r.is_valid]
        warnings = [r for r in self.results if r.is_valid and "WARNING" in r.message]
        successes = [r for r in self.results if r.is_valid and "WARNING" not in r.message]

        if successes:
            logger.info("Configuration validated:")
            for r in successes:
                logger.info(f"  ✓ [{r.provider}] {r.message}")

        for r in warnings:
            logger.warning(f"  ⚠ [{r.provider}] {r.message}")

        if errors:
            logger.error("Configuration errors:")
            for r in errors:
                logger.error(f"  ✗ [{r.provider}] {r.message}")

    def get_error_summary(self) -> Optional[str]:
        """Get summary of errors for exception message."""
        errors = [r for r in self.results if not r.is_valid]
        if not errors:
            return None

        lines = ["Configuration errors:"]
        for r in errors:
            lines.append(f"  - {r.setting}: {r.message}")
        return "\n".join(lines)


def validate_configuration_on_startup(
    strict: bool = False,
    storage_backend: str = "supabase",
    sms_provider: str = "netgsm"
) -> None:
    """
    Validate configuration at startup.

    Raises:
        RuntimeError: If required configuration is missing
    """
    validator = ProviderValidator(strict=strict, storage_backend=storage_backend, sms_provider=sms_provider)
    all_valid, _ = validator.validate_all()
    validator.log_results()

    if not all_valid:
        raise RuntimeError(validator.get_error_summary())

    logger.info("Configuration validated successfully")
