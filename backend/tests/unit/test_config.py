"""
Tests for Configuration Loading and Startup Validation
"""
import pytest
from unittest.mock import patch

from leadpool.core.config import ConfigManager
from leadpool.core.validation import ProviderValidator, validate_configuration_on_startup
from leadpool.domain.models.assignment import AssignmentPolicy


class TestConfigManager:
    """YAML layering and dot-path lookup"""

    def test_defaults_loaded(self):
        config = ConfigManager(env="development")

        assert config.get("storage.backend") == "supabase"
        assert config.get("assignment.retry_cooldown_minutes") == 15
        assert config.get("stats.timezone") == "Europe/Istanbul"
        assert config.get("missing.key", "fallback") == "fallback"

    def test_environment_override(self):
        config = ConfigManager(env="production")

        assert config.get("providers.sms.simulate_when_unconfigured") is False
        assert config.get("providers.sms.active") == "netgsm"

    def test_env_var_substitution(self, tmp_path):
        (tmp_path / "default.yaml").write_text("storage:\n  backend: ${LEADPOOL_TEST_BACKEND}\n")

        with patch.dict("os.environ", {"LEADPOOL_TEST_BACKEND": "sql"}):
            config = ConfigManager(env="test", config_dir=tmp_path)

        assert config.get("storage.backend") == "sql"

    def test_provider_config(self):
        provider = ConfigManager(env="development").get_provider_config("sms")
        assert provider["name"] == "netgsm"

    def test_assignment_policy_from_config(self, tmp_path):
        (tmp_path / "default.yaml").write_text(
            "assignment:\n  retry_cooldown_minutes: 30\n  retry_staleness_hours: 48\n  candidate_limit: 50\n"
        )
        policy = AssignmentPolicy.from_config(ConfigManager(env="test", config_dir=tmp_path))

        assert policy.retry_cooldown_seconds == 1800
        assert policy.retry_staleness_seconds == 48 * 3600
        assert policy.candidate_limit == 50

    def test_assignment_policy_defaults(self, tmp_path):
        policy = AssignmentPolicy.from_config(ConfigManager(env="test", config_dir=tmp_path))
        assert policy == AssignmentPolicy()


class TestProviderValidation:
    """Tests for startup configuration validation."""

    def test_missing_storage_credentials_are_errors(self):
        with patch.dict("os.environ", {}, clear=True):
            validator = ProviderValidator(strict=False, storage_backend="supabase")
            all_valid, results = validator.validate_all()

        assert not all_valid
        errors = {r.setting for r in results if not r.is_valid}
        assert errors == {"SUPABASE_URL", "SUPABASE_SERVICE_KEY"}

    def test_missing_sms_credentials_are_warnings(self):
        env = {"SUPABASE_URL": "https://test.supabase.co", "SUPABASE_SERVICE_KEY": "key"}
        with patch.dict("os.environ", env, clear=True):
            all_valid, results = ProviderValidator(strict=False).validate_all()

        assert all_valid
        assert any("WARNING" in r.message for r in results)

    def test_strict_mode_turns_warnings_into_errors(self):
        env = {"SUPABASE_URL": "https://test.supabase.co", "SUPABASE_SERVICE_KEY": "key"}
        with patch.dict("os.environ", env, clear=True):
            all_valid, _ = ProviderValidator(strict=True).validate_all()

        assert not all_valid

    def test_sql_backend_needs_database_url(self):
        with patch.dict("os.environ", {"DATABASE_URL": "sqlite://"}, clear=True):
            all_valid, _ = ProviderValidator(storage_backend="sql").validate_all()
        assert all_valid

    def test_unknown_backend(self):
        all_valid, results = ProviderValidator(storage_backend="mongo").validate_all()
        assert not all_valid
        assert "Unknown storage backend" in results[0].message

    def test_startup_raises_with_summary(self):
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(RuntimeError, match="SUPABASE_URL"):
                validate_configuration_on_startup(strict=False)
