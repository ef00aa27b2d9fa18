# =============================================================================
# tests/unit/test_config_errors.py
# Unit Tests for settings, error handling and logging helpers
# =============================================================================

import logging
from datetime import timedelta
from pathlib import Path

import pytest

from synka_core.config import SyncSettings, load_settings
from synka_core.errors import (
    ConfigurationError,
    LoggingNotifier,
    MutationError,
    RemoteServiceError,
    SynkaError,
    handle_error,
)
from synka_core.logging import LogContext, get_logger, setup_logging
from synka_core.services.base_service import ServiceResult

ENV_VARS = ("SUPABASE_URL", "SUPABASE_KEY", "SYNKA_DATA_DIR", "SYNKA_PUBLIC_SITE_URL")


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestSyncSettings:
    """Defaults and validation"""

    def test_default_ttls(self):
        settings = SyncSettings()

        assert settings.cache_ttl("contacts") == timedelta(minutes=60)
        assert settings.cache_ttl("profile") == timedelta(minutes=60)
        assert settings.cache_ttl("tags") == timedelta(minutes=30)
        assert settings.cache_ttl("unknown") == timedelta(minutes=30)
        assert settings.offline_ttl == timedelta(days=7)
        assert settings.interaction_validity == timedelta(hours=24)

    def test_best_effort_defaults(self):
        settings = SyncSettings()

        assert settings.remote_timeout_seconds is None
        assert settings.discard_stale_responses is False

    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ConfigurationError) as exc_info:
            SyncSettings(cache_ttl_minutes={"tags": 0}).validate()

        assert exc_info.value.details["config_key"] == "sync.cache_ttl_minutes.tags"

    def test_rejects_half_configured_supabase(self):
        with pytest.raises(ConfigurationError):
            SyncSettings(supabase_url="https://demo.supabase.co").validate()


class TestLoadSettings:
    """secrets.toml and environment"""

    def test_no_secrets_file(self, clean_env):
        settings = load_settings()

        assert settings.supabase_url is None
        assert not settings.has_supabase

    def test_secrets_file(self, clean_env, tmp_path):
        secrets = tmp_path / "secrets.toml"
        secrets.write_text(
            '[supabase]\nurl = "https://demo.supabase.co"\nkey = "anon"\n\n'
            '[sync]\ndata_dir = "cache_dir"\nremote_timeout_seconds = 15\nbogus = 1\n\n'
            '[sync.cache_ttl_minutes]\ntags = 45\n'
        )

        settings = load_settings(secrets)

        assert settings.has_supabase
        assert settings.data_dir == Path("cache_dir")
        assert settings.remote_timeout_seconds == 15
        assert settings.cache_ttl("tags") == timedelta(minutes=45)
        assert settings.cache_ttl("contacts") == timedelta(minutes=60)

    def test_environment_wins(self, clean_env, tmp_path):
        secrets = tmp_path / "secrets.toml"
        secrets.write_text('[supabase]\nurl = "https://a.supabase.co"\nkey = "a"\n')
        clean_env.setenv("SUPABASE_URL", "https://b.supabase.co")
        clean_env.setenv("SYNKA_DATA_DIR", str(tmp_path / "data"))
        clean_env.setenv("SYNKA_PUBLIC_SITE_URL", "https://cards.example")

        settings = load_settings(secrets)

        assert settings.supabase_url == "https://b.supabase.co"
        assert settings.database_path == tmp_path / "data" / "synka_local.db"
        assert settings.public_site_url == "https://cards.example"

    def test_missing_explicit_file(self, clean_env, tmp_path):
        with pytest.raises(ConfigurationError):
            load_settings(tmp_path / "nope.toml")

    def test_unparseable_file(self, clean_env, tmp_path):
        secrets = tmp_path / "secrets.toml"
        secrets.write_text("[supabase\nurl=")

        with pytest.raises(ConfigurationError):
            load_settings(secrets)


class TestErrors:
    """Exception hierarchy and handle_error"""

    def test_codes_and_details(self):
        error = MutationError("Failed to add tag", domain="contacts", item_id="c1", operation="add_tag")

        assert isinstance(error, SynkaError)
        assert error.code == "SYNC_001"
        assert error.details == {"domain": "contacts", "item_id": "c1", "operation": "add_tag"}
        assert error.to_dict()["error_type"] == "MutationError"

    def test_handle_error_notifies_user_message(self, notifier):
        handle_error(RemoteServiceError("boom", table="tags"), notifier=notifier, user_message="Could not load tags")

        assert notifier.messages == [("Could not load tags", "destructive")]

    def test_unrecoverable_error_mentions_support(self, notifier):
        handle_error(ConfigurationError("No Supabase key"), notifier=notifier, log_error=False)

        assert notifier.titles == ["No Supabase key. Please contact support."]

    def test_silent_handling(self, notifier):
        handle_error(ValueError("x"), notifier=notifier, show_user_message=False)

        assert notifier.messages == []

    def test_logging_notifier(self, caplog):
        with caplog.at_level(logging.INFO):
            LoggingNotifier().notify("Note added")

        assert "Note added" in caplog.text

    def test_service_result_from_exception(self):
        result = ServiceResult.from_exception(MutationError("Failed", domain="tags"))

        assert not result
        assert result.error == "Failed"
        assert result.error_code == "SYNC_001"
        assert result.details == {"domain": "tags"}

    def test_service_result_shortcuts(self):
        missing = ServiceResult.not_found("contacts item")
        anonymous = ServiceResult.unauthenticated("create_tag")

        assert (missing.error, missing.error_code) == ("contacts item not found", "SYNC_404")
        assert (anonymous.error, anonymous.error_code) == ("create_tag: not authenticated", "AUTH_001")
        assert not missing and not anonymous


class TestLogging:

    def test_setup_logging_to_file(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level

        setup_logging(level=logging.DEBUG, log_to_file=True, log_filename="sync.log", log_dir=tmp_path)
        get_logger("synka_core.test").info("hello from tests")
        added = [h for h in root.handlers if h not in saved_handlers]
        for handler in added:
            handler.flush()
            handler.close()
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)

        assert "hello from tests" in (tmp_path / "sync.log").read_text()

    @pytest.mark.asyncio
    async def test_log_context_reraises(self, caplog):
        logger = get_logger("synka_core.test")

        with caplog.at_level(logging.ERROR):
            with pytest.raises(RuntimeError):
                async with LogContext(logger, "Seeding default tags"):
                    raise RuntimeError("insert failed")

        assert "Seeding default tags" in caplog.text
