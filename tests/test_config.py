"""Tests for settings parsing and the startup configuration check."""
import pytest

from leavebridge.config import Settings, validate_settings
from leavebridge.errors import ConfigurationError

ODOO = dict(
    odoo_url="https://odoo.example.com",
    odoo_db="prod",
    odoo_username="bot@example.com",
    odoo_password="secret",
)


class TestSettings:

    def test_defaults(self):
        config = Settings()
        assert config.poll_interval_seconds == 30
        assert config.push_provider == "fcm"

    @pytest.mark.parametrize("raw,expected", [
        ("", []),
        ("2,5, 9", [2, 5, 9]),
        ("[3, 4]", [3, 4]),
        ([6, 7], [6, 7]),
    ])
    def test_officer_ids(self, raw, expected):
        assert Settings(officer_user_ids=raw).officer_ids == expected

    def test_officer_ids_from_environment(self, monkeypatch):
        monkeypatch.setenv("OFFICER_USER_IDS", "11,12")
        assert Settings().officer_ids == [11, 12]

    def test_firebase_private_key_newlines(self):
        config = Settings(firebase_private_key="-----BEGIN-----\\nabc\\n-----END-----", firebase_project_id="p")
        info = config.firebase_service_account
        assert info["private_key"] == "-----BEGIN-----\nabc\n-----END-----"
        assert info["project_id"] == "p"
        assert Settings().firebase_service_account is None


class TestValidateSettings:

    def test_complete_fcm_config(self):
        validate_settings(Settings(firebase_credentials_file="/secrets/fcm.json", **ODOO))

    def test_missing_odoo_credentials(self):
        with pytest.raises(ConfigurationError) as exc:
            validate_settings(Settings(firebase_credentials_file="/secrets/fcm.json"))
        assert "ODOO_PASSWORD" in str(exc.value)

    def test_missing_push_credentials(self):
        with pytest.raises(ConfigurationError) as exc:
            validate_settings(Settings(**ODOO))
        assert "FIREBASE" in str(exc.value)

    def test_apns_requires_key_fields(self):
        with pytest.raises(ConfigurationError) as exc:
            validate_settings(Settings(push_provider="apns", apns_key_path="/k.p8", **ODOO))
        assert "APNS_TEAM_ID" in str(exc.value)

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            validate_settings(Settings(push_provider="sms", **ODOO))
