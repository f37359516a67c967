"""
Unit tests for conversation, settings and completion models
"""
import pytest
from datetime import datetime
from pydantic import SecretStr, ValidationError

from vibecoding.domain.errors import (
    CaptureError,
    ConfigurationError,
    EmptyResultWarning,
    GatewayError,
    GatewayTimeoutError,
)
from vibecoding.domain.models.completion import CompletionRequest
from vibecoding.domain.models.connection_settings import ConnectionSettings
from vibecoding.domain.models.conversation import Speaker, Turn


class TestTurn:
    """Tests for Turn"""

    def test_render_uses_speaker_label(self):
        assert Turn(speaker=Speaker.USER, text="hi").render() == "User: hi"
        assert Turn(speaker=Speaker.AGENT, text="hello").render() == "Assistant: hello"

    def test_blank_text_rejected(self):
        """Turns never carry empty text"""
        with pytest.raises(ValidationError):
            Turn(speaker=Speaker.USER, text="   ")

    def test_created_at_defaults_to_now(self):
        before = datetime.utcnow()
        turn = Turn(speaker=Speaker.USER, text="x")
        assert before <= turn.created_at <= datetime.utcnow()


class TestConnectionSettings:
    """Tests for ConnectionSettings"""

    def test_defaults(self):
        settings = ConnectionSettings()
        assert settings.account == ""
        assert settings.username == ""
        assert settings.password.get_secret_value() == ""
        assert settings.warehouse == "COMPUTE_WH"
        assert settings.database == "CORTEX_DB"
        assert settings.schema_name == "AGENTS"
        assert settings.agent == "MY_AGENT"
        assert settings.language == "en-US"

    def test_identity_fields_trimmed(self):
        settings = ConnectionSettings(account="  acct ", username=" bob ", agent=" a1 ")
        assert settings.account == "acct"
        assert settings.username == "bob"
        assert settings.agent == "a1"

    def test_blank_routing_falls_back_to_defaults(self):
        settings = ConnectionSettings(warehouse="  ", database="", schema="", language=" ")
        assert settings.warehouse == "COMPUTE_WH"
        assert settings.database == "CORTEX_DB"
        assert settings.schema_name == "AGENTS"
        assert settings.language == "en-US"

    def test_schema_alias(self):
        settings = ConnectionSettings.model_validate({"schema": "CUSTOM"})
        assert settings.schema_name == "CUSTOM"

    def test_missing_fields(self):
        settings = ConnectionSettings(account="acct", username="", agent="   ")
        assert settings.missing_fields() == ["username", "agent"]
        assert settings.is_valid is False

    def test_valid_without_password(self):
        """Password is not part of the validity contract"""
        settings = ConnectionSettings(account="acct", username="bob", agent="a1")
        assert settings.is_valid is True
        assert settings.has_credentials is False

    def test_password_hidden_in_repr(self):
        settings = ConnectionSettings(account="acct", username="bob", password="hunter2")
        assert "hunter2" not in repr(settings)

    def test_public_dict_omits_password(self):
        settings = ConnectionSettings(account="acct", username="bob", password="hunter2")
        public = settings.to_public_dict()
        assert "password" not in public
        assert public["has_password"] is True
        assert public["schema"] == "AGENTS"

    def test_storage_round_trip(self):
        settings = ConnectionSettings(account="acct", username="bob", password="pw", schema="S1")
        restored = ConnectionSettings.model_validate(settings.to_storage_dict())
        assert restored == settings


class TestCompletionRequest:
    """Tests for CompletionRequest"""

    def test_from_settings_snapshots_routing(self):
        settings = ConnectionSettings(
            account="acct", username="bob", password="pw",
            warehouse="WH", database="DB", schema="SC", agent="model-x"
        )
        request = CompletionRequest.from_settings("hello", settings)

        assert request.prompt == "hello"
        assert request.agent == "model-x"
        assert request.routing.warehouse == "WH"
        assert request.routing.database == "DB"
        assert request.routing.schema_name == "SC"
        assert request.credentials.account == "acct"
        assert request.credentials.password.get_secret_value() == "pw"

    def test_empty_prompt_rejected(self):
        with pytest.raises(ValidationError):
            CompletionRequest(
                prompt="",
                agent="a",
                credentials={"account": "a", "username": "u", "password": SecretStr("p")}
            )


class TestErrors:
    """Tests for the error taxonomy"""

    def test_capture_error_expected_codes(self):
        assert CaptureError("no-speech").is_expected is True
        assert CaptureError("aborted").is_expected is True
        assert CaptureError("network").is_expected is False

    def test_capture_error_default_message(self):
        assert str(CaptureError("network")) == "Speech recognition error: network"

    def test_configuration_error_fields(self):
        error = ConfigurationError("bad", ["account"])
        assert error.missing_fields == ["account"]

    def test_timeout_is_gateway_error(self):
        error = GatewayTimeoutError("slow")
        assert isinstance(error, GatewayError)
        assert error.status_code is None

    def test_empty_result_warning_names_placeholder(self):
        warning = EmptyResultWarning("No response from agent")
        assert warning.placeholder == "No response from agent"
        assert "No response from agent" in str(warning)
