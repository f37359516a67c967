"""
Connection Settings Model
Typed routing and credential configuration owned by a session
"""
from typing import Any, Dict, List
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationInfo, field_validator


DEFAULT_WAREHOUSE = "COMPUTE_WH"
DEFAULT_DATABASE = "CORTEX_DB"
DEFAULT_SCHEMA = "AGENTS"
DEFAULT_AGENT = "MY_AGENT"
DEFAULT_LANGUAGE = "en-US"


class ConnectionSettings(BaseModel):
    """
    Snowflake connection and routing settings.

    Whitespace is trimmed on construction and blank routing fields fall
    back to their defaults. Identity fields may be blank; use
    ``missing_fields()`` / ``is_valid`` to check the dispatch contract.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    account: str = Field(default="", description="Snowflake account identifier")
    username: str = Field(default="", description="Snowflake user")
    password: SecretStr = Field(default=SecretStr(""), description="Password or access token")
    warehouse: str = Field(default=DEFAULT_WAREHOUSE)
    database: str = Field(default=DEFAULT_DATABASE)
    schema_name: str = Field(default=DEFAULT_SCHEMA, alias="schema")
    agent: str = Field(default=DEFAULT_AGENT, description="Cortex agent / model identifier")
    language: str = Field(default=DEFAULT_LANGUAGE, description="Speech recognition locale")

    @field_validator("account", "username", "agent", mode="before")
    @classmethod
    def strip_identity(cls, v: Any) -> Any:
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v

    @field_validator("warehouse", "database", "schema_name", "language", mode="before")
    @classmethod
    def default_when_blank(cls, v: Any, info: ValidationInfo) -> Any:
        if v is not None and not isinstance(v, str):
            return v
        value = (v or "").strip()
        if value:
            return value
        return {
            "warehouse": DEFAULT_WAREHOUSE,
            "database": DEFAULT_DATABASE,
            "schema_name": DEFAULT_SCHEMA,
            "language": DEFAULT_LANGUAGE,
        }[info.field_name]

    def missing_fields(self) -> List[str]:
        """Names of required identity fields that are empty"""
        missing = []
        if not self.account:
            missing.append("account")
        if not self.username:
            missing.append("username")
        if not self.agent:
            missing.append("agent")
        return missing

    @property
    def is_valid(self) -> bool:
        """True when account, username and agent are all set"""
        return not self.missing_fields()

    @property
    def has_credentials(self) -> bool:
        """True when a password/token is present"""
        return bool(self.password.get_secret_value())

    def to_storage_dict(self) -> Dict[str, str]:
        """Flat record for the key-value settings store"""
        return {
            "account": self.account,
            "username": self.username,
            "password": self.password.get_secret_value(),
            "warehouse": self.warehouse,
            "database": self.database,
            "schema": self.schema_name,
            "agent": self.agent,
            "language": self.language,
        }

    def to_public_dict(self) -> Dict[str, Any]:
        """Record safe to return to clients (password omitted)"""
        data: Dict[str, Any] = self.to_storage_dict()
        data.pop("password")
        data["has_password"] = self.has_credentials
        return data
