"""
Settings Endpoint
Read and write the stored connection settings record
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from vibecoding.api.v1.dependencies import get_client_id, get_settings_repository
from vibecoding.domain.models.connection_settings import ConnectionSettings
from vibecoding.domain.services.settings_repository import SettingsRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["Settings"])


class SettingsUpdate(BaseModel):
    """Fields a client may change; omitted fields keep their stored value"""
    model_config = ConfigDict(populate_by_name=True)

    account: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    warehouse: Optional[str] = None
    database: Optional[str] = None
    schema_name: Optional[str] = Field(None, alias="schema")
    agent: Optional[str] = None
    language: Optional[str] = None


@router.get("")
async def get_settings(
    client_id: str = Depends(get_client_id),
    repository: SettingsRepository = Depends(get_settings_repository)
) -> Dict[str, Any]:
    """Stored settings without the password"""
    settings = await repository.load(client_id)
    return settings.to_public_dict()


@router.put("")
async def update_settings(
    body: SettingsUpdate,
    client_id: str = Depends(get_client_id),
    repository: SettingsRepository = Depends(get_settings_repository)
) -> Dict[str, Any]:
    """
    Merge and save settings.

    Returns:
        {success, message, settings} with the password omitted
    """
    current = await repository.load(client_id)
    data = current.to_storage_dict()

    update = body.model_dump(exclude_none=True)
    if "schema_name" in update:
        update["schema"] = update.pop("schema_name")
    if not update.get("password"):
        update.pop("password", None)
    data.update(update)

    try:
        settings = ConnectionSettings.model_validate(data)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    await repository.save(settings, client_id)
    return {
        "success": True,
        "message": "Settings saved successfully!",
        "settings": settings.to_public_dict(),
    }
