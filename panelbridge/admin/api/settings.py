"""
API endpoints для управления настройками (ключ API панели).
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from panelbridge.admin.dependencies import CurrentUser, get_current_user, get_panel_service
from panelbridge.admin.models.schemas import OkResponse, PanelKeyUpdate, SettingsResponse
from panelbridge.services.panel_service import PanelService, SettingsValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=SettingsResponse)
async def get_settings(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[PanelService, Depends(get_panel_service)],
):
    """Сохранённые настройки."""
    return SettingsResponse(settings=await service.get_settings())


@router.put("/panel-key", response_model=OkResponse)
async def update_panel_key(
    update: PanelKeyUpdate,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[PanelService, Depends(get_panel_service)],
):
    """Обновить ключ API панели (не короче 10 символов)."""
    try:
        await service.update_settings(update.panel_key)
    except SettingsValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return OkResponse(ok=True, message="Panel API key updated successfully")
