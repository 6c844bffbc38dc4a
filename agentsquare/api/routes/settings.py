"""API routes for global settings management (admin only).

Provides GET/PATCH for the settings singleton. Secrets are only ever
returned masked. All endpoints use /api/v1/settings prefix.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from agentsquare.api.middleware.auth import require_admin
from agentsquare.api.schemas import SettingsPatch, SettingsResponse
from agentsquare.db.connection import get_db
from agentsquare.errors import AgentSquareError
from agentsquare.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/settings",
    tags=["settings"],
    dependencies=[Depends(require_admin)],
)


def _get_service(db: Session = Depends(get_db)) -> SettingsService:
    """Dependency injector for SettingsService."""
    return SettingsService(db)


@router.get("", response_model=SettingsResponse)
def get_settings(
    service: SettingsService = Depends(_get_service),
    db: Session = Depends(get_db),
) -> SettingsResponse:
    """Get all settings with secrets masked."""
    view = service.masked_view()
    db.commit()
    return SettingsResponse.model_validate(view)


@router.patch("", response_model=SettingsResponse)
def update_settings(
    data: SettingsPatch,
    service: SettingsService = Depends(_get_service),
    db: Session = Depends(get_db),
) -> SettingsResponse:
    """Update settings (patch semantics).

    Masked secret values are ignored and an empty string clears a field.
    """
    updates = {k: v for k, v in data.model_dump().items() if v is not None}
    if not updates:
        raise AgentSquareError.from_code("VALIDATION_ERROR", reason="No fields to update.")
    try:
        service.update(updates)
    except ValueError as e:
        raise AgentSquareError.from_code("VALIDATION_ERROR", reason=str(e)) from None
    db.commit()
    return SettingsResponse.model_validate(service.masked_view())
