"""API route for the caller's own user record.

Uses /api/v1/user prefix.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from agentsquare.api.deps import get_geolocator, get_resolver
from agentsquare.api.schemas import UserResponse
from agentsquare.db.connection import get_db
from agentsquare.services.config_resolver import ConfigurationResolver
from agentsquare.services.geolocation import GeolocationAdapter
from agentsquare.services.user_service import UserService
from agentsquare.utils.network import get_client_ip

router = APIRouter(prefix="/user", tags=["users"])


@router.get("", response_model=UserResponse)
async def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    resolver: ConfigurationResolver = Depends(get_resolver),
    geolocator: GeolocationAdapter = Depends(get_geolocator),
) -> UserResponse:
    """Return the caller's user record, creating it on first contact."""
    timeout = resolver.timeouts().geolocation

    async def nickname_for(ip: str) -> str:
        return await geolocator.nickname_for(ip, timeout)

    user = await UserService(db).get_or_create(get_client_ip(request), nickname_for)
    return UserResponse.model_validate(user)
