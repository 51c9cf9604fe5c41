"""
Per-user trading settings API.

Settings are stored and returned as-is; nothing in the scan or execution
path reads them.
"""

from fastapi import APIRouter, Depends, Request

from api.routes import get_services
from models.trading_settings import TradingSettingsUpdate
from services.container import ServiceContainer
from utils.logger import api_logger as logger
from utils.validation import validate_request

router = APIRouter()


@router.get("/settings/{user_id}")
async def get_settings(user_id: str, services: ServiceContainer = Depends(get_services)):
    """Return settings for a user, creating defaults on first read"""
    return services.trading_settings.get(user_id).to_wire()


@router.post("/settings/{user_id}")
async def update_settings(
    user_id: str,
    request: Request,
    services: ServiceContainer = Depends(get_services),
):
    """Merge a partial settings update onto the user's record"""
    try:
        payload = await request.json()
    except ValueError:
        payload = None
    update = validate_request(TradingSettingsUpdate, payload, error="Invalid settings data")
    updated = services.trading_settings.update(user_id, update)
    logger.info(
        "Trading settings updated",
        user_id=user_id,
        fields=sorted(update.model_dump(exclude_unset=True, exclude_none=True)),
    )
    return updated.to_wire()
