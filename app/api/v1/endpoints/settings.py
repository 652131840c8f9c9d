import logging

from fastapi import APIRouter, Depends

from app.models.trendyol_models import Credentials, SyncResult
from app.schemas.trendyol import TrendyolSettingsRequest
from app.services.trendyol.gateway import MarketplaceSyncGateway, get_gateway

router = APIRouter(prefix="/admin/settings", tags=["settings"])

_logger = logging.getLogger(__name__)


@router.get("/trendyol", response_model=SyncResult)
def get_trendyol_settings(gateway: MarketplaceSyncGateway = Depends(get_gateway)):
    """Current credentials (masked) and whether the integration is ready."""
    return SyncResult(data=gateway.masked_credentials())


@router.post("/trendyol", response_model=SyncResult)
def save_trendyol_settings(
    body: TrendyolSettingsRequest,
    gateway: MarketplaceSyncGateway = Depends(get_gateway),
):
    """Replace the credentials; the next marketplace request uses them."""
    gateway.configure_credentials(Credentials(
        api_key=body.trendyolApiKey,
        api_secret=body.trendyolApiSecret,
        supplier_id=body.trendyolSupplierId,
    ))
    _logger.info("Trendyol settings updated from the admin panel")
    return SyncResult(
        data=gateway.masked_credentials(),
        message="Trendyol settings saved",
    )
