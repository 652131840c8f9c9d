"""Request/response bodies for the Trendyol admin endpoints."""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from app.models.trendyol_models import LocalProduct


class TrendyolSettingsRequest(BaseModel):
    """Admin settings form. Field names follow the admin UI."""
    trendyolApiKey: str = ""
    trendyolApiSecret: str = ""
    trendyolSupplierId: str = ""


class PushProductRequest(BaseModel):
    product: LocalProduct
    brand: Optional[Union[int, str]] = Field(None, description="Marketplace brand id or name")
    category: Optional[Union[int, str]] = Field(None, description="Marketplace category id or name")
    attributes: List[Dict[str, Any]] = Field(default_factory=list)


class ImportProductRequest(BaseModel):
    category_id: Optional[str] = Field(None, description="Local category for the imported draft")


class StockUpdateRequest(BaseModel):
    # Lines are validated by the inventory service so errors can point at an index.
    items: List[Dict[str, Any]]
    watch: bool = Field(False, description="Queue a background watcher for the batch")


class WatchBatchRequest(BaseModel):
    poll_interval: Optional[float] = Field(None, gt=0)
    max_wait: Optional[float] = Field(None, gt=0)
