import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.constants.trendyol import TrendyolDefault
from app.models.trendyol_models import SyncResult
from app.schemas.trendyol import (
    ImportProductRequest,
    PushProductRequest,
    StockUpdateRequest,
    WatchBatchRequest,
)
from app.services.trendyol.gateway import MarketplaceSyncGateway, get_gateway

router = APIRouter(prefix="/trendyol", tags=["trendyol"])

_logger = logging.getLogger(__name__)


def _dump(model):
    return model.model_dump(mode="json")


@router.get("/status", response_model=SyncResult)
def connection_status(gateway: MarketplaceSyncGateway = Depends(get_gateway)):
    """Whether credentials are configured and the marketplace answers."""
    return SyncResult(data=gateway.connection_status())


# ==================== Products ====================

@router.get("/products", response_model=SyncResult)
def list_products(
    page: int = Query(0, ge=0),
    size: int = Query(TrendyolDefault.PAGE_SIZE, ge=1, le=TrendyolDefault.MAX_PAGE_SIZE),
    barcode: Optional[str] = None,
    approved: Optional[bool] = None,
    on_sale: Optional[bool] = Query(None, alias="onSale"),
    gateway: MarketplaceSyncGateway = Depends(get_gateway),
):
    products = gateway.list_remote_products(
        page=page, size=size, approved=approved, barcode=barcode, on_sale=on_sale
    )
    return SyncResult(data=_dump(products))


@router.get("/products/{barcode}", response_model=SyncResult)
def get_product(barcode: str, gateway: MarketplaceSyncGateway = Depends(get_gateway)):
    return SyncResult(data=_dump(gateway.get_remote_product(barcode)))


@router.post("/products/sync", response_model=SyncResult)
def push_product(body: PushProductRequest, gateway: MarketplaceSyncGateway = Depends(get_gateway)):
    """Send a storefront product to Trendyol. Approval is reported later through the batch request."""
    batch_id = gateway.push_product(
        body.product, brand=body.brand, category=body.category, attributes=body.attributes
    )
    _logger.info(f"Product {body.product.sku} pushed to Trendyol, batch {batch_id}")
    return SyncResult(
        data={"batch_request_id": batch_id, "barcode": body.product.sku},
        message="Product submitted to Trendyol",
    )


@router.post("/products/{barcode}/import", response_model=SyncResult)
def import_product(
    barcode: str,
    body: Optional[ImportProductRequest] = None,
    gateway: MarketplaceSyncGateway = Depends(get_gateway),
):
    """Build a storefront product draft from a Trendyol product. The caller saves it."""
    draft = gateway.import_product(barcode, category_id=body.category_id if body else None)
    return SyncResult(data=_dump(draft))


# ==================== Stock and batches ====================

@router.put("/stock", response_model=SyncResult)
def update_stock(body: StockUpdateRequest, gateway: MarketplaceSyncGateway = Depends(get_gateway)):
    batch_id = gateway.submit_stock_update(body.items)
    data = {"batch_request_id": batch_id, "item_count": len(body.items)}
    if body.watch:
        from app.tasks.batch_tasks import watch_batch_request
        data["watch_task_id"] = watch_batch_request.delay(batch_id).id
    return SyncResult(data=data, message="Stock update submitted")


@router.get("/batch-requests/{batch_id}", response_model=SyncResult)
def get_batch_request(batch_id: str, gateway: MarketplaceSyncGateway = Depends(get_gateway)):
    batch = gateway.poll_batch(batch_id)
    return SyncResult(data=batch.summary())


@router.post("/batch-requests/{batch_id}/watch", response_model=SyncResult)
def watch_batch(batch_id: str, body: Optional[WatchBatchRequest] = None):
    """Queue a background watcher; revoke the returned task id to stop watching."""
    from app.tasks.batch_tasks import watch_batch_request
    body = body or WatchBatchRequest()
    task = watch_batch_request.delay(batch_id, body.poll_interval, body.max_wait)
    return SyncResult(data={"batch_request_id": batch_id, "task_id": task.id})


# ==================== Orders ====================

@router.get("/orders", response_model=SyncResult)
def list_orders(
    page: int = Query(0, ge=0),
    size: int = Query(TrendyolDefault.PAGE_SIZE, ge=1, le=TrendyolDefault.MAX_PAGE_SIZE),
    status: Optional[str] = None,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    gateway: MarketplaceSyncGateway = Depends(get_gateway),
):
    orders = gateway.list_remote_orders(
        page=page, size=size, status=status, start_date=start_date, end_date=end_date
    )
    return SyncResult(data=_dump(orders))


@router.post("/orders/{order_id}/invoice", response_model=SyncResult)
def create_invoice(order_id: str, gateway: MarketplaceSyncGateway = Depends(get_gateway)):
    invoice = gateway.create_invoice_for_order(order_id)
    return SyncResult(data=_dump(invoice), message="Invoice created")


# ==================== Reference data ====================

@router.get("/reference/{kind}", response_model=SyncResult)
def list_reference_data(kind: str, gateway: MarketplaceSyncGateway = Depends(get_gateway)):
    """Categories, brands or cargo providers, served from the reference cache."""
    return SyncResult(data=[_dump(e) for e in gateway.list_reference_data(kind)])


@router.post("/reference/{kind}/refresh", response_model=SyncResult)
def refresh_reference_data(kind: str, gateway: MarketplaceSyncGateway = Depends(get_gateway)):
    entries = gateway.refresh_reference_data(kind)
    return SyncResult(data={"kind": kind, "count": len(entries)}, message="Reference data reloaded")


@router.get("/categories/{category_id}/attributes", response_model=SyncResult)
def get_category_attributes(category_id: int, gateway: MarketplaceSyncGateway = Depends(get_gateway)):
    return SyncResult(data=_dump(gateway.get_category_attributes(category_id)))
