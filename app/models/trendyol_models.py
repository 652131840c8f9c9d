"""Pydantic models for the Trendyol seller API and the storefront side of a sync."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from app.constants.trendyol import BatchItemStatus
from app.core.errors import UnmappedStatusError

T = TypeVar("T")


class TrendyolModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ==================== Credentials ====================

class Credentials(BaseModel):
    """The three secrets needed to talk to the marketplace. Immutable."""

    model_config = ConfigDict(frozen=True)

    api_key: str = ""
    api_secret: str = ""
    supplier_id: str = ""

    @property
    def missing_fields(self) -> List[str]:
        return [
            name for name in ("api_key", "api_secret", "supplier_id")
            if not (getattr(self, name) or "").strip()
        ]

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields

    def masked(self) -> Dict[str, str]:
        def _mask(value: str) -> str:
            if not value:
                return ""
            return value[:4] + "*" * max(len(value) - 4, 4)

        return {
            "api_key": _mask(self.api_key),
            "api_secret": "*" * 8 if self.api_secret else "",
            "supplier_id": self.supplier_id,
        }


# ==================== Products ====================

class ProductImage(TrendyolModel):
    url: str


class ProductAttribute(TrendyolModel):
    attribute_id: int
    attribute_value_id: Optional[int] = None
    custom_attribute_value: Optional[str] = None
    attribute_name: Optional[str] = None
    attribute_value: Optional[str] = None


class MarketplaceProduct(TrendyolModel):
    """A product as the marketplace knows it. ``barcode`` is the natural key."""

    id: Optional[str] = None
    barcode: str
    title: str
    product_main_id: Optional[str] = None
    brand_id: Optional[int] = None
    brand_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("brandName", "brand", "brand_name")
    )
    category_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("categoryId", "pimCategoryId", "category_id")
    )
    category_name: Optional[str] = None
    quantity: int = Field(0, ge=0)
    stock_code: Optional[str] = None
    dimensional_weight: Optional[float] = None
    description: Optional[str] = None
    currency_type: Optional[str] = None
    list_price: float = Field(0, ge=0)
    sale_price: float = Field(0, ge=0)
    vat_rate: Optional[int] = None
    cargo_company_id: Optional[int] = None
    images: List[ProductImage] = Field(default_factory=list)
    attributes: List[ProductAttribute] = Field(default_factory=list)

    # Owned by the marketplace; read, never written.
    approved: Optional[bool] = None
    on_sale: Optional[bool] = None

    @model_validator(mode="before")
    @classmethod
    def _coerce_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("id"), int):
            data = {**data, "id": str(data["id"])}
        return data

    def to_create_payload(self) -> Dict[str, Any]:
        """Body item for ``POST v2/products``; marketplace-owned fields are left out."""
        return self.model_dump(
            by_alias=True,
            exclude_none=True,
            mode="json",
            exclude={"id", "approved", "on_sale", "brand_name", "category_name"},
        )


class StockPriceUpdate(TrendyolModel):
    """
    One line of a price-and-inventory batch.

    Fields are deliberately loose so a malformed line can still be
    represented and rejected by InventorySyncService with its index.
    """

    barcode: Optional[str] = None
    quantity: Optional[int] = None
    sale_price: Optional[float] = None
    list_price: Optional[float] = None


# ==================== Batch requests ====================

class BatchStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (BatchStatus.DONE, BatchStatus.FAILED)

    @classmethod
    def from_api(cls, raw: Optional[str]) -> "BatchStatus":
        """Map the marketplace spelling; unknown values fail loudly."""
        key = (raw or "").strip().upper()
        try:
            return _UPSTREAM_BATCH_STATUS[key]
        except KeyError:
            raise UnmappedStatusError(
                f"Unknown batch request status '{raw}'", details={"status": raw}
            )


_UPSTREAM_BATCH_STATUS = {
    "PENDING": BatchStatus.PENDING,
    "CREATED": BatchStatus.PENDING,
    "WAITING": BatchStatus.PENDING,
    "PROCESSING": BatchStatus.PROCESSING,
    "IN_PROGRESS": BatchStatus.PROCESSING,
    "DONE": BatchStatus.DONE,
    "COMPLETED": BatchStatus.DONE,
    "FAILED": BatchStatus.FAILED,
}


class BatchItemResult(BaseModel):
    index: int
    barcode: Optional[str] = None
    status: str = BatchItemStatus.SUCCESS
    failure_reasons: List[str] = Field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.status.upper() == BatchItemStatus.FAILED or bool(self.failure_reasons)


class BatchRequest(BaseModel):
    id: str
    status: BatchStatus
    items: List[BatchItemResult] = Field(default_factory=list)
    item_count: Optional[int] = None
    failed_item_count: Optional[int] = None
    raw_status: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def failed_items(self) -> List[BatchItemResult]:
        return [item for item in self.items if item.failed]

    @property
    def failed_barcodes(self) -> List[str]:
        return [item.barcode for item in self.failed_items if item.barcode]

    @property
    def failure_reasons(self) -> Dict[str, List[str]]:
        """Failure reasons keyed by barcode (or ``#<index>`` when the barcode is unknown)."""
        reasons: Dict[str, List[str]] = {}
        for item in self.failed_items:
            key = item.barcode or f"#{item.index}"
            reasons.setdefault(key, []).extend(item.failure_reasons)
        return reasons

    @classmethod
    def from_api(cls, batch_id: str, data: Dict[str, Any]) -> "BatchRequest":
        items = []
        for index, raw_item in enumerate(data.get("items") or []):
            request_item = raw_item.get("requestItem") or {}
            barcode = (
                request_item.get("barcode")
                or (request_item.get("product") or {}).get("barcode")
                or raw_item.get("barcode")
            )
            reasons = raw_item.get("failureReasons") or []
            items.append(BatchItemResult(
                index=index,
                barcode=barcode,
                status=raw_item.get("status") or BatchItemStatus.SUCCESS,
                failure_reasons=[_reason_text(r) for r in reasons],
            ))
        raw_status = data.get("status")
        return cls(
            id=str(data.get("batchRequestId") or batch_id),
            status=BatchStatus.from_api(raw_status),
            items=items,
            item_count=data.get("itemCount"),
            failed_item_count=data.get("failedItemCount"),
            raw_status=raw_status,
        )

    def summary(self) -> Dict[str, Any]:
        return {
            "batch_request_id": self.id,
            "status": self.status.value,
            "item_count": self.item_count if self.item_count is not None else len(self.items),
            "failed_item_count": len(self.failed_items),
            "failures": self.failure_reasons,
        }


def _reason_text(reason: Any) -> str:
    if isinstance(reason, dict):
        return str(reason.get("message") or reason.get("reason") or reason)
    return str(reason)


# ==================== Orders ====================

class OrderLine(TrendyolModel):
    id: Optional[int] = None
    barcode: Optional[str] = None
    product_name: Optional[str] = None
    merchant_sku: Optional[str] = None
    quantity: int = 0
    price: Optional[float] = None


class MarketplaceOrder(TrendyolModel):
    """Read-only order snapshot imported from the marketplace."""

    id: Optional[int] = None
    order_number: str
    status: Optional[str] = None
    total_price: Optional[float] = None
    customer_first_name: Optional[str] = None
    customer_last_name: Optional[str] = None
    order_date: Optional[datetime] = None
    lines: List[OrderLine] = Field(default_factory=list)

    @property
    def customer_name(self) -> str:
        return " ".join(p for p in (self.customer_first_name, self.customer_last_name) if p)


class InvoiceReference(BaseModel):
    order_id: Optional[int] = None
    order_number: str
    invoice_number: str
    created_at: datetime


# ==================== Reference data ====================

class ReferenceEntry(TrendyolModel):
    id: int
    name: str
    status: Optional[str] = None
    parent_id: Optional[int] = None
    code: Optional[str] = None


class AttributeValue(BaseModel):
    id: int
    name: str


class CategoryAttribute(BaseModel):
    attribute_id: int
    name: str
    required: bool = False
    allow_custom: bool = False
    varianter: bool = False
    values: List[AttributeValue] = Field(default_factory=list)


class AttributeSchema(BaseModel):
    category_id: int
    name: Optional[str] = None
    attributes: List[CategoryAttribute] = Field(default_factory=list)

    @property
    def required_attribute_ids(self) -> List[int]:
        return [a.attribute_id for a in self.attributes if a.required]

    @classmethod
    def from_api(cls, category_id: int, data: Dict[str, Any]) -> "AttributeSchema":
        attributes = []
        for raw in data.get("categoryAttributes") or []:
            attribute = raw.get("attribute") or {}
            attributes.append(CategoryAttribute(
                attribute_id=attribute.get("id"),
                name=attribute.get("name") or "",
                required=bool(raw.get("required")),
                allow_custom=bool(raw.get("allowCustom")),
                varianter=bool(raw.get("varianter")),
                values=[
                    AttributeValue(id=v["id"], name=v.get("name") or "")
                    for v in raw.get("attributeValues") or []
                ],
            ))
        return cls(
            category_id=data.get("id") or category_id,
            name=data.get("displayName") or data.get("name"),
            attributes=attributes,
        )


# ==================== Pagination ====================

class Page(TrendyolModel, Generic[T]):
    page: int = 0
    size: int = 0
    total_elements: Optional[int] = None
    total_pages: Optional[int] = None
    content: List[T] = Field(default_factory=list)


# ==================== Storefront side ====================

class LocalProduct(BaseModel):
    """Storefront product as handed over by the admin collaborator for a push."""

    sku: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    price: float = Field(..., gt=0)
    discount_price: Optional[float] = Field(None, ge=0)
    images: List[str] = Field(default_factory=list)
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    brand_name: Optional[str] = None
    stock: int = Field(0, ge=0)


class LocalProductDraft(BaseModel):
    """Storefront product built from a marketplace product; the caller persists it."""

    sku: str
    name: str
    description: str = ""
    price: float
    discount_price: Optional[float] = None
    images: List[str] = Field(default_factory=list)
    category_id: Optional[str] = None
    stock: int = 0
    is_active: bool = True
    is_new: bool = True


class SyncResult(BaseModel):
    """Envelope returned by the admin API."""

    success: bool = True
    data: Any = None
    message: Optional[str] = None
