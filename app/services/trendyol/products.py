"""Trendyol product push (storefront -> marketplace) and import (marketplace -> storefront)."""

import hashlib
import json
import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from app.constants.trendyol import ReferenceKind
from app.core.config import settings
from app.core.errors import NotFoundError, ValidationError
from app.models.trendyol_models import (
    LocalProduct,
    LocalProductDraft,
    MarketplaceProduct,
    ProductAttribute,
    ProductImage,
)
from app.services.trendyol.client import MarketplaceClient
from app.services.trendyol.reference_cache import CatalogReferenceCache
from app.services.trendyol.retry import RetryPolicy

__logger__ = logging.getLogger(__name__)


def content_fingerprint(product: MarketplaceProduct) -> str:
    """
    Stable hash of a product payload.

    Pushes are not idempotent upstream (each one is a new batch), so a
    caller that wants to skip re-sending unchanged products can compare
    ``barcode`` + fingerprint with what it sent last time.
    """
    payload = json.dumps(product.to_create_payload(), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(f"{product.barcode}|{payload}".encode("utf-8")).hexdigest()


class ProductSyncService:
    """
    Pushes storefront products to the marketplace and maps marketplace
    products back into storefront drafts.

    ``push`` returns the batch request id as soon as the marketplace
    accepts the submission; approval happens later and is observed by
    polling the batch (see InventorySyncService.await_completion). Pushing
    the same barcode twice creates two submissions; the marketplace keeps
    the last one.
    """

    def __init__(
        self,
        client: MarketplaceClient,
        reference_cache: CatalogReferenceCache,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.client = client
        self.reference_cache = reference_cache
        self.retry_policy = retry_policy or RetryPolicy.none()

    def _resolve_category(self, product: LocalProduct, category: Union[int, str, None]) -> int:
        lookup = category if category is not None else (product.category_name or product.category_id)
        if lookup is None:
            raise NotFoundError(f"Product {product.sku} has no category to map to the marketplace")
        try:
            return self.reference_cache.resolve(ReferenceKind.CATEGORY, lookup)
        except NotFoundError as e:
            raise NotFoundError(
                f"Category '{lookup}' of product {product.sku} has no marketplace match",
                details={"sku": product.sku, "category": lookup},
            ) from e

    def _resolve_brand(self, product: LocalProduct, brand: Union[int, str, None]) -> int:
        lookup = brand if brand is not None else (product.brand_name or settings.trendyol_default_brand)
        if lookup is None:
            raise NotFoundError(f"Product {product.sku} has no brand to map to the marketplace")
        try:
            return self.reference_cache.resolve(ReferenceKind.BRAND, lookup)
        except NotFoundError as e:
            raise NotFoundError(
                f"Brand '{lookup}' of product {product.sku} has no marketplace match",
                details={"sku": product.sku, "brand": lookup},
            ) from e

    def build_marketplace_product(
        self,
        product: LocalProduct,
        category_id: int,
        brand_id: int,
        attributes: Optional[List[Union[ProductAttribute, Dict[str, Any]]]] = None,
    ) -> MarketplaceProduct:
        """Map a storefront product to the marketplace create payload."""
        sale_price = product.discount_price if product.discount_price else product.price
        return MarketplaceProduct(
            barcode=product.sku,
            title=product.name,
            product_main_id=product.sku,
            brand_id=brand_id,
            category_id=category_id,
            quantity=product.stock,
            stock_code=product.sku,
            dimensional_weight=settings.trendyol_dimensional_weight,
            description=product.description or product.name,
            currency_type=settings.trendyol_currency,
            list_price=product.price,
            sale_price=sale_price,
            vat_rate=settings.trendyol_vat_rate,
            cargo_company_id=settings.trendyol_cargo_company_id,
            images=[ProductImage(url=url) for url in product.images],
            attributes=self.validate_attributes(attributes),
        )

    @staticmethod
    def validate_attributes(
        attributes: Optional[List[Union[ProductAttribute, Dict[str, Any]]]],
    ) -> List[ProductAttribute]:
        validated = []
        for index, raw in enumerate(attributes or []):
            if isinstance(raw, ProductAttribute):
                validated.append(raw)
                continue
            try:
                validated.append(ProductAttribute.model_validate(raw))
            except PydanticValidationError as e:
                raise ValidationError(
                    f"Attribute {index} is malformed: {e.errors()[0].get('msg')}",
                    index=index,
                    field="attributes",
                ) from e
        return validated

    def push(
        self,
        product: LocalProduct,
        brand: Union[int, str, None] = None,
        category: Union[int, str, None] = None,
        attributes: Optional[List[Union[ProductAttribute, Dict[str, Any]]]] = None,
    ) -> str:
        """
        Submit one storefront product for creation on the marketplace.

        Category and brand are resolved before anything is sent; an
        unknown one raises NotFoundError and no submission is made.
        Malformed attributes raise ValidationError before any lookup.
        Returns the batch request id.
        """
        attributes = self.validate_attributes(attributes)
        category_id = self._resolve_category(product, category)
        brand_id = self._resolve_brand(product, brand)
        marketplace_product = self.build_marketplace_product(product, category_id, brand_id, attributes)
        __logger__.info(
            f"Pushing product {product.sku} to Trendyol "
            f"(category={category_id}, brand={brand_id})"
        )
        return self.retry_policy.call(
            lambda: self.client.create_products([marketplace_product]),
            description=f"create product {product.sku}",
        )

    @staticmethod
    def import_product(remote: MarketplaceProduct, category_id: Optional[str] = None) -> LocalProductDraft:
        """Map a marketplace product to a storefront draft. Nothing is persisted here."""
        discount_price = None
        if remote.sale_price and remote.list_price and remote.sale_price < remote.list_price:
            discount_price = remote.sale_price
        stock_code = remote.stock_code or remote.barcode
        return LocalProductDraft(
            sku=remote.barcode or stock_code,
            name=remote.title,
            description=remote.description or f"Imported from Trendyol. Stock code: {stock_code}",
            price=remote.list_price,
            discount_price=discount_price,
            images=[image.url for image in remote.images],
            category_id=category_id,
            stock=remote.quantity,
            is_active=True,
            is_new=True,
        )

    def import_by_barcode(self, barcode: str, category_id: Optional[str] = None) -> LocalProductDraft:
        remote = self.retry_policy.call(
            lambda: self.client.get_product_by_barcode(barcode),
            description=f"fetch product {barcode}",
        )
        return self.import_product(remote, category_id=category_id)
