"""Catalog Service - validates input and coordinates image and record storage"""
import logging
from typing import Any, List, Mapping, Optional

from fastapi import Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from inventory.models.product import Product
from inventory.schemas.product import validate_new_product, validate_product_changes
from inventory.services.image_storage import ImageStorage, has_upload
from inventory.services.store import CatalogStore

logger = logging.getLogger(__name__)


class CatalogService:
    """
    Stateless per-request handler for product CRUD.

    Old image files are left on disk when a product's image is replaced or
    the product is deleted, unless ``delete_replaced_images`` is set.
    """

    def __init__(self, db: AsyncSession, images: ImageStorage, delete_replaced_images: bool = False):
        self.store = CatalogStore(db)
        self.images = images
        self.delete_replaced_images = delete_replaced_images

    async def list_products(self) -> List[Product]:
        return await self.store.find_all()

    async def get_product(self, product_id: str) -> Product:
        return await self.store.find_by_id(product_id)

    async def _store_image(self, upload: UploadFile, request: Request) -> str:
        filename = await self.images.save(upload)
        return self.images.public_url(request, filename)

    async def create_product(
        self,
        fields: Mapping[str, Any],
        upload: Optional[UploadFile],
        request: Request,
    ) -> Product:
        """
        Validate, store the image, insert the record.

        A product created without an image gets an empty imageRef.
        """
        data = validate_new_product(fields)

        image_ref = ""
        if has_upload(upload):
            image_ref = await self._store_image(upload, request)
        else:
            logger.warning("Creating product %r without an image", data.name)

        try:
            return await self.store.insert({**data.model_dump(), "image_ref": image_ref})
        except Exception:
            # The record was never written, so nothing references the new file
            self.images.remove(image_ref)
            raise

    async def update_product(
        self,
        product_id: str,
        fields: Mapping[str, Any],
        upload: Optional[UploadFile],
        request: Request,
    ) -> Product:
        changes = validate_product_changes(fields).model_dump(exclude_unset=True)
        current = await self.store.find_by_id(product_id)
        previous_image_ref = current.image_ref

        new_image_ref = None
        if has_upload(upload):
            new_image_ref = await self._store_image(upload, request)
            changes["image_ref"] = new_image_ref

        try:
            product = await self.store.update(product_id, changes)
        except Exception:
            if new_image_ref:
                self.images.remove(new_image_ref)
            raise

        if new_image_ref and self.delete_replaced_images and previous_image_ref != new_image_ref:
            self.images.remove(previous_image_ref)
        return product

    async def delete_product(self, product_id: str) -> Product:
        product = await self.store.delete(product_id)
        if self.delete_replaced_images:
            self.images.remove(product.image_ref)
        return product
