"""Request-scoped service wiring"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from inventory.core.config import settings
from inventory.core.database import get_db
from inventory.services.catalog_service import CatalogService
from inventory.services.image_storage import ImageStorage


def get_image_storage() -> ImageStorage:
    return ImageStorage(
        directory=settings.UPLOAD_DIR,
        url_path=settings.UPLOAD_URL_PATH,
        max_bytes=settings.MAX_UPLOAD_BYTES,
    )


def get_catalog_service(
    db: AsyncSession = Depends(get_db),
    images: ImageStorage = Depends(get_image_storage),
) -> CatalogService:
    return CatalogService(db, images, delete_replaced_images=settings.DELETE_REPLACED_IMAGES)
