"""Catalog Store - durable product records with unique code generation"""
import itertools
import logging
import secrets
import threading
import time
from typing import Any, List, Mapping

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.ext.asyncio import AsyncSession

from inventory.core.errors import ConflictError, NotFoundError, StorageError
from inventory.models.product import Product, utcnow

logger = logging.getLogger(__name__)

CODE_PREFIX = "PROD-"

# Assigned by the store, never taken from callers
IMMUTABLE_FIELDS = frozenset({"id", "code", "created_at", "updated_at"})
PRODUCT_COLUMNS = frozenset(column.name for column in Product.__table__.columns)

_sequence = itertools.count()
_sequence_lock = threading.Lock()


def generate_product_code() -> str:
    """
    Build a product code like ``PROD-1729334400123-002A9F1C``.

    Millisecond timestamp, then a per-process sequence (4 hex digits) and a
    random suffix (4 hex digits). The sequence keeps codes minted in the same
    millisecond by this process apart; the random part covers other workers.
    """
    with _sequence_lock:
        seq = next(_sequence) & 0xFFFF
    millis = int(time.time() * 1000)
    return f"{CODE_PREFIX}{millis}-{seq:04X}{secrets.randbelow(0x10000):04X}"


class CatalogStore:
    """
    Product persistence on top of an AsyncSession.

    Each mutating call is one commit. Failures come out as ConflictError
    (unique constraint), NotFoundError (row deleted underneath an update)
    or StorageError (anything else).
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning("Integrity error while trying to %s: %s", action, e.orig)
            raise ConflictError("Product code already exists") from e
        except StaleDataError as e:
            # Row removed by another request after it was loaded
            await self.db.rollback()
            logger.warning("Product vanished while trying to %s: %s", action, e)
            raise NotFoundError("Product not found") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Database error while trying to %s: %s", action, e)
            raise StorageError(f"Could not {action}") from e
        except (OverflowError, TypeError, ValueError) as e:
            # Driver-level conversion failures are not wrapped by SQLAlchemy
            await self.db.rollback()
            logger.error("Could not write values while trying to %s: %s", action, e)
            raise StorageError(f"Could not {action}") from e

    async def insert(self, fields: Mapping[str, Any]) -> Product:
        now = utcnow()
        product = Product(
            code=generate_product_code(),
            created_at=now,
            updated_at=now,
            **{k: v for k, v in fields.items() if k not in IMMUTABLE_FIELDS and k in PRODUCT_COLUMNS},
        )
        self.db.add(product)
        await self._commit("insert product")
        logger.info("Inserted product %s (%s)", product.id, product.code)
        return product

    async def find_all(self) -> List[Product]:
        try:
            result = await self.db.execute(
                select(Product).order_by(Product.created_at, Product.code)
            )
        except SQLAlchemyError as e:
            logger.error("Database error while listing products: %s", e)
            raise StorageError("Could not list products") from e
        return list(result.scalars().all())

    async def find_by_id(self, product_id: str) -> Product:
        try:
            product = await self.db.get(Product, product_id)
        except SQLAlchemyError as e:
            logger.error("Database error while loading product %s: %s", product_id, e)
            raise StorageError("Could not load product") from e
        if product is None:
            raise NotFoundError("Product not found")
        return product

    async def update(self, product_id: str, fields: Mapping[str, Any]) -> Product:
        product = await self.find_by_id(product_id)

        for field, value in fields.items():
            if field in IMMUTABLE_FIELDS or field not in PRODUCT_COLUMNS:
                continue
            setattr(product, field, value)
        product.updated_at = utcnow()

        await self._commit("update product")
        logger.info("Updated product %s fields=%s", product_id, sorted(fields))
        return product

    async def delete(self, product_id: str) -> Product:
        product = await self.find_by_id(product_id)
        await self.db.delete(product)
        await self._commit("delete product")
        logger.info("Deleted product %s (%s)", product_id, product.code)
        return product
