"""Product CRUD endpoints"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from inventory.api.dependencies import get_catalog_service
from inventory.core.config import settings
from inventory.core.limiter import limiter
from inventory.schemas.product import MessageResponse, ProductResponse
from inventory.services.catalog_service import CatalogService

router = APIRouter()


def _form_fields(**fields: Optional[str]) -> dict:
    return {key: value for key, value in fields.items() if value is not None}


@router.get("", response_model=List[ProductResponse])
async def list_products(service: CatalogService = Depends(get_catalog_service)):
    """List every product. Searching and filtering happen client-side."""
    products = await service.list_products()
    return [ProductResponse.model_validate(p) for p in products]


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    service: CatalogService = Depends(get_catalog_service),
):
    """Get a specific product by ID."""
    product = await service.get_product(product_id)
    return ProductResponse.model_validate(product)


@router.post("", response_model=ProductResponse, status_code=201)
@limiter.limit(f"{settings.RATE_LIMIT_PER_MINUTE}/minute")
async def create_product(
    request: Request,
    name: Optional[str] = Form(None, description="Product name"),
    description: Optional[str] = Form(None, description="Product description"),
    quantity: Optional[str] = Form(None, description="Units in stock (integer >= 0)"),
    price: Optional[str] = Form(None, description="Unit price (>= 0)"),
    foto: Optional[UploadFile] = File(None, description="Product image"),
    service: CatalogService = Depends(get_catalog_service),
):
    """
    Create a product from a multipart form.

    The code is generated server-side. Fields arrive as strings and are
    validated and coerced before anything is written.
    """
    fields = _form_fields(name=name, description=description, quantity=quantity, price=price)
    product = await service.create_product(fields, foto, request)
    return ProductResponse.model_validate(product)


@router.put("/{product_id}", response_model=ProductResponse)
@limiter.limit(f"{settings.RATE_LIMIT_PER_MINUTE}/minute")
async def update_product(
    request: Request,
    product_id: str,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    foto: Optional[UploadFile] = File(None, description="Replacement image"),
    service: CatalogService = Depends(get_catalog_service),
):
    """Update the fields that were sent; a new `foto` replaces the image reference."""
    fields = _form_fields(name=name, description=description, quantity=quantity, price=price)
    product = await service.update_product(product_id, fields, foto, request)
    return ProductResponse.model_validate(product)


@router.delete("/{product_id}", response_model=MessageResponse)
@limiter.limit(f"{settings.RATE_LIMIT_PER_MINUTE}/minute")
async def delete_product(
    request: Request,
    product_id: str,
    service: CatalogService = Depends(get_catalog_service),
):
    """Hard-delete a product."""
    await service.delete_product(product_id)
    return MessageResponse(message="Product deleted successfully")
