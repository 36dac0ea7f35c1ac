"""
Products API endpoints: catalog CRUD, stock history and CSV import/export.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request, UploadFile, File
from fastapi.responses import Response
from sqlalchemy.orm import Session

from catalog.core.config import settings
from catalog.core.database import get_db
from catalog.error_handlers import InputError
from catalog.middleware import limiter
from catalog.schemas.history import InventoryHistoryResponse
from catalog.schemas.imports import ImportResult
from catalog.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductListResponse,
    ProductSearchResponse,
    ProductDeleteResponse
)
from catalog.services.catalog import ProductCatalog
from catalog.services.exporter import export_products_csv
from catalog.services.images import ImageResolver, encode_data_uri, sniff_image
from catalog.services.importer import ProductImporter, TempUpload

router = APIRouter(prefix="/products", tags=["Products"])


def get_catalog(db: Session = Depends(get_db)) -> ProductCatalog:
    return ProductCatalog(db)


def get_image_resolver():
    """Image resolver for one request; its HTTP session is closed afterwards."""
    resolver = ImageResolver()
    try:
        yield resolver
    finally:
        resolver.session.close()


@router.get("", response_model=ProductListResponse)
def list_products(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=settings.max_page_size),
    sort: str = Query("name"),
    name: Optional[str] = None,
    catalog: ProductCatalog = Depends(get_catalog)
):
    """
    List products with pagination and sorting.

    - **page**: Page number (starts at 1)
    - **limit**: Items per page
    - **sort**: Comma separated fields, prefix with '-' for descending
    - **name**: Case-insensitive name filter
    """
    limit = limit or settings.default_page_size
    total, products = catalog.list_products(page=page, limit=limit, sort=sort, name=name)

    return ProductListResponse(
        total=total,
        page=page,
        pages=(total + limit - 1) // limit,
        products=products
    )


@router.get("/search", response_model=ProductSearchResponse)
def search_products(
    name: Optional[str] = None,
    catalog: ProductCatalog = Depends(get_catalog)
):
    """Search products whose name contains the given text (case-insensitive)."""
    if not name or not name.strip():
        raise InputError("Name query parameter is required")
    return ProductSearchResponse(products=catalog.search(name.strip()))


@router.get("/export")
def export_products(catalog: ProductCatalog = Depends(get_catalog)):
    """Download the whole catalog as CSV."""
    csv_data = export_products_csv(catalog)
    if csv_data is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No products found"
        )

    return Response(
        content=csv_data,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="products.csv"'}
    )


@router.post("/import", response_model=ImportResult)
@limiter.limit(settings.import_rate_limit)
def import_products(
    request: Request,
    file: Optional[UploadFile] = File(None),
    catalog: ProductCatalog = Depends(get_catalog),
    image_resolver: ImageResolver = Depends(get_image_resolver)
):
    """
    Bulk import products from a CSV file.

    Columns: name, unit, category, brand, stock, status, image.
    Rows missing a required column are ignored; names already in the
    catalog are returned in **skipped**.
    """
    if file is None:
        raise InputError("No file uploaded")

    content = file.file.read()
    if not content:
        raise InputError("Uploaded file is empty")
    if len(content) > settings.max_upload_size:
        raise InputError(
            "Uploaded file is too large",
            details={"max_upload_size": settings.max_upload_size}
        )

    upload = TempUpload.from_bytes(content, file.filename)
    return ProductImporter(catalog, image_resolver).run(upload)


@router.post("/add", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def add_product(
    product_data: ProductCreate,
    catalog: ProductCatalog = Depends(get_catalog)
):
    """
    Create a new product.

    - **name**: Unique product name
    - **stock**: Initial stock quantity
    - **status**: Optional, derived from stock when omitted
    """
    return catalog.create(product_data)


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: int,
    catalog: ProductCatalog = Depends(get_catalog)
):
    """Get a specific product by ID."""
    return catalog.get(product_id)


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: int,
    product_data: ProductUpdate,
    catalog: ProductCatalog = Depends(get_catalog)
):
    """
    Update a product.

    Only provided fields will be updated. A stock change is recorded in the
    product's history under **actor** (default "System").
    """
    return catalog.update(product_id, product_data)


@router.post("/{product_id}/image", response_model=ProductResponse)
def upload_product_image(
    product_id: int,
    image: UploadFile = File(...),
    catalog: ProductCatalog = Depends(get_catalog)
):
    """Replace a product's image with an uploaded file."""
    if not (image.content_type or "").startswith("image/"):
        raise InputError("Only image files are allowed")

    content = image.file.read()
    try:
        sniff_image(content)
    except ValueError as e:
        raise InputError("Uploaded file is not a readable image", details={"reason": str(e)})

    return catalog.set_image(product_id, encode_data_uri(content, image.content_type))


@router.delete("/{product_id}", response_model=ProductDeleteResponse)
def delete_product(
    product_id: int,
    catalog: ProductCatalog = Depends(get_catalog)
):
    """Delete a product. Its recorded stock history is retained."""
    catalog.delete(product_id)
    return ProductDeleteResponse(message="Product deleted successfully", product_id=product_id)


@router.get("/{product_id}/history", response_model=list[InventoryHistoryResponse])
def get_history(
    product_id: int,
    catalog: ProductCatalog = Depends(get_catalog)
):
    """Stock change history of a product, newest first."""
    return catalog.history(product_id)
