from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from emporium.deps import get_db
from emporium.models import Category, Product
from emporium.schemas.product import (
    CategoryIn,
    CategoryOut,
    ProductCreate,
    ProductImageOut,
    ProductOut,
    ProductPage,
    ProductSizeOut,
    ProductUpdate,
    StockStatus,
    ToggleArchiveIn,
)
from emporium.services.catalog_service import CatalogService, page_meta, stock_status
from emporium.utils.security import Identity, require_admin, require_admin_role

router = APIRouter()
admin_router = APIRouter()

catalog_writer = require_admin_role("GOD", "MANAGER")


def to_category_out(c: Category) -> CategoryOut:
    return CategoryOut(id=c.id, name=c.name, description=c.description)


def to_product_out(p: Product) -> ProductOut:
    total = p.total_stock
    return ProductOut(
        id=p.id,
        name=p.name,
        description=p.description,
        price=float(p.price),
        categoryId=p.category_id,
        category=to_category_out(p.category) if p.category else None,
        isArchived=bool(p.is_archived),
        stock=total,
        stockStatus=stock_status(total),
        images=[ProductImageOut(id=i.id, url=i.url, altText=i.alt_text, productId=i.product_id) for i in p.images],
        sizes=[ProductSizeOut(size=s.size, quantity=s.quantity) for s in p.sizes],
        createdAt=p.created_at,
        updatedAt=p.updated_at,
    )


# Public catalog
@router.get("/api/products", response_model=ProductPage)
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    name: Optional[str] = None,
    categoryId: Optional[int] = None,
    minPrice: Optional[float] = Query(None, ge=0),
    maxPrice: Optional[float] = Query(None, ge=0),
    stockStatus: Optional[StockStatus] = None,
    db: Session = Depends(get_db),
):
    """List non-archived products with optional name/category/price/stock filters."""
    products, total = CatalogService(db).list_products(
        page=page,
        limit=limit,
        name=name,
        category_id=categoryId,
        min_price=minPrice,
        max_price=maxPrice,
        stock_status=stockStatus,
    )
    return ProductPage(data=[to_product_out(p) for p in products], meta=page_meta(total, page, limit))


@router.get("/api/products/{id}", response_model=ProductOut)
def get_product(id: int, db: Session = Depends(get_db)):
    return to_product_out(CatalogService(db).get_product(id))


@router.get("/api/product/categories")
def list_categories(db: Session = Depends(get_db)):
    return {"categories": [to_category_out(c) for c in CatalogService(db).list_categories()]}


# Admin catalog
@admin_router.get("/api/admin/products")
def admin_list_products(
    includeArchived: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    name: Optional[str] = None,
    categoryId: Optional[int] = None,
    db: Session = Depends(get_db),
    admin: Identity = Depends(require_admin),
):
    products, total = CatalogService(db).list_products(
        page=page, limit=limit, name=name, category_id=categoryId, include_archived=includeArchived
    )
    return {
        "success": True,
        "products": [to_product_out(p) for p in products],
        "meta": page_meta(total, page, limit),
    }


@admin_router.post("/api/admin/products", status_code=201)
def create_product(payload: ProductCreate, db: Session = Depends(get_db), admin: Identity = Depends(catalog_writer)):
    product = CatalogService(db).create_product(payload.model_dump())
    return {"success": True, "message": "Product created successfully", "product": to_product_out(product)}


@admin_router.put("/api/admin/products/{id}")
def update_product(
    id: int, payload: ProductUpdate, db: Session = Depends(get_db), admin: Identity = Depends(catalog_writer)
):
    product = CatalogService(db).update_product(id, payload.model_dump(exclude_unset=True))
    return {"success": True, "message": "Product updated successfully", "product": to_product_out(product)}


@admin_router.post("/api/admin/product/toggle-archive")
def toggle_archive(payload: ToggleArchiveIn, db: Session = Depends(get_db), admin: Identity = Depends(catalog_writer)):
    product = CatalogService(db).toggle_archive(payload.productId)
    return {"success": True, "product": to_product_out(product)}


@admin_router.get("/api/admin/categories")
def admin_list_categories(db: Session = Depends(get_db), admin: Identity = Depends(require_admin)):
    return {"categories": [to_category_out(c) for c in CatalogService(db).list_categories()]}


@admin_router.post("/api/admin/categories", status_code=201, response_model=CategoryOut)
def create_category(payload: CategoryIn, db: Session = Depends(get_db), admin: Identity = Depends(catalog_writer)):
    return to_category_out(CatalogService(db).create_category(payload.name, payload.description))
