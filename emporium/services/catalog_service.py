import logging
import math
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from emporium.errors import ConflictError, NotFoundError, ValidationError
from emporium.models import Category, Product, ProductImage, ProductSize, SIZES

logger = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = 5
STOCK_STATUSES = ("in_stock", "low_stock", "out_of_stock")


def stock_status(total: int) -> str:
    if total <= 0:
        return "out_of_stock"
    if total <= LOW_STOCK_THRESHOLD:
        return "low_stock"
    return "in_stock"


def _size_total():
    """Correlated subquery: sum of a product's per-size quantities (0 when none)."""
    return func.coalesce(
        select(func.sum(ProductSize.quantity))
        .where(ProductSize.product_id == Product.id)
        .correlate(Product)
        .scalar_subquery(),
        0,
    )


class CatalogService:
    def __init__(self, db: Session):
        self.db = db

    # Categories

    def list_categories(self) -> list[Category]:
        return self.db.query(Category).order_by(Category.name.asc()).all()

    def create_category(self, name: str, description: Optional[str] = None) -> Category:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required")
        if self.db.query(Category).filter(func.lower(Category.name) == name.lower()).first():
            raise ConflictError("Category already exists")
        category = Category(name=name, description=description)
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    # Products

    def _require_category(self, category_id: int) -> None:
        if not self.db.get(Category, category_id):
            raise NotFoundError("Category not found")

    @staticmethod
    def _build_sizes(sizes: list[dict]) -> list[ProductSize]:
        seen = set()
        rows = []
        for entry in sizes:
            size = str(entry["size"]).strip().upper()
            if size not in SIZES:
                raise ValidationError(f"Invalid size {size}. Expected one of: {', '.join(SIZES)}")
            if size in seen:
                raise ValidationError(f"Duplicate size {size}")
            quantity = int(entry.get("quantity") or 0)
            if quantity < 0:
                raise ValidationError("Size quantity cannot be negative")
            seen.add(size)
            rows.append(ProductSize(size=size, quantity=quantity))
        return rows

    @staticmethod
    def _build_images(images: list[dict]) -> list[ProductImage]:
        return [ProductImage(url=i["url"], alt_text=i.get("altText")) for i in images]

    def create_product(self, data: dict) -> Product:
        self._require_category(data["categoryId"])
        product = Product(
            name=data["name"],
            description=data.get("description"),
            price=data["price"],
            category_id=data["categoryId"],
            is_archived=bool(data.get("isArchived", False)),
        )
        product.sizes = self._build_sizes(data.get("sizes") or [])
        product.images = self._build_images(data.get("images") or [])
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)
        logger.info("Product %s created", product.id)
        return product

    def update_product(self, product_id: int, data: dict) -> Product:
        """Update scalar fields that were provided; images/sizes, when given, replace the whole set."""
        product = self.get_product(product_id, include_archived=True)
        if not any(v is not None for v in data.values()):
            raise ValidationError("No fields to update were provided")

        if data.get("categoryId") is not None:
            self._require_category(data["categoryId"])
            product.category_id = data["categoryId"]
        for field, column in (("name", "name"), ("description", "description"), ("price", "price")):
            if data.get(field) is not None:
                setattr(product, column, data[field])
        if data.get("isArchived") is not None:
            product.is_archived = bool(data["isArchived"])

        if data.get("sizes") is not None:
            product.sizes.clear()
            self.db.flush()
            product.sizes.extend(self._build_sizes(data["sizes"]))
        if data.get("images") is not None:
            product.images.clear()
            self.db.flush()
            product.images.extend(self._build_images(data["images"]))

        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("Product update conflicts with existing data") from exc
        self.db.refresh(product)
        return product

    def get_product(self, product_id: int, include_archived: bool = False) -> Product:
        query = self.db.query(Product).filter(Product.id == product_id)
        if not include_archived:
            query = query.filter(Product.is_archived.is_(False))
        product = query.first()
        if not product:
            raise NotFoundError("Product not found")
        return product

    def list_products(
        self,
        page: int = 1,
        limit: int = 10,
        name: Optional[str] = None,
        category_id: Optional[int] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        stock_status: Optional[str] = None,
        include_archived: bool = False,
    ) -> tuple[list[Product], int]:
        query = self.db.query(Product)
        if not include_archived:
            query = query.filter(Product.is_archived.is_(False))
        if name:
            query = query.filter(Product.name.ilike(f"%{name}%"))
        if category_id:
            query = query.filter(Product.category_id == category_id)
        if min_price is not None:
            query = query.filter(Product.price >= min_price)
        if max_price is not None:
            query = query.filter(Product.price <= max_price)
        if stock_status:
            if stock_status not in STOCK_STATUSES:
                raise ValidationError(f"Invalid stockStatus. Expected one of: {', '.join(STOCK_STATUSES)}")
            total_stock = _size_total()
            if stock_status == "in_stock":
                query = query.filter(total_stock > 0)
            elif stock_status == "low_stock":
                query = query.filter(total_stock > 0, total_stock <= LOW_STOCK_THRESHOLD)
            else:
                query = query.filter(total_stock == 0)

        total = query.count()
        products = (
            query.options(
                selectinload(Product.sizes), selectinload(Product.images), selectinload(Product.category)
            )
            .order_by(Product.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return products, total

    def toggle_archive(self, product_id: int) -> Product:
        product = self.get_product(product_id, include_archived=True)
        product.is_archived = not product.is_archived
        self.db.commit()
        self.db.refresh(product)
        logger.info("Product %s archived=%s", product.id, product.is_archived)
        return product


def page_meta(total: int, page: int, limit: int) -> dict:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }
