from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Literal, Optional

Size = Literal["S", "M", "L", "XL", "XXL"]
StockStatus = Literal["in_stock", "low_stock", "out_of_stock"]


class ProductSizeIn(BaseModel):
    size: Size
    quantity: int = Field(ge=0)


class ProductImageIn(BaseModel):
    url: str = Field(min_length=1)
    altText: Optional[str] = None


class ProductCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: float = Field(gt=0)
    categoryId: int = Field(gt=0)
    isArchived: bool = False
    sizes: List[ProductSizeIn] = []
    images: List[ProductImageIn] = []


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, gt=0)
    categoryId: Optional[int] = Field(default=None, gt=0)
    isArchived: Optional[bool] = None
    # When provided, these replace the full set
    sizes: Optional[List[ProductSizeIn]] = None
    images: Optional[List[ProductImageIn]] = None


class ToggleArchiveIn(BaseModel):
    productId: int = Field(gt=0)


class CategoryIn(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class CategoryOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None


class ProductImageOut(BaseModel):
    id: int
    url: str
    altText: Optional[str] = None
    productId: int


class ProductSizeOut(BaseModel):
    size: str
    quantity: int


class ProductOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    categoryId: int
    category: Optional[CategoryOut] = None
    isArchived: bool
    stock: int
    stockStatus: StockStatus
    images: List[ProductImageOut]
    sizes: List[ProductSizeOut]
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    totalPages: int


class ProductPage(BaseModel):
    success: bool = True
    data: List[ProductOut]
    meta: PageMeta
