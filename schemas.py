"""
Database Schemas

Define your MongoDB collection schemas here using Pydantic models.
Each Pydantic model represents a collection in your database.
Model name is converted to lowercase for the collection name:
- User -> "user" collection
- Category -> "category" collection
- Product -> "product" collection
- Cart -> "cart" collection

These schemas are used by the backend API for validation and by the
admin and shop consoles to read API responses.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

MAX_ITEM_QUANTITY = 99

# ---------- Users ----------

class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: str = Field(..., description="Email address")
    phone: Optional[str] = None
    address: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: bool = True

class UserDetails(BaseModel):
    """Public view of a user returned by GET /api/user/{id}."""
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    avatar_url: Optional[str] = None

# ---------- Catalog ----------

class Category(BaseModel):
    name: str = Field(..., description="Display name")
    slug: str = Field(..., description="URL-friendly id")
    description: Optional[str] = None

class CategoryOut(Category):
    id: str

class SizeDetail(BaseModel):
    size_name: str
    price: float = Field(..., ge=0)
    in_storage: int = Field(0, ge=0, description="Units in stock for this size")

class ProductType(BaseModel):
    color_name: str
    image_url: Optional[str] = None
    details: List[SizeDetail] = Field(default_factory=list)

class Product(BaseModel):
    name: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    category_ref: str = Field(..., description="Category id")
    shop_ref: Optional[str] = Field(None, description="Selling shop id")
    types: List[ProductType] = Field(default_factory=list)
    is_published: bool = False

    @property
    def stock_total(self) -> int:
        return sum(detail.in_storage for t in self.types for detail in t.details)

    @property
    def display_price(self) -> float:
        if self.types and self.types[0].details:
            return self.types[0].details[0].price
        return 0.0

class ProductOut(Product):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

# ---------- Cart ----------

class CartItem(BaseModel):
    product_ref: str
    product_name: str
    thumbnail_url: Optional[str] = None
    color_name: Optional[str] = None
    size_name: Optional[str] = None
    price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1, le=MAX_ITEM_QUANTITY)

    def same_line(self, other: "CartItem") -> bool:
        return (
            self.product_ref == other.product_ref
            and self.color_name == other.color_name
            and self.size_name == other.size_name
        )

class CartShop(BaseModel):
    shop_ref: str
    shop_name: str
    selected: bool = False
    item_list: List[CartItem] = Field(default_factory=list)

    @property
    def quantity(self) -> int:
        return sum(item.quantity for item in self.item_list)

    @property
    def subtotal(self) -> float:
        return round(sum(item.price * item.quantity for item in self.item_list), 2)

class Cart(BaseModel):
    session_id: str
    shop_groups: List[CartShop] = Field(default_factory=list)

class CartDetail(Cart):
    id: Optional[str] = None
    total_quantity: int = 0
    selected_total: float = 0.0

    @classmethod
    def from_cart(cls, cart: Cart, cart_id: Optional[str] = None) -> "CartDetail":
        return cls(
            id=cart_id,
            session_id=cart.session_id,
            shop_groups=cart.shop_groups,
            total_quantity=sum(shop.quantity for shop in cart.shop_groups),
            selected_total=round(sum(shop.subtotal for shop in cart.shop_groups if shop.selected), 2),
        )
