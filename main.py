import logging
import os
import re
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from bson import ObjectId
from bson.errors import InvalidId

from database import db, create_document, get_documents
from logging_setup import setup_logging
from schemas import (
    MAX_ITEM_QUANTITY,
    Cart,
    CartDetail,
    CartItem,
    CartShop,
    Category,
    CategoryOut,
    Product,
    ProductOut,
    UserDetails,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Storefront API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------- Helpers ----------

def oid(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail="Invalid id")

def require_db():
    if db is None:
        raise HTTPException(status_code=500, detail="Database unavailable")
    return db

def to_public_doc(doc: dict) -> dict:
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d

def load_cart(session_id: str) -> Optional[dict]:
    return require_db()["cart"].find_one({"session_id": session_id})

def save_cart(doc: dict, cart: Cart) -> None:
    db["cart"].update_one(
        {"_id": doc["_id"]},
        {"$set": {"shop_groups": [s.model_dump() for s in cart.shop_groups],
                  "updated_at": datetime.now(timezone.utc)}},
    )

def cart_detail(doc: Optional[dict], session_id: str) -> CartDetail:
    if not doc:
        return CartDetail(session_id=session_id)
    cart = Cart(session_id=doc["session_id"], shop_groups=doc.get("shop_groups", []))
    return CartDetail.from_cart(cart, str(doc["_id"]))

# ---------- Health ----------

@app.get("/")
def root():
    return {"message": "Storefront API running"}

@app.get("/test")
def test_database():
    resp = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": "❌ Not Set",
        "collections": []
    }
    try:
        if db is not None:
            resp["database"] = "✅ Connected"
            resp["database_name"] = db.name
            resp["collections"] = db.list_collection_names()[:10]
    except Exception as e:
        logger.warning("Database check failed: %s", e)
        resp["database"] = f"⚠️ {str(e)[:80]}"
    return resp

# ---------- Seed Data ----------

class SeedRequest(BaseModel):
    force: bool = False

@app.post("/api/seed")
def seed(req: SeedRequest):
    database = require_db()
    if not req.force:
        if database["category"].estimated_document_count() > 0 and database["product"].estimated_document_count() > 0:
            return {"status": "ok", "message": "Already seeded"}

    for name in ("category", "product", "user"):
        database[name].delete_many({})

    categories = [
        {"name": "Áo", "slug": "ao", "description": "Shirts and tops"},
        {"name": "Quần", "slug": "quan", "description": "Trousers and shorts"},
        {"name": "Giày", "slug": "giay", "description": "Shoes"},
    ]
    category_ids = {c["slug"]: create_document("category", Category(**c)) for c in categories}

    sample_products = [
        {
            "name": "Áo thun cotton",
            "description": "Soft cotton crew-neck tee.",
            "thumbnail_url": "https://images.unsplash.com/photo-1521572163474-6864f9cf17ab",
            "category_ref": category_ids["ao"],
            "shop_ref": "shop-hanoi",
            "is_published": True,
            "types": [
                {"color_name": "Trắng", "details": [
                    {"size_name": "S", "price": 150000, "in_storage": 12},
                    {"size_name": "M", "price": 150000, "in_storage": 20},
                    {"size_name": "L", "price": 160000, "in_storage": 8},
                ]},
                {"color_name": "Đen", "details": [
                    {"size_name": "S", "price": 150000, "in_storage": 5},
                    {"size_name": "M", "price": 150000, "in_storage": 9},
                ]},
            ],
        },
        {
            "name": "Quần jean slim",
            "description": "Stretch denim, slim fit.",
            "thumbnail_url": "https://images.unsplash.com/photo-1520975693416-35a1d9d8f5f4",
            "category_ref": category_ids["quan"],
            "shop_ref": "shop-saigon",
            "is_published": True,
            "types": [
                {"color_name": "Xanh đậm", "details": [
                    {"size_name": "30", "price": 450000, "in_storage": 6},
                    {"size_name": "32", "price": 450000, "in_storage": 4},
                ]},
            ],
        },
        {
            "name": "Giày da công sở",
            "description": "Hand-polished leather oxfords.",
            "thumbnail_url": "https://images.unsplash.com/photo-1515542706656-8e6ef17a1521",
            "category_ref": category_ids["giay"],
            "shop_ref": "shop-saigon",
            "is_published": False,
            "types": [
                {"color_name": "Nâu", "details": [
                    {"size_name": "41", "price": 1250000, "in_storage": 3},
                    {"size_name": "42", "price": 1250000, "in_storage": 2},
                ]},
            ],
        },
    ]
    for p in sample_products:
        create_document("product", Product(**p))

    user_id = create_document("user", {
        "name": "Nguyễn Văn An",
        "email": "an.nguyen@example.com",
        "phone": "0901234567",
        "address": "12 Lê Lợi, Quận 1, TP.HCM",
        "is_active": True,
    })

    logger.info("Seeded %d categories and %d products", len(categories), len(sample_products))
    return {"status": "ok", "seeded": len(sample_products), "user_id": user_id}

# ---------- Users ----------

@app.get("/api/user/{user_id}", response_model=Optional[UserDetails])
def get_user(user_id: str):
    doc = require_db()["user"].find_one({"_id": oid(user_id)})
    if not doc:
        return None
    return UserDetails(**to_public_doc(doc))

# ---------- Categories ----------

@app.get("/api/categories", response_model=List[CategoryOut])
def list_categories():
    require_db()
    return [to_public_doc(c) for c in get_documents("category")]

@app.get("/api/categories/{category_id}", response_model=CategoryOut)
def get_category(category_id: str):
    doc = require_db()["category"].find_one({"_id": oid(category_id)})
    if not doc:
        raise HTTPException(404, "Category not found")
    return to_public_doc(doc)

@app.post("/api/categories", response_model=CategoryOut)
def create_category(category: Category):
    require_db()
    category_id = create_document("category", category)
    return to_public_doc(db["category"].find_one({"_id": ObjectId(category_id)}))

# ---------- Products ----------

@app.get("/api/products", response_model=List[ProductOut])
def list_products(
    category_ref: Optional[str] = None,
    published: Optional[bool] = None,
    q: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
):
    require_db()
    filt = {}
    if category_ref:
        filt["category_ref"] = category_ref
    if published is not None:
        filt["is_published"] = published
    if q:
        filt["name"] = {"$regex": re.escape(q), "$options": "i"}
    return [to_public_doc(p) for p in get_documents("product", filt, limit)]

@app.get("/api/products/{product_id}", response_model=ProductOut)
def get_product(product_id: str):
    doc = require_db()["product"].find_one({"_id": oid(product_id)})
    if not doc:
        raise HTTPException(404, "Product not found")
    return to_public_doc(doc)

@app.post("/api/products", response_model=ProductOut)
def create_product(product: Product):
    require_db()
    product_id = create_document("product", product)
    logger.info("Created product %s (%s)", product_id, product.name)
    return to_public_doc(db["product"].find_one({"_id": ObjectId(product_id)}))

@app.delete("/api/products/{product_id}")
def remove_product(product_id: str):
    result = require_db()["product"].delete_one({"_id": oid(product_id)})
    if result.deleted_count == 0:
        raise HTTPException(404, "Product not found")
    logger.info("Removed product %s", product_id)
    return {"deleted": True, "id": product_id}

def set_published(product_id: str, published: bool) -> dict:
    result = require_db()["product"].update_one(
        {"_id": oid(product_id)},
        {"$set": {"is_published": published, "updated_at": datetime.now(timezone.utc)}},
    )
    if result.matched_count == 0:
        raise HTTPException(404, "Product not found")
    logger.info("Product %s is_published=%s", product_id, published)
    return {"id": product_id, "is_published": published}

@app.put("/api/products/{product_id}/continue")
def mark_product_continue(product_id: str):
    return set_published(product_id, True)

@app.put("/api/products/{product_id}/stop")
def mark_product_stop(product_id: str):
    return set_published(product_id, False)

# ---------- Cart ----------

class CartAddRequest(BaseModel):
    session_id: str
    shop_ref: str
    shop_name: str
    item: CartItem

class CartRemoveRequest(BaseModel):
    session_id: str
    shop_ref: str
    product_ref: str
    color_name: Optional[str] = None
    size_name: Optional[str] = None

class ShopSelectedRequest(BaseModel):
    session_id: str
    shop_ref: str
    selected: bool = Field(..., description="New selection flag of the shop group")

@app.get("/api/cart", response_model=CartDetail)
def get_cart(session_id: str = Query(...)):
    return cart_detail(load_cart(session_id), session_id)

@app.post("/api/cart/add", response_model=CartDetail)
def cart_add(req: CartAddRequest):
    doc = load_cart(req.session_id)
    if not doc:
        create_document("cart", Cart(session_id=req.session_id))
        doc = load_cart(req.session_id)

    cart = Cart(session_id=req.session_id, shop_groups=doc.get("shop_groups", []))
    shop = next((s for s in cart.shop_groups if s.shop_ref == req.shop_ref), None)
    if shop is None:
        shop = CartShop(shop_ref=req.shop_ref, shop_name=req.shop_name)
        cart.shop_groups.append(shop)

    existing = next((it for it in shop.item_list if it.same_line(req.item)), None)
    if existing:
        existing.quantity = min(MAX_ITEM_QUANTITY, existing.quantity + req.item.quantity)
    else:
        shop.item_list.append(req.item)

    save_cart(doc, cart)
    return cart_detail(load_cart(req.session_id), req.session_id)

@app.post("/api/cart/remove", response_model=CartDetail)
def cart_remove(req: CartRemoveRequest):
    doc = load_cart(req.session_id)
    if not doc:
        raise HTTPException(404, "Cart not found")

    cart = Cart(session_id=req.session_id, shop_groups=doc.get("shop_groups", []))
    for shop in cart.shop_groups:
        if shop.shop_ref != req.shop_ref:
            continue
        shop.item_list = [
            it for it in shop.item_list
            if not (it.product_ref == req.product_ref
                    and it.color_name == req.color_name
                    and it.size_name == req.size_name)
        ]
    cart.shop_groups = [s for s in cart.shop_groups if s.item_list]

    save_cart(doc, cart)
    return cart_detail(load_cart(req.session_id), req.session_id)

@app.put("/api/cart/shop-selected", response_model=CartDetail)
def toggle_selected_of_cart_shop(req: ShopSelectedRequest):
    doc = load_cart(req.session_id)
    if not doc:
        raise HTTPException(404, "Cart not found")

    cart = Cart(session_id=req.session_id, shop_groups=doc.get("shop_groups", []))
    shop = next((s for s in cart.shop_groups if s.shop_ref == req.shop_ref), None)
    if shop is None:
        raise HTTPException(404, "Shop not in cart")
    shop.selected = req.selected

    save_cart(doc, cart)
    return cart_detail(load_cart(req.session_id), req.session_id)


if __name__ == "__main__":
    import uvicorn
    setup_logging()
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
