import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Depends, Body, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr
from bson import ObjectId
from passlib.context import CryptContext
from pymongo.errors import ConnectionFailure, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from database import (
    DatabaseUnavailable,
    apply_update,
    create_document,
    delete_document,
    delete_documents,
    ensure_indexes,
    get_document,
    get_document_by_id,
    get_documents,
    update_document,
)
from schemas import User, Category, FoodGroup, Product, ProductSort, PRODUCT_PROTECTED_FIELDS
from utils import copy_object, delete_invalid_properties, is_valid_object_id
from validators import (
    CategoryCreate,
    FoodGroupCreate,
    FoodGroupUpdate,
    ProductCreate,
    ProductDiscount,
    validate_payload,
)

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_indexes()
    yield


app = FastAPI(title="Food Catalog API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def envelope(status_code: int, **data) -> dict:
    return {"statusCode": status_code, "data": data}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"statusCode": status_code, "errors": {"message": message}},
    )


# ===================== Error handlers =====================
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    loc = errors[0].get("loc", ()) if errors else ()
    names = [part for part in loc if isinstance(part, str)]
    field = names[-1] if names else "request"
    return error_response(400, f"The {field} value is not valid")


@app.exception_handler(DatabaseUnavailable)
async def database_unavailable_handler(request: Request, exc: DatabaseUnavailable):
    logger.error("Database unavailable: %s", exc)
    return error_response(503, "Service is temporarily unavailable")


@app.exception_handler(ConnectionFailure)
async def database_connection_handler(request: Request, exc: ConnectionFailure):
    logger.exception("Database unreachable on %s %s", request.method, request.url.path)
    return error_response(503, "Service is temporarily unavailable")


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return error_response(500, "Internal server error")


# ===================== Current user =====================
def get_current_user(x_user_id: Optional[str] = Header(None)) -> Optional[dict]:
    """Resolve the caller from the X-User-Id header; anonymous when absent."""
    if not x_user_id:
        return None
    user = get_document_by_id("user", x_user_id, {"password_hash": 0})
    if not user:
        raise HTTPException(401, "Invalid user credentials")
    return user


def require_user(user: Optional[dict] = Depends(get_current_user)) -> dict:
    if user is None:
        raise HTTPException(401, "Please log in to your account")
    return user


# ===================== Public Endpoints =====================
@app.get("/")
def root():
    return envelope(200, message="Food Catalog API running")


# ===================== Auth =====================
class SignupRequest(BaseModel):
    name: str
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    user_id: str
    name: str
    email: EmailStr


@app.post("/auth/signup", status_code=201)
def signup(payload: SignupRequest):
    existing = get_documents("user", {"email": payload.email}, limit=1)
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")
    password_hash = pwd_context.hash(payload.password)
    user = User(name=payload.name, email=payload.email, password_hash=password_hash)
    user_id = create_document("user", user)
    if not user_id:
        raise HTTPException(500, "User was not registered")
    login = LoginResponse(user_id=user_id, name=user.name, email=user.email)
    return envelope(201, user=login.model_dump())


@app.post("/auth/login")
def login(payload: LoginRequest):
    users = get_documents("user", {"email": payload.email}, limit=1)
    if not users:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    user = users[0]
    if not pwd_context.verify(payload.password, user["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    login = LoginResponse(user_id=user["_id"], name=user["name"], email=user["email"])
    return envelope(200, user=login.model_dump())


# ===================== Categories =====================
@app.get("/categories")
def list_categories():
    categories = get_documents("category", sort=[("englishTitle", 1)])
    return envelope(200, categories=categories)


@app.post("/categories", status_code=201)
def create_category(payload: dict = Body(...)):
    data = validate_payload(CategoryCreate, payload)
    if get_document("category", {"englishTitle": data.englishTitle}):
        raise HTTPException(400, "A category with this title already exists.")
    category_id = create_document("category", Category(**data.model_dump()))
    if not category_id:
        raise HTTPException(500, "Category was not registered")
    return envelope(201, message="Category added successfully", _id=category_id)


# ===================== Food Groups =====================
def find_food_group_with_title(english_title: str, exclude_id: Optional[str] = None):
    food_group = get_document("foodgroup", {"englishTitle": english_title})
    if food_group and food_group["_id"] != exclude_id:
        raise HTTPException(400, "A food group with this title already exists.")


def check_exist_food_group(food_group_id: str) -> dict:
    food_group = get_document_by_id("foodgroup", food_group_id)
    if not food_group:
        raise HTTPException(400, "A food group with this id does not exist.")
    return food_group


@app.get("/foodgroups")
def list_food_groups(request: Request):
    query = dict(request.query_params)
    if is_valid_object_id(query.get("_id")):
        query["_id"] = ObjectId(query["_id"])
    food_groups = get_documents("foodgroup", query)
    return envelope(200, foodGroup=food_groups)


@app.post("/foodgroups", status_code=201)
def create_food_group(payload: dict = Body(...)):
    data = validate_payload(FoodGroupCreate, payload)
    find_food_group_with_title(data.englishTitle)
    food_group = FoodGroup(**data.model_dump())
    food_group.parent = food_group.parent or None
    food_group_id = create_document("foodgroup", food_group)
    if not food_group_id:
        raise HTTPException(500, "Food group was not registered")
    logger.info("Created food group %s (%s)", food_group_id, data.englishTitle)
    return envelope(201, message="Food group added successfully")


@app.patch("/foodgroups/{food_group_id}")
def update_food_group(food_group_id: str, payload: dict = Body(...)):
    check_exist_food_group(food_group_id)
    data = validate_payload(FoodGroupUpdate, payload)
    if data.englishTitle:
        find_food_group_with_title(data.englishTitle, exclude_id=food_group_id)
    changes = data.model_dump(mode="json", exclude_none=True)
    if not update_document("foodgroup", food_group_id, changes):
        raise HTTPException(500, "Update was not performed")
    return envelope(200, message="Update was successful")


@app.delete("/foodgroups/{food_group_id}")
def remove_food_group(food_group_id: str):
    food_group = check_exist_food_group(food_group_id)
    deleted = delete_documents("foodgroup", {
        "$or": [{"_id": ObjectId(food_group["_id"])}, {"parent": food_group["_id"]}],
    })
    if deleted == 0:
        raise HTTPException(500, "Food group deletion was not performed")
    logger.info("Deleted food group %s and %d child document(s)", food_group_id, deleted - 1)
    return envelope(200, message="Food group deletion was successful")


@app.get("/foodgroups/{food_group_id}")
def get_food_group(food_group_id: str):
    food_group = check_exist_food_group(food_group_id)
    return envelope(200, foodGroup=food_group)


# ===================== Products =====================
LIST_REFERENCE_FIELDS = {"title": 1, "englishTitle": 1}
DETAIL_CATEGORY_FIELDS = {"title": 1, "icon": 1, "englishTitle": 1}
PRODUCT_FIELDS = set(ProductCreate.model_fields)


def find_product_by_id(product_id: str) -> dict:
    if not is_valid_object_id(product_id):
        raise HTTPException(400, "The sent product ID is incorrect")
    product = get_document_by_id("product", product_id)
    if not product:
        raise HTTPException(404, "No product found.")
    return product


def resolve_ids_by_title(collection_name: str, keys: str) -> list:
    ids = []
    for key in keys.split(","):
        key = key.strip()
        if not key:
            continue
        doc = get_document(collection_name, {"englishTitle": key}, {"_id": 1})
        if doc:
            ids.append(doc["_id"])
    return ids


def populate(doc: dict, field: str, collection_name: str, projection: dict, cache: Optional[dict] = None):
    ref = doc.get(field)
    if not ref:
        return
    cache = {} if cache is None else cache
    key = (collection_name, ref)
    if key not in cache:
        cache[key] = get_document_by_id(collection_name, ref, projection)
    doc[field] = cache[key]


@app.post("/products", status_code=201)
def create_product(payload: dict = Body(...)):
    data = validate_payload(ProductCreate, payload)
    product_id = create_document("product", Product(**data.model_dump()))
    if not product_id:
        raise HTTPException(500, "Product was not registered")
    logger.info("Created product %s (%s)", product_id, data.slug)
    product = get_document_by_id("product", product_id)
    return envelope(201, message="Product successfully created", product=product)


@app.get("/products")
def list_products(
    search: Optional[str] = None,
    category: Optional[str] = None,
    foodGroup: Optional[str] = None,
    sort: Optional[ProductSort] = None,
    user: Optional[dict] = Depends(get_current_user),
):
    db_query = {}
    if search:
        db_query["$text"] = {"$search": search}
    if category:
        db_query["category"] = {"$in": resolve_ids_by_title("category", category)}
    if foodGroup:
        db_query["foodGroup"] = {"$in": resolve_ids_by_title("foodgroup", foodGroup)}

    direction = -1 if sort == ProductSort.latest else 1
    products = get_documents("product", db_query, projection={"reviews": 0}, sort=[("created_at", direction)])
    if sort == ProductSort.popular:
        products.sort(key=lambda p: len(p.get("likes") or []), reverse=True)

    user_id = user["_id"] if user else None
    cache = {}
    for product in products:
        populate(product, "foodGroup", "foodgroup", LIST_REFERENCE_FIELDS, cache)
        populate(product, "category", "category", LIST_REFERENCE_FIELDS, cache)
        likes = product.pop("likes", None) or []
        product["likesCount"] = len(likes)
        product["isLiked"] = user_id is not None and user_id in likes
    return envelope(200, products=products)


@app.get("/products/slug/{slug}")
def get_product_by_slug(slug: str):
    product = get_document("product", {"slug": slug})
    if not product:
        raise HTTPException(404, "Product with these specifications was not found")
    populate(product, "category", "category", DETAIL_CATEGORY_FIELDS)
    return envelope(200, product=product)


@app.get("/products/{product_id}")
def get_product(product_id: str):
    product = find_product_by_id(product_id)
    populate(product, "category", "category", DETAIL_CATEGORY_FIELDS)
    return envelope(200, product=product)


@app.patch("/products/{product_id}/discount")
def change_product_discount_status(product_id: str, payload: dict = Body(...)):
    find_product_by_id(product_id)
    data = validate_payload(ProductDiscount, payload)
    if not update_document("product", product_id, data.model_dump()):
        raise HTTPException(400, "Change was not made, please try again")
    return envelope(200, message="Product discount status activated")


@app.delete("/products/{product_id}")
def remove_product(product_id: str):
    find_product_by_id(product_id)
    if not delete_document("product", product_id):
        raise HTTPException(500, "Product deletion was not performed")
    logger.info("Deleted product %s", product_id)
    return envelope(200, message="Product successfully deleted")


@app.patch("/products/{product_id}")
def update_product(product_id: str, payload: dict = Body(...)):
    find_product_by_id(product_id)
    data = delete_invalid_properties(copy_object(payload), PRODUCT_PROTECTED_FIELDS)
    changes = {key: value for key, value in data.items() if key in PRODUCT_FIELDS}
    if not update_document("product", product_id, changes):
        raise HTTPException(500, "Product update was not performed")
    return envelope(200, message="Product successfully updated")


def revert_like_toggle(product_id: str, user_id: str, revert: str):
    try:
        apply_update("product", product_id, {revert: {"likes": user_id}})
    except PyMongoError:
        logger.exception("Could not revert like toggle on product %s for user %s", product_id, user_id)


@app.post("/products/{product_id}/like")
def like_product(product_id: str, user: dict = Depends(require_user)):
    product = find_product_by_id(product_id)
    user_id = user["_id"]
    liked = user_id in (product.get("likes") or [])

    operator, revert = ("$pull", "$addToSet") if liked else ("$addToSet", "$pull")
    if not apply_update("product", product_id, {operator: {"likes": user_id}}):
        raise HTTPException(400, "Operation was unsuccessful.")
    try:
        user_updated = apply_update("user", user_id, {operator: {"likedProducts": product_id}}, match_only=True)
    except PyMongoError:
        logger.exception("Like toggle failed on user %s, reverting product %s", user_id, product_id)
        revert_like_toggle(product_id, user_id, revert)
        raise
    if not user_updated:
        logger.warning("User %s not updated, reverting like toggle on product %s", user_id, product_id)
        revert_like_toggle(product_id, user_id, revert)
        raise HTTPException(400, "Operation was unsuccessful.")

    message = "Your like was removed" if liked else "Thanks for your like"
    return envelope(200, message=message)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
