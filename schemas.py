"""
Database Schemas for the Food Catalog

Each Pydantic model below corresponds to a MongoDB collection.
The collection name is the lowercase class name (e.g., FoodGroup -> "foodgroup").
References to other documents are stored as `_id` strings.
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, EmailStr


class FoodGroupType(str, Enum):
    food_group = "foodGroup"
    product = "product"
    post = "post"
    comment = "comment"
    ticket = "ticket"


class ProductSort(str, Enum):
    latest = "latest"
    earliest = "earliest"
    popular = "popular"


class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Unique email address")
    password_hash: str = Field(..., description="BCrypt password hash")
    likedProducts: List[str] = Field(default_factory=list, description="Ids of liked products")


class Category(BaseModel):
    title: str = Field(..., description="Localized title")
    englishTitle: str = Field(..., description="Unique key used in product filters")
    icon: Optional[str] = None


class FoodGroup(BaseModel):
    title: str = Field(..., description="Localized title")
    englishTitle: str = Field(..., description="Unique across the collection")
    description: str
    type: FoodGroupType
    parent: Optional[str] = Field(None, description="Reference to parent foodgroup _id")
    category: str = Field(..., description="Reference to category _id")


class Product(BaseModel):
    title: str
    description: str
    slug: str
    imageLink: Optional[str] = None
    category: str = Field(..., description="Reference to category _id")
    foodGroup: str = Field(..., description="Reference to foodgroup _id")
    price: float = Field(..., ge=0)
    discount: float = 0
    offPrice: Optional[float] = None
    likes: List[str] = Field(default_factory=list, description="Ids of users who liked the product")
    bookmarks: List[str] = Field(default_factory=list)
    reviews: List[dict] = Field(default_factory=list)


# Fields a client may never overwrite through the generic product update.
PRODUCT_PROTECTED_FIELDS = ["bookmarks", "likes", "reviews"]
