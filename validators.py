"""
Request body schemas.

Each schema maps a field to the message returned when that field fails
validation, so a bad payload answers with one readable 400 instead of a
list of pydantic errors.
"""
from typing import Any, ClassVar, Dict, Optional, Type, TypeVar

from fastapi import HTTPException
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from schemas import FoodGroupType

MONGO_ID = r"^[0-9a-fA-F]{24}$"
OPTIONAL_MONGO_ID = r"^([0-9a-fA-F]{24})?$"

Schema = TypeVar("Schema", bound=BaseModel)


class RequestSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    messages: ClassVar[Dict[str, str]] = {}
    default_message: ClassVar[str] = "The submitted data is not valid"

    @classmethod
    def message_for(cls, error: Dict[str, Any]) -> str:
        loc = error.get("loc") or ()
        field = loc[0] if loc else None
        if error.get("type") == "extra_forbidden":
            return f"{field} is not allowed"
        return cls.messages.get(field, cls.default_message)


class FoodGroupCreate(RequestSchema):
    title: str = Field(..., min_length=3, max_length=100)
    englishTitle: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=3, max_length=200)
    type: FoodGroupType
    category: str = Field(..., pattern=MONGO_ID)
    parent: Optional[str] = Field(None, pattern=OPTIONAL_MONGO_ID)

    messages: ClassVar[Dict[str, str]] = {
        "title": "The title of the food group is not valid",
        "englishTitle": "The English title of the food group is not valid",
        "description": "The description of the food group is not valid",
        "type": "The type of the food group is not valid",
        "category": "The selected category is not valid",
        "parent": "The provided parent food group ID is not valid",
    }


class FoodGroupUpdate(RequestSchema):
    title: Optional[str] = Field(None, min_length=3, max_length=100)
    englishTitle: Optional[str] = Field(None, min_length=3, max_length=100)
    description: str = Field(..., min_length=3, max_length=200)
    type: FoodGroupType

    messages: ClassVar[Dict[str, str]] = {
        "title": "The title of the food group is not valid",
        "englishTitle": "The English title of the food group is not valid",
        "description": "The food group description is not valid",
        "type": "The food group type is not valid",
    }


class ProductCreate(RequestSchema):
    title: str = Field(..., min_length=3, max_length=30)
    description: str = Field(..., min_length=3, max_length=300)
    slug: str = Field(..., min_length=3, max_length=100)
    imageLink: Optional[str] = None
    category: str = Field(..., pattern=MONGO_ID)
    foodGroup: str = Field(..., pattern=MONGO_ID)
    price: float = Field(..., ge=0)
    discount: float = Field(0, ge=0)
    offPrice: Optional[float] = Field(None, ge=0)

    messages: ClassVar[Dict[str, str]] = {
        "title": "The product title is not valid",
        "description": "The product description is not valid",
        "slug": "The product slug is not valid",
        "imageLink": "The product image link is not valid",
        "category": "The selected category is not valid",
        "foodGroup": "The selected food group is not valid",
        "price": "The product price is not valid",
        "discount": "The product discount is not valid",
        "offPrice": "The product off price is not valid",
    }


class ProductDiscount(RequestSchema):
    discount: float = Field(..., ge=0, le=100)
    offPrice: float = Field(..., ge=0)

    messages: ClassVar[Dict[str, str]] = {
        "discount": "The discount percentage is not valid",
        "offPrice": "The off price is not valid",
    }


class CategoryCreate(RequestSchema):
    title: str = Field(..., min_length=3, max_length=100)
    englishTitle: str = Field(..., min_length=3, max_length=100)
    icon: Optional[str] = None

    messages: ClassVar[Dict[str, str]] = {
        "title": "The category title is not valid",
        "englishTitle": "The English title of the category is not valid",
        "icon": "The category icon is not valid",
    }


def validate_payload(schema: Type[Schema], payload: Any) -> Schema:
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=schema.message_for(exc.errors()[0])) from exc
