from datetime import datetime, timedelta, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from main import app


@pytest.fixture
def mongo(monkeypatch):
    test_db = mongomock.MongoClient()["food_catalog_test"]
    monkeypatch.setattr(database, "db", test_db)
    return test_db


@pytest.fixture
def client(mongo):
    return TestClient(app)


@pytest.fixture
def category(mongo):
    category_id = mongo["category"].insert_one(
        {"title": "Breakfast", "englishTitle": "breakfast", "icon": "sun"}
    ).inserted_id
    return str(category_id)


@pytest.fixture
def other_category(mongo):
    category_id = mongo["category"].insert_one(
        {"title": "Dinner", "englishTitle": "dinner", "icon": "moon"}
    ).inserted_id
    return str(category_id)


@pytest.fixture
def food_group(mongo, category):
    food_group_id = mongo["foodgroup"].insert_one({
        "title": "Dairy",
        "englishTitle": "dairy",
        "description": "Milk based products",
        "type": "foodGroup",
        "parent": None,
        "category": category,
    }).inserted_id
    return str(food_group_id)


@pytest.fixture
def user(mongo):
    user_id = mongo["user"].insert_one({
        "name": "Sara",
        "email": "sara@example.com",
        "password_hash": "x",
        "likedProducts": [],
    }).inserted_id
    return str(user_id)


@pytest.fixture
def make_product(mongo, category, food_group):
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        doc = {
            "title": f"Yogurt {counter['n']}",
            "description": "Plain yogurt",
            "slug": f"yogurt-{counter['n']}",
            "imageLink": None,
            "category": category,
            "foodGroup": food_group,
            "price": 10.0,
            "discount": 0,
            "offPrice": None,
            "likes": [],
            "bookmarks": [],
            "reviews": [],
            "created_at": base + timedelta(minutes=counter["n"]),
            "updated_at": base + timedelta(minutes=counter["n"]),
        }
        doc.update(overrides)
        return str(mongo["product"].insert_one(doc).inserted_id)

    return _make


@pytest.fixture
def product(make_product):
    return make_product()


