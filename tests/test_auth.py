from bson import ObjectId


def test_signup_and_login(client, mongo):
    r = client.post("/auth/signup", json={"name": "Reza", "email": "reza@example.com", "password": "s3cret-pass"})
    assert r.status_code == 201
    user = r.json()["data"]["user"]
    assert user["email"] == "reza@example.com"
    assert "is_admin" not in user

    saved = mongo["user"].find_one({"_id": ObjectId(user["user_id"])})
    assert saved["password_hash"] != "s3cret-pass"
    assert saved["likedProducts"] == []
    assert "is_admin" not in saved

    r = client.post("/auth/login", json={"email": "reza@example.com", "password": "s3cret-pass"})
    assert r.status_code == 200
    assert r.json()["data"]["user"]["user_id"] == user["user_id"]


def test_signup_duplicate_email(client):
    payload = {"name": "Reza", "email": "reza@example.com", "password": "s3cret-pass"}
    client.post("/auth/signup", json=payload)
    r = client.post("/auth/signup", json=payload)
    assert r.status_code == 400
    assert r.json()["errors"]["message"] == "Email already registered"


def test_login_wrong_password(client):
    client.post("/auth/signup", json={"name": "Reza", "email": "reza@example.com", "password": "s3cret-pass"})
    r = client.post("/auth/login", json={"email": "reza@example.com", "password": "nope"})
    assert r.status_code == 401


def test_categories(client, mongo):
    r = client.post("/categories", json={"title": "Snacks", "englishTitle": "snacks"})
    assert r.status_code == 201

    r = client.post("/categories", json={"title": "Snacks", "englishTitle": "snacks"})
    assert r.status_code == 400

    r = client.get("/categories")
    assert [c["englishTitle"] for c in r.json()["data"]["categories"]] == ["snacks"]
