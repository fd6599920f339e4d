"""End-to-end tests of the HTTP API through FastAPI's TestClient"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

VISITED = 1700000000000

STORY = {
    "title": "Trip",
    "story": "...",
    "visitedLocation": "Rome",
    "imageUrl": "http://h/i.jpg",
    "visitedDate": VISITED,
}


def add_story(client, headers, **overrides):
    res = client.post("/add-travel-story", json={**STORY, **overrides}, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()["story"]


class TestAccounts:
    def test_create_account(self, client):
        res = client.post(
            "/create-account",
            json={"fullName": "Alice", "email": "A@X.com", "password": "pw1"},
        )
        assert res.status_code == 201
        body = res.json()
        assert body["error"] is False
        assert body["accessToken"]
        assert body["user"]["email"] == "a@x.com"
        assert "password" not in body["user"]

    def test_create_account_missing_field(self, client):
        res = client.post("/create-account", json={"email": "a@x.com", "password": "pw1"})
        assert res.status_code == 400
        assert res.json() == {"error": True, "message": "All fields are required"}

    def test_duplicate_account(self, client, register):
        register()
        res = client.post(
            "/create-account",
            json={"fullName": "Alice", "email": "A@x.com", "password": "pw2"},
        )
        assert res.status_code == 400
        assert res.json()["message"] == "User already exists"

    def test_login(self, client, register):
        register()
        res = client.post("/login", json={"email": "a@x.com", "password": "pw1"})
        assert res.status_code == 200
        assert res.json()["user"]["fullName"] == "Alice"
        assert res.json()["accessToken"]

    def test_login_unknown_user(self, client):
        res = client.post("/login", json={"email": "nobody@x.com", "password": "pw1"})
        assert res.status_code == 400
        assert res.json() == {"error": True, "message": "User not found"}

    def test_login_wrong_password(self, client, register):
        register()
        res = client.post("/login", json={"email": "a@x.com", "password": "nope"})
        assert res.status_code == 400
        assert res.json()["message"] == "Invalid Credentials"

    def test_get_user(self, client, register):
        headers = register()
        res = client.get("/get-user", headers=headers)
        assert res.status_code == 200
        assert res.json()["user"]["email"] == "a@x.com"

    def test_get_user_requires_token(self, client):
        res = client.get("/get-user")
        assert res.status_code == 401
        assert res.json()["error"] is True

    def test_expired_token(self, client, register, settings):
        register()
        user_id = client.app.state.store["users"].find_one({"email": "a@x.com"})["_id"]
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = jwt.encode(
            {"userId": user_id, "iat": past - timedelta(hours=72), "exp": past},
            settings.auth.access_token_secret,
            algorithm="HS256",
        )
        res = client.get("/get-all-stories", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401
        assert res.json()["message"] == "Token has expired"

    def test_token_for_unknown_user(self, client, settings):
        token = jwt.encode({"userId": "ghost"}, settings.auth.access_token_secret, algorithm="HS256")
        res = client.get("/get-user", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401


class TestStories:
    def test_scenario(self, client, register):
        headers = register("a@x.com", "pw1")
        story = add_story(client, headers)
        assert story["userId"]
        assert story["visitedDate"].startswith("2023-11-14T22:13:20")

        stories = client.get("/get-all-stories", headers=headers).json()["stories"]
        assert [s["title"] for s in stories] == ["Trip"]

        res = client.delete(f"/delete-story/{story['_id']}", headers=headers)
        assert res.status_code == 200
        assert res.json()["error"] is False
        assert client.get("/get-all-stories", headers=headers).json()["stories"] == []

    def test_add_story_missing_field(self, client, register):
        headers = register()
        res = client.post("/add-travel-story", json={**STORY, "imageUrl": ""}, headers=headers)
        assert res.status_code == 400
        assert res.json()["message"] == "All fields are required"

    def test_add_story_bad_date(self, client, register):
        headers = register()
        res = client.post("/add-travel-story", json={**STORY, "visitedDate": "soon"}, headers=headers)
        assert res.status_code == 400

    def test_requires_auth(self, client):
        assert client.get("/get-all-stories").status_code == 401
        res = client.get("/get-all-stories", headers={"Authorization": "Bearer garbage"})
        assert res.status_code == 401
        assert res.json() == {"error": True, "message": "Token is invalid"}

    def test_edit_story(self, client, register):
        headers = register()
        story = add_story(client, headers)
        res = client.put(
            f"/edit-story/{story['_id']}",
            json={"title": "Edited", "story": "New", "visitedLocation": "Milan", "visitedDate": VISITED},
            headers=headers,
        )
        assert res.status_code == 200
        edited = res.json()["story"]
        assert edited["title"] == "Edited"
        assert edited["imageUrl"] == "http://testserver/assets/placeholder.png"
        assert edited["createdOn"] == story["createdOn"]

    def test_edit_missing_story(self, client, register):
        headers = register()
        res = client.put(
            "/edit-story/unknown",
            json={"title": "t", "story": "s", "visitedLocation": "l", "visitedDate": VISITED},
            headers=headers,
        )
        assert res.status_code == 404
        assert res.json()["message"] == "Travel story not found"

    def test_delete_missing_story_reports_in_body(self, client, register):
        headers = register()
        res = client.delete("/delete-story/unknown", headers=headers)
        assert res.status_code == 200
        assert res.json() == {"error": True, "message": "Travel story not found"}

    def test_favourite_toggle(self, client, register):
        headers = register()
        first = add_story(client, headers, title="first")
        second = add_story(client, headers, title="second")

        res = client.put(f"/update-is-favourite/{second['_id']}", json={"isFavourite": True}, headers=headers)
        assert res.status_code == 200
        assert res.json()["story"]["isFavourite"] is True

        titles = [s["title"] for s in client.get("/get-all-stories", headers=headers).json()["stories"]]
        assert titles == ["second", "first"]

        res = client.put(f"/update-is-favourite/{second['_id']}", json={"isFavourite": False}, headers=headers)
        assert res.json()["story"]["isFavourite"] is False
        assert first["isFavourite"] is False

    def test_favourite_missing_story(self, client, register):
        headers = register()
        res = client.put("/update-is-favourite/unknown", json={"isFavourite": True}, headers=headers)
        assert res.status_code == 404

    def test_favourite_requires_flag(self, client, register):
        headers = register()
        story = add_story(client, headers)
        res = client.put(f"/update-is-favourite/{story['_id']}", json={}, headers=headers)
        assert res.status_code == 400

    def test_search(self, client, register):
        headers = register()
        add_story(client, headers, visitedLocation="Paris, France")
        add_story(client, headers, visitedLocation="Oslo")
        res = client.get("/search", params={"query": "paris"}, headers=headers)
        assert res.status_code == 200
        assert [s["visitedLocation"] for s in res.json()["stories"]] == ["Paris, France"]

    def test_search_without_query(self, client, register):
        headers = register()
        res = client.get("/search", headers=headers)
        assert res.status_code == 404
        assert res.json() == {"error": True, "message": "Query is required"}

    def test_filter_by_date(self, client, register):
        headers = register()
        add_story(client, headers, title="in", visitedDate=VISITED)
        add_story(client, headers, title="out", visitedDate=VISITED + 86400000)
        res = client.get(
            "/travel-stories/filter",
            params={"startDate": VISITED - 1000, "endDate": VISITED + 1000},
            headers=headers,
        )
        assert res.status_code == 200
        assert [s["title"] for s in res.json()["stories"]] == ["in"]

    def test_fractional_visited_date(self, client, register):
        headers = register()
        story = add_story(client, headers, visitedDate=VISITED + 0.5)
        assert story["visitedDate"].startswith("2023-11-14T22:13:20")

    @pytest.mark.parametrize("params", [
        {"endDate": VISITED},
        {"startDate": "soon", "endDate": VISITED},
    ])
    def test_filter_bad_bounds(self, client, register, params):
        headers = register()
        res = client.get("/travel-stories/filter", params=params, headers=headers)
        assert res.status_code == 400
        assert res.json()["error"] is True

    def test_filter_reversed_range(self, client, register):
        headers = register()
        add_story(client, headers)
        res = client.get(
            "/travel-stories/filter",
            params={"startDate": VISITED + 1000, "endDate": VISITED - 1000},
            headers=headers,
        )
        assert res.status_code == 200
        assert res.json()["stories"] == []


class TestOwnership:
    def test_user_cannot_touch_other_users_stories(self, client, register):
        alice = register("alice@x.com", "pw1", "Alice")
        bob = register("bob@x.com", "pw2", "Bob")
        story = add_story(client, alice, title="Alice only", visitedLocation="Paris")
        story_id = story["_id"]

        assert client.get("/get-all-stories", headers=bob).json()["stories"] == []
        assert client.get("/search", params={"query": "paris"}, headers=bob).json()["stories"] == []
        res = client.get(
            "/travel-stories/filter",
            params={"startDate": 0, "endDate": VISITED * 2},
            headers=bob,
        )
        assert res.json()["stories"] == []

        edit = {"title": "Bob was here", "story": "s", "visitedLocation": "l", "visitedDate": VISITED}
        assert client.put(f"/edit-story/{story_id}", json=edit, headers=bob).status_code == 404
        assert client.put(
            f"/update-is-favourite/{story_id}", json={"isFavourite": True}, headers=bob
        ).status_code == 404
        assert client.delete(f"/delete-story/{story_id}", headers=bob).json()["error"] is True

        stories = client.get("/get-all-stories", headers=alice).json()["stories"]
        assert stories == [story]


class TestMedia:
    def test_upload_serve_and_delete(self, client):
        res = client.post(
            "/image-upload",
            files={"image": ("view.png", b"\x89PNG fake", "image/png")},
        )
        assert res.status_code == 200
        image_url = res.json()["imageUrl"]
        path = image_url.replace("http://testserver", "")
        assert path.startswith("/uploads/")

        served = client.get(path)
        assert served.status_code == 200
        assert served.content == b"\x89PNG fake"

        res = client.delete("/delete-image", params={"imageUrl": image_url})
        assert res.json() == {"error": False, "message": "Image deleted successfully"}
        assert client.get(path).status_code == 404

        res = client.delete("/delete-image", params={"imageUrl": image_url})
        assert res.status_code == 200
        assert res.json() == {"error": True, "message": "Image not found"}

    def test_upload_without_file(self, client):
        res = client.post("/image-upload")
        assert res.status_code == 400
        assert res.json()["message"] == "No image uploaded"

    def test_upload_non_image(self, client):
        res = client.post(
            "/image-upload",
            files={"image": ("notes.txt", b"hello", "text/plain")},
        )
        assert res.status_code == 400
        assert res.json()["message"] == "Only images are allowed"

    def test_delete_image_without_param(self, client):
        res = client.delete("/delete-image")
        assert res.status_code == 200
        assert res.json()["error"] is True

    def test_deleting_story_removes_its_image(self, client, register, app):
        headers = register()
        image_url = client.post(
            "/image-upload", files={"image": ("a.jpg", b"jpeg", "image/jpeg")}
        ).json()["imageUrl"]
        story = add_story(client, headers, imageUrl=image_url)

        filename = image_url.rsplit("/", 1)[1]
        assert (app.state.media_service.upload_dir / filename).exists()
        client.delete(f"/delete-story/{story['_id']}", headers=headers)
        assert not (app.state.media_service.upload_dir / filename).exists()

    def test_assets_served(self, client, settings):
        from pathlib import Path

        (Path(settings.media.assets_dir) / "placeholder.png").write_bytes(b"png")
        assert client.get("/assets/placeholder.png").content == b"png"
        assert client.get("/assets/missing.png").status_code == 404


def test_health(client, register):
    register()
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok", "collections": ["users"]}
