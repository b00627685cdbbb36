import io

from fastapi.testclient import TestClient
from PIL import Image

from linkup.config import settings
from linkup.main import app

client = TestClient(app)


def _make_png() -> bytes:
    img = Image.new("RGB", (16, 16), "white")
    bio = io.BytesIO()
    img.save(bio, format="PNG")
    return bio.getvalue()


def _create_post(headers, content="hello world", files=None):
    r = client.post("/api/posts", data={"content": content}, files=files, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def _posts_count(headers) -> int:
    return client.get("/api/auth/me", headers=headers).json()["postsCount"]


def test_create_post_populates_author_and_bumps_count(make_user):
    alice, headers = make_user("Alice")
    post = _create_post(headers, "  first post  ")
    assert post["content"] == "first post"
    assert post["author"]["id"] == alice["id"]
    assert post["author"]["name"] == "Alice"
    assert post["likes"] == [] and post["comments"] == []
    assert post["image"] == ""
    assert _posts_count(headers) == 1


def test_create_post_requires_content(make_user):
    _, headers = make_user("Alice")
    r = client.post("/api/posts", data={"content": "   "}, headers=headers)
    assert r.status_code == 400
    assert _posts_count(headers) == 0


def test_feed_requires_token():
    assert client.get("/api/posts").status_code == 401


def test_feed_is_newest_first_and_paginated(make_user):
    _, headers = make_user("Alice")
    for i in range(5):
        _create_post(headers, f"post {i}")

    first = client.get("/api/posts", params={"page": 1, "limit": 2}, headers=headers).json()
    assert [p["content"] for p in first["posts"]] == ["post 4", "post 3"]
    assert first["total"] == 5
    assert first["totalPages"] == 3
    assert first["currentPage"] == 1

    last = client.get("/api/posts", params={"page": 3, "limit": 2}, headers=headers).json()
    assert [p["content"] for p in last["posts"]] == ["post 0"]

    beyond = client.get("/api/posts", params={"page": 9, "limit": 2}, headers=headers).json()
    assert beyond["posts"] == []


def test_feed_rejects_out_of_range_paging(make_user):
    _, headers = make_user("Alice")
    assert client.get("/api/posts", params={"limit": 0}, headers=headers).status_code == 422
    assert client.get("/api/posts", params={"limit": 51}, headers=headers).status_code == 422
    assert client.get("/api/posts", params={"page": 0}, headers=headers).status_code == 422


def test_like_twice_toggles_back(make_user):
    alice, headers = make_user("Alice")
    post = _create_post(headers)

    liked = client.post(f"/api/posts/{post['id']}/like", headers=headers).json()
    assert liked["liked"] is True
    assert liked["message"] == "Post liked"
    assert liked["post"]["likes"] == [{"id": alice["id"], "name": "Alice"}]
    assert liked["post"]["likesCount"] == 1

    unliked = client.post(f"/api/posts/{post['id']}/like", headers=headers).json()
    assert unliked["liked"] is False
    assert unliked["post"]["likes"] == []
    assert unliked["post"]["likesCount"] == 0


def test_like_missing_post_is_404(make_user):
    _, headers = make_user("Alice")
    assert client.post("/api/posts/999/like", headers=headers).status_code == 404


def test_likes_from_several_users(make_user):
    _, alice_h = make_user("Alice")
    _, bob_h = make_user("Bob")
    post = _create_post(alice_h)
    client.post(f"/api/posts/{post['id']}/like", headers=alice_h)
    r = client.post(f"/api/posts/{post['id']}/like", headers=bob_h).json()
    assert sorted(like["name"] for like in r["post"]["likes"]) == ["Alice", "Bob"]


def test_comment_add_and_author_only_edit(make_user):
    _, alice_h = make_user("Alice")
    bob, bob_h = make_user("Bob")
    post = _create_post(alice_h)

    r = client.post(f"/api/posts/{post['id']}/comment", json={"text": "nice post"}, headers=bob_h)
    assert r.status_code == 201
    comment = r.json()["comments"][0]
    assert comment["text"] == "nice post"
    assert comment["user"]["id"] == bob["id"]
    assert comment["user"]["name"] == "Bob"

    url = f"/api/posts/{post['id']}/comment/{comment['id']}"
    forbidden = client.put(url, json={"text": "hijacked"}, headers=alice_h)
    assert forbidden.status_code == 403

    edited = client.put(url, json={"text": "very nice post"}, headers=bob_h)
    assert edited.status_code == 200
    updated = edited.json()["comments"][0]
    assert updated["text"] == "very nice post"
    assert updated["createdAt"] == comment["createdAt"]
    assert updated["updatedAt"] >= comment["updatedAt"]


def test_comment_validation_and_missing_targets(make_user):
    _, headers = make_user("Alice")
    post = _create_post(headers)
    assert client.post(f"/api/posts/{post['id']}/comment", json={"text": ""}, headers=headers).status_code == 422
    assert client.post(f"/api/posts/{post['id']}/comment", json={"text": "   "}, headers=headers).status_code == 400
    assert client.post("/api/posts/999/comment", json={"text": "hi"}, headers=headers).status_code == 404
    missing = client.put(f"/api/posts/{post['id']}/comment/nope", json={"text": "hi"}, headers=headers)
    assert missing.status_code == 404


def test_comment_delete_by_comment_or_post_author(make_user):
    _, alice_h = make_user("Alice")
    _, bob_h = make_user("Bob")
    _, carol_h = make_user("Carol")
    post = _create_post(alice_h)
    for text in ("one", "two"):
        client.post(f"/api/posts/{post['id']}/comment", json={"text": text}, headers=bob_h)
    comments = client.get(f"/api/posts/{post['id']}", headers=alice_h).json()["comments"]

    url = f"/api/posts/{post['id']}/comment/{comments[0]['id']}"
    assert client.delete(url, headers=carol_h).status_code == 403
    r = client.delete(url, headers=bob_h)
    assert r.status_code == 200
    assert [c["text"] for c in r.json()["comments"]] == ["two"]

    r = client.delete(f"/api/posts/{post['id']}/comment/{comments[1]['id']}", headers=alice_h)
    assert r.status_code == 200
    assert r.json()["comments"] == []


def test_only_author_can_delete_post(make_user):
    _, alice_h = make_user("Alice")
    _, bob_h = make_user("Bob")
    post = _create_post(alice_h)
    r = client.delete(f"/api/posts/{post['id']}", headers=bob_h)
    assert r.status_code == 403
    assert client.get(f"/api/posts/{post['id']}", headers=alice_h).status_code == 200


def test_delete_post_decrements_post_count_by_one(make_user):
    _, headers = make_user("Alice")
    keep = _create_post(headers, "keep")
    drop = _create_post(headers, "drop")
    assert _posts_count(headers) == 2

    r = client.delete(f"/api/posts/{drop['id']}", headers=headers)
    assert r.status_code == 200
    assert _posts_count(headers) == 1
    assert client.get(f"/api/posts/{drop['id']}", headers=headers).status_code == 404
    assert client.get(f"/api/posts/{keep['id']}", headers=headers).status_code == 200
    assert client.delete(f"/api/posts/{drop['id']}", headers=headers).status_code == 404


def test_create_post_with_image(make_user):
    _, headers = make_user("Alice")
    files = {"image": ("pic.png", _make_png(), "image/png")}
    post = _create_post(headers, "with picture", files=files)
    assert post["image"].startswith("/uploads/")
    assert post["image"].endswith(".png")
    served = client.get(post["image"])
    assert served.status_code == 200

    stored = settings.UPLOAD_DIR / post["image"].rsplit("/", 1)[-1]
    assert stored.exists()
    client.delete(f"/api/posts/{post['id']}", headers=headers)
    assert not stored.exists()


def test_create_post_rejects_bad_images(make_user, monkeypatch):
    _, headers = make_user("Alice")
    files = {"image": ("notes.txt", b"not an image", "text/plain")}
    r = client.post("/api/posts", data={"content": "x"}, files=files, headers=headers)
    assert r.status_code == 415

    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 10)
    files = {"image": ("pic.png", _make_png(), "image/png")}
    r = client.post("/api/posts", data={"content": "x"}, files=files, headers=headers)
    assert r.status_code == 400
    assert _posts_count(headers) == 0


def test_delete_post_survives_image_removal_failure(make_user, monkeypatch):
    _, headers = make_user("Alice")
    files = {"image": ("pic.png", _make_png(), "image/png")}
    post = _create_post(headers, "with picture", files=files)

    def fail(public_path, upload_dir):
        raise PermissionError("read-only upload dir")

    monkeypatch.setattr("linkup.utils.images.remove_image", fail)
    r = client.delete(f"/api/posts/{post['id']}", headers=headers)
    assert r.status_code == 200
    assert _posts_count(headers) == 0
    assert client.get(f"/api/posts/{post['id']}", headers=headers).status_code == 404
