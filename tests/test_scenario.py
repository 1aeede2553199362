from conftest import PASSWORD, bearer


def test_register_login_post_comment_reply_like_delete(client):
    registered = client.post(
        "/api/auth/register",
        json={"email": "a@x.com", "username": "alice", "password": PASSWORD},
    )
    assert registered.status_code == 201

    login = client.post("/api/auth/login", json={"email": "a@x.com", "password": PASSWORD})
    assert login.status_code == 200
    alice = bearer(login.json()["access_token"])

    bob = client.post(
        "/api/auth/register",
        json={"email": "b@x.com", "username": "bob", "password": PASSWORD},
    )
    assert bob.status_code == 201
    bob = bearer(bob.json()["access_token"])

    post = client.post(
        "/api/posts",
        json={"title": "Hello World", "content": "Ten chars plus", "status": "published"},
        headers=alice,
    ).json()
    assert post["slug"] == "hello-world"
    assert post["published_at"] is not None

    c1 = client.post(
        "/api/comments", json={"content": "First comment", "post_id": post["id"]}, headers=alice
    ).json()
    assert client.get(f"/api/posts/{post['id']}").json()["comments_count"] == 1

    c2 = client.post(
        "/api/comments",
        json={"content": "A reply", "post_id": post["id"], "parent_comment_id": c1["id"]},
        headers=bob,
    ).json()
    assert c2["author"]["username"] == "bob"
    assert client.get(f"/api/posts/{post['id']}").json()["comments_count"] == 2
    assert [r["id"] for r in client.get(f"/api/comments/{c1['id']}").json()["replies"]] == [c2["id"]]

    liked = client.post(
        "/api/likes/toggle", json={"target_id": c2["id"], "target_type": "comment"}, headers=alice
    ).json()
    assert liked == {"liked": True, "likes_count": 1}
    assert client.get(f"/api/comments/{c2['id']}").json()["likes_count"] == 1

    deleted = client.delete(f"/api/comments/{c1['id']}", headers=alice)
    assert deleted.status_code == 200
    assert client.get(f"/api/comments/{c1['id']}").status_code == 404
    assert client.get(f"/api/comments/{c2['id']}").status_code == 404
    assert client.get(f"/api/posts/{post['id']}").json()["comments_count"] == 1


def test_home_and_status(client):
    assert client.get("/").json() == {"message": "Welcome to the Blog Platform API!"}

    status = client.get("/status").json()
    assert status["status"] == "ok"
    assert status["database"] == "connected"


def test_unknown_route_uses_error_body(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"status_code": 404, "detail": "Not Found"}


def test_routes_publish_response_schemas(client):
    schema = client.get("/openapi.json").json()
    models = schema["components"]["schemas"]
    for name in ("PostResponse", "PostPage", "CommentResponse", "UserResponse", "SessionResponse"):
        assert name in models

    ok = schema["paths"]["/api/posts/{post_id}"]["get"]["responses"]["200"]
    assert ok["content"]["application/json"]["schema"]["$ref"] == "#/components/schemas/PostResponse"
    assert "email" not in models["PublicProfile"]["properties"]


def test_public_author_never_exposes_email(client, register, make_post):
    alice = register("alice")
    post = make_post(alice["headers"], title="Shown", status="published")

    author = client.get(f"/api/posts/{post['id']}").json()["author"]
    assert author["username"] == "alice"
    assert "email" not in author
    assert "roles" not in author
