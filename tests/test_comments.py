from blog.models.comment import Comment
from blog.services.comments import get_thread
from manage_users import grant_role


def post_counts(client, post_id, headers=None):
    return client.get(f"/api/posts/{post_id}", headers=headers).json()["comments_count"]


def test_create_comment_increments_post_counter(client, register, make_post, make_comment):
    alice = register("alice")
    post = make_post(alice["headers"], status="published")

    comment = make_comment(alice["headers"], post["id"], content="First!")

    assert comment["content"] == "First!"
    assert comment["status"] == "approved"
    assert comment["author"]["username"] == "alice"
    assert comment["parent_comment_id"] is None
    assert comment["replies"] == []
    assert post_counts(client, post["id"]) == 1


def test_comment_on_missing_post_is_not_found(client, register):
    alice = register("alice")

    response = client.post("/api/comments", json={"content": "hi", "post_id": 999}, headers=alice["headers"])

    assert response.status_code == 404


def test_reply_appears_in_parent_replies(client, register, make_post, make_comment):
    alice = register("alice")
    bob = register("bob")
    post = make_post(alice["headers"], status="published")
    parent = make_comment(alice["headers"], post["id"])

    reply = make_comment(bob["headers"], post["id"], content="A reply", parent=parent["id"])

    assert reply["parent_comment_id"] == parent["id"]
    fetched = client.get(f"/api/comments/{parent['id']}").json()
    assert [r["id"] for r in fetched["replies"]] == [reply["id"]]
    assert fetched["replies"][0]["content"] == "A reply"
    # Every reply counts towards the post total
    assert post_counts(client, post["id"]) == 2


def test_reply_to_comment_of_another_post_is_bad_request(client, register, make_post, make_comment):
    alice = register("alice")
    post_a = make_post(alice["headers"], title="Post A", status="published")
    post_b = make_post(alice["headers"], title="Post B", status="published")
    parent = make_comment(alice["headers"], post_a["id"])

    response = client.post(
        "/api/comments",
        json={"content": "Wrong post", "post_id": post_b["id"], "parent_comment_id": parent["id"]},
        headers=alice["headers"],
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Parent comment does not belong to this post"
    assert client.get(f"/api/comments/{parent['id']}").json()["replies"] == []


def test_reply_to_missing_parent_is_not_found(client, register, make_post):
    alice = register("alice")
    post = make_post(alice["headers"], status="published")

    response = client.post(
        "/api/comments",
        json={"content": "Orphan", "post_id": post["id"], "parent_comment_id": 42},
        headers=alice["headers"],
    )

    assert response.status_code == 404


def test_mentions_must_exist(client, register, make_post, make_comment):
    alice = register("alice")
    bob = register("bob")
    post = make_post(alice["headers"], status="published")

    ok = make_comment(alice["headers"], post["id"], content="@bob look", mentions=[bob["user"]["id"]])
    bad = client.post(
        "/api/comments",
        json={"content": "@ghost", "post_id": post["id"], "mentions": [999]},
        headers=alice["headers"],
    )

    assert ok["mentions"] == [bob["user"]["id"]]
    assert bad.status_code == 400


def test_deleting_comment_with_two_replies_removes_all_and_decrements_once(
    client, register, make_post, make_comment
):
    alice = register("alice")
    post = make_post(alice["headers"], status="published")
    parent = make_comment(alice["headers"], post["id"])
    first = make_comment(alice["headers"], post["id"], parent=parent["id"])
    second = make_comment(alice["headers"], post["id"], parent=parent["id"])
    assert post_counts(client, post["id"]) == 3

    response = client.delete(f"/api/comments/{parent['id']}", headers=alice["headers"])

    assert response.status_code == 200
    for comment in (parent, first, second):
        assert client.get(f"/api/comments/{comment['id']}").status_code == 404
    assert post_counts(client, post["id"]) == 2


def test_deleting_reply_unlinks_it_from_parent(client, register, make_post, make_comment):
    alice = register("alice")
    post = make_post(alice["headers"], status="published")
    parent = make_comment(alice["headers"], post["id"])
    reply = make_comment(alice["headers"], post["id"], parent=parent["id"])

    client.delete(f"/api/comments/{reply['id']}", headers=alice["headers"])

    assert client.get(f"/api/comments/{parent['id']}").json()["replies"] == []


def test_only_owner_or_admin_can_edit_and_delete(client, register, make_post, make_comment):
    alice = register("alice")
    bob = register("bob")
    post = make_post(alice["headers"], status="published")
    comment = make_comment(alice["headers"], post["id"])
    url = f"/api/comments/{comment['id']}"

    assert client.patch(url, json={"content": "edit"}, headers=bob["headers"]).status_code == 403
    assert client.delete(url, headers=bob["headers"]).status_code == 403

    grant_role("bob", "admin")
    assert client.delete(url, headers=bob["headers"]).status_code == 200


def test_owner_edit_marks_comment_edited(client, register, make_post, make_comment):
    alice = register("alice")
    post = make_post(alice["headers"], status="published")
    comment = make_comment(alice["headers"], post["id"])

    edited = client.patch(
        f"/api/comments/{comment['id']}", json={"content": "Fixed typo"}, headers=alice["headers"]
    ).json()

    assert edited["content"] == "Fixed typo"
    assert edited["is_edited"] is True
    assert edited["edited_at"] is not None


def test_moderation_requires_admin_or_moderator(client, register, make_post, make_comment):
    alice = register("alice")
    mod = register("mod")
    post = make_post(alice["headers"], status="published")
    comment = make_comment(alice["headers"], post["id"])
    url = f"/api/comments/{comment['id']}/moderate"

    denied = client.patch(url, json={"status": "spam"}, headers=alice["headers"])
    assert denied.status_code == 403

    grant_role("mod", "moderator")
    moderated = client.patch(url, json={"status": "spam"}, headers=mod["headers"])

    assert moderated.status_code == 200
    assert moderated.json()["status"] == "spam"
    listed = client.get(f"/api/comments/post/{post['id']}").json()
    assert listed["comments"] == []
    spam = client.get(f"/api/comments?post={post['id']}&status=spam").json()
    assert [c["id"] for c in spam["comments"]] == [comment["id"]]


def test_invalid_moderation_status_is_bad_request(client, register, make_post, make_comment):
    alice = register("alice")
    grant_role("alice", "moderator")
    post = make_post(alice["headers"], status="published")
    comment = make_comment(alice["headers"], post["id"])

    response = client.patch(
        f"/api/comments/{comment['id']}/moderate", json={"status": "deleted"}, headers=alice["headers"]
    )

    assert response.status_code == 400


def test_post_comments_list_top_level_with_approved_replies(client, db, register, make_post, make_comment):
    alice = register("alice")
    post = make_post(alice["headers"], status="published")
    top = make_comment(alice["headers"], post["id"], content="top")
    visible = make_comment(alice["headers"], post["id"], content="visible", parent=top["id"])
    hidden = make_comment(alice["headers"], post["id"], content="hidden", parent=top["id"])
    db.query(Comment).filter(Comment.id == hidden["id"]).update({Comment.status: "pending"})
    db.commit()

    body = client.get(f"/api/comments/post/{post['id']}").json()

    assert [c["id"] for c in body["comments"]] == [top["id"]]
    assert [r["id"] for r in body["comments"][0]["replies"]] == [visible["id"]]
    assert body["pagination"]["total"] == 1


def test_thread_expands_nested_replies(client, register, make_post, make_comment):
    alice = register("alice")
    post = make_post(alice["headers"], status="published")
    root = make_comment(alice["headers"], post["id"], content="root")
    child = make_comment(alice["headers"], post["id"], content="child", parent=root["id"])
    grandchild = make_comment(alice["headers"], post["id"], content="grandchild", parent=child["id"])

    thread = client.get(f"/api/comments/{root['id']}/thread").json()

    assert thread["replies"][0]["id"] == child["id"]
    assert thread["replies"][0]["replies"][0]["id"] == grandchild["id"]
    assert thread["replies"][0]["replies"][0]["replies"] == []


def test_thread_depth_is_bounded(db, client, register, make_post, make_comment):
    alice = register("alice")
    post = make_post(alice["headers"], status="published")
    root = make_comment(alice["headers"], post["id"])
    child = make_comment(alice["headers"], post["id"], parent=root["id"])
    grandchild = make_comment(alice["headers"], post["id"], parent=child["id"])

    thread = get_thread(db, root["id"], max_depth=1)

    # Beyond the limit replies are listed by id
    assert thread["replies"][0]["id"] == child["id"]
    assert thread["replies"][0]["replies"] == [grandchild["id"]]


def test_draft_comments_are_hidden_from_other_users(client, register, make_post, make_comment):
    alice = register("alice")
    bob = register("bob")
    draft = make_post(alice["headers"], title="Unfinished")
    own = make_comment(alice["headers"], draft["id"], content="note to self")

    other = client.post("/api/comments", json={"content": "hi", "post_id": draft["id"]}, headers=bob["headers"])
    anonymous = client.get(f"/api/comments/post/{draft['id']}")
    author_view = client.get(f"/api/comments/post/{draft['id']}", headers=alice["headers"])

    assert other.status_code == 404
    assert anonymous.status_code == 404
    assert [c["id"] for c in author_view.json()["comments"]] == [own["id"]]
