"""Test adding, editing, and deleting comments."""

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models import Activity, PostComment, User


def _comment(client: TestClient, post_id: int, user: User, headers_for, content: str = "Nice post!"):
    return client.post(
        f"/posts/{post_id}/comments", headers=headers_for(user), json={"content": content}
    )


def test_add_comment(client: TestClient, db: Session, test_user: User, other_user: User, make_post, headers_for):
    post = make_post(test_user, title="Discuss")

    response = _comment(client, post.id, other_user, headers_for, content="  Great read  ")

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Comment added successfully"
    assert body["data"]["content"] == "Great read"
    assert body["data"]["user"]["username"] == "bob"
    uuid.UUID(body["data"]["id"])

    added = db.query(Activity).filter(Activity.type == "comment_added").one()
    assert added.user_id == other_user.id
    assert str(added.comment_id) == body["data"]["id"]
    assert added.details == {"post_title": "Discuss", "content": "Great read"}

    received = db.query(Activity).filter(Activity.type == "comment_received").one()
    assert received.user_id == test_user.id
    assert received.target_user_id == test_user.id


def test_comment_snippet_is_truncated(client: TestClient, db: Session, test_user: User, other_user: User, make_post, headers_for):
    post = make_post(test_user)

    _comment(client, post.id, other_user, headers_for, content="y" * 500)

    added = db.query(Activity).filter(Activity.type == "comment_added").one()
    assert added.details["content"] == "y" * 100


def test_comment_on_own_post_notifies_nobody(
    client: TestClient, db: Session, test_user: User, make_post, headers_for
):
    post = make_post(test_user)

    _comment(client, post.id, test_user, headers_for)

    assert [a.type for a in db.query(Activity).all()] == ["comment_added"]


@pytest.mark.parametrize(
    "content,message",
    [
        ("", "Comment content is required"),
        ("    ", "Comment content is required"),
        ("x" * 1001, "Comment is too long. Maximum 1000 characters allowed."),
    ],
)
def test_add_comment_validation(
    client: TestClient, test_user: User, make_post, headers_for, content, message
):
    post = make_post(test_user)
    response = _comment(client, post.id, test_user, headers_for, content=content)
    assert response.status_code == 400
    assert response.json()["message"] == message


def test_add_comment_without_content(client: TestClient, test_user: User, make_post, headers_for):
    post = make_post(test_user)
    response = client.post(f"/posts/{post.id}/comments", headers=headers_for(test_user), json={})
    assert response.status_code == 400
    assert response.json()["message"] == "Comment content is required"


def test_add_comment_to_missing_post(client: TestClient, test_user: User, headers_for):
    response = _comment(client, 31337, test_user, headers_for)
    assert response.status_code == 404


def test_comments_listed_newest_first(client: TestClient, test_user: User, other_user: User, make_post, headers_for):
    post = make_post(test_user)
    _comment(client, post.id, other_user, headers_for, content="first")
    _comment(client, post.id, test_user, headers_for, content="second")

    data = client.get(f"/posts/{post.id}").json()["data"]

    assert [c["content"] for c in data["comments"]] == ["second", "first"]
    assert data["comment_count"] == 2


# ============================================================================
# EDIT
# ============================================================================


def test_edit_comment(client: TestClient, db: Session, test_user: User, other_user: User, make_post, headers_for):
    post = make_post(test_user)
    comment_id = _comment(client, post.id, other_user, headers_for).json()["data"]["id"]
    activity_count = db.query(Activity).count()

    response = client.put(
        f"/posts/{post.id}/comments/{comment_id}",
        headers=headers_for(other_user),
        json={"content": "Edited thought"},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == comment_id
    assert data["content"] == "Edited thought"
    assert data["updated_at"] is not None
    assert db.query(Activity).count() == activity_count


@pytest.mark.parametrize("editor", ["test_user", "admin_user"])
def test_only_comment_author_can_edit(
    request, client: TestClient, test_user: User, other_user: User, make_post, headers_for, editor
):
    post = make_post(test_user)
    comment_id = _comment(client, post.id, other_user, headers_for).json()["data"]["id"]

    response = client.put(
        f"/posts/{post.id}/comments/{comment_id}",
        headers=headers_for(request.getfixturevalue(editor)),
        json={"content": "Not mine"},
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized to edit this comment"


def test_edit_missing_comment(client: TestClient, test_user: User, make_post, headers_for):
    post = make_post(test_user)
    response = client.put(
        f"/posts/{post.id}/comments/{uuid.uuid4()}",
        headers=headers_for(test_user),
        json={"content": "hello"},
    )
    assert response.status_code == 404
    assert response.json()["message"] == "Comment not found"


# ============================================================================
# DELETE
# ============================================================================


@pytest.mark.parametrize("deleter", ["other_user", "test_user", "admin_user"])
def test_delete_comment_allowed(
    request, client: TestClient, db: Session, test_user: User, other_user: User, make_post, headers_for, deleter
):
    """The comment's author, the post's author, and an admin may delete."""
    post = make_post(test_user)
    doomed = _comment(client, post.id, other_user, headers_for, content="doomed").json()["data"]["id"]
    _comment(client, post.id, test_user, headers_for, content="keeper")

    response = client.delete(
        f"/posts/{post.id}/comments/{doomed}",
        headers=headers_for(request.getfixturevalue(deleter)),
    )

    assert response.status_code == 200
    assert [c["content"] for c in response.json()["data"]] == ["keeper"]
    assert db.query(PostComment).count() == 1


def test_delete_comment_by_stranger(
    client: TestClient, make_user, test_user: User, other_user: User, make_post, headers_for
):
    stranger = make_user("mallory")
    post = make_post(test_user)
    comment_id = _comment(client, post.id, other_user, headers_for).json()["data"]["id"]

    response = client.delete(
        f"/posts/{post.id}/comments/{comment_id}", headers=headers_for(stranger)
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized to delete this comment"


def test_delete_comment_on_wrong_post(client: TestClient, test_user: User, make_post, headers_for):
    first = make_post(test_user, title="First")
    second = make_post(test_user, title="Second")
    comment_id = _comment(client, first.id, test_user, headers_for).json()["data"]["id"]

    response = client.delete(
        f"/posts/{second.id}/comments/{comment_id}", headers=headers_for(test_user)
    )
    assert response.status_code == 404
