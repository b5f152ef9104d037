"""Test the like toggle and the activities it records."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models import Activity, PostLike, User
from app.services import posts as post_service


def test_like_then_unlike(client: TestClient, db: Session, test_user: User, other_user: User, make_post, headers_for):
    post = make_post(test_user, title="Likeable")

    liked = client.put(f"/posts/{post.id}/like", headers=headers_for(other_user))
    assert liked.status_code == 200
    data = liked.json()["data"]
    assert data["liked"] is True
    assert data["likes"] == [other_user.id]
    assert data["like_count"] == 1

    unliked = client.put(f"/posts/{post.id}/like", headers=headers_for(other_user))
    data = unliked.json()["data"]
    assert data["liked"] is False
    assert data["likes"] == []
    assert data["like_count"] == 0

    assert db.query(PostLike).count() == 0


def test_like_records_given_and_received(
    client: TestClient, db: Session, test_user: User, other_user: User, make_post, headers_for
):
    post = make_post(test_user, title="Likeable")

    client.put(f"/posts/{post.id}/like", headers=headers_for(other_user))

    given = db.query(Activity).filter(Activity.type == "like_given").one()
    assert given.user_id == other_user.id
    assert given.post_id == post.id
    assert given.details == {"post_title": "Likeable"}

    received = db.query(Activity).filter(Activity.type == "like_received").one()
    assert received.user_id == test_user.id
    assert received.target_user_id == test_user.id
    assert received.details["target_user"] == test_user.id


def test_unlike_records_nothing(client: TestClient, db: Session, test_user: User, other_user: User, make_post, headers_for):
    post = make_post(test_user)

    client.put(f"/posts/{post.id}/like", headers=headers_for(other_user))
    client.put(f"/posts/{post.id}/like", headers=headers_for(other_user))

    assert db.query(Activity).filter(Activity.type == "like_given").count() == 1


def test_self_like_has_no_received_activity(
    client: TestClient, db: Session, test_user: User, make_post, headers_for
):
    post = make_post(test_user)

    response = client.put(f"/posts/{post.id}/like", headers=headers_for(test_user))

    assert response.json()["data"]["liked"] is True
    assert [a.type for a in db.query(Activity).all()] == ["like_given"]


def test_like_missing_post(client: TestClient, test_user: User, headers_for):
    response = client.put("/posts/999/like", headers=headers_for(test_user))
    assert response.status_code == 404


def test_like_requires_auth(client: TestClient, test_user: User, make_post):
    post = make_post(test_user)
    assert client.put(f"/posts/{post.id}/like").status_code == 401



def test_toggle_like_service(db: Session, test_user: User, other_user: User, make_post):
    post = make_post(test_user)

    assert post_service.toggle_like(db, post.id, other_user.id) == (True, True)
    assert post_service.has_liked(db, post.id, other_user.id)
    assert post_service.toggle_like(db, post.id, other_user.id) == (False, False)
    assert not post_service.has_liked(db, post.id, other_user.id)


def test_like_rows_are_unique_per_user(db: Session, test_user: User, other_user: User, make_post):
    post = make_post(test_user)
    db.add(PostLike(post_id=post.id, user_id=other_user.id))
    db.commit()

    db.add(PostLike(post_id=post.id, user_id=other_user.id))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

    assert db.query(PostLike).count() == 1
