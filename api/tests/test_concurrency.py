"""Concurrent writes against the same post."""

from concurrent.futures import ThreadPoolExecutor

from sqlalchemy.orm import Session

from app.db import SessionLocal
from app.models import Post, PostLike, User
from app.services import posts as post_service


def _in_own_session(fn, *args):
    session = SessionLocal()
    try:
        return fn(session, *args)
    finally:
        session.close()


def test_concurrent_view_increments_are_not_lost(db: Session, test_user: User, make_post):
    post = make_post(test_user)
    post_id = post.id

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(
            pool.map(lambda _: _in_own_session(post_service.increment_views, post_id), range(40))
        )

    assert all(results)
    db.expire_all()
    assert db.get(Post, post_id).views == 40


def test_concurrent_likes_from_many_users(db: Session, make_user, test_user: User, make_post):
    post = make_post(test_user)
    post_id = post.id
    user_ids = [make_user(f"fan{i}").id for i in range(10)]

    with ThreadPoolExecutor(max_workers=5) as pool:
        results = list(
            pool.map(
                lambda uid: _in_own_session(post_service.toggle_like, post_id, uid), user_ids
            )
        )

    assert results == [(True, True)] * len(user_ids)
    assert db.query(PostLike).filter(PostLike.post_id == post_id).count() == len(user_ids)


def test_increment_missing_post(db: Session):
    assert post_service.increment_views(db, 123456) is False
