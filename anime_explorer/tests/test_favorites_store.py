"""Tests for the favorites store."""
import os
import sys
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
sys.path.insert(0, PROJECT_ROOT)

from anime_explorer.database import Base
from anime_explorer.favorites.store import FavoritesStore
from anime_explorer.models import User, UserFavorite


@pytest.fixture
def db():
    """In-memory SQLite session with fresh tables."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def user(db):
    user = User(email="fan@example.com", hashed_password="x")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def count_rows(db, user_id: int, anime_id: int) -> int:
    return db.scalar(
        select(func.count())
        .select_from(UserFavorite)
        .where(UserFavorite.user_id == user_id, UserFavorite.anime_id == anime_id)
    )


class TestAdd:
    def test_add_stores_pair(self, db, user):
        FavoritesStore(db).add(user.id, 42)
        assert FavoritesStore(db).list(user.id) == [42]

    def test_add_twice_keeps_one_row(self, db, user):
        store = FavoritesStore(db)
        store.add(user.id, 42)
        store.add(user.id, 42)
        assert count_rows(db, user.id, 42) == 1


class TestRemove:
    def test_remove_deletes_pair(self, db, user):
        store = FavoritesStore(db)
        store.add(user.id, 42)
        store.add(user.id, 7)
        store.remove(user.id, 42)
        assert store.list(user.id) == [7]

    def test_remove_missing_pair_is_noop(self, db, user):
        store = FavoritesStore(db)
        store.remove(user.id, 999)
        assert store.list(user.id) == []


class TestList:
    def test_list_is_scoped_to_user(self, db, user):
        other = User(email="other@example.com", hashed_password="x")
        db.add(other)
        db.commit()

        store = FavoritesStore(db)
        store.add(user.id, 1)
        store.add(other.id, 2)

        assert store.ids(user.id) == {1}
        assert store.ids(other.id) == {2}

    def test_list_in_insertion_order(self, db, user):
        store = FavoritesStore(db)
        for anime_id in (30, 10, 20):
            store.add(user.id, anime_id)
        assert store.list(user.id) == [30, 10, 20]

    def test_rapid_toggles_end_on_last_write(self, db, user):
        store = FavoritesStore(db)
        store.add(user.id, 42)
        store.remove(user.id, 42)
        store.add(user.id, 42)
        assert count_rows(db, user.id, 42) == 1

        store.remove(user.id, 42)
        assert count_rows(db, user.id, 42) == 0


class TestConcurrency:
    """Concurrent requests on a file-backed database, one session per request."""

    @pytest.fixture
    def session_factory(self, tmp_path):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'favorites.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        Base.metadata.create_all(bind=engine)
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
        engine.dispose()

    @pytest.fixture
    def user_id(self, session_factory):
        with session_factory() as db:
            user = User(email="racer@example.com", hashed_password="x")
            db.add(user)
            db.commit()
            return user.id

    def test_concurrent_adds_store_one_row(self, session_factory, user_id):
        def add(_):
            with session_factory() as db:
                FavoritesStore(db).add(user_id, 42)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(add, range(16)))

        with session_factory() as db:
            assert count_rows(db, user_id, 42) == 1

    def test_concurrent_add_and_remove_never_duplicate(self, session_factory, user_id):
        def toggle(i):
            with session_factory() as db:
                store = FavoritesStore(db)
                if i % 2:
                    store.remove(user_id, 42)
                else:
                    store.add(user_id, 42)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(toggle, range(16)))

        with session_factory() as db:
            assert count_rows(db, user_id, 42) in (0, 1)
            # The last accepted write decides the final state
            FavoritesStore(db).add(user_id, 42)
            assert count_rows(db, user_id, 42) == 1
