"""Tests for the catalog browsing routes."""
import os
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
sys.path.insert(0, PROJECT_ROOT)

from anime_explorer.app_state import get_catalog_client
from anime_explorer.auth.sessions import session_manager
from anime_explorer.catalog.client import UpstreamError
from anime_explorer.database import Base, get_db
from anime_explorer.models import User, UserFavorite

AJAX = {"X-Requested-With": "XMLHttpRequest"}

# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for testing."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def anime(mal_id: int, title: str, score: float = 8.0) -> dict:
    return {
        "mal_id": mal_id,
        "title": title,
        "episodes": 24,
        "score": score,
        "synopsis": f"{title} synopsis",
        "images": {"jpg": {"image_url": f"https://cdn.example.com/{mal_id}.jpg"}},
    }


class StubCatalog:
    """Records calls and serves canned upstream data."""

    def __init__(self):
        self.calls = []
        self.fail = False
        self.top = [anime(42, "Fullmetal Alchemist"), anime(7, "Steins;Gate"), anime(9, "Gintama")]
        self.genre = [anime(9, "Gintama", 9.1), anime(42, "Fullmetal Alchemist", 9.0)]
        self.search = [anime(42, "Fullmetal Alchemist"), anime(100, "Fullmetal Panic")]

    def _serve(self, name, data, *args):
        self.calls.append((name, *args))
        if self.fail:
            raise UpstreamError("upstream down")
        return data

    def fetch_top_page(self, page):
        return self._serve("top", self.top, page)

    def fetch_by_genre(self, genre_id, page):
        return self._serve("genre", self.genre, genre_id, page)

    def search_by_query(self, query):
        return self._serve("search", self.search, query)


@pytest.fixture
def catalog():
    return StubCatalog()


@pytest.fixture(scope="function")
def client(catalog):
    """Create test client with a stubbed upstream catalog."""
    Base.metadata.create_all(bind=engine)

    from anime_explorer.main import app

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_catalog_client] = lambda: catalog

    with TestClient(app) as test_client:
        yield test_client

    Base.metadata.drop_all(bind=engine)
    app.dependency_overrides.clear()


@pytest.fixture
def logged_in(client):
    """Log a user with favorite 42 in on the test client."""
    db = TestingSessionLocal()
    user = User(email="fan@example.com", hashed_password="x")
    db.add(user)
    db.commit()
    db.add(UserFavorite(user_id=user.id, anime_id=42))
    db.commit()
    token = session_manager.create(db, user)
    db.close()
    client.cookies.set(session_manager.cookie_name, token)
    return client


def test_health_endpoint(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "catalog" in data["services"]
    assert data["services"]["google_oauth"]["status"] == "disabled"


class TestTopAnime:
    """Tests for GET /"""

    def test_script_request_returns_json(self, client, catalog):
        response = client.get("/?page=2", headers=AJAX)
        assert response.status_code == 200
        payload = response.json()
        assert payload["page"] == 2
        assert [a["mal_id"] for a in payload["animeList"]] == [42, 7, 9]
        assert catalog.calls == [("top", 2)]

    def test_anonymous_items_are_not_favorited(self, client):
        payload = client.get("/", headers=AJAX).json()
        assert all(a["isFavorited"] is False for a in payload["animeList"])

    def test_authenticated_user_favorites_are_marked(self, logged_in):
        payload = logged_in.get("/", headers=AJAX).json()
        flags = {a["mal_id"]: a["isFavorited"] for a in payload["animeList"]}
        assert flags == {42: True, 7: False, 9: False}

    @pytest.mark.parametrize("page", ["abc", "0", "-3", ""])
    def test_invalid_page_defaults_to_first(self, client, catalog, page):
        payload = client.get(f"/?page={page}", headers=AJAX).json()
        assert payload["page"] == 1
        assert catalog.calls == [("top", 1)]

    def test_browser_request_renders_page(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "Fullmetal Alchemist" in response.text
        assert 'data-logged-in="false"' in response.text

    def test_rendered_page_marks_favorites(self, logged_in):
        response = logged_in.get("/")
        assert 'favorite-btn favorited" data-id="42"' in response.text
        assert 'data-logged-in="true"' in response.text

    def test_upstream_failure_returns_500(self, client, catalog):
        catalog.fail = True
        response = client.get("/")
        assert response.status_code == 500
        assert response.text == "Failed to fetch anime data"

    def test_upstream_failure_json_for_scripts(self, client, catalog):
        catalog.fail = True
        response = client.get("/", headers=AJAX)
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch anime data"}


class TestGenre:
    """Tests for GET /genre"""

    def test_missing_genre_returns_empty_list(self, client, catalog):
        response = client.get("/genre")
        assert response.status_code == 200
        assert response.json() == {"animeList": []}
        assert catalog.calls == []

    def test_blank_genre_returns_empty_list(self, client):
        response = client.get("/genre?genre=%20")
        assert response.status_code == 200
        assert response.json() == {"animeList": []}

    def test_genre_passes_filter_and_page(self, client, catalog):
        response = client.get("/genre?genre=4&page=3", headers=AJAX)
        assert response.status_code == 200
        assert [a["mal_id"] for a in response.json()["animeList"]] == [9, 42]
        assert catalog.calls == [("genre", "4", 3)]

    def test_genre_is_json_without_marker_header(self, client):
        response = client.get("/genre?genre=4")
        assert response.headers["content-type"].startswith("application/json")

    def test_genre_results_marked_for_user(self, logged_in):
        payload = logged_in.get("/genre?genre=4", headers=AJAX).json()
        flags = {a["mal_id"]: a["isFavorited"] for a in payload["animeList"]}
        assert flags == {9: False, 42: True}

    def test_upstream_failure(self, client, catalog):
        catalog.fail = True
        response = client.get("/genre?genre=4")
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch anime by genre"}


class TestSearch:
    """Tests for GET /search"""

    def test_missing_query_redirects_home(self, client, catalog):
        response = client.get("/search", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "/"
        assert catalog.calls == []

    def test_search_renders_results(self, client, catalog):
        response = client.get("/search?q=fullmetal")
        assert response.status_code == 200
        assert "Fullmetal Panic" in response.text
        assert catalog.calls == [("search", "fullmetal")]

    def test_search_results_marked_for_user(self, logged_in):
        response = logged_in.get("/search?q=fullmetal")
        assert 'favorite-btn favorited" data-id="42"' in response.text
        assert 'favorite-btn favorited" data-id="100"' not in response.text

    def test_search_escapes_upstream_text(self, client, catalog):
        catalog.search = [anime(1, "<script>alert(1)</script>")]
        response = client.get("/search?q=x")
        assert "<script>alert(1)</script>" not in response.text
        assert "&lt;script&gt;" in response.text

    def test_upstream_failure(self, client, catalog):
        catalog.fail = True
        response = client.get("/search?q=naruto")
        assert response.status_code == 500
        assert response.text == "Failed to search anime"


class TestStaticAssets:
    """The page script is served from /static."""

    def test_script_served(self, client):
        response = client.get("/static/js/app.js")
        assert response.status_code == 200
        assert "javascript" in response.headers["content-type"]
        assert "class PageController" in response.text

    def test_genre_filter_drops_stale_list_responses(self, client):
        """Load-more and genre fetches check the generation they started in."""
        script = client.get("/static/js/app.js").text
        filter_body = script.split("async filterByGenre(")[1].split("appendCards(animeList) {")[0]
        load_more_body = script.split("async loadMore()")[1].split("async filterByGenre(")[0]

        assert "++this.generation" in filter_body
        assert "this.loading = true" in filter_body
        assert "generation !== this.generation" in filter_body
        assert "generation !== this.generation" in load_more_body
