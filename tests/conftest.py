"""Shared fixtures: isolated store, upload directory and app per test"""

import pytest
from fastapi.testclient import TestClient

from travel_journal.services.auth_service import AuthService
from travel_journal.services.media_service import MediaService
from travel_journal.services.story_service import StoryService
from travel_journal.services.user_store import UserStore
from travel_journal.store.document_store import DocumentStore
from travel_journal.utils.config import (
    AppSettings,
    AuthSettings,
    DatabaseSettings,
    LoggingSettings,
    MediaSettings,
    Settings,
)
from web.main import create_app

BASE_URL = "http://testserver"


def _run_inline(func, *args):
    func(*args)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        app=AppSettings(base_url=BASE_URL),
        database=DatabaseSettings(connection_string=f"json://{tmp_path / 'data'}"),
        auth=AuthSettings(access_token_secret="test-secret", bcrypt_rounds=4),
        media=MediaSettings(
            upload_dir=str(tmp_path / "uploads"),
            assets_dir=str(tmp_path / "assets"),
        ),
        logging=LoggingSettings(level="WARNING", format="console", file_path=None),
    )


@pytest.fixture
def store(settings):
    return DocumentStore.from_connection_string(settings.database.connection_string)


@pytest.fixture
def auth_service(store, settings):
    return AuthService(UserStore(store), settings.auth)


@pytest.fixture
def media_service(settings):
    return MediaService(settings.media.upload_dir, base_url=settings.app.base_url)


@pytest.fixture
def story_service(store, media_service, settings):
    return StoryService(
        store,
        media_service,
        placeholder_image_url=settings.placeholder_image_url,
        run_in_background=_run_inline,
    )


@pytest.fixture
def app(settings, store):
    application = create_app(settings, store)
    # Delete image files synchronously so tests can assert on them
    application.state.story_service.run_in_background = _run_inline
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def register(client):
    """Create an account through the API and return its bearer headers"""
    def _register(email="a@x.com", password="pw1", full_name="Alice"):
        res = client.post(
            "/create-account",
            json={"fullName": full_name, "email": email, "password": password},
        )
        assert res.status_code == 201, res.text
        return {"Authorization": f"Bearer {res.json()['accessToken']}"}

    return _register
