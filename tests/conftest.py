# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from medialib.api.deps import get_file_storage
from medialib.core.config import settings
from medialib.core.security import create_access_token
from medialib.db.models.media import Media
from medialib.db.models.tag import Tag
from medialib.db.session import Database
from medialib.main import create_app
from medialib.repositories.media_repository import MediaRepository
from medialib.repositories.tag_repository import TagRepository
from medialib.services.cache_service import CacheService, MemoryCache
from medialib.services.file_storage_service import FileStorageService


class Seeder:
    """
    Writes fixture rows in their own committed transactions and hands back
    ids, so tests never hold ORM objects across sessions.
    """

    def __init__(self, database: Database):
        self.database = database

    def media(self, file_path, tags=None, register=True, **fields) -> int:
        fields.setdefault("file_type", "photo")
        fields.setdefault("title", file_path.rsplit("/", 1)[-1])
        with self.database.transaction() as session:
            media = Media(file_path=file_path, tags=tags, **fields)
            session.add(media)
            session.flush()
            if register and media.tag_list:
                TagRepository(session).ensure_tags(media.tag_list, is_hidden=False)
                MediaRepository(session).replace_media_tags(media.id, media.tag_list)
            return media.id

    def tag(self, name, **fields) -> int:
        fields.setdefault("is_hidden", False)
        with self.database.transaction() as session:
            tag = TagRepository(session).get_by_name(name)
            if tag is None:
                tag = Tag(name=name)
                session.add(tag)
            for key, value in fields.items():
                setattr(tag, key, value)
            session.flush()
            return tag.id

    def read(self, query):
        """Run ``query(session)`` in a fresh session and return its result."""
        with self.database.transaction() as session:
            return query(session)


@pytest.fixture()
def database():
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture()
def session(database):
    db_session = database.session()
    yield db_session
    db_session.close()


@pytest.fixture()
def seed(database):
    return Seeder(database)


@pytest.fixture()
def media_root(tmp_path):
    root = tmp_path / "media"
    root.mkdir()
    return root


@pytest.fixture()
def storage(media_root):
    return FileStorageService(media_root)


@pytest.fixture()
def cache_service():
    return CacheService(MemoryCache(), namespace="test")


@pytest.fixture()
def app(database, cache_service, storage):
    application = create_app(database=database, cache_service=cache_service)
    application.dependency_overrides[get_file_storage] = lambda: storage
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def login(client):
    """Put a signed token for ``subject`` into the client's cookie jar."""

    def _login(subject="tester", role=None):
        client.cookies.set(settings.COOKIE_NAME, create_access_token(subject, role=role))
        return client

    return _login


@pytest.fixture()
def admin_client(login):
    return login("admin-user", role="admin")
