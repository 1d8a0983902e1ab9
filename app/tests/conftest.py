import os
import tempfile

os.environ.setdefault("DATABASE", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("UPLOADS_DIR", tempfile.mkdtemp(prefix="feedvault-uploads-"))
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

from fastapi.testclient import TestClient
from database import get_db, Base
from passlib.handlers.bcrypt import bcrypt
from sqlalchemy import create_engine, StaticPool
from sqlalchemy.orm import sessionmaker
from models.user_model import User
from models.feed_item_model import FeedItem
from utils.sizes import BYTES_PER_MB
import pytest
from main import app

DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(DATABASE_URL,
                       connect_args={
                           "check_same_thread": False,
                       },
                       poolclass=StaticPool)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

USER_EMAIL = "user@example.com"
ADMIN_EMAIL = "admin@example.com"
PASSWORD = "Password1!"


def override_get_db():
    database = TestingSessionLocal()
    try:
        yield database
    finally:
        database.close()

app.dependency_overrides[get_db] = override_get_db


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def uploads(tmp_path, monkeypatch):
    monkeypatch.setenv("UPLOADS_DIR", str(tmp_path))
    monkeypatch.delenv("DOWNLOAD_TOKEN_POLICY", raising=False)
    monkeypatch.delenv("DOWNLOAD_TOKEN_TTL", raising=False)
    monkeypatch.delenv("DOWNLOAD_TOKEN_SECRET", raising=False)
    return tmp_path


@pytest.fixture(autouse=True)
def setup_and_teardown():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    session.add(User(name="User", email=USER_EMAIL, password_hash=bcrypt.hash(PASSWORD), download_limit=2.0))
    session.add(User(name="Admin", email=ADMIN_EMAIL, password_hash=bcrypt.hash(PASSWORD), role="admin"))
    session.commit()
    session.close()

    yield
    Base.metadata.drop_all(bind=engine)


def _login(client, path, email):
    response = client.post(path, json={"email": email, "password": PASSWORD})
    assert response.status_code == 200, response.text
    body = response.json()
    return {
        "Authorization": f"Bearer {body['accessToken']}",
        "X-Device-Token": body["user"]["deviceToken"],
    }


@pytest.fixture
def user_headers(client):
    return _login(client, "/api/auth/login", USER_EMAIL)


@pytest.fixture
def admin_headers(client):
    return _login(client, "/api/auth/admin/login", ADMIN_EMAIL)


@pytest.fixture
def make_feed_item(db, uploads):
    """Create a feed item backed by a small file on disk; ``size_mb`` is the size the item claims."""
    counter = {"n": 0}

    def _make(size_mb=1, name=None, content=b"feed-file-content", on_disk=True):
        counter["n"] += 1
        stored_name = name or f"1740559919539_item{counter['n']}.zip"
        if on_disk:
            (uploads / stored_name).write_bytes(content)
        item = FeedItem(
            title=f"Item {counter['n']}",
            description="Test item",
            image="/uploads/images/thumb.png",
            storage_key=f"/uploads/{stored_name}",
            file_hash=f"hash-{counter['n']}",
            resolution="1920 x 1080",
            duration="00:01:00",
            file_type=".zip",
            file_size_bytes=int(size_mb * BYTES_PER_MB),
        )
        db.add(item)
        db.commit()
        db.refresh(item)
        return item

    return _make


@pytest.fixture
def reload_user(db):
    def _reload(email=USER_EMAIL):
        db.expire_all()
        return db.query(User).filter(User.email == email).first()

    return _reload
