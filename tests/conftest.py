import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from function_hub.db.base_class import Base
from function_hub.db.repository import FunctionRepository
from function_hub.db.session import get_db
from function_hub.main import app
from function_hub.models import function  # noqa: F401


INLINE_CODE = "exports.handler = async (event) => ({ statusCode: 200, body: 'ok' });"


@pytest.fixture
def valid_payload():
    """A complete, valid function form submission using wire keys."""
    return {
        "name": "resize-image_v2",
        "description": "Resizes uploaded images",
        "sourceType": "inline",
        "runtime": "nodejs18.x",
        "handler": "index.handler",
        "timeout": 30,
        "memory": 256,
        "inlineCode": INLINE_CODE,
        "repoUrl": "",
        "branch": "",
        "filePath": "",
        "inputSchema": '{"type": "object", "properties": {}}',
        "outputSchema": "",
        "credentialId": "",
    }


@pytest.fixture
def github_payload(valid_payload):
    payload = dict(valid_payload)
    payload.update(
        {
            "sourceType": "github",
            "inlineCode": "",
            "repoUrl": "https://github.com/example/functions",
            "branch": "main",
            "filePath": "src/index.js",
        }
    )
    return payload


@pytest.fixture
def session_factory():
    """Sessions bound to a fresh in-memory database holding the sample functions."""
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = TestingSessionLocal()
    try:
        FunctionRepository(db).seed_sample_functions()
    finally:
        db.close()

    yield TestingSessionLocal
    engine.dispose()


@pytest.fixture
def client(session_factory):
    """A test client whose requests use the in-memory database."""

    def get_test_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = get_test_session
    yield TestClient(app)
    app.dependency_overrides.clear()
