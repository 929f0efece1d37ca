import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.app.db.session import Base, get_db
from api.app.main import create_app


@pytest.fixture
def db_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    yield factory
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def client(db_factory):
    app = create_app()

    def override_get_db():
        db = db_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_question(client):
    def _make(text="2 + 2?", correct=1, options=("3", "4", "5", "22")):
        payload = {
            "text": text,
            "options": [
                {"order_num": idx, "text": option, "is_correct": idx == correct}
                for idx, option in enumerate(options)
            ],
        }
        response = client.post("/api/v1/questions/", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _make
