import pytest

from santa_organizer import create_app
from santa_organizer.models import Participant


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "WTF_CSRF_ENABLED": False,
        "SECRET_KEY": "test-secret",
        "MAILEROO_API_KEY": "",
        "MAILEROO_API_URL": "",
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def trio():
    return [
        Participant(id="1", name="A", email="a@example.com"),
        Participant(id="2", name="B", email="b@example.com"),
        Participant(id="3", name="C", email="c@example.com"),
    ]


@pytest.fixture
def make_people():
    def _make(n):
        return [Participant(id=f"p{i}", name=f"P{i}", email=f"p{i}@example.com") for i in range(n)]
    return _make
