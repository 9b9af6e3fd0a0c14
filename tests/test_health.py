from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from yummio_api.db import get_session


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["env"] == "dev"


def test_metrics_exposed(client):
    client.get("/health")
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "http_request" in r.text


def test_unknown_route_uses_error_envelope(client):
    r = client.get("/api/v1/nope")
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"


class BrokenSession(Session):
    def exec(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))


def test_read_failure_is_upstream(client, engine):
    def _broken_session():
        with BrokenSession(engine) as s:
            yield s

    client.app.dependency_overrides[get_session] = _broken_session
    r = client.get("/api/v1/recipes")
    assert r.status_code == 502
    assert r.json()["code"] == "upstream_error"
