import os
import sys
import uuid
from pathlib import Path
from types import SimpleNamespace

# Entorno de tests antes de importar la app (settings se lee al importar)
os.environ["SERVICE_ENV"] = "dev"
os.environ["DB_URL"] = "sqlite://"
os.environ["BCRYPT_COST"] = "4"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["S3_BUCKET"] = ""

# Ensure project root on path for imports when executing from tests dir
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session

from yummio_api import models_db  # noqa: F401
from yummio_api.db import get_session, make_engine
from yummio_api.models_db import User
import yummio_api.main as main

API = "/api/v1"


@pytest.fixture
def engine():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    SQLModel.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine, expire_on_commit=False) as s:
        yield s


@pytest.fixture
def make_db_user(session):
    """Usuario creado directamente en BD (tests de servicios sin HTTP)."""
    def _make(name="Ann"):
        user = User(name=name, email=f"{uuid.uuid4().hex[:10]}@example.com", password_hash="x")
        session.add(user)
        session.commit()
        return user
    return _make


@pytest.fixture
def client(engine):
    def _session_override():
        with Session(engine, expire_on_commit=False) as s:
            yield s

    main.app.dependency_overrides[get_session] = _session_override
    main.rate_limit_store.reset()
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client):
    """Registra un usuario por la API y devuelve id, email, tokens y cabeceras."""
    def _register(name="Ann", email=None, password="secret1"):
        email = email or f"{uuid.uuid4().hex[:10]}@example.com"
        r = client.post(f"{API}/auth/register", json={"name": name, "email": email, "password": password})
        assert r.status_code == 201, r.text
        data = r.json()
        return SimpleNamespace(
            id=data["user"]["id"],
            email=email,
            password=password,
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            headers=bearer(data["access_token"]),
        )
    return _register


def recipe_payload(**overrides) -> dict:
    payload = {
        "title": "Pasta al pomodoro",
        "description": "Pasta rápida con tomate",
        "prep_time": 10,
        "cook_time": 15,
        "servings": 2,
        "difficulty": "easy",
        "type": "dinner",
        "ingredients": [
            {"name": "Pasta", "amount": 200, "unit": "g"},
            {"name": "Tomate", "amount": 3, "unit": "pcs"},
            {"name": "Albahaca", "notes": "fresca"},
        ],
        "instructions": [
            {"step": 1, "instruction": "Hervir la pasta"},
            {"step": 2, "instruction": "Preparar la salsa", "timer_minutes": 10},
        ],
        "tags": ["quick", "italian"],
        "nutrition": {"calories": 520, "protein": 14.5},
    }
    payload.update(overrides)
    return payload
