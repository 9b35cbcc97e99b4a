"""
Pytest Configuration and Fixtures
==================================
Shared fixtures: a throwaway SQLite database, a temporary upload
directory, an authenticated owner, an event template and an invite.
"""

import asyncio
import os
import tempfile
from pathlib import Path

_TMP = Path(tempfile.mkdtemp(prefix="eventsign-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP / 'test.db'}"
os.environ["UPLOAD_DIR"] = str(_TMP / "uploads")
os.environ["SECRET_KEY"] = "test-secret"
os.environ["SMTP_USER"] = ""
os.environ["SMTP_PASSWORD"] = ""

import pytest
from fastapi.testclient import TestClient
from PIL import Image, ImageDraw

from database import engine
from main import app
from models.base import Base
from utils.signature import encode_png


async def _reset_schema():
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)


@pytest.fixture(autouse=True)
def fresh_database():
    """Every test starts from empty tables."""
    asyncio.run(_reset_schema())
    yield


@pytest.fixture
def client():
    """FastAPI test client fixture."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def signature_png():
    """A small but real signature image as a PNG data URI."""
    image = Image.new("RGBA", (200, 80), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    draw.line((10, 60, 60, 20, 110, 55, 190, 15), fill="#1a1a1a", width=3)
    return encode_png(image)


def register_owner(client, email="owner@example.com", **extra):
    body = {
        "name": "Dana Levi",
        "email": email,
        "password": "secret123",
        "business_name": "Dana Events",
        "business_phone": "050-1234567",
        "business_website": "dana-events.co.il",
    }
    body.update(extra)
    response = client.post("/auth/register", json=body)
    assert response.status_code == 201, response.text

    response = client.post("/auth/login", json={"email": email, "password": "secret123"})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def owner_headers(client):
    return register_owner(client)


@pytest.fixture
def event(client, owner_headers):
    response = client.post("/events/", headers=owner_headers, json={
        "title": "חתונה בגן",
        "location": "גן האירועים, תל אביב",
        "eventDate": "2025-03-01",
        "price": 1500,
        "defaultText": "המקדמה אינה מוחזרת.\n\nיש להגיע חצי שעה לפני תחילת האירוע.",
        "themeColor": "#7C3AED",
        "fieldsSchema": [
            {"id": "name", "label": "שם מלא", "type": "text", "required": True},
            {"id": "email", "label": "אימייל", "type": "email", "required": False},
            {"id": "guests", "label": "מספר אורחים", "type": "number", "required": True},
        ],
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def invite(client, owner_headers, event):
    response = client.post(f"/events/{event['id']}/invites", headers=owner_headers, json={
        "customerName": "Yossi Cohen",
        "customerPhone": "052-7654321",
        "customerEmail": "yossi@example.com",
        "eventType": "חתונה",
    })
    assert response.status_code == 201, response.text
    return response.json()
