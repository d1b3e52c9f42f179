"""
Shared fixtures.

Tests run against an in-memory SQLite database and scripted providers, so
no network or API key is needed.
"""

import asyncio
import json
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["GEMINI_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient

from reviewflow.auth import create_jwt
from reviewflow.db import SessionLocal, engine, get_db
from reviewflow.deps import get_ai_service
from reviewflow.main import app
from reviewflow.models import Base, Business, Customer
from reviewflow.services.ai_engine import AIEnhancementService
from reviewflow.services.ai_providers import ProviderRegistry


ENHANCED_TEXT = (
    "I visited Bella Cafe last week and the staff were friendly from the moment I walked in. "
    "The service was excellent and I will definitely return."
)

ANALYSIS_JSON = json.dumps({
    "sentiment": "positive",
    "keywords": ["service", "staff", "friendly", "return", "cafe", "extra"],
    "improvements": ["none", "keep it up", "more seating", "parking"],
})

GOOD_FEEDBACK = "Excellent service, friendly staff, will return"


class FakeProvider:
    """Scripted stand-in for a language-model provider."""

    provider = "Test"
    description = "Scripted provider"

    def __init__(self, id="gemini", text=ENHANCED_TEXT, analysis=ANALYSIS_JSON, error=None, delay=0):
        self.id = id
        self.name = f"fake-{id}"
        self.text = text
        self.analysis = analysis
        self.error = error
        self.delay = delay
        self.calls = []

    async def generate_content(self, prompt):
        self.calls.append(prompt)

        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error

        if "Respond in JSON format" in prompt:
            return self.analysis
        return self.text


@pytest.fixture
def db():
    Base.metadata.create_all(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def business(db):
    business = Business(
        id="biz-1",
        name="Bella Cafe",
        business_type="Restaurant",
        industry="Hospitality",
        owner_email="owner@bella.test",
        google_review_url="https://g.page/bella-cafe",
    )
    db.add(business)
    db.commit()
    return business


@pytest.fixture
def customer(db, business):
    customer = Customer(id="cust-1", business_id=business.id, name="Ann", email="ann@example.com")
    db.add(customer)
    db.commit()
    return customer


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def registry(provider):
    return ProviderRegistry([provider], default_model="gemini")


@pytest.fixture
def service(db, registry):
    return AIEnhancementService(db, registry, timeout=1)


@pytest.fixture
def client(db, service):

    def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_ai_service] = lambda: service

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(business):
    return {"Authorization": f"Bearer {create_jwt(business.id, business.owner_email)}"}


@pytest.fixture
def admin_headers(business):
    token = create_jwt(business.id, "admin@reviewflow.test", role="admin")
    return {"Authorization": f"Bearer {token}"}


def run(coro):
    return asyncio.run(coro)
