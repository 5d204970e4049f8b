from __future__ import annotations

from typing import List

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from bookstore.catalog.schemas import Book
from bookstore.catalog.store import SAMPLE_BOOKS
from bookstore.config import Settings
from bookstore.main import create_app


@pytest.fixture
def settings() -> Settings:
    return Settings(environment="test", commerce_api_key="", session_secret="test-secret")


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def books() -> List[Book]:
    return list(SAMPLE_BOOKS)


@pytest.fixture
def address() -> dict:
    return {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "address": "12 St James's Square",
        "city": "London",
        "state": "LDN",
        "postalCode": "SW1Y 4JH",
        "country": "UK",
        "phone": "+44 20 0000 0000",
    }
