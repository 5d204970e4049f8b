# bookstore/deps.py
"""FastAPI dependencies shared by the routers."""

import uuid

from fastapi import Request

from .catalog.store import CatalogStore
from .config import Settings
from .storage import MemoryStorage

SESSION_KEY = "session_id"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_catalog(request: Request) -> CatalogStore:
    return request.app.state.catalog


def get_storage(request: Request) -> MemoryStorage:
    return request.app.state.storage


def get_session_id(request: Request) -> str:
    """Return the anonymous session id, creating one on first contact."""
    session_id = request.session.get(SESSION_KEY)
    if not session_id:
        session_id = uuid.uuid4().hex
        request.session[SESSION_KEY] = session_id
    return session_id
