"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from datetime import date
from typing import Annotated

from fastapi import Depends

from src.config import Settings, get_settings


def get_today() -> date:
    """Wall-clock date, overridable in tests via ``app.dependency_overrides``."""
    return date.today()


# Annotated shortcuts for route signatures
AppSettings = Annotated[Settings, Depends(get_settings)]
Today = Annotated[date, Depends(get_today)]
