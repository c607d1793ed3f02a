from __future__ import annotations

from fastapi import APIRouter
from isbncheck.api.routes import health, search, sessions

api_router = APIRouter()

# Keep this list in the order you want routes registered.
for _routes in (health, search, sessions):
    api_router.include_router(_routes.router)
