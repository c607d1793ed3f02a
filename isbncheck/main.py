from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from isbncheck import __version__
from isbncheck.api.router import api_router
from isbncheck.core.config import settings
from isbncheck.core.logging import configure_logging
from isbncheck.core.otel import init_otel
from isbncheck.middleware.request_id import RequestIdMiddleware

configure_logging(settings.log_level)

app = FastAPI(title=settings.api_name, version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-Id", "Content-Disposition"],
)
app.add_middleware(RequestIdMiddleware)

app.include_router(api_router)

init_otel(app)
