"""Application wiring for the Zelote lending service.

Configuration, database setup, middlewares, API routers and error handlers
are assembled here; ``zelote.main`` adds logging, metrics and background
jobs on top.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .core.config import settings
from .core.errors import (
    ZeloteError,
    domain_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .db.migrate import run_migrations
from .db.session import Base, engine
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware

# Registers every table with the metadata before ``create_all``.
from . import models as _models  # noqa: F401

app = FastAPI(title=settings.APP_NAME)

# New databases get the full schema; existing ones are upgraded in place.
Base.metadata.create_all(bind=engine)
run_migrations(engine)

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.APP_SECRET,
    session_cookie=settings.SESSION_COOKIE_NAME,
    max_age=settings.SESSION_MAX_AGE,
    same_site="lax",
    https_only=False,  # set True once the app is always served over HTTPS at the edge
)
if settings.ALLOWED_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIdMiddleware)

from .routers import api_auth as api_auth_router  # noqa: E402

app.include_router(api_auth_router.router)

from .routers import api_chromebooks as api_chromebooks_router  # noqa: E402

app.include_router(api_chromebooks_router.router)

from .routers import api_people as api_people_router  # noqa: E402

app.include_router(api_people_router.router)

from .routers import api_loans as api_loans_router  # noqa: E402

app.include_router(api_loans_router.router)

from .routers import api_returns as api_returns_router  # noqa: E402

app.include_router(api_returns_router.router)

from .routers import api_overdue as api_overdue_router  # noqa: E402

app.include_router(api_overdue_router.router)

from .routers import api_notifications as api_notifications_router  # noqa: E402

app.include_router(api_notifications_router.router)

from .routers import api_dashboard as api_dashboard_router  # noqa: E402

app.include_router(api_dashboard_router.router)

from .routers import api_audits as api_audits_router  # noqa: E402

app.include_router(api_audits_router.router)

from .routers import api_reservations as api_reservations_router  # noqa: E402

app.include_router(api_reservations_router.router)

app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(ZeloteError, domain_exception_handler)


__all__ = ["app"]
