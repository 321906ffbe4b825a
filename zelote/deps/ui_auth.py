from __future__ import annotations

from fastapi import Request

SESSION_FLAG = "ui_authenticated"
SESSION_USER = "ui_username"


def is_logged_in(request: Request) -> bool:
    session = request.scope.get("session")
    return bool(session and session.get(SESSION_FLAG))


def session_user(request: Request) -> str | None:
    session = request.scope.get("session")
    return session.get(SESSION_USER) if session else None


def start_session(request: Request, username: str) -> None:
    request.session[SESSION_FLAG] = True
    request.session[SESSION_USER] = username


def end_session(request: Request) -> None:
    request.session.clear()
