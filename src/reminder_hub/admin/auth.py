from __future__ import annotations

import hmac

from fastapi import HTTPException, Request, WebSocket


def extract_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip()
    token_header = request.headers.get("X-Reminder-Token", "").strip()
    return token_header or None


def _token_matches(token: str | None, expected: str) -> bool:
    return bool(token) and hmac.compare_digest(token, expected)


async def require_admin_auth(request: Request) -> dict[str, str]:
    expected: str = request.app.state.auth_token
    if not expected:
        raise HTTPException(status_code=503, detail="ADMIN_AUTH_TOKEN 未配置")

    if _token_matches(extract_token(request), expected):
        return {"auth": "token", "user": "admin-token"}

    raise HTTPException(status_code=401, detail="未授权")


def is_websocket_authorized(websocket: WebSocket) -> bool:
    expected: str = websocket.app.state.auth_token
    if not expected:
        return False
    token = (websocket.query_params.get("token") or "").strip()
    return _token_matches(token, expected)
