from uuid import UUID

from fastapi import HTTPException, Request


def get_current_user(request: Request) -> UUID:
    """Return the authenticated user id set by the upstream auth middleware.

    Authentication happens in front of this service; the gateway forwards the
    verified identity in the ``X-User-Id`` header and it is trusted as-is.
    """
    user_id_header = request.headers.get("X-User-Id")
    if not user_id_header:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    try:
        return UUID(user_id_header)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid X-User-Id header") from None
