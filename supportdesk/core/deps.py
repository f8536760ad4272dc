# supportdesk/core/deps.py
from fastapi import Header, HTTPException


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity, already verified by the upstream auth layer."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id.strip()
