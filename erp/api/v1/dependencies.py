from typing import Optional

from fastapi import Header


async def get_actor(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    """Caller identity recorded on audit entries. Authentication happens upstream."""
    return (x_user_id or "").strip() or "system"
