"""
Caller identification.

The backend trusts its caller: the user is named by the X-User-ID header
and no credential is checked.
"""
from typing import Optional

from fastapi import Header

USER_ID_HEADER = "X-User-ID"

# User assumed for listings when the caller does not identify itself
DEFAULT_USER_ID = "1"


async def get_optional_user_id(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> Optional[str]:
    """User id from the header, or None when absent or blank"""
    if x_user_id is None or not x_user_id.strip():
        return None
    return x_user_id.strip()


async def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> str:
    """User id from the header, falling back to the default user"""
    user_id = await get_optional_user_id(x_user_id)
    return user_id or DEFAULT_USER_ID
