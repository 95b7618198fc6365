# Authentication module

from app.modules.auth.dependencies import (
    get_current_user_id,
    get_current_user,
)

__all__ = [
    "get_current_user_id",
    "get_current_user",
]
