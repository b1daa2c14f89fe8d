from portfolio.models.refresh_token import RefreshToken
from portfolio.models.user import Role, User

__all__ = [
    "RefreshToken",
    "Role",
    "User",
]
