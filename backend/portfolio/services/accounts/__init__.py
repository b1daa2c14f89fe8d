from .dto import UserCreateIn
from .service import AccountService

__all__ = ["AccountService", "UserCreateIn"]
