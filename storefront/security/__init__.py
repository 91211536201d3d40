from .auth import BearerAuth, create_access_token, require_user

__all__ = ["BearerAuth", "create_access_token", "require_user"]
