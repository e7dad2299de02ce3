from auth.session import User, get_user, is_logged_in, login, logout, has_role, is_admin

__all__ = ["User", "get_user", "is_logged_in", "login", "logout", "has_role", "is_admin"]
