"""FastAPI routers acting as controllers in the MVC architecture."""

from . import auth, classes, departments, subjects, users

__all__ = ["auth", "classes", "departments", "subjects", "users"]
