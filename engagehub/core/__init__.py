"""Core module - config, database, dependencies, exceptions, metrics."""

from engagehub.core.config import get_settings, Settings
from engagehub.core.database import Database, get_db, get_pymongo_db
from engagehub.core.dependencies import get_current_user, get_current_user_optional, require_admin
from engagehub.core.exceptions import (
    AppException,
    NotFoundException,
    UnauthorizedException,
    ForbiddenException,
    BadRequestException,
    JobNotCancellableException,
)

__all__ = [
    "get_settings",
    "Settings",
    "Database",
    "get_db",
    "get_pymongo_db",
    "get_current_user",
    "get_current_user_optional",
    "require_admin",
    "AppException",
    "NotFoundException",
    "UnauthorizedException",
    "ForbiddenException",
    "BadRequestException",
    "JobNotCancellableException",
]
