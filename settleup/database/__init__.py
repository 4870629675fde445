"""Database package."""

from settleup.database.base import Base
from settleup.database.session import sessionmanager, with_storage_timeout
from settleup.database import models

__all__ = ["Base", "sessionmanager", "with_storage_timeout", "models"]
