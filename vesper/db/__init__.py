"""Database package: ORM base, models and engine/session helpers"""

from vesper.db.base import Base
from vesper.db.models import TaskRecord
from vesper.db.session import (
    create_engine_from_settings,
    create_session_factory,
    get_pool_stats,
    log_pool_stats,
)

__all__ = [
    "Base",
    "TaskRecord",
    "create_engine_from_settings",
    "create_session_factory",
    "get_pool_stats",
    "log_pool_stats",
]
