"""SQLAlchemy ORM models"""

from vesper.db.models.task import TaskRecord

__all__ = ["TaskRecord"]
