"""SQLAlchemy ORM model for tasks table"""

from sqlalchemy import CheckConstraint, Column, Index, String, Text

from vesper.db.base import Base
from vesper.db.types import UTCDateTime


class TaskRecord(Base):
    """
    SQLAlchemy ORM model for the tasks table.

    The (start, end) index backs the overlap query, the user_id index backs
    listing and per-user scoping.
    """
    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled', 'deleted', 'replaced')",
            name="ck_tasks_status",
        ),
        Index("idx_tasks_user_id", "user_id"),
        Index("idx_tasks_start_end", "start", "end"),
    )

    # Primary key (opaque string, caller- or store-assigned)
    id = Column(String, primary_key=True)

    title = Column(Text, nullable=False)
    start = Column(UTCDateTime, nullable=False)
    end = Column(UTCDateTime, nullable=False)
    status = Column(String, nullable=False, default="scheduled")
    user_id = Column(String, nullable=False)

    def __repr__(self) -> str:
        return f"<TaskRecord(id={self.id}, title='{self.title}', status='{self.status}')>"
