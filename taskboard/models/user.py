from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from taskboard.database import Base
from taskboard.models.ids import new_object_id

class User(Base):
    __tablename__ = "users"

    id = Column(String(24), primary_key=True, default=new_object_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    date_created = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Written only through the store's add/pull statements
    pending_links = relationship(
        "PendingTask", order_by="PendingTask.id", lazy="selectin", viewonly=True
    )

    @property
    def pending_tasks(self) -> list[str]:
        return [link.task_id for link in self.pending_links]


class PendingTask(Base):
    """One entry of a user's pendingTasks set, in insertion order."""
    __tablename__ = "user_pending_tasks"
    __table_args__ = (UniqueConstraint("user_id", "task_id", name="uq_user_pending_task"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(24), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(String(255), nullable=False)


# Field names as they appear in JSON documents and query parameters.
# pendingTasks is an array: a (collection, element column) pair matched by membership
USER_FIELDS = {
    "_id": User.id,
    "id": User.id,
    "name": User.name,
    "email": User.email,
    "pendingTasks": (User.pending_links, PendingTask.task_id),
    "dateCreated": User.date_created,
}
