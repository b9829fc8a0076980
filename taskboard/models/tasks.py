from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime, Boolean
from taskboard.database import Base
from taskboard.models.ids import new_object_id

UNASSIGNED = "unassigned"


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(24), primary_key=True, default=new_object_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    deadline = Column(DateTime(timezone=True), nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    # No foreign key: the reference is maintained by the services, not the store
    assigned_user = Column(String(24), nullable=False, default="", index=True)
    assigned_user_name = Column(String(255), nullable=False, default=UNASSIGNED)
    date_created = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))


TASK_FIELDS = {
    "_id": Task.id,
    "id": Task.id,
    "name": Task.name,
    "description": Task.description,
    "deadline": Task.deadline,
    "completed": Task.completed,
    "assignedUser": Task.assigned_user,
    "assignedUserName": Task.assigned_user_name,
    "dateCreated": Task.date_created,
}
