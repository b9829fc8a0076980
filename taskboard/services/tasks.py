import logging

from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.config import settings
from taskboard.exceptions import NotFoundError, UnknownReferenceError, ValidationError
from taskboard.models.tasks import Task, TASK_FIELDS, UNASSIGNED
from taskboard.models.user import User
from taskboard.schemas.task import TaskDocument, TaskPayload
from taskboard.services import store
from taskboard.utils.params import ListParams

logger = logging.getLogger(__name__)


def to_document(task: Task, projection: dict | None = None) -> dict:
    return store.project(TaskDocument.model_validate(task).to_json(), projection)


def require_name_and_deadline(payload: TaskPayload):
    if not payload.name or payload.deadline is None:
        raise ValidationError("Task name and deadline are required")


async def resolve_assignee(db: AsyncSession, assigned_user: str) -> tuple[str, str]:
    """Return the (id, name) pair to store, checking that the user exists."""
    if not assigned_user:
        return "", UNASSIGNED
    user = await store.find_by_id(db, User, assigned_user)
    if not user:
        raise UnknownReferenceError("Assigned user not found")
    return user.id, user.name


async def list_tasks(db: AsyncSession, params: ListParams):
    if params.count:
        return await store.count(db, Task, TASK_FIELDS, params.where)
    tasks = await store.find(db, Task, TASK_FIELDS, params, default_limit=settings.task_default_limit)
    return [to_document(t, params.projection) for t in tasks]


async def get_task(db: AsyncSession, task_id: str) -> Task:
    task = await store.find_by_id(db, Task, task_id)
    if not task:
        raise NotFoundError("Task not found")
    return task


async def create_task(db: AsyncSession, payload: TaskPayload) -> Task:
    require_name_and_deadline(payload)

    completed = payload.completed if payload.completed is not None else False
    # Client-supplied assignedUserName is never trusted
    assigned_user, assigned_user_name = await resolve_assignee(db, payload.assigned_user or "")

    task = Task(
        name=payload.name,
        description=payload.description or "",
        deadline=payload.deadline,
        completed=completed,
        assigned_user=assigned_user,
        assigned_user_name=assigned_user_name,
    )
    await store.save(db, task)
    logger.info("Created task %s", task.id)

    if assigned_user and not completed:
        await store.add_pending_task(db, assigned_user, task.id)

    return task


async def update_task(db: AsyncSession, task_id: str, payload: TaskPayload) -> Task:
    """
    Replace a task's fields, then fix up pendingTasks on both sides:
    the previous assignee loses the task unless it stays assigned to them and
    open, the current assignee gains it while it is open.
    """
    task = await get_task(db, task_id)
    require_name_and_deadline(payload)

    old_assigned_user = task.assigned_user or ""
    old_completed = bool(task.completed)

    completed = payload.completed if payload.completed is not None else old_completed
    if "assigned_user" in payload.model_fields_set:
        requested_user = payload.assigned_user
    else:
        requested_user = old_assigned_user
    assigned_user, assigned_user_name = await resolve_assignee(db, requested_user)

    task.name = payload.name
    if "description" in payload.model_fields_set:
        task.description = payload.description or ""
    task.deadline = payload.deadline
    task.completed = completed
    task.assigned_user = assigned_user
    task.assigned_user_name = assigned_user_name

    await store.save(db, task)
    logger.info("Updated task %s", task.id)

    if old_assigned_user:
        keeps_pending = (
            old_assigned_user == assigned_user and not old_completed and not completed
        )
        if not keeps_pending:
            await store.pull_pending_task(db, old_assigned_user, task.id)

    if assigned_user and not completed:
        await store.add_pending_task(db, assigned_user, task.id)

    return task


async def delete_task(db: AsyncSession, task_id: str):
    task = await get_task(db, task_id)
    if task.assigned_user:
        await store.pull_pending_task(db, task.assigned_user, task.id)
    await store.delete_one(db, Task, task.id)
    logger.info("Deleted task %s", task_id)
