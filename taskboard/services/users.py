import logging

from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.exceptions import ConflictError, NotFoundError, ValidationError
from taskboard.models.tasks import Task, UNASSIGNED
from taskboard.models.user import User, USER_FIELDS
from taskboard.schemas.user import UserDocument, UserPayload
from taskboard.services import store
from taskboard.utils.params import ListParams

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL = "A user with that email already exists"


def to_document(user: User, projection: dict | None = None) -> dict:
    return store.project(UserDocument.model_validate(user).to_json(), projection)


def unique(task_ids: list[str]) -> list[str]:
    return list(dict.fromkeys(task_ids))


def require_identity(payload: UserPayload):
    if not payload.name or not payload.email:
        raise ValidationError("Name and email are required")


async def ensure_email_free(db: AsyncSession, email: str, exclude_id: str | None = None):
    criteria = [User.email == email]
    if exclude_id is not None:
        criteria.append(User.id != exclude_id)
    if await store.find_one(db, User, *criteria):
        raise ConflictError(DUPLICATE_EMAIL)


async def list_users(db: AsyncSession, params: ListParams):
    if params.count:
        return await store.count(db, User, USER_FIELDS, params.where)
    users = await store.find(db, User, USER_FIELDS, params)
    return [to_document(u, params.projection) for u in users]


async def get_user(db: AsyncSession, user_id: str) -> User:
    user = await store.find_by_id(db, User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


async def create_user(db: AsyncSession, payload: UserPayload) -> User:
    """
    Create a user. `pendingTasks` is stored as given; the referenced tasks are
    neither checked nor assigned back to the new user.
    """
    require_identity(payload)
    await ensure_email_free(db, payload.email)

    user = User(name=payload.name, email=payload.email)
    if payload.date_created:
        user.date_created = payload.date_created

    try:
        await store.save(db, user)
    except IntegrityError:
        raise ConflictError(DUPLICATE_EMAIL)
    await store.replace_pending_tasks(db, user.id, unique(payload.pending_tasks or []))
    logger.info("Created user %s <%s>", user.id, user.email)
    return await store.refresh(db, User, user.id)


async def update_user(db: AsyncSession, user_id: str, payload: UserPayload) -> User:
    """
    Replace a user's fields and reconcile the tasks named in `pendingTasks`:
    newly listed tasks are assigned to this user and reopened, delisted tasks
    are unassigned only if they still point at this user.
    """
    require_identity(payload)
    user = await get_user(db, user_id)
    await ensure_email_free(db, payload.email, exclude_id=user_id)

    new_pending = unique(payload.pending_tasks or [])
    old_pending = user.pending_tasks
    renamed = user.name != payload.name

    user.name = payload.name
    user.email = payload.email
    if payload.date_created:
        user.date_created = payload.date_created

    try:
        await store.save(db, user)
    except IntegrityError:
        raise ConflictError(DUPLICATE_EMAIL)
    await store.replace_pending_tasks(db, user.id, new_pending)
    logger.info("Updated user %s", user.id)

    to_add = [t for t in new_pending if t not in old_pending]
    to_remove = [t for t in old_pending if t not in new_pending]

    if to_add:
        # Taking a task over must drop it from its previous owner's pending set
        for task in await _tasks_owned_elsewhere(db, to_add, user.id):
            await store.pull_pending_task(db, task.assigned_user, task.id)
        await store.update_many(
            db, Task, Task.id.in_(to_add),
            {"assigned_user": user.id, "assigned_user_name": user.name, "completed": False},
        )
        logger.debug("Assigned tasks %s to user %s", to_add, user.id)

    if to_remove:
        await store.update_many(
            db, Task, and_(Task.id.in_(to_remove), Task.assigned_user == user.id),
            {"assigned_user": "", "assigned_user_name": UNASSIGNED},
        )
        logger.debug("Unassigned tasks %s from user %s", to_remove, user.id)

    if renamed:
        await store.update_many(
            db, Task, Task.assigned_user == user.id, {"assigned_user_name": user.name}
        )

    return await store.refresh(db, User, user.id)


async def _tasks_owned_elsewhere(db: AsyncSession, task_ids: list[str], user_id: str) -> list[Task]:
    return await store.find_all(
        db, Task,
        Task.id.in_(task_ids), Task.assigned_user != "", Task.assigned_user != user_id,
        Task.completed == False,
    )


async def delete_user(db: AsyncSession, user_id: str):
    """Unassign every task pointing at the user, then remove the user."""
    await get_user(db, user_id)
    released = await store.update_many(
        db, Task, Task.assigned_user == user_id,
        {"assigned_user": "", "assigned_user_name": UNASSIGNED},
    )
    await store.replace_pending_tasks(db, user_id, [])
    await store.delete_one(db, User, user_id)
    logger.info("Deleted user %s, unassigned %d task(s)", user_id, released)
