from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.dependencies import get_db, list_params, projection_param, task_payload
from taskboard.schemas.task import TaskPayload
from taskboard.services import tasks as task_service
from taskboard.utils.params import ListParams

router = APIRouter(prefix="/tasks", tags=["tasks"])

@router.get("")
async def list_tasks(params: ListParams = Depends(list_params), db: AsyncSession = Depends(get_db)):
    return {"message": "OK", "data": await task_service.list_tasks(db, params)}

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(payload: TaskPayload = Depends(task_payload), db: AsyncSession = Depends(get_db)):
    task = await task_service.create_task(db, payload)
    return {"message": "Task created", "data": task_service.to_document(task)}

@router.get("/{task_id}")
async def get_task(
    task_id: str,
    projection: dict | None = Depends(projection_param),
    db: AsyncSession = Depends(get_db),
):
    task = await task_service.get_task(db, task_id)
    return {"message": "OK", "data": task_service.to_document(task, projection)}

@router.put("/{task_id}")
async def update_task(
    task_id: str,
    payload: TaskPayload = Depends(task_payload),
    db: AsyncSession = Depends(get_db),
):
    task = await task_service.update_task(db, task_id, payload)
    return {"message": "Task updated", "data": task_service.to_document(task)}

@router.delete("/{task_id}")
async def delete_task(task_id: str, db: AsyncSession = Depends(get_db)):
    await task_service.delete_task(db, task_id)
    return {"message": "Task deleted", "data": {}}
