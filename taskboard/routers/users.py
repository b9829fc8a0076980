from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.dependencies import get_db, list_params, projection_param, user_payload
from taskboard.schemas.user import UserPayload
from taskboard.services import users as user_service
from taskboard.utils.params import ListParams

router = APIRouter(prefix="/users", tags=["users"])

@router.get("")
async def list_users(params: ListParams = Depends(list_params), db: AsyncSession = Depends(get_db)):
    return {"message": "OK", "data": await user_service.list_users(db, params)}

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserPayload = Depends(user_payload), db: AsyncSession = Depends(get_db)):
    user = await user_service.create_user(db, payload)
    return {"message": "User created", "data": user_service.to_document(user)}

@router.get("/{user_id}")
async def get_user(
    user_id: str,
    projection: dict | None = Depends(projection_param),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user(db, user_id)
    return {"message": "OK", "data": user_service.to_document(user, projection)}

@router.put("/{user_id}")
async def update_user(
    user_id: str,
    payload: UserPayload = Depends(user_payload),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.update_user(db, user_id, payload)
    return {"message": "User updated", "data": user_service.to_document(user)}

@router.delete("/{user_id}")
async def delete_user(user_id: str, db: AsyncSession = Depends(get_db)):
    await user_service.delete_user(db, user_id)
    return {"message": "User deleted", "data": {}}
