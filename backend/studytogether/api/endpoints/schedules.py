# backend/studytogether/api/endpoints/schedules.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from studytogether.api.deps import get_current_user_id
from studytogether.crud import schedules as schedule_crud
from studytogether.schemas.schedule import ScheduleCreate, ScheduleRead, ScheduleUpdate

router = APIRouter(prefix="/api/study/schedule", tags=["Schedules"])


# CREATE
@router.post("", response_model=ScheduleRead, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    schedule: ScheduleCreate,
    user_id: str = Depends(get_current_user_id),
):
    created = await schedule_crud.create_schedule(user_id, schedule)
    if not created:
        raise HTTPException(status_code=404, detail="User not found")
    return created


# READ ALL
@router.get("", response_model=List[ScheduleRead])
async def read_schedules(user_id: str = Depends(get_current_user_id)):
    return await schedule_crud.get_schedules(user_id)


# UPDATE
@router.put("/{schedule_id}", response_model=ScheduleRead)
async def update_schedule(
    schedule_id: str,
    schedule: ScheduleUpdate,
    user_id: str = Depends(get_current_user_id),
):
    updated = await schedule_crud.update_schedule(user_id, schedule_id, schedule)
    if not updated:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return updated


# DELETE
@router.delete("/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_schedule(
    schedule_id: str,
    user_id: str = Depends(get_current_user_id),
):
    deleted = await schedule_crud.delete_schedule(user_id, schedule_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return None
