# backend/studytogether/crud/schedules.py
from typing import List, Optional

from studytogether.crud import users as users_crud
from studytogether.crud.users import _id_filter, get_users_collection
from studytogether.models.schedule import StudyScheduleInDB
from studytogether.schemas.schedule import ScheduleCreate, ScheduleRead, ScheduleUpdate


def serialize_schedule(schedule: StudyScheduleInDB) -> ScheduleRead:
    return ScheduleRead.model_validate(schedule.model_dump())


# CREATE
async def create_schedule(user_id: str, schedule_data: ScheduleCreate) -> Optional[ScheduleRead]:
    schedule = StudyScheduleInDB(
        title=schedule_data.title,
        subject=schedule_data.subject,
        start_time=schedule_data.start_time,
        end_time=schedule_data.end_time,
        recurring=schedule_data.recurring,
    )
    result = await get_users_collection().update_one(
        _id_filter(user_id),
        {"$push": {"study_schedules": schedule.model_dump(by_alias=True)}},
    )
    if result.matched_count == 0:
        return None
    return serialize_schedule(schedule)


# READ ALL
async def get_schedules(user_id: str) -> List[ScheduleRead]:
    user = await users_crud.require_user(user_id)
    return [serialize_schedule(s) for s in user.study_schedules]


# READ ONE
async def get_schedule(user_id: str, schedule_id: str) -> Optional[ScheduleRead]:
    user = await users_crud.get_user_by_id(user_id)
    if user is None:
        return None
    schedule = user.find_schedule(schedule_id)
    return serialize_schedule(schedule) if schedule else None


# UPDATE
async def update_schedule(user_id: str, schedule_id: str, schedule_data: ScheduleUpdate) -> Optional[ScheduleRead]:
    update_fields = schedule_data.model_dump(exclude_none=True, mode="python")
    if "recurring" in update_fields:
        update_fields["recurring"] = schedule_data.recurring.value
    if not update_fields:
        return await get_schedule(user_id, schedule_id)

    result = await get_users_collection().update_one(
        {**_id_filter(user_id), "study_schedules._id": schedule_id},
        {"$set": {f"study_schedules.$.{k}": v for k, v in update_fields.items()}},
    )
    if result.matched_count == 0:
        return None
    return await get_schedule(user_id, schedule_id)


# DELETE
async def delete_schedule(user_id: str, schedule_id: str) -> bool:
    result = await get_users_collection().update_one(
        _id_filter(user_id),
        {"$pull": {"study_schedules": {"_id": schedule_id}}},
    )
    return result.modified_count == 1
