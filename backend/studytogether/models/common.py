# 파일 위치: backend/studytogether/models/common.py

from typing import Annotated

from bson import ObjectId
from pydantic import BeforeValidator


def _coerce_object_id(v):
    if isinstance(v, ObjectId):
        return str(v)
    return v


# MongoDB의 ObjectId / 문자열 _id 를 모두 str 로 받아들이기 위한 타입
PyObjectId = Annotated[str, BeforeValidator(_coerce_object_id)]


def new_object_id() -> str:
    """임베디드 문서(세션/스케줄)용 id 생성"""
    return str(ObjectId())
