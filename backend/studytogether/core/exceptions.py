# backend/studytogether/core/exceptions.py


class StudyTogetherError(Exception):
    """도메인 계층 예외의 공통 부모"""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(StudyTogetherError):
    """입력 형태/범위 오류. 상태 변경 전에 즉시 발생합니다."""


class NotFoundError(StudyTogetherError):
    """참조한 세션/유저가 존재하지 않음"""


class InternalComputationError(StudyTogetherError):
    """스트릭/업적 계산 같은 하위 단계의 예기치 못한 실패"""
