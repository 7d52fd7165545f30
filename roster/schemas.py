from datetime import date, datetime, time
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from roster.time_utils import normalize_week


class ErrorCode(str, Enum):
    validation_error = "VALIDATION_ERROR"
    auth_required = "AUTH_REQUIRED"
    forbidden = "FORBIDDEN"
    user_not_found = "USER_NOT_FOUND"
    building_not_found = "BUILDING_NOT_FOUND"
    shift_not_found = "SHIFT_NOT_FOUND"
    shift_type_not_found = "SHIFT_TYPE_NOT_FOUND"
    role_not_found = "ROLE_NOT_FOUND"
    group_not_found = "INSPECTOR_GROUP_NOT_FOUND"
    assignment_not_found = "ASSIGNMENT_NOT_FOUND"
    request_not_found = "REQUEST_NOT_FOUND"
    task_not_found = "TASK_NOT_FOUND"
    task_type_not_found = "TASK_TYPE_NOT_FOUND"
    agency_not_found = "AGENCY_NOT_FOUND"
    notification_not_found = "NOTIFICATION_NOT_FOUND"
    duplicate = "DUPLICATE"
    in_use = "IN_USE"
    rule_conflict = "RULE_CONFLICT"
    response_not_pending = "RESPONSE_NOT_PENDING"
    request_not_pending = "REQUEST_NOT_PENDING"
    internal_error = "INTERNAL_ERROR"


class AssignmentStatusEnum(str, Enum):
    pending = "PENDING"
    accepted = "ACCEPTED"
    rejected = "REJECTED"


class ResponseActionEnum(str, Enum):
    accept = "ACCEPT"
    reject = "REJECT"


class RequestTypeEnum(str, Enum):
    shift_swap = "SHIFT_SWAP"
    leave = "LEAVE"


class RequestStatusEnum(str, Enum):
    pending = "PENDING"
    approved = "APPROVED"
    rejected = "REJECTED"


class ReviewDecisionEnum(str, Enum):
    approved = "APPROVED"
    rejected = "REJECTED"


class TaskStatusEnum(str, Enum):
    pending = "PENDING"
    in_progress = "IN_PROGRESS"
    completed = "COMPLETED"


class UserRoleFilter(str, Enum):
    admin = "admin"
    manager = "manager"
    inspector = "inspector"
    employee = "employee"


class ApiError(BaseModel):
    errorCode: ErrorCode
    userMessage: str
    developerMessage: str
    correlationId: str


class HealthStatus(BaseModel):
    status: str
    latency_ms: float | None = None
    last_error: str | None = None


# --- Principal & users ---

class Principal(BaseModel):
    """The authenticated caller, passed explicitly into every service call."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    username: str
    fullName: str
    isAdmin: bool = False
    isManager: bool = False
    isInspector: bool = False


class UserRef(BaseModel):
    id: UUID
    username: str
    fullName: str


class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=255)
    fullName: str = Field(min_length=1, max_length=255)
    isAdmin: bool = False
    isManager: bool = False
    isInspector: bool = False


class UserUpdate(BaseModel):
    username: str | None = Field(default=None, min_length=1, max_length=255)
    fullName: str | None = Field(default=None, min_length=1, max_length=255)
    isAdmin: bool | None = None
    isManager: bool | None = None
    isInspector: bool | None = None


class UserOut(BaseModel):
    id: UUID
    username: str
    fullName: str
    isAdmin: bool
    isManager: bool
    isInspector: bool


# --- Reference data ---

class RoleIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None


class RoleOut(BaseModel):
    id: UUID
    name: str
    description: str | None = None


class ShiftTypeIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    startTime: time
    endTime: time
    description: str | None = None


class ShiftTypeOut(BaseModel):
    id: UUID
    name: str
    startTime: time
    endTime: time
    description: str | None = None


class TaskTypeIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None


class TaskTypeOut(BaseModel):
    id: UUID
    name: str
    description: str | None = None


class AgencyIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None


class AgencyOut(BaseModel):
    id: UUID
    name: str
    description: str | None = None


# --- Buildings & weekly shifts ---

class BuildingIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    code: str = Field(min_length=1, max_length=64)
    area: str = ""
    supervisorId: UUID


class BuildingOut(BaseModel):
    id: UUID
    name: str
    code: str
    area: str
    supervisor: UserRef | None = None


class BuildingRef(BaseModel):
    id: UUID
    name: str
    code: str
    area: str


class ShiftCreate(BaseModel):
    buildingId: UUID
    week: str = Field(description="ISO week, e.g. 2025-03 or 2025-W03")

    @field_validator("week")
    @classmethod
    def canonical_week(cls, value: str) -> str:
        return normalize_week(value)


class ShiftOut(BaseModel):
    id: UUID
    buildingId: UUID
    week: str
    weekStart: date
    weekEnd: date


class DayIn(BaseModel):
    dayOfWeek: int = Field(ge=0, le=6)
    shiftTypeId: UUID | None = None


class InspectorGroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    roleId: UUID
    days: list[DayIn] = Field(default_factory=list)

    @model_validator(mode="after")
    def unique_days(self) -> "InspectorGroupCreate":
        seen = [d.dayOfWeek for d in self.days]
        if len(seen) != len(set(seen)):
            raise ValueError("Each dayOfWeek may appear at most once")
        return self


class DayUpdateIn(BaseModel):
    shiftTypeId: UUID | None = None


class RosterAddIn(BaseModel):
    inspectorId: UUID
    isBackup: bool = False


# --- Availability ---

class InspectorAvailabilityOut(BaseModel):
    id: UUID
    username: str
    fullName: str
    isAvailable: bool
    reason: str | None = None


# --- Nested schedule view ---

class RoleRef(BaseModel):
    id: UUID
    name: str


class ShiftTypeRef(BaseModel):
    id: UUID
    name: str
    startTime: time
    endTime: time


class ShiftDaySummary(BaseModel):
    dayOfWeek: int
    date: date
    shiftType: ShiftTypeRef | None = None


class RosterEntry(BaseModel):
    id: UUID
    inspector: UserRef
    isBackup: bool
    status: AssignmentStatusEnum
    rejectionReason: str | None = None
    responseAt: datetime | None = None


class InspectorGroupSummary(BaseModel):
    id: UUID
    name: str
    days: list[ShiftDaySummary]
    inspectors: list[RosterEntry]


class TaskAssignmentSummary(BaseModel):
    id: UUID
    role: RoleRef
    inspectorGroup: InspectorGroupSummary


class ShiftSummary(BaseModel):
    id: UUID
    week: str
    weekStart: date
    weekEnd: date
    taskAssignments: list[TaskAssignmentSummary]


class BuildingSummary(BaseModel):
    id: UUID
    name: str
    code: str
    area: str
    supervisor: UserRef | None = None
    shifts: list[ShiftSummary]


class BuildingsWithShiftsResponse(BaseModel):
    buildings: list[BuildingSummary]


class ShiftDetail(ShiftSummary):
    building: BuildingRef


# --- Shift responses ---

class ShiftResponseIn(BaseModel):
    action: ResponseActionEnum
    rejectionReason: str | None = Field(default=None, max_length=2000)
    inspectorGroupId: UUID | None = None


class ShiftResponseOut(BaseModel):
    id: UUID
    shiftId: UUID
    inspectorGroupId: UUID
    inspectorId: UUID
    status: AssignmentStatusEnum
    rejectionReason: str | None = None
    responseAt: datetime | None = None
    correlationId: str


class MyAssignmentOut(BaseModel):
    id: UUID
    shiftId: UUID
    week: str
    weekStart: date
    building: BuildingRef
    role: RoleRef
    inspectorGroupId: UUID
    inspectorGroupName: str
    isBackup: bool
    status: AssignmentStatusEnum
    rejectionReason: str | None = None
    responseAt: datetime | None = None
    days: list[ShiftDaySummary]


# --- Requests ---

class RequestCreate(BaseModel):
    type: RequestTypeEnum
    shiftTypeId: UUID | None = None
    targetShiftTypeId: UUID | None = None
    startDate: date | None = None
    endDate: date | None = None
    reason: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def check_type_fields(self) -> "RequestCreate":
        if self.type == RequestTypeEnum.shift_swap:
            if self.shiftTypeId is None or self.targetShiftTypeId is None:
                raise ValueError("shiftTypeId and targetShiftTypeId are required for shift swap requests")
            if self.shiftTypeId == self.targetShiftTypeId:
                raise ValueError("targetShiftTypeId must differ from shiftTypeId")
        else:
            if self.startDate is None or self.endDate is None:
                raise ValueError("startDate and endDate are required for leave requests")
            if self.startDate > self.endDate:
                raise ValueError("startDate must be on or before endDate")
        return self


class RequestAssignIn(BaseModel):
    managerId: UUID


class RequestReviewIn(BaseModel):
    status: ReviewDecisionEnum


class RequestOut(BaseModel):
    id: UUID
    type: RequestTypeEnum
    status: RequestStatusEnum
    requester: UserRef | None = None
    manager: UserRef | None = None
    reviewer: UserRef | None = None
    shiftType: ShiftTypeRef | None = None
    targetShiftType: ShiftTypeRef | None = None
    startDate: date | None = None
    endDate: date | None = None
    reason: str | None = None
    createdAt: datetime | None = None
    reviewedAt: datetime | None = None


# --- Tasks ---

class TaskIn(BaseModel):
    inspectorId: UUID | None = None
    shiftTypeId: UUID
    taskTypeId: UUID
    status: TaskStatusEnum = TaskStatusEnum.pending
    date: date
    assignedTo: UUID | None = None
    isFollowupNeeded: bool = False


class TaskOut(BaseModel):
    id: UUID
    inspectorId: UUID | None = None
    shiftTypeId: UUID
    taskTypeId: UUID
    status: TaskStatusEnum
    date: date
    assignedTo: UUID | None = None
    isFollowupNeeded: bool


# --- Notifications & stats ---

class NotificationOut(BaseModel):
    id: UUID
    type: str
    title: str
    message: str
    isRead: bool
    metadata: dict[str, Any] = Field(default_factory=dict)
    createdAt: datetime | None = None


class TaskStatsRow(BaseModel):
    shiftTypeId: UUID
    shiftTypeName: str
    total: int
    pending: int
    inProgress: int
    completed: int


class StatsOut(BaseModel):
    totalInspectors: int
    totalBuildings: int
    pendingResponses: int
    pendingRequests: int
    tasksByShiftType: list[TaskStatsRow]
