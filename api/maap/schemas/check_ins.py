from pydantic import BaseModel
from typing import Optional, Dict, Any, List
from datetime import date, datetime


class CheckInResponse(BaseModel):
    id: int
    teammate_id: int
    check_in_started_on: date
    employee_rating: Optional[Any] = None
    employee_private_notes: Optional[str] = None
    employee_completed_at: Optional[datetime] = None
    manager_rating: Optional[Any] = None
    manager_private_notes: Optional[str] = None
    manager_completed_at: Optional[datetime] = None
    manager_completed_by_id: Optional[int] = None
    official_rating: Optional[Any] = None
    shared_notes: Optional[str] = None
    official_check_in_completed_at: Optional[datetime] = None
    finalized_by_id: Optional[int] = None
    maap_snapshot_id: Optional[int] = None

    class Config:
        from_attributes = True


class AssignmentCheckInResponse(CheckInResponse):
    assignment_id: int
    actual_energy_percentage: Optional[int] = None
    employee_personal_alignment: Optional[str] = None


class AspirationCheckInResponse(CheckInResponse):
    aspiration_id: int


class PositionCheckInResponse(CheckInResponse):
    employment_tenure_id: Optional[int] = None


class ReadyForFinalizationResponse(BaseModel):
    teammate_id: int
    position_check_ins: List[PositionCheckInResponse]
    assignment_check_ins: List[AssignmentCheckInResponse]
    aspiration_check_ins: List[AspirationCheckInResponse]


class MaapSnapshotResponse(BaseModel):
    id: int
    employee_id: Optional[int]
    created_by_id: Optional[int]
    company_id: int
    change_type: str
    reason: str
    maap_data: Optional[Dict[str, Any]]
    form_params: Optional[Dict[str, Any]]
    request_info: Optional[Dict[str, Any]]
    manager_request_info: Optional[Dict[str, Any]]
    effective_date: Optional[datetime]
    executed: bool
    exploration_snapshot: bool

    class Config:
        from_attributes = True


class FinalizationResponse(BaseModel):
    redirect_to: str
    snapshot_id: Optional[int] = None
    notice: Optional[str] = None
    alert: Optional[str] = None
