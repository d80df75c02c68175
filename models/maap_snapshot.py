import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from models.base_models import BaseModel, JSONType


class ChangeType(str, enum.Enum):
    ASSIGNMENT_MANAGEMENT = "assignment_management"
    POSITION_TENURE = "position_tenure"
    MILESTONE_MANAGEMENT = "milestone_management"
    ASPIRATION_MANAGEMENT = "aspiration_management"
    EXPLORATION = "exploration"
    BULK_UPDATE = "bulk_update"
    BULK_CHECK_IN_FINALIZATION = "bulk_check_in_finalization"


class MaapSnapshot(BaseModel):
    """
    Immutable record of a teammate's full MAAP state at one point in time.

    maap_data holds position, assignments, milestones and aspirations;
    request_info / manager_request_info hold the audit trail of the request
    that produced it. effective_date stays null until the changes are executed.
    """
    __tablename__ = "maap_snapshots"
    __table_args__ = (
        Index("idx_maap_snapshots_employee_id", "employee_id"),
        Index("idx_maap_snapshots_company_id", "company_id"),
        Index("idx_maap_snapshots_change_type", "change_type"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, ForeignKey("people.id"), nullable=True)
    created_by_id = Column(Integer, ForeignKey("people.id"), nullable=True)
    company_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    change_type = Column(String(50), nullable=False)
    reason = Column(Text, nullable=False)
    maap_data = Column(JSONType, nullable=False, default=dict)
    form_params = Column(JSONType, nullable=True)
    request_info = Column(JSONType, nullable=True)
    manager_request_info = Column(JSONType, nullable=True)
    effective_date = Column(DateTime, nullable=True)

    employee = relationship("Person", foreign_keys=[employee_id])
    creator = relationship("Person", foreign_keys=[created_by_id])
    company = relationship("Organization")

    @property
    def executed(self) -> bool:
        return self.effective_date is not None

    @property
    def pending(self) -> bool:
        return self.effective_date is None

    @property
    def exploration_snapshot(self) -> bool:
        return self.change_type == ChangeType.EXPLORATION.value
