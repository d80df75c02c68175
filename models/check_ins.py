import enum
from typing import Iterable, Optional

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship, declared_attr, validates

from common.exceptions import InvalidEnumValueError
from models.base_models import BaseModel


class CheckInRating(str, enum.Enum):
    WORKING_TO_MEET = "working_to_meet"
    MEETING = "meeting"
    EXCEEDING = "exceeding"


class PersonalAlignment(str, enum.Enum):
    LOVE = "love"
    LIKE = "like"
    NEUTRAL = "neutral"
    PREFER_NOT = "prefer_not"
    ONLY_IF_NECESSARY = "only_if_necessary"


POSITION_RATING_VALUES = (-3, -2, -1, 0, 1, 2, 3)


def _enum_value(field: str, value, enum_cls):
    if value is None or value == "":
        return None
    if isinstance(value, enum_cls):
        return value.value
    allowed = [member.value for member in enum_cls]
    if value not in allowed:
        raise InvalidEnumValueError(field, value, allowed)
    return value


def _position_rating(field: str, value, allowed: Iterable[int] = POSITION_RATING_VALUES):
    if value is None or value == "":
        return None
    try:
        rating = int(value)
    except (TypeError, ValueError):
        raise InvalidEnumValueError(field, value, [str(v) for v in allowed])
    if rating not in allowed:
        raise InvalidEnumValueError(field, value, [str(v) for v in allowed])
    return rating


class CheckInMixin:
    """Columns and derived state shared by assignment, position and aspiration check-ins."""

    id = Column(Integer, primary_key=True, autoincrement=True)
    check_in_started_on = Column(Date, nullable=False)

    employee_private_notes = Column(Text, nullable=True)
    employee_completed_at = Column(DateTime, nullable=True)

    manager_private_notes = Column(Text, nullable=True)
    manager_completed_at = Column(DateTime, nullable=True)

    shared_notes = Column(Text, nullable=True)
    official_check_in_completed_at = Column(DateTime, nullable=True)

    @declared_attr
    def teammate_id(cls):
        return Column(Integer, ForeignKey("teammates.id"), nullable=False)

    @declared_attr
    def manager_completed_by_id(cls):
        return Column(Integer, ForeignKey("people.id"), nullable=True)

    @declared_attr
    def finalized_by_id(cls):
        return Column(Integer, ForeignKey("people.id"), nullable=True)

    @declared_attr
    def maap_snapshot_id(cls):
        return Column(Integer, ForeignKey("maap_snapshots.id"), nullable=True)

    @declared_attr
    def teammate(cls):
        return relationship("Teammate")

    @declared_attr
    def finalized_by(cls):
        return relationship("Person", foreign_keys=lambda: [cls.finalized_by_id])

    @declared_attr
    def maap_snapshot(cls):
        return relationship("MaapSnapshot")

    @property
    def employee_completed(self) -> bool:
        return self.employee_completed_at is not None

    @property
    def manager_completed(self) -> bool:
        return self.manager_completed_at is not None

    @property
    def officially_completed(self) -> bool:
        return self.official_check_in_completed_at is not None

    @property
    def is_open(self) -> bool:
        return not self.officially_completed

    @property
    def ready_for_finalization(self) -> bool:
        return self.employee_completed and self.manager_completed and self.is_open

    def official_check_in_data(self) -> dict:
        return {
            "official_rating": self.official_rating if self.official_rating != "" else None,
            "shared_notes": self.shared_notes,
            "official_check_in_completed_at": (
                self.official_check_in_completed_at.isoformat()
                if self.official_check_in_completed_at else None
            ),
            "finalized_by_id": self.finalized_by_id,
        }


class AssignmentCheckIn(CheckInMixin, BaseModel):
    __tablename__ = "assignment_check_ins"
    __table_args__ = (
        Index("idx_assignment_check_ins_teammate_assignment", "teammate_id", "assignment_id"),
    )

    assignment_id = Column(Integer, ForeignKey("assignments.id"), nullable=False)
    actual_energy_percentage = Column(Integer, nullable=True)
    employee_rating = Column(String(30), nullable=True)
    employee_personal_alignment = Column(String(30), nullable=True)
    manager_rating = Column(String(30), nullable=True)
    official_rating = Column(String(30), nullable=True)

    assignment = relationship("Assignment")

    @validates("employee_rating", "manager_rating", "official_rating")
    def validate_rating(self, key, value):
        return _enum_value(key, value, CheckInRating)

    @validates("employee_personal_alignment")
    def validate_personal_alignment(self, key, value):
        return _enum_value(key, value, PersonalAlignment)

    @property
    def subject_id(self) -> int:
        return self.assignment_id


class AspirationCheckIn(CheckInMixin, BaseModel):
    __tablename__ = "aspiration_check_ins"
    __table_args__ = (
        Index("idx_aspiration_check_ins_teammate_aspiration", "teammate_id", "aspiration_id"),
    )

    aspiration_id = Column(Integer, ForeignKey("aspirations.id"), nullable=False)
    employee_rating = Column(String(30), nullable=True)
    manager_rating = Column(String(30), nullable=True)
    official_rating = Column(String(30), nullable=True)

    aspiration = relationship("Aspiration")

    @validates("employee_rating", "manager_rating", "official_rating")
    def validate_rating(self, key, value):
        return _enum_value(key, value, CheckInRating)

    @property
    def subject_id(self) -> int:
        return self.aspiration_id


class PositionCheckIn(CheckInMixin, BaseModel):
    __tablename__ = "position_check_ins"
    __table_args__ = (
        Index("idx_position_check_ins_teammate_id", "teammate_id"),
    )

    employment_tenure_id = Column(Integer, ForeignKey("employment_tenures.id"), nullable=True)
    employee_rating = Column(Integer, nullable=True)
    manager_rating = Column(Integer, nullable=True)
    official_rating = Column(Integer, nullable=True)

    employment_tenure = relationship("EmploymentTenure")

    @validates("employee_rating", "manager_rating", "official_rating")
    def validate_rating(self, key, value):
        return _position_rating(key, value)

    @property
    def subject_id(self) -> Optional[int]:
        return self.employment_tenure_id
