from typing import Tuple

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from models.base_models import BaseModel


MILESTONE_LEVELS = (1, 2, 3, 4, 5)


class SemanticVersioned:
    """Mixin for records carrying an "X.Y.Z" semantic_version string."""

    semantic_version = Column(String(20), nullable=False, default="0.0.1")

    @property
    def version_triple(self) -> Tuple[int, int, int]:
        major, minor, patch = (int(part) for part in self.semantic_version.split("."))
        return major, minor, patch

    @property
    def major_version(self) -> int:
        return self.version_triple[0]


class Ability(SemanticVersioned, BaseModel):
    __tablename__ = "abilities"
    __table_args__ = (
        Index("idx_abilities_organization_id", "organization_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    milestone_1_description = Column(Text, nullable=True)
    milestone_2_description = Column(Text, nullable=True)
    milestone_3_description = Column(Text, nullable=True)
    milestone_4_description = Column(Text, nullable=True)
    milestone_5_description = Column(Text, nullable=True)

    organization = relationship("Organization")
    teammate_milestones = relationship("TeammateMilestone", back_populates="ability")

    def milestone_description(self, level: int):
        return getattr(self, f"milestone_{level}_description")


class Assignment(SemanticVersioned, BaseModel):
    __tablename__ = "assignments"
    __table_args__ = (
        Index("idx_assignments_company_id", "company_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    title = Column(String(255), nullable=False)
    tagline = Column(Text, nullable=True)
    required_activities = Column(Text, nullable=True)

    company = relationship("Organization")
    assignment_tenures = relationship("AssignmentTenure", back_populates="assignment")


class Position(SemanticVersioned, BaseModel):
    __tablename__ = "positions"
    __table_args__ = (
        Index("idx_positions_company_id", "company_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    title = Column(String(255), nullable=False)
    position_summary = Column(Text, nullable=True)

    company = relationship("Organization")


class Aspiration(BaseModel):
    __tablename__ = "aspirations"
    __table_args__ = (
        Index("idx_aspirations_organization_id", "organization_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    organization = relationship("Organization")


class AssignmentTenure(BaseModel):
    __tablename__ = "assignment_tenures"
    __table_args__ = (
        Index("idx_assignment_tenures_teammate_assignment", "teammate_id", "assignment_id"),
        CheckConstraint(
            "anticipated_energy_percentage >= 0 AND anticipated_energy_percentage <= 100",
            name="ck_assignment_tenures_energy_range",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    teammate_id = Column(Integer, ForeignKey("teammates.id"), nullable=False)
    assignment_id = Column(Integer, ForeignKey("assignments.id"), nullable=False)
    anticipated_energy_percentage = Column(Integer, nullable=False, default=0)
    started_at = Column(Date, nullable=False)
    ended_at = Column(Date, nullable=True)
    official_rating = Column(String(30), nullable=True)

    teammate = relationship("Teammate", back_populates="assignment_tenures")
    assignment = relationship("Assignment", back_populates="assignment_tenures")

    @property
    def active(self) -> bool:
        return self.ended_at is None


class TeammateMilestone(BaseModel):
    __tablename__ = "teammate_milestones"
    __table_args__ = (
        Index("idx_teammate_milestones_teammate_id", "teammate_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    teammate_id = Column(Integer, ForeignKey("teammates.id"), nullable=False)
    ability_id = Column(Integer, ForeignKey("abilities.id"), nullable=False)
    milestone_level = Column(Integer, nullable=False)
    certified_by_id = Column(Integer, ForeignKey("people.id"), nullable=True)
    attained_at = Column(DateTime, nullable=True)

    teammate = relationship("Teammate", back_populates="teammate_milestones", foreign_keys=[teammate_id])
    ability = relationship("Ability", back_populates="teammate_milestones")
