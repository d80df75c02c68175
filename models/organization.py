import enum
from typing import List, Optional, Set

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, ForeignKey, Enum,
    UniqueConstraint, Index
)
from sqlalchemy.orm import relationship

from models.base_models import BaseModel


class OrganizationType(str, enum.Enum):
    COMPANY = "company"
    DEPARTMENT = "department"
    TEAM = "team"


class Organization(BaseModel):
    __tablename__ = "organizations"
    __table_args__ = (
        Index("idx_organizations_parent_id", "parent_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    type = Column(
        Enum(OrganizationType, name="organization_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=OrganizationType.COMPANY,
    )
    parent_id = Column(Integer, ForeignKey("organizations.id"), nullable=True)

    parent = relationship("Organization", remote_side=[id], back_populates="children")
    children = relationship("Organization", back_populates="parent")
    teammates = relationship("Teammate", back_populates="organization")

    def root_company(self) -> "Organization":
        node = self
        seen = set()
        while node.parent is not None and node.id not in seen:
            seen.add(node.id)
            node = node.parent
        return node

    def self_and_descendant_ids(self) -> Set[int]:
        ids = set()
        stack = [self]
        while stack:
            node = stack.pop()
            if node.id in ids:
                continue
            ids.add(node.id)
            stack.extend(node.children)
        return ids


class Person(BaseModel):
    __tablename__ = "people"
    __table_args__ = (
        UniqueConstraint("email"),
        Index("idx_people_email", "email"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    preferred_name = Column(String(100), nullable=True)

    teammates = relationship("Teammate", back_populates="person")

    @property
    def display_name(self) -> str:
        first = self.preferred_name or self.first_name
        full = " ".join(part for part in [first, self.last_name] if part)
        return full or self.email

    def teammate_for(self, organization: Optional[Organization]) -> Optional["Teammate"]:
        """Teammate record of this person anywhere inside the organization's root company."""
        if organization is None:
            return None
        company_ids = organization.root_company().self_and_descendant_ids()
        for teammate in self.teammates:
            if teammate.organization_id == organization.id:
                return teammate
        for teammate in self.teammates:
            if teammate.organization_id in company_ids:
                return teammate
        return None


class Teammate(BaseModel):
    __tablename__ = "teammates"
    __table_args__ = (
        UniqueConstraint("person_id", "organization_id", name="uq_teammates_person_organization"),
        Index("idx_teammates_organization_id", "organization_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    person_id = Column(Integer, ForeignKey("people.id"), nullable=False)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    can_manage_employment = Column(Boolean, nullable=False, default=False)
    can_manage_maap = Column(Boolean, nullable=False, default=False)
    first_employed_at = Column(DateTime, nullable=True)
    last_terminated_at = Column(DateTime, nullable=True)

    person = relationship("Person", back_populates="teammates")
    organization = relationship("Organization", back_populates="teammates")
    employment_tenures = relationship(
        "EmploymentTenure",
        foreign_keys="EmploymentTenure.teammate_id",
        back_populates="teammate",
        order_by="EmploymentTenure.started_at",
    )
    assignment_tenures = relationship(
        "AssignmentTenure", back_populates="teammate", order_by="AssignmentTenure.id"
    )
    teammate_milestones = relationship("TeammateMilestone", back_populates="teammate",
                                       foreign_keys="TeammateMilestone.teammate_id")

    @property
    def actively_employed(self) -> bool:
        return self.first_employed_at is not None and self.last_terminated_at is None

    def active_employment_tenure(self) -> Optional["EmploymentTenure"]:
        for tenure in self.employment_tenures:
            if tenure.active:
                return tenure
        return None

    def active_assignment_tenures(self) -> List["AssignmentTenure"]:
        return [tenure for tenure in self.assignment_tenures if tenure.active]


class EmploymentTenure(BaseModel):
    __tablename__ = "employment_tenures"
    __table_args__ = (
        Index("idx_employment_tenures_teammate_id", "teammate_id"),
        Index("idx_employment_tenures_manager_teammate_id", "manager_teammate_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    teammate_id = Column(Integer, ForeignKey("teammates.id"), nullable=False)
    company_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    position_id = Column(Integer, ForeignKey("positions.id"), nullable=True)
    manager_teammate_id = Column(Integer, ForeignKey("teammates.id"), nullable=True)
    seat_id = Column(Integer, nullable=True)
    employment_type = Column(String(50), nullable=False, default="full_time")
    started_at = Column(Date, nullable=False)
    ended_at = Column(Date, nullable=True)
    official_position_rating = Column(Integer, nullable=True)

    teammate = relationship("Teammate", foreign_keys=[teammate_id], back_populates="employment_tenures")
    manager = relationship("Teammate", foreign_keys=[manager_teammate_id])
    company = relationship("Organization")
    position = relationship("Position")

    @property
    def active(self) -> bool:
        return self.ended_at is None
