import enum
from typing import NamedTuple

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from models.base_models import BaseModel


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class PrivacyLevel(str, enum.Enum):
    """Ordered from narrowest to widest audience."""
    OBSERVER_ONLY = "observer_only"
    OBSERVED_ONLY = "observed_only"
    MANAGERS_ONLY = "managers_only"
    OBSERVED_AND_MANAGERS = "observed_and_managers"
    PUBLIC_TO_COMPANY = "public_to_company"
    PUBLIC_TO_WORLD = "public_to_world"


PUBLIC_PRIVACY_LEVELS = (PrivacyLevel.PUBLIC_TO_COMPANY, PrivacyLevel.PUBLIC_TO_WORLD)


class RateableType(str, enum.Enum):
    ASSIGNMENT = "Assignment"
    ABILITY = "Ability"
    ASPIRATION = "Aspiration"


class Rateable(NamedTuple):
    kind: RateableType
    id: int


class ObservationRatingValue(str, enum.Enum):
    STRONGLY_AGREE = "strongly_agree"
    AGREE = "agree"
    NA = "na"
    DISAGREE = "disagree"
    STRONGLY_DISAGREE = "strongly_disagree"


NEGATIVE_RATINGS = (ObservationRatingValue.DISAGREE, ObservationRatingValue.STRONGLY_DISAGREE)


class Observation(BaseModel):
    __tablename__ = "observations"
    __table_args__ = (
        Index("idx_observations_company_observed_at", "company_id", "observed_at"),
        Index("idx_observations_observer_id", "observer_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    observer_id = Column(Integer, ForeignKey("people.id"), nullable=False)
    company_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    title = Column(String(255), nullable=True)
    story = Column(Text, nullable=False, default="")
    privacy_level = Column(
        Enum(PrivacyLevel, name="observation_privacy_level", values_callable=_enum_values),
        nullable=False,
        default=PrivacyLevel.OBSERVER_ONLY,
    )
    observed_at = Column(DateTime, nullable=False)
    published_at = Column(DateTime, nullable=True)
    deleted_at = Column(DateTime, nullable=True)

    observer = relationship("Person")
    company = relationship("Organization")
    observees = relationship("Observee", back_populates="observation", cascade="all, delete-orphan")
    observation_ratings = relationship(
        "ObservationRating", back_populates="observation", cascade="all, delete-orphan"
    )

    @property
    def draft(self) -> bool:
        return self.published_at is None

    @property
    def soft_deleted(self) -> bool:
        return self.deleted_at is not None

    def observee_teammate_ids(self):
        return [observee.teammate_id for observee in self.observees]

    def permalink_path(self) -> str:
        return f"/organizations/{self.company_id}/kudos/{self.observed_at.strftime('%Y-%m-%d')}/{self.id}"


class Observee(BaseModel):
    __tablename__ = "observees"
    __table_args__ = (
        UniqueConstraint("observation_id", "teammate_id", name="uq_observees_observation_teammate"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    observation_id = Column(Integer, ForeignKey("observations.id"), nullable=False)
    teammate_id = Column(Integer, ForeignKey("teammates.id"), nullable=False)

    observation = relationship("Observation", back_populates="observees")
    teammate = relationship("Teammate")


class ObservationRating(BaseModel):
    __tablename__ = "observation_ratings"
    __table_args__ = (
        UniqueConstraint("observation_id", "rateable_type", "rateable_id", name="uq_observation_ratings_rateable"),
        Index("idx_observation_ratings_rateable", "rateable_type", "rateable_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    observation_id = Column(Integer, ForeignKey("observations.id"), nullable=False)
    rateable_type = Column(
        Enum(RateableType, name="rateable_type", values_callable=_enum_values), nullable=False
    )
    rateable_id = Column(Integer, nullable=False)
    rating = Column(
        Enum(ObservationRatingValue, name="observation_rating_value", values_callable=_enum_values),
        nullable=False,
    )

    observation = relationship("Observation", back_populates="observation_ratings")

    @property
    def negative(self) -> bool:
        return self.rating in NEGATIVE_RATINGS
