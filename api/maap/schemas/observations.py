from pydantic import BaseModel
from typing import Optional, List, Dict, Any
from datetime import datetime

from models.observations import PrivacyLevel, RateableType, ObservationRatingValue


class ObservationRatingResponse(BaseModel):
    id: int
    rateable_type: RateableType
    rateable_id: int
    rating: ObservationRatingValue

    class Config:
        from_attributes = True


class ObservationResponse(BaseModel):
    id: int
    observer_id: int
    company_id: int
    title: Optional[str]
    story: str
    privacy_level: PrivacyLevel
    observed_at: datetime
    published_at: Optional[datetime]
    deleted_at: Optional[datetime]
    observee_teammate_ids: List[int]
    observation_ratings: List[ObservationRatingResponse]
    permalink: str

    @classmethod
    def from_observation(cls, observation, include_negative_ratings: bool = True) -> "ObservationResponse":
        ratings = [
            ObservationRatingResponse.model_validate(rating)
            for rating in observation.observation_ratings
            if include_negative_ratings or not rating.negative
        ]
        return cls(
            id=observation.id,
            observer_id=observation.observer_id,
            company_id=observation.company_id,
            title=observation.title,
            story=observation.story,
            privacy_level=observation.privacy_level,
            observed_at=observation.observed_at,
            published_at=observation.published_at,
            deleted_at=observation.deleted_at,
            observee_teammate_ids=observation.observee_teammate_ids(),
            observation_ratings=ratings,
            permalink=observation.permalink_path(),
        )


class ObservationListResponse(BaseModel):
    observations: List[ObservationResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_prev: bool
    current_filters: Dict[str, Any]
    current_sort: str
    current_view: str
    current_spotlight: str
    has_active_filters: bool
    spotlight_stats: Dict[str, Any]
