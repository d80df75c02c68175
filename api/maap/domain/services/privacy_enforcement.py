import logging

from models.observations import Observation, ObservationRating, PrivacyLevel, NEGATIVE_RATINGS
from api.maap.infra.db.uow import UnitOfWork

logger = logging.getLogger(__name__)


class PrivacyLevelEnforcementService:
    """Keeps negative feedback from being published to the world."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def call(self, observation: Observation) -> bool:
        if observation.privacy_level != PrivacyLevel.PUBLIC_TO_WORLD:
            return False

        # ratings may have been attached after the observation was loaded
        negative_count = self.uow.db.query(ObservationRating).filter(
            ObservationRating.observation_id == observation.id,
            ObservationRating.rating.in_(NEGATIVE_RATINGS),
        ).count()
        if negative_count == 0:
            return False

        observation.privacy_level = PrivacyLevel.OBSERVED_AND_MANAGERS
        self.uow.observations.update(observation)
        logger.info(
            f"Observation privacy downgraded: observation_id={observation.id}, "
            f"negative_ratings={negative_count}, level={PrivacyLevel.OBSERVED_AND_MANAGERS.value}"
        )
        return True
