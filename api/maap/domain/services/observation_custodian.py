from datetime import datetime
from typing import Optional
import logging

from models.observations import Observation, PrivacyLevel
from models.organization import Organization
from api.maap.domain.policies import authorize
from api.maap.domain.services.privacy_enforcement import PrivacyLevelEnforcementService
from api.maap.domain.viewer import ViewerContext
from api.maap.infra.db.uow import UnitOfWork

logger = logging.getLogger(__name__)


class ObservationCustodian:
    def __init__(self, uow: UnitOfWork, viewer: ViewerContext, organization: Organization):
        self.uow = uow
        self.viewer = viewer
        self.organization = organization

    def get_observation(self, observation_id: int) -> Observation:
        observation = self.uow.observations.get_by_id(observation_id, self.organization.root_company().id)
        if not observation:
            raise ValueError(f"Observation {observation_id} not found")
        return observation

    def _authorize_observer(self, observation: Observation, action: str):
        authorize(
            self.viewer.person_id is not None and observation.observer_id == self.viewer.person_id,
            self.viewer,
            self.organization,
            message=f"Only the observer can {action} this observation.",
        )

    def publish(self, observation_id: int, now: Optional[datetime] = None) -> Observation:
        observation = self.get_observation(observation_id)
        self._authorize_observer(observation, "publish")

        if observation.soft_deleted:
            raise ValueError(f"Observation {observation_id} has been deleted")

        if observation.published_at is None:
            observation.published_at = now or datetime.utcnow()
        self.uow.observations.update(observation)
        downgraded = PrivacyLevelEnforcementService(self.uow).call(observation)
        self.uow.commit()

        logger.info(
            f"Observation published: observation_id={observation.id}, "
            f"privacy_level={PrivacyLevel(observation.privacy_level).value}, downgraded={downgraded}"
        )
        return observation

    def soft_delete(self, observation_id: int, now: Optional[datetime] = None) -> Observation:
        observation = self.get_observation(observation_id)
        self._authorize_observer(observation, "delete")

        if observation.soft_deleted:
            logger.info(f"Observation {observation_id} already deleted")
            return observation

        observation.deleted_at = now or datetime.utcnow()
        self.uow.observations.update(observation)
        self.uow.commit()

        logger.info(f"Observation soft deleted: observation_id={observation.id}")
        return observation

    def restore(self, observation_id: int) -> Observation:
        observation = self.get_observation(observation_id)
        self._authorize_observer(observation, "restore")

        observation.deleted_at = None
        self.uow.observations.update(observation)
        self.uow.commit()

        logger.info(f"Observation restored: observation_id={observation.id}")
        return observation
