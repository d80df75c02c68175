"""
Who may see which observation.

| privacy_level          | visible to                                        |
|------------------------|---------------------------------------------------|
| observer_only          | observer                                          |
| observed_only          | observer, observees                               |
| managers_only          | observer, observees' managers                     |
| observed_and_managers  | observer, observees, observees' managers          |
| public_to_company      | any active teammate of the company                |
| public_to_world        | anyone                                            |

Drafts are visible to their observer only and soft-deleted observations to
nobody. Employment managers (can_manage_employment) additionally see the
manager and public levels. Viewers without an active teammate in the company
see published public_to_world observations only.
"""
from typing import List, Optional, Set

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Query

from models.observations import Observation, Observee, PrivacyLevel, PUBLIC_PRIVACY_LEVELS
from models.organization import Organization, Teammate
from api.maap.domain.policies import NOT_EMPLOYED, NOT_PERMITTED, WRONG_ORGANIZATION
from api.maap.domain.viewer import ViewerContext
from api.maap.infra.db.uow import UnitOfWork

EMPLOYMENT_MANAGER_LEVELS = (
    PrivacyLevel.MANAGERS_ONLY,
    PrivacyLevel.OBSERVED_AND_MANAGERS,
    PrivacyLevel.PUBLIC_TO_COMPANY,
    PrivacyLevel.PUBLIC_TO_WORLD,
)
OBSERVEE_LEVELS = (PrivacyLevel.OBSERVED_ONLY, PrivacyLevel.OBSERVED_AND_MANAGERS)
MANAGER_LEVELS = (PrivacyLevel.MANAGERS_ONLY, PrivacyLevel.OBSERVED_AND_MANAGERS)


class ObservationVisibilityQuery:
    def __init__(self, uow: UnitOfWork, viewer: ViewerContext, company: Organization):
        self.uow = uow
        self.viewer = viewer
        self.company = company.root_company()
        self.viewer_teammate: Optional[Teammate] = viewer.active_teammate_in(self.company)
        self._managed_ids: Optional[Set[int]] = None

    @property
    def has_active_teammate(self) -> bool:
        return self.viewer_teammate is not None

    def _viewer_teammate_ids(self) -> List[int]:
        if self.viewer.person is None:
            return []
        company_ids = self.company.self_and_descendant_ids()
        return [
            teammate.id for teammate in self.viewer.person.teammates
            if teammate.organization_id in company_ids and teammate.actively_employed
        ]

    def managed_teammate_ids(self) -> Set[int]:
        """Everyone below the viewer in the active reporting chain."""
        if self._managed_ids is not None:
            return self._managed_ids

        managed: Set[int] = set()
        frontier = set(self._viewer_teammate_ids())
        while frontier:
            reports = set(self.uow.teammates.direct_reports_of(frontier)) - managed
            managed |= reports
            frontier = reports
        self._managed_ids = managed
        return managed

    def _observees_in(self, teammate_ids):
        return Observation.id.in_(
            select(Observee.observation_id).where(Observee.teammate_id.in_(list(teammate_ids)))
        )

    def visible_observations(self) -> Query:
        base = self.uow.db.query(Observation).filter(
            and_(
                Observation.company_id == self.company.id,
                Observation.deleted_at.is_(None),
            )
        )

        if not self.has_active_teammate:
            return base.filter(
                and_(
                    Observation.privacy_level == PrivacyLevel.PUBLIC_TO_WORLD,
                    Observation.published_at.isnot(None),
                )
            )

        person_id = self.viewer.person_id
        conditions = [
            Observation.observer_id == person_id,
            Observation.privacy_level.in_(PUBLIC_PRIVACY_LEVELS),
        ]

        own_ids = self._viewer_teammate_ids()
        if own_ids:
            conditions.append(and_(Observation.privacy_level.in_(OBSERVEE_LEVELS), self._observees_in(own_ids)))

        managed_ids = self.managed_teammate_ids()
        if managed_ids:
            conditions.append(and_(Observation.privacy_level.in_(MANAGER_LEVELS), self._observees_in(managed_ids)))

        if self.viewer_teammate.can_manage_employment:
            conditions.append(Observation.privacy_level.in_(EMPLOYMENT_MANAGER_LEVELS))

        return base.filter(or_(*conditions)).filter(
            or_(Observation.published_at.isnot(None), Observation.observer_id == person_id)
        )

    def _is_observer(self, observation: Observation) -> bool:
        return self.viewer.person_id is not None and observation.observer_id == self.viewer.person_id

    def _is_observee(self, observation: Observation) -> bool:
        own_ids = set(self._viewer_teammate_ids())
        return any(teammate_id in own_ids for teammate_id in observation.observee_teammate_ids())

    def _manages_observee(self, observation: Observation) -> bool:
        managed_ids = self.managed_teammate_ids()
        return any(teammate_id in managed_ids for teammate_id in observation.observee_teammate_ids())

    def _can_manage_employment(self) -> bool:
        return bool(self.viewer_teammate and self.viewer_teammate.can_manage_employment)

    def can_view(self, observation: Observation) -> bool:
        if observation.company_id != self.company.id or observation.soft_deleted:
            return False

        if not self.has_active_teammate:
            return not observation.draft and observation.privacy_level == PrivacyLevel.PUBLIC_TO_WORLD

        if observation.draft:
            return self._is_observer(observation)

        level = PrivacyLevel(observation.privacy_level)
        if level == PrivacyLevel.OBSERVER_ONLY:
            return self._is_observer(observation)
        if level == PrivacyLevel.OBSERVED_ONLY:
            return self._is_observer(observation) or self._is_observee(observation)
        if level == PrivacyLevel.MANAGERS_ONLY:
            return (
                self._is_observer(observation)
                or self._manages_observee(observation)
                or self._can_manage_employment()
            )
        if level == PrivacyLevel.OBSERVED_AND_MANAGERS:
            return (
                self._is_observer(observation)
                or self._is_observee(observation)
                or self._manages_observee(observation)
                or self._can_manage_employment()
            )
        return True

    def can_view_negative_ratings(self, observation: Observation) -> bool:
        if not self.can_view(observation):
            return False
        return (
            self._is_observer(observation)
            or self._is_observee(observation)
            or self._manages_observee(observation)
            or self._can_manage_employment()
        )

    def denial_reason(self, observation: Observation) -> Optional[str]:
        if self.can_view(observation):
            return None
        if self.viewer.person is None:
            return NOT_PERMITTED
        teammate = self.viewer.teammate_in(self.company)
        if teammate is None:
            return WRONG_ORGANIZATION
        if not teammate.actively_employed:
            return NOT_EMPLOYED
        return NOT_PERMITTED

    def denial_redirect_path(self, observation: Observation) -> str:
        reason = self.denial_reason(observation)
        if reason in (NOT_EMPLOYED, WRONG_ORGANIZATION):
            return self.viewer.dashboard_path(self.company)
        return observation.permalink_path()
