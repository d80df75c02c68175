"""
Tests for publishing, deleting and restoring observations, including the
rule that keeps negative feedback from being public to the world.

Run with:
    pytest tests/test_observation_custodian.py -v
"""
import pytest
from datetime import datetime

from common.exceptions import NotAuthorizedError
from models.observations import PrivacyLevel, RateableType, ObservationRatingValue
from api.maap.domain.services.observation_custodian import ObservationCustodian
from api.maap.domain.services.privacy_enforcement import PrivacyLevelEnforcementService
from api.maap.domain.viewer import ViewerContext

NOW = datetime(2024, 6, 1, 8, 0)


@pytest.fixture
def observer(factory, team):
    return factory.member(team["company"], first_name="Olive")


def custodian(uow, team, teammate):
    return ObservationCustodian(uow, ViewerContext(teammate.person), team["company"])


class TestPrivacyLevelEnforcementService:
    @pytest.mark.parametrize("rating,downgraded", [
        (ObservationRatingValue.STRONGLY_DISAGREE, True),
        (ObservationRatingValue.DISAGREE, True),
        (ObservationRatingValue.NA, False),
        (ObservationRatingValue.STRONGLY_AGREE, False),
    ])
    def test_public_to_world_with_negative_rating(self, uow, factory, team, observer, rating, downgraded):
        assignment = factory.assignment(team["company"])
        observation = factory.observation(
            observer.person, team["company"], privacy_level=PrivacyLevel.PUBLIC_TO_WORLD,
            ratings=[(RateableType.ASSIGNMENT, assignment.id, rating)],
        )

        assert PrivacyLevelEnforcementService(uow).call(observation) is downgraded
        expected = PrivacyLevel.OBSERVED_AND_MANAGERS if downgraded else PrivacyLevel.PUBLIC_TO_WORLD
        assert observation.privacy_level == expected

    def test_other_levels_are_left_alone(self, uow, factory, team, observer):
        assignment = factory.assignment(team["company"])
        observation = factory.observation(
            observer.person, team["company"], privacy_level=PrivacyLevel.PUBLIC_TO_COMPANY,
            ratings=[(RateableType.ASSIGNMENT, assignment.id, ObservationRatingValue.DISAGREE)],
        )

        assert PrivacyLevelEnforcementService(uow).call(observation) is False
        assert observation.privacy_level == PrivacyLevel.PUBLIC_TO_COMPANY


class TestObservationCustodian:
    def test_publish_sets_published_at(self, uow, factory, team, observer):
        draft = factory.observation(observer.person, team["company"], published=False)

        published = custodian(uow, team, observer).publish(draft.id, now=NOW)

        assert published.published_at == NOW

    def test_publish_keeps_existing_timestamp(self, uow, factory, team, observer):
        observation = factory.observation(observer.person, team["company"], observed_at=datetime(2024, 1, 1))

        custodian(uow, team, observer).publish(observation.id, now=NOW)

        assert observation.published_at == datetime(2024, 1, 1)

    def test_publish_enforces_privacy(self, uow, factory, team, observer):
        ability = factory.ability(team["company"])
        draft = factory.observation(
            observer.person, team["company"], published=False, privacy_level=PrivacyLevel.PUBLIC_TO_WORLD,
            ratings=[(RateableType.ABILITY, ability.id, ObservationRatingValue.STRONGLY_DISAGREE)],
        )

        published = custodian(uow, team, observer).publish(draft.id, now=NOW)

        assert published.privacy_level == PrivacyLevel.OBSERVED_AND_MANAGERS

    def test_only_observer_may_publish(self, uow, factory, team, observer):
        draft = factory.observation(observer.person, team["company"], published=False)

        with pytest.raises(NotAuthorizedError):
            custodian(uow, team, team["manager"]).publish(draft.id)

    def test_deleted_observation_cannot_be_published(self, uow, factory, team, observer):
        draft = factory.observation(observer.person, team["company"], published=False, deleted=True)

        with pytest.raises(ValueError, match="deleted"):
            custodian(uow, team, observer).publish(draft.id)

    def test_missing_observation(self, uow, team, observer):
        with pytest.raises(ValueError, match="not found"):
            custodian(uow, team, observer).soft_delete(12345)

    def test_soft_delete_and_restore(self, uow, factory, team, observer):
        observation = factory.observation(observer.person, team["company"])
        keeper = custodian(uow, team, observer)

        keeper.soft_delete(observation.id, now=NOW)
        assert observation.deleted_at == NOW
        assert observation.soft_deleted

        keeper.soft_delete(observation.id, now=datetime(2024, 7, 1))
        assert observation.deleted_at == NOW

        keeper.restore(observation.id)
        assert observation.deleted_at is None
