"""
Tests for the per-kind check-in finalizers.

Run with:
    pytest tests/test_finalizers.py -v
"""
from datetime import datetime

from models.organization import EmploymentTenure
from api.maap.domain.services.finalizers import (
    AssignmentCheckInFinalizer,
    AspirationCheckInFinalizer,
    PositionCheckInFinalizer,
    NOT_READY_MESSAGE,
    RATING_REQUIRED_MESSAGE,
)

NOW = datetime(2024, 6, 1, 12, 0)


class TestPositionCheckInFinalizer:
    def test_rolls_employment_tenure_over(self, db, uow, factory, team):
        check_in = factory.position_check_in(team["employee"])

        result = PositionCheckInFinalizer(
            uow, check_in, official_rating="-1", shared_notes="Needs focus",
            finalized_by=team["manager"].person, now=NOW,
        ).finalize()

        assert result.is_ok, result.error
        old = db.get(EmploymentTenure, team["employment"].id)
        new = result.value["new_tenure"]
        assert old.ended_at == NOW.date()
        assert old.official_position_rating == -1
        assert new.started_at == NOW.date()
        assert new.ended_at is None
        assert new.manager_teammate_id == team["manager"].id
        assert new.position_id == team["position"].id
        assert check_in.employment_tenure_id == old.id
        assert check_in.official_rating == -1
        assert check_in.shared_notes == "Needs focus"
        assert result.value["rating_data"] == {
            "position_id": team["position"].id,
            "official_rating": -1,
            "rated_at": NOW.isoformat(),
        }

    def test_requires_active_employment(self, uow, factory, team):
        outsider = factory.member(team["company"], first_name="Noa")
        check_in = factory.position_check_in(outsider)

        result = PositionCheckInFinalizer(
            uow, check_in, official_rating="1", shared_notes=None,
            finalized_by=team["manager"].person, now=NOW,
        ).finalize()

        assert not result.is_ok
        assert result.error == "No active employment tenure found"


class TestAssignmentCheckInFinalizer:
    def test_keeps_energy_when_not_given(self, uow, factory, team):
        assignment = factory.assignment(team["company"])
        factory.assignment_tenure(team["employee"], assignment, energy=70)
        check_in = factory.assignment_check_in(team["employee"], assignment)

        result = AssignmentCheckInFinalizer(
            uow, check_in, official_rating="meeting", shared_notes=None,
            anticipated_energy_percentage="", finalized_by=team["manager"].person, now=NOW,
        ).finalize()

        assert result.is_ok, result.error
        assert result.value["new_tenure"].anticipated_energy_percentage == 70
        assert result.value["rating_data"]["assignment_id"] == assignment.id

    def test_not_ready_check_in(self, uow, factory, team):
        assignment = factory.assignment(team["company"])
        check_in = factory.assignment_check_in(team["employee"], assignment, ready=False)

        result = AssignmentCheckInFinalizer(
            uow, check_in, official_rating="meeting", shared_notes=None,
            anticipated_energy_percentage=None, finalized_by=team["manager"].person, now=NOW,
        ).finalize()

        assert result.error == NOT_READY_MESSAGE


class TestAspirationCheckInFinalizer:
    def test_stamps_official_side(self, uow, factory, team):
        aspiration = factory.aspiration(team["company"])
        check_in = factory.aspiration_check_in(team["employee"], aspiration)

        result = AspirationCheckInFinalizer(
            uow, check_in, official_rating="exceeding", shared_notes="On track",
            finalized_by=team["manager"].person, now=NOW,
        ).finalize()

        assert result.is_ok, result.error
        assert check_in.official_rating == "exceeding"
        assert check_in.official_check_in_completed_at == NOW
        assert check_in.finalized_by_id == team["manager"].person_id
        assert not check_in.is_open

    def test_blank_rating(self, uow, factory, team):
        aspiration = factory.aspiration(team["company"])
        check_in = factory.aspiration_check_in(team["employee"], aspiration)

        result = AspirationCheckInFinalizer(
            uow, check_in, official_rating="  ", shared_notes=None,
            finalized_by=team["manager"].person, now=NOW,
        ).finalize()

        assert result.error == RATING_REQUIRED_MESSAGE
