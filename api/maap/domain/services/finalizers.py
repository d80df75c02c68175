import logging
from datetime import datetime
from typing import Any, Optional

from models.organization import Person, EmploymentTenure
from models.maap import AssignmentTenure
from models.check_ins import AssignmentCheckIn
from api.maap.domain.result import Result
from api.maap.infra.db.uow import UnitOfWork

logger = logging.getLogger(__name__)

NOT_READY_MESSAGE = "Check-in is not ready for finalization"
RATING_REQUIRED_MESSAGE = "Official rating is required"


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


class CheckInFinalizer:
    """Common stamping of the official side of a check-in."""

    def __init__(self, uow: UnitOfWork, check_in, official_rating, shared_notes: Optional[str],
                 finalized_by: Person, now: Optional[datetime] = None):
        self.uow = uow
        self.check_in = check_in
        self.official_rating = official_rating
        self.shared_notes = shared_notes
        self.finalized_by = finalized_by
        self.now = now or datetime.utcnow()

    @property
    def today(self):
        return self.now.date()

    def _precheck(self) -> Optional[Result]:
        if not self.check_in.ready_for_finalization:
            return Result.err(NOT_READY_MESSAGE)
        if _blank(self.official_rating):
            return Result.err(RATING_REQUIRED_MESSAGE)
        return None

    def _stamp_check_in(self, official_rating):
        self.check_in.official_rating = official_rating
        if self.shared_notes is not None:
            self.check_in.shared_notes = self.shared_notes
        self.check_in.official_check_in_completed_at = self.now
        self.check_in.finalized_by_id = self.finalized_by.id
        self.uow.check_ins.update(self.check_in)


class AssignmentCheckInFinalizer(CheckInFinalizer):
    def __init__(self, uow: UnitOfWork, check_in: AssignmentCheckIn, official_rating, shared_notes,
                 anticipated_energy_percentage, finalized_by: Person, now: Optional[datetime] = None):
        super().__init__(uow, check_in, official_rating, shared_notes, finalized_by, now)
        self.anticipated_energy_percentage = anticipated_energy_percentage

    def finalize(self) -> Result:
        failure = self._precheck()
        if failure:
            return failure

        tenure = self.uow.tenures.active_assignment_tenure(self.check_in.teammate_id, self.check_in.assignment_id)
        if not tenure:
            return Result.err(f"No active tenure found for assignment {self.check_in.assignment_id}")

        tenure.ended_at = self.today
        tenure.official_rating = self.official_rating

        energy = tenure.anticipated_energy_percentage
        if not _blank(self.anticipated_energy_percentage):
            energy = int(self.anticipated_energy_percentage)

        new_tenure = AssignmentTenure(
            teammate_id=tenure.teammate_id,
            assignment_id=tenure.assignment_id,
            anticipated_energy_percentage=energy,
            started_at=self.today,
        )
        self.uow.tenures.create(new_tenure)
        self._stamp_check_in(self.official_rating)

        logger.info(
            f"Assignment check-in finalized: check_in_id={self.check_in.id}, "
            f"assignment_id={self.check_in.assignment_id}, rating={self.official_rating}"
        )

        return Result.ok({
            "check_in": self.check_in,
            "new_tenure": new_tenure,
            "rating_data": {
                "assignment_id": self.check_in.assignment_id,
                "official_rating": self.official_rating,
                "rated_at": self.now.isoformat(),
            },
        })


class PositionCheckInFinalizer(CheckInFinalizer):
    def finalize(self) -> Result:
        failure = self._precheck()
        if failure:
            return failure

        official_rating = int(self.official_rating)
        tenure = self.uow.tenures.active_employment_tenure(self.check_in.teammate_id)
        if not tenure:
            return Result.err("No active employment tenure found")

        tenure.ended_at = self.today
        tenure.official_position_rating = official_rating

        new_tenure = EmploymentTenure(
            teammate_id=tenure.teammate_id,
            company_id=tenure.company_id,
            position_id=tenure.position_id,
            manager_teammate_id=tenure.manager_teammate_id,
            seat_id=tenure.seat_id,
            employment_type=tenure.employment_type,
            started_at=self.today,
        )
        self.uow.tenures.create(new_tenure)
        if self.check_in.employment_tenure_id is None:
            self.check_in.employment_tenure_id = tenure.id
        self._stamp_check_in(official_rating)

        logger.info(
            f"Position check-in finalized: check_in_id={self.check_in.id}, "
            f"teammate_id={self.check_in.teammate_id}, rating={official_rating}"
        )

        return Result.ok({
            "check_in": self.check_in,
            "new_tenure": new_tenure,
            "rating_data": {
                "position_id": tenure.position_id,
                "official_rating": official_rating,
                "rated_at": self.now.isoformat(),
            },
        })


class AspirationCheckInFinalizer(CheckInFinalizer):
    def finalize(self) -> Result:
        failure = self._precheck()
        if failure:
            return failure

        self._stamp_check_in(self.official_rating)

        logger.info(
            f"Aspiration check-in finalized: check_in_id={self.check_in.id}, "
            f"aspiration_id={self.check_in.aspiration_id}, rating={self.official_rating}"
        )

        return Result.ok({
            "check_in": self.check_in,
            "rating_data": {
                "aspiration_id": self.check_in.aspiration_id,
                "official_rating": self.official_rating,
                "rated_at": self.now.isoformat(),
            },
        })
