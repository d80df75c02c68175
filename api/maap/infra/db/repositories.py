from typing import List, Optional, Type, Union

from sqlalchemy import and_
from sqlalchemy.orm import Session

from models.organization import Organization, Person, Teammate, EmploymentTenure
from models.maap import Ability, Assignment, Position, Aspiration, AssignmentTenure, TeammateMilestone
from models.check_ins import AssignmentCheckIn, AspirationCheckIn, PositionCheckIn
from models.maap_snapshot import MaapSnapshot
from models.observations import Observation


VersionedRecord = Union[Ability, Assignment, Position]
CheckIn = Union[AssignmentCheckIn, AspirationCheckIn, PositionCheckIn]


class OrganizationRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, organization_id: int) -> Optional[Organization]:
        return self.db.query(Organization).filter(Organization.id == organization_id).first()


class PersonRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, person_id: int) -> Optional[Person]:
        return self.db.query(Person).filter(Person.id == person_id).first()


class TeammateRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, teammate_id: int, organization_ids=None) -> Optional[Teammate]:
        query = self.db.query(Teammate).filter(Teammate.id == teammate_id)
        if organization_ids is not None:
            query = query.filter(Teammate.organization_id.in_(list(organization_ids)))
        return query.first()

    def active_ids_in(self, organization_ids) -> List[int]:
        rows = self.db.query(Teammate.id).filter(
            and_(
                Teammate.organization_id.in_(list(organization_ids)),
                Teammate.first_employed_at.isnot(None),
                Teammate.last_terminated_at.is_(None),
            )
        ).all()
        return [row[0] for row in rows]

    def direct_reports_of(self, manager_teammate_ids) -> List[int]:
        rows = self.db.query(EmploymentTenure.teammate_id).filter(
            and_(
                EmploymentTenure.manager_teammate_id.in_(list(manager_teammate_ids)),
                EmploymentTenure.ended_at.is_(None),
            )
        ).all()
        return [row[0] for row in rows]


class MaapRecordRepository:
    """Shared persistence for the semantically versioned records."""

    def __init__(self, db: Session, model: Type[VersionedRecord]):
        self.db = db
        self.model = model

    @property
    def organization_column(self):
        if self.model is Ability:
            return Ability.organization_id
        return self.model.company_id

    def create(self, record: VersionedRecord) -> VersionedRecord:
        self.db.add(record)
        self.db.flush()
        return record

    def update(self, record: VersionedRecord) -> VersionedRecord:
        self.db.flush()
        return record

    def get_by_id(self, record_id: int, organization_id: int) -> Optional[VersionedRecord]:
        return self.db.query(self.model).filter(
            and_(
                self.model.id == record_id,
                self.organization_column == organization_id,
            )
        ).first()

    def query_for_organization(self, organization_id: int):
        return self.db.query(self.model).filter(self.organization_column == organization_id)


class AspirationRepository:
    def __init__(self, db: Session):
        self.db = db

    def list_for_organization(self, organization_id: int) -> List[Aspiration]:
        return self.db.query(Aspiration).filter(
            Aspiration.organization_id == organization_id
        ).order_by(Aspiration.sort_order, Aspiration.id).all()

    def get_by_id(self, aspiration_id: int, organization_id: int) -> Optional[Aspiration]:
        return self.db.query(Aspiration).filter(
            and_(Aspiration.id == aspiration_id, Aspiration.organization_id == organization_id)
        ).first()


class TenureRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, tenure: Union[AssignmentTenure, EmploymentTenure]):
        self.db.add(tenure)
        self.db.flush()
        return tenure

    def active_assignment_tenure(self, teammate_id: int, assignment_id: int) -> Optional[AssignmentTenure]:
        return self.db.query(AssignmentTenure).filter(
            and_(
                AssignmentTenure.teammate_id == teammate_id,
                AssignmentTenure.assignment_id == assignment_id,
                AssignmentTenure.ended_at.is_(None),
            )
        ).order_by(AssignmentTenure.started_at.desc(), AssignmentTenure.id.desc()).first()

    def active_assignment_tenures(self, teammate_id: int, company_id: int) -> List[AssignmentTenure]:
        return self.db.query(AssignmentTenure).join(Assignment).filter(
            and_(
                AssignmentTenure.teammate_id == teammate_id,
                AssignmentTenure.ended_at.is_(None),
                Assignment.company_id == company_id,
            )
        ).order_by(AssignmentTenure.assignment_id, AssignmentTenure.id).all()

    def active_employment_tenure(self, teammate_id: int) -> Optional[EmploymentTenure]:
        return self.db.query(EmploymentTenure).filter(
            and_(
                EmploymentTenure.teammate_id == teammate_id,
                EmploymentTenure.ended_at.is_(None),
            )
        ).order_by(EmploymentTenure.started_at.desc(), EmploymentTenure.id.desc()).first()

    def milestones_for(self, teammate_id: int, organization_id: int) -> List[TeammateMilestone]:
        return self.db.query(TeammateMilestone).join(Ability).filter(
            and_(
                TeammateMilestone.teammate_id == teammate_id,
                Ability.organization_id == organization_id,
            )
        ).order_by(TeammateMilestone.ability_id, TeammateMilestone.milestone_level).all()


class CheckInRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, check_in: CheckIn) -> CheckIn:
        self.db.add(check_in)
        self.db.flush()
        return check_in

    def update(self, check_in: CheckIn) -> CheckIn:
        self.db.flush()
        return check_in

    def get_by_id(self, model: Type[CheckIn], check_in_id, teammate_id: int) -> Optional[CheckIn]:
        return self.db.query(model).filter(
            and_(model.id == check_in_id, model.teammate_id == teammate_id)
        ).first()

    def open_assignment_check_in(self, teammate_id: int, assignment_id: int) -> Optional[AssignmentCheckIn]:
        return self.db.query(AssignmentCheckIn).filter(
            and_(
                AssignmentCheckIn.teammate_id == teammate_id,
                AssignmentCheckIn.assignment_id == assignment_id,
                AssignmentCheckIn.official_check_in_completed_at.is_(None),
            )
        ).order_by(AssignmentCheckIn.id.desc()).first()

    def open_aspiration_check_in(self, teammate_id: int, aspiration_id: int) -> Optional[AspirationCheckIn]:
        return self.db.query(AspirationCheckIn).filter(
            and_(
                AspirationCheckIn.teammate_id == teammate_id,
                AspirationCheckIn.aspiration_id == aspiration_id,
                AspirationCheckIn.official_check_in_completed_at.is_(None),
            )
        ).order_by(AspirationCheckIn.id.desc()).first()

    def open_position_check_in(self, teammate_id: int) -> Optional[PositionCheckIn]:
        return self.db.query(PositionCheckIn).filter(
            and_(
                PositionCheckIn.teammate_id == teammate_id,
                PositionCheckIn.official_check_in_completed_at.is_(None),
            )
        ).order_by(PositionCheckIn.id.desc()).first()

    def latest_assignment_check_in(self, teammate_id: int, assignment_id: int) -> Optional[AssignmentCheckIn]:
        return self.db.query(AssignmentCheckIn).filter(
            and_(
                AssignmentCheckIn.teammate_id == teammate_id,
                AssignmentCheckIn.assignment_id == assignment_id,
            )
        ).order_by(AssignmentCheckIn.check_in_started_on.desc(), AssignmentCheckIn.id.desc()).first()

    def latest_aspiration_check_in(self, teammate_id: int, aspiration_id: int) -> Optional[AspirationCheckIn]:
        return self.db.query(AspirationCheckIn).filter(
            and_(
                AspirationCheckIn.teammate_id == teammate_id,
                AspirationCheckIn.aspiration_id == aspiration_id,
            )
        ).order_by(AspirationCheckIn.check_in_started_on.desc(), AspirationCheckIn.id.desc()).first()

    def latest_position_check_in(self, teammate_id: int) -> Optional[PositionCheckIn]:
        return self.db.query(PositionCheckIn).filter(
            PositionCheckIn.teammate_id == teammate_id
        ).order_by(PositionCheckIn.check_in_started_on.desc(), PositionCheckIn.id.desc()).first()

    def _latest_finalized(self, model: Type[CheckIn], *criteria) -> Optional[CheckIn]:
        return self.db.query(model).filter(
            and_(model.official_check_in_completed_at.isnot(None), *criteria)
        ).order_by(model.official_check_in_completed_at.desc(), model.id.desc()).first()

    def latest_finalized_assignment_check_in(self, teammate_id: int,
                                             assignment_id: int) -> Optional[AssignmentCheckIn]:
        return self._latest_finalized(
            AssignmentCheckIn,
            AssignmentCheckIn.teammate_id == teammate_id,
            AssignmentCheckIn.assignment_id == assignment_id,
        )

    def latest_finalized_aspiration_check_in(self, teammate_id: int,
                                             aspiration_id: int) -> Optional[AspirationCheckIn]:
        return self._latest_finalized(
            AspirationCheckIn,
            AspirationCheckIn.teammate_id == teammate_id,
            AspirationCheckIn.aspiration_id == aspiration_id,
        )

    def latest_finalized_position_check_in(self, teammate_id: int) -> Optional[PositionCheckIn]:
        return self._latest_finalized(PositionCheckIn, PositionCheckIn.teammate_id == teammate_id)

    def ready_for_finalization(self, model: Type[CheckIn], teammate_id: int) -> List[CheckIn]:
        return self.db.query(model).filter(
            and_(
                model.teammate_id == teammate_id,
                model.employee_completed_at.isnot(None),
                model.manager_completed_at.isnot(None),
                model.official_check_in_completed_at.is_(None),
            )
        ).order_by(model.id).all()


class SnapshotRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, snapshot: MaapSnapshot) -> MaapSnapshot:
        self.db.add(snapshot)
        self.db.flush()
        return snapshot

    def get_by_id(self, snapshot_id: int, company_id: int) -> Optional[MaapSnapshot]:
        return self.db.query(MaapSnapshot).filter(
            and_(MaapSnapshot.id == snapshot_id, MaapSnapshot.company_id == company_id)
        ).first()


class ObservationRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, observation: Observation) -> Observation:
        self.db.add(observation)
        self.db.flush()
        return observation

    def update(self, observation: Observation) -> Observation:
        self.db.flush()
        return observation

    def get_by_id(self, observation_id: int, company_id: Optional[int] = None) -> Optional[Observation]:
        query = self.db.query(Observation).filter(Observation.id == observation_id)
        if company_id is not None:
            query = query.filter(Observation.company_id == company_id)
        return query.first()
