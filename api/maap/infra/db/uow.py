from sqlalchemy.orm import Session
from contextlib import contextmanager
from typing import Generator

from models.maap import Ability, Assignment, Position
from api.maap.infra.db.repositories import (
    OrganizationRepository,
    PersonRepository,
    TeammateRepository,
    MaapRecordRepository,
    AspirationRepository,
    TenureRepository,
    CheckInRepository,
    SnapshotRepository,
    ObservationRepository,
)


class UnitOfWork:
    def __init__(self, db: Session):
        self.db = db
        self.organizations = OrganizationRepository(db)
        self.people = PersonRepository(db)
        self.teammates = TeammateRepository(db)
        self.abilities = MaapRecordRepository(db, Ability)
        self.assignments = MaapRecordRepository(db, Assignment)
        self.positions = MaapRecordRepository(db, Position)
        self.aspirations = AspirationRepository(db)
        self.tenures = TenureRepository(db)
        self.check_ins = CheckInRepository(db)
        self.snapshots = SnapshotRepository(db)
        self.observations = ObservationRepository(db)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

    def flush(self):
        self.db.flush()

    @contextmanager
    def transaction(self) -> Generator["UnitOfWork", None, None]:
        """Commit everything done inside the block, or roll all of it back."""
        try:
            yield self
            self.commit()
        except Exception:
            self.rollback()
            raise
