"""
Pytest configuration and shared fixtures for the MAAP backend tests.

This file provides:
- An in-memory SQLite database, rebuilt for every test
- A FastAPI test client wired to that database
- A factory for organizations, people, MAAP records, check-ins and observations
"""
import os

os.environ["MAAP_DATABASE_URL"] = "sqlite://"
os.environ.pop("MAAP_DATADOG_API_KEY", None)
os.environ.pop("MAAP_DD_INCLUDE_LOGGERS", None)

import pytest
from datetime import date, datetime, timedelta
from typing import Generator, Iterable, Optional, Tuple

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from models.organization import Organization, OrganizationType, Person, Teammate, EmploymentTenure
from models.maap import Ability, Assignment, Position, Aspiration, AssignmentTenure
from models.check_ins import AssignmentCheckIn, AspirationCheckIn, PositionCheckIn
from models.observations import Observation, Observee, ObservationRating, PrivacyLevel
from services.auth import create_access_token
from settings.database import Base, get_db
from api.maap.infra.db.uow import UnitOfWork


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def db() -> Generator:
    """Fresh schema per test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def uow(db) -> UnitOfWork:
    return UnitOfWork(db)


@pytest.fixture
def client(db) -> Generator[TestClient, None, None]:
    """Test client whose requests share the test's session."""
    from settings.server import maap_app

    def override_get_db():
        yield db

    maap_app.dependency_overrides[get_db] = override_get_db
    with TestClient(maap_app) as test_client:
        yield test_client
    maap_app.dependency_overrides.clear()


def auth_headers(person: Person) -> dict:
    return {"Authorization": f"Bearer {create_access_token(person.id)}"}


# ============================================================================
# Test Data Factory
# ============================================================================

class Factory:
    def __init__(self, db):
        self.db = db
        self._emails = 0

    def _save(self, record):
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def company(self, name: str = "Acme", parent: Optional[Organization] = None,
                type: OrganizationType = OrganizationType.COMPANY) -> Organization:
        return self._save(Organization(name=name, type=type, parent_id=parent.id if parent else None))

    def person(self, first_name: str = "Pat", last_name: str = "Doe", email: Optional[str] = None) -> Person:
        self._emails += 1
        email = email or f"{first_name.lower()}.{last_name.lower()}.{self._emails}@example.com"
        return self._save(Person(first_name=first_name, last_name=last_name, email=email))

    def teammate(self, person: Person, organization: Organization, employed: bool = True,
                 terminated: bool = False, **flags) -> Teammate:
        return self._save(Teammate(
            person_id=person.id,
            organization_id=organization.id,
            first_employed_at=datetime(2023, 1, 1) if employed else None,
            last_terminated_at=datetime(2024, 1, 1) if terminated else None,
            **flags,
        ))

    def member(self, organization: Organization, first_name: str = "Pat", **flags) -> Teammate:
        return self.teammate(self.person(first_name=first_name), organization, **flags)

    def employment(self, teammate: Teammate, manager: Optional[Teammate] = None,
                   position: Optional[Position] = None, started_at: date = date(2023, 1, 1)) -> EmploymentTenure:
        return self._save(EmploymentTenure(
            teammate_id=teammate.id,
            company_id=teammate.organization.root_company().id,
            position_id=position.id if position else None,
            manager_teammate_id=manager.id if manager else None,
            started_at=started_at,
        ))

    def ability(self, organization: Organization, name: str = "Ruby", version: str = "1.0.0") -> Ability:
        return self._save(Ability(
            organization_id=organization.id,
            name=name,
            description=f"{name} skills",
            milestone_1_description="Beginner",
            semantic_version=version,
        ))

    def assignment(self, company: Organization, title: str = "Backend", version: str = "1.0.0") -> Assignment:
        return self._save(Assignment(company_id=company.id, title=title, semantic_version=version))

    def position(self, company: Organization, title: str = "Engineer", version: str = "1.0.0") -> Position:
        return self._save(Position(company_id=company.id, title=title, semantic_version=version))

    def aspiration(self, organization: Organization, name: str = "Grow", sort_order: int = 0) -> Aspiration:
        return self._save(Aspiration(organization_id=organization.id, name=name, sort_order=sort_order))

    def assignment_tenure(self, teammate: Teammate, assignment: Assignment, energy: int = 50,
                          started_at: date = date(2023, 1, 1)) -> AssignmentTenure:
        return self._save(AssignmentTenure(
            teammate_id=teammate.id,
            assignment_id=assignment.id,
            anticipated_energy_percentage=energy,
            started_at=started_at,
        ))

    def _stamp(self, check_in, ready: bool, manager: Optional[Person]):
        if ready:
            check_in.employee_completed_at = datetime(2024, 5, 1, 9, 0)
            check_in.manager_completed_at = datetime(2024, 5, 2, 9, 0)
            check_in.manager_completed_by_id = manager.id if manager else None
        return self._save(check_in)

    def assignment_check_in(self, teammate: Teammate, assignment: Assignment, ready: bool = True,
                            manager: Optional[Person] = None, **fields) -> AssignmentCheckIn:
        fields.setdefault("check_in_started_on", date(2024, 4, 1))
        check_in = AssignmentCheckIn(teammate_id=teammate.id, assignment_id=assignment.id, **fields)
        return self._stamp(check_in, ready, manager)

    def aspiration_check_in(self, teammate: Teammate, aspiration: Aspiration, ready: bool = True,
                            manager: Optional[Person] = None, **fields) -> AspirationCheckIn:
        fields.setdefault("check_in_started_on", date(2024, 4, 1))
        check_in = AspirationCheckIn(teammate_id=teammate.id, aspiration_id=aspiration.id, **fields)
        return self._stamp(check_in, ready, manager)

    def position_check_in(self, teammate: Teammate, employment: Optional[EmploymentTenure] = None,
                          ready: bool = True, manager: Optional[Person] = None, **fields) -> PositionCheckIn:
        fields.setdefault("check_in_started_on", date(2024, 4, 1))
        check_in = PositionCheckIn(
            teammate_id=teammate.id,
            employment_tenure_id=employment.id if employment else None,
            **fields,
        )
        return self._stamp(check_in, ready, manager)

    def observation(self, observer: Person, company: Organization,
                    observees: Iterable[Teammate] = (),
                    privacy_level: PrivacyLevel = PrivacyLevel.PUBLIC_TO_COMPANY,
                    published: bool = True, deleted: bool = False,
                    observed_at: Optional[datetime] = None,
                    ratings: Iterable[Tuple] = (),
                    story: str = "Great work", title: Optional[str] = None) -> Observation:
        observed_at = observed_at or datetime.utcnow() - timedelta(days=1)
        observation = Observation(
            observer_id=observer.id,
            company_id=company.id,
            story=story,
            title=title,
            privacy_level=privacy_level,
            observed_at=observed_at,
            published_at=observed_at if published else None,
            deleted_at=datetime.utcnow() if deleted else None,
        )
        observation.observees = [Observee(teammate_id=teammate.id) for teammate in observees]
        observation.observation_ratings = [
            ObservationRating(rateable_type=rateable_type, rateable_id=rateable_id, rating=rating)
            for rateable_type, rateable_id, rating in ratings
        ]
        return self._save(observation)


@pytest.fixture
def factory(db) -> Factory:
    return Factory(db)


@pytest.fixture
def team(factory):
    """
    A company with a manager, their direct report and an unrelated colleague.

    Returns a simple namespace-like dict so tests can pick what they need.
    """
    company = factory.company()
    manager = factory.member(company, first_name="Morgan")
    employee = factory.member(company, first_name="Eli")
    colleague = factory.member(company, first_name="Casey")
    position = factory.position(company)
    factory.employment(manager, position=position)
    employment = factory.employment(employee, manager=manager, position=position)
    factory.employment(colleague, position=position)
    return {
        "company": company,
        "manager": manager,
        "employee": employee,
        "colleague": colleague,
        "position": position,
        "employment": employment,
    }
