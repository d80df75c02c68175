"""
Create, update and list the semantically versioned MAAP records
(abilities, assignments and positions).

Validation is field-scoped: every known problem is attached to the attribute
that caused it. Only a submission with no form payload at all produces the
single base error.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from common.exceptions import FormValidationError
from models.maap import Ability, Assignment, Position, MILESTONE_LEVELS
from models.organization import Organization
from api.maap.domain.versioning import VersioningPolicy
from api.maap.infra.db.uow import UnitOfWork

logger = logging.getLogger(__name__)

BLANK_MESSAGE = "can't be blank"
MILESTONES_REQUIRED_MESSAGE = "At least one milestone description is required"


class MaapRecordKind(str, enum.Enum):
    ABILITY = "ability"
    ASSIGNMENT = "assignment"
    POSITION = "position"


@dataclass(frozen=True)
class RecordDefinition:
    model: type
    required_fields: Tuple[str, ...]
    optional_fields: Tuple[str, ...]
    name_field: str
    organization_field: str


MILESTONE_FIELDS = tuple(f"milestone_{level}_description" for level in MILESTONE_LEVELS)

RECORD_DEFINITIONS = {
    MaapRecordKind.ABILITY: RecordDefinition(
        model=Ability,
        required_fields=("name", "description"),
        optional_fields=MILESTONE_FIELDS,
        name_field="name",
        organization_field="organization_id",
    ),
    MaapRecordKind.ASSIGNMENT: RecordDefinition(
        model=Assignment,
        required_fields=("title",),
        optional_fields=("tagline", "required_activities"),
        name_field="title",
        organization_field="company_id",
    ),
    MaapRecordKind.POSITION: RecordDefinition(
        model=Position,
        required_fields=("title",),
        optional_fields=("position_summary",),
        name_field="title",
        organization_field="company_id",
    ),
}

SORT_OPTIONS = ("name", "version", "created_at", "created_at_asc")


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip()


def _blank(value: Optional[str]) -> bool:
    return value is None or value == ""


def _add_error(errors: Dict[str, List[str]], field: str, message: str):
    errors.setdefault(field, []).append(message)


class MaapRecordService:
    def __init__(self, uow: UnitOfWork, kind: MaapRecordKind):
        self.uow = uow
        self.kind = kind
        self.definition = RECORD_DEFINITIONS[kind]
        self.repository = {
            MaapRecordKind.ABILITY: uow.abilities,
            MaapRecordKind.ASSIGNMENT: uow.assignments,
            MaapRecordKind.POSITION: uow.positions,
        }[kind]

    def get(self, record_id: int, organization_id: int):
        record = self.repository.get_by_id(record_id, organization_id)
        if not record:
            raise ValueError(f"{self.kind.value.capitalize()} {record_id} not found")
        return record

    def create(self, organization: Organization, params: Optional[Dict[str, Any]], actor_email: Optional[str] = None):
        record = self.definition.model(**{self.definition.organization_field: organization.id})
        self._apply(record, params, creating=True)
        record.created_by = actor_email
        record.modified_by = actor_email
        self.repository.create(record)
        self.uow.commit()

        logger.info(
            f"{self.kind.value} created: id={record.id}, organization_id={organization.id}, "
            f"version={record.semantic_version}"
        )
        return record

    def update(self, record, params: Optional[Dict[str, Any]], actor_email: Optional[str] = None):
        previous_version = record.semantic_version
        self._apply(record, params, creating=False)
        record.modified_by = actor_email
        self.repository.update(record)
        self.uow.commit()

        logger.info(
            f"{self.kind.value} updated: id={record.id}, version {previous_version} -> {record.semantic_version}"
        )
        return record

    def list(
        self,
        organization_id: int,
        name: Optional[str] = None,
        major_version: Optional[str] = None,
        sort: Optional[str] = None,
        direction: Optional[str] = None,
    ):
        model = self.definition.model
        name_column = getattr(model, self.definition.name_field)
        query = self.repository.query_for_organization(organization_id)

        if name:
            query = query.filter(name_column.ilike(f"%{name}%"))

        major = self._parse_major_version(major_version)
        if major is not None:
            query = query.filter(model.semantic_version.like(f"{major}.%"))

        if sort == "version":
            query = query.order_by(model.semantic_version, model.id)
        elif sort == "created_at":
            query = query.order_by(model.created_on.desc(), model.id.desc())
        elif sort == "created_at_asc":
            query = query.order_by(model.created_on.asc(), model.id.asc())
        elif direction == "desc":
            query = query.order_by(name_column.desc(), model.id)
        else:
            query = query.order_by(name_column.asc(), model.id)
        return query

    @staticmethod
    def _parse_major_version(value: Optional[str]) -> Optional[int]:
        if value is None or str(value).strip() == "":
            return None
        try:
            return int(str(value).strip())
        except ValueError:
            logger.warning(f"Ignoring malformed major_version filter: {value!r}")
            return None

    def _apply(self, record, params: Optional[Dict[str, Any]], creating: bool):
        if not params:
            raise FormValidationError.form_data_missing()

        errors: Dict[str, List[str]] = {}
        values: Dict[str, Optional[str]] = {}

        for field in self.definition.required_fields + self.definition.optional_fields:
            if field in params:
                values[field] = _clean(params.get(field))
            else:
                values[field] = getattr(record, field)

        for field in self.definition.required_fields:
            if _blank(values[field]):
                _add_error(errors, field, BLANK_MESSAGE)

        if self.kind == MaapRecordKind.ABILITY:
            if all(_blank(values[field]) for field in MILESTONE_FIELDS):
                _add_error(errors, "milestone_descriptions", MILESTONES_REQUIRED_MESSAGE)

        version = None
        try:
            current = None if creating else record.semantic_version
            version = VersioningPolicy.resolve(current, _clean(params.get("version_type")))
        except FormValidationError as e:
            for field, messages in e.errors.items():
                for message in messages:
                    _add_error(errors, field, message)

        if errors:
            raise FormValidationError(errors)

        for field, value in values.items():
            setattr(record, field, value)
        record.semantic_version = str(version)
