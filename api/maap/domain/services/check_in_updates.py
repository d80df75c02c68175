"""
Saves the employee side or the manager side of a teammate's open check-ins.

The acting side is derived from who is asking: the teammate themselves edits
the employee side, a manager in their hierarchy (or an employment manager)
edits the manager side. Fields belonging to the other side are ignored.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from common.exceptions import FormValidationError
from models.organization import Organization, Teammate
from models.check_ins import AssignmentCheckIn, AspirationCheckIn, PositionCheckIn
from api.maap.config import Constants
from api.maap.domain.policies import AuthorizationPolicy, authorize
from api.maap.domain.services.check_in_finalization import lookup_param
from api.maap.domain.viewer import ViewerContext
from api.maap.infra.db.uow import UnitOfWork

logger = logging.getLogger(__name__)

EMPLOYEE_SIDE = "employee"
MANAGER_SIDE = "manager"

SIDE_FIELDS = {
    EMPLOYEE_SIDE: {
        AssignmentCheckIn: ("actual_energy_percentage", "employee_rating", "employee_private_notes",
                            "employee_personal_alignment"),
        AspirationCheckIn: ("employee_rating", "employee_private_notes"),
        PositionCheckIn: ("employee_rating", "employee_private_notes"),
    },
    MANAGER_SIDE: {
        AssignmentCheckIn: ("manager_rating", "manager_private_notes"),
        AspirationCheckIn: ("manager_rating", "manager_private_notes"),
        PositionCheckIn: ("manager_rating", "manager_private_notes"),
    },
}

ENERGY_RANGE = range(0, 101)
NOT_IN_LIST_MESSAGE = "is not included in the list"


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


class CheckInUpdateService:
    def __init__(
        self,
        uow: UnitOfWork,
        viewer: ViewerContext,
        organization: Organization,
        teammate: Teammate,
        now: Optional[datetime] = None,
    ):
        self.uow = uow
        self.viewer = viewer
        self.organization = organization
        self.teammate = teammate
        self.now = now or datetime.utcnow()
        self.side = self._resolve_side()

    def _resolve_side(self) -> str:
        if AuthorizationPolicy.is_employee_side(self.viewer, self.teammate):
            return EMPLOYEE_SIDE
        viewer_teammate = self.viewer.active_teammate_in(self.organization)
        authorize(
            AuthorizationPolicy.is_manager_side(viewer_teammate, self.teammate),
            self.viewer,
            self.organization,
            message="You are not authorized to update these check-ins.",
        )
        return MANAGER_SIDE

    def call(self, payload: Optional[Dict[str, Any]]) -> List[Any]:
        payload = payload or {}
        updated = []
        with self.uow.transaction():
            position = lookup_param(payload, "position_check_in")
            if position:
                updated.append(self._update_position(position))

            for check_in_id, entry in (lookup_param(payload, "assignment_check_ins") or {}).items():
                check_in = self._resolve(AssignmentCheckIn, "assignment_id", check_in_id, entry)
                updated.append(self._apply(check_in, entry))

            for check_in_id, entry in (lookup_param(payload, "aspiration_check_ins") or {}).items():
                check_in = self._resolve(AspirationCheckIn, "aspiration_id", check_in_id, entry)
                updated.append(self._apply(check_in, entry))

        logger.info(
            f"Check-ins saved: teammate_id={self.teammate.id}, side={self.side}, "
            f"count={len(updated)}, by person_id={self.viewer.person_id}"
        )
        return updated

    def _update_position(self, entry: Dict[str, Any]) -> PositionCheckIn:
        check_in = self.uow.check_ins.open_position_check_in(self.teammate.id)
        if check_in is None:
            employment = self.uow.tenures.active_employment_tenure(self.teammate.id)
            check_in = self.uow.check_ins.create(PositionCheckIn(
                teammate_id=self.teammate.id,
                employment_tenure_id=employment.id if employment else None,
                check_in_started_on=self.now.date(),
            ))
        return self._apply(check_in, entry)

    def _resolve(self, model, subject_field: str, key, entry: Dict[str, Any]):
        subject_id = (entry or {}).get(subject_field)
        if not _blank(subject_id):
            return self._open_for_subject(model, subject_field, int(subject_id))

        try:
            check_in_id = int(key)
        except (TypeError, ValueError):
            raise ValueError(f"{model.__name__} {key} not found")
        check_in = self.uow.check_ins.get_by_id(model, check_in_id, self.teammate.id)
        if check_in is None:
            raise ValueError(f"{model.__name__} {check_in_id} not found")
        if not check_in.is_open:
            raise FormValidationError({"base": [f"Check-in {check_in_id} has already been finalized"]})
        return check_in

    def _open_for_subject(self, model, subject_field: str, subject_id: int):
        # subjects must belong to the teammate's own company
        company_id = self.teammate.organization.root_company().id
        if model is AssignmentCheckIn:
            subject = self.uow.assignments.get_by_id(subject_id, company_id)
        else:
            subject = self.uow.aspirations.get_by_id(subject_id, company_id)
        if subject is None:
            kind = "Assignment" if model is AssignmentCheckIn else "Aspiration"
            raise ValueError(f"{kind} {subject_id} not found")

        if model is AssignmentCheckIn:
            check_in = self.uow.check_ins.open_assignment_check_in(self.teammate.id, subject_id)
        else:
            check_in = self.uow.check_ins.open_aspiration_check_in(self.teammate.id, subject_id)
        if check_in is not None:
            return check_in

        logger.info(
            f"Opening {model.__name__}: teammate_id={self.teammate.id}, {subject_field}={subject_id}"
        )
        return self.uow.check_ins.create(model(**{
            "teammate_id": self.teammate.id,
            subject_field: subject_id,
            "check_in_started_on": self.now.date(),
        }))

    def _apply(self, check_in, entry: Dict[str, Any]):
        entry = entry or {}
        fields = SIDE_FIELDS[self.side][type(check_in)]

        for field in fields:
            if field not in entry or _blank(entry[field]):
                continue
            value = entry[field]
            if field == "actual_energy_percentage":
                value = self._energy(value)
            setattr(check_in, field, value)

        self._apply_completion(check_in, entry)
        return self.uow.check_ins.update(check_in)

    @staticmethod
    def _energy(value) -> int:
        try:
            energy = int(value)
        except (TypeError, ValueError):
            raise FormValidationError({"actual_energy_percentage": [NOT_IN_LIST_MESSAGE]})
        if energy not in ENERGY_RANGE:
            raise FormValidationError({"actual_energy_percentage": [NOT_IN_LIST_MESSAGE]})
        return energy

    def _completion_flag(self, entry: Dict[str, Any]) -> Optional[bool]:
        flag = entry.get(f"{self.side}_complete")
        if flag is None and "status" in entry:
            return entry["status"] == "complete"
        if flag in Constants.TRUTHY_FLAGS:
            return True
        if flag in Constants.FALSY_FLAGS:
            return False
        return None

    def _apply_completion(self, check_in, entry: Dict[str, Any]):
        flag = self._completion_flag(entry)
        if flag is None:
            return

        if self.side == EMPLOYEE_SIDE:
            check_in.employee_completed_at = self.now if flag else None
        else:
            check_in.manager_completed_at = self.now if flag else None
            check_in.manager_completed_by_id = self.viewer.person_id if flag else None
