"""
Check-in finalization.

Collects a teammate's ready check-ins (position, assignments, aspirations),
runs the per-kind finalizers and records the outcome as ONE MaapSnapshot.
Everything happens in a single transaction: either the snapshot and every
check-in stamp commit, or nothing does. Failures come back as Result.err.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from models.organization import Person, Teammate
from models.check_ins import AssignmentCheckIn, AspirationCheckIn, PositionCheckIn
from models.maap_snapshot import MaapSnapshot, ChangeType
from api.maap.config import Constants
from api.maap.domain.result import Result
from api.maap.domain.services.finalizers import (
    AssignmentCheckInFinalizer,
    AspirationCheckInFinalizer,
    PositionCheckInFinalizer,
)
from api.maap.domain.services.snapshot_builder import MaapSnapshotBuilder
from api.maap.infra.db.uow import UnitOfWork

logger = logging.getLogger(__name__)

FLAT_KEY_PATTERN = re.compile(
    r"^check_in_(\d+)_(shared_notes|final_rating|official_rating|anticipated_energy)$"
)


def finalize_flag_set(value: Any) -> bool:
    return value in Constants.TRUTHY_FLAGS


def lookup_param(payload: Dict[str, Any], key: str):
    """Read a kind from either the modern key or the legacy "[key]" key."""
    if key in payload:
        return payload[key]
    return payload.get(f"[{key}]")


@dataclass
class FinalizationParams:
    position: Optional[Dict[str, Any]] = None
    assignments: Optional[Dict[str, Dict[str, Any]]] = None
    aspirations: Optional[Dict[str, Dict[str, Any]]] = None
    flat_assignments: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def parse(cls, payload: Optional[Dict[str, Any]]) -> "FinalizationParams":
        payload = payload or {}
        params = cls(
            position=lookup_param(payload, "position_check_in"),
            assignments=lookup_param(payload, "assignment_check_ins"),
            aspirations=lookup_param(payload, "aspiration_check_ins"),
            raw=payload,
        )

        # flat keys are always scoped by the assignment id embedded in the key
        for key, value in payload.items():
            match = FLAT_KEY_PATTERN.match(key)
            if not match:
                continue
            assignment_id = int(match.group(1))
            entry = params.flat_assignments.setdefault(assignment_id, {})
            attribute = match.group(2)
            if attribute in ("final_rating", "official_rating"):
                entry["official_rating"] = value
            elif attribute == "anticipated_energy":
                entry["anticipated_energy_percentage"] = value
            else:
                entry["shared_notes"] = value
        return params


class CheckInFinalizationService:
    def __init__(
        self,
        uow: UnitOfWork,
        teammate: Teammate,
        finalization_params: FinalizationParams,
        finalized_by: Person,
        request_info: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ):
        self.uow = uow
        self.teammate = teammate
        self.params = finalization_params
        self.finalized_by = finalized_by
        self.request_info = request_info or {}
        self.now = now or datetime.utcnow()

    def call(self) -> Result:
        try:
            with self.uow.transaction():
                results = self._finalize_all()
                snapshot = self._create_snapshot(results)
                self._link_snapshot(results, snapshot)
        except _FinalizationFailed as e:
            logger.warning(f"Finalization aborted for teammate_id={self.teammate.id}: {e}")
            return Result.err(f"Failed to finalize check-ins: {e}")
        except Exception as e:
            logger.error(f"Finalization failed for teammate_id={self.teammate.id}: {str(e)}", exc_info=True)
            return Result.err(f"Failed to finalize check-ins: {e}")

        logger.info(
            f"Check-ins finalized: teammate_id={self.teammate.id}, snapshot_id={snapshot.id}, "
            f"change_type={snapshot.change_type}, finalized_by_id={self.finalized_by.id}"
        )
        return Result.ok({"snapshot": snapshot, "results": results})

    def _finalize_all(self) -> Dict[str, Any]:
        results: Dict[str, Any] = {}

        if self.params.position and finalize_flag_set(self.params.position.get("finalize")):
            results["position"] = self._unwrap(self._finalize_position())

        assignment_entries = self._assignment_entries()
        if assignment_entries is not None:
            results["assignments"] = self._finalize_assignments(assignment_entries)

        if self.params.aspirations is not None:
            results["aspirations"] = self._finalize_aspirations(self.params.aspirations)

        return results

    @staticmethod
    def _unwrap(result: Result):
        if not result.is_ok:
            raise _FinalizationFailed(result.error)
        return result.value

    def _assignment_entries(self) -> Optional[Dict[str, Dict[str, Any]]]:
        if self.params.assignments is None and not self.params.flat_assignments:
            return None

        entries = dict(self.params.assignments or {})
        for assignment_id, flat_entry in self.params.flat_assignments.items():
            check_in = self.uow.check_ins.open_assignment_check_in(self.teammate.id, assignment_id)
            if check_in is None:
                logger.warning(
                    f"Ignoring flat finalization keys for assignment_id={assignment_id}: no open check-in"
                )
                continue
            key = str(check_in.id)
            if key in entries:
                continue
            entries[key] = dict(flat_entry, finalize="1")
        return entries

    def _finalize_position(self) -> Result:
        ready = self.uow.check_ins.ready_for_finalization(PositionCheckIn, self.teammate.id)
        if not ready:
            return Result.err("Position check-in not ready")
        return PositionCheckInFinalizer(
            uow=self.uow,
            check_in=ready[0],
            official_rating=self.params.position.get("official_rating"),
            shared_notes=self.params.position.get("shared_notes"),
            finalized_by=self.finalized_by,
            now=self.now,
        ).finalize()

    def _finalize_assignments(self, entries: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
        finalized = []
        seen_subjects = set()
        for check_in_id, entry in entries.items():
            if not finalize_flag_set((entry or {}).get("finalize")):
                continue
            check_in = self._load(AssignmentCheckIn, check_in_id)
            if check_in.assignment_id in seen_subjects:
                raise _FinalizationFailed(f"Assignment {check_in.assignment_id} submitted more than once")
            seen_subjects.add(check_in.assignment_id)
            if not check_in.ready_for_finalization:
                continue

            finalized.append(self._unwrap(AssignmentCheckInFinalizer(
                uow=self.uow,
                check_in=check_in,
                official_rating=entry.get("official_rating"),
                shared_notes=entry.get("shared_notes"),
                anticipated_energy_percentage=entry.get("anticipated_energy_percentage"),
                finalized_by=self.finalized_by,
                now=self.now,
            ).finalize()))
        return finalized

    def _finalize_aspirations(self, entries: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
        finalized = []
        seen_subjects = set()
        for check_in_id, entry in entries.items():
            if not finalize_flag_set((entry or {}).get("finalize")):
                continue
            check_in = self._load(AspirationCheckIn, check_in_id)
            if check_in.aspiration_id in seen_subjects:
                raise _FinalizationFailed(f"Aspiration {check_in.aspiration_id} submitted more than once")
            seen_subjects.add(check_in.aspiration_id)
            if not check_in.ready_for_finalization:
                continue

            finalized.append(self._unwrap(AspirationCheckInFinalizer(
                uow=self.uow,
                check_in=check_in,
                official_rating=entry.get("official_rating"),
                shared_notes=entry.get("shared_notes"),
                finalized_by=self.finalized_by,
                now=self.now,
            ).finalize()))
        return finalized

    def _load(self, model, check_in_id):
        try:
            key = int(check_in_id)
        except (TypeError, ValueError):
            raise _FinalizationFailed(f"Invalid check-in id {check_in_id!r}")
        check_in = self.uow.check_ins.get_by_id(model, key, self.teammate.id)
        if check_in is None:
            raise _FinalizationFailed(f"{model.__name__} {key} not found for this teammate")
        return check_in

    @staticmethod
    def _change_type(results: Dict[str, Any]) -> str:
        types = []
        if "position" in results:
            types.append(ChangeType.POSITION_TENURE.value)
        if "assignments" in results:
            types.append(ChangeType.ASSIGNMENT_MANAGEMENT.value)
        if "aspirations" in results:
            types.append(ChangeType.ASPIRATION_MANAGEMENT.value)
        return types[0] if len(types) == 1 else ChangeType.BULK_CHECK_IN_FINALIZATION.value

    def _create_snapshot(self, results: Dict[str, Any]) -> MaapSnapshot:
        person = self.teammate.person
        snapshot = MaapSnapshot(
            employee_id=person.id,
            created_by_id=self.finalized_by.id,
            company_id=self.teammate.organization.root_company().id,
            change_type=self._change_type(results),
            reason=f"Check-in finalization for {person.display_name}",
            effective_date=self.now,
            request_info=self.request_info,
            manager_request_info=dict(
                self.request_info,
                finalized_by_id=self.finalized_by.id,
                timestamp=self.now.isoformat(),
            ),
            maap_data=MaapSnapshotBuilder(self.uow, self.teammate).build(),
            form_params=self.params.raw,
        )
        return self.uow.snapshots.create(snapshot)

    def _link_snapshot(self, results: Dict[str, Any], snapshot: MaapSnapshot):
        linked = []
        if "position" in results:
            linked.append(results["position"]["check_in"])
        for kind in ("assignments", "aspirations"):
            linked.extend(item["check_in"] for item in results.get(kind, []))
        for check_in in linked:
            check_in.maap_snapshot_id = snapshot.id
            self.uow.check_ins.update(check_in)


class _FinalizationFailed(Exception):
    pass
