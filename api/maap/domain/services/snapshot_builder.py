from typing import Any, Dict, List, Optional

from models.organization import Teammate
from api.maap.infra.db.uow import UnitOfWork


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


class MaapSnapshotBuilder:
    """
    Builds the JSON maap_data for one teammate.

    Every entry reads from its own subject's check-in only, so notes and
    ratings can never bleed from one assignment into another. The official
    state is the latest finalized check-in; a subject that was never
    finalized falls back to its newest stored check-in.
    """

    def __init__(self, uow: UnitOfWork, teammate: Teammate):
        self.uow = uow
        self.teammate = teammate
        self.company = teammate.organization.root_company()

    def build(self) -> Dict[str, Any]:
        return {
            "position": self.position_data(),
            "assignments": self.assignments_data(),
            "milestones": self.milestones_data(),
            "aspirations": self.aspirations_data(),
        }

    def position_data(self) -> Optional[Dict[str, Any]]:
        employment = self.uow.tenures.active_employment_tenure(self.teammate.id)
        if employment is None:
            return None
        check_in = (
            self.uow.check_ins.latest_finalized_position_check_in(self.teammate.id)
            or self.uow.check_ins.latest_position_check_in(self.teammate.id)
        )
        return {
            "position_id": employment.position_id,
            "manager_id": employment.manager_teammate_id,
            "seat_id": employment.seat_id,
            "employment_type": employment.employment_type,
            "started_at": _iso(employment.started_at),
            "official_position_rating": employment.official_position_rating,
            "official_check_in": check_in.official_check_in_data() if check_in else None,
        }

    def assignments_data(self) -> List[Dict[str, Any]]:
        entries = []
        for tenure in self.uow.tenures.active_assignment_tenures(self.teammate.id, self.company.id):
            check_in = (
                self.uow.check_ins.latest_finalized_assignment_check_in(self.teammate.id, tenure.assignment_id)
                or self.uow.check_ins.latest_assignment_check_in(self.teammate.id, tenure.assignment_id)
            )
            entries.append({
                "id": tenure.assignment_id,
                "title": tenure.assignment.title,
                "tenure": {
                    "anticipated_energy_percentage": tenure.anticipated_energy_percentage,
                    "started_at": _iso(tenure.started_at),
                },
                "official_check_in": check_in.official_check_in_data() if check_in else None,
            })
        return entries

    def milestones_data(self) -> List[Dict[str, Any]]:
        return [
            {
                "ability_id": milestone.ability_id,
                "milestone_level": milestone.milestone_level,
                "certified_by_id": milestone.certified_by_id,
                "attained_at": _iso(milestone.attained_at),
            }
            for milestone in self.uow.tenures.milestones_for(self.teammate.id, self.company.id)
        ]

    def aspirations_data(self) -> List[Dict[str, Any]]:
        entries = []
        for aspiration in self.uow.aspirations.list_for_organization(self.company.id):
            check_in = (
                self.uow.check_ins.latest_finalized_aspiration_check_in(self.teammate.id, aspiration.id)
                or self.uow.check_ins.latest_aspiration_check_in(self.teammate.id, aspiration.id)
            )
            entries.append({
                "id": aspiration.id,
                "name": aspiration.name,
                "official_check_in": check_in.official_check_in_data() if check_in else None,
            })
        return entries
