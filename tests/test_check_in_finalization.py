"""
Tests for check-in finalization into a single MAAP snapshot.

Run with:
    pytest tests/test_check_in_finalization.py -v
"""
import pytest
from datetime import date, datetime

from models.check_ins import AssignmentCheckIn, AspirationCheckIn, PositionCheckIn
from models.maap import AssignmentTenure
from models.maap_snapshot import MaapSnapshot, ChangeType
from models.organization import EmploymentTenure
from api.maap.domain.services.check_in_finalization import CheckInFinalizationService, FinalizationParams
from tests.conftest import auth_headers

NOW = datetime(2024, 6, 1, 12, 0)


@pytest.fixture
def setup(factory, team):
    """Employee with two assignments, a position check-in and an aspiration check-in, all ready."""
    employee = team["employee"]
    manager_person = team["manager"].person
    backend = factory.assignment(team["company"], title="Backend")
    frontend = factory.assignment(team["company"], title="Frontend")
    factory.assignment_tenure(employee, backend, energy=60)
    factory.assignment_tenure(employee, frontend, energy=40)
    aspiration = factory.aspiration(team["company"], name="Lead a team")

    return {
        **team,
        "backend": backend,
        "frontend": frontend,
        "aspiration": aspiration,
        "backend_check_in": factory.assignment_check_in(employee, backend, manager=manager_person),
        "frontend_check_in": factory.assignment_check_in(employee, frontend, manager=manager_person),
        "position_check_in": factory.position_check_in(employee, team["employment"], manager=manager_person),
        "aspiration_check_in": factory.aspiration_check_in(employee, aspiration, manager=manager_person),
    }


def finalize(uow, setup, payload, request_info=None):
    return CheckInFinalizationService(
        uow=uow,
        teammate=setup["employee"],
        finalization_params=FinalizationParams.parse(payload),
        finalized_by=setup["manager"].person,
        request_info=request_info,
        now=NOW,
    ).call()


class TestFinalizationParams:
    def test_parse_modern_and_legacy_keys(self):
        modern = FinalizationParams.parse({"assignment_check_ins": {"1": {"finalize": "1"}}})
        legacy = FinalizationParams.parse({"[assignment_check_ins]": {"1": {"finalize": "1"}}})
        assert modern.assignments == legacy.assignments == {"1": {"finalize": "1"}}

    def test_parse_flat_keys_by_assignment(self):
        params = FinalizationParams.parse({
            "check_in_7_final_rating": "meeting",
            "check_in_7_shared_notes": "notes",
            "check_in_7_anticipated_energy": "30",
            "check_in_9_official_rating": "exceeding",
            "unrelated": "x",
        })
        assert params.flat_assignments == {
            7: {"official_rating": "meeting", "shared_notes": "notes", "anticipated_energy_percentage": "30"},
            9: {"official_rating": "exceeding"},
        }


class TestCheckInFinalizationService:
    def test_everything_lands_in_one_snapshot(self, db, uow, setup):
        payload = {
            "position_check_in": {"finalize": "1", "official_rating": "2", "shared_notes": "Solid year"},
            "assignment_check_ins": {
                str(setup["backend_check_in"].id): {
                    "finalize": "1", "official_rating": "meeting", "shared_notes": "Backend notes",
                },
                str(setup["frontend_check_in"].id): {
                    "finalize": "1", "official_rating": "exceeding", "shared_notes": "Frontend notes",
                    "anticipated_energy_percentage": "25",
                },
            },
            "aspiration_check_ins": {
                str(setup["aspiration_check_in"].id): {"finalize": "1", "official_rating": "meeting"},
            },
        }

        result = finalize(uow, setup, payload, request_info={"ip_address": "10.0.0.1"})

        assert result.is_ok, result.error
        snapshots = db.query(MaapSnapshot).all()
        assert len(snapshots) == 1
        snapshot = snapshots[0]
        assert snapshot is result.value["snapshot"]
        assert snapshot.change_type == ChangeType.BULK_CHECK_IN_FINALIZATION.value
        assert snapshot.employee_id == setup["employee"].person_id
        assert snapshot.created_by_id == setup["manager"].person_id
        assert snapshot.reason == f"Check-in finalization for {setup['employee'].person.display_name}"
        assert snapshot.form_params == payload
        assert snapshot.request_info == {"ip_address": "10.0.0.1"}
        assert snapshot.manager_request_info["finalized_by_id"] == setup["manager"].person_id
        assert snapshot.manager_request_info["timestamp"] == NOW.isoformat()

        for key in ("backend_check_in", "frontend_check_in", "position_check_in", "aspiration_check_in"):
            check_in = setup[key]
            assert check_in.maap_snapshot_id == snapshot.id
            assert check_in.official_check_in_completed_at == NOW
            assert check_in.finalized_by_id == setup["manager"].person_id

    def test_snapshot_entries_never_share_notes(self, uow, setup):
        payload = {"assignment_check_ins": {
            str(setup["backend_check_in"].id): {
                "finalize": "1", "official_rating": "meeting", "shared_notes": "Backend notes",
            },
            str(setup["frontend_check_in"].id): {
                "finalize": "1", "official_rating": "exceeding", "shared_notes": "Frontend notes",
            },
        }}

        result = finalize(uow, setup, payload)

        assert result.is_ok, result.error
        entries = result.value["snapshot"].maap_data["assignments"]
        notes = {entry["id"]: entry["official_check_in"]["shared_notes"] for entry in entries}
        ratings = {entry["id"]: entry["official_check_in"]["official_rating"] for entry in entries}
        assert notes == {setup["backend"].id: "Backend notes", setup["frontend"].id: "Frontend notes"}
        assert ratings == {setup["backend"].id: "meeting", setup["frontend"].id: "exceeding"}

    def test_single_kind_uses_specific_change_type(self, uow, setup):
        payload = {"aspiration_check_ins": {
            str(setup["aspiration_check_in"].id): {"finalize": "1", "official_rating": "meeting"},
        }}

        result = finalize(uow, setup, payload)

        assert result.is_ok, result.error
        assert result.value["snapshot"].change_type == ChangeType.ASPIRATION_MANAGEMENT.value

    def test_assignment_finalization_rolls_tenure_over(self, db, uow, setup):
        payload = {"assignment_check_ins": {
            str(setup["frontend_check_in"].id): {
                "finalize": "1", "official_rating": "exceeding", "anticipated_energy_percentage": "25",
            },
        }}

        result = finalize(uow, setup, payload)

        assert result.is_ok, result.error
        tenures = db.query(AssignmentTenure).filter(
            AssignmentTenure.assignment_id == setup["frontend"].id
        ).order_by(AssignmentTenure.id).all()
        assert len(tenures) == 2
        assert tenures[0].ended_at == NOW.date()
        assert tenures[0].official_rating == "exceeding"
        assert tenures[1].ended_at is None
        assert tenures[1].anticipated_energy_percentage == 25
        assert tenures[1].started_at == NOW.date()

    def test_failure_rolls_everything_back(self, db, uow, factory, setup):
        untenured = factory.assignment(setup["company"], title="No tenure")
        orphan_check_in = factory.assignment_check_in(setup["employee"], untenured)
        payload = {
            "position_check_in": {"finalize": "1", "official_rating": "1"},
            "assignment_check_ins": {
                str(orphan_check_in.id): {"finalize": "1", "official_rating": "meeting"},
            },
        }

        result = finalize(uow, setup, payload)

        assert not result.is_ok
        assert result.error.startswith("Failed to finalize check-ins:")
        assert f"No active tenure found for assignment {untenured.id}" in result.error
        assert db.query(MaapSnapshot).count() == 0
        position_check_in = db.get(PositionCheckIn, setup["position_check_in"].id)
        assert position_check_in.official_check_in_completed_at is None
        assert position_check_in.maap_snapshot_id is None
        assert db.query(EmploymentTenure).filter(
            EmploymentTenure.teammate_id == setup["employee"].id
        ).count() == 1

    def test_missing_official_rating_fails(self, db, uow, setup):
        payload = {"assignment_check_ins": {str(setup["backend_check_in"].id): {"finalize": "1"}}}

        result = finalize(uow, setup, payload)

        assert not result.is_ok
        assert "Official rating is required" in result.error
        assert db.query(MaapSnapshot).count() == 0

    def test_position_not_ready_fails(self, db, uow, factory, team):
        factory.position_check_in(team["employee"], team["employment"], ready=False)
        setup = {**team}

        result = finalize(uow, setup, {"position_check_in": {"finalize": "1", "official_rating": "0"}})

        assert not result.is_ok
        assert "Position check-in not ready" in result.error

    def test_not_ready_check_ins_are_skipped(self, db, uow, factory, setup):
        incomplete = factory.assignment(setup["company"], title="Incomplete")
        factory.assignment_tenure(setup["employee"], incomplete)
        not_ready = factory.assignment_check_in(setup["employee"], incomplete, ready=False)
        payload = {"assignment_check_ins": {
            str(not_ready.id): {"finalize": "1", "official_rating": "meeting"},
            str(setup["backend_check_in"].id): {"finalize": "1", "official_rating": "meeting"},
        }}

        result = finalize(uow, setup, payload)

        assert result.is_ok, result.error
        finalized = [item["check_in"].id for item in result.value["results"]["assignments"]]
        assert finalized == [setup["backend_check_in"].id]
        assert db.get(AssignmentCheckIn, not_ready.id).official_check_in_completed_at is None

    def test_unflagged_entries_are_ignored(self, uow, setup):
        payload = {"assignment_check_ins": {
            str(setup["backend_check_in"].id): {"finalize": "0", "official_rating": "meeting"},
            str(setup["frontend_check_in"].id): {"finalize": "true", "official_rating": "meeting"},
        }}

        result = finalize(uow, setup, payload)

        assert result.is_ok, result.error
        assert setup["backend_check_in"].official_check_in_completed_at is None
        assert setup["frontend_check_in"].official_check_in_completed_at == NOW

    def test_same_subject_twice_fails(self, db, uow, factory, setup):
        duplicate = factory.assignment_check_in(setup["employee"], setup["backend"])
        payload = {"assignment_check_ins": {
            str(setup["backend_check_in"].id): {"finalize": "1", "official_rating": "meeting"},
            str(duplicate.id): {"finalize": "1", "official_rating": "exceeding"},
        }}

        result = finalize(uow, setup, payload)

        assert not result.is_ok
        assert "submitted more than once" in result.error
        assert db.query(MaapSnapshot).count() == 0

    def test_other_teammates_check_in_is_rejected(self, db, uow, factory, setup):
        foreign = factory.assignment_check_in(setup["colleague"], setup["backend"])
        payload = {"assignment_check_ins": {str(foreign.id): {"finalize": "1", "official_rating": "meeting"}}}

        result = finalize(uow, setup, payload)

        assert not result.is_ok
        assert "not found for this teammate" in result.error

    def test_legacy_bracketed_keys(self, uow, setup):
        payload = {"[assignment_check_ins]": {
            str(setup["backend_check_in"].id): {"finalize": "1", "official_rating": "meeting"},
        }}

        result = finalize(uow, setup, payload)

        assert result.is_ok, result.error
        assert setup["backend_check_in"].maap_snapshot_id == result.value["snapshot"].id

    def test_flat_keys_resolve_by_assignment(self, uow, setup):
        backend_id = setup["backend"].id
        frontend_id = setup["frontend"].id
        payload = {
            f"check_in_{backend_id}_final_rating": "meeting",
            f"check_in_{backend_id}_shared_notes": "Flat backend",
            f"check_in_{frontend_id}_final_rating": "exceeding",
            f"check_in_{frontend_id}_shared_notes": "Flat frontend",
        }

        result = finalize(uow, setup, payload)

        assert result.is_ok, result.error
        assert setup["backend_check_in"].shared_notes == "Flat backend"
        assert setup["frontend_check_in"].shared_notes == "Flat frontend"
        assert setup["frontend_check_in"].official_rating == "exceeding"

    def test_modern_entry_wins_over_flat_keys(self, uow, setup):
        backend_id = setup["backend"].id
        payload = {
            "assignment_check_ins": {
                str(setup["backend_check_in"].id): {
                    "finalize": "1", "official_rating": "exceeding", "shared_notes": "Modern",
                },
            },
            f"check_in_{backend_id}_final_rating": "meeting",
            f"check_in_{backend_id}_shared_notes": "Flat",
        }

        result = finalize(uow, setup, payload)

        assert result.is_ok, result.error
        assert setup["backend_check_in"].shared_notes == "Modern"
        assert setup["backend_check_in"].official_rating == "exceeding"

    def test_omitted_subject_keeps_last_official_check_in(self, uow, factory, setup):
        factory.assignment_check_in(
            setup["employee"], setup["frontend"], manager=setup["manager"].person,
            check_in_started_on=date(2024, 1, 1),
            official_rating="exceeding",
            shared_notes="Last cycle",
            official_check_in_completed_at=datetime(2024, 1, 5, 10, 0),
        )
        payload = {"assignment_check_ins": {
            str(setup["backend_check_in"].id): {
                "finalize": "1", "official_rating": "meeting", "shared_notes": "This cycle",
            },
        }}

        result = finalize(uow, setup, payload)

        assert result.is_ok, result.error
        entries = {
            entry["id"]: entry["official_check_in"]
            for entry in result.value["snapshot"].maap_data["assignments"]
        }
        assert entries[setup["frontend"].id]["official_rating"] == "exceeding"
        assert entries[setup["frontend"].id]["shared_notes"] == "Last cycle"
        assert entries[setup["frontend"].id]["official_check_in_completed_at"] == "2024-01-05T10:00:00"
        assert entries[setup["backend"].id]["official_rating"] == "meeting"
        assert entries[setup["backend"].id]["shared_notes"] == "This cycle"


# ============================================================================
# API Tests
# ============================================================================

class TestFinalizationRoutes:
    def test_ready_for_finalization_lists_ready_check_ins(self, client, setup):
        response = client.get(
            f"/organizations/{setup['company'].id}/teammates/{setup['employee'].id}/finalization",
            headers=auth_headers(setup["manager"].person),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data["assignment_check_ins"]) == 2
        assert len(data["position_check_ins"]) == 1
        assert len(data["aspiration_check_ins"]) == 1

    def test_finalize_redirects_to_completion(self, client, db, setup):
        company_id = setup["company"].id
        teammate_id = setup["employee"].id
        response = client.post(
            f"/organizations/{company_id}/teammates/{teammate_id}/finalization",
            json={"assignment_check_ins": {
                str(setup["backend_check_in"].id): {"finalize": "1", "official_rating": "meeting"},
            }},
            headers=auth_headers(setup["manager"].person),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        snapshot = db.query(MaapSnapshot).one()
        assert data["snapshot_id"] == snapshot.id
        assert data["redirect_to"] == (
            f"/organizations/{company_id}/teammates/{teammate_id}/finalization/complete?snapshot_id={snapshot.id}"
        )
        assert data["notice"] == "Check-ins finalized successfully."

    def test_flat_keys_leave_omitted_assignment_untouched(self, client, db, factory, setup):
        data_assignment = factory.assignment(setup["company"], title="Data")
        factory.assignment_tenure(setup["employee"], data_assignment, energy=10)
        factory.assignment_check_in(setup["employee"], data_assignment, ready=False, shared_notes="")
        backend_id = setup["backend"].id
        frontend_id = setup["frontend"].id

        response = client.post(
            f"/organizations/{setup['company'].id}/teammates/{setup['employee'].id}/finalization",
            json={
                f"check_in_{backend_id}_final_rating": "meeting",
                f"check_in_{backend_id}_shared_notes": "A",
                f"check_in_{frontend_id}_final_rating": "exceeding",
                f"check_in_{frontend_id}_shared_notes": "B",
            },
            headers=auth_headers(setup["manager"].person),
        )

        assert response.status_code == 200
        snapshot = db.query(MaapSnapshot).one()
        entries = {entry["id"]: entry["official_check_in"] for entry in snapshot.maap_data["assignments"]}
        assert entries[backend_id]["shared_notes"] == "A"
        assert entries[frontend_id]["shared_notes"] == "B"
        assert entries[data_assignment.id]["shared_notes"] == ""
        assert entries[data_assignment.id]["official_rating"] is None

    def test_failed_finalization_returns_alert(self, client, db, setup):
        company_id = setup["company"].id
        teammate_id = setup["employee"].id
        response = client.post(
            f"/organizations/{company_id}/teammates/{teammate_id}/finalization",
            json={"assignment_check_ins": {str(setup["backend_check_in"].id): {"finalize": "1"}}},
            headers=auth_headers(setup["manager"].person),
        )

        assert response.status_code == 422
        body = response.json()
        assert body["status"] == "failure"
        assert body["data"]["redirect_to"] == f"/organizations/{company_id}/teammates/{teammate_id}/finalization"
        assert "Official rating is required" in response.headers["X-Flash-Alert"]
        assert db.query(MaapSnapshot).count() == 0

    def test_employee_cannot_finalize_own_check_ins(self, client, setup):
        response = client.post(
            f"/organizations/{setup['company'].id}/teammates/{setup['employee'].id}/finalization",
            json={},
            headers=auth_headers(setup["employee"].person),
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert "X-Flash-Alert" in response.headers

    def test_snapshot_is_visible_to_employee_only_and_managers(self, client, uow, setup):
        result = finalize(uow, setup, {"assignment_check_ins": {
            str(setup["backend_check_in"].id): {"finalize": "1", "official_rating": "meeting"},
        }})
        url = f"/organizations/{setup['company'].id}/snapshots/{result.value['snapshot'].id}"

        assert client.get(url, headers=auth_headers(setup["employee"].person)).status_code == 200
        assert client.get(url, headers=auth_headers(setup["manager"].person)).status_code == 200
        denied = client.get(url, headers=auth_headers(setup["colleague"].person), follow_redirects=False)
        assert denied.status_code == 303
