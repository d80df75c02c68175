from typing import Optional

from common.exceptions import NotAuthorizedError
from models.organization import Organization, Teammate
from api.maap.domain.viewer import ViewerContext


NOT_EMPLOYED = "not_employed"
WRONG_ORGANIZATION = "wrong_organization"
NOT_PERMITTED = "not_permitted"


def in_managerial_hierarchy(manager: Optional[Teammate], teammate: Optional[Teammate]) -> bool:
    """True if manager sits anywhere above teammate in the active reporting chain."""
    if manager is None or teammate is None:
        return False
    seen = {teammate.id}
    current = teammate
    while True:
        tenure = current.active_employment_tenure()
        if tenure is None or tenure.manager_teammate_id is None:
            return False
        if tenure.manager_teammate_id == manager.id:
            return True
        if tenure.manager_teammate_id in seen:
            return False
        seen.add(tenure.manager_teammate_id)
        current = tenure.manager


class AuthorizationPolicy:
    @staticmethod
    def can_view_organization(viewer_teammate: Optional[Teammate]) -> bool:
        return viewer_teammate is not None and viewer_teammate.actively_employed

    @staticmethod
    def can_manage_maap(viewer_teammate: Optional[Teammate]) -> bool:
        if not AuthorizationPolicy.can_view_organization(viewer_teammate):
            return False
        return bool(viewer_teammate.can_manage_maap)

    @staticmethod
    def is_employee_side(viewer: ViewerContext, teammate: Teammate) -> bool:
        return viewer.person_id is not None and viewer.person_id == teammate.person_id

    @staticmethod
    def is_manager_side(viewer_teammate: Optional[Teammate], teammate: Teammate) -> bool:
        if not AuthorizationPolicy.can_view_organization(viewer_teammate):
            return False
        if viewer_teammate.id == teammate.id:
            return False
        if viewer_teammate.can_manage_employment:
            return True
        return in_managerial_hierarchy(viewer_teammate, teammate)

    @staticmethod
    def can_finalize(viewer_teammate: Optional[Teammate], teammate: Teammate) -> bool:
        return AuthorizationPolicy.is_manager_side(viewer_teammate, teammate)

    @staticmethod
    def can_view_check_ins(viewer: ViewerContext, viewer_teammate: Optional[Teammate], teammate: Teammate) -> bool:
        if AuthorizationPolicy.is_employee_side(viewer, teammate):
            return True
        return AuthorizationPolicy.is_manager_side(viewer_teammate, teammate)


def authorize(allowed: bool, viewer: ViewerContext, organization: Optional[Organization],
              message: str = "You are not authorized to perform this action.",
              reason: str = NOT_PERMITTED):
    if not allowed:
        raise NotAuthorizedError(
            message=message,
            redirect_to=viewer.dashboard_path(organization),
            reason=reason,
        )
