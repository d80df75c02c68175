from typing import Optional

from models.organization import Organization, Person, Teammate


class ViewerContext:
    """Who is making the request. Passed explicitly into every service and query."""

    def __init__(self, person: Optional[Person] = None):
        self.person = person

    @property
    def authenticated(self) -> bool:
        return self.person is not None

    @property
    def person_id(self) -> Optional[int]:
        return self.person.id if self.person else None

    def teammate_in(self, organization: Optional[Organization]) -> Optional[Teammate]:
        if self.person is None:
            return None
        return self.person.teammate_for(organization)

    def active_teammate_in(self, organization: Optional[Organization]) -> Optional[Teammate]:
        teammate = self.teammate_in(organization)
        if teammate is not None and teammate.actively_employed:
            return teammate
        return None

    def dashboard_path(self, organization: Optional[Organization] = None) -> str:
        teammate = self.teammate_in(organization) if organization else None
        if teammate is None and self.person is not None and self.person.teammates:
            teammate = self.person.teammates[0]
        if teammate is None:
            return "/"
        return f"/organizations/{teammate.organization_id}/dashboard"


ANONYMOUS = ViewerContext(None)
