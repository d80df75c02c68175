from models.organization import Organization, OrganizationType, Person, Teammate, EmploymentTenure
from models.maap import Ability, Assignment, Position, Aspiration, AssignmentTenure, TeammateMilestone
from models.check_ins import AssignmentCheckIn, AspirationCheckIn, PositionCheckIn
from models.maap_snapshot import MaapSnapshot, ChangeType
from models.observations import Observation, Observee, ObservationRating

__all__ = [
    'Organization', 'OrganizationType', 'Person', 'Teammate', 'EmploymentTenure',
    'Ability', 'Assignment', 'Position', 'Aspiration', 'AssignmentTenure', 'TeammateMilestone',
    'AssignmentCheckIn', 'AspirationCheckIn', 'PositionCheckIn',
    'MaapSnapshot', 'ChangeType',
    'Observation', 'Observee', 'ObservationRating',
]
