"""
MAAP Module

Versioned Milestones, Assignments, Abilities and Positions, the check-ins
that rate them, and the observations people leave about each other.

Endpoints (all under /organizations/{organization_id}):
- GET/POST /abilities, GET/PATCH /abilities/{id} - Ability records
- GET/POST /assignments, GET/PATCH /assignments/{id} - Assignment records
- GET/POST /positions, GET/PATCH /positions/{id} - Position records
- PATCH /teammates/{id}/check_ins - Save employee or manager check-in fields
- GET /teammates/{id}/finalization - Check-ins ready for finalization
- POST /teammates/{id}/finalization - Finalize check-ins into a MAAP snapshot
- GET /snapshots/{id} - Show a MAAP snapshot
- GET /observations - Observation feed with filters, sorts and spotlights
- GET /observations/{id} - Show observation (redirects when not visible)
- POST /observations/{id}/publish - Publish a draft
- DELETE /observations/{id} - Soft delete
- POST /observations/{id}/restore - Undo soft delete
- GET /kudos - Public observations
- GET /kudos/{date}/{id} - Observation permalink
"""

from api.maap.router import maap_router

__all__ = ["maap_router"]
