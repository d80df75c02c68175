"""
Observation feed: filters, sorts, views, presets and spotlight statistics
over the observations a viewer is allowed to see.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Query

from models.maap import Ability, Assignment, Aspiration
from models.observations import Observation, ObservationRating, Observee, PrivacyLevel, Rateable, RateableType
from models.organization import Organization, Person, Teammate
from api.maap.config import maap_config
from api.maap.domain.queries.observation_visibility import ObservationVisibilityQuery
from api.maap.domain.viewer import ViewerContext
from api.maap.infra.db.uow import UnitOfWork

logger = logging.getLogger(__name__)

DEFAULT_TIMEFRAME = "all"
TIMEFRAMES = (
    "all", "now", "this_week", "this_month", "last_45_days",
    "this_quarter", "last_90_days", "this_year", "between",
)

DEFAULT_SORT = "observed_at_desc"
SORTS = ("observed_at_desc", "observed_at_asc", "ratings_count_desc", "story_asc", "title", "created_at")

DEFAULT_VIEW = "large_list"
VIEWS = ("large_list", "cards", "list", "wall")

DEFAULT_SPOTLIGHT = "most_observed"
SPOTLIGHTS = ("most_observed", "overview")

PRESETS = {
    "kudos": {
        "view": "wall",
        "spotlight": "most_observed",
        "timeframe": "last_45_days",
        "privacy": ["public_to_company", "public_to_world"],
    },
}

SPOTLIGHT_SIZE = 1 + maap_config.spotlight_runner_ups


def parse_date(value: Any) -> Optional[date]:
    if value is None or str(value).strip() == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).strip()).date()
    except ValueError:
        logger.warning(f"Ignoring malformed date parameter: {value!r}")
        return None


def _start_of_day(value: date) -> datetime:
    return datetime(value.year, value.month, value.day)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [item for item in value if item not in (None, "")]
    if value == "":
        return []
    return [value]


class ObservationsQuery:
    def __init__(
        self,
        uow: UnitOfWork,
        viewer: ViewerContext,
        company: Organization,
        params: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ):
        self.uow = uow
        self.viewer = viewer
        self.company = company.root_company()
        self.now = now or datetime.utcnow()
        self.params = self._apply_preset(dict(params or {}))
        self.visibility = ObservationVisibilityQuery(uow, viewer, self.company)

    @staticmethod
    def _apply_preset(params: Dict[str, Any]) -> Dict[str, Any]:
        preset = params.get("preset")
        if not preset:
            return params
        preset_params = PRESETS.get(str(preset))
        if preset_params is None:
            logger.info(f"Ignoring unknown observations preset: {preset!r}")
            return params
        applied = {key: (list(value) if isinstance(value, list) else value) for key, value in preset_params.items()}
        applied["preset"] = preset
        return applied

    # ---- current state ----

    @property
    def current_sort(self) -> str:
        sort = self.params.get("sort")
        return sort if sort in SORTS else DEFAULT_SORT

    @property
    def current_view(self) -> str:
        view = self.params.get("view") or self.params.get("viewStyle")
        return view if view in VIEWS else DEFAULT_VIEW

    @property
    def current_spotlight(self) -> str:
        spotlight = self.params.get("spotlight")
        return spotlight if spotlight in SPOTLIGHTS else DEFAULT_SPOTLIGHT

    @property
    def current_timeframe(self) -> str:
        timeframe = self.params.get("timeframe")
        return timeframe if timeframe in TIMEFRAMES else DEFAULT_TIMEFRAME

    @property
    def current_filters(self) -> Dict[str, Any]:
        filters: Dict[str, Any] = {}
        privacy = self._privacy_levels()
        if privacy:
            filters["privacy"] = [level.value for level in privacy]
        if self.current_timeframe != DEFAULT_TIMEFRAME:
            filters["timeframe"] = self.current_timeframe
            if self.current_timeframe == "between":
                for key in ("timeframe_start_date", "timeframe_end_date"):
                    parsed = parse_date(self.params.get(key))
                    if parsed:
                        filters[key] = parsed.isoformat()
        rateable = self._rateable()
        if rateable:
            filters["rateable_type"] = rateable.kind.value
            filters["rateable_id"] = rateable.id
        observee_ids = self._observee_ids()
        if observee_ids:
            filters["observee_ids"] = observee_ids
        for key in ("start_date", "end_date"):
            parsed = parse_date(self.params.get(key))
            if parsed:
                filters[key] = parsed.isoformat()
        if self._include_soft_deleted():
            filters["include_soft_deleted"] = True
        return filters

    @property
    def has_active_filters(self) -> bool:
        return bool(self.current_filters)

    # ---- parsing ----

    def _privacy_levels(self) -> List[PrivacyLevel]:
        levels = []
        for value in _as_list(self.params.get("privacy")):
            try:
                levels.append(PrivacyLevel(value))
            except ValueError:
                logger.warning(f"Ignoring unknown privacy filter: {value!r}")
        return levels

    def _rateable(self) -> Optional[Rateable]:
        rateable_type = self.params.get("rateable_type")
        rateable_id = self.params.get("rateable_id")
        if not rateable_type or rateable_id in (None, ""):
            return None
        try:
            return Rateable(kind=RateableType(rateable_type), id=int(rateable_id))
        except ValueError:
            logger.warning(f"Ignoring malformed rateable filter: {rateable_type!r}/{rateable_id!r}")
            return None

    def _observee_ids(self) -> List[int]:
        ids = []
        for value in _as_list(self.params.get("observee_ids")):
            try:
                ids.append(int(value))
            except (TypeError, ValueError):
                logger.warning(f"Ignoring malformed observee id: {value!r}")
        return ids

    def _include_soft_deleted(self) -> bool:
        value = self.params.get("include_soft_deleted")
        return self.viewer.authenticated and value in ("1", "true", True, 1)

    def _timeframe_range(self) -> Tuple[Optional[datetime], Optional[datetime]]:
        today = self.now.date()
        timeframe = self.current_timeframe
        if timeframe == "now":
            return _start_of_day(today), _start_of_day(today + timedelta(days=1))
        if timeframe == "this_week":
            return _start_of_day(today - timedelta(days=today.weekday())), None
        if timeframe == "this_month":
            return _start_of_day(today.replace(day=1)), None
        if timeframe == "last_45_days":
            return self.now - timedelta(days=45), None
        if timeframe == "this_quarter":
            first_month = 3 * ((today.month - 1) // 3) + 1
            return _start_of_day(today.replace(month=first_month, day=1)), None
        if timeframe == "last_90_days":
            return self.now - timedelta(days=90), None
        if timeframe == "this_year":
            return _start_of_day(today.replace(month=1, day=1)), None
        if timeframe == "between":
            start = parse_date(self.params.get("timeframe_start_date"))
            end = parse_date(self.params.get("timeframe_end_date"))
            return (
                _start_of_day(start) if start else None,
                _start_of_day(end + timedelta(days=1)) if end else None,
            )
        return None, None

    # ---- queries ----

    def base_scope(self) -> Query:
        visible_ids = self.visibility.visible_observations().with_entities(Observation.id).statement
        condition = Observation.id.in_(visible_ids)
        if self._include_soft_deleted():
            condition = or_(
                condition,
                and_(
                    Observation.company_id == self.company.id,
                    Observation.observer_id == self.viewer.person_id,
                    Observation.deleted_at.isnot(None),
                ),
            )
        return self.uow.db.query(Observation).filter(condition)

    def filtered(self) -> Query:
        query = self.base_scope()

        privacy = self._privacy_levels()
        if privacy:
            query = query.filter(Observation.privacy_level.in_(privacy))

        range_start, range_end = self._timeframe_range()
        if range_start is not None:
            query = query.filter(Observation.observed_at >= range_start)
        if range_end is not None:
            query = query.filter(Observation.observed_at < range_end)

        rateable = self._rateable()
        if rateable:
            query = query.filter(Observation.id.in_(
                select(ObservationRating.observation_id).where(
                    and_(
                        ObservationRating.rateable_type == rateable.kind,
                        ObservationRating.rateable_id == rateable.id,
                    )
                )
            ))

        observee_ids = self._observee_ids()
        if observee_ids:
            query = query.filter(Observation.id.in_(
                select(Observee.observation_id).where(Observee.teammate_id.in_(observee_ids))
            ))

        start_date = parse_date(self.params.get("start_date"))
        if start_date:
            query = query.filter(Observation.observed_at >= _start_of_day(start_date))
        end_date = parse_date(self.params.get("end_date"))
        if end_date:
            query = query.filter(Observation.observed_at < _start_of_day(end_date + timedelta(days=1)))

        return query

    def call(self) -> Query:
        query = self.filtered()
        sort = self.current_sort

        if sort == "observed_at_asc":
            return query.order_by(Observation.observed_at.asc(), Observation.id.asc())
        if sort == "ratings_count_desc":
            counts = (
                select(
                    ObservationRating.observation_id.label("observation_id"),
                    func.count(ObservationRating.id).label("ratings_count"),
                )
                .group_by(ObservationRating.observation_id)
                .subquery()
            )
            return query.outerjoin(counts, counts.c.observation_id == Observation.id).order_by(
                func.coalesce(counts.c.ratings_count, 0).desc(),
                Observation.observed_at.desc(),
                Observation.id.desc(),
            )
        if sort == "story_asc":
            return query.order_by(Observation.story.asc(), Observation.id.asc())
        if sort == "title":
            return query.order_by(Observation.title.asc(), Observation.id.asc())
        if sort == "created_at":
            return query.order_by(Observation.created_on.desc(), Observation.id.desc())
        return query.order_by(Observation.observed_at.desc(), Observation.id.desc())

    # ---- spotlight ----

    def spotlight_stats(self) -> Dict[str, Any]:
        if self.current_spotlight == "overview":
            return self._overview_stats()
        return self._most_observed_stats()

    def _filtered_ids(self):
        return self.filtered().with_entities(Observation.id).statement

    def _overview_stats(self) -> Dict[str, Any]:
        query = self.filtered()
        week_ago = self.now - timedelta(days=7)
        return {
            "total_observations": query.count(),
            "this_week": query.filter(Observation.observed_at >= week_ago).count(),
            "journal_entries": query.filter(Observation.privacy_level == PrivacyLevel.OBSERVER_ONLY).count(),
            "public_observations": query.filter(
                Observation.privacy_level.in_([PrivacyLevel.PUBLIC_TO_COMPANY, PrivacyLevel.PUBLIC_TO_WORLD])
            ).count(),
            "with_ratings": query.filter(
                Observation.id.in_(select(ObservationRating.observation_id))
            ).count(),
        }

    def _top_rateables(self, rateable_type: RateableType) -> List[Tuple[int, int]]:
        count = func.count(func.distinct(ObservationRating.observation_id))
        rows = self.uow.db.query(ObservationRating.rateable_id, count).filter(
            and_(
                ObservationRating.rateable_type == rateable_type,
                ObservationRating.observation_id.in_(self._filtered_ids()),
            )
        ).group_by(ObservationRating.rateable_id).order_by(
            count.desc(), ObservationRating.rateable_id.asc()
        ).limit(SPOTLIGHT_SIZE).all()
        return [(row[0], row[1]) for row in rows]

    def _top_observees(self) -> List[Tuple[int, int]]:
        count = func.count(func.distinct(Observee.observation_id))
        rows = self.uow.db.query(Teammate.person_id, count).join(
            Observee, Observee.teammate_id == Teammate.id
        ).filter(
            Observee.observation_id.in_(self._filtered_ids())
        ).group_by(Teammate.person_id).order_by(
            count.desc(), Teammate.person_id.asc()
        ).limit(SPOTLIGHT_SIZE).all()
        return [(row[0], row[1]) for row in rows]

    def _top_observers(self) -> List[Tuple[int, int]]:
        count = func.count(func.distinct(Observation.id))
        rows = self.uow.db.query(Observation.observer_id, count).filter(
            Observation.id.in_(self._filtered_ids())
        ).group_by(Observation.observer_id).order_by(
            count.desc(), Observation.observer_id.asc()
        ).limit(SPOTLIGHT_SIZE).all()
        return [(row[0], row[1]) for row in rows]

    def _spotlight_entries(self, rows: List[Tuple[int, int]], model, name_of) -> Dict[str, Any]:
        entries = []
        for record_id, observation_count in rows:
            record = self.uow.db.query(model).filter(model.id == record_id).first()
            entries.append({
                "id": record_id,
                "name": name_of(record) if record else None,
                "count": observation_count,
            })
        return {
            "most_observed": entries[0] if len(entries) > 0 else None,
            "runner_up": entries[1] if len(entries) > 1 else None,
        }

    def _most_observed_stats(self) -> Dict[str, Any]:
        return {
            "assignment": self._spotlight_entries(
                self._top_rateables(RateableType.ASSIGNMENT), Assignment, lambda record: record.title
            ),
            "ability": self._spotlight_entries(
                self._top_rateables(RateableType.ABILITY), Ability, lambda record: record.name
            ),
            "aspiration": self._spotlight_entries(
                self._top_rateables(RateableType.ASPIRATION), Aspiration, lambda record: record.name
            ),
            "person": self._spotlight_entries(
                self._top_observees(), Person, lambda record: record.display_name
            ),
            "observer": self._spotlight_entries(
                self._top_observers(), Person, lambda record: record.display_name
            ),
        }
