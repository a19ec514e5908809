"""Cache of compiled explores and the warehouse catalog, one row per project.

Each save replaces the previous snapshot wholesale.
"""

import copy
import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db import DatabaseManager, upsert, parse_uuid
from ..db.models import CachedExplores, CachedWarehouse
from ..errors import NotExistsError, UnexpectedServerError

logger = logging.getLogger(__name__)


def convert_metric_filters_field_ids_to_field_ref(explore: Dict[str, Any]) -> Dict[str, Any]:
    """Rename legacy ``fieldId`` metric-filter targets to ``fieldRef``.

    Explores cached by older releases still carry ``fieldId``. An existing
    ``fieldRef`` wins over ``fieldId``. Returns a converted copy.
    """
    converted = copy.deepcopy(explore)
    for table in (converted.get("tables") or {}).values():
        for metric in (table.get("metrics") or {}).values():
            for metric_filter in metric.get("filters") or []:
                target = dict(metric_filter.get("target") or {})
                field_id = target.pop("fieldId", None)
                field_ref = target.pop("fieldRef", None)
                if field_ref is None:
                    field_ref = field_id
                if field_ref is not None:
                    target["fieldRef"] = field_ref
                metric_filter["target"] = target
    return converted


def _load_payload(payload: Any, expected_type: type, what: str):
    """Decode a cached JSON payload, rejecting anything of the wrong shape."""
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise UnexpectedServerError(f"Cached {what} are not valid JSON") from e
    if not isinstance(payload, expected_type):
        raise UnexpectedServerError(
            f"Cached {what} have unexpected type {type(payload).__name__}"
        )
    return payload


class ExploreCache:
    """Read and replace cached explores and warehouse catalogs."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    # =========================================================================
    # Explores
    # =========================================================================

    def get_explores(
        self,
        project_uuid: str,
        session: Optional[Session] = None,
    ) -> Optional[List[Dict[str, Any]]]:
        """Return the cached explores, or None if the project was never compiled."""
        with self.db.session_scope(session) as s:
            payload = s.execute(
                select(CachedExplores.explores)
                .where(CachedExplores.project_uuid == parse_uuid(project_uuid))
                .limit(1)
            ).scalar_one_or_none()

        if payload is None:
            return None
        return _load_payload(payload, list, "explores")

    def get_explore(
        self,
        project_uuid: str,
        explore_name: str,
        session: Optional[Session] = None,
    ) -> Dict[str, Any]:
        explores = self.get_explores(project_uuid, session=session) or []
        for explore in explores:
            if isinstance(explore, dict) and explore.get("name") == explore_name:
                return convert_metric_filters_field_ids_to_field_ref(explore)
        raise NotExistsError(f'Explore "{explore_name}" does not exist.')

    def save_explores(
        self,
        project_uuid: str,
        explores: List[Dict[str, Any]],
        session: Optional[Session] = None,
    ) -> CachedExplores:
        with self.db.session_scope(session) as s:
            row = upsert(
                s,
                CachedExplores,
                {"project_uuid": parse_uuid(project_uuid), "explores": explores},
                conflict_columns=["project_uuid"],
            )
        logger.info(f"Cached {len(explores)} explores for project {project_uuid}")
        return row

    # =========================================================================
    # Warehouse Catalog
    # =========================================================================

    def get_warehouse(
        self,
        project_uuid: str,
        session: Optional[Session] = None,
    ) -> Optional[Dict[str, Any]]:
        with self.db.session_scope(session) as s:
            payload = s.execute(
                select(CachedWarehouse.warehouse)
                .where(CachedWarehouse.project_uuid == parse_uuid(project_uuid))
                .limit(1)
            ).scalar_one_or_none()

        if payload is None:
            return None
        return _load_payload(payload, dict, "warehouse catalog")

    def save_warehouse(
        self,
        project_uuid: str,
        warehouse: Dict[str, Any],
        session: Optional[Session] = None,
    ) -> CachedWarehouse:
        with self.db.session_scope(session) as s:
            row = upsert(
                s,
                CachedWarehouse,
                {"project_uuid": parse_uuid(project_uuid), "warehouse": warehouse},
                conflict_columns=["project_uuid"],
            )
        logger.info(f"Cached warehouse catalog for project {project_uuid}")
        return row
