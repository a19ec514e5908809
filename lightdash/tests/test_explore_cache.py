"""Tests for ExploreCache and metric filter conversion."""

import uuid

import pytest

from lightdash.core.db.models import CachedExplores
from lightdash.core.errors import NotExistsError, UnexpectedServerError
from lightdash.core.project.explore_cache import (
    ExploreCache,
    convert_metric_filters_field_ids_to_field_ref,
)


def _explore(name, field_id=None, field_ref=None):
    target = {}
    if field_id is not None:
        target["fieldId"] = field_id
    if field_ref is not None:
        target["fieldRef"] = field_ref
    return {
        "name": name,
        "tables": {
            name: {
                "metrics": {
                    "completed_total": {
                        "filters": [{"id": "f1", "target": target, "operator": "equals", "values": ["done"]}],
                    },
                },
            },
        },
    }


def _target(explore):
    table = next(iter(explore["tables"].values()))
    return table["metrics"]["completed_total"]["filters"][0]["target"]


class TestConvertMetricFilters:

    def test_field_id_becomes_field_ref(self):
        converted = convert_metric_filters_field_ids_to_field_ref(_explore("orders", field_id="status"))
        assert _target(converted) == {"fieldRef": "status"}

    def test_existing_field_ref_wins(self):
        explore = _explore("orders", field_id="legacy", field_ref="status")
        assert _target(convert_metric_filters_field_ids_to_field_ref(explore)) == {"fieldRef": "status"}

    def test_input_is_not_mutated(self):
        explore = _explore("orders", field_id="status")
        convert_metric_filters_field_ids_to_field_ref(explore)
        assert _target(explore) == {"fieldId": "status"}

    def test_explore_without_tables_is_returned_as_is(self):
        explore = {"name": "errored", "errors": [{"message": "bad sql"}]}
        assert convert_metric_filters_field_ids_to_field_ref(explore) == explore


class TestExploreCache:

    def test_get_explores_returns_none_when_not_cached(self, db_manager, source_project):
        cache = ExploreCache(db_manager)
        assert cache.get_explores(str(source_project.project_uuid)) is None

    def test_save_then_get(self, db_manager, source_project):
        cache = ExploreCache(db_manager)
        project_uuid = str(source_project.project_uuid)
        explores = [_explore("orders", field_ref="status")]

        row = cache.save_explores(project_uuid, explores)

        assert row.project_uuid == source_project.project_uuid
        assert cache.get_explores(project_uuid) == explores

    def test_second_save_replaces_snapshot(self, db_manager, source_project):
        cache = ExploreCache(db_manager)
        project_uuid = str(source_project.project_uuid)

        cache.save_explores(project_uuid, [_explore("orders"), _explore("customers")])
        cache.save_explores(project_uuid, [_explore("payments")])

        assert [e["name"] for e in cache.get_explores(project_uuid)] == ["payments"]
        with db_manager.get_session() as session:
            assert session.query(CachedExplores).count() == 1

    def test_get_explore_converts_filters(self, db_manager, source_project):
        cache = ExploreCache(db_manager)
        project_uuid = str(source_project.project_uuid)
        cache.save_explores(project_uuid, [_explore("orders", field_id="status")])

        explore = cache.get_explore(project_uuid, "orders")

        assert _target(explore) == {"fieldRef": "status"}

    def test_get_missing_explore_raises_not_exists(self, db_manager, source_project):
        cache = ExploreCache(db_manager)
        project_uuid = str(source_project.project_uuid)
        cache.save_explores(project_uuid, [_explore("orders")])

        with pytest.raises(NotExistsError, match='Explore "customers" does not exist.'):
            cache.get_explore(project_uuid, "customers")

    def test_get_explore_on_uncached_project_raises_not_exists(self, db_manager):
        with pytest.raises(NotExistsError):
            ExploreCache(db_manager).get_explore(str(uuid.uuid4()), "orders")

    def test_non_list_payload_is_rejected(self, db_manager, source_project):
        with db_manager.get_session() as session:
            session.add(CachedExplores(project_uuid=source_project.project_uuid, explores={"name": "orders"}))

        with pytest.raises(UnexpectedServerError):
            ExploreCache(db_manager).get_explores(str(source_project.project_uuid))

    def test_save_joins_callers_transaction(self, db_manager, source_project):
        cache = ExploreCache(db_manager)
        project_uuid = str(source_project.project_uuid)

        with pytest.raises(RuntimeError):
            with db_manager.get_session() as session:
                cache.save_explores(project_uuid, [_explore("orders")], session=session)
                raise RuntimeError("abort")

        assert cache.get_explores(project_uuid) is None


class TestWarehouseCache:

    def test_save_then_get(self, db_manager, source_project):
        cache = ExploreCache(db_manager)
        project_uuid = str(source_project.project_uuid)
        catalog = {"analytics": {"public": {"orders": {"id": "integer"}}}}

        assert cache.get_warehouse(project_uuid) is None
        cache.save_warehouse(project_uuid, catalog)
        cache.save_warehouse(project_uuid, {"analytics": {}})

        assert cache.get_warehouse(project_uuid) == {"analytics": {}}
