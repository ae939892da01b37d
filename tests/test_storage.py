"""
Tests for the entity stores.

Covers FileEntityStore against a temp directory and HttpEntityStore against
a mocked requests session.
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from orgchart.config import Settings
from orgchart.edit import HierarchyEditor
from orgchart.models import NodeKind
from orgchart.storage import (
    EntityStore,
    EntityStoreError,
    FileEntityStore,
    HttpEntityStore,
    create_store,
)


def write_records(path, name, records):
    (path / name).write_text(json.dumps(records), encoding="utf-8")


class TestFileEntityStore:

    @pytest.fixture
    def store(self, tmp_path):
        return FileEntityStore(str(tmp_path))

    def test_conforms_to_protocol(self, store):
        assert isinstance(store, EntityStore)
        assert store.store_type == "file"

    def test_empty_store(self, store):
        assert store.fetch_nodes(NodeKind.SECTOR) == []
        assert store.fetch_nodes(NodeKind.POSITION) == []

    def test_seed_demo_data(self, store):
        store.seed_demo_data()
        sectors = {n.display_name: n for n in store.fetch_nodes(NodeKind.SECTOR)}
        positions = {n.display_name: n for n in store.fetch_nodes(NodeKind.POSITION)}

        assert len(sectors) == 5
        assert len(positions) == 6
        assert sectors["Operations"].parent_id == sectors["Board"].id
        assert sectors["Board"].child_count == 2
        assert positions["Board Secretary"].group_key == sectors["Board"].id
        assert positions["CEO"].child_count == 1

    def test_seed_is_skipped_when_data_exists(self, store):
        store.seed_demo_data()
        store.seed_demo_data()
        assert len(store.fetch_nodes(NodeKind.SECTOR)) == 5

    def test_legacy_records_are_read(self, store, tmp_path):
        write_records(tmp_path, "sectors.json", [
            {"id": 1, "nome": "Diretoria", "setorPaiId": None},
            {"id": 2, "nome": "Compras", "setorPaiId": 1},
        ])
        nodes = store.fetch_nodes(NodeKind.SECTOR)
        assert [(n.id, n.display_name, n.parent_id) for n in nodes] == [
            ("1", "Diretoria", None), ("2", "Compras", "1"),
        ]

    def test_malformed_records_are_skipped(self, store, tmp_path):
        write_records(tmp_path, "sectors.json", [{"displayName": "no id"}, None, {"id": "a"}])
        assert [n.id for n in store.fetch_nodes(NodeKind.SECTOR)] == ["a"]

    def test_corrupt_file_raises(self, store, tmp_path):
        (tmp_path / "sectors.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(EntityStoreError) as exc:
            store.fetch_nodes(NodeKind.SECTOR)
        assert exc.value.operation == "fetch_nodes"

    def test_update_hierarchy(self, store, tmp_path):
        write_records(tmp_path, "sectors.json", [
            {"id": "a", "displayName": "A"},
            {"id": "b", "displayName": "B", "parentId": "a"},
            {"id": "c", "displayName": "C"},
        ])
        store.update_hierarchy(NodeKind.SECTOR, [
            {"id": "c", "newParentId": "b"},
            {"id": "b", "newParentId": None},
        ])
        parents = {n.id: n.parent_id for n in store.fetch_nodes(NodeKind.SECTOR)}
        assert parents == {"a": None, "b": None, "c": "b"}

    def test_update_rejects_unknown_ids(self, store, tmp_path):
        write_records(tmp_path, "sectors.json", [{"id": "a", "displayName": "A"}])
        with pytest.raises(EntityStoreError) as exc:
            store.update_hierarchy(NodeKind.SECTOR, [{"id": "zzz", "newParentId": None}])
        assert exc.value.status_code == 404
        with pytest.raises(EntityStoreError):
            store.update_hierarchy(NodeKind.SECTOR, [{"id": "a", "newParentId": "zzz"}])

    def test_update_rejecting_cycle_writes_nothing(self, store, tmp_path):
        write_records(tmp_path, "sectors.json", [
            {"id": "a", "displayName": "A"},
            {"id": "b", "displayName": "B", "parentId": "a"},
        ])
        with pytest.raises(EntityStoreError) as exc:
            store.update_hierarchy(NodeKind.SECTOR, [{"id": "a", "newParentId": "b"}])
        assert exc.value.status_code == 409
        assert {n.id: n.parent_id for n in store.fetch_nodes(NodeKind.SECTOR)} == {"a": None, "b": "a"}

    def test_update_rejects_cross_group_positions(self, store, tmp_path):
        write_records(tmp_path, "positions.json", [
            {"id": "p1", "displayName": "P1", "groupKey": "s1"},
            {"id": "p2", "displayName": "P2", "groupKey": "s2"},
        ])
        with pytest.raises(EntityStoreError) as exc:
            store.update_hierarchy(NodeKind.POSITION, [{"id": "p2", "newParentId": "p1"}])
        assert exc.value.status_code == 409

    def test_create_rename_delete(self, store):
        root = store.create_node(NodeKind.SECTOR, "Root")
        child = store.create_node(NodeKind.SECTOR, "Child", parent_id=root.id)
        store.rename_node(NodeKind.SECTOR, child.id, "Renamed")

        nodes = {n.id: n for n in store.fetch_nodes(NodeKind.SECTOR)}
        assert nodes[child.id].display_name == "Renamed"
        assert nodes[root.id].child_count == 0

        store.delete_node(NodeKind.SECTOR, root.id)
        nodes = {n.id: n for n in store.fetch_nodes(NodeKind.SECTOR)}
        assert root.id not in nodes
        assert nodes[child.id].parent_id is None

    def test_rename_and_delete_unknown(self, store):
        with pytest.raises(EntityStoreError):
            store.rename_node(NodeKind.SECTOR, "zzz", "X")
        with pytest.raises(EntityStoreError):
            store.delete_node(NodeKind.SECTOR, "zzz")

    def test_position_inherits_group_from_parent(self, store):
        boss = store.create_node(NodeKind.POSITION, "Boss", group_key="s1")
        report = store.create_node(NodeKind.POSITION, "Report", parent_id=boss.id)
        assert report.group_key == "s1"


class TestHttpEntityStore:

    @pytest.fixture
    def session(self):
        session = MagicMock()
        session.headers = {}
        response = MagicMock()
        response.ok = True
        response.status_code = 200
        response.json.return_value = []
        session.request.return_value = response
        return session

    @pytest.fixture
    def store(self, session):
        return HttpEntityStore("http://api.test/api/", token="secret", timeout=5.0, session=session)

    def test_conforms_to_protocol(self, store):
        assert isinstance(store, EntityStore)
        assert store.store_type == "http"

    def test_bearer_token(self, store, session):
        assert session.headers["Authorization"] == "Bearer secret"

    def test_fetch_sectors(self, store, session):
        session.request.return_value.json.return_value = [
            {"id": 1, "nome": "Diretoria", "setorPaiId": None, "quantidadeCargos": 2},
            {"id": 2, "nome": "Compras", "setorPaiId": 1},
        ]
        nodes = store.fetch_nodes(NodeKind.SECTOR)

        session.request.assert_called_once_with("GET", "http://api.test/api/setores", timeout=5.0)
        assert [(n.id, n.parent_id) for n in nodes] == [("1", None), ("2", "1")]
        assert nodes[0].child_count == 2

    def test_fetch_positions_path(self, store, session):
        store.fetch_nodes(NodeKind.POSITION)
        assert session.request.call_args.args == ("GET", "http://api.test/api/cargos")

    def test_update_hierarchy_posts_batch(self, store, session):
        updates = [{"id": "7", "newParentId": None}]
        store.update_hierarchy(NodeKind.POSITION, updates)
        session.request.assert_called_once_with(
            "POST", "http://api.test/api/cargos/update-hierarchy",
            timeout=5.0, json={"updates": updates},
        )

    def test_http_error_becomes_store_error(self, store, session):
        session.request.return_value.ok = False
        session.request.return_value.status_code = 500
        with pytest.raises(EntityStoreError) as exc:
            store.update_hierarchy(NodeKind.SECTOR, [])
        assert exc.value.status_code == 500
        assert exc.value.operation == "update_hierarchy"

    def test_transport_error_becomes_store_error(self, store, session):
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(EntityStoreError) as exc:
            store.fetch_nodes(NodeKind.SECTOR)
        assert exc.value.status_code is None

    def test_invalid_json(self, store, session):
        session.request.return_value.json.side_effect = ValueError("bad json")
        with pytest.raises(EntityStoreError):
            store.fetch_nodes(NodeKind.SECTOR)

    def test_null_entries_are_skipped(self, store, session):
        session.request.return_value.json.return_value = [{"id": "a", "displayName": "A"}, None, "junk"]
        assert [n.id for n in store.fetch_nodes(NodeKind.SECTOR)] == ["a"]

    def test_editor_loads_around_null_entries(self, store, session):
        session.request.return_value.json.return_value = [{"id": "a", "displayName": "A"}, None]
        editor = HierarchyEditor(store, NodeKind.SECTOR)
        assert editor.load()
        assert [n.id for n in editor.forest] == ["a"]

    def test_non_list_body(self, store, session):
        session.request.return_value.json.return_value = {"items": []}
        with pytest.raises(EntityStoreError):
            store.fetch_nodes(NodeKind.SECTOR)

    def test_crud_requests(self, store, session):
        session.request.return_value.json.return_value = {"id": 9, "displayName": "New", "parentId": 1}
        node = store.create_node(NodeKind.SECTOR, "New", parent_id="1")
        assert node.id == "9"
        assert session.request.call_args.kwargs["json"] == {"displayName": "New", "parentId": "1"}

        store.rename_node(NodeKind.SECTOR, "9", "Renamed")
        assert session.request.call_args.args == ("PUT", "http://api.test/api/setores/9")

        store.delete_node(NodeKind.SECTOR, "9")
        assert session.request.call_args.args == ("DELETE", "http://api.test/api/setores/9")


class TestFactory:

    def test_http_store(self):
        store = create_store(Settings(store="http", api_base_url="http://api.test", api_token=None))
        assert isinstance(store, HttpEntityStore)
        assert store.base_url == "http://api.test"

    def test_file_store(self, tmp_path):
        store = create_store(Settings(store="file", data_dir=str(tmp_path), seed_demo=False))
        assert isinstance(store, FileEntityStore)
        assert store.fetch_nodes(NodeKind.SECTOR) == []

    def test_file_store_seeds_demo(self, tmp_path):
        store = create_store(Settings(store="file", data_dir=str(tmp_path), seed_demo=True))
        assert len(store.fetch_nodes(NodeKind.SECTOR)) == 5

    def test_unknown_type_falls_back_to_file(self, tmp_path):
        store = create_store(Settings(store="ldap", data_dir=str(tmp_path), seed_demo=False))
        assert isinstance(store, FileEntityStore)
