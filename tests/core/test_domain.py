"""
Tests for domain enums, raw records, hierarchy nodes and the node factory.
"""

from datetime import UTC, datetime, timedelta

import pytest

from tracktree.core.domain import (
    CollectionKind,
    HierarchyNode,
    NodeFactory,
    NodeKind,
    RawItem,
    TimeEntry,
    User,
    count_nodes,
    parse_epoch_millis,
    to_epoch_millis,
)
from tracktree.core.exceptions import InvalidChildError, InvalidItemError, InvalidKindError


# =============================================================================
# Enums
# =============================================================================


class TestNodeKind:
    """Tests for NodeKind."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("space", NodeKind.SPACE),
            ("Folder", NodeKind.FOLDER),
            (" list ", NodeKind.LIST),
            ("task", NodeKind.TASK),
            ("SUBTASK", NodeKind.SUBTASK),
        ],
    )
    def test_from_string(self, value, expected):
        assert NodeKind.from_string(value) is expected

    def test_from_string_accepts_kind(self):
        assert NodeKind.from_string(NodeKind.TASK) is NodeKind.TASK

    @pytest.mark.parametrize("value", ["epic", "", None, 3])
    def test_from_string_rejects_unknown(self, value):
        with pytest.raises(InvalidKindError):
            NodeKind.from_string(value)

    def test_selectable_only_for_tasks(self):
        assert [kind for kind in NodeKind if kind.selectable] == [NodeKind.TASK, NodeKind.SUBTASK]

    def test_tracks_closure_only_for_tasks(self):
        assert [kind for kind in NodeKind if kind.tracks_closure] == [
            NodeKind.TASK,
            NodeKind.SUBTASK,
        ]

    def test_display_name(self):
        assert NodeKind.SUBTASK.display_name == "Subtask"


class TestCollectionKind:
    """Tests for CollectionKind."""

    @pytest.mark.parametrize(
        ("kind", "path", "key"),
        [
            (CollectionKind.SPACES, "team/9/space", "spaces"),
            (CollectionKind.FOLDERS, "space/9/folder", "folders"),
            (CollectionKind.SPACE_LISTS, "space/9/list", "lists"),
            (CollectionKind.FOLDER_LISTS, "folder/9/list", "lists"),
            (CollectionKind.TASKS, "list/9/task", "tasks"),
        ],
    )
    def test_paths_and_keys(self, kind, path, key):
        assert kind.path("9") == path
        assert kind.response_key == key

    def test_node_kinds(self):
        assert CollectionKind.SPACES.node_kind is NodeKind.SPACE
        assert CollectionKind.FOLDERS.node_kind is NodeKind.FOLDER
        assert CollectionKind.SPACE_LISTS.node_kind is NodeKind.LIST
        assert CollectionKind.FOLDER_LISTS.node_kind is NodeKind.LIST
        assert CollectionKind.TASKS.node_kind is NodeKind.TASK

    def test_only_tasks_are_paginated(self):
        assert [kind for kind in CollectionKind if kind.paginated] == [CollectionKind.TASKS]


# =============================================================================
# Raw records
# =============================================================================


class TestEpochMillis:
    """Tests for timestamp conversion."""

    def test_parse_string(self):
        assert parse_epoch_millis("1700000000000") == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)

    def test_parse_number(self):
        assert parse_epoch_millis(0) == datetime(1970, 1, 1, tzinfo=UTC)

    @pytest.mark.parametrize("value", [None, ""])
    def test_parse_empty(self, value):
        assert parse_epoch_millis(value) is None

    def test_parse_invalid(self):
        with pytest.raises(InvalidItemError):
            parse_epoch_millis("yesterday")

    def test_to_epoch_millis(self):
        assert to_epoch_millis(datetime(1970, 1, 1, 0, 0, 1, tzinfo=UTC)) == 1000


class TestRawItem:
    """Tests for RawItem.parse."""

    def test_parse_full_record(self):
        raw = RawItem.parse(
            {
                "id": 42,
                "name": "Task",
                "color": "#123456",
                "custom_id": "ENG-1",
                "parent": "41",
                "space": {"id": "s1"},
                "date_closed": "1000",
                "status": {"status": "open"},
            }
        )
        assert raw.id == "42"
        assert raw.name == "Task"
        assert raw.color == "#123456"
        assert raw.custom_id == "ENG-1"
        assert raw.parent == "41"
        assert raw.space_id == "s1"
        assert raw.date_closed == datetime(1970, 1, 1, 0, 0, 1, tzinfo=UTC)

    def test_parse_minimal_record(self):
        raw = RawItem.parse({"id": "1"})
        assert raw == RawItem(id="1")

    def test_null_parent_means_root(self):
        assert RawItem.parse({"id": "1", "parent": None}).parent is None

    def test_parse_returns_raw_item_unchanged(self):
        raw = RawItem(id="1", name="x")
        assert RawItem.parse(raw) is raw

    @pytest.mark.parametrize("data", [None, "id", 5, ["id"], {"name": "no id"}, {"id": ""}])
    def test_parse_rejects_invalid(self, data):
        with pytest.raises(InvalidItemError):
            RawItem.parse(data)


# =============================================================================
# HierarchyNode
# =============================================================================


def node(node_id: str, label: str, kind: NodeKind = NodeKind.TASK) -> HierarchyNode:
    return HierarchyNode(id=node_id, label=label, kind=kind)


class TestHierarchyNode:
    """Tests for HierarchyNode."""

    def test_children_absent_until_first_child(self):
        parent = node("1", "Parent", NodeKind.LIST)
        assert parent.children is None
        assert not parent.has_children

    def test_add_child_sorts_case_insensitively(self):
        parent = node("1", "Parent", NodeKind.LIST)
        parent.add_child(node("2", "beta"))
        parent.add_child(node("3", "Alpha"))
        parent.add_child(node("4", "gamma"))
        assert [child.label for child in parent.children] == ["Alpha", "beta", "gamma"]

    def test_add_children_batch(self):
        parent = node("1", "Parent", NodeKind.FOLDER)
        parent.add_children([node("2", "b"), node("3", "A")])
        assert [child.id for child in parent.children] == ["3", "2"]

    def test_add_empty_batch_is_noop(self):
        parent = node("1", "Parent", NodeKind.FOLDER)
        parent.add_children([])
        assert parent.children is None

    @pytest.mark.parametrize("child", [None, "child", {"id": "2"}, 3])
    def test_add_child_rejects_non_nodes(self, child):
        parent = node("1", "Parent")
        with pytest.raises(InvalidChildError):
            parent.add_child(child)

    @pytest.mark.parametrize("children", ["abc", {"id": "2"}, None, [node("2", "x"), "y"]])
    def test_add_children_rejects_invalid(self, children):
        parent = node("1", "Parent")
        with pytest.raises(InvalidChildError):
            parent.add_children(children)
        assert parent.children is None

    def test_kind_is_immutable(self):
        task = node("1", "Task")
        with pytest.raises(AttributeError):
            task.kind = NodeKind.SPACE

    def test_selectable_follows_kind(self):
        assert node("1", "x", NodeKind.TASK).selectable
        assert not node("1", "x", NodeKind.LIST).selectable

    def test_walk_and_find(self):
        root = node("1", "root", NodeKind.SPACE)
        child = node("2", "child", NodeKind.LIST)
        grandchild = node("3", "grandchild")
        child.add_child(grandchild)
        root.add_child(child)

        assert [n.id for n in root.walk()] == ["1", "2", "3"]
        assert root.find("3") is grandchild
        assert root.find("missing") is None

    def test_to_dict(self):
        task = HierarchyNode(
            id="1",
            label="Task",
            kind=NodeKind.TASK,
            custom_id="ENG-1",
            color="#fff",
            closed_at=datetime(1970, 1, 1, 0, 0, 2, tzinfo=UTC),
        )
        data = task.to_dict()
        assert data["value"] == "1"
        assert data["kind"] == "task"
        assert data["disable"] is False
        assert data["closed_at"] == 2000
        assert "children" not in data

    def test_structural_nodes_are_disabled(self):
        assert node("1", "List", NodeKind.LIST).to_dict()["disable"] is True

    def test_from_dict_rebuilds_subtree(self):
        root = node("1", "root", NodeKind.LIST)
        root.add_children([node("3", "b"), node("2", "a")])
        root.children[0].add_child(node("4", "sub", NodeKind.SUBTASK))

        rebuilt = HierarchyNode.from_dict(root.to_dict())

        assert rebuilt == root

    def test_from_dict_rejects_invalid(self):
        with pytest.raises(InvalidItemError):
            HierarchyNode.from_dict({"label": "no id", "kind": "task"})
        with pytest.raises(InvalidKindError):
            HierarchyNode.from_dict({"id": "1", "kind": "epic"})

    def test_count_nodes(self):
        space = node("s", "space", NodeKind.SPACE)
        lst = node("l", "list", NodeKind.LIST)
        lst.add_children([node("t1", "a"), node("t2", "b")])
        space.add_child(lst)

        counts = count_nodes([space])

        assert counts[NodeKind.SPACE] == 1
        assert counts[NodeKind.LIST] == 1
        assert counts[NodeKind.TASK] == 2
        assert counts[NodeKind.FOLDER] == 0


# =============================================================================
# NodeFactory
# =============================================================================


class TestNodeFactory:
    """Tests for NodeFactory."""

    def test_create_node(self):
        factory = NodeFactory()
        task = factory.create_node({"id": "1", "name": "Task", "custom_id": "X-1"}, "task")
        assert task.id == "1"
        assert task.label == "Task"
        assert task.kind is NodeKind.TASK
        assert task.custom_id == "X-1"
        assert task.children is None

    def test_create_from_existing_node_is_identity(self):
        factory = NodeFactory()
        existing = node("1", "Task")
        assert factory.create_node(existing, NodeKind.SPACE) is existing

    def test_invalid_kind(self):
        with pytest.raises(InvalidKindError):
            NodeFactory().create_node({"id": "1"}, "epic")

    @pytest.mark.parametrize("item", [None, "1", 1, ["id"]])
    def test_invalid_item(self, item):
        with pytest.raises(InvalidItemError):
            NodeFactory().create_node(item, NodeKind.TASK)

    def test_space_color_registered_and_inherited(self):
        factory = NodeFactory()
        factory.create_space({"id": "s1", "name": "Space", "color": "#f00"})
        task = factory.create_task({"id": "t1", "name": "Task", "space": {"id": "s1"}})

        assert factory.colors == {"s1": "#f00"}
        assert task.color == "#f00"

    def test_own_color_wins(self):
        factory = NodeFactory({"s1": "#f00"})
        task = factory.create_task({"id": "t1", "color": "#0f0", "space": {"id": "s1"}})
        assert task.color == "#0f0"

    def test_unknown_space_gives_no_color(self):
        task = NodeFactory().create_task({"id": "t1", "space": {"id": "s9"}})
        assert task.color is None

    def test_closed_at_only_on_tasks(self):
        factory = NodeFactory()
        record = {"id": "1", "date_closed": "1000"}
        assert factory.create_task(record).closed_at is not None
        assert factory.create_subtask(record).closed_at is not None
        assert factory.create_list(record).closed_at is None
        assert factory.create_folder(record).closed_at is None


# =============================================================================
# Users & Time Entries
# =============================================================================


class TestUser:
    """Tests for User."""

    def test_from_api(self):
        user = User.from_api({"id": 7, "username": "ada", "email": "ada@x.io", "role": 3})
        assert user.id == "7"
        assert user.username == "ada"
        assert not user.is_guest

    def test_guest(self):
        assert User.from_api({"id": 8, "username": "g", "role": 4}).is_guest


class TestTimeEntry:
    """Tests for TimeEntry."""

    def test_from_api(self):
        entry = TimeEntry.from_api(
            {
                "id": "e1",
                "start": "0",
                "end": "5400000",
                "description": "Review",
                "task": {"id": "t1", "name": "Task"},
                "user": {"id": 7},
            }
        )
        assert entry.duration == timedelta(minutes=90)
        assert entry.task_id == "t1"
        assert entry.task_name == "Task"
        assert entry.user_id == "7"

    def test_running_timer_has_zero_duration(self):
        entry = TimeEntry.from_api({"id": "e1", "start": "1000", "end": None})
        assert entry.duration == timedelta(0)
        assert entry.task_id is None

    @pytest.mark.parametrize("data", [{}, {"id": "e1"}, {"start": "1"}])
    def test_invalid(self, data):
        with pytest.raises(InvalidItemError):
            TimeEntry.from_api(data)
