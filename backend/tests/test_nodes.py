import random

import pytest
from sqlalchemy import event

from wbs_app.crud.nodes import delete_node, get_node, list_nodes, move_node, update_node
from wbs_app.crud.projects import create_project, delete_project
from wbs_app.schemas.nodes import NodeUpdate
from wbs_app.schemas.project import ProjectCreate
from wbs_app.services.tree.codes import code_for, codes_by_id, generate_code, propagate_codes, propagate_group
from wbs_app.services.tree.errors import IllegalMove, NodeNotFound, TreeError
from wbs_app.services.tree.reindex import reindex_siblings


def assert_invariants(db, project_id):
    db.expire_all()
    nodes = list_nodes(db, project_id)
    by_id = {n.id: n for n in nodes}
    groups = {}
    for n in nodes:
        groups.setdefault(n.parent_id, []).append(n.order_idx)
        parent = by_id.get(n.parent_id)
        assert n.parent_id is None or parent is not None, f"orphan {n.id}"
        assert n.level == (parent.level + 1 if parent else 0)
        assert n.wbs_code == code_for(nodes, n.id)
        seen, cur = set(), n
        while cur is not None:
            assert cur.id not in seen, f"cycle through {n.id}"
            seen.add(cur.id)
            cur = by_id.get(cur.parent_id)
    for idxs in groups.values():
        assert sorted(idxs) == list(range(len(idxs)))


def test_create_assigns_order_level_and_code(db, add, project):
    a = add("Design")
    b = add("Build")
    b1 = add("Backend", parent_id=b.id)
    b2 = add("Frontend", parent_id=b.id)
    assert (a.order_idx, a.level, a.wbs_code) == (0, 0, "1")
    assert (b.order_idx, b.wbs_code) == (1, "2")
    assert (b1.level, b1.wbs_code) == (1, "2.1")
    assert (b2.order_idx, b2.wbs_code) == (1, "2.2")
    assert_invariants(db, project.id)


def test_root_groups_do_not_mix_across_projects(db, add, project):
    other = create_project(db, ProjectCreate(code="PRJ-2", name="Other"))
    add("Design")
    first_other = add("Elsewhere", project_id=other.id)
    assert first_other.order_idx == 0
    assert first_other.wbs_code == "1"


def test_create_rejects_unknown_parent_and_project(db, add, project):
    with pytest.raises(NodeNotFound):
        add("child", parent_id=999)
    with pytest.raises(NodeNotFound) as exc:
        add("x", project_id=999)
    assert exc.value.code == "project_not_found"


def test_create_rejects_parent_from_other_project(db, add, project):
    other = create_project(db, ProjectCreate(code="PRJ-2", name="Other"))
    foreign = add("Foreign", project_id=other.id)
    with pytest.raises(TreeError) as exc:
        add("child", parent_id=foreign.id)
    assert exc.value.code == "parent_not_in_project"


def test_move_above_swaps_codes(db, add, project):
    design = add("Design")
    build = add("Build")
    assert (design.id, build.id) == (1, 2)

    move_node(db, build.id, design.id, "above")

    db.expire_all()
    design, build = get_node(db, 1), get_node(db, 2)
    assert (build.order_idx, design.order_idx) == (0, 1)
    assert (build.wbs_code, design.wbs_code) == ("1", "2")


def test_move_subtree_inside_childless_node(db, add, project):
    for i in range(4):
        add(f"filler {i}")
    a = add("A")
    a1 = add("A1", parent_id=a.id)
    a2 = add("A2", parent_id=a.id)
    add("filler 8")
    b = add("B")
    assert (a.id, a1.id, a2.id, b.id) == (5, 6, 7, 9)

    moved = move_node(db, 5, 9, "inside")

    assert moved.parent_id == 9
    assert moved.level == b.level + 1
    assert moved.order_idx == 0
    assert moved.wbs_code == "6.1"
    db.expire_all()
    assert [get_node(db, i).wbs_code for i in (6, 7)] == ["6.1.1", "6.1.2"]
    assert [get_node(db, i).level for i in (6, 7)] == [2, 2]
    assert get_node(db, 9).wbs_code == "6"
    assert_invariants(db, project.id)


def test_move_inside_own_descendant_rejected(db, add, project, rows):
    a = add("A")
    a1 = add("A1", parent_id=a.id)
    a11 = add("A11", parent_id=a1.id)
    before = rows()

    with pytest.raises(IllegalMove) as exc:
        move_node(db, a.id, a11.id, "inside")

    assert exc.value.code == "move_into_subtree"
    assert rows() == before


def test_move_rejections_leave_tree_unchanged(db, add, project, rows):
    a = add("A")
    a1 = add("A1", parent_id=a.id)
    before = rows()
    with pytest.raises(IllegalMove):
        move_node(db, a.id, a.id, "below")
    with pytest.raises(IllegalMove):
        move_node(db, a1.id, a.id, "inside")
    with pytest.raises(NodeNotFound):
        move_node(db, a.id, 999, "inside")
    assert rows() == before


def test_move_down_within_group(db, add, project):
    ids = [add(n).id for n in ("a", "b", "c", "d")]
    move_node(db, ids[0], ids[2], "below")
    db.expire_all()
    order = [n.id for n in sorted(list_nodes(db, project.id), key=lambda n: n.order_idx)]
    assert order == [ids[1], ids[2], ids[0], ids[3]]
    assert_invariants(db, project.id)


def test_move_renumbers_source_group(db, add, project):
    p = add("P")
    kids = [add(f"k{i}", parent_id=p.id) for i in range(3)]
    q = add("Q")
    move_node(db, kids[0].id, q.id, "inside")
    db.expire_all()
    assert [get_node(db, k.id).wbs_code for k in kids[1:]] == ["1.1", "1.2"]
    assert get_node(db, kids[0].id).wbs_code == "2.1"
    assert_invariants(db, project.id)


def test_random_moves_keep_invariants(db, add, project):
    ids = []
    for i in range(12):
        parent = random.Random(i).choice([None] + ids)
        ids.append(add(f"n{i}", parent_id=parent).id)

    rnd = random.Random(7)
    applied = 0
    for _ in range(40):
        node_id, target_id = rnd.sample(ids, 2)
        try:
            move_node(db, node_id, target_id, rnd.choice(["above", "below", "inside"]))
            applied += 1
        except IllegalMove:
            continue
        assert_invariants(db, project.id)
    assert applied > 0


def test_delete_cascades_and_reindexes(db, add, project):
    a = add("A")
    b = add("B")
    b1 = add("B1", parent_id=b.id)
    add("B11", parent_id=b1.id)
    c = add("C")
    c1 = add("C1", parent_id=c.id)

    assert delete_node(db, b) == 3

    db.expire_all()
    remaining = {n.id for n in list_nodes(db, project.id)}
    assert remaining == {a.id, c.id, c1.id}
    assert (get_node(db, c.id).order_idx, get_node(db, c.id).wbs_code) == (1, "2")
    assert get_node(db, c1.id).wbs_code == "2.1"
    assert_invariants(db, project.id)


def test_delete_project_removes_nodes(db, add, project):
    a = add("A")
    add("A1", parent_id=a.id)
    assert delete_project(db, project) == 2
    db.expire_all()
    assert list_nodes(db, project.id) == []


def test_update_fields_only(db, add, project):
    a = add("A")
    add("B")
    db.refresh(a)
    stamp = a.updated_at
    out = update_node(db, a, NodeUpdate(name="  Renamed ", description="  ", type="milestone"))
    assert out.name == "Renamed"
    assert out.description is None
    assert out.type == "milestone"
    assert (out.order_idx, out.wbs_code) == (0, "1")
    assert out.updated_at >= stamp


def test_update_parent_relocates(db, add, project):
    a = add("A")
    b = add("B")
    b1 = add("B1", parent_id=b.id)
    out = update_node(db, b1, NodeUpdate(parent_id=a.id))
    assert (out.parent_id, out.level, out.wbs_code) == (a.id, 1, "1.1")

    out = update_node(db, out, NodeUpdate(parent_id=None, order_idx=0))
    assert (out.parent_id, out.level, out.order_idx, out.wbs_code) == (None, 0, 0, "1")
    assert_invariants(db, project.id)


def test_update_parent_cycle_rejected(db, add, project, rows):
    a = add("A")
    a1 = add("A1", parent_id=a.id)
    before = rows()
    with pytest.raises(IllegalMove):
        update_node(db, a, NodeUpdate(parent_id=a1.id))
    with pytest.raises(IllegalMove):
        update_node(db, get_node(db, a.id), NodeUpdate(parent_id=a.id))
    assert rows() == before


def test_reindex_closes_gaps(db, add, project):
    nodes = [add(n) for n in ("a", "b", "c")]
    nodes[0].order_idx, nodes[1].order_idx, nodes[2].order_idx = 3, 10, 42
    db.commit()
    out = reindex_siblings(db, project.id, None)
    assert [(n.id, n.order_idx) for n in out] == [(nodes[0].id, 0), (nodes[1].id, 1), (nodes[2].id, 2)]


def test_generate_code_and_propagation(db, add, project):
    a = add("A")
    a1 = add("A1", parent_id=a.id)
    assert generate_code(db, 999) is None
    assert generate_code(db, a1.id) == "1.1"

    a1.wbs_code = "stale"
    a1.level = 7
    db.flush()
    assert propagate_codes(db, a.id) == [a.id, a1.id]
    assert (a1.wbs_code, a1.level) == ("1.1", 1)


def test_group_propagation_loads_project_once(db, engine, add, project):
    parent = None
    chain = []
    for depth in range(6):
        parent = add(f"L{depth}", parent_id=parent.id if parent else None)
        chain.append(parent)
    add("Second root")
    for n in chain:
        n.wbs_code = "stale"
    db.flush()

    selects = []

    @event.listens_for(engine, "before_cursor_execute")
    def count(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith("SELECT"):
            selects.append(statement)

    try:
        touched = propagate_group(db, project.id, None)
    finally:
        event.remove(engine, "before_cursor_execute", count)

    assert len(selects) == 1
    assert len(touched) == 7
    assert [n.wbs_code for n in chain] == ["1", "1.1", "1.1.1", "1.1.1.1", "1.1.1.1.1", "1.1.1.1.1.1"]
    assert_invariants(db, project.id)


def test_codes_by_id_ranks_by_order_then_id(db, add, project):
    a = add("A")
    b = add("B")
    b1 = add("B1", parent_id=b.id)
    b2 = add("B2", parent_id=b.id)
    b2.order_idx = b1.order_idx
    nodes = list_nodes(db, project.id)
    assert codes_by_id(nodes) == {a.id: "1", b.id: "2", b1.id: "2.1", b2.id: "2.2"}
