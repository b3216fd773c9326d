from app.services.tree.layout import (
    COLUMN_WIDTH,
    ROW_HEIGHT,
    SPOUSE_GAP,
    UNPLACED,
    LayoutMember,
    compute_connections,
    compute_layout,
    count_generations,
)


def _three_generations() -> list[LayoutMember]:
    return [
        LayoutMember(id="me", parent_ids=["dad", "mom"], children_ids=["kid"], spouse_ids=["wife"]),
        LayoutMember(id="dad", children_ids=["me"], spouse_ids=["mom"]),
        LayoutMember(id="mom", children_ids=["me"], spouse_ids=["dad"]),
        LayoutMember(id="wife", children_ids=["kid"], spouse_ids=["me"]),
        LayoutMember(id="kid", parent_ids=["me", "wife"]),
    ]


def test_center_member_sits_at_origin() -> None:
    layout = compute_layout(_three_generations(), "me")

    assert layout.center_id == "me"
    me = layout.placements["me"]
    assert (me.level, me.x, me.y) == (0, 0, 0)


def test_levels_follow_parent_and_child_links() -> None:
    layout = compute_layout(_three_generations(), "me")
    placements = layout.placements

    assert placements["kid"].level == 1
    assert placements["kid"].y == ROW_HEIGHT
    assert placements["dad"].level == -1
    assert placements["mom"].level == -1
    assert placements["dad"].y == -ROW_HEIGHT
    assert placements["wife"].level == 0
    assert layout.generations == 3


def test_members_on_the_same_level_fan_out_by_column() -> None:
    placements = compute_layout(_three_generations(), "me").placements

    # dad is the first visit on level -1, mom the second
    assert placements["dad"].x == 0
    assert placements["mom"].x == COLUMN_WIDTH
    # spouse is seeded next to the member and is second on level 0
    assert placements["wife"].x == SPOUSE_GAP + COLUMN_WIDTH


def test_unreachable_members_are_left_unplaced() -> None:
    members = _three_generations() + [LayoutMember(id="stranger")]

    placements = compute_layout(members, "me").placements

    assert placements["stranger"] == UNPLACED


def test_unknown_center_leaves_everyone_unplaced() -> None:
    members = _three_generations()

    layout = compute_layout(members, "nobody")

    assert all(placement == UNPLACED for placement in layout.placements.values())
    assert layout.generations == 1


def test_first_member_is_used_when_center_missing() -> None:
    layout = compute_layout(_three_generations())

    assert layout.center_id == "me"


def test_spouse_connection_is_emitted_once_per_pair() -> None:
    connections = compute_connections(_three_generations())

    spouse_pairs = [frozenset((c.from_id, c.to_id)) for c in connections if c.type == "spouse"]
    assert sorted(map(sorted, spouse_pairs)) == [["dad", "mom"], ["me", "wife"]]
    assert all(c.strength == 0.8 for c in connections if c.type == "spouse")


def test_parent_and_child_connections_point_downward() -> None:
    connections = compute_connections(_three_generations())

    parents = {(c.from_id, c.to_id) for c in connections if c.type == "parent"}
    children = {(c.from_id, c.to_id) for c in connections if c.type == "child"}
    assert ("dad", "me") in parents
    assert ("me", "kid") in parents
    assert ("me", "kid") in children
    assert ("wife", "kid") in children


def test_links_to_members_outside_the_set_are_ignored() -> None:
    members = [LayoutMember(id="solo", parent_ids=["ghost"], spouse_ids=["ghost"])]

    assert compute_connections(members) == []
    assert compute_layout(members).generations == 1


def test_generation_count_for_empty_tree() -> None:
    assert count_generations({}) == 0
    assert compute_layout([]).center_id is None
