"""Breadth-first placement of family members on a 2-D grid.

Levels grow downward: the center member sits on level 0, parents on -1,
children on +1. Each level keeps a running count used to fan members out
horizontally; vertical placement is ``level * ROW_HEIGHT``.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Hashable, Sequence
from dataclasses import dataclass, field
from typing import Literal

COLUMN_WIDTH = 300
ROW_HEIGHT = 150
SPOUSE_GAP = 100

PARENT_STRENGTH = 1.0
CHILD_STRENGTH = 1.0
SPOUSE_STRENGTH = 0.8

ConnectionType = Literal["parent", "spouse", "child"]


@dataclass
class LayoutMember:
    id: Hashable
    parent_ids: list[Hashable] = field(default_factory=list)
    children_ids: list[Hashable] = field(default_factory=list)
    spouse_ids: list[Hashable] = field(default_factory=list)


@dataclass(frozen=True)
class Placement:
    level: int
    x: float
    y: float


@dataclass(frozen=True)
class Connection:
    from_id: Hashable
    to_id: Hashable
    type: ConnectionType
    strength: float


@dataclass
class TreeLayout:
    placements: dict[Hashable, Placement]
    connections: list[Connection]
    generations: int
    center_id: Hashable | None


UNPLACED = Placement(level=0, x=0, y=0)


def compute_positions(
    members: Sequence[LayoutMember],
    center_id: Hashable | None,
) -> dict[Hashable, Placement]:
    by_id = {member.id: member for member in members}
    placements: dict[Hashable, Placement] = {}
    if center_id not in by_id:
        return {member.id: UNPLACED for member in members}

    level_counts: dict[int, int] = {}
    visited: set[Hashable] = set()
    queue: deque[tuple[Hashable, int, float | None]] = deque([(center_id, 0, None)])

    while queue:
        member_id, level, seed = queue.popleft()
        if member_id in visited:
            continue
        visited.add(member_id)

        count = level_counts.get(level, 0)
        x = (seed if seed is not None else 0) + count * COLUMN_WIDTH
        placements[member_id] = Placement(level=level, x=x, y=level * ROW_HEIGHT)
        level_counts[level] = count + 1

        member = by_id[member_id]
        for child_id in member.children_ids:
            if child_id in by_id and child_id not in visited:
                queue.append((child_id, level + 1, x))
        for parent_id in member.parent_ids:
            if parent_id in by_id and parent_id not in visited:
                queue.append((parent_id, level - 1, x))
        for spouse_id in member.spouse_ids:
            if spouse_id in by_id and spouse_id not in visited:
                queue.append((spouse_id, level, x + SPOUSE_GAP))

    for member in members:
        placements.setdefault(member.id, UNPLACED)
    return placements


def compute_connections(members: Sequence[LayoutMember]) -> list[Connection]:
    known = {member.id for member in members}
    connections: list[Connection] = []
    seen_spouse_pairs: set[frozenset[Hashable]] = set()

    for member in members:
        for parent_id in member.parent_ids:
            if parent_id in known:
                connections.append(Connection(parent_id, member.id, "parent", PARENT_STRENGTH))

        for spouse_id in member.spouse_ids:
            if spouse_id not in known:
                continue
            pair = frozenset((member.id, spouse_id))
            if pair in seen_spouse_pairs:
                continue
            seen_spouse_pairs.add(pair)
            connections.append(Connection(member.id, spouse_id, "spouse", SPOUSE_STRENGTH))

        for child_id in member.children_ids:
            if child_id in known:
                connections.append(Connection(member.id, child_id, "child", CHILD_STRENGTH))
    return connections


def count_generations(placements: dict[Hashable, Placement]) -> int:
    if not placements:
        return 0
    levels = [placement.level for placement in placements.values()]
    return max(levels) - min(levels) + 1


def compute_layout(
    members: Sequence[LayoutMember],
    center_id: Hashable | None = None,
) -> TreeLayout:
    if center_id is None and members:
        center_id = members[0].id
    placements = compute_positions(members, center_id)
    return TreeLayout(
        placements=placements,
        connections=compute_connections(members),
        generations=count_generations(placements),
        center_id=center_id,
    )
