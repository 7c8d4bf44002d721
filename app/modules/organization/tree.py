# app/modules/organization/tree.py
"""
Organization tree builder.

Turns the flat rows of the store (units, profiles, role assignments and
manager-unit links) into the forest consumed by the dashboard. The tree is
rebuilt from scratch on every read.
"""
from collections import defaultdict, deque
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence
import logging

from app.shared.database.models import DEFAULT_ROLE, GENERAL_MANAGER, UNIT_MANAGER
from app.shared.schemas.common import ProfileSummary
from .schemas import (
    UnitNode, MemberView, GeneralManagerView, OrganizationTree, OrganizationStats
)

logger = logging.getLogger(__name__)


class OrganizationIntegrityError(Exception):
    """The stored hierarchy is not a forest (dangling parent or cycle)"""

    def __init__(self, message: str, unit_ids: Sequence[Any] = ()):
        super().__init__(message)
        self.unit_ids = list(unit_ids)


def build_role_map(roles: Iterable[Any]) -> Dict[Any, str]:
    return {row.user_id: row.role for row in roles}


def _summary(profile: Any) -> ProfileSummary:
    return ProfileSummary(
        id=profile.id,
        full_name=profile.full_name,
        email=profile.email,
        avatar_url=profile.avatar_url,
    )


def _general_managers(
    profiles: Sequence[Any],
    role_map: Dict[Any, str],
    manager_units: Sequence[Any],
) -> List[GeneralManagerView]:
    managed: Dict[Any, List[Any]] = defaultdict(list)
    for link in manager_units:
        managed[link.user_id].append(link.unit_id)

    return [
        GeneralManagerView(
            **_summary(profile).model_dump(),
            managed_unit_ids=managed.get(profile.id, []),
        )
        for profile in profiles
        if role_map.get(profile.id, DEFAULT_ROLE) == GENERAL_MANAGER
    ]


def _make_node(unit: Any, level: int, unit_profiles: List[Any], role_map: Dict[Any, str]) -> UnitNode:
    members = []
    managers = []
    for profile in unit_profiles:
        role = role_map.get(profile.id, DEFAULT_ROLE)
        members.append(MemberView(**_summary(profile).model_dump(), role=role))
        if role == UNIT_MANAGER:
            managers.append(profile)

    conflict_ids = []
    if len(managers) > 1:
        conflict_ids = [profile.id for profile in managers]
        logger.warning(
            f"Unit {unit.id} has {len(managers)} unit managers {conflict_ids}; "
            f"reporting {managers[0].id}"
        )

    return UnitNode(
        id=unit.id,
        name=unit.name,
        code=unit.code,
        parent_id=unit.parent_id,
        created_at=getattr(unit, "created_at", None),
        updated_at=getattr(unit, "updated_at", None),
        children=[],
        manager=_summary(managers[0]) if managers else None,
        manager_conflict_ids=conflict_ids,
        members=members,
        level=level,
    )


def build_organization_tree(
    units: Sequence[Any],
    profiles: Sequence[Any],
    roles: Sequence[Any],
    manager_units: Sequence[Any],
) -> OrganizationTree:
    """
    Build the organization forest.

    ``units`` must already be in sibling order (by name); that order is kept.
    Every unit ends up exactly once in the result, either as a root or under
    its parent. Raises OrganizationIntegrityError when a unit points at a
    missing parent or sits on a parent cycle.
    """
    role_map = build_role_map(roles)

    unit_ids = set()
    children_by_parent: Dict[Optional[Any], List[Any]] = defaultdict(list)
    for unit in units:
        if unit.id in unit_ids:
            raise OrganizationIntegrityError(f"Duplicate unit id {unit.id}", [unit.id])
        unit_ids.add(unit.id)
        children_by_parent[unit.parent_id].append(unit)

    dangling = [
        unit.id for unit in units
        if unit.parent_id is not None and unit.parent_id not in unit_ids
    ]
    if dangling:
        raise OrganizationIntegrityError(
            f"Units reference missing parents: {dangling}", dangling
        )

    profiles_by_unit: Dict[Any, List[Any]] = defaultdict(list)
    for profile in profiles:
        if profile.unit_id is not None:
            profiles_by_unit[profile.unit_id].append(profile)

    # Breadth-first so arbitrarily deep trees never hit the recursion limit
    roots: List[UnitNode] = []
    placed = set()
    queue = deque((unit, 0, None) for unit in children_by_parent.get(None, []))
    while queue:
        unit, level, parent_node = queue.popleft()
        node = _make_node(unit, level, profiles_by_unit.get(unit.id, []), role_map)
        placed.add(unit.id)
        if parent_node is None:
            roots.append(node)
        else:
            parent_node.children.append(node)
        for child in children_by_parent.get(unit.id, []):
            queue.append((child, level + 1, node))

    # With every parent present, anything unreachable from a root is on a cycle
    unreachable = [unit.id for unit in units if unit.id not in placed]
    if unreachable:
        raise OrganizationIntegrityError(
            f"Units form a parent cycle: {unreachable}", unreachable
        )

    return OrganizationTree(
        general_managers=_general_managers(profiles, role_map, manager_units),
        units=roots,
    )


# ==================== AGGREGATES ====================

def iter_nodes(nodes: Iterable[UnitNode]) -> Iterator[UnitNode]:
    stack = list(reversed(list(nodes)))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def count_units(nodes: Iterable[UnitNode]) -> int:
    return sum(1 for _ in iter_nodes(nodes))


def count_members(nodes: Iterable[UnitNode]) -> int:
    return sum(len(node.members) for node in iter_nodes(nodes))


def count_managers(nodes: Iterable[UnitNode]) -> int:
    return sum(1 for node in iter_nodes(nodes) if node.manager is not None)


def organization_stats(tree: OrganizationTree) -> OrganizationStats:
    members = count_members(tree.units)
    managers = count_managers(tree.units)
    return OrganizationStats(
        general_managers=len(tree.general_managers),
        units=count_units(tree.units),
        unit_managers=managers,
        sales_staff=members - managers,
        total_members=members,
    )
