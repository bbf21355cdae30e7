from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from swade.domain.models.requirement import (
    NO_REQUIREMENTS,
    And,
    CharacterSnapshot,
    Leaf,
    Not,
    NodeType,
    Or,
    Requirement,
    RequirementExpression,
    RequirementNode,
    RequirementStatus,
    RequirementType,
)


def evaluate(tree: RequirementNode, snapshot: CharacterSnapshot) -> bool:
    if isinstance(tree, And):
        return all(evaluate(child, snapshot) for child in tree.children)
    if isinstance(tree, Or):
        # An empty OR is satisfied, same as an empty AND.
        return not tree.children or any(evaluate(child, snapshot) for child in tree.children)
    if isinstance(tree, Not):
        return not evaluate(tree.child, snapshot)
    if isinstance(tree, Leaf):
        return evaluate_requirement(tree.requirement, snapshot)
    raise TypeError(f"Unsupported requirement node: {type(tree).__name__}")


def evaluate_detailed(tree: RequirementNode, snapshot: CharacterSnapshot) -> list[RequirementStatus]:
    """Flatten the tree into leaf statuses, depth-first and left to right.

    Leaves under an odd number of NOT nodes report the inverted result but keep
    their original description.
    """

    statuses: list[RequirementStatus] = []
    _collect_leaf_statuses(tree, snapshot, statuses, negated=False)
    return statuses


def _collect_leaf_statuses(
    tree: RequirementNode,
    snapshot: CharacterSnapshot,
    statuses: list[RequirementStatus],
    *,
    negated: bool,
) -> None:
    if isinstance(tree, (And, Or)):
        for child in tree.children:
            _collect_leaf_statuses(child, snapshot, statuses, negated=negated)
    elif isinstance(tree, Not):
        _collect_leaf_statuses(tree.child, snapshot, statuses, negated=not negated)
    elif isinstance(tree, Leaf):
        is_met = evaluate_requirement(tree.requirement, snapshot)
        statuses.append(
            RequirementStatus(
                description=tree.requirement.description,
                is_met=(not is_met) if negated else is_met,
            )
        )
    else:
        raise TypeError(f"Unsupported requirement node: {type(tree).__name__}")


def unmet_descriptions(tree: RequirementNode, snapshot: CharacterSnapshot) -> list[str]:
    return [status.description for status in evaluate_detailed(tree, snapshot) if not status.is_met]


def _die_at_least(dies: Mapping[int, int | None], target_id: int, required_size: int) -> bool:
    size = dies.get(int(target_id))
    return size is not None and int(size) >= int(required_size)


def evaluate_requirement(requirement: Requirement, snapshot: CharacterSnapshot) -> bool:
    kind = requirement.requirement_type
    target_id = requirement.target_id
    value = requirement.value

    if kind is RequirementType.RANK:
        return target_id is None or int(snapshot.rank_id) >= int(target_id)
    if kind is RequirementType.ATTRIBUTE:
        if target_id is None or value is None:
            return True
        return _die_at_least(snapshot.attribute_dies, target_id, value)
    if kind is RequirementType.SKILL:
        if target_id is None or value is None:
            return True
        return _die_at_least(snapshot.skill_dies, target_id, value)
    if kind is RequirementType.ARCANE_SKILL:
        if target_id is None or value is None:
            return True
        return _die_at_least(snapshot.arcane_skill_dies, target_id, value)
    if kind is RequirementType.EDGE:
        return target_id is None or int(target_id) in snapshot.edge_ids
    if kind is RequirementType.ARCANE_BACKGROUND:
        if target_id is None:
            return bool(snapshot.arcane_background_ids)
        return int(target_id) in snapshot.arcane_background_ids
    if kind is RequirementType.WILD_CARD:
        return bool(snapshot.is_wild_card)
    # DESCRIPTION: GM-adjudicated, reported but never blocking.
    return True


def combine_requirement_trees(trees: Sequence[RequirementNode]) -> RequirementNode:
    """Join the independent requirement links of one entity; every link must hold."""
    if not trees:
        return NO_REQUIREMENTS
    if len(trees) == 1:
        return trees[0]
    return And(tuple(trees))


def build_requirement_tree(
    root_ids: Iterable[int],
    expressions: Iterable[RequirementExpression],
    requirements: Mapping[int, Requirement],
) -> RequirementNode:
    """Rebuild an entity's requirement tree from flat expression rows.

    ``root_ids`` are the expression ids linked to the entity; each is built on
    its own and the results are combined with AND.
    """

    rows = list(expressions)
    by_id = {row.id: row for row in rows}
    children_by_parent: dict[int, list[RequirementExpression]] = {}
    for row in rows:
        if row.parent_id is not None:
            children_by_parent.setdefault(row.parent_id, []).append(row)
    for siblings in children_by_parent.values():
        siblings.sort(key=lambda row: (row.position, row.id))

    trees: list[RequirementNode] = []
    for root_id in root_ids:
        root = by_id.get(int(root_id))
        if root is None:
            continue
        tree = _build_node(root, children_by_parent, requirements, seen=set())
        if tree is not None:
            trees.append(tree)
    return combine_requirement_trees(trees)


def _build_node(
    row: RequirementExpression,
    children_by_parent: Mapping[int, list[RequirementExpression]],
    requirements: Mapping[int, Requirement],
    *,
    seen: set[int],
) -> RequirementNode | None:
    if row.id in seen:
        raise ValueError(f"Requirement expression {row.id} is part of a cycle")
    seen = seen | {row.id}

    if row.node_type is NodeType.REQUIREMENT:
        requirement = requirements.get(int(row.requirement_id)) if row.requirement_id is not None else None
        return Leaf(requirement) if requirement is not None else None

    children = []
    for child_row in children_by_parent.get(row.id, []):
        child = _build_node(child_row, children_by_parent, requirements, seen=seen)
        if child is not None:
            children.append(child)

    if row.node_type is NodeType.NOT:
        return Not(children[0]) if children else None
    if not children:
        return NO_REQUIREMENTS
    if row.node_type is NodeType.AND:
        return And(tuple(children))
    return Or(tuple(children))
