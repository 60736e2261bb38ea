"""
Structure hierarchy queries for the geofence engine.

Structures form a forest through weak ``parent_id`` references (lookup by
code, never ownership). Cycle prevention is enforced at mutation time by
the structure store; every traversal here still keeps a visited set so it
terminates on corrupted input, e.g. a cycle introduced by bulk import.
"""

from typing import Dict, Iterable, List, Optional, Set

from geofence_engine.core.models import Structure, StructureRelationship, TreeNode, normalize_code


def index_by_code(structures: Iterable[Structure]) -> Dict[str, Structure]:
    """코드 → 구조물 맵 (입력 순서 유지, 중복 코드는 앞의 것을 유지)"""
    index: Dict[str, Structure] = {}
    for structure in structures:
        index.setdefault(structure.code, structure)
    return index


def _children_map(structures: Iterable[Structure]) -> Dict[str, List[Structure]]:
    children: Dict[str, List[Structure]] = {}
    for structure in structures:
        if structure.parent_id:
            children.setdefault(structure.parent_id, []).append(structure)
    return children


def build_forest(structures: Iterable[Structure]) -> List[TreeNode]:
    """
    parent_id로 구조물 숲을 만듭니다.

    부모가 없거나 존재하지 않는 코드를 가리키는 구조물이 루트입니다.
    형제 순서는 입력 순서를 따릅니다. 순환에 갇혀 루트에서 닿지 않는
    구조물은 입력 순서상 첫 구조물을 루트로 삼아 덧붙입니다.

    Returns:
        루트 노드 목록
    """
    structures = list(structures)
    index = index_by_code(structures)
    children = _children_map(structures)
    visited: Set[str] = set()

    def build_node(structure: Structure, depth: int) -> TreeNode:
        visited.add(structure.code)
        nodes = []
        for child in children.get(structure.code, []):
            if child.code not in visited:
                nodes.append(build_node(child, depth + 1))
        return TreeNode(structure=structure, children=nodes, depth=depth)

    forest = [
        build_node(s, 0)
        for s in structures
        if (not s.parent_id or s.parent_id not in index) and s.code not in visited
    ]
    for structure in structures:
        if structure.code not in visited:
            forest.append(build_node(structure, 0))
    return forest


def ancestors(code: str, structures: Iterable[Structure]) -> List[Structure]:
    """부모 링크를 따라 올라가며 조상 목록(가까운 순)을 반환합니다."""
    index = index_by_code(structures)
    current = index.get(normalize_code(code))
    result: List[Structure] = []
    if current is None:
        return result

    visited = {current.code}
    while current.parent_id and current.parent_id not in visited:
        parent = index.get(current.parent_id)
        if parent is None:
            break
        result.append(parent)
        visited.add(parent.code)
        current = parent
    return result


def descendants(code: str, structures: Iterable[Structure]) -> List[Structure]:
    """재귀적으로 자손 목록(전위 순회)을 반환합니다."""
    structures = list(structures)
    children = _children_map(structures)
    root = normalize_code(code)
    visited = {root}
    result: List[Structure] = []

    def collect(parent_code: str) -> None:
        for child in children.get(parent_code, []):
            if child.code in visited:
                continue
            visited.add(child.code)
            result.append(child)
            collect(child.code)

    collect(root)
    return result


def relationships(code: str, structures: Iterable[Structure]) -> StructureRelationship:
    """
    구조물의 부모, 자식, 형제, 조상, 자손을 조회합니다.

    Returns:
        관계 결과. 코드가 없으면 빈 관계.
    """
    structures = list(structures)
    index = index_by_code(structures)
    code = normalize_code(code)
    structure = index.get(code)
    if structure is None:
        return StructureRelationship()

    parent: Optional[Structure] = index.get(structure.parent_id) if structure.parent_id else None
    children = [s for s in structures if s.parent_id == code and s.code != code]
    siblings = (
        [s for s in structures if s.parent_id == parent.code and s.code != code]
        if parent else []
    )
    return StructureRelationship(
        parent=parent,
        children=children,
        siblings=siblings,
        ancestors=ancestors(code, structures),
        descendants=descendants(code, structures),
    )


def can_reparent(child_code: str, parent_code: str, structures: Iterable[Structure]) -> bool:
    """
    child의 부모를 parent로 바꿀 수 있는지 확인합니다.

    자기 자신, 존재하지 않는 코드, 또는 child가 parent의 조상이나 자손이면 False.
    """
    structures = list(structures)
    index = index_by_code(structures)
    child_code = normalize_code(child_code)
    parent_code = normalize_code(parent_code)

    if child_code == parent_code:
        return False
    if child_code not in index or parent_code not in index:
        return False
    return all(a.code != child_code for a in ancestors(parent_code, structures)) and all(
        d.code != child_code for d in descendants(parent_code, structures)
    )


def depth_of(code: str, structures: Iterable[Structure]) -> int:
    """루트로부터의 깊이 (루트 = 0)"""
    return len(ancestors(code, structures))


def remap_parents(structures: Iterable[Structure], renamed: Dict[str, str]) -> List[Structure]:
    """
    코드가 바뀐 구조물을 가리키던 parent_id를 새 코드로 옮깁니다.

    가져오기 묶음 안에서 충돌로 코드가 바뀐 부모의 자식이 같은 코드를 가진
    다른 구조물에 붙지 않게 합니다.

    Args:
        structures: 같은 묶음의 구조물
        renamed: 원래 코드 → 새 코드

    Returns:
        parent_id가 갱신된 구조물 목록 (입력 순서)
    """
    return [
        s.model_copy(update={"parent_id": renamed[s.parent_id]}) if s.parent_id in renamed else s
        for s in structures
    ]
