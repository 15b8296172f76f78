"""
Category tree utilities for WooCommerce categories.
"""

from dataclasses import dataclass
from typing import List, Dict, Optional


@dataclass
class CategoryNode:
    """
    Represents a category in the tree structure.

    Attributes:
        id: WooCommerce category ID
        name: Category name
        parent: Parent category ID (0 for root)
        slug: Category slug
    """
    id: int
    name: str
    parent: int = 0
    slug: str = ""

    def __repr__(self):
        return f"CategoryNode(id={self.id}, name='{self.name}', parent={self.parent})"


def build_category_index(raw_categories: List[Dict]) -> Dict[int, CategoryNode]:
    """
    Index flat category data by ID.

    Args:
        raw_categories: List of category dicts from WooCommerce API.
                       Each dict should have: id, name, parent

    Returns:
        Dict mapping category ID to CategoryNode. Entries without a usable
        integer ID are ignored.
    """
    nodes_by_id: Dict[int, CategoryNode] = {}

    for cat in raw_categories or []:
        if not isinstance(cat, dict):
            continue
        cat_id = cat.get("id")
        if not isinstance(cat_id, int) or isinstance(cat_id, bool):
            continue

        parent = cat.get("parent") or 0
        node = CategoryNode(
            id=cat_id,
            name=cat.get("name") or "",
            parent=parent if isinstance(parent, int) else 0,
            slug=cat.get("slug", ""),
        )
        nodes_by_id[node.id] = node

    return nodes_by_id


def ancestor_chain(nodes_by_id: Dict[int, CategoryNode], category_id: int) -> Optional[List[str]]:
    """
    Names from the top-level ancestor down to the category itself.

    Args:
        nodes_by_id: Category index from build_category_index
        category_id: Leaf category ID

    Returns:
        Ordered list of names, or None if the category is unknown. A parent
        missing from the index ends the walk; cycles are cut at the first
        repeated node.
    """
    if category_id not in nodes_by_id:
        return None

    names: List[str] = []
    seen = set()
    current = nodes_by_id.get(category_id)

    while current is not None and current.id not in seen:
        seen.add(current.id)
        names.append(current.name)
        if not current.parent:
            break
        current = nodes_by_id.get(current.parent)

    names.reverse()
    return names
