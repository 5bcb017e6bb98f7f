"""
Node classification shared by the HTML and CSS generators.

Both generators (and the image-fetching side) ask the same questions here, so
they always agree on which nodes become images and which icon groups collapse.
"""

from typing import Any, Dict, Optional, Set

from page_generators.base import NodeKind


# Containers up to this size (both sides) holding vector or image content
# are exported as one flattened image.
ICON_COLLAPSE_MAX_SIZE = 128

VECTOR_LIKE_KINDS = frozenset({
    NodeKind.ELLIPSE,
    NodeKind.VECTOR,
    NodeKind.LINE,
    NodeKind.STAR,
    NodeKind.POLYGON,
    NodeKind.BOOLEAN_OPERATION,
    NodeKind.REGULAR_POLYGON,
    NodeKind.ARROW,
})

CONTAINER_KINDS = frozenset({
    NodeKind.GROUP,
    NodeKind.COMPONENT,
    NodeKind.INSTANCE,
    NodeKind.COMPONENT_SET,
})


def is_visible(node: Any) -> bool:
    return bool(node) and node.get('visible') is not False


def is_vector_like(kind: NodeKind) -> bool:
    return kind in VECTOR_LIKE_KINDS


def is_container_kind(kind: NodeKind) -> bool:
    return kind in CONTAINER_KINDS


def has_image_fill(node: Dict[str, Any]) -> bool:
    """True if any fill is an IMAGE paint that is not explicitly hidden."""
    fills = node.get('fills')
    if not isinstance(fills, list):
        return False
    return any(
        fill and fill.get('type') == 'IMAGE' and fill.get('visible') is not False
        for fill in fills
    )


def needs_rasterization(node: Dict[str, Any]) -> bool:
    """True if the node should be requested as a raster image."""
    return has_image_fill(node) or is_vector_like(NodeKind.of(node))


def resolve_image_url(node: Dict[str, Any], images_map: Optional[Dict[str, str]]) -> Optional[str]:
    """Raster URL for a node, or None when the map has no usable entry."""
    if not images_map:
        return None
    return images_map.get(node.get('id')) or None


def has_visible_children(node: Dict[str, Any]) -> bool:
    return any(is_visible(child) for child in node.get('children') or [])


def should_collapse_to_single_image(node: Dict[str, Any]) -> bool:
    """
    Decide whether a small icon-like group is exported as a single image.

    The node must be a container kind no larger than ICON_COLLAPSE_MAX_SIZE on
    either side, with at least one visible descendant that is vector-like or
    carries an image fill. Hidden subtrees are not searched.
    """
    bbox = node.get('absoluteBoundingBox')
    if not bbox or not is_container_kind(NodeKind.of(node)):
        return False
    width = bbox.get('width', 0) or 0
    height = bbox.get('height', 0) or 0
    if width > ICON_COLLAPSE_MAX_SIZE or height > ICON_COLLAPSE_MAX_SIZE:
        return False

    stack = list(node.get('children') or [])
    while stack:
        current = stack.pop()
        if not is_visible(current):
            continue
        if needs_rasterization(current):
            return True
        stack.extend(current.get('children') or [])
    return False


def collect_rasterization_candidates(node: Dict[str, Any]) -> Set[str]:
    """Ids of every visible node in the tree that needs a raster image."""
    candidates: Set[str] = set()
    stack = [node]
    while stack:
        current = stack.pop()
        if not is_visible(current):
            continue
        if needs_rasterization(current) and current.get('id'):
            candidates.add(current['id'])
        stack.extend(current.get('children') or [])
    return candidates
