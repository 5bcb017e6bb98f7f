"""
CSS Generator - absolute-positioned stylesheet for a Figma frame.

Emits one rule per visible node, keyed by the same class names the HTML
generator writes. Each node is positioned relative to its nearest ancestor's
bounding box and gets an increasing z-index so Figma's paint order survives
absolute positioning.
"""

import itertools
import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

from page_generators.base import (
    NodeKind, px, rgba, safe_class, css_url, make_rule, first_visible,
    gradient_to_css, font_family_css, is_number, format_number,
    DEFAULT_FRAME_WIDTH, DEFAULT_FRAME_HEIGHT, TEXT_ALIGN_MAP,
)
from page_generators.classify import (
    is_visible, should_collapse_to_single_image, resolve_image_url,
)

logger = logging.getLogger(__name__)

CSS_BANNER = "/* Generated by figma-page-mcp: Figma -> HTML/CSS */\n"

Origin = Tuple[float, float]


# ---------------------------------------------------------------------------
# Property builders
# ---------------------------------------------------------------------------

def _layout_css(bbox: Optional[Dict[str, Any]], origin: Optional[Origin], z_index: int) -> Dict[str, Any]:
    """Position, stacking index, offset from origin and size."""
    layout: Dict[str, Any] = {
        'position': 'absolute' if origin else 'relative',
        'z-index': z_index,
    }
    if bbox:
        if origin:
            layout['left'] = px(bbox.get('x', 0) - origin[0])
            layout['top'] = px(bbox.get('y', 0) - origin[1])
        layout['width'] = px(bbox.get('width', 0))
        layout['height'] = px(bbox.get('height', 0))
    return layout


def _background_image_css(url: str, size: str) -> Dict[str, Any]:
    return {
        'background-image': css_url(url),
        'background-repeat': 'no-repeat',
        'background-size': size,
        'background-position': 'center',
    }


def _fill_css(node: Dict[str, Any]) -> Optional[str]:
    """Background from the first visible fill, then background, then backgroundColor."""
    fill = first_visible(node.get('fills')) or first_visible(node.get('background'))
    fill_type = (fill or {}).get('type') or ''

    if fill_type == 'SOLID':
        return rgba(fill.get('color'), fill.get('opacity'))
    if fill_type.startswith('GRADIENT'):
        return gradient_to_css(fill)
    if node.get('backgroundColor'):
        return rgba(node['backgroundColor'])
    return None


def _corner_radii_css(node: Dict[str, Any]) -> Dict[str, Any]:
    radii = node.get('rectangleCornerRadii')
    if isinstance(radii, list) and len(radii) == 4:
        tl, tr, br, bl = radii
        return {
            'border-top-left-radius': px(tl),
            'border-top-right-radius': px(tr),
            'border-bottom-right-radius': px(br),
            'border-bottom-left-radius': px(bl),
        }
    corner_radius = node.get('cornerRadius')
    if is_number(corner_radius) and corner_radius > 0:
        return {'border-radius': px(corner_radius)}
    return {}


def _border_css(node: Dict[str, Any]) -> Optional[str]:
    stroke = first_visible(node.get('strokes'))
    weight = node.get('strokeWeight')
    if weight is None:
        weight = node.get('strokeWidth')
    if not stroke or not stroke.get('color') or not is_number(weight) or weight <= 0:
        return None
    return f"{px(weight)} solid {rgba(stroke['color'], stroke.get('opacity'))}"


def _shape_css(node: Dict[str, Any], image_url: Optional[str]) -> Dict[str, Any]:
    """Visual properties for every non-text node."""
    visuals: Dict[str, Any] = {}
    if image_url:
        visuals.update(_background_image_css(image_url, 'cover'))
    else:
        visuals['background'] = _fill_css(node)

    visuals.update(_corner_radii_css(node))
    visuals['border'] = _border_css(node)
    if node.get('clipsContent'):
        visuals['overflow'] = 'hidden'
    return visuals


def _text_css(node: Dict[str, Any], bbox: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Typography for TEXT nodes, boxed to their authored size."""
    style = node.get('style') or {}
    visuals: Dict[str, Any] = {'margin': '0'}

    if style.get('fontSize'):
        visuals['font-size'] = px(style['fontSize'])
    if style.get('fontWeight'):
        visuals['font-weight'] = format_number(style['fontWeight'])
    if style.get('letterSpacing') is not None:
        visuals['letter-spacing'] = px(style['letterSpacing'])
    if style.get('lineHeightPx'):
        visuals['line-height'] = px(style['lineHeightPx'])
    if bbox:
        visuals['width'] = px(bbox.get('width', 0))
        visuals['height'] = px(bbox.get('height', 0))
        visuals['overflow'] = 'hidden'
    visuals['white-space'] = 'pre-wrap'
    visuals['font-family'] = font_family_css(style)

    text_fill = first_visible(node.get('fills'))
    if text_fill and text_fill.get('type') == 'SOLID':
        visuals['color'] = rgba(text_fill.get('color'), text_fill.get('opacity'))

    h_align = style.get('textAlignHorizontal')
    if h_align:
        visuals['text-align'] = TEXT_ALIGN_MAP.get(h_align, str(h_align).lower())
    return visuals


# ---------------------------------------------------------------------------
# Recursive rule emission
# ---------------------------------------------------------------------------

def _generate_recursive_css(
    node: Dict[str, Any],
    images_map: Dict[str, str],
    rules: List[str],
    origin: Optional[Origin],
    z_counter: Iterator[int],
) -> None:
    """Append the rule for a node, then its visible descendants, to rules."""
    if not is_visible(node):
        return

    selector = f".{safe_class(node.get('id'))}"
    bbox = node.get('absoluteBoundingBox') or None
    layout = _layout_css(bbox, origin, next(z_counter))
    image_url = resolve_image_url(node, images_map)

    if image_url and should_collapse_to_single_image(node):
        logger.debug("Collapsing %s into a single background image", node.get('id'))
        rules.append(make_rule(selector, {**layout, **_background_image_css(image_url, 'contain')}))
        return

    if NodeKind.of(node) is NodeKind.TEXT:
        visuals = _text_css(node, bbox)
    else:
        visuals = _shape_css(node, image_url)

    rules.append(make_rule(selector, {**layout, **visuals}))

    next_origin = (bbox.get('x', 0), bbox.get('y', 0)) if bbox else origin
    for child in node.get('children') or []:
        _generate_recursive_css(child, images_map, rules, next_origin, z_counter)


def generate_css_document(root_node: Dict[str, Any], images_map: Optional[Dict[str, str]] = None) -> str:
    """
    Generate the stylesheet paired with generate_html_document().

    Args:
        root_node: Root Figma node (a dict decoded from the REST API)
        images_map: Node id -> raster image URL for nodes exported as images

    Returns:
        str: CSS text with a #frame rule followed by one rule per visible node
    """
    if root_node is None:
        raise ValueError("A root node is required to generate CSS")

    root_box = root_node.get('absoluteBoundingBox') or {}
    rules = [make_rule('#frame', {
        'position': 'relative',
        'width': px(root_box.get('width', DEFAULT_FRAME_WIDTH)),
        'height': px(root_box.get('height', DEFAULT_FRAME_HEIGHT)),
        'isolation': 'isolate',
    })]

    _generate_recursive_css(root_node, images_map or {}, rules, None, itertools.count(1))
    return CSS_BANNER + ''.join(rules)
