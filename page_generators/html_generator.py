"""
HTML Generator - static page markup from a Figma frame.

Every visible node becomes one element carrying the class from safe_class(),
so the rules produced by css_generator apply to it. Small icon groups and
vector shapes with a resolved image are emitted as single image elements.
"""

import logging
from html import escape
from typing import Any, Dict, List, Optional

from page_generators.base import (
    NodeKind, safe_class, round_half_up, is_number,
    DEFAULT_CSS_FILE_NAME, DEFAULT_FRAME_WIDTH, DEFAULT_FRAME_HEIGHT, HEADING_FONT_SIZE,
)
from page_generators.classify import (
    is_visible, is_vector_like, has_visible_children,
    should_collapse_to_single_image, resolve_image_url,
)

logger = logging.getLogger(__name__)


def _element_tag(node: Dict[str, Any], kind: NodeKind) -> str:
    if kind is NodeKind.TEXT:
        font_size = (node.get('style') or {}).get('fontSize')
        return 'h1' if is_number(font_size) and font_size >= HEADING_FONT_SIZE else 'p'
    return 'div'


def _text_content(node: Dict[str, Any]) -> str:
    text = escape(node.get('characters') or '', quote=False)
    return text.replace('\n', '<br/>')


def _node_to_html(node: Dict[str, Any], images_map: Dict[str, str], parts: List[str]) -> None:
    """Append the markup for one node and its subtree to parts."""
    if not is_visible(node):
        return

    kind = NodeKind.of(node)
    cls = safe_class(node.get('id'))
    image_url = resolve_image_url(node, images_map)

    if image_url and should_collapse_to_single_image(node):
        # Image is drawn as the element background by the stylesheet
        logger.debug("Collapsing %s into a single image", node.get('id'))
        parts.append(f'<div class="{cls}"></div>')
        return

    if image_url and (is_vector_like(kind) or not has_visible_children(node)):
        parts.append(f'<img class="{cls}" alt="" src="{escape(image_url)}" />')
        return

    tag = _element_tag(node, kind)
    parts.append(f'<{tag} class="{cls}">')
    if kind is NodeKind.TEXT:
        parts.append(_text_content(node))
    for child in node.get('children') or []:
        _node_to_html(child, images_map, parts)
    parts.append(f'</{tag}>')


def generate_html_body(node: Dict[str, Any], images_map: Optional[Dict[str, str]] = None) -> str:
    """Markup for a node tree without the surrounding document."""
    parts: List[str] = []
    _node_to_html(node, images_map or {}, parts)
    return ''.join(parts)


def generate_html_document(
    frame_node: Dict[str, Any],
    images_map: Optional[Dict[str, str]] = None,
    css_file_name: str = DEFAULT_CSS_FILE_NAME,
) -> str:
    """
    Generate a complete HTML page for a Figma frame.

    The frame is laid out at its authored pixel size inside #frame and a small
    inline script scales it to fit the viewport.

    Args:
        frame_node: Root Figma node (a dict decoded from the REST API)
        images_map: Node id -> raster image URL for nodes exported as images
        css_file_name: Stylesheet linked from the page, relative to it

    Returns:
        str: The HTML document
    """
    if frame_node is None:
        raise ValueError("A root node is required to generate HTML")

    root_box = frame_node.get('absoluteBoundingBox') or {}
    width = round_half_up(root_box.get('width', DEFAULT_FRAME_WIDTH))
    height = round_half_up(root_box.get('height', DEFAULT_FRAME_HEIGHT))

    content = generate_html_body(frame_node, images_map)
    title = escape(frame_node.get('name') or 'Export')
    css_href = escape(css_file_name)

    return f'''<!doctype html>
<html>
<head>
  <meta charset="utf-8"/>
  <meta name="viewport" content="width=device-width, initial-scale=1"/>
  <title>{title}</title>
  <link rel="stylesheet" href="./{css_href}"/>
  <style>
    html, body {{ height: 100%; margin: 0; }}
    body {{ background:#f6f7f9; }}
    #stage {{ min-height:100vh; display:grid; place-items:center; padding:16px; box-sizing:border-box; }}
    #frame {{ width:{width}px; height:{height}px; position:relative; transform-origin: top left; isolation:isolate; }}
    img {{ display:block; }}
  </style>
</head>
<body>
  <div id="stage">
    <div id="frame">{content}</div>
  </div>
  <script>
    (function () {{
      var frame = document.getElementById('frame');
      var W = {width}, H = {height};
      function fit() {{
        var vw = Math.max(document.documentElement.clientWidth, window.innerWidth || 0) - 32;
        var vh = Math.max(document.documentElement.clientHeight, window.innerHeight || 0) - 32;
        var scale = Math.min(vw / W, vh / H);
        scale = Math.max(0.2, Math.min(1, scale));
        frame.style.transform = 'scale(' + scale + ')';
      }}
      window.addEventListener('resize', fit); fit();
    }})();
  </script>
</body>
</html>'''
