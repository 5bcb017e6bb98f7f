#!/usr/bin/env python3
"""
Figma Page MCP Server - export Figma frames as static HTML/CSS pages.

This server provides tools to:
- Fetch a Figma file and pick the screens worth exporting
- Resolve raster images for vector shapes, image fills and small icon groups
- Generate a paired HTML document and stylesheet per screen
- Write the pages to disk or return them inline

The HTML/CSS compiler itself lives in the page_generators package and does no I/O.
"""

import os
import re
import json
import logging
from collections import deque
from typing import Optional, List, Dict, Any, Iterable, Set
from enum import Enum

import httpx
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from mcp.server.fastmcp import FastMCP

from page_generators import (
    collect_rasterization_candidates,
    generate_css_document,
    generate_html_document,
)

# ============================================================================
# Constants
# ============================================================================

FIGMA_API_BASE = "https://api.figma.com/v1"
DEFAULT_TIMEOUT = 30.0
NODE_FETCH_DEPTH = 20
DEFAULT_IMAGE_SCALE = 2.0
DEFAULT_OUTPUT_DIR = "figma_pages"
MAX_FILE_NAME_LENGTH = 80

PRIMARY_EXPORT_TYPES = {"FRAME", "COMPONENT", "INSTANCE"}
SECONDARY_EXPORT_TYPES = {"SECTION", "GROUP"}
SCREEN_TYPES = {"FRAME", "COMPONENT", "INSTANCE", "SECTION"}
PAGE_TYPES = {"CANVAS", "PAGE"}

_FILE_KEY_IN_PATH = re.compile(r'/([A-Za-z0-9]{22})(?:/|$)')
_UNSAFE_FILE_CHARS = re.compile(r'[:*?"<>|\\/]')

logger = logging.getLogger(__name__)

# ============================================================================
# Initialize MCP Server
# ============================================================================

mcp = FastMCP("figma_page_mcp")

# ============================================================================
# Enums and Types
# ============================================================================

class ResponseFormat(str, Enum):
    """Output format for tool responses."""
    MARKDOWN = "markdown"
    JSON = "json"


# ============================================================================
# Pydantic Input Models
# ============================================================================

def _normalize_file_key(v: str) -> str:
    # Extract file key from URL if full URL provided
    if 'figma.com' in v or '://' in v:
        if not _is_figma_url(v):
            raise ValueError("Enter a valid Figma URL.")
        key = _extract_file_key(v)
        if not key:
            raise ValueError("Could not extract file key from URL.")
        return key
    return v


class FigmaPageExportInput(BaseModel):
    """Input model for exporting screens to HTML/CSS files."""
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    file_key: str = Field(
        ...,
        description="Figma file key or full file URL (figma.com/design/FILE_KEY/...)",
        min_length=10,
    )
    node_id: Optional[str] = Field(
        default=None,
        description="Node ID to export (e.g., '1:2' or '1-2'). Exports every top-level screen if omitted"
    )
    scale: float = Field(
        default=DEFAULT_IMAGE_SCALE,
        description="Raster image scale factor (0.01 to 4.0)",
        ge=0.01,
        le=4.0
    )
    output_dir: Optional[str] = Field(
        default=None,
        description="Directory to write pages to (fallback: env FIGMA_PAGE_OUTPUT_DIR)"
    )
    css_file_name: Optional[str] = Field(
        default=None,
        description="Stylesheet file name (single node_id exports only; defaults to '<node name>.css')"
    )
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' or 'json'"
    )

    @field_validator('file_key')
    @classmethod
    def validate_file_key(cls, v: str) -> str:
        return _normalize_file_key(v)

    @field_validator('node_id')
    @classmethod
    def normalize_node_id(cls, v: Optional[str]) -> Optional[str]:
        return v.replace('-', ':') if v else None

    @model_validator(mode='after')
    def check_css_file_name(self) -> 'FigmaPageExportInput':
        # Several screens would share one stylesheet path
        if self.css_file_name and not self.node_id:
            raise ValueError("css_file_name can only be set when exporting a single node_id")
        return self


class FigmaPageGenerateInput(BaseModel):
    """Input model for generating one page inline."""
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    file_key: str = Field(..., description="Figma file key or full file URL", min_length=10)
    node_id: str = Field(..., description="Node ID to convert", min_length=1)
    scale: float = Field(
        default=DEFAULT_IMAGE_SCALE,
        description="Raster image scale factor (0.01 to 4.0)",
        ge=0.01,
        le=4.0
    )
    css_file_name: Optional[str] = Field(
        default=None,
        description="Stylesheet name linked from the HTML (defaults to '<node name>.css')"
    )

    @field_validator('file_key')
    @classmethod
    def validate_file_key(cls, v: str) -> str:
        return _normalize_file_key(v)

    @field_validator('node_id')
    @classmethod
    def normalize_node_id(cls, v: str) -> str:
        return v.replace('-', ':')


# ============================================================================
# Helper Functions
# ============================================================================

def _is_figma_url(url: str) -> bool:
    """Check that a URL points at figma.com and carries a 22-character file key."""
    try:
        parsed = httpx.URL(url.strip())
    except (httpx.InvalidURL, TypeError):
        return False
    if not parsed.host.endswith("figma.com"):
        return False
    return bool(_FILE_KEY_IN_PATH.search(parsed.path))


def _extract_file_key(url: str) -> Optional[str]:
    """Extract the file key: https://www.figma.com/design/ABC.../Name -> 'ABC...'."""
    match = _FILE_KEY_IN_PATH.search(url)
    return match.group(1) if match else None


def _get_figma_token() -> str:
    """Get Figma API token from environment."""
    token = os.environ.get("FIGMA_ACCESS_TOKEN") or os.environ.get("FIGMA_TOKEN")
    if not token:
        raise ValueError(
            "Figma API token not found. Set FIGMA_ACCESS_TOKEN or FIGMA_TOKEN environment variable. "
            "Get your token from: https://www.figma.com/developers/api#access-tokens"
        )
    return token


def _get_output_dir(override: Optional[str] = None) -> str:
    return override or os.environ.get("FIGMA_PAGE_OUTPUT_DIR", DEFAULT_OUTPUT_DIR)


async def _make_figma_request(
    endpoint: str,
    method: str = "GET",
    params: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Make authenticated request to Figma API."""
    token = _get_figma_token()

    logger.info("Figma API %s %s", method, endpoint)
    async with httpx.AsyncClient() as client:
        response = await client.request(
            method=method,
            url=f"{FIGMA_API_BASE}/{endpoint}",
            headers={"X-Figma-Token": token},
            params=params,
            timeout=DEFAULT_TIMEOUT
        )
        response.raise_for_status()
        return response.json()


def _handle_api_error(e: Exception) -> str:
    """Format API errors for user-friendly messages."""
    if isinstance(e, httpx.HTTPStatusError):
        status = e.response.status_code
        logger.warning("Figma API returned status %s", status)
        if status == 401:
            return "Error: Invalid Figma API token. Check your FIGMA_ACCESS_TOKEN environment variable."
        elif status == 403:
            return "Error: Access denied. You don't have permission to view this file."
        elif status == 404:
            return "Error: File or node not found. Check the file key and node ID."
        elif status == 429:
            return "Error: Rate limit exceeded. Please wait before making more requests."
        return f"Error: Figma API returned status {status}"
    elif isinstance(e, httpx.TimeoutException):
        logger.warning("Figma API request timed out")
        return "Error: Request timed out. The file might be too large."
    elif isinstance(e, ValueError):
        return f"Error: {str(e)}"
    logger.exception("Unexpected error during page export")
    return f"Error: {type(e).__name__}: {str(e)}"


def _safe_name(name: Optional[str], fallback: str = "screen") -> str:
    """Make a file-system safe base name from a node name."""
    base = _UNSAFE_FILE_CHARS.sub('_', str(name or fallback))
    base = re.sub(r'\s+', '-', base)
    return base[:MAX_FILE_NAME_LENGTH]


def _bbox_area(node: Dict[str, Any]) -> float:
    bbox = node.get('absoluteBoundingBox')
    if not bbox:
        return 0
    return (bbox.get('width') or 0) * (bbox.get('height') or 0)


def _get_all_top_screens(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Visible top-level screens (frames, components, instances, sections) on every page."""
    screens = []
    for page in document.get('children', []):
        if page.get('type') not in PAGE_TYPES:
            continue
        for node in page.get('children', []):
            if node.get('visible') is False:
                continue
            if node.get('type') in SCREEN_TYPES and node.get('absoluteBoundingBox'):
                screens.append(node)
    return screens


def _pick_best_export_node(root: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Largest frame/component/instance in the tree, else the largest section/group."""
    if not root:
        return None

    best_primary = None
    best_secondary = None
    queue = deque([root])
    while queue:
        node = queue.popleft()
        if not node:
            continue
        area = _bbox_area(node)
        node_type = node.get('type')
        if node_type in PRIMARY_EXPORT_TYPES:
            if best_primary is None or area > best_primary[1]:
                best_primary = (node, area)
        elif node_type in SECONDARY_EXPORT_TYPES:
            if best_secondary is None or area > best_secondary[1]:
                best_secondary = (node, area)
        queue.extend(node.get('children') or [])

    if best_primary:
        return best_primary[0]
    if best_secondary:
        return best_secondary[0]
    return None


def _unique_base_name(base_name: str, node_id: str, taken: Set[str]) -> str:
    """Base name not yet used in this export: repeats get the node id, then a counter."""
    candidate = base_name
    if candidate in taken:
        candidate = f"{base_name}-{_safe_name(node_id)}"
    counter = 2
    while candidate in taken:
        candidate = f"{base_name}-{_safe_name(node_id)}-{counter}"
        counter += 1
    taken.add(candidate)
    return candidate


async def _fetch_image_urls(file_key: str, ids: Iterable[str], scale: float = DEFAULT_IMAGE_SCALE) -> Dict[str, str]:
    """Resolve signed PNG URLs for node ids. Nodes Figma failed to render are left out."""
    ids = sorted(ids)
    if not ids:
        return {}

    data = await _make_figma_request(
        f"images/{file_key}",
        params={
            "ids": ",".join(ids),
            "format": "png",
            "scale": scale
        }
    )
    images = data.get('images') or {}
    resolved = {node_id: url for node_id, url in images.items() if url}
    if len(resolved) < len(ids):
        logger.info("Figma rendered %d of %d requested images", len(resolved), len(ids))
    return resolved


async def _fetch_screen(file_key: str, screen_id: str) -> Optional[Dict[str, Any]]:
    """Fetch a screen subtree with its full styling."""
    data = await _make_figma_request(
        f"files/{file_key}/nodes",
        params={"ids": screen_id, "depth": NODE_FETCH_DEPTH}
    )
    entry = (data.get('nodes') or {}).get(screen_id) or {}
    return entry.get('document')


async def _build_page(
    file_key: str,
    screen_id: str,
    scale: float = DEFAULT_IMAGE_SCALE,
    css_file_name: Optional[str] = None,
    taken_names: Optional[Set[str]] = None
) -> Optional[Dict[str, Any]]:
    """
    Build the HTML and CSS for one screen.

    Args:
        taken_names: Base names already used in the same export; the chosen
            name is made unique against it and added to it.

    Returns:
        dict with 'node_id', 'name', 'base_name', 'css_file_name', 'html', 'css'
        and 'image_count', or None when the subtree could not be fetched.
    """
    frame_node = await _fetch_screen(file_key, screen_id)
    if not frame_node:
        logger.warning("Node %s returned no document, skipping", screen_id)
        return None

    candidates = collect_rasterization_candidates(frame_node)
    images_map = await _fetch_image_urls(file_key, candidates, scale)

    base_name = _safe_name(frame_node.get('name') or screen_id)
    if taken_names is not None:
        base_name = _unique_base_name(base_name, screen_id, taken_names)
    css_name = css_file_name or f"{base_name}.css"

    return {
        'node_id': screen_id,
        'name': frame_node.get('name', ''),
        'base_name': base_name,
        'css_file_name': css_name,
        'html': generate_html_document(frame_node, images_map, css_name),
        'css': generate_css_document(frame_node, images_map),
        'image_count': len(images_map),
    }


def _write_page(page: Dict[str, Any], output_dir: str) -> Dict[str, str]:
    """Write a built page's HTML and CSS files next to each other."""
    os.makedirs(output_dir, exist_ok=True)
    html_path = os.path.join(output_dir, f"{page['base_name']}.html")
    css_path = os.path.join(output_dir, page['css_file_name'])

    with open(html_path, 'w', encoding='utf-8') as f:
        f.write(page['html'])
    with open(css_path, 'w', encoding='utf-8') as f:
        f.write(page['css'])

    logger.info("Wrote %s and %s", html_path, css_path)
    return {'html': html_path, 'css': css_path}


# ============================================================================
# MCP Tools
# ============================================================================

@mcp.tool(
    name="figma_export_page",
    annotations={
        "title": "Export Figma Screens as HTML/CSS",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True
    }
)
async def figma_export_page(params: FigmaPageExportInput) -> str:
    """
    Export Figma screens as static HTML pages with matching stylesheets.

    Every node becomes an absolutely positioned element. Vector shapes, image
    fills and small icon groups are exported as PNG images hosted by Figma.

    Args:
        params: FigmaPageExportInput containing:
            - file_key (str): Figma file key or full URL
            - node_id (Optional[str]): Node to export; all top-level screens if omitted
            - scale (float): Raster image scale factor
            - output_dir (Optional[str]): Target directory
            - css_file_name (Optional[str]): Stylesheet name, single node_id only
            - response_format: 'markdown' or 'json'

    Returns:
        str: Written file paths per exported screen

    Examples:
        - "Export every screen of file XYZ" -> file_key="XYZ..."
        - "Export frame 1:2 to ./site" -> node_id="1:2", output_dir="./site"
    """
    try:
        if params.node_id:
            screen_ids = [params.node_id]
        else:
            data = await _make_figma_request(f"files/{params.file_key}")
            document = data.get('document', {})
            screens = _get_all_top_screens(document)
            if not screens:
                # Fall back to a single best pick
                best = _pick_best_export_node(document)
                if not best:
                    return "Error: No exportable frame found."
                screens = [best]
            screen_ids = [screen['id'] for screen in screens]
            logger.info("Exporting %d screen(s) from %s", len(screen_ids), params.file_key)

        output_dir = _get_output_dir(params.output_dir)
        exported = []
        taken_names: Set[str] = set()
        for screen_id in screen_ids:
            page = await _build_page(
                params.file_key, screen_id, params.scale, params.css_file_name, taken_names
            )
            if not page:
                continue
            paths = _write_page(page, output_dir)
            exported.append({
                'node_id': page['node_id'],
                'name': page['name'],
                'html': paths['html'],
                'css': paths['css'],
                'images': page['image_count'],
            })

        if not exported:
            return "Error: No exportable frame found."

        if params.response_format == ResponseFormat.JSON:
            return json.dumps({'file_key': params.file_key, 'pages': exported}, indent=2)

        lines = [
            "# Exported Pages",
            f"**File Key:** `{params.file_key}`",
            f"**Output Directory:** `{output_dir}`",
            ""
        ]
        for page in exported:
            lines.append(f"## {page['name'] or page['node_id']} `{page['node_id']}`")
            lines.append(f"- HTML: `{page['html']}`")
            lines.append(f"- CSS: `{page['css']}`")
            lines.append(f"- Images: {page['images']}")
            lines.append("")

        lines.append("> Note: Image URLs are signed by Figma and expire in 30 days.")
        return "\n".join(lines)

    except Exception as e:
        return _handle_api_error(e)


@mcp.tool(
    name="figma_generate_page",
    annotations={
        "title": "Generate HTML/CSS Page from Figma",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True
    }
)
async def figma_generate_page(params: FigmaPageGenerateInput) -> str:
    """
    Generate a static HTML page and its stylesheet for one Figma node.

    Args:
        params: FigmaPageGenerateInput containing:
            - file_key (str): Figma file key
            - node_id (str): Node ID to convert
            - scale (float): Raster image scale factor
            - css_file_name (Optional[str]): Stylesheet name linked from the HTML

    Returns:
        str: Both documents as fenced code blocks
    """
    try:
        page = await _build_page(params.file_key, params.node_id, params.scale, params.css_file_name)
        if not page:
            return f"Error: Node '{params.node_id}' not found."

        lines = [
            f"# Generated Page: {page['name'] or page['node_id']}",
            f"**Source Node:** `{page['node_id']}`",
            f"**Images:** {page['image_count']}",
            "",
            f"## {page['base_name']}.html",
            "```html",
            page['html'],
            "```",
            "",
            f"## {page['css_file_name']}",
            "```css",
            page['css'],
            "```"
        ]
        return "\n".join(lines)

    except Exception as e:
        return _handle_api_error(e)


# ============================================================================
# Entry Point
# ============================================================================

def _get_log_level() -> int:
    """Log level from FIGMA_PAGE_LOG_LEVEL; unknown names fall back to WARNING."""
    name = os.environ.get("FIGMA_PAGE_LOG_LEVEL", "WARNING").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def main() -> None:
    # stdout carries the stdio transport, so logs go to stderr
    logging.basicConfig(
        level=_get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    mcp.run()


if __name__ == "__main__":
    main()
