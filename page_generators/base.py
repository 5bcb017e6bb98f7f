"""
Shared building blocks for the HTML/CSS page generators.

Node kinds, length and color formatting, gradient conversion, selector naming
and CSS rule formatting. Everything here is pure and works on the raw Figma
JSON dictionaries.
"""

import json
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_FRAME_WIDTH = 390
DEFAULT_FRAME_HEIGHT = 844
DEFAULT_CSS_FILE_NAME = 'styles.css'
DEFAULT_FONT_FAMILY = 'Inter'
FONT_FALLBACKS = 'system-ui, Arial, sans-serif'

# Text at or above this size renders as a heading
HEADING_FONT_SIZE = 32

# Default linear-gradient angle (top to bottom)
DEFAULT_GRADIENT_ANGLE = 180

CLASS_PREFIX = 'n_'
_UNSAFE_CLASS_CHARS = re.compile(r'[^a-zA-Z0-9_-]')

TEXT_ALIGN_MAP = {
    'LEFT': 'left',
    'CENTER': 'center',
    'RIGHT': 'right',
    'JUSTIFIED': 'justify',
}


class NodeKind(str, Enum):
    """Figma node types the generators know about."""
    FRAME = "FRAME"
    GROUP = "GROUP"
    COMPONENT = "COMPONENT"
    INSTANCE = "INSTANCE"
    COMPONENT_SET = "COMPONENT_SET"
    SECTION = "SECTION"
    TEXT = "TEXT"
    RECTANGLE = "RECTANGLE"
    ELLIPSE = "ELLIPSE"
    VECTOR = "VECTOR"
    LINE = "LINE"
    STAR = "STAR"
    POLYGON = "POLYGON"
    REGULAR_POLYGON = "REGULAR_POLYGON"
    BOOLEAN_OPERATION = "BOOLEAN_OPERATION"
    ARROW = "ARROW"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def of(cls, node: Dict[str, Any]) -> 'NodeKind':
        """Kind of a raw node; anything unrecognized is UNKNOWN."""
        try:
            return cls(node.get('type'))
        except ValueError:
            return cls.UNKNOWN


# ---------------------------------------------------------------------------
# Numbers and lengths
# ---------------------------------------------------------------------------

def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward positive infinity."""
    return int(math.floor(value + 0.5))


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def px(value: Any) -> Any:
    """Convert a number to a rounded pixel length; strings pass through."""
    if is_number(value):
        return f"{round_half_up(value)}px"
    return value


def format_number(value: Any) -> str:
    """Print integral floats without a trailing '.0'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def clamp01(x: float) -> float:
    return max(0, min(1, x))


# ---------------------------------------------------------------------------
# Colors and gradients
# ---------------------------------------------------------------------------

@dataclass
class ColorValue:
    """A Figma color with 0-1 channels."""
    r: float = 0.0
    g: float = 0.0
    b: float = 0.0
    a: Optional[float] = None

    @classmethod
    def from_figma(cls, color: Optional[Dict[str, Any]]) -> Optional['ColorValue']:
        if not color:
            return None
        return cls(
            r=color.get('r', 0) or 0,
            g=color.get('g', 0) or 0,
            b=color.get('b', 0) or 0,
            a=color.get('a'),
        )

    def to_css(self, alpha: Optional[float] = None) -> str:
        """Render as rgba(); an explicit alpha overrides the color's own."""
        r = round_half_up(clamp01(self.r) * 255)
        g = round_half_up(clamp01(self.g) * 255)
        b = round_half_up(clamp01(self.b) * 255)
        if alpha is not None:
            a = alpha
        elif self.a is None:
            a = 1
        else:
            a = clamp01(self.a)
        return f"rgba({r}, {g}, {b}, {format_number(a)})"

    @property
    def rgba(self) -> str:
        return self.to_css()


def rgba(color: Optional[Dict[str, Any]], alpha: Optional[float] = None) -> str:
    """Convert a Figma color dict to CSS rgba(); no color is transparent."""
    value = ColorValue.from_figma(color)
    if value is None:
        return 'transparent'
    return value.to_css(alpha)


@dataclass
class GradientStop:
    color: Optional[ColorValue]
    position: float = 0.0

    def to_css(self) -> str:
        color = self.color.to_css(self.color.a) if self.color else 'transparent'
        return f"{color} {round_half_up((self.position or 0) * 100)}%"


@dataclass
class GradientDef:
    angle: int = DEFAULT_GRADIENT_ANGLE
    stops: List[GradientStop] = field(default_factory=list)

    def to_css(self) -> Optional[str]:
        if not self.stops:
            return None
        stops_css = ', '.join(stop.to_css() for stop in self.stops)
        return f"linear-gradient({self.angle}deg, {stops_css})"


def gradient_angle(handle_positions: Optional[List[Dict[str, float]]]) -> int:
    """Angle in degrees from the first to the second gradient handle."""
    if not handle_positions or len(handle_positions) < 2:
        return DEFAULT_GRADIENT_ANGLE

    start, end = handle_positions[0], handle_positions[1]
    dx = end.get('x', 0) - start.get('x', 0)
    dy = end.get('y', 0) - start.get('y', 0)
    return round_half_up(math.degrees(math.atan2(dy, dx)))


def parse_gradient(paint: Dict[str, Any]) -> Optional[GradientDef]:
    """Parse a GRADIENT_* paint. Returns None when it has no color stops."""
    raw_stops = paint.get('gradientStops') or []
    if not raw_stops:
        return None
    stops = [
        GradientStop(
            color=ColorValue.from_figma(stop.get('color')),
            position=stop.get('position') or 0,
        )
        for stop in raw_stops
    ]
    return GradientDef(angle=gradient_angle(paint.get('gradientHandlePositions')), stops=stops)


def gradient_to_css(paint: Dict[str, Any]) -> Optional[str]:
    """Convert any Figma gradient paint to a CSS linear-gradient()."""
    gradient = parse_gradient(paint)
    return gradient.to_css() if gradient else None


def first_visible(paints: Any) -> Optional[Dict[str, Any]]:
    """First paint that is not explicitly hidden."""
    if not isinstance(paints, list):
        return None
    for paint in paints:
        if paint and paint.get('visible', True) is not False:
            return paint
    return None


# ---------------------------------------------------------------------------
# Selectors, text and rules
# ---------------------------------------------------------------------------

def safe_class(node_id: Any) -> str:
    """CSS class name for a node id: n_ + id with unsafe characters as '_'."""
    return CLASS_PREFIX + _UNSAFE_CLASS_CHARS.sub('_', str(node_id or ''))


def font_family_css(style: Dict[str, Any]) -> str:
    """Quoted font family followed by generic fallbacks."""
    font_name = style.get('fontName')
    family = (
        style.get('fontFamily')
        or (font_name.get('family') if isinstance(font_name, dict) else None)
        or DEFAULT_FONT_FAMILY
    )
    return f"{json.dumps(family, ensure_ascii=False)}, {FONT_FALLBACKS}"


def css_url(url: str) -> str:
    return 'url("{}")'.format(url.replace('\\', '\\\\').replace('"', '\\"'))


def make_rule(selector: str, declarations: Dict[str, Any]) -> str:
    """Format one CSS rule; None and empty values are left out."""
    lines = [f"{selector} {{\n"]
    for prop, value in declarations.items():
        if value is None or value == '':
            continue
        lines.append(f"  {prop}: {format_number(value)};\n")
    lines.append("}\n")
    return ''.join(lines)
