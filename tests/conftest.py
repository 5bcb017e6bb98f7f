"""Shared test fixtures for page generator tests."""
import pytest


def make_text(node_id, x, y, w, h, text, font_size=24):
    return {
        'id': node_id,
        'type': 'TEXT',
        'visible': True,
        'characters': text,
        'style': {'fontSize': font_size, 'fontFamily': 'Inter', 'lineHeightPx': 28, 'textAlignHorizontal': 'LEFT'},
        'absoluteBoundingBox': {'x': x, 'y': y, 'width': w, 'height': h},
        'fills': [{'type': 'SOLID', 'color': {'r': 0, 'g': 0, 'b': 0, 'a': 1}}],
    }


def make_rect(node_id, x, y, w, h, color=None):
    return {
        'id': node_id,
        'type': 'RECTANGLE',
        'visible': True,
        'absoluteBoundingBox': {'x': x, 'y': y, 'width': w, 'height': h},
        'fills': [{'type': 'SOLID', 'color': color or {'r': 1, 'g': 1, 'b': 1, 'a': 1}}],
    }


@pytest.fixture
def sample_frame():
    """400x300 frame with one background rectangle and one text node."""
    return {
        'id': 'F1',
        'type': 'FRAME',
        'name': 'Sample',
        'visible': True,
        'absoluteBoundingBox': {'x': 0, 'y': 0, 'width': 400, 'height': 300},
        'children': [
            make_rect('BG', 0, 0, 400, 300, {'r': 0.8, 'g': 0.95, 'b': 0.9, 'a': 1}),
            make_text('T1', 20, 20, 200, 40, 'Hello'),
        ],
    }


@pytest.fixture
def icon_group():
    """24x24 group holding a single unfilled vector path."""
    return {
        'id': 'ICON',
        'type': 'GROUP',
        'visible': True,
        'absoluteBoundingBox': {'x': 350, 'y': 10, 'width': 24, 'height': 24},
        'children': [{
            'id': 'V1',
            'type': 'VECTOR',
            'visible': True,
            'absoluteBoundingBox': {'x': 350, 'y': 10, 'width': 24, 'height': 24},
            'fills': [],
        }],
    }


@pytest.fixture
def frame_with_icon(sample_frame, icon_group):
    sample_frame['children'].append(icon_group)
    return sample_frame


@pytest.fixture
def nested_frame():
    """Frame offset from the canvas origin with nested, partly hidden content."""
    return {
        'id': '1:1',
        'type': 'FRAME',
        'name': 'Landing <Page>',
        'absoluteBoundingBox': {'x': 100, 'y': 50, 'width': 800, 'height': 600},
        'fills': [{'type': 'SOLID', 'visible': True, 'color': {'r': 1, 'g': 1, 'b': 1, 'a': 1}}],
        'clipsContent': True,
        'children': [
            {
                'id': '1:2',
                'type': 'FRAME',
                'name': 'Card',
                'absoluteBoundingBox': {'x': 140, 'y': 90, 'width': 300, 'height': 200},
                'fills': [],
                'background': [{'type': 'SOLID', 'color': {'r': 0, 'g': 0, 'b': 1, 'a': 1}}],
                'cornerRadius': 12,
                'strokes': [{'type': 'SOLID', 'color': {'r': 0, 'g': 0, 'b': 0, 'a': 1}}],
                'strokeWeight': 2,
                'children': [
                    make_text('1:3', 160, 110, 260, 48, 'Big title', font_size=40),
                    make_text('1:4', 160, 170, 260, 60, 'Line one\nLine <two>', font_size=14),
                ],
            },
            {
                'id': '1:5',
                'type': 'GROUP',
                'name': 'Hidden group',
                'visible': False,
                'absoluteBoundingBox': {'x': 500, 'y': 90, 'width': 100, 'height': 100},
                'children': [make_rect('1:6', 500, 90, 100, 100)],
            },
            {
                'id': '1:7',
                'type': 'SOMETHING_NEW',
                'name': 'Future node',
                'absoluteBoundingBox': {'x': 500, 'y': 300, 'width': 50, 'height': 50},
            },
        ],
    }


@pytest.fixture
def node_with_linear_gradient():
    return {
        'id': 'G1',
        'type': 'RECTANGLE',
        'absoluteBoundingBox': {'x': 0, 'y': 0, 'width': 300, 'height': 150},
        'fills': [{
            'type': 'GRADIENT_LINEAR', 'visible': True,
            'gradientStops': [
                {'color': {'r': 1, 'g': 0, 'b': 0, 'a': 1}, 'position': 0},
                {'color': {'r': 0, 'g': 0, 'b': 1, 'a': 1}, 'position': 1},
            ],
            'gradientHandlePositions': [
                {'x': 0, 'y': 0},
                {'x': 0, 'y': 1},
                {'x': 1, 'y': 0},
            ]
        }],
    }
