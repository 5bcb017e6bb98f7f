"""Figma frame -> static HTML page and stylesheet generators."""

from page_generators.classify import collect_rasterization_candidates
from page_generators.css_generator import generate_css_document
from page_generators.html_generator import generate_html_document

__all__ = [
    'collect_rasterization_candidates',
    'generate_css_document',
    'generate_html_document',
]
