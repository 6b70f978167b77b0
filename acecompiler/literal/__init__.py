"""Card literal rewriting, parsing and normalisation."""

from .normalizer import CardLiteralNormalizer, StructuredConfig, normalize, preprocess
from .parser import LiteralSyntaxError, parse_literal
from .scanner import (
    quote_event_references,
    rewrite_expressions,
    rewrite_this_bindings,
    strip_comments,
    strip_event_quotes,
    strip_export_default,
)

__all__ = [
    "CardLiteralNormalizer",
    "LiteralSyntaxError",
    "StructuredConfig",
    "normalize",
    "parse_literal",
    "preprocess",
    "quote_event_references",
    "rewrite_expressions",
    "rewrite_this_bindings",
    "strip_comments",
    "strip_event_quotes",
    "strip_export_default",
]
