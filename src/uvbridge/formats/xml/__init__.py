"""XML helpers for uVision project documents."""

from .loader import TEXT_KEY, as_list, node_at, parse_document, text_at

__all__ = ["TEXT_KEY", "as_list", "node_at", "parse_document", "text_at"]
