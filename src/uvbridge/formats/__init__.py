"""Document format loaders."""

from .xml import as_list, node_at, parse_document, text_at

__all__ = ["as_list", "node_at", "parse_document", "text_at"]
