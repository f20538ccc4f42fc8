"""Workspace scanning and file loading."""

from .ignore_rules import IgnoreMatcher, build_ignore_matcher, compile_patterns
from .scanner import Document, list_candidate_files, load_document, relative_path

__all__ = [
    "Document",
    "IgnoreMatcher",
    "build_ignore_matcher",
    "compile_patterns",
    "list_candidate_files",
    "load_document",
    "relative_path",
]
