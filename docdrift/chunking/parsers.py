"""Structured parser strategies.

Two strategies find top-level declarations:
  - PythonAstParser uses the standard `ast` module for Python sources.
  - TreeSitterParser uses `tree-sitter-language-pack` grammars for
    JavaScript/TypeScript. Grammars load lazily and are cached per language.

Both raise ChunkingError on any failure so the caller can fall back to line
windows.
"""

from __future__ import annotations

import ast
import logging
import threading
from typing import Any, Dict, List, Optional

from ..errors import ChunkingError
from .base import Declaration, StructuredParser

logger = logging.getLogger(__name__)


class PythonAstParser(StructuredParser):
    """Top-level declarations of a Python module."""

    def supports(self, language: Optional[str]) -> bool:
        return language == "python"

    @staticmethod
    def _classify(node: ast.AST) -> Optional[tuple]:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            return "function", node.name
        if isinstance(node, ast.ClassDef):
            return "class", node.name
        if isinstance(node, (ast.Import, ast.ImportFrom)):
            return "import", None
        if isinstance(node, ast.Assign):
            target = node.targets[0]
            return "variable", target.id if isinstance(target, ast.Name) else None
        if isinstance(node, ast.AnnAssign):
            return "variable", node.target.id if isinstance(node.target, ast.Name) else None
        type_alias = getattr(ast, "TypeAlias", None)
        if type_alias is not None and isinstance(node, type_alias):
            return "type", node.name.id
        return None

    def parse(self, content: str, language: str) -> List[Declaration]:
        try:
            tree = ast.parse(content)
        except (SyntaxError, ValueError, MemoryError, RecursionError) as e:
            raise ChunkingError(f"Python parse failed: {type(e).__name__}: {e}") from e

        out: List[Declaration] = []
        for node in tree.body:
            found = self._classify(node)
            if found is None:
                continue
            start = node.lineno
            for deco in getattr(node, "decorator_list", []):
                start = min(start, deco.lineno)
            out.append(Declaration(type=found[0], start_line=start, end_line=node.end_lineno, name=found[1]))
        return out


# tree-sitter node type -> declaration type
TS_DECLARATION_TYPES: Dict[str, str] = {
    "function_declaration": "function",
    "generator_function_declaration": "function",
    "class_declaration": "class",
    "abstract_class_declaration": "class",
    "method_definition": "method",
    "interface_declaration": "interface",
    "type_alias_declaration": "type",
    "enum_declaration": "type",
    "variable_declaration": "variable",
    "lexical_declaration": "variable",
    "import_statement": "import",
}

TS_NAME_TYPES = {"identifier", "type_identifier", "property_identifier"}


class TreeSitterParser(StructuredParser):
    """Top-level declarations of JavaScript/TypeScript via tree-sitter."""

    LANGUAGES = {"javascript", "typescript", "tsx"}

    def __init__(self) -> None:
        self._parsers: Dict[str, Any] = {}
        self._failures: Dict[str, str] = {}
        self._lock = threading.Lock()

    def supports(self, language: Optional[str]) -> bool:
        return language in self.LANGUAGES

    def _get_parser(self, language: str) -> Any:
        with self._lock:
            failure = self._failures.get(language)
            if failure is not None:
                raise ChunkingError(failure)
            parser = self._parsers.get(language)
            if parser is not None:
                return parser
            try:
                from tree_sitter_language_pack import get_parser  # type: ignore

                parser = get_parser(language)
            except Exception as e:
                # remembered so later files skip straight to line windows
                self._failures[language] = f"tree-sitter grammar for {language} unavailable: {e}"
                logger.warning("%s", self._failures[language])
                raise ChunkingError(self._failures[language]) from e
            self._parsers[language] = parser
            logger.debug("Loaded tree-sitter grammar for %s", language)
            return parser

    @staticmethod
    def _node_name(node: Any) -> Optional[str]:
        named = node.child_by_field_name("name")
        if named is not None:
            return named.text.decode("utf-8", errors="replace")
        for child in node.children:
            if child.type in TS_NAME_TYPES:
                return child.text.decode("utf-8", errors="replace")
            if child.type == "variable_declarator":
                return TreeSitterParser._node_name(child)
        return None

    def _declaration(self, node: Any, outer: Any = None) -> Optional[Declaration]:
        span = outer if outer is not None else node
        if node.type == "export_statement":
            inner = node.child_by_field_name("declaration")
            if inner is None:
                for child in node.children:
                    if child.type in TS_DECLARATION_TYPES:
                        inner = child
                        break
            if inner is None:
                return Declaration(type="other", start_line=node.start_point[0] + 1, end_line=node.end_point[0] + 1)
            return self._declaration(inner, outer=node)

        decl_type = TS_DECLARATION_TYPES.get(node.type)
        if decl_type is None:
            return None
        return Declaration(
            type=decl_type,
            start_line=span.start_point[0] + 1,
            end_line=span.end_point[0] + 1,
            name=self._node_name(node),
        )

    def parse(self, content: str, language: str) -> List[Declaration]:
        parser = self._get_parser(language)
        try:
            tree = parser.parse(content.encode("utf-8"))
            out: List[Declaration] = []
            for child in tree.root_node.children:
                decl = self._declaration(child)
                if decl is not None:
                    out.append(decl)
        except Exception as e:
            raise ChunkingError(f"tree-sitter parse failed for {language}: {e}") from e
        return out
