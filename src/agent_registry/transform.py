"""
Import specifier rewriting for installed source files.

Registry items import each other through the ``@/agents``, ``@/tools`` and
``@/prompts`` prefixes. When an item is installed into a project those
prefixes are rewritten to the project's configured aliases. Only the module
specifier literals change; all other bytes of the file are kept.
"""

from __future__ import annotations

from pathlib import PurePosixPath

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from agent_registry.config import Config

TYPESCRIPT = Language(tree_sitter_typescript.language_typescript())
TSX = Language(tree_sitter_typescript.language_tsx())

SOURCE_EXTENSIONS = {
    ".ts": TYPESCRIPT,
    # plain JS parses fine with the TypeScript grammar
    ".js": TYPESCRIPT,
    ".tsx": TSX,
    ".jsx": TSX,
}

INTERNAL_PREFIXES = ("tools", "prompts", "agents")


def transform_imports(filename: str, raw: str, config: Config) -> str:
    """Rewrite internal import specifiers in *raw* to the project aliases.

    Files that are not TypeScript/JavaScript are returned unchanged.

    Example:
        >>> transform_imports("a.ts", 'import x from "@/tools/lib/x"', config)
        'import x from "~/mytools/lib/x"'
    """
    language = SOURCE_EXTENSIONS.get(PurePosixPath(filename).suffix.lower())
    if language is None:
        return raw

    source = raw.encode("utf-8")
    # fresh parser per call, nothing carries over between files
    tree = Parser(language).parse(source)

    edits: list[tuple[int, int, bytes]] = []
    for literal in _module_specifiers(tree.root_node):
        start, end = literal.start_byte + 1, literal.end_byte - 1
        value = source[start:end].decode("utf-8")
        updated = update_import_alias(value, config)
        if updated != value:
            edits.append((start, end, updated.encode("utf-8")))

    if not edits:
        return raw

    out = bytearray(source)
    for start, end, replacement in sorted(edits, reverse=True):
        out[start:end] = replacement
    return out.decode("utf-8")


def update_import_alias(specifier: str, config: Config) -> str:
    """Map one module specifier to the configured alias, if it is internal."""
    for category in INTERNAL_PREFIXES:
        prefix = f"@/{category}"
        alias = config.aliases.for_category(category)
        if specifier == prefix:
            return alias
        if specifier.startswith(prefix + "/"):
            return f"{alias}/{specifier[len(prefix) + 1:]}"
    return specifier


def _module_specifiers(root: Node) -> list[Node]:
    """String literal nodes used as import/export/require/import() sources."""
    found: list[Node] = []
    stack = [root]
    while stack:
        node = stack.pop()
        literal = _specifier_of(node)
        if literal is not None and literal.type == "string":
            found.append(literal)
        stack.extend(reversed(node.children))
    return found


def _specifier_of(node: Node) -> Node | None:
    if node.type in ("import_statement", "export_statement"):
        return node.child_by_field_name("source")

    if node.type == "import_require_clause":
        source = node.child_by_field_name("source")
        if source is not None:
            return source
        return next((c for c in node.children if c.type == "string"), None)

    if node.type == "call_expression":
        function = node.child_by_field_name("function")
        if function is None:
            return None
        is_dynamic_import = function.type == "import"
        is_require = function.type == "identifier" and function.text == b"require"
        if not (is_dynamic_import or is_require):
            return None
        arguments = node.child_by_field_name("arguments")
        if arguments is None or not arguments.named_children:
            return None
        return arguments.named_children[0]

    return None
