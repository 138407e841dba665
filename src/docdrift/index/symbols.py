"""Code entity extraction from tree-sitter parse trees.

Finds definitions (functions, classes, types), framework routes and
imported packages in Python, JavaScript/TypeScript, Go, Rust and Java
sources. Files with syntax errors still yield every entity outside the
broken region.
"""
from __future__ import annotations

import hashlib
import logging
from pathlib import PurePosixPath
from typing import Iterator, Literal

import tree_sitter_go
import tree_sitter_java
import tree_sitter_javascript
import tree_sitter_python
import tree_sitter_rust
import tree_sitter_typescript
from tree_sitter import Language as Grammar
from tree_sitter import Node, Parser

from .protocol import CodeEntity, EntityType

logger = logging.getLogger(__name__)

Language = Literal["python", "javascript", "typescript", "go", "rust", "java"]

# Extension to language mapping
EXTENSION_MAP: dict[str, Language] = {
    # Python
    ".py": "python",
    ".pyi": "python",

    # JavaScript
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",

    # TypeScript
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "typescript",

    ".go": "go",
    ".rs": "rust",
    ".java": "java",
}

# Grammar loaders; .tsx needs the TSX dialect of the TypeScript grammar
GRAMMAR_LOADERS = {
    "python": tree_sitter_python.language,
    "javascript": tree_sitter_javascript.language,
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
    "go": tree_sitter_go.language,
    "rust": tree_sitter_rust.language,
    "java": tree_sitter_java.language,
}

MAX_CODE_FILE_SIZE = 500 * 1024
MAX_SIGNATURE_LENGTH = 200

# Cached parsers for each grammar
_PARSERS: dict[str, Parser] = {}


def detect_language(file_path: str) -> Language | None:
    return EXTENSION_MAP.get(PurePosixPath(file_path).suffix.lower())


def is_code_file(file_path: str) -> bool:
    return detect_language(file_path) is not None


def get_parser(grammar: str) -> Parser | None:
    """Get or create a tree-sitter parser for a grammar name.

    Args:
        grammar: Language identifier, or ``tsx``

    Returns:
        Parser instance or None if the grammar is not supported
    """
    if grammar in _PARSERS:
        return _PARSERS[grammar]

    loader = GRAMMAR_LOADERS.get(grammar)
    if loader is None:
        return None

    parser = Parser(Grammar(loader()))
    _PARSERS[grammar] = parser
    return parser


# =============================================================================
# Node vocabulary
# =============================================================================

HTTP_METHODS = {"get", "post", "put", "patch", "delete", "head", "options"}

# Express/Koa/Hono: app.get('/users', ...), router.all('/x', ...)
JS_ROUTE_METHODS = HTTP_METHODS | {"all"}

# Gin/Echo/Chi/Fiber: r.GET("/users", ...), e.Post("/x", ...)
GO_ROUTE_METHODS = {m.upper() for m in HTTP_METHODS} | {m.capitalize() for m in HTTP_METHODS}
GO_HANDLE_FUNCS = {"HandleFunc", "Handle"}

# (node type -> entity type) per language; names come from the "name" field
DEFINITION_NODES: dict[Language, dict[str, EntityType]] = {
    "python": {
        "function_definition": "function",
        "class_definition": "class",
    },
    "javascript": {
        "function_declaration": "function",
        "generator_function_declaration": "function",
        "method_definition": "function",
        "class_declaration": "class",
    },
    "typescript": {
        "function_declaration": "function",
        "generator_function_declaration": "function",
        "function_signature": "function",
        "method_definition": "function",
        "class_declaration": "class",
        "abstract_class_declaration": "class",
        "interface_declaration": "type",
        "type_alias_declaration": "type",
        "enum_declaration": "type",
    },
    "go": {
        "function_declaration": "function",
        "method_declaration": "function",
    },
    "rust": {
        "function_item": "function",
        "struct_item": "class",
        "enum_item": "type",
        "trait_item": "type",
        "type_item": "type",
    },
    "java": {
        "method_declaration": "function",
        "constructor_declaration": "function",
        "class_declaration": "class",
        "record_declaration": "class",
        "interface_declaration": "type",
        "enum_declaration": "type",
    },
}

FUNCTION_VALUE_NODES = {"arrow_function", "function_expression", "function", "generator_function"}

STRING_CONTENT_NODES = {
    "string_fragment",
    "string_content",
    "interpreted_string_literal_content",
    "raw_string_literal_content",
}

SUBSTITUTION_NODES = {"template_substitution", "interpolation"}


# =============================================================================
# Helpers
# =============================================================================

def _traverse_tree(root: Node) -> Iterator[Node]:
    """Traverse tree depth-first, in document order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _get_text(source: bytes, node: Node | None) -> str:
    """Get text for a node."""
    if node is None:
        return ""
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def _string_value(source: bytes, node: Node) -> str | None:
    """Literal value of a string node; None for interpolated strings."""
    if any(child.type in SUBSTITUTION_NODES for child in node.children):
        return None
    parts = [_get_text(source, child) for child in node.children if child.type in STRING_CONTENT_NODES]
    if parts:
        return "".join(parts)
    text = _get_text(source, node)
    if len(text) >= 2 and text[0] in "'\"`" and text[-1] == text[0]:
        return text[1:-1]
    return None


def _first_string_arg(source: bytes, arguments: Node | None) -> str | None:
    if arguments is None:
        return None
    for arg in arguments.named_children:
        if arg.type in ("string", "template_string", "interpreted_string_literal", "raw_string_literal"):
            return _string_value(source, arg)
    return None


def _entity_id(file_path: str, line_number: int, name: str) -> str:
    return hashlib.sha1(f"{file_path}:{line_number}:{name}".encode()).hexdigest()[:16]


def _make_entity(
    file_path: str,
    lines: list[str],
    start: int,
    end: int,
    entity_type: EntityType,
    name: str,
) -> CodeEntity:
    return CodeEntity(
        id=_entity_id(file_path, start + 1, name),
        file_path=file_path,
        line_number=start + 1,
        end_line_number=end + 1,
        entity_type=entity_type,
        name=name,
        signature=lines[start].strip()[:MAX_SIGNATURE_LENGTH],
        raw_code="\n".join(lines[start:end + 1]),
    )


def _span(node: Node) -> tuple[int, int]:
    """Line span of a definition, widened to an enclosing export."""
    parent = node.parent
    if parent is not None and parent.type == "export_statement":
        node = parent
    return node.start_point[0], node.end_point[0]


def _import_name(module: str) -> str | None:
    """Package name for an import specifier; None for relative imports."""
    if not module or module.startswith("."):
        return None
    if module.startswith("@"):
        return "/".join(module.split("/")[:2])
    return module.split("/")[0]


# =============================================================================
# Definitions
# =============================================================================

def _definition(source: bytes, language: Language, node: Node) -> tuple[EntityType, str, Node] | None:
    """(entity type, name, span node) when ``node`` defines something."""
    entity_type = DEFINITION_NODES[language].get(node.type)
    if entity_type is not None:
        name = _get_text(source, node.child_by_field_name("name"))
        return (entity_type, name, node) if name else None

    if language in ("javascript", "typescript") and node.type == "variable_declarator":
        value = node.child_by_field_name("value")
        if value is not None and value.type in FUNCTION_VALUE_NODES:
            name = _get_text(source, node.child_by_field_name("name"))
            # Span the whole `const x = ...` statement
            declaration = node.parent if node.parent is not None else node
            return ("function", name, declaration) if name else None

    if language == "go" and node.type == "type_spec":
        kind = node.child_by_field_name("type")
        name = _get_text(source, node.child_by_field_name("name"))
        if kind is not None and name:
            if kind.type == "struct_type":
                return "class", name, node
            if kind.type == "interface_type":
                return "type", name, node
    return None


# =============================================================================
# Routes
# =============================================================================

def _js_route(source: bytes, node: Node) -> list[tuple[str, str]]:
    function = node.child_by_field_name("function")
    if function is None or function.type != "member_expression":
        return []
    method = _get_text(source, function.child_by_field_name("property"))
    if method not in JS_ROUTE_METHODS:
        return []
    path = _first_string_arg(source, node.child_by_field_name("arguments"))
    if not path or not path.startswith("/"):
        return []
    return [(method.upper(), path)]


def _go_route(source: bytes, node: Node) -> list[tuple[str, str]]:
    function = node.child_by_field_name("function")
    if function is None or function.type != "selector_expression":
        return []
    field = _get_text(source, function.child_by_field_name("field"))
    if field in GO_ROUTE_METHODS:
        method = field.upper()
    elif field in GO_HANDLE_FUNCS:
        method = "ALL"
    else:
        return []
    path = _first_string_arg(source, node.child_by_field_name("arguments"))
    if not path or not path.startswith("/"):
        return []
    return [(method, path)]


def _flask_methods(source: bytes, arguments: Node) -> list[str]:
    """Values of a ``methods=[...]`` keyword argument."""
    for arg in arguments.named_children:
        if arg.type != "keyword_argument":
            continue
        if _get_text(source, arg.child_by_field_name("name")) != "methods":
            continue
        value = arg.child_by_field_name("value")
        if value is None or value.type not in ("list", "tuple"):
            return []
        methods = [_string_value(source, item) for item in value.named_children if item.type == "string"]
        return [m.upper() for m in methods if m]
    return []


def _python_routes(source: bytes, decorated: Node) -> list[tuple[str, str]]:
    """Routes declared by FastAPI/Flask decorators on a decorated function."""
    definition = decorated.child_by_field_name("definition")
    if definition is None or definition.type != "function_definition":
        return []

    routes: list[tuple[str, str]] = []
    for decorator in decorated.children:
        if decorator.type != "decorator" or not decorator.named_children:
            continue
        call = decorator.named_children[0]
        if call.type != "call":
            continue
        function = call.child_by_field_name("function")
        arguments = call.child_by_field_name("arguments")
        if function is None or function.type != "attribute" or arguments is None:
            continue
        attribute = _get_text(source, function.child_by_field_name("attribute"))
        path = _first_string_arg(source, arguments)
        if not path or not path.startswith("/"):
            continue
        # FastAPI: @app.get("/items/{id}")
        if attribute in HTTP_METHODS:
            routes.append((attribute.upper(), path))
        # Flask: @app.route("/login", methods=["GET", "POST"])
        elif attribute == "route":
            routes.extend((method, path) for method in _flask_methods(source, arguments) or ["GET"])
    return routes


# =============================================================================
# Imports
# =============================================================================

def _python_imports(source: bytes, node: Node) -> list[str]:
    if node.type == "import_from_statement":
        module = node.child_by_field_name("module_name")
        if module is None or module.type != "dotted_name":
            return []
        return [_get_text(source, module).split(".")[0]]

    modules = []
    for child in node.named_children:
        if child.type == "aliased_import":
            child = child.child_by_field_name("name")
        if child is not None and child.type == "dotted_name":
            modules.append(_get_text(source, child).split(".")[0])
    return modules


def _js_import(source: bytes, node: Node) -> str | None:
    if node.type == "import_statement":
        specifier = node.child_by_field_name("source")
        return _import_name(_string_value(source, specifier) or "") if specifier is not None else None
    # require('pkg')
    function = node.child_by_field_name("function")
    if function is None or _get_text(source, function) != "require":
        return None
    return _import_name(_first_string_arg(source, node.child_by_field_name("arguments")) or "")


# =============================================================================
# Scanning
# =============================================================================

def scan_entities(file_path: str, content: str) -> list[CodeEntity]:
    """Extract code entities from one source file.

    Args:
        file_path: Repository-relative path (determines language)
        content: File content

    Returns:
        Entities in line order; empty for unsupported or oversized files
    """
    language = detect_language(file_path)
    if language is None or len(content) > MAX_CODE_FILE_SIZE:
        return []

    grammar = "tsx" if file_path.lower().endswith(".tsx") else language
    parser = get_parser(grammar)
    if parser is None:
        return []

    source = content.encode("utf-8")
    tree = parser.parse(source)
    if tree.root_node.has_error:
        logger.debug(f"Syntax errors in {file_path}; indexing the parseable parts")

    lines = content.split("\n")
    entities: list[CodeEntity] = []
    seen_imports: set[str] = set()

    def add_import(module: str | None, node: Node) -> None:
        if module and module not in seen_imports:
            seen_imports.add(module)
            entities.append(_make_entity(
                file_path, lines, node.start_point[0], node.end_point[0], "import", module
            ))

    for node in _traverse_tree(tree.root_node):
        definition = _definition(source, language, node)
        if definition is not None:
            entity_type, name, span_node = definition
            start, end = _span(span_node)
            entities.append(_make_entity(file_path, lines, start, end, entity_type, name))
            continue

        routes: list[tuple[str, str]] = []
        if language == "python":
            if node.type == "decorated_definition":
                routes = _python_routes(source, node)
            elif node.type in ("import_statement", "import_from_statement"):
                for module in _python_imports(source, node):
                    add_import(module, node)
        elif language in ("javascript", "typescript"):
            if node.type == "call_expression":
                routes = _js_route(source, node)
                add_import(_js_import(source, node), node)
            elif node.type == "import_statement":
                add_import(_js_import(source, node), node)
        elif language == "go" and node.type == "call_expression":
            routes = _go_route(source, node)

        for method, path in routes:
            entities.append(_make_entity(
                file_path, lines, node.start_point[0], node.end_point[0], "route", f"{method} {path}"
            ))

    entities.sort(key=lambda e: e.line_number)
    return entities
