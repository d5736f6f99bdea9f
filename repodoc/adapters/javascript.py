"""Tree-sitter powered adapter for JavaScript and TypeScript sources."""

from __future__ import annotations

import posixpath
import re
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from tree_sitter import Parser
from tree_sitter_languages import get_language

from .base import Adapter, AdapterError, AdapterOutput, infer_kind, module_path, reference_kind
from ..models import (
    Abstraction,
    EdgeKind,
    Operation,
    ReferenceHint,
    SourceUnit,
    bound_purpose,
    derive_abstraction_id,
)

_GRAMMARS = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}
_CLASS_NODES = {"class_declaration", "abstract_class_declaration"}
_FUNCTION_NODES = {"function_declaration", "generator_function_declaration"}
_REFERENCE_NODES = {"identifier", "type_identifier", "shorthand_property_identifier"}
_HIDDEN_MODIFIERS = {"private", "protected"}
_ENVIRONMENTS = {"process.env", "import.meta.env"}
_SOURCE_SUFFIX = re.compile(r"\.(?:[cm]?js|jsx|[cm]?ts|tsx)$")
_JSDOC_TAG = re.compile(r"^@\w+")


class JavaScriptAdapter(Adapter):
    """Maps classes (or modules of exported functions) to abstractions."""

    name = "javascript"
    ecosystems = ("javascript", "typescript")

    def __init__(self) -> None:
        self._languages: Dict[str, object] = {}

    def extract(self, unit: SourceUnit, content: str) -> AdapterOutput:
        if "\x00" in content:
            raise AdapterError(f"{unit.path} does not look like a text source")
        source = content.encode("utf-8")
        root = self._parser(unit.path).parse(source).root_node
        if root.has_error:
            raise AdapterError(f"Cannot parse {unit.path}: syntax error at line {_error_line(root)}")

        module = module_path(unit.path)
        imports = _collect_imports(root, source, unit.path)
        declarations = list(_declarations(root))
        classes = [
            (statement, node)
            for statement, node, _ in declarations
            if node.type in _CLASS_NODES and node.child_by_field_name("name") is not None
        ]
        siblings = {_text(node.child_by_field_name("name"), source) for _, node in classes}
        output = AdapterOutput()

        for statement, node in classes:
            name = _text(node.child_by_field_name("name"), source)
            body = node.child_by_field_name("body")
            base = _base_class(node, source)
            abstraction_id = derive_abstraction_id(unit.path, name)
            output.abstractions.append(
                Abstraction(
                    id=abstraction_id,
                    name=name,
                    kind=infer_kind(name, unit.path, [base] if base else []),
                    purpose=_leading_doc(statement, source),
                    operations=tuple(_methods(body, source)),
                    config_keys=_environment_keys([body], source),
                    source_path=unit.path,
                    ecosystem=unit.ecosystem,
                )
            )
            if base:
                target = _qualify(base, imports, module, siblings - {name})
                if target:
                    output.hints.append(ReferenceHint(abstraction_id, target, EdgeKind.EXTENDS))
            for target in _referenced_targets([body], source, imports, module, siblings - {name}):
                output.hints.append(ReferenceHint(abstraction_id, target, reference_kind(target.rsplit(".", 1)[-1])))

        functions = [
            node
            for _, node, exported in declarations
            if exported and node.type in _FUNCTION_NODES and node.child_by_field_name("name") is not None
        ]
        if not classes and functions:
            name = module.rsplit(".", 1)[-1] if module else unit.path
            abstraction_id = derive_abstraction_id(unit.path, name)
            output.abstractions.append(
                Abstraction(
                    id=abstraction_id,
                    name=name,
                    kind=infer_kind(name, unit.path),
                    purpose=_file_doc(root, source),
                    operations=tuple(
                        _operation(_text(node.child_by_field_name("name"), source), node, source)
                        for node in functions
                    ),
                    config_keys=_environment_keys(functions, source),
                    source_path=unit.path,
                    ecosystem=unit.ecosystem,
                )
            )
            for target in _referenced_targets(functions, source, imports, module, set()):
                output.hints.append(ReferenceHint(abstraction_id, target, reference_kind(target.rsplit(".", 1)[-1])))

        return output

    def _parser(self, path: str) -> Parser:
        key = _GRAMMARS.get(posixpath.splitext(path)[1].lower(), "javascript")
        language = self._languages.get(key)
        if language is None:
            language = get_language(key)
            self._languages[key] = language
        # Parsers are not shared between extraction threads.
        parser = Parser()
        parser.set_language(language)
        return parser


def _text(node, source: bytes) -> str:  # type: ignore[no-untyped-def]
    if node is None:
        return ""
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


def _named(node) -> list:  # type: ignore[no-untyped-def]
    if node is None:
        return []
    return [child for child in node.named_children if child.type != "comment"]


def _walk(nodes: Iterable) -> Iterator:  # type: ignore[type-arg]
    """Yield named nodes depth first, in source order."""
    stack = list(reversed([node for node in nodes if node is not None]))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.named_children))


def _error_line(root) -> int:  # type: ignore[no-untyped-def]
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
        stack.extend(reversed(node.children))
    return root.end_point[0] + 1


def _has_keyword(node, keyword: str) -> bool:  # type: ignore[no-untyped-def]
    return any(not child.is_named and child.type == keyword for child in node.children)


def _declarations(root) -> Iterator[Tuple[object, object, bool]]:  # type: ignore[no-untyped-def]
    """Yield ``(statement, declaration, exported)`` for each top-level statement."""
    for statement in _named(root):
        if statement.type == "export_statement":
            declaration = statement.child_by_field_name("declaration")
            if declaration is not None:
                yield statement, declaration, True
        else:
            yield statement, statement, False


def _collect_imports(root, source: bytes, path: str) -> Dict[str, str]:  # type: ignore[no-untyped-def]
    """Map local names bound by relative imports and requires to qualified targets."""
    imports: Dict[str, str] = {}
    directory = posixpath.dirname(path)
    for node in _walk([root]):
        if node.type == "import_statement":
            if _has_keyword(node, "type"):
                continue
            target_module = _resolve(_string_value(node.child_by_field_name("source"), source), directory)
            if target_module is None:
                continue
            for clause in _named(node):
                if clause.type == "import_clause":
                    imports.update(_import_bindings(clause, source, target_module))
        elif node.type == "variable_declarator":
            target_module = _resolve(_require_source(node.child_by_field_name("value"), source), directory)
            if target_module is None:
                continue
            imports.update(_pattern_bindings(node.child_by_field_name("name"), source, target_module))
    return imports


def _resolve(specifier: Optional[str], directory: str) -> Optional[str]:
    if not specifier or not specifier.startswith("."):
        return None
    resolved = posixpath.normpath(posixpath.join(directory, specifier))
    return module_path(_SOURCE_SUFFIX.sub("", resolved))


def _string_value(node, source: bytes) -> Optional[str]:  # type: ignore[no-untyped-def]
    if node is None or node.type != "string":
        return None
    return _text(node, source)[1:-1]


def _require_source(node, source: bytes) -> Optional[str]:  # type: ignore[no-untyped-def]
    if node is None or node.type != "call_expression":
        return None
    if _text(node.child_by_field_name("function"), source) != "require":
        return None
    arguments = _named(node.child_by_field_name("arguments"))
    if len(arguments) != 1:
        return None
    return _string_value(arguments[0], source)


def _import_bindings(clause, source: bytes, target_module: str) -> Dict[str, str]:  # type: ignore[no-untyped-def]
    bindings: Dict[str, str] = {}
    for child in _named(clause):
        if child.type == "identifier":
            local = _text(child, source)
            bindings[local] = f"{target_module}.{local}"
        elif child.type == "namespace_import":
            names = [item for item in _named(child) if item.type == "identifier"]
            if names:
                bindings[_text(names[-1], source)] = target_module
        elif child.type == "named_imports":
            for specifier in _named(child):
                if specifier.type != "import_specifier" or _has_keyword(specifier, "type"):
                    continue
                imported = _text(specifier.child_by_field_name("name"), source)
                alias = specifier.child_by_field_name("alias")
                local = _text(alias, source) if alias is not None else imported
                bindings[local] = f"{target_module}.{imported}"
    return bindings


def _pattern_bindings(pattern, source: bytes, target_module: str) -> Dict[str, str]:  # type: ignore[no-untyped-def]
    bindings: Dict[str, str] = {}
    if pattern is None:
        return bindings
    if pattern.type == "identifier":
        bindings[_text(pattern, source)] = target_module
    elif pattern.type == "object_pattern":
        for child in _named(pattern):
            if child.type == "shorthand_property_identifier_pattern":
                name = _text(child, source)
                bindings[name] = f"{target_module}.{name}"
            elif child.type == "pair_pattern":
                value = child.child_by_field_name("value")
                if value is not None and value.type == "identifier":
                    key = _text(child.child_by_field_name("key"), source)
                    bindings[_text(value, source)] = f"{target_module}.{key}"
    return bindings


def _base_class(node, source: bytes) -> Optional[str]:  # type: ignore[no-untyped-def]
    for child in _named(node):
        if child.type != "class_heritage":
            continue
        clauses = _named(child)
        if not clauses or clauses[0].type == "implements_clause":
            return None
        clause = clauses[0]
        if clause.type == "extends_clause":
            value = clause.child_by_field_name("value")
            if value is None:
                values = _named(clause)
                value = values[0] if values else None
            return _text(value, source) or None
        return _text(clause, source) or None
    return None


def _methods(body, source: bytes) -> List[Operation]:  # type: ignore[no-untyped-def]
    operations: List[Operation] = []
    for member in _named(body):
        if member.type != "method_definition":
            continue
        name = _text(member.child_by_field_name("name"), source)
        if not name or name == "constructor" or name.startswith(("_", "#")):
            continue
        if any(
            child.type == "accessibility_modifier" and _text(child, source) in _HIDDEN_MODIFIERS
            for child in member.children
        ):
            continue
        operations.append(_operation(name, member, source))
    return operations


def _operation(name: str, node, source: bytes) -> Operation:  # type: ignore[no-untyped-def]
    parameters = _named(node.child_by_field_name("parameters"))
    returns = _collapse(_text(node.child_by_field_name("return_type"), source).lstrip(":"))
    return Operation(
        name=name,
        parameters=tuple(_collapse(_text(parameter, source)) for parameter in parameters),
        returns=returns or "unspecified",
    )


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _qualify(expression: str, imports: Dict[str, str], module: str, siblings: Set[str]) -> Optional[str]:
    root, _, rest = expression.partition(".")
    if root in imports:
        return f"{imports[root]}.{rest}" if rest else imports[root]
    if root in siblings:
        return f"{module}.{expression}" if module else expression
    return None


def _referenced_targets(
    nodes: Iterable,  # type: ignore[type-arg]
    source: bytes,
    imports: Dict[str, str],
    module: str,
    siblings: Set[str],
) -> List[str]:
    targets: List[str] = []
    for node in _walk(nodes):
        if node.type not in _REFERENCE_NODES:
            continue
        target = _qualify(_text(node, source), imports, module, siblings)
        if target and target not in targets:
            targets.append(target)
    return targets


def _environment_keys(nodes: Iterable, source: bytes) -> Dict[str, str]:  # type: ignore[type-arg]
    """Find ``process.env`` lookups with literal keys."""
    keys: Dict[str, str] = {}
    for node in _walk(nodes):
        key: Optional[str] = None
        if node.type == "member_expression":
            if _text(node.child_by_field_name("object"), source) in _ENVIRONMENTS:
                key = _text(node.child_by_field_name("property"), source)
        elif node.type == "subscript_expression":
            if _text(node.child_by_field_name("object"), source) in _ENVIRONMENTS:
                key = _string_value(node.child_by_field_name("index"), source)
        if key and key not in keys:
            keys[key] = "read from the environment"
    return keys


def _leading_doc(statement, source: bytes) -> str:  # type: ignore[no-untyped-def]
    previous = statement.prev_named_sibling
    if previous is None or previous.type != "comment":
        return ""
    return _jsdoc(_text(previous, source))


def _file_doc(root, source: bytes) -> str:  # type: ignore[no-untyped-def]
    for child in root.named_children:
        if child.type == "hash_bang_line":
            continue
        return _jsdoc(_text(child, source)) if child.type == "comment" else ""
    return ""


def _jsdoc(comment: str) -> str:
    if not comment.startswith("/**") or not comment.endswith("*/"):
        return ""
    lines: List[str] = []
    for line in comment[3:-2].splitlines():
        text = line.strip().lstrip("*").strip()
        if _JSDOC_TAG.match(text):
            break
        if not text and lines:
            break
        if text:
            lines.append(text)
    return bound_purpose(" ".join(lines))


__all__ = ["JavaScriptAdapter"]
