"""Reference adapter for Python sources, built on the standard ``ast`` module."""

from __future__ import annotations

import ast
import sys
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from .base import Adapter, AdapterError, AdapterOutput, infer_kind, module_path, reference_kind
from ..models import (
    Abstraction,
    AbstractionKind,
    EdgeKind,
    Operation,
    ReferenceHint,
    SourceUnit,
    bound_purpose,
    derive_abstraction_id,
)

_FunctionNode = Union[ast.FunctionDef, ast.AsyncFunctionDef]
_STDLIB = frozenset(getattr(sys, "stdlib_module_names", ())) | {"__future__"}


class PythonAdapter(Adapter):
    """Maps public classes (or function-only modules) to abstractions."""

    name = "python"
    ecosystems = ("python",)

    def extract(self, unit: SourceUnit, content: str) -> AdapterOutput:
        try:
            tree = ast.parse(content, filename=unit.path)
        except (SyntaxError, ValueError) as exc:
            raise AdapterError(f"Cannot parse {unit.path}: {exc}") from exc

        module = module_path(unit.path)
        imports = _collect_imports(tree, module, is_package=unit.path.endswith("__init__.py"))
        classes = [
            node for node in tree.body if isinstance(node, ast.ClassDef) and not node.name.startswith("_")
        ]
        siblings = {node.name for node in classes}
        output = AdapterOutput()

        for node in classes:
            bases = [ast.unparse(base) for base in node.bases]
            kind = infer_kind(node.name, unit.path, bases)
            abstraction_id = derive_abstraction_id(unit.path, node.name)
            methods = [
                child
                for child in node.body
                if isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef)) and not child.name.startswith("_")
            ]
            output.abstractions.append(
                Abstraction(
                    id=abstraction_id,
                    name=node.name,
                    kind=kind,
                    purpose=_summary(node),
                    operations=tuple(_operation(method) for method in methods),
                    config_keys=_class_config_keys(node, kind),
                    source_path=unit.path,
                    ecosystem=unit.ecosystem,
                )
            )
            for base in node.bases:
                target = _qualify(ast.unparse(base), imports, module, siblings - {node.name})
                if target:
                    output.hints.append(ReferenceHint(abstraction_id, target, EdgeKind.EXTENDS))
            for target in _referenced_targets(node.body, imports, module, siblings - {node.name}):
                output.hints.append(ReferenceHint(abstraction_id, target, reference_kind(target.rsplit(".", 1)[-1])))

        functions: List[_FunctionNode] = [
            node
            for node in tree.body
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) and not node.name.startswith("_")
        ]
        if not classes and functions:
            name = module.rsplit(".", 1)[-1] if module else unit.path
            abstraction_id = derive_abstraction_id(unit.path, name)
            kind = infer_kind(name, unit.path)
            output.abstractions.append(
                Abstraction(
                    id=abstraction_id,
                    name=name,
                    kind=kind,
                    purpose=_summary(tree),
                    operations=tuple(_operation(function) for function in functions),
                    config_keys=_environment_keys(tree.body),
                    source_path=unit.path,
                    ecosystem=unit.ecosystem,
                )
            )
            for target in _referenced_targets(functions, imports, module, siblings):
                output.hints.append(ReferenceHint(abstraction_id, target, reference_kind(target.rsplit(".", 1)[-1])))

        return output


def _summary(node: Union[ast.ClassDef, ast.Module]) -> str:
    docstring = ast.get_docstring(node) or ""
    first_paragraph = docstring.strip().split("\n\n", 1)[0]
    return bound_purpose(first_paragraph)


def _operation(node: _FunctionNode) -> Operation:
    args = node.args
    positional = [*args.posonlyargs, *args.args]
    if positional and positional[0].arg in {"self", "cls"}:
        positional = positional[1:]
    parameters = [_format_arg(arg) for arg in positional]
    if args.vararg is not None:
        parameters.append("*" + _format_arg(args.vararg))
    elif args.kwonlyargs:
        parameters.append("*")
    parameters.extend(_format_arg(arg) for arg in args.kwonlyargs)
    if args.kwarg is not None:
        parameters.append("**" + _format_arg(args.kwarg))
    returns = ast.unparse(node.returns) if node.returns is not None else "unspecified"
    return Operation(name=node.name, parameters=tuple(parameters), returns=returns)


def _format_arg(arg: ast.arg) -> str:
    if arg.annotation is None:
        return arg.arg
    return f"{arg.arg}: {ast.unparse(arg.annotation)}"


def _collect_imports(tree: ast.Module, module: str, *, is_package: bool) -> Dict[str, str]:
    """Map local names bound by project imports to their qualified targets."""
    imports: Dict[str, str] = {}
    package_parts = module.split(".") if module else []
    if not is_package and package_parts:
        package_parts = package_parts[:-1]

    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                if _is_stdlib(alias.name):
                    continue
                if alias.asname:
                    imports[alias.asname] = alias.name
                else:
                    root = alias.name.split(".", 1)[0]
                    imports.setdefault(root, root)
        elif isinstance(node, ast.ImportFrom):
            if node.level == 0 and node.module and _is_stdlib(node.module):
                continue
            if node.level:
                keep = len(package_parts) - (node.level - 1)
                if keep < 0:
                    continue
                base_parts = package_parts[:keep]
                if node.module:
                    base_parts = base_parts + node.module.split(".")
                base = ".".join(base_parts)
            else:
                base = node.module or ""
            for alias in node.names:
                if alias.name == "*":
                    continue
                local = alias.asname or alias.name
                imports[local] = f"{base}.{alias.name}" if base else alias.name
    return imports


def _is_stdlib(dotted: str) -> bool:
    return dotted.split(".", 1)[0] in _STDLIB


def _qualify(expression: str, imports: Dict[str, str], module: str, siblings: Set[str]) -> Optional[str]:
    expression = expression.split("[", 1)[0]
    root, _, rest = expression.partition(".")
    if root in imports:
        return f"{imports[root]}.{rest}" if rest else imports[root]
    if root in siblings:
        return f"{module}.{expression}" if module else expression
    return None


def _dotted_name(node: ast.AST) -> Optional[str]:
    parts: List[str] = []
    while isinstance(node, ast.Attribute):
        parts.append(node.attr)
        node = node.value
    if not isinstance(node, ast.Name):
        return None
    parts.append(node.id)
    return ".".join(reversed(parts))


def _referenced_targets(
    body: Sequence[ast.AST],
    imports: Dict[str, str],
    module: str,
    siblings: Set[str],
) -> List[str]:
    """Return qualified targets referenced in ``body``, in source order, without duplicates."""
    found: List[Tuple[int, int, str]] = []
    for statement in body:
        for node in ast.walk(statement):
            if isinstance(node, ast.Attribute):
                dotted = _dotted_name(node)
            elif isinstance(node, ast.Name):
                dotted = node.id
            else:
                continue
            if dotted is None:
                continue
            target = _qualify(dotted, imports, module, siblings)
            if target:
                found.append((node.lineno, node.col_offset, target))

    targets: List[str] = []
    for _, _, target in sorted(found):
        # Attribute chains also visit their inner Name; keep only the longest spelling.
        if any(existing == target or existing.startswith(f"{target}.") for existing in targets):
            continue
        targets = [existing for existing in targets if not target.startswith(f"{existing}.")]
        targets.append(target)
    return targets


def _class_config_keys(node: ast.ClassDef, kind: AbstractionKind) -> Dict[str, str]:
    keys: Dict[str, str] = {}
    if kind is AbstractionKind.CONFIG:
        for statement in node.body:
            if isinstance(statement, ast.AnnAssign) and isinstance(statement.target, ast.Name):
                name = statement.target.id
                if name.startswith("_"):
                    continue
                effect = ast.unparse(statement.annotation)
                if statement.value is not None:
                    effect = f"{effect}, defaults to {ast.unparse(statement.value)}"
                keys[name] = effect
            elif isinstance(statement, ast.Assign):
                for target in statement.targets:
                    if isinstance(target, ast.Name) and target.id.isupper():
                        keys[target.id] = f"defaults to {ast.unparse(statement.value)}"
    keys.update(_environment_keys(node.body))
    return keys


def _environment_keys(body: Iterable[ast.AST]) -> Dict[str, str]:
    """Find ``os.environ``/``os.getenv`` lookups with literal keys."""
    keys: Dict[str, str] = {}
    for statement in body:
        for node in ast.walk(statement):
            key: Optional[str] = None
            default: Optional[ast.AST] = None
            if isinstance(node, ast.Call):
                func = _dotted_name(node.func)
                if func in {"os.getenv", "getenv", "os.environ.get", "environ.get"} and node.args:
                    key = _literal_str(node.args[0])
                    default = node.args[1] if len(node.args) > 1 else None
            elif isinstance(node, ast.Subscript) and _dotted_name(node.value) in {"os.environ", "environ"}:
                key = _literal_str(node.slice)
            if not key or key in keys:
                continue
            effect = "read from the environment"
            if default is not None:
                effect = f"{effect}, defaults to {ast.unparse(default)}"
            keys[key] = effect
    return keys


def _literal_str(node: ast.AST) -> Optional[str]:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return None


__all__ = ["PythonAdapter"]
