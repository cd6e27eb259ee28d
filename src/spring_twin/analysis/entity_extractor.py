"""Structural entity extraction from Java compilation units via Tree-sitter.

Per unit the extractor emits at most one ClassNode (the primary top-level
type), its methods and HTTP endpoints, plus unresolved dependency and call
references. Type references are resolved against the whole project later,
in :mod:`spring_twin.analysis.pipeline`.
"""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from loguru import logger
from tree_sitter_language_pack import get_parser

from spring_twin.architecture.models import (
    ClassNode,
    EndpointNode,
    MethodNode,
    endpoint_id_for,
    method_id_for,
)

from .conventions import (
    BEAN_LABELS,
    INJECTION_ANNOTATIONS,
    LOMBOK_CONSTRUCTORS,
    MAPPING_ANNOTATIONS,
    http_methods_for,
    join_paths,
    labels_for,
    media_type,
)
from .source_scanner import CompilationUnit

TYPE_DECLARATIONS = {
    "class_declaration": "class",
    "interface_declaration": "interface",
    "enum_declaration": "enum",
    "record_declaration": "record",
    "annotation_type_declaration": "annotation",
}

COMMENT_TYPES = {"line_comment", "block_comment"}

# descriptor units that legitimately declare no type
DESCRIPTOR_UNITS = {"package-info.java", "module-info.java"}

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class Annotation:
    name: str
    arguments: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def values(self, *keys: str) -> List[str]:
        for key in keys:
            if key in self.arguments:
                return list(self.arguments[key])
        return []


@dataclass(frozen=True)
class ImportRef:
    name: str
    wildcard: bool = False
    static: bool = False


@dataclass(frozen=True)
class DependencyRef:
    type_name: str
    field_name: str
    injection_type: str


@dataclass(frozen=True)
class CallRef:
    caller_id: str
    receiver_type: str
    method_name: str
    line: int


@dataclass
class ExtractionResult:
    """Entities and unresolved references found in one compilation unit."""

    unit: CompilationUnit
    class_node: Optional[ClassNode] = None
    methods: List[MethodNode] = field(default_factory=list)
    endpoints: List[EndpointNode] = field(default_factory=list)
    dependencies: List[DependencyRef] = field(default_factory=list)
    calls: List[CallRef] = field(default_factory=list)
    imports: List[ImportRef] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def _text(node) -> str:
    return node.text.decode("utf-8", errors="replace")


def _compact(node) -> str:
    return _WHITESPACE_RE.sub("", _text(node))


def _line(node) -> int:
    return int(node.start_point[0]) + 1


def _named(node) -> Iterator:
    for child in node.named_children:
        if child.type not in COMMENT_TYPES:
            yield child


def _element_values(node) -> List[str]:
    if node.type == "element_value_array_initializer":
        values: List[str] = []
        for child in _named(node):
            values.extend(_element_values(child))
        return values
    if node.type == "string_literal":
        raw = _text(node)
        return [raw[1:-1] if len(raw) >= 2 and raw[0] == raw[-1] == '"' else raw]
    return [_compact(node)]


def _annotation(node) -> Annotation:
    name_node = node.child_by_field_name("name")
    name = _text(name_node).rsplit(".", 1)[-1] if name_node is not None else ""
    arguments: Dict[str, Tuple[str, ...]] = {}
    args_node = node.child_by_field_name("arguments")
    if args_node is not None:
        for child in _named(args_node):
            if child.type == "element_value_pair":
                key_node = child.child_by_field_name("key")
                value_node = child.child_by_field_name("value")
                if key_node is None or value_node is None:
                    continue
                arguments[_text(key_node)] = tuple(_element_values(value_node))
            else:
                arguments["value"] = tuple(_element_values(child))
    return Annotation(name=name, arguments=arguments)


def _modifiers(declaration) -> Tuple[frozenset, List[Annotation]]:
    keywords = set()
    annotations: List[Annotation] = []
    for child in declaration.children:
        if child.type != "modifiers":
            continue
        for item in child.children:
            if item.type in ("marker_annotation", "annotation"):
                annotations.append(_annotation(item))
            elif not item.is_named:
                keywords.add(_text(item))
    return frozenset(keywords), annotations


def _annotation_map(annotations: List[Annotation]) -> Dict[str, Annotation]:
    return {annotation.name: annotation for annotation in annotations}


def _parameters(parameters_node) -> List[Tuple[str, str]]:
    """(type, name) pairs of a formal_parameters node."""
    params: List[Tuple[str, str]] = []
    if parameters_node is None:
        return params
    for child in _named(parameters_node):
        if child.type == "formal_parameter":
            type_node = child.child_by_field_name("type")
            name_node = child.child_by_field_name("name")
            if type_node is not None:
                params.append((_compact(type_node), _text(name_node) if name_node is not None else ""))
        elif child.type == "spread_parameter":
            type_text, name = "", ""
            for item in _named(child):
                if item.type == "modifiers":
                    continue
                if item.type == "variable_declarator":
                    name_node = item.child_by_field_name("name")
                    name = _text(name_node) if name_node is not None else _text(item)
                elif not type_text:
                    type_text = _compact(item)
            params.append((f"{type_text}...", name))
    return params


def _supertypes(declaration) -> List[str]:
    names: List[str] = []
    for child in declaration.children:
        if child.type in ("superclass", "super_interfaces", "extends_interfaces"):
            for item in _named(child):
                if item.type == "type_list":
                    names.extend(_compact(t) for t in _named(item))
                else:
                    names.append(_compact(item))
    return names


def _body_members(declaration) -> Iterator:
    body = declaration.child_by_field_name("body")
    if body is None:
        return
    for child in _named(body):
        if child.type == "enum_body_declarations":
            yield from _named(child)
        else:
            yield child


def _walk(node) -> Iterator:
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


class EntityExtractor:
    """Extract ClassNode/MethodNode/EndpointNode entities from Java sources.

    Parsers are kept per thread, so one extractor can serve a worker pool.
    """

    def __init__(self, *, default_produces: str = "application/json", default_consumes: str = "application/json") -> None:
        self.default_produces = default_produces
        self.default_consumes = default_consumes
        self._local = threading.local()

    def _parser(self):
        parser = getattr(self._local, "parser", None)
        if parser is None:
            parser = get_parser("java")
            self._local.parser = parser
        return parser

    def extract(self, unit: CompilationUnit) -> ExtractionResult:
        result = ExtractionResult(unit=unit)
        try:
            source = unit.path.read_bytes()
            source.decode("utf-8")
        except UnicodeDecodeError:
            result.error = "Unicode decode error"
        except OSError as exc:
            result.error = f"Read error: {exc}"
        if result.failed:
            logger.warning("Skipping {}: {}", unit.relative_path, result.error)
            return result

        try:
            tree = self._parser().parse(source)
        except Exception as exc:
            result.error = f"Parser error: {exc}"
            logger.warning("Skipping {}: {}", unit.relative_path, result.error)
            return result
        root = tree.root_node
        if root.has_error:
            error_line = next((_line(node) for node in _walk(root) if node.type == "ERROR" or node.is_missing), 0)
            result.error = f"Syntax error near line {error_line}"
            logger.warning("Skipping unparseable unit {}: {}", unit.relative_path, result.error)
            return result

        for child in _named(root):
            if child.type == "import_declaration":
                result.imports.append(self._import(child))

        declaration = self._primary_declaration(root, unit)
        if declaration is None:
            if unit.path.name not in DESCRIPTOR_UNITS:
                result.error = "No type declaration"
                logger.warning("Skipping {}: {}", unit.relative_path, result.error)
            return result
        self._extract_type(declaration, result)
        return result

    @staticmethod
    def _import(node) -> ImportRef:
        static = any(child.type == "static" for child in node.children)
        wildcard = any(child.type == "asterisk" for child in node.children)
        name = next((_compact(child) for child in _named(node) if child.type in ("scoped_identifier", "identifier")), "")
        return ImportRef(name=name, wildcard=wildcard, static=static)

    @staticmethod
    def _primary_declaration(root, unit: CompilationUnit):
        declarations = [child for child in _named(root) if child.type in TYPE_DECLARATIONS]
        if not declarations:
            return None
        stem = unit.path.stem
        for declaration in declarations:
            name_node = declaration.child_by_field_name("name")
            if name_node is not None and _text(name_node) == stem:
                return declaration
        return declarations[0]

    def _extract_type(self, declaration, result: ExtractionResult) -> None:
        unit = result.unit
        name = _text(declaration.child_by_field_name("name"))
        package = unit.package_name
        full_name = f"{package}.{name}" if package else name
        modifiers, annotations = _modifiers(declaration)
        annotation_names = [a.name for a in annotations]
        labels = labels_for(annotation_names, _supertypes(declaration))

        class_node = ClassNode(
            id=full_name,
            name=name,
            full_name=full_name,
            package_name=package,
            labels=labels,
            modifiers=modifiers,
            kind=TYPE_DECLARATIONS[declaration.type],
            source_path=unit.relative_path,
        )
        result.class_node = class_node

        class_annotations = _annotation_map(annotations)
        is_bean = bool(labels & BEAN_LABELS)
        lombok_mode = next(
            (mode for annotation, mode in LOMBOK_CONSTRUCTORS.items() if annotation in class_annotations),
            None,
        )

        field_types: Dict[str, str] = {}
        if declaration.type == "record_declaration":
            for type_text, param_name in _parameters(declaration.child_by_field_name("parameters")):
                field_types[param_name] = type_text

        method_nodes = []
        for member in _body_members(declaration):
            if member.type == "field_declaration":
                self._field(member, result, field_types, lombok_mode)
            elif member.type == "constructor_declaration":
                self._constructor(member, result, is_bean)
            elif member.type == "method_declaration":
                method_nodes.append(member)

        mapping = class_annotations.get("RequestMapping")
        class_paths = mapping.values("value", "path") if mapping else []
        class_produces = mapping.values("produces") if mapping else []
        class_consumes = mapping.values("consumes") if mapping else []

        seen_methods = set()
        for member in method_nodes:
            method = self._method(member, class_node)
            if method.id in seen_methods:
                result.error = f"Duplicate method signature {method.signature}"
                logger.warning("Skipping {}: {}", unit.relative_path, result.error)
                result.class_node = None
                result.methods.clear()
                result.endpoints.clear()
                result.dependencies.clear()
                result.calls.clear()
                return
            seen_methods.add(method.id)
            result.methods.append(method)

            _, method_annotations = _modifiers(member)
            if "controller" in labels:
                result.endpoints.extend(
                    self._endpoints(method, method_annotations, class_paths, class_produces, class_consumes)
                )
            if any(a.name in INJECTION_ANNOTATIONS for a in method_annotations):
                for type_text, param_name in _parameters(member.child_by_field_name("parameters")):
                    result.dependencies.append(DependencyRef(type_text, param_name, "setter"))

            body = member.child_by_field_name("body")
            if body is not None:
                result.calls.extend(self._calls(body, method.id, field_types))

    def _field(self, member, result: ExtractionResult, field_types: Dict[str, str], lombok_mode: Optional[str]) -> None:
        type_node = member.child_by_field_name("type")
        if type_node is None:
            return
        type_text = _compact(type_node)
        modifiers, annotations = _modifiers(member)
        injected = any(a.name in INJECTION_ANNOTATIONS for a in annotations)
        for child in _named(member):
            if child.type != "variable_declarator":
                continue
            name_node = child.child_by_field_name("name")
            if name_node is None:
                continue
            field_name = _text(name_node)
            field_types[field_name] = type_text
            if "static" in modifiers:
                continue
            if injected:
                result.dependencies.append(DependencyRef(type_text, field_name, "field"))
            elif lombok_mode == "all" or (lombok_mode == "final" and "final" in modifiers):
                result.dependencies.append(DependencyRef(type_text, field_name, "constructor"))

    def _constructor(self, member, result: ExtractionResult, is_bean: bool) -> None:
        _, annotations = _modifiers(member)
        if not is_bean and not any(a.name in INJECTION_ANNOTATIONS for a in annotations):
            return
        for type_text, param_name in _parameters(member.child_by_field_name("parameters")):
            result.dependencies.append(DependencyRef(type_text, param_name, "constructor"))

    @staticmethod
    def _method(member, class_node: ClassNode) -> MethodNode:
        name = _text(member.child_by_field_name("name"))
        params = _parameters(member.child_by_field_name("parameters"))
        signature = f"{name}({','.join(type_text for type_text, _ in params)})"
        type_node = member.child_by_field_name("type")
        modifiers, _ = _modifiers(member)
        return MethodNode(
            id=method_id_for(class_node.id, signature),
            name=name,
            signature=signature,
            return_type=_compact(type_node) if type_node is not None else "void",
            class_id=class_node.id,
            modifiers=modifiers,
            parameters=", ".join(f"{type_text} {param}".strip() for type_text, param in params),
            line=_line(member),
        )

    def _endpoints(
        self,
        method: MethodNode,
        annotations: List[Annotation],
        class_paths: List[str],
        class_produces: List[str],
        class_consumes: List[str],
    ) -> List[EndpointNode]:
        endpoints: Dict[str, EndpointNode] = {}
        for annotation in annotations:
            if annotation.name not in MAPPING_ANNOTATIONS:
                continue
            http_methods = http_methods_for(annotation.name, annotation.values("method"))
            paths = annotation.values("value", "path") or [""]
            produces = annotation.values("produces") or class_produces
            consumes = annotation.values("consumes") or class_consumes
            for prefix in class_paths or [""]:
                for path in paths:
                    full_path = join_paths(prefix, path)
                    for http_method in http_methods:
                        endpoint_id = endpoint_id_for(method.id, http_method, full_path)
                        endpoints.setdefault(
                            endpoint_id,
                            EndpointNode(
                                id=endpoint_id,
                                path=full_path,
                                http_method=http_method,
                                produces=media_type(produces[0]) if produces else self.default_produces,
                                consumes=media_type(consumes[0]) if consumes else self.default_consumes,
                                method_id=method.id,
                            ),
                        )
        return list(endpoints.values())

    @staticmethod
    def _calls(body, caller_id: str, field_types: Dict[str, str]) -> List[CallRef]:
        calls: List[CallRef] = []
        for node in _walk(body):
            if node.type != "method_invocation":
                continue
            receiver = node.child_by_field_name("object")
            name_node = node.child_by_field_name("name")
            if receiver is None or name_node is None:
                continue
            field_name = None
            if receiver.type == "identifier":
                field_name = _text(receiver)
            elif receiver.type == "field_access":
                target = receiver.child_by_field_name("object")
                member = receiver.child_by_field_name("field")
                if target is not None and target.type == "this" and member is not None:
                    field_name = _text(member)
            if field_name and field_name in field_types:
                calls.append(CallRef(caller_id, field_types[field_name], _text(name_node), _line(node)))
        return calls


__all__ = [
    "EntityExtractor",
    "ExtractionResult",
    "DependencyRef",
    "CallRef",
    "ImportRef",
    "Annotation",
]
