"""Spring conventions recognised by the entity extractor."""

from typing import Dict, FrozenSet, Iterable, List, Optional

# Routing annotation -> HTTP method. RequestMapping reads its ``method`` attribute.
MAPPING_ANNOTATIONS: Dict[str, Optional[str]] = {
    "GetMapping": "GET",
    "PostMapping": "POST",
    "PutMapping": "PUT",
    "DeleteMapping": "DELETE",
    "PatchMapping": "PATCH",
    "RequestMapping": None,
}

REQUEST_MAPPING_DEFAULT_METHOD = "GET"

HTTP_METHODS = frozenset({"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS", "TRACE"})

STEREOTYPE_LABELS: Dict[str, FrozenSet[str]] = {
    "RestController": frozenset({"controller", "rest_controller"}),
    "Controller": frozenset({"controller"}),
    "Service": frozenset({"service"}),
    "Repository": frozenset({"repository"}),
    "Component": frozenset({"component"}),
    "Configuration": frozenset({"configuration"}),
    "Entity": frozenset({"entity"}),
}

BEAN_LABELS = frozenset({"controller", "service", "repository", "component", "configuration"})

INJECTION_ANNOTATIONS = frozenset({"Autowired", "Inject", "Resource"})

# Lombok constructors that turn fields into constructor-injected dependencies
LOMBOK_CONSTRUCTORS = {
    "RequiredArgsConstructor": "final",
    "AllArgsConstructor": "all",
}

MEDIA_TYPE_CONSTANTS: Dict[str, str] = {
    "APPLICATION_JSON_VALUE": "application/json",
    "APPLICATION_XML_VALUE": "application/xml",
    "TEXT_PLAIN_VALUE": "text/plain",
    "TEXT_HTML_VALUE": "text/html",
    "APPLICATION_FORM_URLENCODED_VALUE": "application/x-www-form-urlencoded",
    "MULTIPART_FORM_DATA_VALUE": "multipart/form-data",
    "APPLICATION_OCTET_STREAM_VALUE": "application/octet-stream",
    "TEXT_EVENT_STREAM_VALUE": "text/event-stream",
    "APPLICATION_PDF_VALUE": "application/pdf",
}


def labels_for(annotations: Iterable[str], supertypes: Iterable[str] = ()) -> FrozenSet[str]:
    labels = set()
    for name in annotations:
        labels.update(STEREOTYPE_LABELS.get(name, ()))
    if any(_simple(t).endswith("Repository") for t in supertypes):
        labels.add("repository")
    return frozenset(labels)


def http_methods_for(annotation: str, method_values: List[str]) -> List[str]:
    fixed = MAPPING_ANNOTATIONS.get(annotation)
    if fixed:
        return [fixed]
    methods = []
    for value in method_values:
        name = value.rsplit(".", 1)[-1].strip().upper()
        if name in HTTP_METHODS and name not in methods:
            methods.append(name)
    return methods or [REQUEST_MAPPING_DEFAULT_METHOD]


def media_type(value: str) -> str:
    constant = value.rsplit(".", 1)[-1]
    return MEDIA_TYPE_CONSTANTS.get(constant, value)


def join_paths(prefix: str, path: str) -> str:
    segments = [part for piece in (prefix, path) for part in piece.split("/") if part]
    return "/" + "/".join(segments)


def _simple(type_name: str) -> str:
    return type_name.split("<", 1)[0].rsplit(".", 1)[-1]


__all__ = [
    "MAPPING_ANNOTATIONS",
    "REQUEST_MAPPING_DEFAULT_METHOD",
    "STEREOTYPE_LABELS",
    "BEAN_LABELS",
    "INJECTION_ANNOTATIONS",
    "LOMBOK_CONSTRUCTORS",
    "labels_for",
    "http_methods_for",
    "media_type",
    "join_paths",
]
