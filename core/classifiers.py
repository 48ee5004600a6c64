"""
Semantic classification of recognised constructs into chunk types.

Explicit framework decorators win over naming conventions, which win over
structural heuristics; anything left over gets the generic type.
"""

import re
from typing import Optional, Sequence

CLASS_DECORATOR_TYPES = {
    "controller": "controller",
    "restcontroller": "controller",
    "apicontroller": "controller",
    "injectable": "service",
    "service": "service",
    "entity": "model",
    "model": "model",
    "table": "model",
    "dataclass": "model",
    "component": "component",
    "middleware": "middleware",
    "repository": "repository",
}

# Checked in order, first suffix wins
CLASS_NAME_SUFFIXES = (
    (("controller",), "controller"),
    (("service",), "service"),
    (("repository", "repo"), "repository"),
    (("model", "entity"), "model"),
    (("middleware",), "middleware"),
    (("handler",), "handler"),
    (("component",), "component"),
)

ROUTE_DECORATORS = {
    "get", "post", "put", "patch", "delete", "head", "options", "all",
    "route", "api_view", "requestmapping", "getmapping", "postmapping",
    "putmapping", "deletemapping", "patchmapping", "httpget", "httppost",
    "httpput", "httpdelete", "httppatch",
}

TEST_DECORATORS = {"test", "testmethod", "fact", "theory", "parameterizedtest", "it"}

LIFECYCLE_METHODS = {
    "ngoninit", "ngondestroy", "ngonchanges", "ngafterviewinit",
    "componentdidmount", "componentwillunmount", "componentdidupdate", "render",
}

CONSTRUCTOR_NAMES = {"constructor", "__init__", "__construct", "init", "new"}

CONFIG_NAME_PATTERN = re.compile(r"(config|options|settings)$", re.IGNORECASE)
PASCAL_CASE_PATTERN = re.compile(r"^[A-Z][A-Za-z0-9]*$")


def decorator_name(text: str) -> str:
    """Bare name of a decorator or annotation (``@app.get("/x")`` -> ``get``)."""
    text = text.strip().lstrip("@").strip("[]#")
    return text.split("(")[0].split(".")[-1].strip()


def _decorator_names(decorators: Sequence[str]):
    return [decorator_name(d).lower() for d in decorators]


def _is_hook_name(name: str) -> bool:
    return name.startswith("use") and len(name) > 3


def classify_class(
    name: str,
    decorators: Sequence[str] = (),
    extends: Optional[Sequence[str]] = None,
) -> str:
    """Chunk type for a class-like declaration."""
    for decorator in _decorator_names(decorators):
        if decorator in CLASS_DECORATOR_TYPES:
            return CLASS_DECORATOR_TYPES[decorator]

    lowered = name.lower()
    for suffixes, chunk_type in CLASS_NAME_SUFFIXES:
        if lowered.endswith(suffixes):
            return chunk_type

    for base in extends or ():
        base_name = base.split("<")[0].split(".")[-1].strip()
        if base_name.endswith("Component"):
            return "component"
        if base_name in ("BaseModel", "Model"):
            return "model"

    return "class"


def classify_function(
    name: str,
    parameters: Sequence[str] = (),
    decorators: Sequence[str] = (),
) -> str:
    """Chunk type for a free function."""
    if any(d in ROUTE_DECORATORS for d in _decorator_names(decorators)):
        return "handler"
    if _is_hook_name(name):
        return "hook"

    lowered = name.lower()
    if "test" in lowered or "spec" in lowered:
        return "test"
    if "handle" in lowered:
        return "handler"
    if "middleware" in lowered:
        return "middleware"

    param_names = {p.lower() for p in parameters}
    if len(parameters) == 3 and {"req", "res"} <= param_names:
        return "middleware"

    return "function"


def classify_method(name: str, decorators: Sequence[str] = ()) -> str:
    """Chunk type for a member function."""
    names = _decorator_names(decorators)
    if any(d in ROUTE_DECORATORS for d in names):
        return "handler"
    if any(d in TEST_DECORATORS for d in names):
        return "test"

    lowered = name.lower()
    if lowered in LIFECYCLE_METHODS:
        return "hook"
    if lowered in CONSTRUCTOR_NAMES:
        return "constructor"
    if lowered.startswith("test") or "spec" in lowered:
        return "test"
    if "handle" in lowered:
        return "handler"

    return "method"


def classify_variable(name: str, value_kind: Optional[str] = None) -> str:
    """
    Chunk type for a variable declaration.

    ``value_kind`` is ``"function"``, ``"object"`` or ``None`` for any other
    initializer.
    """
    if value_kind == "function":
        if _is_hook_name(name):
            return "hook"
        if PASCAL_CASE_PATTERN.match(name):
            return "component"
        return classify_function(name)
    if _is_hook_name(name):
        return "hook"
    if value_kind == "object" and CONFIG_NAME_PATTERN.search(name):
        return "config"
    return "constant"


# First match wins
PARAGRAPH_RULES = (
    (("INIT", "START", "BEGIN"), "constructor"),
    (("READ", "FETCH", "GET"), "repository"),
    (("WRITE", "UPDATE", "INSERT", "DELETE"), "repository"),
    (("VALID", "CHECK", "EDIT"), "function"),
    (("CALC", "COMPUTE", "PROCESS"), "function"),
    (("DISPLAY", "PRINT", "REPORT"), "function"),
    (("ERROR", "ABORT", "EXCEPTION"), "function"),
    (("TERM", "END", "CLOSE", "FINAL"), "function"),
    (("MAIN", "MAINLINE"), "handler"),
)


def classify_paragraph(name: str) -> str:
    """Chunk type for a COBOL paragraph, from the verbs in its label."""
    upper = name.upper()
    for fragments, chunk_type in PARAGRAPH_RULES:
        if any(fragment in upper for fragment in fragments):
            return chunk_type
    return "function"
