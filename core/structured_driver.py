"""
Tree-sitter driver for the JavaScript/TypeScript family.

Walks the top-level statements of the syntax tree, unwrapping export,
namespace and ambient wrappers, and records one candidate per semantic
declaration. Class and namespace members are recorded as nested candidates.
"""

from typing import Dict, List, Optional, Tuple

from tree_sitter import Node

from core.chunk_types import Candidate, DriverResult, ParseFailed, ParseOk, TypeInfo
from core.classifiers import (
    classify_class,
    classify_function,
    classify_method,
    classify_variable,
)
from core.language_registry import get_language_registry
from core.scanning import guarded
from utils.logging import get_logger

logger = get_logger(__name__)

CLASS_NODES = {"class_declaration", "abstract_class_declaration", "class"}
FUNCTION_NODES = {"function_declaration", "generator_function_declaration", "function_signature"}
VARIABLE_NODES = {"lexical_declaration", "variable_declaration"}
NAMESPACE_NODES = {"internal_module", "module"}
FUNCTION_VALUES = {"arrow_function", "function_expression", "function", "generator_function"}
METHOD_MEMBERS = {"method_definition", "method_signature", "abstract_method_signature"}
FIELD_MEMBERS = {"public_field_definition", "field_definition"}


def _text(node: Optional[Node]) -> str:
    if node is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _strip_quotes(text: str) -> str:
    return text.strip("'\"`")


def _type_text(annotation: Optional[Node]) -> Optional[str]:
    """``: Foo`` -> ``Foo``."""
    if annotation is None:
        return None
    return _text(annotation).lstrip(":").strip() or None


def _start_line(node: Node) -> int:
    return node.start_point[0] + 1


def _end_line(node: Node) -> int:
    row, column = node.end_point
    # A node ending at column 0 finished on the previous line
    if column == 0 and row > node.start_point[0]:
        row -= 1
    return row + 1


class _TreeWalker:
    """Collects candidates from one syntax tree."""

    def __init__(self, language: str):
        self.language = language
        self.candidates: List[Candidate] = []
        self.imports: List[str] = []
        self.import_range: Optional[Tuple[int, int]] = None
        self.seen_code = False

    def walk(self, root: Node) -> List[Candidate]:
        pending: List[Node] = []
        for node in root.named_children:
            if node.type == "decorator":
                pending.append(node)
                continue
            if node.type in ("import_statement", "import_alias"):
                self._add_import(node, [self._import_source(node)])
            else:
                before = len(self.candidates)
                self._visit(node, None, [], pending=pending)
                if len(self.candidates) > before:
                    self.seen_code = True
            pending = []

        if self.import_range is not None:
            start, end = self.import_range
            self.candidates.append(
                Candidate(
                    start_line=start,
                    end_line=end,
                    name="imports",
                    chunk_type="import-block",
                    imports=self.imports,
                )
            )
        return self.candidates

    # -- imports -----------------------------------------------------------

    def _import_source(self, node: Node) -> str:
        source = node.child_by_field_name("source")
        if source is not None:
            return _strip_quotes(_text(source))
        for child in node.named_children:
            if child.type == "string":
                return _strip_quotes(_text(child))
        return _text(node)

    def _add_import(self, node: Node, specifiers: List[str]):
        for specifier in specifiers:
            if specifier and specifier not in self.imports:
                self.imports.append(specifier)
        if self.seen_code:
            return
        start, end = _start_line(node), _end_line(node)
        if self.import_range is None:
            self.import_range = (start, end)
        else:
            self.import_range = (self.import_range[0], end)

    def _require_sources(self, node: Node) -> List[str]:
        sources = []
        for declarator in node.named_children:
            if declarator.type != "variable_declarator":
                continue
            value = declarator.child_by_field_name("value")
            if value is None or value.type != "call_expression":
                return []
            if _text(value.child_by_field_name("function")) != "require":
                return []
            arguments = value.child_by_field_name("arguments")
            if arguments is None or not arguments.named_children:
                return []
            sources.append(_strip_quotes(_text(arguments.named_children[0])))
        return sources

    # -- declarations ------------------------------------------------------

    def _visit(
        self,
        node: Node,
        parent: Optional[int],
        context: List[str],
        outer: Optional[Node] = None,
        public: bool = False,
        pending: Optional[List[Node]] = None,
    ):
        """Record the declaration ``node``; ``outer`` is the wrapper whose range it takes."""
        span = outer or node
        decorators = [_text(d) for d in (pending or [])]
        if pending:
            span_start = _start_line(pending[0])
        else:
            span_start = _start_line(span)

        node_type = node.type
        if node_type == "export_statement":
            self._visit_export(node, parent, context, decorators, span_start)
        elif node_type == "expression_statement":
            inner = node.named_children[0] if node.named_children else None
            if inner is not None and inner.type in NAMESPACE_NODES:
                self._visit(inner, parent, context, outer=span, public=public, pending=pending)
        elif node_type == "ambient_declaration":
            for child in node.named_children:
                if child.type in NAMESPACE_NODES | CLASS_NODES | FUNCTION_NODES | VARIABLE_NODES or child.type in (
                    "interface_declaration", "type_alias_declaration", "enum_declaration"
                ):
                    self._visit(child, parent, context, outer=span, public=public, pending=pending)
                    break
        elif node_type in CLASS_NODES:
            self._add_class(node, span, span_start, parent, context, public, decorators)
        elif node_type in NAMESPACE_NODES:
            self._add_namespace(node, span, span_start, parent, context, public)
        elif node_type == "interface_declaration":
            self._add_simple(node, span, span_start, parent, context, public, "interface", decorators)
        elif node_type == "type_alias_declaration":
            self._add_simple(node, span, span_start, parent, context, public, "type", decorators)
        elif node_type == "enum_declaration":
            self._add_simple(node, span, span_start, parent, context, public, "enum", decorators)
        elif node_type in FUNCTION_NODES:
            self._add_function(node, span, span_start, parent, context, public, decorators)
        elif node_type in VARIABLE_NODES:
            self._add_variable(node, span, span_start, parent, context, public, decorators)

    def _visit_export(self, node: Node, parent, context, decorators, span_start):
        for child in node.children:
            if child.type == "decorator":
                decorators.append(_text(child))

        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            self._visit_declaration_export(declaration, node, parent, context, decorators, span_start)
            return

        value = node.child_by_field_name("value")
        if value is not None and (value.type in FUNCTION_VALUES or value.type in CLASS_NODES):
            self._visit_declaration_export(value, node, parent, context, decorators, span_start)
            return

        exports: List[str] = []
        clause = next((c for c in node.named_children if c.type == "export_clause"), None)
        if clause is not None:
            for specifier in clause.named_children:
                if specifier.type != "export_specifier":
                    continue
                alias = specifier.child_by_field_name("alias")
                exports.append(_text(alias or specifier.child_by_field_name("name")))
        elif value is not None or any(c.type == "default" for c in node.children):
            exports.append("default")
        elif any(c.type == "*" for c in node.children):
            exports.append("*")

        source = node.child_by_field_name("source")
        self.candidates.append(
            Candidate(
                start_line=span_start,
                end_line=_end_line(node),
                name="exports",
                chunk_type="export-block",
                parent=parent,
                parent_name=context[-1] if context else None,
                context=list(context),
                exports=exports,
                imports=[_strip_quotes(_text(source))] if source is not None else [],
                is_public_api=True,
            )
        )

    def _visit_declaration_export(self, declaration, node, parent, context, decorators, span_start):
        before = len(self.candidates)
        self._visit(declaration, parent, context, outer=node, public=True)
        if len(self.candidates) > before:
            candidate = self.candidates[before]
            candidate.start_line = min(candidate.start_line, span_start)
            candidate.header_line = candidate.start_line
            outer_decorators = [d for d in decorators if d not in candidate.decorators]
            if outer_decorators:
                candidate.decorators = outer_decorators + candidate.decorators
                if declaration.type in CLASS_NODES:
                    extends = candidate.type_info.extends if candidate.type_info else None
                    candidate.chunk_type = classify_class(candidate.name, candidate.decorators, extends)

    def _new(self, span: Node, span_start: int, name: str, chunk_type: str, parent, context, public, **kwargs) -> int:
        self.candidates.append(
            Candidate(
                start_line=span_start,
                end_line=_end_line(span),
                name=name,
                chunk_type=chunk_type,
                parent=parent,
                parent_name=context[-1] if context else None,
                context=list(context),
                is_public_api=public,
                **kwargs,
            )
        )
        return len(self.candidates) - 1

    def _add_simple(self, node, span, span_start, parent, context, public, chunk_type, decorators):
        name = _text(node.child_by_field_name("name")) or "anonymous"
        type_info = None
        if chunk_type == "interface":
            extends = self._heritage(node, ("extends_type_clause", "extends_clause"))
            generics = self._generics(node)
            if extends or generics:
                type_info = TypeInfo(extends=extends or None, generics=generics or None)
        elif chunk_type == "type":
            generics = self._generics(node)
            if generics:
                type_info = TypeInfo(generics=generics)
        self._new(
            span, span_start, name, chunk_type, parent, context, public,
            decorators=decorators, type_info=type_info,
        )

    def _add_namespace(self, node, span, span_start, parent, context, public):
        name = _strip_quotes(_text(node.child_by_field_name("name"))) or "namespace"
        index = self._new(span, span_start, name, "module", parent, context, public, signature=f"namespace {name}")

        body = node.child_by_field_name("body")
        if body is None:
            return
        inner_context = context + [name]
        pending: List[Node] = []
        for child in body.named_children:
            if child.type == "decorator":
                pending.append(child)
                continue
            self._visit(child, index, inner_context, pending=pending)
            pending = []

    # -- classes -----------------------------------------------------------

    def _heritage(self, node: Node, clause_types) -> List[str]:
        names = []
        for child in node.named_children:
            if child.type == "class_heritage":
                nested = [c for c in child.named_children if c.type in clause_types]
                if not nested and "extends_clause" in clause_types:
                    # JavaScript grammar: heritage holds the base expression directly
                    names.extend(_text(c) for c in child.named_children if c.type != "comment")
                for clause in nested:
                    names.extend(_text(c) for c in clause.named_children if c.type != "type_arguments")
            elif child.type in clause_types:
                names.extend(_text(c) for c in child.named_children if c.type != "type_arguments")
        return names

    def _generics(self, node: Node) -> List[str]:
        params = node.child_by_field_name("type_parameters")
        if params is None:
            return []
        return [_text(p) for p in params.named_children if p.type == "type_parameter"]

    def _add_class(self, node, span, span_start, parent, context, public, decorators):
        name = _text(node.child_by_field_name("name")) or "default"
        decorators = decorators + [_text(c) for c in node.children if c.type == "decorator"]
        extends = self._heritage(node, ("extends_clause",))
        implements = self._heritage(node, ("implements_clause",))
        generics = self._generics(node)
        type_info = None
        if extends or implements or generics:
            type_info = TypeInfo(
                extends=extends or None,
                implements=implements or None,
                generics=generics or None,
            )

        header = f"class {name}"
        if extends:
            header += f" extends {', '.join(extends)}"
        if implements:
            header += f" implements {', '.join(implements)}"

        index = self._new(
            span, span_start, name, classify_class(name, decorators, extends), parent, context, public,
            decorators=decorators, type_info=type_info, signature=header,
        )

        body = node.child_by_field_name("body")
        if body is None:
            return

        inner_context = context + [name]
        exports: List[str] = []
        pending: List[Node] = []
        for member in body.named_children:
            if member.type == "decorator":
                pending.append(member)
                continue
            member_name = self._add_member(member, pending, index, inner_context, public)
            if member_name and not self._is_private(member, member_name):
                exports.append(member_name)
            pending = []
        self.candidates[index].exports = exports

    def _is_private(self, member: Node, name: str) -> bool:
        if name.startswith("#"):
            return True
        return any(
            c.type == "accessibility_modifier" and _text(c) in ("private", "protected")
            for c in member.children
        )

    def _add_member(self, member: Node, pending: List[Node], parent, context, class_public) -> Optional[str]:
        if member.type not in METHOD_MEMBERS and member.type not in FIELD_MEMBERS:
            return None

        name_node = member.child_by_field_name("name") or member.child_by_field_name("property")
        name = _text(name_node) or "anonymous"
        decorators = [_text(d) for d in pending]
        decorators += [_text(c) for c in member.children if c.type == "decorator"]
        start = _start_line(pending[0]) if pending else _start_line(member)
        public = class_public and not self._is_private(member, name)

        if member.type in METHOD_MEMBERS:
            signature, type_info, _ = self._callable(member, name)
            chunk_type = classify_method(name, decorators)
        else:
            value = member.child_by_field_name("value")
            if value is not None and value.type in FUNCTION_VALUES:
                signature, type_info, _ = self._callable(value, name)
                chunk_type = classify_method(name, decorators)
            else:
                field_type = _type_text(member.child_by_field_name("type"))
                signature = f"{name}: {field_type}" if field_type else name
                type_info = None
                chunk_type = "property"

        self._new(
            member, start, name, chunk_type, parent, context, public,
            decorators=decorators, signature=signature, type_info=type_info,
        )
        return name

    # -- functions ---------------------------------------------------------

    def _parameters(self, fn_node: Node) -> List[Tuple[str, Optional[str], bool]]:
        params_node = fn_node.child_by_field_name("parameters")
        if params_node is None:
            single = fn_node.child_by_field_name("parameter")
            return [(_text(single), None, False)] if single is not None else []

        params = []
        for child in params_node.named_children:
            if child.type in ("comment", "decorator"):
                continue
            if child.type in ("required_parameter", "optional_parameter"):
                pattern = child.child_by_field_name("pattern")
                name = _text(pattern) if pattern is not None else _text(child)
                params.append((name, _type_text(child.child_by_field_name("type")), child.type == "optional_parameter"))
            elif child.type == "assignment_pattern":
                params.append((_text(child.child_by_field_name("left")), None, True))
            else:
                params.append((_text(child), None, False))
        return params

    def _callable(self, fn_node: Node, name: str) -> Tuple[str, Optional[TypeInfo], List[str]]:
        """Signature, type info and parameter names of a function-like node."""
        params = self._parameters(fn_node)
        return_type = _type_text(fn_node.child_by_field_name("return_type"))
        generics = self._generics(fn_node)

        rendered = []
        for param_name, param_type, optional in params:
            part = param_name + ("?" if optional and not param_name.endswith("?") else "")
            if param_type:
                part += f": {param_type}"
            rendered.append(part)
        signature = f"{name}{'<' + ', '.join(generics) + '>' if generics else ''}({', '.join(rendered)})"
        if return_type:
            signature += f": {return_type}"

        type_info = None
        if params or return_type or generics:
            parameters: List[Dict[str, str]] = []
            for param_name, param_type, _ in params:
                entry = {"name": param_name}
                if param_type:
                    entry["type"] = param_type
                parameters.append(entry)
            type_info = TypeInfo(
                parameters=parameters or None,
                return_type=return_type,
                generics=generics or None,
            )
        return signature, type_info, [p[0] for p in params]

    def _add_function(self, node, span, span_start, parent, context, public, decorators):
        name = _text(node.child_by_field_name("name")) or "default"
        signature, type_info, param_names = self._callable(node, name)
        self._new(
            span, span_start, name, classify_function(name, param_names, decorators), parent, context, public,
            decorators=decorators, signature=signature, type_info=type_info,
        )

    def _add_variable(self, node, span, span_start, parent, context, public, decorators):
        if parent is None and not self.seen_code:
            sources = self._require_sources(node)
            if sources:
                self._add_import(span, sources)
                return

        declarator = next((c for c in node.named_children if c.type == "variable_declarator"), None)
        if declarator is None:
            return
        name = _text(declarator.child_by_field_name("name")) or "anonymous"
        value = declarator.child_by_field_name("value")

        value_kind = None
        fn_node = None
        if value is not None:
            if value.type in FUNCTION_VALUES:
                value_kind, fn_node = "function", value
            elif value.type == "object":
                value_kind = "object"
            elif value.type == "call_expression":
                # Wrapped components: memo(() => ...), forwardRef(function ...)
                arguments = value.child_by_field_name("arguments")
                for argument in arguments.named_children if arguments is not None else []:
                    if argument.type in FUNCTION_VALUES:
                        value_kind, fn_node = "function", argument
                        break

        chunk_type = classify_variable(name, value_kind)
        if fn_node is not None:
            signature, type_info, _ = self._callable(fn_node, name)
        else:
            declared = _type_text(declarator.child_by_field_name("type"))
            signature = f"{name}: {declared}" if declared else name
            type_info = TypeInfo(return_type=declared) if declared else None

        self._new(
            span, span_start, name, chunk_type, parent, context, public,
            decorators=decorators, signature=signature, type_info=type_info,
        )


@guarded
def extract(file_path: str, content: str, language: str) -> DriverResult:
    """Parse ``content`` with Tree-sitter and collect declaration candidates."""
    parser = get_language_registry().get_parser(language)
    if parser is None:
        return ParseFailed(reason=f"no Tree-sitter parser for {language}")

    tree = parser.parse(content.encode("utf-8"))
    if tree.root_node.has_error:
        logger.debug(f"Syntax errors in {file_path}, keeping recoverable declarations")

    walker = _TreeWalker(language)
    candidates = walker.walk(tree.root_node)
    logger.debug(f"Tree-sitter found {len(candidates)} candidates in {file_path}")
    return ParseOk(candidates=candidates, imports=walker.imports)
