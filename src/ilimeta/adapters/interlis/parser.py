"""Parser for the INTERLIS 2.3/2.4 subset needed for metadata.

The grammar lives in ``interlis.lark`` and is driven by a lark LALR parser.
Only the structural skeleton is parsed into definitions: models, topics, classes,
structures, associations, domains and attributes with the head of their type.

Comments are ignored by the grammar. Documentation comments (``/** ... */``) and
metaattributes (``!!@ key=value``) are collected while lexing and attached to the
next significant token, which is where a definition picks them up.
"""

from __future__ import annotations

import re
from contextvars import ContextVar
from dataclasses import dataclass, field
from functools import cache
from typing import TYPE_CHECKING, Final

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import UnexpectedCharacters, UnexpectedInput, UnexpectedToken, VisitError
from lark.lark import PostLex

from ilimeta.domain.errors import ModelCompilationError
from ilimeta.domain.model import ClassKind

from .nodes import (
    AliasNode,
    AllOfNode,
    AttributeDef,
    Cardinality,
    ClassDef,
    CompositionNode,
    DomainDef,
    EnumElementNode,
    EnumerationNode,
    FormatNode,
    GeometryNode,
    ModelDef,
    NumericNode,
    OpaqueNode,
    ReferenceNode,
    RoleDef,
    TextNode,
    TopicDef,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path

    from lark.tree import Meta

    from .nodes import Definition, TypeNode

DISPLAY_NAME_META: Final = "ili2db.dispName"

_GEOMETRY_FORMS: Final = frozenset(
    {
        "COORD",
        "MULTICOORD",
        "POLYLINE",
        "MULTIPOLYLINE",
        "SURFACE",
        "MULTISURFACE",
        "AREA",
        "MULTIAREA",
    }
)
_OPAQUE_TYPES: Final = frozenset(
    {"BLACKBOX", "ANYSTRUCTURE", "ANYOID", "CLASS", "ATTRIBUTE"}
)
# INTERLIS 2.4 keywords that stand for built-in domains
_KEYWORD_ALIASES: Final = {
    "BOOLEAN": "INTERLIS.BOOLEAN",
    "DATE": "INTERLIS.XMLDate",
    "DATETIME": "INTERLIS.XMLDateTime",
    "TIMEOFDAY": "INTERLIS.XMLTime",
    "UUIDOID": "INTERLIS.UUIDOID",
}
_META_PATTERN: Final = re.compile(r'!!@\s*([\w.]+)\s*=\s*(?:"((?:[^"\\]|\\.)*)"|(\S+))')
_DOC_LINE_PREFIX: Final = re.compile(r"^\s*\*+ ?")


def parse_models(source: str, *, origin: str, path: Path | None = None) -> list[ModelDef]:
    """Parse every model declared in ``source``."""

    comments = _Comments()
    reset = _COMMENTS.set(comments)
    try:
        tree = _interlis_parser().parse(source)
    except UnexpectedInput as error:
        raise _syntax_error(error, origin) from error
    finally:
        _COMMENTS.reset(reset)

    try:
        return _ModelBuilder(origin=origin, path=path, comments=comments.attached).transform(tree)
    except VisitError as error:
        if isinstance(error.orig_exc, ModelCompilationError):
            raise error.orig_exc from None
        raise


@cache
def _interlis_parser() -> Lark:
    return Lark.open(
        "interlis.lark",
        rel_to=__file__,
        parser="lalr",
        lexer="contextual",
        maybe_placeholders=True,
        propagate_positions=True,
        postlex=_CommentAttacher(),
        lexer_callbacks={"DOC_COMMENT": _collect_comment, "META_COMMENT": _collect_comment},
    )


def _syntax_error(error: UnexpectedInput, origin: str) -> ModelCompilationError:
    match error:
        case UnexpectedCharacters():
            message = f"Unexpected character {error.char!r}"
        case UnexpectedToken() if error.token.type != "$END":
            message = f"Unexpected {str(error.token)!r}"
        case _:
            message = "Unexpected end of file"
    line = getattr(error, "line", None)
    location = f"{origin}:{line}" if isinstance(line, int) and line > 0 else origin
    return ModelCompilationError(message, location=location)


# ----------------------------------------------------------------------
# Documentation comments and metaattributes


@dataclass(frozen=True, slots=True)
class _Annotations:
    documentation: str | None = None
    metaattributes: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class _Comments:
    pending: list[Token] = field(default_factory=list)
    attached: dict[int, _Annotations] = field(default_factory=dict)

    def attach(self, position: int) -> None:
        documentation = [
            _clean_documentation(comment)
            for comment in self.pending
            if comment.type == "DOC_COMMENT"
        ]
        metaattributes: dict[str, str] = {}
        for comment in self.pending:
            if comment.type == "META_COMMENT" and (meta := _META_PATTERN.match(comment)):
                metaattributes[meta.group(1)] = meta.group(2) or meta.group(3) or ""
        self.attached[position] = _Annotations(
            documentation="\n".join(documentation) if documentation else None,
            metaattributes=metaattributes,
        )
        self.pending.clear()


_COMMENTS: ContextVar[_Comments] = ContextVar("interlis_comments")


def _collect_comment(token: Token) -> Token:
    _COMMENTS.get().pending.append(token)
    return token


class _CommentAttacher(PostLex):
    # END closes every block, so it is never read as a name
    always_accept = ("END",)

    def process(self, stream: Iterator[Token]) -> Iterator[Token]:
        comments = _COMMENTS.get()
        for token in stream:
            if comments.pending:
                comments.attach(token.start_pos)
            yield token


def _clean_documentation(comment: str) -> str:
    body = comment[3:-2]
    lines = [_DOC_LINE_PREFIX.sub("", raw).rstrip() for raw in body.splitlines()]
    return "\n".join(lines).strip()


# ----------------------------------------------------------------------
# Parse tree to definitions


@dataclass(frozen=True, slots=True)
class _Imports:
    names: tuple[str, ...]
    unqualified: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class _DependsOn:
    topics: tuple[str, ...]


class _ModelBuilder(Transformer):
    """Builds the definitions of ``nodes`` from the lark parse tree.

    Definitions are created bottom-up with their plain name; qualified names are
    assigned once the enclosing model is complete.
    """

    def __init__(
        self, *, origin: str, path: Path | None, comments: dict[int, _Annotations]
    ) -> None:
        super().__init__()
        self._origin = origin
        self._path = path
        self._comments = comments

    def _location(self, line: int) -> str:
        return f"{self._origin}:{line}"

    def _annotations(self, meta: Meta) -> _Annotations:
        return self._comments.get(meta.start_pos, _Annotations())

    def _check_end(self, meta: Meta, name: str | None, closing: Token | None) -> None:
        if (closing or None) == (name or None):
            return
        expected = f"END {name}" if name else "END"
        found = f"END {closing}" if closing else "END"
        line = closing.line if closing is not None else meta.end_line
        raise ModelCompilationError(
            f"Expected {expected}, found {found}", location=self._location(line)
        )

    # --- models and topics --------------------------------------------

    def start(self, children: list) -> list[ModelDef]:
        ili_version, *models = children
        for model in models:
            model.ili_version = ili_version
        return models

    def header(self, children: list) -> str:
        return str(children[0])

    def model_kind(self, children: list[Token]) -> bool:
        # only TYPE is kept in the tree
        return bool(children)

    def translation(self, _children: list) -> None:
        return None

    @v_args(meta=True)
    def model(self, meta: Meta, children: list) -> ModelDef:
        type_model, name, language, issuer, version, _explanation, _translation, *items, closing = (
            children
        )
        self._check_end(meta, name, closing)
        annotations = self._annotations(meta)
        model = ModelDef(
            name=str(name),
            qualified_name=str(name),
            documentation=annotations.documentation,
            metaattributes=annotations.metaattributes,
            location=self._location(meta.line),
            language=str(language) if language else None,
            issuer=_unquote(issuer) if issuer else None,
            version=_unquote(version) if version else None,
            type_model=type_model,
            source=self._path,
        )
        for item in items:
            match item:
                case _Imports(names=names, unqualified=unqualified):
                    model.imports += names
                    model.unqualified_imports += unqualified
                case TopicDef():
                    model.topics.append(item)
                case ClassDef():
                    model.classes.append(item)
                case list():
                    model.domains.extend(item)
        _adopt(model, (*model.topics, *model.classes, *model.domains))
        return model

    def imports(self, children: list[tuple[str, bool]]) -> _Imports:
        return _Imports(
            names=tuple(name for name, _ in children),
            unqualified=tuple(name for name, unqualified in children if unqualified),
        )

    def imported(self, children: list) -> tuple[str, bool]:
        unqualified, name = children
        return str(name), unqualified is not None

    @v_args(meta=True)
    def topic(self, meta: Meta, children: list) -> TopicDef:
        name, properties, extends, *items, closing = children
        self._check_end(meta, name, closing)
        properties = properties or frozenset()
        annotations = self._annotations(meta)
        topic = TopicDef(
            name=str(name),
            qualified_name=str(name),
            documentation=annotations.documentation,
            metaattributes=annotations.metaattributes,
            location=self._location(meta.line),
            abstract="ABSTRACT" in properties,
            final="FINAL" in properties,
            extends=extends,
        )
        for item in items:
            match item:
                case _DependsOn(topics=topics):
                    topic.depends_on = topics
                case ClassDef():
                    topic.classes.append(item)
                case list():
                    topic.domains.extend(item)
        return topic

    def depends_on(self, children: list[str]) -> _DependsOn:
        return _DependsOn(topics=tuple(children))

    # --- domains, classes, attributes ---------------------------------

    def domains(self, children: list[DomainDef]) -> list[DomainDef]:
        return list(children)

    @v_args(meta=True)
    def domain(self, meta: Meta, children: list) -> DomainDef:
        name, properties, extends, mandatory, type_node = children
        properties = properties or frozenset()
        annotations = self._annotations(meta)
        return DomainDef(
            name=str(name),
            qualified_name=str(name),
            documentation=annotations.documentation,
            metaattributes=annotations.metaattributes,
            location=self._location(meta.line),
            type=type_node,
            mandatory=mandatory is not None,
            abstract="ABSTRACT" in properties,
            final="FINAL" in properties,
            extends=extends,
        )

    @v_args(meta=True)
    def class_def(self, meta: Meta, children: list) -> ClassDef:
        keyword, name, properties, extends, *items, closing = children
        self._check_end(meta, name, closing)
        kind = ClassKind.STRUCTURE if keyword.type == "STRUCTURE" else ClassKind.CLASS
        return self._class(meta, str(name), kind, properties, extends, items)

    @v_args(meta=True)
    def association(self, meta: Meta, children: list) -> ClassDef:
        name, properties, extends, _derived_from, *items, closing = children
        self._check_end(meta, name, closing)
        entity = self._class(meta, str(name or ""), ClassKind.ASSOCIATION, properties, extends, items)
        if not entity.name:
            # unnamed associations are named after their roles
            entity.name = "".join(role.name for role in entity.roles)
        return entity

    def _class(
        self,
        meta: Meta,
        name: str,
        kind: ClassKind,
        properties: frozenset[str] | None,
        extends: str | None,
        items: list,
    ) -> ClassDef:
        properties = properties or frozenset()
        annotations = self._annotations(meta)
        entity = ClassDef(
            name=name,
            qualified_name=name,
            documentation=annotations.documentation,
            metaattributes=annotations.metaattributes,
            location=self._location(meta.line),
            kind=kind,
            abstract="ABSTRACT" in properties,
            final="FINAL" in properties,
            extended="EXTENDED" in properties,
            extends=extends,
        )
        in_parameters = False
        for item in items:
            match item:
                case Token(type="ATTRIBUTE"):
                    in_parameters = False
                case Token(type="PARAMETER"):
                    in_parameters = True
                case AttributeDef() if not in_parameters:
                    entity.attributes.append(item)
                case RoleDef():
                    entity.roles.append(item)
        return entity

    @v_args(meta=True)
    def attribute(self, meta: Meta, children: list) -> AttributeDef:
        name, properties, mandatory, type_node = children
        properties = properties or frozenset()
        type_node = type_node or OpaqueNode(keyword="ANY")
        if isinstance(type_node, CompositionNode):
            cardinality = type_node.cardinality
            if mandatory is not None and cardinality.minimum == 0:
                cardinality = Cardinality(minimum=1, maximum=cardinality.maximum)
        else:
            cardinality = Cardinality(minimum=1 if mandatory is not None else 0, maximum=1)
        annotations = self._annotations(meta)
        return AttributeDef(
            name=str(name),
            qualified_name=str(name),
            documentation=annotations.documentation,
            metaattributes=annotations.metaattributes,
            location=self._location(meta.line),
            type=type_node,
            cardinality=cardinality,
            extended="EXTENDED" in properties,
        )

    @v_args(meta=True)
    def role(self, meta: Meta, children: list) -> RoleDef:
        name, properties, strength, cardinality, external, *targets, _skipped = children
        properties = properties or frozenset()
        annotations = self._annotations(meta)
        return RoleDef(
            name=str(name),
            qualified_name=str(name),
            documentation=annotations.documentation,
            metaattributes=annotations.metaattributes,
            location=self._location(meta.line),
            targets=tuple(targets),
            strength=str(strength),
            cardinality=cardinality or Cardinality(minimum=0, maximum=None),
            external="EXTERNAL" in properties or external is not None,
        )

    def properties(self, children: list[Token]) -> frozenset[str]:
        return frozenset(str(child) for child in children)

    # --- types --------------------------------------------------------

    def typed(self, children: list) -> TypeNode:
        return children[0]

    def text(self, children: list) -> TextNode:
        keyword, length = children
        return TextNode(
            length=int(length) if length is not None else None,
            multiline=keyword.type == "MTEXT",
        )

    def numeric(self, children: list) -> NumericNode:
        return NumericNode(unit=children[0])

    def numeric_range(self, children: list) -> NumericNode:
        minimum, maximum, unit = children
        return NumericNode(minimum=minimum, maximum=maximum, unit=unit)

    def number(self, children: list) -> str:
        sign, value = children
        return f"-{value}" if sign == "-" else str(value)

    def unit(self, children: list[str]) -> str:
        return children[0].rsplit(".", 1)[-1]

    def enumeration(self, children: list) -> EnumerationNode:
        *elements, final = children
        return EnumerationNode(elements=tuple(elements), final=final is not None)

    def final_enumeration(self, _children: list) -> EnumerationNode:
        return EnumerationNode(elements=(), final=True)

    @v_args(meta=True)
    def enum_element(self, meta: Meta, children: list) -> EnumElementNode:
        name, sub_elements = children
        annotations = self._annotations(meta)
        return EnumElementNode(
            name=str(name),
            children=sub_elements.elements if sub_elements is not None else (),
            documentation=annotations.documentation,
            display_name=annotations.metaattributes.get(DISPLAY_NAME_META),
        )

    def all_of(self, children: list[str]) -> AllOfNode:
        return AllOfNode(domain=children[0])

    def format_type(self, children: list) -> FormatNode:
        base, minimum, maximum = children
        return FormatNode(
            base=base,
            minimum=_unquote(minimum) if minimum is not None else None,
            maximum=_unquote(maximum) if maximum is not None else None,
        )

    def based_format(self, _children: list) -> FormatNode:
        return FormatNode()

    def directed(self, children: list[Token]) -> GeometryNode:
        return GeometryNode(form=str(children[0]))

    def reference(self, children: list) -> ReferenceNode:
        external, target = children
        return ReferenceNode(target=target, external=external is not None)

    def external(self, _children: list) -> bool:
        return True

    def composition(self, children: list) -> CompositionNode:
        cardinality, target = children
        return CompositionNode(
            target=target,
            multiple=True,
            cardinality=cardinality or Cardinality(minimum=0, maximum=None),
        )

    def oid(self, children: list) -> TypeNode:
        return children[0]

    def named(self, children: list[str]) -> TypeNode:
        name = children[0]
        if name in _KEYWORD_ALIASES:
            return AliasNode(name=_KEYWORD_ALIASES[name])
        if name in _GEOMETRY_FORMS:
            return GeometryNode(form=name)
        if name in _OPAQUE_TYPES:
            return OpaqueNode(keyword=name)
        return AliasNode(name=name)

    def cardinality(self, children: list) -> Cardinality:
        lower, upper = children
        if lower.type == "STAR":
            return Cardinality(minimum=0, maximum=None)
        minimum = int(lower)
        if upper is None:
            return Cardinality(minimum=minimum, maximum=minimum)
        return Cardinality(minimum=minimum, maximum=None if upper.type == "STAR" else int(upper))

    def path(self, children: list[Token]) -> str:
        return ".".join(children)

    # --- skipped constructs -------------------------------------------

    def skipped(self, _children: list) -> None:
        return None

    def skipped_statement(self, _children: list) -> None:
        return None

    def skipped_section(self, _children: list) -> None:
        return None

    def skipped_block(self, _children: list) -> None:
        return None


def _adopt(parent: Definition, members: Iterable[Definition]) -> None:
    for member in members:
        member.container = parent.qualified_name
        member.qualified_name = f"{parent.qualified_name}.{member.name}"
        match member:
            case TopicDef():
                _adopt(member, (*member.classes, *member.domains))
            case ClassDef():
                _adopt(member, (*member.attributes, *member.roles))


def _unquote(token: str) -> str:
    return token[1:-1].replace('\\"', '"')
