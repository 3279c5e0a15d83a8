"""Walk a compiled INTERLIS model into semantic ``ModelMetadata``.

Topics and classes are visited once each, tracked by qualified name; base topics
and base classes are walked before the definitions that extend them, so a base
class is always registered before its subclasses. Enumerations are flattened
pre-order with one running sequence across the whole tree.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Final

from ilimeta.domain.errors import ModelNotFoundError
from ilimeta.domain.model import (
    AttributeEntity,
    BooleanType,
    ClassEntity,
    ClassKind,
    CompositionType,
    EnumEntity,
    EnumerationType,
    FormattedType,
    GeometryType,
    ModelMetadata,
    NumericType,
    ObjectType,
    ReferenceType,
    Temporal,
    TextType,
)
from ilimeta.domain.type_inference import infer_semantic_type

from .builtins import XML_DATE, XML_DATE_TIME, XML_TIME
from .compiler import compile_models
from .nodes import (
    AliasNode,
    AllOfNode,
    AttributeDef,
    ClassDef,
    CompositionNode,
    DomainDef,
    EnumerationNode,
    FormatNode,
    GeometryNode,
    NumericNode,
    OpaqueNode,
    ReferenceNode,
    RoleDef,
    TextNode,
    TopicDef,
)
from .parser import DISPLAY_NAME_META

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    import httpx

    from ilimeta.domain.model import SemanticType

    from .compiler import ModelTree
    from .nodes import Definition, EnumElementNode, ModelDef, TypeNode

log = logging.getLogger(__name__)

DEFAULT_LABEL_LANGUAGE: Final = "de"

_TEMPORAL_DOMAINS: Final = {
    XML_DATE: Temporal.DATE,
    XML_TIME: Temporal.TIME,
    XML_DATE_TIME: Temporal.DATETIME,
}
_BOOLEAN_CODES: Final = frozenset({"false", "true"})


class SemanticWalker:
    """Compile an INTERLIS model and read its semantic metadata."""

    def __init__(
        self,
        model_file: Path | str | None,
        repositories: Sequence[str] | None = None,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        self.model_file = Path(model_file) if model_file is not None else None
        self.repositories = tuple(repositories or ())
        self.client = client
        self._tree: ModelTree | None = None

    def compile(self, model_name: str | None = None) -> ModelTree:
        self._tree = compile_models(
            self.model_file,
            self.repositories,
            model_name=model_name,
            client=self.client,
        )
        return self._tree

    def read_semantic_model(self, model_name: str) -> ModelMetadata:
        tree = self._tree if self._tree is not None else self.compile(model_name)
        model = tree.model(model_name)
        if model is None:
            raise ModelNotFoundError(model_name)
        metadata = _ModelWalk(tree, model).run()
        log.info(
            "Read %d classes and %d enums from model %s",
            len(metadata.classes),
            len(metadata.enums),
            model_name,
        )
        return metadata


@dataclass(frozen=True, slots=True)
class _ResolvedType:
    semantic_type: SemanticType
    type_name: str
    mandatory: bool = False


class _ModelWalk:
    def __init__(self, tree: ModelTree, model: ModelDef) -> None:
        self.tree = tree
        self.model = model
        self.metadata = ModelMetadata(model_name=model.name, ili_version=model.ili_version)
        self.visited_topics: set[str] = set()
        self.visited_classes: set[str] = set()

    def run(self) -> ModelMetadata:
        for domain in self.model.domains:
            self._walk_domain(domain)
        for entity in self.model.classes:
            self._walk_class(entity)
        for topic in self.model.topics:
            self._walk_topic(topic)
        return self.metadata

    # ------------------------------------------------------------------
    # Tree walk

    def _walk_topic(self, topic: TopicDef) -> None:
        if topic.qualified_name in self.visited_topics:
            return
        self.visited_topics.add(topic.qualified_name)
        for base_name in self.tree.base_topics(topic)[:1]:
            base = self.tree.elements[base_name]
            if isinstance(base, TopicDef):
                self._walk_topic(base)
        for domain in topic.domains:
            self._walk_domain(domain)
        for entity in topic.classes:
            self._walk_class(entity)

    def _walk_domain(self, domain: DomainDef) -> None:
        if isinstance(domain.type, EnumerationNode) and not _is_boolean(domain.type):
            self._register_enum(domain.type, domain)

    def _walk_class(self, definition: ClassDef) -> None:
        if definition.qualified_name in self.visited_classes:
            return
        self.visited_classes.add(definition.qualified_name)

        base = self._base_class(definition)
        inherited: dict[str, AttributeEntity] = {}
        if base is not None:
            self._walk_class(base)
            base_entity = self.metadata.get_class(base.qualified_name)
            if base_entity is not None:
                inherited = {
                    name: replace(attribute, _labels=dict(attribute.labels))
                    for name, attribute in base_entity.attributes.items()
                }

        entity = ClassEntity(
            qualified_name=definition.qualified_name,
            kind=definition.kind,
            abstract=definition.abstract,
            base_class=base.qualified_name if base is not None else None,
            documentation=definition.documentation,
            _labels=self._display_labels(definition),
        )
        attributes = inherited
        for attribute_def in definition.attributes:
            attributes[attribute_def.name] = self._attribute(
                attribute_def, attributes.get(attribute_def.name)
            )
        for role in definition.roles:
            attributes[role.name] = self._role_attribute(role)
        for attribute in attributes.values():
            entity.add_attribute(attribute)

        self.metadata.add_class(entity)
        log.debug("Semantic class %s (%s)", entity.qualified_name, entity.kind)

    def _base_class(self, definition: ClassDef) -> ClassDef | None:
        if definition.extends:
            base = self.tree.resolve(definition.extends, definition)
        elif definition.extended:
            base = self.tree.resolve_extended(definition)
        else:
            return None
        if not isinstance(base, ClassDef):
            log.warning(
                "Base class %s of %s not found",
                definition.extends or definition.name,
                definition.qualified_name,
            )
            return None
        return base

    # ------------------------------------------------------------------
    # Attributes

    def _attribute(
        self, definition: AttributeDef, inherited: AttributeEntity | None
    ) -> AttributeEntity:
        if isinstance(definition.type, OpaqueNode) and definition.type.keyword == "ANY":
            if inherited is not None:
                # EXTENDED without a type only narrows the cardinality
                inherited.mandatory = inherited.is_mandatory or definition.cardinality.minimum > 0
                inherited.documentation = definition.documentation or inherited.documentation
                return inherited

        resolved = self._resolve_type(definition.type, definition)
        attribute = AttributeEntity(
            name=definition.name,
            qualified_name=definition.qualified_name,
            semantic_type_name=resolved.type_name,
            semantic_type=resolved.semantic_type,
            target_type=infer_semantic_type(resolved.semantic_type),
            documentation=definition.documentation,
            mandatory=definition.cardinality.minimum > 0 or resolved.mandatory,
            geometry=isinstance(resolved.semantic_type, GeometryType),
            _labels=self._display_labels(definition),
        )
        match resolved.semantic_type:
            case TextType(max_length=max_length):
                attribute.max_length = max_length
            case NumericType(minimum=minimum, maximum=maximum, unit=unit):
                attribute.min_value = minimum
                attribute.max_value = maximum
                attribute.unit = unit
            case EnumerationType(enum_name=enum_name):
                attribute.enum_type = enum_name
            case ReferenceType(target=target) | CompositionType(target=target):
                attribute.referenced_class = target
        return attribute

    def _role_attribute(self, role: RoleDef) -> AttributeEntity:
        target = self._qualify(role.targets[0], role)
        semantic_type = ReferenceType(target=target, external=role.external)
        return AttributeEntity(
            name=role.name,
            qualified_name=role.qualified_name,
            semantic_type_name=semantic_type.descriptor,
            semantic_type=semantic_type,
            target_type=infer_semantic_type(semantic_type),
            documentation=role.documentation,
            mandatory=role.cardinality.minimum > 0,
            referenced_class=target,
            _labels=self._display_labels(role),
        )

    def _display_labels(self, definition: Definition) -> dict[str, str]:
        label = definition.metaattributes.get(DISPLAY_NAME_META)
        if label is None:
            return {}
        return {self.model.language or DEFAULT_LABEL_LANGUAGE: label}

    # ------------------------------------------------------------------
    # Types

    def _resolve_type(self, node: TypeNode, owner: Definition) -> _ResolvedType:
        """Follow domain aliases from ``node`` and classify what they lead to."""

        visited: set[str] = set()
        type_name: str | None = None
        mandatory = False
        scope = owner
        while isinstance(node, AliasNode | AllOfNode):
            name = node.name if isinstance(node, AliasNode) else node.domain
            target = self.tree.resolve(name, scope)
            if target is None:
                log.warning("Type %s of %s not found", name, owner.qualified_name)
                return _ResolvedType(ObjectType(name=name), type_name or name, mandatory)
            type_name = type_name or target.qualified_name
            if target.qualified_name in visited:
                log.warning("Cyclic type alias %s in %s", name, owner.qualified_name)
                return _ResolvedType(ObjectType(name=name), type_name, mandatory)
            visited.add(target.qualified_name)

            if isinstance(target, DomainDef):
                mandatory = mandatory or target.mandatory
                node, scope, owner = target.type, target, target
                continue
            if isinstance(target, ClassDef):
                semantic: SemanticType = (
                    CompositionType(target=target.qualified_name)
                    if target.kind is ClassKind.STRUCTURE
                    else ReferenceType(target=target.qualified_name)
                )
                return _ResolvedType(semantic, type_name, mandatory)
            log.warning("%s is not a type (used by %s)", name, owner.qualified_name)
            return _ResolvedType(ObjectType(name=name), type_name, mandatory)

        semantic = self._classify(node, scope, owner)
        return _ResolvedType(semantic, type_name or semantic.descriptor, mandatory)

    def _classify(self, node: TypeNode, scope: Definition, owner: Definition) -> SemanticType:
        match node:
            case TextNode(length=length, multiline=multiline):
                return TextType(max_length=length, multiline=multiline)
            case NumericNode(minimum=minimum, maximum=maximum, unit=unit):
                fractional = any(bound is not None and "." in bound for bound in (minimum, maximum))
                return NumericType(
                    minimum=minimum, maximum=maximum, fractional=fractional, unit=unit
                )
            case EnumerationNode() if _is_boolean(node):
                return BooleanType()
            case EnumerationNode():
                enum = self._register_enum(node, owner)
                return EnumerationType(enum_name=enum.qualified_name, extendable=enum.extendable)
            case FormatNode(base=base):
                base_domain = self._qualify(base, scope) if base else None
                return FormattedType(
                    base_domain=base_domain, temporal=_TEMPORAL_DOMAINS.get(base_domain or "")
                )
            case GeometryNode(form=form):
                return GeometryType(form=form)
            case ReferenceNode(target=target, external=external):
                return ReferenceType(target=self._qualify(target, scope), external=external)
            case CompositionNode(target=target, multiple=multiple):
                return CompositionType(target=self._qualify(target, scope), multiple=multiple)
            case OpaqueNode(keyword=keyword):
                return ObjectType(name=keyword)
            case _:
                return ObjectType()

    def _qualify(self, name: str, scope: Definition) -> str:
        target = self.tree.resolve(name, scope)
        return target.qualified_name if target is not None else name

    def _register_enum(self, node: EnumerationNode, owner: Definition) -> EnumEntity:
        existing = self.metadata.get_enum(owner.qualified_name)
        if existing is not None:
            return existing
        base_enum: str | None = None
        final = node.final
        if isinstance(owner, DomainDef):
            final = final or owner.final
            if owner.extends:
                base_enum = self._qualify(owner.extends, owner)
        enum = EnumEntity(
            qualified_name=owner.qualified_name, extendable=not final, base_enum=base_enum
        )
        for element in _preorder(node.elements):
            enum.append_value(element.name, element.display_name)
        self.metadata.add_enum(enum)
        return enum


def _preorder(elements: Sequence[EnumElementNode]) -> Iterator[EnumElementNode]:
    for element in elements:
        yield element
        yield from _preorder(element.children)


def _is_boolean(node: EnumerationNode) -> bool:
    return (
        len(node.elements) == 2
        and all(not element.children for element in node.elements)
        and {element.name.lower() for element in node.elements} == _BOOLEAN_CODES
    )
