"""Compile INTERLIS models into a name-resolvable tree.

Compilation parses the requested source plus every model it imports,
transitively, and registers all definitions under their qualified names. Any
failure here is fatal: a syntax error, an import that no repository provides, or
no source at all.
"""

from __future__ import annotations

import logging
from collections import deque
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ilimeta.config.repository import DEFAULT_REPOSITORY
from ilimeta.domain.errors import ModelCompilationError

from .builtins import BUILTIN_MODEL_NAME, builtin_model
from .nodes import ClassDef, ModelDef, TopicDef
from .parser import parse_models
from .repository import (
    ModelSource,
    build_repository_client,
    expand_locations,
    is_remote,
    open_repositories,
    read_model_file,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    import httpx

    from .nodes import Definition
    from .repository import ModelRepository

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ModelTree:
    """All compiled models with their definitions indexed by qualified name."""

    models: dict[str, ModelDef] = field(default_factory=dict)
    elements: dict[str, Definition] = field(default_factory=dict)

    def model(self, name: str) -> ModelDef | None:
        return self.models.get(name)

    def add_model(self, model: ModelDef) -> None:
        self.models[model.name] = model
        self._register(model)
        for domain in model.domains:
            self._register(domain)
        for entity in model.classes:
            self._register_class(entity)
        for topic in model.topics:
            self._register(topic)
            for domain in topic.domains:
                self._register(domain)
            for entity in topic.classes:
                self._register_class(entity)

    def _register_class(self, entity: ClassDef) -> None:
        self._register(entity)
        for member in (*entity.attributes, *entity.roles):
            self._register(member)

    def _register(self, definition: Definition) -> None:
        if definition.qualified_name in self.elements:
            log.debug("Duplicate definition %s ignored", definition.qualified_name)
            return
        self.elements[definition.qualified_name] = definition

    def base_topics(self, topic: TopicDef) -> list[str]:
        """Qualified names of the topics ``topic`` extends, nearest first."""

        result: list[str] = []
        visited = {topic.qualified_name}
        current = topic
        while current.extends:
            base = self.elements.get(f"{current.container}.{current.extends}") or self.elements.get(
                current.extends
            )
            if not isinstance(base, TopicDef) or base.qualified_name in visited:
                break
            visited.add(base.qualified_name)
            result.append(base.qualified_name)
            current = base
        return result

    def scope_chain(self, definition: Definition) -> list[str]:
        """Name prefixes visible from ``definition``, innermost first."""

        chain: list[str] = []
        current: Definition | None = definition
        while current is not None:
            if isinstance(current, TopicDef):
                chain.append(current.qualified_name)
                chain.extend(self.base_topics(current))
            elif isinstance(current, ModelDef):
                chain.append(current.qualified_name)
                chain.extend(current.unqualified_imports)
            current = self.elements.get(current.container) if current.container else None
        return chain

    def resolve(self, name: str, scope: Definition) -> Definition | None:
        for prefix in self.scope_chain(scope):
            found = self.elements.get(f"{prefix}.{name}")
            if found is not None:
                return found
        return self.elements.get(name) or self.elements.get(f"{BUILTIN_MODEL_NAME}.{name}")

    def resolve_extended(self, entity: ClassDef) -> Definition | None:
        """Find the class an ``(EXTENDED)`` class refines in a base topic."""

        container = self.elements.get(entity.container) if entity.container else None
        if not isinstance(container, TopicDef):
            return None
        for prefix in self.base_topics(container):
            found = self.elements.get(f"{prefix}.{entity.name}")
            if found is not None:
                return found
        return None


def compile_models(
    model_file: Path | str | None,
    repositories: Sequence[str] | None = None,
    *,
    model_name: str | None = None,
    client: httpx.Client | None = None,
) -> ModelTree:
    """Compile ``model_file``, or ``model_name`` looked up in ``repositories``.

    Without repositories the public INTERLIS repository is used. The directory of
    ``model_file`` is always searched first for imports.
    """

    path = Path(model_file) if model_file is not None else None
    if path is not None and not path.is_file():
        log.warning("Model file %s not found, resolving %s by name", path, model_name)
        path = None
    locations = expand_locations(
        repositories or (DEFAULT_REPOSITORY,),
        path.parent if path is not None else None,
    )

    with ExitStack() as stack:
        if client is None and any(is_remote(location) for location in locations):
            client = stack.enter_context(build_repository_client())
        sources = open_repositories(locations, client=client)

        if path is not None:
            initial = ModelSource(
                name=path.stem, text=read_model_file(path), origin=str(path), path=path
            )
        elif model_name:
            found = _find_model(model_name, sources)
            if found is None:
                raise ModelCompilationError(
                    f"Model {model_name} not found in {', '.join(locations) or 'no repository'}"
                )
            initial = found
        else:
            raise ModelCompilationError("Neither a model file nor a model name was given")

        tree = ModelTree()
        tree.add_model(builtin_model())
        _load(tree, initial, sources)

    log.info("Compiled %d models from %s", len(tree.models) - 1, initial.origin)
    return tree


def _load(tree: ModelTree, initial: ModelSource, sources: list[ModelRepository]) -> None:
    pending: deque[ModelSource] = deque([initial])
    requested: set[str] = {BUILTIN_MODEL_NAME}
    while pending:
        source = pending.popleft()
        models = parse_models(source.text, origin=source.origin, path=source.path)
        for model in models:
            requested.add(model.name)
            if model.name in tree.models:
                log.debug("Model %s already loaded, ignoring copy in %s", model.name, source.origin)
                continue
            tree.add_model(model)
            log.debug("Loaded model %s from %s", model.name, source.origin)
        for model in models:
            for imported in model.imports:
                if imported in requested:
                    continue
                found = _find_model(imported, sources)
                if found is None:
                    raise ModelCompilationError(
                        f"Imported model {imported} not found", location=model.location
                    )
                requested.add(imported)
                pending.append(found)


def _find_model(name: str, sources: Sequence[ModelRepository]) -> ModelSource | None:
    for repository in sources:
        found = repository.find_model(name)
        if found is not None:
            log.debug("Found model %s in %s", name, repository.location)
            return found
    return None
