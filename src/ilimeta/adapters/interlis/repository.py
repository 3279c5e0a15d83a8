"""INTERLIS model repositories.

A repository location is either a local directory, searched recursively for
``*.ili`` files, or an HTTP(S) base URL that publishes an ``ilimodels.xml``
index and, optionally, child sites in ``ilisite.xml``. ``%ILI_DIR`` stands for the
directory of the model file being compiled.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final, Protocol
from urllib.parse import urljoin
from xml.etree import ElementTree

import httpx
from httpx_retries import RetryTransport

from ilimeta.config.repository import (
    REPOSITORY_INDEX_FILE,
    REPOSITORY_SITE_FILE,
    get_repository_config,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from ilimeta.config.repository import RepositoryConfig

log = logging.getLogger(__name__)

ILI_DIR_PLACEHOLDER: Final = "%ILI_DIR"
_MODEL_HEADER: Final = re.compile(
    r"^\s*(?:(?:TYPE|REFSYSTEM|SYMBOLOGY|CONTRACTED)\s+)*MODEL\s+([A-Za-z][A-Za-z0-9_]*)",
    re.MULTILINE,
)


@dataclass(frozen=True, slots=True)
class ModelSource:
    name: str
    text: str
    origin: str
    path: Path | None = None


class ModelRepository(Protocol):
    @property
    def location(self) -> str: ...

    def find_model(self, name: str) -> ModelSource | None: ...


def read_model_file(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


class DirectoryRepository:
    """Model files below a local directory, indexed by the models they declare."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self._index: dict[str, Path] | None = None

    @property
    def location(self) -> str:
        return str(self.directory)

    def _build_index(self) -> dict[str, Path]:
        index: dict[str, Path] = {}
        if not self.directory.is_dir():
            log.warning("Model directory %s does not exist", self.directory)
            return index
        for path in sorted(self.directory.rglob("*.ili")):
            try:
                text = read_model_file(path)
            except OSError as exc:
                log.warning("Could not read %s: %s", path, exc)
                continue
            for name in _MODEL_HEADER.findall(text):
                index.setdefault(name, path)
        log.debug("Indexed %d models in %s", len(index), self.directory)
        return index

    def find_model(self, name: str) -> ModelSource | None:
        if self._index is None:
            self._index = self._build_index()
        path = self._index.get(name)
        if path is None:
            return None
        return ModelSource(name=name, text=read_model_file(path), origin=str(path), path=path)


class HttpRepository:
    """A remote repository site and the child sites it lists in ``ilisite.xml``.

    Sites are visited breadth first and only as far as a lookup needs: the site's
    own ``ilimodels.xml`` is searched before any of its subsidiary sites. Parent
    sites are not followed.
    """

    def __init__(self, base_url: str, *, client: httpx.Client) -> None:
        self.base_url = _site_url(base_url)
        self._client = client
        # site url -> model name -> file, in visiting order
        self._indexes: dict[str, dict[str, str]] = {}
        self._pending: deque[str] = deque([self.base_url])
        self._seen: set[str] = {self.base_url}

    @property
    def location(self) -> str:
        return self.base_url

    def find_model(self, name: str) -> ModelSource | None:
        for site_url, index in self._site_indexes():
            file_name = index.get(name)
            if file_name is None:
                continue
            source = self._fetch_model(name, urljoin(site_url, file_name))
            if source is not None:
                return source
        return None

    def _site_indexes(self) -> Iterator[tuple[str, dict[str, str]]]:
        yield from list(self._indexes.items())
        while self._pending:
            site_url = self._pending.popleft()
            index = self._read_index(site_url)
            self._indexes[site_url] = index
            for child in self._read_child_sites(site_url):
                if child not in self._seen:
                    self._seen.add(child)
                    self._pending.append(child)
            yield site_url, index

    def _read_index(self, site_url: str) -> dict[str, str]:
        url = urljoin(site_url, REPOSITORY_INDEX_FILE)
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            log.warning("Skipping repository %s: %s", site_url, exc)
            return {}
        try:
            index = parse_repository_index(response.content)
        except ElementTree.ParseError as exc:
            log.warning("Skipping repository %s: malformed %s (%s)", site_url, url, exc)
            return {}
        log.debug("Repository %s lists %d models", site_url, len(index))
        return index

    def _read_child_sites(self, site_url: str) -> list[str]:
        url = urljoin(site_url, REPOSITORY_SITE_FILE)
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == httpx.codes.NOT_FOUND:
                log.debug("Repository %s publishes no %s", site_url, REPOSITORY_SITE_FILE)
            else:
                log.warning("Could not read %s: %s", url, exc)
            return []
        except httpx.HTTPError as exc:
            log.warning("Could not read %s: %s", url, exc)
            return []
        try:
            children = parse_site_children(response.content)
        except ElementTree.ParseError as exc:
            log.warning("Ignoring child sites of %s: malformed %s (%s)", site_url, url, exc)
            return []
        return [_site_url(urljoin(site_url, child)) for child in children]

    def _fetch_model(self, name: str, url: str) -> ModelSource | None:
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            log.warning("Could not fetch %s from %s: %s", name, url, exc)
            return None
        return ModelSource(name=name, text=response.text, origin=url)


def parse_site_children(content: bytes) -> list[str]:
    """Return the ``subsidiarySite`` locations of an ``ilisite.xml`` document."""

    root = ElementTree.fromstring(content)
    children: list[str] = []
    for element in root.iter():
        if _local_name(element.tag) != "subsidiarySite":
            continue
        for location in element.iter():
            text = (location.text or "").strip()
            if _local_name(location.tag) == "value" and text and text not in children:
                children.append(text)
    return children


def _site_url(url: str) -> str:
    return url.rstrip("/") + "/"


def parse_repository_index(content: bytes) -> dict[str, str]:
    """Map model names to file paths from an ``ilimodels.xml`` document.

    Both the ``IliRepository09`` and ``IliRepository20`` layouts are accepted, so
    element names are compared without namespace. When a model is listed more
    than once the entry with the latest publishing date wins.
    """

    root = ElementTree.fromstring(content)
    entries: dict[str, tuple[str, str]] = {}
    for element in root.iter():
        if not _local_name(element.tag).endswith("ModelMetadata"):
            continue
        fields = {_local_name(child.tag): (child.text or "").strip() for child in element}
        name = fields.get("Name")
        file_name = fields.get("File")
        if not name or not file_name or fields.get("browseOnly") == "true":
            continue
        published = fields.get("publishingDate") or fields.get("PublishingDate") or ""
        current = entries.get(name)
        if current is None or published >= current[0]:
            entries[name] = (published, file_name)
    return {name: file_name for name, (_, file_name) in entries.items()}


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def build_repository_client(config: RepositoryConfig | None = None) -> httpx.Client:
    config = config or get_repository_config()
    return httpx.Client(
        timeout=config.timeout_seconds,
        transport=RetryTransport(retry=config.retry.build()),
        headers=dict(config.default_headers),
        follow_redirects=True,
    )


def expand_locations(locations: Iterable[str], model_dir: Path | None) -> list[str]:
    """Replace ``%ILI_DIR`` and put ``model_dir`` first."""

    expanded: list[str] = [str(model_dir)] if model_dir is not None else []
    for location in locations:
        if ILI_DIR_PLACEHOLDER in location:
            if model_dir is None:
                log.debug("Ignoring %s without a model file", location)
                continue
            location = location.replace(ILI_DIR_PLACEHOLDER, str(model_dir))  # noqa: PLW2901
        if location not in expanded:
            expanded.append(location)
    return expanded


def is_remote(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def open_repositories(locations: Iterable[str], *, client: httpx.Client | None) -> list[ModelRepository]:
    repositories: list[ModelRepository] = []
    for location in locations:
        if is_remote(location):
            if client is None:
                log.warning("No HTTP client available, skipping repository %s", location)
                continue
            repositories.append(HttpRepository(location, client=client))
        else:
            repositories.append(DirectoryRepository(Path(location)))
    return repositories
