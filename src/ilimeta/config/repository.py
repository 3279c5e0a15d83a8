"""Configuration for fetching INTERLIS models from remote repositories."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

import httpx
from httpx_retries import Retry

DEFAULT_REPOSITORY: Final[str] = "https://models.interlis.ch/"
REPOSITORY_INDEX_FILE: Final[str] = "ilimodels.xml"
REPOSITORY_SITE_FILE: Final[str] = "ilisite.xml"
REPOSITORY_TIMEOUT_SECONDS: Final[float] = 20.0


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    total: int = 3
    backoff_factor: float = 0.5
    max_backoff_wait: float = 30.0
    respect_retry_after_header: bool = True
    allowed_methods: frozenset[str] = field(default_factory=lambda: frozenset({"GET", "HEAD"}))
    status_forcelist: frozenset[int] = field(
        default_factory=lambda: frozenset({429, 500, 502, 503, 504})
    )
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )

    def build(self) -> Retry:
        return Retry(
            total=self.total,
            backoff_factor=self.backoff_factor,
            max_backoff_wait=self.max_backoff_wait,
            respect_retry_after_header=self.respect_retry_after_header,
            allowed_methods=self.allowed_methods,
            status_forcelist=self.status_forcelist,
            retry_on_exceptions=self.retry_on_exceptions,
        )


@dataclass(slots=True, frozen=True)
class RepositoryConfig:
    timeout_seconds: float = REPOSITORY_TIMEOUT_SECONDS
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    default_headers: dict[str, str] = field(
        default_factory=lambda: {"User-Agent": "ilimeta (model repository client)"}
    )


def get_repository_config() -> RepositoryConfig:
    return RepositoryConfig()
