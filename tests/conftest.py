"""Shared offline fakes: a scripted service client and an in-memory artifact store."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field

import pytest

from project_genie.observability.logging import shutdown_logging
from project_genie.service.providers.base import ChatMessage


@dataclass(slots=True)
class ScriptedServiceClient:
    """Returns queued outcomes in order and records every call."""

    outcomes: deque[str | BaseException]
    calls: list[tuple[ChatMessage, ...]] = field(default_factory=list)
    temperatures: list[float] = field(default_factory=list)
    models: list[str | None] = field(default_factory=list)

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        temperature: float,
        model: str | None = None,
    ) -> str:
        self.calls.append(tuple(messages))
        self.temperatures.append(temperature)
        self.models.append(model)
        if not self.outcomes:
            raise RuntimeError("scripted service outcomes exhausted")
        outcome = self.outcomes.popleft()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def user_prompts(self) -> list[str]:
        return [
            "\n".join(message.content for message in call if message.role == "user")
            for call in self.calls
        ]

    def system_prompts(self) -> list[str]:
        return [
            "\n".join(message.content for message in call if message.role == "system")
            for call in self.calls
        ]


@dataclass(slots=True)
class MemoryArtifactStore:
    """``ArtifactStore`` keeping bodies in a dict; ``fail_on`` paths raise ``OSError``."""

    files: dict[str, bytes] = field(default_factory=dict)
    writes: list[str] = field(default_factory=list)
    containers: list[str] = field(default_factory=list)
    fail_on: set[str] = field(default_factory=set)

    def write(self, path: str, body: bytes) -> None:
        if path in self.fail_on:
            raise OSError(28, "No space left on device")
        self.files[path] = body
        self.writes.append(path)

    def ensure_container(self, path: str) -> None:
        self.containers.append(path)

    def text(self, path: str) -> str:
        return self.files[path].decode("utf-8")


@pytest.fixture(autouse=True)
def _cleanup_logging() -> Iterator[None]:
    yield
    shutdown_logging()
    logging.getLogger("project_genie").propagate = True


@pytest.fixture
def scripted_client() -> Callable[..., ScriptedServiceClient]:
    def factory(*outcomes: str | BaseException) -> ScriptedServiceClient:
        return ScriptedServiceClient(outcomes=deque(outcomes))

    return factory


@pytest.fixture
def memory_store() -> MemoryArtifactStore:
    return MemoryArtifactStore()
