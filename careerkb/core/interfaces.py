"""Narrow interfaces for the external collaborators careerkb consumes."""

from typing import Any, Protocol, runtime_checkable

from .models.generation import CompanyResearch
from .models.knowledge import MemoryHit


@runtime_checkable
class LanguageModel(Protocol):
    """Text-in, text-out completion; callers request JSON in the prompt."""

    async def complete(self, prompt: str) -> str:
        ...


@runtime_checkable
class VectorMemory(Protocol):
    """Semantic index over free-text entries. There is no exact count operation."""

    async def add(self, text: str, metadata: dict[str, Any]) -> str:
        ...

    async def search(self, query: str, top_k: int, min_relativity: float) -> list[MemoryHit]:
        ...

    async def delete(self, memory_ids: list[str]) -> None:
        ...

    async def clear(self) -> None:
        ...


@runtime_checkable
class CompanyResearcher(Protocol):
    """Best-effort company overview lookup."""

    async def research(self, company_name: str) -> CompanyResearch:
        ...
