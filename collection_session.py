"""Collection selection: schema/list loading guarded by a generation counter.

Each ``select()`` bumps the generation. A response is applied only when the
generation it was requested under is still current, so a slow fetch for a
previously selected collection can never overwrite the active one.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, List

import type_inference
from app.repository import Pagination
from basin.semantic_types import CollectionDescriptor, TypedRecord
from column_mapper import build_layout
from crud_orchestrator import CrudOrchestrator


RepositoryFactory = Callable[[str], Any]
Current = Callable[[str], bool]


async def resolve_descriptor(repository, identifier: str, sink=None, current: Current | None = None) -> CollectionDescriptor | None:
    """Schema first, then a one-item sample, then the fixed fallback fields.

    ``current(stage)`` is consulted after every await; a False answer abandons
    the lookup and returns None.
    """
    current = current or (lambda stage: True)
    schema = await repository.get_schema()
    if not current("schema"):
        return None
    if schema.success and schema.data:
        descriptor = type_inference.describe_collection(identifier, schema.data, sink)
        if descriptor.fields:
            return descriptor
    elif not schema.success and sink is not None:
        sink.warning("schema_unavailable", collection=identifier, message=schema.message)

    sample = await repository.list(Pagination(limit=1))
    if not current("sample"):
        return None
    if sample.success and sample.data and isinstance(sample.data[0], dict):
        return type_inference.describe_sample(identifier, sample.data[0], sink)
    return type_inference.fallback_collection(identifier, sink)


@dataclass(frozen=True)
class SessionView:
    collection: str | None = None
    generation: int = 0
    descriptor: CollectionDescriptor | None = None
    items: List[TypedRecord] = field(default_factory=list)
    layout: dict | None = None
    is_loading: bool = False
    error: str | None = None


class CollectionSession:
    def __init__(self, repository_factory: RepositoryFactory, pagination=None, sink=None) -> None:
        self._factory = repository_factory
        self._pagination = pagination
        self._sink = sink
        self._generation = 0
        self._list_request = 0
        self._view = SessionView()
        self._repository = None
        self._orchestrator: CrudOrchestrator | None = None

    @property
    def view(self) -> SessionView:
        return self._view

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def orchestrator(self) -> CrudOrchestrator | None:
        return self._orchestrator

    def _log(self, level: str, event: str, **context: Any) -> None:
        if self._sink is not None:
            getattr(self._sink, level)(event, **context)

    def _current(self, generation: int, collection: str, stage: str) -> bool:
        if generation == self._generation:
            return True
        self._log(
            "debug",
            "stale_response_discarded",
            collection=collection,
            stage=stage,
            generation=generation,
            current=self._generation,
        )
        return False

    async def select(self, collection: str) -> bool:
        """Switch to ``collection``; returns False when superseded mid-load."""
        self._generation += 1
        generation = self._generation
        repository = self._factory(collection)
        self._repository = repository
        self._orchestrator = None
        self._view = SessionView(collection=collection, generation=generation, is_loading=True)
        self._log("info", "collection_selected", collection=collection, generation=generation)

        descriptor = await resolve_descriptor(
            repository, collection, self._sink, current=lambda stage: self._current(generation, collection, stage)
        )
        if descriptor is None:
            return False
        self._orchestrator = CrudOrchestrator(repository, descriptor, refresh=self.reload, sink=self._sink)
        self._view = replace(self._view, descriptor=descriptor, layout=build_layout(descriptor))
        return await self._load_items(repository, collection, generation)

    async def _load_items(self, repository, collection: str, generation: int) -> bool:
        self._list_request += 1
        request = self._list_request
        envelope = await repository.list(self._pagination)
        if not self._current(generation, collection, "list"):
            return False
        if request != self._list_request:
            # a newer fetch of the same collection already owns the view
            self._log(
                "debug",
                "stale_response_discarded",
                collection=collection,
                stage="list",
                request=request,
                current_request=self._list_request,
            )
            return False
        descriptor = self._view.descriptor
        if envelope.success:
            items = [TypedRecord.from_raw(descriptor, raw) for raw in envelope.data or [] if isinstance(raw, dict)]
            self._view = replace(self._view, items=items, is_loading=False, error=None)
        else:
            self._view = replace(self._view, is_loading=False, error=envelope.message)
        return True

    async def reload(self) -> bool:
        """Full list refetch for the current selection."""
        if self._repository is None or self._view.collection is None:
            return False
        generation = self._generation
        self._view = replace(self._view, is_loading=True)
        return await self._load_items(self._repository, self._view.collection, generation)
