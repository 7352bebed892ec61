"""Búsqueda incremental de usuarios (search-as-you-type).

Reglas por longitud del texto (umbral N = `search_min_length`, 3 por defecto):
- 0      -> se muestra el conjunto autoritativo completo (si existe).
- 1..N-1 -> sin cambios en lo mostrado.
- N      -> búsqueda remota; su resultado pasa a ser el conjunto autoritativo.
- > N    -> filtro local (substring, sin mayúsculas) sobre el autoritativo.

Al terminar la edición (`on_query_submitted`) se busca en remoto el texto
completo, sea cual sea su longitud.

Cada búsqueda remota reclama una generación; un resultado cuya generación ya
no es la actual se descarta sin tocar el estado.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from core.config import AppSettings
from core.domain.errors import OctolensError
from core.domain.models import Record, SearchOutcome, SearchResultSet, SearchState, record_str
from core.interfaces.remote import UserSearchApi

logger = logging.getLogger(__name__)


def filter_records(records: Iterable[Mapping[str, Any]], text: str, *, field: str = "login") -> list[Record]:
    """Filtro puro: registros cuyo `field` contiene `text` (case-insensitive).

    Registros sin `field` (o con un valor que no es str) nunca coinciden.
    """

    needle = text.lower()
    out: list[Record] = []
    for record in records:
        value = record_str(record, field)
        if value is not None and needle in value.lower():
            out.append(dict(record))
    return out


@dataclass
class SearchHooks:
    """Callbacks opcionales para la capa visual."""

    on_query_start: Callable[[str], None] | None = None
    on_query_end: Callable[[str], None] | None = None
    on_display: Callable[[SearchResultSet], None] | None = None
    on_error: Callable[[str], None] | None = None


class SearchCoordinator:
    """Orquesta filtro local y búsqueda remota según el texto tecleado."""

    def __init__(
        self,
        api: UserSearchApi,
        settings: AppSettings | None = None,
        *,
        hooks: SearchHooks | None = None,
    ) -> None:
        self._api = api
        self._settings = settings or AppSettings()
        self._hooks = hooks or SearchHooks()
        self._min_length = self._settings.search_min_length

        self._text = ""
        self._generation = 0
        self._state = SearchState.IDLE
        self._authoritative: SearchResultSet | None = None
        self._displayed: SearchResultSet | None = None
        self._last_error: str | None = None

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def authoritative(self) -> SearchResultSet | None:
        return self._authoritative

    @property
    def displayed(self) -> SearchResultSet | None:
        return self._displayed

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def generation(self) -> int:
        return self._generation

    async def on_query_changed(self, text: str) -> SearchOutcome:
        self._text = text
        length = len(text)

        if length == 0:
            if self._authoritative is not None:
                self._show(self._authoritative)
            self._state = SearchState.IDLE
            return self._outcome(text)

        if length < self._min_length:
            # Sin filtrado por debajo del umbral: lo mostrado no cambia.
            return self._outcome(text)

        if length == self._min_length:
            return await self._query(text)

        self._state = SearchState.FILTERING
        if self._authoritative is not None:
            self._show(self._filtered(self._authoritative, text))
        self._state = SearchState.IDLE
        return self._outcome(text)

    async def on_query_submitted(self, text: str) -> SearchOutcome:
        """Fin de la edición: búsqueda remota del texto completo si no está vacío."""

        self._text = text
        if not text:
            return self._outcome(text)
        return await self._query(text)

    async def _query(self, term: str) -> SearchOutcome:
        self._generation += 1
        generation = self._generation
        self._state = SearchState.QUERYING
        if self._hooks.on_query_start:
            self._hooks.on_query_start(term)
        try:
            debounce = self._settings.search_debounce_seconds
            if debounce > 0:
                await asyncio.sleep(debounce)
                if generation != self._generation:
                    logger.debug("Search %r superseded during debounce", term)
                    return self._outcome(term, remote_issued=False, stale=True)

            try:
                items = await self._api.search_users(term)
            except OctolensError as exc:
                if generation != self._generation:
                    logger.debug("Ignoring failure of stale search %r: %s", term, exc)
                    return self._outcome(term, remote_issued=True, stale=True)
                self._state = SearchState.ERROR
                self._last_error = str(exc)
                logger.warning("User search %r failed: %s", term, exc)
                if self._hooks.on_error:
                    self._hooks.on_error(self._last_error)
                return self._outcome(term, remote_issued=True)
        finally:
            if self._hooks.on_query_end:
                self._hooks.on_query_end(term)

        if generation != self._generation:
            logger.debug("Dropping stale search result for %r", term)
            return self._outcome(term, remote_issued=True, stale=True)

        self._authoritative = SearchResultSet.from_records(items, query=term, remote=True)
        self._last_error = None
        # El texto pudo cambiar mientras la búsqueda estaba en vuelo.
        current = self._text
        if current == term or not current:
            self._show(self._authoritative)
        elif len(current) > self._min_length:
            self._show(self._filtered(self._authoritative, current))
        self._state = SearchState.IDLE
        return self._outcome(term, remote_issued=True)

    def _filtered(self, base: SearchResultSet, text: str) -> SearchResultSet:
        return SearchResultSet.from_records(filter_records(base.records, text), query=text)

    def _show(self, results: SearchResultSet) -> None:
        self._displayed = results
        if self._hooks.on_display:
            self._hooks.on_display(results)

    def _outcome(self, query: str, *, remote_issued: bool = False, stale: bool = False) -> SearchOutcome:
        return SearchOutcome(
            query=query,
            state=self._state,
            displayed=self._displayed,
            remote_issued=remote_issued,
            stale=stale,
            error=self._last_error if self._state is SearchState.ERROR else None,
        )
