"""Clinic discovery orchestration.

resolve location -> cache check -> (query -> normalize -> cache put) -> rank.
Symptom triage runs on its own and never touches the network.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum

from clinicfinder.config import settings
from clinicfinder.exceptions import ClinicFinderError, LocationRequired, LocationUnavailable, SearchFailed
from clinicfinder.messages import Language
from clinicfinder.models import (
    Clinic,
    ClinicRecommendation,
    Coordinate,
    SearchOptions,
    SortKey,
    SymptomAssessment,
    UrgencyLevel,
    UserLocation,
)
from clinicfinder.services.cache import ClinicSearchCache, make_cache_key
from clinicfinder.services.location import GeoLocationProvider
from clinicfinder.services.metrics import MetricsCollector, metrics as default_metrics
from clinicfinder.services.normalizer import FacilityNormalizer
from clinicfinder.services.overpass import FacilitySource
from clinicfinder.services.query_builder import build_query
from clinicfinder.services.ranker import rank_clinics
from clinicfinder.services.request_context import current_search_trace, ensure_request_id
from clinicfinder.services.symptom_classifier import SymptomClassifier

logger = logging.getLogger(__name__)

EMERGENCY_RESULT_LIMIT = 5


class SearchState(str, Enum):
    IDLE = "idle"
    RESOLVING_LOCATION = "resolving_location"
    CACHE_CHECK = "cache_check"
    CACHE_HIT = "cache_hit"
    CACHE_MISS = "cache_miss"
    QUERYING = "querying"
    NORMALIZING = "normalizing"
    CACHE_PUT = "cache_put"
    RANKING = "ranking"
    DONE = "done"
    FAILED = "failed"


class _SearchRun:
    """Records the state path and outcome of one search.

    The outcome is copied onto the caller's :class:`SearchTrace`, when one is
    bound, so the access log can report it.
    """

    def __init__(self) -> None:
        self.states: list[SearchState] = [SearchState.IDLE]
        self.cache_key: str | None = None
        self.shared = False
        self.outcome: str | None = None
        self.result_count: int | None = None
        self._start = time.perf_counter()

    def enter(self, state: SearchState) -> None:
        self.states.append(state)
        logger.debug("search state -> %s", state.value, extra={"search_state": state.value})

    @property
    def elapsed_ms(self) -> float:
        return round((time.perf_counter() - self._start) * 1000, 2)

    @property
    def path(self) -> str:
        return " > ".join(s.value for s in self.states)

    @property
    def cache_outcome(self) -> str:
        if SearchState.CACHE_HIT in self.states:
            return "hit"
        return "shared" if self.shared else "miss"

    def finish(self, outcome: str, result_count: int | None = None) -> None:
        self.outcome = outcome
        self.result_count = result_count
        trace = current_search_trace()
        if trace is not None:
            trace.outcome = outcome
            trace.cache_key = self.cache_key
            trace.result_count = result_count
            trace.path = self.path

    def log_fields(self) -> dict:
        fields = {
            "search_outcome": self.outcome,
            "search_path": self.path,
            "elapsed_ms": self.elapsed_ms,
        }
        if self.cache_key is not None:
            fields["cache_key"] = self.cache_key
        if self.result_count is not None:
            fields["result_count"] = self.result_count
        return fields


class ClinicDiscoveryEngine:
    """Owns one cache and one location provider; construct once per application."""

    def __init__(
        self,
        location_provider: GeoLocationProvider,
        source: FacilitySource,
        cache: ClinicSearchCache | None = None,
        normalizer: FacilityNormalizer | None = None,
        classifier: SymptomClassifier | None = None,
        *,
        query_timeout: float | None = None,
        collector: MetricsCollector | None = None,
    ) -> None:
        self._metrics = collector or default_metrics
        self._location = location_provider
        self._source = source
        self._cache = cache or ClinicSearchCache(
            maxsize=settings.cache_maxsize, ttl=settings.cache_ttl, collector=self._metrics
        )
        self._normalizer = normalizer or FacilityNormalizer(collector=self._metrics)
        self._classifier = classifier or SymptomClassifier(collector=self._metrics)
        self._query_timeout = (
            query_timeout if query_timeout is not None else settings.overpass_http_timeout
        )
        self._inflight: dict[str, asyncio.Task[list[Clinic]]] = {}

    @property
    def location_provider(self) -> GeoLocationProvider:
        return self._location

    @property
    def cache(self) -> ClinicSearchCache:
        return self._cache

    @property
    def classifier(self) -> SymptomClassifier:
        return self._classifier

    # -- search --------------------------------------------------------------

    async def search(
        self,
        options: SearchOptions | None = None,
        location: UserLocation | Coordinate | None = None,
    ) -> list[Clinic]:
        """Return ranked clinics near *location* (or the provider's fix).

        An empty list means no clinic passed the filters; failures raise
        :class:`LocationRequired` or :class:`SearchFailed`.
        """
        opts = options or default_search_options()
        with ensure_request_id():
            run = _SearchRun()
            try:
                origin = await self._resolve_location(location, run)
                key = make_cache_key(
                    origin.latitude, origin.longitude, opts.radius_m, opts.specialization
                )
                run.cache_key = key

                run.enter(SearchState.CACHE_CHECK)
                raw = self._cache.get(key)
                if raw is not None:
                    run.enter(SearchState.CACHE_HIT)
                else:
                    run.enter(SearchState.CACHE_MISS)
                    raw = await self._fetch_shared(key, origin, opts, run)

                run.enter(SearchState.RANKING)
                results = rank_clinics(raw, origin, opts)
                run.enter(SearchState.DONE)
            except ClinicFinderError as exc:
                run.enter(SearchState.FAILED)
                run.finish(exc.code)
                self._metrics.inc_search(exc.code)
                logger.warning(
                    "Clinic search failed (%s) after %.2fms",
                    exc.code,
                    run.elapsed_ms,
                    extra=run.log_fields(),
                )
                raise

            run.finish(run.cache_outcome, len(results))
            self._metrics.inc_search(run.outcome)
            logger.info(
                "Clinic search returned %d of %d clinics in %.2fms [%s]",
                len(results),
                len(raw),
                run.elapsed_ms,
                run.path,
                extra=run.log_fields(),
            )
            return results

    async def find_emergency_clinics(
        self,
        location: UserLocation | Coordinate | None = None,
        radius_m: int | None = None,
    ) -> list[Clinic]:
        options = SearchOptions(
            radius_m=radius_m if radius_m is not None else settings.default_radius_m,
            emergency_only=True,
            sort_by=SortKey.DISTANCE,
            limit=EMERGENCY_RESULT_LIMIT,
        )
        return await self.search(options, location)

    # -- triage --------------------------------------------------------------

    def classify_symptoms(
        self, text: str, language: str | Language | None = None
    ) -> SymptomAssessment:
        return self._classifier.classify(text, language)

    async def recommend(
        self,
        text: str,
        language: str | Language | None = None,
        location: UserLocation | Coordinate | None = None,
        options: SearchOptions | None = None,
    ) -> ClinicRecommendation:
        """Triage *text*, then search for clinics matching the outcome."""
        assessment = self.classify_symptoms(text, language)
        base = options or default_search_options()
        if assessment.urgency_level is UrgencyLevel.EMERGENCY:
            opts = base.model_copy(
                update={"emergency_only": True, "specialization": None, "sort_by": SortKey.DISTANCE}
            )
        elif assessment.specializations:
            opts = base.model_copy(update={"specialization": assessment.specializations[0]})
        else:
            opts = base
        clinics = await self.search(opts, location)
        return ClinicRecommendation(assessment=assessment, clinics=clinics)

    # -- cache admin ---------------------------------------------------------

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Clinic cache cleared")

    def cache_status(self) -> dict:
        keys = self._cache.keys()
        return {"size": len(keys), "keys": keys}

    # -- internals -----------------------------------------------------------

    async def _resolve_location(
        self,
        location: UserLocation | Coordinate | None,
        run: _SearchRun,
    ) -> Coordinate:
        if location is not None:
            return location.coordinate if isinstance(location, UserLocation) else location

        run.enter(SearchState.RESOLVING_LOCATION)
        try:
            fix = await self._location.get_cached_or_fetch()
        except LocationUnavailable as exc:
            raise LocationRequired(exc.reason, exc.detail) from exc
        return fix.coordinate

    async def _fetch_shared(
        self,
        key: str,
        origin: Coordinate,
        options: SearchOptions,
        run: _SearchRun,
    ) -> list[Clinic]:
        """At most one external query per key; concurrent callers share it."""
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._query(key, origin, options, run))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._query_finished(k, t))
        else:
            run.shared = True
            self._metrics.inc_shared_query()
            logger.debug("Joining in-flight query for %s", key)
        return await asyncio.shield(task)

    def _query_finished(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark the exception retrieved when every waiter has gone away.
            task.exception()

    async def _query(
        self,
        key: str,
        origin: Coordinate,
        options: SearchOptions,
        run: _SearchRun,
    ) -> list[Clinic]:
        run.enter(SearchState.QUERYING)
        try:
            query = build_query(
                origin,
                options.radius_m,
                options.specialization,
                timeout_s=settings.overpass_timeout,
            )
        except ValueError as exc:
            raise SearchFailed(exc) from exc

        try:
            elements = await asyncio.wait_for(
                self._source.fetch(query), timeout=self._query_timeout
            )
        except asyncio.TimeoutError as exc:
            raise SearchFailed(f"facility query exceeded {self._query_timeout}s") from exc

        run.enter(SearchState.NORMALIZING)
        clinics = self._normalizer.normalize_all(elements)

        run.enter(SearchState.CACHE_PUT)
        self._cache.put(key, clinics)
        return clinics


def default_search_options() -> SearchOptions:
    return SearchOptions(radius_m=settings.default_radius_m, limit=settings.default_limit)
