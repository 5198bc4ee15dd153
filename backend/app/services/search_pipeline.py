import json
import logging
import time
from dataclasses import dataclass
from typing import Optional

from app.models import SearchFilters, SearchRequest, SearchResponse
from app.services.candidate_fetcher import CandidateFetcher, CandidateFetchError
from app.services.location_resolver import LocationResolver, PositionSensor
from app.services.search_engine import build_results, sort_results

logger = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = "Failed to load services. Please try again."


@dataclass(frozen=True)
class SearchContext:
    """Per-request capabilities handed to the pipeline instead of globals."""

    viewer_id: Optional[str] = None
    position_sensor: Optional[PositionSensor] = None
    telemetry: bool = True


class SearchPipeline:
    """Resolve origin, fetch candidates, filter and enrich, then order."""

    def __init__(self, resolver: LocationResolver, fetcher: CandidateFetcher) -> None:
        self.resolver = resolver
        self.fetcher = fetcher

    async def run(self, request: SearchRequest, context: Optional[SearchContext] = None) -> SearchResponse:
        context = context or SearchContext()
        started = time.perf_counter()

        resolved = await self.resolver.resolve(request, position_sensor=context.position_sensor)
        messages = list(resolved.messages)

        try:
            candidates = await self.fetcher.fetch(
                service_type=request.service_type,
                breeds=request.breeds,
                result_type=request.result_type,
            )
        except CandidateFetchError:
            logger.exception("Search fetch failed")
            response = SearchResponse(origin=resolved.origin, messages=messages, error=FETCH_FAILED_MESSAGE)
            self._log_telemetry(request, context, response, started)
            return response

        filters = SearchFilters(
            query=request.query,
            service_type=request.service_type,
            breeds=request.breeds,
            distance_miles=request.distance_miles,
            result_type=request.result_type,
        )
        results = sort_results(build_results(candidates, filters, resolved.origin), request.sort_order)
        response = SearchResponse(
            results=results,
            total=len(results),
            origin=resolved.origin,
            messages=messages,
        )
        self._log_telemetry(request, context, response, started)
        return response

    def _log_telemetry(
        self,
        request: SearchRequest,
        context: SearchContext,
        response: SearchResponse,
        started: float,
    ) -> None:
        if not context.telemetry:
            return
        payload = {
            "viewer": context.viewer_id or "anonymous",
            "result_type": request.result_type,
            "service_type": request.service_type,
            "breeds": len(request.breeds),
            "sort_order": request.sort_order,
            "origin_source": response.origin.source if response.origin else None,
            "distance_miles": request.distance_miles,
            "results": response.total,
            "failed": response.error is not None,
            "advisories": len(response.messages),
            "elapsed_ms": int((time.perf_counter() - started) * 1000),
        }
        logger.info("search_telemetry=%s", json.dumps(payload, sort_keys=True))


class SearchSession:
    """Last-request-wins wrapper around one pipeline.

    Every submit takes a new generation number. A run that finishes after a
    newer submit is returned flagged stale and never becomes `latest`.
    """

    def __init__(self, pipeline: SearchPipeline) -> None:
        self.pipeline = pipeline
        self._generation = 0
        self.latest: Optional[SearchResponse] = None

    @property
    def generation(self) -> int:
        return self._generation

    async def submit(self, request: SearchRequest, context: Optional[SearchContext] = None) -> SearchResponse:
        self._generation += 1
        generation = self._generation
        response = await self.pipeline.run(request, context)
        response = response.model_copy(update={"generation": generation})
        if generation != self._generation:
            logger.debug("Discarding stale search generation %d (current %d)", generation, self._generation)
            return response.model_copy(update={"stale": True})
        self.latest = response
        return response
