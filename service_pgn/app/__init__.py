"""
PGN Gateway Service package.

The gateway fronts requests for chess game files (PGN) stored in the
asset service:
- Lookup: cache-first, falling back to the asset search API
- Resilience: stale cache served when the asset store is unavailable
- Warm-up: fire-and-forget prefetch of a few levels at a time

Structure:
- app.main: FastAPI app, routes, and lifespan wiring.
- app.adapters: HTTP client for the asset search API.
- app.catalog: Classification and the retrieval orchestrator.
- app.caching: Category cache and background prefetcher.
"""
