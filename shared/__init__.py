"""
Shared utilities for the PGN Gateway.

This package aggregates common building blocks consumed by the services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI app factory with middleware, health and metrics

Do not import from service_* packages into shared/.
"""
