"""
Shared utilities for the Zant queue gateway.

This package aggregates common building blocks consumed by the services:

- config: Gateway configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI service shell (health, metrics, error handlers)

Do not import from service packages into shared/.
"""
