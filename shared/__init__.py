"""
Shared utilities for the dashboard metrics backend.

This package aggregates common building blocks consumed by the services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorator for flaky downstream calls
- base_service: FastAPI application skeleton

Do not import from service_* packages into shared/.
"""
