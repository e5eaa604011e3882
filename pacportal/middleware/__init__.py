"""Middleware modules for production-ready features"""
from pacportal.middleware.monitoring import (
    MonitoringMiddleware,
    record_access_check,
    record_admin_verification,
    record_auth_failure
)
from pacportal.middleware.rate_limit import limiter, get_rate_limit

__all__ = [
    "MonitoringMiddleware",
    "record_access_check",
    "record_admin_verification",
    "record_auth_failure",
    "limiter",
    "get_rate_limit"
]
