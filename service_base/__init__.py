"""
service-base

FastAPI backend template: structured logging, baseline security headers,
graceful shutdown and startup configuration validation.
"""
