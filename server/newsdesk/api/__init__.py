"""
REST API

FastAPI application factory and service container.
"""
from newsdesk.api.app import ServiceContainer, create_app

__all__ = ["ServiceContainer", "create_app"]
