"""
API Pub/Sub Logger - HTTP observability interception pipeline

A FastAPI service that captures request and response bodies, redacts
sensitive fields, and publishes a structured event per request to
Google Pub/Sub without delaying the client response.
"""

__version__ = "1.0.0"

from .main import app, create_app

__all__ = ["app", "create_app"]
