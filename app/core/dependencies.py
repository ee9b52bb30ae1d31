"""
FastAPI dependencies.

Collaborator clients are built once in the lifespan (app/main.py) and stored
on `app.state`; routes receive them through these providers, which also makes
them easy to override in tests.
"""

import time

from fastapi import Request, Response

from app.core.rate_limiter import check_rate_limit, get_client_ip
from app.integrations.cloudinary_store import CloudinaryStore
from app.integrations.inference.client import InferenceClient


def get_store(request: Request) -> CloudinaryStore:
    return request.app.state.store


def get_detector(request: Request) -> InferenceClient:
    return request.app.state.detector


def enforce_rate_limit(request: Request, response: Response) -> None:
    """Per-IP request budget for the detection endpoint; reports it in RateLimit-* headers."""
    state = check_rate_limit(get_client_ip(request))
    response.headers.update(state.headers(time.time()))
