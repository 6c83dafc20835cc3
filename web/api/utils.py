"""Shared API utilities."""
from __future__ import annotations

from fastapi import Request

from guestbook.services.app_config import AppConfig, resolve


async def get_app_config(request: Request) -> AppConfig:
    """Dependency: environment defaults (built at startup) merged with stored settings."""
    return await resolve(request.app.state.env_defaults)


def request_origin(request: Request) -> str:
    """scheme://host of the incoming request."""
    return f"{request.url.scheme}://{request.url.netloc}"


def public_api_base(cfg: AppConfig, request: Request) -> str:
    """Base URL the embeddable widget should call: API_URL if set, else our origin."""
    if cfg.api_url:
        return cfg.api_url.rstrip("/")
    return request_origin(request)
