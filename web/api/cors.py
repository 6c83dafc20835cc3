"""CORS policy for the public (widget-facing) endpoints."""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request


@dataclass(frozen=True)
class CorsPolicy:
    """Wide-open CORS so the widget can run on any site. Admin routes never get these headers."""

    allow_origin: str = "*"
    allow_methods: str = "GET, POST, OPTIONS"
    allow_headers: str = "Content-Type"
    max_age: int = 86400

    def public_headers(self) -> dict[str, str]:
        return {"Access-Control-Allow-Origin": self.allow_origin}

    def preflight_headers(self) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.allow_origin,
            "Access-Control-Allow-Methods": self.allow_methods,
            "Access-Control-Allow-Headers": self.allow_headers,
            "Access-Control-Max-Age": str(self.max_age),
        }


def get_cors(request: Request) -> CorsPolicy:
    """Dependency: the policy instance created at startup."""
    return request.app.state.cors
