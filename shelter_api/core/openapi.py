"""OpenAPI metadata and customization utilities.

Enriches the generated schema with tag descriptions and the API key
security scheme. Only mutating endpoints require the key, so the
requirement is attached per operation instead of globally.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_MUTATING_METHODS = {"post", "put", "patch", "delete"}

_TAGS = [
    {"name": "Shelters", "description": "Shelters, their photos and ratings."},
    {"name": "Animals", "description": "Adoptable animals and animal search."},
    {"name": "Users", "description": "Adopter and shelter admin accounts."},
    {"name": "Applications", "description": "Adoption applications."},
    {"name": "Votes", "description": "Shelter votes and the derived rating."},
    {"name": "Auth", "description": "Session identity, under the stricter auth rate limit."},
    {"name": "Health", "description": "Liveness and cache availability."},
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and security.

    - Injects components.securitySchemes for API Key auth (header ``X-API-Key``)
    - Marks mutating ``/api`` operations as requiring the key
    - Adds tags metadata if not present
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Provide your API key via the X-API-Key header.",
            },
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in _TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if not path.startswith("/api"):
                continue
            for method, method_obj in methods.items():
                if method in _MUTATING_METHODS and isinstance(method_obj, dict):
                    method_obj.setdefault("security", [{"ApiKeyAuth": []}])

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
