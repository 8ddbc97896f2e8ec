from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field


def set_custom_openapi(app: FastAPI) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="LorryBook Numbering API",
            version="0.1.0",
            summary="Sequential numbering for invoices and lorry receipts",
            routes=app.routes,
        )

        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "description": "Token returned by /auth/login",
            },
        }
        openapi_schema["security"] = [{"BearerAuth": []}]

        public_endpoints = {("POST", "/api/v1/auth/login"), ("GET", "/health")}
        for path, path_item in openapi_schema["paths"].items():
            for method, operation in path_item.items():
                if (method.upper(), path) in public_endpoints:
                    operation["security"] = []

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "Invalid username or password", "type": "authentication_error"},
                {"message": "Numbering configuration for 'invoice' not found", "type": "not_found"},
                {"message": "Admin privileges required to change numbering settings", "type": "access_denied"},
            ]
        }
    }
