"""FastAPI service accepting URL metrics submitted by the detection script."""

from __future__ import annotations

import logging
import os
import time
from typing import Any

from dotenv import load_dotenv
from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from url_metrics.errors import DataValidationError
from url_metrics.extensions import ExtensionRegistry
from url_metrics.model import URLMetric
from url_metrics.schema import writable_schema
from url_metrics.validation import validate_value

load_dotenv()

logger = logging.getLogger(__name__)


def _configure_cors(app: FastAPI) -> None:
    raw_origins = os.getenv("API_CORS_ORIGINS", "*")
    origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )


def _registry(request: Request) -> ExtensionRegistry:
    return request.app.state.extension_registry


def create_app(registry: ExtensionRegistry | None = None) -> FastAPI:
    app = FastAPI(title="URL Metrics API", version="0.1.0")
    app.state.extension_registry = registry if registry is not None else ExtensionRegistry()
    _configure_cors(app)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/url-metrics/schema")
    def get_schema(request: Request) -> dict[str, Any]:
        return writable_schema(_registry(request))

    @app.post("/url-metrics", status_code=201)
    def store_url_metric(request: Request, payload: Any = Body(...)):
        registry = _registry(request)
        try:
            # uuid and timestamp are read-only, so clients cannot supply them.
            validate_value(payload, writable_schema(registry))
            metric = URLMetric(
                {**payload, "timestamp": time.time()},
                registry=registry,
            )
        except DataValidationError as exc:
            logger.info("Rejected URL metric: %s", exc)
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        logger.debug("Accepted URL metric %s for %s.", metric.uuid, metric.url)
        return JSONResponse(status_code=201, content=metric.to_dict())

    return app


app = create_app()
