"""Exception handlers mapping relationship engine errors to HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from services.graph.errors import GraphError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register the graph error handler on the FastAPI app."""

    @app.exception_handler(GraphError)
    async def graph_error_handler(request: Request, exc: GraphError) -> JSONResponse:
        logger.info(
            "Relationship request refused",
            extra={
                "error_code": exc.code,
                "path": request.url.path,
                **{f"ctx_{key}": value for key, value in exc.context.items()},
            },
        )
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())
