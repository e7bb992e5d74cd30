"""
REST API Interface

FastAPI application exposing the execution gateway over HTTP.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from polyexec import __version__
from polyexec.application.dto import ExecuteRequestDTO, ExecuteResponseDTO, HealthResponseDTO
from polyexec.domain.value_objects import ErrorKind
from polyexec.infrastructure.config import Settings, get_settings
from polyexec.infrastructure.dependencies import GatewayContainer, build_gateway
from polyexec.infrastructure.logging import configure_logging, get_logger

logger = get_logger(__name__)

_STATUS_BY_ERROR_KIND = {
    ErrorKind.NONE: status.HTTP_200_OK,
    ErrorKind.EXECUTION: status.HTTP_200_OK,
    ErrorKind.REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INFRASTRUCTURE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.CANCELLED: status.HTTP_408_REQUEST_TIMEOUT,
}


class ErrorResponse(BaseModel):
    """Error response model."""

    error_code: str
    description: str
    error_detail: Optional[str] = None
    solution: Optional[str] = None


def get_container(request: Request) -> GatewayContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Execution gateway not initialized",
        )
    return container


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[GatewayContainer] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to build the gateway from; read from the
            environment at startup when None
        container: Pre-built gateway container, e.g. wired to fakes in tests

    Returns:
        Configured FastAPI application instance
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        resolved = settings or (container.settings if container else get_settings())
        configure_logging(resolved.log_level, resolved.log_format)
        gateway_container = container or build_gateway(resolved)

        logger.info(
            "polyexec starting",
            version=__version__,
            mode=resolved.execution_mode.value,
        )
        await gateway_container.start()
        app.state.container = gateway_container
        app.state.started_at = time.monotonic()

        yield

        logger.info("polyexec shutting down")
        app.state.container = None
        await gateway_container.close()
        logger.info("polyexec shutdown complete")

    app = FastAPI(
        title="polyexec",
        description="Execute code snippets in persistent interpreter sessions or disposable containers",
        version=__version__,
        lifespan=lifespan,
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning("Request validation failed", errors=str(exc.errors()), path=request.url.path)
        error_response = ErrorResponse(
            error_code="Polyexec.ValidationError",
            description="Request validation failed",
            error_detail=str(exc.errors()),
            solution="Check request format and required fields",
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_response.model_dump(),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unexpected error",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        error_response = ErrorResponse(
            error_code="Polyexec.InternalError",
            description="Unexpected error while handling the request",
            error_detail=str(exc),
            solution="Check server logs for details",
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response.model_dump(),
        )

    @app.get(
        "/v1/health",
        response_model=HealthResponseDTO,
        summary="Health check",
        tags=["health"],
    )
    async def health_check(request: Request) -> HealthResponseDTO:
        gateway_container = get_container(request)
        gateway = gateway_container.gateway
        return HealthResponseDTO(
            status="healthy",
            version=__version__,
            mode=gateway.default_mode.value,
            languages=gateway.supported_languages(),
            uptime_seconds=time.monotonic() - request.app.state.started_at,
        )

    @app.post(
        "/v1/execute",
        response_model=ExecuteResponseDTO,
        responses={
            200: {"description": "Execution finished; see succeeded"},
            400: {"model": ExecuteResponseDTO, "description": "Invalid request or unsupported language"},
            408: {"model": ExecuteResponseDTO, "description": "Execution timed out"},
            503: {"model": ExecuteResponseDTO, "description": "Execution infrastructure unavailable"},
        },
        summary="Execute code",
        tags=["execution"],
    )
    async def execute_endpoint(body: ExecuteRequestDTO, request: Request):
        """
        Execute code and return its transcript.

        Code that fails still answers 200 with ``succeeded=false`` and
        ``error_kind=execution``; the other error kinds map to 400, 408
        and 503.
        """
        gateway = get_container(request).gateway
        logger.info(
            "Execution request received",
            language=body.language,
            timeout=body.timeout,
            code_length=len(body.code),
        )

        result = await gateway.execute_code(
            body.language,
            body.code,
            timeout_seconds=body.timeout,
        )
        response = ExecuteResponseDTO.from_domain(result)
        return JSONResponse(
            status_code=_STATUS_BY_ERROR_KIND[result.error_kind],
            content=response.model_dump(),
        )

    return app


app = create_app()


def main():
    """Run the HTTP server with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "polyexec.interfaces.http.rest:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )


if __name__ == "__main__":
    main()
