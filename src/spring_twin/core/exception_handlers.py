"""
Exception handlers module
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from spring_twin.errors import SpringTwinError


def setup_exception_handlers(app: FastAPI, *, debug: bool = False) -> None:
    """set up exception handlers"""

    @app.exception_handler(SpringTwinError)
    async def domain_exception_handler(request: Request, exc: SpringTwinError):
        if exc.http_status >= 500:
            logger.error(f"{exc.kind} on {request.url.path}: {exc.message}")
        else:
            logger.info(f"{exc.kind} on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={
                "error": "INVALID_ARGUMENTS",
                "kind": "ValidationError",
                "message": "Request validation failed",
                "details": {
                    "errors": [
                        {"loc": [str(part) for part in err["loc"]], "msg": err["msg"], "type": err["type"]}
                        for err in exc.errors()
                    ]
                },
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.warning(f"HTTP exception: {exc.status_code} - {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "HTTP_ERROR", "message": exc.detail},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "INTERNAL_ERROR",
                "message": str(exc) if debug else "An unexpected error occurred",
            },
        )
