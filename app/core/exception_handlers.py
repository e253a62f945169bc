"""
Manejadores de excepciones centralizados para la aplicación FastAPI.

Este módulo define los manejadores de excepciones personalizados y globales,
proporcionando respuestas consistentes y logging apropiado para cada tipo de error.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.utils.error_handler import (
    AppException,
    DatabaseException,
    JtlAPIException,
    SyncException,
    ValidationException,
    create_error_response,
)

settings = get_settings()
logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _base_content(request: Request, exc: AppException, error_type: str) -> Dict[str, Any]:
    return {
        "error": True,
        "error_type": error_type,
        "error_code": exc.error_code.value,
        "message": exc.message,
        "path": str(request.url.path),
        "timestamp": _timestamp(),
        "request_id": request.headers.get("X-Request-ID"),
    }


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Manejador para excepciones personalizadas de la aplicación.

    Args:
        request: Request de FastAPI
        exc: Excepción personalizada de la app

    Returns:
        JSONResponse: Respuesta JSON con error formateado
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"App Exception: {exc.message} - Code: {exc.error_code.value} - URL: {request.url}")

    content = _base_content(request, exc, "application_error")
    # Siempre se exponen los detalles de 4xx: shop_id, campo inválido, etc.
    content["details"] = exc.details if (settings.DEBUG or exc.status_code < 500) else None
    return JSONResponse(status_code=exc.status_code, content=content)


async def validation_exception_handler(request: Request, exc: ValidationException) -> JSONResponse:
    """
    Manejador para errores de validación de datos.
    """
    logger.warning(f"Validation Exception: {exc.message} - Field: {exc.field} - URL: {request.url}")

    content = _base_content(request, exc, "validation_error")
    content.update(
        {
            "field": exc.field,
            "invalid_value": exc.details.get("invalid_value"),
            "expected_format": exc.expected_format,
        }
    )
    return JSONResponse(status_code=422, content=content)


async def sync_exception_handler(request: Request, exc: SyncException) -> JSONResponse:
    """
    Manejador específico para errores de sincronización.
    """
    logger.error(
        f"Sync Exception: {exc.message} - "
        f"Service: {exc.service} - "
        f"Operation: {exc.operation} - "
        f"URL: {request.url}"
    )

    content = _base_content(request, exc, "synchronization_error")
    content.update(
        {
            "service": exc.service,
            "operation": exc.operation,
            "shop_id": exc.shop_id,
            "order_number": exc.order_number,
            "retry_suggested": exc.details.get("retry_suggested"),
        }
    )
    return JSONResponse(status_code=exc.status_code, content=content)


async def jtl_api_exception_handler(request: Request, exc: JtlAPIException) -> JSONResponse:
    """
    Manejador específico para errores de la API de JTL-Wawi.
    """
    logger.error(
        f"JTL API Exception: {exc.message} - "
        f"API Code: {exc.api_response_code} - "
        f"Endpoint: {exc.endpoint} - "
        f"URL: {request.url}"
    )

    content = _base_content(request, exc, "jtl_api_error")
    content.update(
        {
            "api_response_code": exc.api_response_code,
            "endpoint": exc.endpoint,
            "transport_error": exc.transport_error,
            "decode_error": exc.decode_error,
        }
    )
    return JSONResponse(status_code=exc.status_code, content=content)


async def database_exception_handler(request: Request, exc: DatabaseException) -> JSONResponse:
    """
    Manejador para errores de la base de datos VirtueMart.
    """
    logger.error(
        f"Database Exception: {exc.message} - "
        f"Host: {exc.db_host} - "
        f"Operation: {exc.operation} - "
        f"URL: {request.url}"
    )

    content = _base_content(request, exc, "database_error")
    content.update({"operation": exc.operation, "connection_failed": exc.connection_failed})
    return JSONResponse(status_code=exc.status_code, content=content)


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Manejador para cuerpos y parámetros inválidos.
    """
    logger.warning(f"Request Validation Error: {exc.errors()} - URL: {request.url}")

    return JSONResponse(
        status_code=422,
        content={
            "error": True,
            "error_type": "validation_error",
            "error_code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "errors": jsonable_errors(exc),
            "path": str(request.url.path),
            "timestamp": _timestamp(),
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Manejador para excepciones HTTP estándar.
    """
    logger.warning(f"HTTP Exception: {exc.status_code} - {exc.detail} - URL: {request.url}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "error_type": "http_error",
            "status_code": exc.status_code,
            "message": exc.detail,
            "path": str(request.url.path),
            "timestamp": _timestamp(),
        },
        headers=getattr(exc, "headers", None),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Manejador global para excepciones no capturadas.

    Args:
        request: Request de FastAPI
        exc: Excepción no manejada

    Returns:
        JSONResponse: Respuesta JSON de error interno
    """
    logger.error(
        f"Unhandled Exception: {str(exc)} - "
        f"Type: {type(exc).__name__} - "
        f"URL: {request.url} - "
        f"Traceback: {traceback.format_exc()}"
    )

    content = {
        "error": True,
        "error_type": "internal_server_error",
        "message": "Internal server error occurred",
        "path": str(request.url.path),
        "timestamp": _timestamp(),
        "request_id": request.headers.get("X-Request-ID"),
    }
    # En desarrollo se exponen código y detalle de la excepción
    if settings.DEBUG:
        content.update(create_error_response(exc))

    return JSONResponse(status_code=500, content=content)


def jsonable_errors(exc: RequestValidationError) -> list:
    """Errores de validación sin objetos no serializables (p. ej. ValueError en ``ctx``)."""
    errors = []
    for error in exc.errors():
        cleaned = {key: value for key, value in error.items() if key != "ctx"}
        if "ctx" in error:
            cleaned["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(cleaned)
    return errors


def configure_exception_handlers(app: FastAPI) -> None:
    """
    Configura todos los manejadores de excepciones de la aplicación.

    Args:
        app: Instancia de FastAPI
    """
    logger.info("🔧 Configurando manejadores de excepciones...")

    # Manejadores específicos (orden de especificidad)
    app.add_exception_handler(ValidationException, validation_exception_handler)
    app.add_exception_handler(SyncException, sync_exception_handler)
    app.add_exception_handler(JtlAPIException, jtl_api_exception_handler)
    app.add_exception_handler(DatabaseException, database_exception_handler)
    app.add_exception_handler(AppException, app_exception_handler)

    # Manejadores HTTP estándar
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # Manejador global (debe ser el último)
    app.add_exception_handler(Exception, global_exception_handler)

    logger.info("✅ Manejadores de excepciones configurados correctamente")
