"""
Sistema de manejo de errores personalizado.

Este módulo define todas las excepciones personalizadas de la aplicación
y proporciona utilidades para manejo consistente de errores.
"""

import logging
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    """
    Códigos de error estandardizados para la aplicación.
    """

    # Errores generales
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    NOT_FOUND = "NOT_FOUND"

    # Errores de base de datos origen (VirtueMart)
    SOURCE_DB_CONNECTION_FAILED = "SOURCE_DB_CONNECTION_FAILED"
    SOURCE_DB_QUERY_FAILED = "SOURCE_DB_QUERY_FAILED"

    # Errores de la API de JTL-Wawi
    JTL_CONNECTION_FAILED = "JTL_CONNECTION_FAILED"
    JTL_API_ERROR = "JTL_API_ERROR"
    JTL_DECODE_ERROR = "JTL_DECODE_ERROR"

    # Errores de sincronización
    SYNC_FAILED = "SYNC_FAILED"
    SYNC_IN_PROGRESS = "SYNC_IN_PROGRESS"


class ErrorSeverity(Enum):
    """
    Niveles de severidad para errores.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AppException(Exception):
    """
    Excepción base para todas las excepciones personalizadas de la aplicación.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        is_retryable: bool = False,
        is_critical: bool = False,
    ):
        """
        Inicializa la excepción.

        Args:
            message: Mensaje de error
            error_code: Código de error estandardizado
            details: Información adicional del error
            status_code: Código HTTP asociado
            severity: Severidad del error
            is_retryable: Si la operación puede reintentarse
            is_critical: Si requiere alerta inmediata
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        self.severity = severity
        self.is_retryable = is_retryable
        self.is_critical = is_critical
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convierte la excepción a diccionario.

        Returns:
            Dict: Representación de la excepción
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "details": self.details,
            "status_code": self.status_code,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
            "is_critical": self.is_critical,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        """String representation del error."""
        return f"{self.error_code.value}: {self.message}"


class ValidationException(AppException):
    """
    Excepción para errores de validación de datos.
    """

    def __init__(
        self,
        message: str,
        field: str,
        invalid_value: Any = None,
        expected_format: Optional[str] = None,
        **kwargs,
    ):
        """
        Inicializa la excepción de validación.

        Args:
            message: Mensaje de error
            field: Campo que falló la validación
            invalid_value: Valor que causó el error
            expected_format: Formato esperado
            **kwargs: Argumentos adicionales para AppException
        """
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            status_code=422,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.field = field
        self.invalid_value = invalid_value
        self.expected_format = expected_format

        self.details.update(
            {
                "field": field,
                "invalid_value": str(invalid_value) if invalid_value is not None else None,
                "expected_format": expected_format,
            }
        )


class ConfigurationException(AppException):
    """
    Excepción para configuración ausente o inválida (tiendas, API key, archivos).
    """

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.CONFIGURATION_ERROR,
            status_code=500,
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )
        self.config_key = config_key
        self.details.update({"config_key": config_key})


class NotFoundException(AppException):
    """
    Excepción para recursos inexistentes (tienda, job programado).
    """

    def __init__(self, message: str, resource: str, identifier: Any = None, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.NOT_FOUND,
            status_code=404,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.resource = resource
        self.identifier = identifier
        self.details.update({"resource": resource, "identifier": identifier})


class DatabaseException(AppException):
    """
    Excepción para errores de la base de datos origen (VirtueMart/Joomla).
    """

    def __init__(
        self,
        message: str,
        db_host: Optional[str] = None,
        operation: str = "query",
        connection_failed: bool = False,
        **kwargs,
    ):
        """
        Inicializa la excepción de base de datos.

        Args:
            message: Mensaje de error
            db_host: Host de la base de datos
            operation: Operación que falló
            connection_failed: Si el fallo ocurrió al conectar
            **kwargs: Argumentos adicionales para AppException
        """
        super().__init__(
            message=message,
            error_code=(
                ErrorCode.SOURCE_DB_CONNECTION_FAILED if connection_failed else ErrorCode.SOURCE_DB_QUERY_FAILED
            ),
            status_code=503,
            severity=ErrorSeverity.HIGH,
            is_retryable=True,
            is_critical=connection_failed,
            **kwargs,
        )
        self.db_host = db_host
        self.operation = operation
        self.connection_failed = connection_failed

        self.details.update({"db_host": db_host, "operation": operation, "connection_failed": connection_failed})


class JtlAPIException(AppException):
    """
    Excepción para errores de la API REST de JTL-Wawi.

    Distingue tres casos: fallo de transporte (sin respuesta), respuesta
    HTTP no exitosa y respuesta exitosa que no se pudo decodificar.
    """

    def __init__(
        self,
        message: str,
        api_response_code: Optional[int] = None,
        response_body: Optional[str] = None,
        endpoint: Optional[str] = None,
        transport_error: bool = False,
        decode_error: bool = False,
        **kwargs,
    ):
        """
        Inicializa la excepción de JTL API.

        Args:
            message: Mensaje de error
            api_response_code: Código HTTP devuelto por JTL
            response_body: Cuerpo de la respuesta
            endpoint: Endpoint que falló
            transport_error: Si no hubo respuesta (timeout, conexión)
            decode_error: Si la respuesta no tenía la forma esperada
            **kwargs: Argumentos adicionales para AppException
        """
        if transport_error:
            error_code = ErrorCode.JTL_CONNECTION_FAILED
        elif decode_error:
            error_code = ErrorCode.JTL_DECODE_ERROR
        else:
            error_code = ErrorCode.JTL_API_ERROR

        severity = ErrorSeverity.MEDIUM
        if api_response_code and api_response_code >= 500:
            severity = ErrorSeverity.HIGH

        super().__init__(
            message=message,
            error_code=error_code,
            status_code=502,
            severity=severity,
            is_retryable=transport_error or bool(api_response_code and api_response_code >= 500),
            **kwargs,
        )

        self.api_response_code = api_response_code
        self.response_body = response_body
        self.endpoint = endpoint
        self.transport_error = transport_error
        self.decode_error = decode_error

        self.details.update(
            {
                "api_response_code": api_response_code,
                "endpoint": endpoint,
                "transport_error": transport_error,
                "decode_error": decode_error,
            }
        )


class SyncException(AppException):
    """
    Excepción para errores de sincronización.
    """

    def __init__(
        self,
        message: str,
        service: str,
        operation: str,
        order_number: Optional[str] = None,
        shop_id: Optional[str] = None,
        retry_suggested: bool = True,
        **kwargs,
    ):
        """
        Inicializa la excepción de sincronización.

        Args:
            message: Mensaje de error
            service: Servicio involucrado (virtuemart, jtl)
            operation: Operación que falló
            order_number: Número de pedido afectado
            shop_id: Tienda afectada
            retry_suggested: Si se sugiere reintentar
            **kwargs: Argumentos adicionales para AppException
        """
        super().__init__(
            message=message,
            error_code=ErrorCode.SYNC_FAILED,
            status_code=500,
            severity=ErrorSeverity.HIGH,
            is_retryable=retry_suggested,
            **kwargs,
        )

        self.service = service
        self.operation = operation
        self.order_number = order_number
        self.shop_id = shop_id

        self.details.update(
            {
                "service": service,
                "operation": operation,
                "order_number": order_number,
                "shop_id": shop_id,
                "retry_suggested": retry_suggested,
            }
        )


class SyncInProgressException(AppException):
    """
    Excepción cuando ya existe una sincronización en curso para la tienda.
    """

    def __init__(self, message: str, shop_id: str, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.SYNC_IN_PROGRESS,
            status_code=409,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.shop_id = shop_id
        self.details.update({"shop_id": shop_id})


# === FUNCIONES DE UTILIDAD ===


def convert_to_app_exception(exception: Exception, context: Optional[Dict[str, Any]] = None) -> AppException:
    """
    Convierte una excepción estándar a AppException.

    Args:
        exception: Excepción a convertir
        context: Contexto adicional

    Returns:
        AppException: Excepción convertida
    """
    if isinstance(exception, AppException):
        return exception

    context = context or {}
    exception_type = type(exception).__name__

    return AppException(
        message=f"{exception_type}: {exception}",
        details={"original_exception": exception_type, **context},
    )


def create_error_response(exception: Union[AppException, Exception]) -> Dict[str, Any]:
    """
    Crea respuesta de error estandardizada.

    Args:
        exception: Excepción a convertir

    Returns:
        Dict: Respuesta de error
    """
    error_dict = convert_to_app_exception(exception).to_dict()
    return {"error": True, **error_dict}


def log_error(
    exception: Exception,
    context: Optional[Dict[str, Any]] = None,
    level: int = logging.ERROR,
) -> None:
    """
    Loggea un error de manera consistente.

    Args:
        exception: Excepción a loggear
        context: Contexto adicional
        level: Nivel de logging
    """
    context = context or {}

    log_data = {
        "exception_type": type(exception).__name__,
        "exception_message": str(exception),
        "context": context,
    }

    if isinstance(exception, AppException):
        message = f"{exception.error_code.value}: {exception.message}"
        log_data.update(
            {
                "error_code": exception.error_code.value,
                "severity": exception.severity.value,
                "is_retryable": exception.is_retryable,
            }
        )
    else:
        message = f"Unhandled exception: {type(exception).__name__}: {exception}"

    logger.log(level, message, extra=log_data)
