"""Error kinds raised by the search pipeline and the offline cache layer"""

from __future__ import annotations
from typing import Any, Dict, Optional

from .schemas import ErrorReport

SEARCH_ERROR_TITLE = 'Error al buscar palabras'
SEARCH_ERROR_DETAIL = 'Si el problema persiste, contacta con el administrador.'
GENERIC_ERROR_MESSAGE = 'Se produjo un error inesperado. Inténtalo de nuevo.'


class BpWordzeeError(Exception):
    """Base exception for all word finder errors"""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ConfigError(BpWordzeeError):
    """Configuration file could not be read or parsed"""


class InvalidInput(BpWordzeeError):
    """Caller-supplied letters, bonus table or round violate the input contract"""

    status_code = 422

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(message, {'field': field, 'value': value})
        self.field = field
        self.value = value


class SourceUnavailable(BpWordzeeError):
    """The word source could not be reached at the transport level"""

    status_code = 503

    def __init__(self, message: str = 'No se pudo conectar con el servidor de palabras.',
                 url: Optional[str] = None):
        super().__init__(message, {'url': url} if url else None)
        self.url = url


class MalformedResponse(BpWordzeeError):
    """The word source answered with something that is not the expected envelope"""

    status_code = 502

    def __init__(self, message: str = 'El servidor no respondió correctamente. Inténtalo de nuevo.'):
        super().__init__(message)


class SourceRejected(BpWordzeeError):
    """The word source answered ``success: false``"""

    status_code = 200
    default_reason = 'No se pudo obtener las palabras del servidor'

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


class AssetNotFound(BpWordzeeError):
    """Requested asset is not part of the host application's origin"""

    status_code = 404

    def __init__(self, path: str):
        super().__init__('Recurso no encontrado', {'path': path})
        self.path = path


class PrecacheError(BpWordzeeError):
    """A same-origin asset could not be stored while installing a cache version"""

    def __init__(self, url: str, message: str):
        super().__init__(message, {'url': url})
        self.url = url


def describe_error(exc: BaseException) -> ErrorReport:
    """Collapse any search failure into the single message shown to the user.

    Our own errors carry a message meant for people (the word source's
    ``mensaje`` included); anything else gets a generic text so that parser
    or transport internals never reach the screen.
    """
    if isinstance(exc, BpWordzeeError):
        message = exc.message
    else:
        message = GENERIC_ERROR_MESSAGE
    return ErrorReport(titulo=SEARCH_ERROR_TITLE, mensaje=message, detalle=SEARCH_ERROR_DETAIL)


def error_payload(exc: BaseException) -> dict:
    return {'success': False, 'error': describe_error(exc).model_dump()}
