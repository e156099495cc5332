from fastapi import status


class NotesAPIError(Exception):
    """Base error rendered to clients as ``{"message": ...}``"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Error interno del servidor"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationError(NotesAPIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Acceso no autorizado: Token inválido o expirado."


class BadRequestError(NotesAPIError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Datos de la petición inválidos."


class NotFoundError(NotesAPIError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Nota no encontrada."


class ServiceError(NotesAPIError):
    """A store or upstream service failed while serving the request"""
