import enum


class ErrorKind(str, enum.Enum):
    """Tag carried by every client error, so callers can branch on it."""

    CREDENTIALS = "credentials"
    CLIENT = "client"
    SERVER = "server"
    INTERNAL = "internal"


class ObjectStorageClientError(Exception):
    """Base class for all errors surfaced by the object storage client."""

    kind = ErrorKind.INTERNAL

    def __init__(self, message, cause=None):
        super().__init__(message)
        self.cause = cause


class CredentialsError(ObjectStorageClientError):
    """A bearer credential could not be produced. Never retried."""

    kind = ErrorKind.CREDENTIALS


class CredentialsMissing(CredentialsError):
    """Neither a token nor a signing secret is available for a request."""


class TransportError(ObjectStorageClientError):
    """The remote service could not complete a request."""

    def __init__(self, message, status=None, cause=None):
        super().__init__(message, cause=cause)
        self.status = status


class ClientTransportError(TransportError):
    """The service answered with a 4xx status. Never retried."""

    kind = ErrorKind.CLIENT

    def __init__(self, message, status, cause=None):
        super().__init__(message, status=status, cause=cause)


class ServerTransportError(TransportError):
    """5xx status or network failure that outlived the retry budget."""

    kind = ErrorKind.SERVER


class InternalError(ObjectStorageClientError):
    """An attempt failed in a way that is not a network condition."""

    kind = ErrorKind.INTERNAL
