from objectstorage_client.errors import ClientTransportError  # noqa: F401
from objectstorage_client.errors import CredentialsError  # noqa: F401
from objectstorage_client.errors import CredentialsMissing  # noqa: F401
from objectstorage_client.errors import ErrorKind  # noqa: F401
from objectstorage_client.errors import InternalError  # noqa: F401
from objectstorage_client.errors import ObjectStorageClientError  # noqa: F401
from objectstorage_client.errors import ServerTransportError  # noqa: F401
from objectstorage_client.retry import linear_backoff  # noqa: F401
from objectstorage_client.retry import RetryPolicy  # noqa: F401
from objectstorage_client.storage import ObjectStorage  # noqa: F401
from objectstorage_client.storage import ResponseType  # noqa: F401
