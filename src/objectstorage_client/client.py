from objectstorage_client.auth import CredentialProvider
from objectstorage_client.interfaces import IStorageClient
from objectstorage_client.retry import RequestExecutor
from objectstorage_client.retry import RetryPolicy
from objectstorage_client.streams import open_stream
from urllib.parse import quote
from zope.interface import implementer

import httpx
import logging


logger = logging.getLogger(__name__)

_shared_transport = None


def shared_transport():
    """Process-wide keep-alive connection pool used by default."""
    global _shared_transport
    if _shared_transport is None:
        _shared_transport = httpx.AsyncHTTPTransport(
            limits=httpx.Limits(max_connections=100, max_keepalive_connections=20)
        )
    return _shared_transport


async def close_shared_transport():
    global _shared_transport
    if _shared_transport is not None:
        transport, _shared_transport = _shared_transport, None
        await transport.aclose()


@implementer(IStorageClient)
class StorageClient:
    """Retrying HTTP client for the object storage REST API.

    Every call returns an open streaming ``httpx.Response``; callers must
    consume or close it. Write calls take a zero-argument body factory which
    is invoked once per attempt.

    Without an injected ``transport`` or ``http_client`` the client uses the
    pool from ``shared_transport()``, which is bound to the event loop that
    first uses it. Call ``close_shared_transport()`` before that loop ends
    if the process will run another loop later.
    """

    def __init__(
        self,
        uri,
        jwt_secret=None,
        retry_policy=None,
        transport=None,
        http_client=None,
        sleep=None,
    ):
        if not uri:
            raise ValueError("Object storage uri is required")
        if not uri.startswith(("http://", "https://")):
            raise ValueError(f"Object storage uri must be an http(s) URL: {uri!r}")
        self.uri = uri.rstrip("/")
        self.retry_policy = retry_policy or RetryPolicy()
        self._credentials = CredentialProvider(jwt_secret)
        executor_kwargs = {"sleep": sleep} if sleep is not None else {}
        self._executor = RequestExecutor(self.retry_policy, **executor_kwargs)

        if uri.startswith("http://"):
            logger.warning(
                "Object storage TLS is disabled, data and credentials are transmitted in cleartext"
            )

        if http_client is not None:
            self._http = http_client
            self._owns_http = False
        else:
            self._owns_http = transport is not None
            self._http = httpx.AsyncClient(
                base_url=self.uri,
                transport=transport or shared_transport(),
                follow_redirects=False,
                timeout=self.retry_policy.request_timeout_seconds,
            )

    @property
    def credentials(self):
        return self._credentials

    async def aclose(self):
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    @staticmethod
    def _object_path(object_id):
        if not object_id:
            raise ValueError("Object id is required")
        return f"/objects/{quote(str(object_id), safe='')}"

    async def _request(
        self,
        method,
        url,
        credential=None,
        headers=None,
        params=None,
        body_factory=None,
        retry_policy=None,
    ):
        if body_factory is not None and not callable(body_factory):
            raise TypeError(
                "Request body must be given as a zero-argument stream factory, "
                f"got {type(body_factory).__name__}"
            )
        policy = retry_policy or self.retry_policy
        timeout = policy.request_timeout_seconds

        async def attempt(index):
            request_headers = self._credentials.build_headers(credential, headers)
            content = None
            if body_factory is not None:
                content = await open_stream(body_factory)
            request = self._http.build_request(
                method,
                url,
                headers=request_headers,
                params=params,
                content=content,
                timeout=timeout,
            )
            logger.debug("%s %s (attempt %d)", method, url, index)
            return await self._http.send(request, stream=True)

        return await self._executor.execute(attempt, policy)

    async def get(self, object_id, credential=None, params=None, retry_policy=None):
        return await self._request(
            "GET",
            self._object_path(object_id),
            credential=credential,
            params=params,
            retry_policy=retry_policy,
        )

    async def get_all(self, params, credential=None, retry_policy=None):
        return await self._request(
            "GET", "/objects", credential=credential, params=params, retry_policy=retry_policy
        )

    async def post(self, body_factory, credential=None, headers=None, retry_policy=None):
        return await self._request(
            "POST",
            "/objects",
            credential=credential,
            headers=headers,
            body_factory=body_factory,
            retry_policy=retry_policy,
        )

    async def put(
        self, object_id, body_factory, credential=None, headers=None, retry_policy=None
    ):
        return await self._request(
            "PUT",
            self._object_path(object_id),
            credential=credential,
            headers=headers,
            body_factory=body_factory,
            retry_policy=retry_policy,
        )

    async def delete(self, object_id, credential=None, retry_policy=None):
        return await self._request(
            "DELETE",
            self._object_path(object_id),
            credential=credential,
            retry_policy=retry_policy,
        )

    async def delete_many(self, params, credential=None, retry_policy=None):
        if not params:
            raise ValueError("delete_many requires at least one query parameter")
        return await self._request(
            "DELETE", "/objects", credential=credential, params=params, retry_policy=retry_policy
        )
