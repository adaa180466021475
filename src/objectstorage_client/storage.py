from objectstorage_client.client import StorageClient
from objectstorage_client.errors import InternalError
from objectstorage_client.interfaces import IObjectStorage
from objectstorage_client.metadata import ObjectResponse
from objectstorage_client.metadata import query_params
from objectstorage_client.metadata import write_headers
from objectstorage_client.pipeline import TransformPipeline
from objectstorage_client.streams import json_stream_factory
from objectstorage_client.streams import open_stream
from objectstorage_client.streams import read_all
from zope.interface import implementer

import enum
import json
import logging


logger = logging.getLogger(__name__)


class ResponseType(str, enum.Enum):
    STREAM = "stream"
    JSON = "json"
    BYTES = "bytes"


async def _iter_response(response):
    try:
        async for chunk in response.aiter_bytes():
            yield chunk
    finally:
        await response.aclose()


def _parse_json(raw):
    try:
        return json.loads(raw)
    except ValueError as e:
        raise InternalError(f"Could not parse object as JSON: {e}", cause=e) from e


async def _read_json(response):
    try:
        raw = await response.aread()
    finally:
        await response.aclose()
    if not raw:
        return None
    return _parse_json(raw)


@implementer(IObjectStorage)
class ObjectStorage:
    """Object-level access to the storage service.

    Writes run the caller's body through the forward transforms registered
    with ``use()``; reads run the response body through the reverse
    transforms. Register all transforms before issuing requests.
    """

    def __init__(
        self, uri=None, jwt_secret=None, client=None, retry_policy=None, transport=None
    ):
        if client is None:
            client = StorageClient(
                uri, jwt_secret=jwt_secret, retry_policy=retry_policy, transport=transport
            )
        self._client = client
        self._pipeline = TransformPipeline()

    def __repr__(self):
        return f"<ObjectStorage {self._client.uri} transforms={len(self._pipeline)}>"

    @property
    def client(self):
        return self._client

    def use(self, forward, reverse):
        self._pipeline.register(forward, reverse)
        return self

    async def aclose(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    def _forward_body(self, body_factory, pipeline):
        async def factory():
            return pipeline.apply_forward(await open_stream(body_factory))

        return factory

    # -- Reads --

    async def get(
        self, object_id, credential=None, response_type=ResponseType.STREAM, retry_policy=None
    ):
        response_type = ResponseType(response_type)
        pipeline = self._pipeline.snapshot()
        response = await self._client.get(
            object_id, credential=credential, retry_policy=retry_policy
        )
        stream = pipeline.apply_reverse(_iter_response(response))
        if response_type is ResponseType.STREAM:
            return ObjectResponse(stream, response.headers, close=response.aclose)
        try:
            raw = await read_all(stream)
        finally:
            await response.aclose()
        data = _parse_json(raw) if response_type is ResponseType.JSON else raw
        return ObjectResponse(data, response.headers)

    async def get_as_json(self, object_id, credential=None, retry_policy=None):
        result = await self.get(
            object_id,
            credential=credential,
            response_type=ResponseType.JSON,
            retry_policy=retry_policy,
        )
        return result.data

    async def get_all(self, query, credential=None, retry_policy=None):
        """List object descriptors whose query tags match ``query``."""
        response = await self._client.get_all(
            query_params(query), credential=credential, retry_policy=retry_policy
        )
        return await _read_json(response)

    # -- Writes --

    async def post(
        self,
        body_factory,
        credential=None,
        content_type=None,
        ttl=None,
        metadata=None,
        query=None,
        headers=None,
        retry_policy=None,
    ):
        body = self._forward_body(body_factory, self._pipeline.snapshot())
        response = await self._client.post(
            body,
            credential=credential,
            headers=write_headers(content_type, ttl, metadata, query, headers),
            retry_policy=retry_policy,
        )
        return await _read_json(response)

    async def put(
        self,
        object_id,
        body_factory,
        credential=None,
        content_type=None,
        ttl=None,
        metadata=None,
        query=None,
        headers=None,
        retry_policy=None,
    ):
        body = self._forward_body(body_factory, self._pipeline.snapshot())
        response = await self._client.put(
            object_id,
            body,
            credential=credential,
            headers=write_headers(content_type, ttl, metadata, query, headers),
            retry_policy=retry_policy,
        )
        return await _read_json(response)

    async def add_as_json(self, data, credential=None, **options):
        """Store ``data`` serialized as JSON and return the new object id."""
        options.setdefault("content_type", "application/json")
        result = await self.post(json_stream_factory(data), credential=credential, **options)
        object_id = (result or {}).get("objectId")
        logger.debug("Created object %s", object_id)
        return object_id

    async def update_as_json(self, object_id, data, credential=None, **options):
        options.setdefault("content_type", "application/json")
        return await self.put(
            object_id, json_stream_factory(data), credential=credential, **options
        )

    # -- Deletes --

    async def delete(self, object_id, credential=None, retry_policy=None):
        response = await self._client.delete(
            object_id, credential=credential, retry_policy=retry_policy
        )
        await response.aclose()

    async def delete_many(self, query, credential=None, retry_policy=None):
        response = await self._client.delete_many(
            query_params(query), credential=credential, retry_policy=retry_policy
        )
        await response.aclose()
