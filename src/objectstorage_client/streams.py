"""Body stream factories.

A request body may have to be sent several times, once per retry attempt, but
a byte stream can only be consumed once. Writes therefore take a zero-argument
factory and call it for every attempt to obtain an unconsumed stream.
"""

import asyncio
import inspect
import json


DEFAULT_CHUNK_SIZE = 64 * 1024


async def aiter_chunks(source, chunk_size=DEFAULT_CHUNK_SIZE):
    """Yield bytes chunks from bytes, str, file-like, sync or async iterables."""
    if isinstance(source, str):
        source = source.encode("utf-8")
    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
        for start in range(0, len(data), chunk_size):
            yield data[start : start + chunk_size]
        return
    if hasattr(source, "read"):
        read = source.read
        while True:
            if inspect.iscoroutinefunction(read):
                chunk = await read(chunk_size)
            else:
                # blocking file reads run off the event loop
                chunk = await asyncio.to_thread(read, chunk_size)
            if inspect.isawaitable(chunk):
                chunk = await chunk
            if not chunk:
                break
            yield chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk)
        return
    if hasattr(source, "__aiter__"):
        async for chunk in source:
            yield chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk)
        return
    for chunk in source:
        yield chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk)


async def open_stream(factory):
    """Call a body factory and return a fresh async byte iterator.

    The factory is invoked immediately, so every call to this coroutine
    accounts for exactly one materialized stream.
    """
    if not callable(factory):
        raise TypeError(
            "Request body must be given as a zero-argument stream factory, "
            f"got {type(factory).__name__}"
        )
    source = factory()
    if inspect.isawaitable(source):
        source = await source
    return aiter_chunks(source)


def bytes_stream_factory(data):
    """Return a factory producing a new stream over the same bytes each time."""
    if isinstance(data, str):
        data = data.encode("utf-8")

    def factory():
        return aiter_chunks(data)

    return factory


def json_stream_factory(data):
    """Return a factory producing a JSON serialization of data."""
    return bytes_stream_factory(json.dumps(data))


async def read_all(stream):
    """Drain an async byte iterator into a single bytes object."""
    chunks = []
    async for chunk in stream:
        chunks.append(chunk)
    return b"".join(chunks)
