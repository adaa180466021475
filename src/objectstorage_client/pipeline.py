from objectstorage_client.interfaces import ITransformPipeline
from zope.interface import implementer

import logging


logger = logging.getLogger(__name__)


async def _pipe(source, stage):
    async for chunk in source:
        out = stage.update(chunk)
        if out:
            yield out
    tail = stage.finalize()
    if tail:
        yield tail


@implementer(ITransformPipeline)
class TransformPipeline:
    """Ordered chain of (forward, reverse) stream transforms.

    Forward stages run in registration order on write. Reverse stages are
    prepended on registration, so reading walks them in the opposite order
    and undoes the forward chain. Registration is a setup-time operation:
    the stage lists are snapshotted when a stream is wrapped, and must not
    be changed while requests are in flight.

    Both members of a pair are zero-argument factories, called once per
    wrapped stream so that stateful stages are never shared between
    requests or retry attempts.
    """

    def __init__(self):
        self._forwards = []
        self._reverses = []

    def __len__(self):
        return len(self._forwards)

    def register(self, forward, reverse):
        if not callable(forward) or not callable(reverse):
            raise TypeError("Transforms must be registered as zero-argument factories")
        self._forwards.append(forward)
        self._reverses.insert(0, reverse)
        logger.debug("Registered transform pair #%d", len(self._forwards))
        return self

    def snapshot(self):
        """Return an independent copy of the current registrations."""
        frozen = TransformPipeline()
        frozen._forwards = list(self._forwards)
        frozen._reverses = list(self._reverses)
        return frozen

    def apply_forward(self, stream):
        return self._apply(stream, tuple(self._forwards))

    def apply_reverse(self, stream):
        return self._apply(stream, tuple(self._reverses))

    @staticmethod
    def _apply(stream, factories):
        for factory in factories:
            stream = _pipe(stream, factory())
        return stream
