from zope.interface import Attribute
from zope.interface import Interface


class ICredentialProvider(Interface):
    """Produces Authorization headers for storage requests."""

    def resolve_auth_header(credential=None):
        """Return "Bearer <token>" for a claims mapping or a pre-signed token."""

    def build_headers(credential=None, overrides=None):
        """Return request headers with the derived Authorization header."""


class ITransform(Interface):
    """One stateful byte-transform stage (compression, encryption, ...)."""

    def update(data):
        """Consume a chunk and return the bytes produced so far."""

    def finalize():
        """Flush internal state and return the trailing bytes."""


class ITransformPipeline(Interface):
    """Ordered chain of invertible stream transforms."""

    def register(forward, reverse):
        """Add a (forward, reverse) pair of zero-argument stage factories."""

    def apply_forward(stream):
        """Wrap an async byte iterator with all forward stages."""

    def apply_reverse(stream):
        """Wrap an async byte iterator with all reverse stages."""


class IRequestExecutor(Interface):
    """Runs single-request attempts under a retry policy."""

    policy = Attribute("Default RetryPolicy")

    def execute(attempt, policy=None):
        """Call attempt(index) until success or exhaustion; return the response."""


class IStorageClient(Interface):
    """HTTP calls against the object storage REST endpoints."""

    def get(object_id, credential=None, params=None, retry_policy=None):
        """GET /objects/{id} as an open streaming response."""

    def get_all(params, credential=None, retry_policy=None):
        """GET /objects filtered by query parameters."""

    def post(body_factory, credential=None, headers=None, retry_policy=None):
        """POST /objects with a body regenerated on every attempt."""

    def put(object_id, body_factory, credential=None, headers=None, retry_policy=None):
        """PUT /objects/{id} with a body regenerated on every attempt."""

    def delete(object_id, credential=None, retry_policy=None):
        """DELETE /objects/{id}."""

    def delete_many(params, credential=None, retry_policy=None):
        """DELETE /objects filtered by query parameters."""


class IObjectStorage(Interface):
    """Object-level read/write/delete with transform pipelines."""

    def use(forward, reverse):
        """Register a transform pair; returns the storage for chaining."""

    def get(object_id, credential=None, response_type="stream"):
        """Fetch an object, reversing the transform pipeline."""

    def post(body_factory, credential=None, **options):
        """Create an object from a fresh body stream per attempt."""

    def put(object_id, body_factory, credential=None, **options):
        """Replace an object from a fresh body stream per attempt."""

    def delete(object_id, credential=None):
        """Delete one object."""

    def delete_many(query, credential=None):
        """Delete all objects matching query tags."""
