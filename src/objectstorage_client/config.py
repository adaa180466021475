from objectstorage_client.retry import RetryPolicy

import os


ENV_MAX_RETRY = "REQUEST_MAX_RETRY"
ENV_RETRY_DELAY = "REQUEST_RETRY_DELAY"
ENV_TIMEOUT = "REQUEST_TIMEOUT"


def retry_policy_from_env(environ=None):
    """Build a RetryPolicy from REQUEST_* environment variables."""
    environ = os.environ if environ is None else environ
    return RetryPolicy(
        retries_count=environ.get(ENV_MAX_RETRY),
        retry_delay=environ.get(ENV_RETRY_DELAY),
        request_timeout=environ.get(ENV_TIMEOUT),
    )


def _first(value, fallback):
    return fallback if value is None else value


class ObjectStorageFactory:
    """ZConfig factory for ObjectStorage.

    Retry keys missing from the section fall back to the environment.
    """

    def __init__(self, config):
        self.config = config
        self.name = config.getSectionName()

    def retry_policy(self, environ=None):
        config = self.config
        env_policy = retry_policy_from_env(environ)
        return RetryPolicy(
            retries_count=_first(config.request_max_retry, env_policy.retries_count),
            retry_delay=_first(config.request_retry_delay, env_policy.retry_delay),
            request_timeout=_first(config.request_timeout, env_policy.request_timeout),
        )

    def open(self):
        from objectstorage_client.storage import ObjectStorage

        config = self.config
        return ObjectStorage(
            uri=config.uri,
            jwt_secret=config.jwt_secret,
            retry_policy=self.retry_policy(),
        )
