"""
Error taxonomy for the content store.

Every failure the storage layers can report derives from ContentError so
the HTTP boundary can map them with a single set of exception handlers.
"""


class ContentError(Exception):
    """Base class for content store failures"""


class InvalidInputError(ContentError):
    """Malformed or empty request data"""


class NotFoundError(ContentError):
    """Identifier absent, malformed, or its blob is missing"""


class ExpiredError(NotFoundError):
    """Record exists but its expiry has passed"""


class DuplicateKeyError(ContentError):
    """Identifier already taken in the metadata table or the blob root"""


class ExhaustedRetriesError(ContentError):
    """Could not find a free identifier within the attempt bound"""


class StorageError(ContentError):
    """Underlying database or filesystem failure"""
