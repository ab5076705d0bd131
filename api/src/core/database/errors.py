"""Exceptions raised by the Cassandra driver for unavailable storage."""

from cassandra import DriverException
from cassandra.cluster import NoHostAvailable


# Transient storage failures: surfaced to the client as 503, never retried
STORAGE_ERRORS: tuple[type[Exception], ...] = (
    DriverException,
    NoHostAvailable,
    ConnectionError,
)
