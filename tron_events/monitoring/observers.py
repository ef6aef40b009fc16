"""
Write observers for the event cache.

The record store reports every record it writes to an observer. The
default observer does nothing; the others count bytes for bulk runs or
export Prometheus counters.
"""
from prometheus_client import Counter

CACHE_WRITES = Counter(
    'tron_events_cache_writes_total',
    'Total number of event records written to the cache'
)
CACHE_WRITTEN_BYTES = Counter(
    'tron_events_cache_written_bytes_total',
    'Total serialized size of event records written to the cache'
)


class WriteObserver:
    """Receives one call per record written to the cache."""

    def on_write(self, key: str, size: int) -> None:
        raise NotImplementedError


class NullWriteObserver(WriteObserver):

    def on_write(self, key: str, size: int) -> None:
        pass


class ByteCountingWriteObserver(WriteObserver):
    """Totals the serialized size of records written."""

    def __init__(self):
        self.writes = 0
        self.total_bytes = 0

    def on_write(self, key: str, size: int) -> None:
        self.writes += 1
        self.total_bytes += size

    def reset(self) -> None:
        self.writes = 0
        self.total_bytes = 0


class PrometheusWriteObserver(WriteObserver):
    """Exports cache writes as Prometheus counters shared by the process."""

    def on_write(self, key: str, size: int) -> None:
        CACHE_WRITES.inc()
        CACHE_WRITTEN_BYTES.inc(size)
