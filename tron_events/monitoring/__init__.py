from .observers import (
    WriteObserver,
    NullWriteObserver,
    ByteCountingWriteObserver,
    PrometheusWriteObserver
)

__all__ = [
    'WriteObserver',
    'NullWriteObserver',
    'ByteCountingWriteObserver',
    'PrometheusWriteObserver'
]
