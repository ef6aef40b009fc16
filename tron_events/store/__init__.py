from .database import EventLogWriter
from .models import Base, EventLog
from .service import EventStore

__all__ = ['Base', 'EventLog', 'EventLogWriter', 'EventStore']
