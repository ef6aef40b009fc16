"""
Tron events cache.

Write-through cache of blockchain log events backed by Redis, with a
durable events log in a relational database.
"""

__version__ = "0.1.0"
