from setuptools import setup, find_packages

setup(
    name="tron-events",
    version="0.1.0",
    description="Write-through Redis cache of Tron log events with a durable events log",
    packages=find_packages(include=["tron_events", "tron_events.*"]),
    install_requires=[
        "pydantic>=2",
        "pydantic-settings",
        "structlog",
        "redis>=5.0.1",
        "psycopg2-binary",
        "sqlalchemy>=2",
        "alembic",
        "prometheus-client",
        "click"
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "fakeredis>=2.20"
        ]
    },
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "tron-events=tron_events.cli:cli",
        ],
    }
)
