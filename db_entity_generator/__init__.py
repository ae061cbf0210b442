"""Generate SQLAlchemy entity modules and a data-context container from a PostgreSQL schema."""

__version__ = "0.1.0"
