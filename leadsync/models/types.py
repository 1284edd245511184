"""
Column types shared by the models.
JSON columns are JSONB on PostgreSQL and plain JSON elsewhere (tests run on SQLite).
"""
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

JSONVariant = JSON().with_variant(JSONB(), "postgresql")
