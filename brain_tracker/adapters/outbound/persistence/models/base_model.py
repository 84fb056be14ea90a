# brain_tracker/adapters/outbound/persistence/models/base_model.py

from sqlalchemy.orm import declarative_base

# Parent class of every ORM model; Alembic reads its metadata
Base = declarative_base()
