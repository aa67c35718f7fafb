# farm_advisory/models.py
from sqlalchemy import Column, String, JSON
from .db import Base

class KVEntry(Base):
    __tablename__ = "kv_store"

    key = Column(String, primary_key=True, index=True)   # e.g. "crop:{user_id}:{crop_id}"
    value = Column(JSON, nullable=False)                  # any JSON-serializable value
