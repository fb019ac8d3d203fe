from datetime import date
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Date,
    ForeignKey,
    JSON,
)
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import relationship

from hybrid_rag.sqlite.database import Base

# Tag lists: native TEXT[] on PostgreSQL (so `@>` works), JSON elsewhere.
TagArray = JSON().with_variant(postgresql.ARRAY(String), "postgresql")


class Recipe(Base):
    __tablename__ = "recipes"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    calories = Column(Integer, nullable=False)
    prep_time = Column(Integer, nullable=False)  # Minutes
    category = Column(TagArray, nullable=False, default=list)
    description = Column(Text, nullable=False)
    ingredients = Column(Text, nullable=True)


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=True, default=date.today)
    topic = Column(String, nullable=True)
    tags = Column(TagArray, nullable=False, default=list)
    content = Column(Text, nullable=False)

    chunks = relationship("DocumentChunk", back_populates="document", cascade="all, delete-orphan")


class DocumentChunk(Base):
    __tablename__ = "document_chunks"

    # The chunk id is also the primary key of the vector in the index
    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False, index=True)
    chunk_index = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)

    document = relationship("Document", back_populates="chunks")
