"""SQLAlchemy ORM model for cached embedding vectors."""

from sqlalchemy import Index, Integer, LargeBinary, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from chatlab_rag.infrastructure.database.base import Base


class VectorModel(Base):
    """ORM model — maps to the 'vectors' table.

    ``vector`` holds little-endian float32 values (4 bytes per component);
    ``created_at`` is epoch milliseconds.
    """

    __tablename__ = "vectors"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    vector: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    dimensions: Mapped[int] = mapped_column(Integer, nullable=False)
    metadata_json: Mapped[str | None] = mapped_column("metadata", Text, nullable=True)
    created_at: Mapped[int | None] = mapped_column(
        Integer,
        server_default=text("(CAST(strftime('%s', 'now') AS INTEGER) * 1000)"),
        nullable=True,
    )

    __table_args__ = (Index("idx_vectors_created", "created_at"),)

    def __repr__(self) -> str:
        return f"<VectorModel(id='{self.id}', dimensions={self.dimensions})>"
