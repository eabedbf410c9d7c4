from sqlalchemy import Column, String, Text, Boolean, JSON
from database.db import Base
import uuid

class Movie(Base):
    """
    Movie model for the catalog.
    Genre and director are embedded documents; the catalog is read-only through the API.
    """
    __tablename__ = "movies"

    # Primary key
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    """Unique movie ID (UUID)"""

    title = Column(String(200), nullable=False, index=True)
    """Movie title, used for lookups by title"""

    synopsis = Column(Text, nullable=False)
    """Short plot description"""

    # Embedded documents (stored as JSON)
    genre = Column(JSON, default=dict)
    """Genre: {"name": ..., "description": ...}"""

    director = Column(JSON, default=dict)
    """Director: {"name": ..., "bio": ...}"""

    actors = Column(JSON, default=list)
    """Ordered list of cast member names"""

    image_path = Column(String(500), nullable=True)
    """Poster image URL or path"""

    featured = Column(Boolean, nullable=True)
    """Whether the movie is featured"""

    def __repr__(self):
        return f"<Movie(id={self.id}, title={self.title})>"
