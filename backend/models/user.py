from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship
from database.db import Base
from models.movie import Movie
from datetime import datetime
import uuid

# Favorite movies link table; the composite primary key keeps each list a set
user_favorite_movies = Table(
    "user_favorite_movies",
    Base.metadata,
    Column("user_id", String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("movie_id", String, ForeignKey("movies.id", ondelete="CASCADE"), primary_key=True),
)

class User(Base):
    """
    User model for storing account information and favorite movies.
    """
    __tablename__ = "users"

    # Primary key
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    """Unique user ID (UUID)"""

    # User credentials
    username = Column(String(50), unique=True, nullable=False, index=True)
    """Unique username for login"""

    email = Column(String(100), nullable=False)
    """User email address"""

    hashed_password = Column(String(255), nullable=False)
    """Hashed password (using bcrypt)"""

    # User information
    birthdate = Column(Date, nullable=True)
    """User's date of birth"""

    favorite_movies = relationship(
        Movie,
        secondary=user_favorite_movies,
        lazy="selectin",
    )
    """Movies the user marked as favorite"""

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    """Account creation timestamp"""

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    """Last account update timestamp"""

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"
