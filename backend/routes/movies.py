from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel
from typing import List, Optional
from database.db import get_db
from models.movie import Movie
from utils.security import AuthenticatedUser, get_current_identity
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/movies", tags=["movies"])

# ============ Response Models ============

class GenreResponse(BaseModel):
    """Genre details embedded in a movie"""
    name: Optional[str] = None
    description: Optional[str] = None

class DirectorResponse(BaseModel):
    """Director details embedded in a movie"""
    name: Optional[str] = None
    bio: Optional[str] = None

class MovieResponse(BaseModel):
    """Movie response model"""
    id: str
    title: str
    synopsis: str
    genre: Optional[GenreResponse] = None
    director: Optional[DirectorResponse] = None
    actors: Optional[List[str]] = []
    image_path: Optional[str] = None
    featured: Optional[bool] = None

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "title": "Inception",
                "synopsis": "A thief who steals corporate secrets through dream-sharing technology.",
                "genre": {"name": "Science Fiction", "description": "Speculative stories."},
                "director": {"name": "Christopher Nolan", "bio": "British-American filmmaker."},
                "actors": ["Leonardo DiCaprio", "Joseph Gordon-Levitt"],
                "image_path": "https://example.com/inception.jpg",
                "featured": True
            }
        }

# ============ List Movies ============

@router.get("", response_model=List[MovieResponse])
async def list_movies(
    identity: AuthenticatedUser = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Return every movie in the catalog.

    Raises:
        HTTPException 401: Invalid or missing token
        HTTPException 500: Failed to load movies
    """
    try:
        result = await db.execute(select(Movie).order_by(Movie.title))
        return result.scalars().all()
    except Exception as e:
        logger.error(f"Error listing movies: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load movies"
        )

# ============ Genre Lookup ============

@router.get("/genre/{genre_name}", response_model=GenreResponse)
async def get_genre(
    genre_name: str,
    identity: AuthenticatedUser = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Return the description of a genre by name.

    Raises:
        HTTPException 404: No movie with this genre
    """
    try:
        result = await db.execute(
            select(Movie).where(Movie.genre["name"].as_string() == genre_name).limit(1)
        )
        movie = result.scalars().first()

        if not movie:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Genre not found"
            )

        return GenreResponse(**(movie.genre or {}))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching genre {genre_name}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load genre"
        )

# ============ Director Lookup ============

@router.get("/director/{director_name}", response_model=DirectorResponse)
async def get_director(
    director_name: str,
    identity: AuthenticatedUser = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Return the biography of a director by name.

    Raises:
        HTTPException 404: No movie by this director
    """
    try:
        result = await db.execute(
            select(Movie).where(Movie.director["name"].as_string() == director_name).limit(1)
        )
        movie = result.scalars().first()

        if not movie:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Director not found"
            )

        return DirectorResponse(**(movie.director or {}))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching director {director_name}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load director"
        )

# ============ Get Movie By Title ============

@router.get("/{title}", response_model=MovieResponse)
async def get_movie(
    title: str,
    identity: AuthenticatedUser = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Return a single movie by its exact title.

    Raises:
        HTTPException 404: Movie not found
    """
    try:
        result = await db.execute(select(Movie).where(Movie.title == title))
        movie = result.scalars().first()

        if not movie:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Movie not found"
            )

        return movie

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching movie {title}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load movie"
        )
