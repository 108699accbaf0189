"""
SpeedRead Book Pydantic Models
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel


class ChapterBase(BaseModel):
    """Base model for chapter data"""

    chapter_index: int
    title: str
    word_count: int

    class Config:
        """Pydantic config"""

        from_attributes = True


class BookBase(BaseModel):
    """Base model for book data"""

    id: str
    title: str
    author: Optional[str] = None
    source_format: Optional[str] = None


class BookResponse(BookBase):
    """Response model for book import"""

    total_chapters: int
    total_words: int
    default_chapter_index: int
    message: str


class BookListItem(BookBase):
    """Book item in list response"""

    total_chapters: int
    total_words: int
    completion_percentage: float
    last_read_at: Optional[datetime] = None


class BookListResponse(BaseModel):
    """Response model for listing books"""

    books: List[BookListItem]
    total: int


class BookDetailResponse(BookBase):
    """Response model for detailed book information"""

    total_words: int
    total_chapters: int
    default_chapter_index: int
    chapters: List[ChapterBase]
    current_chapter_index: int
    current_word_index: int
    completion_percentage: float
    created_at: Optional[datetime] = None
    last_read_at: Optional[datetime] = None

    class Config:
        """Pydantic config"""

        from_attributes = True
