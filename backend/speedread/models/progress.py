"""
SpeedRead Reading Progress Pydantic Models
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

class ProgressResponse(BaseModel):
    """Response model for reading progress"""
    book_id: str
    chapter_index: int
    word_index: int
    wpm: int
    chapter_title: Optional[str] = None
    chapter_word_count: int = 0
    completion_percentage: float = 0.0
    last_read_at: Optional[datetime] = None

    class Config:
        """Pydantic config"""
        from_attributes = True

class ProgressUpdate(BaseModel):
    """Request model for updating reading progress"""
    chapter_index: Optional[int] = Field(None, description="Zero-based chapter index")
    word_index: Optional[int] = Field(None, description="Zero-based word index within the chapter")
    wpm: Optional[int] = Field(None, description="Reading speed in words per minute", gt=0)

class ChapterProgressResponse(BaseModel):
    """Response model for a chapter resume point"""
    book_id: str
    chapter_index: int
    word_index: int

class ChapterProgressUpdate(BaseModel):
    """Request model for saving a chapter resume point"""
    word_index: int = Field(..., description="Zero-based word index within the chapter", ge=0)

class BookmarkResponse(BaseModel):
    """Response model for a chapter bookmark"""
    book_id: str
    chapter_index: int
    word_index: int
    created_at: Optional[datetime] = None

    class Config:
        """Pydantic config"""
        from_attributes = True

class BookmarkUpdate(BaseModel):
    """Request model for setting a chapter bookmark"""
    word_index: int = Field(..., description="Zero-based word index within the chapter", ge=0)
