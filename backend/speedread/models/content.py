"""
SpeedRead Book Content Pydantic Models
"""
from typing import List
from pydantic import BaseModel

class ChapterContentResponse(BaseModel):
    """Response model for chapter content"""
    book_id: str
    chapter_index: int
    title: str
    word_count: int
    text: str

class ChapterWordsResponse(BaseModel):
    """Response model for a window of chapter words"""
    book_id: str
    chapter_index: int
    start: int
    total_words: int
    words: List[str]
