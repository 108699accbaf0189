"""
SpeedRead Reader Timeline Pydantic Models
"""
from typing import List, Optional
from pydantic import BaseModel

class FrameResponse(BaseModel):
    """One display unit of the RSVP timeline"""
    index: int
    word_count: int
    text: str
    before: str
    focus: str
    after: str
    delay_ms: float
    progress: float

class FramesResponse(BaseModel):
    """Response model for a timeline preview"""
    book_id: str
    chapter_index: int
    wpm: int
    grouping_enabled: bool
    total_words: int
    frames: List[FrameResponse]

class OracleStatusResponse(BaseModel):
    """Response model for heading oracle availability"""
    enabled: bool
    available: bool
    model: Optional[str] = None
