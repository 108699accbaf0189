"""
SpeedRead Reader API Routes - RSVP timeline previews and heading oracle status
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from speedread.db.sqlite import get_db
from speedread.core.config import settings
from speedread.core.exceptions import SpeedReadException
from speedread.services.ollama_service import ollama_service
from speedread.services.pacing_engine import PacingEngine
from speedread.services.progress_service import progress_service
from speedread.services.tokenizer import split_words
from speedread.models.reader import FrameResponse, FramesResponse, OracleStatusResponse

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/oracle/status", response_model=OracleStatusResponse)
async def get_oracle_status():
    """
    Check whether the LLM heading oracle can be used for imports
    """
    if not settings.ORACLE_ENABLED: return OracleStatusResponse(enabled=False, available=False)

    available = await ollama_service.check_status()
    model = None
    if available:
        try: model = await ollama_service.select_model()
        except SpeedReadException as e: logger.warning(f"Could not select Ollama model: {e.detail}")

    return OracleStatusResponse(enabled=True, available=available and model is not None, model=model)

@router.get("/{book_id}/chapters/{chapter_index}/frames", response_model=FramesResponse)
async def get_frames(
        book_id: str,
        chapter_index: int,
        start: Optional[int] = Query(None, ge=0, description="Word index, defaults to the chapter resume point"),
        count: int = Query(50, ge=1, le=1000),
        wpm: Optional[int] = Query(None, gt=0, description="Defaults to the reader setting"),
        grouping: Optional[bool] = Query(None, description="Defaults to the reader setting"),
        db: Session = Depends(get_db)
):
    """
    Preview the upcoming display units of a chapter with focal split and duration
    """
    try:
        progress_service.get_book(db, book_id)
        chapter = progress_service.get_chapter(db, book_id, chapter_index)
        reader_settings = progress_service.get_settings(db)

        engine = PacingEngine(
            wpm=wpm or reader_settings.wpm,
            grouping_enabled=reader_settings.grouping_enabled if grouping is None else grouping
        )
        if start is None: start = progress_service.get_chapter_word_index(db, book_id, chapter_index)
        engine.load_words(split_words(chapter.text), start)

        frames = [
            FrameResponse(
                index=frame.index,
                word_count=frame.word_count,
                text=frame.text,
                before=frame.parts.before,
                focus=frame.parts.focus,
                after=frame.parts.after,
                delay_ms=round(frame.delay_ms, 3),
                progress=frame.progress
            )
            for frame in engine.preview(count)
        ]

        return FramesResponse(
            book_id=book_id,
            chapter_index=chapter_index,
            wpm=engine.wpm,
            grouping_enabled=engine.grouping_enabled,
            total_words=engine.total_words,
            frames=frames
        )

    except SpeedReadException as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except Exception as e:
        logger.error(f"Failed to build reader frames: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to build reader frames: {str(e)}"
        )
