"""
SpeedRead Content API Routes for serving chapter text
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from speedread.db.sqlite import get_db
from speedread.core.exceptions import SpeedReadException
from speedread.services.progress_service import progress_service
from speedread.services.tokenizer import split_words
from speedread.models.content import ChapterContentResponse, ChapterWordsResponse

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/{book_id}/chapters/{chapter_index}", response_model=ChapterContentResponse)
async def get_chapter_content(book_id: str, chapter_index: int, db: Session = Depends(get_db)):
    """
    Get the full text of a chapter
    """
    try:
        progress_service.get_book(db, book_id)
        chapter = progress_service.get_chapter(db, book_id, chapter_index)

        return ChapterContentResponse(
            book_id=book_id,
            chapter_index=chapter.chapter_index,
            title=chapter.title,
            word_count=chapter.word_count,
            text=chapter.text
        )

    except SpeedReadException as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except Exception as e:
        logger.error(f"Failed to get chapter content: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get chapter content: {str(e)}"
        )

@router.get("/{book_id}/chapters/{chapter_index}/words", response_model=ChapterWordsResponse)
async def get_chapter_words(
        book_id: str,
        chapter_index: int,
        start: int = Query(0, ge=0),
        limit: int = Query(500, ge=1, le=5000),
        db: Session = Depends(get_db)
):
    """
    Get a window of a chapter's word tokens, as the reader displays them
    """
    try:
        progress_service.get_book(db, book_id)
        chapter = progress_service.get_chapter(db, book_id, chapter_index)
        words = split_words(chapter.text)

        return ChapterWordsResponse(
            book_id=book_id,
            chapter_index=chapter_index,
            start=start,
            total_words=len(words),
            words=words[start:start + limit]
        )

    except SpeedReadException as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except Exception as e:
        logger.error(f"Failed to get chapter words: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get chapter words: {str(e)}"
        )
