"""
SpeedRead Reading Progress API Routes
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from speedread.db.sqlite import get_db
from speedread.db.models import Book, ReadingProgress
from speedread.core.exceptions import SpeedReadException
from speedread.services.progress_service import progress_service
from speedread.models.progress import ProgressResponse, ProgressUpdate, ChapterProgressResponse, ChapterProgressUpdate

router = APIRouter()
logger = logging.getLogger(__name__)

def progress_response(book: Book, progress: ReadingProgress) -> ProgressResponse:
    chapter = next((c for c in book.chapters if c.chapter_index == progress.chapter_index), None)

    return ProgressResponse(
        book_id=book.id,
        chapter_index=progress.chapter_index,
        word_index=progress.word_index,
        wpm=progress.wpm,
        chapter_title=chapter.title if chapter else None,
        chapter_word_count=chapter.word_count if chapter else 0,
        completion_percentage=progress_service.completion_percentage(book, progress),
        last_read_at=progress.last_read_at
    )

@router.get("/{book_id}", response_model=ProgressResponse)
async def get_reading_progress(book_id: str, db: Session = Depends(get_db)):
    """
    Get reading progress for a book, creating it at the default chapter on first access
    """
    try:
        book = progress_service.get_book(db, book_id)
        progress = progress_service.get_or_create_progress(db, book)
        return progress_response(book, progress)

    except SpeedReadException as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except Exception as e:
        logger.error(f"Failed to get reading progress: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get reading progress: {str(e)}"
        )

@router.put("/{book_id}", response_model=ProgressResponse)
async def update_reading_progress(book_id: str, progress_update: ProgressUpdate, db: Session = Depends(get_db)):
    """
    Update reading progress for a book; positions are clamped to the book
    """
    try:
        logger.info(f"Progress update for book {book_id}: {progress_update.model_dump(exclude_unset=True)}")

        book = progress_service.get_book(db, book_id)
        progress = progress_service.update_progress(
            db,
            book,
            chapter_index=progress_update.chapter_index,
            word_index=progress_update.word_index,
            wpm=progress_update.wpm
        )
        return progress_response(book, progress)

    except SpeedReadException as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except Exception as e:
        logger.error(f"Failed to update reading progress: {str(e)}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update reading progress: {str(e)}"
        )

@router.post("/{book_id}/reset", response_model=ProgressResponse)
async def reset_reading_progress(book_id: str, db: Session = Depends(get_db)):
    """
    Reset reading progress for a book
    """
    try:
        book = progress_service.get_book(db, book_id)
        progress = progress_service.reset_progress(db, book)
        return progress_response(book, progress)

    except SpeedReadException as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except Exception as e:
        logger.error(f"Failed to reset reading progress: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to reset reading progress: {str(e)}"
        )

@router.get("/{book_id}/chapters/{chapter_index}", response_model=ChapterProgressResponse)
async def get_chapter_progress(book_id: str, chapter_index: int, db: Session = Depends(get_db)):
    """
    Get the resume point within a chapter
    """
    try:
        progress_service.get_book(db, book_id)
        progress_service.get_chapter(db, book_id, chapter_index)

        word_index = progress_service.get_chapter_word_index(db, book_id, chapter_index)
        return ChapterProgressResponse(book_id=book_id, chapter_index=chapter_index, word_index=word_index)

    except SpeedReadException as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except Exception as e:
        logger.error(f"Failed to get chapter progress: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get chapter progress: {str(e)}"
        )

@router.put("/{book_id}/chapters/{chapter_index}", response_model=ChapterProgressResponse)
async def save_chapter_progress(book_id: str, chapter_index: int, update: ChapterProgressUpdate, db: Session = Depends(get_db)):
    """
    Save the resume point within a chapter
    """
    try:
        progress_service.get_book(db, book_id)
        progress_service.get_chapter(db, book_id, chapter_index)

        record = progress_service.save_chapter_progress(db, book_id, chapter_index, update.word_index)
        return ChapterProgressResponse(book_id=book_id, chapter_index=chapter_index, word_index=record.word_index)

    except SpeedReadException as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except Exception as e:
        logger.error(f"Failed to save chapter progress: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save chapter progress: {str(e)}"
        )
