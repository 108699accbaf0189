"""
SpeedRead Bookmark API Routes
"""
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from speedread.db.sqlite import get_db
from speedread.core.exceptions import SpeedReadException
from speedread.services.progress_service import progress_service
from speedread.models.progress import BookmarkResponse, BookmarkUpdate

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/{book_id}", response_model=List[BookmarkResponse])
async def list_bookmarks(book_id: str, db: Session = Depends(get_db)):
    """
    List a book's bookmarks, one per chapter at most
    """
    try:
        progress_service.get_book(db, book_id)
        return progress_service.list_bookmarks(db, book_id)

    except SpeedReadException as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except Exception as e:
        logger.error(f"Failed to list bookmarks: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list bookmarks: {str(e)}"
        )

@router.get("/{book_id}/{chapter_index}", response_model=BookmarkResponse)
async def get_bookmark(book_id: str, chapter_index: int, db: Session = Depends(get_db)):
    """
    Get the bookmark of a chapter
    """
    try:
        progress_service.get_book(db, book_id)
        bookmark = progress_service.get_bookmark(db, book_id, chapter_index)
        if not bookmark:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No bookmark for chapter {chapter_index}"
            )

        return bookmark

    except HTTPException: raise
    except SpeedReadException as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except Exception as e:
        logger.error(f"Failed to get bookmark: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get bookmark: {str(e)}"
        )

@router.put("/{book_id}/{chapter_index}", response_model=BookmarkResponse)
async def save_bookmark(book_id: str, chapter_index: int, update: BookmarkUpdate, db: Session = Depends(get_db)):
    """
    Create or overwrite the bookmark of a chapter
    """
    try:
        progress_service.get_book(db, book_id)
        progress_service.get_chapter(db, book_id, chapter_index)
        return progress_service.save_bookmark(db, book_id, chapter_index, update.word_index)

    except SpeedReadException as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except Exception as e:
        logger.error(f"Failed to save bookmark: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save bookmark: {str(e)}"
        )

@router.delete("/{book_id}/{chapter_index}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bookmark(book_id: str, chapter_index: int, db: Session = Depends(get_db)):
    """
    Remove the bookmark of a chapter
    """
    try:
        progress_service.get_book(db, book_id)
        if not progress_service.remove_bookmark(db, book_id, chapter_index):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No bookmark for chapter {chapter_index}"
            )

        return None

    except HTTPException: raise
    except SpeedReadException as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except Exception as e:
        logger.error(f"Failed to delete bookmark: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete bookmark: {str(e)}"
        )
