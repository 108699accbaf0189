"""
SpeedRead Book Management API Routes
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, status
from sqlalchemy.orm import Session
from speedread.db.sqlite import get_db
from speedread.db.models import Book, ReadingProgress
from speedread.services.book_service import book_service
from speedread.services.progress_service import progress_service
from speedread.core.exceptions import SpeedReadException, BookParsingException, FileStorageException
from speedread.models.book import BookListResponse, BookListItem, BookDetailResponse, BookResponse, ChapterBase

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/", response_model=BookListResponse)
async def list_books(skip: int = 0, limit: int = 100, db: Session = Depends(get_db)):
    """
    List all books in the library
    """
    try:
        books = db.query(Book).order_by(Book.created_at.desc()).offset(skip).limit(limit).all()
        book_items = []

        for book in books:
            progress = db.query(ReadingProgress).filter(ReadingProgress.book_id == book.id).first()

            book_item = BookListItem(
                id=str(book.id),
                title=str(book.title),
                author=book.author,
                source_format=book.source_format,
                total_chapters=book.total_chapters or 0,
                total_words=book.total_words or 0,
                completion_percentage=progress_service.completion_percentage(book, progress),
                last_read_at=progress.last_read_at if progress else None
            )
            book_items.append(book_item)

        return BookListResponse(books=book_items, total=len(book_items))

    except Exception as e:
        logger.error(f"Failed to list books: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list books: {str(e)}"
        )

@router.get("/{book_id}", response_model=BookDetailResponse)
async def get_book(book_id: str, db: Session = Depends(get_db)):
    """
    Get information about a book and its chapters
    """
    try:
        book = progress_service.get_book(db, book_id)
        progress = progress_service.get_or_create_progress(db, book)

        return BookDetailResponse(
            id=book.id,
            title=book.title,
            author=book.author,
            source_format=book.source_format,
            total_words=book.total_words or 0,
            total_chapters=book.total_chapters or 0,
            default_chapter_index=book.default_chapter_index or 0,
            chapters=[ChapterBase.model_validate(chapter) for chapter in book.chapters],
            current_chapter_index=progress.chapter_index,
            current_word_index=progress.word_index,
            completion_percentage=progress_service.completion_percentage(book, progress),
            created_at=book.created_at,
            last_read_at=progress.last_read_at
        )

    except SpeedReadException as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except Exception as e:
        logger.error(f"Failed to get book details: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get book details: {str(e)}"
        )

@router.post("/upload", status_code=status.HTTP_201_CREATED, response_model=BookResponse)
async def upload_book(use_oracle: bool = False, file: UploadFile = File(...), db: Session = Depends(get_db)):
    """
    Upload a .txt, .pdf or .epub document and split it into chapters
    """
    file_path = None
    try:
        logger.info(f"Uploading book: {file.filename}")

        # reading content in chunks
        chunk_size = 1024 * 1024  # 1mb chunks
        chunks = []
        while True:
            chunk = await file.read(chunk_size)
            if not chunk: break
            chunks.append(chunk)

        file_path = book_service.save_uploaded_file(b''.join(chunks), file.filename or "")
        book = await book_service.import_book(db, file_path, use_oracle=use_oracle)

        return BookResponse(
            id=book.id,
            title=book.title,
            author=book.author,
            source_format=book.source_format,
            total_chapters=book.total_chapters,
            total_words=book.total_words,
            default_chapter_index=book.default_chapter_index,
            message=f"Book imported with {book.total_chapters} chapters"
        )

    except BookParsingException as e:
        logger.error(f"Book parsing error: {e.detail}")
        db.rollback()
        if file_path: book_service.delete_book_file(file_path)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.detail
        )
    except FileStorageException as e:
        logger.error(f"File storage error: {e.detail}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.detail
        )
    except Exception as e:
        logger.error(f"Unexpected error during book upload: {str(e)}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"An unexpected error occurred: {str(e)}"
        )

@router.delete("/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_book(book_id: str, db: Session = Depends(get_db)):
    """
    Delete a book, its chapters and all reading state
    """
    try:
        book = progress_service.get_book(db, book_id)
        book_service.delete_book_file(book.file_path)

        db.delete(book)
        db.commit()

        return None

    except SpeedReadException as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except Exception as e:
        logger.error(f"Failed to delete book: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete book: {str(e)}"
        )
