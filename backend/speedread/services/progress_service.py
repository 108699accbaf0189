"""
SpeedRead Progress Service - reading progress, chapter resume points, bookmarks and settings
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy.orm import Session
from speedread.core.config import settings as app_settings
from speedread.core.exceptions import BookNotFoundException, ChapterNotFoundException
from speedread.db.models import Book, Bookmark, Chapter, ChapterProgress, ReadingProgress, Settings
from speedread.services.chapter_detector import ChapterDetector

logger = logging.getLogger(__name__)

def clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(int(value), upper))

class ProgressService:
    """Last-write-wins store for per-book reading state and global reader settings"""

    def __init__(self, min_wpm: Optional[int] = None, max_wpm: Optional[int] = None, default_wpm: Optional[int] = None):
        self.min_wpm = min_wpm or app_settings.MIN_WPM
        self.max_wpm = max_wpm or app_settings.MAX_WPM
        self.default_wpm = default_wpm or app_settings.DEFAULT_WPM

    def clamp_wpm(self, wpm: int) -> int:
        return clamp(wpm, self.min_wpm, self.max_wpm)

    # lookups

    def get_book(self, db: Session, book_id: str) -> Book:
        book = db.query(Book).filter(Book.id == book_id).first()
        if not book: raise BookNotFoundException(book_id)
        return book

    def get_chapter(self, db: Session, book_id: str, chapter_index: int) -> Chapter:
        chapter = db.query(Chapter).filter(Chapter.book_id == book_id, Chapter.chapter_index == chapter_index).first()
        if not chapter: raise ChapterNotFoundException(book_id, chapter_index)
        return chapter

    def _chapter_word_count(self, db: Session, book_id: str, chapter_index: int) -> int:
        chapter = db.query(Chapter).filter(Chapter.book_id == book_id, Chapter.chapter_index == chapter_index).first()
        return chapter.word_count if chapter else 0

    def _clamp_word_index(self, db: Session, book_id: str, chapter_index: int, word_index: int) -> int:
        word_count = self._chapter_word_count(db, book_id, chapter_index)
        return clamp(word_index, 0, max(0, word_count - 1))

    # reading progress

    def get_or_create_progress(self, db: Session, book: Book) -> ReadingProgress:
        """
        Reading progress for a book, created on first access
        Args:
            db: Database session
            book: Book to look up
        Returns:
            Progress record; a new one starts at the book's default chapter with the global WPM
        """
        progress = db.query(ReadingProgress).filter(ReadingProgress.book_id == book.id).first()
        if progress: return progress

        default_chapter = book.default_chapter_index
        if default_chapter is None:
            default_chapter = ChapterDetector.find_default_start([chapter.title for chapter in book.chapters])

        progress = ReadingProgress(
            book_id=book.id,
            chapter_index=default_chapter,
            word_index=0,
            wpm=self.get_settings(db).wpm,
        )
        db.add(progress)
        db.commit()
        db.refresh(progress)

        logger.info(f"Created reading progress for book {book.id} at chapter {default_chapter}")
        return progress

    def update_progress(
            self,
            db: Session,
            book: Book,
            chapter_index: Optional[int] = None,
            word_index: Optional[int] = None,
            wpm: Optional[int] = None
    ) -> ReadingProgress:
        """
        Record the reader's position; every value is clamped to what the book allows
        Args:
            db: Database session
            book: Book being read
            chapter_index: New chapter, or None to keep the current one
            word_index: New word position, or None to keep the current one
            wpm: New reading speed, or None to keep the current one
        Returns:
            Updated progress record
        """
        progress = self.get_or_create_progress(db, book)

        if chapter_index is not None:
            last_chapter = max(0, (book.total_chapters or len(book.chapters)) - 1)
            new_chapter = clamp(chapter_index, 0, last_chapter)
            if new_chapter != progress.chapter_index and word_index is None: progress.word_index = 0
            progress.chapter_index = new_chapter

        if word_index is not None: progress.word_index = word_index
        progress.word_index = self._clamp_word_index(db, book.id, progress.chapter_index, progress.word_index or 0)

        if wpm is not None: progress.wpm = self.clamp_wpm(wpm)
        progress.last_read_at = datetime.now(timezone.utc)

        self._upsert_chapter_progress(db, book.id, progress.chapter_index, progress.word_index)
        db.commit()
        db.refresh(progress)

        return progress

    def completion_percentage(self, book: Book, progress: Optional[ReadingProgress]) -> float:
        """
        Share of the words from the default start chapter to the end that lie before the reader's position
        Args:
            book: Book with its chapters loaded
            progress: Stored position, or None for a book never opened
        Returns:
            0 to 100, so a fresh book reads 0 and positions before the start chapter also read 0
        """
        if not progress or not book.total_words: return 0.0

        start_offset = self._words_before(book, book.default_chapter_index or 0)
        readable_words = book.total_words - start_offset
        if readable_words <= 0: return 0.0

        words_read = self._words_before(book, progress.chapter_index) + (progress.word_index or 0) - start_offset
        return round(min(100.0, max(0, words_read) / readable_words * 100), 2)

    @staticmethod
    def _words_before(book: Book, chapter_index: int) -> int:
        return sum(chapter.word_count for chapter in book.chapters if chapter.chapter_index < chapter_index)

    def reset_progress(self, db: Session, book: Book) -> ReadingProgress:
        """Send the reader back to the default chapter and drop chapter resume points"""
        progress = self.get_or_create_progress(db, book)

        db.query(ChapterProgress).filter(ChapterProgress.book_id == book.id).delete()
        progress.chapter_index = book.default_chapter_index or 0
        progress.word_index = 0
        progress.last_read_at = datetime.now(timezone.utc)

        db.commit()
        db.refresh(progress)

        logger.info(f"Reset reading progress for book {book.id}")
        return progress

    # per-chapter resume points

    def get_chapter_word_index(self, db: Session, book_id: str, chapter_index: int) -> int:
        record = db.query(ChapterProgress).filter(
            ChapterProgress.book_id == book_id,
            ChapterProgress.chapter_index == chapter_index
        ).first()
        return record.word_index if record else 0

    def save_chapter_progress(self, db: Session, book_id: str, chapter_index: int, word_index: int) -> ChapterProgress:
        record = self._upsert_chapter_progress(db, book_id, chapter_index, word_index)
        db.commit()
        db.refresh(record)
        return record

    def _upsert_chapter_progress(self, db: Session, book_id: str, chapter_index: int, word_index: int) -> ChapterProgress:
        record = db.query(ChapterProgress).filter(
            ChapterProgress.book_id == book_id,
            ChapterProgress.chapter_index == chapter_index
        ).first()
        if not record:
            record = ChapterProgress(book_id=book_id, chapter_index=chapter_index)
            db.add(record)

        record.word_index = self._clamp_word_index(db, book_id, chapter_index, word_index)
        record.saved_at = datetime.now(timezone.utc)
        return record

    # bookmarks

    def get_bookmark(self, db: Session, book_id: str, chapter_index: int) -> Optional[Bookmark]:
        return db.query(Bookmark).filter(Bookmark.book_id == book_id, Bookmark.chapter_index == chapter_index).first()

    def list_bookmarks(self, db: Session, book_id: str) -> List[Bookmark]:
        return db.query(Bookmark).filter(Bookmark.book_id == book_id).order_by(Bookmark.chapter_index).all()

    def save_bookmark(self, db: Session, book_id: str, chapter_index: int, word_index: int) -> Bookmark:
        """Create or overwrite the single bookmark of a chapter"""
        bookmark = self.get_bookmark(db, book_id, chapter_index)
        if not bookmark:
            bookmark = Bookmark(book_id=book_id, chapter_index=chapter_index)
            db.add(bookmark)

        bookmark.word_index = self._clamp_word_index(db, book_id, chapter_index, word_index)
        bookmark.created_at = datetime.now(timezone.utc)

        db.commit()
        db.refresh(bookmark)
        return bookmark

    def remove_bookmark(self, db: Session, book_id: str, chapter_index: int) -> bool:
        bookmark = self.get_bookmark(db, book_id, chapter_index)
        if not bookmark: return False

        db.delete(bookmark)
        db.commit()
        return True

    # reader settings

    def get_settings(self, db: Session) -> Settings:
        reader_settings = db.query(Settings).first()
        if not reader_settings:
            reader_settings = Settings(wpm=self.default_wpm, grouping_enabled=False)
            db.add(reader_settings)
            db.commit()
            db.refresh(reader_settings)
        return reader_settings

    def update_settings(self, db: Session, wpm: Optional[int] = None, grouping_enabled: Optional[bool] = None) -> Settings:
        reader_settings = self.get_settings(db)

        if wpm is not None: reader_settings.wpm = self.clamp_wpm(wpm)
        if grouping_enabled is not None: reader_settings.grouping_enabled = grouping_enabled
        reader_settings.updated_at = datetime.now(timezone.utc)

        db.commit()
        db.refresh(reader_settings)
        return reader_settings

    def reset_settings(self, db: Session) -> Settings:
        reader_settings = self.get_settings(db)

        # defaults
        reader_settings.wpm = self.default_wpm
        reader_settings.grouping_enabled = False
        reader_settings.updated_at = datetime.now(timezone.utc)

        db.commit()
        db.refresh(reader_settings)
        return reader_settings

progress_service = ProgressService()
