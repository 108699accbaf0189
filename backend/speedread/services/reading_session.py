"""
SpeedRead Reading Session - binds a pacing engine to a book's stored progress
"""
import logging
from typing import Optional
from sqlalchemy.orm import Session
from speedread.db.models import Book, Bookmark
from speedread.services.pacing_engine import PacingEngine, ReaderEvent, Scheduler
from speedread.services.progress_service import ProgressService, progress_service as default_progress_service
from speedread.services.tokenizer import split_words

logger = logging.getLogger(__name__)

class ReadingSession:
    """
    One reader on one book.

    The session owns its PacingEngine. Opening a chapter restores that
    chapter's resume point and the global reader settings; completion and
    close() write the engine position back into reading progress.
    """

    def __init__(
            self,
            db: Session,
            book: Book,
            progress_service: Optional[ProgressService] = None,
            engine: Optional[PacingEngine] = None,
            scheduler: Optional[Scheduler] = None
    ):
        self.db = db
        self.book = book
        self.progress_service = progress_service or default_progress_service
        self.engine = engine or PacingEngine(scheduler=scheduler)
        self.chapter_index: Optional[int] = None
        self.closed = False
        self._unsubscribe = self.engine.subscribe(ReaderEvent.COMPLETED, self._on_completed)

    def resume(self) -> int:
        """Open the chapter recorded in reading progress"""
        progress = self.progress_service.get_or_create_progress(self.db, self.book)
        return self.open_chapter(progress.chapter_index)

    def open_chapter(self, chapter_index: int) -> int:
        """
        Load a chapter into the engine at its saved position
        Args:
            chapter_index: Zero-based chapter index
        Returns:
            Word index the engine starts on
        """
        chapter = self.progress_service.get_chapter(self.db, self.book.id, chapter_index)
        reader_settings = self.progress_service.get_settings(self.db)

        self.engine.set_wpm(reader_settings.wpm)
        self.engine.set_grouping(bool(reader_settings.grouping_enabled))

        start_index = self.progress_service.get_chapter_word_index(self.db, self.book.id, chapter_index)
        self.engine.load_words(split_words(chapter.text), start_index)
        self.chapter_index = chapter_index

        self.save_progress()
        logger.info(f"Opened chapter {chapter_index} of book {self.book.id} at word {self.engine.current_index}")
        return self.engine.current_index

    def save_progress(self):
        """Write the engine position into reading progress and the chapter resume point"""
        if self.chapter_index is None: return
        self.progress_service.update_progress(
            self.db,
            self.book,
            chapter_index=self.chapter_index,
            word_index=self.engine.current_index,
            wpm=self.engine.wpm,
        )

    def set_bookmark(self) -> Optional[Bookmark]:
        if self.chapter_index is None: return None
        return self.progress_service.save_bookmark(self.db, self.book.id, self.chapter_index, self.engine.current_index)

    def remove_bookmark(self) -> bool:
        if self.chapter_index is None: return False
        return self.progress_service.remove_bookmark(self.db, self.book.id, self.chapter_index)

    def jump_to_bookmark(self) -> bool:
        if self.chapter_index is None: return False

        bookmark = self.progress_service.get_bookmark(self.db, self.book.id, self.chapter_index)
        if not bookmark: return False

        self.engine.seek_to(bookmark.word_index)
        return True

    def restart_chapter(self):
        self.engine.restart()
        self.save_progress()

    def set_wpm(self, wpm: int) -> int:
        """Change speed for this session and as the global default"""
        applied = self.engine.set_wpm(wpm)
        self.progress_service.update_settings(self.db, wpm=applied)
        return applied

    def set_grouping(self, enabled: bool):
        self.engine.set_grouping(enabled)
        self.progress_service.update_settings(self.db, grouping_enabled=self.engine.grouping_enabled)

    def close(self):
        """Pause, persist the terminal position and tear down the engine"""
        if self.closed: return

        self.engine.pause()
        self.save_progress()
        self._unsubscribe()
        self.engine.close()
        self.closed = True

    def _on_completed(self, _payload=None):
        logger.info(f"Finished chapter {self.chapter_index} of book {self.book.id}")
        self.save_progress()
