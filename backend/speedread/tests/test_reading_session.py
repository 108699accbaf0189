"""
SpeedRead Reading Session and Progress Tests
"""
import unittest

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from speedread.core.exceptions import BookNotFoundException, ChapterNotFoundException
from speedread.db.models import Base, Book, Chapter, ChapterProgress
from speedread.services.progress_service import ProgressService
from speedread.services.reading_session import ReadingSession

CHAPTERS = [
    ("Prologue", "a b c d e"),
    ("Chapter 1", "f g h i j k l"),
    ("Chapter 2", "m n o"),
]

class ManualScheduler:
    """Holds at most one live timer, fired by the test"""

    def __init__(self):
        self.pending = []

    def call_later(self, delay, callback):
        handle = ManualHandle(self, callback)
        self.pending.append(handle)
        return handle

    def fire(self):
        handle = self.pending.pop(0)
        handle.callback()

class ManualHandle:
    def __init__(self, scheduler, callback):
        self.scheduler = scheduler
        self.callback = callback

    def cancel(self):
        if self in self.scheduler.pending: self.scheduler.pending.remove(self)

def setup_test_db():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)()

def add_book(db, default_chapter_index=0):
    book = Book(
        title="Test Book",
        source_format="txt",
        total_words=sum(len(text.split()) for _, text in CHAPTERS),
        total_chapters=len(CHAPTERS),
        default_chapter_index=default_chapter_index,
    )
    db.add(book)
    db.flush()
    for index, (title, text) in enumerate(CHAPTERS):
        db.add(Chapter(book_id=book.id, chapter_index=index, title=title, text=text, word_count=len(text.split())))
    db.commit()
    db.refresh(book)
    return book

class TestProgressService(unittest.TestCase):
    """Stored reading state"""

    def setUp(self):
        self.db = setup_test_db()
        self.service = ProgressService(min_wpm=100, max_wpm=1000, default_wpm=300)
        self.book = add_book(self.db, default_chapter_index=1)

    def tearDown(self):
        self.db.close()

    def test_new_progress_starts_at_default_chapter(self):
        progress = self.service.get_or_create_progress(self.db, self.book)

        self.assertEqual((progress.chapter_index, progress.word_index, progress.wpm), (1, 0, 300))
        self.assertIs(self.service.get_or_create_progress(self.db, self.book), progress)

    def test_positions_are_clamped(self):
        progress = self.service.update_progress(self.db, self.book, chapter_index=0, word_index=99, wpm=50)
        self.assertEqual((progress.chapter_index, progress.word_index, progress.wpm), (0, 4, 100))

        progress = self.service.update_progress(self.db, self.book, chapter_index=12, word_index=-3, wpm=5000)
        self.assertEqual((progress.chapter_index, progress.word_index, progress.wpm), (2, 0, 1000))

    def test_chapter_change_without_word_starts_chapter_at_zero(self):
        self.service.update_progress(self.db, self.book, chapter_index=1, word_index=5)
        progress = self.service.update_progress(self.db, self.book, chapter_index=2)
        self.assertEqual(progress.word_index, 0)

        progress = self.service.update_progress(self.db, self.book, word_index=2)
        self.assertEqual((progress.chapter_index, progress.word_index), (2, 2))

    def test_update_records_chapter_resume_point(self):
        self.service.update_progress(self.db, self.book, chapter_index=1, word_index=3)
        self.service.update_progress(self.db, self.book, chapter_index=0, word_index=1)

        self.assertEqual(self.service.get_chapter_word_index(self.db, self.book.id, 1), 3)
        self.assertEqual(self.service.get_chapter_word_index(self.db, self.book.id, 0), 1)
        self.assertEqual(self.service.get_chapter_word_index(self.db, self.book.id, 2), 0)

    def test_completion_percentage(self):
        self.assertEqual(self.service.completion_percentage(self.book, None), 0.0)

        progress = self.service.get_or_create_progress(self.db, self.book)
        self.assertEqual(self.service.completion_percentage(self.book, progress), 0.0)

        progress = self.service.update_progress(self.db, self.book, chapter_index=1, word_index=2)
        self.assertEqual(self.service.completion_percentage(self.book, progress), 20.0)

        progress = self.service.update_progress(self.db, self.book, chapter_index=2, word_index=2)
        self.assertEqual(self.service.completion_percentage(self.book, progress), 90.0)

    def test_completion_before_start_chapter_is_zero(self):
        progress = self.service.update_progress(self.db, self.book, chapter_index=0, word_index=3)
        self.assertEqual(self.service.completion_percentage(self.book, progress), 0.0)

    def test_reset_progress(self):
        self.service.update_progress(self.db, self.book, chapter_index=2, word_index=2)
        progress = self.service.reset_progress(self.db, self.book)

        self.assertEqual((progress.chapter_index, progress.word_index), (1, 0))
        self.assertEqual(self.db.query(ChapterProgress).filter(ChapterProgress.book_id == self.book.id).count(), 0)

    def test_bookmarks(self):
        bookmark = self.service.save_bookmark(self.db, self.book.id, 1, 40)
        self.assertEqual(bookmark.word_index, 6)

        self.service.save_bookmark(self.db, self.book.id, 1, 2)
        self.service.save_bookmark(self.db, self.book.id, 0, 1)
        bookmarks = self.service.list_bookmarks(self.db, self.book.id)

        self.assertEqual([(b.chapter_index, b.word_index) for b in bookmarks], [(0, 1), (1, 2)])
        self.assertTrue(self.service.remove_bookmark(self.db, self.book.id, 1))
        self.assertFalse(self.service.remove_bookmark(self.db, self.book.id, 1))
        self.assertIsNone(self.service.get_bookmark(self.db, self.book.id, 1))

    def test_settings(self):
        reader_settings = self.service.get_settings(self.db)
        self.assertEqual((reader_settings.wpm, reader_settings.grouping_enabled), (300, False))

        reader_settings = self.service.update_settings(self.db, wpm=20, grouping_enabled=True)
        self.assertEqual((reader_settings.wpm, reader_settings.grouping_enabled), (100, True))

        reader_settings = self.service.reset_settings(self.db)
        self.assertEqual((reader_settings.wpm, reader_settings.grouping_enabled), (300, False))

    def test_lookups(self):
        with self.assertRaises(BookNotFoundException):
            self.service.get_book(self.db, "missing")
        with self.assertRaises(ChapterNotFoundException):
            self.service.get_chapter(self.db, self.book.id, 3)

        self.assertEqual(self.service.get_chapter(self.db, self.book.id, 2).title, "Chapter 2")

class TestReadingSession(unittest.TestCase):
    """Engine bound to stored progress"""

    def setUp(self):
        self.db = setup_test_db()
        self.service = ProgressService(min_wpm=100, max_wpm=1000, default_wpm=300)
        self.book = add_book(self.db)
        self.scheduler = ManualScheduler()
        self.session = ReadingSession(self.db, self.book, progress_service=self.service, scheduler=self.scheduler)

    def tearDown(self):
        self.session.close()
        self.db.close()

    def progress(self):
        return self.service.get_or_create_progress(self.db, self.book)

    def test_open_chapter_restores_resume_point(self):
        self.service.save_chapter_progress(self.db, self.book.id, 1, 3)

        self.assertEqual(self.session.open_chapter(1), 3)
        self.assertEqual(self.session.engine.current_word, "i")
        self.assertEqual((self.progress().chapter_index, self.progress().word_index), (1, 3))

    def test_open_chapter_applies_reader_settings(self):
        self.service.update_settings(self.db, wpm=450, grouping_enabled=True)
        self.session.open_chapter(0)

        self.assertEqual(self.session.engine.wpm, 450)
        self.assertTrue(self.session.engine.grouping_enabled)

    def test_resume(self):
        self.service.update_progress(self.db, self.book, chapter_index=2, word_index=1)

        self.assertEqual(self.session.resume(), 1)
        self.assertEqual(self.session.chapter_index, 2)
        self.assertEqual(self.session.engine.current_word, "n")

    def test_unknown_chapter(self):
        with self.assertRaises(ChapterNotFoundException):
            self.session.open_chapter(7)
        self.assertIsNone(self.session.chapter_index)

    def test_completion_saves_last_word(self):
        self.session.open_chapter(0)
        self.session.engine.seek_to(3)
        self.session.engine.play()

        self.scheduler.fire()
        self.assertEqual(self.session.engine.current_index, 4)
        self.scheduler.fire()

        self.assertFalse(self.session.engine.is_playing)
        self.assertEqual(self.scheduler.pending, [])
        self.assertEqual(self.progress().word_index, 4)

    def test_bookmark_round_trip(self):
        self.assertIsNone(self.session.set_bookmark())

        self.session.open_chapter(1)
        self.session.engine.seek_to(5)
        self.assertEqual(self.session.set_bookmark().word_index, 5)

        self.session.engine.seek_to(0)
        self.assertTrue(self.session.jump_to_bookmark())
        self.assertEqual(self.session.engine.current_index, 5)

        self.assertTrue(self.session.remove_bookmark())
        self.assertFalse(self.session.jump_to_bookmark())

    def test_restart_chapter(self):
        self.session.open_chapter(1)
        self.session.engine.seek_to(4)
        self.session.engine.play()
        self.session.restart_chapter()

        self.assertFalse(self.session.engine.is_playing)
        self.assertEqual(self.progress().word_index, 0)

    def test_speed_and_grouping_become_defaults(self):
        self.session.open_chapter(0)

        self.assertEqual(self.session.set_wpm(5000), 1000)
        self.session.set_grouping(True)

        reader_settings = self.service.get_settings(self.db)
        self.assertEqual((reader_settings.wpm, reader_settings.grouping_enabled), (1000, True))

    def test_close_saves_and_is_idempotent(self):
        self.session.open_chapter(1)
        self.session.engine.play()
        self.scheduler.fire()
        self.scheduler.fire()

        self.session.close()
        self.session.close()

        self.assertTrue(self.session.closed)
        self.assertFalse(self.session.engine.has_pending_advance)
        self.assertFalse(self.session.engine.is_playing)
        self.assertEqual(self.scheduler.pending, [])
        self.assertEqual(self.progress().word_index, 2)

if __name__ == "__main__":
    unittest.main()
