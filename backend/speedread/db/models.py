"""
SpeedRead SQLAlchemy Database Models
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()

class Book(Base):
    """Imported document with its ordered chapters"""
    __tablename__ = "books"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False)
    author = Column(String, nullable=True)
    file_path = Column(String, nullable=True)
    source_format = Column(String, nullable=True)
    total_words = Column(Integer, default=0)
    total_chapters = Column(Integer, default=0)
    default_chapter_index = Column(Integer, default=0)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    chapters = relationship("Chapter", back_populates="book", order_by="Chapter.chapter_index", cascade="all, delete-orphan")
    reading_progress = relationship("ReadingProgress", back_populates="book", uselist=False, cascade="all, delete-orphan")
    chapter_progress = relationship("ChapterProgress", back_populates="book", cascade="all, delete-orphan")
    bookmarks = relationship("Bookmark", back_populates="book", cascade="all, delete-orphan")

class Chapter(Base):
    """Chapter model, chapter_index is dense and 0-based within a book"""
    __tablename__ = "chapters"
    __table_args__ = (UniqueConstraint("book_id", "chapter_index", name="uq_chapter_book_index"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    book_id = Column(String, ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    chapter_index = Column(Integer, nullable=False)
    title = Column(String, nullable=False)
    text = Column(Text, nullable=False, default="")
    word_count = Column(Integer, default=0)

    book = relationship("Book", back_populates="chapters")

class ReadingProgress(Base):
    """Per-book reading position"""
    __tablename__ = "reading_progress"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    book_id = Column(String, ForeignKey("books.id", ondelete="CASCADE"), unique=True, nullable=False)
    chapter_index = Column(Integer, default=0)
    word_index = Column(Integer, default=0)
    wpm = Column(Integer, default=300)
    last_read_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    book = relationship("Book", back_populates="reading_progress")

class ChapterProgress(Base):
    """Resume point for a single chapter"""
    __tablename__ = "chapter_progress"
    __table_args__ = (UniqueConstraint("book_id", "chapter_index", name="uq_chapter_progress_book_index"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    book_id = Column(String, ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    chapter_index = Column(Integer, nullable=False)
    word_index = Column(Integer, default=0)
    saved_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    book = relationship("Book", back_populates="chapter_progress")

class Bookmark(Base):
    """At most one bookmark per chapter per book"""
    __tablename__ = "bookmarks"
    __table_args__ = (UniqueConstraint("book_id", "chapter_index", name="uq_bookmark_book_index"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    book_id = Column(String, ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    chapter_index = Column(Integer, nullable=False)
    word_index = Column(Integer, default=0)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    book = relationship("Book", back_populates="bookmarks")

class Settings(Base):
    """Global reader settings"""
    __tablename__ = "settings"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    wpm = Column(Integer, default=300)
    grouping_enabled = Column(Boolean, default=False)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
