"""
SpeedRead Book Service - document import, chapterization and storage
"""
import logging
import os
from pathlib import Path
from typing import List, Optional
from sqlalchemy.orm import Session
from speedread.core.config import settings
from speedread.core.exceptions import BookParsingException, FileStorageException
from speedread.db.models import Book, Chapter
from speedread.services.chapter_detector import ChapterDetector, DetectedChapter, HeadingOracle, chapter_detector
from speedread.services.ollama_service import ollama_service
from speedread.services.progress_service import progress_service
from speedread.services.text_extraction_utility import SUPPORTED_FORMATS, TextExtractionUtil, text_extraction_util

logger = logging.getLogger(__name__)

class BookService:
    """Service for importing documents into the reading library"""

    def __init__(
            self,
            upload_dir: Optional[str] = None,
            extractor: Optional[TextExtractionUtil] = None,
            detector: Optional[ChapterDetector] = None,
            oracle: Optional[HeadingOracle] = None,
            oracle_enabled: Optional[bool] = None
    ):
        self.upload_dir = upload_dir or settings.UPLOAD_DIR
        self.extractor = extractor or text_extraction_util
        self.detector = detector or chapter_detector
        self.oracle = oracle or ollama_service
        self.oracle_enabled = oracle_enabled if oracle_enabled is not None else settings.ORACLE_ENABLED

        os.makedirs(self.upload_dir, exist_ok=True)
        logger.info(f"Book service initialised with upload directory: {self.upload_dir}")

    def save_uploaded_file(self, file_content: bytes, filename: str) -> str:
        """
        Save uploaded document to disk
        Args:
            file_content: File content as bytes
            filename: Original filename
        Returns:
            Path to the saved file
        """
        extension = Path(filename).suffix.lower()
        if extension.lstrip('.') not in SUPPORTED_FORMATS:
            raise BookParsingException(f"Unsupported file format: {extension or filename}")

        try:
            base_name = Path(filename).stem.replace(' ', '_') or "book"
            file_path = os.path.join(self.upload_dir, f"{base_name}{extension}")

            counter = 1
            while os.path.exists(file_path):
                file_path = os.path.join(self.upload_dir, f"{base_name}_{counter}{extension}")
                counter += 1

            with open(file_path, "wb") as f: f.write(file_content)
            logger.info(f"Uploaded file saved to {file_path}")

            return file_path

        except Exception as e:
            logger.error(f"Failed to save uploaded file: {str(e)}")
            raise FileStorageException(f"Failed to save uploaded file: {str(e)}")

    async def detect_chapters(self, text: str, use_oracle: bool = False) -> List[DetectedChapter]:
        """Chapterize flat text, asking the heading oracle first when requested and enabled"""
        if use_oracle and self.oracle_enabled: return await self.detector.detect_async(text, self.oracle)
        if use_oracle: logger.info("Heading oracle requested but disabled in settings")
        return self.detector.detect(text)

    async def import_book(self, db: Session, file_path: str, use_oracle: bool = False) -> Book:
        """
        Extract, chapterize and persist a document
        Args:
            db: Database session
            file_path: Path to a saved upload
            use_oracle: Ask the LLM heading oracle before the pattern detector
        Returns:
            The stored Book with chapters and initial reading progress
        """
        document = self.extractor.extract(file_path)
        if not document.full_text.strip(): raise BookParsingException("Could not extract text")

        if document.chapters:
            chapters = document.chapters
            logger.info(f"Using {len(chapters)} chapters from document structure")
        else: chapters = await self.detect_chapters(document.full_text, use_oracle)

        titles = [chapter.title for chapter in chapters]
        default_chapter_index = self.detector.find_default_start(titles, include_introduction=use_oracle and self.oracle_enabled)

        book = Book(
            title=document.title,
            author=document.author,
            file_path=file_path,
            source_format=document.source_format,
            total_words=sum(chapter.word_count for chapter in chapters),
            total_chapters=len(chapters),
            default_chapter_index=default_chapter_index,
        )
        db.add(book)
        db.flush()

        for index, detected in enumerate(chapters):
            db.add(Chapter(
                book_id=book.id,
                chapter_index=index,
                title=detected.title,
                text=detected.text,
                word_count=detected.word_count,
            ))

        db.commit()
        db.refresh(book)
        progress_service.get_or_create_progress(db, book)

        logger.info(f"Imported '{book.title}' with {book.total_chapters} chapters, starting at chapter {default_chapter_index}")
        return book

    def delete_book_file(self, file_path: Optional[str]):
        """Remove a stored upload; missing files are ignored"""
        try:
            if file_path and os.path.exists(file_path): os.remove(file_path)
        except OSError as e: logger.warning(f"Error deleting book file: {str(e)}")

book_service = BookService()
