"""
SpeedRead Text Extraction Utility - turns txt, pdf and epub files into reading text
"""
import logging
import os
import re
from dataclasses import dataclass
from typing import Dict, List, Optional
import ebooklib
import pdfplumber
from bs4 import BeautifulSoup
from ebooklib import epub
from speedread.core.exceptions import BookParsingException
from speedread.services.chapter_detector import DetectedChapter
from speedread.services.tokenizer import count_words

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("txt", "pdf", "epub")
MIN_EPUB_ITEM_CHARS = 50

@dataclass
class ExtractedDocument:
    """Flat text of a document, plus chapters when the format carries its own structure"""
    title: str
    full_text: str
    source_format: str
    author: Optional[str] = None
    chapters: Optional[List[DetectedChapter]] = None

def title_from_filename(file_path: str) -> str:
    """'war_and-peace.pdf' -> 'war and peace'"""
    stem = os.path.splitext(os.path.basename(file_path))[0]
    title = re.sub(r'\s+', ' ', re.sub(r'[_-]', ' ', stem)).strip()
    return title or "Untitled"

def clean_pdf_text(text: str) -> str:
    """
    Normalise page text while keeping paragraph and page structure
    Args:
        text: Page texts joined by blank lines
    Returns:
        Text with no space before punctuation, single spaces and at most three newlines in a row
    """
    text = re.sub(r'[^\S\n]+([.,!?;:])', r'\1', text)
    text = re.sub(r'[^\S\n]+', ' ', text)
    text = re.sub(r'\n +\n', '\n\n', text)
    text = re.sub(r'\n{4,}', '\n\n\n', text)
    return text.strip()

def html_to_text(html_content: str) -> str:
    """Visible text of an XHTML document as a single whitespace-normalised line"""
    content = re.sub(r'<\?xml[^>]+\?>', '', html_content)
    content = re.sub(r'<!DOCTYPE[^>]+>', '', content)

    soup = BeautifulSoup(content, 'html.parser')
    for tag_name in ['script', 'style', 'nav', 'header', 'footer', 'head']:
        for tag in soup.find_all(tag_name): tag.decompose()

    return re.sub(r'\s+', ' ', soup.get_text()).strip()

def html_title(html_content: str) -> Optional[str]:
    """First non-empty h1, h2 or title text"""
    soup = BeautifulSoup(html_content, 'html.parser')
    for tag in ['h1', 'h2', 'title']:
        element = soup.find(tag)
        if element and element.get_text().strip(): return element.get_text().strip()
    return None

class TextExtractionUtil:
    """Extracts reading text from uploaded documents"""

    def extract(self, file_path: str) -> ExtractedDocument:
        """
        Extract text from a document by file extension
        Args:
            file_path: Path to a .txt, .pdf or .epub file
        Returns:
            ExtractedDocument; chapters are set only for epub
        """
        extension = os.path.splitext(file_path)[1].lower().lstrip('.')
        if extension not in SUPPORTED_FORMATS:
            raise BookParsingException(f"Unsupported file format: .{extension or '?'}")
        if not os.path.exists(file_path):
            raise BookParsingException(f"File not found: {os.path.basename(file_path)}")

        logger.info(f"Extracting {extension} text from {file_path}")
        try:
            if extension == "txt": return self.extract_txt(file_path)
            if extension == "pdf": return self.extract_pdf(file_path)
            return self.extract_epub(file_path)
        except BookParsingException: raise
        except Exception as e:
            logger.error(f"Error extracting text: {str(e)}")
            raise BookParsingException(f"Could not extract text from file: {str(e)}")

    def extract_txt(self, file_path: str) -> ExtractedDocument:
        with open(file_path, 'r', encoding='utf-8', errors='replace') as f: text = f.read()

        return ExtractedDocument(
            title=title_from_filename(file_path),
            full_text=text.replace('\r\n', '\n').strip(),
            source_format="txt",
        )

    def extract_pdf(self, file_path: str) -> ExtractedDocument:
        with pdfplumber.open(file_path) as pdf:
            page_texts = [page.extract_text() or "" for page in pdf.pages]
            metadata = pdf.metadata or {}

        title = metadata.get("Title")
        if not isinstance(title, str) or not title.strip(): title = title_from_filename(file_path)
        author = metadata.get("Author") if isinstance(metadata.get("Author"), str) else None

        logger.info(f"Extracted {len(page_texts)} PDF pages")
        return ExtractedDocument(
            title=title.strip(),
            full_text=clean_pdf_text("\n\n".join(page_texts)),
            source_format="pdf",
            author=author or None,
        )

    def _toc_titles(self, entries, toc_map: Dict[str, str]):
        """Flatten an ebooklib TOC into {href without fragment: title}"""
        for entry in entries:
            if isinstance(entry, tuple) and len(entry) > 1:
                section, children = entry[0], entry[1]
                if getattr(section, 'href', None) and section.title:
                    toc_map.setdefault(section.href.split('#')[0], section.title.strip())
                self._toc_titles(children, toc_map)
            elif isinstance(entry, list): self._toc_titles(entry, toc_map)
            elif hasattr(entry, 'title') and hasattr(entry, 'href') and entry.href and entry.title:
                toc_map.setdefault(entry.href.split('#')[0], entry.title.strip())

    def extract_epub(self, file_path: str) -> ExtractedDocument:
        book = epub.read_epub(file_path)

        titles = book.get_metadata('DC', 'title')
        creators = book.get_metadata('DC', 'creator')
        title = titles[0][0] if titles and titles[0][0] else title_from_filename(file_path)
        author = creators[0][0] if creators else None

        toc_map: Dict[str, str] = {}
        if book.toc: self._toc_titles(book.toc, toc_map)

        chapters = []
        for spine_id in book.spine:
            if isinstance(spine_id, tuple): spine_id = spine_id[0]
            item = book.get_item_with_id(spine_id)
            if not item or item.get_type() != ebooklib.ITEM_DOCUMENT: continue

            html_content = item.get_content().decode('utf-8', errors='replace')
            text = html_to_text(html_content)
            if len(text) < MIN_EPUB_ITEM_CHARS: continue

            chapter_title = (toc_map.get(item.get_name())
                             or toc_map.get(os.path.basename(item.get_name()))
                             or html_title(html_content)
                             or f"Chapter {len(chapters) + 1}")
            chapters.append(DetectedChapter(title=chapter_title, text=text, word_count=count_words(text)))

        if not chapters: raise BookParsingException("Could not extract any readable content from EPUB")

        logger.info(f"Extracted {len(chapters)} chapters from EPUB spine")
        return ExtractedDocument(
            title=title,
            full_text="\n\n".join(chapter.text for chapter in chapters),
            source_format="epub",
            author=author,
            chapters=chapters,
        )

text_extraction_util = TextExtractionUtil()
