"""
SpeedRead Text Extraction Tests
"""
import os
import shutil
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from ebooklib import epub

from speedread.core.exceptions import BookParsingException
from speedread.services.text_extraction_utility import clean_pdf_text, html_to_text, text_extraction_util, title_from_filename

def words(count: int, prefix: str = "word") -> str:
    return " ".join(f"{prefix}{i}" for i in range(count))

def write_epub(path: str, with_toc: bool = True):
    book = epub.EpubBook()
    book.set_identifier("speedread-test-epub")
    book.set_title("Test Book")
    book.set_language("en")
    book.add_author("Test Author")

    cover = epub.EpubHtml(title="Cover", file_name="cover.xhtml", lang="en")
    cover.content = "<p>Copyright 2024</p>"
    first = epub.EpubHtml(title="The Start", file_name="chap_01.xhtml", lang="en")
    first.content = f"<h1>The Start</h1>\n<p>{words(60)}</p>"
    second = epub.EpubHtml(title="The End", file_name="chap_02.xhtml", lang="en")
    second.content = f"<h2>Closing</h2>\n<p>{words(40, 'end')}</p>\n<script>var x = 1;</script>"

    for item in (cover, first, second): book.add_item(item)

    if with_toc:
        book.toc = (
            epub.Link("chap_01.xhtml", "The Start", "start"),
            epub.Link("chap_02.xhtml#part", "The End", "end"),
        )
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = ["nav", cover, first, second]

    epub.write_epub(path, book)

class TestTextExtraction(unittest.TestCase):
    """txt, pdf and epub extraction"""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def path(self, name: str) -> str:
        return os.path.join(self.test_dir, name)

    def test_title_from_filename(self):
        self.assertEqual(title_from_filename("/books/war_and-peace.pdf"), "war and peace")
        self.assertEqual(title_from_filename("/books/___.txt"), "Untitled")

    def test_clean_pdf_text(self):
        self.assertEqual(clean_pdf_text("Hello , world  !\n\n\n\n\nNext   page"), "Hello, world!\n\n\nNext page")
        self.assertEqual(clean_pdf_text("  one\n   \ntwo  "), "one\n\ntwo")

    def test_html_to_text(self):
        html = ('<?xml version="1.0"?><html><head><title>Skip</title></head><body>'
                '<nav>Contents</nav><p>Hello\n   there</p><script>alert(1)</script></body></html>')
        self.assertEqual(html_to_text(html), "Hello there")

    def test_extract_txt(self):
        with open(self.path("my_great-book.txt"), "w", encoding="utf-8") as f: f.write("\nHello\r\nworld\r\n\n")

        document = text_extraction_util.extract(self.path("my_great-book.txt"))

        self.assertEqual(document.title, "my great book")
        self.assertEqual(document.full_text, "Hello\nworld")
        self.assertEqual(document.source_format, "txt")
        self.assertIsNone(document.chapters)

    def test_extract_pdf(self):
        with open(self.path("scan.pdf"), "wb") as f: f.write(b"%PDF-1.4")

        mock_pdf = MagicMock()
        mock_pdf.__enter__.return_value = mock_pdf
        mock_pdf.pages = [
            MagicMock(**{"extract_text.return_value": "First page  text ."}),
            MagicMock(**{"extract_text.return_value": None}),
            MagicMock(**{"extract_text.return_value": "Second page"}),
        ]
        mock_pdf.metadata = {"Title": " Sample Title ", "Author": "A. Writer"}

        with patch("speedread.services.text_extraction_utility.pdfplumber.open", return_value=mock_pdf) as mock_open:
            document = text_extraction_util.extract(self.path("scan.pdf"))
            mock_open.assert_called_once_with(self.path("scan.pdf"))

        self.assertEqual(document.title, "Sample Title")
        self.assertEqual(document.author, "A. Writer")
        self.assertEqual(document.full_text, "First page text.\n\n\nSecond page")
        self.assertIsNone(document.chapters)

    def test_pdf_without_metadata_uses_filename(self):
        with open(self.path("field_notes.pdf"), "wb") as f: f.write(b"%PDF-1.4")

        mock_pdf = MagicMock()
        mock_pdf.__enter__.return_value = mock_pdf
        mock_pdf.pages = [MagicMock(**{"extract_text.return_value": "Some text"})]
        mock_pdf.metadata = {}

        with patch("speedread.services.text_extraction_utility.pdfplumber.open", return_value=mock_pdf):
            document = text_extraction_util.extract(self.path("field_notes.pdf"))

        self.assertEqual((document.title, document.author), ("field notes", None))

    def test_extract_epub(self):
        write_epub(self.path("test_book.epub"))

        document = text_extraction_util.extract(self.path("test_book.epub"))

        self.assertEqual(document.title, "Test Book")
        self.assertEqual(document.author, "Test Author")
        self.assertEqual(document.source_format, "epub")
        self.assertEqual([chapter.title for chapter in document.chapters], ["The Start", "The End"])
        self.assertEqual([chapter.word_count for chapter in document.chapters], [62, 41])
        self.assertTrue(document.chapters[0].text.startswith("The Start word0"))
        self.assertNotIn("var x", document.full_text)

    def test_epub_without_toc_uses_headings(self):
        write_epub(self.path("untitled.epub"), with_toc=False)

        document = text_extraction_util.extract(self.path("untitled.epub"))
        self.assertEqual([chapter.title for chapter in document.chapters], ["The Start", "Closing"])

    def test_corrupt_epub(self):
        with open(self.path("broken.epub"), "wb") as f: f.write(b"not a zip archive")

        with self.assertRaises(BookParsingException):
            text_extraction_util.extract(self.path("broken.epub"))

    def test_unsupported_and_missing_files(self):
        with open(self.path("notes.docx"), "wb") as f: f.write(b"PK")

        with self.assertRaises(BookParsingException):
            text_extraction_util.extract(self.path("notes.docx"))
        with self.assertRaises(BookParsingException):
            text_extraction_util.extract(self.path("missing.txt"))

if __name__ == "__main__":
    unittest.main()
