"""
SpeedRead Chapter Detector - tiered chapter boundary detection over extracted text
"""
import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Pattern, Sequence, Tuple, Protocol
from speedread.core.config import settings
from speedread.services.tokenizer import count_words

logger = logging.getLogger(__name__)

FULL_TEXT_TITLE = "Full Text"
BEGINNING_TITLE = "Beginning"

class SectionType(str, Enum):
    """Kind of heading a pattern recognises"""
    KEYWORD = "keyword"
    CHAPTER = "chapter"
    PART = "part"
    BOOK = "book"
    SECTION = "section"
    ROMAN = "roman"

@dataclass(frozen=True)
class DetectedChapter:
    """A titled slice of the document body"""
    title: str
    text: str
    word_count: int

@dataclass(frozen=True)
class SectionBreak:
    """Absolute character position of a heading, as reported by a heading oracle"""
    position: int
    title: str

class HeadingOracle(Protocol):
    """External heading source, e.g. a local LLM"""

    async def find_section_breaks(self, text: str) -> Optional[List[SectionBreak]]: ...

# longer number words first so SIXTEEN is tried before SIX
NUMBER_WORDS_TO_TWENTY = ("THIRTEEN|FOURTEEN|FIFTEEN|SIXTEEN|SEVENTEEN|EIGHTEEN|NINETEEN|TWENTY|"
                          "ELEVEN|TWELVE|THREE|SEVEN|EIGHT|FOUR|FIVE|NINE|ONE|TWO|SIX|TEN")
NUMBER_WORDS_TO_TEN = "THREE|SEVEN|EIGHT|FOUR|FIVE|NINE|ONE|TWO|SIX|TEN"
ROMAN_TO_TWENTY = "XVIII|XVII|XIII|VIII|XVI|XIV|XIX|XII|VII|III|XX|XV|XI|IX|IV|VI|II|X|V|I"
ROMAN_TO_FIFTEEN = "I{1,3}|IV|VI{0,3}|IX|XI{0,3}|XIV|XV"

HEADING_FLAGS = re.IGNORECASE | re.MULTILINE

def _heading_pattern(label: str) -> Pattern:
    return re.compile(
        rf'^[ \t]*(?P<label>{label})[ \t]*[:.\-–—]?[ \t]*(?P<subtitle>.*?)[ \t]*$',
        HEADING_FLAGS,
    )

# evaluated in order; when two patterns match at the same position the earlier one wins
HEADING_PATTERNS: List[Tuple[Pattern, SectionType]] = [
    (_heading_pattern(r'(?:PROLOGUE|EPILOGUE|INTERLUDE|PREFACE|FOREWORD|AFTERWORD|CONCLUSION)\b'), SectionType.KEYWORD),
    (_heading_pattern(rf'CHAPTER\s+(?:{NUMBER_WORDS_TO_TWENTY}|\d+|{ROMAN_TO_TWENTY})\b'), SectionType.CHAPTER),
    (_heading_pattern(rf'PART\s+(?:{NUMBER_WORDS_TO_TEN}|\d+|{ROMAN_TO_TWENTY})\b'), SectionType.PART),
    (_heading_pattern(rf'BOOK\s+(?:\d+|{ROMAN_TO_TWENTY})\b'), SectionType.BOOK),
    (_heading_pattern(r'SECTION\s+\d+\b'), SectionType.SECTION),
    (re.compile(rf'^[ \t]*(?P<label>{ROMAN_TO_FIFTEEN})[ \t]*:[ \t]*(?P<subtitle>.*?)[ \t]*$', HEADING_FLAGS), SectionType.ROMAN),
]

LARGE_GAP = re.compile(r'\n\s*\n\s*\n+')
PAGE_BREAK = re.compile(r'\f|(?:\r?\n[-=*]{3,}\r?\n)|(?:\r?\n\s*\*\s*\*\s*\*\s*\r?\n)')
CLEAN_BEFORE_HEADING = re.compile(r'[\s.!?]$')
WORD_START = re.compile(r'\b\w')

PROLOGUE_TITLE = re.compile(r'prologue', re.IGNORECASE)
CHAPTER_ONE_TITLE = re.compile(r'\bchapter\s+(?:1|one|i)\b', re.IGNORECASE)
INTRODUCTION_TITLE = re.compile(r'introduction', re.IGNORECASE)

@dataclass(frozen=True)
class _Heading:
    start: int
    body_start: int
    title: str

def format_title(raw_title: str) -> str:
    """
    Normalise heading text to title case
    Args:
        raw_title: Heading text as matched, e.g. "PROLOGUE: THE BOY WHO STOLE TOO MUCH"
    Returns:
        Title cased heading; each side of a colon is cased independently
    """
    def title_case(value: str) -> str:
        value = ' '.join(value.split())
        return WORD_START.sub(lambda m: m.group(0).upper(), value.lower())

    parts = raw_title.split(':')
    if len(parts) >= 2:
        section_type = title_case(parts[0])
        subtitle = title_case(':'.join(parts[1:]))
        return f"{section_type}: {subtitle}" if subtitle else section_type

    return title_case(raw_title)

class ChapterDetector:
    """
    Partitions document text into chapters.

    Strategies run in tiers: heading patterns, then large blank-line gaps, then
    page-break separators. A later tier is consulted only while the current
    result has at most one chapter. Chapters under the minimum word count are
    discarded at every tier, and an empty result becomes a single "Full Text"
    chapter. The detector holds no mutable state.
    """

    def __init__(
            self,
            min_chapter_words: Optional[int] = None,
            max_heading_length: Optional[int] = None,
            leading_text_threshold: Optional[int] = None,
            gap_title_max_length: Optional[int] = None,
            oracle_timeout: Optional[float] = None
    ):
        self.min_chapter_words = min_chapter_words if min_chapter_words is not None else settings.MIN_CHAPTER_WORDS
        self.max_heading_length = max_heading_length if max_heading_length is not None else settings.MAX_HEADING_LENGTH
        self.leading_text_threshold = leading_text_threshold if leading_text_threshold is not None else settings.LEADING_TEXT_THRESHOLD
        self.gap_title_max_length = gap_title_max_length if gap_title_max_length is not None else settings.GAP_TITLE_MAX_LENGTH
        self.oracle_timeout = oracle_timeout if oracle_timeout is not None else settings.ORACLE_TIMEOUT

    def detect(self, text: str) -> List[DetectedChapter]:
        """
        Detect chapters using the built-in strategies only
        Args:
            text: Full document text
        Returns:
            Ordered chapters, never empty
        """
        text = text or ""
        chapters = self._filter(self.detect_by_patterns(text))
        tier = "heading patterns"

        for name, strategy in (("large gaps", self.detect_by_large_gaps), ("page breaks", self.detect_by_page_breaks)):
            if len(chapters) > 1: break
            chapters, tier = self._filter(strategy(text)), name

        if not chapters:
            logger.info("No chapters detected, using the full text as one chapter")
            return [self._make_chapter(FULL_TEXT_TITLE, text.strip())]

        logger.info(f"Detected {len(chapters)} chapters using {tier}")
        return chapters

    async def detect_async(self, text: str, oracle: Optional[HeadingOracle] = None) -> List[DetectedChapter]:
        """
        Detect chapters, consulting a heading oracle first when one is given.
        Oracle failure, timeout or an unusable answer falls back to detect().
        """
        text = text or ""
        if oracle is not None:
            breaks = await self._consult_oracle(text, oracle)
            if breaks:
                chapters = self.chapters_from_breaks(text, breaks)
                if chapters:
                    logger.info(f"Detected {len(chapters)} chapters using heading oracle")
                    return chapters
                logger.warning("Heading oracle breaks produced no usable chapters, using pattern detection")

        return self.detect(text)

    async def _consult_oracle(self, text: str, oracle: HeadingOracle) -> Optional[List[SectionBreak]]:
        try:
            return await asyncio.wait_for(oracle.find_section_breaks(text), timeout=self.oracle_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Heading oracle timed out after {self.oracle_timeout}s")
        except Exception as e:
            logger.warning(f"Heading oracle failed: {str(e)}")
        return None

    def detect_by_patterns(self, text: str) -> List[DetectedChapter]:
        """
        Tier 1: split on recognised heading lines
        Args:
            text: Full document text
        Returns:
            Unfiltered chapters, plus a leading "Beginning" chapter when warranted
        """
        candidates = {}
        for pattern, section_type in HEADING_PATTERNS:
            for match in pattern.finditer(text):
                if match.start() in candidates: continue
                if not self._is_heading(text, match): continue

                label = ' '.join(match.group('label').split())
                subtitle = match.group('subtitle').strip(" \t\r.-:–—")
                raw_title = f"{label}: {subtitle}" if subtitle else label
                candidates[match.start()] = (match.end(), raw_title, section_type)

        headings = []
        last_end = -1
        for start in sorted(candidates):
            end, raw_title, section_type = candidates[start]
            # a heading spanning two lines can swallow the start of another candidate
            if start < last_end: continue
            headings.append(_Heading(start=start, body_start=end, title=format_title(raw_title)))
            last_end = end
            logger.debug(f"Heading '{raw_title}' ({section_type.value}) at {start}")

        return self._chapters_from_headings(text, headings)

    def _is_heading(self, text: str, match: re.Match) -> bool:
        if len(match.group(0).strip()) >= self.max_heading_length: return False

        before = text[max(0, match.start() - 50):match.start()]
        return not before or bool(CLEAN_BEFORE_HEADING.search(before))

    def chapters_from_breaks(self, text: str, breaks: Sequence[SectionBreak]) -> List[DetectedChapter]:
        """
        Convert oracle section breaks into chapters with the tier 1 body rules
        Args:
            text: Full document text
            breaks: Heading positions and titles, possibly unordered or invalid
        Returns:
            Filtered chapters; invalid breaks are ignored
        """
        valid = {}
        for section in breaks:
            if isinstance(section, dict):
                position, title = section.get('position'), section.get('title')
            else:
                position, title = getattr(section, 'position', None), getattr(section, 'title', None)
            if isinstance(position, bool) or not isinstance(position, int) or not isinstance(title, str):
                logger.warning(f"Ignoring malformed section break: {section!r}")
                continue
            if not 0 <= position < len(text):
                logger.warning(f"Ignoring section break outside text bounds: {position}")
                continue
            valid.setdefault(position, title)

        headings = []
        for number, position in enumerate(sorted(valid), start=1):
            line_end = text.find('\n', position)
            body_start = len(text) if line_end == -1 else line_end + 1
            title = format_title(valid[position]) or f"Section {number}"
            headings.append(_Heading(start=position, body_start=body_start, title=title))

        return self._filter(self._chapters_from_headings(text, headings))

    def _chapters_from_headings(self, text: str, headings: List[_Heading]) -> List[DetectedChapter]:
        chapters = []
        for i, heading in enumerate(headings):
            end = headings[i + 1].start if i + 1 < len(headings) else len(text)
            body = text[heading.body_start:end].strip()
            chapters.append(self._make_chapter(heading.title, body))

        if headings and headings[0].start > self.leading_text_threshold:
            leading_text = text[:headings[0].start].strip()
            if count_words(leading_text) >= self.min_chapter_words:
                chapters.insert(0, self._make_chapter(BEGINNING_TITLE, leading_text))

        return chapters

    def detect_by_large_gaps(self, text: str) -> List[DetectedChapter]:
        """Tier 2: split on two or more consecutive blank lines"""
        parts = LARGE_GAP.split(text)
        if len(parts) < 2: return []

        chapters = []
        for index, part in enumerate(parts):
            trimmed = part.strip()
            first_line = trimmed.split('\n', 1)[0].strip()
            title = first_line if len(first_line) < self.gap_title_max_length else f"Section {index + 1}"
            chapters.append(self._make_chapter(title, trimmed))

        return self._filter(chapters)

    def detect_by_page_breaks(self, text: str) -> List[DetectedChapter]:
        """Tier 3: split on form feeds and separator lines"""
        parts = PAGE_BREAK.split(text)
        if len(parts) < 2: return []

        chapters = [self._make_chapter(f"Section {index + 1}", part.strip()) for index, part in enumerate(parts)]
        return self._filter(chapters)

    def _filter(self, chapters: List[DetectedChapter]) -> List[DetectedChapter]:
        return [chapter for chapter in chapters if chapter.word_count >= self.min_chapter_words]

    @staticmethod
    def _make_chapter(title: str, text: str) -> DetectedChapter:
        return DetectedChapter(title=title, text=text, word_count=count_words(text))

    @staticmethod
    def find_default_start(titles: Sequence[str], include_introduction: bool = False) -> int:
        """
        Pick the chapter a new reader should start on
        Args:
            titles: Chapter titles in order
            include_introduction: Also accept an "Introduction" chapter, used for oracle titles
        Returns:
            Index of the prologue, else chapter one, else the introduction, else 0
        """
        for index, title in enumerate(titles):
            if PROLOGUE_TITLE.search(title): return index

        for index, title in enumerate(titles):
            if CHAPTER_ONE_TITLE.search(title): return index

        if include_introduction:
            for index, title in enumerate(titles):
                if INTRODUCTION_TITLE.search(title): return index

        return 0

chapter_detector = ChapterDetector()
