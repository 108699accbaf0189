"""
SpeedRead Tokenizer - whitespace word splitting shared by detection and pacing
"""
import re
from typing import List

SENTENCE_END = re.compile(r'[.!?]$')

def split_words(text: str) -> List[str]:
    """
    Split text into whitespace-delimited word tokens
    Args:
        text: Raw text
    Returns:
        Words in reading order, never containing empty strings
    """
    if not text: return []
    return text.split()

def count_words(text: str) -> int:
    """Count whitespace-delimited words in text"""
    return len(split_words(text))

def strip_non_alphanumeric(word: str) -> str:
    """Keep only the letters and digits of a word"""
    return ''.join(char for char in word if char.isalnum())

def alphanumeric_length(word: str) -> int:
    """Number of letters and digits in a word"""
    return sum(1 for char in word if char.isalnum())

def ends_sentence(text: str) -> bool:
    """True when text ends in . ! or ?"""
    return bool(SENTENCE_END.search(text))
