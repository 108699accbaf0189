"""
SpeedRead Pacing Engine - RSVP play/pause/seek state machine with adaptive word timing
"""
import asyncio
import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence
from speedread.core.config import settings
from speedread.services.tokenizer import alphanumeric_length, ends_sentence, strip_non_alphanumeric

logger = logging.getLogger(__name__)

# (max alphanumeric length, display time multiplier)
LENGTH_MULTIPLIERS = [(6, 1.00), (8, 1.10), (10, 1.22), (12, 1.38), (14, 1.60), (16, 1.85)]
LONGEST_WORD_MULTIPLIER = 2.15
STEEPEN_MIN_LENGTH = 9
STEEPEN_BASE_WPM = 300
STEEPEN_WPM_RANGE = 500
STEEPEN_FACTOR = 0.25
MAX_DELAY_MULTIPLIER = 2.2
SENTENCE_PAUSE = 1.3
GROUP_EFFICIENCY = 0.85
GROUP_SENTENCE_PAUSE = 1.2

OPENING_QUOTE = re.compile(r'^["\'“‘«]')
GROUP_END = re.compile(r'[.!?]["\'”’»]?$|["\'”’»]$')

class TimerHandle(Protocol):
    def cancel(self) -> Any: ...

class Scheduler(Protocol):
    """One-shot delayed callbacks; an asyncio event loop satisfies this"""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...

class AsyncioScheduler:
    """Scheduler backed by the given or the currently running asyncio loop"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)

class ReaderEvent(str, Enum):
    WORD_CHANGED = "word_changed"
    PROGRESS_CHANGED = "progress_changed"
    PLAY_STATE_CHANGED = "play_state_changed"
    GROUPING_CHANGED = "grouping_changed"
    COMPLETED = "completed"

@dataclass(frozen=True)
class WordParts:
    """Display unit split around its focal letter"""
    before: str
    focus: str
    after: str

    @property
    def text(self) -> str:
        return f"{self.before}{self.focus}{self.after}"

@dataclass(frozen=True)
class WordGroup:
    text: str
    word_count: int

@dataclass(frozen=True)
class PacingState:
    current_index: int
    total_words: int
    wpm: int
    is_playing: bool
    grouping_enabled: bool
    progress: float

@dataclass(frozen=True)
class Frame:
    """One upcoming display unit of a preview"""
    index: int
    word_count: int
    text: str
    parts: WordParts
    delay_ms: float
    progress: float

def orp_index(clean_word: str) -> int:
    """Optimal recognition point over an alphanumeric-only word"""
    if len(clean_word) <= 1: return 0
    return (len(clean_word) - 1) // 2

def word_parts(word: str) -> WordParts:
    """
    Split a word at its focal letter
    Args:
        word: Word as displayed, punctuation included
    Returns:
        before + focus + after reconstructs the word exactly
    """
    if not word: return WordParts("", "", "")

    target = orp_index(strip_non_alphanumeric(word))
    actual_index = 0
    alnum_seen = 0
    for i, char in enumerate(word):
        if char.isalnum():
            if alnum_seen == target:
                actual_index = i
                break
            alnum_seen += 1

    return WordParts(word[:actual_index], word[actual_index], word[actual_index + 1:])

def group_parts(text: str) -> WordParts:
    """Split a multi-word group at the alphanumeric character nearest its midpoint"""
    if not text: return WordParts("", "", "")

    center = len(text) // 2
    focus_index = center
    for offset in range(len(text) + 1):
        if center - offset >= 0 and text[center - offset].isalnum():
            focus_index = center - offset
            break
        if center + offset < len(text) and text[center + offset].isalnum():
            focus_index = center + offset
            break

    return WordParts(text[:focus_index], text[focus_index], text[focus_index + 1:])

def length_multiplier(length: int, wpm: int) -> float:
    """Display time multiplier for a word of the given alphanumeric length"""
    multiplier = LONGEST_WORD_MULTIPLIER
    for max_length, tier_multiplier in LENGTH_MULTIPLIERS:
        if length <= max_length:
            multiplier = tier_multiplier
            break

    # long words get relatively more time at high speed
    if length >= STEEPEN_MIN_LENGTH:
        steepness = max(0.0, min((wpm - STEEPEN_BASE_WPM) / STEEPEN_WPM_RANGE, 1.0))
        multiplier = 1 + (multiplier - 1) * (1 + STEEPEN_FACTOR * steepness)

    return multiplier

def word_delay(word: str, wpm: int) -> float:
    """
    Milliseconds to display a single word
    Args:
        word: Word as displayed
        wpm: Target words per minute
    Returns:
        Base duration scaled by word length, capped, and extended after sentence ends
    """
    base_ms = 60000 / wpm
    delay_ms = min(base_ms * length_multiplier(alphanumeric_length(word), wpm), base_ms * MAX_DELAY_MULTIPLIER)

    if ends_sentence(word): return delay_ms * SENTENCE_PAUSE
    return delay_ms

def group_delay(text: str, word_count: int, wpm: int) -> float:
    """Milliseconds to display a word group"""
    group_ms = (60000 / wpm) * word_count * GROUP_EFFICIENCY

    if ends_sentence(text): return group_ms * GROUP_SENTENCE_PAUSE
    return group_ms

class PacingEngine:
    """
    RSVP reader for one chapter's word sequence.

    States: idle (no words), paused, playing. Playing arms a single one-shot
    timer through the scheduler; each firing advances by one word (or one
    group) and re-arms with the duration of the new display unit. Reaching the
    last word pauses and emits COMPLETED. All index operations clamp.

    Events are delivered synchronously, word before progress before play
    state, before the triggering call returns. The engine must be driven from
    the same thread or event loop as its scheduler.
    """

    def __init__(
            self,
            scheduler: Optional[Scheduler] = None,
            wpm: Optional[int] = None,
            min_wpm: Optional[int] = None,
            max_wpm: Optional[int] = None,
            wpm_step: Optional[int] = None,
            grouping_enabled: bool = False,
            min_group_chars: Optional[int] = None,
            max_group_chars: Optional[int] = None,
            max_group_words: Optional[int] = None
    ):
        self.scheduler = scheduler or AsyncioScheduler()
        self.min_wpm = min_wpm or settings.MIN_WPM
        self.max_wpm = max_wpm or settings.MAX_WPM
        self.wpm_step = wpm_step or settings.WPM_STEP
        self.min_group_chars = min_group_chars or settings.MIN_GROUP_CHARS
        self.max_group_chars = max_group_chars or settings.MAX_GROUP_CHARS
        self.max_group_words = max_group_words or settings.MAX_GROUP_WORDS

        self.words: List[str] = []
        self.current_index = 0
        self.wpm = self._clamp_wpm(wpm or settings.DEFAULT_WPM)
        self.is_playing = False
        self.grouping_enabled = grouping_enabled

        self._timer: Optional[TimerHandle] = None
        self._generation = 0
        self._subscribers: Dict[ReaderEvent, List[Callable[[Any], None]]] = {event: [] for event in ReaderEvent}

    # events

    def subscribe(self, event: ReaderEvent, callback: Callable[[Any], None]) -> Callable[[], None]:
        """
        Register a callback for an engine event
        Args:
            event: Event to observe
            callback: Called with the event payload (WordParts, progress fraction, bool, or None)
        Returns:
            Function that removes the subscription
        """
        self._subscribers[event].append(callback)

        def unsubscribe():
            if callback in self._subscribers[event]: self._subscribers[event].remove(callback)

        return unsubscribe

    def _emit(self, event: ReaderEvent, payload: Any = None):
        for callback in list(self._subscribers[event]): callback(payload)

    # observable state

    @property
    def total_words(self) -> int:
        return len(self.words)

    @property
    def current_word(self) -> str:
        if 0 <= self.current_index < len(self.words): return self.words[self.current_index]
        return ""

    @property
    def progress(self) -> float:
        """Fraction of the chapter read, 0 for sequences of one word or fewer"""
        return self._progress_at(self.current_index)

    @property
    def has_pending_advance(self) -> bool:
        return self._timer is not None

    def _progress_at(self, index: int) -> float:
        if len(self.words) <= 1: return 0.0
        return index / (len(self.words) - 1)

    def state(self) -> PacingState:
        return PacingState(
            current_index=self.current_index,
            total_words=len(self.words),
            wpm=self.wpm,
            is_playing=self.is_playing,
            grouping_enabled=self.grouping_enabled,
            progress=self.progress,
        )

    # loading and play state

    def load_words(self, words: Sequence[str], start_index: int = 0):
        """
        Replace the word sequence; always leaves the engine paused
        Args:
            words: Chapter words in reading order
            start_index: Initial position, clamped to the sequence
        """
        self._cancel_timer()
        was_playing = self.is_playing
        self.is_playing = False
        self.words = list(words)
        self.current_index = self._clamp_index(start_index)
        self._update_display()
        if was_playing: self._emit(ReaderEvent.PLAY_STATE_CHANGED, False)

    def play(self):
        if self.is_playing or not self.words: return

        if self.current_index >= len(self.words) - 1:
            self.current_index = 0
            self._update_display()

        self.is_playing = True
        self._emit(ReaderEvent.PLAY_STATE_CHANGED, True)
        self._schedule_next()

    def pause(self):
        self._cancel_timer()
        if not self.is_playing: return

        self.is_playing = False
        self._emit(ReaderEvent.PLAY_STATE_CHANGED, False)

    def toggle(self):
        if self.is_playing: self.pause()
        else: self.play()

    def close(self):
        """Tear down the session: disarm the timer, pause, drop subscribers"""
        self.pause()
        for callbacks in self._subscribers.values(): callbacks.clear()

    # navigation

    def seek_to(self, index: int):
        """Move to a word index, clamped; a pending advance stays armed"""
        if not self.words: return
        self.current_index = self._clamp_index(index)
        self._update_display()

    def jump_forward(self, percent: Optional[float] = None):
        if not self.words: return
        self.seek_to(self.current_index + self._jump_size(percent))

    def jump_backward(self, percent: Optional[float] = None):
        if not self.words: return
        self.seek_to(self.current_index - self._jump_size(percent))

    def rewind_by_words(self, count: int):
        if not self.words: return
        self.seek_to(self.current_index - max(0, count))

    def go_back(self):
        if self.current_index > 0: self.seek_to(self.current_index - 1)

    def restart(self):
        """Pause and return to the first word"""
        self.pause()
        self.seek_to(0)

    def _jump_size(self, percent: Optional[float]) -> int:
        if percent is None: percent = settings.JUMP_PERCENT
        return math.floor(len(self.words) * percent / 100)

    def _clamp_index(self, index: int) -> int:
        if not self.words: return 0
        return max(0, min(int(index), len(self.words) - 1))

    # speed and grouping

    def set_wpm(self, wpm: int) -> int:
        """
        Set the target rate, clamped to the configured bounds
        Args:
            wpm: Words per minute
        Returns:
            Rate actually applied
        """
        self.wpm = self._clamp_wpm(wpm)
        # a pending advance was timed at the old rate
        if self.is_playing: self._schedule_next()
        return self.wpm

    def increase_wpm(self) -> int:
        return self.set_wpm(self.wpm + self.wpm_step)

    def decrease_wpm(self) -> int:
        return self.set_wpm(self.wpm - self.wpm_step)

    def _clamp_wpm(self, wpm: int) -> int:
        return max(self.min_wpm, min(int(wpm), self.max_wpm))

    def set_grouping(self, enabled: bool):
        self.grouping_enabled = bool(enabled)
        self._emit(ReaderEvent.GROUPING_CHANGED, self.grouping_enabled)
        self._update_display()

    def toggle_grouping(self) -> bool:
        self.set_grouping(not self.grouping_enabled)
        return self.grouping_enabled

    # display units

    word_parts = staticmethod(word_parts)
    group_parts = staticmethod(group_parts)

    def word_group(self, index: Optional[int] = None) -> WordGroup:
        """
        Display unit starting at index (current word by default)
        Returns:
            The single word when grouping is off, else up to max_group_words words
            greedily joined until the character budget or a sentence end is reached
        """
        index = self.current_index if index is None else index
        if not 0 <= index < len(self.words): return WordGroup("", 0)
        if not self.grouping_enabled: return WordGroup(self.words[index], 1)

        group = []
        char_count = 0
        i = index
        while i < len(self.words) and len(group) < self.max_group_words:
            word = self.words[i]
            new_char_count = char_count + (1 if group else 0) + len(word)

            if group and OPENING_QUOTE.search(word): break
            if group and new_char_count > self.max_group_chars: break

            group.append(word)
            char_count = new_char_count
            i += 1

            if GROUP_END.search(word): break
            if char_count >= self.min_group_chars: break

        return WordGroup(' '.join(group), len(group))

    def current_parts(self) -> WordParts:
        if self.grouping_enabled: return group_parts(self.word_group().text)
        return word_parts(self.current_word)

    def delay(self, word: str) -> float:
        """Milliseconds to display a single word at the current rate"""
        return word_delay(word, self.wpm)

    def group_delay(self, text: str, word_count: int) -> float:
        """Milliseconds to display a word group at the current rate"""
        return group_delay(text, word_count, self.wpm)

    def current_delay(self) -> float:
        if self.grouping_enabled:
            group = self.word_group()
            return self.group_delay(group.text, group.word_count)
        return self.delay(self.current_word)

    def preview(self, count: int, start_index: Optional[int] = None) -> List[Frame]:
        """
        Walk upcoming display units without changing engine state
        Args:
            count: Maximum number of frames
            start_index: Where to start, defaults to the current index
        Returns:
            Frames with focal split, duration and progress
        """
        if not self.words: return []

        frames = []
        index = self.current_index if start_index is None else self._clamp_index(start_index)
        while len(frames) < count and index < len(self.words):
            group = self.word_group(index)
            if self.grouping_enabled:
                parts = group_parts(group.text)
                delay_ms = self.group_delay(group.text, group.word_count)
            else:
                parts = word_parts(group.text)
                delay_ms = self.delay(group.text)

            frames.append(Frame(
                index=index,
                word_count=group.word_count,
                text=group.text,
                parts=parts,
                delay_ms=delay_ms,
                progress=self._progress_at(index),
            ))
            index += max(1, group.word_count)

        return frames

    # timing

    def advance(self):
        """Step to the next display unit; at the last word, pause and complete"""
        if not self.words: return

        if self.current_index >= len(self.words) - 1:
            self.pause()
            logger.debug("Reached end of word sequence")
            self._emit(ReaderEvent.COMPLETED)
            return

        advance_by = self.word_group().word_count if self.grouping_enabled else 1
        self.current_index = min(self.current_index + max(1, advance_by), len(self.words) - 1)
        self._update_display()

        if self.is_playing: self._schedule_next()

    def _schedule_next(self):
        self._cancel_timer()
        if not self.is_playing or not self.words: return

        delay_ms = self.current_delay()
        self._timer = self.scheduler.call_later(delay_ms / 1000.0, partial(self._on_timer, self._generation))

    def _on_timer(self, generation: int):
        # a callback from a cancelled timer must never advance
        if generation != self._generation or not self.is_playing: return
        self._timer = None
        self.advance()

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._generation += 1

    def _update_display(self):
        self._emit(ReaderEvent.WORD_CHANGED, self.current_parts())
        self._emit(ReaderEvent.PROGRESS_CHANGED, self.progress)
