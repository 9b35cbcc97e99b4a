"""
Right-to-left text helpers for the PDF canvas.

ReportLab draws glyphs strictly left to right, so logical (typed) order has
to be turned into visual order before drawing. Two strategies exist:

- "bidi": python-bidi's implementation of the Unicode bidirectional
  algorithm with a right-to-left paragraph direction. Preferred.
- "reverse": split into Hebrew / non-Hebrew runs, reverse each Hebrew run
  and then the order of the runs. Mixed numerals and punctuation next to
  Hebrew can come out misplaced; it only exists for substrates without bidi.

Wrapping always happens on logical text, one line at a time, so each
visual line reads right to left and lines flow top to bottom.
"""

import re
from typing import Callable, List

from bidi.algorithm import get_display

BIDI = "bidi"
REVERSE = "reverse"
STRATEGIES = (BIDI, REVERSE)

HEBREW_PATTERN = re.compile(r"[\u0590-\u05FF]")


def contains_rtl(text: str) -> bool:
    return bool(HEBREW_PATTERN.search(text or ""))


def split_runs(text: str) -> List[str]:
    """Splits text into alternating Hebrew / non-Hebrew runs; spaces stick to the current run."""
    runs: List[str] = []
    current = ""
    current_is_hebrew = False
    for char in text:
        is_hebrew = bool(HEBREW_PATTERN.match(char))
        if not current:
            current = char
            current_is_hebrew = is_hebrew
        elif is_hebrew == current_is_hebrew or char == " ":
            current += char
        else:
            runs.append(current)
            current = char
            current_is_hebrew = is_hebrew
    if current:
        runs.append(current)
    return runs


def reverse_runs(text: str) -> str:
    if not contains_rtl(text):
        return text
    runs = [run[::-1] if contains_rtl(run) else run for run in split_runs(text)]
    return "".join(reversed(runs))


def bidi_display(text: str) -> str:
    if not text:
        return text
    return get_display(text, base_dir="R")


def to_visual(text: str, strategy: str = BIDI) -> str:
    """Converts one logical line into the order it must be drawn in."""
    if strategy == BIDI:
        return bidi_display(text)
    if strategy == REVERSE:
        return reverse_runs(text)
    raise ValueError(f"Unknown RTL strategy: {strategy}")


def _split_long_word(word: str, max_width: float, measure: Callable[[str], float]) -> List[str]:
    pieces = []
    current = ""
    for char in word:
        if current and measure(current + char) > max_width:
            pieces.append(current)
            current = char
        else:
            current += char
    if current:
        pieces.append(current)
    return pieces


def wrap_paragraph(paragraph: str, max_width: float, measure: Callable[[str], float]) -> List[str]:
    lines: List[str] = []
    current = ""
    for word in paragraph.split():
        candidate = f"{current} {word}" if current else word
        if measure(candidate) <= max_width:
            current = candidate
            continue
        if current:
            lines.append(current)
        if measure(word) > max_width:
            *full, current = _split_long_word(word, max_width, measure)
            lines.extend(full)
        else:
            current = word
    if current:
        lines.append(current)
    return lines


def wrap_text(text: str, max_width: float, measure: Callable[[str], float]) -> List[str]:
    """
    Wraps multi-paragraph text into logical lines no wider than max_width.

    Blank lines survive as empty strings so callers can render paragraph gaps.
    """
    if not text:
        return []
    lines: List[str] = []
    for raw_line in text.replace("\r\n", "\n").strip("\n").split("\n"):
        if not raw_line.strip():
            lines.append("")
            continue
        lines.extend(wrap_paragraph(raw_line.strip(), max_width, measure))
    return lines
