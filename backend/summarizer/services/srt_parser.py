"""
SRT subtitle parsing.

A block is kept only if it has a numeric index line, a
`HH:MM:SS,mmm --> HH:MM:SS,mmm` timestamp line and at least one text line.
Anything else is skipped.
"""
import re
from dataclasses import dataclass
from typing import List

_BLOCK_SPLIT_RE = re.compile(r"\r?\n\r?\n")
_LINE_SPLIT_RE = re.compile(r"\r?\n")
_TIMESTAMP_RE = re.compile(r"(\d{2}:\d{2}:\d{2},\d{3}) --> (\d{2}:\d{2}:\d{2},\d{3})")


@dataclass
class SubtitleEntry:
    index: int
    start_time: str
    end_time: str
    text: str


def parse_srt(content: str) -> List[SubtitleEntry]:
    """Parse SRT content into entries, in file order"""
    entries = []

    # Editors often save SRT with a UTF-8 BOM
    content = content.lstrip("\ufeff").strip()
    if not content:
        return entries

    for block in _BLOCK_SPLIT_RE.split(content):
        lines = _LINE_SPLIT_RE.split(block.strip("\r\n"))
        if len(lines) < 3:
            continue

        try:
            index = int(lines[0].strip())
        except ValueError:
            continue

        match = _TIMESTAMP_RE.search(lines[1])
        if not match:
            continue

        text = " ".join(line.strip() for line in lines[2:]).strip()
        entries.append(SubtitleEntry(
            index=index,
            start_time=match.group(1),
            end_time=match.group(2),
            text=text
        ))

    return entries


def srt_to_text(content: str) -> str:
    """Flatten SRT content into plain text joined by single spaces"""
    return " ".join(entry.text for entry in parse_srt(content))
