"""
Model Output Cleaning

Chat models like to open with "Sure! Here is the summary:" and similar
lead-ins. Every backend runs its raw output through `clean_model_output`:

- If the text already contains one of the section marker emojis, only the text
  before the first marker is inspected, and only known lead-ins are removed
  from it. Everything from the first marker on is returned untouched.
- Otherwise the lead-in patterns (English, German, Chinese) are applied to the
  start of the text until nothing more matches.
"""
import re
from typing import List, Optional, Pattern

# Leading glyphs of the section headers the final prompts ask for
STRUCTURE_MARKERS = ("🎯", "🎙", "📝", "🔑", "💡", "🔄", "🎧", "🔍", "📈", "🌐", "📋", "📊")

_FLAGS = re.IGNORECASE

LEAD_IN_PATTERNS: List[Pattern] = [
    # English
    re.compile(r"^(?:okay|sure|of course|certainly|alright|absolutely)\b[,!.]?\s*", _FLAGS),
    re.compile(r"^(?:here'?s|here is|here are|below is|the following is|this is)[^\n]{0,120}?[:：]\s*", _FLAGS),
    re.compile(r"^(?:I'?ll|I will|let me|allow me to|I can|I would|I am going to|I'?ve structured)\b[^\n]{0,160}?(?:summary|summarize|breakdown|analysis|translation)[^\n]{0,80}?[:：.]\s*", _FLAGS),
    re.compile(r"^(?:based on|according to)\b[^\n]{0,120}?,\s*", _FLAGS),
    re.compile(r"^I understand\b[^\n]*?[.!]\s*", _FLAGS),
    re.compile(r"^(?:as requested|following your|in response to)\b[^\n]{0,120}?[:：,]\s*", _FLAGS),
    # German
    re.compile(r"^(?:sicher|natürlich|gewiss|in ordnung)\b[,!.]?\s*", _FLAGS),
    re.compile(r"^(?:hier ist|hier sind|im folgenden|folgendes|dies ist)[^\n]{0,120}?[:：]\s*", _FLAGS),
    re.compile(r"^(?:ich werde|lass mich|ich kann|ich würde|ich möchte|ich helfe)\b[^\n]{0,160}?(?:zusammenfassung|übersetzung|analyse)[^\n]{0,80}?[:：.]\s*", _FLAGS),
    re.compile(r"^(?:basierend auf|laut|gemäß)\b[^\n]{0,120}?,\s*", _FLAGS),
    re.compile(r"^ich verstehe\b[^\n]*?[.!]\s*", _FLAGS),
    re.compile(r"^(?:wie gewünscht|entsprechend ihrer|als antwort auf)\b[^\n]{0,120}?[:：,]\s*", _FLAGS),
    # Chinese
    re.compile(r"^(?:好的|当然|确实)[,，!！。]?\s*"),
    re.compile(r"^(?:以下是|这是|下面是)[^\n]{0,60}?[:：]\s*"),
    re.compile(r"^(?:我将|我会|让我|我能|我想|请允许我|我已经整理)[^\n]{0,80}?(?:摘要|总结|翻译|分析)[^\n]{0,40}?[:：。]\s*"),
    re.compile(r"^(?:基于|根据|按照)[^\n]{0,60}?[,，]\s*"),
    re.compile(r"^我理解[^\n]*?[.!。！]\s*"),
    re.compile(r"^(?:根据您的要求|按照您的|作为对)[^\n]{0,60}?[:：,，]\s*"),
]

_MAX_PASSES = 5


def find_first_marker(text: str) -> Optional[int]:
    """Index of the first structure marker in the text, or None"""
    positions = [text.find(marker) for marker in STRUCTURE_MARKERS]
    positions = [p for p in positions if p >= 0]
    return min(positions) if positions else None


def strip_lead_ins(text: str) -> str:
    """Remove conversational lead-ins from the start of the text"""
    text = text.lstrip()
    for _ in range(_MAX_PASSES):
        before = text
        for pattern in LEAD_IN_PATTERNS:
            text = pattern.sub("", text, count=1).lstrip()
        if text == before:
            break
    return text


def clean_model_output(text: Optional[str]) -> str:
    """Normalize raw model output (see module docstring for the policy)"""
    if not text:
        return ""

    marker_pos = find_first_marker(text)
    if marker_pos is None:
        return strip_lead_ins(text).strip()

    prefix = strip_lead_ins(text[:marker_pos]).strip()
    body = text[marker_pos:].rstrip()
    return f"{prefix}\n\n{body}" if prefix else body


# =============================================================================
# Display titles for stored summaries
# =============================================================================

_TITLE_LABEL_RE = re.compile(r"^(?:标题|TITLE|TITEL)\s*[:：]?\s*", _FLAGS)
_LEADING_EMOJI_RE = re.compile("^[\\U0001F300-\\U0001F6FF\\u2600-\\u26FF]\\uFE0F?\\s*")


def extract_title_from_content(content: str) -> str:
    """Pull a display title out of a generated summary"""
    lines = content.split("\n")

    for line in lines:
        stripped = line.strip()
        if "TITLE:" in stripped or "TITEL:" in stripped:
            title = stripped.split(":", 1)[1].strip()
            title = _TITLE_LABEL_RE.sub("", title)
            if title:
                return title

    for line in lines:
        if line.strip():
            clean = _LEADING_EMOJI_RE.sub("", line.strip())
            return _TITLE_LABEL_RE.sub("", clean) or "Untitled Summary"

    return "Untitled Summary"
