"""Content classification for settled clipboard payloads.

Checks run in a fixed order and the first match wins:
image, file, url, log, prompt, code, text.  Prompt runs before code so that
requests for code which quote a snippet land with the prompts.
"""

import re

from clipsift.models import Category, ClipboardPayload

URL_PREFIXES = (
    "http://",
    "https://",
    "ftp://",
    "ftps://",
    "file://",
    "mailto:",
    "ssh://",
    "git://",
    "ws://",
    "wss://",
)

LOG_SAMPLE_LINES = 5
LOG_MIN_LINES = 2
LOG_MATCH_RATIO = 0.4

LOG_PATTERNS: dict[str, list[re.Pattern]] = {
    "timestamp": [
        re.compile(r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}"),  # ISO-8601 / plain datetime
        re.compile(r"\b\d{2}:\d{2}:\d{2}(?:[.,]\d+)?\b"),  # time of day
        re.compile(r"^(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+\d{1,2}\s+\d{2}:\d{2}"),  # syslog
    ],
    "level": [
        re.compile(r"\[(?:ERROR|ERR|WARN|WARNING|INFO|DEBUG|TRACE|FATAL|CRITICAL|NOTICE)\]", re.IGNORECASE),
        re.compile(r"\b(?:ERROR|WARN|WARNING|INFO|DEBUG|TRACE|FATAL|CRITICAL)\b"),
    ],
    "stack_trace": [
        re.compile(r"^Traceback \(most recent call last\)"),
        re.compile(r'^\s*File ".+", line \d+'),
        re.compile(r"^\s+at\s+[\w$.<>/]+\("),  # JVM / JS frames
        re.compile(r"^[\w.]*(?:Exception|Error):"),
        re.compile(r"^Caused by:"),
    ],
    "system": [
        re.compile(r"\bkernel:"),
        re.compile(r"\bsystemd\[\d+\]"),
        re.compile(r"\bcom\.apple\.[\w.]+"),
        re.compile(r"^[VDIWEF]/[\w.-]+(?:\(\s*\d+\))?:"),  # logcat tags
    ],
}

PROMPT_MIN_SIGNALS = 3
PROMPT_WORD_RANGE = (10, 200)
PROMPT_CHAR_RANGE = (50, 1000)

PROMPT_OPENERS = frozenset({
    "how", "what", "why", "when", "where", "which", "who", "whom", "whose",
    "can", "could", "would", "should", "is", "are", "do", "does", "did", "will",
    "please", "help", "explain", "write", "create", "make", "give", "tell",
    "show", "list", "describe", "generate", "implement",
})

_INSTRUCTIVE_VERBS = re.compile(
    r"\b(?:explain|implement|fix|write|create|generate|refactor|summari[sz]e|describe"
    r"|debug|optimi[sz]e|translate|review|convert|build)\b",
    re.IGNORECASE,
)
_PROMPT_PHRASES = re.compile(
    r"\b(?:step by step|for example|act as|you are|in detail|pros and cons|best practices)\b",
    re.IGNORECASE,
)
_FIRST_WORD = re.compile(r"[A-Za-z']+")


def is_url(text: str) -> bool:
    return text.lstrip().lower().startswith(URL_PREFIXES)


def _line_looks_like_log(line: str) -> bool:
    return any(p.search(line) for patterns in LOG_PATTERNS.values() for p in patterns)


def is_log(text: str) -> bool:
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < LOG_MIN_LINES:
        return False
    sample = lines[:LOG_SAMPLE_LINES]
    matched = sum(1 for line in sample if _line_looks_like_log(line))
    return matched / len(sample) >= LOG_MATCH_RATIO


def prompt_signals(text: str) -> int:
    """Count how many prompt-like signals the text shows."""
    stripped = text.strip()
    signals = 0

    if "?" in stripped:
        signals += 1

    first = _FIRST_WORD.match(stripped)
    if first and first.group(0).lower() in PROMPT_OPENERS:
        signals += 1

    if _INSTRUCTIVE_VERBS.search(stripped):
        signals += 1

    if _PROMPT_PHRASES.search(stripped):
        signals += 1

    word_count = len(stripped.split())
    if PROMPT_WORD_RANGE[0] <= word_count <= PROMPT_WORD_RANGE[1]:
        signals += 1

    if PROMPT_CHAR_RANGE[0] <= len(stripped) <= PROMPT_CHAR_RANGE[1]:
        signals += 1

    return signals


def is_prompt(text: str) -> bool:
    return prompt_signals(text) >= PROMPT_MIN_SIGNALS


def is_code(text: str) -> bool:
    if "\n" not in text:
        return False
    return ("{" in text and "}" in text) or ("[" in text and "]" in text)


def classify_text(text: str) -> Category:
    if is_url(text):
        return Category.URL
    if is_log(text):
        return Category.LOG
    if is_prompt(text):
        return Category.PROMPT
    if is_code(text):
        return Category.CODE
    return Category.TEXT


def classify(payload: ClipboardPayload) -> Category | None:
    """Assign a category to a settled payload; None when there is nothing to classify."""
    if payload.image_bytes is not None:
        return Category.IMAGE
    if payload.file_path is not None:
        return Category.FILE
    if payload.text is not None:
        return classify_text(payload.text)
    return None
