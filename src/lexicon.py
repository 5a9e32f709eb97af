# File: lexicon.py
# Pronunciation lexicon: grapheme -> phoneme sequence, loaded once from a word list.

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple, Union

from errors import LexiconFormatError, LexiconIOError

logger = logging.getLogger(__name__)

_RE_WHITESPACE = re.compile(r"\s+")
_COMMENT_PREFIX = ";;;"


@dataclass(frozen=True)
class Sound:
    """An ordered phoneme sequence. The grapheme label is for display only."""

    phonemes: Tuple[str, ...]
    grapheme: Optional[str] = field(default=None, compare=False)

    @classmethod
    def parse(cls, raw: str, grapheme: Optional[str] = None) -> "Sound":
        return cls(tuple(raw.split()), grapheme)

    def __iter__(self) -> Iterator[str]:
        return iter(self.phonemes)

    def __len__(self) -> int:
        return len(self.phonemes)

    def __str__(self) -> str:
        return " ".join(self.phonemes)


@dataclass(frozen=True)
class LexiconStats:
    source: str
    lines_read: int = 0
    entries: int = 0
    duplicates_skipped: int = 0
    comments_skipped: int = 0


class Lexicon:
    """
    Read-only mapping from lowercased grapheme to Sound.

    Duplicate graphemes keep the first definition seen. Build with
    Lexicon.build(path) or Lexicon.from_lines(lines).
    """

    def __init__(self, entries: Mapping[str, Sound], stats: Optional[LexiconStats] = None):
        self._entries = MappingProxyType(dict(entries))
        self.stats = stats or LexiconStats(source="<memory>", entries=len(self._entries))

    @classmethod
    def from_lines(cls, lines: Iterable[str], source: str = "<memory>") -> "Lexicon":
        """
        Parse '<grapheme> <phoneme-1 phoneme-2 ...>' lines.

        Raises:
            LexiconFormatError: a non-blank line has fewer than two fields.
        """
        entries: Dict[str, Sound] = {}
        lines_read = 0
        duplicates = 0
        comments = 0

        for line_number, raw_line in enumerate(lines, start=1):
            lines_read += 1
            line = raw_line.strip()
            if not line:
                continue
            if line.startswith(_COMMENT_PREFIX):
                comments += 1
                continue

            fields = _RE_WHITESPACE.split(line, maxsplit=1)
            if len(fields) != 2:
                raise LexiconFormatError(source, line_number, line)

            word = fields[0].strip().lower()
            if word in entries:
                duplicates += 1
                logger.debug("%s:%d duplicate entry for '%s' ignored.", source, line_number, word)
                continue
            entries[word] = Sound.parse(fields[1].strip(), grapheme=fields[0].strip())

        stats = LexiconStats(
            source=source,
            lines_read=lines_read,
            entries=len(entries),
            duplicates_skipped=duplicates,
            comments_skipped=comments,
        )
        return cls(entries, stats)

    @classmethod
    def build(cls, path: Union[str, Path]) -> "Lexicon":
        """
        Load a lexicon resource file.

        Raises:
            LexiconIOError: the file cannot be opened or decoded.
            LexiconFormatError: a line is malformed.
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as lexicon_file:
                lexicon = cls.from_lines(lexicon_file, source=str(path))
        except (OSError, UnicodeDecodeError) as exc:
            raise LexiconIOError(f"Cannot read lexicon '{path}': {exc}") from exc

        logger.info(
            "Loaded lexicon '%s': %d entries from %d lines (%d duplicates skipped).",
            path,
            lexicon.stats.entries,
            lexicon.stats.lines_read,
            lexicon.stats.duplicates_skipped,
        )
        return lexicon

    def get(self, key: str) -> Optional[Sound]:
        return self._entries.get(key.lower())

    def __getitem__(self, key: str) -> Sound:
        return self._entries[key.lower()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def is_empty(self) -> bool:
        return not self._entries

    def __repr__(self) -> str:
        return f"{type(self).__name__}(source={self.stats.source!r}, entries={len(self)})"
