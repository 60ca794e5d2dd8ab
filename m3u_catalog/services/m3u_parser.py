"""
M3U Parser Service.
Parses extended M3U playlist text into channel records.
"""
import re
from pathlib import Path
import logging

from m3u_catalog.errors import LineParseError
from m3u_catalog.models.catalog import ChannelRecord

logger = logging.getLogger(__name__)

EXTINF_MARKER = "#EXTINF:"
DEFAULT_TITLE = "Canal Desconhecido"

# Optional duration right after the marker, the rest carries attributes and the title
EXTINF_PATTERN = re.compile(r'^#EXTINF:\s*(-?\d+(?:\.\d+)?)?(.*)$', re.IGNORECASE)
ATTRIBUTE_PATTERN = re.compile(r'([\w-]+)\s*=\s*"([^"]*)"')


class M3UParser:
    """Parse extended M3U playlists."""

    def __init__(self):
        self.errors: list[LineParseError] = []

    def parse_text(self, content: str) -> list[ChannelRecord]:
        """
        Parse playlist text into channel records.

        A metadata line opens a pending record and the next non-comment line
        completes it with the stream URL. Bad metadata lines are logged and
        skipped without aborting the parse.

        Args:
            content: Raw playlist text

        Returns:
            Records in input order
        """
        self.errors = []
        records = []
        pending = None

        for line_number, raw_line in enumerate(content.splitlines(), start=1):
            line = raw_line.strip().lstrip("\ufeff")

            if line.upper().startswith(EXTINF_MARKER):
                try:
                    pending = self._parse_extinf(line, line_number)
                except LineParseError as e:
                    logger.warning(f"Skipping malformed playlist line {e.line_number}: {e.reason}")
                    self.errors.append(e)
                    pending = None

            elif line and not line.startswith('#') and pending:
                # This is the URL line
                records.append(ChannelRecord(url=line, **pending))
                pending = None

        logger.info(f"Parsed {len(records)} playlist entries ({len(self.errors)} malformed lines)")
        return records

    def parse_file(self, filepath: str | Path) -> list[ChannelRecord]:
        """Parse a playlist file from disk."""
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"M3U file not found: {filepath}")

        logger.info(f"Parsing M3U file: {filepath}")
        with open(filepath, 'r', encoding='utf-8', errors='ignore') as f:
            return self.parse_text(f.read())

    def _parse_extinf(self, line: str, line_number: int) -> dict:
        """Extract title, group and logo from an EXTINF line."""
        rest = EXTINF_PATTERN.match(line).group(2)
        attribute_text, trailing = self._split_title(rest, line_number, line)

        attributes = {}
        for attr in ATTRIBUTE_PATTERN.finditer(attribute_text):
            attributes[attr.group(1).lower()] = attr.group(2).strip()

        return {
            'title': trailing.strip() or attributes.get('tvg-name') or DEFAULT_TITLE,
            'group_raw': attributes.get('group-title', ''),
            'logo': attributes.get('tvg-logo', ''),
        }

    @staticmethod
    def _split_title(rest: str, line_number: int, line: str) -> tuple[str, str]:
        """Split at the first comma outside attribute quotes."""
        in_quotes = False
        for index, char in enumerate(rest):
            if char == '"':
                in_quotes = not in_quotes
            elif char == ',' and not in_quotes:
                return rest[:index], rest[index + 1:]

        if in_quotes:
            raise LineParseError(line_number, line, "unterminated attribute quote")
        return rest, ''


def parse_playlist(content: str) -> list[ChannelRecord]:
    """Parse playlist text with a fresh parser."""
    return M3UParser().parse_text(content)
