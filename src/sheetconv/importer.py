"""Turn an imported file (bytes or text, plain or HTML) into a Chordsheet.

The importer never raises for bad input.  Problems come back as
human-readable strings in :attr:`ImportResult.errors` for the caller to show.

HTML pages saved from chord sites keep the chart in ``<pre>`` blocks::

    <h1>Song Title</h1>
    <pre>
    C       F
    Amazing grace how sweet the sound
    </pre>

Only those blocks are kept; a page without any falls back to its body text.
"""

import logging
from dataclasses import dataclass, field
from pathlib import PurePath

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from .classifier import parse_chordsheet
from .detect import FormatDetection, detect_format
from .models import Chordsheet

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB

SUPPORTED_EXTENSIONS = (
    ".txt",
    ".pro",
    ".chopro",
    ".cho",
    ".chordpro",
    ".crd",
    ".chord",
    ".onsong",
    ".html",
    ".htm",
)
_HTML_EXTENSIONS = (".html", ".htm")
_HTML_MARKERS = ("<!doctype html", "<html")


@dataclass
class ImportResult:
    chordsheet: Chordsheet | None = None
    content: str = ""
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    detected_format: FormatDetection | None = None

    @property
    def ok(self) -> bool:
        return self.chordsheet is not None and not self.errors


class SheetImporter:
    """Decode, sanity-check and parse imported chord-sheet files."""

    def __init__(self, max_size: int = MAX_FILE_SIZE):
        self.max_size = max_size

    def import_data(self, data: bytes | str, filename: str = "") -> ImportResult:
        result = ImportResult()
        extension = PurePath(filename).suffix.lower() if filename else ""

        if extension and extension not in SUPPORTED_EXTENSIONS:
            result.warnings.append(
                f"File extension '{extension}' is not officially supported, but will attempt to import"
            )
            logger.warning("Unrecognised file extension %s on %s", extension, filename)

        text = self._decode(data, result)
        if text is None:
            return result

        title = None
        if extension in _HTML_EXTENSIONS or text.lstrip()[:20].lower().startswith(_HTML_MARKERS):
            text, title = html_to_text(text)

        if not text.strip():
            result.errors.append("File contains no chord sheet content")
            return result

        chordsheet = parse_chordsheet(text)
        if chordsheet.title is None and title:
            chordsheet.title = title
        if not chordsheet.sections:
            result.warnings.append("No sections were found in the imported text")

        result.content = text
        result.chordsheet = chordsheet
        result.detected_format = detect_format(text)
        logger.info(
            "Imported %s as %s: %d section(s)",
            filename or "<data>",
            result.detected_format.format,
            len(chordsheet.sections),
        )
        return result

    def _decode(self, data: bytes | str, result: ImportResult) -> str | None:
        if isinstance(data, str):
            raw_size = len(data.encode("utf-8"))
        else:
            raw_size = len(data)

        if raw_size > self.max_size:
            result.errors.append(
                f"File size ({raw_size / 1024 / 1024:.1f}MB) exceeds maximum allowed size "
                f"({self.max_size / 1024 / 1024:.0f}MB)"
            )
            logger.warning("Rejected %d byte input (limit %d)", raw_size, self.max_size)
            return None

        if isinstance(data, str):
            text = data
        else:
            try:
                text = data.decode("utf-8-sig")
            except UnicodeDecodeError as exc:
                result.errors.append(f"File is not valid UTF-8 text (byte {exc.start})")
                logger.warning("UTF-8 decode failed at byte %d", exc.start)
                return None

        # Normalise line endings and non-breaking spaces; columns must survive.
        return text.replace("\r\n", "\n").replace("\r", "\n").replace("\u00a0", " ")


def html_to_text(html: str) -> tuple[str, str | None]:
    """Return ``(chart_text, page_title)`` extracted from an HTML page."""
    soup = BeautifulSoup(html, "html.parser")

    heading = soup.find("h1") or soup.find("title")
    title = heading.get_text(strip=True) if heading else None

    blocks = [_pre_text(pre) for pre in soup.find_all("pre")]
    blocks = [b for b in blocks if b.strip()]
    if blocks:
        return "\n\n".join(b.strip("\n") for b in blocks), title or None

    body = soup.body or soup
    return body.get_text("\n"), title or None


def _pre_text(pre_element: Tag) -> str:
    """Collect the text of a ``<pre>`` block, treating ``<br>`` as a newline.

    Inline tags (``<b>``, ``<span class="chord">``) contribute their text so
    chord columns stay aligned with the lyric below.
    """
    parts: list[str] = []
    for child in pre_element.descendants:
        if isinstance(child, Comment):
            continue
        if isinstance(child, NavigableString):
            parts.append(str(child))
        elif isinstance(child, Tag) and child.name == "br":
            parts.append("\n")
    return "".join(parts)
