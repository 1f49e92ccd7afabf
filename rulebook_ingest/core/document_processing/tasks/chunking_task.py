"""
Text chunking task using RecursiveCharacterTextSplitter.

Splits raw document text into bounded chunks on semantic boundaries, drops
noise fragments, and assigns deterministic chunk ids. Embeddings are not
produced here; they are generated downstream from chunk-ready events.

Dependencies: langchain_text_splitters, tiktoken
System role: Chunking strategy for the chunking stage
"""

import html
import logging
import re
from collections.abc import Iterator

from langchain_text_splitters import Language, RecursiveCharacterTextSplitter

from rulebook_ingest.configs.chunking import ChunkingSettings
from rulebook_ingest.core.document_processing.models.chunk import TextChunk, make_chunk_id
from rulebook_ingest.core.exceptions import ChunkingError

logger = logging.getLogger(__name__)

TEXT_SEPARATORS = ["\n\n", "\n", ". ", " ", ""]
TOKEN_ENCODING = "cl100k_base"

_LANGUAGE_PROFILES = {"markdown": Language.MARKDOWN, "html": Language.HTML}

_HTML_TAG = re.compile(r"<[^>]+>")
_PAGE_MARKER = re.compile(r"--- Page\s+(\d+)\s+---")


def separators_for_profile(profile: str) -> list[str]:
    """
    Resolve a separator profile name to splitter separators.

    Args:
        profile: 'text', 'markdown' or 'html' (case-insensitive)

    Returns:
        list[str]: Separators in priority order; unknown names fall back to text
        (markdown and html separators are regular expressions)
    """
    name = (profile or "").strip().lower()
    if name in _LANGUAGE_PROFILES:
        return RecursiveCharacterTextSplitter.get_separators_for_language(_LANGUAGE_PROFILES[name])
    if name != "text":
        logger.warning(f"{__name__}:separators_for_profile - Unknown profile '{profile}', using text")
    return list(TEXT_SEPARATORS)


def strip_html_tags(text: str) -> str:
    """Remove markup and decode entities, collapsing leftover whitespace runs."""
    stripped = html.unescape(_HTML_TAG.sub(" ", text))
    return re.sub(r"[ \t]+", " ", stripped).strip()


def extract_page_number(chunk_text: str) -> int | None:
    """
    Find the first '--- Page N ---' marker left by PDF extraction.

    Args:
        chunk_text: Chunk content

    Returns:
        int | None: Page number, or None when the chunk carries no marker
    """
    if not chunk_text:
        return None
    match = _PAGE_MARKER.search(chunk_text)
    return int(match.group(1)) if match else None


class ChunkingTask:
    """Split raw text into TextChunks using RecursiveCharacterTextSplitter."""

    def __init__(
        self,
        max_chunk_size: int = 1000,
        chunk_overlap: int = 0,
        min_chunk_chars: int = 100,
        separator_profile: str = "text",
        length_unit: str = "characters",
        strip_html: bool = False,
    ) -> None:
        """
        Initialize chunking task with splitter configuration.

        Args:
            max_chunk_size: Maximum chunk size in length_unit
            chunk_overlap: Overlap between consecutive chunks
            min_chunk_chars: Chunks shorter than this many characters are dropped
            separator_profile: 'text', 'markdown' or 'html'
            length_unit: 'characters' or 'tokens' (tiktoken cl100k_base)
            strip_html: Strip HTML tags from each chunk

        Raises:
            ValueError: When length_unit is not recognised
        """
        self.min_chunk_chars = min_chunk_chars
        self.strip_html = strip_html
        separators = separators_for_profile(separator_profile)
        is_separator_regex = (separator_profile or "").strip().lower() in _LANGUAGE_PROFILES

        unit = length_unit.strip().lower()
        if unit == "tokens":
            self._splitter = RecursiveCharacterTextSplitter.from_tiktoken_encoder(
                encoding_name=TOKEN_ENCODING,
                chunk_size=max_chunk_size,
                chunk_overlap=chunk_overlap,
                separators=separators,
                is_separator_regex=is_separator_regex,
            )
        elif unit == "characters":
            self._splitter = RecursiveCharacterTextSplitter(
                chunk_size=max_chunk_size,
                chunk_overlap=chunk_overlap,
                separators=separators,
                length_function=len,
                is_separator_regex=is_separator_regex,
            )
        else:
            raise ValueError(f"Unsupported length unit: {length_unit}")

    @classmethod
    def from_settings(cls, settings: ChunkingSettings) -> "ChunkingTask":
        return cls(
            max_chunk_size=settings.max_chunk_size,
            chunk_overlap=settings.chunk_overlap,
            min_chunk_chars=settings.min_chunk_chars,
            separator_profile=settings.separator_profile,
            length_unit=settings.length_unit,
            strip_html=settings.strip_html,
        )

    def chunk_text(self, text: str, document_id: str) -> Iterator[TextChunk]:
        """
        Split text into ordered chunks for a document.

        The whole split runs before the first chunk is yielded, so a splitter
        failure never leaves a partially consumed sequence behind.

        Args:
            text: Raw document text
            document_id: Owning document identifier

        Yields:
            TextChunk: Chunks with contiguous zero-based ordinals

        Raises:
            ChunkingError: When the underlying splitter fails
        """
        if not text or not text.strip():
            return

        try:
            pieces = self._splitter.split_text(text)
        except Exception as e:
            logger.error(
                f"{__name__}:chunk_text - Splitter failed for document {document_id}",
                exc_info=True,
                extra={"document_id": document_id, "error": str(e)},
            )
            raise ChunkingError(
                f"Failed to split text: {e}",
                document_id=document_id,
                details={"error_type": type(e).__name__},
            ) from e

        logger.debug(
            f"{__name__}:chunk_text - Splitter produced {len(pieces)} pieces",
            extra={"document_id": document_id, "piece_count": len(pieces)},
        )

        ordinal = 0
        filtered = 0
        for piece in pieces:
            chunk_text = strip_html_tags(piece) if self.strip_html else piece
            if len(chunk_text) < self.min_chunk_chars:
                filtered += 1
                continue

            yield TextChunk(
                id=make_chunk_id(document_id, ordinal),
                text=chunk_text,
                index=ordinal,
                source_document_id=document_id,
            )
            ordinal += 1

        if filtered:
            logger.info(
                f"{__name__}:chunk_text - Filtered out {filtered} chunks shorter than "
                f"{self.min_chunk_chars} characters",
                extra={"document_id": document_id, "filtered_count": filtered},
            )
