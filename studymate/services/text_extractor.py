"""
Text extractor: normalizes raw upload bytes into generation-ready content.
Supports: PDF, Word (.docx), images (sent to the model as a data URL) and plain text.
"""

import base64
import io
import mimetypes
import zipfile
from dataclasses import dataclass, field

import PyPDF2
from docx import Document as WordDocument
from PIL import Image

from studymate.core.config import settings
from studymate.core.exceptions import (
    FileTooLargeError,
    InvalidFileFormatError,
    PdfExtractionError,
)
from studymate.core.logging_config import get_logger
from studymate.models.upload import SourceType
from studymate.services.chunker import chunk_text

logger = get_logger(__name__)

# Text handed to the generator in place of document text for image uploads
IMAGE_ANALYSIS_PROMPT = (
    "Analyze the attached image and build study material from everything it shows: "
    "text, diagrams, formulas and key concepts."
)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
LEGACY_DOC_MIME = "application/msword"
GENERIC_MIMES = {"", "application/octet-stream", "binary/octet-stream"}

_MAGIC_SIGNATURES = [
    (b"%PDF-", PDF_MIME),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
]


@dataclass
class ExtractedContent:
    """Normalized upload content."""
    text: str
    source_type: SourceType
    image_data_url: str | None = None
    chunks: list[str] = field(default_factory=list)

    @property
    def content_text(self) -> str:
        """What gets stored on the upload row."""
        return self.image_data_url if self.source_type == SourceType.IMAGE else self.text


def validate_upload(file_content: bytes, filename: str, max_size_mb: int) -> None:
    """Validate that an upload is non-empty and within the size limit."""
    size_mb = len(file_content) / (1024 * 1024)
    logger.debug(f"Validating upload: {filename}, size: {size_mb:.2f} MB")

    if not file_content:
        raise InvalidFileFormatError(f"Uploaded file is empty: {filename}")
    if len(file_content) > max_size_mb * 1024 * 1024:
        logger.warning(f"File too large: {filename} ({size_mb:.2f} MB)")
        raise FileTooLargeError(f"File size exceeds maximum allowed size of {max_size_mb} MB")


def sniff_mime_type(file_content: bytes, filename: str | None = None) -> str:
    """Guess a MIME type from magic bytes, then the filename, defaulting to text/plain."""
    for signature, mime in _MAGIC_SIGNATURES:
        if file_content.startswith(signature):
            return mime
    if file_content[:4] == b"RIFF" and file_content[8:12] == b"WEBP":
        return "image/webp"
    if file_content[:2] == b"BM" and file_content[6:10] == b"\x00\x00\x00\x00":
        return "image/bmp"
    if file_content.startswith(b"PK\x03\x04") and _is_docx(file_content):
        return DOCX_MIME

    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return "text/plain"


def _is_docx(file_content: bytes) -> bool:
    try:
        with zipfile.ZipFile(io.BytesIO(file_content)) as archive:
            return "word/document.xml" in archive.namelist()
    except zipfile.BadZipFile:
        return False


def extract_text_from_pdf(file_content: bytes) -> str:
    """Extract text from a PDF file, one blank line between pages."""
    try:
        pdf_reader = PyPDF2.PdfReader(io.BytesIO(file_content))
        text_parts = []
        logger.debug(f"Processing PDF with {len(pdf_reader.pages)} pages")
        for page in pdf_reader.pages:
            text = page.extract_text()
            if text and text.strip():
                text_parts.append(text.strip())
    except Exception as e:
        logger.error(f"PDF extraction failed: {str(e)}")
        raise PdfExtractionError(f"Failed to extract text from PDF: {str(e)}") from e

    if not text_parts:
        raise PdfExtractionError("No text could be extracted from the PDF")
    logger.debug(f"Extracted text from {len(text_parts)} pages")
    return "\n\n".join(text_parts)


def extract_text_from_docx(file_content: bytes) -> str:
    """Extract text from a Word document (.docx)."""
    try:
        doc = WordDocument(io.BytesIO(file_content))
        text_parts = [p.text for p in doc.paragraphs if p.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                row_text = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if row_text:
                    text_parts.append(" | ".join(row_text))
    except Exception as e:
        raise InvalidFileFormatError(f"Failed to extract text from Word document: {str(e)}") from e
    return "\n\n".join(text_parts)


def decode_text(file_content: bytes) -> str:
    """Decode UTF-8 text, dropping a leading byte order mark."""
    try:
        return file_content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise InvalidFileFormatError(f"File is not valid UTF-8 text: {str(e)}") from e


def encode_image_data_url(file_content: bytes, mime_type: str, max_dimension: int = 0) -> str:
    """
    Verify an image and wrap it in a base64 data URL.

    When ``max_dimension`` is set, images larger than it are downscaled and
    re-encoded as JPEG.
    """
    try:
        with Image.open(io.BytesIO(file_content)) as image:
            image.verify()
            detected_mime = Image.MIME.get(image.format or "")
    except Exception as e:
        raise InvalidFileFormatError(f"Invalid or corrupted image: {str(e)}") from e

    mime_type = detected_mime or mime_type
    payload = file_content

    if max_dimension > 0:
        # verify() leaves the image unusable, so reopen it
        with Image.open(io.BytesIO(file_content)) as image:
            if max(image.size) > max_dimension:
                image.thumbnail((max_dimension, max_dimension))
                if image.mode != "RGB":
                    image = image.convert("RGB")
                buffer = io.BytesIO()
                image.save(buffer, format="JPEG", quality=80)
                payload = buffer.getvalue()
                mime_type = "image/jpeg"
                logger.debug(f"Downscaled image to {image.size[0]}x{image.size[1]}")

    return f"data:{mime_type};base64,{base64.b64encode(payload).decode('ascii')}"


class TextExtractor:
    """Turns upload bytes into an :class:`ExtractedContent`."""

    def __init__(
        self,
        max_chunk_size: int = settings.max_chunk_size,
        max_chunks: int = settings.max_chunks,
        image_max_dimension: int = settings.image_max_dimension,
    ):
        self.max_chunk_size = max_chunk_size
        self.max_chunks = max_chunks
        self.image_max_dimension = image_max_dimension

    def resolve_mime_type(self, file_content: bytes, mime_hint: str | None, filename: str | None = None) -> str:
        hint = (mime_hint or "").split(";")[0].strip().lower()
        if hint not in GENERIC_MIMES:
            return hint
        return sniff_mime_type(file_content, filename)

    def extract(self, file_content: bytes, mime_hint: str | None, filename: str | None = None) -> ExtractedContent:
        """
        Extract generation-ready content from raw bytes.

        Args:
            file_content: Raw bytes of the upload
            mime_hint: Declared MIME type; sniffed from the bytes when missing or generic
            filename: Original filename, used as a fallback for MIME detection

        Returns:
            ExtractedContent with text, optional image data URL and chunks for long text

        Raises:
            PdfExtractionError: If a PDF cannot be parsed or contains no text
            InvalidFileFormatError: If the content cannot be decoded
        """
        mime_type = self.resolve_mime_type(file_content, mime_hint, filename)
        logger.info(f"Extracting content | file={filename} | mime={mime_type} | bytes={len(file_content)}")

        if mime_type.startswith("image/"):
            data_url = encode_image_data_url(file_content, mime_type, self.image_max_dimension)
            return ExtractedContent(
                text=IMAGE_ANALYSIS_PROMPT,
                source_type=SourceType.IMAGE,
                image_data_url=data_url,
            )

        if mime_type == PDF_MIME:
            text, source_type = extract_text_from_pdf(file_content), SourceType.PDF
        elif mime_type == DOCX_MIME:
            text, source_type = extract_text_from_docx(file_content), SourceType.DOCX
        elif mime_type == LEGACY_DOC_MIME:
            raise InvalidFileFormatError("Legacy .doc format is not supported. Please convert to .docx")
        else:
            text = decode_text(file_content)
            source_type = SourceType.TXT if mime_type.startswith("text/") else SourceType.RAW

        if not text.strip():
            raise InvalidFileFormatError("No text could be extracted from the uploaded file")

        chunks = []
        if len(text) > self.max_chunk_size:
            chunks = chunk_text(text, self.max_chunk_size, self.max_chunks)

        logger.debug(f"Extracted {len(text)} chars ({len(chunks)} chunks) as {source_type.value}")
        return ExtractedContent(text=text, source_type=source_type, chunks=chunks)
