"""
FileProcessor Module

Provides utility functions to turn uploaded proof-of-payment documents into
what the rest of the pipeline consumes: PNG page images for the remote
analysis function, and raw text lines for local statement matching.
"""

import io
import os
from typing import List

import fitz
import pandas as pd
import pdfplumber
from PIL import Image

from obligations.utils.errors import InvalidInputError
from obligations.utils.logger import log_message

PDF_RENDER_SCALE = float(os.getenv("PDF_RENDER_SCALE", 2.0))
IMAGE_MAX_SIZE = 1600
IMAGE_COMPRESSION_QUALITY = 0.8


class FileProcessor:
    """Utility class for converting proof documents (PDF, images, CSV)."""

    @staticmethod
    def is_pdf(file_name: str, content_type: str = None) -> bool:
        if content_type == "application/pdf":
            return True
        return bool(file_name) and file_name.lower().endswith(".pdf")

    @staticmethod
    def rasterize_pdf(pdf_bytes: bytes, scale: float = PDF_RENDER_SCALE) -> List[bytes]:
        """
        Render every page of a PDF to a PNG image.

        Args:
            pdf_bytes: Raw PDF content.
            scale: Zoom factor applied to both axes (1.0 = 72 DPI).

        Returns:
            List[bytes]: PNG images, one per page, in page order.

        Raises:
            InvalidInputError: If the PDF cannot be opened or has no pages.
        """
        try:
            images = []
            with fitz.open(stream=io.BytesIO(pdf_bytes), filetype="pdf") as doc:
                total_pages = len(doc)
                matrix = fitz.Matrix(scale, scale)
                for page in doc:
                    pix = page.get_pixmap(matrix=matrix, alpha=False)
                    images.append(pix.tobytes("png"))
        except (RuntimeError, ValueError) as e:
            log_message("error", f"PDF rasterization failed: {e}")
            raise InvalidInputError(f"Unreadable PDF document: {e}") from e

        if not images:
            raise InvalidInputError("PDF document has no pages")

        log_message("info", f"Rasterized {total_pages} PDF page(s) at scale {scale}")
        return images

    @staticmethod
    def compress_image(
        image_bytes: bytes,
        max_size: int = IMAGE_MAX_SIZE,
        quality: float = IMAGE_COMPRESSION_QUALITY,
    ) -> bytes:
        """
        Downscale an image so its longest side is at most max_size and
        re-encode it as JPEG.

        Args:
            image_bytes: Source image in any format Pillow reads.
            max_size: Bound for the longest side, in pixels.
            quality: JPEG quality between 0 and 1.

        Returns:
            bytes: JPEG-encoded image.
        """
        try:
            img = Image.open(io.BytesIO(image_bytes))
            img.load()
        except (OSError, Image.DecompressionBombError) as e:
            raise InvalidInputError(f"Unreadable image: {e}") from e

        if img.mode != "RGB":
            img = img.convert("RGB")

        width, height = img.size
        if width > max_size or height > max_size:
            if width > height:
                height = round(height / width * max_size)
                width = max_size
            else:
                width = round(width / height * max_size)
                height = max_size
            img = img.resize((width, height), Image.LANCZOS)

        out = io.BytesIO()
        img.save(out, format="JPEG", quality=int(quality * 100))
        return out.getvalue()

    @staticmethod
    def extract_pdf_text(pdf_bytes: bytes) -> List[str]:
        """
        Extract non-empty text lines from a PDF, page by page.

        Scanned PDFs without a text layer yield no lines; OCR is left to the
        remote analysis function.
        """
        try:
            lines = []
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                for page in pdf.pages:
                    text = page.extract_text() or ""
                    lines.extend(line.strip() for line in text.split("\n") if line.strip())
            return lines
        except Exception as e:
            log_message("error", f"PDF text extraction failed: {e}")
            raise InvalidInputError(f"PDF text extraction failed: {e}") from e

    @staticmethod
    def read_csv(csv_bytes: bytes) -> pd.DataFrame:
        """
        Read a CSV statement into a DataFrame of strings.

        The separator is sniffed (French exports often use ';'). Files that
        are not UTF-8 are decoded as Latin-1.
        """
        for encoding in ("utf-8-sig", "latin-1"):
            try:
                return pd.read_csv(
                    io.BytesIO(csv_bytes),
                    sep=None,
                    engine="python",
                    dtype=str,
                    encoding=encoding,
                    skip_blank_lines=True,
                ).fillna("")
            except UnicodeDecodeError:
                continue
            except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
                raise InvalidInputError(f"Unreadable CSV file: {e}") from e
        raise InvalidInputError("Unreadable CSV file: unsupported encoding")

    @staticmethod
    def extract_csv_text(csv_bytes: bytes) -> List[str]:
        """Flatten a CSV file into one text line per row (cells joined by spaces)."""
        df = FileProcessor.read_csv(csv_bytes)
        lines = []
        for _, row in df.iterrows():
            line = " ".join(str(cell).strip() for cell in row.values if str(cell).strip())
            if line:
                lines.append(line)
        return lines
