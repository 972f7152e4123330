"""Document loading and text chunking for ingestion."""

from pathlib import Path

import pypdf

from .config import config
from .models import Document

logger = config.get_logger(__name__)


class DocumentLoader:
    """Loads PDF and TXT files into ingestion records."""

    @staticmethod
    def load_pdf(file_path: Path) -> list[Document]:
        """Load one record per PDF page.

        Returns:
            Documents with ``source`` and 1-based ``page`` metadata; pages
            without extractable text are left out.
        """
        documents: list[Document] = []
        try:
            with file_path.open("rb") as file:
                pdf_reader = pypdf.PdfReader(file)
                for page_num, page in enumerate(pdf_reader.pages, start=1):
                    page_text = page.extract_text() or ""
                    if not page_text.strip():
                        continue
                    documents.append(
                        Document(
                            text=page_text,
                            metadata={"source": file_path.name, "page": page_num},
                        )
                    )
        except Exception:
            logger.exception("Error loading PDF %s", file_path)
            raise
        logger.info("Loaded %d pages from %s", len(documents), file_path.name)
        return documents

    @staticmethod
    def load_txt(file_path: Path) -> list[Document]:
        """Load a TXT file as a single record.

        Returns:
            A one-element list, or an empty list for a blank file.
        """
        try:
            with file_path.open(encoding="utf-8") as file:
                text = file.read()
        except Exception:
            logger.exception("Error loading TXT %s", file_path)
            raise
        if not text.strip():
            return []
        return [Document(text=text, metadata={"source": file_path.name, "page": 1})]

    @classmethod
    def load_document(cls, file_path: Path) -> list[Document]:
        """Load document based on file extension.

        Args:
            file_path: Path to the document file.

        Returns:
            The records read from the file.

        Raises:
            ValueError: If the file type is not supported.
        """
        file_ext = file_path.suffix.lower()
        if file_ext == ".pdf":
            return cls.load_pdf(file_path)
        if file_ext == ".txt":
            return cls.load_txt(file_path)
        msg = f"Unsupported file type: {file_ext}"
        raise ValueError(msg)


class TextChunker:
    """Fixed-length chunking with overlap, preferring word boundaries."""

    def __init__(self, chunk_size: int = 1000, overlap: int = 200) -> None:
        """Initialize the TextChunker with chunk size and overlap.

        Raises:
            ValueError: If overlap is not smaller than chunk_size.
        """
        if overlap >= chunk_size:
            msg = "overlap must be smaller than chunk_size"
            raise ValueError(msg)
        self.chunk_size = chunk_size
        self.overlap = overlap

    def split_document(self, document: Document) -> list[Document]:
        """Split one record into overlapping records.

        Each piece keeps the parent's metadata and adds ``chunk_id``,
        ``start_char``, ``end_char`` and ``length``.

        Returns:
            The pieces in text order.
        """
        text = document.text
        pieces: list[Document] = []
        start = 0
        chunk_id = 0

        while start < len(text):
            end = start + self.chunk_size
            piece = text[start:end]

            # Avoid cutting a word unless the piece would shrink below half size
            if end < len(text) and not piece.endswith(" "):
                last_space = piece.rfind(" ")
                if last_space > self.chunk_size // 2:
                    end = start + last_space
                    piece = text[start:end]

            if piece.strip():
                pieces.append(
                    Document(
                        text=piece.strip(),
                        metadata={
                            **document.metadata,
                            "chunk_id": chunk_id,
                            "start_char": start,
                            "end_char": end,
                            "length": len(piece.strip()),
                        },
                    )
                )
                chunk_id += 1

            if end >= len(text):
                break
            # a word-boundary cut can leave less than the overlap to step over
            start = end - self.overlap if end - self.overlap > start else end

        return pieces

    def split_documents(self, documents: list[Document]) -> list[Document]:
        """Split every record, keeping input order."""
        pieces = [piece for doc in documents for piece in self.split_document(doc)]
        logger.info("Split %d documents into %d chunks", len(documents), len(pieces))
        return pieces
