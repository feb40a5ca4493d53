"""Document loading service for plain-text sources."""
import logging
import os
from typing import List, Optional

from models.document import Document

logger = logging.getLogger(__name__)

# Extensions read as UTF-8 text; binary formats need an extractor upstream
FILE_TYPES = {
    "txt": "text/plain",
    "md": "text/markdown",
    "json": "application/json",
}


def get_file_type_from_name(filename: str) -> str:
    """Map a filename to its MIME type, defaulting to text/plain."""
    extension = filename.lower().rsplit(".", 1)[-1] if "." in filename else ""
    return FILE_TYPES.get(extension, "text/plain")


class DocumentLoader:
    """Loads text documents from a directory."""
    
    def __init__(self, docs_directory: str = "docs", user_id: str = "default"):
        """
        Initialize DocumentLoader.
        
        Args:
            docs_directory: Path to directory containing text files
            user_id: Owner recorded on every loaded document
        """
        self.docs_directory = docs_directory
        self.user_id = user_id
    
    def load_documents(self) -> List[Document]:
        """
        Load all supported files from the documents directory.
        
        Returns:
            List of Document objects; unreadable files are skipped
        """
        documents = []
        
        if not os.path.exists(self.docs_directory):
            logger.error(f"Documents directory not found: {self.docs_directory}")
            return documents
        
        text_files = [
            f for f in os.listdir(self.docs_directory)
            if f.lower().rsplit(".", 1)[-1] in FILE_TYPES
        ]
        logger.info(f"Found {len(text_files)} text files in {self.docs_directory}")
        
        for filename in sorted(text_files):
            filepath = os.path.join(self.docs_directory, filename)
            
            try:
                document = self.load_file(filepath)
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Error loading {filename}: {str(e)}")
                continue
            
            if document:
                documents.append(document)
                logger.info(f"Loaded {filename}: {document.file_size} bytes")
        
        logger.info(f"Successfully loaded {len(documents)} documents")
        return documents
    
    def load_file(self, filepath: str) -> Optional[Document]:
        """
        Read a single file as UTF-8 text.
        
        Returns:
            Document, or None if the file holds only whitespace
        """
        filename = os.path.basename(filepath)
        with open(filepath, "r", encoding="utf-8") as handle:
            text = handle.read()
        
        if not text.strip():
            logger.warning(f"Skipping empty file {filename}")
            return None
        
        return Document(
            filename=filename,
            text=text,
            file_type=get_file_type_from_name(filename),
            file_size=os.path.getsize(filepath),
            user_id=self.user_id
        )
