"""Chunk storage and similarity search using Supabase pgvector."""
import math
import logging
from typing import List, Optional

from pydantic import ValidationError
from supabase import create_client, Client

from models.chunk import Chunk, RetrievedChunk
from models.document import Document
from models.records import VectorMatch
from config import (
    SUPABASE_URL,
    SUPABASE_KEY,
    DOCUMENTS_TABLE,
    CHUNKS_TABLE,
    MATCH_FUNCTION,
    CHARS_PER_TOKEN,
)

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Raised when a storage operation fails or returns malformed rows."""


def create_supabase_client(
    supabase_url: Optional[str] = SUPABASE_URL,
    supabase_key: Optional[str] = SUPABASE_KEY
) -> Client:
    """
    Build a Supabase client, shared by the vector and keyword adapters.
    
    Raises:
        ValueError: If Supabase credentials are missing
    """
    if not supabase_url or not supabase_key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")
    return create_client(supabase_url, supabase_key)


class VectorStore:
    """Store chunk embeddings and run similarity search through pgvector."""
    
    def __init__(
        self,
        client: Client,
        documents_table: str = DOCUMENTS_TABLE,
        chunks_table: str = CHUNKS_TABLE,
        match_function: str = MATCH_FUNCTION
    ):
        """
        Initialize the vector store.
        
        Args:
            client: Supabase client
            documents_table: Table holding source documents
            chunks_table: Table holding chunks and their embeddings
            match_function: RPC computing ``1 - cosine distance`` per chunk
        """
        self.client = client
        self.documents_table = documents_table
        self.chunks_table = chunks_table
        self.match_function = match_function
        
        logger.info(f"Initialized VectorStore with table: {chunks_table}")
    
    def create_document(self, document: Document) -> str:
        """
        Insert the source document row and return its id.
        
        Raises:
            StoreError: If the insert fails
        """
        try:
            response = self.client.table(self.documents_table).insert({
                "user_id": document.user_id,
                "filename": document.filename,
                "content": document.text,
                "file_type": document.file_type,
                "file_size": document.file_size,
            }).execute()
        except Exception as e:
            error_msg = f"Failed to save document {document.filename}: {str(e)}"
            logger.error(error_msg)
            raise StoreError(error_msg) from e
        
        if not response.data or "id" not in response.data[0]:
            raise StoreError(f"Document insert for {document.filename} returned no id")
        
        document_id = str(response.data[0]["id"])
        logger.debug(f"Created document {document_id} for {document.filename}")
        return document_id
    
    def add_chunks(
        self,
        document_id: str,
        chunks: List[Chunk],
        embeddings: List[List[float]]
    ) -> None:
        """
        Insert chunks with their embeddings, matched by position.
        
        Args:
            document_id: Parent document id
            chunks: Chunks in production order
            embeddings: One vector per chunk, same order
            
        Raises:
            ValueError: If chunks is empty or lengths differ
            StoreError: If the insert fails
        """
        if not chunks:
            raise ValueError("Chunks list cannot be empty")
        if len(chunks) != len(embeddings):
            raise ValueError(
                f"Got {len(embeddings)} embeddings for {len(chunks)} chunks"
            )
        
        records = [
            {
                "document_id": document_id,
                "content": chunk.content,
                "embedding": embedding,
                "chunk_index": chunk.index,
                "token_count": math.ceil(len(chunk.content) / CHARS_PER_TOKEN),
            }
            for chunk, embedding in zip(chunks, embeddings)
        ]
        
        try:
            self.client.table(self.chunks_table).insert(records).execute()
        except Exception as e:
            error_msg = f"Failed to add chunks to vector store: {str(e)}"
            logger.error(error_msg)
            raise StoreError(error_msg) from e
        
        logger.info(f"Stored {len(records)} chunks for document {document_id}")
    
    def search(
        self,
        query_embedding: List[float],
        similarity_threshold: float,
        limit: int
    ) -> List[RetrievedChunk]:
        """
        Find chunks whose similarity to the query exceeds the threshold.
        
        Args:
            query_embedding: Embedding vector for the query
            similarity_threshold: Exclusive lower bound on similarity
            limit: Maximum number of chunks
            
        Returns:
            Chunks sorted by similarity descending
            
        Raises:
            ValueError: If query_embedding is empty or limit is invalid
            StoreError: If the RPC fails or returns malformed rows
        """
        if not query_embedding:
            raise ValueError("Query embedding cannot be empty")
        
        if limit <= 0:
            raise ValueError("limit must be positive")
        
        # CREATE OR REPLACE FUNCTION match_document_chunks(
        #   query_embedding vector(1536), match_threshold float, match_count int
        # ) RETURNS TABLE (id uuid, document_id uuid, content text, similarity float)
        # ... WHERE 1 - (embedding <=> query_embedding) > match_threshold
        #     ORDER BY embedding <=> query_embedding LIMIT match_count;
        try:
            response = self.client.rpc(
                self.match_function,
                {
                    "query_embedding": query_embedding,
                    "match_threshold": similarity_threshold,
                    "match_count": limit
                }
            ).execute()
            rows = [VectorMatch.model_validate(row) for row in (response.data or [])]
        except ValidationError as e:
            error_msg = f"Malformed row from {self.match_function}: {str(e)}"
            logger.error(error_msg)
            raise StoreError(error_msg) from e
        except Exception as e:
            error_msg = f"Failed to search vector store: {str(e)}"
            logger.error(error_msg)
            raise StoreError(error_msg) from e
        
        logger.debug(f"Found {len(rows)} chunks above threshold {similarity_threshold}")
        return [row.to_retrieved() for row in rows]
    
    def delete_document(self, document_id: str) -> None:
        """
        Delete a document; its chunks go with it through the cascade.
        
        Raises:
            StoreError: If database operation fails
        """
        try:
            self.client.table(self.documents_table).delete().eq("id", document_id).execute()
            logger.info(f"Deleted document {document_id}")
        except Exception as e:
            error_msg = f"Failed to delete document {document_id}: {str(e)}"
            logger.error(error_msg)
            raise StoreError(error_msg) from e
    
    def count(self) -> int:
        """
        Get the total number of chunks in the store.
        
        Raises:
            StoreError: If database operation fails
        """
        try:
            response = self.client.table(self.chunks_table).select("id", count="exact").execute()
            return response.count if response.count is not None else 0
        except Exception as e:
            error_msg = f"Failed to count chunks in vector store: {str(e)}"
            logger.error(error_msg)
            raise StoreError(error_msg) from e
