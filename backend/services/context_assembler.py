"""Render retrieved chunks into the numbered context handed to the language model."""
from typing import List

from models.chunk import RetrievedChunk

CONTEXT_HEADER = "Relevant information from the documents:"

DEFAULT_INSTRUCTIONS = (
    "You are a precise assistant that answers ONLY from the documents the user uploaded.\n"
    "- Use only information found in the numbered excerpts [1], [2], [3]...\n"
    "- Cite the excerpt number for every fact you use.\n"
    "- If the answer is not in the excerpts, say that the documents do not contain it.\n"
    "- Never fill gaps with general knowledge or guesses."
)


class ContextAssembler:
    """Builds the context block and system prompt for a chat turn."""
    
    def __init__(self, instructions: str = DEFAULT_INSTRUCTIONS):
        self.instructions = instructions
    
    def assemble(self, chunks: List[RetrievedChunk]) -> str:
        """
        Number chunks from 1 in the order given.
        
        Returns an empty string for no chunks so callers can drop the
        context section altogether.
        """
        return "\n\n".join(
            f"[{position}] {chunk.content}" for position, chunk in enumerate(chunks, start=1)
        )
    
    def build_system_prompt(self, chunks: List[RetrievedChunk]) -> str:
        """Instructions followed by the context section, when there is one."""
        context = self.assemble(chunks)
        if not context:
            return self.instructions
        return f"{self.instructions}\n\n{CONTEXT_HEADER}\n\n{context}"


def assemble(chunks: List[RetrievedChunk]) -> str:
    """Numbered context block for ``chunks``; empty string when there are none."""
    return ContextAssembler().assemble(chunks)
