"""Text normalisation, chunking, and vocabulary indexing."""

from .chunker import chunk_text, split_paragraphs, split_sentences
from .indexer import TokenBatch, VocabIndexer, length_to_mask
from .normalizer import ENDING_PUNCTUATION, normalize_text

__all__ = [
    "ENDING_PUNCTUATION",
    "normalize_text",
    "chunk_text",
    "split_paragraphs",
    "split_sentences",
    "TokenBatch",
    "VocabIndexer",
    "length_to_mask",
]
