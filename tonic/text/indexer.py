"""
Maps normalised text to padded integer token batches.

The vocabulary is a flat table indexed by Unicode code point.  Rows are
padded with id 0; code points beyond the end of the table map to the
unknown id -1, which is distinct from padding.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from tonic.errors import AssetError, InvalidInputError

PAD_ID = 0
UNKNOWN_ID = -1


def length_to_mask(lengths: Sequence[int], max_len: Optional[int] = None) -> np.ndarray:
    """
    Build a ``(batch, 1, max_len)`` float32 mask with ones over the first
    ``lengths[i]`` positions of row *i* and zeros elsewhere.

    *max_len* defaults to the largest length.
    """
    lengths = np.asarray(lengths, dtype=np.int64)
    if max_len is None:
        max_len = int(lengths.max()) if lengths.size else 0
    positions = np.arange(max_len, dtype=np.int64)
    mask = (positions[None, :] < lengths[:, None]).astype(np.float32)
    return mask[:, None, :]


@dataclass
class TokenBatch:
    """
    Rectangular token ids plus the mask marking real positions.

    Attributes:
        ids:     ``int64`` array of shape ``(batch, max_len)``.
        mask:    ``float32`` array of shape ``(batch, 1, max_len)``.
        lengths: Code-point length of each row before padding.
    """

    ids: np.ndarray
    mask: np.ndarray
    lengths: List[int]

    @property
    def batch_size(self) -> int:
        return self.ids.shape[0]

    @property
    def max_length(self) -> int:
        return self.ids.shape[1]


class VocabIndexer:
    """
    Code-point lookup table shared by every generation.

    Usage::

        indexer = VocabIndexer(json.load(open("unicode_indexer.json")))
        batch = indexer.encode(["Hello there."])
    """

    def __init__(self, table: Sequence[int]):
        if not isinstance(table, (list, tuple, np.ndarray)) or len(table) == 0:
            raise AssetError("Vocabulary table must be a non-empty flat list of integers")
        for i, entry in enumerate(table):
            # bool is an int subclass; floats would be silently truncated
            if isinstance(entry, bool) or not isinstance(entry, (int, np.integer)):
                raise AssetError(
                    f"Vocabulary table entry {i} must be an integer, got {entry!r}"
                )
        values = np.asarray(table, dtype=np.int64)
        values.setflags(write=False)
        self._table = values

    def __len__(self) -> int:
        return self._table.size

    def lookup(self, char: str) -> int:
        """Token id for a single character."""
        code_point = ord(char)
        if code_point < self._table.size:
            return int(self._table[code_point])
        return UNKNOWN_ID

    def encode(self, texts: Sequence[str]) -> TokenBatch:
        """
        Encode already-normalised strings into a padded batch.

        Raises:
            InvalidInputError: If *texts* is empty or contains a non-string.
        """
        if isinstance(texts, str):
            raise InvalidInputError("encode expects a sequence of strings, not a string")
        if not texts:
            raise InvalidInputError("Cannot encode an empty batch")
        for t in texts:
            if not isinstance(t, str):
                raise InvalidInputError(f"Expected str in batch, got {type(t).__name__}")

        lengths = [len(t) for t in texts]
        max_len = max(lengths)

        ids = np.full((len(texts), max_len), PAD_ID, dtype=np.int64)
        for row, text in enumerate(texts):
            if not text:
                continue
            code_points = np.fromiter((ord(c) for c in text), dtype=np.int64, count=len(text))
            known = code_points < self._table.size
            ids[row, : len(text)] = np.where(
                known, self._table[np.minimum(code_points, self._table.size - 1)], UNKNOWN_ID
            )

        return TokenBatch(ids=ids, mask=length_to_mask(lengths, max_len), lengths=lengths)

    def __repr__(self) -> str:
        return f"VocabIndexer(size={self._table.size})"
