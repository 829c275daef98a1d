"""Deterministic text vectorization.

Placeholder for a real embedding model: texts are turned into fixed-size
vectors with the hashing trick so that texts sharing vocabulary point in
similar directions. The formula must stay fixed for a deployment; query-time
and embed-time vectors are only comparable when both use the same formula,
dimension and salt.

Formula:
  1. lower-case the text and split it into \\w+ tokens
  2. per token: bucket = blake2b(salt + NUL + token, 8 bytes) as a big-endian
     integer mod dimension, and add 1 to the bucket (term frequency)
  3. L2-normalise; a zero vector stays all zeros
"""

import hashlib
import math
import re

DEFAULT_DIMENSION = 384

_TOKEN_PATTERN = re.compile(r"\w+", re.UNICODE)


def tokenize(text: str) -> list[str]:
    """Split text into lower-cased word tokens.

    Args:
        text (str): The raw text.

    Returns:
        list[str]: Tokens in order of appearance, duplicates kept.
    """
    return _TOKEN_PATTERN.findall(text.lower())


def _hash_token(token: str, salt: str) -> int:
    digest = hashlib.blake2b(f"{salt}\x00{token}".encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big")


def vectorize(text: str, dimension: int = DEFAULT_DIMENSION, salt: str = "") -> list[float]:
    """Turn text into a unit-length vector of the given dimension.

    Pure function: the same (text, dimension, salt) always yields a
    bit-identical vector. Empty or token-less text yields all zeros.

    Args:
        text (str): The text to vectorize.
        dimension (int): Number of vector components. Must be positive.
        salt (str): Deployment-wide salt mixed into every token hash.

    Returns:
        list[float]: The vector, each component within [-1, 1].

    Raises:
        ValueError: If dimension is not a positive integer.
    """
    if not isinstance(dimension, int) or dimension < 1:
        raise ValueError(f"Vector dimension must be a positive integer, got {dimension!r}.")

    vector = [0.0] * dimension
    for token in tokenize(text):
        vector[_hash_token(token, salt) % dimension] += 1.0

    norm = math.sqrt(sum(value * value for value in vector))
    if norm == 0.0:
        return [0.0] * dimension
    return [value / norm for value in vector]
