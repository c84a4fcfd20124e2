"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

hasher.py
Implements exact content fingerprints with pluggable digest algorithms.

Files are streamed in fixed-size chunks, so memory use does not depend on file size.
"""

import hashlib
from doublefinder.core.models import Fingerprint, FingerprintKind
from doublefinder.core.interfaces import ContentHasher, HashAlgorithm

CHUNK_SIZE = 1024 * 1024  # 1 MiB


# Use the same way to implement and use any other hashing algorithm
class SHA256AlgorithmImpl(HashAlgorithm):
    name = "sha256"

    def new(self):
        return hashlib.sha256()


class SHA512AlgorithmImpl(HashAlgorithm):
    name = "sha512"

    def new(self):
        return hashlib.sha512()


class Blake2bAlgorithmImpl(HashAlgorithm):
    name = "blake2b"

    def new(self):
        return hashlib.blake2b(digest_size=32)


HASH_ALGORITHMS = {
    SHA256AlgorithmImpl.name: SHA256AlgorithmImpl,
    SHA512AlgorithmImpl.name: SHA512AlgorithmImpl,
    Blake2bAlgorithmImpl.name: Blake2bAlgorithmImpl,
}


class ContentHasherImpl(ContentHasher):
    """
    A content hasher that supports any algorithm via the HashAlgorithm interface.
    Stateless: safe to share between threads.
    """

    def __init__(self, algorithm: HashAlgorithm = None, chunk_size: int = CHUNK_SIZE):
        self.algorithm = algorithm or SHA256AlgorithmImpl()
        self.chunk_size = chunk_size

    def hash(self, path: str) -> Fingerprint:
        """
        Streams the file through the digest.

        Raises:
            OSError: If the file cannot be opened or becomes unreadable mid-stream.
        """
        digest = self.algorithm.new()
        with open(path, 'rb') as f:
            while True:
                chunk = f.read(self.chunk_size)
                if not chunk:
                    break
                digest.update(chunk)
        return Fingerprint(digest.hexdigest(), FingerprintKind.CONTENT)
