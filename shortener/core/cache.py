"""
Fingerprint Cache

In-memory short code -> target URL lookup table sitting in front of the
database on the redirect path.

Design Decisions:
- Fixed number of buckets chosen at construction, chained with plain lists
- No resize and no eviction: the database is always the fallback, so a long
  bucket only costs lookup time, never correctness
- One lock per bucket, so traffic on unrelated codes never serializes
- A miss means "unknown", not "does not exist"
- Every bucket carries an eviction generation bumped by delete/clear. A
  backfill taken from a database read only lands if no eviction hit the
  bucket since the read started (see set_if_generation)

Keys are short random codes, not attacker-chosen strings, which is why the
simple positional hash below is good enough.
"""

import threading
from typing import List, Optional, Tuple


class FingerprintCache:
    """
    Chained hash map of short codes to target URLs.

    All public methods are safe to call from concurrent threads and
    coroutines. None of them block on I/O.
    """

    def __init__(self, bucket_count: int = 10000):
        """
        Initialize the cache.

        Args:
            bucket_count: Number of hash buckets (fixed for the cache lifetime)
        """
        if bucket_count <= 0:
            raise ValueError("bucket_count must be positive")

        self._bucket_count = bucket_count
        self._buckets: List[List[Tuple[str, str]]] = [[] for _ in range(bucket_count)]
        self._locks = [threading.Lock() for _ in range(bucket_count)]
        self._generations = [0] * bucket_count

        # Always acquired inside a bucket lock, never the other way round
        self._count = 0
        self._count_lock = threading.Lock()

    @property
    def bucket_count(self) -> int:
        return self._bucket_count

    def _hash(self, key: str) -> int:
        """Sum of character codes weighted by 1-based position, mod bucket count."""
        value = 0
        for position, char in enumerate(key):
            value = (value + ord(char) * (position + 1)) % self._bucket_count
        return value

    def _adjust_count(self, delta: int) -> None:
        with self._count_lock:
            self._count += delta

    def _insert(self, index: int, short_code: str, url: str) -> None:
        # Caller holds the bucket lock
        bucket = self._buckets[index]
        for position, (key, _) in enumerate(bucket):
            if key == short_code:
                bucket[position] = (short_code, url)
                return
        bucket.append((short_code, url))
        self._adjust_count(1)

    def set(self, short_code: str, url: str) -> None:
        """
        Insert or overwrite the URL cached for a short code.

        Args:
            short_code: Cache key
            url: Target URL
        """
        index = self._hash(short_code)
        with self._locks[index]:
            self._insert(index, short_code, url)

    def generation(self, short_code: str) -> int:
        """Current eviction generation of the bucket holding ``short_code``."""
        index = self._hash(short_code)
        with self._locks[index]:
            return self._generations[index]

    def set_if_generation(self, short_code: str, url: str, generation: int) -> bool:
        """
        Insert a mapping only if nothing was evicted from its bucket since
        ``generation`` was read.

        Returns:
            True if the mapping was stored
        """
        index = self._hash(short_code)
        with self._locks[index]:
            if self._generations[index] != generation:
                return False
            self._insert(index, short_code, url)
            return True

    def get(self, short_code: str) -> Optional[str]:
        """
        Look up the cached URL for a short code.

        Returns:
            The cached URL, or None when the code is not cached
        """
        index = self._hash(short_code)
        with self._locks[index]:
            for key, url in self._buckets[index]:
                if key == short_code:
                    return url
        return None

    def delete(self, short_code: str) -> bool:
        """
        Remove a short code from the cache.

        The bucket generation moves on even when the code was not cached, so
        an in-flight backfill of a stale read is dropped.

        Returns:
            True if an entry was removed, False if the code was not cached
        """
        index = self._hash(short_code)
        with self._locks[index]:
            self._generations[index] += 1
            bucket = self._buckets[index]
            for position, (key, _) in enumerate(bucket):
                if key == short_code:
                    del bucket[position]
                    self._adjust_count(-1)
                    return True
            return False

    def has(self, short_code: str) -> bool:
        return self.get(short_code) is not None

    def count(self) -> int:
        """Number of live entries."""
        with self._count_lock:
            return self._count

    def keys(self) -> List[str]:
        """
        Snapshot of all cached short codes.

        O(n) over every bucket; each bucket is copied under its own lock, so
        the result is not a single atomic view while writers are active.
        """
        keys: List[str] = []
        for index in range(self._bucket_count):
            with self._locks[index]:
                keys.extend(key for key, _ in self._buckets[index])
        return keys

    def clear(self) -> None:
        """Drop every entry."""
        for index in range(self._bucket_count):
            with self._locks[index]:
                self._generations[index] += 1
                removed = len(self._buckets[index])
                self._buckets[index] = []
                if removed:
                    self._adjust_count(-removed)

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, short_code: str) -> bool:
        return self.has(short_code)
