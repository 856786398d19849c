"""Tests for short code allocation."""

import pytest

from shortener.core.exceptions import AllocationExhaustedError
from shortener.services.short_code_allocator import (
    CODE_ALPHABET,
    ShortCodeAllocator,
    generate_short_code,
)


class StubRepository:
    """Answers find_by_short_code from a fixed set of taken codes."""

    def __init__(self, taken=()):
        self.taken = set(taken)
        self.lookups = []

    async def find_by_short_code(self, short_code):
        self.lookups.append(short_code)
        return object() if short_code in self.taken else None


class FailingRepository:
    async def find_by_short_code(self, short_code):
        raise RuntimeError("database unavailable")


def sequence(*codes):
    return iter(codes).__next__


class TestGenerateShortCode:

    def test_default_length_and_alphabet(self):
        for _ in range(200):
            code = generate_short_code()
            assert len(code) == 7
            assert set(code) <= set(CODE_ALPHABET)

    def test_custom_length(self):
        assert len(generate_short_code(12)) == 12

    def test_alphabet_is_url_safe(self):
        assert len(CODE_ALPHABET) == 64
        assert "_" in CODE_ALPHABET and "-" in CODE_ALPHABET


class TestShortCodeAllocator:

    async def test_returns_first_free_code(self):
        repository = StubRepository()
        allocator = ShortCodeAllocator(repository, code_factory=sequence("aaaaaaa"))
        assert await allocator.allocate() == "aaaaaaa"
        assert repository.lookups == ["aaaaaaa"]

    async def test_fifth_attempt_succeeds(self):
        repository = StubRepository(taken={"c1", "c2", "c3", "c4"})
        allocator = ShortCodeAllocator(
            repository,
            code_factory=sequence("c1", "c2", "c3", "c4", "c5"),
        )
        assert await allocator.allocate() == "c5"
        assert len(repository.lookups) == 5

    async def test_exhaustion_after_max_attempts(self):
        repository = StubRepository(taken={"c1", "c2", "c3", "c4", "c5", "c6"})
        allocator = ShortCodeAllocator(
            repository,
            code_factory=sequence("c1", "c2", "c3", "c4", "c5", "c6"),
        )
        with pytest.raises(AllocationExhaustedError) as exc_info:
            await allocator.allocate()

        assert exc_info.value.attempts == 5
        assert repository.lookups == ["c1", "c2", "c3", "c4", "c5"]

    async def test_custom_max_attempts(self):
        repository = StubRepository(taken={"x"})
        allocator = ShortCodeAllocator(repository, max_attempts=2, code_factory=lambda: "x")
        with pytest.raises(AllocationExhaustedError):
            await allocator.allocate()
        assert len(repository.lookups) == 2

    async def test_repository_errors_propagate(self):
        allocator = ShortCodeAllocator(FailingRepository())
        with pytest.raises(RuntimeError, match="database unavailable"):
            await allocator.allocate()

    async def test_generated_codes_use_configured_length(self):
        allocator = ShortCodeAllocator(StubRepository(), length=9)
        assert len(await allocator.allocate()) == 9

    def test_rejects_non_positive_attempts(self):
        with pytest.raises(ValueError):
            ShortCodeAllocator(StubRepository(), max_attempts=0)
