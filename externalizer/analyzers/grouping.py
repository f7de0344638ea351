"""Grouping of occurrences and resource key generation.

Keys look like ``k3x_a9b2`` where:

- the prefix is 1-4 chars: a lowercase letter, then letters, digits or
  single underscores, never ending in ``_``;
- the suffix is 2-8 chars, each a lowercase letter or digit.

Generation is always hash-seeded: the same text against the same table
yields the same key in every session. A collision with the table, or with a
key already issued by this generator, bumps an attempt counter that is
mixed into the seed.
"""

import hashlib
import random
import string
from collections.abc import Callable, Iterable

from externalizer.logging import logger
from externalizer.models.records import Group, Occurrence

LOWERCASE = string.ascii_lowercase
DIGITS = string.digits
PREFIX_CHARS = LOWERCASE + DIGITS


def _seeded_random(text: str, attempt: int) -> random.Random:
    digest = hashlib.sha256(f"{attempt}:{text}".encode()).digest()
    return random.Random(int.from_bytes(digest[:16], "big"))


def build_key(rng: random.Random) -> str:
    """Draw one candidate key from a random source."""
    prefix_length = rng.randint(1, 4)
    prefix = [rng.choice(LOWERCASE)]
    for _ in range(prefix_length - 1):
        choices = PREFIX_CHARS if prefix[-1] == "_" else PREFIX_CHARS + "_"
        prefix.append(rng.choice(choices))
    while prefix[-1] == "_":
        prefix[-1] = rng.choice(PREFIX_CHARS)

    suffix_length = rng.randint(2, 8)
    suffix = [
        rng.choice(LOWERCASE) if rng.random() < 0.5 else rng.choice(DIGITS)
        for _ in range(suffix_length)
    ]
    return f"{''.join(prefix)}_{''.join(suffix)}"


class KeyGenerator:
    """Issues collision-free keys for one session.

    Args:
        key_exists: Predicate reporting whether the resource table already
            holds a key.
    """

    def __init__(self, key_exists: Callable[[str], bool]):
        self._key_exists = key_exists
        self._issued: set[str] = set()

    @property
    def issued(self) -> frozenset[str]:
        return frozenset(self._issued)

    def generate(self, text: str) -> str:
        attempt = 0
        while True:
            key = build_key(_seeded_random(text, attempt))
            if key not in self._issued and not self._key_exists(key):
                self._issued.add(key)
                return key
            logger.debug("  Key %s taken, regenerating (attempt %d)", key, attempt + 1)
            attempt += 1


def group_occurrences(
    occurrences: Iterable[Occurrence],
    find_key_by_value: Callable[[str], str | None],
    generator: KeyGenerator,
) -> list[Group]:
    """Partition occurrences by normalized text, in order of first appearance.

    Args:
        occurrences: Scanned occurrences.
        find_key_by_value: Lookup of an existing table key for a text.
        generator: Key generator for new candidate keys.

    Returns:
        One group per distinct text. ``use_new_key`` defaults to True only
        when the table has no key for the text yet.
    """
    partitions: dict[str, list[Occurrence]] = {}
    for occurrence in occurrences:
        partitions.setdefault(occurrence.text, []).append(occurrence)

    groups: list[Group] = []
    for text, members in partitions.items():
        old_key = find_key_by_value(text)
        groups.append(
            Group(
                text=text,
                path=members[0].path,
                new_key=generator.generate(text),
                old_key=old_key,
                use_new_key=not old_key,
                selected=True,
                occurrences=members,
            )
        )
    return groups
