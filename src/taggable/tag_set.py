"""Tag version registry.

Every tag name maps to an opaque version id stored at ``tag:<name>:key``.
A view's namespace is the ``|``-joined list of its tags' version ids, so it
changes whenever any of those tags is reset.
"""

from __future__ import annotations

import asyncio
import logging
import uuid

from taggable.adapters.base import AsyncStore
from taggable.debouncer import Command, Debouncer
from taggable.duration import parse_duration
from taggable.lock import LockBackend, hold
from taggable.types import Duration

logger = logging.getLogger(__name__)

NAMESPACE_SEPARATOR = "|"


def new_version_id() -> str:
    """Generate a fresh opaque tag version id."""
    return uuid.uuid4().hex


def _text(value: bytes | str) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class TagSet:
    """The ordered tag names of one tagged-cache view.

    With a ttl, created and individually reset tags expire after it. A
    whole-set reset() is a single MSET and leaves the new versions without
    expiry.
    """

    def __init__(
        self,
        store: AsyncStore,
        names: list[str],
        *,
        debouncer: Debouncer,
        lock: LockBackend,
        ttl: Duration | None = None,
    ) -> None:
        if not names:
            raise ValueError("A tag set needs at least one tag name")
        self._store = store
        self._names = list(names)
        self._debouncer = debouncer
        self._lock = lock
        self._ttl_ms = (parse_duration(ttl) or None) if ttl is not None else None
        self._namespace: str | None = None

    @property
    def names(self) -> list[str]:
        return list(self._names)

    def tag_key(self, name: str) -> str:
        """Store key holding the current version id of a tag."""
        return f"tag:{name}:key"

    def lock_key(self, name: str) -> str:
        return f"{self.tag_key(name)}:lock"

    async def get_namespace(self) -> str:
        """Composite namespace for this view, resolved once and then cached."""
        if self._namespace is None:
            ids = await self.tag_ids()
            self._namespace = NAMESPACE_SEPARATOR.join(ids)
        return self._namespace

    async def tag_ids(self) -> list[str]:
        """Current version id of every tag, in name order, creating missing ones."""
        current = await asyncio.gather(
            *(
                self._debouncer.debounce(Command.GET, self.tag_key(name))
                for name in self._names
            )
        )
        return list(
            await asyncio.gather(
                *(
                    self._existing(value)
                    if value is not None
                    else self.resolve_version(name)
                    for name, value in zip(self._names, current)
                )
            )
        )

    @staticmethod
    async def _existing(value: bytes | str) -> str:
        return _text(value)

    async def resolve_version(self, name: str) -> str:
        """Current version id of one tag, publishing a new one if none exists.

        Creation happens under a distributed lock and re-reads the key once
        the lock is held, so racing callers all converge on a single id.
        """
        tag_key = self.tag_key(name)
        async with hold(self._lock, self.lock_key(name)):
            value = await self._store.get(tag_key)
            if value is not None:
                return _text(value)
            version = new_version_id()
            await self._store.set(tag_key, version, px=self._ttl_ms)
            logger.debug("tag.created name=%s version=%s", name, version)
            return version

    async def reset(self) -> None:
        """Give every tag in the set a new version id in one write."""
        versions = {self.tag_key(name): new_version_id() for name in self._names}
        await self._store.mset(versions)
        self._namespace = None
        logger.debug("tag.reset names=%s", ",".join(self._names))

    async def reset_tag(self, name: str) -> None:
        """Give a single tag a new version id."""
        await self._store.set(self.tag_key(name), new_version_id(), px=self._ttl_ms)
        self._namespace = None
        logger.debug("tag.reset names=%s", name)
