"""Cached view of the channels that are open to guests.

A :class:`ChannelCache` enumerates the bot's channels page by page and
publishes the result as one immutable snapshot. Concurrent callers never
trigger more than one enumeration: the first caller on a cold (or, under
``EVERY_CALL``, any) cache becomes the leader and runs the refresh, every
other caller waits on the leader's future and receives the same result.

A failed refresh publishes nothing, so readers keep seeing the previous
snapshot and the next call starts a fresh attempt.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType

import structlog

from invitechan.channels.directory import AbstractChannelDirectory
from invitechan.channels.types import Channel, ChannelSnapshot
from invitechan.credentials.types import Credential
from invitechan.errors import CredentialError, DirectoryError

_logger = structlog.get_logger()


class RefreshPolicy(StrEnum):
    # enumerate once, serve that snapshot for the rest of the process
    ONCE = "once"
    EVERY_CALL = "every_call"


class ChannelCache:
    def __init__(
        self,
        directory: AbstractChannelDirectory,
        refresh_policy: RefreshPolicy = RefreshPolicy.ONCE,
        team_id: str = "",
    ) -> None:
        self._directory = directory
        self.refresh_policy = refresh_policy
        self.team_id = team_id
        self.generation = 0
        self._lock = threading.Lock()
        self._snapshot: ChannelSnapshot | None = None
        self._inflight: Future[ChannelSnapshot] | None = None

    @property
    def current(self) -> ChannelSnapshot | None:
        """Last published snapshot, without triggering a refresh."""
        return self._snapshot

    def snapshot(self, timeout: float | None = None) -> ChannelSnapshot:
        """Return the open channels, refreshing according to the policy.

        *timeout* bounds how long a caller waits for a refresh that another
        caller is running. The leader itself is bounded by the directory's
        own request timeout.

        Raises:
            DirectoryError: the refresh failed or the wait timed out.
        """
        with self._lock:
            if self._snapshot is not None and self.refresh_policy is RefreshPolicy.ONCE:
                return self._snapshot
            future = self._inflight
            leader = future is None
            if future is None:
                future = Future()
                self._inflight = future

        if leader:
            self._refresh(future)
        else:
            _logger.debug("channel_cache_refresh_joined", team_id=self.team_id)

        try:
            return future.result(timeout=timeout)
        except TimeoutError as e:
            _logger.warning("channel_cache_wait_timed_out", team_id=self.team_id, timeout=timeout)
            raise DirectoryError("timed out waiting for the channel list") from e

    def lookup(self, name: str) -> Channel | None:
        """Find one open channel by exact name, stopping at the first page that has it.

        The partial result is never published: it is missing every channel
        on the pages that were not fetched.
        """
        cursor = ""
        pages = 0
        while True:
            page = self._directory.list_member_channels(cursor)
            pages += 1
            found: Channel | None = None
            for channel in page.channels:
                if channel.name == name and not channel.archived:
                    found = channel
            if found is not None:
                _logger.debug("channel_lookup_hit", team_id=self.team_id, name=name, pages=pages)
                return found
            if not page.next_cursor:
                _logger.debug("channel_lookup_miss", team_id=self.team_id, name=name, pages=pages)
                return None
            cursor = page.next_cursor

    def _refresh(self, future: Future[ChannelSnapshot]) -> None:
        try:
            channels, pages = self._enumerate()
        except BaseException as e:
            with self._lock:
                self._inflight = None
            if not isinstance(e, Exception):
                future.set_exception(DirectoryError("channel refresh aborted"))
                raise
            error = e if isinstance(e, DirectoryError) else DirectoryError(str(e))
            if error is not e:
                error.__cause__ = e
            _logger.warning(
                "channel_cache_refresh_failed",
                team_id=self.team_id,
                error=str(e),
                kept_generation=self.generation,
            )
            future.set_exception(error)
            return

        snapshot: ChannelSnapshot = MappingProxyType(channels)
        with self._lock:
            self._snapshot = snapshot
            self.generation += 1
            self._inflight = None
            generation = self.generation

        _logger.info(
            "channel_cache_refreshed",
            team_id=self.team_id,
            channels=len(channels),
            pages=pages,
            generation=generation,
        )
        future.set_result(snapshot)

    def _enumerate(self) -> tuple[dict[str, Channel], int]:
        channels: dict[str, Channel] = {}
        cursor = ""
        pages = 0
        while True:
            page = self._directory.list_member_channels(cursor)
            pages += 1
            for channel in page.channels:
                if channel.archived:
                    continue
                # a later page wins on a duplicate name
                channels[channel.name] = channel
            if not page.next_cursor:
                return channels, pages
            cursor = page.next_cursor


@dataclass
class _CacheEntry:
    bot_token: str
    cache: ChannelCache


class ChannelCacheRegistry:
    """One :class:`ChannelCache` per workspace, listed with the workspace's bot token."""

    def __init__(
        self,
        directory_factory: Callable[[str], AbstractChannelDirectory],
        refresh_policy: RefreshPolicy = RefreshPolicy.ONCE,
    ) -> None:
        self._directory_factory = directory_factory
        self.refresh_policy = refresh_policy
        self._lock = threading.Lock()
        self._caches: dict[str, _CacheEntry] = {}

    def get(self, team_id: str, credential: Credential) -> ChannelCache:
        if not credential.bot_token:
            raise CredentialError("bot token is missing")

        with self._lock:
            entry = self._caches.get(team_id)
            if entry is None or entry.bot_token != credential.bot_token:
                if entry is not None:
                    _logger.info("channel_cache_rebuilt", team_id=team_id, reason="bot_token_changed")
                entry = _CacheEntry(
                    bot_token=credential.bot_token,
                    cache=ChannelCache(
                        self._directory_factory(credential.bot_token),
                        refresh_policy=self.refresh_policy,
                        team_id=team_id,
                    ),
                )
                self._caches[team_id] = entry
            return entry.cache

    def invalidate(self, team_id: str) -> None:
        with self._lock:
            removed = self._caches.pop(team_id, None)
        if removed is not None:
            _logger.info("channel_cache_invalidated", team_id=team_id)
