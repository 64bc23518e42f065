"""Apply original release dates as items are added to or updated in a library."""

from __future__ import annotations

import logging

from original_release.config import ResolverConfig
from original_release.library import MediaLibrary
from original_release.models import MediaItem, Verdict
from original_release.resolver import DateResolver

log = logging.getLogger(__name__)


class LibraryChangeMonitor:
    """
    Event handlers for library item added/updated notifications.

    Wire :meth:`on_item_added` and :meth:`on_item_updated` to the host
    library's events. Persisting a change triggers another "updated" event for
    the same item; that second pass resolves to the same date and stops.

    Flags always come from the resolver's config. ``config`` is only used to
    build a resolver when none is given.
    """

    def __init__(
        self,
        library: MediaLibrary,
        resolver: DateResolver | None = None,
        config: ResolverConfig | None = None,
    ):
        if resolver is not None and config is not None and config != resolver.config:
            raise ValueError("config disagrees with resolver.config; pass only one of them")
        self.library = library
        self.resolver = resolver or DateResolver(config or ResolverConfig())

    @property
    def config(self) -> ResolverConfig:
        return self.resolver.config

    def on_item_added(self, item: MediaItem) -> Verdict | None:
        return self.handle(item)

    def on_item_updated(self, item: MediaItem) -> Verdict | None:
        return self.handle(item)

    def handle(self, item: MediaItem) -> Verdict | None:
        """
        Process one item and persist a change.

        Returns:
            The verdict, or None when automatic processing is off or the item
            could not be processed
        """
        if not self.config.prefer_original_release:
            return None
        if not self.config.enable_automatic_processing:
            log.debug(f"Automatic processing is disabled, skipping item: '{item.name}'")
            return None

        try:
            verdict = self.resolver.process(item)
            if verdict.changed and verdict.new_date is not None:
                self.library.update_item(item.with_release_date(verdict.new_date))
                log.debug(
                    f"Automatically applied original release date to {item.kind}: '{item.name}'"
                )
            return verdict
        except Exception as e:
            log.error(f"Error processing original release date for {item.kind} '{item.name}': {e}")
            return None
