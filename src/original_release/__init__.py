__all__ = (
    "app",
    "Config",
    "ResolverConfig",
    # Data model
    "ItemKind",
    "MediaItem",
    "DateSource",
    "ResolvedDate",
    "Verdict",
    # Tag reading
    "TagView",
    "TagReadError",
    "UserTextFrame",
    "read_tag_view",
    # Resolution
    "DateResolver",
    "find_representative_file",
    # Library and drivers
    "MediaLibrary",
    "FilesystemLibrary",
    "LibraryUpdateError",
    "BatchRunner",
    "BatchSummary",
    "LibraryChangeMonitor",
    "ProcessedItemsCache",
    # Tag writing
    "DateTagWriter",
    "WriteReport",
    "get_writer_for_file",
    "write_release_date",
)

from original_release.batch import BatchRunner, BatchSummary
from original_release.cache import ProcessedItemsCache
from original_release.cli import app
from original_release.config import Config, ResolverConfig
from original_release.library import FilesystemLibrary, LibraryUpdateError, MediaLibrary
from original_release.models import DateSource, ItemKind, MediaItem, ResolvedDate, Verdict
from original_release.monitor import LibraryChangeMonitor
from original_release.resolver import DateResolver, find_representative_file
from original_release.tagging import (
    DateTagWriter,
    WriteReport,
    get_writer_for_file,
    write_release_date,
)
from original_release.tagview import TagReadError, TagView, UserTextFrame, read_tag_view
