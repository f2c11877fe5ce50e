import os
import queue
import stat
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from colored_logger import get_colored_logger
from .errors import CookbookError, WatchRegistrationError
from .library import RecipeLibrary
from .naming import is_recipe_filename

logger = get_colored_logger(__name__)


class EventKind(Enum):
    CREATE = "create"
    WRITE = "write"
    REMOVE = "remove"
    RENAME = "rename"


class WatcherState(Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    STOPPED = "stopped"


@dataclass(frozen=True)
class WatchEvent:
    kind: EventKind
    path: str


# Marks the end of the event channel
_CLOSED = object()


class QueueingEventHandler(FileSystemEventHandler):
    """
    Translates watchdog notifications into WatchEvents on a queue.

    A move is reported as a rename of the old path followed by a create of
    the new one. Directory events are dropped.
    """

    def __init__(self, events: queue.Queue):
        super().__init__()
        self.events = events

    def _put(self, kind: EventKind, path) -> None:
        self.events.put(WatchEvent(kind, os.fsdecode(path)))

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._put(EventKind.CREATE, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._put(EventKind.WRITE, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._put(EventKind.REMOVE, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._put(EventKind.RENAME, event.src_path)
            self._put(EventKind.CREATE, event.dest_path)


class RecipeWatcher:
    """
    Keeps a RecipeLibrary in step with its recipes directory.

    Notifications are funnelled into one queue and applied strictly one at a
    time, in arrival order, by ``run()``. Creates and writes re-index the
    file; removes and renames delete the entry whose webpath is derived from
    the file name. Failures for a single event are logged and the loop moves
    on to the next event.
    """

    def __init__(
        self,
        library: RecipeLibrary,
        events: Optional[queue.Queue] = None,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        self.library = library
        self.events = events if events is not None else queue.Queue()
        self.observer_factory = observer_factory
        self.observer = None
        self.state = WatcherState.IDLE
        self.processed = 0

    def start(self) -> None:
        """
        Register the watch on the recipes directory.

        Raises:
            WatchRegistrationError: If the directory cannot be watched
        """
        path = self.library.recipes_path
        if not os.path.isdir(path):
            raise WatchRegistrationError(path, "not a directory")

        observer = self.observer_factory()
        try:
            observer.schedule(QueueingEventHandler(self.events), path, recursive=False)
            observer.start()
        except OSError as e:
            raise WatchRegistrationError(path, e.strerror or str(e)) from e

        self.observer = observer
        logger.notice("Watching %s for recipe changes", path)

    def run(self) -> None:
        """Process events until the channel is closed."""
        while True:
            event = self.events.get()
            if event is _CLOSED:
                break

            self.state = WatcherState.PROCESSING
            try:
                self.process(event)
            finally:
                self.processed += 1
                self.state = WatcherState.IDLE

        self.state = WatcherState.STOPPED
        logger.info("Recipe watcher stopped after %d events", self.processed)

    def run_in_background(self) -> threading.Thread:
        """Start ``run()`` on a daemon thread and return the thread."""
        thread = threading.Thread(target=self.run, name="recipe-watcher", daemon=True)
        thread.start()
        return thread

    def submit(self, event: WatchEvent) -> None:
        self.events.put(event)

    def close(self) -> None:
        """Stop OS notifications and close the event channel."""
        if self.observer is not None:
            self.observer.stop()
            self.observer.join()
            self.observer = None
        self.events.put(_CLOSED)

    def process(self, event: WatchEvent) -> None:
        """Apply a single event to the library."""
        logger.debug("Event: %s %s", event.kind.value, event.path)
        filename = os.path.basename(event.path)

        if event.kind in (EventKind.CREATE, EventKind.WRITE):
            try:
                info = os.stat(event.path)
            except OSError as e:
                logger.error("Cannot stat %s: %s", event.path, e)
                return

            if not stat.S_ISREG(info.st_mode) or not is_recipe_filename(
                filename, self.library.loader.recipe_ext
            ):
                logger.debug("Ignoring non-recipe path %s", event.path)
                return

            self.library.index_file(filename)

        elif event.kind in (EventKind.REMOVE, EventKind.RENAME):
            try:
                self.library.delete(filename)
            except CookbookError as e:
                logger.error("Failed to remove recipe %s from index: %s", filename, e)
