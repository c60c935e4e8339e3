"""Visualizer session: fetched items, selection and generated images."""

import logging
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple

from todoist_visualizer.api.client import RESOURCE_KINDS, TodoistClient
from todoist_visualizer.config import VisualizerConfig
from todoist_visualizer.models import (
    ClassifiedError,
    Err,
    ErrorCode,
    ItemKind,
    Ok,
    RemoteItem,
    Result,
    SelectionError,
)
from todoist_visualizer.utils.errors import classify_error, log_error, validate_selection
from todoist_visualizer.utils.image_utils import ImageGenerator, PlaceholderImageGenerator

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    """Lifecycle phase of a session."""
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    GENERATING_IMAGES = "generating_images"
    IMAGES_READY = "images_ready"
    FAILED = "failed"


class SessionCancelled(Exception):
    """Raised inside a job when its session was closed."""


def _frozen_map(values: Optional[Mapping[str, str]] = None) -> Mapping[str, str]:
    return MappingProxyType(dict(values or {}))


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of the session state."""
    phase: SessionPhase = SessionPhase.IDLE
    items: Mapping[ItemKind, Tuple[RemoteItem, ...]] = field(default_factory=_frozen_map)
    selection: FrozenSet[str] = frozenset()
    images: Mapping[str, str] = field(default_factory=_frozen_map)
    error: Optional[ClassifiedError] = None
    errors: Tuple[ClassifiedError, ...] = ()

    def items_of(self, kind: ItemKind) -> Tuple[RemoteItem, ...]:
        return self.items.get(kind, ())

    @property
    def favorites(self) -> Tuple[RemoteItem, ...]:
        return self.items_of(ItemKind.FAVORITE)

    @property
    def filters(self) -> Tuple[RemoteItem, ...]:
        return self.items_of(ItemKind.FILTER)

    @property
    def tasks(self) -> Tuple[RemoteItem, ...]:
        return self.items_of(ItemKind.TASK)

    def all_items(self) -> List[RemoteItem]:
        return [item for kind in ItemKind for item in self.items_of(kind)]

    def find_item(self, item_id: str) -> Optional[RemoteItem]:
        for item in self.all_items():
            if item.id == item_id:
                return item
        return None


def toggle_selection(selection: FrozenSet[str], item_id: str) -> FrozenSet[str]:
    """Add the id if absent, remove it if present."""
    return selection ^ {item_id}


class VisualizerSession:
    """Holds one user's fetched collections, selection and images.

    Every operation returns ``Ok(snapshot)`` or ``Err(classified_error)``;
    no exception escapes a session method. Failed operations keep previously
    loaded items, selection and images and only replace the error slot.
    """

    def __init__(
        self,
        client: TodoistClient,
        generator: Optional[ImageGenerator] = None,
        config: Optional[VisualizerConfig] = None,
    ):
        self.client = client
        self.config = config or client.config
        self.generator = generator or PlaceholderImageGenerator(
            self.config.image_width, self.config.image_height
        )
        self._state = SessionSnapshot()
        self._lock = threading.Lock()
        self._closed = threading.Event()
        self._loading = False
        self._generating = False
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="visualizer"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return self._state

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def _update(self, **changes) -> SessionSnapshot:
        with self._lock:
            self._state = replace(self._state, **changes)
            return self._state

    def _fail(self, error: ClassifiedError, context: str, **changes) -> Err:
        log_error(error, context)
        if not self.closed:
            self._update(error=error, errors=(error,), **changes)
        return Err(error)

    def _cancelled(self) -> Err:
        return Err(ClassifiedError("Session was closed", code=ErrorCode.CANCELLED))

    def _begin(self, flag: str, what: str) -> Optional[Err]:
        """Set an in-flight flag, or explain why the operation cannot start."""
        with self._lock:
            if self._closed.is_set():
                return self._cancelled()
            if getattr(self, flag):
                return Err(
                    ClassifiedError(
                        f"{what} is already in progress",
                        code=ErrorCode.OPERATION_IN_PROGRESS,
                    )
                )
            setattr(self, flag, True)
        return None

    def _end(self, flag: str) -> None:
        with self._lock:
            setattr(self, flag, False)

    def _run_jobs(self, jobs: List[Tuple[str, Callable]]) -> Dict[str, Future]:
        futures = {key: self._executor.submit(job) for key, job in jobs}
        wait(futures.values())
        return futures

    def load_collections(self) -> Result[SessionSnapshot]:
        """Fetch every configured collection.

        Collections are fetched concurrently. If any fetch fails, every
        failure is classified and logged, the first one (in collection order)
        becomes the current error and the previously loaded data is kept.
        """
        busy = self._begin("_loading", "Fetching data")
        if busy:
            return busy
        try:
            self._update(phase=SessionPhase.LOADING, error=None, errors=())
            try:
                futures = self._run_jobs(
                    [(name, lambda name=name: self.client.fetch_collection(name))
                     for name in self.config.collections]
                )
            except RuntimeError as e:
                # Executor shut down by close() before the jobs were queued.
                if self.closed:
                    return self._cancelled()
                return self._fail(classify_error(e), "FETCH_DATA", phase=SessionPhase.FAILED)

            if self.closed:
                return self._cancelled()

            loaded: Dict[ItemKind, Tuple[RemoteItem, ...]] = {}
            errors: List[ClassifiedError] = []
            for name, future in futures.items():
                try:
                    loaded[RESOURCE_KINDS[name]] = tuple(future.result())
                except CancelledError:
                    return self._cancelled()
                except Exception as e:
                    error = classify_error(e)
                    log_error(error, f"FETCH_{name.upper()}")
                    errors.append(error)

            if errors:
                self._update(phase=SessionPhase.FAILED, error=errors[0], errors=tuple(errors))
                return Err(errors[0])

            ids = {item.id for items in loaded.values() for item in items}
            with self._lock:
                # Keep the selection a subset of what is loaded now.
                self._state = state = replace(
                    self._state,
                    phase=SessionPhase.LOADED,
                    items=_frozen_map(loaded),
                    selection=frozenset(i for i in self._state.selection if i in ids),
                    images=_frozen_map(
                        {k: v for k, v in self._state.images.items() if k in ids}
                    ),
                )
            logger.info("Loaded %d items", len(ids))
            return Ok(state)
        finally:
            self._end("_loading")

    def toggle(self, item_id) -> Result[SessionSnapshot]:
        """Select or deselect a loaded item.

        The id is validated first; on failure the selection is unchanged and
        the error slot is set.
        """
        if self.closed:
            return self._cancelled()
        try:
            validate_selection(item_id)
            if self.snapshot.find_item(item_id) is None:
                raise SelectionError(f"Unknown item: {item_id}")
        except Exception as e:
            return self._fail(classify_error(e), "TOGGLE_SELECTION")

        with self._lock:
            self._state = replace(
                self._state,
                selection=toggle_selection(self._state.selection, item_id),
                error=None,
                errors=(),
            )
            return Ok(self._state)

    def _generate_one(self, item: RemoteItem) -> str:
        if self.config.image_delay and self._closed.wait(self.config.image_delay):
            raise SessionCancelled()
        if self.closed:
            raise SessionCancelled()
        reference = self.generator.generate(item)
        if not reference:
            raise ValueError(f"No image produced for {item.id}")
        return reference

    def generate_images(self) -> Result[SessionSnapshot]:
        """Produce an image for every selected item.

        Either every selected item gets an image or the operation fails and
        the previously displayed images are left untouched.
        """
        busy = self._begin("_generating", "Image generation")
        if busy:
            return busy
        try:
            current = self.snapshot
            if not current.selection:
                return self._fail(
                    ClassifiedError(
                        "Please select at least one item to generate images",
                        code=ErrorCode.VALIDATION_ERROR,
                    ),
                    "GENERATE_IMAGES",
                )

            items = [current.find_item(item_id) for item_id in sorted(current.selection)]
            self._update(phase=SessionPhase.GENERATING_IMAGES, error=None, errors=())
            try:
                futures = self._run_jobs(
                    [(item.id, lambda item=item: self._generate_one(item)) for item in items]
                )
            except RuntimeError as e:
                if self.closed:
                    return self._cancelled()
                return self._fail(classify_error(e), "GENERATE_IMAGES", phase=SessionPhase.FAILED)

            if self.closed:
                return self._cancelled()

            images: Dict[str, str] = {}
            for item_id, future in futures.items():
                try:
                    images[item_id] = future.result()
                except (CancelledError, SessionCancelled):
                    return self._cancelled()
                except Exception as e:
                    return self._fail(
                        classify_error(e), "GENERATE_IMAGES", phase=SessionPhase.FAILED
                    )

            with self._lock:
                # A reload or toggle may have run meanwhile; only commit images
                # for ids that are still loaded and selected.
                current = self._state
                loaded_ids = {item.id for item in current.all_items()}
                kept = {
                    k: v for k, v in images.items()
                    if k in current.selection and k in loaded_ids
                }
                self._state = state = replace(
                    current, phase=SessionPhase.IMAGES_READY, images=_frozen_map(kept)
                )
            if len(kept) < len(images):
                logger.info("Dropped %d images for items no longer selected", len(images) - len(kept))
            logger.info("Generated %d images", len(kept))
            return Ok(state)
        finally:
            self._end("_generating")

    def clear_error(self) -> SessionSnapshot:
        return self._update(error=None, errors=())

    def close(self) -> None:
        """Cancel pending work and release the HTTP session.

        Operations still running finish without touching the session state.
        """
        if self._closed.is_set():
            return
        self._closed.set()
        self._executor.shutdown(wait=False, cancel_futures=True)
        self.client.close()
        logger.debug("Session closed")
