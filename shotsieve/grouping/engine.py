"""
Grouping engine.

Owns the pool of signed thumbnails and the navigable sequence of groups
built from it. Assets are pulled from the source in batches, clustered,
and split into a discovered list (navigable now) and a queued tail held
back as look-ahead. User decisions live on the pooled thumbnails, which are
indexed by asset id, so they survive every recluster.

Thread model: every state change happens under ``_lock``. Fetch passes are
serialized by ``_fetch_lock`` and take ``_lock`` once per batch, so readers
are never blocked for a whole scan. Listeners may be called from the
background replenishment thread.
"""

from __future__ import annotations

import logging
import sys
import threading
from datetime import datetime
from typing import Any, Callable, Optional

from ..config import (
    DEFAULT_WINDOW_MINUTES,
    INITIAL_BATCH_SIZE,
    LOOKAHEAD_GROUP_COUNT,
    MAX_WINDOW_MINUTES,
    MIN_WINDOW_MINUTES,
    REPLENISH_THRESHOLD,
    SUBSEQUENT_BATCH_SIZE,
    THUMBNAIL_SIZE,
)
from ..database.retention import RetentionStore
from ..errors import (
    ChangesFailedError,
    DeletionError,
    EmptyBucketError,
    QuotaExceededError,
    UnauthorizedError,
)
from ..models import BucketGroup, GroupState, SessionSnapshot, Thumbnail, identifier_key
from ..signature.batch import scan_assets
from ..signature.extractor import SignatureExtractor
from ..similarity import SimilarityEvaluator, SimilarityTuning, preset_for_tuning, tuning_for_preset
from ..sources.base import AssetSource, BitmapProvider, Deleter
from .clustering import cluster_thumbnails, ensure_default_check
from .quota import DailyQuota

logger = logging.getLogger(__name__)

Listener = Callable[[SessionSnapshot], None]


def clamp_window(minutes: int) -> int:
    """Clamp a grouping window to the supported range."""
    return max(MIN_WINDOW_MINUTES, min(int(minutes), MAX_WINDOW_MINUTES))


class GroupingEngine:
    """
    Stateful core of a photo-sorting session.

    Args:
        source: Paged asset enumeration
        bitmaps: Decodes assets for signature extraction
        retention: Store of explicitly kept assets (in-memory when omitted)
        deleter: Removes bucketed assets; deletion is refused without one
        quota: Daily advance quota (in-memory when omitted)
        extractor: Signature extractor
        signature_cache: Optional cache with get_batch / put_batch
        tuning: Initial similarity tuning
        window_minutes: Initial grouping window, clamped to 15-240
        target_size: Thumbnail size requested from the bitmap provider
        run_in_background: Run replenishment passes on a daemon thread;
            when False they run inline, which keeps tests deterministic
        show_progress: Show a tqdm bar while scanning batches
    """

    def __init__(
        self,
        source: AssetSource,
        bitmaps: BitmapProvider,
        retention: Optional[Any] = None,
        deleter: Optional[Deleter] = None,
        quota: Optional[DailyQuota] = None,
        extractor: Optional[SignatureExtractor] = None,
        signature_cache: Optional[Any] = None,
        tuning: Optional[SimilarityTuning] = None,
        window_minutes: int = DEFAULT_WINDOW_MINUTES,
        target_size: tuple[int, int] = THUMBNAIL_SIZE,
        run_in_background: bool = True,
        show_progress: bool = False,
    ):
        self.source = source
        self.bitmaps = bitmaps
        self.retention = retention if retention is not None else RetentionStore()
        self.deleter = deleter
        self.quota = quota if quota is not None else DailyQuota()
        self.extractor = extractor or SignatureExtractor()
        self.signature_cache = signature_cache
        self.target_size = target_size
        self.run_in_background = run_in_background
        self.show_progress = show_progress

        self._tuning = tuning or SimilarityTuning()
        self._evaluator = SimilarityEvaluator(self._tuning)
        self._window_minutes = clamp_window(window_minutes)

        self._lock = threading.RLock()
        self._fetch_lock = threading.RLock()
        self._cancel_event = threading.Event()
        self._generation = 0
        self._replenishing = False
        self._worker: Optional[threading.Thread] = None
        self._listeners: list[Listener] = []

        self._clear_state()

    def _clear_state(self) -> None:
        self._pool: dict[str, Thumbnail] = {}
        self._groups: list[GroupState] = []
        self._queued: list[GroupState] = []
        self._index = 0
        self._presented_ids: frozenset = frozenset()
        self._cursor = 0
        self._total = 0
        self._stream_open = False
        self._is_loading = False
        self._is_exploring = False
        self._did_finish_initial_load = False

    # =========================================================================
    # Read-only state
    # =========================================================================

    @property
    def window_minutes(self) -> int:
        return self._window_minutes

    @property
    def tuning(self) -> SimilarityTuning:
        return self._tuning

    @property
    def preset(self) -> Optional[str]:
        """Name of the active preset, or None for a custom tuning."""
        preset = preset_for_tuning(self._tuning)
        return preset.value if preset else None

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_group(self) -> list[Thumbnail]:
        """Detached copies of the displayed group's members."""
        with self._lock:
            if not 0 <= self._index < len(self._groups):
                return []
            return [t.copy() for t in self._groups[self._index].thumbnails]

    @property
    def discovered_group_count(self) -> int:
        return len(self._groups)

    @property
    def queued_group_count(self) -> int:
        return len(self._queued)

    @property
    def upcoming_group_count(self) -> int:
        """Discovered groups after the current one."""
        if not self._groups:
            return 0
        return max(0, len(self._groups) - self._index - 1)

    @property
    def remaining_quota(self) -> int:
        return self.quota.remaining

    @property
    def used_quota(self) -> int:
        return self.quota.used

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_exploring(self) -> bool:
        return self._is_exploring

    @property
    def did_finish_initial_load(self) -> bool:
        return self._did_finish_initial_load

    @property
    def pool_size(self) -> int:
        return len(self._pool)

    @property
    def has_more_assets(self) -> bool:
        """Assets remain in the stream or groups remain in the queue."""
        return bool(self._queued) or (self._stream_open and self._cursor < self._total)

    @property
    def bucket_groups(self) -> list[BucketGroup]:
        """Bucketed items of every finalized discovered group."""
        with self._lock:
            result = []
            for index, state in enumerate(self._groups):
                if not state.is_processed:
                    continue
                items = tuple(t.copy() for t in state.thumbnails if t.is_in_bucket)
                if items:
                    result.append(BucketGroup(group_index=index, items=items))
            return result

    @property
    def bucket_items(self) -> list[Thumbnail]:
        return [item for group in self.bucket_groups for item in group.items]

    def all_groups(self, include_queued: bool = False) -> list[GroupState]:
        """Detached copies of the discovered groups (and optionally the queue)."""
        with self._lock:
            states = self._groups + (self._queued if include_queued else [])
            return [
                GroupState([t.copy() for t in state.thumbnails], state.is_processed)
                for state in states
            ]

    def snapshot(self) -> SessionSnapshot:
        """Point-in-time view of the session."""
        with self._lock:
            return SessionSnapshot(
                current_group=tuple(self.current_group),
                current_index=self._index,
                discovered_group_count=len(self._groups),
                queued_group_count=len(self._queued),
                upcoming_group_count=self.upcoming_group_count,
                remaining_quota=self.quota.remaining,
                used_quota=self.quota.used,
                daily_limit=self.quota.limit,
                window_minutes=self._window_minutes,
                preset=self.preset,
                bucket_item_count=len(self.bucket_items),
                is_loading=self._is_loading,
                is_exploring=self._is_exploring,
                did_finish_initial_load=self._did_finish_initial_load,
            )

    # =========================================================================
    # Change notification
    # =========================================================================

    def add_listener(self, callback: Listener) -> None:
        """Register a callback that receives a SessionSnapshot after changes."""
        with self._lock:
            if callback not in self._listeners:
                self._listeners.append(callback)

    def remove_listener(self, callback: Listener) -> None:
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
            if not listeners:
                return
            snapshot = self.snapshot()
        for callback in listeners:
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Session listener failed")

    # =========================================================================
    # Loading
    # =========================================================================

    def load_all(self, target_size: Optional[tuple[int, int]] = None) -> SessionSnapshot:
        """
        Start a fresh session: reset, fetch until the look-ahead is
        satisfied or the stream ends, and present the first group.
        """
        with self._lock:
            if self._is_loading:
                return self.snapshot()
            self._reset_locked()
            self._is_loading = True
            if target_size is not None:
                self.target_size = target_size
            self._total = self.source.count()
            self._stream_open = True

        self._notify()
        try:
            if self._total > 0:
                self._fetch_additional(LOOKAHEAD_GROUP_COUNT)
            with self._lock:
                self._promote(LOOKAHEAD_GROUP_COUNT)
                self._present_clamped()
        finally:
            with self._lock:
                self._is_loading = False
                self._did_finish_initial_load = True

        logger.info(
            f"Loaded {len(self._pool)} photos into {len(self._groups)} groups "
            f"({len(self._queued)} queued)"
        )
        self._notify()
        return self.snapshot()

    def explore_all(self) -> SessionSnapshot:
        """Fetch the rest of the stream and make every group navigable."""
        with self._lock:
            if not self._stream_open:
                self._total = self.source.count()
                self._stream_open = True
        self._fetch_additional(sys.maxsize)
        with self._lock:
            self._promote(sys.maxsize)
            self._present_clamped()
        self._notify()
        return self.snapshot()

    def _fetch_additional(self, min_upcoming: int) -> None:
        """
        Fetch batches until min_upcoming groups are buffered ahead of the
        cursor, the stream ends, or the pass is cancelled.
        """
        with self._fetch_lock:
            with self._lock:
                generation = self._generation
                cancel_event = self._cancel_event
                self._promote(min_upcoming)

            while True:
                with self._lock:
                    if generation != self._generation or cancel_event.is_set():
                        break
                    if self.upcoming_group_count >= min_upcoming:
                        break
                    if not self._stream_open or self._cursor >= self._total:
                        break
                    offset = self._cursor
                    batch_size = INITIAL_BATCH_SIZE if not self._groups else SUBSEQUENT_BATCH_SIZE
                    self._is_exploring = True

                try:
                    assets = self.source.fetch(offset, batch_size)
                    result = scan_assets(
                        assets,
                        self.bitmaps,
                        self.extractor,
                        target_size=self.target_size,
                        cancel_event=cancel_event,
                        signature_cache=self.signature_cache,
                        show_progress=self.show_progress,
                    )
                finally:
                    with self._lock:
                        self._is_exploring = False

                with self._lock:
                    if generation != self._generation:
                        break
                    if not assets:
                        # Source shrank under us
                        self._total = offset
                        break
                    self._cursor = offset + result.consumed
                    if result.thumbnails:
                        self._add_to_pool(result.thumbnails)
                        self._rebuild(reset_index=not self._groups)
                    self._promote(min_upcoming)

                logger.debug(
                    f"Batch at {offset}: {len(result.thumbnails)} signed, "
                    f"{len(result.skipped)} skipped, {result.cache_hits} cached"
                )
                self._notify()
                if result.cancelled or result.consumed == 0:
                    break

            with self._lock:
                if generation == self._generation:
                    self._present_clamped()

    def _add_to_pool(self, thumbnails: list[Thumbnail]) -> None:
        for thumbnail in thumbnails:
            if thumbnail.id in self._pool:
                continue
            thumbnail.is_retained = self.retention.is_retained(thumbnail.id)
            self._pool[thumbnail.id] = thumbnail

    # =========================================================================
    # Reclustering
    # =========================================================================

    def _rebuild(self, reset_index: bool) -> None:
        """Recluster the whole pool and reconcile with the previous groups."""
        if not self._pool:
            self._groups = []
            self._queued = []
            self._index = 0
            self._presented_ids = frozenset()
            return

        previous = self._groups + self._queued
        previous_discovered = len(self._groups)
        previous_index = self._index
        previous_ids = self._presented_ids

        previously_grouped = {t.id for state in previous for t in state.thumbnails}
        processed_by_key = {state.identifier_key: state.is_processed for state in previous}

        clusters = cluster_thumbnails(
            self._pool.values(), self._window_minutes, evaluator=self._evaluator
        )

        states = []
        for members in clusters:
            had_snapshot = any(t.id in previously_grouped for t in members)
            for thumbnail in members:
                if self.retention.is_retained(thumbnail.id):
                    thumbnail.is_retained = True
            was_processed = processed_by_key.get(identifier_key(members), False)
            ensure_default_check(members, enforce_checked=not had_snapshot, mark_bucket=was_processed)
            states.append(GroupState(members, was_processed))

        minimum = 1 if reset_index else previous_discovered
        required = min(previous_index + 1, len(states))
        discovered = min(max(minimum, required), len(states))

        self._groups = states[:discovered]
        self._queued = states[discovered:]

        match = None
        if previous_ids:
            match = next(
                (i for i, state in enumerate(self._groups) if state.id_set == previous_ids),
                None,
            )
        if match is not None:
            self._index = match
        elif 0 <= previous_index < len(self._groups):
            self._index = previous_index
        else:
            self._index = max(0, len(self._groups) - 1)

    def _promote(self, target_upcoming: int) -> None:
        """Move queued groups into the discovered list to fill the look-ahead."""
        if not self._groups and self._queued:
            self._groups.append(self._queued.pop(0))
        while self._groups and self._queued and self.upcoming_group_count < target_upcoming:
            self._groups.append(self._queued.pop(0))

    def _present(self, index: int) -> None:
        if not 0 <= index < len(self._groups):
            self._presented_ids = frozenset()
            return
        state = self._groups[index]
        ensure_default_check(
            state.thumbnails,
            enforce_checked=not any(t.is_checked for t in state.thumbnails),
            mark_bucket=state.is_processed,
        )
        self._presented_ids = state.id_set

    def _present_clamped(self) -> None:
        if self._groups:
            self._index = min(self._index, len(self._groups) - 1)
            self._present(self._index)
        else:
            self._presented_ids = frozenset()

    # =========================================================================
    # Look-ahead replenishment
    # =========================================================================

    def _request_replenishment(self) -> None:
        with self._lock:
            self._promote(LOOKAHEAD_GROUP_COUNT)
            if self.upcoming_group_count >= REPLENISH_THRESHOLD:
                return
            if not self.has_more_assets:
                return
        self._request_fetch()

    def _request_fetch(self) -> None:
        """Start a fetch-and-promote pass unless one is already running."""
        with self._lock:
            if self._replenishing or not self._stream_open:
                return
            self._replenishing = True

        if self.run_in_background:
            worker = threading.Thread(
                target=self._replenish_pass, name='shotsieve-replenish', daemon=True
            )
            self._worker = worker
            worker.start()
        else:
            self._replenish_pass()

    def _replenish_pass(self) -> None:
        try:
            self._fetch_additional(LOOKAHEAD_GROUP_COUNT)
            with self._lock:
                self._promote(LOOKAHEAD_GROUP_COUNT)
                self._present_clamped()
        except Exception:
            logger.exception("Look-ahead replenishment failed")
        finally:
            with self._lock:
                self._replenishing = False
        self._notify()

    def wait_for_background(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the running replenishment pass, if any.

        Returns:
            True if no pass is running afterwards
        """
        worker = self._worker
        if worker is not None and worker.is_alive():
            worker.join(timeout)
            return not worker.is_alive()
        return True

    # =========================================================================
    # Navigation and finalization
    # =========================================================================

    def refresh_quota(self, now: Optional[datetime] = None) -> int:
        """Re-read today's quota. Returns the remaining advances."""
        with self._lock:
            return self.quota.refresh(now)

    def advance(self, now: Optional[datetime] = None) -> bool:
        """
        Finalize the displayed group and move to the next one.

        Checked members are recorded as retained, every member's bucket
        flag becomes the opposite of its check flag, and one unit of the
        daily quota is used.

        Returns:
            True if the cursor moved to another group, False if it stayed
            (no groups, or the next one is not discovered yet)

        Raises:
            QuotaExceededError: No advances left today; nothing is changed
        """
        with self._lock:
            if self.quota.refresh(now) <= 0:
                raise QuotaExceededError(self.quota.limit)
            if not self._groups:
                return False

            self._finalize_current()
            self.quota.consume(now)
            self._promote(LOOKAHEAD_GROUP_COUNT)

            moved = self._index + 1 < len(self._groups)
            if moved:
                self._index += 1
                self._present(self._index)

        self._request_replenishment()
        self._notify()
        return moved

    def _finalize_current(self) -> None:
        if not 0 <= self._index < len(self._groups):
            return
        state = self._groups[self._index]
        if not state.thumbnails:
            return

        checked = [t for t in state.thumbnails if t.is_checked]
        if checked:
            self.retention.mark_retained(
                [t.id for t in checked],
                {t.id: t.signature for t in checked},
            )
            for thumbnail in checked:
                thumbnail.is_retained = True

        ensure_default_check(state.thumbnails, enforce_checked=False, mark_bucket=True)
        state.is_processed = True
        logger.debug(f"Finalized group {self._index + 1}: kept {len(checked)} of {len(state)}")

    def navigate_previous(self) -> bool:
        """Show the previous discovered group."""
        with self._lock:
            if self._index <= 0:
                return False
            self._index -= 1
            self._present(self._index)
        self._notify()
        return True

    def navigate_next_discovered(self) -> bool:
        """Show the next discovered group without finalizing the current one."""
        with self._lock:
            moved = self._index + 1 < len(self._groups)
            if moved:
                self._index += 1
                self._present(self._index)
        self._request_replenishment()
        if moved:
            self._notify()
        return moved

    # =========================================================================
    # Check state
    # =========================================================================

    def _current_member(self, asset_id: str) -> Optional[Thumbnail]:
        if not 0 <= self._index < len(self._groups):
            return None
        if asset_id not in self._groups[self._index].id_set:
            return None
        return self._pool.get(asset_id)

    def toggle_check(self, asset_id: str) -> bool:
        """
        Flip the keep decision of a member of the displayed group.

        A retained photo that is checked stays checked.

        Returns:
            True if anything changed
        """
        with self._lock:
            thumbnail = self._current_member(asset_id)
            if thumbnail is None:
                return False
            if thumbnail.is_retained and thumbnail.is_checked:
                return False
            thumbnail.is_checked = not thumbnail.is_checked
            thumbnail.is_in_bucket = not thumbnail.is_checked
            ensure_default_check(
                self._groups[self._index].thumbnails, enforce_checked=False, mark_bucket=False
            )
        self._notify()
        return True

    def set_check(self, asset_id: str, checked: bool) -> bool:
        """Set the keep decision of a member of the displayed group."""
        with self._lock:
            thumbnail = self._current_member(asset_id)
            if thumbnail is None:
                return False
            if thumbnail.is_retained and not checked:
                return False
            if thumbnail.is_checked == checked:
                return False
            thumbnail.is_checked = checked
            thumbnail.is_in_bucket = not checked
            ensure_default_check(
                self._groups[self._index].thumbnails, enforce_checked=False, mark_bucket=False
            )
        self._notify()
        return True

    # =========================================================================
    # Deletion
    # =========================================================================

    def delete_bucket(self) -> int:
        """
        Delete every bucketed photo of the finalized groups.

        Returns:
            Number of assets the deleter reports as removed

        Raises:
            EmptyBucketError: Nothing finalized is in the bucket
            UnauthorizedError: The deleter may not remove photos
            ChangesFailedError: The deleter failed; the pool is unchanged
        """
        with self._lock:
            groups = self.bucket_groups
            items = [item for group in groups for item in group.items]
            if not items:
                raise EmptyBucketError()

            if self.deleter is None or not self.deleter.is_authorized():
                raise UnauthorizedError()

            try:
                deleted = self.deleter.delete([item.asset for item in items])
            except DeletionError:
                raise
            except PermissionError as e:
                raise UnauthorizedError(str(e)) from e
            except Exception as e:
                raise ChangesFailedError(e) from e

            removed = {item.id for item in items}
            for asset_id in removed:
                self._pool.pop(asset_id, None)
            self._evaluator.forget(removed)

            self._rebuild(reset_index=False)
            self._promote(LOOKAHEAD_GROUP_COUNT)
            self._present_clamped()

        logger.info(f"Deleted {deleted} photos from {len(groups)} groups")
        self._notify()
        return deleted

    # =========================================================================
    # Settings
    # =========================================================================

    def set_window_minutes(self, minutes: int) -> int:
        """
        Change the grouping window (clamped to 15-240 minutes).

        Returns:
            The window actually applied
        """
        clamped = clamp_window(minutes)
        with self._lock:
            if clamped == self._window_minutes:
                return clamped
            self._window_minutes = clamped
            self._rebuild(reset_index=False)
            self._present_clamped()
        self._notify()
        self._request_fetch()
        return clamped

    def set_tuning(self, tuning: SimilarityTuning) -> None:
        """Change the similarity tuning and recluster."""
        with self._lock:
            if tuning == self._tuning:
                return
            self._tuning = tuning
            self._evaluator = self._evaluator.with_tuning(tuning)
            self._rebuild(reset_index=False)
            self._present_clamped()
        self._notify()
        self._request_fetch()

    def set_preset(self, name: str) -> SimilarityTuning:
        """
        Apply a named tuning preset.

        Raises:
            ValueError: If the preset name is unknown
        """
        tuning = tuning_for_preset(name)
        self.set_tuning(tuning)
        return tuning

    def reset_retention(self) -> SessionSnapshot:
        """Forget every retained photo and start the session over."""
        self.retention.clear()
        return self.load_all()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _reset_locked(self) -> None:
        self._generation += 1
        stale = self._cancel_event
        self._cancel_event = threading.Event()
        stale.set()
        self._clear_state()

    def reset(self) -> None:
        """Drop the pool and all groups, stopping any running fetch."""
        with self._lock:
            self._reset_locked()
        self._notify()

    def cancel(self) -> None:
        """
        Stop the fetch pass that is running now.

        Thumbnails already signed are kept. Later passes are not affected.
        """
        with self._lock:
            stale = self._cancel_event
            self._cancel_event = threading.Event()
        stale.set()
