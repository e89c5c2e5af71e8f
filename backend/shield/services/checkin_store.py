"""Today's check-in: local-first storage with a remote mirror.

The day id is the record key, which is what keeps a user to a single
check-in per calendar day. Writes go to the local cache first (the caller's
next read always sees them) and are then mirrored to the remote store in a
background task. Writes for the same day reach the remote in order, and a
read waits for that day's in-flight writes before reconciling. Remote
failures are logged and never reach the caller. Callers without a running
event loop skip the mirror; the next ``load_today`` catches the remote up.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set, Tuple

from pydantic import ValidationError

from shield.dates import utcnow
from shield.schemas import CheckIn, CheckInInput, RecoveryPlan, WaterEntry
from shield.services.notification_service import LoggingNotificationScheduler, NotificationScheduler
from shield.services.plan_generator_service import generate_plan
from shield.services.progress_service import compute_progress
from shield.services.storage import (
    LocalCheckInCache,
    LocalStorageError,
    RemoteCheckInStore,
    RemoteStorageError,
)
from shield.taxonomy import SEVERITY_LABELS, CheckInSource, parse_symptoms

logger = logging.getLogger(__name__)


class CheckInNotFoundError(LookupError):
    """No check-in stored for the requested day."""


class UnknownStepError(KeyError):
    """Step id is not part of the day's plan."""


def new_checkin(
    user_id: str,
    day_id: str,
    checkin_input: CheckInInput,
    now: datetime,
    plan_factory: Callable[..., RecoveryPlan] = generate_plan,
) -> CheckIn:
    """A fresh check-in with its plan generated from the raw inputs."""
    plan = plan_factory(
        checkin_input.level,
        checkin_input.symptoms,
        checkin_input.drank_last_night,
        checkin_input.drinking_today,
    )
    return CheckIn(
        id=day_id,
        user_id=str(user_id),
        level=checkin_input.level,
        level_label=SEVERITY_LABELS[checkin_input.level],
        symptoms=parse_symptoms(checkin_input.symptoms),
        drank_last_night=checkin_input.drank_last_night,
        drinking_today=checkin_input.drinking_today,
        source=checkin_input.source,
        created_at=now,
        updated_at=now,
        generated_plan=plan,
        total_steps=len(plan.steps),
    )


def _union_water(first: CheckIn, second: CheckIn) -> List[WaterEntry]:
    entries = {entry.id: entry for entry in second.water_entries}
    entries.update({entry.id: entry for entry in first.water_entries})
    return sorted(entries.values(), key=lambda entry: (entry.timestamp, entry.id))


def _latest_update(first: CheckIn, second: CheckIn) -> Optional[datetime]:
    updated = [c.updated_at for c in (first, second) if c.updated_at is not None]
    return max(updated) if updated else None


def merge_checkins(first: CheckIn, second: CheckIn) -> CheckIn:
    """
    Reconcile two copies of the same day's check-in.

    A completed copy wins (the earlier completion if both are), otherwise
    the copy with more finished steps, ties going to ``first``. The winner's
    step entries stand, an explicit ``False`` included; finished steps the
    winner has no entry for are taken from the other copy, limited to the
    winning plan's steps. Shown flags and water entries are unioned.
    """
    if first.completed_at and second.completed_at:
        if first.completed_at <= second.completed_at:
            base, other = first, second
        else:
            base, other = second, first
    elif first.completed_at:
        base, other = first, second
    elif second.completed_at:
        base, other = second, first
    elif second.true_step_count > first.true_step_count:
        base, other = second, first
    else:
        base, other = first, second

    plan_ids = {step.id for step in base.generated_plan.steps}
    steps_state = {k: v for k, v in base.steps_state.items() if k in plan_ids}
    for step_id, done in other.steps_state.items():
        if done and step_id in plan_ids and step_id not in steps_state:
            steps_state[step_id] = True

    shown_flags = dict(other.shown_flags)
    shown_flags.update({k: v for k, v in base.shown_flags.items() if v})

    return base.model_copy(
        update={
            "steps_state": steps_state,
            "shown_flags": shown_flags,
            "water_entries": _union_water(base, other),
            "updated_at": _latest_update(first, second) or base.updated_at,
        }
    )


def overlay_checkin(local: CheckIn, remote: CheckIn) -> CheckIn:
    """
    The document a mirror write sends when the remote copy already exists.

    The local copy is written as it stands, so an untick reaches the remote.
    Step entries only the remote has are kept, and a remote completion is
    carried over when the local copy has none. Copies built from different
    plans go through ``merge_checkins`` instead.
    """
    if local.generated_plan != remote.generated_plan:
        return merge_checkins(local, remote)

    plan_ids = {step.id for step in local.generated_plan.steps}
    steps_state = {k: v for k, v in remote.steps_state.items() if k in plan_ids}
    steps_state.update(local.steps_state)

    shown_flags = dict(remote.shown_flags)
    shown_flags.update({k: v for k, v in local.shown_flags.items() if v})

    update = {
        "steps_state": steps_state,
        "shown_flags": shown_flags,
        "water_entries": _union_water(local, remote),
        "updated_at": _latest_update(local, remote) or local.updated_at,
    }
    if remote.completed_at and (local.completed_at is None or remote.completed_at < local.completed_at):
        update.update(
            completed_at=remote.completed_at,
            steps_completed=remote.steps_completed,
            total_steps=remote.total_steps,
        )
    return local.model_copy(update=update)


def _dump(checkin: CheckIn) -> dict:
    return checkin.model_dump(mode="json", by_alias=True)


class CheckInStore:
    """Lifecycle of the per-day check-in record."""

    def __init__(
        self,
        local: LocalCheckInCache,
        remote: Optional[RemoteCheckInStore] = None,
        notifier: Optional[NotificationScheduler] = None,
        plan_factory: Callable[..., RecoveryPlan] = generate_plan,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.local = local
        self.remote = remote
        self.notifier = notifier or LoggingNotificationScheduler()
        self.plan_factory = plan_factory
        self.clock = clock
        self._pending: Set[asyncio.Task] = set()
        self._latest: Dict[Tuple[str, str], asyncio.Task] = {}

    # ============== Local reads/writes ==============

    def _read_local(self, user_id: str, day_id: str) -> Optional[CheckIn]:
        document = self.local.get(str(user_id), day_id)
        if document is None:
            return None
        try:
            return CheckIn.model_validate(document)
        except ValidationError as e:
            raise LocalStorageError(f"Corrupt check-in {day_id}") from e

    def _write_local(self, checkin: CheckIn) -> None:
        self.local.put(checkin.user_id, checkin.id, _dump(checkin))

    def _require(self, user_id: str, day_id: str) -> CheckIn:
        checkin = self._read_local(user_id, day_id)
        if checkin is None:
            raise CheckInNotFoundError(day_id)
        return checkin

    def _save(self, checkin: CheckIn) -> CheckIn:
        self._write_local(checkin)
        self._mirror(checkin)
        return checkin

    # ============== Operations ==============

    def get_today(self, user_id: str, day_id: str) -> Optional[CheckIn]:
        """The local record for the day; unreadable storage reads as no plan."""
        try:
            return self._read_local(user_id, day_id)
        except LocalStorageError:
            logger.exception("Local check-in unavailable for user %s on %s", user_id, day_id)
            return None

    def get_or_create_today(
        self,
        user_id: str,
        day_id: str,
        checkin_input: CheckInInput,
        source: Optional[CheckInSource] = None,
    ) -> CheckIn:
        """
        Return the day's check-in, creating it from ``checkin_input`` if absent.

        An existing record is returned untouched, plan included, whatever the
        new input says. Raises LocalStorageError when the local cache is
        unusable; callers fall back to an unsaved plan.
        """
        user_id = str(user_id)
        if source is not None:
            checkin_input = checkin_input.model_copy(update={"source": source})
        existing = self._read_local(user_id, day_id)
        if existing is not None:
            logger.debug("Reusing check-in %s for user %s", day_id, user_id)
            return existing

        candidate = new_checkin(user_id, day_id, checkin_input, self.clock(), self.plan_factory)
        stored, created = self.local.insert_if_absent(user_id, day_id, _dump(candidate))
        try:
            checkin = CheckIn.model_validate(stored)
        except ValidationError as e:
            raise LocalStorageError(f"Corrupt check-in {day_id}") from e
        if not created:
            return checkin

        logger.info(
            "Created check-in %s for user %s (level=%s, steps=%d, source=%s)",
            day_id,
            user_id,
            checkin.level.value,
            len(checkin.generated_plan.steps),
            checkin.source.value,
        )
        self._mirror(checkin)
        self.notifier.plan_ready(user_id, checkin)
        return checkin

    def set_step_completion(self, user_id: str, day_id: str, step_id: str, completed: bool) -> CheckIn:
        checkin = self._require(user_id, day_id)
        if step_id not in {step.id for step in checkin.generated_plan.steps}:
            raise UnknownStepError(step_id)

        # Absent means not done, so writing the current value is a no-op
        if bool(checkin.steps_state.get(step_id, False)) == completed:
            return checkin

        steps_state = dict(checkin.steps_state)
        steps_state[step_id] = completed
        return self._save(
            checkin.model_copy(update={"steps_state": steps_state, "updated_at": self.clock()})
        )

    def mark_plan_completed(
        self,
        user_id: str,
        day_id: str,
        steps_completed: Optional[int] = None,
        total_steps: Optional[int] = None,
    ) -> CheckIn:
        """
        Record the explicit "I'm done" for the day.

        Works with steps still open. Once set, ``completed_at`` is never
        changed again.
        """
        checkin = self._require(user_id, day_id)
        if checkin.completed_at is not None:
            return checkin

        progress = compute_progress(checkin)
        now = self.clock()
        logger.info(
            "Plan completed for user %s on %s (%d/%d steps)",
            user_id,
            day_id,
            progress.completed_count,
            progress.total_count,
        )
        return self._save(
            checkin.model_copy(
                update={
                    "completed_at": now,
                    "updated_at": now,
                    "steps_completed": progress.completed_count if steps_completed is None else steps_completed,
                    "total_steps": progress.total_count if total_steps is None else total_steps,
                }
            )
        )

    def mark_shown_once(self, user_id: str, day_id: str, flag: str) -> bool:
        """Set a per-day "already shown" flag; True only the first time."""
        checkin = self._require(user_id, day_id)
        if checkin.shown_flags.get(flag):
            return False

        shown_flags = dict(checkin.shown_flags)
        shown_flags[flag] = True
        self._save(checkin.model_copy(update={"shown_flags": shown_flags, "updated_at": self.clock()}))
        return True

    def add_water_entry(self, user_id: str, day_id: str, amount_ml: int, note: Optional[str] = None) -> CheckIn:
        """Append a drink to the day's water log."""
        checkin = self._require(user_id, day_id)
        now = self.clock()
        entry = WaterEntry(id=uuid.uuid4().hex, amount_ml=amount_ml, timestamp=now, note=note)
        logger.debug("Logged %d ml for user %s on %s", amount_ml, user_id, day_id)
        return self._save(
            checkin.model_copy(
                update={"water_entries": [*checkin.water_entries, entry], "updated_at": now}
            )
        )

    def list_recent(self, user_id: str, since_day_id: str) -> List[CheckIn]:
        checkins = []
        for document in self.local.list_since(str(user_id), since_day_id):
            try:
                checkins.append(CheckIn.model_validate(document))
            except ValidationError:
                logger.warning("Skipping corrupt check-in %s for user %s", document.get("id"), user_id)
        return checkins

    async def load_today(self, user_id: str, day_id: str) -> Optional[CheckIn]:
        """
        App-start read of the day's check-in, reconciled with the remote copy.

        A completed remote copy wins over a local draft; otherwise the local
        record stays authoritative and picks up remote progress. A remote
        record with no local counterpart is adopted into the cache, and a
        local record the remote lacks is pushed.
        """
        user_id = str(user_id)
        try:
            local = self._read_local(user_id, day_id)
        except LocalStorageError:
            logger.exception("Local check-in unavailable for user %s on %s", user_id, day_id)
            return None

        await self._settle(user_id, day_id)
        remote = await self._fetch_remote(user_id, day_id)
        if remote is None:
            if local is not None:
                self._mirror(local)
            return local

        merged = remote if local is None else merge_checkins(local, remote)
        if merged != local:
            try:
                self._write_local(merged)
            except LocalStorageError:
                logger.exception("Could not cache reconciled check-in %s for user %s", day_id, user_id)
        if merged != remote:
            self._mirror(merged)
        return merged

    async def delete_all(self, user_id: str) -> int:
        """Remove every check-in for the user, locally and remotely."""
        user_id = str(user_id)
        self.cancel_pending()
        deleted = self.local.delete_all(user_id)
        if self.remote is not None:
            try:
                await self.remote.delete_all(user_id)
            except RemoteStorageError:
                logger.warning("Remote check-ins for user %s not deleted", user_id, exc_info=True)
        logger.info("Deleted %d local check-ins for user %s", deleted, user_id)
        return deleted

    # ============== Remote mirror ==============

    async def _fetch_remote(self, user_id: str, day_id: str) -> Optional[CheckIn]:
        if self.remote is None:
            return None
        try:
            document = await self.remote.get(user_id, day_id)
        except RemoteStorageError:
            logger.warning("Remote check-in %s unavailable, using local copy", day_id, exc_info=True)
            return None
        if document is None:
            return None
        try:
            return CheckIn.model_validate(document)
        except ValidationError:
            logger.warning("Ignoring malformed remote check-in %s for user %s", day_id, user_id)
            return None

    async def _push(self, checkin: CheckIn, previous: Optional[asyncio.Task] = None) -> None:
        if previous is not None:
            await asyncio.wait({previous})
        try:
            remote = await self._fetch_remote(checkin.user_id, checkin.id)
            document = checkin if remote is None else overlay_checkin(checkin, remote)
            await self.remote.set(checkin.user_id, checkin.id, _dump(document))
        except RemoteStorageError:
            logger.warning(
                "Remote save failed for check-in %s (user %s); kept locally",
                checkin.id,
                checkin.user_id,
                exc_info=True,
            )

    def _mirror(self, checkin: CheckIn) -> None:
        if self.remote is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No event loop; check-in %s for user %s syncs on next load", checkin.id, checkin.user_id)
            return
        key = (checkin.user_id, checkin.id)
        task = loop.create_task(self._push(checkin, self._latest.get(key)))
        self._latest[key] = task
        self._pending.add(task)
        task.add_done_callback(lambda done: self._forget(key, done))

    def _forget(self, key: Tuple[str, str], task: asyncio.Task) -> None:
        self._pending.discard(task)
        if self._latest.get(key) is task:
            del self._latest[key]

    async def _settle(self, user_id: str, day_id: str) -> None:
        """Wait for the day's queued remote writes."""
        task = self._latest.get((user_id, day_id))
        if task is not None:
            await asyncio.wait({task})

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for in-flight remote writes."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def cancel_pending(self) -> None:
        """Abandon in-flight remote writes; local state is already complete."""
        for task in list(self._pending):
            task.cancel()
