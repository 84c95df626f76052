"""
Training Data Curator.

Three ingestion paths feed the training corpus, all through one upsert
routine (add_manual_training_data):

- manual rows (API payloads)
- bulk CSV import, one row per line, tolerant of bad lines
- synthetic generation over unused (user, flashcard) pairs

Every path keeps at most one progress record per (user, flashcard): a row for
an existing pair overwrites its SM-2 fields instead of adding a record.
Synthetic rows are flagged so delete_synthetic_data() can purge them.

CSV layout (header line first, then 11 comma-separated fields):

    userId,flashcardId,easeFactor,interval,repetitions,daysSinceLastReview,
    userRetentionRate,userForgettingSpeed,correctAfterBreak,isMastered,
    optimalReviewHours
"""

from __future__ import annotations

import os
import random
from collections.abc import Iterable
from datetime import timedelta
from pathlib import Path
from typing import IO, Union

from loguru import logger
from pydantic import ValidationError
from sqlalchemy import distinct, func, select

from config import Settings, get_settings
from adaptive_review.core.clock import utcnow
from adaptive_review.core.errors import CsvParseError, TrainingRowError
from adaptive_review.db.models import Flashcard, LearningPattern, ProgressRecord, User
from adaptive_review.db.repository import UnitOfWork
from adaptive_review.learning.pattern_tracker import LearningPatternTracker
from adaptive_review.ml.model_store import ModelStore
from adaptive_review.ml.schemas import ImportResult, ManualTrainingRow, TrainingStats

CSV_FIELD_COUNT = 11
MAX_INTERVAL_DAYS = 365
MAX_OPTIMAL_HOURS = 8760.0

CsvSource = Union[str, bytes, os.PathLike, IO[str], IO[bytes]]


# ========================================
# CSV parsing
# ========================================


def read_csv_text(source: CsvSource) -> str:
    """
    Decode a CSV source to text.

    Paths are read from disk, bytes and binary streams are decoded as UTF-8
    (a leading BOM is dropped), str is taken as the CSV content itself.
    """
    if isinstance(source, os.PathLike):
        raw: bytes | str = Path(source).read_bytes()
    elif isinstance(source, (bytes, bytearray)):
        raw = bytes(source)
    elif isinstance(source, str):
        raw = source
    else:
        raw = source.read()

    if isinstance(raw, bytes):
        return raw.decode("utf-8-sig")
    return raw.removeprefix("\ufeff")


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ValueError(f"invalid boolean {value.strip()!r}")


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error.get("loc", ()))
        parts.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    return "; ".join(parts)


def parse_csv_line(line: str, line_number: int) -> ManualTrainingRow:
    """
    Parse one data line.

    Raises:
        CsvParseError: wrong field count, unparseable value, or value out of range
    """
    values = line.split(",")
    if len(values) != CSV_FIELD_COUNT:
        raise CsvParseError(
            line_number, f"expected {CSV_FIELD_COUNT} fields, got {len(values)}"
        )

    try:
        return ManualTrainingRow(
            user_id=values[0].strip(),
            flashcard_id=int(values[1]),
            ease_factor=float(values[2]),
            interval=int(values[3]),
            repetitions=int(values[4]),
            days_since_last_review=float(values[5]),
            user_retention_rate=float(values[6]),
            user_forgetting_speed=float(values[7]),
            correct_after_break=float(values[8]),
            is_mastered=_parse_bool(values[9]),
            optimal_review_hours=float(values[10]),
        )
    except ValidationError as exc:
        raise CsvParseError(line_number, _describe_validation_error(exc)) from exc
    except ValueError as exc:
        raise CsvParseError(line_number, str(exc)) from exc


# ========================================
# Curator
# ========================================


class TrainingDataCurator:
    """Ingests, generates, purges and summarizes training data."""

    def __init__(
        self,
        uow: UnitOfWork,
        model_store: ModelStore | None = None,
        settings: Settings | None = None,
        rng: random.Random | None = None,
    ):
        self.uow = uow
        self.model_store = model_store
        self.settings = settings or get_settings()
        self.rng = rng or random.Random()
        self.patterns = LearningPatternTracker(
            uow,
            default_retention_rate=self.settings.default_retention_rate,
            default_forgetting_speed=self.settings.default_forgetting_speed,
        )

    # ----------------------------------------
    # Manual ingestion
    # ----------------------------------------

    async def add_manual_training_data(
        self,
        rows: Iterable[ManualTrainingRow],
        synthetic: bool = False,
    ) -> ImportResult:
        """
        Upsert a batch of training rows.

        Rows referencing an unknown user or flashcard are reported in
        ``errors`` and skipped; the rest of the batch still commits. Only
        newly created records count toward ``records_added``.
        """
        result = ImportResult()

        try:
            for row in rows:
                try:
                    await self._check_references(row)
                except TrainingRowError as exc:
                    result.errors.append(str(exc))
                    continue

                await self.patterns.blend(
                    row.user_id, row.user_retention_rate, row.user_forgetting_speed
                )
                if await self._upsert_progress(row, synthetic):
                    result.records_added += 1

            await self.uow.save_changes()
            result.total_records = await self.uow.count(
                ProgressRecord, ProgressRecord.repetitions > 0
            )
            result.success = True

        except Exception as exc:
            logger.exception("Failed to add training data")
            await self.uow.rollback()
            result.success = False
            result.records_added = 0
            result.error_message = str(exc)
            return result

        logger.info(
            "Training batch stored: {} added, {} rejected, {} qualifying records in total",
            result.records_added,
            len(result.errors),
            result.total_records,
        )
        return result

    async def _check_references(self, row: ManualTrainingRow) -> None:
        user_exists = await self.uow.exists(User, User.id == row.user_id)
        flashcard_exists = await self.uow.exists(Flashcard, Flashcard.id == row.flashcard_id)
        if not user_exists or not flashcard_exists:
            raise TrainingRowError(row.user_id, row.flashcard_id)

    async def _upsert_progress(self, row: ManualTrainingRow, synthetic: bool) -> bool:
        """Create or overwrite the pair's progress record. True if created."""
        now = utcnow()
        last_reviewed_at = now - timedelta(days=row.days_since_last_review)
        next_review_date = last_reviewed_at + timedelta(days=row.interval)

        progress = await self.uow.find_one(
            ProgressRecord,
            ProgressRecord.user_id == row.user_id,
            ProgressRecord.flashcard_id == row.flashcard_id,
        )

        if progress is None:
            await self.uow.add(
                ProgressRecord(
                    user_id=row.user_id,
                    flashcard_id=row.flashcard_id,
                    ease_factor=row.ease_factor,
                    interval_days=row.interval,
                    repetitions=row.repetitions,
                    is_mastered=row.is_mastered,
                    last_reviewed_at=last_reviewed_at,
                    next_review_date=next_review_date,
                    is_synthetic=synthetic,
                    created_at=now,
                )
            )
            return True

        progress.ease_factor = row.ease_factor
        progress.interval_days = row.interval
        progress.repetitions = row.repetitions
        progress.is_mastered = row.is_mastered
        progress.last_reviewed_at = last_reviewed_at
        progress.next_review_date = next_review_date
        return False

    # ----------------------------------------
    # CSV import
    # ----------------------------------------

    async def import_from_csv(self, source: CsvSource) -> ImportResult:
        """
        Import training rows from CSV.

        Bad lines are reported as "line N: ..." (N counts the header as line 1)
        and skipped; the remaining rows go through manual ingestion as one batch.
        """
        result = ImportResult()

        try:
            text = read_csv_text(source)
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Failed to read CSV source: {}", exc)
            result.error_message = str(exc)
            return result

        if not text:
            result.error_message = "file is empty"
            return result

        lines = [line.removesuffix("\r") for line in text.split("\n")]

        rows: list[ManualTrainingRow] = []
        for line_number, line in enumerate(lines[1:], start=2):
            if not line.strip():
                continue
            try:
                rows.append(parse_csv_line(line, line_number))
            except CsvParseError as exc:
                result.errors.append(str(exc))

        logger.info("Parsed {} CSV rows ({} rejected)", len(rows), len(result.errors))

        batch = await self.add_manual_training_data(rows)
        result.success = batch.success
        result.records_added = batch.records_added
        result.total_records = batch.total_records
        result.error_message = batch.error_message
        result.errors.extend(batch.errors)
        return result

    # ----------------------------------------
    # Synthetic data
    # ----------------------------------------

    async def generate_synthetic_data(self, count: int) -> ImportResult:
        """
        Generate plausible training rows for (user, flashcard) pairs that have
        no progress yet, and store them flagged as synthetic.

        The request is clamped to the number of free pairs; nothing is
        generated when every pair is taken.
        """
        if count <= 0:
            return ImportResult(error_message=f"count must be positive (got {count})")

        users = [row[0] for row in await self.uow.rows(select(User.id))]
        flashcards = [row[0] for row in await self.uow.rows(select(Flashcard.id))]

        if not users or not flashcards:
            return ImportResult(
                error_message=(
                    "no users or flashcards to generate data for "
                    f"(users: {len(users)}, flashcards: {len(flashcards)})"
                )
            )

        max_combinations = len(users) * len(flashcards)
        existing = {
            (user_id, flashcard_id)
            for user_id, flashcard_id in await self.uow.rows(
                select(ProgressRecord.user_id, ProgressRecord.flashcard_id)
            )
        }
        available_slots = max_combinations - len(existing)

        if available_slots <= 0:
            return ImportResult(
                error_message=(
                    f"all {max_combinations} combinations already exist "
                    f"({len(users)} users x {len(flashcards)} flashcards); "
                    "add more users or flashcards"
                )
            )

        if count > available_slots:
            logger.warning(
                "Requested {} synthetic records but only {} unused combinations remain; generating {}",
                count,
                available_slots,
                available_slots,
            )
            count = available_slots

        pairs = self._choose_pairs(users, flashcards, existing, count, available_slots)
        if len(pairs) < count:
            logger.warning(
                "Generated only {} of {} synthetic records ({} combinations, {} existing)",
                len(pairs),
                count,
                max_combinations,
                len(existing),
            )
        else:
            logger.info("Generated {} synthetic records", len(pairs))

        rows = [self._synthetic_row(user_id, flashcard_id) for user_id, flashcard_id in pairs]
        return await self.add_manual_training_data(rows, synthetic=True)

    def _choose_pairs(
        self,
        users: list[str],
        flashcards: list[int],
        existing: set[tuple[str, int]],
        count: int,
        available_slots: int,
    ) -> list[tuple[str, int]]:
        # Near saturation rejection sampling wastes most draws, so sample the
        # free pairs directly.
        if count * 2 >= available_slots:
            free = [
                (user_id, flashcard_id)
                for user_id in users
                for flashcard_id in flashcards
                if (user_id, flashcard_id) not in existing
            ]
            return self.rng.sample(free, count)

        chosen: list[tuple[str, int]] = []
        seen: set[tuple[str, int]] = set()
        max_attempts = count * self.settings.synthetic_attempt_multiplier
        attempts = 0
        while len(chosen) < count and attempts < max_attempts:
            attempts += 1
            pair = (self.rng.choice(users), self.rng.choice(flashcards))
            if pair in existing or pair in seen:
                continue
            seen.add(pair)
            chosen.append(pair)
        return chosen

    def _synthetic_row(self, user_id: str, flashcard_id: int) -> ManualTrainingRow:
        rng = self.rng
        repetitions = rng.randrange(1, 20)
        ease_factor = 1.3 + rng.random() * 1.2
        raw_interval = int(2 ** (repetitions / 3))
        retention = 50 + rng.random() * 40
        forgetting_speed = 0.5 + rng.random() * 2
        correct_after_break = retention * (0.7 + rng.random() * 0.3)

        return ManualTrainingRow(
            user_id=user_id,
            flashcard_id=flashcard_id,
            ease_factor=ease_factor,
            interval=min(raw_interval, MAX_INTERVAL_DAYS),
            repetitions=repetitions,
            days_since_last_review=min(rng.randint(0, raw_interval), MAX_INTERVAL_DAYS),
            user_retention_rate=retention,
            user_forgetting_speed=forgetting_speed,
            correct_after_break=correct_after_break,
            is_mastered=repetitions > 8 and ease_factor > 2.0,
            optimal_review_hours=min(raw_interval * 24 * (retention / 100.0), MAX_OPTIMAL_HOURS),
        )

    # ----------------------------------------
    # Purge
    # ----------------------------------------

    async def delete_synthetic_data(self) -> int:
        """Delete every synthetic progress record. Returns the number removed."""
        try:
            removed = await self.uow.remove_where(
                ProgressRecord, ProgressRecord.is_synthetic.is_(True)
            )
            await self.uow.save_changes()
        except Exception:
            logger.exception("Failed to delete synthetic training data")
            await self.uow.rollback()
            return 0

        if removed:
            logger.info("Deleted {} synthetic progress records", removed)
        else:
            logger.info("No synthetic training data found")
        return removed

    # ----------------------------------------
    # Stats
    # ----------------------------------------

    async def get_training_stats(self) -> TrainingStats:
        """Summary of qualifying records (repetitions > 0) and model state."""
        now = utcnow()
        qualifying = ProgressRecord.repetitions > 0

        total = await self.uow.count(ProgressRecord, qualifying)

        async def reviewed_within(days: int) -> int:
            return await self.uow.count(
                ProgressRecord,
                qualifying,
                ProgressRecord.last_reviewed_at >= now - timedelta(days=days),
            )

        unique_users = await self.uow.scalar(
            select(func.count(distinct(ProgressRecord.user_id))).where(qualifying)
        )
        unique_flashcards = await self.uow.scalar(
            select(func.count(distinct(ProgressRecord.flashcard_id))).where(qualifying)
        )
        average_ease = await self.uow.scalar(
            select(func.avg(ProgressRecord.ease_factor)).where(qualifying)
        )
        average_interval = await self.uow.scalar(
            select(func.avg(ProgressRecord.interval_days)).where(qualifying)
        )
        average_retention = await self.uow.scalar(
            select(func.avg(LearningPattern.average_retention_rate))
        )

        is_trained = False
        last_training_date = None
        if self.model_store is not None:
            metadata = self.model_store.metadata()
            is_trained = metadata.is_trained
            last_training_date = metadata.trained_at

        return TrainingStats(
            total_records=total,
            records_last_24_hours=await reviewed_within(1),
            records_last_7_days=await reviewed_within(7),
            records_last_30_days=await reviewed_within(30),
            can_train=total >= self.settings.min_training_examples,
            is_model_trained=is_trained,
            last_training_date=last_training_date,
            unique_users=int(unique_users or 0),
            unique_flashcards=int(unique_flashcards or 0),
            average_ease_factor=float(average_ease or 0.0),
            average_interval=float(average_interval or 0.0),
            average_retention_rate=float(average_retention or 0.0),
        )
