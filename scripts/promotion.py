#!/usr/bin/env python3
"""
Confluent Ops Toolkit
Copyright (c) 2026 Paul Harvener, Data-Blitz Inc
SPDX-License-Identifier: MIT

Schema promotion workflow: copy the latest schema of each subject from a
source Schema Registry to a target Schema Registry, gated by the target's
compatibility check.

Per subject: Pending -> Promoted | Skipped | Failed. A failure on one subject
never stops the batch; only a failed subject discovery aborts the run.
"""

import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Iterable

from schema_registry import RegistryApiError, RegistryError, SchemaRegistry

log = logging.getLogger("schema_promotion")

DEFAULT_DELAY_SECONDS = 0.5


class CompatibilityLevel(str, Enum):
    """Schema Registry compatibility policies."""

    BACKWARD = "BACKWARD"
    BACKWARD_TRANSITIVE = "BACKWARD_TRANSITIVE"
    FORWARD = "FORWARD"
    FORWARD_TRANSITIVE = "FORWARD_TRANSITIVE"
    FULL = "FULL"
    FULL_TRANSITIVE = "FULL_TRANSITIVE"
    NONE = "NONE"

    @classmethod
    def parse(cls, value: "str | CompatibilityLevel") -> "CompatibilityLevel":
        """Parse a level name case-insensitively, raising ValueError on unknown names."""
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().upper()
        try:
            return cls(normalized)
        except ValueError:
            choices = ", ".join(level.value for level in cls)
            raise ValueError(f"Invalid compatibility level '{value}'. Expected one of: {choices}.") from None


class Outcome(str, Enum):
    PROMOTED = "promoted"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class SubjectResult:
    """Terminal outcome for one subject."""

    subject: str
    outcome: Outcome
    reason: str = ""
    # True once a write (config, compatibility check, register) was sent to the target.
    reached_target: bool = False


@dataclass(frozen=True)
class PromotionSummary:
    """Run totals folded from per-subject results."""

    success: int = 0
    failure: int = 0
    skip: int = 0
    results: tuple[SubjectResult, ...] = field(default_factory=tuple)

    def record(self, result: SubjectResult) -> "PromotionSummary":
        """Return a new summary with one more subject accounted for."""
        return replace(
            self,
            success=self.success + (result.outcome is Outcome.PROMOTED),
            failure=self.failure + (result.outcome is Outcome.FAILED),
            skip=self.skip + (result.outcome is Outcome.SKIPPED),
            results=self.results + (result,),
        )

    @property
    def total(self) -> int:
        return len(self.results)

    def outcome_of(self, subject: str) -> Outcome | None:
        """Return the last recorded outcome for a subject, if any."""
        for result in reversed(self.results):
            if result.subject == subject:
                return result.outcome
        return None

    def completion_line(self) -> str:
        return (
            f"Schema promotion completed. Successful: {self.success}, "
            f"Failed: {self.failure}, Skipped: {self.skip}"
        )

    def report_lines(self) -> list[str]:
        return [
            "Schema Promotion Results:",
            f"Successful: {self.success}",
            f"Failed: {self.failure}",
            f"Skipped: {self.skip}",
        ]


class TextualContainment:
    """Treat the target as current when its latest schema text contains the source schema text.

    This is a raw substring test, not structural equality: reordered keys or
    whitespace changes read as "different", and a schema whose text is a
    substring of another reads as "current".
    """

    name = "textual-containment"

    def is_current(self, source_schema: str, target_schema: str | None) -> bool:
        if target_schema is None:
            return False
        return source_schema in target_schema


def schema_text(registered: Any) -> str:
    """Return the schema string of a registered schema version."""
    return str(registered.schema.schema_str)


def parse_subject_list(raw: str | None) -> list[str]:
    """Split operator input on whitespace, keeping order and duplicates."""
    return (raw or "").split()


def enumerate_subjects(source: SchemaRegistry, explicit: Iterable[str] | None = None) -> list[str]:
    """Return the subjects to process: the explicit list as given, or every subject in the source.

    Raises RegistryError when discovery fails; there is no partial enumeration.
    """
    if explicit is not None:
        subjects = list(explicit)
        log.info("Using provided subjects: %s", subjects)
        return subjects

    log.info("Fetching all subjects from source environment %s", source.url)
    try:
        subjects = source.list_subjects()
    except RegistryError as exc:
        log.error("Failed to fetch subjects from source environment: %s", exc)
        raise
    log.info("Found %d subject(s) in source environment", len(subjects))
    return subjects


def _check_compatibility(target: SchemaRegistry, subject: str, schema: Any) -> tuple[bool, str]:
    """Run the target-side compatibility check and return (compatible, reason)."""
    log.info("Checking compatibility for subject %s", subject)
    try:
        if target.check_compatibility(subject, schema):
            return True, ""
        return False, "incompatible with target"
    except RegistryApiError as exc:
        if exc.not_found:
            # Nothing registered on the target yet, so nothing to be incompatible with.
            log.info("Subject %s has no version on target; treating as compatible", subject)
            return True, ""
        log.error("Compatibility check failed for %s: %s", subject, exc)
        return False, f"compatibility check failed: {exc}"
    except RegistryError as exc:
        log.error("Compatibility check failed for %s: %s", subject, exc)
        return False, f"compatibility check failed: {exc}"


def promote_subject(
    subject: str,
    source: SchemaRegistry,
    target: SchemaRegistry,
    level: CompatibilityLevel,
    comparison: TextualContainment | None = None,
) -> SubjectResult:
    """Promote one subject's latest schema from source to target and return its outcome."""
    comparison = comparison or TextualContainment()
    log.info("Processing subject: %s", subject)

    # Source fetch failure ends this subject before any target call.
    log.info("Fetching latest schema for subject %s from source", subject)
    try:
        source_version = source.latest_schema(subject)
    except RegistryError as exc:
        log.error("Skipping subject %s due to error fetching source schema: %s", subject, exc)
        return SubjectResult(subject, Outcome.FAILED, f"source fetch failed: {exc}")

    source_text = schema_text(source_version)
    log.debug("Source schema for %s (version %s): %s", subject, getattr(source_version, "version", "?"), source_text)

    # Target fetch is best-effort; a new subject is expected to be missing.
    target_text = None
    log.info("Fetching latest schema for subject %s from target", subject)
    try:
        target_version = target.latest_schema(subject)
        target_text = schema_text(target_version)
        log.debug(
            "Target response for %s (version %s): %s", subject, getattr(target_version, "version", "?"), target_text
        )
    except RegistryError as exc:
        log.info("No current target schema for %s: %s", subject, exc)

    if comparison.is_current(source_text, target_text):
        log.info("Schema for %s is already up to date, skipping", subject)
        return SubjectResult(subject, Outcome.SKIPPED, "already up to date")

    log.info("Setting compatibility level to %s for subject %s", level.value, subject)
    try:
        response = target.set_compatibility(subject, level.value)
        log.debug("Compatibility config response for %s: %s", subject, response)
    except RegistryError as exc:
        log.error("Failed to set compatibility for %s: %s", subject, exc)

    compatible, reason = _check_compatibility(target, subject, source_version.schema)
    log.debug("Compatibility check result for %s: compatible=%s %s", subject, compatible, reason)
    if not compatible:
        log.error("Schema for %s is incompatible with target", subject)
        return SubjectResult(subject, Outcome.FAILED, reason, reached_target=True)

    log.info("Registering schema for subject %s", subject)
    log.debug("Request data for %s: %s", subject, source_text)
    try:
        schema_id = target.register_schema(subject, source_version.schema)
        log.debug("Register response for %s: id=%s", subject, schema_id)
    except RegistryError as exc:
        log.error("Failed to register schema for %s: %s", subject, exc)
        return SubjectResult(subject, Outcome.FAILED, f"registration failed: {exc}", reached_target=True)

    log.info("Successfully promoted schema for %s (id=%s)", subject, schema_id)
    return SubjectResult(subject, Outcome.PROMOTED, reached_target=True)


def promote_schemas(
    subjects: Iterable[str],
    source: SchemaRegistry,
    target: SchemaRegistry,
    level: CompatibilityLevel,
    delay_seconds: float = DEFAULT_DELAY_SECONDS,
    comparison: TextualContainment | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PromotionSummary:
    """Promote each subject in order and fold the outcomes into a summary."""
    comparison = comparison or TextualContainment()
    summary = PromotionSummary()
    for subject in subjects:
        result = promote_subject(subject, source, target, level, comparison=comparison)
        summary = summary.record(result)
        if result.reached_target and delay_seconds > 0:
            # Fixed pause between target writes to stay under registry rate limits.
            sleep(delay_seconds)
    log.info(summary.completion_line())
    return summary
