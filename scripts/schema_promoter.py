#!/usr/bin/env python3
"""
Confluent Ops Toolkit
Copyright (c) 2026 Paul Harvener, Data-Blitz Inc
SPDX-License-Identifier: MIT
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import click
from dotenv import find_dotenv, load_dotenv

from promotion import (
    DEFAULT_DELAY_SECONDS,
    CompatibilityLevel,
    PromotionSummary,
    enumerate_subjects,
    parse_subject_list,
    promote_schemas,
)
from promotion_log import DEFAULT_LOG_FILE, close_run_log, configure_run_log
from schema_registry import RegistryEndpoint, RegistryError, SchemaRegistry

DEFAULT_SOURCE_URL = "https://dev-psrc-xxxxx.region.aws.confluent.cloud"
DEFAULT_TARGET_URL = "https://qa-psrc-xxxxx.region.aws.confluent.cloud"


class ConfigError(ValueError):
    """Raised when promotion settings are missing or malformed."""


@dataclass(frozen=True)
class PromotionConfig:
    """Everything one promotion run needs, resolved once before any remote call."""

    source: RegistryEndpoint
    target: RegistryEndpoint
    compatibility: CompatibilityLevel = CompatibilityLevel.BACKWARD
    subjects: tuple[str, ...] | None = None
    log_file: Path = Path(DEFAULT_LOG_FILE)
    delay_seconds: float = DEFAULT_DELAY_SECONDS
    debug: bool = False


def build_config(
    source_url: str,
    target_url: str,
    source_api_key: str = "",
    source_api_secret: str = "",
    target_api_key: str = "",
    target_api_secret: str = "",
    compatibility: str = CompatibilityLevel.BACKWARD.value,
    subjects: str | list[str] | None = None,
    log_file: str | Path = DEFAULT_LOG_FILE,
    delay_seconds: float = DEFAULT_DELAY_SECONDS,
    debug: bool = False,
) -> PromotionConfig:
    """Validate raw settings and return an immutable PromotionConfig."""
    for label, url in (("source", source_url), ("target", target_url)):
        value = (url or "").strip()
        if not value:
            raise ConfigError(f"{label} Schema Registry URL is required.")
        if not value.startswith(("http://", "https://")):
            raise ConfigError(f"{label} Schema Registry URL must start with http:// or https:// (got '{value}').")

    try:
        level = CompatibilityLevel.parse(compatibility)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    if delay_seconds < 0:
        raise ConfigError("delay_seconds must be >= 0.")

    subject_list = None
    if subjects is not None:
        subject_list = tuple(parse_subject_list(subjects) if isinstance(subjects, str) else subjects)

    return PromotionConfig(
        source=RegistryEndpoint(source_url, source_api_key, source_api_secret),
        target=RegistryEndpoint(target_url, target_api_key, target_api_secret),
        compatibility=level,
        subjects=subject_list,
        log_file=Path(log_file),
        delay_seconds=float(delay_seconds),
        debug=bool(debug),
    )


def run_promotion(
    config: PromotionConfig,
    registry_factory: Callable[[RegistryEndpoint], SchemaRegistry] | None = None,
) -> PromotionSummary:
    """Enumerate subjects and promote them; RegistryError from discovery propagates."""
    factory = registry_factory or SchemaRegistry
    source = factory(config.source)
    target = factory(config.target)
    subjects = enumerate_subjects(source, config.subjects)
    return promote_schemas(
        subjects,
        source,
        target,
        config.compatibility,
        delay_seconds=config.delay_seconds,
    )


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--source-url", envvar="SOURCE_SCHEMA_REGISTRY_URL", default=DEFAULT_SOURCE_URL,
              prompt="Source Schema Registry URL", help="Source Schema Registry base URL.")
@click.option("--source-api-key", envvar="SOURCE_SCHEMA_REGISTRY_API_KEY", default="",
              prompt="Source API Key", show_default=False)
@click.option("--source-api-secret", envvar="SOURCE_SCHEMA_REGISTRY_API_SECRET", default="",
              prompt="Source API Secret", hide_input=True, show_default=False)
@click.option("--target-url", envvar="TARGET_SCHEMA_REGISTRY_URL", default=DEFAULT_TARGET_URL,
              prompt="Target Schema Registry URL", help="Target Schema Registry base URL.")
@click.option("--target-api-key", envvar="TARGET_SCHEMA_REGISTRY_API_KEY", default="",
              prompt="Target API Key", show_default=False)
@click.option("--target-api-secret", envvar="TARGET_SCHEMA_REGISTRY_API_SECRET", default="",
              prompt="Target API Secret", hide_input=True, show_default=False)
@click.option("--compatibility", envvar="SCHEMA_COMPATIBILITY_LEVEL", default=CompatibilityLevel.BACKWARD.value,
              prompt="Compatibility Level",
              type=click.Choice([level.value for level in CompatibilityLevel], case_sensitive=False))
@click.option("--subjects", envvar="SCHEMA_PROMOTION_SUBJECTS", default=None,
              help="Space-separated subjects to promote instead of every source subject.")
@click.option("--all-subjects", is_flag=True, help="Promote every subject in the source without asking.")
@click.option("--log-file", envvar="SCHEMA_PROMOTION_LOG_FILE", default=DEFAULT_LOG_FILE, show_default=True,
              type=click.Path(dir_okay=False))
@click.option("--delay", "delay_seconds", envvar="SCHEMA_PROMOTION_DELAY_SECONDS", default=DEFAULT_DELAY_SECONDS,
              show_default=True, type=float, help="Pause in seconds after each subject written to the target.")
@click.option("--debug", envvar="SCHEMA_PROMOTION_DEBUG", is_flag=True, help="Echo every log line, not just errors.")
@click.pass_context
def promote(
    ctx: click.Context,
    source_url: str,
    source_api_key: str,
    source_api_secret: str,
    target_url: str,
    target_api_key: str,
    target_api_secret: str,
    compatibility: str,
    subjects: str | None,
    all_subjects: bool,
    log_file: str,
    delay_seconds: float,
    debug: bool,
) -> None:
    """Promote Schema Registry subjects from a source environment to a target environment."""
    # Ask for an explicit subject list only when none was configured.
    if subjects is None and not all_subjects:
        if click.confirm("Do you want to specify subjects?", default=False):
            subjects = click.prompt("Enter subjects (space-separated)", default="", show_default=False)

    try:
        config = build_config(
            source_url=source_url,
            target_url=target_url,
            source_api_key=source_api_key,
            source_api_secret=source_api_secret,
            target_api_key=target_api_key,
            target_api_secret=target_api_secret,
            compatibility=compatibility,
            subjects=None if all_subjects else subjects,
            log_file=log_file,
            delay_seconds=delay_seconds,
            debug=debug,
        )
    except ConfigError as exc:
        raise click.UsageError(str(exc), ctx=ctx) from exc

    configure_run_log(config.log_file, debug=config.debug)
    try:
        summary = run_promotion(config)
    except RegistryError:
        click.echo(f"Failed to fetch subjects from source environment. Check {config.log_file} for details.", err=True)
        ctx.exit(1)
    finally:
        close_run_log()

    click.echo("")
    for line in summary.report_lines():
        click.echo(line)
    click.echo(f"\nCheck {config.log_file} for detailed information")


def main() -> None:
    """Load .env settings and run the schema promoter CLI."""
    load_dotenv(find_dotenv(usecwd=True))
    promote(prog_name="schema-promoter")


if __name__ == "__main__":
    main()
