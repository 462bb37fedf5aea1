#!/usr/bin/env python3
"""
Confluent Ops Toolkit
Copyright (c) 2026 Paul Harvener, Data-Blitz Inc
SPDX-License-Identifier: MIT
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable

import click
from dotenv import find_dotenv, load_dotenv

from confluent_cli import (
    DEFAULT_BINARY,
    DEFAULT_TIMEOUT_SECONDS,
    ConfluentCLI,
    ConfluentCLIError,
    select_cluster,
    select_environment,
)

log = logging.getLogger(__name__)

CLEANUP_POLICIES = ("delete", "compact", "compact,delete")
DEFAULT_PARTITIONS = 6
DEFAULT_RETENTION_MS = 604800000
DEFAULT_RETENTION_BYTES = -1
DEFAULT_DELETE_RETENTION_MS = 86400000
DEFAULT_FILE_DELETE_DELAY_MS = 60000

# Only settable at creation time; the CLI reports it as editable anyway.
CREATE_ONLY_CONFIGS = {"file.delete.delay.ms"}
KEY_CONFIGS = (
    "cleanup.policy",
    "delete.retention.ms",
    "retention.ms",
    "retention.bytes",
    "max.message.bytes",
    "min.insync.replicas",
)
SEPARATOR = "-------------------------------------"


@dataclass(frozen=True)
class TopicSettings:
    """Custom settings applied to every topic in one create request."""

    partitions: int = DEFAULT_PARTITIONS
    cleanup_policy: str = "delete"
    retention_ms: int = DEFAULT_RETENTION_MS
    retention_bytes: int = DEFAULT_RETENTION_BYTES
    delete_retention_ms: int = DEFAULT_DELETE_RETENTION_MS
    file_delete_delay_ms: int = DEFAULT_FILE_DELETE_DELAY_MS

    @property
    def is_compacted(self) -> bool:
        return self.cleanup_policy.startswith("compact")

    def configs(self) -> dict[str, str]:
        """Return the `--config` map for `kafka topic create`."""
        configs = {
            "cleanup.policy": self.cleanup_policy,
            "retention.ms": str(self.retention_ms),
            "retention.bytes": str(self.retention_bytes),
        }
        if self.is_compacted:
            configs["delete.retention.ms"] = str(self.delete_retention_ms)
            configs["file.delete.delay.ms"] = str(self.file_delete_delay_ms)
        return configs


def cleanup_policy_for_choice(choice: str, default: str | None = None) -> str:
    """Map a 1-3 menu choice to a cleanup policy, or the default when given."""
    mapping = {str(index): policy for index, policy in enumerate(CLEANUP_POLICIES, start=1)}
    value = mapping.get(str(choice).strip())
    if value is not None:
        return value
    if default is not None:
        return default
    raise ValueError(f"Invalid cleanup policy choice '{choice}'. Expected 1-{len(CLEANUP_POLICIES)}.")


def validate_partition_count(new_value: str, current_value: str | int) -> int:
    """Return the new partition count; counts must be numeric and can never go down."""
    raw = str(new_value).strip()
    if not raw.isdigit():
        raise ValueError("Partition count must be a valid number.")
    count = int(raw)
    try:
        current = int(str(current_value).strip())
    except ValueError:
        current = 0
    if count < current:
        raise ValueError(f"Cannot decrease partition count. Current count is {current}.")
    return count


def wildcard_pattern(pattern: str) -> re.Pattern:
    """Compile a `*` wildcard topic pattern (`test*`, `*test`, `*test*`) into a full-match regex."""
    parts = [re.escape(part) for part in pattern.strip().split("*")]
    return re.compile(".*".join(parts))


def match_topics(pattern: str, topic_names: list[str]) -> list[str]:
    """Return listed topics matching the wildcard pattern, in listing order."""
    regex = wildcard_pattern(pattern)
    return [name for name in topic_names if regex.fullmatch(name)]


def editable_configs(rows: list[dict]) -> list[dict]:
    """Filter describe rows down to the configs an update may change."""
    return [row for row in rows if not row.get("read_only") and row.get("name") not in CREATE_ONLY_CONFIGS]


def _read_topic_names(question: str, many_prompt: str, single_prompt: str) -> list[str]:
    """Ask for one topic or a space-separated list of topics."""
    if click.confirm(click.style(question, fg="yellow"), default=False):
        return click.prompt(click.style(many_prompt, fg="yellow")).split()
    name = click.prompt(single_prompt).strip()
    return [name] if name else []


def display_cleanup_policy_warning() -> None:
    click.echo("--------------------------------------------------------")
    click.secho("IMPORTANT NOTE ABOUT CLEANUP POLICY:", fg="yellow")
    click.secho("This config designates the retention policy to use on log segments.", fg="yellow")
    click.secho("You cannot directly change cleanup.policy from 'delete' to 'compact,delete'.", fg="yellow")
    click.secho("To set cleanup.policy to 'compact,delete', you must first change from 'delete' to 'compact',", fg="yellow")
    click.secho("then change to 'compact,delete' in a separate update.", fg="yellow")
    click.echo("--------------------------------------------------------")


def _prompt_cleanup_policy(default: str | None) -> str:
    click.echo("Select cleanup policy:")
    for index, policy in enumerate(CLEANUP_POLICIES, start=1):
        click.echo(f"{index}) {policy}")
    label = "Enter choice (1-3, default 1)" if default else "Enter choice (1-3)"
    choice = click.prompt(label, default="", show_default=False)
    return cleanup_policy_for_choice(choice, default)


def prompt_topic_settings() -> TopicSettings:
    """Collect custom topic settings, falling back to the documented defaults."""
    partitions = click.prompt(f"Number of partitions (default {DEFAULT_PARTITIONS})", default=DEFAULT_PARTITIONS,
                              type=int, show_default=False)
    cleanup_policy = _prompt_cleanup_policy(default="delete")
    retention_ms = click.prompt("Retention time in ms (default 604800000 - 7 days)", default=DEFAULT_RETENTION_MS,
                                type=int, show_default=False)
    retention_bytes = click.prompt("Retention bytes (-1 for no limit, default -1)", default=DEFAULT_RETENTION_BYTES,
                                   type=int, show_default=False)
    settings = TopicSettings(partitions, cleanup_policy, retention_ms, retention_bytes)
    if not settings.is_compacted:
        return settings

    click.secho("\nConfigure delete.retention.ms:", fg="yellow")
    click.secho("For compacted topics, this setting controls how long deleted records are retained.", fg="green")
    click.secho("Recommended value: 86400000 (24 hours) or higher.", fg="green")
    click.secho("Setting this too low can cause data loss during compaction.", fg="green")
    delete_retention_ms = click.prompt("Enter delete.retention.ms value (press enter for default 86400000 ms)",
                                       default=DEFAULT_DELETE_RETENTION_MS, type=int, show_default=False)
    click.secho("\nConfigure file.delete.delay.ms:", fg="yellow")
    click.secho("This setting can only be configured at topic creation time.", fg="green")
    click.secho("It controls how long deleted files are retained on disk after deletion.", fg="green")
    file_delete_delay_ms = click.prompt("Enter file.delete.delay.ms value (default 60000 ms)",
                                        default=DEFAULT_FILE_DELETE_DELAY_MS, type=int, show_default=False)
    return TopicSettings(partitions, cleanup_policy, retention_ms, retention_bytes, delete_retention_ms,
                         file_delete_delay_ms)


def list_topics(cli: ConfluentCLI) -> None:
    click.secho("===== Kafka Topics List =====", fg="yellow")
    cli.topic_list()


def create_topics(cli: ConfluentCLI) -> None:
    """Create one or more topics with default or custom settings."""
    click.secho("===== Kafka Topic Creator =====", fg="yellow")
    click.secho("Current Topics:", fg="yellow")
    cli.topic_list()
    click.echo("")

    topics = _read_topic_names(
        "Do you want to create multiple topics with the same configuration?",
        "Enter topic names (space-separated)",
        "Enter the topic name",
    )
    display_cleanup_policy_warning()
    use_defaults = click.confirm("Use default settings?", default=True)
    settings = None if use_defaults else prompt_topic_settings()

    for topic in topics:
        if cli.topic_exists(topic):
            click.secho(f"Error: Topic '{topic}' already exists. Skipping.", fg="red")
            continue
        try:
            if settings is None:
                cli.topic_create(topic)
            else:
                if settings.is_compacted:
                    click.secho(f"Added delete.retention.ms={settings.delete_retention_ms} to topic configuration.",
                                fg="green")
                    click.secho(f"Added file.delete.delay.ms={settings.file_delete_delay_ms} to topic configuration.",
                                fg="green")
                cli.topic_create(topic, partitions=settings.partitions, configs=settings.configs())
        except ConfluentCLIError as exc:
            log.debug("create failed: %s", exc)
            click.secho(f"Failed to create topic '{topic}'.", fg="red")
            continue
        click.secho(f"Topic '{topic}' created successfully.", fg="green")
        cli.topic_describe(topic)


def _show_current_configuration(cli: ConfluentCLI, topic: str) -> None:
    click.secho(f"\n==== Current Configuration for Topic '{topic}' ====", fg="green")
    click.echo(f"Topic Name: {topic}")
    rows = {row["name"]: row["value"] for row in cli.topic_configs(topic)}
    if "num.partitions" in rows:
        click.echo(f"Partition Count: {rows['num.partitions']}")
    click.secho("\nCurrent Configuration Values:", fg="yellow")
    for name in KEY_CONFIGS:
        if name in rows:
            click.echo(f"{name:<40}:  {rows[name]}")
    click.echo("")


def _new_value_for(selected: str, current: str, topics: list[str], cli: ConfluentCLI) -> str | None:
    """Prompt for the replacement value of one config; None means the choice was rejected."""
    if selected == "num.partitions":
        click.secho("WARNING: Partition count can ONLY be increased, never decreased!", fg="yellow")
        click.secho(f"Current partition count: {current}", fg="yellow")
        raw = click.prompt("Enter new partition count (must be higher than current count)")
        try:
            return str(validate_partition_count(raw, current))
        except ValueError as exc:
            click.secho(f"ERROR: {exc}", fg="red")
            return None

    if selected == "cleanup.policy":
        try:
            new_value = _prompt_cleanup_policy(default=None)
        except ValueError:
            click.secho("Invalid choice. Using current value.", fg="red")
            return None
        display_cleanup_policy_warning()
        if new_value.startswith("compact"):
            click.secho("\nConfigure delete.retention.ms:", fg="yellow")
            delete_retention_ms = click.prompt("Enter delete.retention.ms value (default 86400000 ms)",
                                               default=DEFAULT_DELETE_RETENTION_MS, type=int, show_default=False)
            click.secho("\nNote: file.delete.delay.ms is read-only and cannot be modified.", fg="yellow")
            for topic in topics:
                try:
                    cli.topic_update(topic, {"delete.retention.ms": str(delete_retention_ms)})
                except ConfluentCLIError as exc:
                    click.secho(f"Failed to set delete.retention.ms for topic '{topic}': {exc}", fg="red")
        return new_value

    return click.prompt(f"Enter new value for {selected}")


def update_topics(cli: ConfluentCLI) -> None:
    """Interactively change configs on one or more topics, using the first as the reference."""
    click.secho("===== Kafka Topic Updater =====", fg="yellow")
    click.secho("Available Topics:", fg="yellow")
    cli.topic_list()
    click.echo("")

    topics = _read_topic_names(
        "Do you want to update multiple topics with the same configuration?",
        "Enter topic names (space-separated)",
        "Enter the topic name to update",
    )
    if not topics:
        click.secho("No topic given.", fg="red")
        return

    click.secho("\nTopics that will be updated:", fg="yellow")
    for topic in topics:
        if cli.topic_exists(topic):
            _show_current_configuration(cli, topic)
        else:
            click.secho(f"Topic '{topic}' does not exist and will be skipped.", fg="red")

    reference = topics[0]
    if not cli.topic_exists(reference):
        click.secho(f"Error: Topic '{reference}' does not exist.", fg="red")
        return
    click.secho(f"\nProceeding with updates. Using '{reference}' as reference for configuration options.", fg="yellow")
    options = editable_configs(cli.topic_configs(reference))

    while True:
        click.secho("\nEditable Configurations:", fg="yellow")
        for index, row in enumerate(options, start=1):
            click.echo(f"{index}) {row['name']} = {row['value']}")
        finish = len(options) + 1
        click.echo(f"{finish}) Finish Updating")

        number = click.prompt("Enter the number of the configuration to update", type=int)
        if number == finish:
            break
        if number < 1 or number > len(options):
            click.secho("Invalid configuration selection.", fg="red")
            continue

        selected = options[number - 1]["name"]
        current = options[number - 1]["value"]
        click.secho(f"Current value for {selected}: {current}", fg="green")
        new_value = _new_value_for(selected, current, topics, cli)
        if new_value is None:
            continue

        for topic in topics:
            if not cli.topic_exists(topic):
                click.secho(f"Error: Topic '{topic}' does not exist. Skipping.", fg="red")
                continue
            try:
                cli.topic_update(topic, {selected: new_value})
            except ConfluentCLIError as exc:
                click.secho(f"Failed to update configuration for topic '{topic}':", fg="red")
                click.secho(str(exc), fg="red")
                continue
            click.secho(f"Configuration '{selected}' updated successfully for topic '{topic}'.", fg="green")
            for row in cli.topic_configs(topic):
                if row["name"] == selected:
                    click.secho(f"Updated configuration: {selected} = {row['value']}", fg="yellow")

        if not click.confirm(click.style("\nDo you want to update another configuration?", fg="yellow"), default=False):
            break

    click.secho("\nFinal Topic Descriptions after updates:", fg="yellow")
    for topic in topics:
        if cli.topic_exists(topic):
            click.secho(f"\n==== Topic: {topic} ====", fg="green")
            cli.topic_describe(topic)
            click.secho(f"\n{SEPARATOR}", fg="yellow")


def delete_topics(cli: ConfluentCLI) -> None:
    """Delete named or wildcard-matched topics after an explicit YES confirmation."""
    click.secho("===== Kafka Topic Deleter =====", fg="yellow")
    cli.topic_list()

    if click.confirm(click.style("Do you want to delete multiple topics or use a wildcard?", fg="yellow"), default=False):
        click.secho("Enter topics to delete (space-separated or use wildcard '*'):", fg="yellow")
        click.secho("Examples:", fg="green")
        click.echo("  - Specific topics: test test1 test2")
        click.echo("  - Wildcard prefix: test*")
        click.echo("  - Wildcard suffix: *test")
        click.echo("  - Wildcard anywhere: *test*")
        topic_input = click.prompt("Enter topics or wildcard pattern")
        if "*" in topic_input:
            listed = cli.topic_names()
            topics: list[str] = []
            for pattern in topic_input.split():
                topics.extend(name for name in match_topics(pattern, listed) if name not in topics)
        else:
            topics = topic_input.split()
    else:
        topics = [click.prompt("Enter the topic name to delete").strip()]

    valid_topics = []
    for topic in topics:
        if cli.topic_exists(topic):
            valid_topics.append(topic)
        else:
            click.secho(f"Warning: Topic '{topic}' does not exist. Skipping.", fg="red")

    if not valid_topics:
        click.secho("No valid topics to delete.", fg="yellow")
        return

    click.secho("The following topics will be PERMANENTLY DELETED:", fg="red")
    for topic in valid_topics:
        click.echo(topic)
    confirm = click.prompt("Are you ABSOLUTELY sure? Type 'YES' to confirm", default="", show_default=False)
    if confirm != "YES":
        click.secho("Deletion cancelled.", fg="yellow")
        return

    deleted = 0
    failed: list[str] = []
    for topic in valid_topics:
        try:
            cli.topic_delete(topic)
        except ConfluentCLIError as exc:
            log.debug("delete failed: %s", exc)
            click.secho(f"Failed to delete topic '{topic}'.", fg="red")
            failed.append(topic)
            continue
        click.secho(f"Topic '{topic}' deleted successfully.", fg="green")
        deleted += 1

    click.secho("\nDeletion Summary:", fg="yellow")
    click.secho(f"Successfully deleted: {deleted} topics", fg="green")
    if failed:
        click.secho(f"Failed to delete: {len(failed)} topics ({' '.join(failed)})", fg="red")


def describe_topics(cli: ConfluentCLI) -> None:
    """Describe one topic, or every topic when the name is left blank."""
    click.secho("===== Kafka Topic Describe =====", fg="yellow")
    cli.topic_list()
    topic = click.prompt("Enter the topic name to describe (or leave blank to describe all)", default="",
                         show_default=False).strip()
    if topic:
        if not cli.topic_exists(topic):
            click.secho(f"Error: Topic '{topic}' does not exist.", fg="red")
            return
        click.secho(f"Details for topic '{topic}':", fg="yellow")
        cli.topic_describe(topic)
        return

    click.secho("Describing all topics in detail:", fg="yellow")
    names = cli.topic_names()
    if not names:
        click.secho("No topics found.", fg="yellow")
        return
    for name in names:
        click.secho(f"\nDetails for topic '{name}':", fg="yellow")
        cli.topic_describe(name)
        click.echo(SEPARATOR)


MENU: dict[str, tuple[str, Callable[[ConfluentCLI], None] | None]] = {
    "1": ("List all topics", list_topics),
    "2": ("Create a new topic", create_topics),
    "3": ("Update an existing topic", update_topics),
    "4": ("Delete a topic", delete_topics),
    "5": ("Describe a topic", describe_topics),
    "6": ("Exit", None),
}


def run_menu(cli: ConfluentCLI) -> int:
    """Confirm environment and cluster once, then loop over the topic menu until Exit."""
    if not select_environment(cli) or not select_cluster(cli):
        return 1

    while True:
        click.echo("")
        click.secho("===== Kafka Topic Management Tool =====", fg="yellow")
        for key, (label, _) in MENU.items():
            click.echo(f"{key}) {label}")
        click.echo("")
        choice = click.prompt("Enter your choice (1-6)", default="", show_default=False).strip()
        click.echo("")

        entry = MENU.get(choice)
        if entry is None:
            click.secho("Invalid choice. Please try again.", fg="red")
            continue
        label, action = entry
        if action is None:
            click.secho("Exiting. Goodbye!", fg="green")
            return 0
        try:
            action(cli)
        except ConfluentCLIError as exc:
            click.secho(f"{label} failed: {exc}", fg="red")
        click.echo(f"\n{SEPARATOR}\n")


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--confluent-bin", envvar="CONFLUENT_CLI", default=DEFAULT_BINARY, show_default=True,
              help="Path to the Confluent CLI binary.")
@click.option("--timeout", "timeout_seconds", envvar="CONFLUENT_CLI_TIMEOUT_SECONDS", default=DEFAULT_TIMEOUT_SECONDS,
              type=float, show_default=True, help="Seconds to wait for each Confluent CLI command.")
@click.option("--debug", envvar="TOPIC_MANAGER_DEBUG", is_flag=True, help="Log every CLI command executed.")
@click.pass_context
def topics(ctx: click.Context, confluent_bin: str, timeout_seconds: float, debug: bool) -> None:
    """Interactive Kafka topic management over the Confluent CLI."""
    logging.basicConfig(level=logging.DEBUG if debug else logging.WARNING,
                        format="%(asctime)s - %(levelname)s - %(message)s")
    ctx.exit(run_menu(ConfluentCLI(binary=confluent_bin, timeout_seconds=timeout_seconds)))


def main() -> None:
    """Load .env settings and start the topic management menu."""
    load_dotenv(find_dotenv(usecwd=True))
    topics(prog_name="topic-manager")


if __name__ == "__main__":
    main()
