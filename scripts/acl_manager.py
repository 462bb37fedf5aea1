#!/usr/bin/env python3
"""
Confluent Ops Toolkit
Copyright (c) 2026 Paul Harvener, Data-Blitz Inc
SPDX-License-Identifier: MIT
"""

import logging
from dataclasses import dataclass
from enum import Enum
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

RESOURCE_FLAGS = {
    "topic": "--topic",
    "consumer-group": "--consumer-group",
    "cluster-scope": "--cluster-scope",
}
PERMISSIONS = ("allow", "deny")
CLUSTER_SCOPE_OPERATIONS = ("read", "describe")

USAGE = """Confluent ACL Management Script
Usage:
  {prog} list                 - List current ACL rules
  {prog} create               - Create a new ACL rule
  {prog} delete               - Delete an existing ACL rule
  {prog} env                  - Select and manage environments
  {prog} help                 - Show this help message"""


class AclAction(str, Enum):
    CREATE = "create"
    DELETE = "delete"


def validate_resource_type(resource_type: str) -> str:
    value = (resource_type or "").strip()
    if value not in RESOURCE_FLAGS:
        raise ValueError("Invalid resource type.")
    return value


@dataclass(frozen=True)
class AclRule:
    """One ACL binding for a service account, as accepted by `confluent kafka acl`."""

    principal: str
    resource_type: str
    operations: str
    permission: str
    resource_name: str = ""

    @property
    def is_cluster_scope(self) -> bool:
        return self.resource_type == "cluster-scope"

    def validate(self) -> None:
        """Raise ValueError when the rule would be rejected or is malformed."""
        if not self.principal.strip():
            raise ValueError("Service account is required.")
        validate_resource_type(self.resource_type)
        if not self.is_cluster_scope and not self.resource_name.strip():
            raise ValueError("Resource name is required (use '*' for wildcard).")
        if not self.operations.strip():
            raise ValueError("At least one operation is required.")
        if self.permission not in PERMISSIONS:
            raise ValueError("Invalid permission type. Must be 'allow' or 'deny'.")
        if self.is_cluster_scope and self.operations not in CLUSTER_SCOPE_OPERATIONS:
            raise ValueError("For cluster-scope, operations must be either 'read' or 'describe'.")


def build_acl_command(action: AclAction, rule: AclRule) -> list[str]:
    """Return the `kafka acl create|delete` argument list for a validated rule."""
    rule.validate()
    argv = [
        "kafka",
        "acl",
        AclAction(action).value,
        f"--{rule.permission}",
        "--service-account",
        rule.principal,
        "--operations",
        rule.operations,
    ]
    if rule.is_cluster_scope:
        argv.append("--cluster-scope")
    else:
        argv += [RESOURCE_FLAGS[rule.resource_type], rule.resource_name]
    return argv


def usage(prog: str = "acl-manager") -> str:
    return USAGE.format(prog=prog)


def list_acl_rules(cli: ConfluentCLI) -> bool:
    click.secho("Current ACL Rules:", fg="yellow")
    try:
        cli.acl_list()
    except ConfluentCLIError as exc:
        click.secho(f"Failed to list ACL rules: {exc}", fg="red")
        return False
    return True


def prompt_acl_rule(cli: ConfluentCLI, principal: str | None = None) -> AclRule:
    """Ask for the rule fields, validating each as soon as it is entered."""
    if principal:
        click.secho(f"Using Service Account: {principal}", fg="yellow")
    else:
        principal = click.prompt("Enter Service Account (e.g., sa-xxxxxx)").strip()

    resource_type = validate_resource_type(click.prompt("Enter Resource Type (topic/consumer-group/cluster-scope)"))
    resource_name = ""
    if resource_type == "topic":
        click.secho("Available Topics:", fg="yellow")
        try:
            cli.topic_list()
        except ConfluentCLIError as exc:
            click.secho(str(exc), fg="red")
    if resource_type != "cluster-scope":
        resource_name = click.prompt("Enter Resource Name (use '*' for wildcard, or specific name)").strip()

    operations = click.prompt("Enter Operations (comma-separated, e.g., read,write,describe)").strip()
    permission = click.prompt("Enter Permission Type (allow/deny)").strip()
    rule = AclRule(principal, resource_type, operations, permission, resource_name)
    rule.validate()
    return rule


def _print_delete_suggestions() -> None:
    click.secho("Suggestions:", fg="yellow")
    click.echo("1. Verify the exact ACL rule parameters")
    click.echo("2. Double-check the service account, resource type, and operations")
    click.echo("3. Confirm the ACL rule exists before attempting to delete")


def manage_acl_rule(cli: ConfluentCLI, action: AclAction, principal: str | None = None) -> bool:
    """Create or delete ACL rules, optionally chaining more rules for the same service account.

    Returns False when any requested rule was rejected or failed.
    """
    while True:
        list_acl_rules(cli)
        try:
            rule = prompt_acl_rule(cli, principal)
        except ValueError as exc:
            click.secho(str(exc), fg="red")
            return False

        argv = build_acl_command(action, rule)
        click.secho(f"Executing: {cli.binary} {' '.join(argv)}", fg="yellow")
        try:
            cli.acl_command(argv)
        except ConfluentCLIError as exc:
            log.debug("acl %s failed: %s", action.value, exc)
            click.secho(f"Failed to {action.value} ACL rule.", fg="red")
            if action is AclAction.DELETE:
                _print_delete_suggestions()
            return False

        done = "created" if action is AclAction.CREATE else "deleted"
        click.secho(f"ACL rule {done} successfully.", fg="green")
        click.secho("\nUpdated ACL Rules:", fg="yellow")
        list_acl_rules(cli)

        principal = rule.principal
        if not click.confirm(f"Do you need another ACL for {principal}?", default=False):
            return True
        next_action = click.prompt("Create or Delete ACL? (c/d)").strip().lower()
        if next_action == "c":
            action = AclAction.CREATE
        elif next_action == "d":
            action = AclAction.DELETE
        else:
            click.secho("Invalid action. Returning to main menu.", fg="red")
            return True


def select_context(cli: ConfluentCLI) -> bool:
    """Confirm (or switch) the environment, then the Kafka cluster."""
    return select_environment(cli) and select_cluster(cli)


def command_list(cli: ConfluentCLI) -> bool:
    return select_context(cli) and list_acl_rules(cli)


def command_create(cli: ConfluentCLI) -> bool:
    return select_context(cli) and manage_acl_rule(cli, AclAction.CREATE)


def command_delete(cli: ConfluentCLI) -> bool:
    return select_context(cli) and manage_acl_rule(cli, AclAction.DELETE)


def command_env(cli: ConfluentCLI) -> bool:
    return select_context(cli)


def command_help(cli: ConfluentCLI) -> bool:
    click.echo(usage())
    return True


COMMANDS: dict[str, Callable[[ConfluentCLI], bool]] = {
    "list": command_list,
    "create": command_create,
    "delete": command_delete,
    "env": command_env,
    "help": command_help,
}

MENU: dict[str, tuple[str, Callable[[ConfluentCLI], bool] | None]] = {
    "1": ("List ACL Rules", list_acl_rules),
    "2": ("Create ACL Rule", lambda cli: manage_acl_rule(cli, AclAction.CREATE)),
    "3": ("Delete ACL Rule", lambda cli: manage_acl_rule(cli, AclAction.DELETE)),
    "4": ("Manage Environments", select_context),
    "5": ("Exit", None),
}


def interactive_mode(cli: ConfluentCLI) -> int:
    """Confirm context, then loop over the ACL menu until Exit."""
    if not select_context(cli):
        click.secho("Continuing with the current environment and cluster.", fg="yellow")

    while True:
        click.secho("\nConfluent ACL Management", fg="yellow")
        for key, (label, _) in MENU.items():
            click.echo(f"{key}. {label}")
        choice = click.prompt("Enter your choice (1-5)", default="", show_default=False).strip()

        entry = MENU.get(choice)
        if entry is None:
            click.secho("Invalid choice. Please try again.", fg="red")
            continue
        _, action = entry
        if action is None:
            click.secho("Exiting Confluent ACL Management Script.", fg="green")
            return 0
        action(cli)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("command", required=False)
@click.option("--confluent-bin", envvar="CONFLUENT_CLI", default=DEFAULT_BINARY, show_default=True,
              help="Path to the Confluent CLI binary.")
@click.option("--timeout", "timeout_seconds", envvar="CONFLUENT_CLI_TIMEOUT_SECONDS", default=DEFAULT_TIMEOUT_SECONDS,
              type=float, show_default=True, help="Seconds to wait for each Confluent CLI command.")
@click.option("--debug", envvar="ACL_MANAGER_DEBUG", is_flag=True, help="Log every CLI command executed.")
@click.pass_context
def acls(ctx: click.Context, command: str | None, confluent_bin: str, timeout_seconds: float, debug: bool) -> None:
    """Manage Confluent Cloud ACL rules (list | create | delete | env | help)."""
    logging.basicConfig(level=logging.DEBUG if debug else logging.WARNING,
                        format="%(asctime)s - %(levelname)s - %(message)s")
    cli = ConfluentCLI(binary=confluent_bin, timeout_seconds=timeout_seconds)
    if command is None:
        ctx.exit(interactive_mode(cli))

    handler = COMMANDS.get(command.strip().lower())
    if handler is None:
        click.secho("Invalid command. Use 'help' to see available options.", fg="red")
        click.echo(usage())
        ctx.exit(1)
    ctx.exit(0 if handler(cli) else 1)


def main() -> None:
    """Load .env settings and run the ACL management CLI."""
    load_dotenv(find_dotenv(usecwd=True))
    acls(prog_name="acl-manager")


if __name__ == "__main__":
    main()
