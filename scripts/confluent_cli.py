#!/usr/bin/env python3
"""
Confluent Ops Toolkit
Copyright (c) 2026 Paul Harvener, Data-Blitz Inc
SPDX-License-Identifier: MIT

Run `confluent` CLI subcommands for the topic and ACL tools.
"""

import json
import logging
import subprocess
from typing import Any, Callable

import click

log = logging.getLogger(__name__)

DEFAULT_BINARY = "confluent"
DEFAULT_TIMEOUT_SECONDS = 120.0


class ConfluentCLIError(RuntimeError):
    """A `confluent` invocation failed to start or exited non-zero."""

    def __init__(self, args: list[str], returncode: int, stderr: str = "", stdout: str = "") -> None:
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr
        self.stdout = stdout
        detail = (stderr or stdout or "").strip()
        super().__init__(f"{' '.join(args)} failed (exit {returncode}) {detail}".rstrip())


def _default_runner(cmd: list[str], capture: bool, timeout: float) -> subprocess.CompletedProcess:
    """Execute one command; captured output is returned, streamed output goes to the terminal."""
    return subprocess.run(cmd, capture_output=capture, text=True, timeout=timeout, check=False)


class ConfluentCLI:
    """Wrapper around the Confluent CLI binary and its logged-in session."""

    def __init__(
        self,
        binary: str = DEFAULT_BINARY,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        runner: Callable[[list[str], bool, float], Any] | None = None,
    ) -> None:
        self.binary = binary
        self.timeout_seconds = timeout_seconds
        self._runner = runner or _default_runner

    def run(self, *args: str, capture: bool = False) -> str:
        """Run `confluent <args>` and return captured stdout; raise ConfluentCLIError on failure."""
        cmd = [self.binary, *args]
        log.debug("Executing: %s", " ".join(cmd))
        try:
            result = self._runner(cmd, capture, self.timeout_seconds)
        except FileNotFoundError as exc:
            raise ConfluentCLIError(cmd, 127, f"{self.binary} not found on PATH") from exc
        except subprocess.TimeoutExpired as exc:
            raise ConfluentCLIError(cmd, 124, f"timed out after {self.timeout_seconds}s") from exc
        stdout = result.stdout or ""
        if result.returncode != 0:
            raise ConfluentCLIError(cmd, result.returncode, stderr=result.stderr or "", stdout=stdout)
        return stdout

    def run_json(self, *args: str) -> Any:
        """Run a listing command with `-o json` and decode its output."""
        raw = self.run(*args, "-o", "json", capture=True).strip()
        if not raw:
            return []
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfluentCLIError([self.binary, *args], 0, f"invalid JSON output: {exc}") from exc

    # Environment and cluster context.

    def environment_list(self) -> None:
        self.run("environment", "list")

    def environment_use(self, environment_id: str) -> None:
        self.run("environment", "use", environment_id)

    def cluster_list(self) -> None:
        self.run("kafka", "cluster", "list")

    def cluster_use(self, cluster_id: str) -> None:
        self.run("kafka", "cluster", "use", cluster_id)

    # Topics.

    def topic_list(self) -> None:
        self.run("kafka", "topic", "list")

    def topic_names(self) -> list[str]:
        """Return topic names in CLI listing order."""
        rows = self.run_json("kafka", "topic", "list")
        names: list[str] = []
        for row in rows or []:
            name = row.get("name") if isinstance(row, dict) else row
            if name:
                names.append(str(name))
        return names

    def topic_exists(self, topic: str) -> bool:
        try:
            self.run("kafka", "topic", "describe", topic, capture=True)
        except ConfluentCLIError:
            return False
        return True

    def topic_describe(self, topic: str) -> None:
        self.run("kafka", "topic", "describe", topic)

    def topic_configs(self, topic: str) -> list[dict[str, Any]]:
        """Return `{name, value, read_only}` rows from `kafka topic describe -o json`."""
        payload = self.run_json("kafka", "topic", "describe", topic)
        if isinstance(payload, dict):
            payload = payload.get("configs") or payload.get("config") or []
            if isinstance(payload, dict):
                payload = [{"name": key, "value": value, "read_only": False} for key, value in payload.items()]
        rows: list[dict[str, Any]] = []
        for entry in payload:
            rows.append(
                {
                    "name": str(entry.get("name", "")),
                    "value": "" if entry.get("value") is None else str(entry.get("value")),
                    "read_only": bool(entry.get("read_only", entry.get("is_read_only", False))),
                }
            )
        return rows

    def topic_create(self, topic: str, partitions: int | None = None, configs: dict[str, str] | None = None) -> None:
        args = ["kafka", "topic", "create", topic]
        if partitions is not None:
            args += ["--partitions", str(partitions)]
        for key, value in (configs or {}).items():
            args += ["--config", f"{key}={value}"]
        self.run(*args)

    def topic_update(self, topic: str, configs: dict[str, str]) -> None:
        args = ["kafka", "topic", "update", topic]
        for key, value in configs.items():
            args += ["--config", f"{key}={value}"]
        self.run(*args, capture=True)

    def topic_delete(self, topic: str) -> None:
        self.run("kafka", "topic", "delete", topic, "--force")

    # ACLs.

    def acl_list(self) -> None:
        self.run("kafka", "acl", "list")

    def acl_command(self, argv: list[str]) -> None:
        """Run a pre-built `kafka acl create|delete ...` argument list."""
        self.run(*argv)


def select_environment(cli: ConfluentCLI) -> bool:
    """Show environments, and switch to another one if the operator is in the wrong one."""
    click.secho("Listing Available Environments:", fg="yellow")
    try:
        cli.environment_list()
    except ConfluentCLIError as exc:
        click.secho(str(exc), fg="red")
        return False
    if click.confirm(click.style("Are you in the correct environment?", fg="yellow"), default=True):
        return True
    selected = click.prompt(click.style("Enter the Environment ID you want to use", fg="green")).strip()
    try:
        cli.environment_use(selected)
    except ConfluentCLIError as exc:
        log.debug("environment use failed: %s", exc)
        click.secho(f"Failed to select environment {selected}.", fg="red")
        return False
    click.secho(f"Environment {selected} selected successfully.", fg="green")
    return True


def select_cluster(cli: ConfluentCLI) -> bool:
    """Show Kafka clusters, and switch to another one if the operator is on the wrong one."""
    click.secho("Listing Available Kafka Clusters:", fg="yellow")
    try:
        cli.cluster_list()
    except ConfluentCLIError as exc:
        click.secho(str(exc), fg="red")
        return False
    if click.confirm(click.style("Are you connected to the correct Kafka cluster?", fg="yellow"), default=True):
        return True
    selected = click.prompt(click.style("Enter the Kafka Cluster ID you want to use", fg="green")).strip()
    try:
        cli.cluster_use(selected)
    except ConfluentCLIError as exc:
        log.debug("cluster use failed: %s", exc)
        click.secho(f"Failed to select Kafka Cluster {selected}.", fg="red")
        return False
    click.secho(f"Kafka Cluster {selected} selected successfully.", fg="green")
    return True
