"""
Unit tests for the ACL manager.
"""

import pytest
from click.testing import CliRunner

import acl_manager
from acl_manager import AclAction, AclRule, acls, build_acl_command, validate_resource_type
from confluent_cli import ConfluentCLI
from fakes import ScriptedRunner


@pytest.fixture
def invoke(monkeypatch, runner):
    """Run the acls command against the scripted runner."""
    cli = ConfluentCLI(binary="confluent", runner=runner)
    monkeypatch.setattr(acl_manager, "ConfluentCLI", lambda **kwargs: cli)

    def _invoke(args, input_text=None):
        return CliRunner().invoke(acls, args, input=input_text)

    return _invoke


class TestAclRule:
    """Tests for rule validation and command construction."""

    def test_topic_rule_command(self):
        rule = AclRule("sa-123", "topic", "read,write", "allow", "orders")

        assert build_acl_command(AclAction.CREATE, rule) == [
            "kafka", "acl", "create",
            "--allow",
            "--service-account", "sa-123",
            "--operations", "read,write",
            "--topic", "orders",
        ]

    def test_consumer_group_wildcard_delete(self):
        rule = AclRule("sa-123", "consumer-group", "read", "deny", "*")

        assert build_acl_command(AclAction.DELETE, rule) == [
            "kafka", "acl", "delete",
            "--deny",
            "--service-account", "sa-123",
            "--operations", "read",
            "--consumer-group", "*",
        ]

    def test_cluster_scope_has_no_resource_name(self):
        rule = AclRule("sa-123", "cluster-scope", "describe", "allow")

        assert build_acl_command(AclAction.CREATE, rule)[-1] == "--cluster-scope"

    def test_cluster_scope_rejects_other_operations(self):
        with pytest.raises(ValueError, match="cluster-scope"):
            AclRule("sa-123", "cluster-scope", "write", "allow").validate()

    def test_invalid_permission(self):
        with pytest.raises(ValueError, match="Invalid permission type"):
            AclRule("sa-123", "topic", "read", "maybe", "orders").validate()

    def test_missing_resource_name(self):
        with pytest.raises(ValueError, match="Resource name is required"):
            AclRule("sa-123", "topic", "read", "allow").validate()

    def test_invalid_resource_type(self):
        with pytest.raises(ValueError, match="Invalid resource type."):
            validate_resource_type("transactional-id")


class TestAclCommand:
    """Tests for the acl-manager command line."""

    def test_help(self, invoke):
        result = invoke(["help"])

        assert result.exit_code == 0
        assert "acl-manager create" in result.output

    def test_unknown_command_exits_1(self, invoke):
        result = invoke(["bogus"])

        assert result.exit_code == 1
        assert "Invalid command. Use 'help' to see available options." in result.output

    def test_list(self, invoke, runner):
        result = invoke(["list"], "y\ny\n")

        assert result.exit_code == 0, result.output
        assert runner.called("kafka", "acl", "list") == [("kafka", "acl", "list")]

    def test_create_topic_rule(self, invoke, runner):
        result = invoke(["create"], "y\ny\nsa-123\ntopic\norders\nread,write\nallow\nn\n")

        assert result.exit_code == 0, result.output
        assert runner.called("kafka", "acl", "create") == [
            (
                "kafka", "acl", "create", "--allow",
                "--service-account", "sa-123",
                "--operations", "read,write",
                "--topic", "orders",
            )
        ]
        assert "ACL rule created successfully." in result.output

    def test_invalid_permission_exits_1(self, invoke, runner):
        result = invoke(["create"], "y\ny\nsa-123\ntopic\norders\nread\nmaybe\n")

        assert result.exit_code == 1
        assert "Invalid permission type. Must be 'allow' or 'deny'." in result.output
        assert runner.called("kafka", "acl", "create") == []

    def test_chained_delete_reuses_service_account(self, invoke, runner):
        result = invoke(
            ["create"],
            "y\ny\nsa-123\ncluster-scope\ndescribe\nallow\ny\nd\ntopic\norders\nread\nallow\nn\n",
        )

        assert result.exit_code == 0, result.output
        assert "Using Service Account: sa-123" in result.output
        deletes = runner.called("kafka", "acl", "delete")
        assert len(deletes) == 1
        assert deletes[0][4:6] == ("--service-account", "sa-123")

    def test_failed_delete_prints_suggestions(self, monkeypatch):
        cli = ConfluentCLI(runner=ScriptedRunner(failures=[("kafka", "acl", "delete")]))
        monkeypatch.setattr(acl_manager, "ConfluentCLI", lambda **kwargs: cli)

        result = CliRunner().invoke(acls, ["delete"], input="y\ny\nsa-123\ncluster-scope\nread\nallow\n")

        assert result.exit_code == 1
        assert "Failed to delete ACL rule." in result.output
        assert "Suggestions:" in result.output

    def test_interactive_exit(self, invoke):
        result = invoke([], "y\ny\n5\n")

        assert result.exit_code == 0
        assert "Exiting Confluent ACL Management Script." in result.output

    def test_timeout_from_environment(self, monkeypatch):
        seen = []
        monkeypatch.setattr(acl_manager, "ConfluentCLI", lambda **kwargs: seen.append(kwargs) or ConfluentCLI(**kwargs))

        env = {"CONFLUENT_CLI": "confluent", "CONFLUENT_CLI_TIMEOUT_SECONDS": "7.5"}

        result = CliRunner().invoke(acls, ["help"], env=env)

        assert result.exit_code == 0
        assert seen == [{"binary": "confluent", "timeout_seconds": 7.5}]
