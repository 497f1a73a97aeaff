"""Tests for human-readable output."""

from infraplan.apply.models import ActionResult, ActionStatus, ApplyOutcome, ApplyResult
from infraplan.planning.models import Plan
from infraplan.presentation.human_formatter import format_apply_result, format_plan, format_record, format_state


class TestFormatPlan:

    def test_empty_plan(self):
        text = format_plan(Plan(), ascii_mode=True)
        assert "No changes. Infrastructure matches the declarations." in text

    def test_actions_numbered_in_order(self, harness, vsi_document):
        text = format_plan(harness.plan(vsi_document), ascii_mode=True)

        assert text.index("1. + aws_vpc.v") < text.index("2. + aws_subnet.s") < text.index("3. + aws_instance.i")
        assert 'cidr_block = "10.0.0.0/16"' in text
        assert "vpc_id     = (known after apply)" in text
        assert "after: aws_subnet.s:create" in text

    def test_update_shows_before_and_after(self, harness, vsi_document):
        harness.converge(vsi_document)
        text = format_plan(harness.plan(vsi_document.replace("t3.micro", "t3.large")), ascii_mode=True)

        assert "~ aws_instance.i will be updated in-place" in text
        assert 'instance_type = "t3.micro" -> "t3.large"' in text
        assert "Plan: 0 to create, 1 to update, 0 to replace, 0 to destroy." in text

    def test_ascii_mode_from_environment(self, monkeypatch):
        monkeypatch.setenv("INFRAPLAN_ASCII", "1")
        assert format_plan(Plan()).startswith("+")


class TestFormatApplyResult:

    def test_failure_details(self):
        result = ApplyResult(outcome=ApplyOutcome.PARTIALLY_APPLIED, results=[
            ActionResult(action_id="aws_vpc.v:create", address="aws_vpc.v", action="create",
                         status=ActionStatus.APPLIED),
            ActionResult(action_id="aws_subnet.s:create", address="aws_subnet.s", action="create",
                         status=ActionStatus.FAILED, error="quota exceeded"),
            ActionResult(action_id="aws_instance.i:create", address="aws_instance.i", action="create",
                         status=ActionStatus.SKIPPED, blocked_by="aws_subnet.s:create"),
        ])

        text = format_apply_result(result, ascii_mode=True)

        assert "Apply partially complete" in text
        assert "[OK] aws_vpc.v:create" in text
        assert "[FAILED] aws_subnet.s:create" in text
        assert "error: quota exceeded" in text
        assert "blocked by: aws_subnet.s:create" in text
        assert "1 applied, 1 failed, 1 skipped" in text


class TestFormatState:

    def test_empty(self):
        assert format_state([]) == "State is empty.\n"

    def test_records(self, harness, vsi_document):
        harness.converge(vsi_document)
        records = harness.store.list()

        listing = format_state(records)
        assert listing.splitlines()[0].startswith("aws_vpc.v")
        assert "subnet-000000000002" in listing

        detail = format_record(harness.store.get("aws_subnet.s"))
        assert detail.startswith("# aws_subnet.s")
        assert "depends on: aws_vpc.v" in detail
