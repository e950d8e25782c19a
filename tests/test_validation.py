"""Tests for ToolValidator."""

from sidekick.tools.validation import ToolValidator
from tests.mock_tools import EchoTool, ExtraKeysTool
from sidekick.tools.scheduled_tasks import CreateScheduledTaskTool, DeleteScheduledTaskTool
from sidekick.backends.task_server import TaskServerClient


class TestToolValidator:
    """Test suite for ToolValidator.validate()."""

    def test_valid_args_pass(self):
        ok, err = ToolValidator.validate(EchoTool(), {"message": "hello"})
        assert ok is True
        assert err is None

    def test_missing_required_arg_fails(self):
        ok, err = ToolValidator.validate(EchoTool(), {})
        assert ok is False
        assert "message" in err.lower() or "required" in err.lower()

    def test_extra_unknown_keys_rejected(self):
        ok, err = ToolValidator.validate(EchoTool(), {"message": "hello", "rogue": "value"})
        assert ok is False
        assert err is not None

    def test_additional_properties_true_allows_extra_keys(self):
        ok, err = ToolValidator.validate(
            ExtraKeysTool(), {"base_param": "hello", "extra": "stuff", "another": 42}
        )
        assert ok is True
        assert err is None

    def test_type_mismatch_string_vs_integer(self):
        ok, err = ToolValidator.validate(EchoTool(), {"message": 12345})
        assert ok is False
        assert err is not None

    def test_scheduled_task_requires_cron_and_instruction(self):
        tool = CreateScheduledTaskTool(TaskServerClient())
        ok, err = ToolValidator.validate(tool, {"cron": "0 0 9 * * *"})
        assert ok is False
        assert "instruction" in err

    def test_delete_task_id_must_be_number(self):
        tool = DeleteScheduledTaskTool(TaskServerClient())
        assert ToolValidator.validate(tool, {"taskId": 3})[0] is True
        assert ToolValidator.validate(tool, {"taskId": "3"})[0] is False
