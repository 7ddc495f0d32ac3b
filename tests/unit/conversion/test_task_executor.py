"""Tests for TaskExecutor."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from conftest import FakeProvider, make_plan, make_task
from stackshift.conversion.context import prepare_context
from stackshift.conversion.executor import TaskExecutor
from stackshift.errors import ProviderOutputError
from stackshift.models.conversion import FileChange, ResultStatus


@pytest.fixture
def context(source_tree, source_stack, target_stack):
    return prepare_context(make_plan(), source_tree, source_stack, target_stack)


class TestSuccessfulExecution:
    @pytest.mark.asyncio
    async def test_merges_files_and_history(self, context):
        task = make_task("A", input_files=["src/a.js"], output_files=["src/a.ts"])
        executor = TaskExecutor(FakeProvider())

        result = await executor.execute(task, context)

        assert result.status == ResultStatus.SUCCESS
        assert [f.path for f in result.files] == ["src/a.ts"]
        assert context.converted_files["src/a.ts"].content == "// A\n"
        assert len(context.history) == 1
        entry = context.history[0]
        assert entry.file_path == "src/a.ts"
        assert entry.converted_content == "// A\n"
        assert entry.conversion_type == "code_generation"
        assert context.shared["task_results"]["A"]["files"] == ["src/a.ts"]

    @pytest.mark.asyncio
    async def test_history_uses_source_content_when_old_content_missing(self, context):
        provider = AsyncMock()
        provider.convert.return_value = [{"path": "src/c.js", "type": "update", "content": "x"}]

        await TaskExecutor(provider).execute(make_task("C"), context)

        assert context.history[0].original_content == "export const c = 3;\n"

    @pytest.mark.asyncio
    async def test_accepts_files_mapping_with_output(self, context):
        provider = AsyncMock()
        provider.convert.return_value = {
            "files": [{"path": "src/b.ts", "content": "b", "oldContent": "old b"}],
            "output": "converted b",
        }

        result = await TaskExecutor(provider).execute(make_task("B"), context)

        assert result.output == "converted b"
        assert context.history[0].original_content == "old b"

    @pytest.mark.asyncio
    async def test_accepts_object_with_files_attribute(self, context):
        provider = AsyncMock()
        provider.convert.return_value = SimpleNamespace(
            files=[FileChange(path="src/d.ts", content="d")], output=""
        )

        result = await TaskExecutor(provider).execute(make_task("D"), context)

        assert result.files[0].path == "src/d.ts"
        assert "1 file(s)" in result.output


class TestAgentContext:
    @pytest.mark.asyncio
    async def test_shared_state_is_read_only(self, context):
        provider = FakeProvider()
        await TaskExecutor(provider).execute(make_task("A"), context)

        _, agent_context = provider.calls[0]
        with pytest.raises(TypeError):
            agent_context.shared["project_structure"] = {}
        with pytest.raises(TypeError):
            agent_context.converted_files["x"] = None
        assert agent_context.retry_attempt is None
        assert agent_context.fallback is None

    @pytest.mark.asyncio
    async def test_nested_shared_state_changes_do_not_leak(self, context):
        class TamperingProvider:
            async def convert(self, task, agent_context):
                agent_context.shared["task_results"]["forged"] = {"files": ["evil.ts"]}
                agent_context.shared["project_structure"].clear()
                return []

        structure = dict(context.shared["project_structure"])

        await TaskExecutor(TamperingProvider()).execute(make_task("A"), context)

        assert "forged" not in context.shared["task_results"]
        assert context.shared["project_structure"] == structure

    @pytest.mark.asyncio
    async def test_shared_state_is_hidden_without_preserve_context(self, context):
        provider = FakeProvider()
        await TaskExecutor(provider, preserve_context=False).execute(make_task("A"), context)

        _, agent_context = provider.calls[0]
        assert dict(agent_context.shared) == {}

    @pytest.mark.asyncio
    async def test_retry_data_is_passed_on_retry_attempts(self, context):
        context.record_error("src/a.js", "token limit reached")
        provider = FakeProvider()

        await TaskExecutor(provider).execute(
            make_task("A", input_files=["src/a.js"]), context, attempt=1, fallback="split"
        )

        _, agent_context = provider.calls[0]
        assert agent_context.is_retry
        assert agent_context.retry_attempt == 1
        assert agent_context.previous_errors == ("token limit reached",)
        assert agent_context.fallback == "split"


class TestFailures:
    @pytest.mark.asyncio
    async def test_provider_error_propagates_without_mutation(self, context):
        provider = FakeProvider(failures={"A": [TimeoutError("timed out")]})

        with pytest.raises(TimeoutError):
            await TaskExecutor(provider).execute(make_task("A"), context)

        assert context.converted_files == {}
        assert context.history == []
        assert context.shared["task_results"] == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "output",
        [None, "text", {"output": "no files"}, {"files": "nope"}, [42], [{"type": "create"}]],
    )
    async def test_malformed_output_is_rejected(self, context, output):
        provider = AsyncMock()
        provider.convert.return_value = output

        with pytest.raises(ProviderOutputError) as exc_info:
            await TaskExecutor(provider).execute(make_task("A"), context)

        assert "Invalid provider output format" in exc_info.value.message
        assert context.converted_files == {}
