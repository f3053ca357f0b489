import asyncio

import pytest

from tool_program.adapter import MultiTool, Tool
from tool_program.config import Settings
from tool_program.engine import ProgramEngine
from tool_program.models import ResultEvent, StatusEvent, ToolSpec

PREFIX = "code_exec_"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_engine(**settings):
    lookup = Tool(
        name="lookup",
        invoke=lambda args, context: {"result": {"items": ["first", "second"]}},
        description="Look things up",
        parameters={"type": "object", "properties": {}, "required": []},
    )
    echo = Tool(name="echo", invoke=lambda args, context: args, description="Echo")
    return ProgramEngine([lookup, echo], Settings(**settings))

# ---------------------------------------------------------------------------
# get_tools_info
# ---------------------------------------------------------------------------

def test_get_tools_info_before_any_run():
    engine = make_engine()
    info = engine.get_tools_info(["lookup", "nope"])["tools_info"]

    assert info[0] == {
        "name": "lookup",
        "description": "Look things up",
        "parameters": {"type": "object", "properties": {}, "required": []},
    }
    assert info[1] == {"name": "nope", "error": 'Tool "nope" not found'}

def test_get_tools_info_tolerates_bad_argument():
    assert make_engine().get_tools_info(None) == {"tools_info": []}

@pytest.mark.asyncio
async def test_result_schema_is_learned_from_runs():
    engine = make_engine()
    await engine.run_program({"steps": [{"id": "get", "tool": "lookup", "args": {}}]})

    info = engine.get_tools_info(["lookup", "echo"])["tools_info"]

    assert info[0]["result_schema"] == {"items": ["string"]}
    assert "result_schema" not in info[1]

# ---------------------------------------------------------------------------
# run_program
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_run_program_end_to_end():
    engine = make_engine()
    result = await engine.run_program([
        {"id": "get", "tool": "lookup", "args": {}},
        {"id": "use", "tool": "echo", "args": {"v": "{{get.items[0]}}"}},
    ])
    assert result == {"v": "first"}

@pytest.mark.asyncio
async def test_run_program_failure_payload():
    engine = make_engine()
    result = await engine.run_program({"steps": [
        {"id": "step1", "tool": "echo", "args": {"value": "{{ghost.x}}"}},
    ]})
    assert set(result) == {"error", "failedStep"}
    assert "has not been executed yet" in result["error"]
    assert result["failedStep"] == "step1"

@pytest.mark.asyncio
async def test_run_program_cancelled_payload():
    engine = make_engine()
    cancel = asyncio.Event()
    cancel.set()
    result = await engine.run_program([{"id": "a", "tool": "echo"}], cancel=cancel)
    assert result == {"error": "Workflow cancelled", "canceled": True}

@pytest.mark.asyncio
async def test_multi_tool_through_engine():
    def invoke(payload, context):
        return {"result": payload["parameters"]["value"]}

    multi = MultiTool(name="multi", tools=[ToolSpec(name="multi_tool_1")], invoke=invoke)
    engine = ProgramEngine([multi])

    result = await engine.run_program({"steps": [{"id": "step1", "tool": "multi_tool_1", "args": {"value": "test"}}]})

    assert result == "test"
    assert engine.get_tools_info(["multi_tool_1"])["tools_info"][0]["result_schema"] == "string"

@pytest.mark.asyncio
async def test_builtin_tools_are_usable_as_steps():
    engine = make_engine()
    result = await engine.run_program([
        {"id": "info", "tool": f"{PREFIX}get_tools_info", "args": {"tools_names": ["echo"]}},
        {"id": "show", "tool": "echo", "args": {"name": "{{info.tools_info[0].name}}"}},
    ])
    assert result == {"name": "echo"}
    # Builtin results do not pollute the tool schema history.
    assert engine.introspection.schema_for(f"{PREFIX}get_tools_info") is None

@pytest.mark.asyncio
async def test_nested_run_program_step():
    engine = make_engine()
    result = await engine.run_program([
        {"id": "inner", "tool": f"{PREFIX}run_program", "args": {"program": {"steps": [
            {"id": "x", "tool": "echo", "args": {"k": 1}},
        ]}}},
        {"id": "outer", "tool": "echo", "args": {"k": "{{inner.k}}"}},
    ])
    assert result == {"k": 1}

@pytest.mark.asyncio
async def test_nested_run_program_stops_when_the_outer_run_is_cancelled():
    cancel = asyncio.Event()
    calls = []

    def stop(args, context):
        calls.append("stop")
        cancel.set()
        return {"stopped": True}

    def after(args, context):
        calls.append("after")
        return {}

    engine = ProgramEngine([Tool(name="stop", invoke=stop), Tool(name="after", invoke=after)])
    result = await engine.run_program([
        {"id": "inner", "tool": f"{PREFIX}run_program", "args": {"steps": [
            {"id": "x", "tool": "stop"},
            {"id": "y", "tool": "after"},
        ]}},
        {"id": "outer", "tool": "after"},
    ], cancel=cancel)

    assert calls == ["stop"]
    assert result == {"error": "Workflow cancelled", "failedStep": "inner"}

# ---------------------------------------------------------------------------
# Host dispatch
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_execute_dispatches_by_name():
    engine = make_engine()

    info = await engine.execute(f"{PREFIX}get_tools_info", {"tools_names": ["echo"]})
    assert info["tools_info"][0]["name"] == "echo"

    result = await engine.execute(f"{PREFIX}run_program", {"program": {"steps": [
        {"id": "a", "tool": "echo", "args": {"x": 1}},
    ]}})
    assert result == {"x": 1}

    # Bare steps without the program wrapper.
    result = await engine.execute(f"{PREFIX}run_program", {"steps": [{"id": "a", "tool": "echo", "args": {"y": 2}}]})
    assert result == {"y": 2}

@pytest.mark.asyncio
async def test_execute_unknown_tool():
    engine = make_engine()
    result = await engine.execute(f"{PREFIX}unknown_tool", {})
    assert "Tool" in result["error"]
    assert "not found" in result["error"]

@pytest.mark.asyncio
async def test_execute_invalid_program():
    engine = make_engine()
    result = await engine.execute(f"{PREFIX}run_program", {"program": {}})
    assert result == {"error": "Invalid program: must have a steps array"}

@pytest.mark.asyncio
async def test_execute_with_updates_streams_progress():
    engine = make_engine()
    events = [
        event
        async for event in engine.execute_with_updates(
            f"{PREFIX}run_program", {"program": {"steps": [{"id": "step1", "tool": "echo", "args": {"a": 1}}]}}
        )
    ]
    assert isinstance(events[0], StatusEvent)
    assert "Executing step step1" in events[0].status
    assert "Completed step step1" in events[1].status
    assert isinstance(events[2], ResultEvent)
    assert events[2].result == {"a": 1}

# ---------------------------------------------------------------------------
# Host metadata
# ---------------------------------------------------------------------------

def test_tool_definitions():
    engine = make_engine()
    tools = engine.tool_definitions()

    assert [t["function"]["name"] for t in tools] == [f"{PREFIX}get_tools_info", f"{PREFIX}run_program"]
    assert "- lookup\n- echo" in tools[0]["function"]["description"]
    assert tools[1]["function"]["parameters"]["required"] == ["program"]

def test_custom_prefix():
    engine = make_engine(prefix="wf_")
    assert engine.run_program_name == "wf_run_program"
    assert engine.handles_tool("wf_get_tools_info")
    assert not engine.handles_tool(f"{PREFIX}run_program")

def test_status_descriptions():
    engine = make_engine()
    run, info = f"{PREFIX}run_program", f"{PREFIX}get_tools_info"
    args = {"program": {"steps": [{}, {}]}}

    assert engine.running_description(info, {"tools_names": ["a", "b", "c"]}) == "Getting info for 3 tools…"
    assert engine.running_description(run, args) == "Executing workflow with 2 steps…"
    assert engine.completed_description(run, args, {"v": 1}) == "Completed workflow with 2 steps"
    assert engine.completed_description(run, args, {"error": "boom"}) == "Workflow failed: boom"
    assert engine.completed_description(info, {"tools_names": ["a"]}, {"tools_info": []}) == "Retrieved info for 1 tools"
    assert engine.running_description("other", {}) is None
