# tools.py
# Bundled demo tools for the CLI.
#
# The engine itself never imports this module; hosts bring their own
# registry. Tools report failures as "Error: ..." strings, which the engine
# treats as step failures.

import os
from functools import partial
from typing import Any

from tool_program.adapter import MultiTool, Tool
from tool_program.config import Settings
from tool_program.models import ToolSpec


def _object(properties: dict[str, Any], required: list[str]) -> dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


def _tool_echo(args: dict, context: Any) -> dict:
    return dict(args)


def _tool_summarize(args: dict, context: Any, limit: int = 4000) -> str:
    text = str(args.get("text", "")).strip()
    if not text:
        return "Error: no text provided."
    return text[:limit]


def _tool_file_write(args: dict, context: Any, workspace: str = "./workspace") -> dict | str:
    path = str(args.get("path", "")).strip()
    content = args.get("content", "")
    if not path:
        return "Error: no path provided."
    if not isinstance(content, str):
        content = str(content)

    root = os.path.realpath(workspace)
    target = os.path.realpath(os.path.join(root, path))
    if os.path.commonpath([root, target]) != root:
        return f"Error: path {path!r} escapes the workspace."

    os.makedirs(os.path.dirname(target), exist_ok=True)
    with open(target, "w", encoding="utf-8") as fh:
        fh.write(content)
    return {"path": target, "bytes": len(content.encode("utf-8"))}


def _web_search(args: dict, max_results: int = 4) -> dict | str:
    from ddgs import DDGS

    query = str(args.get("query", "")).strip()
    if not query:
        return "Error: no query provided."
    try:
        # Coerce the generator so the request actually runs here.
        results = list(DDGS().text(query, max_results=max_results))
    except Exception as e:
        return f"Error: search failed: {e}"
    return {
        "items": [
            {"title": r.get("title", ""), "body": r.get("body", ""), "url": r.get("href", "")}
            for r in results
        ]
    }


def _web_post(args: dict, timeout: float = 10.0) -> dict | str:
    import httpx

    url = str(args.get("url", "")).strip()
    payload = args.get("payload", {})
    if not url:
        return "Error: no URL provided."
    try:
        response = httpx.post(url, json=payload, timeout=timeout)
    except httpx.HTTPError as e:
        return f"Error: POST {url} failed: {e}"
    return {"status": response.status_code, "bytes": len(response.content)}


WEB_TOOLS = [
    ToolSpec(
        name="web_search",
        description="Search the web. Returns {items: [{title, body, url}]}.",
        parameters=_object({"query": {"type": "string"}}, ["query"]),
    ),
    ToolSpec(
        name="web_post",
        description="POST a JSON payload to a URL. Returns {status, bytes}.",
        parameters=_object({"url": {"type": "string"}, "payload": {"type": "object"}}, ["url"]),
    ),
]


def _web(payload: dict, context: Any, timeout: float = 10.0) -> dict | str:
    tool = payload.get("tool")
    args = payload.get("parameters") or {}
    if tool == "web_search":
        return _web_search(args)
    if tool == "web_post":
        return _web_post(args, timeout=timeout)
    return {"error": f'Tool "{tool}" not found'}


def build_tools(settings: Settings | None = None) -> list[Tool | MultiTool]:
    """The demo registry, configured from `settings`."""
    settings = settings or Settings()
    return [
        Tool(
            name="echo",
            invoke=_tool_echo,
            description="Return the arguments unchanged.",
            parameters={"type": "object", "additionalProperties": True},
        ),
        Tool(
            name="summarize",
            invoke=partial(_tool_summarize, limit=settings.summary_limit),
            description=f"Trim text to at most {settings.summary_limit} characters.",
            parameters=_object({"text": {"type": "string"}}, ["text"]),
        ),
        Tool(
            name="file_write",
            invoke=partial(_tool_file_write, workspace=settings.workspace),
            description="Write text to a file inside the workspace. Returns {path, bytes}.",
            parameters=_object({"path": {"type": "string"}, "content": {"type": "string"}}, ["path", "content"]),
        ),
        MultiTool(
            name="web",
            tools=WEB_TOOLS,
            invoke=partial(_web, timeout=settings.http_timeout),
            description="Web search and HTTP post.",
        ),
    ]
