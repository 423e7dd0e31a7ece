"""
Capability types for the MCP server runtime.

Modules:
- base: guarded handler invocation shared by all capability kinds
- tool: tools, argument validation and tool result shaping
- resource: URI-addressed resources and content shaping
- prompt: prompt templates, required-argument checks and message shaping
"""

from mcp_serverkit.capabilities.base import Handler, HandlerOutcome, invoke_handler
from mcp_serverkit.capabilities.prompt import Prompt, PromptArgument, render_prompt
from mcp_serverkit.capabilities.resource import Resource, read_resource
from mcp_serverkit.capabilities.tool import Tool, execute_tool

__all__ = [
    "Handler",
    "HandlerOutcome",
    "invoke_handler",
    # Tools
    "Tool",
    "execute_tool",
    # Resources
    "Resource",
    "read_resource",
    # Prompts
    "Prompt",
    "PromptArgument",
    "render_prompt",
]
