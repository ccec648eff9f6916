from __future__ import annotations

# Tool descriptions used by FastMCP when registering tools. Keep short and clear.
TOOL_DESCRIPTIONS: dict[str, str] = {
    "pictura_generate": "Generate images in one or more aspect ratios from a single prompt; ratios in a batch share one look.",
    "pictura_list": "List recent image batches (newest first), optionally filtered by slug substring.",
    "pictura_edit": "Edit the images of an existing batch: refine, inpaint a described region, outpaint, or restyle.",
    "pictura_upscale": "Upscale the images of an existing batch with Topaz or Replicate.",
    "pictura_gallery": "Write an HTML gallery of recent batches and return its path.",
    "pictura_setup": "Create or update the pictura config (API keys and defaults) in the user or project scope.",
    "pictura_config": "Show the effective configuration and which scope set each value. API keys are masked.",
}


SERVER_INSTRUCTIONS: str = (
    "Pictura MCP Server - Agent Instructions.\n"
    "Role: This server generates, edits, upscales and catalogs images. Results are saved under the "
    "project's .claude/plugins/maccing/pictura/output directory, grouped by timestamp and prompt slug.\n\n"
    "Workflow (short):\n"
    "1) If a tool reports a missing API key, call pictura_setup (or ask the user to export "
    "PICTURA_<PROVIDER>_API_KEY).\n"
    "2) Call pictura_generate with a prompt and either explicit ratios or a preset "
    "(social, web, portrait, landscape, print).\n"
    "3) Use the returned slug with pictura_edit or pictura_upscale; use pictura_list to find older slugs.\n\n"
    "Hard rules (must follow):\n"
    "- Ratios are limited to 1:1, 2:3, 3:2, 3:4, 4:3, 4:5, 5:4, 9:16, 16:9, 21:9.\n"
    "- quality='draft' picks the fast model; 'pro' picks the high fidelity model.\n"
    "- Never echo API keys back to the user.\n\n"
    "Outputs and failures (summary):\n"
    "- Successful calls return a text summary plus a structured payload with slug, timestamp and file paths.\n"
    "- Provider failures surface as MCP ToolErrors; messages include setup hints when credentials are the cause."
)


__all__ = ["TOOL_DESCRIPTIONS", "SERVER_INSTRUCTIONS"]
