"""
Markdown export of a test suite.

Produces a human readable report listing every endpoint with its request
line and last result or error.
"""

import json
from datetime import datetime, timezone

from ..schemas.suite import Suite


def _format_timestamp(value: int) -> str:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def export_markdown(suite: Suite) -> str:
    """
    Render a suite as Markdown.

    Args:
        suite: The suite to export

    Returns:
        Markdown document
    """
    lines = [
        f"# {suite.title}",
        "",
        suite.description,
        "",
        f"**Base URL:** {suite.base_origin or '-'}",
        f"**Created:** {_format_timestamp(suite.created_at)}",
        f"**Last Updated:** {_format_timestamp(suite.updated_at)}",
        "",
        "---",
        "",
    ]

    for index, endpoint in enumerate(suite.endpoints, start=1):
        lines.extend([
            f"## {index}. {endpoint.title or 'Untitled endpoint'}",
            "",
        ])
        if endpoint.description:
            lines.extend([endpoint.description, ""])

        lines.extend([
            f"**Status:** {endpoint.status}",
            "**Request:**",
            "```",
            endpoint.request_line,
            "```",
            "",
        ])

        if endpoint.result is not None:
            lines.extend([
                "**Response:**",
                "```json",
                json.dumps(endpoint.result, indent=2, ensure_ascii=False),
                "```",
                "",
            ])
        elif endpoint.error_message is not None:
            lines.extend([
                "**Error:**",
                "```",
                endpoint.error_message,
                "```",
                "",
            ])

        lines.extend(["---", ""])

    return "\n".join(lines)
