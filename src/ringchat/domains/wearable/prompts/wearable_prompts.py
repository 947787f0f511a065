"""MCP Prompts: pre-built questions for common wearable check-ins."""

from __future__ import annotations

from fastmcp import FastMCP


def register_wearable_prompts(mcp: FastMCP) -> None:
    """Register wearable domain MCP prompts."""

    @mcp.prompt()
    def sleep_review_prompt(time_period: str = "last week") -> str:
        """Prompt template for reviewing sleep over a period."""
        return f"""Use ask_wearable_data to review my sleep for the {time_period}. I'd like to know:

1. How my sleep scores and total sleep time trended
2. How much deep and REM sleep I got compared with light sleep
3. Whether my bedtimes were consistent
4. One or two specific things I could change this week

Please refer to actual dates and numbers from my data."""

    @mcp.prompt()
    def weekly_checkin_prompt() -> str:
        """Prompt template for a weekly readiness and activity check-in."""
        return """Use ask_wearable_data to give me a weekly check-in covering the past 7 days:

1. My readiness scores and what drove them
2. My steps, active calories and workouts
3. Any days where my recovery lagged behind my activity
4. How to balance training and rest next week

Keep it short and encouraging."""
