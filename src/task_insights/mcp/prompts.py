"""MCP prompt templates for common reporting workflows."""

from task_insights.mcp.server import mcp


@mcp.prompt()
def report_review(user_id: str, start_date: str = "", end_date: str = "") -> str:
    """Generate a prompt for a reporting-period review."""
    period = f" between {start_date} and {end_date}" if start_date or end_date else ""
    return (
        f"Please review team performance{period} as seen by user '{user_id}'.\n\n"
        f"Use task_completion_report, logged_time_report and team_summary_report "
        f"with the same filters, then provide:\n"
        f"1. Overall completion rate and on-time completion rate\n"
        f"2. Who is carrying the most work, and who has late completions\n"
        f"3. Weeks where work piles up\n"
        f"4. Time logged on work that is still incomplete or overdue\n"
        f"5. Any concerns or risks"
    )


@mcp.prompt()
def overdue_triage(user_id: str) -> str:
    """Generate a prompt to triage overdue and due-today work."""
    return (
        f"Help me triage overdue work for user '{user_id}'.\n\n"
        f"Use daily_digest with user_id='{user_id}' to get overdue, due-today and upcoming tasks.\n"
        f"Then:\n"
        f"1. Rank overdue tasks by priority bucket and days overdue\n"
        f"2. Flag due-today tasks that are not in progress yet\n"
        f"3. Suggest what to defer from the upcoming list"
    )
