"""Slack Web API integration for the daily digest."""

import logging
from dataclasses import dataclass, field

from task_insights.core.digest import TaskSummary, UserDigest

logger = logging.getLogger(__name__)


class SlackError(Exception):
    """Raised when a Slack operation fails."""


@dataclass
class SlackMessage:
    channel: str
    ts: str
    text: str


@dataclass
class DigestRun:
    sent: list[SlackMessage] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def get_client(token: str | None):
    """Get a Slack WebClient. Returns None if no token provided."""
    if not token:
        return None
    from slack_sdk import WebClient
    return WebClient(token=token)


def send_message(
    token: str | None,
    channel: str,
    text: str,
    blocks: list[dict] | None = None,
    client=None,
) -> SlackMessage:
    """Send a message to a Slack channel."""
    client = client or get_client(token)
    if not client:
        raise SlackError("Slack not configured: SLACK_BOT_TOKEN not set")

    response = client.chat_postMessage(
        channel=channel,
        text=text,
        blocks=blocks,
    )

    return SlackMessage(
        channel=response["channel"],
        ts=response["ts"],
        text=text,
    )


def _priority_label(bucket: int) -> str:
    if bucket >= 8:
        return f":red_circle: {bucket}/10"
    if bucket >= 6:
        return f":large_orange_circle: {bucket}/10"
    if bucket >= 4:
        return f":large_yellow_circle: {bucket}/10"
    return f":large_green_circle: {bucket}/10"


def _due_label(task: TaskSummary) -> str:
    days = task.days_until_due
    if days is None:
        return "no deadline"
    if days < 0:
        return f"{-days} days overdue"
    if days == 0:
        return "due today"
    return f"due in {days} days"


def format_digest_blocks(digest: UserDigest) -> list[dict]:
    """Format a user's daily digest as Slack blocks."""
    sections = [
        (":rotating_light: Overdue", digest.overdue),
        (":hourglass_flowing_sand: Due today", digest.due_today),
        (":calendar: Upcoming (next 14 days)", digest.upcoming),
        (":large_blue_circle: In progress", digest.in_progress),
        (":white_check_mark: Completed today", digest.completed),
    ]
    blocks = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": f"Daily digest for {digest.user_name}"},
        }
    ]
    for title, tasks in sections:
        if not tasks:
            continue
        lines = [
            f"• *{t.title}* (#{t.id}) {t.status} | {_priority_label(t.priority_bucket)} | {_due_label(t)}"
            for t in tasks
        ]
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"*{title}* ({len(tasks)})\n" + "\n".join(lines)},
        })
    return blocks


def digest_text(digest: UserDigest) -> str:
    return (
        f"Daily digest for {digest.user_name}: "
        f"{len(digest.overdue)} overdue, {len(digest.due_today)} due today, "
        f"{len(digest.upcoming)} upcoming"
    )


def send_daily_digests(
    digests: list[UserDigest],
    token: str | None,
    channel: str,
    client=None,
) -> DigestRun:
    """Post each digest to the channel. One failed post does not stop the run."""
    client = client or get_client(token)
    if not client:
        raise SlackError("Slack not configured: SLACK_BOT_TOKEN not set")

    run = DigestRun()
    for digest in digests:
        try:
            message = send_message(
                token, channel, digest_text(digest), format_digest_blocks(digest), client=client
            )
        except Exception:
            logger.exception("Failed to send daily digest for %s", digest.user_id)
            run.failed.append(digest.user_id)
            continue
        run.sent.append(message)
    logger.info("Daily digest: %d sent, %d failed", len(run.sent), len(run.failed))
    return run
