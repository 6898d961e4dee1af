"""CLI commands for inspecting comment threads and notifications."""

import asyncio
import json
import logging

import click

from ..container import get_container
from ..domain.models import ParentType
from ..repositories.memory import InMemoryCollaborationService

PARENT_TYPES = click.Choice([p.value for p in ParentType], case_sensitive=False)


def setup_container():
    """Set up container with default configuration."""
    from ..config.settings import get_settings
    from ..repositories.http import HttpCollaborationService

    container = get_container()

    # Check if already configured
    try:
        _ = container.service
        return  # Already configured
    except RuntimeError:
        pass

    settings = get_settings()
    service_settings = settings.service
    mention_settings = settings.mention

    # Use the REST backend if configured, otherwise in-memory
    if service_settings.base_url:
        api_key = service_settings.api_key
        container.configure_service(
            lambda: HttpCollaborationService(
                base_url=service_settings.base_url,
                api_key=api_key.get_secret_value() if api_key else None,
                timeout=service_settings.timeout,
                fetch_limit=settings.notification.fetch_limit,
                parser=container.mention_parser,
                preview_length=mention_settings.preview_length,
            )
        )
    else:
        container.configure_service(
            lambda: InMemoryCollaborationService(
                parser=container.mention_parser,
                preview_length=mention_settings.preview_length,
            )
        )


def run_async(coro):
    """Run async coroutine in sync context."""
    return asyncio.run(coro)


@click.group()
@click.version_option(version="1.0.0")
def cli():
    """Comment thread and notification tooling."""
    from ..config.settings import get_settings

    settings = get_settings()
    logging.basicConfig(level="DEBUG" if settings.debug else settings.log_level.upper())
    setup_container()


@cli.command("mentions")
@click.argument("text")
def mentions(text: str):
    """Show mention targets and display markup for TEXT.

    When TEXT ends in a partially typed mention, matching people are listed.
    """
    from ..domain.protocols import IdentityDirectory
    from ..services.mention_service import MentionNotifier

    container = get_container()
    parser = container.mention_parser
    targets = sorted(parser.extract_mention_targets(text), key=str.lower)

    if targets:
        click.echo(f"Targets: {', '.join(targets)}")
    else:
        click.echo("Targets: (none)")
    click.echo(f"Display: {parser.extract_display_markup(text)}")

    prefix = parser.find_partial_mention(text)
    service = container.service
    if prefix and isinstance(service, IdentityDirectory):
        people = run_async(service.list_people())
        limit = container.settings.mention.suggestion_limit
        for person in MentionNotifier.suggest(people, prefix, limit=limit):
            click.echo(f"Suggest: {person.name} <{person.email or person.id}>")


@cli.command("comments")
@click.argument("parent_type", type=PARENT_TYPES)
@click.argument("parent_id")
def list_comments(parent_type: str, parent_id: str):
    """List the comments on a task or responsibility."""
    thread = get_container().comment_thread(ParentType(parent_type.lower()), parent_id)
    run_async(thread.load())

    if thread.load_failed:
        click.echo("Failed to load comments.", err=True)
        raise SystemExit(1)
    if not thread.comments:
        click.echo("No comments yet.")
        return

    parser = get_container().mention_parser
    click.echo(f"{len(thread.comments)} comment(s):\n")
    for comment in thread.comments:
        click.echo(f"[{comment.created_at.isoformat()}] {comment.author_id}")
        click.echo(f"  {parser.extract_display_markup(comment.body)}")


@cli.command("post")
@click.argument("parent_type", type=PARENT_TYPES)
@click.argument("parent_id")
@click.argument("author")
@click.argument("body")
def post_comment(parent_type: str, parent_id: str, author: str, body: str):
    """Post BODY as AUTHOR and dispatch its mentions."""
    thread = get_container().comment_thread(ParentType(parent_type.lower()), parent_id)

    async def _post():
        comment = await thread.post(author, body)
        results = await thread.drain()
        return comment, results

    comment, results = run_async(_post())
    if comment is None:
        click.echo("Comment was not posted.", err=True)
        raise SystemExit(1)

    click.echo(f"Posted comment {comment.id}")
    if results and not all(results):
        click.echo("Warning: mention notifications could not be delivered.", err=True)


@cli.command("notifications")
@click.argument("recipient")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def list_notifications(recipient: str, output_json: bool):
    """List notifications for RECIPIENT, newest first."""
    from ..domain.exceptions import ServiceError
    from ..services.notification_center import NotificationCenter

    service = get_container().service
    try:
        fetched = run_async(service.fetch_notifications(recipient))
    except ServiceError as e:
        click.echo(f"Failed to load notifications: {e}", err=True)
        raise SystemExit(1)

    notifications = NotificationCenter.order(fetched)
    unread = sum(1 for n in notifications if not n.read)

    if output_json:
        output = {
            "notifications": [
                {
                    "id": n.id,
                    "type": n.type.value,
                    "read": n.read,
                    "created_at": n.created_at.isoformat(),
                    "message": n.describe(),
                }
                for n in notifications
            ],
            "unread": unread,
        }
        click.echo(json.dumps(output, indent=2, ensure_ascii=False))
        return

    if not notifications:
        click.echo("No notifications.")
        return

    click.echo(f"{unread} unread of {len(notifications)}:\n")
    for n in notifications:
        marker = " " if n.read else "*"
        click.echo(f"{marker} {n.id}  {n.describe()}")


@cli.command("read")
@click.argument("notification_id")
def mark_read(notification_id: str):
    """Mark a notification as read."""
    service = get_container().service
    if run_async(service.mark_notification_as_read(notification_id)):
        click.echo(f"Marked {notification_id} as read")
    else:
        click.echo(f"Could not mark {notification_id} as read", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    cli()
