"""Command-line access to the community board.

Lists the board, posts, replies and reacts against a running board server.
"""

import asyncio
import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

import typer
from dotenv import load_dotenv

# Load .env file if it exists
env_path = Path.cwd() / ".env"
if env_path.exists():
    load_dotenv(env_path)

logger = logging.getLogger(__name__)

from hotaru_community.api.base import TransportError  # noqa: E402
from hotaru_community.api.client import EngagementAPIClient  # noqa: E402
from hotaru_community.board.composer import PostComposer, ReplyComposer, encode_image  # noqa: E402
from hotaru_community.board.errors import ValidationError  # noqa: E402
from hotaru_community.board.pipeline import ListView  # noqa: E402
from hotaru_community.board.reactions import ReactionCoordinator  # noqa: E402
from hotaru_community.board.store import PostStore  # noqa: E402
from hotaru_community.board.thread import ThreadView, format_time  # noqa: E402
from hotaru_community.config import ClientConfig  # noqa: E402
from hotaru_community.db.ledger import JsonFileLedgerBackend, ReactionLedger  # noqa: E402
from hotaru_community.models.post import Label, Polarity, SortOrder, TargetType  # noqa: E402

app = typer.Typer(
    name="hotaru-board",
    help="Read and write the firefly-squid community board.",
    no_args_is_help=True,
)


class LabelChoice(str, Enum):
    local = "local"
    other = "other"
    admin = "admin"


LABELS = {
    LabelChoice.local: Label.LOCAL_SIGHTING,
    LabelChoice.other: Label.OTHER,
    LabelChoice.admin: Label.ADMIN,
}


class Board:
    """The board components wired together for one process."""

    def __init__(self, config: ClientConfig):
        self.api = EngagementAPIClient(
            base_url=config.api_url,
            timeout=config.request_timeout,
        )
        self.ledger = ReactionLedger(JsonFileLedgerBackend(config.ledger_path))
        self.store = PostStore(self.api, self.ledger, page_size=config.page_size)
        self.coordinator = ReactionCoordinator(self.api, self.ledger, self.store)
        self.list_view = ListView(self.store, limit=config.page_size)


def _execute(action: Callable[[Board], Awaitable[bool]]) -> None:
    """Build the board from the environment, run one action, map failures to exit 1."""
    try:
        config = ClientConfig.from_env()
        config.validate()
        logger.debug(f"Board server: {config.api_url}, ledger: {config.ledger_path}")

        ok = asyncio.run(action(Board(config)))
    except ValidationError as e:
        for error in e.errors:
            logger.error(f"❌ {error}")
        raise typer.Exit(code=1)
    except TransportError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(code=1)
    except ValueError as e:
        logger.error(f"❌ Configuration invalid: {e}")
        raise typer.Exit(code=1)
    except OSError as e:
        logger.error(f"❌ Could not read or write file: {e}")
        raise typer.Exit(code=1)

    if not ok:
        raise typer.Exit(code=1)


def print_page(board: Board) -> None:
    window = board.list_view.window
    typer.echo(f"Page {window.page}/{window.total_pages} ({window.describe()})")
    for comment in board.list_view.visible():
        mark = f" [{comment.my_reaction.value}]" if comment.my_reaction else ""
        typer.echo(
            f"#{comment.id} {comment.username} {format_time(comment.created_at)} "
            f"[{comment.label.value}] +{comment.good_count}/-{comment.bad_count}{mark}"
        )
        typer.echo(f"    {comment.content}")
        for reply in comment.replies:
            prefix = f"@{reply.reply_to} " if reply.reply_to else ""
            typer.echo(
                f"    ↳ #{reply.id} {reply.username}: {prefix}{reply.content} "
                f"+{reply.good_count}/-{reply.bad_count}"
            )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
):
    """Firefly-squid community board client."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


@app.command("list")
def list_posts(
    label: Optional[LabelChoice] = typer.Option(None, "--label", help="Only posts with this label"),
    search: str = typer.Option("", "--search", "-s", help="Text to look for in names and bodies"),
    sort: SortOrder = typer.Option(SortOrder.NEWEST, "--sort", help="Ordering"),
    page: int = typer.Option(1, "--page", "-p", help="Page number"),
):
    """Show one page of the board."""

    async def action(board: Board) -> bool:
        view = board.list_view
        view.label = LABELS[label] if label else None
        view.search = search
        view.sort = sort
        view.page = page
        ok = await view.load()
        if ok:
            print_page(board)
        else:
            logger.error(f"❌ Could not load the board: {board.store.state.message}")
        return ok

    _execute(action)


@app.command()
def post(
    username: str = typer.Argument(..., help="Display name"),
    content: str = typer.Argument(..., help="Post body"),
    label: LabelChoice = typer.Option(LabelChoice.local, "--label", help="Post label"),
    image: Optional[List[Path]] = typer.Option(None, "--image", help="Image file to attach"),
):
    """Create a post."""

    async def action(board: Board) -> bool:
        composer = PostComposer(board.api, board.store)
        composer.username = username
        composer.content = content
        composer.choose_label(LABELS[label])
        warning = composer.images.add(encode_image(path) for path in image or [])
        if warning:
            logger.warning(f"⚠️  {warning}")
        ok = await composer.submit()
        if ok:
            typer.echo(f"Posted as {username}")
        else:
            logger.error(f"❌ Post failed: {composer.error}")
        return ok

    _execute(action)


@app.command()
def reply(
    post_id: int = typer.Argument(..., help="Post the thread belongs to"),
    username: str = typer.Argument(..., help="Display name"),
    content: str = typer.Argument(..., help="Reply body"),
    to_reply: Optional[int] = typer.Option(None, "--to-reply", help="Answer this reply instead of the post"),
):
    """Reply to a post or to one of its replies."""

    async def action(board: Board) -> bool:
        # Replies are validated against the thread, so the post must be loaded first
        view = board.list_view
        if not await view.load():
            logger.error(f"❌ Could not load the board: {board.store.state.message}")
            return False
        while board.store.find_comment(post_id) is None and view.window.has_next:
            await view.next_page()

        thread = ThreadView(board.store, post_id)
        composer = ReplyComposer(board.api, board.store, thread)
        composer.username = username
        composer.content = content
        if to_reply is not None:
            ok = await composer.submit(TargetType.REPLY, to_reply)
        else:
            ok = await composer.submit(TargetType.POST, post_id)
        if ok:
            typer.echo(f"Replied on post {post_id}")
        else:
            logger.error(f"❌ Reply failed: {composer.error}")
        return ok

    _execute(action)


@app.command()
def react(
    target_type: TargetType = typer.Argument(..., help="post or reply"),
    target_id: int = typer.Argument(..., help="Id of the post or reply"),
    polarity: Polarity = typer.Argument(..., help="good or bad"),
):
    """React good or bad to a post or reply, once per device."""

    async def action(board: Board) -> bool:
        dispatched = await board.coordinator.react(target_id, target_type, polarity)
        if dispatched:
            typer.echo(f"Reacted {polarity.value} on {target_type.value} {target_id}")
        else:
            typer.echo("This device has already reacted to that item")
        return True

    _execute(action)


if __name__ == "__main__":
    app()
