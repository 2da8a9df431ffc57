"""
NearNeeds CLI entrypoint.

This CLI is intended for quick use and debugging without the web UI.
It delegates all board logic to `nearneeds.board.controller.BoardController`.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import sys
from typing import Any, Awaitable, Callable, TypeVar

from pydantic import ValidationError

from nearneeds.board.controller import BoardController, build_controller
from nearneeds.board.publish import PublishOutcome
from nearneeds.config.settings import get_settings
from nearneeds.core.geo import haversine_km
from nearneeds.core.logging import configure_logging
from nearneeds.domain.models import Coordinate, Credentials

T = TypeVar("T")


class ConsoleNotifier:
    """Prints alerts to stderr and asks confirmations on stdin."""

    def __init__(self, *, assume_yes: bool = False):
        self._assume_yes = assume_yes

    def alert(self, message: str) -> None:
        print(message, file=sys.stderr)

    def confirm(self, message: str) -> bool:
        if self._assume_yes:
            return True
        answer = input(f"{message} [y/N] ")
        return answer.strip().lower() in {"y", "yes"}


def prompt_credentials() -> Credentials | None:
    """Blocking terminal prompt; an empty email cancels."""
    email = input("Email: ").strip()
    if not email:
        return None
    password = getpass.getpass("Password: ")
    return Credentials(email=email, password=password)


def _run_with_controller(
    args: argparse.Namespace,
    body: Callable[[BoardController], Awaitable[T]],
) -> T:
    settings = get_settings()
    notifier = ConsoleNotifier(assume_yes=bool(getattr(args, "yes", False)))

    async def runner() -> T:
        controller = build_controller(settings, notifier)
        try:
            return await body(controller)
        finally:
            await controller.aclose()

    return asyncio.run(runner())


def _print_board(controller: BoardController, *, as_json: bool) -> None:
    snapshot = controller.snapshot()
    if as_json:
        print(json.dumps(snapshot.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return

    if snapshot.location is None:
        print(f"Location unknown; showing all {snapshot.total_posts} posts.")
    else:
        loc = snapshot.location
        print(
            f"Within {snapshot.radius_km} km of ({loc.lat:.4f}, {loc.lng:.4f}): "
            f"{len(snapshot.posts)} of {snapshot.total_posts} posts."
        )
    for post in snapshot.posts:
        mine = "  [yours]" if post.can_delete else ""
        print(f"#{post.id:<6} {post.created_at_display}  {post.text}{mine}")


def _cmd_feed(args: argparse.Namespace) -> int:
    """Handle the `feed` subcommand."""

    async def body(controller: BoardController) -> int:
        if args.radius_km is not None:
            controller.set_radius(int(args.radius_km))
        await controller.start(watch=False)
        _print_board(controller, as_json=bool(args.json))
        if controller.feed.last_error:
            print(f"Feed could not be loaded: {controller.feed.last_error}", file=sys.stderr)
            return 1
        return 0

    return _run_with_controller(args, body)


def _cmd_post(args: argparse.Namespace) -> int:
    async def body(controller: BoardController) -> int:
        await controller.session.start()
        outcome = await controller.publish(str(args.text))
        if outcome is PublishOutcome.PUBLISHED:
            print("Published.")
            return 0
        if outcome is PublishOutcome.SKIPPED:
            min_len = get_settings().board.min_text_length
            print(f"Nothing published: text must be at least {min_len} characters.", file=sys.stderr)
        return 1

    return _run_with_controller(args, body)


def _cmd_delete(args: argparse.Namespace) -> int:
    async def body(controller: BoardController) -> int:
        await controller.start(watch=False)
        post_id = int(args.post_id)
        post = next((p for p in controller.feed.posts if p.id == post_id), None)
        if post is None or not controller.session.can_delete(post):
            print(f"Post #{post_id} is not one of your posts.", file=sys.stderr)
            return 1
        return 0 if await controller.delete(post_id) else 1

    return _run_with_controller(args, body)


def _cmd_sign_in(args: argparse.Namespace) -> int:
    async def body(controller: BoardController) -> int:
        await controller.session.start()
        if not await controller.sign_in(prompt_credentials):
            return 1
        session = controller.state.session
        print(f"Signed in as {session.email or session.user_id}." if session else "Signed in.")
        return 0

    return _run_with_controller(args, body)


def _cmd_sign_out(args: argparse.Namespace) -> int:
    async def body(controller: BoardController) -> int:
        await controller.session.start()
        await controller.sign_out()
        print("Signed out.")
        return 0

    return _run_with_controller(args, body)


def _cmd_distance(args: argparse.Namespace) -> int:
    try:
        a = Coordinate(lat=float(args.lat1), lng=float(args.lng1))
        b = Coordinate(lat=float(args.lat2), lng=float(args.lng2))
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        print(
            f"Invalid coordinate ({fields}): latitude must be within [-90, 90], longitude within [-180, 180].",
            file=sys.stderr,
        )
        return 2
    print(f"{haversine_km(a, b):.2f} km")
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("nearneeds.api.app:app", host=str(args.host), port=int(args.port), log_config=None)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the NearNeeds CLI."""
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="nearneeds")
    sub = parser.add_subparsers(dest="command", required=True)

    feed = sub.add_parser("feed", help="Print the posts within a radius of the current location.")
    feed.add_argument(
        "--radius-km",
        type=int,
        default=None,
        choices=settings.board.radius_options_km,
        help=f"Default: {settings.board.default_radius_km}",
    )
    feed.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    feed.set_defaults(func=_cmd_feed)

    post = sub.add_parser("post", help="Publish a need at the current location.")
    post.add_argument("text")
    post.set_defaults(func=_cmd_post)

    delete = sub.add_parser("delete", help="Delete one of your posts.")
    delete.add_argument("post_id", type=int)
    delete.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    delete.set_defaults(func=_cmd_delete)

    sign_in = sub.add_parser("sign-in", help="Sign in with email + password (prompted).")
    sign_in.set_defaults(func=_cmd_sign_in)

    sign_out = sub.add_parser("sign-out", help="Sign out and forget the stored session.")
    sign_out.set_defaults(func=_cmd_sign_out)

    dist = sub.add_parser("distance", help="Great-circle distance between two points, in km.")
    dist.add_argument("lat1", type=float)
    dist.add_argument("lng1", type=float)
    dist.add_argument("lat2", type=float)
    dist.add_argument("lng2", type=float)
    dist.set_defaults(func=_cmd_distance)

    serve = sub.add_parser("serve", help="Run the web board.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=_cmd_serve)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m nearneeds.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
