"""
MoffittBoard — Telegram Bot.

Telegram is the only user interface. Members log in with their campus
email, check in and out of the library, and read the leaderboard.

The bot renders only what the store has confirmed: every reply is built
from the snapshot the tracker service returned after a successful write.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine

from telegram import KeyboardButton, ReplyKeyboardMarkup, ReplyKeyboardRemove, Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from moffittboard.config import settings
from moffittboard.core.checkin import InvalidTransition
from moffittboard.core.geofence import GeoPoint
from moffittboard.core.ranking import rank_label, top
from moffittboard.core.scheduler import run_reset_tick
from moffittboard.core.tracker_service import EmailInUse, InvalidEmail, OutsideGeofence
from moffittboard.ports.record_store import ConcurrentUpdate, StoreFailure

if TYPE_CHECKING:
    from telegram.ext import Job

    from moffittboard.core.tracker_service import TrackerService
    from moffittboard.data.models import UserRecord
    from moffittboard.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)

_STORE_DOWN = "Couldn't reach the leaderboard right now. Please try again in a moment."
_RACE = "Your record changed while I was updating it. Please try again."


# ---------------------------------------------------------------------------
# Login gate
# ---------------------------------------------------------------------------


def login_required(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that resolves the caller's board record before the handler.

    Any pending daily reset is applied first, so the record handed to the
    handler never carries the previous day's minutes. Callers without a
    linked record are asked to /login; the wrapped handler receives the
    record as a third argument.
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        tracker: TrackerService = context.bot_data["tracker"]
        notifier: NotificationPort = context.bot_data["notifier"]
        tg_user = update.effective_user
        if tg_user is None:
            return

        await run_reset_tick(tracker, notifier)

        try:
            user = tracker.current_user(tg_user.id)
        except StoreFailure as exc:
            logger.error("Login lookup failed for %s: %s", tg_user.id, exc)
            await update.message.reply_text(_STORE_DOWN)
            return

        if user is None:
            await update.message.reply_text(
                f"Please log in first: /login you@{settings.ALLOWED_EMAIL_DOMAIN}"
            )
            return
        return await func(update, context, user)

    return wrapper


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def _format_leaderboard(users: list[UserRecord], viewer_id: int | None, limit: int) -> str:
    """Render the top of the board; users must already be sorted."""
    if not users:
        return "Nobody is on the board yet. Be the first: /checkin"

    lines = ["Current rankings:\n"]
    for position, user in top(users, limit):
        marker = "  <- you" if user.id == viewer_id else ""
        status = " (in)" if user.is_checked_in else ""
        lines.append(
            f"{rank_label(position)}  {user.label}{status} — {user.time_spent} min{marker}"
        )
    return "\n".join(lines)


def _format_rank(position: int, total: int, limit: int) -> str:
    text = f"Your current rank: {rank_label(position)}"
    if position > limit:
        text += f" ({position} out of {total})"
    return text


def _format_status(user: UserRecord, live_minutes: int) -> str:
    lines = [f"Welcome, {user.label}!", f"Time today: {user.time_spent} min"]
    if user.is_checked_in:
        session = live_minutes - user.time_spent
        lines.append(f"Checked in — current session: {session} min (credited at /checkout)")
    else:
        lines.append("Checked out. Use /checkin when you arrive.")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — welcome message."""
    await update.message.reply_text(
        "Welcome to *MoffittBoard*!\n\n"
        "Track your study time at the library and climb the leaderboard:\n"
        f"• /login you@{settings.ALLOWED_EMAIL_DOMAIN} to join\n"
        "• /checkin when you arrive, /checkout when you leave\n"
        "• /leaderboard to see who's ahead\n\n"
        "Type /help for the full command list.",
        parse_mode="Markdown",
    )


async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list available commands."""
    await update.message.reply_text(
        "*Available commands:*\n"
        "/login <email> — Join or log back in\n"
        "/checkin — Start a study session\n"
        "/checkout — End your session and bank the minutes\n"
        "/me — Your minutes and session status\n"
        "/rank — Your position on the board\n"
        "/leaderboard — Top of the board\n"
        "/setname <name> — Change the name others see (empty to clear)\n"
        "/help — Show this message",
        parse_mode="Markdown",
    )


async def cmd_login(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /login <email> — link this Telegram account to a board record."""
    tracker: TrackerService = context.bot_data["tracker"]

    args = context.args
    if not args:
        await update.message.reply_text(
            f"Usage: /login you@{settings.ALLOWED_EMAIL_DOMAIN}"
        )
        return

    try:
        user = tracker.login(args[0], update.effective_user.id)
    except InvalidEmail:
        await update.message.reply_text(
            f"Only @{settings.ALLOWED_EMAIL_DOMAIN} addresses can join the board."
        )
        return
    except EmailInUse:
        await update.message.reply_text(
            "That email is already linked to another Telegram account."
        )
        return
    except StoreFailure as exc:
        logger.error("/login store failure: %s", exc)
        await update.message.reply_text(_STORE_DOWN)
        return

    await update.message.reply_text(f"Welcome, {user.label}! Use /checkin when you arrive.")


@login_required
async def cmd_checkin(
    update: Update, context: ContextTypes.DEFAULT_TYPE, user: UserRecord,
) -> None:
    """Handle /checkin — open a session, or ask for a location when fenced."""
    if settings.GEOFENCE_ENABLED:
        keyboard = [[KeyboardButton("Share location to check in", request_location=True)]]
        await update.message.reply_text(
            "Check-ins must come from the library. Please share your location.",
            reply_markup=ReplyKeyboardMarkup(keyboard, one_time_keyboard=True, resize_keyboard=True),
        )
        return

    await _do_checkin(update, context, user, location=None)


@login_required
async def handle_location(
    update: Update, context: ContextTypes.DEFAULT_TYPE, user: UserRecord,
) -> None:
    """Handle a shared location — check in if it is inside the geofence."""
    loc = update.message.location
    await _do_checkin(update, context, user, location=GeoPoint(loc.latitude, loc.longitude))


async def _do_checkin(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    user: UserRecord,
    location: GeoPoint | None,
) -> None:
    tracker: TrackerService = context.bot_data["tracker"]
    try:
        tracker.check_in(user.id, location=location)
    except InvalidTransition:
        await update.message.reply_text(
            "You're already checked in. Use /checkout when you leave.",
            reply_markup=ReplyKeyboardRemove(),
        )
        return
    except OutsideGeofence as exc:
        await update.message.reply_text(str(exc), reply_markup=ReplyKeyboardRemove())
        return
    except ConcurrentUpdate:
        await update.message.reply_text(_RACE, reply_markup=ReplyKeyboardRemove())
        return
    except StoreFailure as exc:
        logger.error("/checkin store failure: %s", exc)
        await update.message.reply_text(_STORE_DOWN, reply_markup=ReplyKeyboardRemove())
        return

    await update.message.reply_text(
        "Checked in. Happy studying!", reply_markup=ReplyKeyboardRemove(),
    )


@login_required
async def cmd_checkout(
    update: Update, context: ContextTypes.DEFAULT_TYPE, user: UserRecord,
) -> None:
    """Handle /checkout — close the session and bank its minutes."""
    tracker: TrackerService = context.bot_data["tracker"]
    try:
        updated = tracker.check_out(user.id)
    except InvalidTransition:
        await update.message.reply_text("You're not checked in. Use /checkin first.")
        return
    except ConcurrentUpdate:
        await update.message.reply_text(_RACE)
        return
    except StoreFailure as exc:
        logger.error("/checkout store failure: %s", exc)
        await update.message.reply_text(_STORE_DOWN)
        return

    credited = updated.time_spent - user.time_spent
    await update.message.reply_text(
        f"Checked out. +{credited} min — you're at {updated.time_spent} min today."
    )


@login_required
async def cmd_me(
    update: Update, context: ContextTypes.DEFAULT_TYPE, user: UserRecord,
) -> None:
    """Handle /me — show committed minutes and the open session."""
    tracker: TrackerService = context.bot_data["tracker"]
    await update.message.reply_text(_format_status(user, tracker.live_minutes(user)))


@login_required
async def cmd_rank(
    update: Update, context: ContextTypes.DEFAULT_TYPE, user: UserRecord,
) -> None:
    """Handle /rank — show the caller's position."""
    tracker: TrackerService = context.bot_data["tracker"]
    try:
        position, total = tracker.rank_of(user.id)
    except StoreFailure as exc:
        logger.error("/rank store failure: %s", exc)
        await update.message.reply_text(_STORE_DOWN)
        return

    await update.message.reply_text(
        _format_rank(position, total, settings.LEADERBOARD_SIZE)
    )


@login_required
async def cmd_leaderboard(
    update: Update, context: ContextTypes.DEFAULT_TYPE, user: UserRecord,
) -> None:
    """Handle /leaderboard — show the top of the board."""
    tracker: TrackerService = context.bot_data["tracker"]
    try:
        users = tracker.leaderboard()
    except StoreFailure as exc:
        logger.error("/leaderboard store failure: %s", exc)
        await update.message.reply_text(_STORE_DOWN)
        return

    await update.message.reply_text(
        _format_leaderboard(users, user.id, settings.LEADERBOARD_SIZE)
    )


@login_required
async def cmd_setname(
    update: Update, context: ContextTypes.DEFAULT_TYPE, user: UserRecord,
) -> None:
    """Handle /setname <name> — change (or clear) the display name."""
    tracker: TrackerService = context.bot_data["tracker"]
    raw = " ".join(context.args or [])

    try:
        updated = tracker.set_display_name(user.id, raw)
    except ValueError as exc:
        await update.message.reply_text(f"Couldn't set that name: {exc}")
        return
    except StoreFailure as exc:
        logger.error("/setname store failure: %s", exc)
        await update.message.reply_text(_STORE_DOWN)
        return

    if updated.display_name is None:
        await update.message.reply_text(f"Display name cleared. You'll show up as {updated.label}.")
    else:
        await update.message.reply_text(f"You'll show up as {updated.label}.")


# ---------------------------------------------------------------------------
# Application wiring
# ---------------------------------------------------------------------------


def build_app(
    tracker: TrackerService | None = None,
    notifier: NotificationPort | None = None,
) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        tracker: Tracker service. Defaults to one built from settings.
        notifier: Notification port implementation. Defaults to TelegramNotifier
                  (created from the bot instance after app is built).
    """
    app = (
        ApplicationBuilder()
        .token(settings.TELEGRAM_BOT_TOKEN)
        .post_shutdown(_cancel_reset_job)
        .build()
    )

    # Wire default adapters if not provided
    if tracker is None:
        from moffittboard.adapters.tracker_factory import create_tracker_service
        tracker = create_tracker_service()

    if notifier is None:
        from moffittboard.adapters.telegram_notifier import TelegramNotifier
        notifier = TelegramNotifier(app.bot)

    # Store ports in bot_data for handler access
    app.bot_data["tracker"] = tracker
    app.bot_data["notifier"] = notifier

    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("login", cmd_login))
    app.add_handler(CommandHandler("checkin", cmd_checkin))
    app.add_handler(CommandHandler("checkout", cmd_checkout))
    app.add_handler(CommandHandler("me", cmd_me))
    app.add_handler(CommandHandler("rank", cmd_rank))
    app.add_handler(CommandHandler("leaderboard", cmd_leaderboard))
    app.add_handler(CommandHandler("setname", cmd_setname))
    app.add_handler(MessageHandler(filters.LOCATION, handle_location))

    _setup_reset_job(app, tracker, notifier)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def _setup_reset_job(
    app: Application,
    tracker: TrackerService,
    notifier: NotificationPort,
) -> Job:
    """Register the periodic reset check; its Job is the one cancel handle."""

    async def _reset_job_callback(context: ContextTypes.DEFAULT_TYPE) -> None:
        await run_reset_tick(tracker, notifier)

    job = app.job_queue.run_repeating(
        _reset_job_callback,
        interval=settings.RESET_CHECK_INTERVAL_SECONDS,
        first=0,
        name="daily_reset",
    )
    app.bot_data["reset_job"] = job

    logger.info(
        "Reset check every %ds, boundary %02d:00 %s",
        settings.RESET_CHECK_INTERVAL_SECONDS,
        settings.RESET_HOUR,
        settings.RESET_TIMEZONE,
    )
    return job


async def _cancel_reset_job(app: Application) -> None:
    """post_shutdown hook: stop the reset job so nothing runs after teardown."""
    job = app.bot_data.pop("reset_job", None)
    if job is not None:
        job.schedule_removal()
        logger.info("Reset job cancelled")


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting MoffittBoard bot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
