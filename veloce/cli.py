#!/usr/bin/env python3
"""
Veloce Command Line Interface

Main entry point for the `veloce` command.

Usage:
    veloce task add "Pay rent" --stars 3
    veloce task complete abc123
    veloce journal load --type gratitude
    veloce braindump process "call mom, pay rent asap"
    veloce timer start "Write report"
    veloce stats velocity
    veloce --version
"""

import argparse
import json
import os
import sys
from datetime import date, datetime


DEFAULT_USER = os.environ.get("VELOCE_USER", "default")


def _print(result):
    """Print a result dict as JSON and turn it into an exit code."""
    print(json.dumps(result, indent=2, default=str))
    return 0 if result.get("success") else 1


def _datetime(value):
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not an ISO date/time: {value}")


def _date(value):
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not an ISO date: {value}")


def _ints(value):
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not a comma-separated list of numbers: {value}")


def _strings(value):
    return [part.strip() for part in value.split(",") if part.strip()]


def _missing(name):
    return _print({"success": False, "error": f"{name} required"})


# ─────────────────────────────────────────────────────────────────────────────
# Command handlers
# ─────────────────────────────────────────────────────────────────────────────


def cmd_task(args):
    """Handle task subcommand."""
    from veloce.tasks import manager, recurrence

    action = args.action

    if action == "add":
        if not args.target:
            return _missing("Title")
        return _print(manager.create_task(
            args.user,
            args.target,
            notes=args.notes,
            category=args.category,
            task_type=args.type,
            star_rating=args.stars,
            estimated_minutes=args.minutes,
            scheduled_time=args.at,
            list_id=args.list_id,
            recurring_type=args.repeat,
            recurring_days=args.days,
            recurring_end_date=args.until,
            enable_app_blocking=args.block_apps,
        ))

    if action == "list":
        return _print(manager.list_tasks(
            args.user,
            filter=args.filter,
            sort=args.sort,
            search=args.search,
            list_id=args.list_id,
            category=args.category,
            limit=args.limit,
        ))

    if action == "stats":
        return _print(manager.get_task_stats(args.user))

    if action == "reorder":
        if not args.target:
            return _missing("Comma-separated task IDs")
        return _print(manager.reorder_tasks(args.user, _strings(args.target)))

    if not args.target:
        return _missing("Task ID")

    if action == "get":
        return _print(manager.get_task(args.target, include_derived=True))
    if action == "update":
        fields = {
            "title": args.title,
            "notes": args.notes,
            "category": args.category,
            "task_type": args.type,
            "star_rating": args.stars,
            "estimated_minutes": args.minutes,
            "list_id": args.list_id,
        }
        # Options left out are not changed
        fields = {name: value for name, value in fields.items() if value is not None}
        return _print(manager.update_task(args.target, **fields))
    if action == "complete":
        return _print(manager.complete_task(args.target))
    if action == "uncomplete":
        return _print(manager.uncomplete_task(args.target))
    if action == "delete":
        return _print(manager.delete_task(args.target))
    if action == "duplicate":
        return _print(manager.duplicate_task(args.target))
    if action == "reschedule":
        if not args.at:
            return _missing("--at")
        return _print(manager.reschedule_task(args.target, args.at))
    if action == "snooze":
        return _print(manager.snooze_task(args.target))
    if action == "next":
        result = manager.get_task(args.target)
        if not result["success"]:
            return _print(result)
        upcoming = recurrence.next_occurrence(result["data"])
        return _print({"success": True, "data": {"task_id": args.target, "next_occurrence": upcoming}})

    return _print({"success": False, "error": f"Unknown task action: {action}"})


def cmd_list(args):
    """Handle list subcommand."""
    from veloce.tasks import manager

    if args.action == "add":
        if not args.target:
            return _missing("List name")
        return _print(manager.create_list(args.user, args.target, icon=args.icon))
    if args.action == "show":
        return _print(manager.list_lists(args.user))
    if args.action == "delete":
        if not args.target:
            return _missing("List ID")
        return _print(manager.delete_list(args.target))

    return _print({"success": False, "error": f"Unknown list action: {args.action}"})


def cmd_journal(args):
    """Handle journal subcommand."""
    from veloce.journal import insights, manager

    action = args.action

    if action == "load":
        return _print(manager.load_entry(args.user, day=args.day, entry_type=args.type))
    if action == "write":
        loaded = manager.load_entry(args.user, day=args.day, entry_type=args.type)
        if not loaded["success"]:
            return _print(loaded)
        return _print(manager.save_entry(
            loaded["data"]["id"], content=args.target, title=args.title, mood=args.mood
        ))
    if action == "gratitude":
        loaded = manager.load_entry(args.user, day=args.day, entry_type="gratitude")
        if not loaded["success"]:
            return _print(loaded)
        return _print(manager.set_gratitude_items(loaded["data"]["id"], _strings(args.target or "")))
    if action == "list":
        return _print(manager.list_entries(
            args.user,
            entry_type=args.type,
            mood=args.mood,
            search=args.search,
            favorites_only=args.favorites,
            limit=args.limit,
        ))
    if action == "prompts":
        return _print(manager.daily_prompts(args.type))
    if action == "streak":
        return _print(insights.gratitude_streak(args.user))
    if action == "mood":
        return _print(insights.mood_trend(args.user))
    if action == "stats":
        return _print(insights.writing_stats(args.user))

    if not args.target:
        return _missing("Entry ID")

    if action == "get":
        return _print(manager.get_entry(args.target))
    if action == "delete":
        return _print(manager.delete_entry(args.target))
    if action == "pin":
        return _print(manager.toggle_pin(args.target))
    if action == "favorite":
        return _print(manager.toggle_favorite(args.target))

    return _print({"success": False, "error": f"Unknown journal action: {action}"})


def cmd_braindump(args):
    """Handle braindump subcommand."""
    from veloce.braindump import session

    action = args.action

    if action == "process":
        if not args.target:
            return _missing("Brain dump text")
        use_llm = False if args.no_llm else None
        return _print(session.process_brain_dump(args.user, args.target, use_llm=use_llm))
    if action == "list":
        return _print(session.list_brain_dumps(args.user, state=args.state, limit=args.limit))

    if not args.target:
        return _missing("ID")

    if action == "get":
        return _print(session.get_brain_dump(args.target))
    if action == "toggle":
        return _print(session.toggle_task_selection(args.target))
    if action == "select-all":
        return _print(session.select_all(args.target))
    if action == "deselect-all":
        return _print(session.deselect_all(args.target))
    if action == "summary":
        return _print(session.summarize_selection(args.target))
    if action == "add":
        return _print(session.add_selected_to_tasks(args.target))
    if action == "delete":
        return _print(session.delete_brain_dump(args.target))

    return _print({"success": False, "error": f"Unknown braindump action: {action}"})


def cmd_focus(args):
    """Handle focus subcommand."""
    from veloce.focus import sessions

    action = args.action

    if action == "start":
        if not args.target:
            return _missing("Session title")
        return _print(sessions.start_session(
            args.user,
            args.target,
            args.minutes * 60,
            is_deep_focus=args.deep,
            enable_blocking=args.block_apps,
            task_id=args.task_id,
            block_list_id=args.list_id,
        ))
    if action == "list":
        return _print(sessions.list_sessions(args.user, completed_only=args.completed, limit=args.limit))
    if action == "stats":
        return _print(sessions.get_statistics(args.user))

    if not args.target:
        return _missing("Session ID")

    if action == "get":
        return _print(sessions.get_session(args.target))
    if action == "complete":
        return _print(sessions.complete_session(args.target))
    if action == "cancel":
        return _print(sessions.cancel_session(args.target))

    return _print({"success": False, "error": f"Unknown focus action: {action}"})


def cmd_timer(args):
    """Handle timer subcommand."""
    from veloce.focus import timer

    action = args.action

    if action == "start":
        if not args.target:
            return _missing("Task title")
        duration = args.minutes * 60 if args.minutes is not None else None
        return _print(timer.start_timer(
            args.user,
            args.target,
            duration=duration,
            task_id=args.task_id,
            enable_app_blocking=args.block_apps,
            is_deep_focus=args.deep,
            block_list_id=args.list_id,
        ))

    handlers = {
        "status": timer.refresh_timer,
        "pause": timer.pause_timer,
        "resume": timer.resume_timer,
        "stop": timer.stop_timer,
        "break": timer.start_break,
        "skip": timer.skip_break,
    }
    handler = handlers.get(action)
    if handler is None:
        return _print({"success": False, "error": f"Unknown timer action: {action}"})

    return _print(handler(args.user))


def cmd_blocklist(args):
    """Handle blocklist subcommand."""
    from veloce.focus import blocklists

    action = args.action

    if action == "add":
        if not args.target:
            return _missing("Block list name")
        return _print(blocklists.create_block_list(
            args.user, args.target, is_allow_list=args.allow_list, apps=args.apps
        ))
    if action == "list":
        return _print(blocklists.list_block_lists(args.user))
    if action == "seed":
        return _print(blocklists.seed_presets(args.user))

    if not args.target:
        return _missing("Block list ID")

    if action == "get":
        return _print(blocklists.get_block_list(args.target))
    if action == "apps":
        if args.apps is None:
            return _missing("--apps")
        return _print(blocklists.update_block_list(args.target, apps=args.apps))
    if action == "default":
        return _print(blocklists.set_default(args.target))
    if action == "delete":
        return _print(blocklists.delete_block_list(args.target))

    return _print({"success": False, "error": f"Unknown blocklist action: {action}"})


def cmd_schedule(args):
    """Handle schedule subcommand."""
    from veloce.focus import schedule

    action = args.action

    if action == "add":
        if not args.target:
            return _missing("Session title")
        return _print(schedule.create_scheduled_session(
            args.user,
            args.target,
            args.minutes * 60,
            start_time=args.at,
            start_hour=args.hour,
            start_minute=args.minute,
            recurring_days=args.days,
            recurring_end_date=args.until,
            is_deep_focus=args.deep,
            block_list_id=args.list_id,
        ))
    if action == "list":
        return _print(schedule.list_scheduled_sessions(args.user, enabled_only=args.enabled_only))
    if action == "due":
        return _print(schedule.due_sessions(args.user))

    if not args.target:
        return _missing("Schedule ID")

    if action == "get":
        return _print(schedule.get_scheduled_session(args.target))
    if action == "enable":
        return _print(schedule.set_enabled(args.target, True))
    if action == "disable":
        return _print(schedule.set_enabled(args.target, False))
    if action == "delete":
        return _print(schedule.delete_scheduled_session(args.target))

    return _print({"success": False, "error": f"Unknown schedule action: {action}"})


def cmd_template(args):
    """Handle template subcommand."""
    from veloce.templates import manager

    action = args.action

    if action == "list":
        return _print(manager.list_templates(
            args.user, category=args.category, search=args.search, sort=args.sort, limit=args.limit
        ))
    if action == "create":
        if not args.target:
            return _missing("Template title")
        if not args.tasks:
            return _missing("--tasks")
        try:
            tasks = json.loads(args.tasks)
        except json.JSONDecodeError as e:
            return _print({"success": False, "error": f"--tasks is not valid JSON: {e}"})
        return _print(manager.create_template(
            args.user,
            args.target,
            tasks,
            description=args.description,
            category=args.category or "other",
            is_public=args.public,
        ))
    if action == "from-tasks":
        if not args.target:
            return _missing("Template title")
        if not args.task_ids:
            return _missing("--task-ids")
        return _print(manager.create_from_tasks(
            args.user,
            args.target,
            args.task_ids,
            description=args.description,
            category=args.category or "other",
            is_public=args.public,
        ))

    if not args.target:
        return _missing("Template ID")

    if action == "get":
        return _print(manager.get_template(args.target))
    if action == "apply":
        return _print(manager.apply_template(args.target, args.user, due_date=args.day))
    if action == "rate":
        if args.rating is None:
            return _missing("--rating")
        return _print(manager.rate_template(args.target, args.user, args.rating, review=args.review))
    if action == "delete":
        return _print(manager.delete_template(args.target, args.user))

    return _print({"success": False, "error": f"Unknown template action: {action}"})


def cmd_stats(args):
    """Handle stats subcommand."""
    from veloce.gamification import engine, velocity

    action = args.action

    if action == "show":
        return _print(engine.get_stats(args.user))
    if action == "velocity":
        return _print(velocity.get_velocity_score(args.user))
    if action == "goals":
        return _print(engine.set_goals(args.user, daily_goal=args.daily, weekly_goal=args.weekly))
    if action == "achievement":
        if not args.target:
            return _missing("Achievement name")
        return _print(engine.achievement_progress(args.user, args.target))
    if action == "acknowledge":
        return _print(engine.acknowledge_achievements(args.user))

    return _print({"success": False, "error": f"Unknown stats action: {action}"})


def cmd_version(args):
    """Print version information."""
    from veloce import __version__

    print(f"veloce {__version__}")
    print(f"Python {sys.version.split()[0]}")


# ─────────────────────────────────────────────────────────────────────────────
# Parser
# ─────────────────────────────────────────────────────────────────────────────


def _feature_parser(subparsers, name, help_text, actions, func):
    feature = subparsers.add_parser(name, help=help_text)
    feature.add_argument("action", choices=actions, help="Action to perform")
    feature.add_argument("target", nargs="?", help="Title, text or ID the action applies to")
    feature.add_argument("--user", default=DEFAULT_USER, help="User ID (default: $VELOCE_USER)")
    feature.set_defaults(func=func)
    return feature


def build_parser():
    parser = argparse.ArgumentParser(
        prog="veloce",
        description="Veloce - ADHD-friendly tasks, journaling and focus",
    )
    parser.add_argument(
        "--version", "-V", action="store_true", help="Show version and exit"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # task
    task = _feature_parser(
        subparsers,
        "task",
        "Create, complete and organize tasks",
        ["add", "list", "get", "update", "complete", "uncomplete", "delete",
         "duplicate", "reschedule", "snooze", "reorder", "stats", "next"],
        cmd_task,
    )
    task.add_argument("--title", help="New title (update)")
    task.add_argument("--notes", help="Notes")
    task.add_argument("--category", help="Category")
    task.add_argument("--type", help="Task type")
    task.add_argument("--stars", type=int, help="Star rating 1-3")
    task.add_argument("--minutes", type=int, help="Estimated minutes")
    task.add_argument("--at", type=_datetime, help="Scheduled time (ISO)")
    task.add_argument("--list-id", help="Task list ID")
    task.add_argument("--repeat", help="Recurring type")
    task.add_argument("--days", type=_ints, help="Recurring weekdays, 0=Sunday..6=Saturday")
    task.add_argument("--until", type=_datetime, help="Recurring end date (ISO)")
    task.add_argument("--block-apps", action="store_true", help="Block apps while working on it")
    task.add_argument("--filter", default="all", help="List filter")
    task.add_argument("--sort", default="manual", help="List sort")
    task.add_argument("--search", help="Search title and notes")
    task.add_argument("--limit", type=int, help="Max results")

    # list
    task_list = _feature_parser(
        subparsers, "list", "Manage task lists", ["add", "show", "delete"], cmd_list
    )
    task_list.add_argument("--icon", help="List icon")

    # journal
    journal = _feature_parser(
        subparsers,
        "journal",
        "Daily journal entries",
        ["load", "write", "gratitude", "get", "list", "delete", "pin", "favorite",
         "prompts", "streak", "mood", "stats"],
        cmd_journal,
    )
    journal.add_argument("--day", type=_date, help="Entry day (ISO, default today)")
    journal.add_argument("--type", help="Entry type")
    journal.add_argument("--title", help="Entry title")
    journal.add_argument("--mood", help="Mood")
    journal.add_argument("--search", help="Search content")
    journal.add_argument("--favorites", action="store_true", help="Only favorites")
    journal.add_argument("--limit", type=int, default=50, help="Max results")

    # braindump
    braindump = _feature_parser(
        subparsers,
        "braindump",
        "Turn free text into tasks",
        ["process", "get", "list", "toggle", "select-all", "deselect-all", "summary", "add", "delete"],
        cmd_braindump,
    )
    braindump.add_argument("--no-llm", action="store_true", help="Use rule-based extraction only")
    braindump.add_argument("--state", help="Filter by state")
    braindump.add_argument("--limit", type=int, default=20, help="Max results")

    # focus
    focus = _feature_parser(
        subparsers,
        "focus",
        "Focus sessions",
        ["start", "get", "complete", "cancel", "list", "stats"],
        cmd_focus,
    )
    focus.add_argument("--minutes", type=int, default=25, help="Session length in minutes")
    focus.add_argument("--deep", action="store_true", help="Deep Focus (cannot end early)")
    focus.add_argument("--block-apps", action="store_true", help="Enable app blocking")
    focus.add_argument("--task-id", help="Linked task ID")
    focus.add_argument("--list-id", help="Block list ID")
    focus.add_argument("--completed", action="store_true", help="Only completed sessions")
    focus.add_argument("--limit", type=int, default=50, help="Max results")

    # timer
    timer = _feature_parser(
        subparsers,
        "timer",
        "Pomodoro timer",
        ["start", "status", "pause", "resume", "stop", "break", "skip"],
        cmd_timer,
    )
    timer.add_argument("--minutes", type=int, help="Focus length in minutes")
    timer.add_argument("--deep", action="store_true", help="Deep Focus (cannot stop early)")
    timer.add_argument("--block-apps", action="store_true", help="Enable app blocking")
    timer.add_argument("--task-id", help="Linked task ID")
    timer.add_argument("--list-id", help="Block list ID")

    # blocklist
    blocklist = _feature_parser(
        subparsers,
        "blocklist",
        "Apps to block during focus",
        ["add", "get", "list", "apps", "default", "delete", "seed"],
        cmd_blocklist,
    )
    blocklist.add_argument("--apps", type=_strings, help="Comma-separated app identifiers")
    blocklist.add_argument("--allow-list", action="store_true", help="Block everything except --apps")

    # schedule
    sched = _feature_parser(
        subparsers,
        "schedule",
        "Scheduled focus sessions",
        ["add", "get", "list", "enable", "disable", "delete", "due"],
        cmd_schedule,
    )
    sched.add_argument("--minutes", type=int, default=25, help="Session length in minutes")
    sched.add_argument("--at", type=_datetime, help="One-off start time (ISO)")
    sched.add_argument("--hour", type=int, help="Recurring start hour")
    sched.add_argument("--minute", type=int, default=0, help="Recurring start minute")
    sched.add_argument("--days", type=_ints, help="Recurring weekdays, 0=Sunday..6=Saturday")
    sched.add_argument("--until", type=_datetime, help="Recurring end date (ISO)")
    sched.add_argument("--deep", action="store_true", help="Deep Focus")
    sched.add_argument("--list-id", help="Block list ID")
    sched.add_argument("--enabled-only", action="store_true", help="Only enabled schedules")

    # template
    template = _feature_parser(
        subparsers,
        "template",
        "Reusable task templates",
        ["create", "from-tasks", "get", "list", "apply", "rate", "delete"],
        cmd_template,
    )
    template.add_argument("--tasks", help='JSON task list, e.g. \'[{"title": "Pack"}]\'')
    template.add_argument("--task-ids", type=_strings, help="Comma-separated task IDs")
    template.add_argument("--description", help="Description")
    template.add_argument("--category", help="Category")
    template.add_argument("--public", action="store_true", help="Share with everyone")
    template.add_argument("--search", help="Search title and description")
    template.add_argument("--sort", default="popular", help="popular, recent or rating")
    template.add_argument("--limit", type=int, default=50, help="Max results")
    template.add_argument("--day", type=_date, help="Due date when applying (ISO)")
    template.add_argument("--rating", type=int, help="Rating 1-5")
    template.add_argument("--review", help="Review text")

    # stats
    stats = _feature_parser(
        subparsers,
        "stats",
        "Points, streaks, achievements and velocity",
        ["show", "velocity", "goals", "achievement", "acknowledge"],
        cmd_stats,
    )
    stats.add_argument("--daily", type=int, help="Daily task goal")
    stats.add_argument("--weekly", type=int, help="Weekly task goal")

    return parser


def main(argv=None):
    """Main CLI entry point."""
    from veloce.logging_config import setup_logging, user_context

    parser = build_parser()
    args = parser.parse_args(argv)

    # Handle --version at top level
    if args.version:
        cmd_version(args)
        return 0

    # If no command given, show help
    if not args.command:
        parser.print_help()
        return 0

    setup_logging()

    with user_context(args.user):
        result = args.func(args)

    # Commands may return an exit code
    if isinstance(result, int) and result != 0:
        sys.exit(result)
    return 0


if __name__ == "__main__":
    main()
