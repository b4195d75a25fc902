"""Calendar tools. Calendar events are rows in the tasks table keyed by due date."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from pydantic import Field

from lumen_assistant.ai.tools.base import (
    Tool,
    ToolArguments,
    ToolContext,
    ToolOutput,
    ToolResult,
    plural,
    with_remainder,
)
from lumen_assistant.ai.tools.work import TIME_PATTERN
from lumen_assistant.core.types import ResultType
from lumen_assistant.log import get_logger
from lumen_assistant.storage.models import to_db_timestamp, utcnow

logger = get_logger(__name__)


class CreateCalendarEventArgs(ToolArguments):
    title: str = Field(min_length=1, description="Event title")
    description: Optional[str] = Field(default=None, description="Event description")
    event_date: date = Field(description="Event date in YYYY-MM-DD format")
    start_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN, description="Start time in HH:MM format")
    end_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN, description="End time in HH:MM format")


class CreateCalendarEventTool(Tool):
    arguments_model = CreateCalendarEventArgs

    @property
    def name(self) -> str:
        return "create_calendar_event"

    @property
    def description(self) -> str:
        return "Create a new calendar event"

    async def execute(self, args: CreateCalendarEventArgs, context: ToolContext) -> ToolOutput:
        event = await context.store.table("tasks").insert(
            {
                "title": args.title,
                "description": args.description or None,
                "due_date": args.event_date.isoformat(),
                "start_time": args.start_time,
                "end_time": args.end_time,
                "status": "Todo",
                "priority": context.defaults.priority,
                "reminder_enabled": True,
                "reminder_hours_before": 1,
                "reminder_days_before": 0,
            }
        )
        logger.info("calendar_event_created", event_id=event["id"])
        at_time = f" at {args.start_time}" if args.start_time else ""
        detail = f" - {args.description}" if args.description else ""
        return ToolOutput(
            f'✅ Calendar event created: "{args.title}" on {event["due_date"]}{at_time}{detail}. What\'s next?',
            ToolResult(ResultType.CALENDAR_EVENT, event),
        )


class GetCalendarEventsArgs(ToolArguments):
    start_date: Optional[date] = Field(default=None, description="Start date in YYYY-MM-DD format")
    end_date: Optional[date] = Field(default=None, description="End date in YYYY-MM-DD format")


class GetCalendarEventsTool(Tool):
    arguments_model = GetCalendarEventsArgs

    @property
    def name(self) -> str:
        return "get_calendar_events"

    @property
    def description(self) -> str:
        return "Get user's calendar events and tasks for a date range"

    async def execute(self, args: GetCalendarEventsArgs, context: ToolContext) -> ToolOutput:
        start = (args.start_date or context.today).isoformat()
        end = (args.end_date or context.today + timedelta(days=context.defaults.calendar_lookahead_days)).isoformat()
        events = await (
            context.store.table("tasks")
            .select()
            .gte("due_date", start)
            .lte("due_date", end)
            .order("due_date")
            .all()
        )
        if not events:
            return ToolOutput(f"You have no events scheduled between {start} and {end}.")

        lines = []
        for e in events:
            at_time = f" at {e['start_time']}" if e.get("start_time") else ""
            lines.append(f"- {e['title']} on {e['due_date']}{at_time} ({e['status']})")
        summary = with_remainder(lines, len(events), context.defaults.list_limit, "")
        return ToolOutput(f"You have {len(events)} {plural(len(events), 'event')} scheduled:\n\n{summary}")


class AddNoteToCalendarArgs(ToolArguments):
    event_title: Optional[str] = Field(default=None, description="Title of the event to update")
    event_date: Optional[date] = Field(default=None, description="Date of the event (YYYY-MM-DD format)")
    note: str = Field(min_length=1, description="Note to add")


class AddNoteToCalendarTool(Tool):
    """Appends a note to an event found by title and/or date, never by id."""

    arguments_model = AddNoteToCalendarArgs

    @property
    def name(self) -> str:
        return "add_note_to_calendar"

    @property
    def description(self) -> str:
        return "Add a note to a calendar event by searching for it by title or date"

    async def execute(self, args: AddNoteToCalendarArgs, context: ToolContext) -> ToolOutput:
        if not args.event_title and not args.event_date:
            return ToolOutput("Which event should I add this note to? Tell me its title or date.")

        query = context.store.table("tasks").select()
        if args.event_title:
            query = query.ilike("title", args.event_title)
        if args.event_date:
            query = query.eq("due_date", args.event_date.isoformat())
        matches = await query.order("created_at", desc=True).limit(context.defaults.event_match_limit).all()

        if not matches:
            target = args.event_title or args.event_date.isoformat()
            return ToolOutput(f'I couldn\'t find any events matching "{target}". Could you be more specific?')

        # Most recently created match wins
        event = matches[0]
        existing = event.get("description")
        description = f"{existing}\n\n{args.note}" if existing else args.note
        await (
            context.store.table("tasks")
            .select()
            .eq("id", event["id"])
            .update({"description": description, "updated_at": to_db_timestamp(utcnow())})
        )
        logger.info("calendar_note_added", event_id=event["id"], candidates=len(matches))
        when = f" ({event['due_date']})" if event.get("due_date") else ""
        return ToolOutput(f'✅ Note added to "{event["title"]}"{when}')


def build_tools() -> list[Tool]:
    return [
        CreateCalendarEventTool(),
        GetCalendarEventsTool(),
        AddNoteToCalendarTool(),
    ]
