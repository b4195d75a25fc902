"""Work-mode tools: tasks, notes, projects, profiles, timesheets and files."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, Literal, Optional

from pydantic import ConfigDict, Field

from lumen_assistant.ai.tools.base import (
    Tool,
    ToolArguments,
    ToolContext,
    ToolOutput,
    ToolResult,
    plural,
    with_remainder,
)
from lumen_assistant.core.types import ResultType
from lumen_assistant.log import get_logger

logger = get_logger(__name__)

TIME_PATTERN = r"^\d{1,2}:\d{2}$"


def format_task_line(task: dict[str, Any]) -> str:
    due = f", due: {task['due_date']}" if task.get("due_date") else ""
    return f"- {task['title']} ({task['status']}, {task['priority']}{due})"


def format_file_line(row: dict[str, Any]) -> str:
    tags = row.get("tags")
    tag_text = f" - Tags: {', '.join(str(t) for t in tags)}" if tags else ""
    return f"- {row['file_name']} ({row.get('file_type') or 'unknown'}){tag_text}"


# -- Tasks -------------------------------------------------------------------


class GetTasksArgs(ToolArguments):
    status: Optional[Literal["Todo", "In Progress", "Done", "All"]] = Field(
        default=None, description="Filter by status"
    )
    priority: Optional[Literal["Low", "Medium", "High", "Urgent", "All"]] = Field(
        default=None, description="Filter by priority"
    )
    count_only: bool = Field(default=False, description="If true, return only count")


class GetTasksTool(Tool):
    arguments_model = GetTasksArgs

    @property
    def name(self) -> str:
        return "get_tasks"

    @property
    def description(self) -> str:
        return "Get user's tasks - count them, list them, filter by status or priority"

    async def execute(self, args: GetTasksArgs, context: ToolContext) -> ToolOutput:
        query = context.store.table("tasks").select()
        if args.status and args.status != "All":
            query = query.eq("status", args.status)
        if args.priority and args.priority != "All":
            query = query.eq("priority", args.priority)

        if args.count_only:
            count = await query.count()
            qualifiers = ""
            if args.status and args.status != "All":
                qualifiers += f' with status "{args.status}"'
            if args.priority and args.priority != "All":
                qualifiers += f' with priority "{args.priority}"'
            return ToolOutput(f"You have {count} {plural(count, 'task')}{qualifiers}.")

        tasks = await query.order("created_at", desc=True).all()
        summary = with_remainder(
            [format_task_line(t) for t in tasks],
            total=len(tasks),
            limit=context.defaults.list_limit,
            empty="No tasks found.",
        )
        return ToolOutput(f"You have {len(tasks)} {plural(len(tasks), 'task')}:\n\n{summary}")


class CreateTaskArgs(ToolArguments):
    title: str = Field(min_length=1, description="Task title")
    description: Optional[str] = Field(default=None, description="Task description")
    due_date: Optional[date] = Field(default=None, description="Due date in YYYY-MM-DD format")
    priority: Optional[Literal["Low", "Medium", "High", "Urgent"]] = Field(
        default=None, description="Task priority"
    )
    reminder_minutes: Optional[float] = Field(
        default=None, ge=0, description="Reminder before due date in minutes"
    )


class CreateTaskTool(Tool):
    arguments_model = CreateTaskArgs

    @property
    def name(self) -> str:
        return "create_task"

    @property
    def description(self) -> str:
        return "Create a new task. Missing priority and due date are filled with defaults."

    async def execute(self, args: CreateTaskArgs, context: ToolContext) -> ToolOutput:
        defaults = context.defaults
        due_date = args.due_date or (context.today if defaults.due_date_today else None)
        if args.reminder_minutes:
            reminder_enabled = True
            reminder_hours = int(args.reminder_minutes // 60)
        else:
            reminder_enabled = defaults.reminder_enabled
            reminder_hours = 0

        task = await context.store.table("tasks").insert(
            {
                "title": args.title,
                "description": args.description or None,
                "due_date": due_date.isoformat() if due_date else None,
                "priority": args.priority or defaults.priority,
                "status": "Todo",
                "reminder_enabled": reminder_enabled,
                "reminder_hours_before": reminder_hours,
                "reminder_days_before": 0,
            }
        )
        logger.info("task_created", task_id=task["id"])
        due_text = f" (Due: {task['due_date']})" if task.get("due_date") else ""
        return ToolOutput(
            f'✅ Task created: "{args.title}"{due_text}. What else can I help you with?',
            ToolResult(ResultType.TASK, task),
        )


# -- Notes -------------------------------------------------------------------


class GetNotesArgs(ToolArguments):
    search: Optional[str] = Field(default=None, description="Search in note titles and content")


class GetNotesTool(Tool):
    arguments_model = GetNotesArgs

    @property
    def name(self) -> str:
        return "get_notes"

    @property
    def description(self) -> str:
        return "Get user's notes - search by title or list all"

    async def execute(self, args: GetNotesArgs, context: ToolContext) -> ToolOutput:
        query = context.store.table("notes").select()
        if args.search:
            query = query.ilike_any(("title", "content"), args.search)
        notes = await query.order("updated_at", desc=True).limit(context.defaults.note_search_limit).all()

        lines = []
        for note in notes:
            content = note.get("content") or ""
            preview = f" - {content[:50]}{'...' if len(content) > 50 else ''}" if content else ""
            lines.append(f"- {note['title']}{preview}")
        summary = "\n".join(lines) or "No notes found."
        return ToolOutput(f"Found {len(notes)} {plural(len(notes), 'note')}:\n\n{summary}")


class CreateNoteArgs(ToolArguments):
    title: str = Field(min_length=1, description="Note title")
    content: str = Field(description="Note content")
    category: Optional[str] = Field(default=None, description="Note category")


class CreateNoteTool(Tool):
    arguments_model = CreateNoteArgs

    @property
    def name(self) -> str:
        return "create_note"

    @property
    def description(self) -> str:
        return "Create a new note"

    async def execute(self, args: CreateNoteArgs, context: ToolContext) -> ToolOutput:
        note = await context.store.table("notes").insert(
            {
                "title": args.title,
                "content": args.content,
                "category": args.category or context.defaults.note_category,
            }
        )
        logger.info("note_created", note_id=note["id"])
        return ToolOutput(f'✅ Note created: "{args.title}". Anything else?', ToolResult(ResultType.NOTE, note))


# -- Projects ----------------------------------------------------------------


class GetProjectsArgs(ToolArguments):
    status: Optional[Literal["Active", "Completed", "On Hold", "All"]] = Field(
        default=None, description="Filter by status"
    )


class GetProjectsTool(Tool):
    arguments_model = GetProjectsArgs

    @property
    def name(self) -> str:
        return "get_projects"

    @property
    def description(self) -> str:
        return "Get user's projects with their status and details"

    async def execute(self, args: GetProjectsArgs, context: ToolContext) -> ToolOutput:
        query = context.store.table("projects").select()
        if args.status and args.status != "All":
            query = query.eq("status", args.status)
        projects = await query.order("created_at", desc=True).all()

        lines = [
            f"- {p['name']} ({p['status']}{', started: ' + p['start_date'] if p.get('start_date') else ''})"
            for p in projects
        ]
        summary = with_remainder(lines, len(projects), context.defaults.list_limit, "No projects found.")
        return ToolOutput(f"You have {len(projects)} {plural(len(projects), 'project')}:\n\n{summary}")


class CreateProjectArgs(ToolArguments):
    name: str = Field(min_length=1, description="Project name")
    description: Optional[str] = Field(default=None, description="Project description")
    start_date: Optional[date] = Field(default=None, description="Start date in YYYY-MM-DD format")
    end_date: Optional[date] = Field(default=None, description="End date in YYYY-MM-DD format")


class CreateProjectTool(Tool):
    arguments_model = CreateProjectArgs

    @property
    def name(self) -> str:
        return "create_project"

    @property
    def description(self) -> str:
        return "Create a new project"

    async def execute(self, args: CreateProjectArgs, context: ToolContext) -> ToolOutput:
        project = await context.store.table("projects").insert(
            {
                "name": args.name,
                "description": args.description or None,
                "start_date": args.start_date.isoformat() if args.start_date else None,
                "end_date": args.end_date.isoformat() if args.end_date else None,
                "status": "Active",
            }
        )
        logger.info("project_created", project_id=project["id"])
        return ToolOutput(
            f'✅ Project created: "{args.name}". Ready to add tasks to it?',
            ToolResult(ResultType.PROJECT, project),
        )


# -- Profiles ----------------------------------------------------------------


class GetUserProfileTool(Tool):
    @property
    def name(self) -> str:
        return "get_user_profile"

    @property
    def description(self) -> str:
        return "Get user's profile information (name, department, status, etc.)"

    async def execute(self, args: ToolArguments, context: ToolContext) -> ToolOutput:
        profile = await context.store.table("users").select().first()
        if profile is None:
            return ToolOutput("I couldn't find a profile for your account yet.")
        name = " ".join(p for p in (profile.get("first_name"), profile.get("last_name")) if p)
        return ToolOutput(
            "Here's your profile:\n"
            f"Name: {name or 'Not set'}\n"
            f"Email: {profile.get('email') or 'Not set'}\n"
            f"Department: {profile.get('department') or 'Not set'}\n"
            f"Status: {profile.get('status') or 'Not set'}"
        )


class GetWorkProfileTool(Tool):
    @property
    def name(self) -> str:
        return "get_work_profile"

    @property
    def description(self) -> str:
        return "Get work profile information (company, job title, department)"

    async def execute(self, args: ToolArguments, context: ToolContext) -> ToolOutput:
        profile = await context.store.table("work_profiles").select().first()
        if profile is None:
            return ToolOutput("You don't have a work profile set up yet. Would you like to create one?")
        return ToolOutput(
            "💼 Work Profile:\n"
            f"- Company: {profile.get('company_name') or 'Not set'}\n"
            f"- Job Title: {profile.get('job_title') or 'Not set'}\n"
            f"- Department: {profile.get('department') or 'Not set'}"
        )


# -- Timesheets --------------------------------------------------------------


class GetTimesheetsArgs(ToolArguments):
    start_date: Optional[date] = Field(default=None, description="Start date in YYYY-MM-DD format")
    end_date: Optional[date] = Field(default=None, description="End date in YYYY-MM-DD format")


class GetTimesheetsTool(Tool):
    arguments_model = GetTimesheetsArgs

    @property
    def name(self) -> str:
        return "get_timesheets"

    @property
    def description(self) -> str:
        return "Get user's timesheet entries to analyze work hours and check attendance"

    async def execute(self, args: GetTimesheetsArgs, context: ToolContext) -> ToolOutput:
        start = args.start_date or context.today - timedelta(days=context.defaults.timesheet_lookback_days)
        end = args.end_date or context.today
        rows = await (
            context.store.table("timesheets")
            .select()
            .gte("date", start.isoformat())
            .lte("date", end.isoformat())
            .order("date", desc=True)
            .all()
        )
        total_hours = sum(float(r.get("hours") or 0) for r in rows)
        return ToolOutput(
            f"Found {len(rows)} timesheet {plural(len(rows), 'entry', 'entries')} "
            f"with {total_hours:.2f} total hours."
        )


class CheckLateStatusArgs(ToolArguments):
    model_config = ConfigDict(populate_by_name=True)

    day: date = Field(alias="date", description="Date to check in YYYY-MM-DD format")
    expected_start_time: Optional[str] = Field(
        default=None,
        pattern=TIME_PATTERN,
        description="Expected start time in HH:MM format, default is 09:00",
    )


def punch_in_time(row: dict[str, Any], tz: tzinfo) -> time:
    """Local time-of-day of a timesheet row's punch-in.

    ``clock_in`` may be a bare ``HH:MM`` (already local) or an ISO timestamp;
    timestamps without an offset are UTC, like ``created_at``.
    """
    raw = str(row.get("clock_in") or row["created_at"])
    if "T" not in raw and " " not in raw:
        hour, minute = raw.split(":")[:2]
        return time(int(hour), int(minute))
    stamp = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp.astimezone(tz).time()


class CheckLateStatusTool(Tool):
    arguments_model = CheckLateStatusArgs

    @property
    def name(self) -> str:
        return "check_late_status"

    @property
    def description(self) -> str:
        return "Check if user was late for work based on timesheet punch-in times"

    async def execute(self, args: CheckLateStatusArgs, context: ToolContext) -> ToolOutput:
        day = args.day.isoformat()
        expected_text = args.expected_start_time or context.defaults.expected_start_time
        hour, minute = (int(part) for part in expected_text.split(":"))
        expected = time(hour, minute)

        rows = await context.store.table("timesheets").select().eq("date", day).all()
        if not rows:
            return ToolOutput(f"No timesheet entry found for {day}. You may not have punched in that day.")

        tz = context.now.tzinfo or timezone.utc
        first_punch = min(punch_in_time(r, tz) for r in rows)
        punch_text = first_punch.strftime("%H:%M")
        # Compared at minute resolution: 09:00:45 is still on time for 09:00
        if (first_punch.hour, first_punch.minute) > (expected.hour, expected.minute):
            return ToolOutput(
                f"Yes, you were late on {day}. You punched in at {punch_text}, expected was {expected:%H:%M}."
            )
        return ToolOutput(f"No, you were on time on {day}! You punched in at {punch_text}.")


# -- Files -------------------------------------------------------------------


class GetWorkFilesArgs(ToolArguments):
    project_id: Optional[str] = Field(default=None, description="Filter by project ID")


class GetWorkFilesTool(Tool):
    arguments_model = GetWorkFilesArgs

    @property
    def name(self) -> str:
        return "get_work_files"

    @property
    def description(self) -> str:
        return "Get work files - can filter by project"

    async def execute(self, args: GetWorkFilesArgs, context: ToolContext) -> ToolOutput:
        query = context.store.table("work_files").select()
        if args.project_id:
            query = query.eq("project_id", args.project_id)
        files = await query.order("created_at", desc=True).all()
        summary = with_remainder(
            [format_file_line(f) for f in files], len(files), context.defaults.list_limit, "No work files found."
        )
        return ToolOutput(f"You have {len(files)} work {plural(len(files), 'file')}:\n\n{summary}")


def build_tools() -> list[Tool]:
    return [
        GetTasksTool(),
        GetProjectsTool(),
        GetNotesTool(),
        GetUserProfileTool(),
        CreateTaskTool(),
        CreateNoteTool(),
        CreateProjectTool(),
        GetTimesheetsTool(),
        CheckLateStatusTool(),
        GetWorkProfileTool(),
        GetWorkFilesTool(),
    ]
