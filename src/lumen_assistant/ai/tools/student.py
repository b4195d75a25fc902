"""Student-mode tools: student tasks, classes, assignments, profile and files."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import Field, field_validator

from lumen_assistant.ai.tools.base import (
    Tool,
    ToolArguments,
    ToolContext,
    ToolOutput,
    ToolResult,
    plural,
    with_remainder,
)
from lumen_assistant.ai.tools.work import TIME_PATTERN, format_file_line, format_task_line
from lumen_assistant.core.types import ResultType
from lumen_assistant.log import get_logger

logger = get_logger(__name__)

WEEKDAYS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


class GetStudentTasksArgs(ToolArguments):
    status: Optional[Literal["Todo", "In Progress", "Done", "All"]] = Field(
        default=None, description="Filter by status"
    )
    priority: Optional[Literal["Low", "Medium", "High", "All"]] = Field(
        default=None, description="Filter by priority"
    )
    count_only: bool = Field(default=False, description="If true, return only count")


class GetStudentTasksTool(Tool):
    arguments_model = GetStudentTasksArgs

    @property
    def name(self) -> str:
        return "get_student_tasks"

    @property
    def description(self) -> str:
        return "Get student tasks - count, list, filter by status/priority"

    async def execute(self, args: GetStudentTasksArgs, context: ToolContext) -> ToolOutput:
        query = context.store.table("student_tasks").select()
        if args.status and args.status != "All":
            query = query.eq("status", args.status)
        if args.priority and args.priority != "All":
            query = query.eq("priority", args.priority)

        if args.count_only:
            count = await query.count()
            return ToolOutput(f"You have {count} student {plural(count, 'task')}.")

        tasks = await query.order("created_at", desc=True).all()
        summary = with_remainder(
            [format_task_line(t) for t in tasks], len(tasks), context.defaults.list_limit, "No student tasks found."
        )
        return ToolOutput(f"You have {len(tasks)} student {plural(len(tasks), 'task')}:\n\n{summary}")


class GetStudentClassesTool(Tool):
    @property
    def name(self) -> str:
        return "get_student_classes"

    @property
    def description(self) -> str:
        return "Get student's classes with schedule information"

    async def execute(self, args: ToolArguments, context: ToolContext) -> ToolOutput:
        classes = await context.store.table("student_classes").select().order("day_of_week").order("start_time").all()
        lines = []
        for c in classes:
            instructor = f" with {c['instructor']}" if c.get("instructor") else ""
            location = f" at {c['location']}" if c.get("location") else ""
            lines.append(
                f"- {c['name']} ({WEEKDAYS[c['day_of_week']]}, {c['start_time']}-{c['end_time']}){instructor}{location}"
            )
        summary = "\n".join(lines) or "No classes found."
        return ToolOutput(f"You have {len(classes)} {plural(len(classes), 'class', 'classes')}:\n\n{summary}")


class CreateStudentClassArgs(ToolArguments):
    name: str = Field(min_length=1, description="Class name")
    instructor: Optional[str] = Field(default=None, description="Instructor name")
    location: Optional[str] = Field(default=None, description="Class location")
    day_of_week: int = Field(ge=0, le=6, description="Day of week (0=Sunday, 1=Monday, 2=Tuesday, etc.)")
    start_time: str = Field(pattern=TIME_PATTERN, description="Start time in HH:MM format")
    end_time: str = Field(pattern=TIME_PATTERN, description="End time in HH:MM format")
    color: Optional[str] = Field(
        default=None, pattern=r"^#[0-9A-Fa-f]{6}$", description="Hex color code for the class"
    )

    @field_validator("day_of_week", mode="before")
    @classmethod
    def _weekday_name(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip().isdigit():
            names = [d.lower() for d in WEEKDAYS]
            key = value.strip().lower()
            for index, day in enumerate(names):
                if day == key or day[:3] == key[:3]:
                    return index
        return value


class CreateStudentClassTool(Tool):
    arguments_model = CreateStudentClassArgs

    @property
    def name(self) -> str:
        return "create_student_class"

    @property
    def description(self) -> str:
        return "Create a class schedule entry for a student"

    async def execute(self, args: CreateStudentClassArgs, context: ToolContext) -> ToolOutput:
        row = await context.store.table("student_classes").insert(
            {
                "name": args.name,
                "instructor": args.instructor or None,
                "location": args.location or None,
                "day_of_week": args.day_of_week,
                "start_time": args.start_time,
                "end_time": args.end_time,
                "color": args.color or context.defaults.class_color,
            }
        )
        logger.info("student_class_created", class_id=row["id"])
        return ToolOutput(f'✅ Class "{args.name}" added to your schedule!', ToolResult(ResultType.CLASS, row))


class GetStudentAssignmentsArgs(ToolArguments):
    status: Optional[Literal["pending", "in_progress", "completed", "submitted", "All"]] = Field(
        default=None, description="Filter by status"
    )
    type: Optional[Literal["assignment", "exam", "quiz", "project", "All"]] = Field(
        default=None, description="Filter by type"
    )


class GetStudentAssignmentsTool(Tool):
    arguments_model = GetStudentAssignmentsArgs

    @property
    def name(self) -> str:
        return "get_student_assignments"

    @property
    def description(self) -> str:
        return "Get student assignments with status and type filters"

    async def execute(self, args: GetStudentAssignmentsArgs, context: ToolContext) -> ToolOutput:
        query = context.store.table("student_assignments").select()
        if args.status and args.status != "All":
            query = query.eq("status", args.status)
        if args.type and args.type != "All":
            query = query.eq("type", args.type)
        assignments = await query.order("due_date").all()

        lines = [
            f"- {a['title']} ({a['type']}, {a['status']}) - Due: {a.get('due_date') or 'No due date'}"
            for a in assignments
        ]
        summary = with_remainder(lines, len(assignments), context.defaults.list_limit, "No assignments found.")
        return ToolOutput(f"You have {len(assignments)} {plural(len(assignments), 'assignment')}:\n\n{summary}")


class GetStudentProfileTool(Tool):
    @property
    def name(self) -> str:
        return "get_student_profile"

    @property
    def description(self) -> str:
        return "Get student profile information (school, major, year)"

    async def execute(self, args: ToolArguments, context: ToolContext) -> ToolOutput:
        profile = await context.store.table("student_profiles").select().first()
        if profile is None:
            return ToolOutput("You don't have a student profile set up yet. Would you like to create one?")
        return ToolOutput(
            "📚 Student Profile:\n"
            f"- School: {profile.get('school_name') or 'Not set'}\n"
            f"- Major: {profile.get('major') or 'Not set'}\n"
            f"- Year: {profile.get('year') or 'Not set'}"
        )


class GetStudentFilesArgs(ToolArguments):
    class_id: Optional[str] = Field(default=None, description="Filter by class ID")
    assignment_id: Optional[str] = Field(default=None, description="Filter by assignment ID")


class GetStudentFilesTool(Tool):
    arguments_model = GetStudentFilesArgs

    @property
    def name(self) -> str:
        return "get_student_files"

    @property
    def description(self) -> str:
        return "Get student files - can filter by class or assignment"

    async def execute(self, args: GetStudentFilesArgs, context: ToolContext) -> ToolOutput:
        query = context.store.table("student_files").select()
        if args.class_id:
            query = query.eq("class_id", args.class_id)
        if args.assignment_id:
            query = query.eq("assignment_id", args.assignment_id)
        files = await query.order("created_at", desc=True).all()
        summary = with_remainder(
            [format_file_line(f) for f in files], len(files), context.defaults.list_limit, "No student files found."
        )
        return ToolOutput(f"You have {len(files)} student {plural(len(files), 'file')}:\n\n{summary}")


def build_tools() -> list[Tool]:
    return [
        GetStudentTasksTool(),
        GetStudentClassesTool(),
        GetStudentAssignmentsTool(),
        GetStudentProfileTool(),
        GetStudentFilesTool(),
        CreateStudentClassTool(),
    ]
