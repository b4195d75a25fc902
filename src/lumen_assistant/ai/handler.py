"""Action handler: maps each request action to its implementation."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Awaitable, Callable, Literal, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, ValidationError, field_validator

from lumen_assistant.ai import prompts
from lumen_assistant.ai.client import AIClient
from lumen_assistant.ai.dispatcher import IntentDispatcher
from lumen_assistant.ai.image_client import ImageGenerator
from lumen_assistant.ai.tools.base import ToolArguments, ToolContext
from lumen_assistant.config import AppConfig
from lumen_assistant.core.models import ChatRequest
from lumen_assistant.core.types import Action
from lumen_assistant.errors import InvalidRequest, UpstreamError
from lumen_assistant.log import get_logger
from lumen_assistant.storage.models import to_db_timestamp, utcnow
from lumen_assistant.storage.tables import DataStore

logger = get_logger(__name__)

COMPLETED_STATUSES = ("Done", "Completed")
NUDGE_TASK_WINDOW = 20
MAX_SUGGESTION_CANDIDATES = 50
ALL_CAUGHT_UP = "You're all caught up! Consider creating a new task to keep the momentum going."


@dataclass
class HandlerResult:
    payload: dict[str, Any]
    token_count: int = 0


class ParsedTask(ToolArguments):
    """Task fields extracted by the model from free text."""

    title: str = Field(min_length=1)
    description: Optional[str] = None
    due_date: Optional[date] = None
    priority: Optional[Literal["Low", "Medium", "High", "Urgent"]] = None
    reminder_enabled: Optional[bool] = None
    reminder_days_before: Optional[int] = Field(default=None, ge=0)
    reminder_hours_before: Optional[int] = Field(default=None, ge=0)


class TaskSuggestion(BaseModel):
    suggested_task_id: Optional[str] = Field(default=None, alias="suggestedTaskId")
    reason: str = ""

    @field_validator("suggested_task_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        return None if value is None else str(value)


class ProductivityAnalysis(BaseModel):
    summary: str = ""
    insights: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    score: int = 0

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> int:
        try:
            return max(0, min(100, int(float(value))))
        except (TypeError, ValueError):
            return 0


def parse_json_object(text: str) -> dict[str, Any]:
    """Extract the JSON object from a model reply, tolerating code fences and chatter."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.lower().startswith("json"):
            cleaned = cleaned[4:]
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end <= start:
        logger.error("model_json_missing", length=len(text))
        raise UpstreamError("Invalid response from AI")
    try:
        data = json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError as e:
        logger.error("model_json_invalid", error=str(e))
        raise UpstreamError("Invalid response from AI") from e
    if not isinstance(data, dict):
        raise UpstreamError("Invalid response from AI")
    return data


class ActionHandler:
    """Runs one action for one authenticated user."""

    def __init__(
        self,
        config: AppConfig,
        ai_client: AIClient,
        dispatcher: IntentDispatcher,
        image_generator: ImageGenerator,
        data_store: DataStore,
    ):
        self._config = config
        self._ai = ai_client
        self._dispatcher = dispatcher
        self._images = image_generator
        self._store = data_store
        self._tz = ZoneInfo(config.ai.timezone)
        self._actions: dict[Action, Callable[[dict[str, Any], ToolContext], Awaitable[HandlerResult]]] = {
            Action.PARSE_NATURAL_LANGUAGE: self.parse_natural_language,
            Action.GENERATE_PROGRESS_NUDGE: self.generate_progress_nudge,
            Action.SUGGEST_NEXT_TASK: self.suggest_next_task,
            Action.ANALYZE_PRODUCTIVITY: self.analyze_productivity,
            Action.LUMEN_CHAT: self.lumen_chat,
            Action.GENERATE_IMAGE: self.generate_image,
        }

    def build_context(self, user_id: str, now: Optional[datetime] = None) -> ToolContext:
        return ToolContext(
            user_id=user_id,
            store=self._store.for_user(user_id),
            now=now or datetime.now(self._tz),
            defaults=self._config.defaults,
        )

    async def handle(self, action: Action, data: dict[str, Any], user_id: str) -> HandlerResult:
        context = self.build_context(user_id)
        logger.info("action_start", action=str(action))
        result = await self._actions[action](data, context)
        logger.info("action_done", action=str(action), tokens=result.token_count)
        return result

    async def parse_natural_language(self, data: dict[str, Any], context: ToolContext) -> HandlerResult:
        text = data.get("text") or ""
        if not text:
            raise InvalidRequest()

        response = await self._ai.generate(
            prompts.build_parse_task_prompt(text, context.today),
            temperature=self._config.ai.structured_temperature,
            max_tokens=self._config.ai.structured_max_tokens,
        )
        try:
            parsed = ParsedTask.model_validate(parse_json_object(response.text))
        except ValidationError as e:
            logger.error("parsed_task_invalid", errors=e.error_count())
            raise UpstreamError("Invalid response from AI") from e

        defaults = context.defaults
        due_date = parsed.due_date or (context.today if defaults.due_date_today else None)
        reminder_enabled = (
            parsed.reminder_enabled if parsed.reminder_enabled is not None else defaults.reminder_enabled
        )
        task = await context.store.table("tasks").insert(
            {
                "title": parsed.title,
                "description": parsed.description or None,
                "due_date": due_date.isoformat() if due_date else None,
                "priority": parsed.priority or defaults.priority,
                "status": "Todo",
                "reminder_enabled": reminder_enabled,
                "reminder_days_before": parsed.reminder_days_before or 0,
                "reminder_hours_before": parsed.reminder_hours_before or 0,
            }
        )
        logger.info("task_created", task_id=task["id"], source="natural_language")
        return HandlerResult(
            {"success": True, "task": task, "message": f'Task "{parsed.title}" created successfully!'},
            response.total_tokens,
        )

    async def generate_progress_nudge(self, data: dict[str, Any], context: ToolContext) -> HandlerResult:
        tasks = await (
            context.store.table("tasks").select().order("created_at", desc=True).limit(NUDGE_TASK_WINDOW).all()
        )
        active_projects = await context.store.table("projects").select().eq("status", "Active").count()

        today = context.today.isoformat()
        completed = sum(1 for t in tasks if t["status"] in COMPLETED_STATUSES)
        overdue = sum(
            1 for t in tasks if t.get("due_date") and t["due_date"] < today and t["status"] not in COMPLETED_STATUSES
        )

        response = await self._ai.generate(
            prompts.build_nudge_prompt(len(tasks), completed, overdue, active_projects),
            temperature=self._config.ai.structured_temperature,
            max_tokens=self._config.ai.structured_max_tokens,
        )
        nudge = response.text.strip()
        if not nudge:
            raise UpstreamError("Invalid response from AI")
        return HandlerResult(
            {
                "success": True,
                "nudge": nudge,
                "stats": {
                    "completedTasks": completed,
                    "totalTasks": len(tasks),
                    "overdueTasks": overdue,
                    "activeProjects": active_projects,
                },
            },
            response.total_tokens,
        )

    async def suggest_next_task(self, data: dict[str, Any], context: ToolContext) -> HandlerResult:
        tasks = await (
            context.store.table("tasks")
            .select()
            .not_in("status", COMPLETED_STATUSES)
            .order("created_at", desc=True)
            .limit(MAX_SUGGESTION_CANDIDATES)
            .all()
        )
        if not tasks:
            return HandlerResult({"success": True, "suggestion": ALL_CAUGHT_UP, "suggestedTask": None})

        response = await self._ai.generate(
            prompts.build_suggest_prompt(tasks),
            temperature=self._config.ai.structured_temperature,
            max_tokens=self._config.ai.structured_max_tokens,
        )
        try:
            suggestion = TaskSuggestion.model_validate(parse_json_object(response.text))
        except ValidationError as e:
            logger.error("task_suggestion_invalid", errors=e.error_count())
            raise UpstreamError("Invalid response from AI") from e
        suggested = next((t for t in tasks if t["id"] == suggestion.suggested_task_id), None)
        if suggested is None:
            logger.warning("suggested_task_unknown")
        return HandlerResult(
            {"success": True, "suggestion": suggestion.reason, "suggestedTask": suggested},
            response.total_tokens,
        )

    async def analyze_productivity(self, data: dict[str, Any], context: ToolContext) -> HandlerResult:
        try:
            days = int(str(data.get("timeRange") or "7"))
        except ValueError as e:
            raise InvalidRequest() from e
        if not 1 <= days <= 365:
            raise InvalidRequest()

        since = utcnow() - timedelta(days=days)
        tasks = await context.store.table("tasks").select().gte("created_at", to_db_timestamp(since)).all()
        timesheets = await (
            context.store.table("timesheets")
            .select()
            .gte("date", (context.today - timedelta(days=days)).isoformat())
            .all()
        )

        completed = sum(1 for t in tasks if t["status"] in COMPLETED_STATUSES)
        total_hours = f"{sum(float(t.get('hours') or 0) for t in timesheets):.1f}"
        completion_rate = f"{completed / len(tasks) * 100:.1f}" if tasks else "0"

        response = await self._ai.generate(
            prompts.build_analysis_prompt(days, len(tasks), completed, total_hours, completion_rate),
            temperature=self._config.ai.structured_temperature,
            max_tokens=self._config.ai.structured_max_tokens,
        )
        try:
            analysis = ProductivityAnalysis.model_validate(parse_json_object(response.text))
        except ValidationError as e:
            raise UpstreamError("Invalid response from AI") from e

        return HandlerResult(
            {
                "success": True,
                **analysis.model_dump(),
                "rawData": {
                    "tasksCreated": len(tasks),
                    "tasksCompleted": completed,
                    "totalHours": total_hours,
                    "completionRate": completion_rate,
                },
            },
            response.total_tokens,
        )

    async def lumen_chat(self, data: dict[str, Any], context: ToolContext) -> HandlerResult:
        try:
            request = ChatRequest.model_validate(data)
        except ValidationError as e:
            logger.warning("chat_request_invalid", errors=e.error_count())
            raise InvalidRequest() from e
        if not request.message and not request.files:
            raise InvalidRequest()

        reply = await self._dispatcher.chat(request, context)
        return HandlerResult({"success": True, "response": reply.to_response()}, reply.token_count)

    async def generate_image(self, data: dict[str, Any], context: ToolContext) -> HandlerResult:
        prompt = data.get("message") or ""
        if not prompt:
            raise InvalidRequest()
        url = await self._images.generate(prompt)
        return HandlerResult({"success": True, "message": "Image generated successfully!", "image": url})
