"""
Progress server: per-developer onboarding progress with achievements.

State lives in a ProgressStore owned by the registry built in
create_registry(); complete_task is the only handler that mutates it.
Tasks are never un-marked, and each achievement is awarded at most once.
"""

import copy
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Iterator, List, Optional

from onboarding_os.core import HandlerError, ToolRegistry
from onboarding_os.fixtures import load_fixture

SERVER_NAME = "progress-mcp"
BAR_WIDTH = 20
TASKS_PER_DAY = 3
NEXT_TASK_COUNT = 3

NOT_STARTED = "not_started"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"

PHASE_ICONS = {COMPLETED: "✅", IN_PROGRESS: "🔄", NOT_STARTED: "⏳"}


@dataclass
class Task:
    id: str
    title: str
    done: bool = False


@dataclass
class Phase:
    name: str
    status: str
    tasks: List[Task]

    @property
    def completed_count(self) -> int:
        return sum(1 for task in self.tasks if task.done)

    def refresh_status(self) -> None:
        if self.tasks and all(task.done for task in self.tasks):
            self.status = COMPLETED
        elif any(task.done for task in self.tasks):
            self.status = IN_PROGRESS
        else:
            self.status = NOT_STARTED


@dataclass
class DeveloperProgress:
    """
    Onboarding state for one developer.

    Attributes:
        developer: Developer key as given by the caller
        start_date: ISO date the developer was first tracked
        phases: Ordered phases, each with its tasks
        achievements: Badges earned so far, in award order
    """

    developer: str
    start_date: str
    phases: List[Phase]
    achievements: List[str] = field(default_factory=list)

    def iter_tasks(self) -> Iterator[tuple]:
        for phase in self.phases:
            for task in phase.tasks:
                yield phase, task


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def progress_bar(percentage: int) -> str:
    filled = percentage // 5
    return "[" + "█" * filled + "░" * (BAR_WIDTH - filled) + f"] {percentage}%"


def calculate_stats(progress: DeveloperProgress) -> Dict[str, Any]:
    """Totals, completion percentage, rendered bar, current phase and days left."""
    total = 0
    completed = 0
    current_phase = "Not started"
    for phase in progress.phases:
        total += len(phase.tasks)
        completed += phase.completed_count
        if phase.status == IN_PROGRESS:
            current_phase = phase.name

    percentage = round_half_up(completed / total * 100) if total > 0 else 0
    return {
        "totalTasks": total,
        "completedTasks": completed,
        "percentage": percentage,
        "progressBar": progress_bar(percentage),
        "currentPhase": current_phase,
        "estimatedDaysLeft": max(0, math.ceil((total - completed) / TASKS_PER_DAY)),
    }


class ProgressStore:
    """
    In-memory progress records keyed by developer name.

    Records are created on first access from the phase template. Callers
    using the same key are not coordinated: last write wins.
    """

    def __init__(
        self,
        template: Optional[Dict[str, Any]] = None,
        today: Callable[[], date] = date.today,
    ):
        template = template if template is not None else load_fixture("progress")
        self._phases = template["phases"]
        self.achievement_rules = template.get("achievements", [])
        self._today = today
        self._records: Dict[str, DeveloperProgress] = {}

    def _new_progress(self, developer: str) -> DeveloperProgress:
        phases = [
            Phase(
                name=p["name"],
                status=p.get("status", NOT_STARTED),
                tasks=[Task(t["id"], t["title"], bool(t.get("done", False))) for t in p["tasks"]],
            )
            for p in copy.deepcopy(self._phases)
        ]
        return DeveloperProgress(developer, self._today().isoformat(), phases)

    def get_or_create(self, developer: str) -> DeveloperProgress:
        if developer not in self._records:
            self._records[developer] = self._new_progress(developer)
        return self._records[developer]

    def items(self):
        return self._records.items()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, developer: object) -> bool:
        return developer in self._records

    def complete_task(self, developer: str, task_id: str) -> Dict[str, Any]:
        """
        Mark a task done, refresh phase statuses and award new achievements.

        Raises:
            HandlerError: If no task has the given id
        """
        progress = self.get_or_create(developer)
        for _, task in progress.iter_tasks():
            if task.id == task_id:
                task.done = True
                break
        else:
            raise HandlerError(f'Task "{task_id}" not found')

        for phase in progress.phases:
            phase.refresh_status()

        stats = calculate_stats(progress)
        new_achievements = []
        for rule in self.achievement_rules:
            threshold = rule["threshold"]
            reached = stats["percentage"] == 100 if threshold == 100 else stats["percentage"] >= threshold
            if reached and rule["badge"] not in progress.achievements:
                progress.achievements.append(rule["badge"])
                new_achievements.append(rule["message"])

        result: Dict[str, Any] = {"success": True, "message": f'✅ Completed: "{task.title}"'}
        if new_achievements:
            result["newAchievements"] = new_achievements
        result["stats"] = stats
        return result

    def dashboard(self, developer: str) -> Dict[str, Any]:
        progress = self.get_or_create(developer)
        return {
            "developer": progress.developer,
            "startDate": progress.start_date,
            "stats": calculate_stats(progress),
            "phases": [
                {
                    "name": phase.name,
                    "status": PHASE_ICONS.get(phase.status, PHASE_ICONS[NOT_STARTED]),
                    "progress": f"{phase.completed_count}/{len(phase.tasks)}",
                    "tasks": [
                        {"id": t.id, "title": t.title, "status": "✅" if t.done else "⬜"}
                        for t in phase.tasks
                    ],
                }
                for phase in progress.phases
            ],
            "achievements": list(progress.achievements),
        }

    def next_tasks(self, developer: str, limit: int = NEXT_TASK_COUNT) -> Dict[str, Any]:
        progress = self.get_or_create(developer)
        upcoming = []
        for phase, task in progress.iter_tasks():
            if not task.done:
                upcoming.append({"id": task.id, "title": task.title, "phase": phase.name})
                if len(upcoming) >= limit:
                    break

        if upcoming:
            tip = "Focus on these tasks next. Complete them one at a time!"
        else:
            tip = "🎉 All tasks completed! You are fully onboarded!"
        return {"developer": developer, "nextTasks": upcoming, "tip": tip}

    def leaderboard(self) -> Dict[str, Any]:
        """All tracked developers, most completed tasks first."""
        rows = []
        for developer, progress in self.items():
            stats = calculate_stats(progress)
            rows.append((stats["completedTasks"], {
                "developer": developer,
                "progress": stats["progressBar"],
                "completed": f"{stats['completedTasks']}/{stats['totalTasks']}",
                "achievements": len(progress.achievements),
            }))
        rows.sort(key=lambda row: -row[0])
        entries = [entry for _, entry in rows]

        if not entries:
            entries = [{"message": "No developers tracked yet. Start by getting a progress dashboard!"}]
        return {"leaderboard": entries, "totalDevelopers": len(self)}


def _dev_schema(**extra: Dict[str, Any]) -> Dict[str, Any]:
    properties = {"devName": {"type": "string", "description": "Name of the developer"}}
    properties.update(extra)
    return {"type": "object", "properties": properties, "required": list(properties)}


def create_registry(store: Optional[ProgressStore] = None) -> ToolRegistry:
    store = store if store is not None else ProgressStore()
    registry = ToolRegistry(SERVER_NAME)

    @registry.tool(
        "get_progress_dashboard",
        "Get the developer's full onboarding progress dashboard with stats, phases, and achievements",
        _dev_schema(),
    )
    def _get_progress_dashboard(args):
        return store.dashboard(args["devName"])

    @registry.tool(
        "complete_task",
        "Mark an onboarding task as completed. May unlock achievements!",
        _dev_schema(taskId={
            "type": "string",
            "description": 'ID of the task to mark complete (e.g., "env-1", "code-2")',
        }),
    )
    def _complete_task(args):
        return store.complete_task(args["devName"], args["taskId"])

    @registry.tool(
        "get_next_tasks",
        "Get the next 3 tasks the developer should focus on",
        _dev_schema(),
    )
    def _get_next_tasks(args):
        return store.next_tasks(args["devName"])

    @registry.tool(
        "get_leaderboard",
        "Get onboarding leaderboard showing all developers and their progress",
    )
    def _get_leaderboard(args):
        return store.leaderboard()

    return registry
