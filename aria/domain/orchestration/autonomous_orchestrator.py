from typing import Any, Dict, List, Optional
import uuid
import structlog
from datetime import datetime, timedelta

from aria.domain.context.context_engine import ContextEngine
from aria.domain.models.assistant_state import (
    AutonomousTask, Context, Insight, Notification, NotificationAction, Priority,
    ReasoningInput, TaskStatus, TaskType, can_transition
)
from aria.domain.reasoning.reasoning_engine import ReasoningEngine
from aria.infrastructure.config.settings import Settings
from aria.infrastructure.observability.logging import assistant_logger
from aria.infrastructure.platform.background import BackgroundScheduler
from aria.infrastructure.platform.notifications import NotificationSink
from .scheduling import Clock, PeriodicJob

logger = structlog.get_logger(__name__)

BACKGROUND_TASK = "ARIA_BACKGROUND_TASK"
DAILY_SUMMARY_TITLE = "Daily Summary"
CONTEXT_MONITOR_TITLE = "Context Monitoring"
DAILY_SUMMARY_FALLBACK = "Daily summary generation failed. Please check system logs."


class AutonomousOrchestrator:
    """Creates, schedules and executes autonomous tasks"""

    def __init__(
        self,
        context_engine: ContextEngine,
        reasoning_engine: ReasoningEngine,
        notification_sink: NotificationSink,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None
    ):
        self.context_engine = context_engine
        self.reasoning_engine = reasoning_engine
        self.notification_sink = notification_sink
        self.settings = settings or Settings()
        self.clock = clock or Clock()

        self.tasks: Dict[str, AutonomousTask] = {}
        self.is_active = False
        self.background_task_registered = False
        self.notifications_permitted = False
        self._analysis_job = PeriodicJob(
            "autonomous_analysis",
            self.settings.autonomous_interval_seconds,
            self._on_analysis_tick,
            clock=self.clock
        )

    # ------------------------------------------------------------------
    # Setup and mode lifecycle
    # ------------------------------------------------------------------

    async def setup(self, background_scheduler: Optional[BackgroundScheduler] = None) -> None:
        """Request notification permission and register background analysis"""

        try:
            self.notifications_permitted = await self.notification_sink.request_permission()
            if not self.notifications_permitted:
                logger.warning("Notification permission not granted")
        except Exception as e:
            logger.error("Notification setup error", error=str(e))

        if background_scheduler is None:
            return

        try:
            await background_scheduler.register(
                BACKGROUND_TASK,
                self.execute_background_analysis,
                self.settings.background_interval_seconds
            )
            self.background_task_registered = True
            logger.info("Background task registered", name=BACKGROUND_TASK)
        except Exception as e:
            logger.error("Background task setup error", error=str(e))

    async def start_autonomous_mode(self) -> None:
        if self.is_active:
            logger.info("Autonomous mode already active")
            return

        logger.info("Starting autonomous mode")
        self.is_active = True

        await self._create_initial_tasks()
        self._analysis_job.start()

        await self.send_notification(
            "ARIA Activated",
            "Autonomous reasoning and assistance is now active"
        )

    async def stop_autonomous_mode(self) -> None:
        """Cancel pending work; active and finished tasks are left alone"""

        if not self.is_active:
            return

        logger.info("Stopping autonomous mode")
        self.is_active = False
        self._analysis_job.stop()

        for task in list(self.tasks.values()):
            if task.status == TaskStatus.PENDING:
                self.update_task_status(task.id, TaskStatus.CANCELLED)

        await self.send_notification(
            "ARIA Deactivated",
            "Autonomous mode has been stopped"
        )

    def is_autonomous_mode_active(self) -> bool:
        return self.is_active

    async def _create_initial_tasks(self):
        now = self.clock.now()

        summary_time = now.replace(hour=self.settings.daily_summary_hour, minute=0, second=0, microsecond=0)
        if summary_time <= now:
            summary_time += timedelta(days=1)

        # One context from the live readings backs every seeded task
        context = await self.context_engine.update_context(
            self.context_engine.sensor_manager.get_current_data()
        )

        self._add_task(AutonomousTask(
            id=self._task_id("context_monitor"),
            type=TaskType.OBSERVATION,
            title=CONTEXT_MONITOR_TITLE,
            description="Continuously monitor user context and environment for insights",
            context=context,
            status=TaskStatus.ACTIVE,
            priority=Priority.MEDIUM,
            created_at=now
        ))
        self._add_task(AutonomousTask(
            id=self._task_id("daily_summary"),
            type=TaskType.ANALYSIS,
            title=DAILY_SUMMARY_TITLE,
            description="Generate daily activity and insights summary",
            scheduled_for=summary_time,
            context=context,
            status=TaskStatus.PENDING,
            priority=Priority.LOW,
            created_at=now
        ))
        self._add_task(AutonomousTask(
            id=self._task_id("wellness_check"),
            type=TaskType.REMINDER,
            title="Wellness Check",
            description="Proactive wellness and activity recommendations",
            context=context,
            status=TaskStatus.PENDING,
            priority=Priority.MEDIUM,
            created_at=now
        ))

        logger.info("Initial autonomous tasks created", count=len(self.tasks))

    # ------------------------------------------------------------------
    # Analysis passes
    # ------------------------------------------------------------------

    async def _on_analysis_tick(self):
        if not self.is_active:
            self._analysis_job.stop()
            return
        await self.execute_autonomous_analysis()

    async def execute_autonomous_analysis(self) -> None:
        """Escalate important insights, offer recommendations, run due tasks"""

        try:
            logger.info("Executing autonomous analysis")

            insights = await self.context_engine.analyze_current_context()
            if not self.is_active:
                logger.info("Autonomous mode stopped during analysis, discarding results")
                return

            for insight in insights:
                if insight.priority in (Priority.URGENT, Priority.HIGH):
                    await self.handle_urgent_insight(insight)

            context = self.context_engine.get_latest_context()
            if context is not None:
                recommendations = await self.context_engine.generate_proactive_recommendations(
                    context,
                    self.context_engine.sensor_manager.get_current_data()
                )
                if recommendations and self.is_active:
                    await self._create_recommendation_task(recommendations, context)

            await self.process_scheduled_tasks()

        except Exception as e:
            logger.error("Autonomous analysis error", error=str(e))

    async def execute_background_analysis(self) -> None:
        """Lightweight pass: notify about urgent insights only"""

        try:
            logger.info("Background analysis executing")

            insights = await self.context_engine.analyze_current_context()
            for insight in insights:
                if insight.priority == Priority.URGENT:
                    await self.send_notification(
                        insight.title,
                        insight.description,
                        priority="high",
                        data=insight.model_dump(mode="json")
                    )
        except Exception as e:
            logger.error("Background analysis error", error=str(e))

    async def handle_urgent_insight(self, insight: Insight) -> None:
        """Notify, track with a task and run whitelisted actions"""

        logger.info("Handling urgent insight", title=insight.title, priority=insight.priority.value)
        actions = insight.actions or []
        limit = self.settings.max_autonomous_actions

        await self.send_notification(
            f"⚠️ {insight.title}",
            insight.description,
            priority="high",
            data=insight.model_dump(mode="json"),
            actions=[
                NotificationAction(id=f"action_{index}", title=action)
                for index, action in enumerate(actions[:limit])
            ] or None
        )

        task = self._add_task(AutonomousTask(
            id=f"urgent_{insight.id}",
            type=TaskType.ACTION,
            title=f"Handle: {insight.title}",
            description=f"Autonomous response to urgent insight: {insight.description}",
            context=self.context_engine.get_latest_context(),
            status=TaskStatus.ACTIVE,
            priority=Priority.URGENT,
            created_at=self.clock.now()
        ))

        if actions:
            await self.execute_autonomous_actions(actions, insight)

        self.update_task_status(task.id, TaskStatus.COMPLETED)

    async def execute_autonomous_actions(self, actions: List[str], insight: Insight) -> None:
        """Run at most a few actions, and only the safe kinds"""

        for action in actions[:self.settings.max_autonomous_actions]:
            try:
                lowered = action.lower()
                if "reminder" in lowered:
                    await self._create_reminder(action, insight)
                elif "notification" in lowered:
                    await self._send_contextual_notification(action, insight)
                elif "analyze" in lowered:
                    self._schedule_analysis(action)
                else:
                    logger.debug("No autonomous handler for action", action=action)
            except Exception as e:
                logger.error("Autonomous action error", action=action, error=str(e))

    async def _create_reminder(self, action: str, insight: Insight):
        await self.notification_sink.schedule_after(
            self.settings.reminder_delay_seconds,
            Notification(
                title="🔔 ARIA Reminder",
                body=action,
                data={"type": "autonomous_reminder", "insight_id": insight.id}
            )
        )

    async def _send_contextual_notification(self, action: str, insight: Insight):
        await self.send_notification(
            "🤖 ARIA Alert",
            action,
            data={"insight_id": insight.id}
        )

    def _schedule_analysis(self, action: str):
        now = self.clock.now()
        self._add_task(AutonomousTask(
            id=self._task_id("scheduled_analysis"),
            type=TaskType.ANALYSIS,
            title="Scheduled Analysis",
            description=action,
            scheduled_for=now + timedelta(seconds=self.settings.scheduled_analysis_delay_seconds),
            context=self.context_engine.get_latest_context(),
            status=TaskStatus.PENDING,
            priority=Priority.MEDIUM,
            created_at=now
        ))

    async def _create_recommendation_task(self, recommendations: List[str], context: Context):
        task = self._add_task(AutonomousTask(
            id=self._task_id("recommendations"),
            type=TaskType.REMINDER,
            title="AI Recommendations",
            description=f"Based on your current context, I have {len(recommendations)} suggestions for you.",
            context=context,
            status=TaskStatus.PENDING,
            priority=Priority.LOW,
            created_at=self.clock.now()
        ))

        await self.send_notification(
            "🤖 ARIA Recommendations",
            f"I have {len(recommendations)} personalized suggestions based on your current context.",
            data={"recommendations": recommendations, "task_id": task.id}
        )

    # ------------------------------------------------------------------
    # Scheduled task execution
    # ------------------------------------------------------------------

    async def process_scheduled_tasks(self) -> None:
        """Execute every pending task whose scheduled time has passed"""

        now = self.clock.now()
        for task in list(self.tasks.values()):
            if task.is_due(now):
                logger.info("Processing scheduled task", task_id=task.id, title=task.title)
                await self.execute_task(task)

    async def execute_task(self, task: AutonomousTask) -> None:
        """Run a task body, recording completed or failed"""

        if not self.update_task_status(task.id, TaskStatus.ACTIVE):
            return

        try:
            if task.type == TaskType.ANALYSIS:
                await self._execute_analysis_task(task)
            elif task.type == TaskType.REMINDER:
                await self._execute_reminder_task(task)
            elif task.type == TaskType.ACTION:
                await self._execute_action_task(task)
            elif task.type == TaskType.OBSERVATION:
                logger.info("Observation task active", task_id=task.id, title=task.title)

            self.update_task_status(task.id, TaskStatus.COMPLETED)
        except Exception as e:
            logger.error("Task execution error", task_id=task.id, error=str(e))
            self.update_task_status(task.id, TaskStatus.FAILED)

    async def _execute_analysis_task(self, task: AutonomousTask):
        if DAILY_SUMMARY_TITLE in task.title:
            summary = await self.generate_daily_summary()
            await self.send_notification(
                "📊 Daily Summary Ready",
                "Your personalized daily analysis and insights are ready.",
                data={"summary": summary, "type": "daily_summary"}
            )
        else:
            insights = await self.context_engine.analyze_current_context()
            logger.info("Scheduled analysis finished", task_id=task.id, insights=len(insights))

    async def _execute_reminder_task(self, task: AutonomousTask):
        await self.send_notification(
            f"⏰ {task.title}",
            task.description,
            data={"task_id": task.id}
        )

    async def _execute_action_task(self, task: AutonomousTask):
        await self.send_notification(
            f"🔄 {task.title}",
            f"Autonomous action completed: {task.description}"
        )

    async def generate_daily_summary(self) -> str:
        """Summarize the day's context and insights through the reasoning engine"""

        try:
            history = self.context_engine.get_context_history()
            insights = self.context_engine.get_current_insights()
            high_priority = [i for i in insights if i.priority == Priority.HIGH]

            query = (
                "Generate a comprehensive daily summary based on the user's context and activity patterns:\n"
                "\n"
                "Context Data:\n"
                f"- Total context changes: {len(history)}\n"
                f"- Insights generated: {len(insights)}\n"
                f"- High priority insights: {len(high_priority)}\n"
                "\n"
                "Recent patterns from context history and provide a meaningful daily summary with:\n"
                "1. Activity patterns observed\n"
                "2. Notable insights and observations\n"
                "3. Recommendations for tomorrow\n"
                "4. Any areas of concern or positive trends\n"
                "\n"
                "Keep the summary concise but informative."
            )

            context = self.context_engine.get_latest_context() or await self.context_engine.update_context(
                self.context_engine.sensor_manager.get_current_data()
            )
            response = await self.reasoning_engine.process_query(ReasoningInput(query=query, context=context))
            return response.content

        except Exception as e:
            logger.error("Daily summary generation error", error=str(e))
            return DAILY_SUMMARY_FALLBACK

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def send_notification(
        self,
        title: str,
        body: str,
        priority: str = "normal",
        data: Optional[Dict[str, Any]] = None,
        actions: Optional[List[NotificationAction]] = None
    ) -> None:
        """Dispatch immediately; delivery failures are logged, not raised"""

        try:
            await self.notification_sink.send(Notification(
                title=title,
                body=body,
                priority=priority,
                data=data or {},
                actions=actions,
                created_at=self.clock.now()
            ))
        except Exception as e:
            logger.error("Notification error", title=title, error=str(e))

    # ------------------------------------------------------------------
    # Task table
    # ------------------------------------------------------------------

    def _task_id(self, prefix: str) -> str:
        return f"{prefix}_{uuid.uuid4().hex[:12]}"

    def _add_task(self, task: AutonomousTask) -> AutonomousTask:
        self.tasks[task.id] = task
        return task

    def update_task_status(self, task_id: str, status: TaskStatus) -> bool:
        """Move a task along the state machine; illegal moves are rejected"""

        task = self.tasks.get(task_id)
        if task is None:
            logger.warning("Status update for unknown task", task_id=task_id)
            return False

        accepted = can_transition(task.status, status)
        assistant_logger.log_task_transition(task_id, task.status.value, status.value, accepted=accepted)
        if accepted:
            task.status = status
        return accepted

    async def create_custom_task(
        self,
        type: TaskType,
        title: str,
        description: str,
        scheduled_for: Optional[datetime] = None,
        priority: Priority = Priority.MEDIUM
    ) -> str:
        task = self._add_task(AutonomousTask(
            id=self._task_id("custom"),
            type=type,
            title=title,
            description=description,
            scheduled_for=scheduled_for,
            context=self.context_engine.get_latest_context(),
            status=TaskStatus.PENDING,
            priority=priority,
            created_at=self.clock.now()
        ))

        await self.send_notification(
            "New Task Created",
            f"{title} has been scheduled",
            data={"task_id": task.id}
        )
        return task.id

    async def cancel_task(self, task_id: str) -> bool:
        """Only pending tasks can be cancelled"""

        task = self.tasks.get(task_id)
        if task is None or task.status != TaskStatus.PENDING:
            return False
        return self.update_task_status(task_id, TaskStatus.CANCELLED)

    def get_active_tasks(self) -> List[AutonomousTask]:
        """Every tracked task, whatever its status"""
        return list(self.tasks.values())

    def get_task(self, task_id: str) -> Optional[AutonomousTask]:
        return self.tasks.get(task_id)

    def get_system_status(self) -> Dict[str, Any]:
        tasks = list(self.tasks.values())
        return {
            "is_active": self.is_active,
            "active_count": sum(1 for t in tasks if t.status == TaskStatus.ACTIVE),
            "pending_count": sum(1 for t in tasks if t.status == TaskStatus.PENDING),
            "completed_count": sum(1 for t in tasks if t.status == TaskStatus.COMPLETED),
            "background_task_registered": self.background_task_registered,
        }
