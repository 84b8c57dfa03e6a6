"""
Crisis Router - Main Orchestrator.

This module provides the CrisisRouter class, the single decision point
that turns a questionnaire submission or a chat message into a routing
outcome and performs the audit and notification side effects.
"""

import asyncio
from typing import Optional, Union, Dict, Any, List

from safety_triage.config import RouterConfig
from safety_triage.triage.models import (
    RiskLevel, TriageAnswers, TriageResult, TRIAGE_QUESTIONS, normalize_region_code
)
from safety_triage.triage.classifier import classify
from safety_triage.safety.models import ChatMessage, ChatOutcome, ChatReply, ModerationVerdict
from safety_triage.safety.gateway import ModerationGateway
from safety_triage.safety.resources import CrisisResource, CrisisResourceDirectory
from safety_triage.safety.templates import EMERGENCY_DIRECTIVE
from safety_triage.audit.events import (
    AuditEvent, EventType, TriggerSource, ModerationOutcome, ResourceType
)
from safety_triage.audit.sink import AuditSink, AuditStats
from safety_triage.notify.relay import CrisisNotice, NotificationRelay
from safety_triage.api.moderation_client import ModerationClient
from safety_triage.api.assistant_client import AssistantClient
from safety_triage.utils.logging_config import setup_logging

logger = setup_logging("crisis_router")


class CrisisRouter:
    """
    Main orchestrator for safety triage and crisis routing.

    Triage:  answers -> classifier -> audit -> (EMERGENCY: notify) -> result
    Chat:    message -> moderation -> audit -> (crisis: notify)
                     -> (pass only: assistant) -> reply

    Each decision runs under ``asyncio.shield`` so a caller that goes
    away cannot cancel the audit write.

    Example:
        router = CrisisRouter()
        await router.start()
        result = await router.route_triage(answers)
        reply = await router.route_chat(ChatMessage(role="user", content="What is DBT?"))
        await router.shutdown()
    """

    def __init__(
        self,
        config: Optional[RouterConfig] = None,
        gateway: Optional[ModerationGateway] = None,
        audit_sink: Optional[AuditSink] = None,
        relay: Optional[NotificationRelay] = None,
        resources: Optional[CrisisResourceDirectory] = None,
        mock_mode: Optional[bool] = None
    ):
        """
        Initialize the router.

        Args:
            config: Service configuration
            gateway: Moderation gateway (built from config when omitted)
            audit_sink: Audit sink (built from config when omitted)
            relay: Notification relay (built from config when omitted)
            resources: Crisis resource directory
            mock_mode: Whether the default capability clients run in mock mode
        """
        self.config = config or RouterConfig()

        self._clients: List = []
        if gateway is None:
            moderation = ModerationClient(self.config.moderation, mock_mode=mock_mode)
            assistant = AssistantClient(self.config.assistant, mock_mode=mock_mode)
            self._clients = [moderation, assistant]
            gateway = ModerationGateway(
                moderation,
                assistant,
                moderation_timeout=self.config.moderation.timeout,
                assistant_timeout=self.config.assistant.timeout
            )

        self.gateway = gateway
        self.audit_sink = audit_sink or AuditSink(self.config.audit)
        self.relay = relay or NotificationRelay(config=self.config.notification)
        self.resources = resources or CrisisResourceDirectory()

        logger.info("CrisisRouter created")

    async def start(self) -> None:
        """Start background workers."""
        await self.relay.start()

    async def shutdown(self) -> None:
        """Stop background workers and close capability clients."""
        await self.relay.stop()
        for client in self._clients:
            await client.close()
        logger.info("CrisisRouter shutdown complete")

    # ------------------------------------------------------------------
    # Triage
    # ------------------------------------------------------------------

    async def route_triage(
        self,
        answers: Union[TriageAnswers, Dict[str, Any]]
    ) -> TriageResult:
        """
        Route a questionnaire submission.

        Args:
            answers: Validated answers, or a raw submission dict

        Returns:
            TriageResult: Routing decision

        Raises:
            TriageValidationError: If a raw submission is malformed
        """
        if not isinstance(answers, TriageAnswers):
            answers = TriageAnswers.from_dict(answers)

        try:
            return await asyncio.shield(self._route_triage(answers))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Triage routing failed ({type(e).__name__}); resolving to EMERGENCY")
            try:
                await asyncio.shield(self._activate_crisis(
                    EventType.CRISIS_MODE_TRIGGERED,
                    TriggerSource.TRIAGE,
                    answers.region_code
                ))
            except asyncio.CancelledError:
                raise
            except Exception as crisis_error:
                logger.error(f"Crisis activation failed: {type(crisis_error).__name__}")
            return TriageResult.for_level(RiskLevel.EMERGENCY, answers.region_code)

    async def _route_triage(self, answers: TriageAnswers) -> TriageResult:
        risk_level = classify(answers)
        result = TriageResult.for_level(risk_level, answers.region_code)

        if risk_level == RiskLevel.EMERGENCY:
            await self._activate_crisis(
                EventType.CRISIS_MODE_TRIGGERED,
                TriggerSource.TRIAGE,
                answers.region_code
            )
        else:
            await self._record(AuditEvent(
                event_type=EventType.TRIAGE_COMPLETED,
                risk_level=risk_level,
                region_code=answers.region_code,
                trigger_source=TriggerSource.TRIAGE
            ))

        logger.info(f"Triage routed: {risk_level.value}")
        return result

    def get_questions(self) -> List[Dict[str, Any]]:
        """Questionnaire items in display order."""
        return [q.to_dict() for q in TRIAGE_QUESTIONS]

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def route_chat(self, message: ChatMessage) -> ChatReply:
        """
        Route a chat message through the moderation gateway.

        Args:
            message: Validated user message

        Returns:
            ChatReply: Tagged reply; CRISIS replies never involve the assistant
        """
        try:
            return await asyncio.shield(self._route_chat(message))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Chat routing failed ({type(e).__name__}); returning emergency directive")
            return ChatReply(
                outcome=ChatOutcome.SOFT_BLOCK,
                content=EMERGENCY_DIRECTIVE,
                blocked=True,
                crisis_mode=False
            )

    async def _route_chat(self, message: ChatMessage) -> ChatReply:
        verdict = await self.gateway.screen(message)

        if verdict.crisis_signal:
            await self._activate_crisis(
                EventType.CRISIS_MODE_TRIGGERED_BY_MODERATION,
                TriggerSource.MODERATION,
                message.region_code,
                moderation_outcome=ModerationOutcome.FLAGGED
            )
        else:
            await self._record(AuditEvent(
                event_type=EventType.AI_ASSISTANT_USED,
                region_code=message.region_code,
                trigger_source=TriggerSource.MODERATION,
                moderation_outcome=self._moderation_outcome(verdict)
            ))

        reply = await self.gateway.respond(message, verdict)
        logger.info(f"Chat routed: {reply.outcome.value}")
        return reply

    @staticmethod
    def _moderation_outcome(verdict: ModerationVerdict) -> ModerationOutcome:
        if not verdict.available:
            return ModerationOutcome.UNAVAILABLE
        if not verdict.allowed:
            return ModerationOutcome.FLAGGED
        return ModerationOutcome.SAFE

    # ------------------------------------------------------------------
    # Resources and reporting
    # ------------------------------------------------------------------

    async def get_crisis_resources(self, region_code: Optional[str] = None) -> List[CrisisResource]:
        """
        Crisis resources for a region; records that they were opened.

        Raises:
            TriageValidationError: If ``region_code`` is not a two-letter code
        """
        region_code = normalize_region_code(region_code)
        await self._record(AuditEvent(
            event_type=EventType.RESOURCE_CLICKED,
            region_code=region_code,
            resource_type=ResourceType.CRISIS
        ))
        return self.resources.get_resources(region_code)

    async def audit_stats(self) -> AuditStats:
        """Aggregate audit counts for analytics consumers."""
        return await self.audit_sink.stats()

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    async def _activate_crisis(
        self,
        event_type: EventType,
        trigger_source: TriggerSource,
        region_code: Optional[str],
        moderation_outcome: Optional[ModerationOutcome] = None
    ) -> None:
        """Audit first, then hand the notice to the relay without waiting."""
        notify = self.relay.enabled
        event = AuditEvent(
            event_type=event_type,
            risk_level=RiskLevel.EMERGENCY,
            region_code=region_code,
            trigger_source=trigger_source,
            moderation_outcome=moderation_outcome,
            notified_owner=notify
        )

        await self._record(event)

        logger.critical(f"CRISIS_MODE_ACTIVATED source={trigger_source.value} event={event.id}")

        if notify:
            self.relay.submit(CrisisNotice(
                event_id=event.id,
                event_type=event.event_type,
                trigger_source=trigger_source,
                timestamp=event.created_at,
                region_code=region_code
            ))

    async def _record(self, event: AuditEvent) -> bool:
        """Write an audit event within the configured bound. Never raises."""
        try:
            await asyncio.wait_for(
                self.audit_sink.record(event),
                timeout=self.config.audit.write_timeout
            )
            return True
        except asyncio.TimeoutError:
            logger.error(
                f"Audit write timed out for {event.event_type.value} event {event.id}"
            )
        except Exception as e:
            logger.error(
                f"Audit write failed for {event.event_type.value} event {event.id}: {type(e).__name__}"
            )
        return False


async def main():
    """Run a short demonstration in mock mode."""
    router = CrisisRouter(mock_mode=True)
    await router.start()

    submissions = [
        {"immediate_danger": False, "harm_self": False, "harm_others": False,
         "need_help_soon": False, "need_help_today": False, "region_code": "CA"},
        {"immediate_danger": False, "harm_self": False, "harm_others": False,
         "need_help_soon": True, "need_help_today": False},
        {"immediate_danger": False, "harm_self": True, "harm_others": False,
         "need_help_soon": False, "need_help_today": False, "region_code": "NY"},
    ]
    for submission in submissions:
        result = await router.route_triage(submission)
        print(f"Triage -> {result.risk_level.value} (crisis_mode={result.crisis_mode})")

    for text in ["What is the difference between CBT and DBT?", "I want to end my life"]:
        reply = await router.route_chat(ChatMessage(role="user", content=text))
        print(f"Chat -> {reply.outcome.value}: {reply.content[:60]}")

    resources = await router.get_crisis_resources("NY")
    print(router.resources.format_resources_text(resources))
    stats = await router.audit_stats()
    print(stats.to_dict())

    await router.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
