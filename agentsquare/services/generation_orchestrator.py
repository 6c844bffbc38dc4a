"""Generation orchestrator: the per-message pipeline.

States: received -> user-turn-saved -> policy-check -> generating ->
uploading -> persisted -> done, with ``failed`` reachable from any step.

``prepare`` performs every check that rejects a request before anything
is persisted and resolves the requesting user. ``run`` executes the rest
of the pipeline, reporting progress through an EventChannel. Once the
user turn exists, every failure leaves a visible agent turn in history
and a distinct ``error`` event.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from agentsquare.db.models import Agent, Message
from agentsquare.errors import AgentSquareError
from agentsquare.services.config_resolver import ConfigurationResolver
from agentsquare.services.errors import ExternalServiceError
from agentsquare.services.event_channel import EventChannel
from agentsquare.services.generation_adapter import GenerationAdapter
from agentsquare.services.geolocation import GeolocationAdapter
from agentsquare.services.hosting_adapter import HostingAdapter
from agentsquare.services.message_repository import MessageRepository
from agentsquare.services.policy_gate import ContentPolicyGate, precheck
from agentsquare.services.prompt_builder import build_generation_messages
from agentsquare.services.summarization import SummarizationAdapter, truncated_caption
from agentsquare.services.user_service import UserService

logger = logging.getLogger(__name__)

DEFAULT_REFERENCE_IMAGE_CAP = 5
FAILURE_PREFIX = "⚠️ Generation failed: "
PROCESSING_MESSAGE = "Creating your image..."
TOTAL_STEPS = 8


@dataclass(frozen=True)
class AgentSnapshot:
    """Detached copy of the agent fields the pipeline needs."""

    id: str
    name: str
    avatar: str | None
    system_prompt: str
    policy_prompt: str | None

    @classmethod
    def from_model(cls, agent: Agent) -> "AgentSnapshot":
        return cls(
            id=agent.id,
            name=agent.name,
            avatar=agent.avatar,
            system_prompt=agent.system_prompt,
            policy_prompt=agent.policy_prompt,
        )


@dataclass
class SubmitRequest:
    """A chat message as received from the client."""

    agent_id: str
    content: str | None
    client_ip: str
    reference_images: list[str] = field(default_factory=list)
    publish_to_square: bool = False


@dataclass
class PreparedGeneration:
    """A request that passed validation, bound to its agent and user."""

    agent: AgentSnapshot
    user_id: str
    content: str
    reference_images: list[str]
    publish_to_square: bool


def reference_image_cap(min_reference_images: int) -> int:
    """Most reference images accepted per request."""
    return max(min_reference_images, DEFAULT_REFERENCE_IMAGE_CAP)


def _timestamp(message: Message) -> str:
    return message.created_at


class GenerationOrchestrator:
    """Sequences validation, persistence, policy checks and external calls.

    Args:
        session_factory: Opens the sessions used for persistence. The
            pipeline outlives the HTTP request, so it never borrows the
            request-scoped session.
        resolver: Configuration resolver (defaults to one on session_factory).
        policy_gate, generator, summarizer, hoster, geolocator: Service
            adapters; defaults talk to the real endpoints.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        resolver: ConfigurationResolver | None = None,
        policy_gate: ContentPolicyGate | None = None,
        generator: GenerationAdapter | None = None,
        summarizer: SummarizationAdapter | None = None,
        hoster: HostingAdapter | None = None,
        geolocator: GeolocationAdapter | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._resolver = resolver or ConfigurationResolver(session_factory)
        self._policy_gate = policy_gate or ContentPolicyGate()
        self._generator = generator or GenerationAdapter()
        self._summarizer = summarizer or SummarizationAdapter()
        self._hoster = hoster or HostingAdapter()
        self._geolocator = geolocator or GeolocationAdapter()

    # ------------------------------------------------------------------
    # Pre-stream validation
    # ------------------------------------------------------------------

    async def prepare(self, db: Session, request: SubmitRequest) -> PreparedGeneration:
        """Validate a submission and resolve its user.

        Nothing is persisted when this raises.

        Raises:
            AgentSquareError: VALIDATION_ERROR, CONTENT_BLOCKED, NOT_FOUND,
                CONTENT_TOO_SHORT or REFERENCE_IMAGE_REQUIRED.
        """
        content = request.content
        if not isinstance(content, str) or not content.strip():
            raise AgentSquareError.from_code(
                "VALIDATION_ERROR", reason="Message content must not be empty."
            )

        verdict = precheck(content)
        if not verdict.allowed:
            raise AgentSquareError.from_code("CONTENT_BLOCKED", reason=verdict.reason)

        agent = db.get(Agent, request.agent_id)
        if agent is None or not agent.is_active:
            raise AgentSquareError.from_code("NOT_FOUND", resource="Agent")

        if agent.min_content_length > 0 and len(content.strip()) < agent.min_content_length:
            raise AgentSquareError.from_code(
                "CONTENT_TOO_SHORT", minimum=agent.min_content_length
            )

        images = [image for image in request.reference_images if isinstance(image, str) and image]
        if agent.min_reference_images > 0 and 0 < len(images) < agent.min_reference_images:
            raise AgentSquareError.from_code(
                "REFERENCE_IMAGE_REQUIRED", minimum=agent.min_reference_images
            )
        cap = reference_image_cap(agent.min_reference_images)
        if len(images) > cap:
            logger.info("Dropping %d reference images beyond cap %d", len(images) - cap, cap)
            images = images[:cap]

        timeouts = self._resolver.timeouts()

        async def nickname_for(ip: str) -> str:
            return await self._geolocator.nickname_for(ip, timeouts.geolocation)

        user = await UserService(db).get_or_create(request.client_ip, nickname_for)

        return PreparedGeneration(
            agent=AgentSnapshot.from_model(agent),
            user_id=user.id,
            content=content,
            reference_images=images,
            publish_to_square=bool(request.publish_to_square),
        )

    # ------------------------------------------------------------------
    # Streamed pipeline
    # ------------------------------------------------------------------

    def _step(self, channel: EventChannel, number: int, label: str, **detail: Any) -> None:
        step = f"{number}/{TOTAL_STEPS}"
        logger.info("step %s %s %s", step, label, detail or "")
        channel.send("step", {"step": step, "label": label, **detail})

    def _persist_user_turn(self, prepared: PreparedGeneration) -> Message:
        db = self._session_factory()
        try:
            turn = MessageRepository(db).append_user_turn(
                user_id=prepared.user_id,
                agent_id=prepared.agent.id,
                content=prepared.content,
                reference_images=prepared.reference_images,
                publish_to_square=prepared.publish_to_square,
            )
            db.commit()
            db.refresh(turn)
            db.expunge(turn)
            return turn
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _persist_agent_turn(
        self,
        prepared: PreparedGeneration,
        *,
        content: str,
        image_data: str | None,
        generation_time: int,
        user_message_id: str | None,
        publish_to_square: bool,
    ) -> Message:
        db = self._session_factory()
        try:
            turn = MessageRepository(db).append_agent_turn(
                user_id=prepared.user_id,
                agent_id=prepared.agent.id,
                content=content,
                image_data=image_data,
                generation_time=generation_time,
                user_message_id=user_message_id,
                publish_to_square=publish_to_square,
                reference_images=prepared.reference_images if image_data else None,
            )
            db.commit()
            db.refresh(turn)
            db.expunge(turn)
            return turn
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    async def _rehost(self, image_reference: str) -> str:
        """Upload to the image host, falling back to the original reference."""
        config = self._resolver.hosting()
        if not config.is_configured:
            logger.info("Image host not configured, keeping original image reference")
            return image_reference
        try:
            return await self._hoster.rehost(
                config, image_reference, self._resolver.timeouts().hosting
            )
        except ExternalServiceError as e:
            logger.warning("Image re-hosting failed, keeping original reference: %s", e)
            return image_reference
        except Exception:
            logger.warning(
                "Unexpected image re-hosting error, keeping original reference", exc_info=True
            )
            return image_reference

    async def run(self, prepared: PreparedGeneration, channel: EventChannel) -> None:
        """Execute the pipeline for a prepared request and close ``channel``.

        Never raises for request-level failures; they are reported through
        the channel and persisted as a failure turn.
        """
        started = time.monotonic()
        user_turn: Message | None = None
        summary_task: asyncio.Task | None = None
        try:
            user_turn = self._persist_user_turn(prepared)
            channel.send(
                "user-message",
                {
                    "id": user_turn.id,
                    "content": user_turn.content,
                    "referenceImages": user_turn.reference_images,
                    "timestamp": _timestamp(user_turn),
                },
            )
            self._step(channel, 1, "user turn saved", messageId=user_turn.id)

            channel.send("generating", {"status": "processing", "message": PROCESSING_MESSAGE})
            self._step(channel, 2, "processing")

            image_config = self._resolver.image()
            moderation_config = self._resolver.moderation()
            timeouts = self._resolver.timeouts()
            if not image_config.is_complete:
                raise AgentSquareError.from_code("CONFIG_MISSING", service="image generation")
            self._step(channel, 3, "configuration resolved")

            prompt = build_generation_messages(
                prepared.agent.system_prompt, prepared.content, prepared.reference_images
            )
            summary_task = asyncio.create_task(
                self._summarizer.summarize(moderation_config, prepared.content, timeouts.auxiliary)
            )
            self._step(channel, 4, "prompt built, summary started")

            verdict = await self._policy_gate.audit(
                moderation_config,
                prepared.content,
                len(prepared.reference_images),
                prepared.agent.policy_prompt,
                timeout=timeouts.auxiliary,
                fail_mode=self._resolver.moderation_fail_mode(),
            )
            if not verdict.allowed:
                logger.info("Moderation blocked message %s", user_turn.id)
                channel.send("error", {"code": "CONTENT_BLOCKED", "message": verdict.reason})
                return
            self._step(channel, 5, "moderation passed")

            generation_task = asyncio.create_task(
                self._generator.generate(image_config, prompt, timeouts.generation)
            )
            generation, caption = await asyncio.gather(
                generation_task, summary_task, return_exceptions=True
            )
            if isinstance(generation, BaseException):
                raise generation
            if isinstance(caption, BaseException):
                logger.warning("Summary task failed, using truncated caption: %r", caption)
                caption = truncated_caption(prepared.content)
            self._step(channel, 6, "image generated", generationTime=generation.elapsed_ms)

            image_data = await self._rehost(generation.image_reference)
            self._step(channel, 7, "image hosted", rehosted=image_data != generation.image_reference)

            agent_turn = self._persist_agent_turn(
                prepared,
                content=caption,
                image_data=image_data,
                generation_time=generation.elapsed_ms,
                user_message_id=user_turn.id,
                publish_to_square=prepared.publish_to_square,
            )
            self._step(channel, 8, "agent turn saved", messageId=agent_turn.id)

            channel.send(
                "ai-message",
                {
                    "id": agent_turn.id,
                    "content": agent_turn.content,
                    "imageData": agent_turn.image_data,
                    "timestamp": _timestamp(agent_turn),
                },
            )
            channel.send(
                "done",
                {
                    "generationTime": generation.elapsed_ms,
                    "totalTime": int((time.monotonic() - started) * 1000),
                },
            )
        except Exception as e:
            self._fail(prepared, channel, e, started, user_turn)
        finally:
            if summary_task is not None and not summary_task.done():
                summary_task.cancel()
            channel.close()

    def _fail(
        self,
        prepared: PreparedGeneration,
        channel: EventChannel,
        error: Exception,
        started: float,
        user_turn: Message | None,
    ) -> None:
        """Persist a visible failure turn and emit the error event."""
        if isinstance(error, (AgentSquareError, ExternalServiceError)):
            code, message = error.code, error.message
            logger.warning("Generation failed for agent %s: [%s] %s", prepared.agent.id, code, message)
        else:
            code, message = "INTERNAL_ERROR", "An unexpected error occurred."
            logger.exception("Unexpected generation failure for agent %s", prepared.agent.id)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        try:
            failure_turn = self._persist_agent_turn(
                prepared,
                content=f"{FAILURE_PREFIX}{message}",
                image_data=None,
                generation_time=elapsed_ms,
                user_message_id=user_turn.id if user_turn is not None else None,
                publish_to_square=False,
            )
        except Exception:
            logger.exception("Could not persist failure turn for agent %s", prepared.agent.id)
        else:
            channel.send(
                "ai-message",
                {
                    "id": failure_turn.id,
                    "content": failure_turn.content,
                    "imageData": None,
                    "timestamp": _timestamp(failure_turn),
                },
            )
        channel.send("error", {"code": code, "message": message})
