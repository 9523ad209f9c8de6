"""Conversation orchestration: toggles, single-flight turns and the message timeline.

The orchestrator is the only writer of the timeline. It runs in one event loop;
a turn holds the busy flag from the moment it is accepted until its pathway
resolves, and a send attempted meanwhile is dropped rather than queued.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import os
import time
from typing import Callable, Dict, List, Optional, Set

from models.media import AttachedFile, Location
from models.message import ASPECT_RATIOS, ASSISTANT, USER, Message
from models.request_config import (
    DEFAULT_CHAT_MODEL,
    IMAGE_EDIT_MODEL,
    IMAGE_GENERATION,
    RequestConfig,
    get_model_profile,
)
from models.session_models import ToggleState
from services.chat.config_builder import build_request_config
from services.chat.dispatch import Pathway, select_pathway
from services.chat.errors import MissingEditImageError, ProviderNotReadyError
from services.chat.pathways import ImageEditPathway, ImageGenerationPathway, StreamingChatPathway, Turn
from services.chat.prompts import IMAGE_EDIT_KIND, IMAGE_GENERATION_KIND
from services.chat.session_store import SessionStore, history_from_messages
from services.chat.suggestions import SuggestionPipeline
from utils.media_codec import data_url_to_file, file_to_inline_part, inline_part_to_data_url

LOGGER = logging.getLogger(__name__)

ERROR_MESSAGE = os.getenv(
    "CHAT_ERROR_MESSAGE",
    "Sorry, something went wrong while processing your request. Please try again.",
)
MISSING_IMAGE_MESSAGE = "Attach an image to edit, or generate one first."

SUGGESTION_KINDS = {
    Pathway.IMAGE_EDIT: IMAGE_EDIT_KIND,
    Pathway.IMAGE_GENERATION: IMAGE_GENERATION_KIND,
}

Listener = Callable[[List[Dict[str, object]]], None]


class ConversationOrchestrator:
    """Run user turns against the selected model and keep the timeline current.

    Args:
        provider: Model provider client, or None when it failed to initialize.
        store: Session store that persists the timeline.
        model: Initially selected model.
        suggestion_pipeline: Optional override for post-image suggestions.
        error_message: Apology shown when a turn fails.
    """

    def __init__(
        self,
        provider,
        store: SessionStore,
        *,
        model: str = DEFAULT_CHAT_MODEL,
        suggestion_pipeline: Optional[SuggestionPipeline] = None,
        error_message: str = ERROR_MESSAGE,
    ) -> None:
        self.provider = provider
        self.store = store
        self.error_message = error_message
        self.toggles = ToggleState(model=model)
        self.aspect_ratio = ASPECT_RATIOS[0]
        self.location: Optional[Location] = None
        self.messages: List[Message] = []
        self.is_loading = False
        self.staged_file: Optional[AttachedFile] = None
        self.last_generated_image: Optional[str] = None
        self.suggestions = suggestion_pipeline or SuggestionPipeline(provider)
        self.pathways = {
            Pathway.IMAGE_EDIT: ImageEditPathway(provider),
            Pathway.IMAGE_GENERATION: ImageGenerationPathway(provider),
            Pathway.STREAMING_CHAT: StreamingChatPathway(),
        }
        self.chat_session = None
        self._session_stale = False
        self._listeners: List[Listener] = []
        self._background: Set[asyncio.Task] = set()
        self._rebuild_chat_session()

    @property
    def model(self) -> str:
        return self.toggles.model

    # -- observers -----------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback receiving a timeline snapshot after every change."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener) if listener in self._listeners else None

    def snapshot(self) -> List[Dict[str, object]]:
        return [msg.to_dict() for msg in self.messages]

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                LOGGER.exception("Timeline listener failed")

    # -- configuration -------------------------------------------------------

    def request_config(self) -> RequestConfig:
        return build_request_config(self.model, self.toggles, self.location)

    def _rebuild_chat_session(self, history: Optional[List[Dict[str, str]]] = None) -> None:
        """Discard the chat session and create a fresh one for the current configuration."""
        self._session_stale = False
        if self.provider is None or not get_model_profile(self.model).is_chat:
            self.chat_session = None
            return
        if history is None:
            history = history_from_messages(self.messages)
        self.chat_session = self.provider.create_chat_session(self.model, self.request_config(), history)

    def _configuration_changed(self) -> None:
        # The in-flight turn keeps its own session; replace it once the turn ends.
        if self.is_loading:
            self._session_stale = True
        else:
            self._rebuild_chat_session()

    def set_reasoning(self, enabled: bool) -> None:
        self.toggles.set_reasoning(enabled)
        self._configuration_changed()

    def set_turbo(self, enabled: bool) -> None:
        self.toggles.set_turbo(enabled)
        self._configuration_changed()

    def set_search(self, enabled: bool) -> None:
        self.toggles.set_search(enabled)
        self._configuration_changed()

    def set_location(self, location: Optional[Location]) -> None:
        self.location = location
        self._configuration_changed()

    def set_aspect_ratio(self, ratio: str) -> None:
        if ratio not in ASPECT_RATIOS:
            raise ValueError(f"Unsupported aspect ratio: {ratio}")
        self.aspect_ratio = ratio

    def _switch_model(self, model: str) -> None:
        """Select `model` and clear the toggles it cannot honour."""
        profile = get_model_profile(model)
        self.toggles.model = model
        if not profile.is_chat:
            self.toggles.set_search(False)
        if not profile.supports_reasoning:
            self.toggles.set_reasoning(False)
            self.toggles.set_turbo(False)

    def set_model(self, model: str) -> bool:
        """Switch models, starting a fresh, unsaved conversation.

        Returns False if a turn is in flight.
        """
        if self.is_loading:
            return False
        if model == self.model:
            return True
        self.messages = []
        self.staged_file = None
        self.last_generated_image = None
        self.store.clear_active()
        self._switch_model(model)
        self._rebuild_chat_session([])
        self._notify()
        return True

    # -- attachments ---------------------------------------------------------

    def stage_attachment(self, file: AttachedFile) -> bool:
        """Stage a user file for the next turn; it replaces the continuity image.

        Returns False if a turn is in flight.
        """
        if self.is_loading:
            return False
        self.staged_file = file
        self.last_generated_image = None
        return True

    def clear_staged_attachment(self) -> bool:
        if self.is_loading:
            return False
        self.staged_file = None
        return True

    def stage_image_for_editing(self, image_url: str) -> bool:
        """Stage a generated image as the next attachment and switch to the edit model."""
        if self.is_loading:
            return False
        self.staged_file = data_url_to_file(image_url, f"edit-{int(time.time() * 1000)}.png")
        self._switch_model(IMAGE_EDIT_MODEL)
        self.last_generated_image = None
        self._rebuild_chat_session()
        return True

    # -- sessions ------------------------------------------------------------

    def new_chat(self) -> bool:
        if self.is_loading:
            return False
        self.messages = []
        self.store.clear_active()
        self.staged_file = None
        self.last_generated_image = None
        self._rebuild_chat_session([])
        self._notify()
        return True

    def load_session(self, session_id: str) -> Optional[List[Dict[str, str]]]:
        """Make a stored session active and return the history the provider sees.

        Returns None for an unknown id or while a turn is in flight.
        """
        if self.is_loading:
            return None
        session = self.store.activate(session_id)
        if session is None:
            return None
        self.messages = copy.deepcopy(session.messages)
        history = history_from_messages(self.messages)
        self._rebuild_chat_session(history)
        self._notify()
        return history

    # -- turns ---------------------------------------------------------------

    def _failure_text(self, partial: str, reason: str) -> str:
        partial = (partial or "").strip()
        return f"{partial}\n\n{reason}" if partial else reason

    async def send(self, text: str, attachment: Optional[AttachedFile] = None) -> Optional[Message]:
        """Run one user turn.

        Returns the finished assistant message, or None if the send was dropped
        because a turn is already in flight or there is nothing to send.
        """
        attachment = attachment or self.staged_file
        if self.is_loading or (not text.strip() and attachment is None):
            return None
        self.is_loading = True

        model = self.model
        config = self.request_config()
        user_message = Message(sender=USER, text=text)
        reply = Message(
            sender=ASSISTANT,
            is_streaming=True,
            model_used=model,
            status_label="Initializing...",
            reasoning_mode=config.tagged_reasoning,
            reasoning_text="" if config.tagged_reasoning else None,
            aspect_ratio=self.aspect_ratio if get_model_profile(model).kind == IMAGE_GENERATION else None,
        )
        self.messages.extend([user_message, reply])
        self._notify()

        continuity = None if attachment is not None else self.last_generated_image
        self.staged_file = None

        try:
            inline = None
            if attachment is not None:
                inline = file_to_inline_part(attachment)
                user_message.attached_image_url = inline_part_to_data_url(inline)
            if self.provider is None:
                raise ProviderNotReadyError("Model provider client is not initialized.")
            pathway = select_pathway(model, has_attachment=inline is not None, has_prior_generated_image=bool(continuity))
            turn = Turn(
                text=text,
                model=model,
                toggles=copy.copy(self.toggles),
                config=config,
                attachment=inline,
                continuity_image_url=continuity,
                aspect_ratio=self.aspect_ratio,
                chat_session=self.chat_session,
            )
            await self.pathways[pathway].run(turn, reply, self._notify)
            if reply.generated_image_url:
                self.last_generated_image = reply.generated_image_url
            if pathway in SUGGESTION_KINDS:
                self._schedule_suggestions(text, SUGGESTION_KINDS[pathway], reply)
        except MissingEditImageError:
            reply.text = MISSING_IMAGE_MESSAGE
        except Exception:
            LOGGER.exception("Generation error on %s", model)
            reply.text = self._failure_text(reply.text, self.error_message)
        finally:
            reply.is_streaming = False
            reply.status_label = None
            self.is_loading = False
            if self._session_stale:
                self._rebuild_chat_session()
            self._notify()
            self.store.record_turn(self.messages)
        return reply

    # -- background suggestions ---------------------------------------------

    def _schedule_suggestions(self, prompt: str, kind: str, message: Message) -> None:
        task = asyncio.get_running_loop().create_task(self._attach_suggestions(prompt, kind, message))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _attach_suggestions(self, prompt: str, kind: str, message: Message) -> None:
        suggestions = await self.suggestions.suggest(prompt, kind)
        if not suggestions or not any(msg is message for msg in self.messages):
            return
        message.suggestions = suggestions
        self._notify()
        if not self.is_loading:
            self.store.record_turn(self.messages)

    async def wait_for_background(self) -> None:
        """Wait until pending suggestion calls have finished."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
