"""
SMS orchestrator - one inbound message in, one reply out.

Pipeline: validate → context lookup → confirmation → classify → resolve
references → dispatch → merge context.
"""
import logging
import re
from dataclasses import replace
from typing import Optional, Tuple

from ..config import BookSmsConfig
from ..config_validator import mask_sender
from ..context import ContextStore, ConversationContext
from ..context.conversation_context import ConfirmationType
from ..exceptions import AmbiguousReferenceError, ValidationError
from ..handlers.base import HandlerResponse
from ..handlers.registry import HandlerRegistry
from ..interaction.classification import ClassificationResult
from ..interaction.intent_parameters import (
    AddBookParameters,
    BookParameters,
    IntentParameters,
    ReferenceParameters,
    SearchParameters,
)
from ..interaction.intent_types import Intent
from ..resolution.reference_resolver import (
    ReferenceResolver,
    ResolutionResult,
    ResolutionStatus,
    is_pronoun_reference,
)
from ..security.input_validator import InputValidator
from .twiml import format_twiml_response, split_sms

logger = logging.getLogger(__name__)

YES_PATTERN = re.compile(r"^(?:yes|y|yeah|yep|yup|sure|ok|okay|confirm)[.!]*$", re.IGNORECASE)
NO_PATTERN = re.compile(r"^(?:no|n|nope|nah|cancel)[.!]*$", re.IGNORECASE)
BARE_NUMBER = re.compile(r"^#?\s*(\d+)[.!]*$")

MAX_BARE_LIST_NUMBER = 5

CANCELLED_MESSAGE = "Ok, cancelled. What would you like to do instead?"
ERROR_MESSAGE = 'Sorry, something went wrong. Please try again or reply "help" for commands.'

# Intents whose missing slot is asked for and filled by the next message.
# The rest fall back to context (finish) or the handler's usage hint.
SLOT_FILL_INTENTS = {
    Intent.START_BOOK,
    Intent.BOOK_DETAILS,
    Intent.SEARCH_BOOK,
    Intent.ADD_BOOK,
}


def _require_resolved(result: ResolutionResult) -> ResolutionResult:
    if not result.resolved:
        raise AmbiguousReferenceError(result.status.value, result.message)
    return result


class SmsOrchestrator:
    """
    Runs the per-message pipeline and the confirmation state machine.

    States are IDLE and AWAITING_CONFIRMATION, the latter held in the
    sender's context (and so lost on TTL expiry).

    OOP: Single Responsibility - coordinates collaborators, owns no domain logic.
    """

    def __init__(
        self,
        context_store: ContextStore,
        classifier,
        resolver: ReferenceResolver,
        registry: HandlerRegistry,
        config: Optional[BookSmsConfig] = None,
    ):
        """
        Initialize orchestrator.

        :param context_store: Per-sender conversation context
        :param classifier: Object with async classify(text, context)
        :param resolver: Pronoun and list reference resolver
        :param registry: Intent -> handler registry
        :param config: Service configuration
        """
        self.context_store = context_store
        self.classifier = classifier
        self.resolver = resolver
        self.registry = registry
        self.config = config or BookSmsConfig()

    async def process_message(self, sender: str, text: str) -> HandlerResponse:
        """
        Process one inbound message.

        :param sender: Sender id, used verbatim as the context key
        :param text: Raw message body
        :return: HandlerResponse; never raises
        """
        try:
            return await self._process(sender, text)
        except Exception as e:
            logger.error(
                f"Failed to process message from {mask_sender(sender)}: {type(e).__name__}: {e}",
                exc_info=True,
            )
            return HandlerResponse(success=False, message=ERROR_MESSAGE)

    async def handle_inbound(self, sender: str, text: str) -> str:
        """
        Process a message and wrap the reply in TwiML.

        :return: TwiML document
        """
        response = await self.process_message(sender, text)
        if self.config.split_long_replies:
            return format_twiml_response(split_sms(response.message))
        return format_twiml_response(response.message)

    async def _process(self, sender: str, text: str) -> HandlerResponse:
        try:
            text = InputValidator.validate_message(text, self.config.max_message_length)
        except ValidationError as e:
            logger.info(f"Rejected message from {mask_sender(sender)}: {e}")
            return HandlerResponse(success=False, message=e.user_message)

        logger.info(f"Message from {mask_sender(sender)} ({len(text)} chars)")
        context = self.context_store.get(sender)

        if context is not None and context.awaiting_confirmation:
            response = await self._handle_confirmation_reply(sender, context, text)
            if response is not None:
                return response

        classification = await self.classifier.classify(text, context)
        intent, params = classification.intent, classification.parameters
        logger.debug(f"Classified as {intent.value} ({classification.confidence:.2f})")

        pending = self._fill_pending_slot(context, classification, text)
        if pending is not None:
            intent, params = pending
            logger.debug(f"Filled pending {intent.value} slot from reply")

        intent, params = self._promote_bare_number(intent, params, context, text)

        resolution = None
        try:
            if intent in (Intent.PRONOUN_REFERENCE, Intent.LIST_REFERENCE):
                resolution = self._resolve_reference(intent, params, context)
                intent = self._reference_action(params)
                params = BookParameters(book_id=resolution.book_id, book_title=resolution.book_title)
                logger.info(f"Reference resolved to book {resolution.book_id}; routing to {intent.value}")
            elif self._has_pronoun_title(params):
                resolution = _require_resolved(self.resolver.resolve_pronoun(params.book_title, context))
                params = replace(params, book_id=resolution.book_id, book_title=resolution.book_title)
        except AmbiguousReferenceError as e:
            return self._reference_failure(sender, intent, e)

        if self._should_ask(intent, classification, resolution, pending):
            self.context_store.update(
                sender,
                last_intent=intent.value,
                awaiting_more_info=True,
                awaiting_confirmation=False,
                confirmation_type=None,
            )
            return HandlerResponse(
                success=False,
                message=classification.follow_up_question,
                data={"needs_more_info": True, "intent": intent.value},
            )

        handler = self.registry.get(intent)
        logger.info(f"Dispatching {intent.value} to {type(handler).__name__}")
        response = await handler.handle(params, context)

        self._merge_context(sender, intent, response, resolution)
        return response

    async def _handle_confirmation_reply(
        self,
        sender: str,
        context: ConversationContext,
        text: str,
    ) -> Optional[HandlerResponse]:
        """
        Resolve a YES/NO reply to a pending confirmation.

        :return: Response, or None when the message is neither yes nor no
        """
        if NO_PATTERN.match(text):
            self.context_store.clear(sender)
            logger.info(f"Confirmation cancelled by {mask_sender(sender)}")
            return HandlerResponse(success=True, message=CANCELLED_MESSAGE)

        if not YES_PATTERN.match(text):
            return None

        if context.confirmation_type == ConfirmationType.FINISH_BOOK:
            intent = Intent.FINISH_BOOK
            params = BookParameters(
                book_id=context.last_book_id,
                book_title=context.last_book_title,
                confirmed=True,
            )
        elif context.confirmation_type == ConfirmationType.START_BOOK:
            intent = Intent.START_BOOK
            params = BookParameters(
                book_id=context.last_book_id,
                book_title=context.last_book_title,
                restart=True,
            )
        else:
            logger.warning(f"Confirmation pending without a type for {mask_sender(sender)}")
            self.context_store.update(sender, awaiting_confirmation=False, confirmation_type=None)
            return None

        logger.info(f"Confirmed {intent.value} for book {context.last_book_id}")
        response = await self.registry.get(intent).handle(params, context)

        updates = dict(response.updated_context or {})
        updates.update(
            last_intent=intent.value,
            awaiting_confirmation=False,
            confirmation_type=None,
            awaiting_more_info=False,
        )
        self.context_store.update(sender, updates)
        return response

    @staticmethod
    def _fill_pending_slot(
        context: Optional[ConversationContext],
        classification: ClassificationResult,
        text: str,
    ) -> Optional[Tuple[Intent, IntentParameters]]:
        """
        Treat an unrecognized reply to a follow-up question as the missing slot.

        "finish" → "Which book did you finish?" → "Dune" finishes Dune.
        """
        if context is None or not context.awaiting_more_info:
            return None
        if classification.intent != Intent.UNKNOWN:
            return None

        intent = Intent.from_value(context.last_intent)
        if intent not in SLOT_FILL_INTENTS:
            return None
        if intent == Intent.SEARCH_BOOK:
            return intent, SearchParameters(search_term=text)
        if intent == Intent.ADD_BOOK:
            return intent, AddBookParameters(title=text)
        return intent, BookParameters(book_title=text)

    @staticmethod
    def _should_ask(
        intent: Intent,
        classification: ClassificationResult,
        resolution: Optional[ResolutionResult],
        pending: Optional[Tuple[Intent, IntentParameters]],
    ) -> bool:
        if resolution is not None or pending is not None:
            return False
        if intent not in SLOT_FILL_INTENTS:
            return False
        return classification.needs_more_info and bool(classification.follow_up_question)

    @staticmethod
    def _promote_bare_number(
        intent: Intent,
        params: IntentParameters,
        context: Optional[ConversationContext],
        text: str,
    ) -> Tuple[Intent, IntentParameters]:
        """A bare 1-5 right after a result list picks from the list."""
        if intent == Intent.LIST_REFERENCE:
            return intent, params
        if context is None or not context.has_search_results():
            return intent, params

        match = BARE_NUMBER.match(text)
        if not match:
            return intent, params

        position = int(match.group(1))
        if not 1 <= position <= MAX_BARE_LIST_NUMBER:
            return intent, params

        return Intent.LIST_REFERENCE, ReferenceParameters(reference_text=match.group(1), position=position)

    def _resolve_reference(
        self,
        intent: Intent,
        params: IntentParameters,
        context: Optional[ConversationContext],
    ) -> ResolutionResult:
        reference_text = getattr(params, "reference_text", None)

        if intent == Intent.LIST_REFERENCE:
            position = getattr(params, "position", None)
            result = self.resolver.resolve_list_reference(reference_text or "", context)
            if result is None and position is not None:
                result = self.resolver.resolve_list_reference(str(position), context)
            if result is None:
                result = ResolutionResult(
                    status=ResolutionStatus.AMBIGUOUS,
                    message="Which result do you mean? Reply with its number.",
                )
            return _require_resolved(result)

        result = self.resolver.resolve_pronoun(reference_text or "", context)
        if result is None:
            result = self.resolver.resolve_pronoun("it", context)
        return _require_resolved(result)

    @staticmethod
    def _reference_action(params: IntentParameters) -> Intent:
        action = Intent.from_value(getattr(params, "action", None))
        if action in Intent.follow_up_intents() or action == Intent.UNKNOWN:
            return Intent.BOOK_DETAILS
        return action

    @staticmethod
    def _has_pronoun_title(params: IntentParameters) -> bool:
        title = getattr(params, "book_title", None)
        return bool(title) and hasattr(params, "book_id") and is_pronoun_reference(title)

    def _reference_failure(self, sender: str, intent: Intent, error: AmbiguousReferenceError) -> HandlerResponse:
        logger.info(f"Unresolved {intent.value} from {mask_sender(sender)}: {error.reason}")
        self.context_store.update(
            sender,
            last_intent=intent.value,
            awaiting_confirmation=False,
            confirmation_type=None,
            awaiting_more_info=False,
        )
        return HandlerResponse(
            success=False,
            message=error.user_message,
            data={"resolution": error.reason},
        )

    def _merge_context(
        self,
        sender: str,
        intent: Intent,
        response: HandlerResponse,
        resolution: Optional[ResolutionResult],
    ) -> None:
        updates = dict(response.updated_context or {})
        updates["last_intent"] = intent.value
        updates["awaiting_more_info"] = False
        if not updates.get("awaiting_confirmation"):
            updates["awaiting_confirmation"] = False
            updates["confirmation_type"] = None

        if resolution is not None and resolution.resolved:
            updates["last_book_id"] = resolution.book_id
            updates["last_book_title"] = resolution.book_title

        self.context_store.update(sender, updates)
