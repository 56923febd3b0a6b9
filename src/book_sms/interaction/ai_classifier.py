"""
AI-augmented intent classifier.

Pattern classification first; the AI collaborator is consulted only when the
patterns are not confident. When the AI fails, or none is configured, an
unsure pattern result comes back at a fixed fallback confidence.
"""
import json
import logging
import re
from dataclasses import replace
from typing import Optional

from ..context import ConversationContext
from .ai_service import AICompletionService
from .classification import ClassificationResult, is_confident, missing_slot_question, with_follow_up
from .intent_parameters import NoParameters, parameters_for
from .intent_types import Intent
from .pattern_classifier import PatternClassifier
from .prompts import (
    CLASSIFICATION_SYSTEM_PROMPT,
    CLASSIFICATION_USER_PROMPT,
    CONTEXT_BLOCK,
    PENDING_INTENT_BLOCK,
)

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.6
UNKNOWN_AI_INTENT_CONFIDENCE = 0.3

_FENCE_PATTERN = re.compile(r"^\s*```(?:json|JSON)?\s*(.*?)\s*```\s*$", re.DOTALL)

# Phrasings common enough that paying for a model call is never worth it.
QUICK_PATTERNS = (
    (re.compile(r"^(?:help|\?|commands|menu)$"), Intent.HELP),
    (re.compile(r"^(?:next|more|show more|more results|continue|next page)$"), Intent.NEXT_PAGE),
    (re.compile(r"^(?:previous|prev|back|previous page)$"), Intent.PREVIOUS_PAGE),
    (re.compile(r"^(?:page|pg\.?|p\.)\s*\d+$"), Intent.UPDATE_PROGRESS),
    (re.compile(r"^\d+(?:\.\d+)?\s*%$"), Intent.UPDATE_PROGRESS),
    (re.compile(r"^(?:stats|statistics)$"), Intent.GET_STATS),
    (re.compile(r"^(?:status|progress)$"), Intent.GET_STATUS),
    (re.compile(r"^(?:what am i reading|currently reading|reading)\??$"), Intent.LIST_READING),
)


class AIResponseError(ValueError):
    """AI reply could not be decoded or did not match the schema."""


class AIClassifier:
    """
    Classifier that escalates low-confidence messages to an AI model.

    Cost-control policy: the model is called only when the service is
    available AND neither quick_check nor the pattern classifier resolves
    the message with at least confidence_threshold.
    """

    def __init__(
        self,
        pattern_classifier: Optional[PatternClassifier] = None,
        completion_service: Optional[AICompletionService] = None,
        confidence_threshold: float = 0.7,
    ):
        """
        :param pattern_classifier: Deterministic classifier (default: new PatternClassifier)
        :param completion_service: AI collaborator; None disables the AI path
        :param confidence_threshold: Pattern confidence at or above which AI is skipped
        """
        self.pattern_classifier = pattern_classifier or PatternClassifier()
        self.completion_service = completion_service
        self.confidence_threshold = confidence_threshold

    def quick_check(self, text: str) -> Intent:
        """
        Cheap local pre-classification of very common messages.

        :return: Intent, or UNKNOWN when no quick pattern applies
        """
        normalized = (text or "").strip().lower()
        for pattern, intent in QUICK_PATTERNS:
            if pattern.match(normalized):
                return intent
        return Intent.UNKNOWN

    def ai_available(self) -> bool:
        return self.completion_service is not None and self.completion_service.is_available()

    def should_use_ai(self, text: str) -> bool:
        """True when the AI should be consulted for this message."""
        return self._needs_ai(text, self.pattern_classifier.classify(text))

    def _needs_ai(self, text: str, pattern_result: ClassificationResult) -> bool:
        if not self.ai_available():
            return False
        if not (text or "").strip():
            return False
        if self.quick_check(text) != Intent.UNKNOWN:
            return False
        return not is_confident(pattern_result, self.confidence_threshold)

    async def classify(
        self,
        text: str,
        context: Optional[ConversationContext] = None,
    ) -> ClassificationResult:
        """
        Classify a message, escalating to the AI model when needed.

        :param text: Raw message text
        :param context: Sender's context, used to enrich the AI prompt
        :return: ClassificationResult
        """
        pattern_result = self.pattern_classifier.classify(text)

        if self._needs_ai(text, pattern_result):
            result = await self._classify_with_ai(text, context, pattern_result)
        elif not self.ai_available() and not is_confident(pattern_result, self.confidence_threshold):
            # No model configured: an unsure pattern result gets the fallback confidence
            result = self._fallback(pattern_result)
        else:
            result = pattern_result

        return with_follow_up(result)

    async def _classify_with_ai(
        self,
        text: str,
        context: Optional[ConversationContext],
        pattern_result: ClassificationResult,
    ) -> ClassificationResult:
        try:
            raw = await self.completion_service.complete(
                CLASSIFICATION_SYSTEM_PROMPT,
                self._build_user_prompt(text, context),
            )
            result = self.parse_response(raw, text)
        except Exception as e:
            logger.warning(f"AI classification failed, using pattern result: {type(e).__name__}: {e}")
            return self._fallback(pattern_result)

        logger.info(f"AI classified message as {result.intent.value} ({result.confidence:.2f})")
        return result

    @staticmethod
    def _fallback(pattern_result: ClassificationResult) -> ClassificationResult:
        if pattern_result.intent == Intent.UNKNOWN:
            return pattern_result
        return replace(pattern_result, confidence=FALLBACK_CONFIDENCE)

    @staticmethod
    def _build_user_prompt(text: str, context: Optional[ConversationContext]) -> str:
        context_block = ""
        if context is not None:
            if context.last_book_title:
                context_block += CONTEXT_BLOCK.format(last_book_title=context.last_book_title)
            if context.awaiting_more_info and context.last_intent:
                context_block += PENDING_INTENT_BLOCK.format(last_intent=context.last_intent)
            if context_block:
                context_block += "\n"
        return CLASSIFICATION_USER_PROMPT.format(context_block=context_block, message=text.strip())

    def parse_response(self, raw: str, text: str) -> ClassificationResult:
        """
        Decode and validate an AI reply.

        :param raw: Model output; JSON, optionally inside markdown fences
        :param text: Original message
        :return: ClassificationResult
        :raises AIResponseError: On undecodable or schema-invalid replies
        """
        payload = self._decode(raw)

        intent = Intent.from_value(payload.get("intent"))
        if intent == Intent.UNKNOWN:
            return ClassificationResult(
                intent=Intent.UNKNOWN,
                confidence=UNKNOWN_AI_INTENT_CONFIDENCE,
                parameters=NoParameters(),
                raw_message=text,
            )

        confidence = payload.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            raise AIResponseError(f"Non-numeric confidence: {confidence!r}")
        confidence = min(1.0, max(0.0, float(confidence)))

        raw_parameters = payload.get("parameters")
        if not isinstance(raw_parameters, dict):
            raw_parameters = {}
        parameters = parameters_for(intent, raw_parameters)

        question = missing_slot_question(intent, parameters)
        return ClassificationResult(
            intent=intent,
            confidence=confidence,
            parameters=parameters,
            raw_message=text,
            needs_more_info=question is not None,
            follow_up_question=question,
        )

    @staticmethod
    def _decode(raw: str) -> dict:
        if not isinstance(raw, str) or not raw.strip():
            raise AIResponseError("Empty AI response")

        body = raw.strip()
        fenced = _FENCE_PATTERN.match(body)
        if fenced:
            body = fenced.group(1)

        try:
            payload = json.loads(body)
        except json.JSONDecodeError as e:
            raise AIResponseError(f"AI response is not JSON: {e}") from e

        if not isinstance(payload, dict):
            raise AIResponseError("AI response is not a JSON object")
        return payload
