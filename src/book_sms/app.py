"""
Public application facade for the SMS book service.

This is the single stable entry point for the library.
All internal structure can change freely, but this API remains stable.
"""
import logging
from datetime import date
from typing import Callable, Optional

from .config import BookSmsConfig
from .context import ContextStore
from .exceptions import ConfigurationError
from .handlers import HandlerResponse, build_default_registry
from .interaction import AIClassifier, LangChainCompletionService, PatternClassifier
from .llm_factory import get_llm_instance
from .orchestration import SmsOrchestrator
from .resolution import ReferenceResolver
from .storage import BookLibraryLoader, BookStorage, InMemoryBookStorage

logger = logging.getLogger(__name__)


class BookSmsApp:
    """
    Public application facade for the SMS book service.

    All dependency wiring is encapsulated here.

    Usage:
        config = load_config_from_env()
        app = BookSmsApp(config)
        app.initialize()
        twiml = await app.handle_inbound("+15551234567", "page 150")
    """

    def __init__(
        self,
        config: BookSmsConfig,
        storage: Optional[BookStorage] = None,
        llm=None,
        today: Callable[[], date] = date.today,
    ):
        """
        Initialize the application facade.

        :param config: BookSmsConfig instance
        :param storage: Book storage; defaults to in-memory, seeded from config.library_path
        :param llm: Chat model for the AI classifier; built from config when None
        :param today: Returns the current date
        """
        self._config = config
        self._storage = storage
        self._llm = llm
        self._today = today
        self._orchestrator: Optional[SmsOrchestrator] = None

    def initialize(self) -> None:
        """
        Wire storage, context store, classifiers, resolver and handlers.

        Call this once before processing messages.
        """
        if self._orchestrator:
            return

        if self._storage is None:
            self._storage = self._create_storage()

        context_store = ContextStore(ttl_seconds=self._config.context_ttl_seconds)

        completion_service = None
        llm = self._llm if self._llm is not None else self._create_llm()
        if llm is not None:
            completion_service = LangChainCompletionService(
                llm,
                timeout_seconds=self._config.ai_timeout_seconds,
                max_retries=self._config.ai_max_retries,
            )

        classifier = AIClassifier(
            pattern_classifier=PatternClassifier(),
            completion_service=completion_service,
            confidence_threshold=self._config.ai_confidence_threshold,
        )

        registry = build_default_registry(
            self._storage,
            page_size=self._config.results_page_size,
            today=self._today,
        )

        self._orchestrator = SmsOrchestrator(
            context_store=context_store,
            classifier=classifier,
            resolver=ReferenceResolver(),
            registry=registry,
            config=self._config,
        )
        logger.info(f"Book SMS app initialized (AI classifier: {'on' if completion_service else 'off'})")

    @property
    def orchestrator(self) -> SmsOrchestrator:
        if not self._orchestrator:
            raise RuntimeError("App not initialized. Call initialize() first.")
        return self._orchestrator

    @property
    def storage(self) -> Optional[BookStorage]:
        return self._storage

    async def process_message(self, sender: str, text: str) -> HandlerResponse:
        """
        Process one inbound message.

        :raises: RuntimeError if initialize() has not been called
        """
        return await self.orchestrator.process_message(sender, text)

    async def handle_inbound(self, sender: str, text: str) -> str:
        """
        Process one inbound message and return the TwiML reply.

        :raises: RuntimeError if initialize() has not been called
        """
        return await self.orchestrator.handle_inbound(sender, text)

    def _create_storage(self) -> BookStorage:
        books = []
        if self._config.library_path:
            books = BookLibraryLoader(self._config.library_path).load_books()
            logger.info(f"Loaded {len(books)} books from {self._config.library_path}")
        return InMemoryBookStorage(books)

    def _create_llm(self):
        if not self._config.enable_ai_classifier:
            return None
        try:
            return get_llm_instance(
                provider=self._config.llm_provider,
                model=self._config.llm_model,
                temperature=self._config.llm_temperature,
                max_tokens=self._config.llm_max_tokens,
                timeout=self._config.ai_timeout_seconds,
            )
        except ConfigurationError as e:
            logger.warning(f"AI classifier disabled: {e}")
            return None
