from typing import Optional

from ..context import ConversationContext
from ..interaction.intent_parameters import HelpParameters, IntentParameters
from .base import BaseHandler, HandlerResponse

HELP_SECTIONS = {
    "main": "\n".join([
        "Commands:",
        "SEARCH [term] - Find books",
        "ADD [title] by [author] - Add book",
        "START [title] - Begin reading",
        "PAGE [#] - Update progress",
        "FINISH [title] - Mark complete",
        "STATS - Your reading stats",
        "RECOMMEND - Get suggestions",
        "READING - Current books",
        "HELP [topic] - More info",
    ]),
    "search": "\n".join([
        "Search commands:",
        "SEARCH [term] - Title, author or genre",
        "ABOUT [title] - Book details",
        "unread fantasy under 300 pages",
        "5 star books read in 2023",
        "MORE / BACK - Page through results",
    ]),
    "add": "\n".join([
        "Add commands:",
        "ADD [title] by [author]",
        "ADD [title] by [author], [pages] pages",
        "Example: ADD The Hobbit by J.R.R. Tolkien",
    ]),
    "progress": "\n".join([
        "Progress commands:",
        "START [title] - Begin reading",
        'PAGE [#] or "50%" - Update page',
        "FINISH [title] - Complete book",
        "STATUS - Where you are",
        "READING - List in-progress",
    ]),
    "stats": "\n".join([
        "Stats commands:",
        "STATS - Reading counts",
        "What did I read last month?",
        "Books finished in 2023",
    ]),
    "recommend": "\n".join([
        "Recommend commands:",
        "RECOMMEND - Top unread picks",
        "RECOMMEND [genre]",
        "Books like [title]",
    ]),
}

TOPIC_ALIASES = {
    "find": "search",
    "filter": "search",
    "new": "add",
    "page": "progress",
    "start": "progress",
    "finish": "progress",
    "reading": "progress",
    "statistics": "stats",
    "suggest": "recommend",
    "recommendations": "recommend",
}

UNKNOWN_MESSAGE = "Sorry, didn't understand. Text HELP for commands."


class HelpHandler(BaseHandler):
    """Command help, optionally for one topic."""

    def __init__(self, storage=None, **kwargs):
        super().__init__(storage, **kwargs)

    async def _handle(self, params: HelpParameters, context: Optional[ConversationContext]) -> HandlerResponse:
        topic = getattr(params, "topic", None)
        topic = TOPIC_ALIASES.get(topic, topic) if topic else None

        if topic and topic not in HELP_SECTIONS and topic != "main":
            message = f"{HELP_SECTIONS['main']}\nTopics: search, add, progress, stats, recommend"
            return HandlerResponse(success=True, message=message, data={"topic": "main"})

        topic = topic or "main"
        return HandlerResponse(success=True, message=HELP_SECTIONS[topic], data={"topic": topic})


class UnknownHandler(BaseHandler):
    def __init__(self, storage=None, **kwargs):
        super().__init__(storage, **kwargs)

    async def _handle(self, params: IntentParameters, context: Optional[ConversationContext]) -> HandlerResponse:
        return HandlerResponse(success=False, message=UNKNOWN_MESSAGE)
