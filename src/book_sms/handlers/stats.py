from typing import Optional

from ..context import ConversationContext
from ..interaction.intent_parameters import NoParameters
from .base import BaseHandler, HandlerResponse


class StatsHandler(BaseHandler):
    """Simple reading counts."""

    failure_message = "Sorry, there was an error getting your stats. Please try again."

    async def _handle(self, params: NoParameters, context: Optional[ConversationContext]) -> HandlerResponse:
        year = self.today().year
        counts = {
            "total": await self.storage.count(),
            "completed": await self.storage.count({"read": "Read"}),
            "reading": await self.storage.count({"read": "Reading"}),
            "unread": await self.storage.count({"read": None}),
            "dnf": await self.storage.count({"read": "DNF"}),
            "finished_this_year": await self.storage.count({
                "read": "Read",
                "date_finished": {"gte": f"{year}-01-01", "lte": f"{year}-12-31"},
            }),
        }

        message = "\n".join([
            "Your Reading Stats:",
            f"Books completed: {counts['completed']}",
            f"Finished in {year}: {counts['finished_this_year']}",
            f"Currently reading: {counts['reading']}",
            f"Unread: {counts['unread']}",
            f"Did not finish: {counts['dnf']}",
            f"Total in library: {counts['total']}",
        ])
        return HandlerResponse(success=True, message=message, data={"stats": counts})
