"""Service container wiring the scheduling core together."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from dayforge.logging_config import get_logger
from dayforge.modules.calendar.service import CalendarService
from dayforge.modules.planner.service import PlannerService
from dayforge.modules.tasks.service import TaskService
from dayforge.modules.travel.blocks import TravelBlockSynchronizer
from dayforge.modules.travel.service import TravelService
from dayforge.modules.users.service import UserService

logger = get_logger(__name__)


class Orchestrator:
    """Holds one instance of each service, sharing an optional session."""

    def __init__(
        self,
        travel: Optional[TravelService] = None,
        session: Optional[AsyncSession] = None,
    ) -> None:
        self.users = UserService(session=session)
        self.tasks = TaskService(session=session)
        self.travel = travel or TravelService()
        self.travel_blocks = TravelBlockSynchronizer(self.travel, self.users)
        self.calendar = CalendarService(self.travel_blocks, session=session)
        self.planner = PlannerService(self.calendar, self.tasks, self.users, session=session)
        logger.debug("orchestrator_ready", travel_configured=self.travel.is_configured)

    async def refresh_priorities(self) -> int:
        """Periodic job: rescore stale task priorities for every user."""
        return await self.tasks.refresh_stale_priorities()
