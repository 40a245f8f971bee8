"""
Resolution sessions: the state machine between a UI request and the
resolver + soil synthesizer.

    Idle -> Resolving -> Synthesizing -> Ready
               \\-> Failed

Each user request gets a new ResolutionSession. Starting a request makes
its session current; a session that finishes after being replaced is
marked superseded and its result is never applied or announced.
"""

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from src.location.coordinates import LocationSource, ResolvedLocation
from src.location.errors import ErrorKind, LocationError
from src.location.resolver import LocationResolver
from src.soil.profile import SoilProfile
from src.soil.synthesizer import synthesize

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    IDLE = "Idle"
    RESOLVING = "Resolving"
    SYNTHESIZING = "Synthesizing"
    READY = "Ready"
    FAILED = "Failed"


PROGRESS_TEXT = {
    LocationSource.USER_TEXT: "Searching...",
    LocationSource.DEVICE_LOCATION: "Getting Location...",
}


@dataclass(frozen=True)
class StatusEvent:
    """Sent to subscribers on every transition of the current session."""
    session_id: int
    status: SessionStatus
    source: LocationSource
    progress_text: Optional[str] = None
    error_kind: Optional[ErrorKind] = None


Listener = Callable[[StatusEvent], None]


@dataclass
class ResolutionSession:
    session_id: int
    source: LocationSource
    status: SessionStatus = SessionStatus.IDLE
    resolved_location: Optional[ResolvedLocation] = None
    soil_profile: Optional[SoilProfile] = None
    error: Optional[LocationError] = None
    superseded: bool = False

    @property
    def progress_text(self) -> Optional[str]:
        if self.status in (SessionStatus.RESOLVING, SessionStatus.SYNTHESIZING):
            return PROGRESS_TEXT[self.source]
        return None

    @property
    def is_busy(self) -> bool:
        return self.status in (SessionStatus.RESOLVING, SessionStatus.SYNTHESIZING)

    def to_dict(self) -> Dict:
        return {
            "sessionId": self.session_id,
            "source": self.source.value,
            "status": self.status.value,
            "progressText": self.progress_text,
            "resolvedLocation": self.resolved_location.to_dict() if self.resolved_location else None,
            "soilProfile": self.soil_profile.to_dict() if self.soil_profile else None,
            "error": {
                "kind": self.error.kind.value,
                "message": self.error.user_message,
            } if self.error else None,
        }


class SessionController:
    """
    Owns the current session and the subscriber list.

    Usage:
        controller = SessionController(resolver)
        controller.subscribe(lambda event: print(event.status, event.progress_text))
        session = await controller.search("Nashik")
        session.soil_profile.soil_type
    """

    def __init__(self, resolver: LocationResolver, synthesizer=synthesize):
        self.resolver = resolver
        self.synthesizer = synthesizer
        self.current: Optional[ResolutionSession] = None
        self._listeners: List[Listener] = []
        self._ids = itertools.count(1)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _is_current(self, session: ResolutionSession) -> bool:
        return session is self.current

    def _transition(self, session: ResolutionSession, status: SessionStatus) -> None:
        session.status = status
        event = StatusEvent(
            session_id=session.session_id,
            status=status,
            source=session.source,
            progress_text=session.progress_text,
            error_kind=session.error.kind if session.error else None,
        )
        logger.info("Session #%d -> %s", session.session_id, status.value)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning("Status listener failed: %s", e)

    def _start(self, source: LocationSource) -> ResolutionSession:
        if self.current is not None and self.current.is_busy:
            logger.info("Session #%d superseded", self.current.session_id)
        session = ResolutionSession(session_id=next(self._ids), source=source)
        self.current = session
        self._transition(session, SessionStatus.RESOLVING)
        return session

    def _drop(self, session: ResolutionSession) -> ResolutionSession:
        session.superseded = True
        logger.info("Discarding result of superseded session #%d", session.session_id)
        return session

    async def _run(self, session: ResolutionSession, resolution) -> ResolutionSession:
        try:
            location = await resolution
        except LocationError as e:
            if not self._is_current(session):
                return self._drop(session)
            session.error = e
            self._transition(session, SessionStatus.FAILED)
            return session

        if location is None or not self._is_current(session):
            return self._drop(session)

        session.resolved_location = location
        self._transition(session, SessionStatus.SYNTHESIZING)
        session.soil_profile = self.synthesizer(location.coordinates, location.display_name)
        self._transition(session, SessionStatus.READY)
        return session

    async def search(self, query: str, region_bias: Optional[str] = None) -> ResolutionSession:
        """
        Start a text search session and run it to completion.

        Raises:
            LocationError: EmptyInput for a blank query; no session is started
                and the current one is left as it was.
        """
        if query is None or not query.strip():
            raise LocationError(ErrorKind.EMPTY_INPUT, "Location query is empty")
        session = self._start(LocationSource.USER_TEXT)
        return await self._run(session, self.resolver.resolve_from_text(query, region_bias))

    async def use_current_location(self) -> ResolutionSession:
        """Start a device-location session and run it to completion."""
        session = self._start(LocationSource.DEVICE_LOCATION)
        return await self._run(session, self.resolver.resolve_from_device())
