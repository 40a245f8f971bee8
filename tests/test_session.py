"""
Tests for the resolution session state machine.
Providers and positioning are in-process fakes — no network access required.
"""

import asyncio
import sys
import pytest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.location.coordinates import Coordinates, LocationSource, ResolvedLocation
from src.location.errors import ErrorKind, LocationError, PositionErrorCode
from src.location.positioning import StaticCoordinateSource
from src.location.resolver import LocationResolver
from src.location.session import SessionController, SessionStatus
from src.soil.synthesizer import synthesize

PARIS = ResolvedLocation(Coordinates(48.8566, 2.3522), "Paris, France", LocationSource.USER_TEXT)


class TableForward:
    name = "table"

    def __init__(self, table):
        self.table = table
        self.calls = 0

    async def search(self, query, region_bias=None):
        self.calls += 1
        return self.table.get(query.lower())


class NoNameReverse:
    name = "noname"

    async def resolve(self, coordinates):
        return None


class GatedSource:
    def __init__(self, coordinates):
        self.coordinates = coordinates
        self.release = asyncio.Event()

    async def get_current_coordinates(self):
        await self.release.wait()
        return self.coordinates


def _controller(source=None, table=None):
    forward = TableForward(table if table is not None else {"paris": PARIS})
    resolver = LocationResolver([forward], [NoNameReverse()], coordinate_source=source)
    controller = SessionController(resolver)
    events = []
    controller.subscribe(events.append)
    return controller, events, forward


class TestSessionTransitions:
    @pytest.mark.asyncio
    async def test_text_search_reaches_ready(self):
        """A text search walks Resolving, Synthesizing, Ready."""
        controller, events, _ = _controller()
        session = await controller.search("Paris")

        assert session.status == SessionStatus.READY
        assert session.resolved_location == PARIS
        assert session.soil_profile == synthesize(PARIS.coordinates, "Paris, France")
        assert [e.status for e in events] == [
            SessionStatus.RESOLVING, SessionStatus.SYNTHESIZING, SessionStatus.READY,
        ]
        assert events[0].progress_text == "Searching..."
        assert events[-1].progress_text is None

    @pytest.mark.asyncio
    async def test_device_lookup_progress_text(self):
        """Device lookups report their own progress text."""
        source = StaticCoordinateSource(Coordinates(20.0, 78.0))
        controller, events, _ = _controller(source=source)
        session = await controller.use_current_location()

        assert session.status == SessionStatus.READY
        assert session.resolved_location.display_name == "Current Location"
        assert session.soil_profile.location == "Current Location"
        assert events[0].progress_text == "Getting Location..."
        assert events[0].source == LocationSource.DEVICE_LOCATION

    @pytest.mark.asyncio
    async def test_malformed_reverse_payload_still_reaches_ready(self):
        """A reverse provider answering garbage does not leave the session in Resolving."""
        from unittest.mock import MagicMock, patch
        from src.location.geocoders import NominatimGeocoder

        resolver = LocationResolver(
            [TableForward({})], [NominatimGeocoder()],
            coordinate_source=StaticCoordinateSource(Coordinates(20.0, 78.0)),
        )
        controller = SessionController(resolver)
        events = []
        controller.subscribe(events.append)

        resp = MagicMock()
        resp.json.return_value = {"address": ["not", "an", "object"]}
        resp.raise_for_status = MagicMock()
        with patch("src.location.geocoders.requests.get", return_value=resp):
            session = await controller.use_current_location()

        assert session.status == SessionStatus.READY
        assert session.resolved_location.display_name == "Current Location"
        assert events[-1].status == SessionStatus.READY

    @pytest.mark.asyncio
    async def test_not_found_fails(self):
        """An unresolvable query ends in Failed with LocationNotFound."""
        controller, events, _ = _controller()
        session = await controller.search("Atlantis")

        assert session.status == SessionStatus.FAILED
        assert session.error.kind == ErrorKind.LOCATION_NOT_FOUND
        assert session.soil_profile is None
        assert [e.status for e in events] == [SessionStatus.RESOLVING, SessionStatus.FAILED]
        assert events[-1].error_kind == ErrorKind.LOCATION_NOT_FOUND

    @pytest.mark.asyncio
    async def test_permission_denied_fails(self):
        """A denied permission ends in Failed with a user message."""
        source = StaticCoordinateSource(error_code=PositionErrorCode.PERMISSION_DENIED)
        controller, _, _ = _controller(source=source)
        session = await controller.use_current_location()

        assert session.status == SessionStatus.FAILED
        assert session.error.kind == ErrorKind.PERMISSION_DENIED
        assert "denied" in session.error.user_message

    @pytest.mark.asyncio
    async def test_empty_query_starts_no_session(self):
        """A blank query leaves the current session untouched."""
        controller, events, forward = _controller()
        await controller.search("Paris")
        previous = controller.current

        with pytest.raises(LocationError) as exc:
            await controller.search("   ")

        assert exc.value.kind == ErrorKind.EMPTY_INPUT
        assert controller.current is previous
        assert forward.calls == 1
        assert len(events) == 3

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_events(self):
        """Unsubscribed listeners receive no events."""
        controller, events, _ = _controller()
        other = []
        unsubscribe = controller.subscribe(other.append)
        unsubscribe()
        await controller.search("Paris")

        assert other == []
        assert len(events) == 3

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_session(self):
        """A raising listener does not stop the session."""
        controller, events, _ = _controller()

        def broken(event):
            raise RuntimeError("render failed")

        controller.subscribe(broken)
        session = await controller.search("Paris")
        assert session.status == SessionStatus.READY

    @pytest.mark.asyncio
    async def test_to_dict(self):
        """The session dict carries the UI keys."""
        controller, _, _ = _controller()
        data = (await controller.search("Paris")).to_dict()

        assert data["status"] == "Ready"
        assert data["resolvedLocation"]["displayName"] == "Paris, France"
        assert data["soilProfile"]["location"] == "Paris, France"
        assert data["error"] is None


class TestSuperseding:
    @pytest.mark.asyncio
    async def test_text_search_supersedes_pending_device_lookup(self):
        """A text search wins over a device lookup still waiting for a fix."""
        source = GatedSource(Coordinates(10.0, 10.0))
        controller, events, _ = _controller(source=source)

        device_task = asyncio.create_task(controller.use_current_location())
        await asyncio.sleep(0)
        text_session = await controller.search("Paris")
        source.release.set()
        device_session = await device_task

        assert controller.current is text_session
        assert text_session.status == SessionStatus.READY
        assert text_session.resolved_location == PARIS
        assert device_session.superseded is True
        assert device_session.soil_profile is None
        # no event for the stale session after the text session started
        text_id = text_session.session_id
        later = events[[e.session_id for e in events].index(text_id):]
        assert all(e.session_id == text_id for e in later)

    @pytest.mark.asyncio
    async def test_superseded_failure_is_not_surfaced(self):
        """A stale failure never reaches the current session."""
        source = GatedSource(Coordinates(10.0, 10.0))
        controller, _, _ = _controller(source=source, table={})

        device_task = asyncio.create_task(controller.use_current_location())
        await asyncio.sleep(0)
        text_session = await controller.search("Nowhere")
        source.release.set()
        device_session = await device_task

        assert text_session.status == SessionStatus.FAILED
        assert controller.current is text_session
        assert device_session.superseded is True

    @pytest.mark.asyncio
    async def test_newer_device_lookup_wins_over_older_text(self):
        """The newest session wins regardless of source."""
        gate = asyncio.Event()

        class SlowForward:
            name = "slow"

            async def search(self, query, region_bias=None):
                await gate.wait()
                return PARIS

        resolver = LocationResolver(
            [SlowForward()], [NoNameReverse()],
            coordinate_source=StaticCoordinateSource(Coordinates(5.0, 5.0)),
        )
        controller = SessionController(resolver)

        text_task = asyncio.create_task(controller.search("Paris"))
        await asyncio.sleep(0)
        device_session = await controller.use_current_location()
        gate.set()
        text_session = await text_task

        assert controller.current is device_session
        assert device_session.status == SessionStatus.READY
        assert device_session.resolved_location.source == LocationSource.DEVICE_LOCATION
        assert text_session.superseded is True
        assert resolver.result.source == LocationSource.DEVICE_LOCATION
