import json

import pytest

from graph_adapter.graph_client import GraphRequestError
from graph_adapter.workflows.transcript import TranscriptWorkflow

VTT = "WEBVTT\n\n00:00:00.000 --> 00:00:02.000\n<v Ada>Welcome to planning</v>"

PLANNING = {
    "id": "evt-1",
    "subject": "Q1 Planning Sync",
    "isOnlineMeeting": True,
    "start": {"dateTime": "2026-01-16T10:00:00", "timeZone": "UTC"},
    "end": {"dateTime": "2026-01-16T11:00:00", "timeZone": "UTC"},
}
STANDUP = {
    "id": "evt-2",
    "subject": "Daily Standup",
    "isOnlineMeeting": True,
    "start": {"dateTime": "2026-01-16T09:00:00", "timeZone": "UTC"},
    "end": {"dateTime": "2026-01-16T09:15:00", "timeZone": "UTC"},
}
LUNCH = {
    "id": "evt-3",
    "subject": "Planning lunch",
    "isOnlineMeeting": False,
    "start": {"dateTime": "2026-01-16T12:00:00", "timeZone": "UTC"},
}


def happy_routes(events=None, join_url="https://teams.microsoft.com/l/meetup-join/abc"):
    detail = {"subject": "Q1 Planning Sync", "onlineMeeting": {"joinUrl": join_url} if join_url else None}
    return [
        ("/me/calendarView", {"value": events if events is not None else [STANDUP, PLANNING]}),
        ("/me/events/", detail),
        (
            "/me/onlineMeetings?$filter",
            {"value": [{"id": "m1", "participants": {"organizer": {"upn": "ada@contoso.com"}}}]},
        ),
        ("/me/onlineMeetings/m1/transcripts/t1/content", {"message": "OK!", "rawResponse": VTT}),
        (
            "/me/onlineMeetings/m1/transcripts",
            {"value": [{"id": "t1", "createdDateTime": "2026-01-16T10:00:05Z", "endDateTime": "2026-01-16T11:00:00Z"}]},
        ),
    ]


PARAMS = {"date": "2026-01-16", "subjectContains": "planning"}


@pytest.mark.asyncio
async def test_finds_meeting_and_returns_transcript(fake_client):
    fake_client.routes = happy_routes()

    result = await TranscriptWorkflow(fake_client).run(PARAMS)

    assert result.is_error is False
    body = json.loads(result.first_text())
    assert body["meeting"]["subject"] == "Q1 Planning Sync"
    assert body["meeting"]["organizer"] == "ada@contoso.com"
    assert body["meeting"]["start"] == PLANNING["start"]
    assert body["transcript"] == {
        "id": "t1",
        "createdDateTime": "2026-01-16T10:00:05Z",
        "endDateTime": "2026-01-16T11:00:00Z",
    }
    assert body["content"] == VTT


@pytest.mark.asyncio
async def test_calls_follow_the_documented_sequence(fake_client):
    fake_client.routes = happy_routes()

    await TranscriptWorkflow(fake_client).run({**PARAMS, "timezone": "America/Chicago"})

    paths = fake_client.paths()
    assert paths[0] == (
        "/me/calendarView?startDateTime=2026-01-16T00%3A00%3A00&endDateTime=2026-01-16T23%3A59%3A59"
    )
    assert paths[1] == "/me/events/evt-1?$select=subject,onlineMeeting,onlineMeetingUrl,isOnlineMeeting"
    assert paths[2].startswith("/me/onlineMeetings?$filter=JoinWebUrl eq 'https%3A%2F%2Fteams")
    assert paths[3] == "/me/onlineMeetings/m1/transcripts"
    assert paths[4] == "/me/onlineMeetings/m1/transcripts/t1/content"
    assert fake_client.calls[0][1].headers == {"Prefer": 'outlook.timezone="America/Chicago"'}
    assert fake_client.calls[4][1].headers == {"Accept": "text/vtt"}


@pytest.mark.asyncio
async def test_time_window_uses_start_and_end_times(fake_client):
    fake_client.routes = happy_routes()

    await TranscriptWorkflow(fake_client).run({**PARAMS, "startTime": "09:30", "endTime": "12:00"})

    assert fake_client.paths()[0] == (
        "/me/calendarView?startDateTime=2026-01-16T09%3A30%3A00&endDateTime=2026-01-16T12%3A00%3A00"
    )
    assert fake_client.calls[0][1].headers == {"Prefer": 'outlook.timezone="UTC"'}


@pytest.mark.asyncio
async def test_no_subject_match_lists_online_meetings(fake_client):
    fake_client.routes = happy_routes(events=[STANDUP, PLANNING, LUNCH])

    result = await TranscriptWorkflow(fake_client).run({**PARAMS, "subjectContains": "nonexistent"})

    assert result.is_error is True
    text = result.first_text()
    assert 'No online meeting found matching "nonexistent"' in text
    assert "- Daily Standup (2026-01-16T09:00:00)" in text
    assert "- Q1 Planning Sync (2026-01-16T10:00:00)" in text
    assert "Planning lunch" not in text
    assert len(fake_client.calls) == 1


@pytest.mark.asyncio
async def test_offline_events_never_match(fake_client):
    fake_client.routes = happy_routes(events=[LUNCH])

    result = await TranscriptWorkflow(fake_client).run({**PARAMS, "subjectContains": "lunch"})

    assert result.is_error is True
    assert "(none)" in result.first_text()


@pytest.mark.asyncio
async def test_no_events_on_date(fake_client):
    fake_client.routes = happy_routes(events=[])

    result = await TranscriptWorkflow(fake_client).run(PARAMS)

    assert result.is_error is True
    assert result.first_text() == "No meetings found on 2026-01-16"


@pytest.mark.asyncio
async def test_missing_join_url_names_the_meeting(fake_client):
    fake_client.routes = happy_routes(join_url=None)

    result = await TranscriptWorkflow(fake_client).run(PARAMS)

    assert result.is_error is True
    assert result.first_text() == 'Meeting "Q1 Planning Sync" does not have a Teams join URL'
    assert len(fake_client.calls) == 2


@pytest.mark.asyncio
async def test_unresolvable_online_meeting(fake_client):
    routes = happy_routes()
    routes[2] = ("/me/onlineMeetings?$filter", {"value": []})
    fake_client.routes = routes

    result = await TranscriptWorkflow(fake_client).run(PARAMS)

    assert result.first_text() == 'Could not resolve online meeting for "Q1 Planning Sync"'


@pytest.mark.asyncio
async def test_no_transcripts(fake_client):
    routes = happy_routes()
    routes[4] = ("/me/onlineMeetings/m1/transcripts", {"value": []})
    fake_client.routes = routes

    result = await TranscriptWorkflow(fake_client).run(PARAMS)

    assert result.is_error is True
    assert result.first_text().startswith('No transcripts found for meeting "Q1 Planning Sync"')
    assert len(fake_client.calls) == 4


@pytest.mark.asyncio
async def test_failed_call_stops_the_workflow(fake_client):
    routes = happy_routes()
    routes[1] = ("/me/events/", GraphRequestError("HTTP 403: Access denied", status_code=403))
    fake_client.routes = routes

    result = await TranscriptWorkflow(fake_client).run(PARAMS)

    assert result.is_error is True
    assert result.first_text() == "Failed to get event details: HTTP 403: Access denied"
    assert len(fake_client.calls) == 2


@pytest.mark.asyncio
async def test_invalid_date_is_rejected_before_any_call(fake_client):
    result = await TranscriptWorkflow(fake_client).run({"date": "16/01/2026", "subjectContains": "x"})

    assert result.is_error is True
    assert fake_client.calls == []
