"""Composite tool: find a Teams meeting by date and subject and fetch its transcript.

Graph has no single call for this. The workflow walks the calendar, the
event detail, the online meeting record and the transcript list, one
dependent request at a time. Each step is a state with its own transition
method so every failure is reported the same way: the step raises
:class:`WorkflowFailure` and the run loop turns it into an error result.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import quote

from pydantic import BaseModel, Field, ValidationError

from ..graph_client import GraphClient, RequestOptions
from ..models import ExecutionResult

logger = logging.getLogger(__name__)

TOOL_NAME = "get-transcript-by-meeting"

TOOL_DESCRIPTION = """Retrieve a Teams meeting transcript by searching for the meeting by date and subject.

This composite tool chains multiple Graph API calls internally:
1. Queries calendar for meetings on the specified date
2. Finds the meeting matching the subject
3. Resolves the online meeting ID via join URL
4. Fetches the transcript content

Returns the VTT transcript with speaker attribution and timestamps.

TIP: Works regardless of whether you organized the meeting or were just an attendee."""


class TranscriptQuery(BaseModel):
    date: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        description='Date to search for meetings (ISO format: YYYY-MM-DD, e.g., "2026-01-16")',
    )
    subjectContains: str = Field(
        ..., min_length=1, description="Partial text to match in meeting subject (case-insensitive)"
    )
    startTime: Optional[str] = Field(
        None,
        pattern=r"^\d{2}:\d{2}$",
        description='Optional: Start time to narrow search (HH:MM format, e.g., "12:00")',
    )
    endTime: Optional[str] = Field(
        None,
        pattern=r"^\d{2}:\d{2}$",
        description='Optional: End time to narrow search (HH:MM format, e.g., "13:00")',
    )
    timezone: str = Field(
        "UTC", description='IANA timezone (e.g., "America/Chicago"). Defaults to UTC.'
    )


class WorkflowState(str, Enum):
    RESOLVE_CALENDAR_WINDOW = "resolve-calendar-window"
    QUERY_EVENTS = "query-events"
    MATCH_SUBJECT = "match-subject"
    FETCH_JOIN_URL = "fetch-join-url"
    RESOLVE_ONLINE_MEETING_ID = "resolve-online-meeting-id"
    LIST_TRANSCRIPTS = "list-transcripts"
    FETCH_TRANSCRIPT_CONTENT = "fetch-transcript-content"
    DONE = "done"


class WorkflowFailure(Exception):
    def __init__(self, state: WorkflowState, message: str) -> None:
        super().__init__(message)
        self.state = state
        self.message = message


@dataclass
class TranscriptContext:
    query: TranscriptQuery
    start_date_time: str = ""
    end_date_time: str = ""
    events: List[Dict[str, Any]] = field(default_factory=list)
    event: Dict[str, Any] = field(default_factory=dict)
    join_url: str = ""
    online_meeting: Dict[str, Any] = field(default_factory=dict)
    transcript: Dict[str, Any] = field(default_factory=dict)
    content: str = ""

    @property
    def subject(self) -> str:
        return self.event.get("subject") or ""


class TranscriptWorkflow:
    def __init__(self, client: GraphClient) -> None:
        self.client = client
        self._transitions: Dict[
            WorkflowState, Callable[[TranscriptContext], Awaitable[WorkflowState]]
        ] = {
            WorkflowState.RESOLVE_CALENDAR_WINDOW: self._resolve_calendar_window,
            WorkflowState.QUERY_EVENTS: self._query_events,
            WorkflowState.MATCH_SUBJECT: self._match_subject,
            WorkflowState.FETCH_JOIN_URL: self._fetch_join_url,
            WorkflowState.RESOLVE_ONLINE_MEETING_ID: self._resolve_online_meeting_id,
            WorkflowState.LIST_TRANSCRIPTS: self._list_transcripts,
            WorkflowState.FETCH_TRANSCRIPT_CONTENT: self._fetch_transcript_content,
        }

    async def run(self, params: Dict[str, Any]) -> ExecutionResult:
        try:
            query = TranscriptQuery(**params)
        except ValidationError as exc:
            return ExecutionResult.failure(f"Invalid parameters for {TOOL_NAME}: {exc}")

        logger.info(
            "%s: Searching for %r on %s", TOOL_NAME, query.subjectContains, query.date
        )
        context = TranscriptContext(query=query)
        state = WorkflowState.RESOLVE_CALENDAR_WINDOW
        try:
            while state is not WorkflowState.DONE:
                state = await self._transitions[state](context)
        except WorkflowFailure as failure:
            logger.info("%s stopped at %s: %s", TOOL_NAME, failure.state.value, failure.message)
            return ExecutionResult.failure(failure.message)
        except Exception as exc:
            logger.error("%s error: %s", TOOL_NAME, exc)
            return ExecutionResult.failure(f"Error retrieving transcript: {exc}")

        return ExecutionResult.from_text(json.dumps(self._build_result(context), indent=2))

    async def _resolve_calendar_window(self, context: TranscriptContext) -> WorkflowState:
        query = context.query
        start = query.startTime or "00:00"
        context.start_date_time = f"{query.date}T{start}:00"
        context.end_date_time = (
            f"{query.date}T{query.endTime}:00" if query.endTime else f"{query.date}T23:59:59"
        )
        return WorkflowState.QUERY_EVENTS

    async def _query_events(self, context: TranscriptContext) -> WorkflowState:
        logger.info(
            "Querying calendar from %s to %s", context.start_date_time, context.end_date_time
        )
        path = (
            f"/me/calendarView?startDateTime={quote(context.start_date_time, safe='')}"
            f"&endDateTime={quote(context.end_date_time, safe='')}"
        )
        options = RequestOptions(
            headers={"Prefer": f'outlook.timezone="{context.query.timezone}"'}
        )
        data = await self._call(
            WorkflowState.QUERY_EVENTS, "Failed to query calendar", path, options
        )
        context.events = list(data.get("value") or [])
        if not context.events:
            raise WorkflowFailure(
                WorkflowState.QUERY_EVENTS, f"No meetings found on {context.query.date}"
            )
        return WorkflowState.MATCH_SUBJECT

    async def _match_subject(self, context: TranscriptContext) -> WorkflowState:
        needle = context.query.subjectContains.lower()
        online = [event for event in context.events if event.get("isOnlineMeeting") is True]
        match = next(
            (event for event in online if needle in (event.get("subject") or "").lower()),
            None,
        )
        if match is None:
            available = "\n".join(
                f"- {event.get('subject')} ({(event.get('start') or {}).get('dateTime')})"
                for event in online
            )
            raise WorkflowFailure(
                WorkflowState.MATCH_SUBJECT,
                f'No online meeting found matching "{context.query.subjectContains}".\n\n'
                f"Available online meetings on {context.query.date}:\n{available or '(none)'}",
            )
        context.event = match
        logger.info('Found meeting "%s"', context.subject)
        return WorkflowState.FETCH_JOIN_URL

    async def _fetch_join_url(self, context: TranscriptContext) -> WorkflowState:
        path = (
            f"/me/events/{quote(str(context.event.get('id', '')), safe='')}"
            "?$select=subject,onlineMeeting,onlineMeetingUrl,isOnlineMeeting"
        )
        data = await self._call(
            WorkflowState.FETCH_JOIN_URL, "Failed to get event details", path
        )
        join_url = (data.get("onlineMeeting") or {}).get("joinUrl")
        if not join_url:
            raise WorkflowFailure(
                WorkflowState.FETCH_JOIN_URL,
                f'Meeting "{context.subject}" does not have a Teams join URL',
            )
        context.join_url = join_url
        logger.info("Got join URL, resolving meeting ID")
        return WorkflowState.RESOLVE_ONLINE_MEETING_ID

    async def _resolve_online_meeting_id(self, context: TranscriptContext) -> WorkflowState:
        path = f"/me/onlineMeetings?$filter=JoinWebUrl eq '{quote(context.join_url, safe='')}'"
        data = await self._call(
            WorkflowState.RESOLVE_ONLINE_MEETING_ID, "Failed to resolve meeting ID", path
        )
        meetings = data.get("value") or []
        if not meetings or not meetings[0].get("id"):
            raise WorkflowFailure(
                WorkflowState.RESOLVE_ONLINE_MEETING_ID,
                f'Could not resolve online meeting for "{context.subject}"',
            )
        context.online_meeting = meetings[0]
        logger.info("Resolved meeting ID, fetching transcripts")
        return WorkflowState.LIST_TRANSCRIPTS

    async def _list_transcripts(self, context: TranscriptContext) -> WorkflowState:
        path = f"/me/onlineMeetings/{context.online_meeting['id']}/transcripts"
        data = await self._call(
            WorkflowState.LIST_TRANSCRIPTS, "Failed to list transcripts", path
        )
        transcripts = data.get("value") or []
        if not transcripts:
            raise WorkflowFailure(
                WorkflowState.LIST_TRANSCRIPTS,
                f'No transcripts found for meeting "{context.subject}".\n\n'
                "Note: Transcription must be enabled during the meeting to generate transcripts.",
            )
        context.transcript = transcripts[0]
        logger.info("Found transcript, fetching content")
        return WorkflowState.FETCH_TRANSCRIPT_CONTENT

    async def _fetch_transcript_content(self, context: TranscriptContext) -> WorkflowState:
        path = (
            f"/me/onlineMeetings/{context.online_meeting['id']}"
            f"/transcripts/{context.transcript.get('id')}/content"
        )
        data = await self._call(
            WorkflowState.FETCH_TRANSCRIPT_CONTENT,
            "Failed to fetch transcript content",
            path,
            RequestOptions(headers={"Accept": "text/vtt"}),
        )
        context.content = data.get("rawResponse") or data.get("message") or "No content"
        logger.info("Successfully retrieved transcript")
        return WorkflowState.DONE

    async def _call(
        self,
        state: WorkflowState,
        failure_prefix: str,
        path: str,
        options: Optional[RequestOptions] = None,
    ) -> Dict[str, Any]:
        try:
            data = await self.client.make_request(path, options or RequestOptions())
        except Exception as exc:
            raise WorkflowFailure(state, f"{failure_prefix}: {exc}") from exc
        return data if isinstance(data, dict) else {}

    def _build_result(self, context: TranscriptContext) -> Dict[str, Any]:
        organizer = (
            ((context.online_meeting.get("participants") or {}).get("organizer") or {}).get("upn")
            or "unknown"
        )
        return {
            "meeting": {
                "subject": context.event.get("subject"),
                "start": context.event.get("start"),
                "end": context.event.get("end"),
                "organizer": organizer,
            },
            "transcript": {
                "id": context.transcript.get("id"),
                "createdDateTime": context.transcript.get("createdDateTime"),
                "endDateTime": context.transcript.get("endDateTime"),
            },
            "content": context.content,
        }
