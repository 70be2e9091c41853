"""Tool category presets used for filtering and discovery."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List


@dataclass(frozen=True)
class ToolCategory:
    name: str
    pattern: re.Pattern[str]
    description: str
    requires_org_mode: bool = False


def _category(name: str, pattern: str, description: str, requires_org_mode: bool = False) -> ToolCategory:
    return ToolCategory(name, re.compile(pattern, re.IGNORECASE), description, requires_org_mode)


TOOL_CATEGORIES: Dict[str, ToolCategory] = {
    category.name: category
    for category in (
        _category("mail", r"mail|attachment|draft", "Email operations (read, send, manage folders, attachments)"),
        _category("calendar", r"calendar|event", "Calendar and event management"),
        _category("files", r"drive|file|upload|download|folder|item", "OneDrive file and folder operations"),
        _category(
            "personal",
            r"mail|calendar|drive|contact|todo|onenote|attachment|draft|event|file|folder",
            "Personal productivity tools (mail, calendar, files, contacts, tasks, notes)",
        ),
        _category(
            "work",
            r"team|channel|chat|sharepoint|planner|site|list|shared",
            "Organization/work tools (Teams, SharePoint, shared mailboxes)",
            requires_org_mode=True,
        ),
        _category("excel", r"excel|worksheet|workbook|range|chart", "Excel spreadsheet operations"),
        _category("contacts", r"contact", "Outlook contacts management"),
        _category("tasks", r"todo|planner|task", "Task and planning tools (To Do, Planner)"),
        _category("onenote", r"onenote|notebook|section|page", "OneNote notebook operations"),
        _category("search", r"search|query", "Microsoft Search capabilities"),
        _category("meetings", r"meeting|transcript|onlineMeeting", "Online meetings and transcript access"),
        _category("users", r"user|list-users", "User directory access", requires_org_mode=True),
        _category("all", r".*", "All available tools"),
    )
}


def combined_preset_pattern(presets: Iterable[str]) -> str:
    patterns: List[str] = []
    for preset in presets:
        category = TOOL_CATEGORIES.get(preset)
        if category is None:
            raise ValueError(
                f"Unknown preset: {preset}. Available presets: {', '.join(TOOL_CATEGORIES)}"
            )
        patterns.append(category.pattern.pattern)
    return "|".join(patterns)


def list_presets() -> List[Dict[str, object]]:
    return [
        {
            "name": category.name,
            "description": category.description,
            "requires_org_mode": category.requires_org_mode,
        }
        for category in TOOL_CATEGORIES.values()
    ]


def preset_requires_org_mode(preset: str) -> bool:
    category = TOOL_CATEGORIES.get(preset)
    return bool(category and category.requires_org_mode)
