"""Calendar events and the event command handler."""

from dayforge.modules.calendar.models import CalendarEvent, EventCreate, EventSource, EventUpdate

__all__ = ["CalendarEvent", "EventCreate", "EventSource", "EventUpdate"]
