# File: parking_reports/infrastructure/messaging.py
"""
Messaging Infrastructure for the Booking Report Engine

This module implements in-process event-driven communication:
1. Event Bus - publish/subscribe of domain events within the process
2. Event Handlers - subscribers reacting to report and export events
3. Notification Center - turns events into one-line user notifications

Events published by the report controller:
- REPORT_REFRESHED / REPORT_REFRESH_FAILED after a backend fetch
- EXPORT_COMPLETED / EXPORT_FAILED after a CSV or PDF export
- INVOICE_GENERATED after an invoice download
"""

from abc import ABC, abstractmethod
from collections import deque
from typing import Optional, Dict, List, Any, Deque
from datetime import datetime, timezone
import logging
import json
from dataclasses import dataclass, asdict, field
from enum import Enum
from uuid import UUID, uuid4


# ============================================================================
# MESSAGE TYPES AND ENUMS
# ============================================================================

class MessageType(str, Enum):
    """Types of messages in the system"""
    DOMAIN_EVENT = "domain_event"
    NOTIFICATION = "notification"


class EventType(str, Enum):
    """Domain event types"""
    REPORT_REFRESHED = "report_refreshed"
    REPORT_REFRESH_FAILED = "report_refresh_failed"
    EXPORT_COMPLETED = "export_completed"
    EXPORT_FAILED = "export_failed"
    EXPORT_REFUSED = "export_refused"
    INVOICE_GENERATED = "invoice_generated"


class NotificationLevel(str, Enum):
    """Severity of a user notification"""
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


# ============================================================================
# MESSAGE BASE CLASSES
# ============================================================================

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Message:
    """Base message class"""
    message_id: UUID = field(default_factory=uuid4)
    message_type: MessageType = MessageType.DOMAIN_EVENT
    timestamp: datetime = field(default_factory=_utcnow)
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert message to dictionary"""
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        return data

    def to_json(self) -> str:
        """Convert message to JSON string"""
        return json.dumps(self.to_dict(), default=str)


@dataclass
class DomainEvent(Message):
    """Domain event message"""
    event_type: EventType = EventType.REPORT_REFRESHED
    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.message_type = MessageType.DOMAIN_EVENT


@dataclass
class Notification(Message):
    """One-line notification shown to the user"""
    level: NotificationLevel = NotificationLevel.INFO
    body: str = ""

    def __post_init__(self):
        self.message_type = MessageType.NOTIFICATION

    def __str__(self) -> str:
        return self.body


# ============================================================================
# EVENT HANDLERS
# ============================================================================

class EventHandler(ABC):
    """Abstract base class for event handlers"""

    @abstractmethod
    def handle(self, event: DomainEvent) -> None:
        """Handle a domain event"""
        pass

    def can_handle(self, event: DomainEvent) -> bool:
        """Check if this handler can handle the event"""
        return True


# ============================================================================
# EVENT BUS (In-memory)
# ============================================================================

class EventBus:
    """
    In-memory event bus for intra-process event publishing

    Handlers run synchronously in publish order. A failing handler is logged
    and does not prevent the remaining handlers from running.
    """

    def __init__(self):
        self._subscribers: Dict[EventType, List[EventHandler]] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to events of a specific type"""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []

        if handler not in self._subscribers[event_type]:
            self._subscribers[event_type].append(handler)
            self._logger.debug(f"Subscribed {handler.__class__.__name__} to {event_type}")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe handler from events"""
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            self._logger.debug(f"Unsubscribed {handler.__class__.__name__} from {event_type}")

    def publish(self, event: DomainEvent) -> None:
        """Publish an event to all subscribers"""
        self._logger.info(f"Publishing event: {event.event_type.value} (ID: {event.message_id})")

        for handler in list(self._subscribers.get(event.event_type, [])):
            if not handler.can_handle(event):
                continue
            try:
                handler.handle(event)
            except Exception as e:
                self._logger.error(
                    f"Error handling event {event.event_type.value} with {handler.__class__.__name__}: {e}",
                    exc_info=True
                )

    def clear_subscribers(self) -> None:
        """Clear all subscribers (for testing)"""
        self._subscribers.clear()


# ============================================================================
# NOTIFICATIONS
# ============================================================================

class NotificationCenter(EventHandler):
    """
    Keeps the user-facing notification history

    Successful refreshes are silent; every other event produces exactly one
    notification line.
    """

    def __init__(self, max_history: int = 50):
        self.history: Deque[Notification] = deque(maxlen=max_history)
        self.logger = logging.getLogger(self.__class__.__name__)

    def register(self, bus: EventBus) -> 'NotificationCenter':
        for event_type in EventType:
            bus.subscribe(event_type, self)
        return self

    def can_handle(self, event: DomainEvent) -> bool:
        return event.event_type is not EventType.REPORT_REFRESHED

    def handle(self, event: DomainEvent) -> None:
        notification = self._to_notification(event)
        self.history.append(notification)
        self.logger.debug(f"[{notification.level.value}] {notification.body}")

    @property
    def latest(self) -> Optional[Notification]:
        return self.history[-1] if self.history else None

    def clear(self) -> None:
        self.history.clear()

    @staticmethod
    def _to_notification(event: DomainEvent) -> Notification:
        data = event.data
        export_format = str(data.get("format", "")).upper()

        if event.event_type is EventType.REPORT_REFRESH_FAILED:
            return Notification(
                level=NotificationLevel.ERROR,
                body="Failed to load booking data",
                source=event.source,
            )
        if event.event_type is EventType.EXPORT_COMPLETED:
            return Notification(
                level=NotificationLevel.SUCCESS,
                body=f"{export_format} file exported successfully",
                source=event.source,
            )
        if event.event_type is EventType.INVOICE_GENERATED:
            return Notification(
                level=NotificationLevel.SUCCESS,
                body=f"Invoice downloaded: {data.get('filename', '')}",
                source=event.source,
            )
        if event.event_type is EventType.EXPORT_REFUSED:
            return Notification(
                level=NotificationLevel.INFO,
                body=f"Please wait, the {data.get('running', 'current')} export is still running",
                source=event.source,
            )
        if event.event_type is EventType.EXPORT_FAILED:
            what = "invoice" if data.get("format") == "invoice" else export_format
            return Notification(
                level=NotificationLevel.ERROR,
                body=f"Failed to export {what}",
                source=event.source,
            )
        return Notification(level=NotificationLevel.INFO, body=event.event_type.value, source=event.source)
