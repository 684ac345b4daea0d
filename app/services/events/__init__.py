from app.services.events.hub import EventHub, Subscriber
from app.services.events.sinks import EventSink, SSESink, WebSocketSink

__all__ = [
    "EventHub",
    "EventSink",
    "SSESink",
    "Subscriber",
    "WebSocketSink",
]
