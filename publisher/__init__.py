"""Publishing workflow — edit orchestration, storage, teasers, and scheduling."""

from publisher.events import FeedPublishHandler, WebhookPublishHandler
from publisher.formatter import MarkdownRenderer
from publisher.messages import Messages
from publisher.orchestrator import PublishOrchestrator
from publisher.scheduler import PublishScheduler
from publisher.store import FileDocumentStore, FileHistoryStore
from publisher.teaser import TeaserGenerator
from publisher.timezones import TimeZoneResolver

__all__ = [
    "FeedPublishHandler",
    "FileDocumentStore",
    "FileHistoryStore",
    "MarkdownRenderer",
    "Messages",
    "PublishOrchestrator",
    "PublishScheduler",
    "TeaserGenerator",
    "TimeZoneResolver",
    "WebhookPublishHandler",
]
