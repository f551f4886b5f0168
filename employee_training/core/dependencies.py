"""FastAPI dependencies wiring the workflow engines to their collaborators.

Stateless collaborators are built per request. The HTTP client, the
token-holding Graph and Bot clients and the search index are process-wide;
the index queues its rebuilds on the background scheduler.
"""
from functools import lru_cache

import httpx
from fastapi import Depends, Header, HTTPException
from sqlalchemy.engine import Engine

from employee_training.calendar.gateway import GoogleCalendarGateway
from employee_training.core.database import engine
from employee_training.core.scheduler import scheduler
from employee_training.directory.graph import GraphDirectory
from employee_training.models.event import normalize_user_id
from employee_training.notifications.gateway import BotNotificationGateway, ConversationStore
from employee_training.search.index import EventSearchIndex
from employee_training.storage.category_store import SqlCategoryStore
from employee_training.storage.event_store import SqlEventStore
from employee_training.workflow.lifecycle import EventWorkflow
from employee_training.workflow.registration import UserEvents

HTTP_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


def get_engine() -> Engine:
    return engine


@lru_cache
def get_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=HTTP_TIMEOUT)


async def close_http_client() -> None:
    if get_http_client.cache_info().currsize:
        await get_http_client().aclose()
        get_http_client.cache_clear()


@lru_cache
def get_directory() -> GraphDirectory:
    return GraphDirectory(get_http_client())


def get_conversations(db: Engine = Depends(get_engine)) -> ConversationStore:
    return ConversationStore(db)


def get_notifications(db: Engine = Depends(get_engine)) -> BotNotificationGateway:
    return _notifications(db)


@lru_cache
def _notifications(db: Engine) -> BotNotificationGateway:
    return BotNotificationGateway(get_conversations(db), get_http_client())


def get_event_store(db: Engine = Depends(get_engine)) -> SqlEventStore:
    return SqlEventStore(db)


def get_category_store(db: Engine = Depends(get_engine)) -> SqlCategoryStore:
    return SqlCategoryStore(db)


def get_search_index(db: Engine = Depends(get_engine)) -> EventSearchIndex:
    return _search_index(db)


@lru_cache
def _search_index(db: Engine) -> EventSearchIndex:
    return EventSearchIndex(db, scheduler=scheduler)


def get_calendar(directory: GraphDirectory = Depends(get_directory)) -> GoogleCalendarGateway:
    return GoogleCalendarGateway(users=directory)


def get_event_workflow(
    store: SqlEventStore = Depends(get_event_store),
    calendar: GoogleCalendarGateway = Depends(get_calendar),
    index: EventSearchIndex = Depends(get_search_index),
    notifications: BotNotificationGateway = Depends(get_notifications),
    directory: GraphDirectory = Depends(get_directory),
    categories: SqlCategoryStore = Depends(get_category_store),
) -> EventWorkflow:
    return EventWorkflow(store, calendar, index, notifications, directory, directory, categories=categories)


def get_user_events(
    store: SqlEventStore = Depends(get_event_store),
    calendar: GoogleCalendarGateway = Depends(get_calendar),
    index: EventSearchIndex = Depends(get_search_index),
    notifications: BotNotificationGateway = Depends(get_notifications),
    directory: GraphDirectory = Depends(get_directory),
    categories: SqlCategoryStore = Depends(get_category_store),
) -> UserEvents:
    return UserEvents(store, calendar, index, notifications, directory, directory, categories=categories)


def get_current_user(x_user_id: str | None = Header(default=None)) -> str:
    """Directory id of the calling user, set by the Teams SSO front end."""
    user_id = normalize_user_id(x_user_id)
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return user_id
