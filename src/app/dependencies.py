from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from src.adapters.contact_http import HttpContactSink
from src.adapters.email_client import EmailClient
from src.adapters.mongo_client import MongoClientFactory
from src.adapters.openai_client import OpenAIClientFactory
from src.app.config import Settings, get_settings
from src.orchestrator.chat import ChatOrchestrator
from src.providers.base import ModelProvider
from src.providers.inline import InlineCompletionProvider
from src.providers.threaded import ThreadedRunProvider
from src.services.contact import ContactSink, MongoContactSink
from src.services.tools import ToolDispatcher


@lru_cache(maxsize=1)
def get_mongo_factory() -> MongoClientFactory:
    settings = get_settings()
    return MongoClientFactory(settings.mongo_uri, settings.mongo_database)


@lru_cache(maxsize=1)
def get_openai_factory() -> OpenAIClientFactory:
    settings = get_settings()
    return OpenAIClientFactory(api_key=settings.openai_api_key)


@lru_cache(maxsize=1)
def get_email_client() -> EmailClient:
    settings = get_settings()
    return EmailClient(api_key=settings.email_api_key, sender_email=settings.email_sender_email)


def get_contact_sink(
    settings: Settings = Depends(get_settings),
    email_client: EmailClient = Depends(get_email_client),
) -> ContactSink:
    if settings.contact_sink == "mongo":
        return MongoContactSink(
            collection=get_mongo_factory().get_collection(settings.contacts_collection),
            email_client=email_client,
            notify_email=settings.contact_notify_email,
        )
    return HttpContactSink(url=settings.contact_save_url, timeout=settings.contact_save_timeout_seconds)


def get_tool_dispatcher(contact_sink: ContactSink = Depends(get_contact_sink)) -> ToolDispatcher:
    return ToolDispatcher(contact_sink=contact_sink)


def build_provider(settings: Settings, dispatcher: ToolDispatcher) -> ModelProvider:
    client = get_openai_factory().get_client()
    if settings.chat_provider == "threaded":
        return ThreadedRunProvider(
            client=client,
            dispatcher=dispatcher,
            assistant_id=settings.openai_assistant_id,
            poll_interval=settings.run_poll_interval_seconds,
            max_attempts=settings.run_poll_max_attempts,
        )
    return InlineCompletionProvider(client=client, dispatcher=dispatcher, model=settings.openai_model)


def get_chat_orchestrator(
    settings: Settings = Depends(get_settings),
    dispatcher: ToolDispatcher = Depends(get_tool_dispatcher),
) -> ChatOrchestrator:
    # Providers are built only after the request and configuration pass validation.
    return ChatOrchestrator(
        settings=settings,
        provider_factory=lambda: build_provider(settings, dispatcher),
    )
