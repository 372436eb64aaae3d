"""
Service entry point.

Builds every collaborator from 'Settings' and serves the FastAPI app with
uvicorn:

    python -m mesh_dm.server

Select the metadata store and responder with environment variables:

    MESH_STORE_BACKEND=json MESH_DATA_DIR=./data python -m mesh_dm.server
    MESH_RESPONDER_BACKEND=openai MESH_OPENAI_API_KEY=... python -m mesh_dm.server
    MESH_RESPONDER_BACKEND=webhook MESH_RESPONDER_WEBHOOK_URL=https://... python -m mesh_dm.server

The Azure backends need MESH_ACS_CONNECTION_STRING and MESH_ACS_ENDPOINT_URL.
"""

import uvicorn
from fastapi import FastAPI
from loguru import logger

from messaging_toolkit.conversation_database.controller import ChatOrchestrator
from messaging_toolkit.conversation_database.data_models.thread import ThreadDatabase
from messaging_toolkit.conversation_database.data_models.user import UserDatabase
from messaging_toolkit.conversation_database.in_memory.thread import InMemoryThreadDatabase
from messaging_toolkit.conversation_database.in_memory.user import InMemoryUserDatabase
from messaging_toolkit.conversation_database.json_file.thread import JSONFileThreadDatabase
from messaging_toolkit.conversation_database.json_file.user import JSONFileUserDatabase
from messaging_toolkit.identity.azure import AzureIdentityService
from messaging_toolkit.identity.issuer import IdentityIssuer
from messaging_toolkit.llms.openai import OpenAILLM
from messaging_toolkit.responders.base import NullResponder, Responder
from messaging_toolkit.responders.llm import LLMResponder
from messaging_toolkit.responders.webhook import WebhookResponder
from messaging_toolkit.transport.azure import AzureChatTransport

from mesh_dm.api import create_app
from mesh_dm.logging_utils import setup_logging
from mesh_dm.seed import ASSISTANT_USER, build_seed_users, load_minted_identities
from mesh_dm.settings import Settings, get_settings


def build_stores(settings: Settings) -> tuple[UserDatabase, ThreadDatabase]:
    seed_users = build_seed_users(load_minted_identities(settings.minted_identities_path))
    match settings.store_backend:
        case "json":
            logger.info(f"Metadata store: JSON files in {settings.data_dir}")
            return (
                JSONFileUserDatabase(settings.data_dir / "users.json", seed_users),
                JSONFileThreadDatabase(settings.data_dir / "threads.json"),
            )
        case _:
            logger.info("Metadata store: in memory")
            return InMemoryUserDatabase(seed_users), InMemoryThreadDatabase()


def build_responder(settings: Settings) -> Responder:
    match settings.responder_backend:
        case "openai":
            logger.info(f"Responder: OpenAI ({settings.openai_model})")
            llm = OpenAILLM(
                model_name=settings.openai_model,
                temperature=settings.openai_temperature,
                openai_api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
            )
            return LLMResponder(llm, assistant_name=ASSISTANT_USER["display_name"])
        case "webhook":
            if not settings.responder_webhook_url:
                raise ValueError("MESH_RESPONDER_WEBHOOK_URL is required for the webhook responder")
            logger.info(f"Responder: webhook {settings.responder_webhook_url}")
            return WebhookResponder(settings.responder_webhook_url, timeout=settings.responder_webhook_timeout)
        case _:
            logger.warning("Responder: none configured, assistant messages will not be answered")
            return NullResponder()


def build_app(settings: Settings) -> FastAPI:
    user_db, thread_db = build_stores(settings)
    identity_issuer = IdentityIssuer(user_db, AzureIdentityService(settings.acs_connection_string))
    orchestrator = ChatOrchestrator(
        user_db=user_db,
        thread_db=thread_db,
        identity_issuer=identity_issuer,
        transport=AzureChatTransport(settings.acs_endpoint_url),
        endpoint_url=settings.acs_endpoint_url,
        assistant_tagline=settings.assistant_tagline,
        assistant_persona=settings.assistant_persona,
    )
    return create_app(orchestrator, build_responder(settings))


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level, settings.json_logs)
    app = build_app(settings)
    logger.info(f"Starting chat broker on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
