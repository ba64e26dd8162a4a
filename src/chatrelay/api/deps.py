"""Centralized FastAPI dependency type aliases.

Import these ``*Dep`` aliases in route modules instead of manually
writing ``Annotated[T, Depends(get_xxx)]`` everywhere.  Each alias
corresponds to a single ``get_*`` accessor and can be overridden in
tests via ``app.dependency_overrides[get_xxx] = ...``.
"""

from typing import Annotated

from fastapi import Depends

from chatrelay.configs.config import AppConfig, get_app_config
from chatrelay.core.agent import AgentClient, get_agent_client
from chatrelay.core.pipeline import ResponsePipeline, get_pipeline
from chatrelay.core.relay import ConnectionRelay, get_relay
from chatrelay.core.store import ConversationStore, get_store

AppConfigDep = Annotated[AppConfig, Depends(get_app_config)]
StoreDep = Annotated[ConversationStore, Depends(get_store)]
AgentClientDep = Annotated[AgentClient, Depends(get_agent_client)]
PipelineDep = Annotated[ResponsePipeline, Depends(get_pipeline)]
RelayDep = Annotated[ConnectionRelay, Depends(get_relay)]
