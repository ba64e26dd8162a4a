"""Conversation store: abstract backend."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .models import (
    Agent,
    AgentCreate,
    Conversation,
    ConversationCreate,
    ConversationUpdate,
    Message,
    MessageCreate,
)


class ConversationStore(ABC):
    """Interface for conversation/message/agent storage backends.

    Each operation is atomic with respect to the others; implementations
    never hand out partially constructed records.
    """

    # -- conversations -----------------------------------------------------

    @abstractmethod
    async def create_conversation(self, create: ConversationCreate) -> Conversation:
        """Assign a fresh id and timestamps, then store the conversation."""

    @abstractmethod
    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        """Return the conversation, or ``None`` when absent."""

    @abstractmethod
    async def update_conversation(
        self, conversation_id: str, update: ConversationUpdate
    ) -> Conversation | None:
        """Merge the set fields and refresh ``updated_at``.

        Returns ``None`` when the conversation is absent; raises
        ``ValidationFailed`` if the merged record would be invalid.
        """

    # -- messages ----------------------------------------------------------

    @abstractmethod
    async def list_messages(self, conversation_id: str) -> list[Message]:
        """Messages of a conversation, oldest first (insertion order on ties).

        Empty list when there are none.
        """

    @abstractmethod
    async def create_message(self, create: MessageCreate) -> Message:
        """Store a new message.

        Raises:
            ValidationFailed: when the content is blank.
            NotFound: when the conversation does not exist.
        """

    @abstractmethod
    async def mark_message_read(self, message_id: str) -> None:
        """Set ``is_read``; silently ignores unknown ids."""

    # -- agents ------------------------------------------------------------

    @abstractmethod
    async def create_agent(self, create: AgentCreate) -> Agent:
        """Register a presence agent."""

    @abstractmethod
    async def list_agents(self) -> list[Agent]:
        """All registered agents, in registration order."""

    @abstractmethod
    async def get_available_agent(self) -> Agent | None:
        """The first online agent, if any."""

    @abstractmethod
    async def update_agent_status(self, agent_id: str, is_online: bool) -> None:
        """Flip an agent's online flag; silently ignores unknown ids."""
