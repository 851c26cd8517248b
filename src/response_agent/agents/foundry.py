"""Foundry Agent Service calls: generate, review, rewrite and chat.

Each call creates a fresh AzureAIAgentClient (and therefore a fresh Foundry
conversation), sends exactly one user message and returns the agent's text.
Nothing is retried. Configuration problems and exceptions are returned as
"Error: ..." strings that the UI shows verbatim, so a single failed call
never breaks the page.
"""

import logging

from agent_framework import Message
from agent_framework.azure import AzureAIAgentClient
from azure.identity.aio import DefaultAzureCredential
from opentelemetry import trace

from response_agent.config import Settings

logger = logging.getLogger(__name__)
tracer = trace.get_tracer("response_agent.agents")

# The Foundry agents are configured for Japanese output; prompts match.
REVIEW_PROMPT = (
    "以下のテキストをレビュー・改善してください。改善箇所を指摘してください:\n\n{text}"
)
REWRITE_PROMPT = "以下の AI 生成テキストを改善・修正してください。:\n\n{text}"
CHAT_CONTEXT_PROMPT = "【既知の背景】\n{context}\n\n【ユーザーの質問】\n{message}"


def build_chat_prompt(user_message: str, context: str | None) -> str:
    """Prefix the user's question with known background, when there is any."""
    if not context or not context.strip():
        return user_message
    return CHAT_CONTEXT_PROMPT.format(context=context, message=user_message)


class AgentService:
    """Request/response wrapper around the four Foundry agents.

    Usage:
        service = AgentService(get_settings())
        answer = await service.generate_response("What is our refund policy?")
        review = await service.review_response(answer)
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    @property
    def is_configured(self) -> bool:
        return bool(self._settings.foundry_endpoint.strip())

    async def generate_response(self, question_text: str) -> str:
        """Answer a question with the generator agent."""
        return await self._run(
            purpose="generate",
            label="Agent",
            setting="FOUNDRY_AGENT_ID",
            agent_id=self._settings.foundry_agent_id,
            prompt=question_text,
        )

    async def review_response(self, response_text: str) -> str:
        """Ask the review agent to critique and improve a response."""
        return await self._run(
            purpose="review",
            label="Review agent",
            setting="FOUNDRY_REVIEW_AGENT_ID",
            agent_id=self._settings.foundry_review_agent_id,
            prompt=REVIEW_PROMPT.format(text=response_text),
        )

    async def rewrite_response(self, response_text: str) -> str:
        """Ask the rewrite agent for a corrected version of a response."""
        return await self._run(
            purpose="rewrite",
            label="Rewrite agent",
            setting="FOUNDRY_REWRITE_AGENT_ID",
            agent_id=self._settings.foundry_rewrite_agent_id,
            prompt=REWRITE_PROMPT.format(text=response_text),
        )

    async def chat(self, user_message: str, context: str | None = None) -> str:
        """Send a chat turn, with optional background context, to the chat agent."""
        return await self._run(
            purpose="chat",
            label="Chat agent",
            setting="FOUNDRY_CHAT_AGENT_ID",
            agent_id=self._settings.foundry_chat_agent_id,
            prompt=build_chat_prompt(user_message, context),
            verbose_errors=False,
        )

    async def _run(
        self,
        *,
        purpose: str,
        label: str,
        setting: str,
        agent_id: str,
        prompt: str,
        verbose_errors: bool = True,
    ) -> str:
        endpoint = self._settings.foundry_endpoint

        if not endpoint.strip():
            logger.error("Foundry Agent endpoint is not configured")
            return (
                "Error: Foundry Agent endpoint is not configured. "
                "Set FOUNDRY_ENDPOINT."
            )

        if not agent_id or not agent_id.strip():
            logger.error("%s is not configured", label)
            return f"Error: {label} is not configured. Set {setting}."

        with tracer.start_as_current_span(f"agent_{purpose}") as span:
            span.set_attribute("agent.purpose", purpose)
            span.set_attribute("agent.id", agent_id)

            credential = DefaultAzureCredential()
            try:
                client = AzureAIAgentClient(
                    credential=credential,
                    project_endpoint=endpoint,
                    agent_id=agent_id,
                    should_cleanup_agent=False,
                )

                logger.info("Sending %s request to agent '%s'", purpose, agent_id)
                response = await client.get_response(
                    messages=[Message(role="user", text=prompt)]
                )
                logger.info("Received %s response from agent '%s'", purpose, agent_id)

                conversation_id = getattr(response, "conversation_id", None)
                if conversation_id:
                    span.set_attribute("agent.conversation_id", conversation_id)

                return response.text or ""
            except Exception as exc:
                span.record_exception(exc)
                logger.error("%s agent call failed: %s", label, exc, exc_info=True)
                if not verbose_errors:
                    return f"Error: {exc}"
                return (
                    f"Error: {exc}\n\n"
                    "Check the configuration:\n"
                    f"- Endpoint: {endpoint}\n"
                    f"- {label}: {agent_id}"
                )
            finally:
                await credential.close()
