"""
Agent Client.

Invokes a remote analysis agent by id with a natural-language instruction
and normalizes whatever comes back into an AgentEnvelope.
"""

import os
import json
import uuid
import logging
from typing import Any, Dict, Optional, Protocol

import httpx
from pydantic import ValidationError

from ..database.models import AgentEnvelope, AgentResponse

logger = logging.getLogger(__name__)


class AgentClient(Protocol):
    """Anything that can invoke a remote agent."""

    async def invoke(self, instruction: str, agent_id: str) -> AgentEnvelope:
        ...


def extract_json(text: str) -> Any:
    """
    Decode JSON from an agent reply.

    Agents sometimes wrap JSON in markdown code blocks; those are stripped.
    Returns the original text if it is not JSON.
    """
    stripped = text.strip()
    if "```json" in stripped:
        stripped = stripped.split("```json")[1].split("```")[0].strip()
    elif "```" in stripped:
        stripped = stripped.split("```")[1].split("```")[0].strip()

    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        return text


def normalize_payload(body: Any) -> AgentEnvelope:
    """Turn a decoded response body into an envelope."""
    if isinstance(body, dict) and "success" in body:
        try:
            envelope = AgentEnvelope.model_validate(body)
        except ValidationError as e:
            return AgentEnvelope.failure(f"Invalid agent envelope: {e}")
        if envelope.response is not None and isinstance(envelope.response.result, str):
            envelope.response.result = extract_json(envelope.response.result)
        return envelope

    result = body.get("response", body) if isinstance(body, dict) else body
    if isinstance(result, dict) and "status" in result:
        try:
            response = AgentResponse.model_validate(result)
        except ValidationError as e:
            return AgentEnvelope.failure(f"Invalid agent response: {e}")
        if isinstance(response.result, str):
            response.result = extract_json(response.result)
        return AgentEnvelope(success=True, response=response)

    if isinstance(result, str):
        result = extract_json(result)
    return AgentEnvelope.ok(result)


class HttpAgentClient:
    """
    Agent client that talks to the agent inference endpoint over HTTP.

    Every failure (connection error, timeout, non-2xx status, non-JSON
    body) is reported as a failure envelope rather than raised.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        user_id: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the agent client.

        Args:
            api_url: Inference endpoint URL (AGENT_API_URL)
            api_key: API key sent as x-api-key (AGENT_API_KEY)
            user_id: User identifier forwarded with each call (AGENT_USER_ID)
            timeout: Request timeout in seconds (AGENT_TIMEOUT_SECONDS)
            transport: Optional httpx transport, used in tests
        """
        self.api_url = api_url or os.getenv("AGENT_API_URL")
        self.api_key = api_key or os.getenv("AGENT_API_KEY")
        self.user_id = user_id or os.getenv("AGENT_USER_ID", "gem-scanner")
        self.timeout = timeout or float(os.getenv("AGENT_TIMEOUT_SECONDS", "120"))

        if not self.api_url:
            raise ValueError("No agent API URL configured (AGENT_API_URL)")
        if not self.api_key:
            raise ValueError("No agent API key configured (AGENT_API_KEY)")

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers={
                "Content-Type": "application/json",
                "x-api-key": self.api_key,
            },
            transport=transport,
        )

    def _build_request(self, instruction: str, agent_id: str) -> Dict[str, Any]:
        return {
            "message": instruction,
            "agent_id": agent_id,
            "user_id": self.user_id,
            "session_id": f"{agent_id}-{uuid.uuid4().hex[:12]}",
        }

    async def invoke(self, instruction: str, agent_id: str) -> AgentEnvelope:
        """Invoke an agent and return a normalized envelope."""
        try:
            response = await self._client.post(
                self.api_url, json=self._build_request(instruction, agent_id)
            )
        except httpx.HTTPError as e:
            logger.error(f"Agent {agent_id} request failed: {e}")
            return AgentEnvelope.failure(f"Agent request failed: {e}")

        if response.status_code >= 400:
            logger.error(f"Agent {agent_id} returned HTTP {response.status_code}")
            return AgentEnvelope.failure(
                f"Agent returned HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            body = response.json()
        except ValueError:
            return AgentEnvelope.failure("Agent returned a non-JSON response")

        return normalize_payload(body)

    async def aclose(self) -> None:
        await self._client.aclose()


class UnconfiguredAgentClient:
    """Stand-in used when the agent endpoint is not configured; every call fails."""

    def __init__(self, reason: str):
        self.reason = reason

    async def invoke(self, instruction: str, agent_id: str) -> AgentEnvelope:
        return AgentEnvelope.failure(self.reason)

    async def aclose(self) -> None:
        pass
