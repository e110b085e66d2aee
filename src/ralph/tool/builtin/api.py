"""Tools backed by the remote REST service.

Every tool returns the response body as text so the engine can read the
service's own error messages. Transport failures become tool errors.
"""

from __future__ import annotations

import logging
from typing import ClassVar

import httpx
from pydantic import BaseModel, Field

from ralph.api import ApiClient, extract_claim_url, extract_credential
from ralph.state import StateStore
from ralph.tool.base import BaseTool, ToolError, ToolOk, ToolResult

logger = logging.getLogger(__name__)


def _http_failure(response: httpx.Response) -> ToolError:
    return ToolError(output=f"Error: {response.status_code} - {response.text}")


class _ApiTool:
    """Shared constructor for tools that call the service."""

    def __init__(self, api: ApiClient, state: StateStore) -> None:
        self._api = api
        self._state = state


# ---------------------------------------------------------------------------
# register_agent
# ---------------------------------------------------------------------------


class RegisterAgentParams(BaseModel):
    name: str = Field(description="Name to register the agent under.")
    description: str = Field(description="Short public description of the agent.")


class RegisterAgentTool(_ApiTool, BaseTool[RegisterAgentParams]):
    """Create the agent's identity on the service and persist its credential."""

    name: ClassVar[str] = "register_agent"
    description: ClassVar[str] = (
        "Register a new agent. On success the API key is saved automatically "
        "and any claim URL the operator must visit is returned."
    )
    param_model: ClassVar[type[BaseModel]] = RegisterAgentParams

    async def execute(self, params: RegisterAgentParams) -> ToolResult:
        logger.info("Registering agent: %s", params.name)
        try:
            response = await self._api.post(
                "agents/register",
                {"name": params.name, "description": params.description},
            )
        except httpx.HTTPError as e:
            return ToolError(output=f"Exception during registration: {e}")

        if not response.is_success:
            return _http_failure(response)

        try:
            payload = response.json()
        except ValueError:
            payload = None

        match = extract_credential(payload)
        if match is None:
            return ToolError(
                output=(
                    "Registration succeeded but could not auto-parse token from: "
                    f"{response.text}. Please manually save it if possible."
                )
            )

        claim_url = extract_claim_url(payload)
        async with self._state.mutate() as draft:
            draft.credential = match.credential
            draft.identity = params.name
            if claim_url:
                draft.activation_url = claim_url
        logger.info("Credential for %s found at %s", params.name, match.source)

        message = "Registration successful. API key saved."
        if claim_url:
            message += (
                f"\nIMPORTANT: You must visit this URL to claim the agent: {claim_url}"
            )
        return ToolOk(output=message)


# ---------------------------------------------------------------------------
# Read-only calls
# ---------------------------------------------------------------------------


class GetFeedParams(BaseModel):
    sort: str = Field(
        default="recent", description="Sort order: 'recent' or 'popular'."
    )


class GetFeedTool(_ApiTool, BaseTool[GetFeedParams]):
    name: ClassVar[str] = "get_feed"
    description: ClassVar[str] = (
        "Gets the latest posts. Sort can be 'recent' or 'popular'."
    )
    param_model: ClassVar[type[BaseModel]] = GetFeedParams

    async def execute(self, params: GetFeedParams) -> ToolResult:
        logger.info("Getting feed (sort=%s)", params.sort)
        try:
            response = await self._api.get("posts", params={"sort": params.sort})
        except httpx.HTTPError as e:
            return ToolError(output=f"Request failed: {e}")
        return ToolOk(output=response.text)


class SearchParams(BaseModel):
    query: str = Field(description="Free-text search query.")


class SearchTool(_ApiTool, BaseTool[SearchParams]):
    name: ClassVar[str] = "search"
    description: ClassVar[str] = "Search for posts."
    param_model: ClassVar[type[BaseModel]] = SearchParams

    async def execute(self, params: SearchParams) -> ToolResult:
        logger.info("Searching: %s", params.query)
        try:
            response = await self._api.get("search", params={"q": params.query})
        except httpx.HTTPError as e:
            return ToolError(output=f"Request failed: {e}")
        return ToolOk(output=response.text)


# ---------------------------------------------------------------------------
# Mutating calls (timestamp the state on success)
# ---------------------------------------------------------------------------


class CreatePostParams(BaseModel):
    title: str = Field(description="Post title.")
    content: str = Field(description="Post body.")
    submolt: str = Field(description="Community the post belongs to.")


class CreatePostTool(_ApiTool, BaseTool[CreatePostParams]):
    name: ClassVar[str] = "create_post"
    description: ClassVar[str] = "Creates a new post."
    param_model: ClassVar[type[BaseModel]] = CreatePostParams

    async def execute(self, params: CreatePostParams) -> ToolResult:
        logger.info("Creating post: %s", params.title)
        try:
            response = await self._api.post("posts", params.model_dump())
        except httpx.HTTPError as e:
            return ToolError(output=f"Request failed: {e}")

        if not response.is_success:
            return _http_failure(response)
        await self._state.touch()
        return ToolOk(output=response.text)


class CommentParams(BaseModel):
    post_id: str = Field(description="ID of the post to comment on.")
    content: str = Field(description="Comment text.")
    parent_id: str | None = Field(
        default=None, description="Comment ID to reply to, for threaded replies."
    )


class CommentTool(_ApiTool, BaseTool[CommentParams]):
    name: ClassVar[str] = "comment"
    description: ClassVar[str] = (
        "Add a comment to a post. Requires post_id and content. "
        "Optional parent_id for replies."
    )
    param_model: ClassVar[type[BaseModel]] = CommentParams

    async def execute(self, params: CommentParams) -> ToolResult:
        logger.info("Adding comment to post %s", params.post_id)
        payload: dict[str, str] = {"content": params.content}
        if params.parent_id:
            payload["parent_id"] = params.parent_id

        try:
            response = await self._api.post(f"posts/{params.post_id}/comments", payload)
        except httpx.HTTPError as e:
            return ToolError(output=f"Request failed: {e}")

        if not response.is_success:
            return _http_failure(response)
        await self._state.touch()
        return ToolOk(output=response.text)
