"""
Whop GraphQL client for the Whop forwarder.

This module fetches chat feed posts from the Whop public GraphQL API, selects
the authorization scheme from the configured keys, and turns transport and
GraphQL errors into actionable exceptions.
"""

import re
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from .config import Settings
from .exceptions import AuthenticationError, WhopAPIError
from .models import WhopMessage, WhopUser

logger = structlog.get_logger(__name__)

DEFAULT_PAGE_SIZE = 50

FEED_POSTS_QUERY = """query FeedPosts(
  $feedId: ID!
  $feedType: FeedTypes!
  $limit: Int
  $direction: Direction
) {
  feedPosts(
    feedId: $feedId
    feedType: $feedType
    limit: $limit
    direction: $direction
    includeDeleted: false
    includeReactions: false
  ) {
    posts {
      ... on DmsPost {
        id
        userId
        content
        createdAt
        feedId
        feedType
        isPosterAdmin
        mentionedUserIds
        fileAttachments {
          fileUrl
        }
      }
    }
    users {
      id
      username
      name
      profilePic
    }
  }
}"""

_APP_KEY_HINT = re.compile(r"App API Key", re.IGNORECASE)
_GRAPHQL_AUTH_HINT = re.compile(
    r"App API Key|app's user token|app user token", re.IGNORECASE
)

_AUTH_GUIDANCE = (
    "Create an App API Key in your Whop dashboard (Developer -> Apps or "
    "Company API keys) and set it as WHOP_API_KEY (or WHOP_APP_API_KEY) in "
    "your .env."
)


def _looks_like_company_key(key: str) -> bool:
    return bool(re.match(r"^apik_", key, re.IGNORECASE)) and bool(
        re.search(r"_C_", key, re.IGNORECASE)
    )


def build_auth_headers(settings: Settings) -> dict[str, str]:
    """
    Build request headers for the configured Whop credentials.

    An app key shaped like a company key is only sent as one when
    WHOP_COMPANY_ID is also configured.

    Args:
        settings: Application settings

    Returns:
        Header dictionary including Authorization when a key is configured
    """
    headers = {"Content-Type": "application/json"}

    app_key = settings.app_api_key
    explicit_company_key = settings.company_api_key
    company_id = settings.whop_company_id

    inferred_company_key = (
        not explicit_company_key
        and bool(app_key)
        and _looks_like_company_key(app_key)
        and bool(company_id)
    )
    company_key = explicit_company_key or (app_key if inferred_company_key else "")

    if company_key:
        headers["Authorization"] = f"Company {company_key}"
        if not company_id:
            logger.warning(
                "WHOP_COMPANY_ID is not set; some company-scoped calls may fail"
            )
    elif app_key:
        headers["Authorization"] = f"Bearer {app_key}"

    if company_id:
        headers["x-company-id"] = company_id

    return headers


class WhopClient:
    """
    Whop GraphQL API client.

    Fetches the most recent posts of a chat feed, newest first, joined with
    the author records returned on the same page.
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the Whop client.

        Args:
            settings: Application settings
            transport: Optional httpx transport, used to stub the API in tests
        """
        self.settings = settings
        self.graphql_url = settings.whop_graphql_url
        self._transport = transport

    async def fetch_messages(
        self, feed_id: str, limit: int = DEFAULT_PAGE_SIZE
    ) -> list[WhopMessage]:
        """
        Fetch the latest posts of a chat feed.

        Args:
            feed_id: Whop chat feed id
            limit: Maximum number of posts to return

        Returns:
            Messages ordered newest first

        Raises:
            AuthenticationError: If Whop rejects the configured credentials
            WhopAPIError: For any other transport or GraphQL error
        """
        payload = {
            "query": FEED_POSTS_QUERY,
            "variables": {
                "feedId": feed_id,
                "feedType": "chat_feed",
                "limit": limit,
                "direction": "desc",
            },
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.whop_request_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.graphql_url,
                    headers=build_auth_headers(self.settings),
                    json=payload,
                )
        except httpx.HTTPError as e:
            raise WhopAPIError(
                f"Failed to fetch messages: {e}", context={"feed_id": feed_id}
            ) from e

        if response.is_error:
            self._raise_for_status(response, feed_id)

        try:
            body = response.json()
        except ValueError as e:
            raise WhopAPIError(
                f"Invalid JSON from Whop GraphQL: {response.text}",
                status_code=response.status_code,
            ) from e

        if not body:
            raise WhopAPIError("Unexpected empty response from Whop GraphQL")

        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            self._raise_for_graphql_errors(errors)

        feed_posts = (body.get("data") or {}).get("feedPosts")
        if not feed_posts:
            raise WhopAPIError(f"Unexpected GraphQL response: {body}")

        messages = self._join_users(
            feed_posts.get("posts") or [], feed_posts.get("users") or []
        )
        logger.debug("Fetched messages", feed_id=feed_id, count=len(messages))
        return messages

    def _raise_for_status(self, response: httpx.Response, feed_id: str) -> None:
        body_text = response.text
        if response.status_code == 401 or _APP_KEY_HINT.search(body_text):
            raise AuthenticationError(
                "Authentication failed fetching Whop messages "
                f"(status {response.status_code}). The token provided does not "
                "appear to be a valid App API Key or app user token.\n"
                f"{_AUTH_GUIDANCE}\nServer response: {body_text}",
                status_code=response.status_code,
                context={"feed_id": feed_id},
            )

        raise WhopAPIError(
            f"Failed to fetch messages: {response.status_code} "
            f"{response.reason_phrase} - {body_text}",
            status_code=response.status_code,
            context={"feed_id": feed_id},
        )

    def _raise_for_graphql_errors(self, errors: list[Any]) -> None:
        messages = " \n".join(
            str(error.get("message", error)) if isinstance(error, dict) else str(error)
            for error in errors
        )
        if _GRAPHQL_AUTH_HINT.search(messages):
            raise AuthenticationError(
                "Authentication error from Whop GraphQL: the provided key is not "
                "a valid App API Key or app user token.\n"
                f"{_AUTH_GUIDANCE}\nWhop response: {messages}"
            )
        raise WhopAPIError(f"GraphQL errors from Whop: {messages}")

    @staticmethod
    def _join_users(
        posts: list[dict[str, Any]], users: list[dict[str, Any]]
    ) -> list[WhopMessage]:
        try:
            user_map = {
                user.id: user
                for user in (WhopUser.model_validate(raw) for raw in users if raw)
            }
            messages = []
            for post in posts:
                # Posts of other types match no fragment and come back empty
                if not post or not post.get("id"):
                    continue
                message = WhopMessage.model_validate(post)
                author = user_map.get(message.user_id)
                if author is not None:
                    message = message.model_copy(update={"user": author})
                messages.append(message)
        except ValidationError as e:
            raise WhopAPIError(f"Malformed post in Whop GraphQL response: {e}") from e
        return messages
