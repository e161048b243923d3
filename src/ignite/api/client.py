"""
Ignite backend API client.

Provides async access to the Ignite REST API. Every call goes through a
RequestQueue, which retries transient failures with exponential backoff.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import httpx

from ..errors.exceptions import ApiConnectionError, ApiTimeoutError, HttpStatusError
from ..utils.retry import (
    MUTATION_RETRY_POLICY,
    QUERY_RETRY_POLICY,
    RetryConfig,
    run_with_policy,
)
from ..workbook.schemas import ForumPostCreate, ForumThreadCreate
from .models import (
    ChecklistItem,
    ForumPost,
    ForumThread,
    IgniteDoc,
    Notification,
    SalesPageDraft,
    SectionCompletion,
    StrategyDocument,
    User,
    WorkbookResponse,
    parse_list,
)
from .queue import QueueStatus, RequestQueue

logger = logging.getLogger(__name__)


@dataclass
class IgniteApiConfig:
    """Ignite backend configuration"""
    base_url: str = "http://localhost:5000"
    timeout: float = 30.0
    queue_max_size: int = 100
    retry: RetryConfig = field(default_factory=RetryConfig)

    @classmethod
    def from_env(cls) -> "IgniteApiConfig":
        """Build config from IGNITE_API_* environment variables"""
        return cls(
            base_url=os.getenv("IGNITE_API_URL", "http://localhost:5000").rstrip("/"),
            timeout=float(os.getenv("IGNITE_API_TIMEOUT", "30")),
            queue_max_size=int(os.getenv("IGNITE_QUEUE_MAX_SIZE", "100")),
            retry=RetryConfig.from_env(),
        )


def _error_message(response: httpx.Response) -> str:
    """Pick the most useful message out of an error response"""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])

    text = response.text.strip()
    return text or response.reason_phrase or "Request failed"


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class IgniteApiClient:
    """
    Async Ignite backend client.

    Uses a persistent HTTP client and forwards the caller's session cookies
    so requests are made on the user's behalf.
    """

    def __init__(
        self,
        config: Optional[IgniteApiConfig] = None,
        cookies: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        queue: Optional[RequestQueue] = None
    ):
        """
        Initialize the client.

        Args:
            config: Backend configuration (defaults to environment)
            cookies: Session cookies sent with every request
            transport: Custom httpx transport (tests use httpx.MockTransport)
            queue: Request queue (a new one is created when omitted)
        """
        self.config = config or IgniteApiConfig.from_env()
        self.queue = queue or RequestQueue(
            config=self.config.retry,
            max_size=self.config.queue_max_size,
        )
        self._cookies = dict(cookies or {})
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Context manager entry"""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        await self.close()

    async def connect(self):
        """Initialize HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                cookies=self._cookies,
                headers={"Accept": "application/json"},
                transport=self._transport,
                follow_redirects=True
            )

    async def close(self):
        """Cancel pending requests and close HTTP client"""
        self.queue.cancel_all()
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get HTTP client, raising if not connected"""
        if self._client is None:
            raise RuntimeError("IgniteApiClient not connected. Use async with or call connect()")
        return self._client

    # ========================================================================
    # Core request path
    # ========================================================================

    async def _send(
        self,
        method: str,
        path: str,
        data: Any = None,
        timeout: Optional[float] = None
    ) -> Any:
        """
        Perform a single HTTP attempt.

        Raises:
            HttpStatusError: Non-2xx response
            ApiTimeoutError: Request exceeded its timeout
            ApiConnectionError: Request never reached the backend
        """
        client = self._get_client()

        try:
            response = await client.request(
                method,
                path,
                json=data,
                timeout=timeout if timeout is not None else self.config.timeout
            )
        except httpx.TimeoutException as e:
            raise ApiTimeoutError(f"Request timed out: {method} {path}") from e
        except httpx.RequestError as e:
            raise ApiConnectionError(f"Network error during {method} {path}: {e}") from e

        if response.is_error:
            raise HttpStatusError(response.status_code, _error_message(response), path)

        return _decode(response)

    async def request(
        self,
        method: str,
        path: str,
        data: Any = None,
        max_retries: int = 3,
        priority: str = "medium",
        timeout: Optional[float] = None
    ) -> Any:
        """
        Make an API request through the retry queue.

        Args:
            method: HTTP method
            path: API path (e.g. /api/auth/user)
            data: JSON body
            max_retries: Retry limit for transient failures
            priority: Queue priority ("high", "medium", "low")
            timeout: Per-attempt timeout in seconds

        Returns:
            Decoded JSON body (None for empty responses)
        """
        return await self.queue.submit(
            lambda: self._send(method, path, data, timeout),
            max_retries=max_retries,
            priority=priority,
        )

    async def request_basic(self, method: str, path: str, data: Any = None) -> Any:
        """Make an API request with minimal retry"""
        return await self.request(method, path, data, max_retries=1)

    async def query(self, path: str, on_401: str = "raise", max_retries: int = 2) -> Any:
        """
        GET a resource, applying the query retry policy on top of the queue.

        Args:
            path: API path
            on_401: "raise" or "return_none"
            max_retries: Queue retry limit per attempt
        """
        try:
            return await run_with_policy(
                QUERY_RETRY_POLICY,
                lambda: self.request("GET", path, max_retries=max_retries),
            )
        except HttpStatusError as e:
            if on_401 == "return_none" and e.status_code == 401:
                return None
            raise

    async def mutate(self, method: str, path: str, data: Any = None) -> Any:
        """Send a write, applying the mutation retry policy on top of the queue"""
        return await run_with_policy(
            MUTATION_RETRY_POLICY,
            lambda: self.request(method, path, data),
        )

    async def execute_transaction(
        self,
        operations: List[Dict[str, Any]],
        rollback_on_failure: bool = True
    ) -> List[Any]:
        """
        Run operations sequentially at high priority.

        Args:
            operations: Dicts with "method", "path" and optional "data"
            rollback_on_failure: Log completed operations needing rollback on failure

        Returns:
            Decoded result of each operation, in order
        """
        results: List[Any] = []
        completed: List[Dict[str, Any]] = []

        try:
            for operation in operations:
                result = await self.request(
                    operation["method"],
                    operation["path"],
                    operation.get("data"),
                    priority="high",
                )
                results.append(result)
                completed.append(operation)
            return results

        except Exception as e:
            logger.error(f"Transaction failed: {e}")

            if rollback_on_failure and completed:
                # No backend rollback endpoint exists yet
                logger.warning(
                    "Operations to rollback: "
                    + ", ".join(f"{op['method']} {op['path']}" for op in completed)
                )
            raise

    def cancel_request(self, request_id: str) -> bool:
        return self.queue.cancel_request(request_id)

    def cancel_all_requests(self) -> int:
        return self.queue.cancel_all()

    def get_queue_status(self) -> QueueStatus:
        return self.queue.get_status()

    # ========================================================================
    # Auth Operations
    # ========================================================================

    async def get_current_user(self) -> Optional[User]:
        """
        Get the logged-in user.

        Returns:
            User, or None when the session is not authenticated
        """
        data = await self.query("/api/auth/user", on_401="return_none")
        return User.from_dict(data) if data else None

    async def logout(self) -> None:
        await self.request_basic("POST", "/api/auth/logout")

    async def update_profile(self, updates: Dict[str, Any]) -> User:
        data = await self.mutate("PUT", "/api/auth/user", updates)
        return User.from_dict(data)

    # ========================================================================
    # Workbook Operations
    # ========================================================================

    async def get_workbook_responses(
        self,
        user_id: int,
        step_number: int,
        offer_number: int = 1
    ) -> List[WorkbookResponse]:
        data = await self.query(
            f"/api/workbook-responses/user/{user_id}/step/{step_number}?offerNumber={offer_number}"
        )
        return parse_list(WorkbookResponse, data)

    async def save_workbook_response(self, response: WorkbookResponse) -> WorkbookResponse:
        """Upsert a workbook answer"""
        data = await self.mutate("POST", "/api/workbook-responses", response.to_payload())
        return WorkbookResponse.from_dict(data) if isinstance(data, dict) else response

    async def delete_workbook_response(
        self,
        user_id: int,
        step_number: int,
        question_key: str
    ) -> None:
        key = quote(question_key, safe="")
        await self.mutate(
            "DELETE",
            f"/api/workbook-responses/user/{user_id}/step/{step_number}/question/{key}"
        )

    async def migrate_workbook_responses(
        self,
        user_id: int,
        step_number: int,
        responses: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        Upload locally stored answers in one batch.

        Args:
            user_id: Owner of the answers
            step_number: Workbook step the answers belong to
            responses: Dicts with questionKey, responseText, sectionTitle

        Returns:
            Backend result (with a "migrated" count)
        """
        result = await self.mutate(
            "POST",
            "/api/workbook-responses/migrate",
            {"userId": user_id, "stepNumber": step_number, "responses": responses},
        )
        return result if isinstance(result, dict) else {}

    # ========================================================================
    # Section Completion & Checklist Operations
    # ========================================================================

    async def get_section_completions(self, user_id: int) -> List[SectionCompletion]:
        data = await self.query(f"/api/section-completions/user/{user_id}")
        return parse_list(SectionCompletion, data)

    async def mark_section_complete(
        self,
        user_id: int,
        step_number: int,
        section_title: str,
        offer_number: int = 1
    ) -> SectionCompletion:
        data = await self.mutate("POST", "/api/section-completions", {
            "userId": user_id,
            "stepNumber": step_number,
            "sectionTitle": section_title,
            "offerNumber": offer_number,
        })
        return SectionCompletion.from_dict(data)

    async def unmark_section_complete(
        self,
        user_id: int,
        step_number: int,
        section_title: str,
        offer_number: int = 1
    ) -> None:
        await self.mutate("DELETE", "/api/section-completions", {
            "userId": user_id,
            "stepNumber": step_number,
            "sectionTitle": section_title,
            "offerNumber": offer_number,
        })

    async def get_checklist_items(self, user_id: int, section_key: str) -> List[ChecklistItem]:
        key = quote(section_key, safe="")
        data = await self.query(f"/api/checklist-items/{user_id}/{key}")
        return parse_list(ChecklistItem, data)

    async def upsert_checklist_item(
        self,
        user_id: int,
        section_key: str,
        item_key: str,
        is_completed: bool
    ) -> ChecklistItem:
        data = await self.mutate("POST", "/api/checklist-items", {
            "userId": user_id,
            "sectionKey": section_key,
            "itemKey": item_key,
            "isCompleted": is_completed,
        })
        return ChecklistItem.from_dict(data)

    # ========================================================================
    # Versioned Document Operations (messaging strategies, offer outlines)
    # ========================================================================

    async def get_active_document(self, kind: str, user_id: int) -> Optional[StrategyDocument]:
        """
        Get the active version of a document.

        Args:
            kind: "messaging-strategies" or "user-offer-outlines"
            user_id: Document owner
        """
        try:
            data = await self.query(f"/api/{kind}/active/{user_id}")
        except HttpStatusError as e:
            if e.status_code == 404:
                return None
            raise
        return StrategyDocument.from_dict(data) if data else None

    async def list_documents(self, kind: str, user_id: int) -> List[StrategyDocument]:
        data = await self.query(f"/api/{kind}/user/{user_id}")
        return parse_list(StrategyDocument, data)

    async def create_document(self, kind: str, payload: Dict[str, Any]) -> StrategyDocument:
        data = await self.mutate("POST", f"/api/{kind}", payload)
        return StrategyDocument.from_dict(data)

    async def update_document(
        self,
        kind: str,
        document_id: int,
        updates: Dict[str, Any]
    ) -> StrategyDocument:
        data = await self.mutate("PUT", f"/api/{kind}/{document_id}", updates)
        return StrategyDocument.from_dict(data)

    async def activate_document(self, kind: str, document_id: int, user_id: int) -> Any:
        return await self.mutate("POST", f"/api/{kind}/{document_id}/activate/{user_id}")

    async def delete_document(self, kind: str, document_id: int) -> None:
        await self.mutate("DELETE", f"/api/{kind}/{document_id}")

    # ========================================================================
    # Offer & Sales Page Operations
    # ========================================================================

    async def list_offers(self, user_id: int) -> List[Dict[str, Any]]:
        return await self.query(f"/api/user-offers/user/{user_id}") or []

    async def get_active_offer(self, user_id: int) -> Optional[Dict[str, Any]]:
        return await self.query(f"/api/user-offers/active/{user_id}")

    async def create_offer(self, offer: Dict[str, Any]) -> Dict[str, Any]:
        return await self.mutate("POST", "/api/user-offers", offer)

    async def set_active_offer(self, offer_id: int) -> Any:
        return await self.mutate("POST", f"/api/user-offers/{offer_id}/set-active")

    async def list_sales_page_drafts(self, user_id: int) -> List[SalesPageDraft]:
        data = await self.query(f"/api/sales-page-drafts/user/{user_id}")
        return parse_list(SalesPageDraft, data)

    async def get_active_sales_page_draft(self, user_id: int) -> Optional[SalesPageDraft]:
        data = await self.query(f"/api/sales-page-drafts/active/{user_id}")
        return SalesPageDraft.from_dict(data) if data else None

    async def save_sales_page_draft(self, draft: Dict[str, Any]) -> SalesPageDraft:
        data = await self.mutate("POST", "/api/sales-page-drafts", draft)
        return SalesPageDraft.from_dict(data)

    async def set_active_sales_page_draft(self, user_id: int, draft_id: int) -> Any:
        return await self.mutate(
            "POST",
            "/api/sales-page-drafts/set-active",
            {"userId": user_id, "draftId": draft_id},
        )

    # ========================================================================
    # IGNITE Docs Operations
    # ========================================================================

    async def list_ignite_docs(self, user_id: int) -> List[IgniteDoc]:
        data = await self.query(f"/api/ignite-docs/user/{user_id}")
        return parse_list(IgniteDoc, data)

    async def create_ignite_doc(
        self,
        user_id: int,
        doc_type: str,
        title: str,
        content_markdown: str
    ) -> IgniteDoc:
        data = await self.mutate("POST", "/api/ignite-docs", {
            "userId": user_id,
            "docType": doc_type,
            "title": title,
            "contentMarkdown": content_markdown,
        })
        return IgniteDoc.from_dict(data)

    async def delete_ignite_doc(self, doc_id: int) -> None:
        await self.mutate("DELETE", f"/api/ignite-docs/{doc_id}")

    # ========================================================================
    # Forum Operations
    # ========================================================================

    async def list_forum_categories(self) -> List[Dict[str, Any]]:
        return await self.query("/api/forum/categories") or []

    async def list_forum_threads(self, category_slug: str) -> List[ForumThread]:
        slug = quote(category_slug, safe="")
        data = await self.query(f"/api/forum/categories/{slug}/threads")
        if isinstance(data, dict):
            data = data.get("threads", [])
        return parse_list(ForumThread, data)

    async def create_forum_thread(self, category_id: int, title: str, body: str) -> ForumThread:
        """
        Raises:
            pydantic.ValidationError: Title or body length out of range
        """
        thread = ForumThreadCreate(title=title, body=body)
        data = await self.mutate("POST", "/api/forum/threads", {
            "categoryId": category_id,
            **thread.model_dump(),
        })
        return ForumThread.from_dict(data)

    async def list_forum_posts(self, thread_id: int) -> List[ForumPost]:
        data = await self.query(f"/api/forum/threads/{thread_id}/posts")
        return parse_list(ForumPost, data)

    async def create_forum_post(self, thread_id: int, body: str) -> ForumPost:
        post = ForumPostCreate(body=body)
        data = await self.mutate("POST", f"/api/forum/threads/{thread_id}/posts", post.model_dump())
        return ForumPost.from_dict(data)

    async def search_forum_users(self, query: str) -> List[Dict[str, Any]]:
        """Look up users for @mention autocomplete"""
        return await self.query(f"/api/forum/users/search?q={quote(query)}") or []

    # ========================================================================
    # Notification Operations
    # ========================================================================

    async def list_notifications(self) -> List[Notification]:
        data = await self.query("/api/notifications")
        return parse_list(Notification, data)

    async def get_unread_notification_count(self) -> int:
        data = await self.query("/api/notifications/unread-count")
        if isinstance(data, dict):
            return int(data.get("count", 0))
        return int(data or 0)

    async def mark_notification_read(self, notification_id: int) -> Any:
        return await self.mutate("PATCH", f"/api/notifications/{notification_id}/read", {})

    async def mark_all_notifications_read(self) -> Any:
        return await self.mutate("PATCH", "/api/notifications/mark-all-read", {})

    # ========================================================================
    # Admin Operations
    # ========================================================================

    async def list_users(self) -> List[User]:
        data = await self.query("/api/admin/users")
        return parse_list(User, data)

    async def get_user_progress(self, user_id: int) -> Any:
        return await self.query(f"/api/admin/users/{user_id}/progress")

    async def set_user_active(self, user_id: int, is_active: bool) -> Any:
        return await self.mutate(
            "PUT", f"/api/admin/users/{user_id}/toggle-active", {"isActive": is_active}
        )

    async def reset_user_progress(self, user_id: int, reset_type: str) -> Any:
        return await self.mutate(
            "POST", f"/api/admin/users/{user_id}/reset-progress", {"resetType": reset_type}
        )

    async def get_usage_analytics(self) -> Any:
        return await self.query("/api/admin/analytics/usage")

    # ========================================================================
    # Payment & Support Operations
    # ========================================================================

    async def create_checkout_session(
        self,
        amount: int,
        product_name: str,
        currency: str = "usd"
    ) -> Dict[str, Any]:
        """
        Create a Stripe checkout session through the backend.

        Returns:
            Dict with "sessionId" (and optional "message")
        """
        return await self.request_basic("POST", "/api/create-checkout-session", {
            "amount": amount,
            "currency": currency,
            "product_name": product_name,
        })

    async def create_payment_intent(self, amount: int) -> Dict[str, Any]:
        return await self.request_basic("POST", "/api/create-payment-intent", {"amount": amount})

    async def create_issue_report(self, report: Dict[str, Any]) -> Any:
        payload = {"priority": "medium", **report}
        return await self.mutate("POST", "/api/issue-reports", payload)
