"""
HTTP adapters for the drafting and card creation collaborators.

Both endpoints speak JSON and answer with a tagged envelope:

    {"ok": true, ...payload}
    {"ok": false, "error": "message"}        (or {"error": {"message": ...}})

Transport failures and malformed envelopes come back as Err, never raised,
so the scan loop treats them like any other failed attempt.
"""

import logging
from typing import Any

import httpx

from cekatan.domain.constants import REQUEST_TIMEOUT
from cekatan.domain.errors import CollaboratorError
from cekatan.domain.ports import CardCreator, CardDrafter
from cekatan.domain.results import Err, Ok, Result
from cekatan.domain.scan.models import AIMode, CardDraft, CreateCardsPayload


def _error_message(data: dict[str, Any], fallback: str) -> str:
    err = data.get("error")
    if isinstance(err, dict):
        return str(err.get("message") or fallback)
    if err:
        return str(err)
    return fallback


class _JsonEndpoint:
    """Shared POST-and-unwrap logic. Reuses one AsyncClient per adapter."""

    def __init__(
        self,
        url: str,
        timeout: float = REQUEST_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self._client = client
        self.logger = logging.getLogger(__name__)

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

        try:
            resp = await self._client.post(self.url, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            self.logger.error(f"Call to {self.url} failed: {e}")
            raise CollaboratorError(f"{self.url}: {e}") from e

        if not isinstance(data, dict) or "ok" not in data:
            raise CollaboratorError(f"{self.url}: response is missing required ok field")
        return data

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None


class HttpCardDrafter(_JsonEndpoint, CardDrafter):
    """Posts page text to the AI drafting endpoint."""

    async def draft(
        self, text: str, mode: AIMode, default_tags: list[str]
    ) -> Result[list[CardDraft]]:
        try:
            data = await self._post({"text": text, "mode": mode, "defaultTags": default_tags})
        except CollaboratorError as e:
            return Err(str(e))

        if not data["ok"]:
            return Err(_error_message(data, "AI draft failed"))

        try:
            drafts = [
                CardDraft(
                    stem=d["stem"],
                    options=list(d["options"]),
                    correct_index=int(d["correctIndex"]),
                    explanation=d.get("explanation"),
                    tag_names=list(d.get("tagNames") or []),
                )
                for d in data.get("drafts") or []
            ]
        except (KeyError, TypeError, ValueError) as e:
            return Err(f"Malformed draft in response: {e}")

        return Ok(drafts)


class HttpCardCreator(_JsonEndpoint, CardCreator):
    """Posts a batch of drafts to the card creation endpoint."""

    async def create_cards(self, payload: CreateCardsPayload) -> Result[int]:
        body = {
            "targetCollectionId": payload.target_collection_id,
            "sessionTags": payload.session_tags,
            "cards": [
                {
                    "stem": c.stem,
                    "options": c.options,
                    "correctIndex": c.correct_index,
                    "explanation": c.explanation,
                    "tagNames": c.tag_names,
                }
                for c in payload.cards
            ],
        }
        try:
            data = await self._post(body)
        except CollaboratorError as e:
            return Err(str(e))

        if not data["ok"]:
            return Err(_error_message(data, "Save failed"))

        created = data.get("createdCount")
        if not isinstance(created, int) or created < 0:
            return Err("Response is missing a valid createdCount")
        return Ok(created)
