"""Map domain errors onto HTTP responses."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException
from slack_sdk.errors import SlackApiError

from slack_assistant.core.errors import ConversationNotFoundError, ProfileNotFoundError


@contextmanager
def translate_errors() -> Iterator[None]:
    try:
        yield
    except (ProfileNotFoundError, ConversationNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except SlackApiError as exc:
        error = exc.response.get("error") if exc.response is not None else None
        raise HTTPException(status_code=502, detail=f"Slack API error: {error or exc}") from exc


__all__ = ["translate_errors"]
