"""Cached style analysis per profile, with a Web API search fallback."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Literal, Sequence

from slack_assistant.core.config import ProfileConfig, Settings, get_profile
from slack_assistant.core.logging import get_logger, profile_context
from slack_assistant.db.store import EventStore
from slack_assistant.models.entities import StyleFingerprint, StyleProfile
from slack_assistant.slack.client import SlackClientManager
from slack_assistant.style.analyzer import compute_fingerprint, round_half_up, select_representative_samples

logger = get_logger(__name__)

StyleStatus = Literal["ok", "insufficient_data", "fetch_failed"]
StyleSource = Literal["cache", "local", "remote"]


@dataclass(slots=True)
class StyleResult:
    """Outcome of a style request; ``detail`` explains non-ok statuses."""

    profile_id: str
    status: StyleStatus
    style: StyleProfile | None = None
    source: StyleSource | None = None
    analyzed: int = 0
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


@dataclass(slots=True)
class StyleService:
    store: EventStore
    clients: SlackClientManager
    profiles: Sequence[ProfileConfig]
    settings: Settings = field(default_factory=Settings)

    async def get_style(self, profile_id: str, refresh: bool = False) -> StyleResult:
        profile = get_profile(list(self.profiles), profile_id)
        extra = profile_context(profile.id)

        if not refresh:
            cached = await asyncio.to_thread(self.store.get_style, profile.id)
            if cached is not None:
                return StyleResult(profile_id=profile.id, status="ok", style=cached, source="cache")

        logger.info("Fetching messages for style analysis...", extra=extra)
        own = await asyncio.to_thread(self.store.get_own_messages, profile.id, self.settings.style_own_message_limit)
        source: StyleSource
        if len(own) >= self.settings.style_local_minimum:
            texts = [message.text for message in own]
            source = "local"
            logger.info("Using %s stored messages for analysis.", len(texts), extra=extra)
        else:
            try:
                matches = await self.clients.search_user_messages(
                    profile.id, profile.user_id, self.settings.style_own_message_limit
                )
            except Exception as exc:
                logger.error("Failed to fetch messages from the Web API: %s", exc, extra=extra)
                return StyleResult(
                    profile_id=profile.id,
                    status="fetch_failed",
                    detail=(
                        f'Failed to analyze style for profile "{profile.id}". Error: {exc}. '
                        "Try again later or watch more conversations so the daemon can collect messages."
                    ),
                )
            texts = [match.get("text") for match in matches if (match.get("text") or "").strip()]
            source = "remote"
            logger.info("Fetched %s messages from the Web API.", len(texts), extra=extra)

        if len(texts) < self.settings.style_min_messages:
            return StyleResult(
                profile_id=profile.id,
                status="insufficient_data",
                source=source,
                analyzed=len(texts),
                detail=(
                    f'Not enough messages to analyze style for profile "{profile.id}" (found {len(texts)}). '
                    f"Need at least {self.settings.style_min_messages} messages."
                ),
            )

        fingerprint, samples = await asyncio.to_thread(self._analyze_and_save, profile.id, texts)
        logger.info("Style profile saved (%s messages analyzed).", len(texts), extra=extra)
        return StyleResult(
            profile_id=profile.id,
            status="ok",
            style=StyleProfile(profile_id=profile.id, fingerprint=fingerprint, sample_messages=samples),
            source=source,
            analyzed=len(texts),
        )

    def _analyze_and_save(self, profile_id: str, texts: list[str]) -> tuple[StyleFingerprint, list[str]]:
        fingerprint = compute_fingerprint(texts)
        samples = select_representative_samples(texts, self.settings.style_sample_count)
        self.store.save_style(profile_id, fingerprint, samples)
        return fingerprint, samples


def format_style(result: StyleResult, max_samples: int = 15) -> str:
    """Render a style result as text suitable for a reply-drafting prompt."""
    if result.style is None:
        return result.detail or f'No style profile found for "{result.profile_id}".'

    fp = result.style.fingerprint
    emoji_pct = int(round_half_up(fp.emoji_frequency * 100))
    lines = [
        f'**Writing Style Profile for "{result.profile_id}":**',
        "",
        f"- **Average message length:** {fp.avg_message_length} characters",
        f"- **Typical response length:** {fp.typical_response_length}",
        f"- **Formality level:** {fp.formality_level}",
        f"- **Capitalization:** {fp.capitalization_style}",
        f"- **Emoji frequency:** {emoji_pct}% of messages",
        f"- **Uses exclamation marks:** {'yes' if fp.uses_exclamation else 'rarely'}",
        f"- **Uses ellipsis:** {'yes' if fp.uses_ellipsis else 'rarely'}",
    ]
    if fp.greeting_patterns:
        lines.append(f"- **Greeting patterns:** {', '.join(fp.greeting_patterns)}")
    if fp.sign_off_patterns:
        lines.append(f"- **Sign-off patterns:** {', '.join(fp.sign_off_patterns)}")
    if fp.common_phrases:
        lines.append(f"- **Common phrases:** {', '.join(fp.common_phrases[:5])}")

    samples = result.style.sample_messages
    if samples:
        lines.extend(["", f"**Sample messages ({len(samples)}):**"])
        lines.extend(f"> {sample}" for sample in samples[:max_samples])
        if len(samples) > max_samples:
            lines.append(f"> ... and {len(samples) - max_samples} more")

    lines.extend(
        [
            "",
            "**Instructions for matching this style:** When drafting messages for this profile, match the "
            f"formality level ({fp.formality_level}), typical length ({fp.typical_response_length}), "
            f"capitalization style ({fp.capitalization_style}), and emoji usage ({emoji_pct}%). "
            "Use similar greetings and sign-offs when appropriate.",
        ]
    )
    return "\n".join(lines)


__all__ = ["StyleResult", "StyleService", "format_style"]
