"""Trigger events and the tracked-branch filter."""

from __future__ import annotations

from dataclasses import dataclass

from ..core.env import getenv

BRANCH_REF_PREFIX = "refs/heads/"
DEFAULT_EVENT = "push"


def normalize_branch(ref: str) -> str:
    ref = ref.strip()
    if ref.startswith(BRANCH_REF_PREFIX):
        return ref[len(BRANCH_REF_PREFIX):]
    return ref


@dataclass(frozen=True)
class TriggerEvent:
    branch: str
    commit: str
    event: str = DEFAULT_EVENT

    @classmethod
    def resolve(
        cls,
        branch: str | None = None,
        commit: str | None = None,
        event: str | None = None,
        fallback_commit: str | None = None,
    ) -> "TriggerEvent":
        """Build an event from explicit values, then CI environment, then local fallbacks."""
        resolved_branch = branch or getenv("GITHUB_REF") or getenv("GITHUB_REF_NAME") or ""
        resolved_commit = commit or getenv("GITHUB_SHA") or fallback_commit or ""
        resolved_event = event or getenv("GITHUB_EVENT_NAME") or DEFAULT_EVENT
        return cls(
            branch=normalize_branch(resolved_branch),
            commit=resolved_commit.strip(),
            event=resolved_event.strip(),
        )

    def to_payload(self) -> dict[str, str]:
        return {"branch": self.branch, "commit": self.commit, "event": self.event}


def should_run(event: TriggerEvent, tracked_branch: str) -> bool:
    return event.event == DEFAULT_EVENT and event.branch == normalize_branch(tracked_branch)
