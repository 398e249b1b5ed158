# core/context_store.py
"""
Context Store - conversational memory of the current scope.

update(tokens) classifies the turn's tokens, detects a scope change
(new zone or namespace), resets everything on a scope change and merges
the recognized fields. Fields not mentioned this turn keep their value.
"""

from dataclasses import dataclass
from typing import List, Optional

from core.models import SessionContext
from core import vocabulary
from utils.logger import log_debug, log_info


@dataclass
class RecognizedFields:
    """What a single turn's tokens explicitly named."""
    zone: Optional[str] = None
    namespace: Optional[str] = None
    resource: Optional[str] = None
    name: Optional[str] = None


def recognize(tokens: List[str]) -> RecognizedFields:
    """
    Classifies tokens against the zone / namespace / resource recognizers.

    Filler words are dropped first. The name is the token directly after the
    last resource keyword, provided it is not a zone, namespace, resource or
    filler token itself. Hyphenated identifiers pass through untouched.
    """
    words = [t for t in tokens if t and not vocabulary.is_filler(t)]
    found = RecognizedFields()
    last_resource_pos = -1

    for pos, word in enumerate(words):
        if vocabulary.is_zone(word):
            found.zone = word.lower()
        elif vocabulary.is_namespace(word):
            found.namespace = word.lower()
        else:
            kind = vocabulary.resource_kind_of(word)
            if kind:
                found.resource = kind
                last_resource_pos = pos

    if last_resource_pos >= 0 and last_resource_pos + 1 < len(words):
        candidate = words[last_resource_pos + 1]
        if not (
            vocabulary.is_zone(candidate)
            or vocabulary.is_namespace(candidate)
            or vocabulary.is_filler(candidate)
            or vocabulary.resource_kind_of(candidate)
        ):
            found.name = candidate

    return found


class ContextStore:
    """Owns the SessionContext; all mutation goes through update()."""

    def __init__(self, context: Optional[SessionContext] = None):
        self.context = context or SessionContext()

    # Read-only views used by fusion
    @property
    def zone(self) -> Optional[str]:
        return self.context.zone

    @property
    def namespace(self) -> Optional[str]:
        return self.context.namespace

    @property
    def resource(self) -> Optional[str]:
        return self.context.resource

    @property
    def name(self) -> Optional[str]:
        return self.context.name

    def clear_name(self) -> None:
        """List queries are not instance-scoped."""
        if self.context.name is not None:
            log_debug(f"[Context] Clearing name '{self.context.name}'")
        self.context.name = None

    def update(self, tokens: List[str]) -> bool:
        """
        Applies one turn's tokens.

        Returns:
            True if the scope changed (stored state was reset first).
        """
        found = recognize(tokens)
        ctx = self.context

        changed = (
            (found.zone is not None and found.zone != ctx.zone)
            or (found.namespace is not None and found.namespace != ctx.namespace)
        )

        if changed:
            log_info(
                f"[Context] Scope change: zone {ctx.zone} -> {found.zone or ctx.zone}, "
                f"namespace {ctx.namespace} -> {found.namespace or ctx.namespace}"
            )
            ctx.reset()

        if found.zone is not None:
            ctx.zone = found.zone
        if found.namespace is not None:
            ctx.namespace = found.namespace
        if found.resource is not None:
            ctx.resource = found.resource
        if found.name is not None:
            ctx.name = found.name

        log_debug(f"[Context] {ctx.to_dict()} (changed={changed})")
        return changed
