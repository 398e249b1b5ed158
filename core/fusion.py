# core/fusion.py
"""
Parameter Fusion - reconciles extractor candidates with the session context.

Rules per candidate, in order:
1. missing namespace  -> stored namespace
2. list intent        -> clear stored name; missing/zone identifier -> stored zone
3. inspect intent     -> identifier required and must not be a zone token,
                         otherwise the WHOLE batch is rejected

Results are deduplicated on (namespace, kind, identifier, intent).
"""

from typing import List, Optional

from core import vocabulary
from core.context_store import ContextStore
from core.models import Candidate, Intent, ResolvedQuery
from utils.logger import log_debug, log_warning


INSPECT_USAGE = (
    "Inspect needs a resource name, e.g. 'ns-mh69tey1 devbox describe my-app'. "
    "Nothing was executed."
)
NAMESPACE_USAGE = (
    "No namespace known yet. Include one (ns-...), e.g. 'ns-mh69tey1 pods hzh'. "
    "Nothing was executed."
)


class FusionError(Exception):
    """Batch-level validation failure; no query of the batch may be dispatched."""

    def __init__(self, message: str, candidate: Optional[Candidate] = None):
        super().__init__(message)
        self.message = message
        self.candidate = candidate


def _with_default_kind(candidates: List[Candidate]) -> List[Candidate]:
    """
    Drops candidates without a usable kind. If none carries a kind but the
    turn still named a namespace or identifier, a single generic list
    candidate takes their place.
    """
    usable = [c for c in candidates if vocabulary.canonical_kind(c.resource_kind)]
    if usable:
        return usable

    for c in candidates:
        if c.namespace or c.identifier:
            log_debug(f"[Fusion] No resource kind recognized, defaulting to {vocabulary.DEFAULT_RESOURCE_KIND}")
            return [Candidate(
                namespace=c.namespace,
                resource_kind=vocabulary.DEFAULT_RESOURCE_KIND,
                identifier=None if vocabulary.is_zone(c.identifier) else c.identifier,
                intent=Intent.LIST,
            )]
    return []


def fuse(
    candidates: List[Candidate],
    store: ContextStore,
    line_limit: Optional[int] = None,
) -> List[ResolvedQuery]:
    """
    Resolves a batch of candidates into dispatchable queries.

    Raises:
        FusionError: an inspect candidate lacks a valid identifier, or a
            namespaced kind has no namespace. Nothing from the batch is
            returned in that case.
    """
    resolved: List[ResolvedQuery] = []
    seen = set()
    clear_name = False

    for candidate in _with_default_kind(candidates):
        kind = vocabulary.canonical_kind(candidate.resource_kind)

        namespace = candidate.namespace or store.namespace
        if not namespace:
            if kind not in vocabulary.CLUSTER_SCOPED_KINDS:
                log_warning(f"[Fusion] Rejecting batch: no namespace for {kind}")
                raise FusionError(NAMESPACE_USAGE, candidate)
            namespace = ""

        identifier = candidate.identifier
        if candidate.intent is Intent.LIST:
            clear_name = True
            if not identifier or vocabulary.is_zone(identifier):
                identifier = store.zone or ""
            query = ResolvedQuery(
                namespace=namespace.lower(),
                resource_kind=kind,
                identifier=identifier,
                intent=Intent.LIST,
            )
        else:
            if not identifier or vocabulary.is_zone(identifier):
                log_warning(f"[Fusion] Rejecting batch: inspect {kind} without a valid name ({identifier!r})")
                raise FusionError(INSPECT_USAGE, candidate)
            query = ResolvedQuery(
                namespace=namespace.lower(),
                resource_kind=kind,
                identifier=identifier,
                intent=Intent.INSPECT,
                line_limit=line_limit,
            )

        if query.dedup_key in seen:
            log_debug(f"[Fusion] Dropping duplicate {query.describe()}")
            continue
        seen.add(query.dedup_key)
        resolved.append(query)

    # Only a batch that passed validation may touch the stored name
    if clear_name:
        store.clear_name()

    log_debug(f"[Fusion] {len(resolved)} queries resolved from {len(candidates)} candidates")
    return resolved
