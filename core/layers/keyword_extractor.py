# core/layers/keyword_extractor.py
"""
KeywordExtractor - offline, rule-based stand-in for the ExtractionLayer.

Used when no AI backend is configured. Same contract: candidates or None.
"""

from typing import List, Optional

from core import vocabulary
from core.context_store import recognize
from core.models import Candidate, Intent
from utils.logger import log_debug


class KeywordExtractor:
    async def extract(self, tokens: List[str], snapshot: Optional[str] = None) -> Optional[List[Candidate]]:
        return self.extract_sync(tokens)

    def extract_sync(self, tokens: List[str]) -> Optional[List[Candidate]]:
        found = recognize(tokens)

        kinds: List[str] = []
        for token in tokens:
            kind = vocabulary.resource_kind_of(token)
            if kind and kind not in kinds:
                kinds.append(kind)

        wants_inspect = any(t.lower() in vocabulary.INSPECT_VERBS for t in tokens)

        if not kinds:
            if found.namespace or found.zone:
                # Fusion turns a kind-less candidate into the generic list query
                return [Candidate(namespace=found.namespace, identifier=found.zone)]
            log_debug(f"[KeywordExtractor] Nothing recognized in {tokens}")
            return None

        candidates = []
        for kind in kinds:
            if wants_inspect or found.name:
                candidates.append(Candidate(
                    namespace=found.namespace,
                    resource_kind=kind,
                    identifier=found.name,
                    intent=Intent.INSPECT,
                ))
            else:
                candidates.append(Candidate(
                    namespace=found.namespace,
                    resource_kind=kind,
                    identifier=found.zone,
                    intent=Intent.LIST,
                ))

        log_debug(f"[KeywordExtractor] {[c.model_dump() for c in candidates]}")
        return candidates
