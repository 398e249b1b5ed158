# core/vocabulary.py
"""
Token recognizers shared by the context store and the keyword extractor.

Three disjoint sets:
- zone keywords (Sealos regions)
- namespace pattern (fixed "ns-" prefix)
- resource-kind keywords, aliases mapped to one canonical kind

Filler/verb tokens are ignored by positional analysis.
"""

from typing import Dict, Optional


ZONES = frozenset({"hzh", "bja", "gzg", "usw"})

NAMESPACE_PREFIX = "ns-"

# alias -> canonical kind
RESOURCE_ALIASES: Dict[str, str] = {
    "pod": "pods",
    "pods": "pods",
    "devbox": "devbox",
    "devboxes": "devbox",
    "cluster": "cluster",
    "clusters": "cluster",
    "db": "cluster",
    "database": "cluster",
    "quota": "quota",
    "quotas": "quota",
    "ingress": "ingress",
    "ingresses": "ingress",
    "node": "nodes",
    "nodes": "nodes",
    "cronjob": "cronjobs",
    "cronjobs": "cronjobs",
    "event": "events",
    "events": "events",
    "account": "account",
    "accounts": "account",
    "debt": "debt",
    "debts": "debt",
    "bucket": "objectstoragebucket",
    "buckets": "objectstoragebucket",
    "objectstoragebucket": "objectstoragebucket",
    "objectstoragebuckets": "objectstoragebucket",
    "cert": "certificate",
    "certs": "certificate",
    "certificate": "certificate",
    "certificates": "certificate",
}

RESOURCE_KINDS = frozenset(RESOURCE_ALIASES.values())

# Cluster-level kinds need no namespace
CLUSTER_SCOPED_KINDS = frozenset({"nodes"})

# Fallback when a turn names no resource kind at all
DEFAULT_RESOURCE_KIND = "pods"

INSPECT_VERBS = frozenset({"describe", "inspect", "logs", "log"})

FILLER_WORDS = frozenset({
    "describe", "inspect", "logs", "log",
    "get", "show", "list", "check", "view", "find", "display",
    "the", "a", "an", "in", "of", "for", "me", "my", "all", "please",
})


def is_zone(token: Optional[str]) -> bool:
    return bool(token) and token.lower() in ZONES


def is_namespace(token: Optional[str]) -> bool:
    return bool(token) and token.lower().startswith(NAMESPACE_PREFIX) and len(token) > len(NAMESPACE_PREFIX)


def is_filler(token: Optional[str]) -> bool:
    return bool(token) and token.lower() in FILLER_WORDS


def resource_kind_of(token: Optional[str]) -> Optional[str]:
    """Canonical resource kind for a token, or None."""
    if not token:
        return None
    return RESOURCE_ALIASES.get(token.lower())


def canonical_kind(kind: Optional[str]) -> Optional[str]:
    """Normalizes an extractor-provided kind; unknown kinds pass through lowercased."""
    if not kind:
        return None
    lowered = kind.strip().lower()
    return RESOURCE_ALIASES.get(lowered, lowered)
