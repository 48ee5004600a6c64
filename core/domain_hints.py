"""
Keyword-based business domain inference for code chunks.

Keyword lists cover modern web/cloud vocabulary as well as mainframe
(COBOL, CICS, JCL, DB2) synonyms for the same concepts.
"""

from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence, Tuple

from core.chunk_types import DomainHint

MAX_HINTS = 3

_KEYWORDS = {
    "authentication": (
        "auth", "login", "logout", "signin", "signout", "password", "credential", "jwt", "token",
        "oauth", "sso", "saml", "identity", "session",
        "racf", "acf2", "topsecret", "signon", "logon", "userid", "passticket",
    ),
    "authorization": (
        "permission", "role", "policy", "access", "authorize", "acl", "rbac", "scope", "claim",
        "grant", "deny", "allowed", "forbidden",
        "permit", "authority", "security-level", "access-level",
    ),
    "user-management": (
        "user", "account", "profile", "member", "registration", "signup", "onboard", "invite",
        "team", "organization",
        "customer", "client", "cardholder", "employee", "personnel", "party",
    ),
    "data-access": (
        "repository", "dao", "query", "database", "db", "sql", "orm", "entity", "schema",
        "migration", "seed", "connection", "pool",
        "vsam", "ksds", "esds", "rrds", "qsam", "bsam", "db2", "ims", "dli", "cics", "dataset",
        "file-control", "select", "assign", "read", "write", "rewrite", "delete", "start", "open",
        "close", "fetch", "cursor", "working-storage", "linkage", "fd", "copybook",
    ),
    "api-endpoint": (
        "endpoint", "route", "controller", "handler", "request", "response", "rest", "graphql",
        "api", "http", "get", "post", "put", "delete", "patch",
        "cics", "mq", "mqseries", "websphere", "commarea", "dfhcommarea", "eiblk", "exec-cics",
        "link", "xctl", "return",
    ),
    "business-logic": (
        "service", "domain", "workflow", "process", "rule", "calculation", "business", "logic",
        "usecase", "interactor",
        "compute", "calculate", "evaluate", "perform", "procedure", "paragraph", "section",
        "division", "mainline",
        "interest", "balance", "credit", "debit", "acct", "tran", "statement", "ledger",
    ),
    "validation": (
        "validate", "validator", "schema", "constraint", "rule", "sanitize", "clean", "check",
        "verify", "assert",
        "edit", "numeric", "alphabetic", "inspect", "string", "unstring", "reference",
    ),
    "error-handling": (
        "error", "exception", "catch", "throw", "handle", "fault", "failure", "recovery", "retry",
        "fallback",
        "abend", "abnormal", "file-status", "sqlcode", "sqlstate", "on-exception",
        "not-on-exception", "invalid-key", "at-end",
    ),
    "logging": (
        "log", "logger", "trace", "debug", "info", "warn", "error", "audit", "track", "telemetry",
        "metric", "monitor",
        "sysout", "sysprint", "display", "smf", "wto", "wtl", "journal",
    ),
    "caching": (
        "cache", "redis", "memcache", "ttl", "invalidate", "store", "retrieve", "memo", "buffer",
        "ts-queue", "td-queue", "temp-storage", "transient-data",
    ),
    "messaging": (
        "queue", "message", "event", "publish", "subscribe", "broker", "kafka", "rabbitmq", "bus",
        "notification", "emit", "listener",
        "mq", "mqget", "mqput", "mqopen", "mqclose", "cics-td", "cics-ts",
    ),
    "scheduling": (
        "schedule", "cron", "job", "task", "timer", "interval", "background", "worker", "batch",
        "recurring",
        "jcl", "step", "exec", "proc", "dd", "disp", "dsn", "joblib", "steplib", "sysin",
    ),
    "file-handling": (
        "file", "upload", "download", "stream", "blob", "storage", "s3", "attachment", "document",
        "media", "image",
        "sequential", "indexed", "relative", "line-sequential", "record", "block", "recfm",
        "lrecl", "blksize",
    ),
    "payment": (
        "payment", "invoice", "billing", "subscription", "charge", "refund", "transaction",
        "order", "cart", "checkout", "stripe", "price",
        "card", "credit-card", "debit-card", "merchant", "acquirer", "issuer", "interchange",
        "settlement", "authorization", "cvv", "expiry", "pan", "account-number", "routing", "ach",
        "wire", "transfer", "amount", "currency", "fee", "interest-rate",
    ),
    "notification": (
        "notify", "notification", "alert", "email", "sms", "push", "send", "template", "mail",
    ),
    "search": (
        "search", "query", "filter", "sort", "index", "elastic", "fulltext", "find", "lookup",
        "autocomplete",
        "search-all", "search-when", "binary-search",
    ),
    "analytics": (
        "analytics", "report", "metric", "dashboard", "chart", "aggregate", "statistics",
        "insight", "tracking",
        "report-writer", "control-break", "summary", "total", "subtotal", "grand-total",
    ),
    "configuration": (
        "config", "setting", "option", "preference", "environment", "env", "constant", "feature",
        "flag", "toggle",
        "parm", "sysparm", "symbolic", "override", "include", "copy",
    ),
    "testing": (
        "test", "spec", "mock", "stub", "fixture", "assert", "expect", "describe", "it",
        "beforeeach", "aftereach",
    ),
    "infrastructure": (
        "deploy", "build", "ci", "docker", "kubernetes", "terraform", "aws", "azure", "gcp",
        "infra", "devops",
        "lpar", "sysplex", "coupling-facility", "gdg", "sms", "catalog", "vtoc",
    ),
    "ui-component": (
        "component", "render", "view", "page", "layout", "widget", "modal", "form", "button",
        "input", "table", "list",
        "bms", "map", "mapset", "screen", "field", "attribute", "cursor", "dfhmsd", "dfhmdi",
        "dfhmdf",
    ),
    "state-management": (
        "state", "store", "reducer", "action", "dispatch", "selector", "context", "provider",
        "atom", "signal",
    ),
    "routing": (
        "route", "router", "navigate", "redirect", "path", "url", "link", "history", "breadcrumb",
        "tranid", "transaction", "program", "xctl", "return",
    ),
    "middleware": (
        "middleware", "interceptor", "filter", "guard", "pipe", "transform", "before", "after",
        "around",
    ),
    "utility": (
        "util", "helper", "common", "shared", "lib", "tool", "format", "parse", "convert",
        "transform",
        "date-convert", "string-util", "numeric-edit", "intrinsic", "function",
    ),
    "unknown": (),
}

# Read-only for the life of the process
DOMAIN_KEYWORDS: Mapping[str, Tuple[str, ...]] = MappingProxyType(_KEYWORDS)

NAME_WEIGHT = 3
DOCUMENTATION_WEIGHT = 2
CONTENT_WEIGHT = 1


def infer_domain_hints(
    name: str,
    documentation: Optional[str],
    decorators: Sequence[str],
    content: str,
) -> List[DomainHint]:
    """
    Rank business-domain categories for a construct.

    Every keyword found in the combined text scores 3 when it also appears in
    the name, 2 when it appears in the documentation and 1 otherwise.
    Confidence is ``min(score / 10, 1)``; the top three categories are returned,
    most confident first.
    """
    name_lower = (name or "").lower()
    doc_lower = (documentation or "").lower()
    search_text = f"{name_lower} {doc_lower} {' '.join(decorators).lower()} {content.lower()}"

    hints: List[DomainHint] = []
    for category, keywords in DOMAIN_KEYWORDS.items():
        if not keywords:
            continue

        matched: List[str] = []
        score = 0
        for keyword in keywords:
            if keyword not in search_text:
                continue
            matched.append(keyword)
            if keyword in name_lower:
                score += NAME_WEIGHT
            elif keyword in doc_lower:
                score += DOCUMENTATION_WEIGHT
            else:
                score += CONTENT_WEIGHT

        if not matched:
            continue

        first = matched[0]
        if first in name_lower:
            source = "name"
        elif first in doc_lower:
            source = "documentation"
        else:
            source = "content"

        hints.append(
            DomainHint(
                category=category,
                confidence=min(score / 10, 1.0),
                source=source,
                keywords=matched,
            )
        )

    hints.sort(key=lambda hint: hint.confidence, reverse=True)
    return hints[:MAX_HINTS]


def pool_domain_hints(hint_lists: Sequence[Sequence[DomainHint]]) -> List[DomainHint]:
    """Combine hints of several chunks, keeping the best hint per category."""
    best = {}
    for hints in hint_lists:
        for hint in hints:
            current = best.get(hint.category)
            if current is None or hint.confidence > current.confidence:
                best[hint.category] = hint

    pooled = sorted(best.values(), key=lambda hint: hint.confidence, reverse=True)
    return pooled[:MAX_HINTS]
