"""Ordered regex detectors for pattern-recognizable entities.

Each detector runs over the whole buffer before the next one, so the more
specific patterns (address, IP, date, link, money) claim their spans before
the generic numeric and alphanumeric-identifier patterns get a chance.
"""

import re
from collections.abc import Callable
from typing import ClassVar

from privacymail.anonymization.pipeline import PipelineContext

_MONTH = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*\.?"
_DAY = r"(?:0?[1-9]|[12]\d|3[01])"

GENERIC_EMAIL_PROVIDERS: frozenset[str] = frozenset(
    {
        "gmail", "googlemail", "yahoo", "hotmail", "outlook", "live", "msn",
        "icloud", "me", "mac", "qq", "163", "126", "protonmail", "pm", "gmx",
        "zoho", "ymail", "mail", "email", "inbox",
    }
)

GENERIC_DOMAIN_SEGMENTS: frozenset[str] = frozenset(
    {
        "mail", "email", "smtp", "pop", "imap", "mx", "relay", "noreply",
        "no-reply", "reply", "support", "service", "services", "notify",
        "notification", "notifications", "info", "contact", "admin", "help",
        "office", "portal", "apps", "api", "mobile", "beta",
    }
)

GENERIC_TOP_LEVEL_DOMAINS: frozenset[str] = frozenset(
    {
        "com", "net", "org", "gov", "edu", "mil", "int", "biz", "info", "name",
        "pro", "co", "io", "ai", "app", "dev", "xyz", "club", "me", "us", "uk",
        "ca", "au", "de", "fr", "es", "it", "nl", "se", "no", "dk", "fi", "jp",
        "cn", "hk", "sg", "ru", "br", "in", "za",
    }
)


def derive_org_from_domain(domain_part: str) -> str | None:
    """Guess an organization name from the domain of an email address.

    ``jane@mail.acme-corp.co.uk`` -> ``Acme Corp``. Free-mail providers,
    numeric labels and labels shorter than three characters yield None.
    """
    domain = re.sub(r"[^a-z0-9.+-]", "", domain_part.lower())
    if "." not in domain:
        return None
    segments = [re.sub(r"[^a-z0-9-]", "", segment) for segment in domain.split(".")]
    segments = [segment for segment in segments if segment]
    if len(segments) < 2:
        return None

    core = segments[:-1]
    while core and core[-1] in GENERIC_TOP_LEVEL_DOMAINS:
        core.pop()
    while core and core[0] in GENERIC_DOMAIN_SEGMENTS:
        core.pop(0)
    if not core:
        return None

    candidate = core[-1]
    if len(candidate) < 3 or candidate in GENERIC_EMAIL_PROVIDERS or candidate.isdigit():
        return None
    tokens = [token for token in re.split(r"[-_]+", candidate) if token]
    if not tokens:
        return None
    return " ".join(
        token.upper() if len(token) <= 2 else token[:1].upper() + token[1:].lower()
        for token in tokens
    )


class RuleEngine:
    """Applies the fixed, ordered list of (type, pattern) detectors."""

    RULES: ClassVar[list[tuple[str, re.Pattern[str]]]] = [
        (
            "EMAIL",
            re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE),
        ),
        (
            "ADDRESS",
            re.compile(
                r"\b\d{1,5}\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+){0,3}\s+"
                r"(?:Street|St|Rd|Road|Ave|Avenue|Blvd|Boulevard|Lane|Ln|Dr|Drive|Ct|Court)\b"
            ),
        ),
        (
            "IP",
            re.compile(
                r"\b(?:(?:25[0-5]|2[0-4]\d|[01]?\d?\d)\.){3}"
                r"(?:25[0-5]|2[0-4]\d|[01]?\d?\d)\b"
            ),
        ),
        (
            "DATETIME",
            re.compile(
                r"\b(?:"
                r"\d{4}[/\-](?:0[1-9]|1[0-2])[/\-](?:0[1-9]|[12]\d|3[01])"
                r"|(?:0[1-9]|1[0-2])[/\-](?:0[1-9]|[12]\d|3[01])[/\-]\d{4}"
                rf"|{_MONTH}\s+{_DAY},?\s+\d{{4}}"
                rf"|{_DAY}(?:st|nd|rd|th)?[\s\-]+{_MONTH},?\s+\d{{4}}"
                r")\b"
                r"(?:[ ,T]+(?:[01]?\d|2[0-3]):[0-5]\d(?!\d)(?:\s?[AP]M\b)?)?",
                re.IGNORECASE,
            ),
        ),
        (
            "LINK",
            re.compile(r"\b(?:https?://|www\.)[^\s/$.?#].[^\s]*\b", re.IGNORECASE),
        ),
        (
            "MONEY",
            re.compile(
                r"(?:USD|EUR|GBP|CAD|AUD|JPY|HKD|SGD|RMB|CNY|CN¥|\$|€|£|¥)\s?[+-]?"
                r"(?:\d{1,3}(?:,\d{3})*|\d+)(?:\.\d{1,2})?\b"
            ),
        ),
        ("NUMBER", re.compile(r"\+?\d[0-9 \-().]{6,20}\d")),
        (
            "NUMBER",
            re.compile(r"\b(?:Room|Rm|ID|Acct|No\.?|#)\s*\d{2,6}\b", re.IGNORECASE),
        ),
        (
            "ALNUM_ID",
            re.compile(
                r"\b(?=[A-Za-z0-9\-:/]*\d)[A-Za-z0-9]{1,3}(?:[-:/]?[A-Za-z0-9]){4,60}\b"
            ),
        ),
        ("NUMBER", re.compile(r"(?<!\d)\d(?:[ \-.]*\d){3,21}(?!\d)")),
    ]

    def apply(self, context: PipelineContext) -> PipelineContext:
        for entity_type, pattern in self.RULES:
            context.substitute(pattern, self._replacer(context, entity_type))
        return context

    def _replacer(
        self, context: PipelineContext, entity_type: str
    ) -> Callable[[re.Match[str]], str]:
        def replace(match: re.Match[str]) -> str:
            value = match.group(0)
            placeholder = context.registry.register(entity_type, value)
            if entity_type == "EMAIL":
                self._stage_email_org(context, value)
            return placeholder

        return replace

    @staticmethod
    def _stage_email_org(context: PipelineContext, email: str) -> None:
        local_part, sep, domain_part = email.strip().partition("@")
        if not sep or "@" in domain_part or not local_part or not domain_part:
            return
        org = derive_org_from_domain(domain_part)
        if org:
            context.add_derived_hint("ORG", org)
