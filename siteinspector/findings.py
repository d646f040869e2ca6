import re

from .models import Finding, SecretMatch, short_hash

HIGH = "high"
MEDIUM = "medium"
LOW = "low"
INFO = "info"

# (header, severity)
_SECURITY_HEADERS = [
    ("content-security-policy", HIGH),
    ("x-frame-options", MEDIUM),
    ("strict-transport-security", HIGH),
    ("x-content-type-options", MEDIUM),
]

# (label, pattern, severity); group 1, when present, holds the secret itself
_SECRET_PATTERNS: list[tuple[str, re.Pattern, str]] = [
    ("AWS Access Key",         re.compile(r"AKIA[0-9A-Z]{16}"), HIGH),
    ("Stripe Secret Key",      re.compile(r"sk_live_[0-9a-zA-Z]{24,}"), HIGH),
    ("Stripe Publishable Key", re.compile(r"pk_live_[0-9a-zA-Z]{24,}"), LOW),
    ("Google API Key",         re.compile(r"AIza[0-9A-Za-z_\-]{35}"), HIGH),
    ("JWT Token",              re.compile(r"eyJ[A-Za-z0-9_\-]{10,}\.[A-Za-z0-9_\-]{10,}\.[A-Za-z0-9_\-]{10,}"), MEDIUM),
    ("Private Key",            re.compile(r"-----BEGIN (?:RSA |EC )?PRIVATE KEY-----"), HIGH),
    ("GitHub Token",           re.compile(r"gh[ps]_[A-Za-z0-9_]{36,}"), HIGH),
    ("Slack Token",            re.compile(r"xox[bpors]-[0-9A-Za-z\-]{10,}"), HIGH),
    ("Generic API Key",        re.compile(r"(?:api[_\-]?key|apikey|api_secret)\s*[:=]\s*[\"']([^\"']{8,})[\"']", re.I), MEDIUM),
]


def mask_value(value: str) -> str:
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}****...****{value[-4:]}"


def _line_number(source: str, index: int) -> int:
    return source.count("\n", 0, index) + 1


def seo_findings(parsed: dict, run_id: str, url: str) -> list[Finding]:
    findings = []

    def add(title, severity, category, message):
        findings.append(Finding(run_id, title, severity, "seo", category, url, message))

    if not parsed.get("title"):
        add("Missing page title", MEDIUM, "title", "No <title> tag found")
    if not parsed.get("description"):
        add("Missing meta description", LOW, "meta", "No meta description found")

    h1_count = parsed.get("h1_count", 0)
    if h1_count == 0:
        add("Missing H1 tag", LOW, "heading", "No <h1> element found")
    elif h1_count > 1:
        add("Multiple H1 tags", LOW, "heading", f"Found {h1_count} <h1> elements, should have exactly 1")

    if not parsed.get("has_viewport"):
        add("Missing viewport meta", MEDIUM, "meta", "No viewport meta tag, mobile rendering may be broken")

    return findings


def header_findings(headers: dict, run_id: str, url: str) -> list[Finding]:
    """`headers` must have lowercased names."""
    return [
        Finding(run_id, f"Missing {name} header", severity, "security", "headers", url,
                f"Response is missing the {name} header")
        for name, severity in _SECURITY_HEADERS
        if name not in headers
    ]


def mixed_content_findings(parsed: dict, run_id: str, url: str) -> list[Finding]:
    if not url.startswith("https://"):
        return []
    return [
        Finding(run_id, "Mixed content", INFO, "security", "mixed-content", url,
                f"HTTP resource on HTTPS page: {src}")
        for src in parsed.get("insecure_images", [])
    ]


def _context(source: str, start: int, end: int, masked: str, width: int = 30) -> str:
    before = source[max(0, start - width):start]
    after = source[end:end + width]
    return f"{before}{masked}{after}".replace("\n", " ")


def detect_secrets(source: str, run_id: str, url: str) -> list[SecretMatch]:
    """Credential-like strings in page source, masked, with line and context."""
    matches = []
    for label, pattern, severity in _SECRET_PATTERNS:
        for match in pattern.finditer(source):
            group = 1 if match.groups() else 0
            value = match.group(group)
            masked = mask_value(value)
            matches.append(SecretMatch(
                crawl_run_id=run_id,
                type=label,
                masked_value=masked,
                severity=severity,
                location=url,
                line=_line_number(source, match.start()),
                context=_context(source, match.start(group), match.end(group), masked),
                hash=short_hash(value),
            ))
    return matches


def secret_findings(secrets: list[SecretMatch]) -> list[Finding]:
    return [
        Finding(s.crawl_run_id, f"Possible {s.type} in source", s.severity, "security", "secrets",
                f"{s.location}:{s.line}", f"Detected {s.type}: {s.masked_value}")
        for s in secrets
    ]


def broken_page_finding(run_id: str, url: str) -> Finding:
    return Finding(run_id, "Broken page (404)", HIGH, "quality", "links", url, "Page returned 404 Not Found")


def network_error_finding(run_id: str, url: str, error: str) -> Finding:
    return Finding(run_id, "Network Error", HIGH, "quality", "connectivity", url, f"Failed to fetch: {error}")


def count_by_severity(findings: list[Finding]) -> tuple[int, int]:
    """(errors, warnings): high findings are errors, medium/low are warnings."""
    errors = sum(1 for f in findings if f.severity == HIGH)
    warnings = sum(1 for f in findings if f.severity in (MEDIUM, LOW))
    return errors, warnings
