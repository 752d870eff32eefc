"""Prompts for per-file security review of pull-request diffs."""

from pathlib import PurePosixPath

# Extension (without dot) -> language name shown to the model.
LANGUAGE_BY_EXTENSION: dict[str, str] = {
    "ts": "TypeScript",
    "tsx": "TypeScript React",
    "js": "JavaScript",
    "jsx": "JavaScript React",
    "py": "Python",
    "go": "Go",
    "java": "Java",
    "rb": "Ruby",
    "php": "PHP",
    "cs": "C#",
    "cpp": "C++",
    "c": "C",
    "rs": "Rust",
    "swift": "Swift",
    "kt": "Kotlin",
}

SYSTEM_PROMPT = """You are SecureShip, a security reviewer for pull requests. You read unified diffs and report security vulnerabilities introduced or touched by the change.

Cover the OWASP Top 10 and other common weaknesses, including:
- Injection (SQL, command, LDAP, XPath)
- Broken authentication and access control
- Sensitive data exposure and hardcoded secrets
- XML external entities (XXE)
- Security misconfiguration
- Cross-site scripting (XSS) and cross-site request forgery (CSRF)
- Insecure deserialization
- Server-side request forgery (SSRF)
- Vulnerable components and insufficient logging

Rules:
- Review only added lines (lines starting with +); use the surrounding lines as context.
- Report only issues you are confident about; do not report style problems.
- Give a concrete, actionable fix for each issue.
- Use line numbers from the new version of the file."""

ANALYSIS_PROMPT = """Review this diff for security vulnerabilities.

File: {filename}
Language: {language}

Diff:
```
{diff}
```

Respond with ONLY a JSON array (no markdown, no extra text). Each element must have exactly this shape:
{{
  "type": "Vulnerability category, e.g. SQL Injection",
  "severity": "critical|high|medium|low",
  "line": <line number in the new file>,
  "description": "Why this is a security issue.",
  "suggestion": "How to fix it.",
  "cweId": "CWE-89 (omit if not applicable)",
  "owaspCategory": "OWASP Top 10 category (omit if not applicable)",
  "confidence": <number from 0.0 to 1.0>
}}

Only include issues with confidence >= 0.7. If there are no security issues, respond with []."""


def detect_language(filename: str) -> str:
    """Language name for the file extension, or Unknown."""
    suffix = PurePosixPath(filename).suffix.lower().lstrip(".")
    return LANGUAGE_BY_EXTENSION.get(suffix, "Unknown")


def is_code_file(filename: str) -> bool:
    """True for source files in a supported language; other files are not analyzed."""
    return detect_language(filename) != "Unknown"


def build_analysis_prompt(filename: str, diff: str) -> str:
    return ANALYSIS_PROMPT.format(
        filename=filename,
        language=detect_language(filename),
        diff=diff,
    )
