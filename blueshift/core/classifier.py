"""Log-based error classification.

Scans captured push output for known platform failure signatures and turns
each hit into a ``LogMatchedError`` with a suggested remediation.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable

from blueshift.models.deployment import LogMatchedError


@dataclass(frozen=True)
class ErrorMatcher:
    """A failure signature.

    ``pattern`` is a regular expression searched line by line; every
    matching line becomes a detail of the resulting error.
    """

    pattern: str
    description: str
    solution: str = ""
    code: str = ""
    _regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_regex", re.compile(self.pattern, re.IGNORECASE))

    def match(self, text: str) -> tuple[int, LogMatchedError] | None:
        """Return the offset of the first hit and the resulting error."""
        first: int | None = None
        details: list[str] = []
        for hit in self._regex.finditer(text):
            if first is None:
                first = hit.start()
            line = _line_at(text, hit.start())
            if line not in details:
                details.append(line)

        if first is None:
            return None

        return first, LogMatchedError(
            description=self.description,
            details=details,
            solution=self.solution,
            code=self.code,
        )


def _line_at(text: str, offset: int) -> str:
    start = text.rfind("\n", 0, offset) + 1
    end = text.find("\n", offset)
    if end == -1:
        end = len(text)
    return text[start:end].strip()


DEFAULT_MATCHERS: tuple[ErrorMatcher, ...] = (
    ErrorMatcher(
        pattern=r"The (?:app could not be mapped|route) .* is already (?:taken|in use)",
        description="The application route is already taken by another application",
        solution="Choose a different hostname in the manifest or remove the conflicting route.",
        code="route-taken",
    ),
    ErrorMatcher(
        pattern=r"(?:memory limit exceeded|exceeded your organization's memory limit|insufficient resources)",
        description="The organization does not have enough memory quota for this push",
        solution="Lower the memory or instance count in the manifest, or ask for a quota increase.",
        code="quota-exceeded",
    ),
    ErrorMatcher(
        pattern=r"(?:Failed to compile droplet|BuildpackCompileFailed|NoAppDetectedError|StagingError)",
        description="The application failed to stage",
        solution="Check the buildpack output above and make sure the artifact matches the selected buildpack.",
        code="staging-failed",
    ),
    ErrorMatcher(
        pattern=r"(?:Start app timeout|health check (?:failed|timed out)|app instance exited)",
        description="The application did not start",
        solution="Verify the start command and health check settings, then check the application logs.",
        code="start-failed",
    ),
    ErrorMatcher(
        pattern=r"(?:CRASHED|Error restarting application|App crashed)",
        description="The application crashed during startup",
        solution="Inspect the recent application logs for the cause of the crash.",
        code="app-crashed",
    ),
    ErrorMatcher(
        pattern=r"(?:no space left on device|disk quota exceeded)",
        description="The application ran out of disk space",
        solution="Increase disk_quota in the manifest or reduce the size of the artifact.",
        code="disk-full",
    ),
    ErrorMatcher(
        pattern=r"Could not find service .* to bind to",
        description="A service referenced by the manifest does not exist",
        solution="Create the service instance in the target space or remove it from the manifest.",
        code="service-not-found",
    ),
    ErrorMatcher(
        pattern=r"(?:Error reading manifest|Invalid manifest|yaml: unmarshal errors)",
        description="The manifest could not be parsed",
        solution="Validate the manifest YAML and the property names it uses.",
        code="invalid-manifest",
    ),
)


class ErrorClassifier:
    """Matches output against a registry of failure signatures."""

    def __init__(self, matchers: Iterable[ErrorMatcher] | None = None):
        self.matchers = list(DEFAULT_MATCHERS if matchers is None else matchers)

    def register(self, matcher: ErrorMatcher) -> None:
        self.matchers.append(matcher)

    def find_errors(self, output: str) -> list[LogMatchedError]:
        """Return every matched signature, ordered by first occurrence."""
        if not output:
            return []

        hits = [hit for matcher in self.matchers if (hit := matcher.match(output))]
        hits.sort(key=lambda hit: hit[0])
        return [error for _, error in hits]


def format_findings(errors: list[LogMatchedError]) -> str:
    """Render findings as remediation hints for the response body."""
    lines: list[str] = []
    for error in errors:
        lines.append(f"The following error was found in the above logs: {error.description}")
        for detail in error.details:
            lines.append(f"Error: {detail}")
        lines.append(f"Potential solution: {error.solution}")
        lines.append("")
    return "\n".join(lines)
