"""Unit tests for log-based error classification."""

from blueshift.core.classifier import (
    DEFAULT_MATCHERS,
    ErrorClassifier,
    ErrorMatcher,
    format_findings,
)
from blueshift.models.deployment import LogMatchedError

PUSH_LOG = """\
$ cf push web-green -p /tmp/app --no-route
Uploading web-green...
Staging app and tracing logs...
   -----> Python Buildpack version 1.8.0
   **ERROR** Could not install packages
Failed to compile droplet: Failed to run all supply scripts
FAILED
"""


class TestErrorClassifier:
    """Tests for ErrorClassifier."""

    def test_known_signature(self):
        errors = ErrorClassifier().find_errors(PUSH_LOG)

        assert [e.code for e in errors] == ["staging-failed"]
        assert errors[0].details == [
            "Failed to compile droplet: Failed to run all supply scripts"
        ]

    def test_clean_output(self):
        assert ErrorClassifier().find_errors("OK\nApp started\n") == []

    def test_empty_output(self):
        assert ErrorClassifier().find_errors("") == []

    def test_ordered_by_first_occurrence(self):
        log = (
            "no space left on device\n"
            "The route web.apps.example.com is already taken\n"
            "Failed to compile droplet\n"
        )

        errors = ErrorClassifier().find_errors(log)

        assert [e.code for e in errors] == ["disk-full", "route-taken", "staging-failed"]

    def test_repeated_lines_are_deduplicated(self):
        log = "App crashed\nrestarting\nApp crashed\nCRASHED again\n"

        errors = ErrorClassifier().find_errors(log)

        assert len(errors) == 1
        assert errors[0].details == ["App crashed", "CRASHED again"]

    def test_register_extra_matcher(self):
        classifier = ErrorClassifier()
        classifier.register(
            ErrorMatcher(
                pattern=r"Service broker error",
                description="A service broker rejected the request",
                solution="Retry later.",
                code="service-broker",
            )
        )

        errors = classifier.find_errors("Server error, status code: 502, Service broker error\n")

        assert [e.code for e in errors] == ["service-broker"]

    def test_custom_registry_replaces_defaults(self):
        classifier = ErrorClassifier([ErrorMatcher(pattern="boom", description="Boom")])

        assert classifier.find_errors(PUSH_LOG) == []
        assert len(classifier.matchers) == 1

    def test_default_codes_are_unique(self):
        codes = [m.code for m in DEFAULT_MATCHERS]

        assert len(codes) == len(set(codes))


class TestFormatFindings:
    def test_renders_every_finding(self):
        text = format_findings(
            [
                LogMatchedError(
                    description="The application failed to stage",
                    details=["Failed to compile droplet"],
                    solution="Check the buildpack output.",
                )
            ]
        )

        assert "The following error was found in the above logs: The application failed to stage" in text
        assert "Error: Failed to compile droplet" in text
        assert "Potential solution: Check the buildpack output." in text

    def test_empty(self):
        assert format_findings([]) == ""
