"""Load test results from JUnit XML reports."""

import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Iterator
from datetime import timedelta
from pathlib import Path

from zephyr_upload.models.result import Outcome, TestResult

log = logging.getLogger(__name__)

KEY_PATTERN = re.compile(r"([A-Z]+[_\-][0-9]+)")


def extract_key(name: str) -> str | None:
    """Extract the issue key a test name starts with, e.g. PROJ_12_login -> PROJ-12."""
    if (match := KEY_PATTERN.match(name)) is None:
        return None
    return match.group(1).replace("_", "-")


def outcome(testcase: ET.Element) -> Outcome:
    """Map a testcase element to its outcome."""
    if testcase.find("failure") is not None or testcase.find("error") is not None:
        return "failed"
    if testcase.find("skipped") is not None:
        return "not_executed"
    return "success"


def text(element: ET.Element) -> str:
    """All text inside an element, including that of nested elements."""
    return "".join(element.itertext())


def message(testcase: ET.Element) -> str | None:
    """Collect failure, error and captured output text of a testcase.

    Each section present is terminated by a newline. Returns None when the
    testcase has none of them.
    """
    sections: list[str] = []

    for tag in ("failure", "error"):
        if (element := testcase.find(tag)) is not None:
            sections.append(f"{element.get('message', '')}\n{text(element)}\n")

    for tag in ("system-out", "system-err"):
        if (element := testcase.find(tag)) is not None:
            sections.append(f"{text(element)}\n")

    return "".join(sections) or None


def duration(testcase: ET.Element) -> timedelta | None:
    """Convert the time attribute in seconds to a duration in whole milliseconds."""
    time = testcase.get("time", "").strip()
    if not time:
        return None

    try:
        seconds = float(time)
    except ValueError:
        log.warning("Ignoring invalid time %r of %s", time, testcase.get("name"))
        return None

    return timedelta(milliseconds=round(seconds * 1000))


def load_file(path: Path) -> Iterator[TestResult]:
    """Load the results of one report, skipping tests without an issue key."""
    root = ET.parse(path).getroot()

    for testcase in root.iter("testcase"):
        name = testcase.get("name", "")
        if (key := extract_key(name)) is None:
            log.debug("Skipping %s, no issue key in test name", name)
            continue

        yield TestResult(
            key=key,
            outcome=outcome(testcase),
            message=message(testcase),
            duration=duration(testcase),
        )


def load_results(paths: Iterable[Path]) -> Iterator[TestResult]:
    """Load the results of several reports in order.

    Raises:
        xml.etree.ElementTree.ParseError: If a report is not well-formed XML
        OSError: If a report cannot be read

    """
    for path in paths:
        log.info("Loading test results from %s", path)
        yield from load_file(path)
