"""Binary compatibility checks between two artifact versions.

The heavy lifting is done by japicmp (https://siom79.github.io/japicmp/),
run as a subprocess. Absent evidence never turns into an incompatibility:
an unresolvable JAR or a timed-out comparison yields an UNKNOWN report.
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Protocol

from lxml import etree

from jakarta_readiness.exceptions import DiffToolError
from jakarta_readiness.jars import JarResolver
from jakarta_readiness.models import Artifact, BinaryCompatibilityReport, BreakingChange, BreakingChangeType

logger = logging.getLogger(__name__)


class BytecodeDiffTool(Protocol):
    """Lists the binary-incompatible differences between two JARs.

    Implementations raise ``subprocess.TimeoutExpired`` when ``timeout``
    elapses and ``DiffToolError`` (or any other exception) on failure.
    """

    def diff(self, old_jar: Path, new_jar: Path, timeout: float | None) -> list[BreakingChange]:
        ...


_REMOVED_METHOD = {"METHOD_REMOVED", "METHOD_REMOVED_IN_SUPERCLASS", "CONSTRUCTOR_REMOVED"}
_SIGNATURE = {
    "METHOD_RETURN_TYPE_CHANGED",
    "METHOD_NOW_STATIC",
    "METHOD_NO_LONGER_STATIC",
    "METHOD_NOW_FINAL",
    "METHOD_NOW_ABSTRACT",
    "METHOD_NOW_THROWS_CHECKED_EXCEPTION",
    "METHOD_ABSTRACT_ADDED_TO_CLASS",
    "METHOD_ADDED_TO_INTERFACE",
}
_REMOVED_FIELD = {"FIELD_REMOVED", "FIELD_REMOVED_IN_SUPERCLASS"}


def japicmp_change_type(code: str) -> BreakingChangeType:
    """Map a japicmp ``JApiCompatibilityChange`` code onto our categories."""
    code = code.strip().upper()
    if code in ("CLASS_REMOVED", "INTERFACE_REMOVED", "FIELD_TYPE_CHANGED"):
        return BreakingChangeType(code)
    if code in _REMOVED_METHOD:
        return BreakingChangeType.METHOD_REMOVED
    if code in _SIGNATURE:
        return BreakingChangeType.METHOD_SIGNATURE_CHANGED
    if code in _REMOVED_FIELD:
        return BreakingChangeType.FIELD_REMOVED
    if code.endswith("LESS_ACCESSIBLE") or "LESS_ACCESSIBLE_THAN" in code:
        return BreakingChangeType.VISIBILITY_CHANGED
    return BreakingChangeType.OTHER


def _local(el: etree._Element) -> str:
    return etree.QName(el).localname


def _is_false(value: str | None) -> bool:
    return (value or "").strip().lower() == "false"


def parse_japicmp_report(xml: bytes) -> list[BreakingChange]:
    """Extract binary-incompatible changes from a japicmp ``--xml-file`` report.

    Both report flavours are accepted: the change code as a ``type``
    attribute, or (older japicmp) as the element text.
    """
    try:
        root = etree.fromstring(xml)
    except etree.XMLSyntaxError as exc:
        raise DiffToolError(f"Unreadable japicmp report: {exc}") from exc

    changes: list[BreakingChange] = []
    for change in root.xpath("//*[local-name()='compatibilityChange']"):
        holder = change.getparent()
        owner = holder.getparent() if holder is not None else None
        if owner is None:
            continue

        flag = change.get("binaryCompatible")
        if flag is None:
            flag = owner.get("binaryCompatible")
        if flag is not None and not _is_false(flag):
            continue

        code = change.get("type") or (change.text or "")
        if not code.strip():
            continue

        classes = owner.xpath("ancestor-or-self::*[local-name()='class'][1]")
        class_name = classes[0].get("fullyQualifiedName", "") if classes else ""
        kind = _local(owner)
        if kind == "class":
            member = ""
        elif kind in ("interface", "superclass"):
            member = owner.get("fullyQualifiedName", "") or owner.get("superclassNew", "")
        else:
            member = owner.get("name", "")

        where = f"{class_name}.{member}" if member else class_name
        changes.append(
            BreakingChange(
                type=japicmp_change_type(code),
                class_name=class_name,
                member_name=member,
                description=f"{code.strip()}: {where}" if where else code.strip(),
            )
        )
    return changes


class JapicmpDiffTool:
    """Runs the japicmp standalone JAR and parses its XML report."""

    def __init__(self, japicmp_jar: Path, java: str = "java") -> None:
        self.japicmp_jar = japicmp_jar
        self.java = java

    def command(self, old_jar: Path, new_jar: Path, report: Path) -> list[str]:
        return [
            self.java,
            "-jar",
            str(self.japicmp_jar),
            "--old",
            str(old_jar),
            "--new",
            str(new_jar),
            "--only-incompatible",
            "--ignore-missing-classes",
            "--xml-file",
            str(report),
        ]

    def diff(self, old_jar: Path, new_jar: Path, timeout: float | None) -> list[BreakingChange]:
        with tempfile.TemporaryDirectory(prefix="jready-") as tmp:
            report = Path(tmp) / "japicmp.xml"
            result = subprocess.run(
                self.command(old_jar, new_jar, report),
                capture_output=True,
                text=True,
                timeout=timeout,
            )
            if result.returncode != 0:
                raise DiffToolError(f"japicmp exited with {result.returncode}: {result.stderr.strip()}")
            if not report.is_file():
                raise DiffToolError("japicmp did not write a report")
            return parse_japicmp_report(report.read_bytes())


class BinaryCompatibilityChecker:
    """Compares two artifact versions through a `JarResolver` and a `BytecodeDiffTool`.

    Args:
        resolver: Locates JARs; shared with the archive-content classifier.
        tool: The diff tool, or None when none is configured (every result
            is then UNKNOWN).
        timeout: Seconds before one comparison is abandoned.
    """

    def __init__(self, resolver: JarResolver, tool: BytecodeDiffTool | None = None, timeout: float | None = 60.0) -> None:
        self.resolver = resolver
        self.tool = tool
        self.timeout = timeout

    def compare_versions(self, old: Artifact, new: Artifact) -> BinaryCompatibilityReport:
        old_jar = self.resolver.resolve(old)
        new_jar = self.resolver.resolve(new)
        if old_jar is None or new_jar is None:
            missing = old if old_jar is None else new
            return BinaryCompatibilityReport.unknown(old, new, f"JAR not available locally for {missing.compact()}")
        if self.tool is None:
            return BinaryCompatibilityReport.unknown(old, new, "No bytecode diff tool configured")

        try:
            changes = self.tool.diff(old_jar, new_jar, self.timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Comparison of %s and %s timed out after %ss", old.compact(), new.compact(), self.timeout)
            return BinaryCompatibilityReport.unknown(old, new, f"Comparison timed out after {self.timeout}s")
        except Exception as exc:
            logger.warning("Comparison of %s and %s failed, assuming compatible: %s", old.compact(), new.compact(), exc)
            return BinaryCompatibilityReport.compatible(old, new, summary=f"Comparison failed ({exc}); assumed compatible")

        if changes:
            logger.info("%d breaking change(s) between %s and %s", len(changes), old.compact(), new.compact())
            return BinaryCompatibilityReport.incompatible(old, new, changes)
        return BinaryCompatibilityReport.compatible(old, new)

    def is_binary_compatible(self, old: Artifact, new: Artifact) -> bool:
        return self.compare_versions(old, new).is_compatible
