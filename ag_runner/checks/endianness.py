"""Static scan of persistence-format sources for byte-order hazards."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

NATIVE_ENDIAN = re.compile(r"to_ne_bytes\(|from_ne_bytes\(")
RAW_REINTERPRET = re.compile(r"transmute|from_raw_parts")
USIZE_FIELD = re.compile(r"pub .*: usize|: usize,")


@dataclass(frozen=True)
class Finding:
    path: Path
    line_no: int
    line: str
    severity: str
    message: str

    def render(self) -> str:
        return f"{self.path}:{self.line_no}:{self.line.rstrip()}"


@dataclass
class EndiannessReport:
    findings: List[Finding] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)

    @property
    def errors(self) -> List[Finding]:
        return [f for f in self.findings if f.severity == "error"]

    @property
    def warnings(self) -> List[Finding]:
        return [f for f in self.findings if f.severity == "warn"]

    @property
    def exit_code(self) -> int:
        return 1 if self.errors else 0


_RULES = (
    (NATIVE_ENDIAN, "error", "native-endian byte conversion"),
    (RAW_REINTERPRET, "warn", "review raw reinterpretation"),
    (USIZE_FIELD, "warn", "review persisted struct fields using usize"),
)


def scan_file(path: Path) -> List[Finding]:
    findings: List[Finding] = []
    text = path.read_text(encoding="utf-8", errors="replace")
    for pattern, severity, message in _RULES:
        for line_no, line in enumerate(text.splitlines(), start=1):
            if pattern.search(line):
                findings.append(Finding(path, line_no, line, severity, message))
    return findings


def check_files(paths: Iterable[Path]) -> EndiannessReport:
    """Scan only the given files; anything that is not a regular file is skipped."""
    report = EndiannessReport()
    for path in paths:
        if not path.is_file():
            report.skipped.append(path)
            continue
        report.findings.extend(scan_file(path))
    return report


def render_report(report: EndiannessReport) -> List[str]:
    lines = [f"skip: {path} (not a file)" for path in report.skipped]
    current: tuple[Path, str] | None = None
    for finding in report.findings:
        key = (finding.path, finding.message)
        if key != current:
            prefix = "error" if finding.severity == "error" else "warn"
            lines.append(f"{prefix}: {finding.message} in {finding.path}")
            current = key
        lines.append(finding.render())
    return lines
