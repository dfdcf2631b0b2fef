"""
risk.py — High / medium risk phrase detection.

Plain case-insensitive substring checks against two fixed phrase lists.
High-risk phrases are always scanned first, so when the cap is reached
the findings favour the more severe clauses.
"""

from dataclasses import dataclass
from typing import List

HIGH   = "High"
MEDIUM = "Medium"

MAX_RISK_FINDINGS = 5

HIGH_RISK_PHRASES = (
    "sell your data",
    "sell your personal",
    "without notice",
    "track across websites",
    "perpetual",
    "indefinite",
    "irrevocable",
    "waive your right",
    "class action waiver",
    "binding arbitration",
    "sole discretion",
    "unlimited liability",
)

MEDIUM_RISK_PHRASES = (
    "advertising partners",
    "government request",
    "third-party cookies",
    "automatically renew",
    "limitation of liability",
    "change these terms",
    "retain your data",
    "indemnify",
    "non-compete",
    "transfer your data",
)


@dataclass(frozen=True)
class RiskFinding:
    severity: str
    phrase:   str

    @property
    def label(self) -> str:
        return f"{self.severity} risk: {self.phrase}"

    def to_dict(self) -> dict:
        return {"severity": self.severity, "phrase": self.phrase, "label": self.label}


def assess_risks(text: str, document_type=None) -> List[RiskFinding]:
    """
    Scan for risk phrases in list order and stop at MAX_RISK_FINDINGS.

    Matching is substring presence, not word-boundary matching, so
    "indefinitely" also trips "indefinite". The phrase lists are the same
    for every document_type.
    """
    t = text.lower()
    findings: List[RiskFinding] = []
    for severity, phrases in ((HIGH, HIGH_RISK_PHRASES), (MEDIUM, MEDIUM_RISK_PHRASES)):
        for phrase in phrases:
            if len(findings) >= MAX_RISK_FINDINGS:
                return findings
            if phrase in t:
                findings.append(RiskFinding(severity, phrase))
    return findings
