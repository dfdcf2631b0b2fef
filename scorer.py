"""
scorer.py — Weighted 0–100 document score.

Category findings are scaled by a per-document-type weight table, the
risk penalty is subtracted and the result is mapped onto a rating band.
Constants are tuned against existing scores; keep them as they are.
"""

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Sequence, Tuple

from analyzer import CategoryFinding, DocumentAnalysis
from normalizer import DocumentType
from recommendations import generate_recommendations
from risk import RiskFinding


# ─────────────────────────────────────────────────────────────────────────────
# Data classes
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ScoreWeights:
    data_collection: int
    user_rights:     int
    data_sharing:    int
    security:        int

    @property
    def total(self) -> int:
        return self.data_collection + self.user_rights + self.data_sharing + self.security


@dataclass(frozen=True)
class ScoreBreakdownEntry:
    score:       int
    max_score:   int
    description: str

    def to_dict(self) -> dict:
        return {"score": self.score, "max_score": self.max_score, "description": self.description}


@dataclass(frozen=True)
class ComprehensiveScore:
    overall_score:   int
    rating:          str
    color:           str
    breakdown:       Dict[str, ScoreBreakdownEntry]
    risk_factors:    Tuple[str, ...]
    risk_penalty:    int
    recommendations: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "overall_score":   self.overall_score,
            "rating":          self.rating,
            "color":           self.color,
            "breakdown":       {k: v.to_dict() for k, v in self.breakdown.items()},
            "risk_factors":    list(self.risk_factors),
            "risk_penalty":    self.risk_penalty,
            "recommendations": list(self.recommendations),
        }


# ─────────────────────────────────────────────────────────────────────────────
# Static tables
# ─────────────────────────────────────────────────────────────────────────────

DEFAULT_WEIGHTS = ScoreWeights(data_collection=25, user_rights=30, data_sharing=25, security=20)

SCORE_WEIGHTS = MappingProxyType({
    DocumentType.PRIVACY:  ScoreWeights(25, 30, 25, 20),
    DocumentType.TERMS:    ScoreWeights(20, 30, 25, 25),
    DocumentType.LEGAL:    ScoreWeights(25, 25, 25, 25),
    DocumentType.NDA:      ScoreWeights(15, 20, 35, 30),
    DocumentType.CONTRACT: ScoreWeights(20, 25, 25, 30),
    DocumentType.EULA:     ScoreWeights(20, 30, 20, 30),
    DocumentType.COOKIES:  ScoreWeights(35, 25, 30, 10),
})

CONTRACT_MAX        = 15
CONFIDENTIALITY_MAX = 20

RISK_POINTS      = 3
MAX_RISK_PENALTY = 15

# (lower bound inclusive, rating, color), best first
RATING_BANDS = (
    (80, "Excellent", "green"),
    (65, "Good",      "blue"),
    (50, "Fair",      "yellow"),
    (35, "Poor",      "orange"),
)
LOWEST_RATING = ("Very Poor", "red")

DESCRIPTIONS = MappingProxyType({
    "data_collection":       "Transparency in data collection practices",
    "user_rights":           "User control and rights protection",
    "data_sharing":          "Third-party data sharing practices",
    "security":              "Security measures and protection",
    "contract_terms":        "Clarity of contractual obligations and terms",
    "confidentiality_terms": "Scope and fairness of confidentiality obligations",
})


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def _round(value: float) -> int:
    """Round half up (2.5 -> 3), unlike Python's banker's rounding."""
    return int(math.floor(value + 0.5))


def weights_for(document_type) -> ScoreWeights:
    return SCORE_WEIGHTS.get(DocumentType.coerce(document_type), DEFAULT_WEIGHTS)


def risk_penalty(risk_count: int) -> int:
    return min(MAX_RISK_PENALTY, RISK_POINTS * risk_count)


def rate(score: float) -> Tuple[str, str]:
    """Map an overall score onto (rating, color)."""
    for lower, rating, color in RATING_BANDS:
        if score >= lower:
            return rating, color
    return LOWEST_RATING


# ─────────────────────────────────────────────────────────────────────────────
# Per-category weighted scores
# ─────────────────────────────────────────────────────────────────────────────

def transparency_score(finding: CategoryFinding, weight: int, is_privacy: bool) -> float:
    """Collection and rights: more detail found reads as more transparency."""
    if finding.found:
        return _clamp(finding.raw_score * weight / 10, 5, weight)
    return 5 if is_privacy else weight / 2


def sharing_score(finding: CategoryFinding, weight: int) -> float:
    """Inverted: the more sharing language detected, the fewer points."""
    if finding.found:
        return weight - _clamp(finding.raw_score * weight / 15, 0, weight - 5)
    return weight * 0.8


def security_score(finding: CategoryFinding, weight: int) -> float:
    if finding.found:
        return _clamp(finding.raw_score * weight / 10, 5, weight)
    return weight / 2


def contract_score(finding: CategoryFinding) -> float:
    if finding.found:
        return _clamp(finding.raw_score * 1.5, 5, CONTRACT_MAX)
    return 8


def confidentiality_score(finding: CategoryFinding) -> float:
    if finding.found:
        return _clamp(finding.raw_score * 2, 5, CONFIDENTIALITY_MAX)
    return 10


# ─────────────────────────────────────────────────────────────────────────────
# Main entry point
# ─────────────────────────────────────────────────────────────────────────────

def score_document(analysis: DocumentAnalysis, document_type,
                   risks: Sequence[RiskFinding]) -> ComprehensiveScore:
    doc_type = DocumentType.coerce(document_type)
    weights = weights_for(doc_type)
    is_privacy = doc_type is DocumentType.PRIVACY

    # name -> (weighted score, max score)
    parts: Dict[str, Tuple[float, int]] = {
        "data_collection": (transparency_score(analysis.data_collection, weights.data_collection, is_privacy),
                            weights.data_collection),
        "user_rights":     (transparency_score(analysis.user_rights, weights.user_rights, is_privacy),
                            weights.user_rights),
        "data_sharing":    (sharing_score(analysis.data_sharing, weights.data_sharing),
                            weights.data_sharing),
        "security":        (security_score(analysis.security, weights.security),
                            weights.security),
    }
    if doc_type is DocumentType.CONTRACT and analysis.contract_terms is not None:
        parts["contract_terms"] = (contract_score(analysis.contract_terms), CONTRACT_MAX)
    if doc_type is DocumentType.NDA and analysis.confidentiality_terms is not None:
        parts["confidentiality_terms"] = (confidentiality_score(analysis.confidentiality_terms),
                                          CONFIDENTIALITY_MAX)

    risk_factors = tuple(r.label for r in risks)
    penalty = risk_penalty(len(risk_factors))
    total = sum(score for score, _ in parts.values()) - penalty
    overall = int(_clamp(_round(total), 0, 100))
    rating, color = rate(overall)

    breakdown = {
        name: ScoreBreakdownEntry(
            score=min(_round(score), max_score),
            max_score=max_score,
            description=DESCRIPTIONS[name],
        )
        for name, (score, max_score) in parts.items()
    }

    recommendations: List[str] = generate_recommendations(analysis, doc_type, risk_factors, overall)

    return ComprehensiveScore(
        overall_score=overall,
        rating=rating,
        color=color,
        breakdown=breakdown,
        risk_factors=risk_factors,
        risk_penalty=penalty,
        recommendations=tuple(recommendations),
    )
