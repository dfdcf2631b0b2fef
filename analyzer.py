"""
Rule-based legal document analyzer
No AI / ML — pure Python: sentence splitting, weighted keyword matching.
Detects data-practice categories (collection, rights, sharing, security)
plus contract and confidentiality terms for the document types that need them.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from normalizer import DocumentType, NormalizedDocument


# ─────────────────────────────────────────────────────────────────────────────
# Data classes
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CategoryFinding:
    name:              str
    found:             bool
    matched_sentences: Tuple[str, ...]   # most relevant first, at most 5
    raw_score:         float             # 0–10

    def to_dict(self) -> dict:
        return {
            "found":   self.found,
            "details": list(self.matched_sentences),
            "score":   self.raw_score,
        }


@dataclass(frozen=True)
class DocumentAnalysis:
    data_collection:      CategoryFinding
    user_rights:          CategoryFinding
    data_sharing:         CategoryFinding
    security:             CategoryFinding
    contract_terms:       Optional[CategoryFinding] = None   # contract / eula only
    confidentiality_terms: Optional[CategoryFinding] = None  # nda only

    def findings(self) -> List[CategoryFinding]:
        items = [self.data_collection, self.user_rights, self.data_sharing, self.security]
        return items + [f for f in (self.contract_terms, self.confidentiality_terms) if f]

    def to_dict(self) -> dict:
        d = {
            "data_collection": self.data_collection.to_dict(),
            "user_rights":     self.user_rights.to_dict(),
            "data_sharing":    self.data_sharing.to_dict(),
            "security":        self.security.to_dict(),
        }
        if self.contract_terms:
            d["contract_terms"] = self.contract_terms.to_dict()
        if self.confidentiality_terms:
            d["confidentiality_terms"] = self.confidentiality_terms.to_dict()
        return d


# ─────────────────────────────────────────────────────────────────────────────
# Keyword tables
# ─────────────────────────────────────────────────────────────────────────────

DATA_COLLECTION = "data_collection"
USER_RIGHTS     = "user_rights"
DATA_SHARING    = "data_sharing"
SECURITY        = "security"
CONTRACT_TERMS  = "contract_terms"
CONFIDENTIALITY = "confidentiality"

CATEGORY_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    DATA_COLLECTION: (
        "personal information", "personal data", "collect", "gather", "obtain",
        "email address", "ip address", "location", "cookies", "tracking",
        "analytics", "usage data", "device information", "browsing history",
        "payment information", "credit card", "financial information",
    ),
    USER_RIGHTS: (
        "delete", "remove", "access", "modify", "correct", "update",
        "opt-out", "opt out", "unsubscribe", "right to", "data protection",
        "privacy rights", "user control", "request information", "portability",
    ),
    DATA_SHARING: (
        "third party", "third-party", "share", "disclose", "transfer", "sell",
        "partner", "affiliate", "vendor", "service provider",
        "advertiser", "marketing", "business transfer",
    ),
    SECURITY: (
        "security", "encrypt", "secure", "protect", "safeguard",
        "ssl", "https", "data breach", "unauthorized access", "firewall",
    ),
    CONTRACT_TERMS: (
        "payment", "fee", "term of this agreement", "termination", "terminate",
        "liability", "indemnify", "warranty", "governing law", "dispute",
        "arbitration", "renewal", "license", "obligation", "breach",
    ),
    CONFIDENTIALITY: (
        "confidential", "confidentiality", "non-disclosure", "proprietary",
        "trade secret", "disclosing party", "receiving party", "return or destroy",
        "permitted use", "need to know", "perpetual", "indefinite",
    ),
}

CATEGORY_TYPES = {
    CONTRACT_TERMS:  (DocumentType.CONTRACT, DocumentType.EULA),
    CONFIDENTIALITY: (DocumentType.NDA,),
}

MIN_SENTENCE_CHARS = 20
MAX_SECTIONS       = 5
LONG_KEYWORD_CHARS = 5   # keywords longer than this count double

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


# ─────────────────────────────────────────────────────────────────────────────
# Section relevance finder
# ─────────────────────────────────────────────────────────────────────────────

def _relevance(sentence: str, keywords) -> int:
    s = sentence.lower()
    score = 0
    for kw in keywords:
        hits = s.count(kw.lower())
        if hits:
            score += hits * (2 if len(kw) > LONG_KEYWORD_CHARS else 1)
    return score


def find_relevant_sections(text: str, keywords, limit: int = MAX_SECTIONS) -> List[str]:
    """
    Return up to `limit` sentences ranked by weighted keyword hits.

    Sentences under 20 characters are noise and never returned. The sort
    is stable, so equally relevant sentences keep document order.
    """
    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(text)]
    scored = []
    for s in sentences:
        if len(s) < MIN_SENTENCE_CHARS:
            continue
        score = _relevance(s, keywords)
        if score > 0:
            scored.append((score, s))
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [s for _, s in scored[:limit]]


# ─────────────────────────────────────────────────────────────────────────────
# Category scoring
# ─────────────────────────────────────────────────────────────────────────────

def category_score(match_count: int, category: str) -> float:
    base = min(match_count * 1.5, 10)
    if category == DATA_COLLECTION:
        score = min(base * 0.8, 8)       # collection alone is not good practice
    elif category == USER_RIGHTS:
        score = min(base * 1.2, 10)
    elif category == DATA_SHARING:
        score = max(base, 3)             # floor: any sharing section is worth flagging
    elif category == SECURITY:
        score = min(base * 1.1, 10)
    elif category == CONFIDENTIALITY:
        score = min(base * 1.1, 10)
    else:
        score = min(base, 10)
    return round(max(0.0, min(score, 10.0)), 2)


def analyze_category(text: str, category: str) -> CategoryFinding:
    matches = find_relevant_sections(text, CATEGORY_KEYWORDS[category])
    return CategoryFinding(
        name=category,
        found=len(matches) > 0,
        matched_sentences=tuple(matches),
        raw_score=category_score(len(matches), category),
    )


def runs_for(category: str, doc_type: DocumentType) -> bool:
    return doc_type in CATEGORY_TYPES.get(category, ())


# ─────────────────────────────────────────────────────────────────────────────
# Main entry point
# ─────────────────────────────────────────────────────────────────────────────

def analyze_categories(doc: NormalizedDocument) -> DocumentAnalysis:
    text, doc_type = doc.cleaned_text, doc.document_type
    return DocumentAnalysis(
        data_collection=analyze_category(text, DATA_COLLECTION),
        user_rights=analyze_category(text, USER_RIGHTS),
        data_sharing=analyze_category(text, DATA_SHARING),
        security=analyze_category(text, SECURITY),
        contract_terms=(analyze_category(text, CONTRACT_TERMS)
                        if runs_for(CONTRACT_TERMS, doc_type) else None),
        confidentiality_terms=(analyze_category(text, CONFIDENTIALITY)
                               if runs_for(CONFIDENTIALITY, doc_type) else None),
    )
